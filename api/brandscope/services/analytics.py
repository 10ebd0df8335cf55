"""
Brand Analytics Service — per-platform metrics and cross-brand comparison.

Works on the BrandData rows the collectors persisted for each brand:
1. Per platform: followers, engagement rate, cadence, hashtags, post mix, timing
2. Per brand: the platform map, configured platforms included even without data
3. Across brands: audience, channels, hashtags, post types, timing, brand equity
"""
import json
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import structlog

from brandscope.models import PLATFORMS

logger = structlog.get_logger()

# Typical engagement per follower, used to estimate a missing follower count
TYPICAL_ENGAGEMENT_RATE = {
    "instagram": 0.02,
    "tiktok": 0.07,
    "youtube": 0.02,
    "twitter": 0.02,
    "facebook": 0.01,
}

WEEKDAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

_HASHTAG_RE = re.compile(r"#\w+")

# Equity weights and normalisation points
REACH_WEIGHT, ENGAGEMENT_WEIGHT, CONTENT_WEIGHT = 0.4, 0.4, 0.2
REACH_FULL_FOLLOWERS = 500_000
CONTENT_FULL_POSTS_PER_DAY = 2


@dataclass
class PlatformMetrics:
    platform: str
    followers: int = 0
    posts: int = 0
    engagement: float = 0.0
    avg_post_per_day: float = 0.0
    hashtags: list[str] = field(default_factory=list)
    post_types: list[dict] = field(default_factory=list)
    post_times: list[dict] = field(default_factory=list)
    post_days: list[dict] = field(default_factory=list)
    raw_posts: list[dict] = field(default_factory=list)
    configured: bool = True
    data_available: bool = False
    followers_source: str = "missing"  # collected, estimated, missing


@dataclass
class BrandAnalysis:
    brand_name: str
    platforms: dict[str, PlatformMetrics] = field(default_factory=dict)


# ─── Post helpers ───

def load_posts(raw_data: Optional[str]) -> list[dict]:
    """Posts from a stored collector payload: {"data": [...]} or a bare list."""
    if not raw_data:
        return []
    try:
        payload = json.loads(raw_data)
    except ValueError:
        logger.warning("analytics: raw_data is not JSON")
        return []
    posts = payload.get("data") if isinstance(payload, dict) else payload
    return [p for p in posts or [] if isinstance(p, dict)]


def _text(post: dict) -> str:
    for key in ("title", "description", "text", "caption", "content"):
        if post.get(key):
            return str(post[key])
    return ""


def _int(post: dict, *keys: str) -> int:
    for key in keys:
        if post.get(key):
            try:
                return int(post[key])
            except (TypeError, ValueError):
                return 0
    return 0


def post_interactions(post: dict) -> int:
    return (
        _int(post, "like_count", "likes")
        + _int(post, "comment_count", "comments")
        + _int(post, "share_count", "shares")
        + _int(post, "retweet_count", "retweets")
    )


def parse_post_date(post: dict) -> Optional[datetime]:
    value = post.get("published_at") or post.get("created_at") or post.get("timestamp") or post.get("date")
    if value is None or value == "":
        return None
    try:
        if isinstance(value, (int, float)):
            # epoch seconds or milliseconds
            seconds = value / 1000 if value > 10**11 else value
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except (ValueError, OverflowError, OSError):
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def extract_hashtags(posts: list[dict], top_n: int = 20) -> list[str]:
    counts = Counter(tag for p in posts for tag in _HASHTAG_RE.findall(_text(p)))
    return [tag for tag, _ in counts.most_common(top_n)]


def classify_post(post: dict) -> str:
    media = post.get("media_type")
    if media == "carousel":
        return "carousel"
    if media == "video" or post.get("video"):
        return "video"
    if media in ("photo", "image") or post.get("image"):
        return "image"
    return "text"


def analyze_post_types(posts: list[dict]) -> list[dict]:
    totals: dict[str, list[int]] = {}
    for post in posts:
        totals.setdefault(classify_post(post), []).append(post_interactions(post))
    return [
        {"type": t, "count": len(engs), "avg_engagement": round(sum(engs) / len(engs), 2)}
        for t, engs in totals.items()
    ]


def analyze_post_times(posts: list[dict]) -> tuple[list[dict], list[dict]]:
    """Hour-of-day and day-of-week histograms (UTC)."""
    hours = [0] * 24
    days = Counter()
    for post in posts:
        when = parse_post_date(post)
        if when is None:
            continue
        hours[when.hour] += 1
        days[WEEKDAYS[(when.weekday() + 1) % 7]] += 1
    return (
        [{"hour": h, "count": c} for h, c in enumerate(hours)],
        [{"day": d, "count": days.get(d, 0)} for d in WEEKDAYS],
    )


def avg_posts_per_day(posts: list[dict]) -> float:
    dates = sorted(d for d in (parse_post_date(p) for p in posts) if d is not None)
    if not dates:
        return 0.0
    span_days = -(-(dates[-1] - dates[0]).total_seconds() // 86400)  # ceil
    if span_days == 0:
        return float(len(posts))
    return round(len(posts) / span_days, 2)


def normalize_post(post: dict) -> dict:
    return {
        "text": _text(post),
        "likes": _int(post, "like_count", "likes"),
        "comments": _int(post, "comment_count", "comments"),
        "shares": _int(post, "share_count", "shares"),
        "engagement": post_interactions(post),
        "published_at": post.get("published_at") or post.get("timestamp") or post.get("created_at"),
    }


# ─── Per brand ───

def analyze_platform(platform: str, row, configured: bool = True) -> PlatformMetrics:
    """Metrics for one BrandData row; stored values win over derived ones."""
    posts = load_posts(row.raw_data)
    metrics = PlatformMetrics(platform=platform, configured=configured, data_available=True)

    avg_interactions = sum(post_interactions(p) for p in posts) / len(posts) if posts else 0.0
    followers = row.follower_count or 0
    if followers:
        metrics.followers_source = "collected"
    elif avg_interactions > 0:
        followers = round(avg_interactions / TYPICAL_ENGAGEMENT_RATE.get(platform, 0.02))
        metrics.followers_source = "estimated"
    metrics.followers = int(followers)

    metrics.posts = row.post_count if row.post_count is not None else len(posts)
    if row.engagement_rate is not None:
        metrics.engagement = round(float(row.engagement_rate), 2)
    elif followers:
        metrics.engagement = round(avg_interactions / followers * 100, 2)
    metrics.avg_post_per_day = (
        round(float(row.avg_post_per_day), 2) if row.avg_post_per_day is not None else avg_posts_per_day(posts)
    )

    metrics.hashtags = extract_hashtags(posts)
    metrics.post_types = analyze_post_types(posts)
    metrics.post_times, metrics.post_days = analyze_post_times(posts)
    metrics.raw_posts = [normalize_post(p) for p in posts]
    return metrics


def analyze_brand(brand) -> BrandAnalysis:
    latest: dict[str, object] = {}
    for row in sorted(brand.brand_data, key=lambda r: (r.created_at is not None, r.created_at or 0)):
        if row.platform != "website":
            latest[row.platform] = row

    configured = set(brand.configured_platforms)
    analysis = BrandAnalysis(brand_name=brand.name)
    for platform in [p for p in PLATFORMS if p in configured or p in latest] + sorted(set(latest) - set(PLATFORMS)):
        row = latest.get(platform)
        if row is None:
            analysis.platforms[platform] = PlatformMetrics(platform=platform, configured=True)
        else:
            analysis.platforms[platform] = analyze_platform(platform, row, configured=platform in configured)
    return analysis


# ─── Across brands ───

def brand_equity(analysis: BrandAnalysis) -> dict:
    platforms = list(analysis.platforms.values())
    total_followers = sum(p.followers for p in platforms)
    if total_followers > 0:
        avg_engagement = sum(p.engagement * p.followers for p in platforms) / total_followers
    elif platforms:
        avg_engagement = sum(p.engagement for p in platforms) / len(platforms)
    else:
        avg_engagement = 0.0
    velocity = sum(p.avg_post_per_day for p in platforms)

    reach_score = min(total_followers / REACH_FULL_FOLLOWERS * 100, 100)
    engagement_score = min(avg_engagement * 10, 100)
    content_score = min(velocity / CONTENT_FULL_POSTS_PER_DAY * 100, 100)
    score = reach_score * REACH_WEIGHT + engagement_score * ENGAGEMENT_WEIGHT + content_score * CONTENT_WEIGHT

    return {
        "brand": analysis.brand_name,
        "total_followers": total_followers,
        "avg_engagement": round(avg_engagement, 2),
        "content_velocity": round(velocity, 2),
        "equity_score": round(score, 1),
    }


def aggregate_post_types(analysis: BrandAnalysis) -> list[dict]:
    merged: dict[str, dict] = {}
    for platform, metrics in analysis.platforms.items():
        for pt in metrics.post_types:
            slot = merged.setdefault(pt["type"], {"count": 0, "total": 0.0, "platforms": []})
            slot["count"] += pt["count"]
            slot["total"] += pt["avg_engagement"] * pt["count"]
            if platform not in slot["platforms"]:
                slot["platforms"].append(platform)
    return [
        {
            "type": t.capitalize(),
            "count": s["count"],
            "avg_engagement": round(s["total"] / s["count"], 2) if s["count"] else 0,
            "platforms": ", ".join(s["platforms"]),
        }
        for t, s in merged.items()
    ]


def _timing_entry(analysis: BrandAnalysis) -> dict:
    return {
        "brand_name": analysis.brand_name,
        "platforms": {
            p: {"post_times": m.post_times, "post_days": m.post_days}
            for p, m in analysis.platforms.items()
        },
    }


def comparative_analysis(brands: list[BrandAnalysis], focus_brand_name: str, data_range: str = "30 days") -> dict:
    """All cross-brand blobs, keyed by AnalysisResult column name."""
    focus = next((b for b in brands if b.brand_name == focus_brand_name), None)
    return {
        "audience_comparison": [
            {
                "brand": b.brand_name,
                "platforms": [
                    {"platform": p, "followers": m.followers, "configured": m.configured,
                     "data_available": m.data_available}
                    for p, m in b.platforms.items()
                ],
            }
            for b in brands
        ],
        "post_channel_data": [
            {
                "brand": b.brand_name,
                "channels": [
                    {"platform": p, "avg_post_per_day": m.avg_post_per_day, "total_posts": m.posts,
                     "configured": m.configured, "data_available": m.data_available}
                    for p, m in b.platforms.items()
                ],
            }
            for b in brands
        ],
        "hashtag_analysis": [
            {"brand": b.brand_name, "top_hashtags": [t for m in b.platforms.values() for t in m.hashtags][:15]}
            for b in brands
        ],
        "post_type_engagement": [
            {"brand": b.brand_name, "post_types": aggregate_post_types(b)} for b in brands
        ],
        "post_timing_data": {
            "focus_brand": _timing_entry(focus) if focus else None,
            "competitors": [_timing_entry(b) for b in brands if b.brand_name != focus_brand_name],
        },
        "brand_equity_data": [brand_equity(b) for b in brands],
        "additional_metrics": {
            "total_brands_analyzed": len(brands),
            "total_platforms": sum(len(b.platforms) for b in brands),
            "analysis_date": datetime.now(timezone.utc).isoformat(),
            "data_range": data_range,
        },
    }


def data_quality_report(brands: list[BrandAnalysis]) -> list[dict]:
    report = []
    for b in brands:
        rows = []
        for p, m in b.platforms.items():
            issues = []
            if not m.data_available:
                issues.append("no collected data")
            elif not m.raw_posts:
                issues.append("no posts in payload")
            if m.followers_source == "estimated":
                issues.append("follower count estimated from engagement")
            rows.append({
                "platform": p,
                "followers_source": m.followers_source,
                "posts_analyzed": len(m.raw_posts),
                "issues": issues,
            })
        report.append({"brand": b.brand_name, "platforms": rows})
    return report
