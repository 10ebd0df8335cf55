"""
Chart data builders for the dashboard widgets.

Each builder is a pure function from shaped report data to the literal
structure the client chart expects. Brand colors come from the BrandPalette
passed in, so one report renders every brand in the same color everywhere.
"""
import math
from typing import Optional

from brandscope.services.brand_colors import BrandPalette, CHART_COLORS, platform_color
from brandscope.services.format import SentimentBreakdown
from brandscope.services.report_data import ReportData

DAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
VENN_COLORS = ["#8b5cf6", "#ec4899", "#3b82f6", "#10b981", "#f59e0b"]
SENTIMENT_COLORS = {"positive": "#10B981", "neutral": "#6B7280", "negative": "#EF4444"}


def _ratio(value: float, top: float) -> int:
    return round(value / top * 100) if top else 0


def _voice_ratio(voice: list[dict], brand: str) -> Optional[float]:
    for v in voice:
        if v.get("brand") == brand:
            return float((v.get("metrics") or {}).get("voice_ratio") or 0)
    return None


# ─── Competitive overview ───

def competitive_radar(report: ReportData) -> list[dict]:
    """One row per brand, each metric scaled to the best brand = 100."""
    equity = report.equity
    if not equity:
        return []
    tops = {
        "equity": max(e.equity_score for e in equity),
        "followers": max(e.total_followers for e in equity),
        "engagement": max(e.avg_engagement for e in equity),
        "velocity": max(e.content_velocity for e in equity),
        "voice": max((_voice_ratio(report.voice, e.brand) or 0 for e in equity), default=0),
    }
    rows = []
    for e in equity:
        voice = _voice_ratio(report.voice, e.brand)
        rows.append({
            "brand": e.brand,
            "brand_equity": _ratio(e.equity_score, tops["equity"]),
            "reach": _ratio(e.total_followers, tops["followers"]),
            "engagement": _ratio(e.avg_engagement, tops["engagement"]),
            "content_output": _ratio(e.content_velocity, tops["velocity"]),
            "earned_media": _ratio(voice, tops["voice"]) if voice is not None else 0,
        })
    return rows


def reach_engagement_scatter(report: ReportData, palette: BrandPalette) -> list[dict]:
    return [
        {
            "name": e.brand,
            "reach": e.total_followers,
            "engagement": e.avg_engagement,
            "equity_score": e.equity_score,
            "is_focus": e.brand == report.focus_brand,
            "color": palette.color(e.brand),
        }
        for e in report.equity
    ]


def market_position(report: ReportData) -> dict:
    ranked = sorted(report.equity, key=lambda e: e.equity_score, reverse=True)
    names = [e.brand for e in ranked]
    position = names.index(report.focus_brand) + 1 if report.focus_brand in names else None
    competitors = [e.brand for e in report.equity if e.brand != report.focus_brand]
    ratios = [_voice_ratio(report.voice, b) or 0 for b in competitors]
    return {
        "position": position,
        "out_of": len(ranked),
        "focus_voice_ratio": _voice_ratio(report.voice, report.focus_brand or ""),
        "avg_competitor_voice_ratio": sum(ratios) / len(ratios) if ratios else 0,
    }


# ─── Heatmaps ───

def intensity_level(value: float, max_value: float) -> int:
    """0 = empty, then quartiles 1..4 of the busiest cell."""
    intensity = value / max_value if max_value else 0
    if intensity == 0:
        return 0
    if intensity < 0.25:
        return 1
    if intensity < 0.5:
        return 2
    if intensity < 0.75:
        return 3
    return 4


def hourly_heatmap(hours: list[int]) -> list[dict]:
    top = max(hours, default=0)
    return [
        {"hour": h, "label": f"{h:02d}:00", "value": v, "level": intensity_level(v, top)}
        for h, v in enumerate(hours)
    ]


def daily_heatmap(day_counts: dict[str, int]) -> list[dict]:
    top = max(day_counts.values(), default=0)
    return [
        {"day": d, "value": day_counts.get(d, 0), "level": intensity_level(day_counts.get(d, 0), top)}
        for d in DAYS
    ]


# ─── Pies ───

def channel_pie(report: ReportData, brand: str) -> list[dict]:
    slices = [c for c in report.channels if c.brand == brand]
    return [
        {"name": c.platform, "value": c.total_posts or 1, "color": platform_color(c.platform)}
        for c in slices
    ]


def sentiment_pie(breakdown: SentimentBreakdown) -> list[dict]:
    return [
        {"name": label.capitalize(), "value": count, "percentage": round(pct, 1), "color": SENTIMENT_COLORS[label]}
        for label, count, pct in [
            ("positive", breakdown.positive, breakdown.positive_pct),
            ("neutral", breakdown.neutral, breakdown.neutral_pct),
            ("negative", breakdown.negative, breakdown.negative_pct),
        ]
        if count > 0
    ]


# ─── Flow / graph ───

def audience_sankey(report: ReportData) -> dict:
    """Brand -> platform flows weighted by followers."""
    rows = [r for r in report.audience or [] if r.followers > 0]
    names = list(dict.fromkeys([r.brand for r in rows] + [r.platform for r in rows]))
    return {
        "nodes": [{"name": n} for n in names],
        "links": [
            {"source": names.index(r.brand), "target": names.index(r.platform), "value": r.followers}
            for r in rows
        ],
    }


def hashtag_network(report: ReportData, palette: BrandPalette, per_brand: int = 8) -> dict:
    """Brands linked to their top hashtags; shared tags connect brands."""
    nodes: dict[str, dict] = {}
    links = []
    for brand, tags in report.hashtags.items():
        nodes[brand] = {"id": brand, "label": brand, "size": 24, "color": palette.color(brand), "kind": "brand"}
        for rank, tag in enumerate(tags[:per_brand]):
            tag_id = f"#{tag.lstrip('#')}"
            if tag_id in nodes:
                nodes[tag_id]["size"] += 2
            else:
                nodes[tag_id] = {"id": tag_id, "label": tag_id, "size": 10, "color": "#9CA3AF", "kind": "hashtag"}
            links.append({"source": brand, "target": tag_id, "distance": 60 + rank * 10})
    return {"nodes": list(nodes.values()), "links": links}


def word_cloud(words: list[dict]) -> list[dict]:
    """Drop blank or non-positive words and strip a leading '#'."""
    out = []
    for w in words:
        text = str(w.get("text") or "").strip().lstrip("#")
        value = w.get("value") or 0
        if text and value > 0:
            out.append({"text": text, "value": value})
    return out


def hashtag_words(report: ReportData) -> list[dict]:
    """Rank-weighted hashtags of every brand."""
    words = []
    for tags in report.hashtags.values():
        words.extend({"text": tag, "value": (len(tags) - idx) * 10} for idx, tag in enumerate(tags))
    return word_cloud(words)


# ─── Share of voice ───

def venn_layout(brand_names: list[str]) -> dict[str, dict]:
    positions: dict[str, dict] = {}
    n = len(brand_names)
    fixed = {
        1: [(250, 200, 120)],
        2: [(200, 200, 100), (300, 200, 100)],
        3: [(250, 150, 90), (180, 250, 90), (320, 250, 90)],
    }
    if n in fixed:
        for idx, (name, (x, y, r)) in enumerate(zip(brand_names, fixed[n])):
            positions[name] = {"x": x, "y": y, "radius": r, "color": VENN_COLORS[idx]}
        return positions

    center_x, center_y, arrange_radius, circle_radius = 250, 200, 120, 70
    for idx, name in enumerate(brand_names):
        angle = idx / n * 2 * math.pi - math.pi / 2
        positions[name] = {
            "x": center_x + arrange_radius * math.cos(angle),
            "y": center_y + arrange_radius * math.sin(angle),
            "radius": circle_radius,
            "color": VENN_COLORS[idx % len(VENN_COLORS)],
        }
    return positions


def share_of_voice_venn(share_of_voice: Optional[dict]) -> Optional[dict]:
    if not share_of_voice:
        return None
    raw_shares = share_of_voice.get("brand_shares")
    shares = [s for s in raw_shares if isinstance(s, dict)] if isinstance(raw_shares, list) else []
    names = [s.get("brand_name", "") for s in shares]
    return {
        "total_universe": share_of_voice.get("total_universe_conversations", 0),
        "positions": venn_layout(names),
        "ranked": sorted(shares, key=lambda s: s.get("share_percentage") or 0, reverse=True),
        "venn_data": share_of_voice.get("venn_data") or [],
        "universe_keywords": share_of_voice.get("universe_keywords") or [],
    }


# ─── Everything the dashboard page needs ───

def dashboard_charts(report: ReportData, palette: BrandPalette,
                     sentiment: Optional[SentimentBreakdown] = None) -> dict:
    return {
        "colors": palette.as_dict(),
        "series_colors": CHART_COLORS,
        "competitive_radar": competitive_radar(report),
        "reach_engagement": reach_engagement_scatter(report, palette),
        "market_position": market_position(report),
        "activity_heatmaps": {p: hourly_heatmap(hours) for p, hours in report.timing.items()},
        "competitor_activity_heatmaps": {
            brand: {p: hourly_heatmap(hours) for p, hours in platforms.items()}
            for brand, platforms in report.competitor_timing.items()
        },
        "weekday_heatmaps": {p: daily_heatmap(days) for p, days in report.timing_days.items()},
        "channel_pies": {b: channel_pie(report, b) for b in report.brands},
        "sentiment_pie": sentiment_pie(sentiment) if sentiment else [],
        "audience_sankey": audience_sankey(report),
        "hashtag_network": hashtag_network(report, palette),
        "word_cloud": hashtag_words(report),
        "share_of_voice": share_of_voice_venn(report.share_of_voice),
    }
