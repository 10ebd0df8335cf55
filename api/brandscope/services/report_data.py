"""
Report Data Shaper — turns a stored AnalysisResult into render-ready structures.

Every JSON column is parsed once into a ParsedField (value | error). Renderers
check `.ok` / `.present` instead of catching decode errors themselves, so a
malformed column degrades only the section that reads it.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Optional

import structlog

logger = structlog.get_logger()


@dataclass
class ParsedField:
    value: Any
    error: Optional[str] = None
    present: bool = True

    @property
    def ok(self) -> bool:
        return self.present and self.error is None


def parse_field(raw: Optional[str], default: Any = None, expect: Optional[type] = None) -> ParsedField:
    """Decode a stored JSON column.

    Absent (NULL, empty, JSON null) -> default, not present.
    Undecodable or of the wrong top-level type -> default with an error.
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return ParsedField(default, present=False)
    try:
        value = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
    except (TypeError, ValueError) as e:
        return ParsedField(default, error=str(e))
    if value is None:
        return ParsedField(default, present=False)
    if expect is not None and not isinstance(value, expect):
        return ParsedField(default, error=f"expected {expect.__name__}, got {type(value).__name__}")
    return ParsedField(value)


@dataclass
class AiInsights:
    summary: Optional[str] = None
    recommendations: list[str] = field(default_factory=list)
    text: Optional[str] = None

    @property
    def empty(self) -> bool:
        return not (self.summary or self.recommendations or self.text)


def parse_ai_insights(raw: Optional[str]) -> AiInsights:
    """JSON {"summary", "recommendations"} when possible, otherwise plain prose."""
    if not raw or not raw.strip():
        return AiInsights()
    try:
        data = json.loads(raw)
    except ValueError:
        return AiInsights(text=raw)
    if not isinstance(data, dict):
        return AiInsights(text=raw)

    recs = data.get("recommendations") or []
    if isinstance(recs, str):
        recs = [recs]
    return AiInsights(
        summary=data.get("summary"),
        recommendations=[str(r) for r in recs],
    )


# ─── Shaped rows ───

@dataclass
class AudienceRow:
    brand: str
    platform: str
    followers: int


@dataclass
class ChannelSlice:
    brand: str
    platform: str
    total_posts: int
    avg_post_per_day: float


@dataclass
class PostTypeStat:
    type: str
    count: int
    avg_engagement: float
    platforms: str = ""


@dataclass
class EquityRow:
    brand: str
    total_followers: int
    avg_engagement: float
    content_velocity: float
    equity_score: float


@dataclass
class ReportData:
    brands: list[str] = field(default_factory=list)
    focus_brand: Optional[str] = None
    audience: Optional[list[AudienceRow]] = None  # None = section omitted
    platforms: list[str] = field(default_factory=list)
    channels: list[ChannelSlice] = field(default_factory=list)
    hashtags: dict[str, list[str]] = field(default_factory=dict)
    post_types: dict[str, list[PostTypeStat]] = field(default_factory=dict)
    timing: dict[str, list[int]] = field(default_factory=dict)  # focus brand, platform -> 24 hourly counts
    competitor_timing: dict[str, dict[str, list[int]]] = field(default_factory=dict)
    timing_days: dict[str, dict[str, int]] = field(default_factory=dict)  # focus brand, platform -> weekday counts
    keyword_clusters: list[dict] = field(default_factory=list)
    voice: list[dict] = field(default_factory=list)
    share_of_voice: Optional[dict] = None
    equity: list[EquityRow] = field(default_factory=list)
    additional_metrics: dict = field(default_factory=dict)
    ai: AiInsights = field(default_factory=AiInsights)
    ai_keyword_insights: Optional[str] = None
    warnings: list[str] = field(default_factory=list)

    def audience_matrix(self) -> dict[str, dict[str, int]]:
        matrix: dict[str, dict[str, int]] = {}
        for row in self.audience or []:
            matrix.setdefault(row.brand, {})[row.platform] = row.followers
        return matrix

    def brand_followers(self, brand: str) -> int:
        return sum(r.followers for r in self.audience or [] if r.brand == brand)

    def brand_posts(self, brand: str) -> int:
        return sum(c.total_posts for c in self.channels if c.brand == brand)

    def equity_for(self, brand: str) -> Optional[EquityRow]:
        return next((e for e in self.equity if e.brand == brand), None)


def _ordered_unique(items) -> list:
    seen = {}
    for item in items:
        seen.setdefault(item, None)
    return list(seen)


def _hour_histogram(post_times: list) -> list[int]:
    hours = [0] * 24
    for bucket in _dict_items(post_times)[0]:
        try:
            hour = int(bucket.get("hour"))
            count = int(bucket.get("count") or 0)
        except (TypeError, ValueError):
            continue
        if 0 <= hour < 24:
            hours[hour] += count
    return hours


def _platform_timing(entry: Optional[dict]) -> dict[str, list[int]]:
    platforms = entry.get("platforms") if isinstance(entry, dict) else None
    if not isinstance(platforms, dict):
        return {}
    return {
        p: _hour_histogram(data.get("post_times"))
        for p, data in platforms.items() if isinstance(data, dict)
    }


def _platform_days(entry: Optional[dict]) -> dict[str, dict[str, int]]:
    platforms = entry.get("platforms") if isinstance(entry, dict) else None
    if not isinstance(platforms, dict):
        return {}
    out = {}
    for p, data in platforms.items():
        if not isinstance(data, dict):
            continue
        out[p] = {
            str(b.get("day")): _num(b.get("count"), int)
            for b in _dict_items(data.get("post_days"))[0]
        }
    return out


def _dict_items(value) -> tuple[list[dict], bool]:
    """Object entries of a JSON list; the flag is set when anything else was there."""
    if value is None:
        return [], False
    if not isinstance(value, list):
        return [], True
    items = [e for e in value if isinstance(e, dict)]
    return items, len(items) != len(value)


def _num(value, cast=float, default=0):
    try:
        return cast(value) if value is not None else default
    except (TypeError, ValueError):
        return default


def shape_report(result, focus_brand: Optional[str] = None, competitors: Optional[list[str]] = None) -> ReportData:
    """Shape an AnalysisResult row (or anything with the same attributes)."""
    report = ReportData(focus_brand=focus_brand)
    fields: dict[str, ParsedField] = {}

    for name, default, expect in [
        ("audience_comparison", [], list),
        ("post_channel_data", [], list),
        ("hashtag_analysis", [], list),
        ("post_type_engagement", [], list),
        ("brand_equity_data", [], list),
        ("post_timing_data", {}, dict),
        ("keyword_clustering", [], list),
        ("voice_analysis", [], list),
        ("share_of_voice", None, dict),
        ("additional_metrics", {}, dict),
    ]:
        parsed = parse_field(getattr(result, name, None), default, expect)
        if parsed.error:
            logger.warning("report: field parse failed", field=name, error=parsed.error)
            report.warnings.append(name)
        fields[name] = parsed

    def degraded(name: str, reason: str):
        if name not in report.warnings:
            logger.warning("report: malformed entries skipped", field=name, reason=reason)
            report.warnings.append(name)

    def records(name: str) -> list[dict]:
        items, malformed = _dict_items(fields[name].value)
        if malformed:
            degraded(name, "entry is not an object")
        return items

    def nested(name: str, entry: dict, key: str) -> list[dict]:
        items, malformed = _dict_items(entry.get(key))
        if malformed:
            degraded(name, f"{key} entry is not an object")
        return items

    # Audience: a bad column omits the section entirely
    if fields["audience_comparison"].ok:
        report.audience = [
            AudienceRow(entry.get("brand", ""), p.get("platform", ""), _num(p.get("followers"), int))
            for entry in records("audience_comparison")
            for p in nested("audience_comparison", entry, "platforms")
        ]
        report.platforms = _ordered_unique(r.platform for r in report.audience)

    for entry in records("post_channel_data"):
        for ch in nested("post_channel_data", entry, "channels"):
            report.channels.append(ChannelSlice(
                brand=entry.get("brand", ""),
                platform=ch.get("platform", ""),
                total_posts=_num(ch.get("total_posts"), int),
                avg_post_per_day=_num(ch.get("avg_post_per_day")),
            ))

    for entry in records("hashtag_analysis"):
        tags = entry.get("top_hashtags") or []
        if not isinstance(tags, list):
            degraded("hashtag_analysis", "top_hashtags is not a list")
            continue
        report.hashtags[entry.get("brand", "")] = [str(h) for h in tags]

    for entry in records("post_type_engagement"):
        report.post_types[entry.get("brand", "")] = [
            PostTypeStat(
                type=pt.get("type", ""),
                count=_num(pt.get("count"), int),
                avg_engagement=_num(pt.get("avg_engagement")),
                platforms=str(pt.get("platforms") or ""),
            )
            for pt in nested("post_type_engagement", entry, "post_types")
        ]

    for entry in records("brand_equity_data"):
        report.equity.append(EquityRow(
            brand=entry.get("brand", ""),
            total_followers=_num(entry.get("total_followers"), int),
            avg_engagement=_num(entry.get("avg_engagement")),
            content_velocity=_num(entry.get("content_velocity")),
            equity_score=_num(entry.get("equity_score")),
        ))

    timing = fields["post_timing_data"].value
    report.timing = _platform_timing(timing.get("focus_brand"))
    report.timing_days = _platform_days(timing.get("focus_brand"))
    for comp in _dict_items(timing.get("competitors"))[0]:
        report.competitor_timing[comp.get("brand_name", "")] = _platform_timing(comp)

    for analysis in records("keyword_clustering"):
        analysis["clusters"] = nested("keyword_clustering", analysis, "clusters")
        analysis["top_keywords"] = nested("keyword_clustering", analysis, "top_keywords")
        report.keyword_clusters.append(analysis)

    for voice in records("voice_analysis"):
        if not isinstance(voice.get("metrics") or {}, dict):
            degraded("voice_analysis", "metrics is not an object")
            continue
        report.voice.append(voice)

    report.share_of_voice = fields["share_of_voice"].value
    report.additional_metrics = fields["additional_metrics"].value

    report.ai = parse_ai_insights(getattr(result, "ai_insights", None))
    report.ai_keyword_insights = getattr(result, "ai_keyword_insights", None)

    if focus_brand is not None:
        report.brands = _ordered_unique([focus_brand, *(competitors or [])])
    else:
        report.brands = _ordered_unique(e.brand for e in report.equity) or _ordered_unique(
            r.brand for r in report.audience or []
        )
    return report


def shape_session_report(session) -> ReportData:
    focus = session.focus_brand.name if session.focus_brand else None
    return shape_report(session.analysis_result, focus, [c.name for c in session.competitors])
