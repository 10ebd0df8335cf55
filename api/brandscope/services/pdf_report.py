"""
Rendered-page PDF report.

build_report_html() assembles a self-contained page that loads Chart.js and
draws every chart from inlined JSON configs. render_pdf() loads that page in
headless Chromium, waits for the charts to draw and prints it. The browser
is closed on every path out of render_pdf().
"""
import asyncio
import html
import json
import re
from datetime import datetime
from typing import Optional

import structlog
from playwright.async_api import async_playwright

from brandscope.config import get_settings
from brandscope.services.brand_colors import BrandPalette, CHART_COLORS, platform_color
from brandscope.services.format import format_number, format_rate
from brandscope.services.report_data import ReportData

logger = structlog.get_logger()

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
]

PDF_MARGIN = {"top": "15mm", "right": "15mm", "bottom": "15mm", "left": "15mm"}

TOP_HASHTAGS = 10
TOP_CLUSTER_KEYWORDS = 15
TOP_CLUSTERS = 5

# Counts canvases that have at least one non-transparent pixel
CANVAS_CHECK_JS = """
() => Array.from(document.querySelectorAll('canvas')).filter(c => {
  try {
    const data = c.getContext('2d').getImageData(0, 0, c.width, c.height).data;
    for (let i = 3; i < data.length; i += 4) { if (data[i] > 0) return true; }
  } catch (e) {}
  return false;
}).length
"""


def pdf_filename(title: str) -> str:
    return f"{re.sub(r'[^a-zA-Z0-9_-]', '_', title)}_analysis_full.pdf"


def _e(value) -> str:
    return html.escape(str(value if value is not None else ""))


# ─── Chart configs ───

def equity_radar_config(report: ReportData, palette: BrandPalette) -> dict:
    datasets = []
    for e in report.equity:
        datasets.append({
            "label": e.brand,
            "data": [
                min(100, e.total_followers / 100000 * 100),
                min(100, e.avg_engagement * 10),
                min(100, e.content_velocity * 20),
                e.equity_score,
            ],
            "backgroundColor": palette.light(e.brand),
            "borderColor": palette.color(e.brand),
            "borderWidth": 2,
        })
    return {
        "type": "radar",
        "data": {"labels": ["Reach", "Engagement", "Content Velocity", "Equity Score"], "datasets": datasets},
        "options": {"scales": {"r": {"min": 0, "max": 100}}},
    }


def equity_bar_config(report: ReportData, palette: BrandPalette) -> dict:
    return {
        "type": "bar",
        "data": {
            "labels": [e.brand for e in report.equity],
            "datasets": [{
                "label": "Brand Equity Score",
                "data": [e.equity_score for e in report.equity],
                "backgroundColor": [palette.color(e.brand) for e in report.equity],
            }],
        },
        "options": {"scales": {"y": {"beginAtZero": True, "max": 100}}},
    }


def audience_config(report: ReportData) -> dict:
    matrix = report.audience_matrix()
    brands = list(matrix)
    return {
        "type": "bar",
        "data": {
            "labels": brands,
            "datasets": [
                {
                    "label": platform.capitalize(),
                    "data": [matrix[b].get(platform, 0) for b in brands],
                    "backgroundColor": platform_color(platform),
                }
                for platform in report.platforms
            ],
        },
        "options": {"scales": {"y": {"beginAtZero": True}}},
    }


def voice_configs(report: ReportData, palette: BrandPalette) -> dict:
    brands = [v.get("brand", "") for v in report.voice]
    metrics = [v.get("metrics") or {} for v in report.voice]
    return {
        "voiceComparisonChart": {
            "type": "bar",
            "data": {
                "labels": brands,
                "datasets": [
                    {"label": "Own Voice (posts)", "backgroundColor": CHART_COLORS[1],
                     "data": [(m.get("own_voice") or {}).get("total_posts", 0) for m in metrics]},
                    {"label": "Earned Voice (mentions)", "backgroundColor": CHART_COLORS[2],
                     "data": [(m.get("earn_voice") or {}).get("total_mentions", 0) for m in metrics]},
                ],
            },
            "options": {"scales": {"y": {"beginAtZero": True}}},
        },
        "voiceRatioChart": {
            "type": "bar",
            "data": {
                "labels": brands,
                "datasets": [{
                    "label": "Voice Ratio (earned / owned)",
                    "data": [m.get("voice_ratio", 0) for m in metrics],
                    "backgroundColor": [palette.color(b) for b in brands],
                }],
            },
            "options": {"indexAxis": "y"},
        },
    }


def channel_config(report: ReportData) -> dict:
    slices = [c for c in report.channels if c.brand == report.focus_brand]
    return {
        "type": "pie",
        "data": {
            "labels": [c.platform.capitalize() for c in slices],
            "datasets": [{
                "data": [c.total_posts or 1 for c in slices],
                "backgroundColor": [platform_color(c.platform) for c in slices],
            }],
        },
    }


def post_type_config(stats: list, color: str) -> dict:
    return {
        "type": "bar",
        "data": {
            "labels": [s.type for s in stats],
            "datasets": [
                {"label": "Posts", "data": [s.count for s in stats], "backgroundColor": color, "yAxisID": "y"},
                {"label": "Avg Engagement", "data": [s.avg_engagement for s in stats],
                 "backgroundColor": CHART_COLORS[3], "yAxisID": "y1"},
            ],
        },
        "options": {
            "scales": {
                "y": {"beginAtZero": True, "position": "left"},
                "y1": {"beginAtZero": True, "position": "right", "grid": {"drawOnChartArea": False}},
            },
        },
    }


def timing_config(platform: str, hours: list[int]) -> dict:
    return {
        "type": "line",
        "data": {
            "labels": [f"{h:02d}:00" for h in range(24)],
            "datasets": [{
                "label": f"{platform.capitalize()} posts",
                "data": hours,
                "borderColor": platform_color(platform),
                "backgroundColor": platform_color(platform) + "33",
                "fill": True,
                "tension": 0.3,
            }],
        },
        "options": {"scales": {"y": {"beginAtZero": True}}},
    }


def build_chart_configs(report: ReportData, palette: BrandPalette) -> dict[str, dict]:
    """Canvas id -> Chart.js config. Sections without data get no chart."""
    configs: dict[str, dict] = {}
    if report.equity:
        configs["brandEquityRadarChart"] = equity_radar_config(report, palette)
        configs["brandEquityBarChart"] = equity_bar_config(report, palette)
    if report.audience:
        configs["audienceChart"] = audience_config(report)
    if report.voice:
        configs.update(voice_configs(report, palette))
    if any(c.brand == report.focus_brand for c in report.channels):
        configs["postChannelChart"] = channel_config(report)
    for idx, brand in enumerate(report.brands):
        stats = report.post_types.get(brand)
        if stats:
            configs[f"postTypeChart{idx}"] = post_type_config(stats, palette.color(brand))
    for idx, (platform, hours) in enumerate(report.timing.items()):
        configs[f"timingChart{idx}"] = timing_config(platform, hours)
    return configs


# ─── HTML ───

STYLE = """
* { box-sizing: border-box; }
body { font-family: -apple-system, 'Segoe UI', Roboto, Helvetica, Arial, sans-serif; color: #1F2937; margin: 0; }
.page { padding: 24px 32px; page-break-after: always; }
.cover { text-align: center; padding-top: 120px; }
.cover h1 { font-size: 36px; margin-bottom: 8px; }
.muted { color: #6B7280; }
.cards { display: grid; grid-template-columns: repeat(4, 1fr); gap: 12px; margin: 24px 0; }
.card { border: 1px solid #E5E7EB; border-radius: 8px; padding: 16px; background: #F9FAFB; }
.card .value { font-size: 24px; font-weight: 700; }
.card .label { font-size: 12px; color: #6B7280; }
h2 { border-bottom: 2px solid #8B5CF6; padding-bottom: 6px; }
table { width: 100%; border-collapse: collapse; margin: 12px 0; font-size: 13px; }
th, td { border: 1px solid #E5E7EB; padding: 6px 8px; text-align: left; }
th { background: #F3F4F6; }
.chart { position: relative; height: 360px; margin: 16px 0; }
.chart.small { height: 280px; }
.hashtags { display: flex; flex-wrap: wrap; gap: 6px; }
.tag { background: #EDE9FE; color: #5B21B6; border-radius: 12px; padding: 3px 10px; font-size: 12px; }
.cluster { border-left: 4px solid #8B5CF6; padding: 8px 12px; margin: 8px 0; background: #FAF5FF; }
.insight { white-space: pre-wrap; background: #F9FAFB; border-radius: 8px; padding: 12px; }
.footer { text-align: center; font-size: 11px; color: #9CA3AF; padding: 16px; }
"""

SCRIPT = """
Chart.defaults.animation = false;
Chart.defaults.responsive = true;
Chart.defaults.maintainAspectRatio = false;
const configs = __CONFIGS__;
for (const [id, config] of Object.entries(configs)) {
  const el = document.getElementById(id);
  if (el) { new Chart(el.getContext('2d'), config); }
}
"""


def _card(value: str, label: str) -> str:
    return f'<div class="card"><div class="value">{_e(value)}</div><div class="label">{_e(label)}</div></div>'


def _canvas(canvas_id: str, configs: dict, small: bool = False) -> str:
    if canvas_id not in configs:
        return ""
    cls = "chart small" if small else "chart"
    return f'<div class="{cls}"><canvas id="{canvas_id}"></canvas></div>'


def _cover(session, report: ReportData) -> str:
    focus = report.equity_for(report.focus_brand) if report.focus_brand else None
    competitors = ", ".join(c.name for c in session.competitors) or "None"
    cards = "".join([
        _card(format_number(focus.total_followers if focus else 0), "Total Followers"),
        _card(format_rate(focus.avg_engagement if focus else 0), "Avg Engagement"),
        _card(f"{focus.equity_score:.1f}" if focus else "N/A", "Brand Equity Score"),
        _card(str(len(report.brands)), "Brands Analyzed"),
    ])
    return f"""
<section class="page cover">
  <h1>{_e(session.title)}</h1>
  <p class="muted">Brand Analysis Report</p>
  <p><strong>Focus Brand:</strong> {_e(report.focus_brand or "N/A")}<br>
     <strong>Competitors:</strong> {_e(competitors)}</p>
  <div class="cards">{cards}</div>
  <p class="muted">Generated {datetime.utcnow().strftime("%B %d, %Y %H:%M UTC")}</p>
</section>"""


def _executive_summary(report: ReportData) -> str:
    if not report.equity:
        return ""
    total_followers = sum(e.total_followers for e in report.equity)
    avg_equity = sum(e.equity_score for e in report.equity) / len(report.equity)
    avg_engagement = sum(e.avg_engagement for e in report.equity) / len(report.equity)
    leader = max(report.equity, key=lambda e: e.equity_score)
    ranked = [e.brand for e in sorted(report.equity, key=lambda e: e.equity_score, reverse=True)]
    position = ranked.index(report.focus_brand) + 1 if report.focus_brand in ranked else None
    cards = "".join([
        _card(format_number(total_followers), "Combined Audience"),
        _card(f"{avg_equity:.1f}", "Avg Equity Score"),
        _card(format_rate(avg_engagement), "Avg Engagement"),
        _card(f"#{position} of {len(ranked)}" if position else "N/A", "Focus Brand Position"),
    ])
    return f"""
<section class="page">
  <h2>Executive Summary</h2>
  <div class="cards">{cards}</div>
  <p>Market leader by brand equity: <strong>{_e(leader.brand)}</strong> ({leader.equity_score:.1f}).</p>
</section>"""


def _equity_section(report: ReportData, configs: dict) -> str:
    if not report.equity:
        return ""
    rows = "".join(
        f"<tr><td>{_e(e.brand)}</td><td>{format_number(e.total_followers)}</td>"
        f"<td>{format_rate(e.avg_engagement)}</td><td>{e.content_velocity:.2f}</td>"
        f"<td>{e.equity_score:.1f}</td></tr>"
        for e in report.equity
    )
    return f"""
<section class="page">
  <h2>Brand Equity</h2>
  {_canvas("brandEquityRadarChart", configs)}
  <table><tr><th>Brand</th><th>Followers</th><th>Engagement</th><th>Posts / Day</th><th>Equity Score</th></tr>{rows}</table>
  {_canvas("brandEquityBarChart", configs, small=True)}
</section>"""


def _audience_section(report: ReportData, configs: dict) -> str:
    if not report.audience:
        return ""
    matrix = report.audience_matrix()
    head = "".join(f"<th>{_e(p.capitalize())}</th>" for p in report.platforms)
    rows = "".join(
        f"<tr><td>{_e(brand)}</td>"
        + "".join(f"<td>{format_number(counts.get(p, 0))}</td>" for p in report.platforms)
        + f"<td>{format_number(sum(counts.values()))}</td></tr>"
        for brand, counts in matrix.items()
    )
    return f"""
<section class="page">
  <h2>Audience by Platform</h2>
  {_canvas("audienceChart", configs)}
  <table><tr><th>Brand</th>{head}<th>Total</th></tr>{rows}</table>
</section>"""


def _voice_section(report: ReportData, configs: dict) -> str:
    if not report.voice:
        return ""
    rows = ""
    for v in report.voice:
        m = v.get("metrics") or {}
        rows += (
            f"<tr><td>{_e(v.get('brand'))}</td>"
            f"<td>{format_number((m.get('own_voice') or {}).get('total_posts', 0))}</td>"
            f"<td>{format_number((m.get('earn_voice') or {}).get('total_mentions', 0))}</td>"
            f"<td>{float(m.get('voice_ratio') or 0):.2f}</td></tr>"
        )
    return f"""
<section class="page">
  <h2>Own vs Earned Voice</h2>
  {_canvas("voiceComparisonChart", configs)}
  {_canvas("voiceRatioChart", configs, small=True)}
  <table><tr><th>Brand</th><th>Own Posts</th><th>Earned Mentions</th><th>Voice Ratio</th></tr>{rows}</table>
</section>"""


def _content_section(report: ReportData, configs: dict) -> str:
    parts = ['<section class="page"><h2>Content Strategy</h2>']
    if "postChannelChart" in configs:
        parts.append(f"<h3>Post Channels: {_e(report.focus_brand)}</h3>")
        parts.append(_canvas("postChannelChart", configs, small=True))
    for brand, tags in report.hashtags.items():
        if tags:
            boxes = "".join(f'<span class="tag">{_e(t)}</span>' for t in tags[:TOP_HASHTAGS])
            parts.append(f'<h3>Top Hashtags: {_e(brand)}</h3><div class="hashtags">{boxes}</div>')
    for idx, brand in enumerate(report.brands):
        if f"postTypeChart{idx}" in configs:
            parts.append(f"<h3>Post Types: {_e(brand)}</h3>")
            parts.append(_canvas(f"postTypeChart{idx}", configs, small=True))
    parts.append("</section>")
    return "".join(parts)


def _timing_section(report: ReportData, configs: dict) -> str:
    if not report.timing:
        return ""
    parts = [f'<section class="page"><h2>Posting Times: {_e(report.focus_brand)}</h2>']
    for idx, platform in enumerate(report.timing):
        parts.append(f"<h3>{_e(platform.capitalize())}</h3>")
        parts.append(_canvas(f"timingChart{idx}", configs, small=True))
    parts.append("</section>")
    return "".join(parts)


def _keyword_section(report: ReportData) -> str:
    if not report.keyword_clusters:
        return ""
    parts = ['<section class="page"><h2>Keyword Clusters</h2>']
    for analysis in report.keyword_clusters:
        parts.append(
            f"<h3>{_e(analysis.get('brand'))} on {_e(str(analysis.get('platform', '')).capitalize())}"
            f" ({analysis.get('total_posts', 0)} posts)</h3>"
        )
        keywords = [k.get("keyword", "") for k in analysis.get("top_keywords", [])]
        if keywords:
            boxes = "".join(f'<span class="tag">{_e(k)}</span>' for k in keywords[:TOP_CLUSTER_KEYWORDS])
            parts.append(f'<div class="hashtags">{boxes}</div>')
        for cluster in analysis.get("clusters", [])[:TOP_CLUSTERS]:
            related = cluster.get("keywords") if isinstance(cluster.get("keywords"), list) else []
            parts.append(
                f'<div class="cluster"><strong>{_e(cluster.get("top_keyword"))}</strong>'
                f' &middot; {_e(cluster.get("theme", "General Discussion"))}<br>'
                f'<span class="muted">{cluster.get("post_count", 0)} posts, avg engagement '
                f'{format_number(round(float(cluster.get("average_engagement") or 0)))}'
                f' &middot; {_e(", ".join(str(k) for k in related))}</span></div>'
            )
    if report.ai_keyword_insights:
        parts.append(f'<h3>Keyword Insights</h3><div class="insight">{_e(report.ai_keyword_insights)}</div>')
    parts.append("</section>")
    return "".join(parts)


def _insights_section(report: ReportData) -> str:
    ai = report.ai
    if ai.empty:
        return ""
    if ai.text:
        body = f'<div class="insight">{_e(ai.text)}</div>'
    else:
        recs = "".join(f"<li>{_e(r)}</li>" for r in ai.recommendations)
        body = (f'<div class="insight">{_e(ai.summary or "")}</div>'
                + (f"<h3>Recommendations</h3><ul>{recs}</ul>" if recs else ""))
    return f'<section class="page"><h2>Strategic Insights</h2>{body}</section>'


def build_report_html(session, report: ReportData, palette: BrandPalette,
                      chart_js_url: Optional[str] = None) -> str:
    configs = build_chart_configs(report, palette)
    payload = json.dumps(configs).replace("</", "<\\/")
    chart_js_url = chart_js_url or get_settings().CHART_JS_URL
    body = "".join([
        _cover(session, report),
        _executive_summary(report),
        _equity_section(report, configs),
        _audience_section(report, configs),
        _voice_section(report, configs),
        _content_section(report, configs),
        _timing_section(report, configs),
        _keyword_section(report),
        _insights_section(report),
    ])
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{_e(session.title)}</title>
<script src="{_e(chart_js_url)}"></script>
<style>{STYLE}</style>
</head>
<body>
{body}
<div class="footer">Brandscope &middot; {_e(session.title)} &middot; {_e(report.additional_metrics.get("data_range", ""))}</div>
<script>{SCRIPT.replace("__CONFIGS__", payload)}</script>
</body>
</html>"""


# ─── Browser ───

async def render_pdf(page_html: str, playwright_factory=async_playwright) -> bytes:
    """Print `page_html` to PDF in headless Chromium."""
    settings = get_settings()
    async with playwright_factory() as p:
        browser = await p.chromium.launch(headless=True, args=BROWSER_ARGS)
        try:
            page = await browser.new_page(
                viewport={"width": settings.PDF_VIEWPORT_WIDTH, "height": settings.PDF_VIEWPORT_HEIGHT},
            )
            await page.set_content(page_html, wait_until="networkidle", timeout=settings.PDF_CONTENT_TIMEOUT_MS)
            await page.wait_for_function(
                'typeof window.Chart !== "undefined"', timeout=settings.PDF_LIBRARY_TIMEOUT_MS,
            )
            if "<canvas" in page_html:
                await page.wait_for_selector("canvas", timeout=settings.PDF_CANVAS_TIMEOUT_MS)
            canvases = await page.evaluate("document.querySelectorAll('canvas').length")
            await asyncio.sleep(settings.PDF_SETTLE_SECONDS)

            try:
                drawn = await page.evaluate(CANVAS_CHECK_JS)
                logger.info("pdf: canvas check", canvases=canvases, drawn=drawn)
            except Exception as e:
                logger.warning("pdf: canvas check failed", error=str(e))

            return await page.pdf(
                format=settings.PDF_PAGE_FORMAT,
                print_background=True,
                margin=PDF_MARGIN,
            )
        finally:
            await browser.close()
