"""
Tests for dashboard chart builders.

Tests:
- Radar scaling and market position
- Heatmap intensity levels
- Pie, sankey and word cloud shaping
- Venn layouts for small and large brand sets
"""
import math
from types import SimpleNamespace

import pytest

from brandscope.services import charts
from brandscope.services.brand_colors import BrandPalette, BRAND_PALETTE
from brandscope.services.format import sentiment_breakdown
from brandscope.services.report_data import (
    ReportData, EquityRow, AudienceRow, ChannelSlice, shape_report,
)

from conftest import sample_result_columns


def _equity_report() -> ReportData:
    return ReportData(
        brands=["Kopi Kita", "Brew Co"],
        focus_brand="Kopi Kita",
        equity=[
            EquityRow("Kopi Kita", 100_000, 4.0, 2.0, 40.0),
            EquityRow("Brew Co", 50_000, 8.0, 1.0, 60.0),
        ],
        voice=[
            {"brand": "Kopi Kita", "metrics": {"voice_ratio": 1.5}},
            {"brand": "Brew Co", "metrics": {"voice_ratio": 3.0}},
        ],
    )


def test_competitive_radar_scales_to_best_brand():
    rows = {r["brand"]: r for r in charts.competitive_radar(_equity_report())}
    assert rows["Kopi Kita"]["reach"] == 100
    assert rows["Brew Co"]["reach"] == 50
    assert rows["Brew Co"]["engagement"] == 100
    assert rows["Kopi Kita"]["engagement"] == 50
    assert rows["Kopi Kita"]["earned_media"] == 50
    assert charts.competitive_radar(ReportData()) == []


def test_market_position():
    pos = charts.market_position(_equity_report())
    assert pos["position"] == 2
    assert pos["out_of"] == 2
    assert pos["focus_voice_ratio"] == 1.5
    assert pos["avg_competitor_voice_ratio"] == 3.0


def test_reach_engagement_uses_palette():
    palette = BrandPalette("Kopi Kita", ["Kopi Kita", "Brew Co"])
    points = charts.reach_engagement_scatter(_equity_report(), palette)
    assert points[0]["is_focus"] is True
    assert points[0]["color"] == BRAND_PALETTE[0]
    assert points[1]["color"] == BRAND_PALETTE[1]


@pytest.mark.parametrize("value, top, level", [
    (0, 10, 0),
    (2, 10, 1),
    (3, 10, 2),
    (6, 10, 3),
    (10, 10, 4),
    (5, 0, 0),
])
def test_intensity_level(value, top, level):
    assert charts.intensity_level(value, top) == level


def test_hourly_and_daily_heatmaps():
    hours = [0] * 24
    hours[19] = 8
    hours[9] = 1
    cells = charts.hourly_heatmap(hours)
    assert len(cells) == 24
    assert cells[19] == {"hour": 19, "label": "19:00", "value": 8, "level": 4}
    assert cells[9]["level"] == 1

    days = charts.daily_heatmap({"Sat": 9, "Mon": 4})
    assert [d["day"] for d in days] == charts.DAYS
    assert days[0]["value"] == 0 and days[6]["level"] == 4


def test_channel_pie_gives_empty_platforms_a_slice():
    report = ReportData(channels=[
        ChannelSlice("Kopi Kita", "instagram", 30, 1.0),
        ChannelSlice("Kopi Kita", "tiktok", 0, 0.0),
        ChannelSlice("Brew Co", "instagram", 20, 0.6),
    ])
    pie = charts.channel_pie(report, "Kopi Kita")
    assert [s["value"] for s in pie] == [30, 1]
    assert pie[0]["color"] == "#E4405F"


def test_sentiment_pie_skips_empty_buckets():
    pie = charts.sentiment_pie(sentiment_breakdown(3, 0, 1))
    assert [s["name"] for s in pie] == ["Positive", "Negative"]
    assert pie[0]["percentage"] == 75.0


def test_audience_sankey_links_by_index():
    report = ReportData(audience=[
        AudienceRow("Kopi Kita", "instagram", 100),
        AudienceRow("Brew Co", "instagram", 50),
        AudienceRow("Brew Co", "tiktok", 0),
    ])
    sankey = charts.audience_sankey(report)
    names = [n["name"] for n in sankey["nodes"]]
    assert names == ["Kopi Kita", "Brew Co", "instagram"]
    assert sankey["links"][1] == {"source": 1, "target": 2, "value": 50}


def test_hashtag_network_shares_tag_nodes():
    report = ReportData(hashtags={"Kopi Kita": ["#coffee", "#kopi"], "Brew Co": ["coffee"]})
    network = charts.hashtag_network(report, BrandPalette("Kopi Kita"))
    ids = [n["id"] for n in network["nodes"]]
    assert ids.count("#coffee") == 1
    shared = next(n for n in network["nodes"] if n["id"] == "#coffee")
    assert shared["size"] == 12
    assert len(network["links"]) == 3


def test_word_cloud_filters_and_strips_hash():
    words = charts.word_cloud([
        {"text": "#kopi", "value": 30},
        {"text": "  ", "value": 10},
        {"text": "latte", "value": 0},
        {"text": "brew", "value": -2},
    ])
    assert words == [{"text": "kopi", "value": 30}]


def test_hashtag_words_rank_weighting():
    report = ReportData(hashtags={"Kopi Kita": ["#kopi", "#coffee", "#pagi"]})
    assert charts.hashtag_words(report) == [
        {"text": "kopi", "value": 30},
        {"text": "coffee", "value": 20},
        {"text": "pagi", "value": 10},
    ]


def test_venn_layout_fixed_positions():
    layout = charts.venn_layout(["A", "B"])
    assert layout["A"]["x"] == 200 and layout["B"]["x"] == 300
    assert layout["A"]["radius"] == 100


def test_venn_layout_circle_for_many_brands():
    layout = charts.venn_layout(["A", "B", "C", "D", "E"])
    assert math.isclose(layout["A"]["x"], 250)
    assert math.isclose(layout["A"]["y"], 80)
    assert all(p["radius"] == 70 for p in layout.values())


def test_share_of_voice_venn():
    assert charts.share_of_voice_venn(None) is None
    sov = charts.share_of_voice_venn({
        "total_universe_conversations": 500,
        "brand_shares": [
            {"brand_name": "Kopi Kita", "share_percentage": 20},
            {"brand_name": "Brew Co", "share_percentage": 35},
        ],
    })
    assert sov["total_universe"] == 500
    assert [s["brand_name"] for s in sov["ranked"]] == ["Brew Co", "Kopi Kita"]
    assert set(sov["positions"]) == {"Kopi Kita", "Brew Co"}


def test_dashboard_charts_from_stored_result():
    report = shape_report(SimpleNamespace(**sample_result_columns()), "Kopi Kita", ["Brew Co"])
    palette = BrandPalette(report.focus_brand, report.brands)
    data = charts.dashboard_charts(report, palette, sentiment_breakdown(5, 3, 2))

    assert data["colors"] == {"Kopi Kita": BRAND_PALETTE[0], "Brew Co": BRAND_PALETTE[1]}
    assert set(data["channel_pies"]) == {"Kopi Kita", "Brew Co"}
    assert len(data["activity_heatmaps"]["instagram"]) == 24
    assert len(data["competitor_activity_heatmaps"]["Brew Co"]["instagram"]) == 24
    assert len(data["sentiment_pie"]) == 3
    assert data["share_of_voice"] is None
    assert data["word_cloud"][0] == {"text": "kopi", "value": 30}


def test_share_of_voice_venn_ignores_malformed_shares():
    sov = charts.share_of_voice_venn({"total_universe_conversations": 10, "brand_shares": "n/a"})
    assert sov["ranked"] == []
    sov = charts.share_of_voice_venn({"brand_shares": ["Kopi Kita", {"brand_name": "Brew Co", "share_percentage": 5}]})
    assert [s["brand_name"] for s in sov["ranked"]] == ["Brew Co"]
