"""Tests for the chart presentation adapters."""

from __future__ import annotations

import pytest

from conftest import make_report

from ccta_dashboard.classification.metrics import CP_VOLUME, FFRCT, HRP, NCP_VOLUME, STENOSIS
from ccta_dashboard.config.settings import get_config
from ccta_dashboard.domain.models import Segment
from ccta_dashboard.reporting.charts import (
    COMPOSITION,
    BarInfo,
    bar_height_pct,
    bar_info,
    chart_bars,
    chart_config,
    darken_color,
    palette_hex,
    pav_triangle_active_bars,
    segment_map_colors,
    serial_bar_pairs,
)
from ccta_dashboard.serial.comparison import FAVORABLE, NEUTRAL, UNFAVORABLE


# =====================================================================
# Chart configuration
# =====================================================================


class TestChartConfig:
    """Axis settings and config overrides."""

    def test_defaults(self):
        cfg = chart_config(STENOSIS)
        assert cfg.max == 100
        assert cfg.title == "Stenosis (%)"
        assert [t[0] for t in cfg.thresholds] == [25, 50, 70]

    def test_pav_maps_to_burden(self):
        assert chart_config("PAV").title == chart_config("Burden").title

    def test_unknown_metric(self):
        assert chart_config("Lesions") is None
        assert chart_config(None) is None

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("CCTA_CHARTS__STENOSIS__MAX", "80")
        get_config.cache_clear()
        assert chart_config(STENOSIS).max == 80.0


# =====================================================================
# Bars
# =====================================================================


class TestBars:
    """Bar values, colours and labels."""

    def test_absent_segment(self):
        assert bar_info(None, STENOSIS) == BarInfo(0.0, "--risk-neutral-gray", "0")

    def test_stenosis_bar(self, plaque_segment):
        bar = bar_info(plaque_segment, STENOSIS)
        assert bar.value == 55.0
        assert bar.color == "--risk-orange"
        assert bar.label == "55"

    def test_burden_bar(self, plaque_segment):
        bar = bar_info(plaque_segment, "Burden")
        assert bar.label == "12.0"
        assert bar.color == "--risk-orange"

    def test_hrp_bar_lists_features(self, plaque_segment):
        bar = bar_info(plaque_segment, HRP)
        assert bar.value == 2.0
        assert bar.color == "--risk-red"
        assert bar.label == "LAP, PR"
        assert bar_info(Segment(seg_id=1), HRP).label == "0"

    def test_composition_bar(self, plaque_segment):
        bar = bar_info(plaque_segment, COMPOSITION)
        assert (bar.value, bar.color, bar.label) == (1.0, "--ncp-color", "NCP")
        empty = bar_info(Segment(seg_id=1), COMPOSITION)
        assert (empty.value, empty.label) == (0.0, "")

    def test_unknown_metric_bar(self, plaque_segment):
        assert bar_info(plaque_segment, "Lesions").value == 0.0

    @pytest.mark.parametrize(
        "value, metric, expected",
        [(50, STENOSIS, 50.0), (150, STENOSIS, 100.0), (60, NCP_VOLUME, 50.0),
         (3, HRP, 100.0), (1, HRP, 50.0)],
    )
    def test_bar_height(self, value, metric, expected):
        assert bar_height_pct(value, metric) == pytest.approx(expected)

    def test_bar_height_unknown_metric(self):
        assert bar_height_pct(10, "Lesions") is None

    def test_chart_bars_cover_all_segments(self, serial_report):
        bars = chart_bars(serial_report, STENOSIS)
        assert len(bars) == 18
        assert bars[0][:2] == (5, "LM")


# =====================================================================
# Segment map
# =====================================================================


class TestSegmentMap:
    """Fill/stroke pairs for the anatomy diagram."""

    @pytest.mark.parametrize(
        "color, percent, expected",
        [
            ("#ffffff", 25, "#bfbfbf"),
            ("#fff", 25, "#bfbfbf"),
            ("#ef6c00", 25, "#b35100"),
            ("#000000", 50, "#000000"),
            ("#123456", 0, "#123456"),
        ],
    )
    def test_darken_color(self, color, percent, expected):
        assert darken_color(color, percent) == expected

    @pytest.mark.parametrize("color", ["", "red", "var(--risk-red)", "#zzzzzz"])
    def test_darken_non_hex_unchanged(self, color):
        assert darken_color(color, 25) == color

    def test_palette_lookup(self):
        assert palette_hex("--risk-orange") == get_config()["palette"]["risk-orange"]
        assert palette_hex("--unknown") == "--unknown"

    def test_stenosis_mode(self, serial_report):
        fill, stroke = segment_map_colors(serial_report, STENOSIS)[6]
        assert fill == palette_hex("--risk-orange")
        assert stroke == darken_color(fill, 25)

    def test_ffrct_mode_not_assessed_is_gray(self, serial_report):
        colors = segment_map_colors(serial_report, FFRCT)
        assert colors[7][0] == palette_hex("--risk-neutral-gray")
        assert colors[6][0] == palette_hex("--risk-orange")

    def test_composition_modes(self, serial_report):
        assert segment_map_colors(serial_report, COMPOSITION)[1][0] == palette_hex("--cp-color")
        by_ncp = segment_map_colors(serial_report, COMPOSITION, NCP_VOLUME)
        assert by_ncp[6][0] == palette_hex("--risk-yellow")

    def test_other_modes_are_dark_green(self, serial_report):
        colors = segment_map_colors(serial_report, "Lesions")
        assert {fill for fill, _ in colors.values()} == {palette_hex("--risk-dark-green")}


# =====================================================================
# PAV triangle
# =====================================================================


@pytest.mark.parametrize(
    "pav, expected",
    [(0, -1), (-1, -1), (1, 0), (12.5, 5), (25, 11), (60, 11)],
)
def test_pav_triangle_active_bars(pav, expected):
    assert pav_triangle_active_bars(pav) == expected


# =====================================================================
# Serial bar chart
# =====================================================================


class TestSerialBars:
    """Prior/current bar pairs."""

    def test_whole_heart(self, serial_report):
        pairs = {p.seg_id: p for p in serial_bar_pairs(serial_report, None, STENOSIS)}
        assert len(pairs) == 18
        assert pairs[6].change_label == "(+20)"
        assert pairs[6].favorability == UNFAVORABLE
        assert pairs[6].prior_height_pct == pytest.approx(40.0)
        assert pairs[6].current_height_pct == pytest.approx(60.0)
        assert pairs[1].favorability == NEUTRAL
        assert pairs[1].change_label == ""

    def test_vessel_filter(self, serial_report):
        pairs = serial_bar_pairs(serial_report, None, STENOSIS, "RCA")
        assert [p.seg_id for p in pairs] == [1, 2, 3, 4, 16]

    def test_cp_increase_is_favorable(self, serial_report):
        pairs = {p.seg_id: p for p in serial_bar_pairs(serial_report, None, CP_VOLUME)}
        assert pairs[1].favorability == FAVORABLE
        assert pairs[1].change_label == "(+5.0)"

    def test_hrp_has_no_change_label(self, serial_report):
        pairs = {p.seg_id: p for p in serial_bar_pairs(serial_report, None, HRP)}
        assert pairs[6].change_label == ""
        assert pairs[6].favorability == UNFAVORABLE

    def test_empty_results(self, serial_report):
        assert serial_bar_pairs(serial_report, None, STENOSIS, "Aorta") == []
        assert serial_bar_pairs(serial_report, None, COMPOSITION) == []
        assert serial_bar_pairs(make_report([Segment(seg_id=1)]), None, STENOSIS) == []
