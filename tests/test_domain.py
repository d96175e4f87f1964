"""Tests for domain models, anatomy constants, and configuration."""

from __future__ import annotations

from datetime import date

import pytest
import yaml

from ccta_dashboard.config.settings import get_config, get_typed_config
from ccta_dashboard.domain.anatomy import (
    SEGMENT_NAMES,
    SEGMENT_ORDER,
    VESSEL_SEGMENTS,
    segment_label,
    vessel_of,
)
from ccta_dashboard.domain.models import (
    LCX,
    LM_LAD,
    RCA,
    AppConfig,
    CctaReport,
    ClassifiedValue,
    Composition,
    Patient,
    Segment,
    SerialDelta,
    Study,
    Vessel,
)


# =====================================================================
# Frozen dataclass instantiation
# =====================================================================


class TestFrozenDataclasses:
    """Verify that the frozen dataclasses instantiate with sane defaults."""

    def test_patient_defaults(self):
        p = Patient()
        assert p.sex == "X"
        assert p.dominance == "Right"
        assert p.dob is None

    def test_segment_ffrct_defaults_to_not_assessed(self):
        s = Segment(seg_id=3)
        assert s.ffrct is None
        assert s.ffrct_pullback is None

    def test_segment_tpv_is_recomputed(self, plaque_segment):
        assert plaque_segment.tpv_mm3 == pytest.approx(56.0)
        assert plaque_segment.hrp_count == 2

    def test_vessel_tpv_from_composition(self):
        v = Vessel(composition=Composition(lrnc_mm3=1.0, ncp_mm3=2.0, cp_mm3=3.0))
        assert v.tpv_mm3 == pytest.approx(6.0)

    def test_vessel_reported_tpv_wins(self):
        v = Vessel(composition=Composition(cp_mm3=3.0), reported_tpv_mm3=10.0)
        assert v.tpv_mm3 == 10.0

    def test_classified_value_defaults_to_not_assessed(self):
        cv = ClassifiedValue()
        assert cv.tier == -1
        assert cv.color == "--risk-neutral-gray"

    def test_study_mutable_default_not_shared(self):
        a, b = Study(), Study()
        assert a.pcat_fai is not b.pcat_fai


# =====================================================================
# Frozen immutability
# =====================================================================


class TestFrozenImmutability:
    """Verify that frozen dataclasses reject attribute assignment."""

    def test_patient_immutable(self):
        p = Patient()
        with pytest.raises((AttributeError, TypeError)):
            p.name = "other"

    def test_segment_immutable(self, plaque_segment):
        with pytest.raises((AttributeError, TypeError)):
            plaque_segment.stenosis_pct = 10.0

    def test_report_immutable(self):
        r = CctaReport()
        with pytest.raises((AttributeError, TypeError)):
            r.prior_study = CctaReport()

    def test_serial_delta_immutable(self):
        d = SerialDelta()
        with pytest.raises((AttributeError, TypeError)):
            d.delta = 1.0


# =====================================================================
# Report accessors
# =====================================================================


class TestCctaReport:
    """Test the report convenience accessors."""

    def test_segment_map_first_occurrence_wins(self):
        first = Segment(seg_id=1, stenosis_pct=10.0)
        dup = Segment(seg_id=1, stenosis_pct=90.0)
        report = CctaReport(vessels=(
            Vessel(vessel_id=RCA, segments=(first,)),
            Vessel(vessel_id=LCX, segments=(dup,)),
        ))
        assert report.segment_map()[1].stenosis_pct == 10.0
        assert len(report.all_segments()) == 2

    def test_vessel_lookup(self, serial_report):
        assert serial_report.vessel(LM_LAD) is not None
        assert serial_report.vessel("NOPE") is None

    def test_has_prior(self, serial_report):
        assert serial_report.has_prior
        assert not serial_report.prior_study.has_prior


# =====================================================================
# Anatomy
# =====================================================================


class TestAnatomy:
    """Test the SCCT 18-segment constants."""

    def test_segment_order_covers_all_segments_once(self):
        assert sorted(SEGMENT_ORDER) == list(range(1, 19))

    def test_vessel_groups_partition_segments(self):
        ids = [i for group in VESSEL_SEGMENTS.values() for i in group]
        assert sorted(ids) == list(range(1, 19))

    def test_segment_names(self):
        assert SEGMENT_NAMES[5] == "LM"
        assert segment_label(18) == "Ramus"
        assert segment_label(99) == "99"

    def test_vessel_of(self):
        assert vessel_of(16) == RCA
        assert vessel_of(5) == LM_LAD
        assert vessel_of(18) == LCX
        assert vessel_of(0) is None


# =====================================================================
# AppConfig
# =====================================================================


class TestAppConfig:
    """Test configuration loading from YAML and environment variables."""

    def test_load_from_yaml(self, tmp_path):
        yaml_content = {
            "charts": {"stenosis": {"max": 80}},
            "palette": {"risk-red": "#ff0000"},
        }
        config_file = tmp_path / "config.yaml"
        with open(config_file, "w") as fh:
            yaml.dump(yaml_content, fh)

        cfg = AppConfig.load(default_path=str(config_file))
        assert cfg.get("charts.stenosis.max") == 80
        assert cfg.get("palette.risk-red") == "#ff0000"

    def test_load_with_overlay(self, tmp_path):
        default_file = tmp_path / "default.yaml"
        overlay_file = tmp_path / "overlay.yaml"
        with open(default_file, "w") as fh:
            yaml.dump({"a": 1, "b": {"c": 2}}, fh)
        with open(overlay_file, "w") as fh:
            yaml.dump({"b": {"c": 99, "d": 3}}, fh)

        cfg = AppConfig.load(
            default_path=str(default_file),
            overlay_path=str(overlay_file),
        )
        assert cfg.get("a") == 1
        assert cfg.get("b.c") == 99
        assert cfg.get("b.d") == 3

    def test_load_env_override(self, tmp_path, monkeypatch):
        config_file = tmp_path / "config.yaml"
        with open(config_file, "w") as fh:
            yaml.dump({"charts": {"hrp": {"max": 2}}}, fh)

        monkeypatch.setenv("CCTA_CHARTS__HRP__MAX", "3")
        cfg = AppConfig.load(default_path=str(config_file))
        assert cfg.get("charts.hrp.max") == 3

    def test_env_coercion(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CCTA_FLAGS__ENABLED", "yes")
        monkeypatch.setenv("CCTA_FLAGS__RATIO", "0.5")
        monkeypatch.setenv("CCTA_FLAGS__NAME", "abc")
        cfg = AppConfig.load(default_path=str(tmp_path / "missing.yaml"))
        assert cfg.get("flags.enabled") is True
        assert cfg.get("flags.ratio") == 0.5
        assert cfg.get("flags.name") == "abc"

    def test_load_nonexistent_file(self, tmp_path):
        cfg = AppConfig.load(
            default_path=str(tmp_path / "does_not_exist.yaml"),
            env_prefix="CCTA_TEST_UNUSED_",
        )
        assert cfg.data == {}

    def test_get_default_value(self):
        cfg = AppConfig(data={"a": 1})
        assert cfg.get("missing.key", default="fallback") == "fallback"

    def test_section_returns_dict(self):
        cfg = AppConfig(data={"palette": {"risk-red": "#c62828"}})
        section = cfg.section("palette")
        assert isinstance(section, dict)
        assert section["risk-red"] == "#c62828"

    def test_section_missing_returns_empty(self):
        cfg = AppConfig(data={})
        assert cfg.section("nonexistent") == {}


class TestSettings:
    """Test the project configuration entry point."""

    def test_default_config_has_charts_and_palette(self):
        cfg = get_config()
        assert cfg["charts"]["stenosis"]["max"] == 100
        assert cfg["palette"]["risk-dark-green"].startswith("#")

    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_env_override_applies_after_cache_clear(self, monkeypatch):
        monkeypatch.setenv("CCTA_CHARTS__STENOSIS__MAX", "80")
        get_config.cache_clear()
        assert get_config()["charts"]["stenosis"]["max"] == 80

    def test_typed_config(self):
        cfg = get_typed_config()
        assert cfg.get("segment_map.stroke_darken_pct") == 25
        assert cfg.stroke_darken_pct == 25.0
        assert cfg.pav_triangle == (12, 25.0)

    def test_chart_and_palette_accessors(self):
        cfg = get_typed_config()
        assert cfg.chart("Stenosis")["max"] == 100
        assert cfg.chart("Lesions") == {}
        assert cfg.palette_hex("--risk-red") == "#c62828"
        assert cfg.palette_hex("--unknown") is None


def test_patient_study_date_type():
    p = Patient(study_date=date(2024, 1, 1))
    assert p.study_date.year == 2024
