"""Tests for unit parsing, conversion and display normalization."""

import pytest

from pipeline.units import (
    convert,
    extract_capacity_kg,
    extract_power_kw,
    extract_speed_m_min,
    normalize_capacity,
    normalize_power,
    normalize_speed,
    parse_quantity,
)


class TestParseQuantity:
    """Tests for magnitude/unit extraction."""

    def test_tolerates_missing_space_and_case(self):
        q = parse_quantity("500KG", "capacity")
        assert q.value == 500.0
        assert q.unit == "kg"
        assert q.upper is None

    def test_range_keeps_both_ends(self):
        q = parse_quantity("0.5-8 m/min", "speed")
        assert q.value == 0.5
        assert q.upper == 8.0
        assert q.unit == "m/min"

    def test_unit_aliases(self):
        assert parse_quantity("2 tonnes", "capacity").unit == "t"
        assert parse_quantity("1000 pounds", "capacity").unit == "lbs"
        assert parse_quantity("20 fpm", "speed").unit == "ft/min"
        assert parse_quantity("3 HP", "power").unit == "hp"

    def test_thousands_separator_and_decimal_comma(self):
        assert parse_quantity("1,000 kg", "capacity").value == 1000.0
        assert parse_quantity("2,5 t", "capacity").value == 2.5

    def test_no_match_returns_none(self):
        assert parse_quantity("heavy duty", "capacity") is None
        assert parse_quantity("500 kg", "speed") is None
        assert parse_quantity(None, "capacity") is None
        assert parse_quantity(["500 kg"], "capacity") is None

    def test_unknown_kind_returns_none(self):
        assert parse_quantity("500 kg", "volume") is None


class TestConvert:
    """Tests for table-driven unit conversion."""

    def test_known_pairs(self):
        assert convert(1, "t", "kg") == 1000.0
        assert convert(1, "m/s", "m/min") == 60.0
        assert convert(2, "kg", "kg") == 2

    def test_unknown_pair_raises(self):
        with pytest.raises(ValueError):
            convert(1, "kg", "m/min")


class TestNormalizeCapacity:
    """Tests for capacity display strings."""

    def test_kg(self):
        assert normalize_capacity("500kg") == "500 kg (1102 lbs)"

    def test_lbs(self):
        assert normalize_capacity("1000 lbs") == "454 kg (1000 lbs)"

    def test_tons(self):
        assert normalize_capacity("1 ton") == "1000 kg (2205 lbs)"
        assert normalize_capacity("0.5t") == "500 kg (1102 lbs)"

    def test_display_string_is_unchanged(self):
        assert normalize_capacity("500 kg (1102 lbs)") == "500 kg (1102 lbs)"

    def test_absent_and_unrecognized(self):
        assert normalize_capacity(None) == ""
        assert normalize_capacity("   ") == ""
        assert normalize_capacity("  see datasheet ") == "see datasheet"


class TestNormalizeSpeed:
    """Tests for lifting speed display strings."""

    def test_m_min(self):
        assert normalize_speed("8 m/min") == "8 m/min (26 ft/min)"

    def test_range(self):
        assert normalize_speed("0.5-8 m/min") == "0.5-8 m/min (2-26 ft/min)"

    def test_ft_min(self):
        assert normalize_speed("20 fpm") == "6.1 m/min (20 ft/min)"

    def test_m_s(self):
        assert normalize_speed("0.1 m/s") == "6 m/min (20 ft/min)"

    def test_idempotent(self):
        once = normalize_speed("0.5-8 m/min")
        assert normalize_speed(once) == once


class TestNormalizePower:
    """Tests for motor power display strings."""

    def test_kw(self):
        assert normalize_power("1.5 kW") == "1.5 kW (2.0 HP)"

    def test_hp(self):
        assert normalize_power("2 HP") == "1.49 kW (2 HP)"

    def test_watts(self):
        assert normalize_power("1500 W") == "1.5 kW (2.0 HP)"


class TestExtraction:
    """Tests for numeric extraction in canonical units."""

    def test_capacity(self):
        assert extract_capacity_kg("500 kg") == 500.0
        assert extract_capacity_kg("1000 lbs") == 454.0
        assert extract_capacity_kg("2 tonnes") == 2000.0
        assert extract_capacity_kg("500 kg (1102 lbs)") == 500.0

    def test_speed(self):
        assert extract_speed_m_min("10 ft/min") == 3.0
        assert extract_speed_m_min("0.5-8 m/min") == 0.5
        assert extract_speed_m_min("0.1 m/s") == pytest.approx(6.0)

    def test_power(self):
        assert extract_power_kw("2 HP") == 1.491
        assert extract_power_kw("750 W") == 0.75

    def test_unparseable_is_none(self):
        assert extract_capacity_kg("n/a") is None
        assert extract_speed_m_min(None) is None
        assert extract_power_kw({"kw": 1}) is None
