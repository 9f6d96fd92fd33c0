"""Tests for completeness scoring and quality tiers."""

import pytest

from pipeline.completeness import (
    calculate_completeness,
    field_presence,
    has_complete_specs,
    has_valid_value,
    quality_tier,
)
from pipeline.models import CanonicalRecord


FULL_RECORD = {
    "loadCapacity": "500 kg (1102 lbs)",
    "liftingSpeed": "8 m/min (26 ft/min)",
    "motorPower": "1 kW (1.3 HP)",
    "classification": ["d8"],
    "dutyCycle": "40%",
    "voltageOptions": ["400V"],
    "weight": "32 kg",
    "protectionClass": "IP55",
    "series": "Lodestar",
}


class TestHasValidValue:
    """Tests for the populated-field rule."""

    @pytest.mark.parametrize("value", [None, "", "   ", "-", " - ", [], (), set()])
    def test_missing(self, value):
        assert has_valid_value(value) is False

    @pytest.mark.parametrize("value", [0, 0.0, False, "x", ["a"], {"k": "v"}])
    def test_valid(self, value):
        assert has_valid_value(value) is True


class TestCalculateCompleteness:
    """Tests for the weighted 0-100 score."""

    def test_all_fields_is_100(self):
        assert calculate_completeness(FULL_RECORD) == 100

    def test_only_critical_fields(self):
        critical = {k: FULL_RECORD[k] for k in
                    ("loadCapacity", "liftingSpeed", "motorPower", "classification", "dutyCycle")}
        assert calculate_completeness(critical) == 70

    def test_three_specs(self):
        specs = {k: FULL_RECORD[k] for k in ("loadCapacity", "liftingSpeed", "motorPower")}
        assert calculate_completeness(specs) == 42

    def test_single_secondary_rounds_half_up(self):
        assert calculate_completeness({"weight": "32 kg"}) == 8

    def test_empty_record(self):
        assert calculate_completeness({}) == 0

    def test_placeholders_do_not_count(self):
        assert calculate_completeness({"loadCapacity": "-", "classification": []}) == 0

    def test_canonical_record(self):
        record = CanonicalRecord(
            id="x", manufacturer="CM", model="Lodestar",
            load_capacity="500 kg (1102 lbs)", series="Lodestar",
        )
        # 70 * 1/5 + 30 * 1/4 = 21.5
        assert calculate_completeness(record) == 22


class TestQualityTier:
    """Tests for tier thresholds."""

    @pytest.mark.parametrize(
        "score,tier",
        [
            (100, "complete"),
            (80, "complete"),
            (79, "partial"),
            (60, "partial"),
            (59, "incomplete"),
            (30, "incomplete"),
            (29, "minimal"),
            (0, "minimal"),
        ],
    )
    def test_boundaries(self, score, tier):
        assert quality_tier(score) == tier


class TestCompleteSpecs:
    """Tests for the three-core-specs flag."""

    def test_all_three_present(self):
        assert has_complete_specs(FULL_RECORD) is True

    def test_missing_power(self):
        record = dict(FULL_RECORD, motorPower="")
        assert has_complete_specs(record) is False

    def test_independent_of_score(self):
        specs = {k: FULL_RECORD[k] for k in ("loadCapacity", "liftingSpeed", "motorPower")}
        assert has_complete_specs(specs) is True
        assert quality_tier(calculate_completeness(specs)) == "incomplete"


class TestFieldPresence:
    def test_split(self):
        populated, missing = field_presence({"loadCapacity": "500 kg", "dutyCycle": "40%"})
        assert populated == ["loadCapacity", "dutyCycle"]
        assert missing == ["liftingSpeed", "motorPower", "classification"]
