"""Shared fixtures for the pipeline test suite."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

import pytest

from pipeline.models import CanonicalRecord


@pytest.fixture
def fixed_now():
    """A fixed processing timestamp."""
    return datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def lodestar_duplicates() -> List[Dict[str, Any]]:
    """Two raw records describing the same CM Lodestar hoist."""
    return [
        {"manufacturer": "CM", "model": "Lodestar 1000", "loadCapacity": "1000 kg"},
        {"manufacturer": "Columbus McKinnon (CM)", "model": "lodestar-1000", "loadCapacity": "1000kg"},
    ]


@pytest.fixture
def raw_catalog() -> List[Dict[str, Any]]:
    """A small raw database with one duplicate and one unusable record."""
    return [
        {
            "id": "cm-lodestar-500",
            "manufacturer": "CM",
            "model": "Lodestar 500 Electric Chain Hoist",
            "loadCapacity": "500 kg",
            "liftingSpeed": "4 m/min",
            "motorPower": "0.75 kW",
            "dutyCycle": "40%",
            "voltageOptions": "400V",
            "url": "https://example.com/cm/lodestar-500",
        },
        {
            "manufacturer": "Chainmaster GmbH",
            "model": "D8+ 1000",
            "loadCapacity": "1 ton",
            "liftingSpeed": "0.1 m/s",
            "motorPower": "2 HP",
            "quietOperation": "yes",
            "_manuallyCreated": True,
        },
        {
            "manufacturer": "Columbus McKinnon (CM)",
            "model": "lodestar-500",
            "loadCapacity": "500kg",
            "weight": "32 kg",
            "scrapedFrom": "https://example.com/feed",
        },
        {"manufacturer": "Verlinde", "model": ""},
    ]


@pytest.fixture
def write_json(tmp_path):
    """Write a JSON payload under tmp_path and return the path."""

    def _write(name: str, payload: Any) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write


def make_canonical(index: int, **overrides) -> CanonicalRecord:
    """Build a fully specified canonical record for aggregate tests."""
    values = {
        "id": f"hoist-{index}",
        "manufacturer": "Chainmaster",
        "model": f"D8 {index}",
        "load_capacity": "500 kg (1102 lbs)",
        "lifting_speed": "8 m/min (26 ft/min)",
        "motor_power": "1 kW (1.3 HP)",
        "classification": ["d8"],
        "duty_cycle": "40%",
        "capacity_kg": 500.0,
        "speed_m_min": 8.0,
        "source": "scraped",
    }
    values.update(overrides)
    return CanonicalRecord(**values)


@pytest.fixture
def canonical_factory():
    return make_canonical
