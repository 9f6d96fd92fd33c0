"""Shared test fixtures and utilities for the web test suite."""

import copy
import json
from typing import List, Optional

import pytest

from pipeline.errors import SnapshotError
from pipeline.models import CanonicalRecord
from pipeline.normalizer import refresh_derived_fields
from pipeline.units import normalize_capacity, normalize_power, normalize_speed

from web.cache import CatalogCache
from web.index import build_index

CAPACITIES = [125, 250, 320, 500, 630, 1000, 1250, 2000, 2500, 500, 250, None]
SPEEDS = [4, 8, 16, 4, 2, 1.5, 4, 8, None, 3, 16, 8]


def make_record(
    number: int,
    manufacturer: str,
    classification: List[str],
    capacity_kg: Optional[float] = None,
    speed: Optional[float] = None,
    motor_power: Optional[str] = None,
    **extra_fields,
) -> CanonicalRecord:
    """Build a normalized record the way the pipeline would."""
    record = CanonicalRecord(
        id=f"hoist-{number:02d}",
        manufacturer=manufacturer,
        model=f"Model {number}",
        load_capacity=normalize_capacity(f"{capacity_kg} kg" if capacity_kg is not None else None),
        lifting_speed=normalize_speed(f"{speed} m/min" if speed is not None else None),
        motor_power=normalize_power(motor_power),
        classification=list(classification),
        source="scraped",
        **extra_fields,
    )
    return refresh_derived_fields(record)


def sample_records() -> List[CanonicalRecord]:
    """Twelve hoists from three manufacturers.

    hoist-01..05 Columbus McKinnon (d8+), hoist-06..09 Chainmaster (d8),
    hoist-10..11 Verlinde (bgv-c1), hoist-12 Verlinde without classification.
    hoist-12 has no capacity and hoist-09 no speed; only hoist-01..06 carry a
    motor power, and only hoist-01/02 have images.
    """
    records = []
    for number in range(1, 13):
        if number <= 5:
            manufacturer, classification = "Columbus McKinnon", ["d8+"]
        elif number <= 9:
            manufacturer, classification = "Chainmaster", ["d8"]
        elif number <= 11:
            manufacturer, classification = "Verlinde", ["bgv-c1"]
        else:
            manufacturer, classification = "Verlinde", []

        records.append(make_record(
            number,
            manufacturer,
            classification,
            capacity_kg=CAPACITIES[number - 1],
            speed=SPEEDS[number - 1],
            motor_power="1 kW" if number <= 6 else None,
            category="Unknown" if number == 12 else "Electric Chain Hoist",
            duty_cycle="40%" if number % 2 else None,
            images=[f"https://example.com/img/{number}.jpg"] if number <= 2 else [],
        ))
    return records


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingStore:
    """In-memory snapshot store that counts loads and can be made to fail."""

    def __init__(self, entries):
        self.entries = entries
        self.loads = 0
        self.fail = False

    def load(self):
        self.loads += 1
        if self.fail:
            raise SnapshotError("snapshot unavailable")
        return copy.deepcopy(self.entries)


@pytest.fixture
def records():
    return sample_records()


@pytest.fixture
def index(records):
    return build_index(records)


@pytest.fixture
def snapshot_entries(records):
    """The sample records in snapshot (camelCase dict) form."""
    return [r.to_dict() for r in records]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(snapshot_entries):
    return CountingStore(snapshot_entries)


@pytest.fixture
def cache(store, clock):
    return CatalogCache(store, ttl_seconds=300, clock=clock)


@pytest.fixture
def snapshot_file(tmp_path, snapshot_entries):
    """Sample snapshot written to disk."""
    path = tmp_path / "hoist_database_processed.json"
    path.write_text(json.dumps(snapshot_entries), encoding="utf-8")
    return path
