"""Data models for raw and canonical hoist records."""

import copy
import math
import re
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional

from pipeline.config import QUALITY_TIERS

__all__ = ["RawRecord", "CanonicalRecord", "to_camel", "to_snake", "slugify"]

_CAMEL_BOUNDARY_RE = re.compile(r"(?<!^)(?=[A-Z])")
_SLUG_RE = re.compile(r"[^a-z0-9]+")

# Snapshot text fields; containers in their place are dropped
_TEXT_FIELDS = {
    "series",
    "category",
    "speed_type",
    "duty_cycle",
    "weight",
    "protection_class",
    "url",
    "source_url",
    "processed_at",
}

# Raw keys that don't follow the camelCase convention
_RAW_KEY_ALIASES = {
    "_manuallyCreated": "manually_created",
}


def to_camel(name: str) -> str:
    """'speed_m_min' -> 'speedMMin'."""
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def to_snake(name: str) -> str:
    """'speedMMin' -> 'speed_m_min'. Snake-case input is returned unchanged."""
    return _CAMEL_BOUNDARY_RE.sub("_", name).lower()


def slugify(text: Optional[str]) -> str:
    """Create a URL-friendly slug ('CM Lodestar 1000' -> 'cm-lodestar-1000')."""
    if not text:
        return ""
    return _SLUG_RE.sub("-", str(text).lower()).strip("-")


def _clean_value(value: Any) -> Any:
    """Strip strings and turn blank strings into None."""
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _to_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _to_float(value: Any) -> Optional[float]:
    """Finite float from a number or numeric string, else None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


@dataclass
class RawRecord:
    """One product as captured from a source, validated on entry.

    Every attribute is None when the source didn't supply it, so downstream
    code can test presence explicitly. Keys that aren't modelled here are
    kept untouched in ``extra``.
    """

    id: Optional[str] = None
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    series: Optional[str] = None
    category: Optional[str] = None
    speed_type: Optional[str] = None
    duty_cycle: Optional[str] = None

    # Free-text specifications (may arrive as numbers)
    load_capacity: Any = None
    lifting_speed: Any = None
    motor_power: Any = None
    classification: Any = None
    weight: Any = None
    protection_class: Any = None

    # Scalar-or-list fields
    voltage_options: Any = None
    body_color: Any = None
    common_applications: Any = None
    additional_safety: Any = None
    images: Any = None

    # Mapping fields
    control_compatibility: Any = None
    position_feedback: Any = None
    certifications: Any = None

    # Boolean-ish features ("yes", 1, True, ...)
    quiet_operation: Any = None
    dynamic_lifting: Any = None
    lifting_over_people: Any = None

    # Provenance
    source: Optional[str] = None
    source_url: Optional[str] = None
    url: Optional[str] = None
    scraped_from: Optional[str] = None
    manually_created: bool = False
    llm_enriched: bool = False

    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RawRecord":
        """Build a RawRecord from a source dictionary.

        Raises:
            TypeError: If ``data`` is not a mapping.
        """
        if not isinstance(data, Mapping):
            raise TypeError(f"Raw record must be a mapping, got {type(data).__name__}")

        known = {f.name for f in fields(cls)} - {"extra"}
        values: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}

        for key, value in data.items():
            name = _RAW_KEY_ALIASES.get(key) or to_snake(str(key))
            if name in known:
                values[name] = _clean_value(value)
            else:
                extra[key] = value

        values["manually_created"] = bool(values.get("manually_created"))
        values["llm_enriched"] = bool(values.get("llm_enriched"))

        # Identity fields are text even when a feed sends numbers
        for name in ("id", "manufacturer", "model", "series"):
            if values.get(name) is not None and not isinstance(values[name], str):
                values[name] = _clean_value(str(values[name]))

        return cls(**values, extra=extra)

    @property
    def has_identity(self) -> bool:
        """True when both manufacturer and model are present."""
        return bool(self.manufacturer) and bool(self.model)


@dataclass
class CanonicalRecord:
    """The normalized, enriched representation of one hoist.

    Attributes are snake_case; ``to_dict`` produces the camelCase form
    stored in the snapshot.
    """

    # Identity
    id: str
    manufacturer: str
    model: str

    # Descriptive
    series: Optional[str] = None
    category: Optional[str] = None
    speed_type: Optional[str] = None
    duty_cycle: Optional[str] = None
    weight: Optional[str] = None
    protection_class: Optional[str] = None
    url: Optional[str] = None

    # Specifications (display strings carry both units)
    load_capacity: str = ""
    lifting_speed: str = ""
    motor_power: str = ""
    capacity_kg: Optional[float] = None
    speed_m_min: Optional[float] = None

    classification: List[str] = field(default_factory=list)

    # Structural fields
    voltage_options: List[Any] = field(default_factory=list)
    body_color: List[Any] = field(default_factory=list)
    common_applications: List[Any] = field(default_factory=list)
    additional_safety: List[Any] = field(default_factory=list)
    images: List[Any] = field(default_factory=list)
    control_compatibility: Dict[str, Any] = field(default_factory=dict)
    position_feedback: Dict[str, Any] = field(default_factory=dict)
    certifications: Dict[str, Any] = field(default_factory=dict)

    quiet_operation: bool = False
    dynamic_lifting: bool = False
    lifting_over_people: bool = False

    # Quality
    data_completeness: int = 0
    data_quality_tier: str = "minimal"
    has_complete_specs: bool = False
    populated_fields: List[str] = field(default_factory=list)
    missing_fields: List[str] = field(default_factory=list)

    # Provenance
    source: str = "unknown"
    source_url: Optional[str] = None
    processed_at: Optional[str] = None

    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls) if f.name != "extra"]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the camelCase snapshot format (extra fields inlined)."""
        data: Dict[str, Any] = {}
        for name in self.field_names():
            data[to_camel(name)] = copy.deepcopy(getattr(self, name))
        for key, value in self.extra.items():
            data.setdefault(key, copy.deepcopy(value))
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CanonicalRecord":
        """Read a record back from the snapshot format.

        Tolerant of missing optional fields and of scalar values where lists
        are expected; identity validation is left to the caller.
        """
        if not isinstance(data, Mapping):
            raise TypeError(f"Canonical record must be a mapping, got {type(data).__name__}")

        known = set(cls.field_names())
        values: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in data.items():
            name = to_snake(str(key))
            if name in known:
                values[name] = value
            else:
                extra[key] = value

        for name in ("id", "manufacturer", "model"):
            values[name] = "" if values.get(name) is None else str(values[name]).strip()

        for f in fields(cls):
            if f.name not in values:
                continue
            value = values[f.name]
            if f.name in ("classification", "voltage_options", "body_color", "common_applications",
                          "additional_safety", "images", "populated_fields", "missing_fields"):
                if value is None:
                    values[f.name] = []
                elif not isinstance(value, list):
                    values[f.name] = list(value) if isinstance(value, (tuple, set)) else [value]
            elif f.name in ("control_compatibility", "position_feedback", "certifications"):
                if not isinstance(value, dict):
                    values[f.name] = {}
            elif f.name in ("load_capacity", "lifting_speed", "motor_power"):
                values[f.name] = "" if value is None or isinstance(value, (dict, list)) else str(value)
            elif f.name in ("capacity_kg", "speed_m_min"):
                values[f.name] = _to_float(value)
            elif f.name == "data_completeness":
                number = _to_float(value)
                values[f.name] = int(number) if number is not None else 0
            elif f.name == "data_quality_tier":
                values[f.name] = value if value in QUALITY_TIERS else "minimal"
            elif f.name in ("quiet_operation", "dynamic_lifting", "lifting_over_people", "has_complete_specs"):
                values[f.name] = value if isinstance(value, bool) else False
            elif f.name in _TEXT_FIELDS:
                values[f.name] = _to_text(value)

        # Tags are index keys
        values["classification"] = [str(tag) for tag in values.get("classification", [])
                                    if isinstance(tag, (str, int, float))]
        if not isinstance(values.get("source"), str) or not values["source"]:
            values["source"] = "unknown"

        return cls(**values, extra=extra)

    def get(self, name: str, default: Any = None) -> Any:
        """Look up a field by camelCase or snake_case name, then in extra."""
        snake = to_snake(name)
        if snake != "extra" and snake in self.__dataclass_fields__:
            return getattr(self, snake)
        return self.extra.get(name, default)

    @property
    def display_name(self) -> str:
        return f"{self.manufacturer} {self.model}"
