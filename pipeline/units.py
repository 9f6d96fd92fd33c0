"""Unit parsing and conversion for hoist specification strings.

Free-text values such as "500kg", "1 ton", "0.5-8 m/min" or "2 HP" are
reduced to a magnitude and a canonical unit token, then rendered as a
dual-unit display string ("500 kg (1102 lbs)") or a number in the canonical
unit (kg, m/min, kW). None of the public functions raise on bad input.
"""

import re
from typing import Any, Callable, Dict, NamedTuple, Optional, Pattern

from pipeline.config import UNIT_CONVERSIONS

__all__ = [
    "Quantity",
    "parse_quantity",
    "convert",
    "normalize_capacity",
    "normalize_speed",
    "normalize_power",
    "extract_capacity_kg",
    "extract_speed_m_min",
    "extract_power_kw",
]

_NUMBER = r"(?P<value>\d+(?:\.\d+)?)"
_RANGE_END = r"(?:\s*(?:-|–|to)\s*(?P<upper>\d+(?:\.\d+)?))?"

_UNIT_PATTERNS: Dict[str, Pattern[str]] = {
    "capacity": re.compile(
        _NUMBER + _RANGE_END + r"\s*(?P<unit>kilograms?|kgs?|lbs?|pounds?|tonnes?|tons?|t)\b",
        re.IGNORECASE,
    ),
    "speed": re.compile(
        _NUMBER + _RANGE_END + r"\s*(?P<unit>m\s*/\s*min|ft\s*/\s*min|fpm|m\s*/\s*s(?:ec)?)\b",
        re.IGNORECASE,
    ),
    "power": re.compile(
        _NUMBER + _RANGE_END + r"\s*(?P<unit>kw|hp|w)\b",
        re.IGNORECASE,
    ),
}

# Strings already in display form are returned untouched
_DISPLAY_PATTERNS: Dict[str, Pattern[str]] = {
    "capacity": re.compile(r"^[\d.]+(?:-[\d.]+)? kg \([\d.]+(?:-[\d.]+)? lbs\)$"),
    "speed": re.compile(r"^[\d.]+(?:-[\d.]+)? m/min \([\d.]+(?:-[\d.]+)? ft/min\)$"),
    "power": re.compile(r"^[\d.]+(?:-[\d.]+)? kW \([\d.]+(?:-[\d.]+)? HP\)$"),
}

_UNIT_ALIASES = {
    "kg": "kg", "kgs": "kg", "kilogram": "kg", "kilograms": "kg",
    "lb": "lbs", "lbs": "lbs", "pound": "lbs", "pounds": "lbs",
    "t": "t", "ton": "t", "tons": "t", "tonne": "t", "tonnes": "t",
    "m/min": "m/min", "ft/min": "ft/min", "fpm": "ft/min",
    "m/s": "m/s", "m/sec": "m/s",
    "kw": "kw", "hp": "hp", "w": "w",
}

_THOUSANDS_RE = re.compile(r"(?<=\d),(?=\d{3}\b)")
_DECIMAL_COMMA_RE = re.compile(r"(?<=\d),(?=\d)")


class Quantity(NamedTuple):
    """A parsed magnitude. ``upper`` is set when the source gave a range."""

    value: float
    unit: str
    upper: Optional[float] = None


def _as_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


def parse_quantity(value: Any, kind: str) -> Optional[Quantity]:
    """Extract the leading magnitude and unit from a free-text value.

    Args:
        value: Raw value (string or number); anything else yields None.
        kind: "capacity", "speed" or "power".

    Returns:
        Quantity with a canonical unit token, or None when nothing matches.
    """
    pattern = _UNIT_PATTERNS.get(kind)
    text = _as_text(value)
    if pattern is None or text is None:
        return None

    text = _DECIMAL_COMMA_RE.sub(".", _THOUSANDS_RE.sub("", text))
    match = pattern.search(text)
    if not match:
        return None

    unit_token = re.sub(r"\s+", "", match.group("unit").lower())
    unit = _UNIT_ALIASES.get(unit_token)
    if unit is None:
        return None

    upper = match.group("upper")
    return Quantity(
        value=float(match.group("value")),
        unit=unit,
        upper=float(upper) if upper is not None else None,
    )


def convert(value: float, from_unit: str, to_unit: str) -> float:
    """Convert between canonical unit tokens.

    Raises:
        ValueError: If no conversion factor is known for the pair.
    """
    from_unit, to_unit = from_unit.lower(), to_unit.lower()
    if from_unit == to_unit:
        return value
    try:
        return value * UNIT_CONVERSIONS[(from_unit, to_unit)]
    except KeyError:
        raise ValueError(f"No conversion from {from_unit!r} to {to_unit!r}") from None


def _fmt(value: float) -> str:
    """Format a number without trailing zeros (500.0 -> '500', 2.50 -> '2.5')."""
    text = f"{round(value, 3):.3f}".rstrip("0").rstrip(".")
    return text or "0"


def _span(quantity: Quantity, render: Callable[[float], str]) -> str:
    """Render a value or a 'low-high' range with the same formatter."""
    if quantity.upper is None:
        return render(quantity.value)
    return f"{render(quantity.value)}-{render(quantity.upper)}"


def _normalize(value: Any, kind: str, render: Callable[[Quantity], Optional[str]]) -> str:
    text = _as_text(value)
    if text is None:
        return ""
    if _DISPLAY_PATTERNS[kind].match(text):
        return text
    quantity = parse_quantity(text, kind)
    if quantity is None:
        return text
    return render(quantity) or text


def _render_capacity(q: Quantity) -> Optional[str]:
    if q.unit == "kg":
        kg = q
    elif q.unit == "lbs":
        lbs = _span(q, _fmt)
        kg_text = _span(q, lambda v: str(round(convert(v, "lbs", "kg"))))
        return f"{kg_text} kg ({lbs} lbs)"
    elif q.unit == "t":
        kg = Quantity(
            convert(q.value, "t", "kg"),
            "kg",
            convert(q.upper, "t", "kg") if q.upper is not None else None,
        )
    else:
        return None
    lbs_text = _span(kg, lambda v: str(round(convert(v, "kg", "lbs"))))
    return f"{_span(kg, _fmt)} kg ({lbs_text} lbs)"


def _render_speed(q: Quantity) -> Optional[str]:
    if q.unit == "ft/min":
        m_min = _span(q, lambda v: f"{convert(v, 'ft/min', 'm/min'):.1f}")
        return f"{m_min} m/min ({_span(q, _fmt)} ft/min)"
    if q.unit == "m/s":
        q = Quantity(
            convert(q.value, "m/s", "m/min"),
            "m/min",
            convert(q.upper, "m/s", "m/min") if q.upper is not None else None,
        )
    if q.unit != "m/min":
        return None
    ft_min = _span(q, lambda v: str(round(convert(v, "m/min", "ft/min"))))
    return f"{_span(q, _fmt)} m/min ({ft_min} ft/min)"


def _render_power(q: Quantity) -> Optional[str]:
    if q.unit == "hp":
        kw = _span(q, lambda v: f"{convert(v, 'hp', 'kw'):.2f}")
        return f"{kw} kW ({_span(q, _fmt)} HP)"
    if q.unit == "w":
        q = Quantity(
            convert(q.value, "w", "kw"),
            "kw",
            convert(q.upper, "w", "kw") if q.upper is not None else None,
        )
    if q.unit != "kw":
        return None
    hp = _span(q, lambda v: f"{convert(v, 'kw', 'hp'):.1f}")
    return f"{_span(q, _fmt)} kW ({hp} HP)"


def normalize_capacity(value: Any) -> str:
    """'1000kg' -> '1000 kg (2205 lbs)'. Absent -> ''; unrecognized text is kept."""
    return _normalize(value, "capacity", _render_capacity)


def normalize_speed(value: Any) -> str:
    """'8 m/min' -> '8 m/min (26 ft/min)'. Absent -> ''; unrecognized text is kept."""
    return _normalize(value, "speed", _render_speed)


def normalize_power(value: Any) -> str:
    """'2 HP' -> '1.49 kW (2 HP)'. Absent -> ''; unrecognized text is kept."""
    return _normalize(value, "power", _render_power)


def extract_capacity_kg(value: Any) -> Optional[float]:
    """Capacity in kg, first magnitude of a range; None when unparseable."""
    q = parse_quantity(value, "capacity")
    if q is None:
        return None
    if q.unit == "lbs":
        return float(round(convert(q.value, "lbs", "kg")))
    return convert(q.value, q.unit, "kg")


def extract_speed_m_min(value: Any) -> Optional[float]:
    """Lifting speed in m/min, first magnitude of a range; None when unparseable."""
    q = parse_quantity(value, "speed")
    if q is None:
        return None
    if q.unit == "ft/min":
        return round(convert(q.value, "ft/min", "m/min"), 1)
    return convert(q.value, q.unit, "m/min")


def extract_power_kw(value: Any) -> Optional[float]:
    """Motor power in kW; None when unparseable."""
    q = parse_quantity(value, "power")
    if q is None:
        return None
    return round(convert(q.value, q.unit, "kw"), 3)
