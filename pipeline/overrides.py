"""Manufacturer-specific override rules.

Some manufacturers encode the series or the safety standard in the model name
only. Those quirks live in one ordered rule table; the first matching rule
wins for each record.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

__all__ = ["OverrideRule", "OVERRIDE_RULES", "find_rule", "apply_overrides"]


@dataclass(frozen=True)
class OverrideRule:
    """Match on exact manufacturer plus a case-sensitive model substring."""

    manufacturer: str
    model_contains: str
    series: Optional[str] = None
    default_classification: Optional[str] = None

    def matches(self, manufacturer: Optional[str], model: Optional[str]) -> bool:
        return manufacturer == self.manufacturer and self.model_contains in (model or "")


# Order matters: "D8+" must be tried before "D8"
OVERRIDE_RULES: List[OverrideRule] = [
    OverrideRule("Columbus McKinnon", "Lodestar", series="Lodestar", default_classification="d8"),
    OverrideRule("Chainmaster", "D8+", default_classification="d8+"),
    OverrideRule("Chainmaster", "D8", default_classification="d8"),
    OverrideRule("Verlinde", "SR", series="Stagemaker SR"),
    OverrideRule("Verlinde", "SL", series="Stagemaker SL"),
]


def find_rule(
    manufacturer: Optional[str],
    model: Optional[str],
    rules: Sequence[OverrideRule] = OVERRIDE_RULES,
) -> Optional[OverrideRule]:
    for rule in rules:
        if rule.matches(manufacturer, model):
            return rule
    return None


def apply_overrides(
    record: Dict[str, Any],
    rules: Sequence[OverrideRule] = OVERRIDE_RULES,
) -> Optional[OverrideRule]:
    """Apply the first matching rule to a snake_case field dict in place.

    The rule's series replaces any existing series. Its default
    classification is only used when the record has no classification.

    Returns:
        The rule that was applied, or None
    """
    rule = find_rule(record.get("manufacturer"), record.get("model"), rules)
    if rule is None:
        return None

    if rule.series:
        record["series"] = rule.series
    if rule.default_classification and not record.get("classification"):
        record["classification"] = [rule.default_classification]
    return rule
