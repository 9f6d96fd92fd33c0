"""Safety-standard classification resolution."""

import re
from typing import Any, Dict, Iterable, List

from pipeline.config import CLASSIFICATION_ALIASES

__all__ = ["resolve_classification", "resolve_tag", "ALIAS_TO_TAG"]

_DELIMITERS_RE = re.compile(r"[,;/]")

# alias -> canonical tag, built once from the config table
ALIAS_TO_TAG: Dict[str, str] = {
    alias: tag for tag, aliases in CLASSIFICATION_ALIASES.items() for alias in [tag, *aliases]
}


def resolve_tag(token: Any) -> str:
    """Resolve a single token to its canonical tag (unknown tokens pass through lower-cased)."""
    cleaned = str(token).strip().lower()
    return ALIAS_TO_TAG.get(cleaned, cleaned)


def resolve_classification(value: Any) -> List[str]:
    """Resolve a classification value to a list of unique canonical tags.

    Accepts a single string, a ``,``/``;``/``/`` separated string, or a
    list/tuple/set of tokens. Anything else, or an empty value, gives an
    empty list. Order follows first appearance and carries no meaning.

    >>> resolve_classification("BGV-D8; d8plus")
    ['d8', 'd8+']
    """
    if value is None or isinstance(value, bool):
        return []

    tokens: Iterable[Any]
    if isinstance(value, str):
        tokens = _DELIMITERS_RE.split(value)
    elif isinstance(value, (list, tuple, set, frozenset)):
        tokens = value
    else:
        return []

    resolved: List[str] = []
    for token in tokens:
        if token is None or isinstance(token, (dict, list, tuple, set)):
            continue
        tag = resolve_tag(token)
        if tag and tag not in resolved:
            resolved.append(tag)
    return resolved
