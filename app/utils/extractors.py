"""
Ordered payload extractors.

Vendors put the same logical field in different places. Each lookup is an
explicit list of small functions tried in order; the first one returning a
value other than None wins.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Optional, TypeVar

T = TypeVar("T")

Extractor = Callable[[Any], Optional[T]]


def first_match(extractors: Iterable[Extractor[T]], data: Any) -> Optional[T]:
    """Run extractors in order and return the first non-None result."""
    for extractor in extractors:
        try:
            value = extractor(data)
        except (AttributeError, KeyError, IndexError, TypeError):
            continue
        if value is not None:
            return value
    return None


def dig(data: Any, *path: str) -> Any:
    """Walk nested dicts; None as soon as a step is missing or not a dict."""
    current = data
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def non_empty(value: Any) -> Any:
    """None for '', [] and {} so extractors can fall through on empty values."""
    if value in ("", [], {}):
        return None
    return value
