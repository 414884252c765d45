"""
Provenance and property merge helpers.

Pure functions shared by the ski area merger and the run normalizer.
Precedence rules: first non-empty value wins, collections are unioned in
encounter order, tri-state booleans are AND-folded over known values.
"""

from collections.abc import Hashable, Iterable
from typing import Any, Optional, TypeVar

from ..domain.models import Source

T = TypeVar("T", bound=Hashable)


def merged_and_uniqued(*collections: Optional[Iterable[T]]) -> list[T]:
    """Concatenate collections, keeping the first occurrence of each value."""
    seen: set = set()
    merged: list[T] = []
    for collection in collections:
        for value in collection or ():
            if value not in seen:
                seen.add(value)
                merged.append(value)
    return merged


def unique_sources(sources: Iterable[Source]) -> list[Source]:
    """Deduplicate sources by (id, type), preserving order."""
    seen: set[tuple[str, str]] = set()
    uniqued = []
    for source in sources:
        if source.identity not in seen:
            seen.add(source.identity)
            uniqued.append(source)
    return uniqued


def unique_source_dicts(sources: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Same as unique_sources, for sources still in their GeoJSON form."""
    return [
        source.model_dump(mode="json")
        for source in unique_sources(Source.model_validate(s) for s in sources)
    ]


def first_non_empty(*values: Any) -> Any:
    """Return the first value that is neither None nor empty."""
    for value in values:
        if value is not None and value != "" and value != []:
            return value
    return None


def and_fold(*values: Optional[bool]) -> Optional[bool]:
    """AND over the known values of tri-state flags; None when all unknown."""
    known = [value for value in values if value is not None]
    if not known:
        return None
    return all(known)
