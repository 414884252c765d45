"""
Helpers for reading flattened OpenStreetMap tags.

Raw features carry their OSM tags directly in `properties` (one key per tag)
together with an `id` of the form "way/123".
"""

import hashlib
import json
import re
from collections.abc import Iterable, Mapping
from typing import Any, Optional

from ..domain.enums import RunConvention, SourceType
from ..domain.models import Source

LIFECYCLE_PREFIXES = frozenset({
    "proposed", "planned", "construction", "disused", "abandoned",
    "demolished", "removed", "razed", "destroyed", "dismantled", "was", "never",
})

TRUE_VALUES = {"yes", "true", "1"}
FALSE_VALUES = {"no", "false", "0"}


def has_lifecycle_prefix(tags: Mapping[str, Any], key: str) -> bool:
    """True when any tag is a lifecycle-prefixed variant of key, e.g. proposed:piste:type."""
    for tag in tags:
        prefix, _, rest = tag.partition(":")
        if prefix in LIFECYCLE_PREFIXES and rest.startswith(key):
            return True
    return False


def parse_yes_no(value: Any) -> Optional[bool]:
    if value is None:
        return None
    normalized = str(value).strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    return None


def first_tag(tags: Mapping[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = tags.get(key)
        if value is not None and str(value).strip() != "":
            return str(value).strip()
    return None


def split_values(value: Optional[str]) -> list[str]:
    """Split a ;-separated OSM tag value."""
    if not value:
        return []
    return [part.strip() for part in value.split(";") if part.strip()]


def format_name(tags: Mapping[str, Any], key: str = "name") -> Optional[str]:
    """
    Combine a name tag with its localized variants.

    "piste:name" followed by "piste:name:<lang>" values in key order,
    deduplicated and joined with ", ".
    """
    localized_key = re.compile(re.escape(key) + r":[a-z]{2,3}(-[A-Za-z]+)?$")
    values = []
    main = first_tag(tags, key)
    if main:
        values.append(main)
    for tag in sorted(tags):
        if localized_key.match(tag):
            value = first_tag(tags, tag)
            if value and value not in values:
                values.append(value)
    return ", ".join(values) if values else None


def osm_source(properties: Mapping[str, Any]) -> Source:
    osm_id = properties.get("id") or properties.get("@id")
    if not osm_id:
        raise ValueError("OpenStreetMap feature is missing its id")
    return Source(id=str(osm_id), type=SourceType.OPENSTREETMAP)


def feature_id(sources: Iterable[Source], geometry: Optional[Mapping[str, Any]] = None) -> str:
    """Deterministic SHA-1 identifier from provenance and, optionally, geometry."""
    payload = {
        "sources": [source.model_dump(mode="json") for source in sources],
        "geometry": geometry,
    }
    return hashlib.sha1(json.dumps(payload, sort_keys=True).encode("utf-8")).hexdigest()


def run_convention_for(geometry: Optional[Mapping[str, Any]]) -> RunConvention:
    """Regional difficulty convention from the first vertex of a geometry."""
    point = _first_position(geometry["coordinates"]) if geometry else None
    if point is None:
        return RunConvention.EUROPE
    lng, lat = point[0], point[1]
    if -168 <= lng <= -52 and lat >= 7:
        return RunConvention.NORTH_AMERICA
    if 122 <= lng <= 154 and 24 <= lat <= 46:
        return RunConvention.JAPAN
    return RunConvention.EUROPE


def _first_position(coordinates: Any) -> Optional[list[float]]:
    while isinstance(coordinates, list) and coordinates and isinstance(coordinates[0], list):
        coordinates = coordinates[0]
    if isinstance(coordinates, list) and len(coordinates) >= 2:
        return coordinates
    return None
