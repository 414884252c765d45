"""
Run normalization.

One logical run often arrives as several raw features: duplicated across
overlapping source extracts, or split into segments wherever another way
crosses it. The accumulator buffers the complete run stream and then

1. merges features with identical geometry (either direction),
2. joins line segments that share an endpoint with no third segment of the
   same run attributes touching it, walking each chain into one LineString,
3. drops results whose geometry is empty or degenerate.

Attribute collisions are resolved with the shared merge rules: first
non-empty value wins, collections are unioned, tri-state flags are AND-folded.
"""

import logging
from collections.abc import Iterator, Sequence
from typing import Any, Optional

from shapely.errors import GEOSException
from shapely.geometry import shape

from ..domain.models import Source
from ..transforms.osm_tags import feature_id
from ..types import Feature
from .utils import and_fold, first_non_empty, merged_and_uniqued, unique_source_dicts

logger = logging.getLogger(__name__)

FIRST_NON_EMPTY_PROPERTIES = ("name", "ref", "description", "difficulty", "grooming", "status", "elevationProfile")
TRI_STATE_PROPERTIES = ("lit", "gladed", "patrolled", "oneway")

# Segments are only joined when all of these agree
RUN_ATTRIBUTES = ("name", "ref", "difficulty", "grooming", "lit", "gladed", "patrolled", "oneway", "status")

Node = tuple[float, float]


def merge_run_properties(primary: dict[str, Any], other: dict[str, Any]) -> dict[str, Any]:
    """Merge the properties of two features describing the same run."""
    merged = dict(primary)
    for key in FIRST_NON_EMPTY_PROPERTIES:
        if key not in primary and key not in other:
            continue
        merged[key] = first_non_empty(primary.get(key), other.get(key))
    for key in TRI_STATE_PROPERTIES:
        if key not in primary and key not in other:
            continue
        merged[key] = and_fold(primary.get(key), other.get(key))
    merged["uses"] = merged_and_uniqued(primary.get("uses"), other.get("uses"))
    merged["skiAreas"] = merged_and_uniqued(primary.get("skiAreas"), other.get("skiAreas"))
    merged["sources"] = unique_source_dicts(primary.get("sources", []) + other.get("sources", []))

    # Color follows whichever record supplied the difficulty
    if primary.get("difficulty") is None and other.get("difficulty") is not None:
        merged["color"] = other.get("color")
        merged["colorName"] = other.get("colorName")
    return merged


def is_degenerate(geometry: Optional[dict[str, Any]]) -> bool:
    """True for missing, empty, zero-length or zero-area geometries."""
    if not geometry or not geometry.get("coordinates"):
        return True
    try:
        geom = shape(geometry)
    except (ValueError, TypeError, IndexError, AttributeError, GEOSException):
        return True
    if geom.is_empty:
        return True
    if geom.geom_type in ("LineString", "MultiLineString"):
        return geom.length == 0
    if geom.geom_type in ("Polygon", "MultiPolygon"):
        return geom.area == 0
    return False


class RunNormalizerAccumulator:
    """Full-stream reducer collapsing raw run features into canonical runs."""

    def __init__(self):
        self._features: list[Feature] = []

    def accept(self, feature: Feature) -> None:
        self._features.append(feature)

    def results(self) -> Iterator[Feature]:
        input_count = len(self._features)
        deduplicated = merge_duplicate_geometries(self._features)
        joined = join_split_segments(deduplicated)

        emitted = 0
        for feature in joined:
            if is_degenerate(feature.get("geometry")):
                logger.debug(f"Dropping degenerate run {feature['properties'].get('id')}")
                continue
            emitted += 1
            yield feature

        self._features = []
        logger.info(f"Normalized {input_count:,} run features into {emitted:,} runs")


def merge_duplicate_geometries(features: Sequence[Feature]) -> list[Feature]:
    """Collapse features with the same geometry, keeping first-seen order."""
    merged: dict[Any, Feature] = {}
    for feature in features:
        key = _geometry_key(feature.get("geometry"))
        if key is None or key not in merged:
            merged[key if key is not None else ("unkeyed", len(merged))] = feature
            continue
        existing = merged[key]
        merged[key] = {
            **existing,
            "properties": merge_run_properties(existing["properties"], feature["properties"]),
        }
    return list(merged.values())


def _geometry_key(geometry: Optional[dict[str, Any]]) -> Any:
    if not geometry or "coordinates" not in geometry:
        return None

    def freeze(coordinates):
        if coordinates and isinstance(coordinates[0], (int, float)):
            return (coordinates[0], coordinates[1]) if len(coordinates) >= 2 else tuple(coordinates)
        return tuple(freeze(c) for c in coordinates)

    frozen = freeze(geometry["coordinates"])
    if geometry["type"] == "LineString":
        frozen = min(frozen, tuple(reversed(frozen)))
    return (geometry["type"], frozen)


def join_split_segments(features: Sequence[Feature]) -> list[Feature]:
    """Join LineString segments of the same run into single lines."""
    groups: dict[tuple, list[int]] = {}
    for index, feature in enumerate(features):
        if _is_joinable_line(feature):
            groups.setdefault(_run_signature(feature["properties"]), []).append(index)

    # (first input position, feature) so output keeps input order
    ordered: list[tuple[int, Feature]] = [
        (index, feature) for index, feature in enumerate(features) if not _is_joinable_line(feature)
    ]
    for indices in groups.values():
        for chain in _chains([features[i] for i in indices]):
            members = [indices[position] for position, _ in chain]
            ordered.append((min(members), _chain_feature(features, chain, indices)))

    ordered.sort(key=lambda item: item[0])
    return [feature for _, feature in ordered]


def _is_joinable_line(feature: Feature) -> bool:
    geometry = feature.get("geometry") or {}
    return geometry.get("type") == "LineString" and len(geometry.get("coordinates") or []) >= 2


def _run_signature(properties: dict[str, Any]) -> tuple:
    return tuple(properties.get(key) for key in RUN_ATTRIBUTES) + (tuple(sorted(properties.get("uses") or [])),)


def _node(position: Sequence[float]) -> Node:
    return (position[0], position[1])


def _chains(segments: list[Feature]) -> list[list[tuple[int, bool]]]:
    """
    Group segments into chains of (segment position, reversed) in walk order.

    Two segments are joined at a node when they are the only two segments
    touching it. Oneway runs only join end-to-start.
    """
    oneway = bool(segments[0]["properties"].get("oneway"))
    touching: dict[Node, list[tuple[int, str]]] = {}
    for position, segment in enumerate(segments):
        coordinates = segment["geometry"]["coordinates"]
        touching.setdefault(_node(coordinates[0]), []).append((position, "start"))
        touching.setdefault(_node(coordinates[-1]), []).append((position, "end"))

    def joinable(node: Node) -> bool:
        ends = touching.get(node, [])
        if len(ends) != 2 or ends[0][0] == ends[1][0]:
            return False
        return not oneway or {ends[0][1], ends[1][1]} == {"start", "end"}

    def endpoints(position: int, reversed_: bool) -> tuple[Node, Node]:
        coordinates = segments[position]["geometry"]["coordinates"]
        head, tail = _node(coordinates[0]), _node(coordinates[-1])
        return (tail, head) if reversed_ else (head, tail)

    visited: set[int] = set()
    chains = []

    # Chains start at a free end; what remains afterwards are closed loops
    starts = []
    for position in range(len(segments)):
        head, tail = endpoints(position, False)
        if not joinable(head):
            starts.append((position, False))
        elif not joinable(tail) and not oneway:
            starts.append((position, True))
    starts.extend((position, False) for position in range(len(segments)))

    for position, reversed_ in starts:
        if position in visited:
            continue
        chain = [(position, reversed_)]
        visited.add(position)
        _, tail = endpoints(position, reversed_)
        while joinable(tail):
            (first, _), (second, _) = touching[tail]
            following = second if first == chain[-1][0] else first
            if following in visited:
                break
            head, _ = endpoints(following, False)
            following_reversed = head != tail
            chain.append((following, following_reversed))
            visited.add(following)
            _, tail = endpoints(following, following_reversed)
        chains.append(chain)
    return chains


def _chain_feature(features: Sequence[Feature], chain: list[tuple[int, bool]], indices: list[int]) -> Feature:
    if len(chain) == 1:
        return features[indices[chain[0][0]]]

    coordinates: list[list[float]] = []
    for position, reversed_ in chain:
        segment = features[indices[position]]["geometry"]["coordinates"]
        segment = list(reversed(segment)) if reversed_ else segment
        coordinates.extend(segment if not coordinates else segment[1:])

    # Properties fold in input order, not walk order
    members = sorted(indices[position] for position, _ in chain)
    properties = features[members[0]]["properties"]
    for member in members[1:]:
        properties = merge_run_properties(properties, features[member]["properties"])

    geometry = {"type": "LineString", "coordinates": coordinates}
    sources = [Source.model_validate(source) for source in properties.get("sources", [])]
    properties = {**properties, "id": feature_id(sources, geometry)}
    return {"type": "Feature", "geometry": geometry, "properties": properties}
