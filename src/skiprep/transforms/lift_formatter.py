"""
Lift formatter - raw OpenStreetMap aerialways and funiculars to canonical lifts.
"""

from typing import Any, Optional

from ..domain.enums import FeatureType, LiftType, Status
from ..types import Feature
from .osm_tags import feature_id, first_tag, format_name, has_lifecycle_prefix, osm_source, parse_yes_no

LIFT_COLOR = "hsl(0, 82%, 42%)"

# Parts of aerialway infrastructure that are not lifts themselves
IGNORED_AERIALWAYS = {"pylon", "station", "goods", "canopy"}

RAILWAY_LIFT_TYPES = {
    "funicular": LiftType.FUNICULAR,
    "rack": LiftType.RACK_RAILWAY,
}


def format_lift(feature: Feature) -> Optional[Feature]:
    """
    Format one raw aerialway/railway feature.

    Returns:
        Canonical lift feature, or None when the feature is not a lift
    """
    tags: dict[str, Any] = feature.get("properties") or {}
    geometry = feature.get("geometry")

    if not geometry or geometry.get("type") not in ("LineString", "MultiLineString"):
        return None
    if has_lifecycle_prefix(tags, "aerialway") or has_lifecycle_prefix(tags, "railway"):
        return None
    if parse_yes_no(tags.get("aerialway:abandoned")) or parse_yes_no(tags.get("abandoned")):
        return None

    lift_type = _lift_type(tags)
    if lift_type is None:
        return None

    source = osm_source(tags)
    properties = {
        "type": FeatureType.LIFT.value,
        "liftType": lift_type.value,
        "id": feature_id([source], geometry),
        "name": format_name(tags, "name"),
        "ref": first_tag(tags, "ref"),
        "description": first_tag(tags, "description"),
        "status": (Status.DISUSED if parse_yes_no(tags.get("disused")) else Status.OPERATING).value,
        "oneway": parse_yes_no(first_tag(tags, "oneway")),
        "occupancy": _int_or_none(first_tag(tags, "aerialway:occupancy")),
        "capacity": _int_or_none(first_tag(tags, "aerialway:capacity")),
        "duration": _duration_seconds(first_tag(tags, "aerialway:duration")),
        "bubble": parse_yes_no(first_tag(tags, "aerialway:bubble")),
        "heating": parse_yes_no(first_tag(tags, "aerialway:heating")),
        "detachable": parse_yes_no(first_tag(tags, "aerialway:detachable")),
        "color": LIFT_COLOR,
        "skiAreas": [],
        "sources": [source.model_dump(mode="json")],
    }
    return {"type": "Feature", "geometry": geometry, "properties": properties}


def _lift_type(tags: dict[str, Any]) -> Optional[LiftType]:
    aerialway = first_tag(tags, "aerialway")
    if aerialway:
        if aerialway in IGNORED_AERIALWAYS:
            return None
        try:
            return LiftType(aerialway)
        except ValueError:
            return None
    return RAILWAY_LIFT_TYPES.get(first_tag(tags, "railway") or "")


def _int_or_none(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


def _duration_seconds(value: Optional[str]) -> Optional[int]:
    """aerialway:duration is minutes, or mm:ss."""
    if value is None:
        return None
    try:
        if ":" in value:
            minutes, seconds = value.split(":", 1)
            return int(minutes) * 60 + int(seconds)
        return round(float(value) * 60)
    except (ValueError, OverflowError):
        return None
