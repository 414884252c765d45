"""
Ski area formatter - OpenStreetMap landuse areas, OpenStreetMap site relations
and Skimap.org records to canonical ski areas.
"""

import logging
from collections.abc import Callable
from typing import Any, Optional

from ..domain.enums import Activity, InputSkiAreaType, SourceType, Status
from ..domain.models import SkiAreaProperties, SkiAreaSite, Source
from ..types import Feature
from .osm_tags import (
    feature_id,
    first_tag,
    format_name,
    has_lifecycle_prefix,
    osm_source,
    run_convention_for,
    split_values,
)

logger = logging.getLogger(__name__)

SKIMAP_STATUSES = {
    "operating": Status.OPERATING,
    "abandoned": Status.ABANDONED,
    "closed": Status.DISUSED,
    "disused": Status.DISUSED,
    "proposed": Status.PROPOSED,
    "planned": Status.PLANNED,
    "construction": Status.CONSTRUCTION,
}


def placeholder_site_geometry(site: SkiAreaSite) -> dict[str, Any]:
    """
    Temporary geometry for a site relation.

    The real geometry is derived from the site's members by the clustering
    stage; the relation id rides along as the third coordinate.
    """
    return {"type": "Point", "coordinates": [360, 360, site.id]}


def ski_area_id(source: Source) -> str:
    return feature_id([source])


def format_ski_area(input_type: InputSkiAreaType) -> Callable[[Feature], Optional[Feature]]:
    """Return the formatter for one kind of raw ski area input."""
    if input_type == InputSkiAreaType.OPENSTREETMAP_LANDUSE:
        return format_openstreetmap_landuse
    if input_type == InputSkiAreaType.SKIMAP_ORG:
        return format_skimap_org
    raise ValueError(f"Unsupported ski area input: {input_type}")


def format_openstreetmap_landuse(feature: Feature) -> Optional[Feature]:
    tags: dict[str, Any] = feature.get("properties") or {}
    geometry = feature.get("geometry")

    if not geometry or first_tag(tags, "landuse") != "winter_sports":
        return None
    if has_lifecycle_prefix(tags, "landuse"):
        return None

    source = osm_source(tags)
    properties = SkiAreaProperties(
        id=ski_area_id(source),
        name=format_name(tags, "name"),
        activities=[],
        generated=False,
        run_convention=run_convention_for(geometry),
        sources=[source],
        status=Status.OPERATING,
        websites=_websites(tags, "website", "contact:website", "url"),
    )
    return {"type": "Feature", "geometry": geometry, "properties": properties.to_geojson()}


def format_skimap_org(feature: Feature) -> Optional[Feature]:
    attributes: dict[str, Any] = feature.get("properties") or {}
    geometry = feature.get("geometry")

    if not geometry or attributes.get("id") is None:
        logger.debug(f"Skipping Skimap.org record without geometry or id: {attributes.get('name')}")
        return None

    source = Source(id=str(attributes["id"]), type=SourceType.SKIMAP_ORG)
    activities = []
    for value in attributes.get("activities") or []:
        try:
            activity = Activity(value)
        except ValueError:
            continue
        if activity not in activities:
            activities.append(activity)

    properties = SkiAreaProperties(
        id=ski_area_id(source),
        name=attributes.get("name") or None,
        activities=activities,
        generated=False,
        run_convention=run_convention_for(geometry),
        sources=[source],
        status=SKIMAP_STATUSES.get(str(attributes.get("status") or "").lower()),
        websites=[website for website in [attributes.get("official_website")] if website],
    )
    return {"type": "Feature", "geometry": geometry, "properties": properties.to_geojson()}


def format_ski_area_site(site: SkiAreaSite) -> Feature:
    source = Source(id=site.osm_id, type=SourceType.OPENSTREETMAP)
    properties = SkiAreaProperties(
        id=ski_area_id(source),
        name=site.name,
        activities=[],
        generated=False,
        sources=[source],
        status=Status.OPERATING,
        websites=_websites(site.tags, "website", "contact:website", "url"),
    )
    return {
        "type": "Feature",
        "geometry": placeholder_site_geometry(site),
        "properties": properties.to_geojson(),
    }


def _websites(tags: dict[str, Any], *keys: str) -> list[str]:
    websites: list[str] = []
    for key in keys:
        for website in split_values(first_tag(tags, key)):
            if website not in websites:
                websites.append(website)
    return websites
