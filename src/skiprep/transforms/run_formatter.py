"""
Run formatter - raw OpenStreetMap piste features to canonical runs.

A feature qualifies when it has a known piste:type and no abandoned or
lifecycle-prefixed piste tags. Anything else is dropped by returning None.
"""

import logging
from typing import Any, Optional

from ..domain.enums import FeatureType, RunConvention, RunDifficulty, RunGrooming, RunUse, Status
from ..types import Feature
from .osm_tags import (
    feature_id,
    first_tag,
    format_name,
    has_lifecycle_prefix,
    osm_source,
    parse_yes_no,
    run_convention_for,
    split_values,
)

logger = logging.getLogger(__name__)

GREY = ("hsl(0, 0%, 35%)", "grey")
GREEN = ("hsl(125, 100%, 33%)", "green")
BLUE = ("hsl(208, 100%, 33%)", "blue")
RED = ("hsl(0, 80%, 50%)", "red")
BLACK = ("hsl(0, 0%, 0%)", "black")
ORANGE = ("hsl(34, 100%, 50%)", "orange")

DIFFICULTY_COLORS = {
    RunConvention.EUROPE: {
        RunDifficulty.NOVICE: GREEN,
        RunDifficulty.EASY: BLUE,
        RunDifficulty.INTERMEDIATE: RED,
        RunDifficulty.ADVANCED: BLACK,
        RunDifficulty.EXPERT: BLACK,
        RunDifficulty.FREERIDE: ORANGE,
        RunDifficulty.EXTREME: ORANGE,
    },
    RunConvention.NORTH_AMERICA: {
        RunDifficulty.NOVICE: GREEN,
        RunDifficulty.EASY: GREEN,
        RunDifficulty.INTERMEDIATE: BLUE,
        RunDifficulty.ADVANCED: BLACK,
        RunDifficulty.EXPERT: BLACK,
        RunDifficulty.FREERIDE: ORANGE,
        RunDifficulty.EXTREME: ORANGE,
    },
    RunConvention.JAPAN: {
        RunDifficulty.NOVICE: GREEN,
        RunDifficulty.EASY: GREEN,
        RunDifficulty.INTERMEDIATE: RED,
        RunDifficulty.ADVANCED: BLACK,
        RunDifficulty.EXPERT: BLACK,
        RunDifficulty.FREERIDE: ORANGE,
        RunDifficulty.EXTREME: ORANGE,
    },
}

GROOMING_ALIASES = {
    "classic;skating": RunGrooming.CLASSIC_AND_SKATING,
    "skating;classic": RunGrooming.CLASSIC_AND_SKATING,
}


def format_run(feature: Feature) -> Optional[Feature]:
    """
    Format one raw piste feature.

    Args:
        feature: GeoJSON feature with flattened OSM tags as properties

    Returns:
        Canonical run feature, or None when the feature is not a run
    """
    tags: dict[str, Any] = feature.get("properties") or {}

    if parse_yes_no(tags.get("piste:abandoned")) or has_lifecycle_prefix(tags, "piste:"):
        return None

    uses = _uses(tags)
    if not uses:
        return None

    geometry = feature.get("geometry")
    if not geometry:
        return None

    source = osm_source(tags)
    difficulty = _enum_or_none(RunDifficulty, tags.get("piste:difficulty"))
    color, color_name = _color(difficulty, run_convention_for(geometry))

    properties = {
        "type": FeatureType.RUN.value,
        "uses": [use.value for use in uses],
        "id": feature_id([source], geometry),
        "name": format_name(tags, "piste:name") or format_name(tags, "name"),
        "ref": first_tag(tags, "piste:ref", "ref"),
        "description": first_tag(tags, "piste:description", "description"),
        "difficulty": difficulty.value if difficulty else None,
        "grooming": _grooming(tags.get("piste:grooming")),
        "lit": parse_yes_no(first_tag(tags, "piste:lit", "lit")),
        "gladed": parse_yes_no(first_tag(tags, "piste:gladed", "gladed")),
        "patrolled": parse_yes_no(first_tag(tags, "piste:patrolled", "patrolled")),
        "oneway": parse_yes_no(first_tag(tags, "piste:oneway", "oneway")),
        "status": (Status.DISUSED if parse_yes_no(tags.get("piste:disused")) else Status.OPERATING).value,
        "color": color,
        "colorName": color_name,
        "skiAreas": [],
        "sources": [source.model_dump(mode="json")],
    }
    return {"type": "Feature", "geometry": geometry, "properties": properties}


def _uses(tags: dict[str, Any]) -> list[RunUse]:
    uses = []
    for value in split_values(first_tag(tags, "piste:type")):
        use = _enum_or_none(RunUse, value)
        if use is None:
            logger.debug(f"Ignoring unknown piste:type={value} on {tags.get('id')}")
        elif use not in uses:
            uses.append(use)
    return uses


def _grooming(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    grooming = GROOMING_ALIASES.get(value) or _enum_or_none(RunGrooming, value)
    return grooming.value if grooming else None


def _color(difficulty: Optional[RunDifficulty], convention: RunConvention) -> tuple[str, str]:
    if difficulty is None:
        return GREY
    return DIFFICULTY_COLORS[convention].get(difficulty, GREY)


def _enum_or_none(enum_type, value):
    try:
        return enum_type(value) if value is not None else None
    except ValueError:
        return None
