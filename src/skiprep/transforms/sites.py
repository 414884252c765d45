"""
Ski area site provider.

OpenStreetMap describes some ski areas as `site=piste` relations whose
members are the runs and lifts. The provider is loaded once, before any
pipeline starts, and is read-only afterwards: it yields placeholder ski area
features for the ski area pipeline and annotates runs and lifts with the ids
of the sites they belong to.
"""

import json
import logging
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path
from types import MappingProxyType
from typing import Any

from ..domain.enums import SourceType
from ..domain.models import SkiAreaSite, Source
from ..merging.utils import merged_and_uniqued
from ..types import Feature, InputReadError
from .ski_area_formatter import format_ski_area_site, ski_area_id

logger = logging.getLogger(__name__)


class SkiAreaSiteProvider:
    """Read-only lookup from OSM member ids to the site relations containing them."""

    def __init__(self, sites: Iterable[SkiAreaSite] = ()):
        self._sites = tuple(sites)
        membership: dict[str, list[str]] = {}
        for site in self._sites:
            site_id = ski_area_id(Source(id=site.osm_id, type=SourceType.OPENSTREETMAP))
            for member in site.members:
                ids = membership.setdefault(member, [])
                if site_id not in ids:
                    ids.append(site_id)
        self._membership = MappingProxyType({key: tuple(value) for key, value in membership.items()})

    @classmethod
    def from_osm_json(cls, path: Path) -> "SkiAreaSiteProvider":
        """
        Load site relations from an Overpass-style OSM JSON document.

        Raises:
            InputReadError: If the file is missing or not valid OSM JSON
        """
        try:
            with open(path, encoding="utf-8") as f:
                document = json.load(f)
        except FileNotFoundError as e:
            raise InputReadError(path, "file not found") from e
        except (OSError, json.JSONDecodeError) as e:
            raise InputReadError(path, str(e)) from e

        if not isinstance(document, dict) or not isinstance(document.get("elements"), list):
            raise InputReadError(path, "expected an OSM JSON document with an 'elements' list")

        sites = [parse_site(element) for element in document["elements"] if element.get("type") == "relation"]
        logger.info(f"Loaded {len(sites):,} ski area sites from {path}")
        return cls(sites)

    @property
    def sites(self) -> tuple[SkiAreaSite, ...]:
        return self._sites

    def ski_area_ids_for(self, osm_id: str) -> tuple[str, ...]:
        return self._membership.get(osm_id, ())

    def geojson_sites(self) -> Iterator[Feature]:
        for site in self._sites:
            yield format_ski_area_site(site)


def parse_site(element: dict[str, Any]) -> SkiAreaSite:
    tags = element.get("tags") or {}
    return SkiAreaSite(
        id=int(element["id"]),
        name=tags.get("name"),
        tags=tags,
        members=[
            f"{member['type']}/{member['ref']}"
            for member in element.get("members") or []
            if "type" in member and "ref" in member
        ],
    )


def add_ski_area_sites(provider: SkiAreaSiteProvider) -> Callable[[Feature], Feature]:
    """Stage that adds site memberships to a formatted run or lift."""

    def annotate(feature: Feature) -> Feature:
        properties = feature["properties"]
        site_ids: list[str] = []
        for source in properties.get("sources", []):
            if source.get("type") == SourceType.OPENSTREETMAP.value:
                site_ids.extend(provider.ski_area_ids_for(source["id"]))
        if not site_ids:
            return feature
        return {
            **feature,
            "properties": {
                **properties,
                "skiAreas": merged_and_uniqued(properties.get("skiAreas"), site_ids),
            },
        }

    return annotate
