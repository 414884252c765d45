"""
Ski area merging.

Records that describe the same real-world ski area can be reported more
than once, either by two providers or by overlapping extracts of one
provider. The merge is a left fold onto a primary record; identity always
comes from the primary, so the fold order is significant for name and status.
"""

import logging
from collections.abc import Iterable, Iterator, Sequence

from ..domain.enums import SourceType
from ..domain.models import SkiAreaObject, SkiAreaProperties
from ..types import Feature
from .utils import merged_and_uniqued, unique_sources

logger = logging.getLogger(__name__)


def merge_ski_area_objects(
    primary: SkiAreaObject,
    duplicates: Sequence[SkiAreaObject],
) -> SkiAreaObject:
    """
    Fold duplicates onto primary in the given order.

    Args:
        primary: Record whose identity fields survive the merge
        duplicates: Records describing the same ski area

    Returns:
        primary unchanged when there are no duplicates, otherwise the merged record
    """
    if not duplicates:
        return primary

    # Websites are chosen across all records at once, not pairwise.
    websites = merged_websites(
        [primary.properties] + [duplicate.properties for duplicate in duplicates]
    )

    merged = primary
    for duplicate in duplicates:
        merged = SkiAreaObject(
            id=merged.id,
            key=merged.key,
            geometry=merged.geometry,
            is_polygon=merged.is_polygon,
            ski_areas=merged.ski_areas,
            source=merged.source,
            type=merged.type,
            activities=merged_and_uniqued(merged.activities, duplicate.activities),
            properties=_merge_properties(merged.properties, duplicate.properties, websites),
        )
    return merged


def _merge_properties(
    primary: SkiAreaProperties,
    other: SkiAreaProperties,
    websites: list[str],
) -> SkiAreaProperties:
    return SkiAreaProperties(
        id=primary.id,
        type=primary.type,
        name=primary.name or other.name,
        activities=merged_and_uniqued(primary.activities, other.activities),
        generated=primary.generated and other.generated,
        run_convention=primary.run_convention,
        sources=unique_sources(primary.sources + other.sources),
        status=primary.status or other.status,
        websites=websites,
        statistics=primary.statistics,
        location=None,
    )


def merged_websites(ski_areas: Iterable[SkiAreaProperties]) -> list[str]:
    """
    Websites of merged ski areas, preferring OpenStreetMap-only records.

    Both providers often list a website for the same ski area, with URLs that
    differ just enough not to deduplicate. When any record sourced purely from
    OpenStreetMap carries websites, only those are kept.
    """
    ski_areas = list(ski_areas)
    openstreetmap_with_websites = [
        ski_area for ski_area in ski_areas
        if ski_area.websites
        and all(source.type == SourceType.OPENSTREETMAP for source in ski_area.sources)
    ]
    chosen = openstreetmap_with_websites or ski_areas
    return merged_and_uniqued(*(ski_area.websites for ski_area in chosen))


def is_openstreetmap_only(ski_area: SkiAreaObject) -> bool:
    sources = ski_area.properties.sources
    return bool(sources) and all(source.type == SourceType.OPENSTREETMAP for source in sources)


def select_primary(group: Sequence[SkiAreaObject]) -> tuple[SkiAreaObject, list[SkiAreaObject]]:
    """
    Pick the record that survives a merge.

    Policy: the first record sourced only from OpenStreetMap, otherwise the
    first record in stream order. The remaining records keep stream order.
    """
    if not group:
        raise ValueError("Cannot select a primary ski area from an empty group")
    index = next((i for i, ski_area in enumerate(group) if is_openstreetmap_only(ski_area)), 0)
    return group[index], [ski_area for i, ski_area in enumerate(group) if i != index]


class SkiAreaMergeAccumulator:
    """
    Collapse ski area records that share a source identity.

    Records are connected when any (id, type) source is common to both;
    connected groups are merged with select_primary/merge_ski_area_objects.
    Output keeps the stream position of each group's first record.
    """

    def __init__(self):
        self._objects: list[SkiAreaObject] = []

    def accept(self, feature: Feature) -> None:
        self._objects.append(SkiAreaObject.from_feature(feature))

    def results(self) -> Iterator[Feature]:
        parents = list(range(len(self._objects)))

        def find(i: int) -> int:
            while parents[i] != i:
                parents[i] = parents[parents[i]]
                i = parents[i]
            return i

        owner: dict[tuple[str, str], int] = {}
        for index, ski_area in enumerate(self._objects):
            for source in ski_area.properties.sources:
                if source.identity in owner:
                    first, second = find(owner[source.identity]), find(index)
                    parents[max(first, second)] = min(first, second)
                else:
                    owner[source.identity] = index

        groups: dict[int, list[SkiAreaObject]] = {}
        for index, ski_area in enumerate(self._objects):
            groups.setdefault(find(index), []).append(ski_area)

        merged_count = 0
        for root in sorted(groups):
            group = groups[root]
            primary, duplicates = select_primary(group)
            merged_count += len(duplicates)
            yield merge_ski_area_objects(primary, duplicates).to_feature()

        if merged_count:
            logger.info(f"Merged {merged_count:,} duplicate ski area records")
