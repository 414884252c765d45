"""
Preparation orchestrator.

Builds and runs the three category pipelines:

    ski areas: OSM landuse + site placeholders + Skimap.org -> format -> merge duplicates -> write
    runs:      read -> format -> site membership -> normalize -> elevation -> write
    lifts:     read -> format -> site membership -> elevation -> write

The pipelines run concurrently and share nothing mutable except the
elevation cache. A failing pipeline is reported in its own PipelineResult
and never aborts the others.
"""

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Callable
from pathlib import Path
from typing import Optional, Protocol

from ..config.paths import CategoryPaths, DataPaths
from ..config.settings import Config
from ..domain.enums import FeatureType, InputSkiAreaType
from ..merging.runs import RunNormalizerAccumulator
from ..merging.ski_areas import SkiAreaMergeAccumulator
from ..transforms.elevation import ElevationEnricher
from ..transforms.lift_formatter import format_lift
from ..transforms.run_formatter import format_run
from ..transforms.sites import SkiAreaSiteProvider, add_ski_area_sites
from ..transforms.ski_area_formatter import format_ski_area
from ..types import Feature, PipelineResult
from ..utils import timer
from .export import write_feature_collection
from .source import read_geojson_features
from .streams import accumulate, chain, from_iterable, map_, map_async, pipe

logger = logging.getLogger(__name__)


class ClusteringService(Protocol):
    """External stage assigning runs and lifts to ski areas.

    Reads the three intermediate files and writes the three output files.
    """

    async def cluster(self, intermediate: CategoryPaths, output: CategoryPaths) -> None: ...


def ski_area_stream(paths: DataPaths, sites: SkiAreaSiteProvider) -> AsyncIterator[Feature]:
    return pipe(
        chain(
            pipe(
                read_geojson_features(paths.input.ski_areas),
                map_(format_ski_area(InputSkiAreaType.OPENSTREETMAP_LANDUSE)),
            ),
            from_iterable(sites.geojson_sites()),
            pipe(
                read_geojson_features(paths.input.skimap_ski_areas),
                map_(format_ski_area(InputSkiAreaType.SKIMAP_ORG)),
            ),
        ),
        accumulate(SkiAreaMergeAccumulator()),
    )


def run_stream(paths: DataPaths, sites: SkiAreaSiteProvider,
               enricher: Optional[ElevationEnricher], concurrency: int = 10) -> AsyncIterator[Feature]:
    return pipe(
        read_geojson_features(paths.input.runs),
        map_(format_run),
        map_(add_ski_area_sites(sites)),
        accumulate(RunNormalizerAccumulator()),
        map_async(enricher.enrich if enricher else None, concurrency),
    )


def lift_stream(paths: DataPaths, sites: SkiAreaSiteProvider,
                enricher: Optional[ElevationEnricher], concurrency: int = 10) -> AsyncIterator[Feature]:
    return pipe(
        read_geojson_features(paths.input.lifts),
        map_(format_lift),
        map_(add_ski_area_sites(sites)),
        map_async(enricher.enrich if enricher else None, concurrency),
    )


async def run_pipeline(name: str, features: Callable[[], AsyncIterator[Feature]], out_path: Path) -> PipelineResult:
    """Drive one pipeline into its output file, converting failure into a result."""
    logger.info(f"Processing {name}...")
    start = time.time()
    try:
        count = await write_feature_collection(features(), out_path)
    except Exception as e:
        logger.error(f"Pipeline {name} failed: {e}")
        return PipelineResult(name=name, succeeded=False, duration_s=time.time() - start, error=e)

    result = PipelineResult(name=name, succeeded=True, feature_count=count, duration_s=time.time() - start)
    logger.info(f"Finished {result.describe()}")
    return result


@timer
async def prepare(paths: DataPaths,
                  config: Config,
                  clustering: Optional[ClusteringService] = None,
                  enricher: Optional[ElevationEnricher] = None) -> list[PipelineResult]:
    """
    Prepare ski areas, runs and lifts.

    Args:
        paths: Input, intermediate and output file locations
        config: Pipeline configuration
        clustering: Clustering collaborator, run when clustering is configured
        enricher: Elevation enricher; built from config when omitted

    Returns:
        One PipelineResult per category, plus one for clustering when it ran

    Raises:
        InputReadError: If the site relations file cannot be read
    """
    sites = SkiAreaSiteProvider.from_osm_json(paths.input.ski_area_sites)

    owns_enricher = enricher is None and config.elevation.enabled
    if owns_enricher:
        enricher = ElevationEnricher.from_config(config.elevation)
    if enricher is None:
        logger.info("No elevation server configured, skipping elevation enrichment")

    targets = paths.intermediate if config.clustering.enabled else paths.output
    concurrency = config.elevation.concurrency

    try:
        results = list(await asyncio.gather(
            run_pipeline(
                "ski areas",
                lambda: ski_area_stream(paths, sites),
                targets.for_type(FeatureType.SKI_AREA),
            ),
            run_pipeline(
                "runs",
                lambda: run_stream(paths, sites, enricher, concurrency),
                targets.for_type(FeatureType.RUN),
            ),
            run_pipeline(
                "lifts",
                lambda: lift_stream(paths, sites, enricher, concurrency),
                targets.for_type(FeatureType.LIFT),
            ),
        ))
    finally:
        if owns_enricher:
            enricher.resolver.client.close()

    if config.clustering.enabled:
        results.append(await _cluster(clustering, paths, all(r.succeeded for r in results)))

    logger.info("Done preparing")
    return results


async def _cluster(clustering: Optional[ClusteringService], paths: DataPaths,
                   inputs_ready: bool) -> PipelineResult:
    if clustering is None:
        logger.warning(
            f"Clustering is configured but no clustering service was provided; "
            f"intermediate files left in {paths.intermediate.ski_areas.parent}"
        )
        return PipelineResult(name="clustering", succeeded=True)
    if not inputs_ready:
        logger.error("Skipping clustering because a category pipeline failed")
        return PipelineResult(
            name="clustering",
            succeeded=False,
            error=RuntimeError("category pipeline failed"),
        )

    logger.info("Clustering ski areas...")
    start = time.time()
    try:
        await clustering.cluster(paths.intermediate, paths.output)
    except Exception as e:
        logger.error(f"Clustering failed: {e}")
        return PipelineResult(name="clustering", succeeded=False, duration_s=time.time() - start, error=e)
    return PipelineResult(name="clustering", succeeded=True, duration_s=time.time() - start)
