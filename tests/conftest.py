"""Shared pytest fixtures for skiprep tests.

Provides feature builders, a scripted elevation client and a fake clock so
retry and backoff behavior can be tested without network access or real
waiting.

ELEVATION MODEL:
    FakeElevationClient answers lat * 1000 + lng unless a response script
    says otherwise, so every coordinate gets a distinct, predictable value.
"""

import os
from collections.abc import Callable, Iterator
from typing import Any, Optional

import pytest

from skiprep.domain.enums import Activity, SourceType, Status
from skiprep.domain.models import SkiAreaObject, SkiAreaProperties, Source
from skiprep.transforms.elevation import ElevationCache, ElevationEnricher, ElevationResolver


# =============================================================================
# FEATURE BUILDERS
# =============================================================================


def line(*coordinates: tuple[float, float]) -> dict[str, Any]:
    return {"type": "LineString", "coordinates": [list(c) for c in coordinates]}


def raw_feature(properties: dict[str, Any], geometry: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    """Raw OSM feature with flattened tags, as produced by the OSM to GeoJSON converter."""
    return {
        "type": "Feature",
        "geometry": geometry if geometry is not None else line((0, 0), (1, 1)),
        "properties": properties,
    }


def run_feature(osm_id: str, geometry: dict[str, Any], **properties: Any) -> dict[str, Any]:
    """Formatted run with all nullable attributes unset unless given."""
    base = {
        "type": "run",
        "uses": ["downhill"],
        "id": f"id-{osm_id}",
        "name": None,
        "ref": None,
        "description": None,
        "difficulty": None,
        "grooming": None,
        "lit": None,
        "gladed": None,
        "patrolled": None,
        "oneway": None,
        "status": "operating",
        "color": "hsl(0, 0%, 35%)",
        "colorName": "grey",
        "skiAreas": [],
        "sources": [{"id": osm_id, "type": "openstreetmap"}],
    }
    base.update(properties)
    return {"type": "Feature", "geometry": geometry, "properties": base}


def ski_area(
    area_id: str,
    sources: list[tuple[str, SourceType]],
    name: Optional[str] = None,
    status: Optional[Status] = None,
    websites: Optional[list[str]] = None,
    activities: Optional[list[Activity]] = None,
    generated: bool = False,
) -> SkiAreaObject:
    properties = SkiAreaProperties(
        id=area_id,
        name=name,
        activities=activities or [],
        generated=generated,
        sources=[Source(id=source_id, type=source_type) for source_id, source_type in sources],
        status=status,
        websites=websites or [],
        location={"iso3166_1Alpha2": "CH"},
    )
    return SkiAreaObject(
        id=area_id,
        key=area_id,
        geometry={"type": "Point", "coordinates": [7.0, 46.0]},
        is_polygon=False,
        ski_areas=[area_id],
        source=sources[0][1],
        activities=activities or [],
        properties=properties,
    )


# =============================================================================
# ENVIRONMENT
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Clear pipeline settings and undo anything load_dotenv adds during a test."""
    for key in list(os.environ):
        if key.startswith(("ELEVATION_", "CLUSTERING_", "GEOCODING_")) or key == "ENVIRONMENT":
            monkeypatch.delenv(key)
    saved = dict(os.environ)
    yield
    os.environ.clear()
    os.environ.update(saved)


# =============================================================================
# ELEVATION FAKES
# =============================================================================


def default_elevation(lat: float, lng: float) -> float:
    return lat * 1000 + lng


class FakeElevationClient:
    """Elevation client answering from a script instead of HTTP.

    script entries are consumed one per fetch call: an exception instance is
    raised, a number is returned. Once the script is exhausted, answers come
    from default_elevation.
    """

    def __init__(self, script: Optional[list[Any]] = None,
                 answer: Callable[[float, float], float] = default_elevation) -> None:
        self.script = list(script or [])
        self.answer = answer
        self.calls: list[tuple[float, float]] = []
        self.batch_calls: list[list[tuple[float, float]]] = []
        self.closed = False

    def fetch(self, lat: float, lng: float) -> float:
        self.calls.append((lat, lng))
        if self.script:
            step = self.script.pop(0)
            if isinstance(step, Exception):
                raise step
            return step
        return self.answer(lat, lng)

    def fetch_batch(self, coordinates: list[tuple[float, float]]) -> list[float]:
        self.batch_calls.append(list(coordinates))
        if self.script:
            step = self.script.pop(0)
            if isinstance(step, Exception):
                raise step
            return step
        return [self.answer(lat, lng) for lat, lng in coordinates]

    def close(self) -> None:
        self.closed = True


class AlwaysFailingClient(FakeElevationClient):
    def __init__(self, error: Exception) -> None:
        super().__init__()
        self.error = error

    def fetch(self, lat: float, lng: float) -> float:
        self.calls.append((lat, lng))
        raise self.error


class FakeClock:
    """Monotonic clock advanced only by the fake sleep."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def client() -> FakeElevationClient:
    return FakeElevationClient()


@pytest.fixture
def resolver(client: FakeElevationClient, clock: FakeClock) -> ElevationResolver:
    return ElevationResolver(client, cache=ElevationCache(1000), clock=clock, sleep=clock.sleep)


@pytest.fixture
def enricher(resolver: ElevationResolver) -> ElevationEnricher:
    return ElevationEnricher(resolver, profile_resolution_m=25)

