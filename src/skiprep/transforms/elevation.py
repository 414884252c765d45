"""
Elevation enrichment for run and lift features.

Every vertex of a feature's geometry gets its elevation appended as a third
coordinate component. Runs drawn as a single LineString also get an
elevation profile sampled every ``profile_resolution_m`` meters along the
line, stored as ``{"heights": [...], "resolution": ...}`` in the
``elevationProfile`` property.

Lookups go through three layers:

- ``ElevationCache``: shared LRU cache keyed by (lat, lng)
- ``ElevationResolver``: sequential lookups for one feature with a rate-limit
  policy, one backoff state shared by the whole request and a wall-clock
  budget per coordinate after which the coordinate resolves to NaN
- ``ElevationClient``: the HTTP protocol of the elevation service

Enrichment is best effort: ``ElevationEnricher.enrich`` never raises.
"""

import asyncio
import copy
import logging
import math
import random
import threading
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Optional, Protocol

import requests

from ..config.settings import ElevationConfig
from ..types import ElevationLookupError, Feature, RateLimitedError
from .geometry import Position, chunk_start_points, is_ring_geometry, vertex_sequences

logger = logging.getLogger(__name__)

USER_AGENT = "skiprep-elevation/0.1 (+ski data preparation)"

LatLng = tuple[float, float]


# ============================================================================
# CACHE AND REQUEST PACING
# ============================================================================

class ElevationCache:
    """Least-recently-used cache of resolved elevations keyed by (lat, lng)."""

    def __init__(self, max_size: int = 100_000):
        if max_size < 1:
            raise ValueError("Cache size must be positive")
        self.max_size = max_size
        self._entries: OrderedDict[LatLng, float] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, key: LatLng) -> Optional[float]:
        try:
            value = self._entries[key]
        except KeyError:
            self.misses += 1
            return None
        self._entries.move_to_end(key)
        self.hits += 1
        return value

    def put(self, key: LatLng, value: float) -> None:
        self._entries[key] = value
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: LatLng) -> bool:
        return key in self._entries


class RateLimitPolicy(Protocol):
    def delay(self) -> float:
        """Seconds to wait before the next remote lookup."""
        ...


class NoRateLimit:
    def delay(self) -> float:
        return 0.0


class IntervalRateLimit:
    """Pause between lookups, fixed when both bounds are equal, else uniform random."""

    def __init__(self, min_s: float, max_s: float, rng: Optional[random.Random] = None):
        if min_s < 0 or max_s < min_s:
            raise ValueError("Interval bounds must be non-negative and ordered")
        self.min_s = min_s
        self.max_s = max_s
        self._rng = rng or random.Random()

    def delay(self) -> float:
        if self.min_s == self.max_s:
            return self.min_s
        return self._rng.uniform(self.min_s, self.max_s)


def rate_limit_from_config(config: ElevationConfig) -> RateLimitPolicy:
    if config.request_interval_max_s <= 0:
        return NoRateLimit()
    return IntervalRateLimit(config.request_interval_min_s, config.request_interval_max_s)


@dataclass
class Backoff:
    """Exponential backoff doubling from initial_s up to max_s."""
    initial_s: float = 1.0
    max_s: float = 60.0
    current_s: float = field(init=False)

    def __post_init__(self):
        self.current_s = self.initial_s

    def next_delay(self) -> float:
        delay = self.current_s
        self.current_s = min(self.current_s * 2, self.max_s)
        return delay

    def reset(self) -> None:
        self.current_s = self.initial_s


# ============================================================================
# HTTP CLIENT
# ============================================================================

class ElevationClient:
    """
    Blocking client for the elevation service.

    Per-coordinate protocol: ``GET {server_url}/api/?lat=..&lng=..`` answering a
    bare JSON number. Batch protocol: ``POST {server_url}`` with a JSON array of
    [lat, lng] pairs answering a JSON array of the same length.
    """

    def __init__(self, server_url: str, timeout_s: float = 30.0,
                 session: Optional[requests.Session] = None):
        """
        Args:
            server_url: Service base URL
            timeout_s: Per-request timeout
            session: Session used by every thread; by default each worker
                thread gets its own session
        """
        self.server_url = server_url.rstrip("/")
        self.timeout_s = timeout_s
        self._shared_session = session
        if session is not None:
            self._configure(session)
        self._local = threading.local()
        self._sessions: list[requests.Session] = []
        self._sessions_lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        """Session for the calling thread."""
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._configure(requests.Session())
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    @staticmethod
    def _configure(session: requests.Session) -> requests.Session:
        session.headers.update({"User-Agent": USER_AGENT, "Accept": "application/json"})
        return session

    def fetch(self, lat: float, lng: float) -> float:
        """
        Look up one elevation.

        Raises:
            RateLimitedError: Service answered HTTP 429
            ElevationLookupError: Transport failure, non-2xx status or non-numeric body
        """
        try:
            response = self.session.get(
                f"{self.server_url}/api/",
                params={"lat": lat, "lng": lng},
                timeout=self.timeout_s,
            )
        except requests.RequestException as e:
            raise ElevationLookupError(f"Request for ({lat}, {lng}) failed: {e}") from e

        body = self._json_body(response, f"({lat}, {lng})")
        if not _is_number(body):
            raise ElevationLookupError(f"Invalid response for ({lat}, {lng}): {body!r}")
        return float(body)

    def fetch_batch(self, coordinates: Sequence[LatLng]) -> list[float]:
        """Look up elevations for [lat, lng] pairs in one request."""
        payload = [[lat, lng] for lat, lng in coordinates]
        try:
            response = self.session.post(self.server_url, json=payload, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise ElevationLookupError(f"Batch request failed: {e}") from e

        body = self._json_body(response, f"batch of {len(payload)}")
        if not isinstance(body, list):
            raise ElevationLookupError(f"Invalid batch response: {body!r}")
        if len(body) != len(payload):
            raise ElevationLookupError(
                f"Number of coordinates ({len(payload)}) is different than number of elevations ({len(body)})"
            )
        return [float(value) if _is_number(value) else math.nan for value in body]

    def _json_body(self, response: requests.Response, what: str):
        if response.status_code == 429:
            raise RateLimitedError(f"Rate limited for {what}")
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise ElevationLookupError(f"HTTP {response.status_code} for {what}") from e
        try:
            return response.json()
        except ValueError as e:
            raise ElevationLookupError(f"Non-JSON response for {what}") from e

    def close(self) -> None:
        if self._shared_session is not None:
            self._shared_session.close()
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# ============================================================================
# RESOLVER
# ============================================================================

class ElevationResolver:
    """
    Resolves elevations for a sequence of [lat, lng] coordinates, one lookup
    in flight at a time.

    A failed attempt backs off (429 and other failures alike) and retries
    until ``max_retry_seconds`` have passed since the coordinate's first
    attempt; the coordinate then resolves to NaN. The backoff state is shared
    by all coordinates of one ``resolve`` call and resets on success.
    """

    def __init__(self,
                 client: ElevationClient,
                 cache: Optional[ElevationCache] = None,
                 rate_limit: Optional[RateLimitPolicy] = None,
                 max_retry_seconds: float = 600.0,
                 initial_backoff_s: float = 1.0,
                 max_backoff_s: float = 60.0,
                 batch: bool = False,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.client = client
        self.cache = cache if cache is not None else ElevationCache()
        self.rate_limit = rate_limit or NoRateLimit()
        self.max_retry_seconds = max_retry_seconds
        self.initial_backoff_s = initial_backoff_s
        self.max_backoff_s = max_backoff_s
        self.batch = batch
        self._clock = clock
        self._sleep = sleep

    async def resolve(self, coordinates: Sequence[LatLng]) -> list[float]:
        backoff = Backoff(self.initial_backoff_s, self.max_backoff_s)
        if self.batch:
            return await self._resolve_batch(coordinates, backoff)
        return [await self._resolve_one(lat, lng, backoff) for lat, lng in coordinates]

    async def _resolve_one(self, lat: float, lng: float, backoff: Backoff) -> float:
        key = (lat, lng)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        deadline = self._clock() + self.max_retry_seconds
        attempts = 0
        while True:
            await self._pace()
            attempts += 1
            try:
                elevation = await asyncio.to_thread(self.client.fetch, lat, lng)
            except ElevationLookupError as e:
                if not await self._back_off(e, backoff, deadline, attempts, f"({lat}, {lng})"):
                    return math.nan
                continue

            backoff.reset()
            self.cache.put(key, elevation)
            return elevation

    async def _resolve_batch(self, coordinates: Sequence[LatLng], backoff: Backoff) -> list[float]:
        results: list[Optional[float]] = [self.cache.get((lat, lng)) for lat, lng in coordinates]
        missing = [i for i, value in enumerate(results) if value is None]
        if not missing:
            return results

        request = [coordinates[i] for i in missing]
        deadline = self._clock() + self.max_retry_seconds
        attempts = 0
        while True:
            await self._pace()
            attempts += 1
            try:
                fetched = await asyncio.to_thread(self.client.fetch_batch, request)
            except ElevationLookupError as e:
                if not await self._back_off(e, backoff, deadline, attempts, f"batch of {len(request)}"):
                    fetched = [math.nan] * len(request)
                    break
                continue
            backoff.reset()
            break

        for i, elevation in zip(missing, fetched):
            results[i] = elevation
            if not math.isnan(elevation):
                self.cache.put(coordinates[i], elevation)
        return results

    async def _pace(self) -> None:
        delay = self.rate_limit.delay()
        if delay > 0:
            await self._sleep(delay)

    async def _back_off(self, error: ElevationLookupError, backoff: Backoff,
                        deadline: float, attempts: int, what: str) -> bool:
        """Sleep before the next attempt; False once the retry budget is spent."""
        remaining = deadline - self._clock()
        if remaining <= 0:
            logger.error(f"Failed to fetch elevation for {what} after {attempts} attempts: {error}")
            return False

        delay = min(backoff.next_delay(), remaining)
        if isinstance(error, RateLimitedError):
            logger.warning(f"Rate limit hit for {what}. Retrying in {delay:.1f}s")
        else:
            logger.warning(f"Attempt {attempts} failed for {what}: {error}. Retrying in {delay:.1f}s")
        await self._sleep(delay)
        return True


# ============================================================================
# ENRICHER
# ============================================================================

@dataclass
class _RequestPlan:
    """Vertices to look up, closed-ring endpoints to copy and profile samples."""
    targets: list[Position] = field(default_factory=list)
    ring_closures: list[tuple[Position, Position]] = field(default_factory=list)
    profile: list[Position] = field(default_factory=list)

    def coordinates(self) -> list[LatLng]:
        # Service expects lat,lng instead of GeoJSON lng,lat
        return [(p[1], p[0]) for p in self.targets + self.profile]


class ElevationEnricher:
    """Best-effort elevation enrichment stage for run and lift features."""

    def __init__(self, resolver: ElevationResolver, profile_resolution_m: float = 25.0):
        if profile_resolution_m <= 0:
            raise ValueError("Profile resolution must be positive")
        self.resolver = resolver
        self.profile_resolution_m = profile_resolution_m

    @classmethod
    def from_config(cls, config: ElevationConfig,
                    cache: Optional[ElevationCache] = None,
                    session: Optional[requests.Session] = None) -> "ElevationEnricher":
        if not config.server_url:
            raise ValueError("Elevation server URL is not configured")
        client = ElevationClient(config.server_url, timeout_s=config.request_timeout_s, session=session)
        resolver = ElevationResolver(
            client,
            cache=cache if cache is not None else ElevationCache(config.cache_size),
            rate_limit=rate_limit_from_config(config),
            max_retry_seconds=config.max_retry_seconds,
            initial_backoff_s=config.initial_backoff_s,
            max_backoff_s=config.max_backoff_s,
            batch=config.batch,
        )
        return cls(resolver, profile_resolution_m=config.profile_resolution_m)

    async def enrich(self, feature: Feature) -> Feature:
        """
        Return a copy of the feature with elevations attached.

        Any failure (unsupported geometry, resolver error) logs a warning and
        returns the original feature unchanged.
        """
        try:
            return await self._enrich(feature)
        except Exception as e:
            feature_id = (feature.get("properties") or {}).get("id")
            logger.warning(f"Failed to load elevations for feature {feature_id}: {e}")
            return feature

    async def __call__(self, feature: Feature) -> Feature:
        return await self.enrich(feature)

    async def _enrich(self, feature: Feature) -> Feature:
        enriched = copy.deepcopy(feature)
        geometry = enriched.get("geometry")
        if not geometry:
            raise ValueError("Feature has no geometry")
        properties = enriched.setdefault("properties", {})

        plan = self._plan(geometry, properties)
        elevations = await self.resolver.resolve(plan.coordinates())

        vertex_elevations = elevations[:len(plan.targets)]
        profile_elevations = elevations[len(plan.targets):]

        for position, elevation in zip(plan.targets, vertex_elevations):
            _append_elevation(position, elevation)
        for last, first in plan.ring_closures:
            if len(first) >= 3:
                _append_elevation(last, first[2])

        if properties.get("type") == "run":
            properties["elevationProfile"] = (
                {"heights": profile_elevations, "resolution": self.profile_resolution_m}
                if profile_elevations else None
            )
        return enriched

    def _plan(self, geometry: dict, properties: dict) -> _RequestPlan:
        plan = _RequestPlan()
        rings = is_ring_geometry(geometry)
        for sequence in vertex_sequences(geometry):
            vertices = sequence
            if rings and len(sequence) > 1 and sequence[0][:2] == sequence[-1][:2]:
                vertices = sequence[:-1]
                if sequence[-1] is not sequence[0]:
                    plan.ring_closures.append((sequence[-1], sequence[0]))
            plan.targets.extend(p for p in vertices if len(p) == 2)

        if properties.get("type") == "run" and geometry.get("type") == "LineString":
            plan.profile = chunk_start_points(geometry["coordinates"], self.profile_resolution_m)
        return plan


def _append_elevation(position: Position, elevation: float) -> None:
    if len(position) == 2:
        position.append(elevation)
