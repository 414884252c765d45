"""
Type definitions for the ski data preparation pipeline.

This module provides structured results for pipeline runs and the exception
hierarchy shared by the readers, writers and enrichment stages.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional

Feature = dict[str, Any]


@dataclass(frozen=True)
class PipelineResult:
    """Outcome of one category pipeline.

    Every category pipeline reports independently; one failing pipeline
    never hides the result of the others.
    """
    name: str
    succeeded: bool
    feature_count: int = 0
    duration_s: float = 0.0
    error: Optional[BaseException] = None

    def describe(self) -> str:
        if self.succeeded:
            return f"{self.name}: {self.feature_count:,} features in {self.duration_s:.1f}s"
        return f"{self.name}: FAILED ({type(self.error).__name__}: {self.error})"


# Pipeline exception hierarchy
class PipelineError(Exception):
    """Base exception for pipeline operations."""
    pass


class InputReadError(PipelineError):
    """Input file is missing, unreadable or not valid GeoJSON / OSM JSON."""
    def __init__(self, path: Any, message: str):
        self.path = path
        super().__init__(f"Cannot read {path}: {message}")


class OutputWriteError(PipelineError):
    """Output file could not be written."""
    def __init__(self, path: Any, message: str):
        self.path = path
        super().__init__(f"Cannot write {path}: {message}")


class UnsupportedGeometryError(PipelineError):
    """Geometry kind not handled by a geometry operation."""
    def __init__(self, geometry_type: Any):
        self.geometry_type = geometry_type
        super().__init__(f"Geometry type {geometry_type} not implemented")


class ElevationLookupError(PipelineError):
    """A single elevation lookup attempt failed."""
    pass


class RateLimitedError(ElevationLookupError):
    """Elevation service answered HTTP 429."""
    pass
