"""
Domain Models and Types

This module contains the core domain models and enumerations used throughout the pipeline.

Models:
- Source: Provenance of a canonical feature
- SkiAreaProperties / SkiAreaObject: Canonical ski area and its merge unit
- SkiAreaSite: OpenStreetMap site relation placeholder
- ElevationProfile: Down-sampled run elevation samples

Enums:
- SourceType, FeatureType, InputSkiAreaType
- Activity, Status, RunUse, RunDifficulty, RunGrooming, RunConvention, LiftType
"""

from .enums import (
    Activity,
    FeatureType,
    InputSkiAreaType,
    LiftType,
    RunConvention,
    RunDifficulty,
    RunGrooming,
    RunUse,
    SourceType,
    Status,
)
from .models import ElevationProfile, SkiAreaObject, SkiAreaProperties, SkiAreaSite, Source

__all__ = [
    "Source", "ElevationProfile", "SkiAreaProperties", "SkiAreaObject", "SkiAreaSite",
    "SourceType", "FeatureType", "InputSkiAreaType", "Activity", "Status",
    "RunUse", "RunDifficulty", "RunGrooming", "RunConvention", "LiftType",
]
