"""
Ski data preparation pipeline components.

This module composes the Source -> Transform -> Export stages for each
feature category.

Components:
- source: streaming GeoJSON reader
- streams: map, flat-map, bounded async map and accumulate stages
- export: FeatureCollection writer
- prepare: orchestrator running the ski area, run and lift pipelines
"""

from .export import write_feature_collection
from .prepare import prepare
from .source import read_geojson_features

__all__ = ["read_geojson_features", "write_feature_collection", "prepare"]
