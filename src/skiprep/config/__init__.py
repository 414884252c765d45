"""
Configuration module for the ski data preparation pipeline.
"""

from .paths import CategoryPaths, DataPaths, InputPaths, load_paths
from .settings import ClusteringConfig, Config, ConfigurationError, ElevationConfig

__all__ = [
    'Config',
    'ConfigurationError',
    'ElevationConfig',
    'ClusteringConfig',
    'DataPaths',
    'InputPaths',
    'CategoryPaths',
    'load_paths',
]
