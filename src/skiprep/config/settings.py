"""
Configuration management for the ski data preparation pipeline.

Usage:
    from skiprep.config.settings import Config
    config = Config()
    if config.elevation.server_url:
        ...

Environment Variables:
    ELEVATION_SERVER_URL: Base URL of the elevation service (enrichment is skipped when unset)
    ELEVATION_PROFILE_RESOLUTION: Distance between run profile samples in meters
    ELEVATION_CONCURRENCY: Features enriched concurrently
    ELEVATION_MAX_RETRY_SECONDS: Wall-clock budget per coordinate lookup
    ELEVATION_INITIAL_BACKOFF / ELEVATION_MAX_BACKOFF: Backoff bounds in seconds
    ELEVATION_REQUEST_INTERVAL_MIN / ELEVATION_REQUEST_INTERVAL_MAX: Pause between lookups in seconds
    ELEVATION_REQUEST_TIMEOUT: HTTP timeout in seconds
    ELEVATION_CACHE_SIZE: Maximum cached coordinates
    ELEVATION_BATCH: Use the batch POST protocol instead of per-coordinate GET
    CLUSTERING_ARANGODB_URL: Enables the clustering stage; outputs go to intermediate paths
    GEOCODING_SERVER_URL: Geocoder used by the clustering stage
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


@dataclass
class ElevationConfig:
    """Elevation enrichment configuration."""
    server_url: Optional[str] = None
    profile_resolution_m: float = 25.0
    concurrency: int = 10
    max_retry_seconds: float = 600.0
    initial_backoff_s: float = 1.0
    max_backoff_s: float = 60.0
    request_interval_min_s: float = 0.0
    request_interval_max_s: float = 0.0
    request_timeout_s: float = 30.0
    cache_size: int = 100_000
    batch: bool = False

    def __post_init__(self):
        """Validate elevation configuration."""
        if self.server_url and not self.server_url.startswith(('http://', 'https://')):
            raise ValueError("Elevation server URL must include protocol (https://)")
        if self.profile_resolution_m <= 0:
            raise ValueError("Profile resolution must be positive")
        if self.concurrency < 1:
            raise ValueError("Concurrency must be positive")
        if self.max_retry_seconds < 0:
            raise ValueError("Retry budget must be non-negative")
        if self.initial_backoff_s <= 0 or self.max_backoff_s < self.initial_backoff_s:
            raise ValueError("Backoff must be positive and max backoff at least the initial backoff")
        if self.request_interval_min_s < 0 or self.request_interval_max_s < self.request_interval_min_s:
            raise ValueError("Request interval bounds must be non-negative and ordered")
        if self.cache_size < 1:
            raise ValueError("Cache size must be positive")

    @property
    def enabled(self) -> bool:
        return bool(self.server_url)


@dataclass
class ClusteringConfig:
    """External clustering stage configuration."""
    arangodb_url: Optional[str] = None
    geocoding_server_url: Optional[str] = None

    def __post_init__(self):
        """Validate clustering configuration."""
        for url in (self.arangodb_url, self.geocoding_server_url):
            if url and not url.startswith(('http://', 'https://')):
                raise ValueError(f"Clustering URL must include protocol: {url}")

    @property
    def enabled(self) -> bool:
        return bool(self.arangodb_url)


class ConfigurationError(Exception):
    """Raised when configuration is invalid or incomplete."""
    pass


class Config:
    """
    Centralized configuration for the preparation pipeline.

    Environment variables loaded (in order of preference):
    1. Explicit environment file passed to constructor
    2. .env.{ENVIRONMENT} (where ENVIRONMENT=development|production|staging)
    3. .env file in project root
    4. System environment variables

    Example:
        config = Config(environment="development")
        config = Config(env_file=Path("/secure/production.env"))
    """

    def __init__(self,
                 environment: Optional[str] = None,
                 env_file: Optional[Path] = None,
                 elevation_server_url: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            environment: Target environment (development|staging|production)
            env_file: Explicit path to environment file
            elevation_server_url: Overrides ELEVATION_SERVER_URL when given
        """
        self.environment = environment or os.getenv("ENVIRONMENT", "development")
        self.project_root = self._find_project_root()

        self._load_environment_variables(env_file)

        self._load_elevation_config(elevation_server_url)
        self._load_clustering_config()

    def _find_project_root(self) -> Path:
        """Find project root directory containing pyproject.toml, .git or .env."""
        current = Path(__file__).resolve()

        for parent in current.parents:
            if any((parent / marker).exists() for marker in ['pyproject.toml', '.git']):
                return parent

        for parent in current.parents:
            if (parent / '.env').exists():
                return parent

        return Path.cwd()

    def _load_environment_variables(self, env_file: Optional[Path]) -> None:
        """Load environment variables from appropriate source."""
        loaded_files = []

        if env_file:
            if env_file.exists():
                load_dotenv(env_file)
                loaded_files.append(str(env_file))
                logger.info(f"Loaded configuration from {env_file}")
            else:
                raise ConfigurationError(f"Specified env file not found: {env_file}")

        else:
            env_specific_file = self.project_root / f".env.{self.environment}"
            if env_specific_file.exists():
                load_dotenv(env_specific_file)
                loaded_files.append(str(env_specific_file))
                logger.info(f"Loaded environment-specific config: {env_specific_file}")

            generic_env_file = self.project_root / ".env"
            if generic_env_file.exists():
                load_dotenv(generic_env_file)
                loaded_files.append(str(generic_env_file))
                logger.info(f"Loaded generic config: {generic_env_file}")

        if not loaded_files:
            logger.debug("No .env files found, using system environment variables only")

        self._loaded_env_files = loaded_files
        logger.debug(f"Project root: {self.project_root}")
        logger.debug(f"Environment: {self.environment}")

    def _load_elevation_config(self, server_url_override: Optional[str]) -> None:
        """Load elevation enrichment configuration."""
        try:
            self.elevation = ElevationConfig(
                server_url=server_url_override or os.getenv("ELEVATION_SERVER_URL") or None,
                profile_resolution_m=float(os.getenv("ELEVATION_PROFILE_RESOLUTION", "25")),
                concurrency=int(os.getenv("ELEVATION_CONCURRENCY", "10")),
                max_retry_seconds=float(os.getenv("ELEVATION_MAX_RETRY_SECONDS", "600")),
                initial_backoff_s=float(os.getenv("ELEVATION_INITIAL_BACKOFF", "1")),
                max_backoff_s=float(os.getenv("ELEVATION_MAX_BACKOFF", "60")),
                request_interval_min_s=float(os.getenv("ELEVATION_REQUEST_INTERVAL_MIN", "0")),
                request_interval_max_s=float(os.getenv("ELEVATION_REQUEST_INTERVAL_MAX", "0")),
                request_timeout_s=float(os.getenv("ELEVATION_REQUEST_TIMEOUT", "30")),
                cache_size=int(os.getenv("ELEVATION_CACHE_SIZE", "100000")),
                batch=os.getenv("ELEVATION_BATCH", "false").lower() == "true",
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid elevation configuration: {e}")

    def _load_clustering_config(self) -> None:
        """Load external clustering configuration."""
        try:
            self.clustering = ClusteringConfig(
                arangodb_url=os.getenv("CLUSTERING_ARANGODB_URL") or None,
                geocoding_server_url=os.getenv("GEOCODING_SERVER_URL") or None,
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid clustering configuration: {e}")

    def get_summary(self) -> dict[str, Any]:
        """
        Get configuration summary for logging.

        Returns:
            Dictionary with the effective settings
        """
        return {
            'environment': self.environment,
            'loaded_env_files': self._loaded_env_files,
            'elevation_enabled': self.elevation.enabled,
            'elevation_server_url': self.elevation.server_url,
            'elevation_concurrency': self.elevation.concurrency,
            'elevation_batch': self.elevation.batch,
            'clustering_enabled': self.clustering.enabled,
        }

    def __repr__(self) -> str:
        return (
            f"Config(environment={self.environment}, "
            f"elevation={self.elevation.server_url}, "
            f"clustering={self.clustering.enabled})"
        )
