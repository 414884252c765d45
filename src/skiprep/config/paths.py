"""
Input, intermediate and output file locations.

Paths default to conventional file names under an input and an output
directory; a YAML file can override any of them:

    input:
      runs: /data/osm/runs.geojson
    output:
      runs: /srv/tiles/runs.geojson
"""

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

import yaml

from ..domain.enums import FeatureType
from .settings import ConfigurationError


@dataclass(frozen=True)
class InputPaths:
    ski_areas: Path
    skimap_ski_areas: Path
    runs: Path
    lifts: Path
    ski_area_sites: Path

    @classmethod
    def in_directory(cls, directory: Path) -> "InputPaths":
        directory = Path(directory)
        return cls(
            ski_areas=directory / "input_ski_areas.geojson",
            skimap_ski_areas=directory / "input_skimap_ski_areas.geojson",
            runs=directory / "input_runs.geojson",
            lifts=directory / "input_lifts.geojson",
            ski_area_sites=directory / "input_ski_area_sites.osmjson",
        )


@dataclass(frozen=True)
class CategoryPaths:
    ski_areas: Path
    runs: Path
    lifts: Path

    @classmethod
    def in_directory(cls, directory: Path, prefix: str = "") -> "CategoryPaths":
        directory = Path(directory)
        return cls(
            ski_areas=directory / f"{prefix}ski_areas.geojson",
            runs=directory / f"{prefix}runs.geojson",
            lifts=directory / f"{prefix}lifts.geojson",
        )

    def for_type(self, feature_type: FeatureType) -> Path:
        return {
            FeatureType.SKI_AREA: self.ski_areas,
            FeatureType.RUN: self.runs,
            FeatureType.LIFT: self.lifts,
        }[feature_type]


@dataclass(frozen=True)
class DataPaths:
    input: InputPaths
    intermediate: CategoryPaths
    output: CategoryPaths

    @classmethod
    def from_directories(cls, input_dir: Path, output_dir: Path) -> "DataPaths":
        return cls(
            input=InputPaths.in_directory(input_dir),
            intermediate=CategoryPaths.in_directory(Path(output_dir) / "intermediate", "intermediate_"),
            output=CategoryPaths.in_directory(output_dir),
        )

    def with_overrides(self, overrides: Optional[dict[str, Any]]) -> "DataPaths":
        """Apply {section: {name: path}} overrides, rejecting unknown keys."""
        if not overrides:
            return self
        if not isinstance(overrides, dict):
            raise ConfigurationError("Path overrides must be a mapping of sections")

        updated = {}
        for section in ("input", "intermediate", "output"):
            current = getattr(self, section)
            values = overrides.get(section) or {}
            known = {field.name for field in fields(current)}
            unknown = set(values) - known
            if unknown:
                raise ConfigurationError(
                    f"Unknown {section} paths: {', '.join(sorted(unknown))}. Known: {', '.join(sorted(known))}"
                )
            updated[section] = replace(current, **{name: Path(value) for name, value in values.items()})
        unknown_sections = set(overrides) - {"input", "intermediate", "output"}
        if unknown_sections:
            raise ConfigurationError(f"Unknown path sections: {', '.join(sorted(unknown_sections))}")
        return DataPaths(**updated)


def load_paths(input_dir: Path, output_dir: Path, config_file: Optional[Path] = None) -> DataPaths:
    """
    Build data paths from directories plus optional YAML overrides.

    Raises:
        ConfigurationError: If the YAML file is missing or invalid
    """
    paths = DataPaths.from_directories(input_dir, output_dir)
    if config_file is None:
        return paths

    if not config_file.exists():
        raise ConfigurationError(f"Paths file not found: {config_file}")
    try:
        with open(config_file, encoding='utf-8') as f:
            overrides = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_file}: {e}") from e
    return paths.with_overrides(overrides)
