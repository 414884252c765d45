"""
Pipeline Domain Models

Pydantic models for the canonical ski data schema.
These models ensure data integrity and provide clear interfaces between
the formatters, the merge stages and the serializer.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from .enums import Activity, FeatureType, RunConvention, SourceType, Status


class Source(BaseModel):
    """Provenance of a canonical feature, identified by (id, type)."""
    id: str = Field(..., description="Identifier within the provider, e.g. 'way/123'")
    type: SourceType = Field(..., description="Data provider")

    class Config:
        """Pydantic configuration."""
        frozen = True

    @property
    def identity(self) -> tuple[str, str]:
        return (self.id, self.type.value)


class ElevationProfile(BaseModel):
    """Down-sampled elevation samples along a run."""
    heights: list[float] = Field(default_factory=list, description="Elevation samples in meters")
    resolution: float = Field(..., description="Along-track distance between samples in meters")

    class Config:
        """Pydantic configuration."""
        frozen = True


class SkiAreaProperties(BaseModel):
    """Canonical ski area properties."""
    id: str = Field(..., description="Stable feature identifier")
    type: FeatureType = Field(default=FeatureType.SKI_AREA)
    name: Optional[str] = Field(None, description="Display name")
    activities: list[Activity] = Field(default_factory=list, description="Deduplicated activities")
    generated: bool = Field(default=False, description="True when derived rather than mapped")
    run_convention: RunConvention = Field(default=RunConvention.EUROPE, alias="runConvention")
    sources: list[Source] = Field(default_factory=list, description="Deduplicated provenance")
    status: Optional[Status] = Field(None, description="Lifecycle status")
    websites: list[str] = Field(default_factory=list, description="Ordered, deduplicated websites")
    statistics: Optional[dict[str, Any]] = Field(None, description="Run/lift statistics, computed downstream")
    location: Optional[dict[str, Any]] = Field(None, description="Geocoded location, computed downstream")

    class Config:
        """Pydantic configuration."""
        frozen = True
        populate_by_name = True

    def to_geojson(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class SkiAreaObject(BaseModel):
    """
    Intermediate merge unit for ski areas.

    Identity fields (id, key, geometry, is_polygon, ski_areas, source, type)
    never change under merge; everything else is derived by merging.
    """
    id: str
    key: str
    geometry: dict[str, Any]
    is_polygon: bool
    ski_areas: list[str] = Field(default_factory=list, description="Membership references")
    source: SourceType
    type: FeatureType = Field(default=FeatureType.SKI_AREA)
    activities: list[Activity] = Field(default_factory=list)
    properties: SkiAreaProperties

    class Config:
        """Pydantic configuration."""
        frozen = True

    @classmethod
    def from_feature(cls, feature: dict[str, Any]) -> "SkiAreaObject":
        """Build a merge unit from a formatted ski area GeoJSON feature."""
        properties = SkiAreaProperties.model_validate(feature["properties"])
        geometry = feature["geometry"]
        sources = properties.sources
        return cls(
            id=properties.id,
            key=properties.id,
            geometry=geometry,
            is_polygon=geometry["type"] in ("Polygon", "MultiPolygon"),
            ski_areas=[properties.id],
            source=sources[0].type if sources else SourceType.OPENSTREETMAP,
            activities=list(properties.activities),
            properties=properties,
        )

    def to_feature(self) -> dict[str, Any]:
        return {
            "type": "Feature",
            "geometry": self.geometry,
            "properties": self.properties.to_geojson(),
        }


class SkiAreaSite(BaseModel):
    """OpenStreetMap site relation describing a ski area by its members."""
    id: int = Field(..., description="OSM relation id")
    name: Optional[str] = None
    tags: dict[str, str] = Field(default_factory=dict)
    members: list[str] = Field(default_factory=list, description="Member references, e.g. 'way/123'")

    class Config:
        """Pydantic configuration."""
        frozen = True

    @property
    def osm_id(self) -> str:
        return f"relation/{self.id}"
