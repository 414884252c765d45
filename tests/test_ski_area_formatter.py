"""Tests for the ski area formatters."""

import pytest

from conftest import raw_feature
from skiprep.domain.enums import InputSkiAreaType, SourceType
from skiprep.domain.models import SkiAreaSite, Source
from skiprep.transforms.ski_area_formatter import (
    format_openstreetmap_landuse,
    format_ski_area,
    format_ski_area_site,
    format_skimap_org,
    placeholder_site_geometry,
    ski_area_id,
)

POLYGON = {"type": "Polygon", "coordinates": [[[7, 46], [7.1, 46], [7.1, 46.1], [7, 46]]]}


class TestOpenStreetMapLanduse:
    """landuse=winter_sports areas."""

    def test_winter_sports_area(self) -> None:
        feature = format_openstreetmap_landuse(raw_feature({
            "id": "way/7",
            "landuse": "winter_sports",
            "name": "Laax",
            "website": "https://laax.com",
            "contact:website": "https://laax.com;https://flims.com",
        }, POLYGON))

        properties = feature["properties"]
        assert properties["id"] == ski_area_id(Source(id="way/7", type=SourceType.OPENSTREETMAP))
        assert properties["type"] == "skiArea"
        assert properties["name"] == "Laax"
        assert properties["status"] == "operating"
        assert properties["generated"] is False
        assert properties["runConvention"] == "europe"
        assert properties["websites"] == ["https://laax.com", "https://flims.com"]
        assert properties["sources"] == [{"id": "way/7", "type": "openstreetmap"}]
        assert properties["location"] is None
        assert feature["geometry"] == POLYGON

    def test_other_landuse_is_dropped(self) -> None:
        assert format_openstreetmap_landuse(raw_feature({"id": "way/7", "landuse": "meadow"}, POLYGON)) is None


class TestSkimapOrg:
    """Skimap.org records."""

    def test_record(self) -> None:
        feature = format_skimap_org(raw_feature({
            "id": 42,
            "name": "Whistler Blackcomb",
            "activities": ["downhill", "nordic", "heli", "downhill"],
            "status": "Operating",
            "official_website": "https://whistlerblackcomb.com",
        }, {"type": "Point", "coordinates": [-122.95, 50.1]}))

        properties = feature["properties"]
        assert properties["sources"] == [{"id": "42", "type": "skimap.org"}]
        assert properties["activities"] == ["downhill", "nordic"]
        assert properties["status"] == "operating"
        assert properties["websites"] == ["https://whistlerblackcomb.com"]
        assert properties["runConvention"] == "north_america"

    def test_unknown_status_is_unset(self) -> None:
        feature = format_skimap_org(raw_feature({"id": 1, "status": "mystery"}, {"type": "Point", "coordinates": [7, 46]}))
        assert feature["properties"]["status"] is None
        assert feature["properties"]["name"] is None

    def test_record_without_id_is_dropped(self) -> None:
        assert format_skimap_org(raw_feature({"name": "No id"}, {"type": "Point", "coordinates": [7, 46]})) is None


class TestSitesAndDispatch:
    """Site placeholders and formatter selection."""

    def test_site_placeholder_geometry(self) -> None:
        site = SkiAreaSite(id=1234, name="Portes du Soleil", members=["way/1"])
        assert placeholder_site_geometry(site) == {"type": "Point", "coordinates": [360, 360, 1234]}

    def test_site_feature(self) -> None:
        site = SkiAreaSite(id=1234, name="Portes du Soleil", tags={"website": "https://ps.com"})
        feature = format_ski_area_site(site)
        assert feature["properties"]["sources"] == [{"id": "relation/1234", "type": "openstreetmap"}]
        assert feature["properties"]["websites"] == ["https://ps.com"]
        assert feature["properties"]["name"] == "Portes du Soleil"

    def test_dispatch(self) -> None:
        assert format_ski_area(InputSkiAreaType.OPENSTREETMAP_LANDUSE) is format_openstreetmap_landuse
        assert format_ski_area(InputSkiAreaType.SKIMAP_ORG) is format_skimap_org
        with pytest.raises(ValueError):
            format_ski_area("openstreetmap_site")
