"""Tests for GeoJSON geometry helpers.

Coordinates near the equator keep the expected values simple:
0.001 degrees of latitude is about 111.2 meters.
"""

import pytest

from skiprep.transforms.geometry import (
    EARTH_RADIUS_M,
    along,
    chunk_start_points,
    destination,
    haversine_distance_m,
    is_ring_geometry,
    line_length_m,
    vertex_sequences,
)
from skiprep.types import UnsupportedGeometryError

ONE_DEGREE_M = EARTH_RADIUS_M * 3.141592653589793 / 180


class TestDistances:
    """Haversine distance and forward geodesic."""

    def test_one_degree_of_latitude(self) -> None:
        assert haversine_distance_m([0, 0], [0, 1]) == pytest.approx(ONE_DEGREE_M)

    def test_ignores_elevation_component(self) -> None:
        assert haversine_distance_m([0, 0, 100], [0, 1, 2000]) == pytest.approx(ONE_DEGREE_M)

    def test_destination_east(self) -> None:
        lng, lat = destination([0, 0], 90, 1000)
        assert lat == pytest.approx(0, abs=1e-9)
        assert lng == pytest.approx(1000 / ONE_DEGREE_M)

    def test_line_length(self) -> None:
        assert line_length_m([[0, 0], [0, 0.001], [0, 0.002]]) == pytest.approx(2 * ONE_DEGREE_M / 1000)

    def test_along_clamps_to_last_vertex(self) -> None:
        assert along([[0, 0], [0, 0.001]], 10_000) == [0, 0.001]

    def test_along_interpolates(self) -> None:
        lng, lat = along([[0, 0], [0, 0.001]], ONE_DEGREE_M / 2000)
        assert lat == pytest.approx(0.0005)
        assert lng == pytest.approx(0, abs=1e-12)


class TestChunkStartPoints:
    """Profile sample positions."""

    def test_start_of_each_chunk_plus_end(self) -> None:
        """~111 m at 25 m resolution: starts at 0, 25, 50, 75, 100 m, then the end."""
        points = chunk_start_points([[0, 0], [0, 0.001]], 25)
        assert len(points) == 6
        assert points[0] == [0, 0]
        assert points[-1] == [0, 0.001]
        assert haversine_distance_m(points[0], points[1]) == pytest.approx(25)

    def test_line_shorter_than_one_chunk(self) -> None:
        assert chunk_start_points([[0, 0], [0, 0.0001]], 25) == [[0, 0], [0, 0.0001]]

    def test_exact_multiple_has_no_empty_chunk(self) -> None:
        length = ONE_DEGREE_M / 1000
        points = chunk_start_points([[0, 0], [0, 0.001]], length / 2)
        assert len(points) == 3

    def test_too_few_coordinates(self) -> None:
        assert chunk_start_points([[0, 0]], 25) == []

    def test_drops_existing_elevation(self) -> None:
        points = chunk_start_points([[0, 0, 1500], [0, 0.0001, 1510]], 25)
        assert all(len(p) == 2 for p in points)

    def test_rejects_non_positive_resolution(self) -> None:
        with pytest.raises(ValueError):
            chunk_start_points([[0, 0], [0, 1]], 0)


class TestVertexSequences:
    """Flattening geometries into their vertex lists."""

    def test_point(self) -> None:
        geometry = {"type": "Point", "coordinates": [7, 46]}
        assert vertex_sequences(geometry) == [[[7, 46]]]
        assert vertex_sequences(geometry)[0][0] is geometry["coordinates"]

    def test_sequences_share_the_geometry_lists(self) -> None:
        geometry = {"type": "LineString", "coordinates": [[0, 0], [1, 1]]}
        vertex_sequences(geometry)[0][1].append(5)
        assert geometry["coordinates"][1] == [1, 1, 5]

    def test_counts(self) -> None:
        multipolygon = {
            "type": "MultiPolygon",
            "coordinates": [
                [[[0, 0], [1, 0], [1, 1], [0, 0]], [[0.2, 0.2], [0.4, 0.2], [0.4, 0.4], [0.2, 0.2]]],
                [[[5, 5], [6, 5], [6, 6], [5, 5]]],
            ],
        }
        sequences = vertex_sequences(multipolygon)
        assert [len(sequence) for sequence in sequences] == [4, 4, 4]
        multiline = {"type": "MultiLineString", "coordinates": [[[0, 0], [1, 1]], [[2, 2], [3, 3], [4, 4]]]}
        assert [len(sequence) for sequence in vertex_sequences(multiline)] == [2, 3]

    def test_unsupported_geometry(self) -> None:
        with pytest.raises(UnsupportedGeometryError, match="GeometryCollection"):
            vertex_sequences({"type": "GeometryCollection", "geometries": []})

    def test_is_ring_geometry(self) -> None:
        assert is_ring_geometry({"type": "Polygon"})
        assert is_ring_geometry({"type": "MultiPolygon"})
        assert not is_ring_geometry({"type": "LineString"})
