"""Tests for run normalization: duplicate geometries, split segments, degenerate results."""

from conftest import line, run_feature
from skiprep.merging.runs import RunNormalizerAccumulator, is_degenerate, merge_run_properties


def normalize(*features: dict) -> list[dict]:
    accumulator = RunNormalizerAccumulator()
    for feature in features:
        accumulator.accept(feature)
    return list(accumulator.results())


def polygon(*ring: tuple[float, float]) -> dict:
    return {"type": "Polygon", "coordinates": [[list(c) for c in ring]]}


class TestMergeRunProperties:
    """Attribute collision rules."""

    def test_first_non_empty_wins(self) -> None:
        primary = run_feature("way/1", line((0, 0), (0, 1)), name=None, ref="A1")["properties"]
        other = run_feature("way/2", line((0, 0), (0, 1)), name="Panorama", ref="B2")["properties"]

        merged = merge_run_properties(primary, other)
        assert merged["name"] == "Panorama"
        assert merged["ref"] == "A1"

    def test_tri_state_flags_are_and_folded(self) -> None:
        primary = run_feature("way/1", line((0, 0), (0, 1)), lit=True, gladed=None, patrolled=None)["properties"]
        other = run_feature("way/2", line((0, 0), (0, 1)), lit=False, gladed=True, patrolled=None)["properties"]

        merged = merge_run_properties(primary, other)
        assert merged["lit"] is False
        assert merged["gladed"] is True
        assert merged["patrolled"] is None

    def test_collections_are_unioned(self) -> None:
        primary = run_feature("way/1", line((0, 0), (0, 1)), uses=["downhill"], skiAreas=["x"])["properties"]
        other = run_feature("way/2", line((0, 0), (0, 1)), uses=["nordic", "downhill"], skiAreas=["y", "x"])["properties"]

        merged = merge_run_properties(primary, other)
        assert merged["uses"] == ["downhill", "nordic"]
        assert merged["skiAreas"] == ["x", "y"]
        assert [s["id"] for s in merged["sources"]] == ["way/1", "way/2"]

    def test_color_follows_difficulty(self) -> None:
        """When the primary has no difficulty, color comes with the other record's difficulty."""
        primary = run_feature("way/1", line((0, 0), (0, 1)))["properties"]
        other = run_feature("way/2", line((0, 0), (0, 1)), difficulty="easy",
                            color="hsl(208, 100%, 33%)", colorName="blue")["properties"]

        merged = merge_run_properties(primary, other)
        assert merged["difficulty"] == "easy"
        assert merged["colorName"] == "blue"


class TestDuplicateGeometries:
    """Features with the same geometry collapse into one."""

    def test_identical_geometry_in_either_direction(self) -> None:
        a = run_feature("way/1", line((7, 46), (7, 46.01)), name="Panorama", lit=False, skiAreas=["x"])
        b = run_feature("way/2", line((7, 46.01), (7, 46)), lit=True, skiAreas=["y"])

        result = normalize(a, b)

        assert len(result) == 1
        properties = result[0]["properties"]
        assert properties["name"] == "Panorama"
        assert properties["lit"] is False
        assert properties["skiAreas"] == ["x", "y"]
        assert [s["id"] for s in properties["sources"]] == ["way/1", "way/2"]
        assert result[0]["geometry"] == a["geometry"]

    def test_same_polygon_collapses(self) -> None:
        ring = ((7, 46), (7.01, 46), (7.01, 46.01), (7, 46))
        result = normalize(run_feature("way/1", polygon(*ring)), run_feature("way/2", polygon(*ring)))
        assert len(result) == 1


class TestSplitSegments:
    """Segments of one run are joined at nodes no other segment touches."""

    def test_two_segments_join_into_one_line(self) -> None:
        a = run_feature("way/1", line((7, 46), (7, 46.01)), difficulty="easy", skiAreas=["x"])
        b = run_feature("way/2", line((7, 46.01), (7, 46.02)), difficulty="easy", skiAreas=["y"])

        result = normalize(a, b)

        assert len(result) == 1
        assert result[0]["geometry"]["coordinates"] == [[7, 46], [7, 46.01], [7, 46.02]]
        properties = result[0]["properties"]
        assert properties["skiAreas"] == ["x", "y"]
        assert [s["id"] for s in properties["sources"]] == ["way/1", "way/2"]
        assert properties["id"] not in ("id-way/1", "id-way/2")
        assert len(properties["id"]) == 40

    def test_segment_drawn_backwards_is_reversed(self) -> None:
        a = run_feature("way/1", line((7, 46), (7, 46.01)))
        b = run_feature("way/2", line((7, 46.02), (7, 46.01)))

        result = normalize(a, b)
        assert result[0]["geometry"]["coordinates"] == [[7, 46], [7, 46.01], [7, 46.02]]

    def test_three_way_junction_is_not_joined(self) -> None:
        """A node touched by three segments separates distinct runs."""
        a = run_feature("way/1", line((7, 46), (7, 46.01)))
        b = run_feature("way/2", line((7, 46.01), (7, 46.02)))
        c = run_feature("way/3", line((7, 46.01), (7.01, 46.02)))

        assert len(normalize(a, b, c)) == 3

    def test_different_attributes_stay_separate(self) -> None:
        a = run_feature("way/1", line((7, 46), (7, 46.01)), difficulty="easy")
        b = run_feature("way/2", line((7, 46.01), (7, 46.02)), difficulty="advanced")

        assert len(normalize(a, b)) == 2

    def test_different_uses_stay_separate(self) -> None:
        a = run_feature("way/1", line((7, 46), (7, 46.01)), uses=["downhill"])
        b = run_feature("way/2", line((7, 46.01), (7, 46.02)), uses=["nordic"])

        assert len(normalize(a, b)) == 2

    def test_oneway_segments_only_join_end_to_start(self) -> None:
        """Opposing oneway segments meeting end to end are different runs."""
        a = run_feature("way/1", line((7, 46), (7, 46.01)), oneway=True)
        b = run_feature("way/2", line((7, 46.02), (7, 46.01)), oneway=True)
        assert len(normalize(a, b)) == 2

        c = run_feature("way/3", line((7, 46.01), (7, 46.02)), oneway=True)
        joined = normalize(a, c)
        assert len(joined) == 1
        assert joined[0]["geometry"]["coordinates"][0] == [7, 46]

    def test_closed_loop_is_joined(self) -> None:
        a = run_feature("way/1", line((7, 46), (7, 46.01)))
        b = run_feature("way/2", line((7, 46.01), (7.01, 46.01)))
        c = run_feature("way/3", line((7.01, 46.01), (7, 46)))

        result = normalize(a, b, c)
        assert len(result) == 1
        assert len(result[0]["geometry"]["coordinates"]) == 4

    def test_output_keeps_first_input_position(self) -> None:
        area = run_feature("way/0", polygon((0, 0), (0.01, 0), (0.01, 0.01), (0, 0)))
        a = run_feature("way/1", line((7, 46), (7, 46.01)))
        other = run_feature("way/9", polygon((1, 1), (1.01, 1), (1.01, 1.01), (1, 1)))
        b = run_feature("way/2", line((7, 46.01), (7, 46.02)))

        result = normalize(area, a, other, b)
        assert [r["properties"]["sources"][0]["id"] for r in result] == ["way/0", "way/1", "way/9"]


class TestDegenerateGeometries:
    """Empty or degenerate results are dropped, not raised."""

    def test_zero_length_line_is_dropped(self) -> None:
        kept = run_feature("way/1", line((7, 46), (7, 46.01)))
        result = normalize(run_feature("way/2", line((7, 47), (7, 47))), kept)
        assert result == [kept]

    def test_missing_geometry_is_dropped(self) -> None:
        assert normalize(run_feature("way/1", None)) == []

    def test_zero_area_polygon_is_dropped(self) -> None:
        assert normalize(run_feature("way/1", polygon((0, 0), (1, 1), (2, 2), (0, 0)))) == []

    def test_is_degenerate(self) -> None:
        assert is_degenerate(None)
        assert is_degenerate({"type": "LineString", "coordinates": []})
        assert is_degenerate({"type": "LineString", "coordinates": [[0, 0]]})
        assert not is_degenerate({"type": "Point", "coordinates": [0, 0]})
        assert not is_degenerate(line((0, 0), (0, 1)))

    def test_accumulator_is_reusable_after_results(self) -> None:
        accumulator = RunNormalizerAccumulator()
        accumulator.accept(run_feature("way/1", line((7, 46), (7, 46.01))))
        assert len(list(accumulator.results())) == 1
        assert list(accumulator.results()) == []
