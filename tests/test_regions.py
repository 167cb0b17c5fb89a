"""Tests for validation rules, slice regions and fence regions."""

import numpy as np
import pytest

from seisquery import query
from seisquery.config.models import SliceBoundModel
from seisquery.core.exceptions import (
    InvalidArgumentError,
    OutOfRangeError,
    UnitMismatchError,
)
from seisquery.core.validation import (
    check_positive_window,
    check_vertical_window,
    in_horizontal_range,
    unit_matches,
)
from seisquery.geometry.axis import AxisRole, Direction
from seisquery.geometry.metadata import VolumeMetadata
from seisquery.regions import Bound, SubVolume, build_fence, build_slice
from tests.fixtures.synthetic import make_description


def bound(direction, lower, upper):
    return SliceBoundModel(direction=direction, lower=lower, upper=upper)


class TestUnitValidation:
    @pytest.fixture
    def time_metadata(self):
        description = make_description(nsamples=100, sample_min=0.0, stepsize=4.0)
        return VolumeMetadata.from_description(description)

    def test_time_slice_on_time_axis(self, time_metadata):
        region = build_slice(time_metadata, "time", 50)
        assert region.subvolume.sample.size == 1

    def test_depth_slice_on_time_axis(self, time_metadata):
        with pytest.raises(UnitMismatchError, match="Cannot fetch depth slice for volume with vertical axis unit: ms"):
            build_slice(time_metadata, "depth", 50)

    def test_sample_slice_needs_unitless_axis(self, time_metadata):
        with pytest.raises(UnitMismatchError):
            build_slice(time_metadata, "sample", 40)

    def test_index_direction_accepts_any_unit(self, time_metadata):
        region = build_slice(time_metadata, "k", 10)
        assert region.index == 10

    @pytest.mark.parametrize(
        "direction,unit,expected",
        [
            ("depth", "m", True),
            ("depth", "ftUS", True),
            ("depth", "ms", False),
            ("time", "s", True),
            ("time", "m", False),
            ("sample", "unitless", True),
            ("inline", "ms", True),
        ],
    )
    def test_unit_matches(self, direction, unit, expected):
        assert unit_matches(Direction(direction), unit) is expected


class TestBoundaryRules:
    def test_horizontal_half_voxel(self, metadata):
        axis = metadata.iline
        assert in_horizontal_range(-0.5, axis)
        assert not in_horizontal_range(-0.5001, axis)
        assert in_horizontal_range(2.4999, axis)
        assert not in_horizontal_range(2.5, axis)

    def test_horizontal_mask(self, metadata):
        mask = in_horizontal_range(np.array([-1.0, 0.0, 1.0, 3.0]), metadata.xline)
        np.testing.assert_array_equal(mask, [False, True, True, False])

    def test_vertical_window_message(self, metadata):
        with pytest.raises(OutOfRangeError, match="out of vertical bounds at row: 1 col: 2"):
            check_vertical_window(-1.0, 2.0, metadata.sample, 1, 2)

    def test_negative_window(self):
        with pytest.raises(InvalidArgumentError, match="Above and below must be positive"):
            check_positive_window(-1.0, 4.0)


class TestSubVolume:
    def test_full(self, metadata):
        subvolume = SubVolume.full(metadata)
        assert subvolume.shape == (3, 2, 4)
        assert subvolume.nbytes == 3 * 2 * 4 * 4

    def test_intersect(self):
        assert Bound(0, 5).intersect(Bound(3, 10)) == Bound(3, 5)
        assert Bound(0, 2).intersect(Bound(4, 6)).size == 0

    def test_validate(self, metadata):
        subvolume = SubVolume.full(metadata).with_bound(AxisRole.INLINE, Bound(0, 4))
        with pytest.raises(OutOfRangeError):
            subvolume.validate(metadata)


class TestSlice:
    @pytest.mark.parametrize(
        "direction,lineno,index",
        [
            ("inline", 3, 1),
            ("i", 1, 1),
            ("crossline", 10, 0),
            ("j", 0, 0),
            ("time", 8, 1),
            ("k", 1, 1),
        ],
    )
    def test_line_index(self, metadata, direction, lineno, index):
        assert build_slice(metadata, direction, lineno).index == index

    @pytest.mark.parametrize(
        "direction,lineno",
        [
            ("inline", 0),
            ("inline", 6),
            ("crossline", 9),
            ("crossline", 12),
            ("i", -1),
            ("i", 3),
            ("time", 0),
            ("time", 20),
        ],
    )
    def test_out_of_bounds(self, metadata, direction, lineno):
        with pytest.raises(OutOfRangeError, match="Invalid lineno"):
            build_slice(metadata, direction, lineno)

    def test_off_grid_lineno_snaps(self, metadata):
        assert build_slice(metadata, "inline", 2).index == 1
        assert build_slice(metadata, "inline", 3.9).index == 1
        assert build_slice(metadata, "time", 10.5).index == 2

    def test_off_grid_lineno_strict(self, metadata):
        with pytest.raises(OutOfRangeError, match=r"Invalid lineno: 2, valid range: \[1:5:2\]"):
            build_slice(metadata, "inline", 2, strict_lineno=True)

    def test_strict_lineno_from_settings(self, metadata):
        from seisquery.settings import get_settings

        get_settings().query.strict_lineno = True
        with pytest.raises(OutOfRangeError):
            build_slice(metadata, "inline", 2)

    def test_invalid_direction(self, metadata):
        with pytest.raises(InvalidArgumentError):
            build_slice(metadata, "offset", 1)

    def test_bound_on_slice_axis_ignored(self, metadata):
        region = build_slice(metadata, "time", 4, [bound("time", 8, 12), bound("k", 0, 1)])
        assert region.shape == [3, 2]

    def test_single_constraint(self, metadata):
        region = build_slice(metadata, "time", 4, [bound("i", 0, 1)])
        assert region.shape == [2, 2]
        assert region.y_axis.as_dict() == {
            "annotation": "Inline",
            "min": 1,
            "max": 3,
            "samples": 2,
            "stepsize": 2,
            "unit": "unitless",
        }
        np.testing.assert_allclose(
            region.geospatial, [[2, 0], [8, 4], [6, 7], [0, 3]], atol=1e-9
        )

    def test_two_constraints_different_systems(self, metadata):
        region = build_slice(metadata, "j", 0, [bound("inline", 1, 3), bound("k", 1, 2)])
        assert region.subvolume.shape == (2, 1, 2)
        assert (region.x_axis.min, region.x_axis.max) == (8, 12)
        np.testing.assert_allclose(region.geospatial, [[2, 0], [8, 4]], atol=1e-9)

    def test_last_bound_wins(self, metadata):
        region = build_slice(metadata, "inline", 5, [bound("time", 4, 8), bound("time", 12, 16)])
        assert region.subvolume.sample == Bound(2, 4)

    def test_bound_clipped_to_volume(self, metadata):
        region = build_slice(metadata, "inline", 5, [bound("time", 8, 20)])
        assert region.subvolume.sample == Bound(1, 4)

    def test_bound_outside_volume(self, metadata):
        with pytest.raises(OutOfRangeError, match="does not intersect"):
            build_slice(metadata, "inline", 5, [bound("time", 20, 40)])

    def test_bound_unit_mismatch(self, metadata):
        with pytest.raises(UnitMismatchError):
            build_slice(metadata, "inline", 5, [bound("depth", 8, 12)])

    def test_inverted_bound(self, metadata):
        with pytest.raises(InvalidArgumentError, match="larger than upper"):
            build_slice(metadata, "inline", 5, [{"direction": "time", "lower": 12, "upper": 8}])

    @pytest.mark.parametrize(
        "direction,lineno,expected",
        [
            ("inline", 3, [[8, 4], [6, 7]]),
            ("crossline", 10, [[2, 0], [14, 8]]),
            ("time", 4, [[2, 0], [14, 8], [12, 11], [0, 3]]),
        ],
    )
    def test_geospatial(self, metadata, direction, lineno, expected):
        region = build_slice(metadata, direction, lineno)
        np.testing.assert_allclose(region.geospatial, expected, atol=1e-9)

    def test_metadata_axis_ordering(self, metadata):
        inline = build_slice(metadata, "inline", 1).as_dict()
        assert (inline["x"]["annotation"], inline["y"]["annotation"]) == ("Time", "Crossline")
        crossline = build_slice(metadata, "crossline", 10).as_dict()
        assert (crossline["x"]["annotation"], crossline["y"]["annotation"]) == ("Time", "Inline")
        time = build_slice(metadata, "time", 4).as_dict()
        assert (time["x"]["annotation"], time["y"]["annotation"]) == ("Crossline", "Inline")
        assert time["format"] == "<f4"
        assert time["shape"] == [3, 2]


class TestFence:
    def test_index_points(self, metadata):
        region = build_fence(metadata, "ij", [[1, 0], [2, 1]])
        np.testing.assert_allclose(region.coordinates, [[1.5, 0.5, 0], [2.5, 1.5, 0]])
        assert region.shape == [2, 4]
        assert region.valid.all()

    def test_world_points(self, metadata):
        region = build_fence(metadata, "cdp", [[8, 4], [14, 8]])
        np.testing.assert_allclose(region.coordinates[:, :2], [[1.5, 0.5], [2.5, 0.5]], atol=1e-9)

    @pytest.mark.parametrize(
        "system,points,dimension",
        [
            ("ij", [[-0.6, 10]], 0),
            ("ilxl", [[5, 9.5], [6, 11.25]], 0),
            ("ilxl", [[5.5, 11.5], [3, 10]], 1),
            ("cdp", [[700, 1200]], 0),
            ("ilxl", [[0, 11], [5.9999, 10], [0.0001, 9.4999]], 1),
            ("ij", [[-1, 0], [-3, 0]], 0),
        ],
    )
    def test_out_of_bounds(self, metadata, system, points, dimension):
        with pytest.raises(OutOfRangeError, match=f"is out of boundaries in dimension {dimension}."):
            build_fence(metadata, system, points)

    def test_out_of_bounds_with_fillvalue(self, metadata):
        region = build_fence(metadata, "ilxl", [[5, 9.5], [6, 11.25]], fillvalue=-999.25)
        np.testing.assert_array_equal(region.valid, [True, False])

    def test_invalid_pair(self, metadata):
        with pytest.raises(InvalidArgumentError, match=r"invalid coordinate \[1, 1, 0\] at position 1"):
            build_fence(metadata, "ij", [[1, 0], [1, 1, 0], [0, 0]])

    @pytest.mark.parametrize("points", [[0.0, 1.0], 3.0, [[1, 0, 2], [0, 1, 2]]])
    def test_not_a_list_of_pairs(self, metadata, points):
        with pytest.raises(InvalidArgumentError):
            build_fence(metadata, "ij", points)

    def test_non_numeric_point(self, metadata):
        with pytest.raises(InvalidArgumentError, match="must be numeric"):
            build_fence(metadata, "ij", [[0, 0], ["a", 1]])

    def test_flat_list_through_query(self, well_known):
        with pytest.raises(InvalidArgumentError, match="list of \[x y\] pairs"):
            query.fence(well_known, "ij", [0.0, 1.0])

    def test_empty_fence(self, metadata):
        with pytest.raises(InvalidArgumentError):
            build_fence(metadata, "ij", [])

    def test_unknown_coordinate_system(self, metadata):
        with pytest.raises(InvalidArgumentError):
            build_fence(metadata, "xy", [[0, 0]])
