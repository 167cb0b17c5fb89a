"""Tests for attribute reducers, output layout, attribute queries and surface alignment."""

import numpy as np
import pytest

from seisquery import query
from seisquery.core.exceptions import InvalidArgumentError, UnsupportedGeometryError
from seisquery.horizon import (
    REDUCERS,
    AttributeKind,
    OutputLayout,
    align_surfaces,
    bounding_surfaces,
    compute_cell,
    resample_trace,
)
from seisquery.horizon.attributes import bind_attributes
from tests.fixtures.synthetic import (
    FILL_VALUE,
    make_surface,
    random_data,
    surface_payload,
)


def constant_surface(value, shape=(3, 2)):
    return make_surface(np.full(shape, value, dtype=np.float32))


def reduce(kind, values, index=0):
    return REDUCERS[AttributeKind.parse(kind)](np.asarray(values, dtype=np.float64), index)


class TestReducers:
    @pytest.mark.parametrize(
        "kind,expected",
        [
            ("min", 1.0),
            ("max", 4.0),
            ("mean", 2.5),
            ("median", 2.5),
            ("rms", np.sqrt(7.5)),
            ("var", 1.25),
            ("sd", np.sqrt(1.25)),
            ("minat", 0.0),
            ("maxat", 3.0),
            ("samplevalue", 2.0),
        ],
    )
    def test_positive_trace(self, kind, expected):
        assert reduce(kind, [1, 2, 3, 4], index=1) == pytest.approx(expected)

    @pytest.mark.parametrize(
        "kind,expected",
        [
            ("meanpos", 2.0),
            ("meanneg", -4.0),
            ("sumpos", 4.0),
            ("sumneg", -4.0),
            ("maxabs", 4.0),
            ("maxabsat", 0.0),
            ("meanabs", 8.0 / 3.0),
        ],
    )
    def test_mixed_sign_trace(self, kind, expected):
        assert reduce(kind, [-4, 1, 3], index=0) == pytest.approx(expected)

    def test_mean_of_empty_selection_is_zero(self):
        assert reduce("meanneg", [1, 2, 3]) == 0.0
        assert reduce("sumneg", [1, 2, 3]) == 0.0

    def test_every_kind_has_reducer(self):
        assert set(REDUCERS) == set(AttributeKind)

    def test_parse(self):
        assert AttributeKind.parse("Value") is AttributeKind.VALUE
        assert AttributeKind.parse(" RMS ") is AttributeKind.RMS
        with pytest.raises(InvalidArgumentError, match="invalid attribute 'energy'"):
            AttributeKind.parse("energy")


class TestOutputLayout:
    def test_offsets(self):
        layout = OutputLayout(2, 3, 2)
        assert layout.size == 12
        assert layout.offset(0, 0, 0) == 0
        assert layout.offset(1, 2, 1) == 11
        assert layout.offset(1, 0, 1) == 7

    @pytest.mark.parametrize("position", [(2, 0, 0), (0, 3, 0), (0, 0, 2), (-1, 0, 0)])
    def test_offset_outside_layout(self, position):
        with pytest.raises(IndexError):
            OutputLayout(2, 3, 2).offset(*position)

    def test_views_share_buffer(self):
        layout = OutputLayout(2, 3, 2)
        buffer = layout.allocate()
        views = layout.views(buffer)
        views[1][2, 0] = 5.0
        assert buffer[layout.offset(1, 2, 0)] == 5.0

    def test_empty_layout_rejected(self):
        with pytest.raises(InvalidArgumentError):
            OutputLayout(0, 3, 2)


class TestComputeCell:
    def test_missing_cell(self):
        attributes = bind_attributes(["mean", "minat", "max", "maxat", "maxabsat"])
        layout = OutputLayout(len(attributes), 1, 1)
        buffer = layout.allocate()
        compute_cell(None, 0, attributes, buffer, layout, 0, 0, FILL_VALUE)
        np.testing.assert_array_equal(buffer, np.float32([FILL_VALUE, 0, FILL_VALUE, 0, 0]))

    def test_present_cell(self):
        attributes = bind_attributes(["max", "samplevalue"])
        layout = OutputLayout(2, 2, 2)
        buffer = layout.allocate()
        compute_cell(np.array([3.0, -1.0, 7.0]), 1, attributes, buffer, layout, 1, 0)
        assert buffer[layout.offset(0, 1, 0)] == 7.0
        assert buffer[layout.offset(1, 1, 0)] == -1.0


class TestResampleTrace:
    def test_single_sample(self):
        np.testing.assert_array_equal(resample_trace([3.0], [4.0], [2.0, 6.0]), [3.0, 3.0])

    def test_two_samples_linear(self):
        np.testing.assert_allclose(resample_trace([0.0, 4.0], [0.0, 4.0], [1.0, 3.0]), [1.0, 3.0])

    def test_cubic_reproduces_cubic(self):
        x = np.arange(6, dtype=np.float64)
        out = np.array([0.5, 2.25, 4.75])
        np.testing.assert_allclose(resample_trace(x**3, x, out), out**3, atol=1e-9)

    def test_length_mismatch(self):
        with pytest.raises(InvalidArgumentError):
            resample_trace([1.0, 2.0], [0.0], [0.5])


class TestAttributeAlongSurface:
    def test_matches_numpy_reductions(self, samples10):
        result = query.attribute_along_surface(
            samples10, constant_surface(20), 8, 8, ["mean", "max", "samplevalue", "rms"]
        )
        window = random_data()[:, :, 2:7].astype(np.float64)
        maps = result.maps
        np.testing.assert_allclose(maps["mean"], window.mean(axis=-1), rtol=1e-5, atol=1e-5)
        np.testing.assert_allclose(maps["max"], window.max(axis=-1), rtol=1e-6)
        np.testing.assert_allclose(maps["samplevalue"], random_data()[:, :, 4], rtol=1e-6)
        np.testing.assert_allclose(
            maps["rms"], np.sqrt((window**2).mean(axis=-1)), rtol=1e-5
        )

    def test_payload_surface(self, samples10):
        result = query.attribute_along_surface(
            samples10, surface_payload(np.full((3, 2), 20.0)), 4, 4, ["min"]
        )
        window = random_data()[:, :, 3:6]
        np.testing.assert_allclose(result.maps["min"], window.min(axis=-1), rtol=1e-6)

    def test_missing_cells_get_fill(self, samples10):
        values = np.full((4, 2), 20.0, dtype=np.float32)
        values[0, 1] = FILL_VALUE
        result = query.attribute_along_surface(
            samples10, make_surface(values), 8, 8, ["mean", "maxat"]
        )
        mean, maxat = result.maps["mean"], result.maps["maxat"]
        assert mean[0, 1] == np.float32(FILL_VALUE)
        np.testing.assert_array_equal(mean[3], np.float32([FILL_VALUE, FILL_VALUE]))
        np.testing.assert_array_equal(maxat[3], [0, 0])

    def test_supersampled_ramp(self, ramp10):
        result = query.attribute_along_surface(ramp10, constant_surface(20), 8, 8, ["mean", "min"], stepsize=2)
        i, j = np.meshgrid(np.arange(3), np.arange(2), indexing="ij")
        base = 10 * i + 5 * j
        np.testing.assert_allclose(result.maps["mean"], base + 4, atol=1e-4)
        np.testing.assert_allclose(result.maps["min"], base + 2, atol=1e-4)

    def test_off_grid_reference(self, ramp10):
        result = query.attribute_along_surface(ramp10, constant_surface(22), 4, 4, ["samplevalue"])
        i, j = np.meshgrid(np.arange(3), np.arange(2), indexing="ij")
        np.testing.assert_allclose(result.maps["samplevalue"], 10 * i + 5 * j + 4.5, atol=1e-4)

    def test_layout(self, samples10):
        result = query.attribute_along_surface(samples10, constant_surface(20), 4, 4, ["min", "max"])
        payloads = result.to_bytes()
        assert len(payloads) == 2
        assert all(len(p) == 3 * 2 * 4 for p in payloads)
        assert query.attribute_metadata(3, 2) == {"format": "<f4", "shape": [3, 2]}

    def test_unknown_attribute(self, samples10):
        with pytest.raises(InvalidArgumentError, match="invalid attribute"):
            query.attribute_along_surface(samples10, constant_surface(20), 4, 4, ["energy"])

    def test_no_attributes(self, samples10):
        with pytest.raises(InvalidArgumentError):
            query.attribute_along_surface(samples10, constant_surface(20), 4, 4, [])

    def test_negative_window(self, samples10):
        with pytest.raises(InvalidArgumentError, match="Above and below must be positive"):
            query.attribute_along_surface(samples10, constant_surface(20), -4, 4, ["mean"])


class TestAttributeBetweenSurfaces:
    def test_interval(self, samples10):
        result = query.attribute_between_surfaces(
            samples10, constant_surface(20), constant_surface(28), ["mean", "samplevalue"]
        )
        window = random_data()[:, :, 4:7].astype(np.float64)
        np.testing.assert_allclose(result.maps["mean"], window.mean(axis=-1), rtol=1e-5, atol=1e-5)
        np.testing.assert_allclose(result.maps["samplevalue"], random_data()[:, :, 4], rtol=1e-6)

    def test_surface_order_does_not_change_interval(self, samples10):
        a = query.attribute_between_surfaces(
            samples10, constant_surface(20), constant_surface(28), ["mean", "max"]
        )
        b = query.attribute_between_surfaces(
            samples10, constant_surface(28), constant_surface(20), ["mean", "max"]
        )
        np.testing.assert_allclose(a.buffer, b.buffer, rtol=1e-6)

    def test_missing_in_secondary(self, samples10):
        secondary = make_surface([[28, 28], [28, 28], [FILL_VALUE, 28]])
        result = query.attribute_between_surfaces(
            samples10, constant_surface(20), secondary, ["mean"]
        )
        assert result.maps["mean"][2, 0] == np.float32(FILL_VALUE)

    def test_different_grids(self, samples10):
        with pytest.raises(UnsupportedGeometryError):
            query.attribute_between_surfaces(
                samples10, constant_surface(20), constant_surface(28, (2, 2)), ["mean"]
            )


class TestAlignment:
    def test_majority_vote(self):
        primary = make_surface([[1, 1], [1, 9]])
        secondary = make_surface([[2, 2], [2, 3]])
        assert align_surfaces(primary, secondary).primary_is_top
        assert not align_surfaces(secondary, primary).primary_is_top

    def test_tie_makes_primary_top(self):
        primary = make_surface([[1, 5], [3, 3]])
        secondary = make_surface([[2, 4], [3, 3]])
        assert align_surfaces(primary, secondary).primary_is_top
        assert align_surfaces(secondary, primary).primary_is_top

    def test_merged_surface(self):
        primary = make_surface([[1, 5], [3, FILL_VALUE]])
        secondary = make_surface([[2, 4], [-1, 7]], fillvalue=-1)
        result = align_surfaces(primary, secondary)
        np.testing.assert_array_equal(
            result.merged.values, np.float32([[1, 4], [FILL_VALUE, FILL_VALUE]])
        )
        assert result.merged.fillvalue == np.float32(FILL_VALUE)

    def test_merged_surface_independent_of_order(self):
        a = make_surface([[1, 5], [3, FILL_VALUE]])
        b = make_surface([[2, 4], [-1, 7]], fillvalue=-1)
        ab, ba = align_surfaces(a, b), align_surfaces(b, a)
        np.testing.assert_array_equal(ab.merged.values, ba.merged.values)
        assert ab.merged.fillvalue == ba.merged.fillvalue
        np.testing.assert_array_equal(ab.merged.missing_mask(), [[False, False], [True, True]])

    def test_query_accepts_payloads(self):
        result = query.align_surfaces(surface_payload([[1, 2]]), surface_payload([[3, 4]]))
        assert result.primary_is_top

    def test_different_grids(self):
        with pytest.raises(UnsupportedGeometryError):
            align_surfaces(make_surface([[1, 2]]), make_surface([[1], [2]]))

    def test_bounding_surfaces(self):
        primary = make_surface([[1, 5], [3, FILL_VALUE]])
        secondary = make_surface([[2, 4], [3, 7]])
        top, bottom = bounding_surfaces(primary, secondary)
        np.testing.assert_array_equal(top.values, np.float32([[1, 4], [3, FILL_VALUE]]))
        np.testing.assert_array_equal(bottom.values, np.float32([[2, 5], [3, FILL_VALUE]]))

    def test_bounding_surfaces_mixed_fillvalues(self):
        a = make_surface([[1, 5], [3, -1]], fillvalue=-1)
        b = make_surface([[2, 4], [FILL_VALUE, 7]])
        for primary, secondary in ((a, b), (b, a)):
            top, bottom = bounding_surfaces(primary, secondary)
            np.testing.assert_array_equal(top.values, np.float32([[1, 4], [FILL_VALUE, FILL_VALUE]]))
            np.testing.assert_array_equal(bottom.values, np.float32([[2, 5], [FILL_VALUE, FILL_VALUE]]))
            assert top.fillvalue == bottom.fillvalue == np.float32(FILL_VALUE)
