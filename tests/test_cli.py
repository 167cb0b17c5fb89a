"""Tests for the seisquery command line interface."""

import json
import tomllib

import numpy as np
import pytest

from seisquery.__main__ import create_parser, main
from tests.fixtures.synthetic import (
    FILL_VALUE,
    create_zarr_volume,
    random_data,
    surface_payload,
    well_known_data,
)

pytestmark = pytest.mark.usefixtures("restore_logger")


@pytest.fixture
def volume_path(tmp_path):
    path = tmp_path / "well_known.zarr"
    create_zarr_volume(path, well_known_data())
    return path


@pytest.fixture
def samples_path(tmp_path):
    path = tmp_path / "samples.zarr"
    create_zarr_volume(path, random_data())
    return path


def write_json(path, payload):
    path.write_text(json.dumps(payload))
    return path


class TestParser:
    def test_slice_bounds(self):
        args = create_parser().parse_args(
            ["slice", "v.zarr", "time", "8", "--bound", "inline", "1", "3", "--bound", "k", "0", "1"]
        )
        assert args.lineno == 8.0
        assert args.bound == [["inline", "1", "3"], ["k", "0", "1"]]

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(["--version"])
        assert excinfo.value.code == 0
        assert "seisquery" in capsys.readouterr().out

    def test_no_command(self, capsys):
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out


class TestInfo:
    def test_summary(self, volume_path, capsys):
        assert main(["info", str(volume_path)]) == 0
        out = capsys.readouterr().out
        assert "Inline" in out
        assert "Corner 3" in out

    def test_json(self, volume_path, capsys):
        assert main(["-q", "info", str(volume_path), "--json"]) == 0
        meta = json.loads(capsys.readouterr().out)
        assert meta["crs"] == "utmXX"
        assert meta["boundingBox"]["ilxl"][2] == [5, 11]

    def test_missing_volume(self, tmp_path, capsys):
        assert main(["info", str(tmp_path / "missing.zarr")]) == 1
        assert "Could not read input" in capsys.readouterr().out


class TestSlice:
    def test_write_npy(self, volume_path, tmp_path):
        output = tmp_path / "slice.npy"
        assert main(["slice", str(volume_path), "inline", "3", "-o", str(output)]) == 0
        np.testing.assert_array_equal(np.load(output), [[108, 109, 110, 111], [112, 113, 114, 115]])

    def test_bounds(self, volume_path, tmp_path):
        output = tmp_path / "slice.npy"
        argv = ["slice", str(volume_path), "time", "8", "--bound", "i", "1", "2", "-o", str(output)]
        assert main(argv) == 0
        np.testing.assert_array_equal(np.load(output), [[109, 113], [117, 121]])

    def test_out_of_range(self, volume_path, capsys):
        assert main(["slice", str(volume_path), "inline", "7"]) == 1
        assert "out_of_range" in capsys.readouterr().out

    def test_unit_mismatch(self, volume_path, capsys):
        assert main(["slice", str(volume_path), "depth", "8"]) == 1
        assert "unit_mismatch" in capsys.readouterr().out


class TestFence:
    def test_point_list(self, volume_path, tmp_path):
        points = write_json(tmp_path / "points.json", [[4, 10.5], [1, 10]])
        output = tmp_path / "fence.npy"
        argv = ["fence", str(volume_path), str(points), "--coordinate-system", "ilxl", "-o", str(output)]
        assert main(argv) == 0
        np.testing.assert_array_equal(
            np.load(output), [[120, 121, 122, 123], [100, 101, 102, 103]]
        )

    def test_request_with_fillvalue(self, volume_path, tmp_path):
        request = write_json(
            tmp_path / "fence.json",
            {"coordinateSystem": "ilxl", "coordinates": [[5, 9.5], [6, 11.25]], "fillValue": FILL_VALUE},
        )
        output = tmp_path / "fence.npy"
        assert main(["fence", str(volume_path), str(request), "-o", str(output)]) == 0
        np.testing.assert_array_equal(
            np.load(output), np.float32([[116, 117, 118, 119], [FILL_VALUE] * 4])
        )

    def test_invalid_pair(self, volume_path, tmp_path, capsys):
        points = write_json(tmp_path / "points.json", [[1, 0], [1]])
        assert main(["fence", str(volume_path), str(points)]) == 1
        assert "Invalid request" in capsys.readouterr().out

    def test_malformed_json(self, volume_path, tmp_path, capsys):
        points = tmp_path / "points.json"
        points.write_text("[[1, 0],")
        assert main(["fence", str(volume_path), str(points)]) == 1
        assert "Could not read input" in capsys.readouterr().out


class TestHorizon:
    def test_write_npy(self, volume_path, tmp_path):
        request = write_json(
            tmp_path / "horizon.json",
            {"surface": surface_payload(np.full((3, 2), 8.0)), "above": 4, "below": 4},
        )
        output = tmp_path / "horizon.npy"
        assert main(["horizon", str(volume_path), str(request), "-o", str(output)]) == 0
        np.testing.assert_array_equal(np.load(output), well_known_data()[:, :, 0:3])

    def test_missing_surface(self, volume_path, tmp_path, capsys):
        request = write_json(tmp_path / "horizon.json", {"above": 4})
        assert main(["horizon", str(volume_path), str(request)]) == 1
        assert "Invalid request" in capsys.readouterr().out


class TestAttribute:
    def test_along_surface(self, samples_path, tmp_path):
        request = write_json(
            tmp_path / "attribute.json",
            {
                "surface": surface_payload(np.full((3, 2), 20.0)),
                "above": 8,
                "below": 8,
                "attributes": ["mean", "max"],
            },
        )
        output = tmp_path / "maps.npz"
        assert main(["attribute", str(samples_path), str(request), "-o", str(output)]) == 0
        maps = np.load(output)
        assert sorted(maps.files) == ["max", "mean"]
        np.testing.assert_allclose(maps["max"], random_data()[:, :, 2:7].max(axis=-1), rtol=1e-6)

    def test_between_surfaces(self, samples_path, tmp_path):
        request = write_json(
            tmp_path / "attribute.json",
            {
                "primarySurface": surface_payload(np.full((3, 2), 28.0)),
                "secondarySurface": surface_payload(np.full((3, 2), 20.0)),
                "attributes": ["min"],
            },
        )
        output = tmp_path / "maps.npz"
        assert main(["attribute", str(samples_path), str(request), "-o", str(output)]) == 0
        np.testing.assert_allclose(
            np.load(output)["min"], random_data()[:, :, 4:7].min(axis=-1), rtol=1e-6
        )

    def test_unknown_attribute(self, samples_path, tmp_path, capsys):
        request = write_json(
            tmp_path / "attribute.json",
            {"surface": surface_payload(np.full((3, 2), 20.0)), "attributes": ["energy"]},
        )
        assert main(["attribute", str(samples_path), str(request)]) == 1
        assert "invalid_argument" in capsys.readouterr().out


class TestSettings:
    def test_write_current(self, tmp_path):
        output = tmp_path / "settings.toml"
        assert main(["settings", "-o", str(output)]) == 0
        with open(output, "rb") as f:
            data = tomllib.load(f)
        assert data["horizon"]["rows_per_chunk"] == 256

    def test_write_defaults(self, tmp_path):
        output = tmp_path / "settings.toml"
        assert main(["settings", "--defaults", "-o", str(output)]) == 0
        assert "# seisquery settings" in output.read_text()

    def test_show(self, capsys):
        assert main(["-q", "settings"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["attribute"]["interpolation_margin"] == 2
