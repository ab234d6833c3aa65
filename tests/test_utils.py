"""Tests for HDF5 swath and grid I/O."""

import pytest
import numpy as np
import h5py


class TestHDF5Inspection:
    """Tests for HDF5 file inspection."""

    def test_inspect_swath(self, sample_swath_hdf5):
        """Test the pixel layout reported for a swath file."""
        from behr_regrid.utils import inspect_hdf5

        info = inspect_hdf5(sample_swath_hdf5)

        assert info["kind"] == "swath"
        assert info["n_pixels"] == 2
        assert info["pixel_shape"] == (2,)
        assert info["missing_fields"] == []
        names = [ds["name"] for ds in info["datasets"]]
        assert "Swath/Loncorn" in names

    def test_inspect_swath_missing_fields(self, tmp_path):
        """Test that BEHR fields absent from a swath are listed."""
        from behr_regrid.utils import inspect_hdf5, write_swath_hdf5

        path = write_swath_hdf5(
            {"Loncorn": np.zeros((4, 3, 5)), "Latcorn": np.zeros((4, 3, 5))},
            tmp_path / "partial.h5",
        )

        info = inspect_hdf5(path)

        assert info["n_pixels"] == 15
        assert "BEHRColumnAmountNO2Trop" in info["missing_fields"]
        assert "Loncorn" not in info["missing_fields"]

    def test_inspect_grid(self, sample_swath_hdf5, tmp_path):
        """Test the bounds, primary field and extent reported for a grid file."""
        from behr_regrid.add2grid import GridSpec, add2grid
        from behr_regrid.config import PRIMARY_FIELD
        from behr_regrid.utils import inspect_hdf5, read_swath_hdf5, write_grid_hdf5

        spec = GridSpec(0.0, 10.0, 0.0, 8.0, 1.0)
        grid = add2grid(read_swath_hdf5(sample_swath_hdf5), spec)
        path = write_grid_hdf5(grid, tmp_path / "grid.h5", grid_spec=spec)

        info = inspect_hdf5(path)

        assert info["kind"] == "grid"
        assert info["bounds"] == (1, 10, 1, 8)
        assert info["primary_field"] == PRIMARY_FIELD
        assert info["n_populated"] == 1
        assert info["grid_spec"] == spec.as_dict()

    def test_inspect_unknown_file(self, tmp_path):
        """Test a file that is neither a swath nor a grid."""
        from behr_regrid.utils import inspect_hdf5

        path = tmp_path / "other.h5"
        with h5py.File(path, "w") as f:
            f.create_dataset("data", data=np.arange(3))

        info = inspect_hdf5(path)

        assert info["kind"] is None
        assert info["datasets"][0]["name"] == "data"

    def test_print_file_summary(self, sample_swath_hdf5, capsys):
        """Test the printed summary of a swath file."""
        from behr_regrid.utils import inspect_hdf5, print_file_summary

        print_file_summary(inspect_hdf5(sample_swath_hdf5))

        out = capsys.readouterr().out
        assert "Pixels: 2" in out
        assert "Swath/Latcorn" in out
        assert "Missing BEHR fields" not in out


class TestSwathReading:
    """Tests for reading swath files."""

    def test_read_swath_has_every_field(self, sample_swath_hdf5):
        """Test that every BEHR field plus the corners is returned."""
        from behr_regrid.grid import FieldRegistry
        from behr_regrid.utils import read_swath_hdf5

        swath = read_swath_hdf5(sample_swath_hdf5)

        for name in FieldRegistry.default().all_fields + ["Loncorn", "Latcorn"]:
            assert name in swath, f"Missing key: {name}"
        assert swath["Loncorn"].shape == (4, 2)

    def test_fill_values_become_nan(self, sample_swath_hdf5):
        """Test that OMI fill values are replaced with NaN."""
        from behr_regrid.utils import read_swath_hdf5

        swath = read_swath_hdf5(sample_swath_hdf5)

        assert np.isnan(swath["CloudFraction"][1])
        assert swath["CloudFraction"][0] == pytest.approx(0.1)

    def test_flags_kept_as_stored(self, sample_swath_hdf5):
        """Test that flag fields keep their integer type."""
        from behr_regrid.utils import read_swath_hdf5

        swath = read_swath_hdf5(sample_swath_hdf5)

        assert np.issubdtype(swath["vcdQualityFlags"].dtype, np.integer)

    def test_missing_group(self, tmp_path):
        """Test a file without a /Swath group."""
        from behr_regrid.utils import read_swath_hdf5

        path = tmp_path / "empty.h5"
        with h5py.File(path, "w") as f:
            f.create_group("Other")

        with pytest.raises(ValueError, match="Swath"):
            read_swath_hdf5(path)

    def test_missing_field(self, tmp_path):
        """Test a swath file missing a registry field."""
        from behr_regrid.grid import FieldRegistry
        from behr_regrid.utils import read_swath_hdf5, write_swath_hdf5

        path = write_swath_hdf5(
            {"Loncorn": np.zeros((4, 1)), "Latcorn": np.zeros((4, 1)), "NO2": np.zeros(1)},
            tmp_path / "swath.h5",
        )
        registry = FieldRegistry(scalar_fields=["NO2", "Time"])

        with pytest.raises(ValueError, match="Time"):
            read_swath_hdf5(path, registry)


class TestGridFiles:
    """Tests for writing and reading gridded output."""

    def test_grid_file_roundtrip(self, sample_swath_hdf5, tmp_path):
        """Test that a gridded orbit survives a write and read."""
        from behr_regrid.add2grid import GridSpec, add2grid
        from behr_regrid.utils import read_grid_hdf5, read_swath_hdf5, write_grid_hdf5

        spec = GridSpec(0.0, 10.0, 0.0, 10.0, 1.0)
        grid = add2grid(read_swath_hdf5(sample_swath_hdf5), spec)

        out_path = write_grid_hdf5(grid, tmp_path / "out" / "grid.h5", grid_spec=spec)
        loaded, attrs = read_grid_hdf5(out_path)

        assert out_path.exists()
        assert loaded.shape == grid.shape
        assert loaded.registry == grid.registry
        assert np.array_equal(loaded.count, grid.count)
        assert np.allclose(loaded.area, grid.area, equal_nan=True)
        for name in grid.fields:
            assert np.allclose(loaded.fields[name], grid.fields[name], equal_nan=True)
        assert loaded.cell(2, 2)["vcdQualityFlags"] == [0, 3]
        assert loaded.cell(3, 3)["vcdQualityFlags"] == []
        assert attrs["grid_spec"] == spec.as_dict()

    def test_grid_file_layout(self, sample_swath_hdf5, tmp_path):
        """Test the groups written to a grid file."""
        from behr_regrid.add2grid import GridSpec, add2grid
        from behr_regrid.utils import read_swath_hdf5, write_grid_hdf5

        spec = GridSpec(0.0, 10.0, 0.0, 10.0, 1.0)
        grid = add2grid(read_swath_hdf5(sample_swath_hdf5), spec)
        path = write_grid_hdf5(grid, tmp_path / "grid.h5")

        with h5py.File(path, "r") as f:
            assert "Grid/Count" in f
            assert "Grid/BEHRColumnAmountNO2Trop" in f
            assert "Flags/XTrackQualityFlags/values" in f
            assert f["Flags/XTrackQualityFlags/counts"].shape == spec.shape
            assert "lat_min" not in f.attrs

    def test_not_a_grid_file(self, sample_swath_hdf5):
        """Test that a swath file is not mistaken for a grid."""
        from behr_regrid.utils import read_grid_hdf5

        with pytest.raises(ValueError, match="not a grid file"):
            read_grid_hdf5(sample_swath_hdf5)


# Fixtures


@pytest.fixture
def sample_swath_hdf5(tmp_path):
    """Create a two-pixel BEHR swath file covering grid cell (2, 2)."""
    from behr_regrid.config import DEFAULT_FLAG_FIELDS, DEFAULT_SCALAR_FIELDS, FILL_VALUE

    h5_path = tmp_path / "test_swath.h5"

    with h5py.File(h5_path, "w") as f:
        swath = f.create_group("Swath")

        # Both pixels share the same diamond footprint
        swath.create_dataset("Loncorn", data=np.array([[1.0, 1.0], [2.0, 2.0], [3.0, 3.0], [2.0, 2.0]]))
        swath.create_dataset("Latcorn", data=np.array([[2.0, 2.0], [3.0, 3.0], [2.0, 2.0], [1.0, 1.0]]))

        for i, name in enumerate(DEFAULT_SCALAR_FIELDS):
            swath.create_dataset(name, data=np.array([1.0 + i, 2.0 + i], dtype=np.float32))
        swath["BEHRColumnAmountNO2Trop"][...] = [4e15, 6e15]
        swath["CloudFraction"][...] = [0.1, FILL_VALUE]

        for name in DEFAULT_FLAG_FIELDS:
            swath.create_dataset(name, data=np.array([0, 3], dtype=np.int32))

    return h5_path
