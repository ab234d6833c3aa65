"""
HDF5 file I/O for swaths and gridded output, plus file helpers.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import h5py
import numpy as np

from behr_regrid.config import (
    AREA_FIELD,
    AREAWEIGHT_FIELD,
    COUNT_FIELD,
    FILL_THRESHOLD,
    HDF5_FLAG_COUNTS_NAME,
    HDF5_FLAG_VALUES_NAME,
    HDF5_FLAGS_GROUP,
    HDF5_GRID_GROUP,
    HDF5_SWATH_GROUP,
    GRID_ATTR_NAMES,
    GRID_SPEC_ATTR_NAMES,
    LAT_CORNER_FIELD,
    LON_CORNER_FIELD,
)
from behr_regrid.grid import FieldRegistry, OutputGrid


def inspect_hdf5(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Summarize a BEHR swath or grid file.

    A file with a /Swath group is a swath; one with a /Grid group is a grid.
    Swaths report their pixel layout and any BEHR fields they lack. Grids
    report their index bounds, primary field, populated cells and, when
    recorded, the geographic grid spec.

    Args:
        path: Path to HDF5 file

    Returns:
        Dictionary with "path", "kind" ('swath', 'grid' or None), "datasets"
        and the kind-specific entries above
    """
    path = Path(path)
    info = {"path": str(path), "kind": None, "datasets": []}

    with h5py.File(path, "r") as f:
        def visitor(name, obj):
            if isinstance(obj, h5py.Dataset):
                info["datasets"].append({
                    "name": name,
                    "shape": obj.shape,
                    "dtype": str(obj.dtype),
                })

        f.visititems(visitor)
        attrs = dict(f.attrs)

        if HDF5_SWATH_GROUP in f:
            info["kind"] = "swath"
            group = f[HDF5_SWATH_GROUP]
            expected = [LON_CORNER_FIELD, LAT_CORNER_FIELD] + FieldRegistry.default().all_fields
            info["missing_fields"] = [n for n in expected if n not in group]
            if LON_CORNER_FIELD in group:
                pixel_shape = group[LON_CORNER_FIELD].shape[1:]
                info["pixel_shape"] = pixel_shape
                info["n_pixels"] = int(np.prod(pixel_shape))

        elif HDF5_GRID_GROUP in f:
            info["kind"] = "grid"
            if all(key in attrs for key in GRID_ATTR_NAMES):
                info["bounds"] = tuple(int(attrs[key]) for key in ("minx", "maxx", "miny", "maxy"))
                info["primary_field"] = str(attrs["primary_field"])
            group = f[HDF5_GRID_GROUP]
            if COUNT_FIELD in group:
                info["n_populated"] = int(np.count_nonzero(group[COUNT_FIELD][()]))
            if all(key in attrs for key in GRID_SPEC_ATTR_NAMES):
                info["grid_spec"] = {key: float(attrs[key]) for key in GRID_SPEC_ATTR_NAMES}

    return info


def print_file_summary(info: Dict[str, Any]) -> None:
    """
    Print the summary from inspect_hdf5 to the console.

    Args:
        info: Dictionary returned by inspect_hdf5
    """
    print(f"\nFile: {info['path']}")
    print("=" * 60)

    if info["kind"] == "swath":
        print(f"Pixels: {info.get('n_pixels', 'unknown')} (shape {info.get('pixel_shape')})")
        if info["missing_fields"]:
            print(f"Missing BEHR fields: {', '.join(info['missing_fields'])}")
    elif info["kind"] == "grid":
        print(f"Bounds (minx, maxx, miny, maxy): {info.get('bounds', 'unknown')}")
        print(f"Primary field: {info.get('primary_field', 'unknown')}")
        if "n_populated" in info:
            print(f"Populated cells: {info['n_populated']}")
        spec = info.get("grid_spec")
        if spec:
            print(
                f"Extent: lat {spec['lat_min']} to {spec['lat_max']}, "
                f"lon {spec['lon_min']} to {spec['lon_max']} @ {spec['resolution']} deg"
            )

    print("\nDatasets:")
    for ds in info["datasets"]:
        print(f"  {ds['name']}: shape {ds['shape']}, dtype {ds['dtype']}")


def _fill_to_nan(data: np.ndarray) -> np.ndarray:
    data = np.asarray(data, dtype=np.float64)
    data[data < FILL_THRESHOLD] = np.nan
    return data


def read_swath_hdf5(
    path: Union[str, Path],
    registry: Optional[FieldRegistry] = None,
) -> Dict[str, np.ndarray]:
    """
    Read one orbit's pixel data from an HDF5 swath file.

    Expects every registry field plus Loncorn/Latcorn under /Swath. Scalar
    fields and corners have OMI fill values replaced with NaN; flag fields
    are returned as stored.

    Args:
        path: Path to HDF5 swath file
        registry: Fields to read (default: BEHR OMI fields)

    Returns:
        Dictionary of field name -> array, ready for add2grid
    """
    path = Path(path)
    registry = registry or FieldRegistry.default()

    swath = {}
    with h5py.File(path, "r") as f:
        if HDF5_SWATH_GROUP not in f:
            raise ValueError(f"Cannot find {HDF5_SWATH_GROUP} group in {path}")
        group = f[HDF5_SWATH_GROUP]

        float_fields = [LON_CORNER_FIELD, LAT_CORNER_FIELD] + registry.scalar_fields
        missing = [n for n in float_fields + registry.flag_fields if n not in group]
        if missing:
            raise ValueError(f"Swath file {path} is missing fields: {missing}")

        for name in float_fields:
            swath[name] = _fill_to_nan(group[name][()])
        for name in registry.flag_fields:
            swath[name] = group[name][()]

    return swath


def write_swath_hdf5(swath: Dict[str, Any], path: Union[str, Path]) -> Path:
    """
    Write a swath mapping to HDF5 under /Swath.

    Args:
        swath: Field name -> array
        path: Output file path

    Returns:
        Path to the written file
    """
    path = Path(path)
    ensure_directory(path.parent)
    with h5py.File(path, "w") as f:
        group = f.create_group(HDF5_SWATH_GROUP)
        for name, data in swath.items():
            group.create_dataset(name, data=np.asarray(data))
    return path


def write_grid_hdf5(
    grid: OutputGrid,
    path: Union[str, Path],
    grid_spec: Optional[Any] = None,
) -> Path:
    """
    Write a gridded orbit to HDF5.

    Scalar fields, Count, Area and Areaweight go to /Grid. Each flag field
    is stored ragged under /Flags/<name>: the concatenated per-cell lists
    (C order) in 'values' and the list lengths in 'counts'.

    Args:
        grid: Grid to write
        path: Output file path
        grid_spec: Optional GridSpec recorded as root attributes

    Returns:
        Path to the written file
    """
    path = Path(path)
    ensure_directory(path.parent)

    with h5py.File(path, "w") as f:
        f.attrs["minx"] = grid.minx
        f.attrs["maxx"] = grid.maxx
        f.attrs["miny"] = grid.miny
        f.attrs["maxy"] = grid.maxy
        f.attrs["primary_field"] = grid.primary_field
        f.attrs["scalar_fields"] = json.dumps(grid.registry.scalar_fields)
        f.attrs["flag_fields"] = json.dumps(grid.registry.flag_fields)

        if grid_spec is not None:
            for key, value in grid_spec.as_dict().items():
                f.attrs[key] = value

        grid_group = f.create_group(HDF5_GRID_GROUP)
        for name, data in grid.fields.items():
            grid_group.create_dataset(name, data=data, compression="gzip")
        grid_group.create_dataset(COUNT_FIELD, data=grid.count, compression="gzip")
        grid_group.create_dataset(AREA_FIELD, data=grid.area, compression="gzip")
        grid_group.create_dataset(AREAWEIGHT_FIELD, data=grid.areaweight, compression="gzip")

        flags_group = f.create_group(HDF5_FLAGS_GROUP)
        for name, cells in grid.flags.items():
            lists = cells.ravel()
            counts = np.array([len(v) for v in lists], dtype=np.int64).reshape(cells.shape)
            values = np.array([v for cell in lists for v in cell])
            sub = flags_group.create_group(name)
            sub.create_dataset(HDF5_FLAG_VALUES_NAME, data=values)
            sub.create_dataset(HDF5_FLAG_COUNTS_NAME, data=counts)

    return path


def read_grid_hdf5(path: Union[str, Path]) -> Tuple[OutputGrid, Dict[str, Any]]:
    """
    Read a grid written by write_grid_hdf5.

    Args:
        path: Path to grid file

    Returns:
        Tuple of (OutputGrid, attributes dict). The attributes include the
        grid spec values under "grid_spec" when one was recorded.
    """
    path = Path(path)

    with h5py.File(path, "r") as f:
        attrs = dict(f.attrs)
        missing = [key for key in GRID_ATTR_NAMES if key not in attrs]
        if missing:
            raise ValueError(f"{path} is not a grid file, missing attributes: {missing}")
        registry = FieldRegistry(
            scalar_fields=json.loads(attrs["scalar_fields"]),
            flag_fields=json.loads(attrs["flag_fields"]),
            primary_field=str(attrs["primary_field"]),
        )
        grid = OutputGrid(
            int(attrs["minx"]), int(attrs["maxx"]),
            int(attrs["miny"]), int(attrs["maxy"]),
            registry,
        )

        grid_group = f[HDF5_GRID_GROUP]
        for name in registry.scalar_fields:
            grid.fields[name][...] = grid_group[name][()]
        grid.count[...] = grid_group[COUNT_FIELD][()]
        grid.area[...] = grid_group[AREA_FIELD][()]
        grid.areaweight[...] = grid_group[AREAWEIGHT_FIELD][()]

        flags_group = f[HDF5_FLAGS_GROUP]
        for name in registry.flag_fields:
            values = flags_group[name][HDF5_FLAG_VALUES_NAME][()].tolist()
            counts = flags_group[name][HDF5_FLAG_COUNTS_NAME][()].ravel()
            cells = grid.flags[name].ravel()
            start = 0
            for k, n in enumerate(counts):
                cells[k].extend(values[start:start + n])
                start += n

    if all(key in attrs for key in GRID_SPEC_ATTR_NAMES):
        attrs["grid_spec"] = {key: float(attrs[key]) for key in GRID_SPEC_ATTR_NAMES}
    return grid, attrs


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path

    Returns:
        Path object for the directory
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path
