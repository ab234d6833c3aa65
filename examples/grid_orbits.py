#!/usr/bin/env python
"""
Example: Oversample several OMI orbits onto one BEHR grid each.

This script demonstrates:
1. Reading BEHR swath files
2. Gridding every orbit onto the same lat/lon grid
3. Writing one grid file per orbit and a short summary

Usage:
    python grid_orbits.py <output_dir> <swath_h5> [<swath_h5> ...] [--resolution 0.05]
"""

import argparse
from pathlib import Path


def main():
    parser = argparse.ArgumentParser(
        description="Grid BEHR swath files, one output grid per orbit"
    )
    parser.add_argument("output_dir", help="Output directory")
    parser.add_argument("swaths", nargs="+", help="Input BEHR swath HDF5 files")
    parser.add_argument(
        "--lat-bounds", type=str, default="25,50",
        help="Latitude range as 'min,max'"
    )
    parser.add_argument(
        "--lon-bounds", type=str, default="-125,-65",
        help="Longitude range as 'min,max'"
    )
    parser.add_argument(
        "--resolution", "-r", type=float, default=0.05,
        help="Grid resolution in degrees"
    )

    args = parser.parse_args()

    from behr_regrid.add2grid import GridSpec, grid_orbits
    from behr_regrid.utils import ensure_directory, read_swath_hdf5, write_grid_hdf5

    lat_bounds = [float(x) for x in args.lat_bounds.split(",")]
    lon_bounds = [float(x) for x in args.lon_bounds.split(",")]
    grid_spec = GridSpec.from_bounds(lat_bounds, lon_bounds, args.resolution)

    print(f"\n{'='*60}")
    print("BEHR Orbit Gridding")
    print(f"{'='*60}")
    print(f"Orbits: {len(args.swaths)}")
    print(f"Grid: {grid_spec.shape} @ {grid_spec.resolution} deg")
    print()

    output_dir = ensure_directory(args.output_dir)
    swaths = (read_swath_hdf5(path) for path in args.swaths)
    grids = grid_orbits(swaths, grid_spec, verbose=True)

    print(f"\n{'='*60}")
    print("Summary")
    print(f"{'='*60}")
    for path, grid in zip(args.swaths, grids):
        out_path = write_grid_hdf5(
            grid, output_dir / f"{Path(path).stem}_grid.h5", grid_spec=grid_spec
        )
        print(f"{Path(path).name}: {grid.n_populated()} cells -> {out_path}")


if __name__ == "__main__":
    main()
