"""
Command-line interface for the BEHR regridding pipeline.

Provides commands for:
- grid: Oversample one swath file onto a lat/lon grid
- inspect: Examine HDF5 file structure
- check: Print statistics of a gridded file
"""

import sys
from typing import Tuple

import click

from behr_regrid import __version__
from behr_regrid.config import (
    DEFAULT_LAT_BOUNDS,
    DEFAULT_LON_BOUNDS,
    DEFAULT_RESOLUTION_DEG,
)


def _parse_bounds(text: str, name: str) -> Tuple[float, float]:
    parts = [float(x) for x in text.split(",")]
    if len(parts) != 2:
        raise ValueError(f"{name} must have 2 values 'min,max'")
    return parts[0], parts[1]


@click.group()
@click.version_option(version=__version__)
def main():
    """BEHR regrid - oversample satellite NO2 pixels onto a fixed grid."""
    pass


@main.command()
@click.argument("input_h5", type=click.Path(exists=True))
@click.argument("output_h5", type=click.Path())
@click.option("--lat-bounds", type=str,
              default=f"{DEFAULT_LAT_BOUNDS[0]},{DEFAULT_LAT_BOUNDS[1]}",
              help="Latitude range as 'min,max'")
@click.option("--lon-bounds", type=str,
              default=f"{DEFAULT_LON_BOUNDS[0]},{DEFAULT_LON_BOUNDS[1]}",
              help="Longitude range as 'min,max'")
@click.option("--resolution", "-r", type=float, default=DEFAULT_RESOLUTION_DEG,
              help="Grid resolution in degrees")
@click.option("--verbose", "-v", is_flag=True, help="Print gridding summary")
def grid(
    input_h5: str,
    output_h5: str,
    lat_bounds: str,
    lon_bounds: str,
    resolution: float,
    verbose: bool,
):
    """
    Oversample a swath HDF5 file onto a lat/lon grid.

    Reads pixel fields and corners from /Swath and writes the gridded
    fields to OUTPUT_H5.
    """
    from behr_regrid.add2grid import GridSpec, add2grid
    from behr_regrid.utils import read_swath_hdf5, write_grid_hdf5

    try:
        grid_spec = GridSpec.from_bounds(
            _parse_bounds(lat_bounds, "lat-bounds"),
            _parse_bounds(lon_bounds, "lon-bounds"),
            resolution,
        )
    except ValueError as e:
        click.echo(f"Error parsing grid definition: {e}", err=True)
        sys.exit(1)

    try:
        swath = read_swath_hdf5(input_h5)
        result = add2grid(swath, grid_spec, verbose=verbose)
        out_path = write_grid_hdf5(result, output_h5, grid_spec=grid_spec)

        click.echo(click.style("\n✓ Gridding complete", fg="green"))
        click.echo(f"  Grid shape: {result.shape}")
        click.echo(f"  Populated cells: {result.n_populated()}")
        click.echo(f"  Output: {out_path}")

    except Exception as e:
        click.echo(click.style(f"\n✗ Gridding failed: {e}", fg="red"), err=True)
        sys.exit(1)


@main.command()
@click.argument("input_h5", type=click.Path(exists=True))
def inspect(input_h5: str):
    """
    Inspect a swath or grid HDF5 file.

    Reports which kind of file it is, its pixel or grid layout, and its
    datasets.
    """
    from behr_regrid.utils import inspect_hdf5, print_file_summary

    try:
        info = inspect_hdf5(input_h5)
        if info["kind"] == "swath":
            click.echo(click.style("\nBEHR swath file", fg="green"))
        elif info["kind"] == "grid":
            click.echo(click.style("\nBEHR grid file", fg="green"))
        else:
            click.echo(click.style("\nNo /Swath or /Grid group found", fg="yellow"))

        print_file_summary(info)
    except Exception as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)


@main.command()
@click.argument("grid_h5", type=click.Path(exists=True))
def check(grid_h5: str):
    """
    Check a gridded file and print per-field statistics.

    Statistics only cover populated cells (Count > 0).
    """
    import numpy as np

    from behr_regrid.utils import read_grid_hdf5

    try:
        result, attrs = read_grid_hdf5(grid_h5)

        click.echo(f"\nGrid file: {grid_h5}")
        click.echo("-" * 40)
        click.echo(f"  Shape: {result.shape}")
        click.echo(f"  Bounds: {result.bounds}")
        click.echo(f"  Primary field: {result.primary_field}")
        if "grid_spec" in attrs:
            spec = attrs["grid_spec"]
            click.echo(
                f"  Extent: lat {spec['lat_min']} to {spec['lat_max']}, "
                f"lon {spec['lon_min']} to {spec['lon_max']} @ {spec['resolution']} deg"
            )

        populated = result.count > 0
        click.echo(f"  Populated cells: {int(populated.sum())} ({populated.mean():.2%})")

        if not populated.any():
            click.echo(click.style("\nNo populated cells", fg="yellow"))
            return

        click.echo("\nStatistics:")
        click.echo(f"  Count: max {int(result.count.max())}")
        click.echo(f"  Area: mean {np.nanmean(result.area):.2f} km^2")
        for name, data in result.fields.items():
            values = data[populated]
            click.echo(
                f"  {name}: min {np.nanmin(values):.4g}, "
                f"max {np.nanmax(values):.4g}, mean {np.nanmean(values):.4g}"
            )

    except Exception as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
