"""
Orbit driver: grid a whole swath of pixels onto a lat/lon grid.

This module handles:
- Defining the output grid geographically (GridSpec)
- Converting pixel corners from lon/lat into grid-index space
- Streaming every pixel of an orbit through the accumulation store
"""

from dataclasses import dataclass
import math
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional
import warnings

import numpy as np

from behr_regrid.config import (
    LAT_CORNER_FIELD,
    LON_CORNER_FIELD,
    NUM_CORNERS,
)
from behr_regrid.geometry import lonlat_to_grid_index, pixel_area_km2
from behr_regrid.grid import (
    FieldRegistry,
    Footprint,
    OutputGrid,
    accumulate,
    create_grid,
    finalize,
)


@dataclass
class GridSpec:
    """
    Geographic extent and spacing of an output grid.

    Grid x follows latitude and grid y follows longitude. Cell (x, y) covers
    latitudes [lat_min + (x - 1) * resolution, lat_min + x * resolution] and
    likewise for longitude.
    """

    lat_min: float
    lat_max: float
    lon_min: float
    lon_max: float
    resolution: float

    def __post_init__(self):
        if self.resolution <= 0:
            raise ValueError(f"resolution must be positive, got {self.resolution}")
        if self.lat_max <= self.lat_min:
            raise ValueError(f"lat_max ({self.lat_max}) must exceed lat_min ({self.lat_min})")
        if self.lon_max <= self.lon_min:
            raise ValueError(f"lon_max ({self.lon_max}) must exceed lon_min ({self.lon_min})")

    @classmethod
    def from_bounds(cls, lat_bounds, lon_bounds, resolution: float) -> "GridSpec":
        return cls(lat_bounds[0], lat_bounds[1], lon_bounds[0], lon_bounds[1], resolution)

    @property
    def minx(self) -> int:
        return 1

    @property
    def miny(self) -> int:
        return 1

    @property
    def maxx(self) -> int:
        # Guard against 0.3 / 0.1 = 2.9999999999999996 style rounding
        return int(math.ceil(round((self.lat_max - self.lat_min) / self.resolution, 9)))

    @property
    def maxy(self) -> int:
        return int(math.ceil(round((self.lon_max - self.lon_min) / self.resolution, 9)))

    @property
    def shape(self):
        return (self.maxx, self.maxy)

    def lat_centers(self) -> np.ndarray:
        """Latitude of each grid row's center, length maxx."""
        return self.lat_min + (np.arange(self.maxx) + 0.5) * self.resolution

    def lon_centers(self) -> np.ndarray:
        """Longitude of each grid column's center, length maxy."""
        return self.lon_min + (np.arange(self.maxy) + 0.5) * self.resolution

    def to_grid_index(self, lon, lat):
        return lonlat_to_grid_index(lon, lat, self.lat_min, self.lon_min, self.resolution)

    def create_grid(self, registry: Optional[FieldRegistry] = None) -> OutputGrid:
        """Allocate an empty OutputGrid matching this spec."""
        registry = registry or FieldRegistry.default()
        return create_grid(
            self.minx, self.maxx, self.miny, self.maxy,
            scalar_fields=registry.scalar_fields,
            flag_fields=registry.flag_fields,
            primary_field=registry.primary_field,
        )

    def as_dict(self) -> Dict[str, float]:
        return {
            "lat_min": self.lat_min,
            "lat_max": self.lat_max,
            "lon_min": self.lon_min,
            "lon_max": self.lon_max,
            "resolution": self.resolution,
        }


def _validate_swath(swath: Mapping[str, Any], registry: FieldRegistry) -> tuple:
    for name in (LON_CORNER_FIELD, LAT_CORNER_FIELD):
        if name not in swath:
            raise ValueError(f"Swath is missing corner field {name!r}")

    loncorn = np.asarray(swath[LON_CORNER_FIELD], dtype=np.float64)
    latcorn = np.asarray(swath[LAT_CORNER_FIELD], dtype=np.float64)

    if loncorn.shape != latcorn.shape:
        raise ValueError(
            f"Corner shape mismatch: {LON_CORNER_FIELD} {loncorn.shape} != "
            f"{LAT_CORNER_FIELD} {latcorn.shape}"
        )
    if loncorn.ndim < 1 or loncorn.shape[0] != NUM_CORNERS:
        raise ValueError(
            f"Corner arrays must have the {NUM_CORNERS} corners along the first "
            f"dimension, got shape {loncorn.shape}"
        )

    pixel_shape = loncorn.shape[1:]
    for name in registry.all_fields:
        if name not in swath:
            raise ValueError(f"Swath is missing field {name!r}")
        field_shape = np.shape(swath[name])
        if field_shape != pixel_shape:
            raise ValueError(
                f"Field {name!r} has shape {field_shape}, expected {pixel_shape} "
                f"to match the corner arrays"
            )

    return loncorn, latcorn, pixel_shape


def swath_to_footprints(
    swath: Mapping[str, Any],
    grid_spec: GridSpec,
    registry: Optional[FieldRegistry] = None,
) -> Iterator[Footprint]:
    """
    Turn a swath of pixels into footprints in grid-index space.

    The swath is checked before anything is yielded, so shape errors surface
    before any pixel reaches a grid.

    Args:
        swath: Mapping with Loncorn/Latcorn (corners first) and every
            registry field, all aligned on the same pixel shape
        grid_spec: Output grid definition
        registry: Fields to carry (default: BEHR OMI fields)

    Returns:
        Iterator of Footprint, one per pixel with finite corners
    """
    registry = registry or FieldRegistry.default()
    loncorn, latcorn, pixel_shape = _validate_swath(swath, registry)

    n_pixels = int(np.prod(pixel_shape)) if pixel_shape else 1
    loncorn = loncorn.reshape(NUM_CORNERS, n_pixels)
    latcorn = latcorn.reshape(NUM_CORNERS, n_pixels)

    scalars = {
        name: np.asarray(swath[name], dtype=np.float64).reshape(n_pixels)
        for name in registry.scalar_fields
    }
    flags = {name: np.asarray(swath[name]).reshape(n_pixels) for name in registry.flag_fields}

    x_corners, y_corners = grid_spec.to_grid_index(loncorn, latcorn)
    with np.errstate(invalid="ignore"):
        areas = pixel_area_km2(loncorn, latcorn)
    valid = np.all(np.isfinite(loncorn) & np.isfinite(latcorn), axis=0)

    return _iter_footprints(x_corners, y_corners, areas, valid, scalars, flags)


def _as_python(value):
    if isinstance(value, np.generic):
        return value.item()
    return value


def _iter_footprints(x_corners, y_corners, areas, valid, scalars, flags) -> Iterator[Footprint]:
    n_skipped = 0
    for p in range(valid.size):
        if not valid[p]:
            n_skipped += 1
            continue
        yield Footprint(
            corners=list(zip(x_corners[:, p].tolist(), y_corners[:, p].tolist())),
            values={name: arr[p] for name, arr in scalars.items()},
            area=float(areas[p]),
            flags={name: _as_python(arr[p]) for name, arr in flags.items()},
        )

    if n_skipped:
        warnings.warn(f"Skipped {n_skipped} pixels with missing corner coordinates")


def add2grid(
    swath: Mapping[str, Any],
    grid_spec: GridSpec,
    registry: Optional[FieldRegistry] = None,
    grid: Optional[OutputGrid] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
    verbose: bool = False,
) -> OutputGrid:
    """
    Oversample one swath onto the grid.

    Pixels are added strictly in order since each running-mean update
    depends on the cell's previous state.

    Args:
        swath: Pixel data (see swath_to_footprints)
        grid_spec: Output grid definition
        registry: Fields to carry (default: the grid's registry, or BEHR OMI fields)
        grid: Existing grid to keep adding to (default: a new empty grid)
        should_cancel: Called between pixels; returning True stops the orbit
        verbose: Print a summary when done

    Returns:
        The finalized grid, with cancelled set when should_cancel stopped it
    """
    if grid is None:
        grid = grid_spec.create_grid(registry)
    elif grid.shape != grid_spec.shape:
        raise ValueError(
            f"Grid shape {grid.shape} does not match grid spec shape {grid_spec.shape}"
        )
    registry = registry or grid.registry

    footprints = swath_to_footprints(swath, grid_spec, registry)
    grid.cancelled = False

    n_pixels = 0
    n_gridded = 0
    n_cells = 0
    for footprint in footprints:
        if should_cancel is not None and should_cancel():
            grid.cancelled = True
            warnings.warn(f"Gridding cancelled after {n_pixels} pixels")
            break
        n_pixels += 1
        cells = accumulate(grid, footprint)
        if cells:
            n_gridded += 1
            n_cells += cells

    if n_pixels == 0:
        warnings.warn("No pixels were gridded from this swath")

    if verbose:
        print(f"Gridded {n_gridded} of {n_pixels} pixels into {n_cells} cell updates")
        print(f"  Grid shape: {grid.shape}, populated cells: {grid.n_populated()}")

    return finalize(grid)


def grid_orbits(
    swaths: Iterable[Mapping[str, Any]],
    grid_spec: GridSpec,
    registry: Optional[FieldRegistry] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
    verbose: bool = False,
) -> List[OutputGrid]:
    """
    Grid each orbit separately, one OutputGrid per swath.

    Args:
        swaths: Iterable of swath mappings, one per orbit
        grid_spec: Output grid definition shared by every orbit
        registry: Fields to carry
        should_cancel: Checked between pixels of every orbit
        verbose: Print per-orbit summaries

    Returns:
        List of finalized grids in orbit order
    """
    grids = []
    for i, swath in enumerate(swaths):
        if verbose:
            print(f"\nOrbit {i + 1}")
        result = add2grid(
            swath, grid_spec, registry=registry, should_cancel=should_cancel, verbose=verbose
        )
        grids.append(result)
        if result.cancelled:
            break
    return grids
