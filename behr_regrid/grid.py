"""
Accumulation store for oversampled satellite grids.

Each pixel footprint that passes the primary-field check is rasterized and
folded into the cells it covers as a running mean. Flag fields are kept as
per-cell lists of every contributing value.
"""

from dataclasses import dataclass, field
import math
from numbers import Real
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from behr_regrid.config import (
    AREA_FIELD,
    AREAWEIGHT_FIELD,
    COUNT_FIELD,
    RESERVED_FIELDS,
    get_default_fields,
)
from behr_regrid.quadrangle import check_corners, rasterize_quadrangle


@dataclass
class FieldRegistry:
    """Which fields a grid carries and which one decides if a pixel counts."""

    scalar_fields: List[str]
    flag_fields: List[str] = field(default_factory=list)
    primary_field: Optional[str] = None

    def __post_init__(self):
        self.scalar_fields = list(self.scalar_fields)
        self.flag_fields = list(self.flag_fields)
        if self.primary_field is None and self.scalar_fields:
            self.primary_field = self.scalar_fields[0]
        self.validate()

    @classmethod
    def default(cls) -> "FieldRegistry":
        """The BEHR OMI field set."""
        return cls(**get_default_fields())

    def validate(self) -> None:
        if not self.scalar_fields:
            raise ValueError("At least one scalar field is required")

        names = self.scalar_fields + self.flag_fields
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate field names: {duplicates}")

        reserved = [n for n in names if n in RESERVED_FIELDS]
        if reserved:
            raise ValueError(f"Field names {reserved} are reserved for grid bookkeeping")

        if self.primary_field not in self.scalar_fields:
            raise ValueError(
                f"Primary field {self.primary_field!r} must be one of the scalar fields"
            )

    @property
    def all_fields(self) -> List[str]:
        return self.scalar_fields + self.flag_fields


@dataclass
class Footprint:
    """
    One satellite pixel ready to be gridded.

    Attributes:
        corners: Four (x, y) pairs in grid-index space
        values: Scalar field name -> value
        area: Geodesic area of the 50% response footprint (km^2)
        flags: Flag field name -> value
    """

    corners: Sequence[Tuple[float, float]]
    values: Dict[str, float]
    area: float
    flags: Dict[str, Any] = field(default_factory=dict)


class OutputGrid:
    """
    Running-mean grid of shape (maxx, maxy), addressed by 1-based cells.

    Cell (x, y) lives at array index [x - 1, y - 1]. Empty cells have
    count 0, area and areaweight NaN and every scalar field at 0.
    """

    def __init__(self, minx: int, maxx: int, miny: int, maxy: int, registry: FieldRegistry):
        self.minx = minx
        self.maxx = maxx
        self.miny = miny
        self.maxy = maxy
        self.registry = registry

        shape = (maxx, maxy)
        self.fields = {name: np.zeros(shape, dtype=np.float64) for name in registry.scalar_fields}
        self.count = np.zeros(shape, dtype=np.int64)
        self.area = np.full(shape, np.nan, dtype=np.float64)
        self.areaweight = np.full(shape, np.nan, dtype=np.float64)
        self.flags = {name: _empty_list_array(shape) for name in registry.flag_fields}
        # Set when an orbit stops early
        self.cancelled = False

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.maxx, self.maxy)

    @property
    def bounds(self) -> Tuple[int, int, int, int]:
        return (self.minx, self.maxx, self.miny, self.maxy)

    @property
    def primary_field(self) -> str:
        return self.registry.primary_field

    def n_populated(self) -> int:
        """Number of cells with at least one contributing pixel."""
        return int(np.count_nonzero(self.count))

    def cell(self, x: int, y: int) -> Dict[str, Any]:
        """
        Every field at one cell.

        Args:
            x: 1-based latitude index
            y: 1-based longitude index

        Returns:
            Dictionary of field name -> value (flag fields as lists)
        """
        if not (1 <= x <= self.maxx and 1 <= y <= self.maxy):
            raise IndexError(f"Cell ({x}, {y}) outside grid of shape {self.shape}")

        i, j = x - 1, y - 1
        result = {name: float(arr[i, j]) for name, arr in self.fields.items()}
        result[COUNT_FIELD] = int(self.count[i, j])
        result[AREA_FIELD] = float(self.area[i, j])
        result[AREAWEIGHT_FIELD] = float(self.areaweight[i, j])
        for name, arr in self.flags.items():
            result[name] = list(arr[i, j])
        return result

    def to_dict(self) -> Dict[str, np.ndarray]:
        """
        Plain mapping of field name to 2D array, the structure handed to
        downstream AMF and mapping code.
        """
        out = dict(self.fields)
        out[COUNT_FIELD] = self.count
        out[AREA_FIELD] = self.area
        out[AREAWEIGHT_FIELD] = self.areaweight
        out.update(self.flags)
        return out

    def __repr__(self) -> str:
        return (
            f"OutputGrid(shape={self.shape}, bounds={self.bounds}, "
            f"populated={self.n_populated()})"
        )


def _empty_list_array(shape: Tuple[int, int]) -> np.ndarray:
    arr = np.empty(shape, dtype=object)
    for idx in np.ndindex(shape):
        arr[idx] = []
    return arr


def _check_bound(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    return int(value)


def create_grid(
    minx: int,
    maxx: int,
    miny: int,
    maxy: int,
    scalar_fields: Optional[Sequence[str]] = None,
    flag_fields: Optional[Sequence[str]] = None,
    primary_field: Optional[str] = None,
) -> OutputGrid:
    """
    Allocate an empty output grid.

    Args:
        minx, maxx: Range corners are clamped to along x; the grid has maxx rows
        miny, maxy: Range corners are clamped to along y; the grid has maxy columns
        scalar_fields: Fields to average (default: BEHR OMI fields)
        flag_fields: Fields to collect as lists (default: BEHR quality flags
            when scalar_fields is also defaulted, otherwise none)
        primary_field: Field whose NaN excludes a pixel (default: the BEHR
            column, or the first scalar field)

    Returns:
        OutputGrid with every cell empty
    """
    minx = _check_bound("minx", minx)
    maxx = _check_bound("maxx", maxx)
    miny = _check_bound("miny", miny)
    maxy = _check_bound("maxy", maxy)

    if maxx < 1 or maxy < 1:
        raise ValueError(f"Grid must have at least one cell, got maxx={maxx}, maxy={maxy}")
    if minx > maxx:
        raise ValueError(f"minx ({minx}) must not exceed maxx ({maxx})")
    if miny > maxy:
        raise ValueError(f"miny ({miny}) must not exceed maxy ({maxy})")

    if scalar_fields is None:
        registry = FieldRegistry.default()
        if flag_fields is not None:
            registry.flag_fields = list(flag_fields)
        if primary_field is not None:
            registry.primary_field = primary_field
        registry.validate()
    else:
        registry = FieldRegistry(
            scalar_fields=list(scalar_fields),
            flag_fields=list(flag_fields or []),
            primary_field=primary_field,
        )

    return OutputGrid(minx, maxx, miny, maxy, registry)


def _validate_footprint(grid: OutputGrid, footprint: Footprint) -> None:
    registry = grid.registry

    check_corners(footprint.corners)

    missing = [n for n in registry.scalar_fields if n not in footprint.values]
    if missing:
        raise KeyError(f"Footprint is missing scalar fields: {missing}")

    missing = [n for n in registry.flag_fields if n not in footprint.flags]
    if missing:
        raise KeyError(f"Footprint is missing flag fields: {missing}")

    area = footprint.area
    if isinstance(area, bool) or not isinstance(area, Real):
        raise ValueError(f"Footprint area must be a real number, got {area!r}")
    if not math.isfinite(area) or area < 0:
        raise ValueError(f"Footprint area must be finite and non-negative, got {area}")


def accumulate(grid: OutputGrid, footprint: Footprint) -> int:
    """
    Fold one footprint into the grid in place.

    Cells that already hold data get a running mean:
    new = (old * (count - 1) + value) / count. Empty cells take the
    footprint's values directly. A footprint whose primary field is NaN
    leaves the grid untouched.

    Args:
        grid: Grid to update
        footprint: Pixel to add

    Returns:
        Number of cells updated
    """
    _validate_footprint(grid, footprint)

    primary_value = float(footprint.values[grid.primary_field])
    if math.isnan(primary_value):
        return 0

    cells = list(rasterize_quadrangle(footprint.corners, *grid.bounds))
    if not cells:
        return 0

    xs = np.array([c[0] for c in cells], dtype=np.intp) - 1
    ys = np.array([c[1] for c in cells], dtype=np.intp) - 1

    count = grid.count[xs, ys] + 1
    first = count == 1
    previous = (count - 1).astype(np.float64)
    pixelarea = float(footprint.area)

    with np.errstate(divide="ignore", invalid="ignore"):
        old_area = grid.area[xs, ys]
        area = np.where(first, pixelarea, (old_area * previous + pixelarea) / count)
        grid.count[xs, ys] = count
        grid.area[xs, ys] = area
        grid.areaweight[xs, ys] = count / area

    for name, arr in grid.fields.items():
        value = float(footprint.values[name])
        old = arr[xs, ys]
        arr[xs, ys] = np.where(first, value, (old * previous + value) / count)

    for name, arr in grid.flags.items():
        value = footprint.flags[name]
        for i, j in zip(xs, ys):
            arr[i, j].append(value)

    return len(cells)


def finalize(grid: OutputGrid) -> OutputGrid:
    """
    Hook run once all pixels are in.

    The running mean is already final after the last contribution, so this
    returns the grid as is.
    """
    return grid
