"""
Scan conversion of satellite pixel quadrangles onto a fixed grid.

This module handles:
- Snapping and clamping a pixel's four corners into grid-index space
- Ordering the corners so the quadrangle can be walked bottom to top
- Finding, row by row, the grid columns the quadrangle covers

Rows run from one above the bottom vertex up to and including the top
vertex, and columns from one right of the left edge up to one left of the
right edge. The offsets keep pixels that share an edge from both claiming
the cells along it. A row that lies on a horizontal edge has no defined
bound and is skipped, so a pixel whose two top corners snap to the same
row loses that row.
"""

from dataclasses import dataclass
from enum import Enum
import math
from typing import Iterator, Sequence, Tuple

from behr_regrid.config import NUM_CORNERS
from behr_regrid.geometry import calcline, clip, exchange_coord, round_half_away


class Orientation(Enum):
    """How the side vertices sit relative to the bottom-top diagonal."""

    STANDARD = "standard"  # vertex 2 right of the 1-3 diagonal, vertex 4 left of it
    FALLBACK = "fallback"  # inverted or degenerate winding


@dataclass
class Quad:
    """
    Quadrangle corners in grid-index space.

    After normalize_corners, vertex 1 is the bottom vertex, vertex 3 the top
    one and vertices 2 and 4 are the sides.
    """

    x1: float
    y1: float
    x2: float
    y2: float
    x3: float
    y3: float
    x4: float
    y4: float

    def has_nan(self) -> bool:
        return any(
            math.isnan(v)
            for v in (self.x1, self.y1, self.x2, self.y2, self.x3, self.y3, self.x4, self.y4)
        )

    def swap_side_vertices(self) -> None:
        """Exchange vertices 2 and 4 in place."""
        self.x4, self.y4, self.x2, self.y2 = exchange_coord(self.x4, self.y4, self.x2, self.y2)

    def diagonal(self, y: float) -> float:
        """Abscissa of the 1-3 diagonal at ordinate y."""
        return calcline(y, self.x1, self.y1, self.x3, self.y3)


def check_corners(corners: Sequence[Sequence[float]]) -> None:
    """Raise ValueError unless corners is four (x, y) pairs."""
    if len(corners) != NUM_CORNERS:
        raise ValueError(f"A quadrangle needs {NUM_CORNERS} corners, got {len(corners)}")
    for i, corner in enumerate(corners):
        if len(corner) != 2:
            raise ValueError(f"Corner {i + 1} must be an (x, y) pair, got {corner!r}")


def normalize_corners(
    corners: Sequence[Sequence[float]],
    minx: int,
    maxx: int,
    miny: int,
    maxy: int,
) -> Quad:
    """
    Snap corners to grid indices, clamp them to the bounds and order them.

    Args:
        corners: Four (x, y) pairs in grid-index space
        minx, maxx: Allowed range of the x (latitude) index
        miny, maxy: Allowed range of the y (longitude) index

    Returns:
        Quad with vertex 1 at the bottom and vertex 3 at the top
    """
    check_corners(corners)

    snapped = []
    for x, y in corners:
        snapped.append(clip(round_half_away(float(x)), minx, maxx))
        snapped.append(clip(round_half_away(float(y)), miny, maxy))
    x1, y1, x2, y2, x3, y3, x4, y4 = snapped

    # Fixed compare-and-exchange sequence; the order matters
    if y2 < y1:
        x1, y1, x2, y2 = exchange_coord(x1, y1, x2, y2)
    if y3 < y1:
        x1, y1, x3, y3 = exchange_coord(x1, y1, x3, y3)
    if y4 < y1:
        x1, y1, x4, y4 = exchange_coord(x1, y1, x4, y4)
    if y2 > y3:
        x2, y2, x3, y3 = exchange_coord(x2, y2, x3, y3)
    if y4 > y3:
        x4, y4, x3, y3 = exchange_coord(x4, y4, x3, y3)
    if x4 > x2:
        x4, y4, x2, y2 = exchange_coord(x4, y4, x2, y2)

    return Quad(x1, y1, x2, y2, x3, y3, x4, y4)


def row_range(quad: Quad, maxy: int) -> range:
    """
    Grid rows covered by a normalized quadrangle.

    The bottom vertex's own row is excluded, the top vertex's row included,
    and the result is limited to [1, maxy].
    """
    bottom = int(quad.y1) + 1
    top = int(quad.y3)
    return range(max(bottom, 1), min(top, maxy) + 1)


def classify_orientation(quad: Quad) -> Orientation:
    """
    Decide whether the quadrangle winds in the standard direction.

    Standard means vertex 2 is on or right of the 1-3 diagonal and vertex 4
    is on or left of it. NaN comparisons are False, so a quadrangle whose
    diagonal is horizontal lands in the fallback.
    """
    if quad.x2 >= quad.diagonal(quad.y2) and quad.x4 <= quad.diagonal(quad.y4):
        return Orientation.STANDARD
    return Orientation.FALLBACK


def _standard_bounds(quad: Quad, y_quad: int) -> Tuple[float, float]:
    if y_quad < quad.y4:
        left = calcline(y_quad, quad.x1, quad.y1, quad.x4, quad.y4)
    else:
        left = calcline(y_quad, quad.x4, quad.y4, quad.x3, quad.y3)

    if y_quad < quad.y2:
        right = calcline(y_quad, quad.x1, quad.y1, quad.x2, quad.y2)
    else:
        right = calcline(y_quad, quad.x2, quad.y2, quad.x3, quad.y3)

    return left, right


def _fallback_bounds(quad: Quad, y_quad: int) -> Tuple[float, float]:
    left = quad.diagonal(y_quad)

    # Persists for the remaining rows of this quadrangle
    if quad.y2 > quad.y4:
        quad.swap_side_vertices()

    if y_quad < quad.y2:
        right = calcline(y_quad, quad.x1, quad.y1, quad.x2, quad.y2)
    elif y_quad < quad.y4:
        right = calcline(y_quad, quad.x2, quad.y2, quad.x4, quad.y4)
    else:
        right = calcline(y_quad, quad.x4, quad.y4, quad.x3, quad.y3)

    # Both side vertices left of the diagonal: edges are crossed
    if quad.x2 <= quad.diagonal(quad.y2) and quad.x4 <= quad.diagonal(quad.y4):
        left, right = right, left

    return left, right


def row_bounds(quad: Quad, y_quad: int) -> Tuple[float, float]:
    """
    Left and right edge abscissae of the quadrangle on one grid row.

    Args:
        quad: Normalized quadrangle (may be reordered by the fallback branch)
        y_quad: Grid row, strictly above vertex 1 and at most vertex 3

    Returns:
        Tuple of (left, right), rounded to grid indices, right already
        pulled in by one column. Either may be NaN for a degenerate row.
    """
    orientation = classify_orientation(quad)
    if orientation is Orientation.STANDARD:
        left, right = _standard_bounds(quad, y_quad)
    else:
        left, right = _fallback_bounds(quad, y_quad)

    left = round_half_away(left)
    right = round_half_away(right) - 1
    return left, right


def column_range(left: float, right: float, maxx: int) -> range:
    """
    Grid columns strictly right of left up to right, limited to [1, maxx].

    Rows whose left bound is not positive, or whose bounds are undefined,
    are rejected outright.
    """
    if math.isnan(left) or math.isnan(right) or left <= 0:
        return range(0)
    left = clip(left, 1, maxx)
    right = clip(right, 1, maxx)
    return range(int(left) + 1, int(right) + 1)


def rasterize_quadrangle(
    corners: Sequence[Sequence[float]],
    minx: int,
    maxx: int,
    miny: int,
    maxy: int,
) -> Iterator[Tuple[int, int]]:
    """
    Yield every grid cell a pixel quadrangle covers.

    Degenerate quadrangles (collapsed or inverted corners, NaN corners)
    yield nothing rather than raising, so one bad pixel cannot stop an orbit.

    Args:
        corners: Four (x, y) pairs in grid-index space
        minx, maxx: Allowed range of the x (latitude) index
        miny, maxy: Allowed range of the y (longitude) index

    Yields:
        1-based (x, y) cell indices, row by row from the bottom
    """
    quad = normalize_corners(corners, minx, maxx, miny, maxy)
    if quad.has_nan():
        return

    for y_quad in row_range(quad, maxy):
        left, right = row_bounds(quad, y_quad)
        for x_quad in column_range(left, right, maxx):
            yield x_quad, y_quad
