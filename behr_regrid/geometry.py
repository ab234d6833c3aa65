"""
Geometry primitives for mapping satellite pixels onto grid-index space.

Grid-index space has 1 unit = 1 output grid cell. The x axis follows
latitude and the y axis follows longitude, matching the BEHR grids.
"""

import math
from typing import Tuple, Union

import numpy as np

from behr_regrid.config import EARTH_RADIUS_KM, NUM_CORNERS


def calcline(y: float, x1: float, y1: float, x2: float, y2: float) -> float:
    """
    Interpolate the abscissa of a line segment at a given ordinate.

    Args:
        y: Ordinate to evaluate the line at
        x1, y1: First endpoint of the segment
        x2, y2: Second endpoint of the segment

    Returns:
        x on the line through (x1, y1) and (x2, y2) at ordinate y, or NaN
        for a horizontal segment (y2 == y1)
    """
    if y2 == y1:
        return float("nan")
    return x1 + (x2 - x1) * (y - y1) / (y2 - y1)


def clip(value, lo, hi):
    """Clamp value into [lo, hi]."""
    if value < lo:
        return lo
    if value > hi:
        return hi
    return value


def exchange_coord(x1, y1, x2, y2):
    """Swap two coordinate pairs: returns (x2, y2, x1, y1)."""
    return x2, y2, x1, y1


def round_half_away(value: float) -> float:
    """
    Round to the nearest integer with halves going away from zero.

    A corner at 2.5 snaps to 3 and one at -2.5 to -3.

    Args:
        value: Number to round (NaN and infinities pass through)

    Returns:
        Rounded value as a float
    """
    if not math.isfinite(value):
        return value
    return math.copysign(math.floor(abs(value) + 0.5), value)


def great_circle_distance(
    lat1: Union[float, np.ndarray],
    lon1: Union[float, np.ndarray],
    lat2: Union[float, np.ndarray],
    lon2: Union[float, np.ndarray],
    units: str = "km",
) -> Union[float, np.ndarray]:
    """
    Haversine distance between pairs of latitude/longitude points.

    Args:
        lat1, lon1: Origin point(s) in degrees
        lat2, lon2: Destination point(s) in degrees
        units: 'km' or 'm'

    Returns:
        Distance(s) along a sphere of radius EARTH_RADIUS_KM
    """
    dlat = np.radians(np.asarray(lat2) - np.asarray(lat1))
    dlon = np.radians(np.asarray(lon2) - np.asarray(lon1))
    a = (
        np.sin(dlat / 2) ** 2 +
        np.cos(np.radians(lat1)) * np.cos(np.radians(lat2)) * np.sin(dlon / 2) ** 2
    )
    # Clamp against rounding pushing a slightly past 1
    a = np.clip(a, 0.0, 1.0)
    d = EARTH_RADIUS_KM * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    if units.lower() == "m":
        d = d * 1e3
    elif units.lower() != "km":
        raise ValueError(f"units must be either 'm' or 'km', not {units}")

    return d


def pixel_area_km2(
    lon_corners: np.ndarray,
    lat_corners: np.ndarray,
) -> Union[float, np.ndarray]:
    """
    Estimate the area of a pixel's 50% response footprint.

    The pixel is treated as a rectangle whose sides are the corner 1-2 and
    corner 1-4 distances, as BEHR does.

    Args:
        lon_corners: Corner longitudes, corners along the first dimension
        lat_corners: Corner latitudes, same shape as lon_corners

    Returns:
        Area in km^2 (scalar for a single pixel, array otherwise)
    """
    lon_corners = np.asarray(lon_corners, dtype=np.float64)
    lat_corners = np.asarray(lat_corners, dtype=np.float64)

    if lon_corners.shape != lat_corners.shape:
        raise ValueError(
            f"Corner shape mismatch: lon {lon_corners.shape} != lat {lat_corners.shape}"
        )
    if lon_corners.shape[0] != NUM_CORNERS:
        raise ValueError(
            f"Corners must be along the first dimension (size {NUM_CORNERS}), "
            f"got shape {lon_corners.shape}"
        )

    side_12 = great_circle_distance(lat_corners[0], lon_corners[0], lat_corners[1], lon_corners[1])
    side_14 = great_circle_distance(lat_corners[0], lon_corners[0], lat_corners[3], lon_corners[3])

    area = side_12 * side_14
    if np.ndim(area) == 0:
        return float(area)
    return area


def lonlat_to_grid_index(
    lon: Union[float, np.ndarray],
    lat: Union[float, np.ndarray],
    lat_min: float,
    lon_min: float,
    resolution: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Convert geographic coordinates into grid-index space.

    Args:
        lon: Longitude(s) in degrees
        lat: Latitude(s) in degrees
        lat_min: Southern edge of the grid
        lon_min: Western edge of the grid
        resolution: Grid spacing in degrees

    Returns:
        Tuple of (x, y) where x is the latitude index and y the longitude index
    """
    if resolution <= 0:
        raise ValueError(f"resolution must be positive, got {resolution}")

    x = (np.asarray(lat, dtype=np.float64) - lat_min) / resolution
    y = (np.asarray(lon, dtype=np.float64) - lon_min) / resolution
    return x, y
