"""
WRF-Chem a priori NO2 profiles averaged onto satellite pixels.

WRF profiles are not all on the same pressure grid, so each profile that
falls inside a pixel is interpolated to a common set of pressures before
averaging. Interpolation happens in log(pressure)-log(NO2) space, and one
bin below the surface is kept so the AMF integration can reach the surface
pressure.
"""

from typing import Optional, Union
import warnings

import numpy as np

from behr_regrid.config import (
    ALLOWED_AVG_MODES,
    HYBRID_PROFILE_CUTOFF_HPA,
    MIXING_RATIO_SCALES,
    NUM_CORNERS,
    get_standard_pressures,
)


class NoProfileError(ValueError):
    """Raised when no WRF profile falls inside a pixel."""


def convert_units(
    values: Union[float, np.ndarray],
    from_unit: str,
    to_unit: str,
) -> Union[float, np.ndarray]:
    """
    Convert a mixing ratio between ppp, ppm, ppb and ppt.

    Args:
        values: Mixing ratio(s)
        from_unit: Current unit
        to_unit: Desired unit

    Returns:
        Converted mixing ratio(s)
    """
    from_key = from_unit.lower()
    to_key = to_unit.lower()
    for unit in (from_key, to_key):
        if unit not in MIXING_RATIO_SCALES:
            raise ValueError(
                f"Unknown mixing ratio unit {unit!r}, expected one of {sorted(MIXING_RATIO_SCALES)}"
            )
    return values * (MIXING_RATIO_SCALES[from_key] / MIXING_RATIO_SCALES[to_key])


def combine_wrf_profiles(
    no2_hourly: np.ndarray,
    pres_hourly: np.ndarray,
    no2_monthly: np.ndarray,
    cutoff_hpa: float = HYBRID_PROFILE_CUTOFF_HPA,
) -> np.ndarray:
    """
    Build hybrid profiles: hourly near the surface, monthly aloft.

    Every hourly value at a pressure below cutoff_hpa (i.e. above that level
    in the atmosphere) is replaced with the monthly value.

    Args:
        no2_hourly: Hourly NO2 profiles
        pres_hourly: Pressures (hPa) of the hourly profiles
        no2_monthly: Monthly NO2 profiles on the same grid

    Returns:
        Hybrid NO2 profiles
    """
    no2_hourly = np.asarray(no2_hourly)
    pres_hourly = np.asarray(pres_hourly)
    no2_monthly = np.asarray(no2_monthly)

    if no2_hourly.shape != no2_monthly.shape:
        raise ValueError(
            f"Size mismatch: hourly NO2 {no2_hourly.shape} != monthly NO2 {no2_monthly.shape}"
        )
    if no2_hourly.shape != pres_hourly.shape:
        raise ValueError(
            f"Size mismatch: hourly NO2 {no2_hourly.shape} != hourly pressure {pres_hourly.shape}"
        )

    combined = no2_hourly.copy()
    aloft = pres_hourly < cutoff_hpa
    combined[aloft] = no2_monthly[aloft]
    return combined


def select_profiles(
    avg_mode: str,
    no2_hourly: Optional[np.ndarray] = None,
    pres_hourly: Optional[np.ndarray] = None,
    no2_monthly: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Pick the NO2 profiles to bin for a given averaging mode.

    Args:
        avg_mode: 'hourly', 'monthly' or 'hybrid'
        no2_hourly: Hourly NO2 profiles (hourly and hybrid modes)
        pres_hourly: Hourly pressures (hybrid mode)
        no2_monthly: Monthly NO2 profiles (monthly and hybrid modes)

    Returns:
        NO2 profiles for bin_profiles_to_pixels
    """
    if avg_mode not in ALLOWED_AVG_MODES:
        raise ValueError(f"avg_mode must be one of {ALLOWED_AVG_MODES}, got {avg_mode!r}")

    needed = {
        "hourly": {"no2_hourly": no2_hourly},
        "monthly": {"no2_monthly": no2_monthly},
        "hybrid": {"no2_hourly": no2_hourly, "pres_hourly": pres_hourly, "no2_monthly": no2_monthly},
    }[avg_mode]
    missing = [name for name, value in needed.items() if value is None]
    if missing:
        raise ValueError(f"avg_mode {avg_mode!r} requires {missing}")

    if avg_mode == "hourly":
        return np.asarray(no2_hourly)
    if avg_mode == "monthly":
        return np.asarray(no2_monthly)
    return combine_wrf_profiles(no2_hourly, pres_hourly, no2_monthly)


def interpolate_profile(
    profile_pres: np.ndarray,
    profile_no2: np.ndarray,
    pressures: np.ndarray,
) -> np.ndarray:
    """
    Interpolate one profile in log-log space, extrapolating at both ends.

    Args:
        profile_pres: Pressures (hPa) of the profile levels
        profile_no2: NO2 mixing ratios at those levels
        pressures: Target pressures (hPa)

    Returns:
        NO2 at the target pressures
    """
    from scipy.interpolate import interp1d

    with np.errstate(divide="ignore", invalid="ignore"):
        interp = interp1d(
            np.log(profile_pres),
            np.log(profile_no2),
            kind="linear",
            bounds_error=False,
            fill_value="extrapolate",
        )
        return np.exp(interp(np.log(pressures)))


def _check_inputs(loncorns, latcorns, surf_pres, pressures):
    if loncorns.shape[0] != NUM_CORNERS or latcorns.shape[0] != NUM_CORNERS:
        raise ValueError(
            "loncorns and latcorns must have the corners along the first dimension "
            f"(size {NUM_CORNERS})"
        )
    if loncorns.shape != latcorns.shape:
        raise ValueError(
            f"loncorns {loncorns.shape} and latcorns {latcorns.shape} must have the same dimensions"
        )
    if loncorns.shape[1:] != surf_pres.shape:
        raise ValueError(
            f"surf_pres shape {surf_pres.shape} must match the corner arrays without "
            f"their first dimension {loncorns.shape[1:]}"
        )
    if pressures.ndim != 1 or np.any(np.diff(pressures) > 0):
        raise ValueError("pressures must be a monotonically decreasing vector")


def bin_profiles_to_pixels(
    wrf_no2: np.ndarray,
    wrf_pres: np.ndarray,
    wrf_lon: np.ndarray,
    wrf_lat: np.ndarray,
    loncorns: np.ndarray,
    latcorns: np.ndarray,
    surf_pres: np.ndarray,
    pressures: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Average the WRF profiles inside each pixel onto common pressures.

    Args:
        wrf_no2: NO2 profiles, vertical levels along the first dimension
        wrf_pres: Pressures (hPa) matching wrf_no2
        wrf_lon: Longitude of each profile (wrf_no2.shape[1:])
        wrf_lat: Latitude of each profile (wrf_no2.shape[1:])
        loncorns: Pixel corner longitudes, 4 corners along the first dimension
        latcorns: Pixel corner latitudes, same shape as loncorns
        surf_pres: Surface pressure (hPa) of each pixel (loncorns.shape[1:])
        pressures: Monotonically decreasing target pressures (hPa),
            default the standard OMI a priori levels

    Returns:
        Array of shape (len(pressures),) + surf_pres.shape. Bins more than
        one level below the surface are NaN.

    Raises:
        NoProfileError: If a pixel contains no WRF profile
    """
    from shapely.geometry import Point, Polygon

    wrf_no2 = np.asarray(wrf_no2, dtype=np.float64)
    wrf_pres = np.asarray(wrf_pres, dtype=np.float64)
    loncorns = np.asarray(loncorns, dtype=np.float64)
    latcorns = np.asarray(latcorns, dtype=np.float64)
    surf_pres = np.asarray(surf_pres, dtype=np.float64)
    if pressures is None:
        pressures = get_standard_pressures()
    pressures = np.asarray(pressures, dtype=np.float64)

    _check_inputs(loncorns, latcorns, surf_pres, pressures)
    if wrf_no2.shape != wrf_pres.shape:
        raise ValueError(f"wrf_no2 {wrf_no2.shape} and wrf_pres {wrf_pres.shape} must match")

    # Profiles along the first dimension, one column per WRF grid point
    n_levels = wrf_no2.shape[0]
    wrf_no2 = wrf_no2.reshape(n_levels, -1)
    wrf_pres = wrf_pres.reshape(n_levels, -1)
    wrf_lon = np.asarray(wrf_lon, dtype=np.float64).ravel()
    wrf_lat = np.asarray(wrf_lat, dtype=np.float64).ravel()
    if wrf_lon.size != wrf_no2.shape[1] or wrf_lat.size != wrf_no2.shape[1]:
        raise ValueError("wrf_lon and wrf_lat must have one entry per WRF profile")

    n_pixels = surf_pres.size
    pix_lon = loncorns.reshape(NUM_CORNERS, n_pixels)
    pix_lat = latcorns.reshape(NUM_CORNERS, n_pixels)
    pix_surf = surf_pres.reshape(n_pixels)

    no2_bins = np.full((pressures.size, n_pixels), np.nan)

    for p in range(n_pixels):
        xall = pix_lon[:, p]
        yall = pix_lat[:, p]

        # Cheap bounding box cut before the exact polygon test
        in_box = (
            (wrf_lon < xall.max()) & (wrf_lon > xall.min()) &
            (wrf_lat < yall.max()) & (wrf_lat > yall.min())
        )
        candidates = np.flatnonzero(in_box)

        pixel_poly = Polygon(np.column_stack([xall, yall]))
        members = [i for i in candidates if pixel_poly.covers(Point(wrf_lon[i], wrf_lat[i]))]

        if not members:
            raise NoProfileError(
                f"WRF profile not found for pixel near {xall.mean():.1f}, {yall.mean():.1f}"
            )

        interp_no2 = np.column_stack([
            interpolate_profile(wrf_pres[:, i], wrf_no2[:, i], pressures) for i in members
        ])

        # Keep exactly one bin below the surface
        below_surface = np.flatnonzero(pressures > pix_surf[p])
        if below_surface.size:
            interp_no2[:below_surface[-1], :] = np.nan

        with warnings.catch_warnings():
            warnings.simplefilter("ignore", category=RuntimeWarning)
            no2_bins[:, p] = np.nanmean(interp_no2, axis=1)

    return no2_bins.reshape((pressures.size,) + surf_pres.shape)
