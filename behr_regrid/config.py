"""
Configuration constants and defaults for the BEHR regridding pipeline.
"""

from typing import Dict, Any, List

# ============================================================================
# FIELD REGISTRY DEFAULTS
# ============================================================================

# Field that decides whether a pixel contributes to the grid at all.
# A pixel with NaN here adds nothing (no count, no area weight).
PRIMARY_FIELD = "BEHRColumnAmountNO2Trop"

# Scalar fields averaged into each grid cell (BEHR OMI field set)
DEFAULT_SCALAR_FIELDS = [
    "BEHRColumnAmountNO2Trop",
    "Time",
    "ViewingZenithAngle",
    "SolarZenithAngle",
    "ViewingAzimuthAngle",
    "SolarAzimuthAngle",
    "CloudFraction",
    "CloudRadianceFraction",
    "ColumnAmountNO2",
    "SlantColumnAmountNO2",
    "TerrainHeight",
    "TerrainPressure",
    "TerrainReflectivity",
    "CloudPressure",
    "RelativeAzimuthAngle",
    "Latitude",
    "Longitude",
    "ColumnAmountNO2Trop",
    "GLOBETerpres",
    "MODISAlbedo",
    "BEHRAMFTrop",
    "MODISCloud",
    "Row",
    "Swath",
    "AMFTrop",
    "AMFStrat",
    "TropopausePressure",
]

# Flag fields are never averaged; every contributing value is kept
DEFAULT_FLAG_FIELDS = [
    "vcdQualityFlags",
    "XTrackQualityFlags",
]

# Names the grid reserves for its own bookkeeping arrays
COUNT_FIELD = "Count"
AREA_FIELD = "Area"
AREAWEIGHT_FIELD = "Areaweight"
RESERVED_FIELDS = (COUNT_FIELD, AREA_FIELD, AREAWEIGHT_FIELD)

# ============================================================================
# SWATH LAYOUT
# ============================================================================

# Corner arrays have the 4 corners along the first dimension
LON_CORNER_FIELD = "Loncorn"
LAT_CORNER_FIELD = "Latcorn"
NUM_CORNERS = 4

# OMI fill value; anything below this threshold is treated as missing
FILL_VALUE = -1.267650600228229e30
FILL_THRESHOLD = -1e29

# ============================================================================
# HDF5 PATH CONSTANTS
# ============================================================================

HDF5_SWATH_GROUP = "/Swath"
HDF5_GRID_GROUP = "/Grid"
HDF5_FLAGS_GROUP = "/Flags"

# Flag lists are stored ragged: concatenated values plus per-cell lengths
HDF5_FLAG_VALUES_NAME = "values"
HDF5_FLAG_COUNTS_NAME = "counts"

# Attributes written on the root of a grid file
GRID_ATTR_NAMES = [
    "minx",
    "maxx",
    "miny",
    "maxy",
    "primary_field",
]

GRID_SPEC_ATTR_NAMES = [
    "lat_min",
    "lat_max",
    "lon_min",
    "lon_max",
    "resolution",
]

# ============================================================================
# PHYSICAL CONSTANTS
# ============================================================================

EARTH_RADIUS_KM = 6371.0  # Mean Earth radius used for great-circle distances

# ============================================================================
# GRID DEFAULTS
# ============================================================================

# Continental US domain used by BEHR
DEFAULT_LAT_BOUNDS = (25.0, 50.0)
DEFAULT_LON_BOUNDS = (-125.0, -65.0)
DEFAULT_RESOLUTION_DEG = 0.05

# ============================================================================
# A PRIORI PROFILES
# ============================================================================

# Pressure (hPa) above which hourly WRF profiles are replaced by monthly ones
HYBRID_PROFILE_CUTOFF_HPA = 750.0

ALLOWED_AVG_MODES = ["hourly", "monthly", "hybrid"]

# Mixing ratio scale relative to parts-per-part
MIXING_RATIO_SCALES = {
    "ppp": 1.0,
    "ppm": 1e-6,
    "ppb": 1e-9,
    "ppt": 1e-12,
}

# Standard OMI pressure levels (hPa) for the a priori profiles
STANDARD_PRESSURES_HPA = [
    1020.0, 1015.0, 1010.0, 1005.0, 1000.0, 990.0, 980.0, 970.0, 960.0,
    945.0, 925.0, 900.0, 875.0, 850.0, 825.0, 800.0, 770.0, 740.0, 700.0,
    660.0, 610.0, 560.0, 500.0, 450.0, 400.0, 350.0, 280.0, 200.0, 100.0,
    50.0, 20.0, 5.0,
]

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================


def get_default_fields() -> Dict[str, Any]:
    """
    Get the default BEHR field registry settings.

    Returns:
        Dictionary with scalar_fields, flag_fields and primary_field.
    """
    return {
        "scalar_fields": list(DEFAULT_SCALAR_FIELDS),
        "flag_fields": list(DEFAULT_FLAG_FIELDS),
        "primary_field": PRIMARY_FIELD,
    }


def get_standard_pressures() -> List[float]:
    """Return a copy of the standard a priori pressure levels (hPa)."""
    return list(STANDARD_PRESSURES_HPA)
