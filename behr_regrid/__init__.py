"""
BEHR Regrid - oversample satellite NO2 retrievals onto a fixed lat/lon grid.

This package provides tools for:
- Scan-converting pixel quadrangles onto a grid (running-mean accumulation)
- Gridding whole OMI orbits from lon/lat pixel corners
- Averaging WRF-Chem a priori profiles onto pixels
"""

__version__ = "0.1.0"

from behr_regrid.add2grid import GridSpec, add2grid
from behr_regrid.grid import FieldRegistry, Footprint, accumulate, create_grid, finalize

__all__ = [
    "GridSpec",
    "add2grid",
    "FieldRegistry",
    "Footprint",
    "accumulate",
    "create_grid",
    "finalize",
]
