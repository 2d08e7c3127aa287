"""
Tables module: rate curves, ionizing background and metal-line cooling grids.
"""

from sph_cooling.tables.rate_table import RateTable, RateCoefficients, compute_rate_curves
from sph_cooling.tables.uv_background import UVBackgroundTable, PhotoRates, NO_BACKGROUND
from sph_cooling.tables.metal_cooling import (
    MetalCoolingTable,
    metal_table_index,
    metal_table_filename,
    read_metal_table,
)

__all__ = [
    "RateTable",
    "RateCoefficients",
    "compute_rate_curves",
    "UVBackgroundTable",
    "PhotoRates",
    "NO_BACKGROUND",
    "MetalCoolingTable",
    "metal_table_index",
    "metal_table_filename",
    "read_metal_table",
]
