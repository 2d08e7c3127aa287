"""
Core module: configuration, solver context, errors and interfaces.
"""

from sph_cooling.core.errors import CoolingError, ConvergenceError, TableLoadError
from sph_cooling.core.interfaces import EOS, CoolingModel
from sph_cooling.core.config import CoolingChannel, CoolingConfig
from sph_cooling.core.context import CoolingContext, build_context

__all__ = [
    "CoolingError",
    "ConvergenceError",
    "TableLoadError",
    "EOS",
    "CoolingModel",
    "CoolingChannel",
    "CoolingConfig",
    "CoolingContext",
    "build_context",
]
