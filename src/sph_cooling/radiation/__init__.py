"""
Radiation module: cooling models.
"""

from .equilibrium_cooling import EquilibriumCoolingModel, CoolingRates

__all__ = ["EquilibriumCoolingModel", "CoolingRates"]
