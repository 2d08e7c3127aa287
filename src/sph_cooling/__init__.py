"""
sph_cooling: equilibrium radiative cooling for SPH gas elements.

Updates the specific internal energy of gas elements over a timestep with
primordial H/He ionization balance, table-driven metal-line cooling, an
ionizing background with self-shielding and optional low-temperature,
Compton and explicit radiation-field terms. All inputs and outputs are
physical CGS.
"""

__version__ = "1.0.0"
__author__ = "SPH Cooling Dev Team"

# Core imports for convenience
from sph_cooling.core import (
    CoolingChannel,
    CoolingConfig,
    CoolingContext,
    CoolingError,
    ConvergenceError,
    TableLoadError,
    build_context,
)
from sph_cooling.gas import GasParticles, GasState, RadiationField, WarmStart
from sph_cooling.solver import cool_active_elements, cool_element, cooling_time, solve_energy
from sph_cooling.radiation import EquilibriumCoolingModel

__all__ = [
    "CoolingChannel",
    "CoolingConfig",
    "CoolingContext",
    "CoolingError",
    "ConvergenceError",
    "TableLoadError",
    "build_context",
    "GasParticles",
    "GasState",
    "RadiationField",
    "WarmStart",
    "cool_active_elements",
    "cool_element",
    "cooling_time",
    "solve_energy",
    "EquilibriumCoolingModel",
]
