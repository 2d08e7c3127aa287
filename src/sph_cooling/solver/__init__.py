"""
Solver module: implicit energy update and the per-element driver.
"""

from sph_cooling.solver.energy_update import (
    EnergyUpdateResult,
    bisect_root,
    bracket_root,
    cooling_time,
    solve_energy,
)
from sph_cooling.solver.driver import (
    CoolingStepSummary,
    ElementUpdate,
    cool_active_elements,
    cool_element,
)

__all__ = [
    "EnergyUpdateResult",
    "bisect_root",
    "bracket_root",
    "cooling_time",
    "solve_energy",
    "CoolingStepSummary",
    "ElementUpdate",
    "cool_active_elements",
    "cool_element",
]
