"""
Physics module: ionization balance, temperature, rate assembly.

Submodules:
- shielding: self-shielding of the ionizing background
- composition: helium abundance and mean molecular weight
- radiation_coupling: explicit photon fields from radiative transfer
- ionization: H/He ionization equilibrium at fixed temperature
- temperature: self-consistent temperature from specific energy
- opacity: optically thick limit on the net rate
- net_rate: heating minus cooling at fixed temperature
"""

from sph_cooling.physics.ionization import (
    IonizationMode,
    IonizationState,
    solve_ionization_equilibrium,
)
from sph_cooling.physics.temperature import (
    TemperatureSolution,
    ThermalProperties,
    deterministic_jitter,
    solve_temperature,
    thermal_properties,
)
from sph_cooling.physics.net_rate import NetRate, net_cooling_rate
from sph_cooling.physics.shielding import shield_factor

__all__ = [
    "IonizationMode",
    "IonizationState",
    "solve_ionization_equilibrium",
    "TemperatureSolution",
    "ThermalProperties",
    "deterministic_jitter",
    "solve_temperature",
    "thermal_properties",
    "NetRate",
    "net_cooling_rate",
    "shield_factor",
]
