"""
Gas module: per-element solver inputs and particle arrays.
"""

from .state import GasState, RadiationField, WarmStart
from .particles import GasParticles

__all__ = ["GasState", "RadiationField", "WarmStart", "GasParticles"]
