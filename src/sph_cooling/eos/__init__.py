"""
EOS module: equation of state used for the pressure write-back.
"""

from .ideal_gas import IdealGas

__all__ = ["IdealGas"]
