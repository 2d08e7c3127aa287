"""
Ideal gas equation of state for the cooled gas.

Pressure follows the adiabatic relation for an arbitrary index γ. The
T to u conversion uses either a fixed mean molecular weight or a
per-element μ supplied by the cooling solver, since μ changes with the
ionization state.

References:
    Kippenhahn & Weigert - Stellar Structure and Evolution
    Price (2012) - SPH review, thermodynamics section
"""

import numpy as np

from sph_cooling.constants import BOLTZMANN, GAMMA, PROTONMASS
from sph_cooling.core.interfaces import EOS, NDArrayFloat


class IdealGas(EOS):
    """
    Ideal gas equation of state with arbitrary adiabatic index.

    Thermodynamic relations:
        P = (γ - 1) ρ u              (pressure)
        u = k_B T / ((γ - 1) μ m_p) (specific energy)

    Parameters
    ----------
    gamma : float, optional
        Adiabatic index (default 5/3).
    mean_molecular_weight : float, optional
        Default mean molecular weight in proton masses (default 0.6,
        ionized primordial gas). Overridden per element by passing
        ``mean_molecular_weight`` to internal_energy_from_temperature().

    Notes
    -----
    All quantities are float64 CGS. Negative density or internal energy is
    treated as zero.
    """

    k_B = BOLTZMANN
    m_p = PROTONMASS

    def __init__(
        self,
        gamma: float = GAMMA,
        mean_molecular_weight: float = 0.6
    ):
        if gamma <= 1.0:
            raise ValueError(f"Adiabatic index gamma must be > 1, got {gamma}")
        if mean_molecular_weight <= 0.0:
            raise ValueError(f"mean_molecular_weight must be positive, got {mean_molecular_weight}")

        self.gamma = float(gamma)
        self.mu = float(mean_molecular_weight)
        self._gamma_minus_1 = self.gamma - 1.0

    def pressure(
        self,
        density: NDArrayFloat,
        internal_energy: NDArrayFloat,
        **kwargs
    ) -> NDArrayFloat:
        """
        P = (γ - 1) ρ u

        Parameters
        ----------
        density : NDArrayFloat, shape (N,)
            Mass density ρ [g cm⁻³].
        internal_energy : NDArrayFloat, shape (N,)
            Specific internal energy u [erg g⁻¹].

        Returns
        -------
        pressure : NDArrayFloat, shape (N,)
            Gas pressure [erg cm⁻³].
        """
        density = np.maximum(np.asarray(density, dtype=np.float64), 0.0)
        internal_energy = np.maximum(np.asarray(internal_energy, dtype=np.float64), 0.0)
        return self._gamma_minus_1 * density * internal_energy

    def internal_energy_from_temperature(
        self,
        temperature: NDArrayFloat,
        mean_molecular_weight=None
    ) -> NDArrayFloat:
        """
        u = k_B T / ((γ-1) μ m_p)
        """
        mu = self.mu if mean_molecular_weight is None else mean_molecular_weight
        T_safe = np.maximum(np.asarray(temperature, dtype=np.float64), 0.0)
        return T_safe * self.k_B / (self._gamma_minus_1 * np.asarray(mu, dtype=np.float64) * self.m_p)

    def __repr__(self) -> str:
        """String representation of EOS."""
        return f"IdealGas(gamma={self.gamma}, mu={self.mu})"
