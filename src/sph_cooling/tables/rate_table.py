"""
Collisional, recombination and free-free rate curves on a uniform log-T grid.

Rates follow Katz, Weinberg & Hernquist (1996, ApJS 105, 19) with the
hydrogen and helium radiative recombination rates replaced by the Verner &
Ferland (1996) fits. The table is built once and never modified.

References:
    Katz, Weinberg & Hernquist (1996) - KWH primordial cooling
    Verner & Ferland (1996) - radiative recombination fits
    Black (1981) - free-free Gaunt factor
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np
import numpy.typing as npt

from sph_cooling.constants import LOG_T_MAX, NCOOLTAB

NDArrayFloat = npt.NDArray[np.float64]

# Boltzmann factors exp(-E/kT) are set to zero once E/kT exceeds this value.
MAX_BOLTZMANN_EXPONENT = 70.0

RATE_NAMES = (
    "beta_h0",      # collisional excitation of H0
    "beta_hep",     # collisional excitation of He+
    "beta_ff",      # free-free
    "alpha_hp",     # H+ radiative recombination
    "alpha_hep",    # He+ radiative recombination
    "alpha_hepp",   # He++ radiative recombination
    "alpha_d",      # He+ dielectronic recombination
    "gamma_e_h0",   # collisional ionization of H0
    "gamma_e_he0",  # collisional ionization of He0
    "gamma_e_hep",  # collisional ionization of He+
)


@dataclass(frozen=True)
class RateCoefficients:
    """
    Rate coefficients interpolated at a single temperature.

    Units are cm³ s⁻¹ for the recombination/ionization rates and
    erg cm³ s⁻¹ for the excitation and free-free cooling coefficients.
    """
    beta_h0: float
    beta_hep: float
    beta_ff: float
    alpha_hp: float
    alpha_hep: float
    alpha_hepp: float
    alpha_d: float
    gamma_e_h0: float
    gamma_e_he0: float
    gamma_e_hep: float

    def with_collisional_ionization_scaled(self, factor: float) -> "RateCoefficients":
        """Return a copy with the three collisional ionization rates multiplied by factor."""
        return RateCoefficients(
            beta_h0=self.beta_h0,
            beta_hep=self.beta_hep,
            beta_ff=self.beta_ff,
            alpha_hp=self.alpha_hp,
            alpha_hep=self.alpha_hep,
            alpha_hepp=self.alpha_hepp,
            alpha_d=self.alpha_d,
            gamma_e_h0=self.gamma_e_h0 * factor,
            gamma_e_he0=self.gamma_e_he0 * factor,
            gamma_e_hep=self.gamma_e_hep * factor,
        )


def _boltzmann(energy_over_k: float, T: NDArrayFloat) -> NDArrayFloat:
    """exp(-E/kT), zero where E/kT exceeds MAX_BOLTZMANN_EXPONENT."""
    x = energy_over_k / T
    out = np.zeros_like(T)
    mask = x < MAX_BOLTZMANN_EXPONENT
    out[mask] = np.exp(-x[mask])
    return out


def _verner_ferland(T: NDArrayFloat, a: float, t0: float, t1: float, b: float) -> NDArrayFloat:
    """Verner & Ferland (1996) radiative recombination fit."""
    s0 = np.sqrt(T / t0)
    s1 = np.sqrt(T / t1)
    return a / (s0 * (1.0 + s0) ** (1.0 - b) * (1.0 + s1) ** (1.0 + b))


def compute_rate_curves(T: NDArrayFloat) -> dict:
    """
    Evaluate every rate curve at the temperatures T [K].

    Parameters
    ----------
    T : NDArrayFloat
        Temperatures [K].

    Returns
    -------
    rates : dict
        Mapping from the names in RATE_NAMES to arrays shaped like T.
    """
    T = np.asarray(T, dtype=np.float64)
    logT = np.log10(T)
    t_fact = 1.0 / (1.0 + np.sqrt(T / 1.0e5))

    rates = {}
    rates["beta_h0"] = 7.5e-19 * _boltzmann(118348.0, T) * t_fact
    rates["beta_hep"] = 5.54e-17 * T ** -0.397 * _boltzmann(473638.0, T) * t_fact
    rates["beta_ff"] = 1.43e-27 * np.sqrt(T) * (1.1 + 0.34 * np.exp(-(5.5 - logT) ** 2 / 3.0))

    rates["alpha_hp"] = _verner_ferland(T, 7.982e-11, 3.148, 7.036e5, 0.748)
    rates["alpha_hep"] = _verner_ferland(T, 9.356e-10, 4.266e-2, 3.676e7, 0.7892)
    # hydrogenic scaling Z alpha_Hp(T / Z²) with Z = 2
    rates["alpha_hepp"] = _verner_ferland(T, 2.0 * 7.982e-11, 4.0 * 3.148, 4.0 * 7.036e5, 0.748)

    rates["alpha_d"] = (
        1.9e-3 * T ** -1.5 * _boltzmann(470000.0, T) * (1.0 + 0.3 * np.exp(-94000.0 / T))
    )

    rates["gamma_e_h0"] = 5.85e-11 * np.sqrt(T) * _boltzmann(157809.1, T) * t_fact
    rates["gamma_e_he0"] = 2.38e-11 * np.sqrt(T) * _boltzmann(285335.4, T) * t_fact
    rates["gamma_e_hep"] = 5.68e-12 * np.sqrt(T) * _boltzmann(631515.0, T) * t_fact
    return rates


class RateTable:
    """
    Immutable rate table on a uniform grid in log10(T).

    The grid has NCOOLTAB + 1 points covering [log_t_min, log_t_max] with
    constant spacing delta_log_t = (log_t_max - log_t_min) / NCOOLTAB.
    Lookups interpolate linearly between the two grid points bracketing
    log T, with the cell index clamped to the table.

    Parameters
    ----------
    log_t_min : float
        Lower edge in log10(T / K).
    log_t_max : float, optional
        Upper edge in log10(T / K) (default 9).
    n_cells : int, optional
        Number of grid cells (default NCOOLTAB).
    """

    def __init__(self, log_t_min: float, log_t_max: float = LOG_T_MAX, n_cells: int = NCOOLTAB):
        if not log_t_max > log_t_min:
            raise ValueError(f"log_t_max ({log_t_max}) must exceed log_t_min ({log_t_min})")
        if n_cells < 1:
            raise ValueError(f"n_cells must be positive, got {n_cells}")

        self.log_t_min = float(log_t_min)
        self.log_t_max = float(log_t_max)
        self.n_cells = int(n_cells)
        self.delta_log_t = (self.log_t_max - self.log_t_min) / self.n_cells

        self.log_t = self.log_t_min + self.delta_log_t * np.arange(self.n_cells + 1, dtype=np.float64)
        curves = compute_rate_curves(10.0 ** self.log_t)
        # (n_rates, n_cells + 1) so a single fancy index pulls every rate
        self._rates = np.vstack([curves[name] for name in RATE_NAMES])
        self._rates.flags.writeable = False
        self.log_t.flags.writeable = False

    def __getitem__(self, name: str) -> NDArrayFloat:
        """Read-only view of one rate curve by name."""
        return self._rates[RATE_NAMES.index(name)]

    def cell(self, log_t: float) -> Tuple[int, float]:
        """
        Locate the grid cell containing log_t.

        Returns
        -------
        index : int
            Lower grid index, clamped to [0, n_cells - 1].
        frac : float
            Linear weight of the upper grid point, in [0, 1].
        """
        t = (log_t - self.log_t_min) / self.delta_log_t
        j = int(t)
        if j < 0:
            j = 0
        if j > self.n_cells - 1:
            j = self.n_cells - 1
        frac = min(max(t - j, 0.0), 1.0)
        return j, frac

    def interpolate(self, log_t: float) -> RateCoefficients:
        """Interpolate all rate coefficients at log10(T) = log_t."""
        j, fhi = self.cell(log_t)
        flow = 1.0 - fhi
        values = flow * self._rates[:, j] + fhi * self._rates[:, j + 1]
        return RateCoefficients(*(float(v) for v in values))

    def __repr__(self) -> str:
        return (f"RateTable(log_t=[{self.log_t_min:.3f}, {self.log_t_max:.3f}], "
                f"n_cells={self.n_cells})")
