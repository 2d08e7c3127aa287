"""
Redshift-dependent ionizing background (photoionization and photoheating rates).

Two sources are supported:

1. A plain-text table with one row per redshift bin:
       log10(1+z)  Γ_H0  Γ_He0  Γ_He+  ε_H0  ε_He0  ε_He+
   rows sorted by increasing redshift, read until the first row with Γ_H0 = 0
   or the end of the file (at most UV_TABLE_MAX_ROWS rows). Rates between rows
   are interpolated linearly in log10(rate) against log10(1+z).
2. An analytic power-law spectrum J_ν ∝ ν^-α whose amplitude J_21 follows a
   piecewise redshift history.

Outside the covered redshift range the background is zero.

References:
    Faucher-Giguère et al. (2009) - UV background tables
    Katz, Weinberg & Hernquist (1996) - power-law background integrals
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
import math

import numpy as np

from sph_cooling.constants import UV_TABLE_MAX_ROWS
from sph_cooling.core.errors import TableLoadError

UV_COLUMNS = 7

# Power-law spectral slope used by the analytic background
UV_POWER_LAW_SLOPE = 1.0


@dataclass(frozen=True)
class PhotoRates:
    """
    Ionizing background evaluated at one redshift.

    Attributes
    ----------
    gamma_h0, gamma_he0, gamma_hep : float
        Photoionization rates per atom/ion [s⁻¹].
    eps_h0, eps_he0, eps_hep : float
        Photoheating rates per atom/ion [erg s⁻¹].
    """
    gamma_h0: float = 0.0
    gamma_he0: float = 0.0
    gamma_hep: float = 0.0
    eps_h0: float = 0.0
    eps_he0: float = 0.0
    eps_hep: float = 0.0

    @property
    def is_on(self) -> bool:
        """True when any ionizing flux is present."""
        return self.gamma_h0 > 0.0 or self.gamma_he0 > 0.0 or self.gamma_hep > 0.0

    def scaled(self, amplitude: float) -> "PhotoRates":
        """Multiply every rate by amplitude."""
        return PhotoRates(
            gamma_h0=self.gamma_h0 * amplitude,
            gamma_he0=self.gamma_he0 * amplitude,
            gamma_hep=self.gamma_hep * amplitude,
            eps_h0=self.eps_h0 * amplitude,
            eps_he0=self.eps_he0 * amplitude,
            eps_hep=self.eps_hep * amplitude,
        )


NO_BACKGROUND = PhotoRates()


class UVBackgroundTable:
    """
    Tabulated ionizing background.

    Parameters
    ----------
    rows : array_like, shape (n, 7)
        Columns log10(1+z), Γ_H0, Γ_He0, Γ_He+, ε_H0, ε_He0, ε_He+, sorted by
        increasing log10(1+z).
    amplitude : float, optional
        Multiplier applied to every interpolated rate (default 1).
    source : str, optional
        Where the rows came from, for diagnostics.
    """

    def __init__(self, rows, amplitude: float = 1.0, source: str = "<memory>"):
        rows = np.asarray(rows, dtype=np.float64)
        if rows.ndim != 2 or rows.shape[1] != UV_COLUMNS:
            raise ValueError(f"UV background rows must have shape (n, {UV_COLUMNS}), got {rows.shape}")
        if rows.shape[0] > 1 and np.any(np.diff(rows[:, 0]) <= 0.0):
            raise ValueError("UV background rows must be sorted by increasing log10(1+z)")

        self.rows = rows
        self.rows.flags.writeable = False
        self.amplitude = float(amplitude)
        self.source = source

    @classmethod
    def from_file(cls, filename: Union[str, Path], amplitude: float = 1.0) -> "UVBackgroundTable":
        """
        Read a UV background table from a whitespace-separated text file.

        Raises
        ------
        TableLoadError
            If the file is missing, unreadable, malformed or contains no rows.
        """
        filepath = Path(filename)
        if not filepath.exists():
            raise TableLoadError(filepath, "file not found")

        rows = []
        try:
            with open(filepath, 'r') as f:
                for line_number, line in enumerate(f, start=1):
                    fields = line.split()
                    if not fields or fields[0].startswith('#'):
                        continue
                    if len(fields) < UV_COLUMNS:
                        raise TableLoadError(
                            filepath, f"line {line_number} has {len(fields)} columns, expected {UV_COLUMNS}"
                        )
                    try:
                        values = [float(x) for x in fields[:UV_COLUMNS]]
                    except ValueError as e:
                        raise TableLoadError(filepath, f"line {line_number}: {e}") from e
                    # a zero hydrogen rate terminates the table
                    if values[1] == 0.0:
                        break
                    rows.append(values)
                    if len(rows) == UV_TABLE_MAX_ROWS:
                        break
        except TableLoadError:
            raise
        except OSError as e:
            raise TableLoadError(filepath, str(e)) from e

        if not rows:
            raise TableLoadError(filepath, "no usable rows")

        try:
            return cls(rows, amplitude=amplitude, source=str(filepath))
        except ValueError as e:
            raise TableLoadError(filepath, str(e)) from e

    @property
    def n_rows(self) -> int:
        return self.rows.shape[0]

    def rates_at(self, redshift: float) -> PhotoRates:
        """
        Interpolate the background at the given redshift.

        Returns NO_BACKGROUND outside the tabulated range.
        """
        log_z = math.log10(1.0 + redshift)
        log_zs = self.rows[:, 0]

        if self.n_rows == 0 or log_z < log_zs[0] or log_z > log_zs[-1]:
            return NO_BACKGROUND
        if self.n_rows == 1:
            return PhotoRates(*self.rows[0, 1:]).scaled(self.amplitude)

        # last row strictly below log_z
        i_low = int(np.searchsorted(log_zs, log_z, side='left')) - 1
        i_low = min(max(i_low, 0), self.n_rows - 2)
        low = self.rows[i_low]
        high = self.rows[i_low + 1]

        dz_low = log_z - low[0]
        dz_high = high[0] - log_z
        with np.errstate(divide='ignore', invalid='ignore'):
            values = 10.0 ** (
                (dz_high * np.log10(low[1:]) + dz_low * np.log10(high[1:])) / (dz_low + dz_high)
            )
        # columns that vanish in either row interpolate to zero
        values = np.where((low[1:] > 0.0) & (high[1:] > 0.0), values, 0.0)
        return PhotoRates(*(float(v) for v in values)).scaled(self.amplitude)

    @staticmethod
    def from_power_law(redshift: float, amplitude: float = 1.0,
                       n_integration: int = 5000) -> PhotoRates:
        """
        Photo-rates for a power-law spectrum J_ν = J_21 (ν/ν_H)^-α.

        J_21 is 0 for z ≥ 6, 4e-22/(1+z) for 3 ≤ z < 6, 1e-22 for 2 ≤ z < 3,
        and 1e-22 ((1+z)/3)³ below z = 2.

        Parameters
        ----------
        redshift : float
            Redshift at which to evaluate the background.
        amplitude : float
            Multiplier on the resulting rates.
        n_integration : int
            Midpoint-rule samples for the hydrogenic cross-section integral.

        Returns
        -------
        rates : PhotoRates
            The evaluated rates (NO_BACKGROUND when J_21 = 0).
        """
        if redshift >= 6.0:
            j_uv = 0.0
        elif redshift >= 3.0:
            j_uv = 4.0e-22 / (1.0 + redshift)
        elif redshift >= 2.0:
            j_uv = 1.0e-22
        else:
            j_uv = 1.0e-22 * (3.0 / (1.0 + redshift)) ** -3.0

        if j_uv == 0.0:
            return NO_BACKGROUND

        alpha = UV_POWER_LAW_SLOPE
        a0 = 6.30e-18
        planck = 6.6262e-27
        ev = 1.6022e-12
        e0_h = 13.6058 * ev
        e0_he = 24.59 * ev
        e0_hep = 54.4232 * ev

        # exact hydrogenic cross-section integrated over t = ν_H / ν
        at = 1.0 / n_integration
        t = (np.arange(1, n_integration + 1, dtype=np.float64) - 0.5) * at
        tinv = 1.0 / t
        eps = np.sqrt(tinv - 1.0)
        fac = np.exp(4.0 - 4.0 * np.arctan(eps) / eps) / (1.0 - np.exp(-2.0 * np.pi / eps)) * t ** (alpha + 3.0)
        gint = float(np.sum(fac) * at)
        eint = float(np.sum(fac * (tinv - 1.0)) * at)

        gamma_h0 = a0 * gint / planck
        eps_h0 = a0 * eint * (e0_h / planck)
        gamma_hep = gamma_h0 * (e0_h / e0_hep) ** alpha / 4.0
        eps_hep = eps_h0 * (e0_h / e0_hep) ** (alpha - 1.0) / 4.0

        # He0 cross-section fit (Osterbrock)
        a_he, beta, s = 7.83e-18, 1.66, 2.05
        gamma_he0 = (a_he / planck) * (e0_h / e0_he) ** alpha * (
            beta / (alpha + s) + (1.0 - beta) / (alpha + s + 1.0)
        )
        eps_he0 = (e0_he / planck) * a_he * (e0_h / e0_he) ** alpha * (
            beta / (alpha + s - 1.0) + (1.0 - 2.0 * beta) / (alpha + s) - (1.0 - beta) / (alpha + s + 1.0)
        )

        norm = 4.0 * np.pi * j_uv
        rates = PhotoRates(
            gamma_h0=gamma_h0 * norm,
            gamma_he0=gamma_he0 * norm,
            gamma_hep=gamma_hep * norm,
            eps_h0=eps_h0 * norm,
            eps_he0=eps_he0 * norm,
            eps_hep=eps_hep * norm,
        )
        return rates.scaled(amplitude)

    def __repr__(self) -> str:
        return f"UVBackgroundTable(source={self.source!r}, n_rows={self.n_rows}, amplitude={self.amplitude})"
