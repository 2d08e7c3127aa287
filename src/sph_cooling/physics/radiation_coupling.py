"""
Coupling of explicit radiative-transfer photon fields to the ionization balance.

Photon number densities supplied per frequency bin add to the background
photoionization rates and to the photoheating rate. Each bin is attenuated
through the element as a uniform slab, with the slab-averaged escape factor
(1 - e^-x)/x.

When the element carries neutral fractions from the previous step, the
neutral fractions are advanced with a semi-implicit update

    x_new = (x_old + a x_eq) / (1 + a),    a = dt / t_rec,

which keeps the old state for a → 0 and relaxes to equilibrium for a → ∞.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple
import math

from sph_cooling.constants import C_LIGHT, EV_TO_ERG, PROTONMASS
from sph_cooling.gas.state import RadiationField

# Local increments may exceed the unshielded background by at most this factor
MAX_BACKGROUND_BOOST = 1.0e6


@dataclass(frozen=True)
class FrequencyBin:
    """
    Frequency-averaged cross sections [cm²] and mean photoelectron energies [erg].

    A zero cross section means the bin cannot ionize that species.
    """
    sigma_h0: float
    sigma_he0: float
    sigma_hep: float
    energy_h0: float
    energy_he0: float
    energy_hep: float


# Bins bounded by the H0, He0 and He+ ionization edges (13.6, 24.6, 54.4 eV)
FREQUENCY_BINS: Dict[str, FrequencyBin] = {
    "H0": FrequencyBin(
        sigma_h0=3.0e-18, sigma_he0=0.0, sigma_hep=0.0,
        energy_h0=3.4 * EV_TO_ERG, energy_he0=0.0, energy_hep=0.0,
    ),
    "He0": FrequencyBin(
        sigma_h0=5.7e-19, sigma_he0=4.5e-18, sigma_hep=0.0,
        energy_h0=16.0 * EV_TO_ERG, energy_he0=5.0 * EV_TO_ERG, energy_hep=0.0,
    ),
    "He1": FrequencyBin(
        sigma_h0=7.9e-20, sigma_he0=1.2e-18, sigma_hep=1.1e-18,
        energy_h0=50.0 * EV_TO_ERG, energy_he0=39.0 * EV_TO_ERG, energy_hep=9.0 * EV_TO_ERG,
    ),
}


def slab_average(x: float) -> float:
    """Slab-averaged transmission (1 - e^-x)/x, tending to 1 - x/2 for small x."""
    if x < 1.0e-5:
        return 1.0 - 0.5 * x
    return -math.expm1(-x) / x


def photoionization_increments(
    field: RadiationField,
    n_h0: float,
    n_he0: float,
    n_hep: float,
    necgs: float,
    x_h: float,
    baseline: Optional[Tuple[float, float, float]] = None,
) -> Tuple[float, float, float]:
    """
    Extra photoionization rates divided by the electron density.

    Parameters
    ----------
    field : RadiationField
        Photon fields and the element surface density.
    n_h0, n_he0, n_hep : float
        Current absorber abundances per hydrogen nucleus.
    necgs : float
        Electron number density [cm⁻³].
    x_h : float
        Hydrogen mass fraction (converts Σ to a hydrogen column).
    baseline : tuple of float, optional
        Background Γ/ne for H0, He0, He+; each increment is capped at
        MAX_BACKGROUND_BOOST times its baseline. None disables the cap.

    Returns
    -------
    increments : tuple of float
        Additions to Γ_H0/ne, Γ_He0/ne, Γ_He+/ne [cm³ s⁻¹].
    """
    if necgs <= 1.0e-25:
        return 0.0, 0.0, 0.0

    column = field.surface_density * x_h / PROTONMASS
    c_over_ne = C_LIGHT / necgs
    totals = [0.0, 0.0, 0.0]
    for name, n_gamma in field.photon_density.items():
        if n_gamma <= 0.0:
            continue
        bin_ = FREQUENCY_BINS[name]
        flux = c_over_ne * n_gamma
        for k, (sigma, abundance) in enumerate((
            (bin_.sigma_h0, n_h0), (bin_.sigma_he0, n_he0), (bin_.sigma_hep, n_hep)
        )):
            if sigma <= 0.0:
                continue
            rate = sigma * flux * slab_average(abundance * sigma * column)
            if baseline is not None:
                rate = min(rate, MAX_BACKGROUND_BOOST * baseline[k])
            totals[k] += rate
    return totals[0], totals[1], totals[2]


def photoheating_rate(
    field: RadiationField,
    n_h0: float,
    n_he0: float,
    n_hep: float,
    n_h: float,
    x_h: float,
) -> float:
    """
    Photoheating by the explicit photon fields per nH² [erg cm³ s⁻¹].
    """
    if n_h <= 0.0:
        return 0.0

    column = field.surface_density * x_h / PROTONMASS
    c_over_nh = C_LIGHT / n_h
    heat = 0.0
    for name, n_gamma in field.photon_density.items():
        if n_gamma <= 0.0:
            continue
        bin_ = FREQUENCY_BINS[name]
        flux = c_over_nh * n_gamma
        for energy, sigma, abundance in (
            (bin_.energy_h0, bin_.sigma_h0, n_h0),
            (bin_.energy_he0, bin_.sigma_he0, n_he0),
            (bin_.energy_hep, bin_.sigma_hep, n_hep),
        ):
            if energy <= 0.0 or sigma <= 0.0:
                continue
            tau = abundance * sigma * column
            heat += energy * abundance * sigma * flux * slab_average(tau)
    return heat


def relax_toward_equilibrium(x_old: float, x_eq: float, dt: float, total_rate: float) -> float:
    """
    Semi-implicit update of an abundance toward its equilibrium value.

    Parameters
    ----------
    x_old : float
        Abundance at the start of the step.
    x_eq : float
        Instantaneous equilibrium abundance.
    dt : float
        Timestep [s].
    total_rate : float
        Sum of destruction and creation rates 1/t_rec [s⁻¹].
    """
    a = dt * total_rate
    if not math.isfinite(a):
        return x_eq
    return (x_old + a * x_eq) / (1.0 + a)
