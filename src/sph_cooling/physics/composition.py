"""
Composition helpers: helium abundance and mean molecular weight.
"""

from typing import Optional, Sequence, Tuple

from sph_cooling.constants import PROTONMASS

# Molecular transition temperature cap [K] (Glover & Clark 2012)
MAX_MOLECULAR_TEMPERATURE = 8000.0


def mass_fractions(x_h: float, metallicity: Optional[Sequence[float]] = None) -> Tuple[float, float, float]:
    """
    Hydrogen, helium and metal mass fractions (X, Y, Z).

    Primordial gas uses Y = 1 - X_H and Z = 0. With a metallicity vector,
    Z and Y are read from entries 0 and 1 (each capped at 0.5) and X = 1 - Y - Z.
    """
    if metallicity is None:
        return x_h, 1.0 - x_h, 0.0
    z = min(0.5, metallicity[0])
    y = min(0.5, metallicity[1])
    return 1.0 - (y + z), y, z


def helium_ratio(x_h: float, metallicity: Optional[Sequence[float]] = None) -> float:
    """He/H number ratio y used by the ionization balance."""
    if metallicity is None:
        return (1.0 - x_h) / (4.0 * x_h)
    y = min(0.5, metallicity[1])
    return 0.25 * y / (1.0 - y)


def molecular_fraction(temperature: float, rho: float) -> float:
    """
    Approximate H2 fraction 1 / (1 + (T / T_mol)²).

    T_mol = 100 K × (n / 100 cm⁻³), capped at 8000 K, is the temperature
    below which gas at number density n turns molecular.
    """
    t_mol = 100.0
    if rho > 0.0:
        t_mol *= (rho / PROTONMASS) / 100.0
    t_mol = min(t_mol, MAX_MOLECULAR_TEMPERATURE)
    if t_mol <= 0.0:
        return 0.0
    ratio = temperature / t_mol
    return 1.0 / (1.0 + ratio * ratio)


def mean_molecular_weight(
    temperature: float,
    rho: float,
    ne: float,
    x_h: float,
    metallicity: Optional[Sequence[float]] = None,
) -> float:
    """
    Mean molecular weight including molecular hydrogen.

        μ = 1 / (X/(1+f_mol) + Y/4 + ne X_H + Z/(16 + 12 f_mol))

    Parameters
    ----------
    temperature : float
        Temperature [K].
    rho : float
        Density [g cm⁻³].
    ne : float
        Electron abundance per hydrogen nucleus.
    x_h : float
        Hydrogen mass fraction used to normalise ne.
    metallicity : sequence of float, optional
        Metallicity vector (None for primordial gas).

    Returns
    -------
    mu : float
        Mean mass per particle in units of m_p.
    """
    x, y, z = mass_fractions(x_h, metallicity)
    f_mol = molecular_fraction(temperature, rho)
    return 1.0 / (x / (1.0 + f_mol) + y / 4.0 + ne * x_h + z / (16.0 + 12.0 * f_mol))
