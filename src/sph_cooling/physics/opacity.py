"""
Optically thick limit on the net heating/cooling rate.

The element is treated as a slab of surface density Σ radiating from its
photosphere (Rafikov 2007), which bounds the magnitude of the net rate per
hydrogen nucleus by

    Λ_BB = σ_SB T⁴ A_eff / ((1 + κ Σ) nH),    A_eff = 2.3 m_p / Σ.

The effective opacity κ blends dust, molecular, H⁻, electron-scattering,
Kramers and conductive contributions by temperature regime.
"""

from sph_cooling.constants import HYDROGEN_MASSFRAC, PROTONMASS, SIGMA_SB, SOLAR_ABUNDANCES

# Below this hydrogen density [cm⁻³] the gas is always optically thin
MIN_THICK_DENSITY = 0.1


def _harmonic(a: float, b: float) -> float:
    """1 / (1/a + 1/b), zero if either term vanishes."""
    if a <= 0.0 or b <= 0.0:
        return 0.0
    return 1.0 / (1.0 / a + 1.0 / b)


def effective_opacity(temperature: float, rho: float, ne: float, z_metal: float) -> float:
    """
    Frequency-integrated effective opacity κ [cm² g⁻¹].

    Parameters
    ----------
    temperature : float
        Temperature [K].
    rho : float
        Density [g cm⁻³].
    ne : float
        Electron abundance per hydrogen nucleus.
    z_metal : float
        Total metal mass fraction.
    """
    T = temperature
    if T < 1500.0:
        # warm dust, scaled by the dust-to-gas ratio
        kappa = 0.0027 * T ** 1.5 if T < 150.0 else 5.0
        kappa *= z_metal / SOLAR_ABUNDANCES[0]
        return max(kappa, 0.1)

    k_electron = 0.2 * (1.0 + HYDROGEN_MASSFRAC)
    k_molecular = 0.1 * z_metal
    k_h_minus = 1.1e-25 * (z_metal * rho) ** 0.5 * T ** 7.7
    k_kramers = 4.0e25 * (1.0 + HYDROGEN_MASSFRAC) * (z_metal + 0.001) * rho / T ** 3.5
    k_radiative = k_molecular + _harmonic(k_h_minus, k_electron + k_kramers)
    k_conductive = 2.6e-7 * ne * T * T / (rho * rho)
    return _harmonic(k_radiative, k_conductive)


def blackbody_limit(
    temperature: float,
    rho: float,
    n_h: float,
    ne: float,
    z_metal: float,
    column_density: float,
) -> float:
    """
    Maximum |net rate| per nH² allowed by photospheric emission [erg cm³ s⁻¹].
    """
    tau = effective_opacity(temperature, rho, ne, z_metal) * column_density
    effective_area = 2.3 * PROTONMASS / column_density
    return SIGMA_SB * temperature ** 4 * effective_area / ((1.0 + tau) * n_h)


def clamp_optically_thick(
    net: float,
    temperature: float,
    rho: float,
    n_h: float,
    ne: float,
    z_metal: float,
    column_density: float,
) -> float:
    """
    Clamp |net| to the blackbody-diffusion limit, keeping its sign.

    Applies only above MIN_THICK_DENSITY and with a positive column density.
    """
    if n_h <= MIN_THICK_DENSITY or not column_density > 0.0:
        return net
    limit = blackbody_limit(temperature, rho, n_h, ne, z_metal, column_density)
    if net > limit:
        return limit
    if net < -limit:
        return -limit
    return net
