"""
Self-shielding of the ionizing background.

The shield factor multiplies every background photoionization and
photoheating rate. Its characteristic density

    n_SS = 0.0123 (Γ_H0 / 1e-12)^0.66 10^(0.173 (log T - 4))  [cm⁻³]

rises with the background strength and the gas temperature; without a
background the Γ factor is omitted.

References:
    Faucher-Giguère et al. (2010) - n_SS scaling
    Rahmati et al. (2013) - fitting formulae
"""

from typing import Callable, Dict
import math

from sph_cooling.constants import NH_SS

# Rahmati+13 Table A2 characteristic density for the low-redshift fit [cm⁻³]
RAHMATI_LOW_Z_DENSITY = 10.0 ** -2.56

ShieldModel = Callable[[float, float, bool], float]


def self_shielding_density(log_t: float, gamma_h0: float = 0.0) -> float:
    """Density n_SS [cm⁻³] above which the background is shielded."""
    n_ss = NH_SS * 10.0 ** (0.173 * (log_t - 4.0))
    if gamma_h0 > 0.0:
        n_ss *= (gamma_h0 / 1.0e-12) ** 0.66
    return n_ss


def rational_shield(n_h: float, n_ss: float, high_redshift: bool = False) -> float:
    """
    Smooth rational cutoff 1/(1 + q(1 + q/2(1 + q/3(1 + q/4(1 + q/5(1 + q²/6)))))).

    The denominator follows the series of exp(q) through q⁵, so the factor
    tracks exp(-q) at low density and falls off as q⁻⁷ at high density.
    """
    q = n_h / n_ss
    return 1.0 / (1.0 + q * (1.0 + q / 2.0 * (1.0 + q / 3.0 * (1.0 + q / 4.0 * (
        1.0 + q / 5.0 * (1.0 + q / 6.0 * q))))))


def exponential_shield(n_h: float, n_ss: float, high_redshift: bool = False) -> float:
    """exp(-nH / n_SS), exactly zero beyond 100 n_SS."""
    q = n_h / n_ss
    if q < 100.0:
        return math.exp(-q)
    return 0.0


def rahmati_shield(n_h: float, n_ss: float, high_redshift: bool = False) -> float:
    """
    Rahmati+13 fit of the total-to-background photoionization rate ratio.

    The z > 1 form (Eq. 14) scales with n_SS; the low-redshift form
    (Table A2) uses a fixed characteristic density.
    """
    if high_redshift:
        q = n_h / n_ss
        return 0.98 * (1.0 + q ** 1.64) ** -2.28 + 0.02 * (1.0 + q) ** -0.84
    q = n_h / RAHMATI_LOW_Z_DENSITY
    return 0.99 * (1.0 + q ** 2.83) ** -1.86 + 0.01 * (1.0 + q) ** -0.51


def no_shield(n_h: float, n_ss: float, high_redshift: bool = False) -> float:
    return 1.0


SHIELDING_MODELS: Dict[str, ShieldModel] = {
    "rational": rational_shield,
    "exponential": exponential_shield,
    "rahmati": rahmati_shield,
    "none": no_shield,
}


def get_shield_model(name: str) -> ShieldModel:
    """Look up a shielding prescription by name."""
    try:
        return SHIELDING_MODELS[name]
    except KeyError:
        raise ValueError(
            f"Unknown shielding model: {name}. Must be one of {list(SHIELDING_MODELS)}"
        ) from None


def shield_factor(
    n_h: float,
    log_t: float,
    gamma_h0: float,
    model: ShieldModel = rational_shield,
    high_redshift: bool = False,
) -> float:
    """
    Attenuation of the ionizing background in [0, 1].

    Parameters
    ----------
    n_h : float
        Hydrogen number density [cm⁻³].
    log_t : float
        log10(T / K).
    gamma_h0 : float
        Unshielded H0 photoionization rate [s⁻¹] (0 when the background is off).
    model : callable
        One of the SHIELDING_MODELS.
    high_redshift : bool
        Selects the z > 1 form of models that have one.

    Returns
    -------
    shieldfac : float
        Multiplicative factor applied to the background rates.
    """
    n_ss = self_shielding_density(log_t, gamma_h0)
    factor = model(n_h, n_ss, high_redshift)
    return min(max(factor, 0.0), 1.0)


def low_temperature_taper(shieldfac: float, log_t: float, log_t_min: float) -> float:
    """Scale the factor linearly to zero across the decade above the temperature floor."""
    if log_t < log_t_min + 1.0:
        return shieldfac * max(log_t - log_t_min, 0.0)
    return shieldfac
