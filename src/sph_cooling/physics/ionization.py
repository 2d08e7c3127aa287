"""
Ionization equilibrium of primordial hydrogen and helium (KWH eqs. 33-38).

For a fixed temperature the abundances of H0, H+, He0, He+ and He++ (per
hydrogen nucleus) follow from balancing collisional ionization and
photoionization against radiative and dielectronic recombination. The
photoionization terms are normalised by the electron density, so the
balance is iterated over ne until it settles.

Boundary cases need no iteration: at or below the temperature floor the gas
is fully neutral, at or above the table ceiling it is fully ionized.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Sequence
import math

from sph_cooling.constants import PROTONMASS
from sph_cooling.core.config import CoolingChannel
from sph_cooling.core.errors import ConvergenceError
from sph_cooling.gas.state import RadiationField, WarmStart
from sph_cooling.physics.composition import helium_ratio
from sph_cooling.physics.radiation_coupling import (
    photoionization_increments,
    relax_toward_equilibrium,
)
from sph_cooling.physics.shielding import low_temperature_taper, shield_factor
from sph_cooling.tables.rate_table import RateCoefficients

if TYPE_CHECKING:
    from sph_cooling.core.context import CoolingContext

# Helium ionization below this total rate is treated as absent
SMALLNUM = 1.0e-60

# Photoionization terms are dropped below this electron density [cm⁻³]
MIN_ELECTRON_DENSITY = 1.0e-25


class IonizationMode(Enum):
    """What solve_ionization_equilibrium returns besides the abundances."""
    FRACTIONS = "fractions"
    FRACTIONS_AND_RATES = "fractions_and_rates"


@dataclass(frozen=True)
class IonizationState:
    """
    Ionization state at one temperature, abundances per hydrogen nucleus.

    Attributes
    ----------
    log_t : float
        log10(T) the state was solved at (after NaN trapping).
    n_h0, n_hp, n_he0, n_hep, n_hepp : float
        Species abundances; n_h0 + n_hp = 1 and
        n_he0 + n_hep + n_hepp = helium_ratio.
    ne : float
        Electron abundance n_hp + n_hep + 2 n_hepp.
    helium_ratio : float
        He/H number ratio y.
    shieldfac : float
        Self-shielding factor applied to the background.
    iterations : int
        Fixed-point iterations used (0 for the closed forms).
    rates : RateCoefficients, optional
        Interpolated rate coefficients (FRACTIONS_AND_RATES mode, interior
        temperatures only); collisional ionization rates include the
        low-temperature taper when it applies.
    """
    log_t: float
    n_h0: float
    n_hp: float
    n_he0: float
    n_hep: float
    n_hepp: float
    ne: float
    helium_ratio: float
    shieldfac: float = 1.0
    iterations: int = 0
    rates: Optional[RateCoefficients] = None

    @property
    def temperature(self) -> float:
        return 10.0 ** self.log_t

    def to_seed(self) -> WarmStart:
        """Warm-start seed for the next call on the same element."""
        return WarmStart(
            ne=self.ne,
            n_h0=self.n_h0,
            n_hp=self.n_hp,
            n_he0=self.n_he0,
            n_hep=self.n_hep,
            n_hepp=self.n_hepp,
        )


def neutral_state(log_t: float, y: float) -> IonizationState:
    """Fully neutral gas."""
    return IonizationState(log_t=log_t, n_h0=1.0, n_hp=0.0, n_he0=y, n_hep=0.0,
                           n_hepp=0.0, ne=0.0, helium_ratio=y)


def ionized_state(log_t: float, y: float) -> IonizationState:
    """Fully ionized gas."""
    return IonizationState(log_t=log_t, n_h0=0.0, n_hp=1.0, n_he0=0.0, n_hep=0.0,
                           n_hepp=y, ne=1.0 + 2.0 * y, helium_ratio=y)


def default_electron_seed(log_t: float) -> float:
    """Regime-based initial ne when no warm start is available."""
    if log_t < 2.0:
        return 1.0e-10
    if log_t < 3.8:
        return 0.1
    return 1.0


def solve_ionization_equilibrium(
    ctx: "CoolingContext",
    log_t: float,
    rho: float,
    seed: Optional[WarmStart] = None,
    shieldfac: Optional[float] = None,
    mode: IonizationMode = IonizationMode.FRACTIONS,
    metallicity: Optional[Sequence[float]] = None,
    radiation: Optional[RadiationField] = None,
    dt: float = 0.0,
    step_start: Optional[WarmStart] = None,
) -> IonizationState:
    """
    Solve for the equilibrium ionization state at temperature 10**log_t.

    Parameters
    ----------
    ctx : CoolingContext
        Solver context.
    log_t : float
        log10(T / K). NaN is treated as the temperature floor.
    rho : float
        Density [g cm⁻³].
    seed : WarmStart, optional
        Previous solution; its ne seeds the iteration.
    shieldfac : float, optional
        Self-shielding factor. Computed from (nH, T, Γ_H0) when omitted.
    mode : IonizationMode
        FRACTIONS_AND_RATES also attaches the interpolated rate coefficients.
    metallicity : sequence of float, optional
        Metallicity vector; sets the helium abundance.
    radiation : RadiationField, optional
        Explicit photon fields added to the background.
    dt : float
        Timestep [s]; with radiation and a known start-of-step neutral
        fraction, the neutral abundances are advanced semi-implicitly over dt.
    step_start : WarmStart, optional
        Abundances at the start of the step, the base of the semi-implicit
        update. Defaults to seed; callers that chain seeds between
        iterations pass the original one here.

    Returns
    -------
    state : IonizationState

    Raises
    ------
    ConvergenceError
        If ne has not settled within ctx.max_iterations iterations.
    """
    y = helium_ratio(ctx.x_h, metallicity)

    if math.isnan(log_t):
        log_t = ctx.log_t_min
    if log_t <= ctx.log_t_min:
        return neutral_state(log_t, y)
    if log_t >= ctx.log_t_max:
        return ionized_state(log_t, y)

    coeffs = ctx.rate_table.interpolate(log_t)
    if ctx.low_temperature_cooling and log_t < ctx.log_t_min + 1.0:
        coeffs = coeffs.with_collisional_ionization_scaled(log_t - ctx.log_t_min)

    n_h = ctx.x_h * rho / PROTONMASS
    photo = ctx.photo_rates
    background_on = photo.is_on

    if shieldfac is None:
        shieldfac = shield_factor(n_h, log_t, photo.gamma_h0, ctx.shield_model, ctx.high_redshift)
        if ctx.low_temperature_cooling:
            shieldfac = low_temperature_taper(shieldfac, log_t, ctx.log_t_min)

    use_radiation = (
        radiation is not None
        and not radiation.is_empty
        and ctx.has(CoolingChannel.RADIATION_FIELDS)
    )
    start = step_start if step_start is not None else seed
    blend = use_radiation and start is not None and start.n_h0 is not None
    iterate = background_on or use_radiation

    if seed is not None and seed.has_electron_seed:
        ne = seed.ne
    else:
        ne = default_electron_seed(log_t)
    necgs = ne * n_h

    # absorber abundances for the slab attenuation of the local field
    n_h0 = seed.n_h0 if (seed is not None and seed.n_h0 is not None) else 1.0
    n_he0 = seed.n_he0 if (seed is not None and seed.n_he0 is not None) else y
    n_hep = seed.n_hep if (seed is not None and seed.n_hep is not None) else 0.0
    if blend:
        n_h0_old = start.n_h0
        n_he0_old = start.n_he0 if start.n_he0 is not None else y

    a_hp = coeffs.alpha_hp
    a_hep = coeffs.alpha_hep + coeffs.alpha_d
    a_hepp = coeffs.alpha_hepp
    ge_h0 = coeffs.gamma_e_h0
    ge_he0 = coeffs.gamma_e_he0
    ge_hep = coeffs.gamma_e_hep

    for niter in range(1, ctx.max_iterations + 1):
        if necgs <= MIN_ELECTRON_DENSITY or not background_on:
            gj_h0 = gj_he0 = gj_hep = 0.0
        else:
            gj_h0 = photo.gamma_h0 * shieldfac / necgs
            gj_he0 = photo.gamma_he0 * shieldfac / necgs
            gj_hep = photo.gamma_hep * shieldfac / necgs

        if use_radiation:
            baseline = (gj_h0, gj_he0, gj_hep) if background_on else None
            d_h0, d_he0, d_hep = photoionization_increments(
                radiation, n_h0, n_he0, n_hep, necgs, ctx.x_h, baseline
            )
            gj_h0 += d_h0
            gj_he0 += d_he0
            gj_hep += d_hep

        n_h0 = a_hp / (a_hp + ge_h0 + gj_h0)

        if gj_he0 + ge_he0 <= SMALLNUM:
            n_hep = 0.0
            n_hepp = 0.0
            n_he0 = y
        else:
            n_hep = y / (1.0 + a_hep / (ge_he0 + gj_he0) + (ge_hep + gj_hep) / a_hepp)
            n_he0 = n_hep * a_hep / (ge_he0 + gj_he0)
            n_hepp = n_hep * (ge_hep + gj_hep) / a_hepp

        if blend:
            n_h0 = relax_toward_equilibrium(
                n_h0_old, n_h0, dt, (a_hp + ge_h0 + gj_h0) * necgs
            )
            n_he0_eq = n_he0
            n_he0 = relax_toward_equilibrium(
                n_he0_old, n_he0_eq, dt, (a_hep + ge_he0 + gj_he0) * necgs
            )
            # keep the ionized helium split at its equilibrium ratio
            ionized = n_hep + n_hepp
            if ionized > 0.0:
                scale = (y - n_he0) / ionized
                n_hep *= scale
                n_hepp *= scale
        n_hp = 1.0 - n_h0

        ne_old = ne
        ne = n_hp + n_hep + 2.0 * n_hepp
        necgs = ne * n_h

        if not iterate:
            break

        ne = 0.5 * (ne + ne_old)
        necgs = ne * n_h

        if abs(ne - ne_old) < max(0.01 * ne, 1.0e-4):
            break
    else:
        raise ConvergenceError("ionization", {
            "log_t": log_t,
            "rho": rho,
            "ne_seed": seed.ne if seed is not None else None,
            "ne": ne,
            "iterations": niter,
        })

    # report the electron abundance consistent with the species abundances
    ne = n_hp + n_hep + 2.0 * n_hepp

    return IonizationState(
        log_t=log_t,
        n_h0=n_h0,
        n_hp=n_hp,
        n_he0=n_he0,
        n_hep=n_hep,
        n_hepp=n_hepp,
        ne=ne,
        helium_ratio=y,
        shieldfac=shieldfac,
        iterations=niter,
        rates=coeffs if mode is IonizationMode.FRACTIONS_AND_RATES else None,
    )

