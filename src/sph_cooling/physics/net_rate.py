"""
Net heating minus cooling rate at a given temperature.

Rates are per hydrogen nucleus squared, Q = (Heat - Λ) / nH² [erg cm³ s⁻¹],
following Katz, Weinberg & Hernquist (1996, Table 1). Each process is a
channel function returning its (heating, cooling) pair; the enabled channels
are resolved once into a ChannelTerms table when the context is built, so
evaluating a rate only branches on the physical regime.

Above the table ceiling the gas is fully ionized and only free-free and
Compton cooling act; heating is zero there and the total cooling is capped
where electron-ion coupling becomes the bottleneck.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, NamedTuple, Optional, Tuple
import math
import warnings

from sph_cooling.constants import (
    BOLTZMANN,
    C_LIGHT,
    ELECTRONMASS,
    PROTONMASS,
    SIGMA_THOMSON,
    SOLAR_ABUNDANCES,
)
from sph_cooling.core.config import CoolingChannel
from sph_cooling.gas.state import GasState, WarmStart
from sph_cooling.physics.ionization import (
    IonizationMode,
    IonizationState,
    ionized_state,
    solve_ionization_equilibrium,
)
from sph_cooling.physics.composition import helium_ratio
from sph_cooling.physics.opacity import clamp_optically_thick
from sph_cooling.physics.radiation_coupling import photoheating_rate
from sph_cooling.physics.shielding import shield_factor

if TYPE_CHECKING:
    from sph_cooling.core.context import CoolingContext

# Electron-ion coupling cap on the hot-gas cooling rate
HOT_GAS_CAP_NORM = 2.19e-21

# Uniform Galactic cosmic-ray background [erg cm⁻³] (≈ 5 eV cm⁻³)
COSMIC_RAY_BACKGROUND = 9.0e-12

# Upper edge in log T of the low-temperature fits
LOW_TEMPERATURE_LOG_T_MAX = 5.2

# Metal lines are only taken from the tables above this log T
METAL_LINE_LOG_T_MIN = 4.0

# Bolometric-to-Compton flux correction for AGN spectra
AGN_SPECTRUM_FACTOR = 3.9 / 2.0


@dataclass(frozen=True)
class RatePoint:
    """Everything a channel function may read at one temperature."""
    ctx: "CoolingContext"
    temperature: float
    log_t: float
    rho: float
    n_h: float
    ion: IonizationState
    shieldfac: float
    high_temperature: bool
    gas: Optional[GasState] = None

    @property
    def metallicity(self):
        return self.gas.metallicity if self.gas is not None else None

    @property
    def z_over_solar(self) -> float:
        """Total metallicity relative to solar (0 for primordial gas)."""
        metallicity = self.metallicity
        if metallicity is None:
            return 0.0
        return metallicity[0] / SOLAR_ABUNDANCES[0]

    @property
    def above_floor(self) -> bool:
        ctx = self.ctx
        return self.log_t > ctx.log_t_min + 0.5 * ctx.delta_log_t

    @property
    def dust_temperature(self) -> float:
        if self.gas is not None and self.gas.dust_temperature is not None:
            return self.gas.dust_temperature
        return self.ctx.config.dust_temperature


ChannelFunction = Callable[[RatePoint], Tuple[float, float]]


class ChannelTerms(NamedTuple):
    """Channel table resolved from the configuration."""
    terms: Tuple[Tuple[str, ChannelFunction], ...]
    high_temperature_terms: Tuple[Tuple[str, ChannelFunction], ...]
    optically_thick: bool
    hydro_source: bool


@dataclass(frozen=True)
class NetRate:
    """
    Net rate and its decomposition, all per nH² [erg cm³ s⁻¹].

    Attributes
    ----------
    net : float
        Heating - cooling (after the optically thick clamp) plus the
        hydrodynamic source term when it is folded in.
    heating : float
        Sum of heating channels.
    cooling : float
        Sum of cooling channels.
    components : dict
        Per-channel contribution (positive heats, negative cools).
    ionization : IonizationState
        Ionization state the rate was evaluated with.
    temperature : float
        Temperature the rate was evaluated at [K].
    """
    net: float
    heating: float
    cooling: float
    components: Dict[str, float] = field(default_factory=dict)
    ionization: Optional[IonizationState] = None
    temperature: float = 0.0


# Channel functions -------------------------------------------------------------

def collisional_excitation(p: RatePoint) -> Tuple[float, float]:
    r, ion = p.ion.rates, p.ion
    return 0.0, (r.beta_h0 * ion.n_h0 + r.beta_hep * ion.n_hep) * ion.ne


def collisional_ionization(p: RatePoint) -> Tuple[float, float]:
    r, ion = p.ion.rates, p.ion
    cooling = (2.18e-11 * r.gamma_e_h0 * ion.n_h0
               + 3.94e-11 * r.gamma_e_he0 * ion.n_he0
               + 8.72e-11 * r.gamma_e_hep * ion.n_hep) * ion.ne
    return 0.0, cooling


def recombination(p: RatePoint) -> Tuple[float, float]:
    r, ion = p.ion.rates, p.ion
    radiative = 1.036e-16 * p.temperature * ion.ne * (
        r.alpha_hp * ion.n_hp + r.alpha_hep * ion.n_hep + r.alpha_hepp * ion.n_hepp
    )
    dielectronic = 6.526e-11 * r.alpha_d * ion.ne * ion.n_hep
    return 0.0, radiative + dielectronic


def free_free(p: RatePoint) -> Tuple[float, float]:
    ion = p.ion
    if p.high_temperature:
        gaunt = 1.1 + 0.34 * math.exp(-(5.5 - p.log_t) ** 2 / 3.0)
        return 0.0, 1.42e-27 * math.sqrt(p.temperature) * gaunt * (ion.n_hp + 4.0 * ion.n_hepp) * ion.ne
    return 0.0, ion.rates.beta_ff * (ion.n_hp + ion.n_hep + 4.0 * ion.n_hepp) * ion.ne


def compton_cmb(p: RatePoint) -> Tuple[float, float]:
    z = p.ctx.redshift
    rate = 5.65e-36 * p.ion.ne * (p.temperature - 2.73 * (1.0 + z)) * (1.0 + z) ** 4 / p.n_h
    if rate >= 0.0:
        return 0.0, rate
    return -rate, 0.0


def compton_agn(p: RatePoint) -> Tuple[float, float]:
    flux = p.gas.agn_flux if p.gas is not None else 0.0
    if flux <= 0.0:
        return 0.0, 0.0
    prefactor = flux * AGN_SPECTRUM_FACTOR * SIGMA_THOMSON * 4.0 * BOLTZMANN / (ELECTRONMASS * C_LIGHT ** 2)
    t_compton = p.ctx.config.agn_compton_temperature
    T = p.temperature
    if p.high_temperature:
        relativistic = (T / 1.5e9) / (1.0 - math.exp(-T / 1.5e9))
        return 0.0, prefactor * (T - t_compton) * relativistic * p.ion.ne / p.n_h
    if T > t_compton:
        cooling = prefactor * (T - t_compton) * p.ion.ne / p.n_h
        return 0.0, min(cooling, HOT_GAS_CAP_NORM / math.sqrt(T / 1.0e8))
    # heating does not depend on the free electron fraction
    return prefactor * (t_compton - T) / p.n_h, 0.0


def metal_lines(p: RatePoint) -> Tuple[float, float]:
    ctx = p.ctx
    metallicity = p.metallicity
    if (metallicity is None or ctx.metal_table is None or not ctx.background_on
            or not p.above_floor or p.log_t <= METAL_LINE_LOG_T_MIN):
        return 0.0, 0.0
    return 0.0, ctx.metal_table.cooling_rate(p.n_h, p.log_t, metallicity) * p.ion.ne


def molecular(p: RatePoint) -> Tuple[float, float]:
    if p.log_t > LOW_TEMPERATURE_LOG_T_MAX or not p.above_floor:
        return 0.0, 0.0
    T, n_h = p.temperature, p.n_h
    rate = 2.8958629e-26 / (
        (T / 125.21547) ** -4.9201887 + (T / 1349.8649) ** -1.7287826 + (T / 6450.0636) ** -0.30749082
    )
    rate *= (1.0 - p.shieldfac)
    # suppressed above the CO(1-0) critical density
    rate /= 1.0 + n_h / 700.0
    if p.metallicity is not None:
        zr = p.z_over_solar
        rate *= (1.0 + zr) * (
            0.001 + 0.1 * n_h / (1.0 + n_h) + 0.09 * n_h / (1.0 + 0.1 * n_h) + zr * zr / (1.0 + n_h)
        )
    return 0.0, rate


def dust(p: RatePoint) -> Tuple[float, float]:
    if p.metallicity is None:
        return 0.0, 0.0
    T = p.temperature
    t_dust = p.dust_temperature
    exchange = 1.116e-32 * abs(T - t_dust) * math.sqrt(T) * (1.0 - 0.8 * math.exp(-75.0 / T)) * p.z_over_solar
    if T > t_dust:
        if p.log_t > LOW_TEMPERATURE_LOG_T_MAX or not p.above_floor:
            return 0.0, 0.0
        return 0.0, exchange
    return exchange, 0.0


def photoheating(p: RatePoint) -> Tuple[float, float]:
    photo = p.ctx.photo_rates
    if not photo.is_on:
        return 0.0, 0.0
    ion = p.ion
    heat = (ion.n_h0 * photo.eps_h0 + ion.n_he0 * photo.eps_he0 + ion.n_hep * photo.eps_hep) / p.n_h
    return heat * p.shieldfac, 0.0


def radiation_fields(p: RatePoint) -> Tuple[float, float]:
    radiation = p.gas.radiation if p.gas is not None else None
    if radiation is None or radiation.is_empty:
        return 0.0, 0.0
    ion = p.ion
    return photoheating_rate(radiation, ion.n_h0, ion.n_he0, ion.n_hep, p.n_h, p.ctx.x_h), 0.0


def cosmic_rays(p: RatePoint) -> Tuple[float, float]:
    coulomb = 1.0e-16 * (0.98 + 1.65 * p.ion.ne * p.ctx.x_h)
    energy_density = p.gas.cosmic_ray_energy_density if p.gas is not None else None
    if energy_density is not None:
        return coulomb / p.n_h * energy_density, 0.0
    if p.log_t <= LOW_TEMPERATURE_LOG_T_MAX:
        return coulomb / (1.0e-2 + p.n_h) * COSMIC_RAY_BACKGROUND, 0.0
    return 0.0, 0.0


def photoelectric(p: RatePoint) -> Tuple[float, float]:
    flux = p.gas.photoelectric_flux if p.gas is not None else 0.0
    T = p.temperature
    if flux <= 0.0 or T >= 1.0e6 or p.metallicity is None:
        return 0.0, 0.0
    x = flux * math.sqrt(T) / (0.5 * (1.0e-12 + p.ion.ne) * p.n_h)
    efficiency = 0.049 / (1.0 + (x / 1925.0) ** 0.73) + 0.037 * (T / 1.0e4) ** 0.7 / (1.0 + x / 5000.0)
    return 1.3e-24 * flux / p.n_h * p.z_over_solar * efficiency, 0.0


CHANNEL_FUNCTIONS = (
    (CoolingChannel.COLLISIONAL_EXCITATION, "excitation", collisional_excitation),
    (CoolingChannel.COLLISIONAL_IONIZATION, "ionization", collisional_ionization),
    (CoolingChannel.RECOMBINATION, "recombination", recombination),
    (CoolingChannel.FREE_FREE, "free_free", free_free),
    (CoolingChannel.METAL_LINES, "metal_lines", metal_lines),
    (CoolingChannel.MOLECULAR, "molecular", molecular),
    (CoolingChannel.DUST, "dust", dust),
    (CoolingChannel.COMPTON_CMB, "compton_cmb", compton_cmb),
    (CoolingChannel.COMPTON_AGN, "compton_agn", compton_agn),
    (CoolingChannel.PHOTOHEATING, "photoheating", photoheating),
    (CoolingChannel.RADIATION_FIELDS, "radiation_fields", radiation_fields),
    (CoolingChannel.COSMIC_RAYS, "cosmic_rays", cosmic_rays),
    (CoolingChannel.PHOTOELECTRIC, "photoelectric", photoelectric),
)

HIGH_TEMPERATURE_CHANNELS = ("free_free", "compton_cmb", "compton_agn")


def resolve_channel_terms(
    channels: CoolingChannel,
    cosmological: bool,
    operator_split: bool = True,
) -> ChannelTerms:
    """
    Turn channel flags into the table of functions evaluated per call.

    The CMB Compton term is only included in cosmological runs.
    """
    terms = []
    for flag, name, function in CHANNEL_FUNCTIONS:
        if flag not in channels:
            continue
        if flag is CoolingChannel.COMPTON_CMB and not cosmological:
            continue
        terms.append((name, function))
    high_t = tuple((name, fn) for name, fn in terms if name in HIGH_TEMPERATURE_CHANNELS)
    return ChannelTerms(
        terms=tuple(terms),
        high_temperature_terms=high_t,
        optically_thick=CoolingChannel.OPTICALLY_THICK in channels,
        hydro_source=not operator_split,
    )


def _finite(name: str, value: float) -> float:
    if math.isfinite(value):
        return value
    warnings.warn(f"non-finite {name} rate ({value}) replaced by zero", RuntimeWarning)
    return 0.0


def net_cooling_rate(
    ctx: "CoolingContext",
    log_t: float,
    rho: float,
    gas: Optional[GasState] = None,
    seed: Optional[WarmStart] = None,
    step_start: Optional[WarmStart] = None,
) -> NetRate:
    """
    Evaluate (Heat - Λ) / nH² at temperature 10**log_t.

    Parameters
    ----------
    ctx : CoolingContext
        Solver context.
    log_t : float
        log10(T / K); values at or below the floor are evaluated half a grid
        cell above it.
    rho : float
        Density [g cm⁻³].
    gas : GasState, optional
        Element fields: metallicity, radiation, external heating fields,
        column density and hydro source term.
    seed : WarmStart, optional
        Ionization seed; defaults to gas.seed.
    step_start : WarmStart, optional
        Start-of-step abundances for the radiation-coupled update; defaults
        to gas.seed.

    Returns
    -------
    rate : NetRate
    """
    if math.isnan(log_t) or log_t <= ctx.log_t_min:
        log_t = ctx.log_t_min + 0.5 * ctx.delta_log_t
    if seed is None and gas is not None:
        seed = gas.seed
    if step_start is None and gas is not None:
        step_start = gas.seed

    metallicity = gas.metallicity if gas is not None else None
    n_h = ctx.x_h * rho / PROTONMASS
    T = 10.0 ** log_t
    shieldfac = shield_factor(n_h, log_t, ctx.photo_rates.gamma_h0, ctx.shield_model, ctx.high_redshift)
    table = ctx.channel_terms

    high_temperature = log_t >= ctx.log_t_max
    if high_temperature:
        ion = ionized_state(log_t, helium_ratio(ctx.x_h, metallicity))
        terms = table.high_temperature_terms
    else:
        ion = solve_ionization_equilibrium(
            ctx, log_t, rho, seed, shieldfac=shieldfac,
            mode=IonizationMode.FRACTIONS_AND_RATES,
            metallicity=metallicity,
            radiation=gas.radiation if gas is not None else None,
            dt=gas.dt if gas is not None else 0.0,
            step_start=step_start,
        )
        terms = table.terms

    point = RatePoint(ctx=ctx, temperature=T, log_t=log_t, rho=rho, n_h=n_h, ion=ion,
                      shieldfac=shieldfac, high_temperature=high_temperature, gas=gas)

    heating = 0.0
    cooling = 0.0
    components = {}
    for name, function in terms:
        heat, cool = function(point)
        heat = _finite(name, heat)
        cool = _finite(name, cool)
        heating += heat
        cooling += cool
        components[name] = heat - cool

    if high_temperature:
        heating = 0.0
        cooling = min(cooling, HOT_GAS_CAP_NORM / math.sqrt(T / 1.0e8))

    net = heating - cooling
    if table.optically_thick and gas is not None and gas.column_density is not None:
        z_metal = metallicity[0] if metallicity is not None else 0.0
        net = clamp_optically_thick(net, T, rho, n_h, ion.ne, z_metal, gas.column_density)

    if table.hydro_source and gas is not None and gas.du_dt_hydro != 0.0:
        hydro = gas.du_dt_hydro * (PROTONMASS / ctx.x_h) / n_h
        components["hydro"] = hydro
        net += hydro

    return NetRate(net=net, heating=heating, cooling=cooling, components=components,
                   ionization=ion, temperature=T)
