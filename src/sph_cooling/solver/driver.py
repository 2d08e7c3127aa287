"""
Per-element cooling driver and parallel dispatch over active elements.

cool_element prepares one element's inputs (energy floor, photo-ionized
override, hydro source limiting), runs the implicit energy update and
collects everything the host writes back. cool_active_elements maps it over
a set of elements with a thread pool; the context is shared read-only and
the particle arrays are only written after every element has finished.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, List, Optional, Tuple
import math

import numpy as np

from sph_cooling.constants import HII_REGION_TEMPERATURE
from sph_cooling.eos.ideal_gas import IdealGas
from sph_cooling.gas.particles import GasParticles
from sph_cooling.gas.state import GasState, WarmStart
from sph_cooling.physics.composition import helium_ratio, mean_molecular_weight, molecular_fraction
from sph_cooling.physics.ionization import IonizationState, ionized_state
from sph_cooling.solver.energy_update import hydrogen_density, solve_energy

if TYPE_CHECKING:
    from sph_cooling.core.context import CoolingContext

# Bounds on the hydro source term, in units of u/dt
HYDRO_MAX_COOLING = 0.5
HYDRO_MAX_HEATING = 50.0


@dataclass(frozen=True)
class ElementUpdate:
    """
    Values written back to one element after a cooling call.

    Attributes
    ----------
    specific_energy : float
        New specific internal energy [erg g⁻¹].
    pressure : float
        Ideal-gas pressure at the new energy [erg cm⁻³].
    temperature : float
        Temperature [K].
    mu : float
        Mean molecular weight.
    ionization : IonizationState
        Ionization fractions (ne, nH0, nH+, nHe0, nHe+, nHe++).
    molecular_fraction : float
        Approximate H2 fraction.
    du_dt_net, du_dt_heating, du_dt_cooling : float
        Radiative du/dt [erg g⁻¹ s⁻¹] at the new state; cooling ≤ 0.
    du_dt_hydro : float
        Hydro source term after the call (zero once folded into the solve).
    du_dt_reset : bool
        Energy was clamped to the floor or a negative hydro term discarded.
    iterations : int
        Bisection iterations.
    seed : WarmStart
        Warm start for the next call.
    """
    specific_energy: float
    pressure: float
    temperature: float
    mu: float
    ionization: IonizationState
    molecular_fraction: float
    du_dt_net: float
    du_dt_heating: float
    du_dt_cooling: float
    du_dt_hydro: float
    du_dt_reset: bool
    iterations: int
    seed: WarmStart

    @property
    def ne(self) -> float:
        return self.ionization.ne


def hii_region_energy(ctx: "CoolingContext", rho: float, metallicity=None) -> Tuple[float, float]:
    """
    Specific energy of fully ionized gas at HII_REGION_TEMPERATURE.

    Returns
    -------
    u_ion : float
        Specific energy [erg g⁻¹].
    ne : float
        Electron abundance 1 + 2y of fully ionized gas.
    """
    ne = 1.0 + 2.0 * helium_ratio(ctx.x_h, metallicity)
    mu = mean_molecular_weight(HII_REGION_TEMPERATURE, rho, ne, ctx.x_h, metallicity)
    u_ion = IdealGas(ctx.config.gamma).internal_energy_from_temperature(HII_REGION_TEMPERATURE, mu)
    return float(u_ion), ne


def limit_hydro_source(du_dt: float, u: float, dt: float) -> float:
    """Clamp the hydro source term to [-0.5 u/dt, 50 u/dt]."""
    if dt <= 0.0:
        return du_dt
    return min(max(du_dt, -HYDRO_MAX_COOLING * u / dt), HYDRO_MAX_HEATING * u / dt)


def cool_element(ctx: "CoolingContext", state: GasState) -> Optional[ElementUpdate]:
    """
    Cool one element over state.dt.

    Parameters
    ----------
    ctx : CoolingContext
        Solver context.
    state : GasState
        Element inputs.

    Returns
    -------
    update : ElementUpdate or None
        None when dt ≤ 0 (the element is left unchanged).

    Raises
    ------
    ConvergenceError
        If a nested solver fails for this element.
    """
    dt = state.dt
    if not dt > 0.0:
        return None

    floor = ctx.energy_floor
    rho = state.density
    u_old = max(floor, state.specific_energy)
    du_dt_reset = state.specific_energy < floor
    du_dt = state.du_dt_hydro
    seed = state.seed

    u_ion = None
    if state.hii_override:
        u_ion, ne_ion = hii_region_energy(ctx, rho, state.metallicity)
        u_old = max(u_old, u_ion)
        if du_dt < 0.0:
            du_dt = 0.0
            du_dt_reset = True
        seed = WarmStart(ne=ne_ion)

    split = ctx.config.operator_split
    if not split:
        du_dt = limit_hydro_source(du_dt, u_old, dt)

    result = solve_energy(ctx, replace(state, specific_energy=u_old, du_dt_hydro=du_dt, seed=seed))
    u_new = result.u_new
    temperature = result.temperature
    mu = result.mu
    ionization = result.ionization
    new_seed = result.seed

    if u_ion is not None:
        u_new = max(u_new, u_ion)
        y = helium_ratio(ctx.x_h, state.metallicity)
        ionization = ionized_state(max(math.log10(temperature), ctx.log_t_min), y)
        mu = mean_molecular_weight(temperature, rho, ionization.ne, ctx.x_h, state.metallicity)
        temperature = max(ctx.u_to_temperature * u_new * mu, ctx.temperature_floor)
        new_seed = ionization.to_seed()

    n_h = hydrogen_density(ctx, rho)
    ratefact = n_h * n_h / rho
    rate = result.net_rate
    radiative = rate.net - rate.components.get("hydro", 0.0)

    return ElementUpdate(
        specific_energy=u_new,
        pressure=float(IdealGas(ctx.config.gamma).pressure(rho, u_new)),
        temperature=temperature,
        mu=mu,
        ionization=ionization,
        molecular_fraction=molecular_fraction(temperature, rho),
        du_dt_net=ratefact * radiative,
        du_dt_heating=ratefact * rate.heating,
        du_dt_cooling=-ratefact * rate.cooling,
        du_dt_hydro=du_dt if split else 0.0,
        du_dt_reset=du_dt_reset or result.clamped,
        iterations=result.iterations,
        seed=new_seed,
    )


@dataclass(frozen=True)
class CoolingStepSummary:
    """Aggregate outcome of one cooling pass over a set of elements."""
    n_active: int
    n_updated: int
    n_floor_resets: int
    mean_iterations: float
    max_iterations: int
    luminosity: float
    energy_change: float
    radiated_energy: float = 0.0


def write_back(particles: GasParticles, i: int, update: ElementUpdate) -> None:
    """Store one ElementUpdate in the particle arrays."""
    ion = update.ionization
    particles.internal_energy[i] = update.specific_energy
    particles.pressure[i] = update.pressure
    particles.temperature[i] = update.temperature
    particles.mean_molecular_weight[i] = update.mu
    particles.molecular_fraction[i] = update.molecular_fraction
    particles.electron_abundance[i] = ion.ne
    particles.n_h0[i] = ion.n_h0
    particles.n_hp[i] = ion.n_hp
    particles.n_he0[i] = ion.n_he0
    particles.n_hep[i] = ion.n_hep
    particles.n_hepp[i] = ion.n_hepp
    particles.net_rate[i] = update.du_dt_net
    particles.heating_rate[i] = update.du_dt_heating
    particles.cooling_rate[i] = update.du_dt_cooling
    particles.du_dt_hydro[i] = update.du_dt_hydro
    particles.du_dt_reset[i] = update.du_dt_reset


def cool_active_elements(
    ctx: "CoolingContext",
    particles: GasParticles,
    active: Optional[np.ndarray] = None,
    n_workers: int = 1,
) -> CoolingStepSummary:
    """
    Cool every active element using its own particles.timestep.

    Parameters
    ----------
    ctx : CoolingContext
        Shared, read-only solver context.
    particles : GasParticles
        Element arrays; updated in place after all elements are solved.
    active : ndarray of bool or int, optional
        Boolean mask or index array; all elements if None.
    n_workers : int
        Worker threads. 1 runs serially in the calling thread.

    Returns
    -------
    summary : CoolingStepSummary

    Raises
    ------
    ConvergenceError
        If any element fails; no element is written back in that case.
    """
    if active is None:
        indices = np.arange(particles.n_particles)
    else:
        active = np.asarray(active)
        indices = np.flatnonzero(active) if active.dtype == bool else active.astype(np.int64)

    states = [particles.gas_state(int(i)) for i in indices]

    if n_workers > 1 and len(states) > 1:
        with ThreadPoolExecutor(max_workers=n_workers) as executor:
            updates: List[Optional[ElementUpdate]] = list(
                executor.map(lambda s: cool_element(ctx, s), states)
            )
    else:
        updates = [cool_element(ctx, s) for s in states]

    u_before = particles.internal_energy[indices].copy()
    n_updated = 0
    n_resets = 0
    iterations = []
    luminosity = 0.0
    radiated_energy = 0.0
    for i, update in zip(indices, updates):
        if update is None:
            continue
        write_back(particles, int(i), update)
        n_updated += 1
        n_resets += int(update.du_dt_reset)
        iterations.append(update.iterations)
        element_luminosity = particles.masses[i] * abs(update.du_dt_cooling)
        luminosity += element_luminosity
        radiated_energy += element_luminosity * particles.timestep[i]

    energy_change = float(np.sum(particles.masses[indices] * (particles.internal_energy[indices] - u_before)))
    return CoolingStepSummary(
        n_active=len(indices),
        n_updated=n_updated,
        n_floor_resets=n_resets,
        mean_iterations=float(np.mean(iterations)) if iterations else 0.0,
        max_iterations=max(iterations) if iterations else 0,
        luminosity=float(luminosity),
        energy_change=energy_change,
        radiated_energy=float(radiated_energy),
    )
