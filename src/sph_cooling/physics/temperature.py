"""
Temperature from specific internal energy.

T and the ionization state depend on each other through the mean molecular
weight, T = (γ-1) m_p u μ(T, ne) / k_B, so they are found together by a
damped fixed-point iteration. The damping factor grows whenever the electron
abundance reacts strongly to a temperature change. A two-cycle in the
iterates is broken with a convex blend whose weight is a pure hash of
(element id, iteration), so results never depend on call order or threads.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence
import math

from sph_cooling.core.errors import ConvergenceError
from sph_cooling.gas.state import RadiationField, WarmStart
from sph_cooling.physics.composition import mean_molecular_weight, molecular_fraction
from sph_cooling.physics.ionization import IonizationState, solve_ionization_equilibrium

if TYPE_CHECKING:
    from sph_cooling.core.context import CoolingContext

_MASK64 = (1 << 64) - 1

# Relative distance to the iterate two steps back that counts as a two-cycle
CYCLE_TOLERANCE = 1.0e-6


def deterministic_jitter(element_id: int, iteration: int) -> float:
    """
    Pseudo-random number in [0, 1) from (element_id, iteration).

    SplitMix64 finaliser; a pure function with no shared state.
    """
    z = (element_id * 0x9E3779B97F4A7C15 + iteration * 0xBF58476D1CE4E5B9 + 0x94D049BB133111EB) & _MASK64
    z = ((z ^ (z >> 30)) * 0xBF58476D1CE4E5B9) & _MASK64
    z = ((z ^ (z >> 27)) * 0x94D049BB133111EB) & _MASK64
    z ^= z >> 31
    return (z >> 11) / float(1 << 53)


def temperature_converged(temp: float, temp_old: float, iteration: int, max_iterations: int) -> bool:
    """
    Temperature-dependent relative tolerance.

    25% always; 10% above 20 K; 5% above 100 K; 1% above 200 K; 0.1% above
    1000 K while fewer than half of the allowed iterations have been used.
    """
    change = abs(temp - temp_old)
    if change > 0.25 * temp:
        return False
    if temp > 20.0 and change > 0.1 * temp:
        return False
    if temp > 100.0 and change > 0.05 * temp:
        return False
    if temp > 200.0 and change > 0.01 * temp:
        return False
    if temp > 1000.0 and iteration < max_iterations // 2 and change > 1.0e-3 * temp:
        return False
    return True


@dataclass(frozen=True)
class TemperatureSolution:
    """
    Self-consistent temperature and ionization state.

    Attributes
    ----------
    temperature : float
        Temperature [K], at least 10**log_t_min.
    mu : float
        Mean molecular weight.
    ionization : IonizationState
        Ionization state from the final iteration.
    iterations : int
        Fixed-point iterations used.
    """
    temperature: float
    mu: float
    ionization: IonizationState
    iterations: int

    @property
    def log_t(self) -> float:
        return math.log10(self.temperature)

    @property
    def ne(self) -> float:
        return self.ionization.ne

    @property
    def seed(self) -> WarmStart:
        return self.ionization.to_seed()


def _safe_log10(temp: float) -> float:
    if temp > 0.0 and math.isfinite(temp):
        return math.log10(temp)
    return math.nan


def solve_temperature(
    ctx: "CoolingContext",
    u: float,
    rho: float,
    seed: Optional[WarmStart] = None,
    element_id: int = 0,
    metallicity: Optional[Sequence[float]] = None,
    radiation: Optional[RadiationField] = None,
    dt: float = 0.0,
    step_start: Optional[WarmStart] = None,
) -> TemperatureSolution:
    """
    Solve T = (γ-1)/k_B · u · m_p · μ(T, ne) together with the ionization state.

    Parameters
    ----------
    ctx : CoolingContext
        Solver context.
    u : float
        Specific internal energy [erg g⁻¹].
    rho : float
        Density [g cm⁻³].
    seed : WarmStart, optional
        Ionization state from the previous call.
    element_id : int
        Element identifier for the cycle-breaking jitter.
    metallicity : sequence of float, optional
        Metallicity vector.
    radiation : RadiationField, optional
        Explicit photon fields.
    dt : float
        Timestep [s], forwarded to the ionization solver.
    step_start : WarmStart, optional
        Start-of-step abundances for the radiation-coupled update; defaults
        to seed. Held fixed while the seed is chained between iterations.

    Returns
    -------
    solution : TemperatureSolution

    Raises
    ------
    ConvergenceError
        If the temperature has not converged within ctx.max_iterations.
    """
    x_h = ctx.x_h
    factor = ctx.u_to_temperature
    cap = ctx.max_iterations

    ne = seed.ne if (seed is not None and seed.ne is not None) else 0.0
    mu = mean_molecular_weight(factor * u, rho, ne, x_h, metallicity)
    temp = factor * u * mu

    current_seed = seed
    if step_start is None:
        step_start = seed
    state = None
    max_sensitivity = 0.0
    temp_two_back = None
    iteration = 0
    converged = False

    while not converged and iteration < cap:
        ne_old = ne
        state = solve_ionization_equilibrium(
            ctx, _safe_log10(temp), rho, current_seed,
            metallicity=metallicity, radiation=radiation, dt=dt,
            step_start=step_start,
        )
        current_seed = state.to_seed()
        ne = state.ne

        temp_old = temp
        mu = mean_molecular_weight(temp, rho, ne, x_h, metallicity)
        temp_new = factor * u * mu

        max_sensitivity = max(
            max_sensitivity,
            temp_new * mu * x_h * abs(ne - ne_old) / (abs(temp_new - temp_old) + 1.0),
        )
        temp = temp_old + (temp_new - temp_old) / (1.0 + max_sensitivity)
        iteration += 1

        converged = temperature_converged(temp, temp_old, iteration, cap)
        if (not converged and temp_two_back is not None
                and abs(temp - temp_two_back) <= CYCLE_TOLERANCE * abs(temp)):
            weight = 0.25 + 0.5 * deterministic_jitter(element_id, iteration)
            temp = weight * temp_old + (1.0 - weight) * temp_new
        temp_two_back = temp_old

    if not converged:
        raise ConvergenceError("temperature", {
            "u": u,
            "rho": rho,
            "ne_seed": seed.ne if seed is not None else None,
            "temperature": temp,
            "element_id": element_id,
            "iterations": iteration,
        })

    floor = ctx.temperature_floor
    if not temp > floor:
        temp = floor

    return TemperatureSolution(temperature=temp, mu=mu, ionization=state, iterations=iteration)


@dataclass(frozen=True)
class ThermalProperties:
    """Temperature, neutral fractions and weights of an element without an energy update."""
    temperature: float
    n_h0: float
    n_hep: float
    ne: float
    mu: float
    molecular_fraction: float
    seed: WarmStart


def thermal_properties(
    ctx: "CoolingContext",
    u: float,
    rho: float,
    seed: Optional[WarmStart] = None,
    element_id: int = 0,
    metallicity: Optional[Sequence[float]] = None,
) -> ThermalProperties:
    """
    Temperature, H0 and He+ abundances and mean molecular weight at (u, ρ).

    Returns
    -------
    props : ThermalProperties
    """
    solution = solve_temperature(ctx, u, rho, seed, element_id, metallicity)
    ion = solution.ionization
    mu = mean_molecular_weight(solution.temperature, rho, ion.ne, ctx.x_h, metallicity)
    return ThermalProperties(
        temperature=solution.temperature,
        n_h0=ion.n_h0,
        n_hep=ion.n_hep,
        ne=ion.ne,
        mu=mu,
        molecular_fraction=molecular_fraction(solution.temperature, rho),
        seed=solution.seed,
    )
