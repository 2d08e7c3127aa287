"""
Implicit (backward-Euler) update of the specific internal energy.

Solves

    F(u) = u - u_old - ratefact dt Λ(u) = 0,    ratefact = nH² / ρ,

for the end-of-step energy, where Λ(u) is the net rate at the temperature
consistent with u. The root is first bracketed by geometric expansion from
u_old and then located by bisection. Both stages have hard caps; exceeding
either raises ConvergenceError, since a missing root means Λ(u) is not
monotonic for this element's inputs.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional, Tuple
import math

from sph_cooling.constants import PROTONMASS
from sph_cooling.core.errors import ConvergenceError
from sph_cooling.gas.state import GasState, WarmStart
from sph_cooling.physics.ionization import IonizationState
from sph_cooling.physics.net_rate import NetRate, net_cooling_rate
from sph_cooling.physics.temperature import TemperatureSolution, solve_temperature

if TYPE_CHECKING:
    from sph_cooling.core.context import CoolingContext

BRACKET_FACTOR = 1.1

# Bisection stops once |Δu/u| is below LOOSE_TOLERANCE, but only after
# MIN_ITERATIONS unless it is also below TIGHT_TOLERANCE.
LOOSE_TOLERANCE = 3.0e-2
TIGHT_TOLERANCE = 3.0e-4
MIN_ITERATIONS = 10

Residual = Callable[[float], float]


def bracket_root(residual: Residual, u_old: float, cap: int) -> Tuple[float, float, int]:
    """
    Bracket the root of residual around u_old.

    With F(u_old) < 0 (net heating) both ends move up by BRACKET_FACTOR per
    step until F(upper) ≥ 0; with F(u_old) > 0 (net cooling) both move down
    until F(lower) ≤ 0. Either way the bracket is first widened by
    sqrt(BRACKET_FACTOR) on both sides.

    Parameters
    ----------
    residual : callable
        F(u).
    u_old : float
        Starting energy.
    cap : int
        Maximum number of expansion steps.

    Returns
    -------
    lower, upper : float
        Bracket containing the sign change (equal to u_old when F(u_old) = 0).
    expansions : int
        Expansion steps taken.

    Raises
    ------
    ConvergenceError
        If no sign change is found within cap steps.
    """
    lower = upper = u_old
    f_old = residual(u_old)
    expansions = 0
    widen = math.sqrt(BRACKET_FACTOR)

    if f_old < 0.0:
        upper *= widen
        lower /= widen
        while residual(upper) < 0.0:
            if expansions >= cap:
                raise ConvergenceError("energy bracket", {
                    "u_old": u_old, "lower": lower, "upper": upper, "iterations": expansions,
                })
            upper *= BRACKET_FACTOR
            lower *= BRACKET_FACTOR
            expansions += 1
    elif f_old > 0.0:
        lower /= widen
        upper *= widen
        while residual(lower) > 0.0:
            if expansions >= cap:
                raise ConvergenceError("energy bracket", {
                    "u_old": u_old, "lower": lower, "upper": upper, "iterations": expansions,
                })
            upper /= BRACKET_FACTOR
            lower /= BRACKET_FACTOR
            expansions += 1

    return lower, upper, expansions


def bisect_root(residual: Residual, lower: float, upper: float, cap: int) -> Tuple[float, int]:
    """
    Bisect a bracketed root of residual.

    Iterates while |Δu/u| > 3e-2, or while |Δu/u| > 3e-4 during the first
    10 iterations. A degenerate bracket (lower == upper) returns its value
    after a single evaluation.

    Returns
    -------
    u : float
        Last midpoint.
    iterations : int

    Raises
    ------
    ConvergenceError
        If the tolerance is not reached within cap iterations.
    """
    iterations = 0
    while True:
        u = 0.5 * (lower + upper)
        if residual(u) > 0.0:
            upper = u
        else:
            lower = u
        iterations += 1

        rel = abs((upper - lower) / u) if u != 0.0 else 0.0
        if not (rel > LOOSE_TOLERANCE or (rel > TIGHT_TOLERANCE and iterations < MIN_ITERATIONS)):
            return u, iterations
        if iterations >= cap:
            raise ConvergenceError("energy bisection", {
                "lower": lower, "upper": upper, "relative_width": rel, "iterations": iterations,
            })


@dataclass(frozen=True)
class EnergyUpdateResult:
    """
    Outcome of one implicit energy update.

    Attributes
    ----------
    u_new : float
        End-of-step specific energy [erg g⁻¹], at least the energy floor.
    temperature : float
        Temperature at u_new [K].
    mu : float
        Mean molecular weight at u_new.
    ionization : IonizationState
        Ionization state at u_new.
    net_rate : NetRate
        Net rate per nH² at u_new.
    iterations : int
        Bisection iterations.
    bracket_expansions : int
        Bracket expansion steps.
    seed : WarmStart
        Warm start for the next call on the same element.
    clamped : bool
        True when the input energy was below the floor.
    """
    u_new: float
    temperature: float
    mu: float
    ionization: IonizationState
    net_rate: NetRate
    iterations: int
    bracket_expansions: int
    seed: WarmStart
    clamped: bool = False

    @property
    def ne(self) -> float:
        return self.ionization.ne


class _RateEvaluator:
    """Λ(u) for one element, chaining the warm start between evaluations."""

    def __init__(self, ctx: "CoolingContext", gas: GasState):
        self.ctx = ctx
        self.gas = gas
        self.seed = gas.seed
        self.temperature: Optional[TemperatureSolution] = None
        self.rate: Optional[NetRate] = None

    def __call__(self, u: float) -> float:
        gas = self.gas
        self.temperature = solve_temperature(
            self.ctx, u, gas.density, self.seed, gas.element_id,
            metallicity=gas.metallicity, radiation=gas.radiation, dt=gas.dt,
            step_start=gas.seed,
        )
        self.rate = net_cooling_rate(
            self.ctx, self.temperature.log_t, gas.density, gas, seed=self.temperature.seed
        )
        self.seed = self.rate.ionization.to_seed()
        return self.rate.net


def hydrogen_density(ctx: "CoolingContext", rho: float) -> float:
    """nH = X_H ρ / m_p [cm⁻³]."""
    return ctx.x_h * rho / PROTONMASS


def solve_energy(ctx: "CoolingContext", state: GasState) -> EnergyUpdateResult:
    """
    Implicitly integrate the net radiative rate over state.dt.

    Parameters
    ----------
    ctx : CoolingContext
        Solver context.
    state : GasState
        Element inputs; state.specific_energy is u_old.

    Returns
    -------
    result : EnergyUpdateResult
        With dt = 0 the energy is returned unchanged; an input below the
        floor returns exactly the floor with clamped=True.

    Raises
    ------
    ConvergenceError
        If bracketing, bisection or a nested solver fails.
    """
    floor = ctx.energy_floor
    evaluate = _RateEvaluator(ctx, state)

    if state.specific_energy < floor:
        evaluate(floor)
        return _result(floor, evaluate, 0, 0, clamped=True)

    u_old = state.specific_energy
    rho = state.density
    n_h = hydrogen_density(ctx, rho)
    ratefact = n_h * n_h / rho
    dt = state.dt

    def residual(u: float) -> float:
        return u - u_old - ratefact * evaluate(u) * dt

    try:
        lower, upper, expansions = bracket_root(residual, u_old, ctx.max_bracket_iterations)
        u_new, iterations = bisect_root(residual, lower, upper, ctx.max_iterations)
    except ConvergenceError as e:
        diagnostics = dict(e.diagnostics)
        diagnostics.update({
            "u_old": u_old, "rho": rho, "dt": dt,
            "ne_seed": state.seed.ne, "element_id": state.element_id,
        })
        raise ConvergenceError(e.solver, diagnostics) from e

    clamped = u_new < floor
    if clamped:
        u_new = floor
        evaluate(u_new)
    return _result(u_new, evaluate, iterations, expansions, clamped=clamped)


def _result(u_new: float, evaluate: _RateEvaluator, iterations: int, expansions: int,
            clamped: bool = False) -> EnergyUpdateResult:
    rate = evaluate.rate
    return EnergyUpdateResult(
        u_new=u_new,
        temperature=evaluate.temperature.temperature,
        mu=evaluate.temperature.mu,
        ionization=rate.ionization,
        net_rate=rate,
        iterations=iterations,
        bracket_expansions=expansions,
        seed=evaluate.seed,
        clamped=clamped,
    )


def cooling_time(ctx: "CoolingContext", state: GasState) -> float:
    """
    Cooling time u / (-ratefact Λ) [s]; zero when the element is net heating.
    """
    u = max(state.specific_energy, ctx.energy_floor)
    evaluate = _RateEvaluator(ctx, state)
    net = evaluate(u)
    if net >= 0.0:
        return 0.0
    n_h = hydrogen_density(ctx, state.density)
    ratefact = n_h * n_h / state.density
    return u / (-ratefact * net)
