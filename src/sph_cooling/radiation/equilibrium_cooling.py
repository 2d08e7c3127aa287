"""
Equilibrium radiative cooling model for SPH gas.

Wraps the per-element solver behind the CoolingModel interface: the model
owns a CoolingContext, evaluates instantaneous heating and cooling rates for
diagnostics, applies the implicit energy update to the active elements each
step and keeps a running total of the radiated energy.

Rate physics:
1. Primordial H/He collisional excitation, ionization, recombination and
   free-free emission (Katz, Weinberg & Hernquist 1996)
2. Compton exchange with the CMB and with an AGN radiation field
3. Photoheating from a redshift-dependent ionizing background with
   self-shielding (Rahmati et al. 2013)
4. Metal lines from species tables (Wiersma, Schaye & Smith 2009)
5. Low-temperature molecular, fine-structure and dust cooling, cosmic-ray
   and photoelectric heating

Luminosity diagnostics:
- Total bolometric luminosity L_bol = Σ m |du/dt|_cooling
- Mean and maximum element luminosity
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Optional
import time

import numpy as np
import numpy.typing as npt

from sph_cooling.core.config import CoolingConfig
from sph_cooling.core.context import CoolingContext, build_context
from sph_cooling.core.interfaces import CoolingModel
from sph_cooling.gas.particles import GasParticles
from sph_cooling.gas.state import GasState
from sph_cooling.physics.net_rate import net_cooling_rate
from sph_cooling.physics.temperature import solve_temperature
from sph_cooling.solver.driver import CoolingStepSummary, cool_active_elements
from sph_cooling.solver.energy_update import hydrogen_density

NDArrayFloat = npt.NDArray[np.float64]


@dataclass
class CoolingRates:
    """
    Container for cooling/heating rates.

    Attributes
    ----------
    du_dt_cooling : NDArrayFloat
        Cooling rate du/dt ≤ 0 per element [erg g⁻¹ s⁻¹].
    du_dt_heating : NDArrayFloat
        Heating rate du/dt ≥ 0 per element [erg g⁻¹ s⁻¹].
    du_dt_net : NDArrayFloat
        Net radiative rate du/dt = heating + cooling per element.
    temperature : NDArrayFloat
        Temperature the rates were evaluated at [K].
    luminosity_total : float
        Total bolometric luminosity [erg s⁻¹].
    """
    du_dt_cooling: NDArrayFloat
    du_dt_heating: NDArrayFloat
    du_dt_net: NDArrayFloat
    temperature: NDArrayFloat
    luminosity_total: float


class EquilibriumCoolingModel(CoolingModel):
    """
    Ionization-equilibrium radiative cooling for SPH gas elements.

    Parameters
    ----------
    config : CoolingConfig, optional
        Solver configuration (defaults if None).
    n_workers : int, optional
        Threads used for per-element solves (default 1).
    context : CoolingContext, optional
        Prebuilt context; built from config if None.

    Attributes
    ----------
    config : CoolingConfig
        Configuration the context was built from.
    context : CoolingContext
        Current immutable solver context.
    cumulative_radiated_energy : float
        Total energy radiated over all applied steps [erg].
    last_summary : CoolingStepSummary or None
        Outcome of the most recent apply().
    """

    def __init__(
        self,
        config: Optional[CoolingConfig] = None,
        n_workers: int = 1,
        context: Optional[CoolingContext] = None
    ):
        if n_workers < 1:
            raise ValueError(f"n_workers must be >= 1, got {n_workers}")
        self.config = config if config is not None else CoolingConfig()
        self.n_workers = n_workers
        self.context = context if context is not None else build_context(self.config)

        # Cumulative energy tracking
        self.cumulative_radiated_energy = 0.0
        self.last_summary: Optional[CoolingStepSummary] = None

    def _log(self, message: str):
        """Log message if verbose."""
        if self.config.verbose:
            print(f"[cooling {time.strftime('%H:%M:%S')}] {message}")

    def set_redshift(self, redshift: float):
        """
        Move the model to a new redshift.

        Must be called between steps; the swap of context is the barrier
        between parallel phases.
        """
        self.context = self.context.at_redshift(redshift)
        self.config = self.context.config
        self._log(f"Redshift set to z={redshift:.4f}")

    def _rates_for(self, state: GasState):
        ctx = self.context
        solution = solve_temperature(
            ctx, max(state.specific_energy, ctx.energy_floor), state.density, state.seed,
            state.element_id, metallicity=state.metallicity, radiation=state.radiation, dt=state.dt,
        )
        rate = net_cooling_rate(ctx, solution.log_t, state.density, state, seed=solution.seed)
        n_h = hydrogen_density(ctx, state.density)
        ratefact = n_h * n_h / state.density
        return solution.temperature, ratefact * rate.heating, -ratefact * rate.cooling

    def compute_net_rates(
        self,
        particles: GasParticles,
        active: Optional[np.ndarray] = None,
        **kwargs
    ) -> CoolingRates:
        """
        Instantaneous heating and cooling du/dt without updating the energy.

        Parameters
        ----------
        particles : GasParticles
            Gas element arrays (not modified).
        active : ndarray of bool, optional
            Elements to evaluate; inactive elements get zero rates.

        Returns
        -------
        rates : CoolingRates
            Per-element rates and total luminosity L = Σ m |du/dt_cooling|.
        """
        n = particles.n_particles
        indices = np.arange(n) if active is None else np.flatnonzero(np.asarray(active, dtype=bool))
        states = [particles.gas_state(int(i)) for i in indices]

        if self.n_workers > 1 and len(states) > 1:
            with ThreadPoolExecutor(max_workers=self.n_workers) as executor:
                results = list(executor.map(self._rates_for, states))
        else:
            results = [self._rates_for(s) for s in states]

        temperature = np.zeros(n, dtype=np.float64)
        du_dt_heating = np.zeros(n, dtype=np.float64)
        du_dt_cooling = np.zeros(n, dtype=np.float64)
        for i, (T, heat, cool) in zip(indices, results):
            temperature[i] = T
            du_dt_heating[i] = heat
            du_dt_cooling[i] = cool

        du_dt_net = du_dt_heating + du_dt_cooling  # cooling is negative
        luminosity_total = float(np.sum(particles.masses * np.abs(du_dt_cooling)))

        return CoolingRates(
            du_dt_cooling=du_dt_cooling,
            du_dt_heating=du_dt_heating,
            du_dt_net=du_dt_net,
            temperature=temperature,
            luminosity_total=luminosity_total
        )

    def compute_luminosity(
        self,
        particles: GasParticles,
        active: Optional[np.ndarray] = None,
        **kwargs
    ) -> Dict[str, float]:
        """
        Compute luminosity diagnostics.

        Returns
        -------
        luminosity_dict : dict
            Dictionary with keys:
            - 'L_bol': Total bolometric luminosity [erg s⁻¹]
            - 'L_mean': Mean luminosity per element
            - 'L_max': Maximum element luminosity
        """
        rates = self.compute_net_rates(particles, active)
        L_particle = particles.masses * np.abs(rates.du_dt_cooling)

        return {
            'L_bol': rates.luminosity_total,
            'L_mean': float(np.mean(L_particle)) if L_particle.size else 0.0,
            'L_max': float(np.max(L_particle)) if L_particle.size else 0.0
        }

    def apply(
        self,
        particles: GasParticles,
        dt: Optional[float] = None,
        active: Optional[np.ndarray] = None,
        **kwargs
    ) -> CoolingStepSummary:
        """
        Implicitly update the internal energy of the active elements.

        Parameters
        ----------
        particles : GasParticles
            Gas element arrays, updated in place.
        dt : float, optional
            Timestep [s] assigned to the active elements; if None each
            element's own particles.timestep is used.
        active : ndarray of bool, optional
            Elements to update; all if None.

        Returns
        -------
        summary : CoolingStepSummary
        """
        if dt is not None:
            if dt < 0.0:
                raise ValueError(f"dt must be non-negative, got {dt}")
            if active is None:
                particles.timestep[:] = dt
            else:
                particles.timestep[np.asarray(active)] = dt

        start = time.time()
        summary = cool_active_elements(self.context, particles, active, self.n_workers)
        self.last_summary = summary

        # each element radiates over its own timestep
        self.cumulative_radiated_energy += summary.radiated_energy

        self._log(
            f"Cooled {summary.n_updated}/{summary.n_active} elements in {time.time() - start:.2f}s "
            f"(mean iterations {summary.mean_iterations:.1f}, floor resets {summary.n_floor_resets}, "
            f"L={summary.luminosity:.3e} erg/s)"
        )
        return summary

    def __repr__(self) -> str:
        """String representation."""
        return (f"EquilibriumCoolingModel(z={self.context.redshift:.3f}, "
                f"uv={self.config.uv_background}, "
                f"E_rad_cumulative={self.cumulative_radiated_energy:.2e})")
