"""
Gas element arrays exchanged with a host SPH code.

GasParticles holds the per-element inputs the cooling solver reads and the
outputs it writes back, as contiguous float64 arrays in physical CGS units.
A GasState snapshot is cut from one row for each solve; results are written
back only after every element of the step has been solved.
"""

from typing import Dict, Optional
import numpy as np
import numpy.typing as npt

from sph_cooling.constants import NUM_METAL_SPECIES
from sph_cooling.gas.state import RADIATION_BINS, GasState, RadiationField, WarmStart

# Type alias for clarity
NDArrayFloat = npt.NDArray[np.float64]


def _optional(value: float) -> Optional[float]:
    """NaN marks a missing warm-start entry."""
    return None if np.isnan(value) else float(value)


class GasParticles:
    """
    Container for SPH gas element data relevant to cooling.

    Attributes
    ----------
    n_particles : int
        Number of elements.
    masses : NDArrayFloat, shape (N,)
        Element masses [g].
    density : NDArrayFloat, shape (N,)
        Proper mass density ρ [g cm⁻³].
    internal_energy : NDArrayFloat, shape (N,)
        Specific internal energy u [erg g⁻¹].
    timestep : NDArrayFloat, shape (N,)
        Current timestep of each element [s].
    du_dt_hydro : NDArrayFloat, shape (N,)
        Hydrodynamic du/dt [erg g⁻¹ s⁻¹].
    element_ids : ndarray of int64, shape (N,)
        Stable element identifiers.
    metallicity : NDArrayFloat, shape (N, 11), optional
        Metal mass fractions; None for primordial gas.
    electron_abundance : NDArrayFloat, shape (N,)
        ne per hydrogen nucleus; 0 means no warm start yet.
    n_h0, n_hp, n_he0, n_hep, n_hepp : NDArrayFloat, shape (N,)
        Ionization fractions per hydrogen nucleus; NaN until first solved.
    temperature, mean_molecular_weight, molecular_fraction, pressure : NDArrayFloat
        Thermodynamic outputs of the last solve.
    net_rate, heating_rate, cooling_rate : NDArrayFloat, shape (N,)
        Radiative du/dt [erg g⁻¹ s⁻¹] of the last solve (cooling ≤ 0).
    du_dt_reset : ndarray of bool, shape (N,)
        Set when the energy was clamped to the floor or a negative hydro
        term was discarded.

    Optional per-element environment fields (column_density,
    photoelectric_flux, agn_flux, cosmic_ray_energy_density,
    dust_temperature, photon_density, surface_density, hii_override) are
    None or zero until the host fills them.
    """

    def __init__(
        self,
        n_particles: int,
        masses: Optional[NDArrayFloat] = None,
        density: Optional[NDArrayFloat] = None,
        internal_energy: Optional[NDArrayFloat] = None,
        metallicity: Optional[NDArrayFloat] = None,
        element_ids: Optional[np.ndarray] = None
    ):
        """
        Initialize gas element arrays.

        Parameters
        ----------
        n_particles : int
            Number of elements.
        masses : NDArrayFloat, shape (N,), optional
            Element masses. If None, initialized to unit mass.
        density : NDArrayFloat, shape (N,), optional
            Densities. If None, initialized to zeros (must be set before cooling).
        internal_energy : NDArrayFloat, shape (N,), optional
            Specific internal energies. If None, initialized to zeros.
        metallicity : NDArrayFloat, shape (N, 11), optional
            Metallicity vectors; None for primordial gas.
        element_ids : ndarray, shape (N,), optional
            Element identifiers. If None, 0..N-1.
        """
        self.n_particles = n_particles

        # Primary inputs
        self.masses = (
            np.asarray(masses, dtype=np.float64) if masses is not None
            else np.ones(n_particles, dtype=np.float64)
        )
        self.density = (
            np.asarray(density, dtype=np.float64) if density is not None
            else np.zeros(n_particles, dtype=np.float64)
        )
        self.internal_energy = (
            np.array(internal_energy, dtype=np.float64) if internal_energy is not None
            else np.zeros(n_particles, dtype=np.float64)
        )
        self.metallicity = (
            np.asarray(metallicity, dtype=np.float64) if metallicity is not None
            else None
        )
        self.element_ids = (
            np.asarray(element_ids, dtype=np.int64) if element_ids is not None
            else np.arange(n_particles, dtype=np.int64)
        )
        self.timestep = np.zeros(n_particles, dtype=np.float64)
        self.du_dt_hydro = np.zeros(n_particles, dtype=np.float64)
        self.hii_override = np.zeros(n_particles, dtype=bool)

        # Optional environment fields
        self.column_density: Optional[NDArrayFloat] = None
        self.photoelectric_flux: Optional[NDArrayFloat] = None
        self.agn_flux: Optional[NDArrayFloat] = None
        self.cosmic_ray_energy_density: Optional[NDArrayFloat] = None
        self.dust_temperature: Optional[NDArrayFloat] = None
        self.photon_density: Optional[Dict[str, NDArrayFloat]] = None
        self.surface_density: Optional[NDArrayFloat] = None

        # Warm start (ne = 0 and NaN fractions mean unseeded)
        self.electron_abundance = np.zeros(n_particles, dtype=np.float64)
        self.n_h0 = np.full(n_particles, np.nan, dtype=np.float64)
        self.n_hp = np.full(n_particles, np.nan, dtype=np.float64)
        self.n_he0 = np.full(n_particles, np.nan, dtype=np.float64)
        self.n_hep = np.full(n_particles, np.nan, dtype=np.float64)
        self.n_hepp = np.full(n_particles, np.nan, dtype=np.float64)

        # Outputs of the last solve
        self.temperature = np.zeros(n_particles, dtype=np.float64)
        self.mean_molecular_weight = np.zeros(n_particles, dtype=np.float64)
        self.molecular_fraction = np.zeros(n_particles, dtype=np.float64)
        self.pressure = np.zeros(n_particles, dtype=np.float64)
        self.net_rate = np.zeros(n_particles, dtype=np.float64)
        self.heating_rate = np.zeros(n_particles, dtype=np.float64)
        self.cooling_rate = np.zeros(n_particles, dtype=np.float64)
        self.du_dt_reset = np.zeros(n_particles, dtype=bool)

        self._validate_shapes()

    def _validate_shapes(self) -> None:
        """Validate that all arrays have consistent shapes."""
        n = self.n_particles
        for name in ("masses", "density", "internal_energy", "element_ids"):
            shape = getattr(self, name).shape
            if shape != (n,):
                raise ValueError(f"{name} shape mismatch: {shape}, expected {(n,)}")
        if self.metallicity is not None and self.metallicity.shape != (n, NUM_METAL_SPECIES):
            raise ValueError(
                f"metallicity shape mismatch: {self.metallicity.shape}, "
                f"expected {(n, NUM_METAL_SPECIES)}"
            )

    def set_radiation(self, photon_density: Dict[str, NDArrayFloat],
                      surface_density: Optional[NDArrayFloat] = None) -> None:
        """Attach photon number densities per frequency bin from a transport solver."""
        fields = {}
        for name, values in photon_density.items():
            if name not in RADIATION_BINS:
                raise ValueError(f"unknown radiation bin '{name}', expected one of {RADIATION_BINS}")
            values = np.asarray(values, dtype=np.float64)
            if values.shape != (self.n_particles,):
                raise ValueError(f"photon density '{name}' shape mismatch: {values.shape}")
            fields[name] = values
        self.photon_density = fields
        self.surface_density = (
            np.asarray(surface_density, dtype=np.float64) if surface_density is not None
            else np.zeros(self.n_particles, dtype=np.float64)
        )

    def warm_start(self, i: int) -> WarmStart:
        """Ionization seed stored for element i."""
        return WarmStart(
            ne=float(self.electron_abundance[i]),
            n_h0=_optional(self.n_h0[i]),
            n_hp=_optional(self.n_hp[i]),
            n_he0=_optional(self.n_he0[i]),
            n_hep=_optional(self.n_hep[i]),
            n_hepp=_optional(self.n_hepp[i]),
        )

    def _radiation(self, i: int) -> Optional[RadiationField]:
        if self.photon_density is None:
            return None
        return RadiationField(
            photon_density={name: float(values[i]) for name, values in self.photon_density.items()},
            surface_density=float(self.surface_density[i]),
        )

    def gas_state(self, i: int) -> GasState:
        """
        Snapshot of element i for one cooling call.

        Parameters
        ----------
        i : int
            Element index.

        Returns
        -------
        state : GasState
        """
        def field(values, default=None):
            return default if values is None else float(values[i])

        return GasState(
            density=float(self.density[i]),
            specific_energy=float(self.internal_energy[i]),
            dt=float(self.timestep[i]),
            element_id=int(self.element_ids[i]),
            seed=self.warm_start(i),
            metallicity=None if self.metallicity is None else tuple(self.metallicity[i]),
            radiation=self._radiation(i),
            du_dt_hydro=float(self.du_dt_hydro[i]),
            hii_override=bool(self.hii_override[i]),
            column_density=field(self.column_density),
            photoelectric_flux=field(self.photoelectric_flux, 0.0),
            agn_flux=field(self.agn_flux, 0.0),
            cosmic_ray_energy_density=field(self.cosmic_ray_energy_density),
            dust_temperature=field(self.dust_temperature),
        )

    def thermal_energy(self) -> float:
        """
        Compute total thermal (internal) energy of the gas.

        Returns
        -------
        E_thermal : float
            Total thermal energy: ∑ m u [erg].
        """
        return float(np.sum(self.masses * self.internal_energy))

    def total_mass(self) -> float:
        """Total mass ∑ m [g]."""
        return float(np.sum(self.masses))

    def mass_weighted_temperature(self) -> float:
        """Mass-weighted mean temperature [K] from the last solve."""
        total_mass = self.total_mass()
        if total_mass == 0:
            return 0.0
        return float(np.sum(self.masses * self.temperature) / total_mass)

    def __repr__(self) -> str:
        """String representation of the gas arrays."""
        return (
            f"GasParticles(n_particles={self.n_particles}, "
            f"total_mass={self.total_mass():.3e}, "
            f"E_thermal={self.thermal_energy():.3e})"
        )
