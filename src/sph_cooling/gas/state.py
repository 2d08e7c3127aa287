"""
Per-element inputs and warm-start seeds for the cooling solver.

A GasState is a read-only snapshot of the subset of an element's fields the
solver needs for one call. The only state carried between calls is the
WarmStart seed, which is passed in explicitly and returned (never mutated in
place) by every solve.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Sequence, Tuple

from sph_cooling.constants import NUM_METAL_SPECIES

RADIATION_BINS = ("H0", "He0", "He1")


@dataclass(frozen=True)
class WarmStart:
    """
    Ionization state from a previous solve, used as the next initial guess.

    All abundances are per hydrogen nucleus. ``None`` (or an electron
    abundance of exactly zero) means no seed is available and a
    regime-based default is used.
    """
    ne: Optional[float] = None
    n_h0: Optional[float] = None
    n_hp: Optional[float] = None
    n_he0: Optional[float] = None
    n_hep: Optional[float] = None
    n_hepp: Optional[float] = None

    @property
    def has_electron_seed(self) -> bool:
        return self.ne is not None and self.ne != 0.0


@dataclass(frozen=True)
class RadiationField:
    """
    Photon fields from an external radiative-transfer solver.

    Attributes
    ----------
    photon_density : dict
        Photon number density [cm⁻³] per frequency bin ("H0", "He0", "He1").
    surface_density : float
        Surface density through the element [g cm⁻²], used for slab
        attenuation of the local field.
    """
    photon_density: Dict[str, float] = field(default_factory=dict)
    surface_density: float = 0.0

    def __post_init__(self):
        for name, value in self.photon_density.items():
            if name not in RADIATION_BINS:
                raise ValueError(f"unknown radiation bin '{name}', expected one of {RADIATION_BINS}")
            if value < 0.0:
                raise ValueError(f"photon density in bin '{name}' must be non-negative, got {value}")
        if self.surface_density < 0.0:
            raise ValueError(f"surface_density must be non-negative, got {self.surface_density}")

    @property
    def is_empty(self) -> bool:
        return not any(v > 0.0 for v in self.photon_density.values())


@dataclass(frozen=True)
class GasState:
    """
    Inputs for one cooling call on one gas element (physical CGS).

    Attributes
    ----------
    density : float
        Proper mass density ρ [g cm⁻³].
    specific_energy : float
        Specific internal energy u [erg g⁻¹].
    dt : float
        Timestep [s].
    element_id : int
        Stable element identifier (seeds the temperature-solver jitter).
    seed : WarmStart
        Ionization state from the previous call.
    metallicity : tuple of float, optional
        Metal mass fractions (Z, Y, C, N, O, Ne, Mg, Si, S, Ca, Fe);
        None for primordial gas.
    radiation : RadiationField, optional
        Explicit photon fields.
    du_dt_hydro : float
        Hydrodynamic source term du/dt [erg g⁻¹ s⁻¹].
    hii_override : bool
        Element flagged as photo-ionized by a local source.
    column_density : float, optional
        Surface density Σ [g cm⁻²] for the optically thick limit.
    photoelectric_flux : float
        Local FUV flux in Habing units.
    agn_flux : float
        Incident AGN flux [erg s⁻¹ cm⁻²] for Compton heating/cooling.
    cosmic_ray_energy_density : float, optional
        Cosmic-ray energy density [erg cm⁻³]; None uses a uniform
        Galactic background at low temperature.
    dust_temperature : float, optional
        Dust temperature [K]; None uses the configured default.
    """
    density: float
    specific_energy: float
    dt: float = 0.0
    element_id: int = 0
    seed: WarmStart = field(default_factory=WarmStart)
    metallicity: Optional[Tuple[float, ...]] = None
    radiation: Optional[RadiationField] = None
    du_dt_hydro: float = 0.0
    hii_override: bool = False
    column_density: Optional[float] = None
    photoelectric_flux: float = 0.0
    agn_flux: float = 0.0
    cosmic_ray_energy_density: Optional[float] = None
    dust_temperature: Optional[float] = None

    def __post_init__(self):
        if not self.density > 0.0:
            raise ValueError(f"density must be positive, got {self.density}")
        if self.dt < 0.0:
            raise ValueError(f"dt must be non-negative, got {self.dt}")
        if self.metallicity is not None:
            metallicity = tuple(float(z) for z in self.metallicity)
            if len(metallicity) != NUM_METAL_SPECIES:
                raise ValueError(
                    f"metallicity must have {NUM_METAL_SPECIES} entries, got {len(metallicity)}"
                )
            object.__setattr__(self, 'metallicity', metallicity)

    def with_energy(self, specific_energy: float) -> "GasState":
        """Copy with a different specific energy."""
        return replace(self, specific_energy=specific_energy)

    def with_seed(self, seed: WarmStart) -> "GasState":
        """Copy with a different warm-start seed."""
        return replace(self, seed=seed)


def as_metallicity(values: Optional[Sequence[float]]) -> Optional[Tuple[float, ...]]:
    """Convert an array row to the tuple form stored in GasState (None stays None)."""
    if values is None:
        return None
    return tuple(float(v) for v in values)
