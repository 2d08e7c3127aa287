"""
Cooling configuration with Pydantic validation.

The configuration is resolved exactly once, when a CoolingContext is built.
Individual heating/cooling processes are selected with CoolingChannel flags
rather than compile-time switches; the context turns the enabled flags into
a fixed tuple of channel functions so per-element code never branches on
configuration.
"""

from enum import Flag, auto
from typing import List, Optional
import math
import warnings

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from sph_cooling.constants import (
    GAMMA,
    HYDROGEN_MASSFRAC,
    LOG_T_MAX,
    LOG_T_MIN_DEFAULT,
    PROTONMASS,
    BOLTZMANN,
)


class CoolingChannel(Flag):
    """Heating and cooling processes that can be switched on individually."""

    NONE = 0
    COLLISIONAL_EXCITATION = auto()
    COLLISIONAL_IONIZATION = auto()
    RECOMBINATION = auto()
    FREE_FREE = auto()
    COMPTON_CMB = auto()
    COMPTON_AGN = auto()
    METAL_LINES = auto()
    MOLECULAR = auto()
    DUST = auto()
    PHOTOHEATING = auto()
    PHOTOELECTRIC = auto()
    COSMIC_RAYS = auto()
    RADIATION_FIELDS = auto()
    OPTICALLY_THICK = auto()

    PRIMORDIAL = COLLISIONAL_EXCITATION | COLLISIONAL_IONIZATION | RECOMBINATION | FREE_FREE
    LOW_TEMPERATURE = MOLECULAR | DUST | COSMIC_RAYS

    @classmethod
    def from_names(cls, names: List[str]) -> "CoolingChannel":
        """Combine channel names (case-insensitive) into a single flag value."""
        flags = cls.NONE
        for name in names:
            flags |= cls[name.upper()]
        return flags


DEFAULT_CHANNELS = [
    "primordial",
    "compton_cmb",
    "photoheating",
]

VALID_UV_MODES = ["table", "power_law", "off"]
VALID_SHIELDING_MODELS = ["rational", "exponential", "rahmati", "none"]


class CoolingConfig(BaseModel):
    """
    Configuration for the equilibrium cooling solver.

    Attributes
    ----------
    min_gas_temperature : float
        Temperature floor [K]; sets the lower edge of the rate tables.
    hydrogen_mass_fraction : float
        Hydrogen mass fraction X_H used for nH = X_H ρ / m_p.
    gamma : float
        Adiabatic index of the gas.
    min_specific_energy : float, optional
        Floor on specific internal energy [erg/g]. Derived from the
        temperature floor for neutral gas when omitted.
    uv_background : str
        "table" (read from uv_table_path), "power_law" (analytic J_ν) or "off".
    channels : list of str
        Names of CoolingChannel members to enable.
    shielding_model : str
        Self-shielding prescription: "rational", "exponential", "rahmati"
        or "none".
    operator_split : bool
        If False, the hydro source term du/dt is folded into the implicit
        solve as an extra heating/cooling term.
    """

    # Temperature / energy floors
    min_gas_temperature: float = Field(default=10.0, ge=0.0, description="Temperature floor [K]")
    min_specific_energy: Optional[float] = Field(
        default=None,
        ge=0.0,
        description="Specific energy floor [erg/g]"
    )

    # Composition
    hydrogen_mass_fraction: float = Field(default=HYDROGEN_MASSFRAC, gt=0.0, le=1.0)
    gamma: float = Field(default=GAMMA, gt=1.0, description="Adiabatic index")

    # Ionizing background
    uv_background: str = Field(default="off", description="'table', 'power_law' or 'off'")
    uv_table_path: Optional[str] = Field(default=None, description="Path to the UV background table")
    uv_amplitude: float = Field(default=1.0, ge=0.0, description="Amplitude relative to the input table")

    # Metal-line tables
    metal_table_dir: Optional[str] = Field(default=None, description="Directory holding spcool_<i> files")

    # Cosmology
    cosmological: bool = Field(default=False, description="Comoving run (CMB Compton, redshift-binned tables)")
    redshift: float = Field(default=0.0, ge=0.0, description="Current redshift")

    # Physics selection
    channels: List[str] = Field(default_factory=lambda: list(DEFAULT_CHANNELS))
    shielding_model: str = Field(default="rational")
    operator_split: bool = Field(default=False)

    # Environment defaults for optional channels
    dust_temperature: float = Field(default=30.0, gt=0.0, description="Default dust temperature [K]")
    agn_compton_temperature: float = Field(default=2.0e7, gt=0.0, description="AGN Compton temperature [K]")

    # Solver caps
    max_iterations: int = Field(default=150, ge=20, description="Iteration cap for every nested solver")
    max_bracket_iterations: int = Field(default=150, ge=1, description="Cap on bracket expansion steps")

    # Misc
    verbose: bool = Field(default=True, description="Enable verbose logging")

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
    )

    @field_validator('uv_background')
    @classmethod
    def validate_uv_background(cls, v: str) -> str:
        """Validate ionizing background mode."""
        if v not in VALID_UV_MODES:
            raise ValueError(f"uv_background must be one of {VALID_UV_MODES}, got '{v}'")
        return v

    @field_validator('shielding_model')
    @classmethod
    def validate_shielding_model(cls, v: str) -> str:
        """Validate self-shielding prescription."""
        if v not in VALID_SHIELDING_MODELS:
            raise ValueError(f"shielding_model must be one of {VALID_SHIELDING_MODELS}, got '{v}'")
        return v

    @field_validator('channels')
    @classmethod
    def validate_channels(cls, v: List[str]) -> List[str]:
        """Validate channel names against CoolingChannel."""
        valid = [member.name.lower() for member in CoolingChannel]
        valid += ["primordial", "low_temperature"]
        for name in v:
            if name.lower() not in valid:
                raise ValueError(f"unknown cooling channel '{name}', expected one of {sorted(set(valid))}")
        return [name.lower() for name in v]

    @model_validator(mode='after')
    def validate_configuration_consistency(self):
        """
        Cross-field validation.

        1. A tabulated UV background needs a table path.
        2. Metal-line cooling needs a table directory.
        3. Metal lines are only evaluated with the background on.
        """
        if self.uv_background == "table" and not self.uv_table_path:
            raise ValueError("uv_background='table' requires uv_table_path")

        flags = self.enabled_channels
        if CoolingChannel.METAL_LINES in flags:
            if not self.metal_table_dir:
                raise ValueError("metal_lines channel requires metal_table_dir")
            if self.uv_background == "off":
                warnings.warn(
                    "metal_lines channel enabled with uv_background='off'; "
                    "metal-line cooling is only applied with an ionizing background"
                )

        return self

    @property
    def enabled_channels(self) -> CoolingChannel:
        """Channel flags resolved from the configured names."""
        return CoolingChannel.from_names(self.channels)

    @property
    def log_t_min(self) -> float:
        """Lower edge of the rate tables in log10(T)."""
        if self.min_gas_temperature > 0.0:
            return math.log10(self.min_gas_temperature)
        return LOG_T_MIN_DEFAULT

    @property
    def log_t_max(self) -> float:
        """Upper edge of the rate tables in log10(T)."""
        return LOG_T_MAX

    @property
    def helium_ratio(self) -> float:
        """Primordial He/H number ratio y = (1 - X) / (4 X)."""
        x_h = self.hydrogen_mass_fraction
        return (1.0 - x_h) / (4.0 * x_h)

    @property
    def energy_floor(self) -> float:
        """Specific energy floor [erg/g]."""
        if self.min_specific_energy is not None:
            return self.min_specific_energy
        # minimum internal energy for neutral gas at the temperature floor
        y = self.helium_ratio
        return (10.0 ** self.log_t_min) * (1.0 + y) / (
            (1.0 + 4.0 * y) * (PROTONMASS / BOLTZMANN) * (self.gamma - 1.0)
        )
