"""
Immutable solver context: configuration plus every table the solver reads.

Build once with build_context(config); afterwards the context is shared
read-only by any number of concurrent solves. A new redshift produces a new
context through CoolingContext.at_redshift, which must complete before the
next parallel phase starts.
"""

from dataclasses import dataclass, replace
from typing import Optional
import time

from sph_cooling.constants import BOLTZMANN, PROTONMASS
from sph_cooling.core.config import CoolingChannel, CoolingConfig
from sph_cooling.physics.net_rate import ChannelTerms, resolve_channel_terms
from sph_cooling.physics.shielding import ShieldModel, get_shield_model
from sph_cooling.tables.metal_cooling import MetalCoolingTable, metal_table_index
from sph_cooling.tables.rate_table import RateTable
from sph_cooling.tables.uv_background import NO_BACKGROUND, PhotoRates, UVBackgroundTable


@dataclass(frozen=True)
class CoolingContext:
    """
    Everything a per-element solve needs, resolved once.

    Attributes
    ----------
    config : CoolingConfig
        Private copy of the configuration.
    rate_table : RateTable
        Collisional/recombination rate curves.
    photo_rates : PhotoRates
        Ionizing background at the current redshift.
    uv_table : UVBackgroundTable, optional
        Source table of photo_rates (tabulated mode only).
    metal_table : MetalCoolingTable, optional
        Metal-line cooling grid (when the metal_lines channel is on).
    channels : CoolingChannel
        Enabled heating/cooling channels.
    channel_terms : ChannelTerms
        Channel functions evaluated by the net-rate assembler, in order.
    shield_model : callable
        Self-shielding prescription.
    """
    config: CoolingConfig
    rate_table: RateTable
    photo_rates: PhotoRates
    uv_table: Optional[UVBackgroundTable]
    metal_table: Optional[MetalCoolingTable]
    channels: CoolingChannel
    channel_terms: ChannelTerms
    shield_model: ShieldModel

    # Composition and grid
    @property
    def x_h(self) -> float:
        return self.config.hydrogen_mass_fraction

    @property
    def helium_ratio(self) -> float:
        return self.config.helium_ratio

    @property
    def log_t_min(self) -> float:
        return self.rate_table.log_t_min

    @property
    def log_t_max(self) -> float:
        return self.rate_table.log_t_max

    @property
    def delta_log_t(self) -> float:
        return self.rate_table.delta_log_t

    @property
    def temperature_floor(self) -> float:
        return 10.0 ** self.log_t_min

    @property
    def energy_floor(self) -> float:
        return self.config.energy_floor

    @property
    def gamma_minus1(self) -> float:
        return self.config.gamma - 1.0

    @property
    def u_to_temperature(self) -> float:
        """Factor (γ-1) m_p / k_B; T = factor × u × μ."""
        return self.gamma_minus1 * PROTONMASS / BOLTZMANN

    # Environment
    @property
    def redshift(self) -> float:
        return self.config.redshift

    @property
    def cosmological(self) -> bool:
        return self.config.cosmological

    @property
    def high_redshift(self) -> bool:
        """Selects the z > 1 form of redshift-dependent fits."""
        return self.config.cosmological and self.config.redshift > 1.0

    @property
    def background_on(self) -> bool:
        return self.photo_rates.is_on

    @property
    def low_temperature_cooling(self) -> bool:
        return bool(self.channels & CoolingChannel.LOW_TEMPERATURE)

    @property
    def max_iterations(self) -> int:
        return self.config.max_iterations

    @property
    def max_bracket_iterations(self) -> int:
        return self.config.max_bracket_iterations

    def has(self, channel: CoolingChannel) -> bool:
        """True if every flag in channel is enabled."""
        return (self.channels & channel) == channel

    def at_redshift(self, redshift: float) -> "CoolingContext":
        """
        Context for a new redshift, reusing every table that does not change.

        The rate table is shared; the ionizing background is re-evaluated;
        metal tables are re-read only when the redshift bin changes.
        """
        config = self.config.model_copy(update={"redshift": redshift})
        photo_rates = _photo_rates(config, self.uv_table)

        metal_table = self.metal_table
        if metal_table is not None:
            index, frac = metal_table_index(redshift, config.cosmological)
            if index == metal_table.index:
                metal_table = metal_table.with_redshift_fraction(frac)
            else:
                _log(config, f"Switching metal tables to redshift bin {index}")
                metal_table = MetalCoolingTable.from_directory(
                    config.metal_table_dir, redshift, config.cosmological
                )

        return replace(self, config=config, photo_rates=photo_rates, metal_table=metal_table)

    def __repr__(self) -> str:
        return (f"CoolingContext(z={self.redshift:.3f}, uv={'on' if self.background_on else 'off'}, "
                f"channels={self.channels}, shielding={self.config.shielding_model})")


def _log(config: CoolingConfig, message: str):
    """Log message if verbose."""
    if config.verbose:
        print(f"[cooling {time.strftime('%H:%M:%S')}] {message}")


def _photo_rates(config: CoolingConfig, uv_table: Optional[UVBackgroundTable]) -> PhotoRates:
    if config.uv_background == "table" and uv_table is not None:
        return uv_table.rates_at(config.redshift)
    if config.uv_background == "power_law":
        return UVBackgroundTable.from_power_law(config.redshift, amplitude=config.uv_amplitude)
    return NO_BACKGROUND


def build_context(config: CoolingConfig, rate_table: Optional[RateTable] = None) -> CoolingContext:
    """
    Build the immutable solver context.

    Parameters
    ----------
    config : CoolingConfig
        Validated configuration. A private copy is stored.
    rate_table : RateTable, optional
        Prebuilt rate table with the same temperature range (reused as-is).

    Returns
    -------
    ctx : CoolingContext

    Raises
    ------
    TableLoadError
        If the UV background file or a metal table is missing or malformed.
    """
    config = config.model_copy(deep=True)

    if rate_table is None:
        rate_table = RateTable(config.log_t_min, config.log_t_max)
        _log(config, f"Built rate table: {rate_table}")
    else:
        if abs(rate_table.log_t_min - config.log_t_min) > 1e-12:
            raise ValueError(
                f"rate table starts at log T = {rate_table.log_t_min}, "
                f"configuration requires {config.log_t_min}"
            )
        if abs(rate_table.log_t_max - config.log_t_max) > 1e-12:
            raise ValueError(
                f"rate table ends at log T = {rate_table.log_t_max}, "
                f"configuration requires {config.log_t_max}"
            )

    uv_table = None
    if config.uv_background == "table":
        uv_table = UVBackgroundTable.from_file(config.uv_table_path, amplitude=config.uv_amplitude)
        _log(config, f"Read ionization table with {uv_table.n_rows} entries from '{config.uv_table_path}'")
    photo_rates = _photo_rates(config, uv_table)

    channels = config.enabled_channels
    metal_table = None
    if CoolingChannel.METAL_LINES in channels:
        metal_table = MetalCoolingTable.from_directory(
            config.metal_table_dir, config.redshift, config.cosmological
        )
        _log(config, f"Loaded metal cooling tables: {metal_table}")

    ctx = CoolingContext(
        config=config,
        rate_table=rate_table,
        photo_rates=photo_rates,
        uv_table=uv_table,
        metal_table=metal_table,
        channels=channels,
        channel_terms=resolve_channel_terms(channels, config.cosmological, config.operator_split),
        shield_model=get_shield_model(config.shielding_model),
    )
    _log(config, f"Initialized {ctx}")
    return ctx
