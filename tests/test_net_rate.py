"""
Tests for the net heating/cooling rate assembly.

Tests validate:
1. Pure cooling without an ionizing background
2. Hot-gas branch (free-free only, zero heating, coupling cap)
3. Channel resolution (CMB Compton only in cosmological runs)
4. Photoheating, low-temperature and metal-line channels
5. Hydro source term and optically thick clamp
"""

import math

import numpy as np
import pytest

from sph_cooling.constants import PROTONMASS, SOLAR_ABUNDANCES
from sph_cooling.core import CoolingChannel, CoolingConfig, build_context
from sph_cooling.gas.state import GasState
from sph_cooling.physics.net_rate import (
    HOT_GAS_CAP_NORM,
    net_cooling_rate,
    resolve_channel_terms,
)
from sph_cooling.physics.opacity import blackbody_limit, clamp_optically_thick, effective_opacity
from sph_cooling.tables.metal_cooling import TABLE_SHAPE


class TestNetRateNoBackground:

    def setup_method(self):
        self.ctx = build_context(CoolingConfig(verbose=False))

    @pytest.mark.parametrize("log_t", [1.5, 2.0, 3.0, 4.0, 4.5, 5.0, 6.0, 7.0, 8.0, 8.9])
    def test_pure_cooling(self, log_t):
        rate = net_cooling_rate(self.ctx, log_t, 1.0e-24)
        assert rate.heating == 0.0
        assert rate.cooling >= 0.0
        assert rate.net == pytest.approx(-rate.cooling)

    def test_free_free_dominates_hot_gas(self):
        rate = net_cooling_rate(self.ctx, 7.0, 1.0e-24)
        assert min(rate.components, key=rate.components.get) == "free_free"

    def test_hot_gas_branch(self):
        rate = net_cooling_rate(self.ctx, 9.5, 1.0e-24)
        assert rate.heating == 0.0
        assert set(rate.components) == {"free_free"}
        assert 0.0 < rate.cooling <= HOT_GAS_CAP_NORM / math.sqrt(10.0 ** 9.5 / 1.0e8)

    def test_hot_gas_cap(self):
        rate = net_cooling_rate(self.ctx, 10.5, 1.0e-24)
        assert rate.cooling == pytest.approx(HOT_GAS_CAP_NORM / math.sqrt(10.0 ** 10.5 / 1.0e8))

    def test_floor_evaluated_above_first_cell(self):
        rate = net_cooling_rate(self.ctx, 0.5, 1.0e-24)
        expected = 10.0 ** (self.ctx.log_t_min + 0.5 * self.ctx.delta_log_t)
        assert rate.temperature == pytest.approx(expected)

    def test_hydro_source_folded_in(self):
        rho = 1.0e-24
        gas = GasState(density=rho, specific_energy=1.0e12, du_dt_hydro=1.0e3)
        rate = net_cooling_rate(self.ctx, 5.0, rho, gas)
        n_h = self.ctx.x_h * rho / PROTONMASS
        assert rate.components["hydro"] * n_h * n_h / rho == pytest.approx(1.0e3)
        assert rate.net == pytest.approx(rate.heating - rate.cooling + rate.components["hydro"])

    def test_hydro_source_ignored_when_split(self):
        ctx = build_context(CoolingConfig(operator_split=True, verbose=False))
        gas = GasState(density=1.0e-24, specific_energy=1.0e12, du_dt_hydro=1.0e3)
        assert "hydro" not in net_cooling_rate(ctx, 5.0, 1.0e-24, gas).components


class TestChannelResolution:

    def test_cmb_requires_cosmological_run(self):
        channels = CoolingChannel.PRIMORDIAL | CoolingChannel.COMPTON_CMB
        static = resolve_channel_terms(channels, cosmological=False)
        comoving = resolve_channel_terms(channels, cosmological=True)
        assert "compton_cmb" not in dict(static.terms)
        assert "compton_cmb" in dict(comoving.terms)
        assert "compton_cmb" in dict(comoving.high_temperature_terms)

    def test_primordial_terms(self):
        table = resolve_channel_terms(CoolingChannel.PRIMORDIAL, cosmological=False)
        assert [name for name, _ in table.terms] == ["excitation", "ionization", "recombination", "free_free"]
        assert not table.optically_thick

    def test_hydro_source_flag(self):
        assert resolve_channel_terms(CoolingChannel.NONE, False, operator_split=False).hydro_source
        assert not resolve_channel_terms(CoolingChannel.NONE, False, operator_split=True).hydro_source

    def test_compton_cmb_heats_gas_below_cmb_temperature(self):
        ctx = build_context(CoolingConfig(
            cosmological=True, redshift=3.0, uv_background="power_law", verbose=False
        ))
        # T_CMB(z=3) = 10.92 K
        rate = net_cooling_rate(ctx, 1.02, 1.0e-28)
        assert rate.components["compton_cmb"] > 0.0


class TestHeatingChannels:

    def test_photoheating(self):
        ctx = build_context(CoolingConfig(uv_background="power_law", redshift=2.5, verbose=False))
        rate = net_cooling_rate(ctx, 4.0, 1.0e-28)
        assert rate.components["photoheating"] > 0.0
        assert rate.heating > 0.0

    def test_low_temperature_channels(self):
        ctx = build_context(CoolingConfig(channels=["primordial", "low_temperature"], verbose=False))
        rate = net_cooling_rate(ctx, 2.0, 1.0e-24)
        assert rate.components["molecular"] < 0.0
        assert rate.components["cosmic_rays"] > 0.0
        assert rate.components["dust"] == 0.0

    def test_metal_lines(self, tmp_path):
        data = np.full(TABLE_SHAPE, 1.0e-22, dtype=np.float32)
        data[0] = 1.0
        data.tofile(tmp_path / "spcool_0")
        ctx = build_context(CoolingConfig(
            channels=["primordial", "metal_lines", "photoheating"],
            uv_background="power_law", redshift=1.0,
            metal_table_dir=str(tmp_path), verbose=False,
        ))
        enriched = GasState(density=1.0e-26, specific_energy=1.0e13, metallicity=SOLAR_ABUNDANCES)
        primordial = GasState(density=1.0e-26, specific_energy=1.0e13)
        assert net_cooling_rate(ctx, 5.5, 1.0e-26, enriched).components["metal_lines"] < 0.0
        assert net_cooling_rate(ctx, 5.5, 1.0e-26, primordial).components["metal_lines"] == 0.0


class TestOpticallyThick:

    def test_clamp_keeps_sign(self):
        args = (1.0e4, 1.0e-20, 10.0, 1.0, 0.02, 10.0)
        limit = blackbody_limit(*args)
        assert clamp_optically_thick(-1.0, *args) == -limit
        assert clamp_optically_thick(1.0, *args) == limit
        assert clamp_optically_thick(0.1 * limit, *args) == 0.1 * limit

    def test_thin_gas_unchanged(self):
        assert clamp_optically_thick(-1.0, 1.0e4, 1.0e-26, 0.05, 1.0, 0.02, 10.0) == -1.0
        assert clamp_optically_thick(-1.0, 1.0e4, 1.0e-20, 10.0, 1.0, 0.02, 0.0) == -1.0

    def test_dust_opacity_floor(self):
        assert effective_opacity(100.0, 1.0e-20, 0.0, 0.0) == 0.1

    def test_net_rate_clamped(self):
        ctx = build_context(CoolingConfig(channels=["primordial", "optically_thick"], verbose=False))
        rho = 1.0e-16
        gas = GasState(density=rho, specific_energy=1.0e13, column_density=1.0e10)
        rate = net_cooling_rate(ctx, 5.0, rho, gas)
        n_h = ctx.x_h * rho / PROTONMASS
        limit = blackbody_limit(rate.temperature, rho, n_h, rate.ionization.ne, 0.0, 1.0e10)
        assert abs(rate.net) <= limit * (1.0 + 1e-12)
        assert rate.cooling > abs(rate.net)
