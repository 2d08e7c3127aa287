"""
Tests for GasParticles and GasState.
"""

import numpy as np
import pytest

from sph_cooling.constants import SOLAR_ABUNDANCES
from sph_cooling.gas import GasParticles, GasState, WarmStart
from sph_cooling.gas.state import as_metallicity


class TestGasParticles:
    """Test suite for the gas element arrays."""

    def setup_method(self):
        self.n = 5
        self.particles = GasParticles(
            self.n,
            masses=np.arange(1, self.n + 1, dtype=np.float64),
            density=np.full(self.n, 1.0e-24),
            internal_energy=np.full(self.n, 1.0e12),
        )

    def test_defaults(self):
        particles = GasParticles(3)
        assert np.all(particles.masses == 1.0)
        np.testing.assert_array_equal(particles.element_ids, [0, 1, 2])
        assert particles.metallicity is None
        assert np.all(np.isnan(particles.n_h0))
        assert np.all(particles.electron_abundance == 0.0)
        assert particles.internal_energy.dtype == np.float64

    def test_internal_energy_copied(self):
        u = np.full(2, 5.0)
        particles = GasParticles(2, density=np.ones(2), internal_energy=u)
        particles.internal_energy[0] = 1.0
        assert u[0] == 5.0

    def test_shape_validation(self):
        with pytest.raises(ValueError, match="density shape mismatch"):
            GasParticles(3, density=np.ones(2))
        with pytest.raises(ValueError, match="metallicity shape mismatch"):
            GasParticles(3, metallicity=np.zeros((3, 4)))

    def test_unseeded_state(self):
        state = self.particles.gas_state(2)
        assert isinstance(state, GasState)
        assert state.seed.ne == 0.0
        assert not state.seed.has_electron_seed
        assert state.seed.n_h0 is None
        assert state.metallicity is None
        assert state.radiation is None
        assert state.column_density is None
        assert state.element_id == 2

    def test_seeded_state(self):
        self.particles.electron_abundance[1] = 1.1
        self.particles.n_h0[1] = 0.01
        seed = self.particles.warm_start(1)
        assert seed.has_electron_seed
        assert seed.n_h0 == 0.01
        assert seed.n_hp is None

    def test_environment_fields(self):
        self.particles.column_density = np.full(self.n, 3.0)
        self.particles.metallicity = np.tile(SOLAR_ABUNDANCES, (self.n, 1))
        state = self.particles.gas_state(0)
        assert state.column_density == 3.0
        assert state.metallicity[0] == pytest.approx(0.02)
        assert state.agn_flux == 0.0

    def test_radiation(self):
        self.particles.set_radiation({"H0": np.full(self.n, 1.0e-3)})
        state = self.particles.gas_state(4)
        assert state.radiation.photon_density == {"H0": 1.0e-3}
        assert state.radiation.surface_density == 0.0
        with pytest.raises(ValueError, match="unknown radiation bin"):
            self.particles.set_radiation({"UV": np.zeros(self.n)})
        with pytest.raises(ValueError, match="shape mismatch"):
            self.particles.set_radiation({"H0": np.zeros(2)})

    def test_totals(self):
        assert self.particles.total_mass() == 15.0
        assert self.particles.thermal_energy() == pytest.approx(15.0e12)
        self.particles.temperature[:] = 100.0
        assert self.particles.mass_weighted_temperature() == pytest.approx(100.0)
        assert "GasParticles(n_particles=5" in repr(self.particles)


class TestGasState:

    def test_validation(self):
        with pytest.raises(ValueError, match="density must be positive"):
            GasState(density=0.0, specific_energy=1.0)
        with pytest.raises(ValueError, match="dt must be non-negative"):
            GasState(density=1.0, specific_energy=1.0, dt=-1.0)
        with pytest.raises(ValueError, match="metallicity must have 11 entries"):
            GasState(density=1.0, specific_energy=1.0, metallicity=(0.02, 0.28))

    def test_immutable_copies(self):
        state = GasState(density=1.0, specific_energy=1.0)
        hotter = state.with_energy(2.0)
        seeded = state.with_seed(WarmStart(ne=1.0))
        assert state.specific_energy == 1.0
        assert hotter.specific_energy == 2.0
        assert seeded.seed.ne == 1.0
        with pytest.raises(AttributeError):
            state.density = 2.0

    def test_as_metallicity(self):
        assert as_metallicity(None) is None
        assert as_metallicity(np.zeros(11)) == tuple([0.0] * 11)
