"""
Tests for the ideal gas equation of state.
"""

import numpy as np
import pytest

from sph_cooling.constants import BOLTZMANN, PROTONMASS
from sph_cooling.core import EOS
from sph_cooling.eos import IdealGas


class TestIdealGas:

    def setup_method(self):
        self.eos = IdealGas()

    def test_is_eos(self):
        assert isinstance(self.eos, EOS)

    def test_pressure(self):
        rho = np.array([1.0, 2.0])
        u = np.array([3.0, 4.0])
        np.testing.assert_allclose(self.eos.pressure(rho, u), (2.0 / 3.0) * rho * u)

    def test_negative_inputs_clamped(self):
        assert self.eos.pressure(np.array([-1.0]), np.array([1.0]))[0] == 0.0
        assert self.eos.pressure(np.array([1.0]), np.array([-1.0]))[0] == 0.0
        assert self.eos.internal_energy_from_temperature(-5.0) == 0.0

    def test_internal_energy(self):
        u = self.eos.internal_energy_from_temperature(np.array([1.0e4, 1.0e6]), 1.22)
        expected = np.array([1.0e4, 1.0e6]) * BOLTZMANN / ((2.0 / 3.0) * 1.22 * PROTONMASS)
        np.testing.assert_allclose(u, expected)

    def test_default_mu(self):
        assert self.eos.internal_energy_from_temperature(1.0e4) == pytest.approx(
            self.eos.internal_energy_from_temperature(1.0e4, 0.6)
        )

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            IdealGas(gamma=1.0)
        with pytest.raises(ValueError):
            IdealGas(mean_molecular_weight=0.0)

    def test_repr(self):
        assert repr(IdealGas(gamma=1.4)) == "IdealGas(gamma=1.4, mu=0.6)"
