"""
Tests for composition helpers and explicit radiation coupling.
"""

import numpy as np
import pytest

from sph_cooling.constants import PROTONMASS, SOLAR_ABUNDANCES
from sph_cooling.gas.state import RadiationField
from sph_cooling.physics.composition import (
    helium_ratio,
    mass_fractions,
    mean_molecular_weight,
    molecular_fraction,
)
from sph_cooling.physics.radiation_coupling import (
    MAX_BACKGROUND_BOOST,
    photoheating_rate,
    photoionization_increments,
    relax_toward_equilibrium,
    slab_average,
)


class TestComposition:

    def test_primordial_helium_ratio(self):
        assert helium_ratio(0.76) == pytest.approx(0.24 / (4.0 * 0.76))

    def test_helium_ratio_from_metallicity(self):
        y = SOLAR_ABUNDANCES[1]
        assert helium_ratio(0.76, SOLAR_ABUNDANCES) == pytest.approx(0.25 * y / (1.0 - y))

    def test_mass_fractions_sum_to_one(self):
        x, y, z = mass_fractions(0.76, SOLAR_ABUNDANCES)
        assert x + y + z == pytest.approx(1.0)
        x, y, z = mass_fractions(0.76)
        assert x == 0.76
        assert y == pytest.approx(0.24)
        assert z == 0.0

    def test_molecular_fraction_half_at_transition(self):
        """T_mol = 100 K at n = 100 cm⁻³."""
        rho = 100.0 * PROTONMASS
        assert molecular_fraction(100.0, rho) == pytest.approx(0.5)
        assert molecular_fraction(1.0e4, rho) < 1.0e-3

    def test_mean_molecular_weight_limits(self):
        y = helium_ratio(0.76)
        neutral = mean_molecular_weight(1.0e4, 1.0e-28, 0.0, 0.76)
        ionized = mean_molecular_weight(1.0e6, 1.0e-28, 1.0 + 2.0 * y, 0.76)
        assert neutral == pytest.approx(1.0 / (0.76 + 0.06), rel=1e-6)
        assert ionized == pytest.approx(0.588, rel=1e-2)


class TestRadiationCoupling:

    def test_slab_average(self):
        assert slab_average(0.0) == 1.0
        assert slab_average(1.0e-6) == pytest.approx(1.0)
        assert slab_average(100.0) == pytest.approx(0.01)

    def test_no_electrons_no_increments(self):
        field = RadiationField(photon_density={"H0": 1.0})
        assert photoionization_increments(field, 1.0, 0.08, 0.0, 0.0, 0.76) == (0.0, 0.0, 0.0)

    def test_hydrogen_bin_ionizes_only_hydrogen(self):
        field = RadiationField(photon_density={"H0": 1.0e-3})
        d_h0, d_he0, d_hep = photoionization_increments(field, 1.0, 0.08, 0.0, 1.0, 0.76)
        assert d_h0 > 0.0
        assert d_he0 == 0.0
        assert d_hep == 0.0

    def test_background_boost_cap(self):
        field = RadiationField(photon_density={"He1": 1.0})
        baseline = (1.0e-30, 1.0e-30, 1.0e-30)
        increments = photoionization_increments(field, 1.0, 0.08, 0.01, 1.0, 0.76, baseline)
        for value in increments:
            assert value <= MAX_BACKGROUND_BOOST * 1.0e-30 * 3

    def test_photoheating_rate(self):
        field = RadiationField(photon_density={"H0": 1.0e-3})
        assert photoheating_rate(field, 1.0, 0.08, 0.0, 1.0, 0.76) > 0.0
        assert photoheating_rate(field, 1.0, 0.08, 0.0, 0.0, 0.76) == 0.0

    def test_relaxation(self):
        assert relax_toward_equilibrium(1.0, 0.2, 0.0, 5.0) == 1.0
        assert relax_toward_equilibrium(1.0, 0.2, 1.0, np.inf) == 0.2
        assert 0.2 < relax_toward_equilibrium(1.0, 0.2, 1.0, 1.0) < 1.0

    def test_radiation_field_validation(self):
        with pytest.raises(ValueError, match="unknown radiation bin"):
            RadiationField(photon_density={"X": 1.0})
        with pytest.raises(ValueError):
            RadiationField(photon_density={"H0": -1.0})
        with pytest.raises(ValueError):
            RadiationField(surface_density=-1.0)
        assert RadiationField().is_empty
