"""
Tests for self-shielding of the ionizing background.
"""

import math

import pytest

from sph_cooling.constants import NH_SS
from sph_cooling.physics.shielding import (
    SHIELDING_MODELS,
    exponential_shield,
    get_shield_model,
    low_temperature_taper,
    rational_shield,
    self_shielding_density,
    shield_factor,
)


class TestShielding:
    """Test suite for shielding prescriptions."""

    def test_factor_bounds(self):
        """Every model stays within [0, 1] over a wide density range."""
        for model in SHIELDING_MODELS.values():
            for log_n in range(-8, 6):
                for high_z in (False, True):
                    s = shield_factor(10.0 ** log_n, 4.0, 1.0e-12, model, high_z)
                    assert 0.0 <= s <= 1.0

    def test_none_model(self):
        assert shield_factor(1.0e4, 4.0, 1.0e-12, get_shield_model("none")) == 1.0

    def test_low_density_unshielded(self):
        assert shield_factor(1.0e-8, 4.0, 1.0e-12) == pytest.approx(1.0, abs=1e-5)

    def test_rational_decreases_with_density(self):
        values = [rational_shield(n, 1.0e-2) for n in (1.0e-4, 1.0e-2, 1.0, 1.0e2)]
        assert all(a > b for a, b in zip(values, values[1:]))

    def test_rational_tracks_exponential_at_low_q(self):
        assert rational_shield(1.0e-4, 1.0) == pytest.approx(math.exp(-1.0e-4), rel=1e-8)

    def test_exponential_cutoff(self):
        assert exponential_shield(101.0, 1.0) == 0.0
        assert exponential_shield(1.0, 1.0) == pytest.approx(math.exp(-1.0))

    def test_self_shielding_density(self):
        assert self_shielding_density(4.0) == pytest.approx(NH_SS)
        assert self_shielding_density(4.0, 1.0e-12) == pytest.approx(NH_SS)
        assert self_shielding_density(5.0) == pytest.approx(NH_SS * 10.0 ** 0.173)

    def test_unknown_model(self):
        with pytest.raises(ValueError, match="Unknown shielding model"):
            get_shield_model("slab")

    def test_low_temperature_taper(self):
        assert low_temperature_taper(0.8, 1.0, 1.0) == 0.0
        assert low_temperature_taper(0.8, 1.5, 1.0) == pytest.approx(0.4)
        assert low_temperature_taper(0.8, 3.0, 1.0) == 0.8
