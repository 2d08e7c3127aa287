"""
Tests for the rate coefficient table.

Tests validate:
1. Grid layout (NCOOLTAB + 1 points, uniform spacing)
2. Interpolation reproduces grid values exactly
3. Cell lookup clamps to the table
4. Table arrays are read-only
"""

import numpy as np
import pytest

from sph_cooling.constants import NCOOLTAB
from sph_cooling.tables import RateTable, compute_rate_curves
from sph_cooling.tables.rate_table import RATE_NAMES


class TestRateTable:
    """Test suite for RateTable."""

    def setup_method(self):
        self.table = RateTable(1.0, 9.0)

    def test_grid_size(self):
        """Grid has NCOOLTAB + 1 points covering [log_t_min, log_t_max]."""
        assert self.table.log_t.shape == (NCOOLTAB + 1,)
        assert self.table.log_t[0] == pytest.approx(1.0)
        assert self.table.log_t[-1] == pytest.approx(9.0)
        assert self.table.delta_log_t == pytest.approx(8.0 / NCOOLTAB)

    def test_every_rate_tabulated(self):
        for name in RATE_NAMES:
            assert self.table[name].shape == (NCOOLTAB + 1,)
            assert np.all(np.isfinite(self.table[name]))
            assert np.all(self.table[name] >= 0.0)

    def test_interpolation_at_grid_point(self):
        """Interpolating exactly on a grid point returns the tabulated value."""
        j = 1000
        coeffs = self.table.interpolate(self.table.log_t[j])
        assert coeffs.alpha_hp == pytest.approx(self.table["alpha_hp"][j], rel=1e-10)
        assert coeffs.beta_ff == pytest.approx(self.table["beta_ff"][j], rel=1e-10)

    def test_interpolation_between_points(self):
        j = 500
        mid = 0.5 * (self.table.log_t[j] + self.table.log_t[j + 1])
        coeffs = self.table.interpolate(mid)
        expected = 0.5 * (self.table["gamma_e_h0"][j] + self.table["gamma_e_h0"][j + 1])
        assert coeffs.gamma_e_h0 == pytest.approx(expected, rel=1e-10)

    def test_cell_clamping(self):
        """Out-of-range temperatures clamp to the first and last cell."""
        assert self.table.cell(-5.0) == (0, 0.0)
        j, frac = self.table.cell(20.0)
        assert j == NCOOLTAB - 1
        assert frac == 1.0

    def test_read_only(self):
        with pytest.raises(ValueError):
            self.table.log_t[0] = 0.0
        with pytest.raises(ValueError):
            self.table["alpha_hp"][0] = 0.0

    def test_invalid_range(self):
        with pytest.raises(ValueError):
            RateTable(9.0, 1.0)
        with pytest.raises(ValueError):
            RateTable(1.0, 9.0, n_cells=0)


class TestRateCurves:
    """Physical sanity of the rate fits."""

    def test_boltzmann_cutoff(self):
        """Collisional rates vanish at very low temperature."""
        rates = compute_rate_curves(np.array([10.0]))
        assert rates["gamma_e_h0"][0] == 0.0
        assert rates["beta_h0"][0] == 0.0

    def test_recombination_decreases_with_temperature(self):
        rates = compute_rate_curves(np.array([1.0e3, 1.0e5, 1.0e7]))
        assert np.all(np.diff(rates["alpha_hp"]) < 0.0)

    def test_free_free_scales_as_sqrt_t(self):
        """Far from the Gaunt-factor peak β_ff ∝ √T."""
        rates = compute_rate_curves(np.array([1.0e9, 4.0e9]))
        ratio = rates["beta_ff"][1] / rates["beta_ff"][0]
        assert ratio == pytest.approx(2.0, rel=0.01)
