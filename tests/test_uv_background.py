"""
Tests for the ionizing background tables.

Tests validate:
1. Text file loading (comments, terminating row, row cap)
2. Error reporting for missing and malformed files
3. Log-log interpolation in redshift and amplitude scaling
4. Zero background outside the tabulated range
5. Analytic power-law background
"""

import numpy as np
import pytest

from sph_cooling.core.errors import TableLoadError
from sph_cooling.tables import NO_BACKGROUND, PhotoRates, UVBackgroundTable

ROWS = [
    [0.0, 1.0e-13, 1.0e-14, 1.0e-15, 1.0e-24, 1.0e-25, 1.0e-26],
    [0.2, 1.0e-12, 1.0e-13, 1.0e-14, 1.0e-23, 1.0e-24, 1.0e-25],
    [0.4, 2.0e-12, 2.0e-13, 2.0e-14, 2.0e-23, 2.0e-24, 2.0e-25],
]


def write_table(path, rows, header=True):
    with open(path, 'w') as f:
        if header:
            f.write("# log(1+z) gH0 gHe0 gHep eH0 eHe0 eHep\n\n")
        for row in rows:
            f.write(" ".join(f"{v:.6e}" for v in row) + "\n")
    return path


class TestUVBackgroundFile:
    """File loading."""

    def test_load(self, tmp_path):
        table = UVBackgroundTable.from_file(write_table(tmp_path / "TREECOOL", ROWS))
        assert table.n_rows == 3
        assert table.source.endswith("TREECOOL")

    def test_zero_rate_terminates(self, tmp_path):
        rows = ROWS[:2] + [[0.3, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0]] + ROWS[2:]
        table = UVBackgroundTable.from_file(write_table(tmp_path / "uv.txt", rows))
        assert table.n_rows == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(TableLoadError, match="file not found"):
            UVBackgroundTable.from_file(tmp_path / "missing.txt")

    def test_too_few_columns(self, tmp_path):
        path = tmp_path / "bad.txt"
        path.write_text("0.0 1e-13 1e-14\n")
        with pytest.raises(TableLoadError, match="columns"):
            UVBackgroundTable.from_file(path)

    def test_unparseable_value(self, tmp_path):
        path = tmp_path / "bad.txt"
        path.write_text("0.0 1e-13 1e-14 abc 1e-24 1e-25 1e-26\n")
        with pytest.raises(TableLoadError):
            UVBackgroundTable.from_file(path)

    def test_no_rows(self, tmp_path):
        path = tmp_path / "empty.txt"
        path.write_text("# only a comment\n")
        with pytest.raises(TableLoadError, match="no usable rows"):
            UVBackgroundTable.from_file(path)

    def test_unsorted_rows(self, tmp_path):
        path = write_table(tmp_path / "unsorted.txt", [ROWS[1], ROWS[0]])
        with pytest.raises(TableLoadError, match="sorted"):
            UVBackgroundTable.from_file(path)

    def test_table_load_error_is_os_error(self, tmp_path):
        with pytest.raises(OSError):
            UVBackgroundTable.from_file(tmp_path / "missing.txt")


class TestUVBackgroundInterpolation:
    """Redshift interpolation."""

    def setup_method(self):
        self.table = UVBackgroundTable(ROWS)

    def test_at_table_row(self):
        rates = self.table.rates_at(10.0 ** 0.2 - 1.0)
        assert rates.gamma_h0 == pytest.approx(1.0e-12, rel=1e-8)
        assert rates.eps_hep == pytest.approx(1.0e-25, rel=1e-8)

    def test_log_log_midpoint(self):
        """Halfway in log(1+z) gives the geometric mean of the rows."""
        rates = self.table.rates_at(10.0 ** 0.1 - 1.0)
        assert rates.gamma_h0 == pytest.approx(np.sqrt(1.0e-13 * 1.0e-12), rel=1e-8)

    def test_out_of_range(self):
        assert self.table.rates_at(10.0 ** 0.5 - 1.0) == NO_BACKGROUND
        assert not self.table.rates_at(10.0).is_on

    def test_amplitude(self):
        scaled = UVBackgroundTable(ROWS, amplitude=2.5)
        assert scaled.rates_at(0.0).gamma_h0 == pytest.approx(2.5e-13, rel=1e-8)

    def test_rows_read_only(self):
        with pytest.raises(ValueError):
            self.table.rows[0, 1] = 0.0

    def test_bad_shape(self):
        with pytest.raises(ValueError):
            UVBackgroundTable([[0.0, 1.0]])


class TestPowerLawBackground:
    """Analytic J_ν background."""

    def test_off_above_redshift_six(self):
        assert UVBackgroundTable.from_power_law(6.0) == NO_BACKGROUND

    def test_positive_rates(self):
        rates = UVBackgroundTable.from_power_law(2.5)
        assert isinstance(rates, PhotoRates)
        assert rates.is_on
        assert rates.gamma_h0 > rates.gamma_hep > 0.0
        assert rates.eps_h0 > 0.0

    def test_plateau(self):
        """J_21 is constant for 2 ≤ z < 3."""
        a = UVBackgroundTable.from_power_law(2.0)
        b = UVBackgroundTable.from_power_law(2.9)
        assert a.gamma_h0 == pytest.approx(b.gamma_h0, rel=1e-12)

    def test_amplitude(self):
        base = UVBackgroundTable.from_power_law(1.0)
        doubled = UVBackgroundTable.from_power_law(1.0, amplitude=2.0)
        assert doubled.gamma_h0 == pytest.approx(2.0 * base.gamma_h0)
