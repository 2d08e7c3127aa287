"""
Species-by-species metal-line cooling tables.

Each file ``spcool_<i>`` holds a flat float32 array laid out as
[species][density bin][temperature bin] with 10 species, 41 bins in
log10(nH) over [-8, 0] and 176 bins in log10(T) over [2, 9]. Species 0 is the
electron abundance ne/nH assumed when the table was computed; species 1-9
are the per-element cooling rates for solar abundances.

In cosmological runs the file index is the redshift bin
i = floor(48 log10(1+z)); the tables for bins i and i+1 are both loaded and
blended linearly in the bin fraction.

References:
    Wiersma, Schaye & Smith (2009) - element-by-element cooling
"""

from pathlib import Path
from typing import Optional, Sequence, Tuple, Union
import math

import numpy as np
import numpy.typing as npt

from sph_cooling.constants import (
    METAL_TABLE_LOG_NH_RANGE,
    METAL_TABLE_LOG_T_RANGE,
    METAL_TABLE_N_DENSITY,
    METAL_TABLE_N_REDSHIFT_BINS,
    METAL_TABLE_N_SPECIES,
    METAL_TABLE_N_TEMPERATURE,
    SOLAR_ABUNDANCES,
)
from sph_cooling.core.errors import TableLoadError

NDArrayFloat = npt.NDArray[np.float64]

TABLE_SHAPE = (METAL_TABLE_N_SPECIES, METAL_TABLE_N_DENSITY, METAL_TABLE_N_TEMPERATURE)

# Solar metallicity the tables were computed for
TABLE_SOLAR_METALLICITY = 0.0127


def metal_table_index(redshift: float, cosmological: bool = True) -> Tuple[int, float]:
    """
    Redshift bin of the metal tables.

    Parameters
    ----------
    redshift : float
        Current redshift.
    cosmological : bool
        Non-cosmological runs always use bin 0.

    Returns
    -------
    index : int
        File index in [0, 48].
    frac : float
        Weight of bin index+1; zero when no second snapshot is used.
    """
    if not cosmological:
        return 0, 0.0
    z = math.log10(1.0 + redshift) * METAL_TABLE_N_REDSHIFT_BINS
    index = int(z)
    if index >= METAL_TABLE_N_REDSHIFT_BINS:
        return METAL_TABLE_N_REDSHIFT_BINS, 0.0
    return index, z - index


def metal_table_filename(directory: Union[str, Path], index: int) -> Path:
    """Path of the table for one redshift bin, index clamped to [0, 48]."""
    index = min(max(int(index), 0), METAL_TABLE_N_REDSHIFT_BINS)
    return Path(directory) / f"spcool_{index}"


def read_metal_table(filename: Union[str, Path]) -> np.ndarray:
    """
    Read one species table.

    Raises
    ------
    TableLoadError
        If the file is missing or holds fewer values than the fixed table size.
    """
    filepath = Path(filename)
    if not filepath.exists():
        raise TableLoadError(filepath, "file not found")

    n_expected = int(np.prod(TABLE_SHAPE))
    try:
        data = np.fromfile(filepath, dtype=np.float32, count=n_expected)
    except OSError as e:
        raise TableLoadError(filepath, str(e)) from e

    if data.size < n_expected:
        raise TableLoadError(filepath, f"short read: {data.size} of {n_expected} float32 values")

    data = data.reshape(TABLE_SHAPE)
    data.flags.writeable = False
    return data


class MetalCoolingTable:
    """
    Read-only metal-line cooling grid, optionally bracketing two redshift bins.

    Parameters
    ----------
    table : np.ndarray
        float32 array of shape (10, 41, 176) for the active redshift bin.
    next_table : np.ndarray, optional
        Table for the following redshift bin.
    redshift_fraction : float
        Linear weight of next_table in [0, 1).
    index : int
        Redshift bin of ``table``.
    """

    def __init__(self, table: np.ndarray, next_table: Optional[np.ndarray] = None,
                 redshift_fraction: float = 0.0, index: int = 0):
        if table.shape != TABLE_SHAPE:
            raise ValueError(f"metal table must have shape {TABLE_SHAPE}, got {table.shape}")
        if next_table is not None and next_table.shape != TABLE_SHAPE:
            raise ValueError(f"metal table must have shape {TABLE_SHAPE}, got {next_table.shape}")

        self.index = int(index)
        self.table = table
        self.next_table = next_table
        self.redshift_fraction = float(redshift_fraction) if next_table is not None else 0.0

        blended = table.astype(np.float64)
        if next_table is not None and self.redshift_fraction > 0.0:
            blended = (1.0 - self.redshift_fraction) * blended + self.redshift_fraction * next_table
        self._table = blended
        self._table.flags.writeable = False

        # element weights relative to the table's solar mixture
        z_fac = TABLE_SOLAR_METALLICITY / SOLAR_ABUNDANCES[0]
        self._solar_weights = 1.0 / (SOLAR_ABUNDANCES[2:2 + METAL_TABLE_N_SPECIES - 1] * z_fac)

    @classmethod
    def from_directory(cls, directory: Union[str, Path], redshift: float = 0.0,
                       cosmological: bool = False) -> "MetalCoolingTable":
        """Load the table (and its successor in cosmological runs) for a redshift."""
        index, frac = metal_table_index(redshift, cosmological)
        table = read_metal_table(metal_table_filename(directory, index))
        next_table = None
        if cosmological and index < METAL_TABLE_N_REDSHIFT_BINS:
            next_table = read_metal_table(metal_table_filename(directory, index + 1))
        return cls(table, next_table, frac, index)

    def with_redshift_fraction(self, redshift_fraction: float) -> "MetalCoolingTable":
        """Re-blend the loaded snapshots for a new fraction within the same redshift bin."""
        return MetalCoolingTable(self.table, self.next_table, redshift_fraction, self.index)

    def _weights(self, n_h: float, log_t: float):
        x_max = METAL_TABLE_N_DENSITY - 1
        y_max = METAL_TABLE_N_TEMPERATURE - 1
        lo_n, hi_n = METAL_TABLE_LOG_NH_RANGE
        lo_t, hi_t = METAL_TABLE_LOG_T_RANGE

        dx = (math.log10(n_h) - lo_n) / (hi_n - lo_n) * x_max if n_h > 0.0 else 0.0
        dy = (log_t - lo_t) / (hi_t - lo_t) * y_max
        dx = min(max(dx, 0.0), float(x_max))
        dy = min(max(dy, 0.0), float(y_max))

        ix0 = int(dx)
        iy0 = int(dy)
        ix1 = min(ix0 + 1, x_max)
        iy1 = min(iy0 + 1, y_max)
        return ix0, ix1, dx - ix0, iy0, iy1, dy - iy0

    def species_rates(self, n_h: float, log_t: float) -> NDArrayFloat:
        """
        Bilinearly interpolated values of every species at (nH, T).

        Returns
        -------
        values : NDArrayFloat
            Shape (10,); entry 0 is the table's ne/nH.
        """
        ix0, ix1, dx, iy0, iy1, dy = self._weights(n_h, log_t)
        t = self._table
        w1 = t[:, ix0, iy0] * (1.0 - dy) + t[:, ix0, iy1] * dy
        w2 = t[:, ix1, iy0] * (1.0 - dy) + t[:, ix1, iy1] * dy
        return w1 * (1.0 - dx) + w2 * dx

    def cooling_rate(self, n_h: float, log_t: float, metallicity: Sequence[float]) -> float:
        """
        Metal-line cooling coefficient per free electron.

        The species rates are weighted by the element abundances relative to
        solar and divided by the table's ne/nH; the caller multiplies by the
        solved electron abundance.

        Parameters
        ----------
        n_h : float
            Hydrogen number density [cm⁻³].
        log_t : float
            log10(T / K).
        metallicity : sequence of float
            Metallicity vector (Z, Y, C, N, O, Ne, Mg, Si, S, Ca, Fe).

        Returns
        -------
        Lambda : float
            Cooling coefficient [erg cm³ s⁻¹], zero when the table's
            ne/nH vanishes.
        """
        values = self.species_rates(n_h, log_t)
        ne_over_nh = values[0]
        if ne_over_nh <= 0.0:
            return 0.0
        abundances = np.asarray(metallicity, dtype=np.float64)[2:2 + METAL_TABLE_N_SPECIES - 1]
        return float(np.sum(values[1:] * abundances * self._solar_weights) / ne_over_nh)

    def __repr__(self) -> str:
        return f"MetalCoolingTable(index={self.index}, redshift_fraction={self.redshift_fraction:.3f})"
