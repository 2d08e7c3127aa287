"""
Diagnostic time series for the cooling solver.

Records, per step:
- Cooling summary (elements cooled, floor resets, solver iteration counts)
- Luminosity and cumulative radiated energy
- Mass-weighted temperature of the gas

Supports multiple output formats: CSV (default), HDF5, JSON.

Usage:
    >>> with CoolingDiagnosticsWriter("output/cooling", format='csv') as diagnostics:
    ...     summary = model.apply(particles, dt)
    ...     diagnostics.write_step(time, summary, particles, model.cumulative_radiated_energy)
"""

import csv
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import h5py
import numpy as np

from sph_cooling.gas.particles import GasParticles
from sph_cooling.solver.driver import CoolingStepSummary

STEP_COLUMNS = [
    'time', 'n_active', 'n_updated', 'n_floor_resets',
    'mean_iterations', 'max_iterations', 'T_mean', 'energy_change',
]
LUMINOSITY_COLUMNS = ['time', 'L_bol', 'E_radiated']

SERIES = {
    'cooling': STEP_COLUMNS,
    'luminosity': LUMINOSITY_COLUMNS,
}


class CoolingDiagnosticsWriter:
    """
    Time-series diagnostic output writer for the cooling solver.

    Parameters
    ----------
    output_dir : str or Path
        Directory for diagnostic outputs.
    format : str, optional
        Output format: 'csv', 'hdf5', or 'json' (default: 'csv').
    append : bool, optional
        If True, append to existing files (default: False).
    buffer_size : int, optional
        HDF5 entries to buffer before writing (default: 1, write immediately).

    Attributes
    ----------
    output_dir : Path
        Output directory path.
    format : str
        Active output format.
    files : Dict[str, Any]
        Open file handles.
    buffers : Dict[str, List]
        Buffered rows for HDF5 and JSON output.

    Notes
    -----
    CSV files carry a header row. HDF5 stores one resizable dataset per
    column under a group per series. JSON is written at finalize().
    """

    def __init__(
        self,
        output_dir: Union[str, Path],
        format: str = 'csv',
        append: bool = False,
        buffer_size: int = 1
    ):
        valid_formats = ['csv', 'hdf5', 'json']
        if format not in valid_formats:
            raise ValueError(f"format must be one of {valid_formats}, got '{format}'")
        if buffer_size < 1:
            raise ValueError(f"buffer_size must be >= 1, got {buffer_size}")

        self.output_dir = Path(output_dir)
        self.format = format
        self.append = append
        self.buffer_size = buffer_size
        self.finalized = False

        self.output_dir.mkdir(parents=True, exist_ok=True)

        self.files: Dict[str, Any] = {}
        self.writers: Dict[str, Any] = {}
        self.buffers: Dict[str, List[Dict[str, float]]] = {name: [] for name in SERIES}

        self.metadata: Dict[str, Any] = {
            'creation_time': datetime.now().isoformat(),
            'format': self.format
        }

        if self.format == 'csv':
            self._initialize_csv_files()
        elif self.format == 'hdf5':
            self._initialize_hdf5_file()

    def _initialize_csv_files(self) -> None:
        """Open one CSV file per series, writing headers for new files."""
        for name, columns in SERIES.items():
            path = self.output_dir / f'{name}.csv'
            mode = 'a' if self.append and path.exists() else 'w'
            self.files[name] = open(path, mode, newline='')
            self.writers[name] = csv.writer(self.files[name])
            if mode == 'w':
                self.writers[name].writerow(columns)
                self.files[name].flush()

    def _initialize_hdf5_file(self) -> None:
        """Open the HDF5 file and create one group per series."""
        mode = 'a' if self.append else 'w'
        self.files['hdf5'] = h5py.File(self.output_dir / 'diagnostics.h5', mode)
        for name in SERIES:
            if name not in self.files['hdf5']:
                self.files['hdf5'].create_group(name)

    def _write(self, series: str, entry: Dict[str, float]) -> None:
        if self.finalized:
            raise RuntimeError("diagnostics writer has been finalized")

        if self.format == 'csv':
            self.writers[series].writerow([entry.get(c, np.nan) for c in SERIES[series]])
            self.files[series].flush()

        elif self.format == 'hdf5':
            self.buffers[series].append(entry)
            if len(self.buffers[series]) >= self.buffer_size:
                self._flush_hdf5_buffer(series)

        elif self.format == 'json':
            self.buffers[series].append(entry)

    def write_step(
        self,
        time: float,
        summary: CoolingStepSummary,
        particles: Optional[GasParticles] = None,
        radiated_energy: Optional[float] = None
    ) -> None:
        """
        Write one step of cooling diagnostics.

        Parameters
        ----------
        time : float
            Simulation time [s].
        summary : CoolingStepSummary
            Result of EquilibriumCoolingModel.apply().
        particles : GasParticles, optional
            Gas arrays for the mass-weighted temperature (NaN if omitted).
        radiated_energy : float, optional
            Cumulative radiated energy [erg]; also logs a luminosity entry.
        """
        entry = {
            'time': time,
            'n_active': summary.n_active,
            'n_updated': summary.n_updated,
            'n_floor_resets': summary.n_floor_resets,
            'mean_iterations': summary.mean_iterations,
            'max_iterations': summary.max_iterations,
            'T_mean': particles.mass_weighted_temperature() if particles is not None else np.nan,
            'energy_change': summary.energy_change,
        }
        self._write('cooling', entry)

        if radiated_energy is not None:
            self.write_luminosity(time, summary.luminosity, radiated_energy)

    def write_luminosity(
        self,
        time: float,
        luminosity: float,
        radiated_energy: float = np.nan
    ) -> None:
        """
        Write luminosity entry.

        Parameters
        ----------
        time : float
            Simulation time [s].
        luminosity : float
            Total luminosity [erg/s].
        radiated_energy : float, optional
            Cumulative radiated energy [erg].
        """
        self._write('luminosity', {'time': time, 'L_bol': luminosity, 'E_radiated': radiated_energy})

    def _flush_hdf5_buffer(self, series: str) -> None:
        """Flush buffered data to HDF5 file."""
        buffer_data = self.buffers.get(series)
        if not buffer_data:
            return

        group = self.files['hdf5'][series]
        for key in buffer_data[0].keys():
            values = np.array([entry[key] for entry in buffer_data], dtype=np.float64)

            if key in group:
                dset = group[key]
                old_size = dset.shape[0]
                dset.resize(old_size + len(values), axis=0)
                dset[old_size:] = values
            else:
                group.create_dataset(key, data=values, maxshape=(None,), compression='gzip')

        self.buffers[series] = []

    def read_series(self, series: str) -> Dict[str, np.ndarray]:
        """
        Rows written so far for one series (HDF5 and JSON flush first).

        Returns
        -------
        columns : dict
            Column name -> array.
        """
        if series not in SERIES:
            raise ValueError(f"unknown series '{series}', expected one of {list(SERIES)}")

        if self.format == 'csv':
            self.files[series].flush()
            with open(self.output_dir / f'{series}.csv', newline='') as f:
                rows = list(csv.DictReader(f))
            return {c: np.array([float(r[c]) for r in rows]) for c in SERIES[series]}

        if self.format == 'hdf5':
            self._flush_hdf5_buffer(series)
            group = self.files['hdf5'][series]
            return {key: group[key][()] for key in group.keys()}

        rows = self.buffers[series]
        return {c: np.array([r.get(c, np.nan) for r in rows], dtype=np.float64) for c in SERIES[series]}

    def finalize(self) -> None:
        """
        Close files and write metadata.

        Safe to call more than once.
        """
        if self.finalized:
            return

        if self.format == 'hdf5':
            for series in SERIES:
                self._flush_hdf5_buffer(series)
            self.files['hdf5'].attrs.update(
                {k: str(v) for k, v in self.metadata.items()}
            )

        if self.format == 'json':
            for series, data in self.buffers.items():
                with open(self.output_dir / f'{series}.json', 'w') as f:
                    json.dump(data, f, indent=2, default=_json_serializer)

        for file_handle in self.files.values():
            file_handle.close()

        self.metadata['finalize_time'] = datetime.now().isoformat()
        with open(self.output_dir / 'metadata.json', 'w') as f:
            json.dump(self.metadata, f, indent=2, default=_json_serializer)

        self.finalized = True

    def add_metadata(self, key: str, value: Any) -> None:
        """
        Add custom metadata (must be JSON-serializable).
        """
        self.metadata[key] = value

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.finalize()

    def __repr__(self) -> str:
        """String representation."""
        return f"CoolingDiagnosticsWriter(output_dir='{self.output_dir}', format='{self.format}')"


def _json_serializer(obj):
    """JSON serializer for numpy types."""
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    elif isinstance(obj, (np.float32, np.float64)):
        return float(obj)
    elif isinstance(obj, (np.int32, np.int64)):
        return int(obj)
    else:
        return str(obj)
