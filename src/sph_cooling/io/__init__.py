"""
I/O module: diagnostics output.
"""

from sph_cooling.io.diagnostics import CoolingDiagnosticsWriter

__all__ = ["CoolingDiagnosticsWriter"]
