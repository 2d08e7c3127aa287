"""
Exception types raised by the cooling solver.

Convergence failures are fatal: they indicate corrupted or invalid input
state, so callers are expected to abort the step rather than retry.
"""

from typing import Any, Dict, Optional


class CoolingError(Exception):
    """Base class for all cooling solver errors."""


class ConvergenceError(CoolingError, RuntimeError):
    """
    A nested iterative solver exceeded its iteration cap.

    Parameters
    ----------
    solver : str
        Name of the solver that failed ("ionization", "temperature",
        "energy bracket", "energy bisection").
    diagnostics : dict
        Offending inputs (density, energy, seeds, iteration count, ...).
    """

    def __init__(self, solver: str, diagnostics: Optional[Dict[str, Any]] = None):
        self.solver = solver
        self.diagnostics = dict(diagnostics or {})
        dump = "\n".join(f"  {key} = {_format_value(value)}" for key, value in self.diagnostics.items())
        message = f"failed to converge in {solver} solver"
        if dump:
            message = f"{message}\n{dump}"
        super().__init__(message)


class TableLoadError(CoolingError, OSError):
    """A rate table file is missing, unreadable or malformed."""

    def __init__(self, path, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"cannot load cooling table '{self.path}': {reason}")


def _format_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.6g}"
    return str(value)
