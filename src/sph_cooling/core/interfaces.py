"""
Abstract base classes for the pluggable pieces around the cooling solver.

A host SPH code supplies particle arrays and an equation of state; the
cooling model consumes both and updates the specific internal energy.
Alternative implementations can be swapped in as long as they satisfy these
contracts.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import numpy as np
import numpy.typing as npt


# Type aliases for clarity
NDArrayFloat = npt.NDArray[np.float64]
NDArrayBool = npt.NDArray[np.bool_]


class EOS(ABC):
    """
    Abstract base class for equation of state.

    Implementations: IdealGas.
    """

    @abstractmethod
    def pressure(
        self,
        density: NDArrayFloat,
        internal_energy: NDArrayFloat,
        **kwargs
    ) -> NDArrayFloat:
        """
        Compute pressure from density and internal energy.

        Parameters
        ----------
        density : NDArrayFloat, shape (N,)
            Mass density ρ [g cm⁻³].
        internal_energy : NDArrayFloat, shape (N,)
            Specific internal energy u [erg g⁻¹].
        **kwargs : additional EOS parameters.

        Returns
        -------
        pressure : NDArrayFloat, shape (N,)
            Pressure P [erg cm⁻³].
        """
        pass

    @abstractmethod
    def internal_energy_from_temperature(
        self,
        temperature: NDArrayFloat,
        mean_molecular_weight=None
    ) -> NDArrayFloat:
        """
        Specific internal energy of gas at a given temperature.

        Parameters
        ----------
        temperature : NDArrayFloat, shape (N,)
            Temperature [K].
        mean_molecular_weight : float or NDArrayFloat, optional
            Mean molecular weight μ of the gas.

        Returns
        -------
        u : NDArrayFloat, shape (N,)
            Specific internal energy [erg g⁻¹].
        """
        pass


class CoolingModel(ABC):
    """
    Abstract base class for radiative cooling models.

    Implementations: EquilibriumCoolingModel.
    """

    @abstractmethod
    def compute_net_rates(
        self,
        particles: Any,  # GasParticles type
        active: Optional[NDArrayBool] = None,
        **kwargs
    ) -> Any:
        """
        Evaluate heating, cooling and net du/dt without changing the particles.

        Parameters
        ----------
        particles : GasParticles
            Gas element arrays.
        active : NDArrayBool, shape (N,), optional
            Elements to evaluate; all if None.
        **kwargs : model-specific parameters.

        Returns
        -------
        rates : CoolingRates
            Per-element rates and the total luminosity.
        """
        pass

    @abstractmethod
    def compute_luminosity(
        self,
        particles: Any,
        active: Optional[NDArrayBool] = None,
        **kwargs
    ) -> Dict[str, float]:
        """
        Luminosity diagnostics.

        Returns
        -------
        luminosity : dict
            At least 'L_bol' [erg s⁻¹].
        """
        pass

    @abstractmethod
    def apply(
        self,
        particles: Any,
        dt: float,
        active: Optional[NDArrayBool] = None,
        **kwargs
    ) -> Any:
        """
        Update the internal energy of the active elements over dt.

        Parameters
        ----------
        particles : GasParticles
            Gas element arrays, updated in place.
        dt : float
            Timestep [s].
        active : NDArrayBool, shape (N,), optional
            Elements to update; all if None.

        Returns
        -------
        summary : Any
            Model-specific step summary.
        """
        pass
