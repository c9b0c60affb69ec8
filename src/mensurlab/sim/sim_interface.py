"""
Abstract interface for acoustic simulation backends in mensurlab.

Any simulator implements get_impedance_spectrum(bore, frequencies).
"""

from abc import ABC, abstractmethod
import numpy as np

from ..bore import Bore


class AcousticSimulationInterface(ABC):
    """Interface for computing the acoustic input impedance spectrum of a bore."""

    @abstractmethod
    def input_impedance(self, bore: Bore, frequency: float) -> complex:
        """Return the complex input impedance (Pa·s/m³) at one frequency in Hz."""
        pass

    def get_impedance_spectrum(self, bore: Bore, frequencies: np.array) -> np.array:
        """Return complex impedance values at each frequency in Hz for the given bore."""
        return np.array([self.input_impedance(bore, f) for f in frequencies], dtype=np.complex128)
