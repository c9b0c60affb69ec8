"""
Visco-thermal losses at the bore wall.

The loss enters the transmission line as a complex wavenumber

    k = sqrt(k0 * (k0 - 2*(i-1)*alpha))

with the lossless wavenumber k0 = omega/c0 and the attenuation coefficient

    alpha = (1 + (gamma-1)/sqrt(Pr)) * sqrt(omega*nu/2) / (c0*a)

for a duct of radius a.
"""

import cmath
import math

from ..errors import MensurValueError
from .air import AirProperties


def _check(radius_m, frequency):
    if not radius_m > 0:
        raise MensurValueError(f"radius must be positive, got {radius_m}")
    if not frequency > 0:
        raise MensurValueError(f"frequency must be positive, got {frequency}")


class WallLossModel:
    """Wavenumber correction for wall losses; disabled it leaves the wavenumber lossless."""

    def __init__(self, air: AirProperties, enabled=True):
        self.air = air
        self.enabled = enabled
        self._loss_factor = 1 + (air.gamma - 1) / math.sqrt(air.prandtl)

    def attenuation(self, radius_m, frequency):
        """Attenuation coefficient alpha in 1/m."""
        _check(radius_m, frequency)
        omega = 2 * math.pi * frequency
        return self._loss_factor * math.sqrt(omega * self.air.nu / 2) / (self.air.c0 * radius_m)

    def correction(self, radius_m, frequency):
        """Complex factor F with k = k0 * F."""
        _check(radius_m, frequency)
        if not self.enabled:
            return complex(1.0)
        return self.wavenumber(radius_m, frequency) / (2 * math.pi * frequency / self.air.c0)

    def wavenumber(self, radius_m, frequency):
        """Complex wavenumber k in 1/m."""
        _check(radius_m, frequency)
        k0 = 2 * math.pi * frequency / self.air.c0
        if not self.enabled:
            return complex(k0)
        alpha = self.attenuation(radius_m, frequency)
        return cmath.sqrt(k0 * (k0 - 2 * (1j - 1) * alpha))
