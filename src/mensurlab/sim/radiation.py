"""
Radiation impedance at the open end of the bore.

The baffled case is the piston in an infinite baffle; the unflanged pipe is
approximated from it by scaling the real part by 0.5 and the imaginary part by
0.7.
"""

import math

from scipy.special import j1, struve

from ..errors import MensurValueError
from .air import AirProperties

NONE = "none"
PIPE = "pipe"
BAFFLE = "baffle"

RADIATION_MODES = (NONE, PIPE, BAFFLE)


class RadiationModel:

    def __init__(self, air: AirProperties, mode=PIPE):
        if mode not in RADIATION_MODES:
            raise MensurValueError(
                f"unknown radiation mode \"{mode}\", expected one of {', '.join(RADIATION_MODES)}")
        self.air = air
        self.mode = mode

    def baffle_impedance(self, radius_m, frequency):
        """Acoustic radiation impedance (Pa·s/m³) of a baffled piston of the given radius."""
        k = 2 * math.pi * frequency / self.air.c0
        ka = k * radius_m
        s = math.pi * radius_m**2
        re = self.air.rhoc0 / s * (1 - j1(2 * ka) / ka)
        im = self.air.rhoc0 / s * struve(1, 2 * ka) / ka
        return complex(re, im)

    def terminal_impedance(self, radius_m, frequency):
        """Load impedance of the open end with the given radius in m."""
        if not radius_m > 0:
            raise MensurValueError(f"radius must be positive, got {radius_m}")
        if not frequency > 0:
            raise MensurValueError(f"frequency must be positive, got {frequency}")

        if self.mode == NONE:
            return complex(0.0)
        z = self.baffle_impedance(radius_m, frequency)
        if self.mode == PIPE:
            return complex(0.5 * z.real, 0.7 * z.imag)
        return z
