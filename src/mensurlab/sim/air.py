"""
Properties of air as a function of temperature (°C).
"""

import math

from ..errors import MensurValueError

GAMMA = 1.4  # ratio of specific heats
KELVIN = 273.16


class AirProperties:
    """
    Thermodynamic constants of air at a given temperature.

    Attributes:
        temperature: Temperature in °C.
        c0: Speed of sound in m/s.
        rho: Density in kg/m³.
        rhoc0: Characteristic impedance rho*c0 in Pa·s/m.
        mu: Dynamic viscosity in Pa·s.
        nu: Kinematic viscosity in m²/s.
        kappa: Thermal conductivity in W/(m·K).
        cp: Specific heat at constant pressure in J/(kg·K).
        prandtl: Prandtl number.
        gamma: Ratio of specific heats.
    """

    def __init__(self, temperature=24.0):
        if not math.isfinite(temperature) or temperature <= -KELVIN:
            raise MensurValueError(f"temperature must be above absolute zero, got {temperature}")
        t = float(temperature)
        self.temperature = t
        self.c0 = 331.45 * math.sqrt(t / KELVIN + 1)
        self.rho = 1.2929 * KELVIN / (KELVIN + t)
        self.rhoc0 = self.rho * self.c0
        self.mu = (18.2 + 0.0456 * (t - 25)) * 1.0e-6
        self.nu = self.mu / self.rho
        self.kappa = 2.6240e-2 * (1 + 0.0058 * (t - 26.85))
        self.cp = 1.0054e3 * (1 + 0.0004 * (t - 26.85))
        self.prandtl = self.mu * self.cp / self.kappa
        self.gamma = GAMMA

    def __repr__(self):
        return f"AirProperties(T={self.temperature}°C, c0={self.c0:.2f} m/s, rho={self.rho:.4f} kg/m³)"
