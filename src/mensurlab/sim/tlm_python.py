"""
Pure-Python transmission-line model (TLM) of a wind instrument bore.

Every segment of the bore is a two-port relating pressure p and volume velocity
u at its input to those at its output::

    [p_in]   [m11 m12] [p_out]
    [u_in] = [m21 m22] [u_out]

Starting from the radiation load at the bell, the impedance Z = p/u is carried
to the input end segment by segment:

    Z_in = (m11*Z + m12) / (m21*Z + m22)

Cylinders and cones use the exact spherical-wave solutions. With section
variation enabled every section uses the Webster-horn two-port with the area
gradient at both ends instead. Geometry is converted from mm to m here.
"""

import cmath
import math
from collections import namedtuple

import numpy as np

from ..bore import CLOSED, Bore
from ..errors import MensurValueError, StructureError
from .air import AirProperties
from .radiation import PIPE, RadiationModel
from .sim_interface import AcousticSimulationInterface
from .wall_loss import WallLossModel

# with section variation, no sub-step may widen or narrow by more than this ratio
SECTION_STEP_RATIO = 1.05

INPUT_PRESSURE = 0.02       # Pa, 60 dB SPL
REFERENCE_PRESSURE = 2e-5   # Pa, 0 dB SPL

Section = namedtuple("Section", ["r1", "r2", "L"])
TransferChain = namedtuple("TransferChain", ["sections", "matrices", "impedances", "load"])


def sections_from_bore(bore: Bore):
    """Radii and lengths of all segments in m."""
    sections = []
    for i, s in enumerate(bore):
        if s.is_degenerate():
            raise StructureError(f"degenerate segment {i} ({s.front}, {s.back}, {s.length}) reached the engine")
        sections.append(Section(s.front * 1e-3, s.back * 1e-3, s.length * 1e-3))
    return sections


def subdivide_sections(sections, max_ratio=SECTION_STEP_RATIO):
    """
    Split tapering sections into equal-length sub-steps whose radius ratio stays below max_ratio.

    The narrow end has the largest ratio per step, so the step count follows from it.
    Only the taper inside a section is refined. A radius step between two
    sections stays a discontinuity of zero length; its only smoothing is the
    averaging of the area gradients at the shared boundary (see area_gradients).
    """
    divided = []
    for s in sections:
        ratio = max(s.r1, s.r2) / min(s.r1, s.r2)
        if ratio <= max_ratio:
            divided.append(s)
            continue
        n = int(math.ceil(abs(s.r2 - s.r1) / (min(s.r1, s.r2) * (max_ratio - 1))))
        dr = (s.r2 - s.r1) / n
        for i in range(n):
            r2 = s.r2 if i == n - 1 else s.r1 + dr * (i + 1)
            divided.append(Section(s.r1 + dr * i, r2, s.L / n))
    return divided


def area_gradients(sections):
    """
    Area gradient dS/dx at the entry and exit of each section.

    Each value is averaged with the gradient of the neighbouring section at the
    shared boundary.
    """
    own = []
    for s in sections:
        slope = (s.r2 - s.r1) / s.L
        own.append((2 * math.pi * slope * s.r1, 2 * math.pi * slope * s.r2))

    gradients = []
    for i, (t1, t2) in enumerate(own):
        if i > 0:
            t1 = (t1 + own[i - 1][1]) / 2
        if i + 1 < len(own):
            t2 = (t2 + own[i + 1][0]) / 2
        gradients.append((t1, t2))
    return gradients


def cylinder_matrix(r, L, k, rhoc0):
    x = k * L
    s = math.pi * r * r
    c = cmath.cos(x)
    sn = cmath.sin(x)
    return (c, 1j * rhoc0 * sn / s, 1j * s * sn / rhoc0, c)


def cone_matrix(r1, r2, L, k, rhoc0):
    x = k * L
    c = cmath.cos(x)
    sn = cmath.sin(x)
    dr = r2 - r1
    m11 = (r2 * x * c - dr * sn) / (r1 * x)
    m12 = 1j * rhoc0 * sn / (math.pi * r1 * r2)
    m21 = -1j * math.pi * (dr * dr * x * c - (dr * dr + x * x * r1 * r2) * sn) / (k * k * L * L * rhoc0)
    m22 = (r1 * x * c + dr * sn) / (r2 * x)
    return (m11, m12, m21, m22)


def area_variation_matrix(r1, r2, L, k, rhoc0, t1, t2):
    x = k * L
    c = cmath.cos(x)
    sn = cmath.sin(x)
    s1 = math.pi * r1 * r1
    s2 = math.pi * r2 * r2
    ss = math.sqrt(s1 * s2)
    m11 = (2 * k * s2 * c - t2 * sn) / (2 * k * ss)
    m12 = 1j * rhoc0 * sn / ss
    m21 = (-2j * k * (s2 * t1 - s1 * t2) * c + 1j * (4 * k * k * s1 * s2 + t1 * t2) * sn) / (4 * rhoc0 * k * k * ss)
    m22 = (2 * k * s1 * c + t1 * sn) / (2 * k * ss)
    return (m11, m12, m21, m22)


def transform_impedance(m, z):
    """Carry the impedance z at the output of a two-port to its input. z None means infinite."""
    m11, m12, m21, m22 = m
    if z is None:
        return m11 / m21
    return (m11 * z + m12) / (m21 * z + m22)


def _is_finite(z):
    return z is not None and cmath.isfinite(z)


class TransmissionLineModel(AcousticSimulationInterface):
    """
    Transmission-line simulator implemented in pure Python.

    Args:
        temperature: Air temperature in °C.
        radiation: Radiation mode of the open end ("none", "pipe" or "baffle").
        wall_loss: Apply visco-thermal wall losses.
        section_variation: Use the area-variation two-port on finely subdivided sections.
    """

    def __init__(self, temperature=24.0, radiation=PIPE, wall_loss=True, section_variation=False):
        self.air = AirProperties(temperature)
        self.radiation = RadiationModel(self.air, radiation)
        self.wall_loss = WallLossModel(self.air, wall_loss)
        self.section_variation = section_variation

    def sections(self, bore):
        sections = sections_from_bore(bore)
        if self.section_variation:
            sections = subdivide_sections(sections)
        return sections

    def section_matrices(self, sections, frequency):
        rhoc0 = self.air.rhoc0
        gradients = area_gradients(sections) if self.section_variation else None
        matrices = []
        for i, s in enumerate(sections):
            k = self.wall_loss.wavenumber((s.r1 + s.r2) / 2, frequency)
            if self.section_variation:
                t1, t2 = gradients[i]
                m = area_variation_matrix(s.r1, s.r2, s.L, k, rhoc0, t1, t2)
            elif s.r1 == s.r2:
                m = cylinder_matrix(s.r1, s.L, k, rhoc0)
            else:
                m = cone_matrix(s.r1, s.r2, s.L, k, rhoc0)
            matrices.append(m)
        return matrices

    def load_impedance(self, bore, frequency):
        """Impedance at the bell end, None for a closed (infinite impedance) end."""
        if bore.termination == CLOSED:
            return None
        return self.radiation.terminal_impedance(bore.bell_radius() * 1e-3, frequency)

    def transfer_chain(self, bore: Bore, frequency: float) -> TransferChain:
        """
        Two-port matrices and input impedances of all sections, ordered from the input end.

        Raises:
            MensurValueError: frequency is not positive.
            StructureError: a degenerate segment or a non-finite intermediate result.
        """
        if not frequency > 0:
            raise MensurValueError(f"frequency must be positive, got {frequency}")

        sections = self.sections(bore)
        matrices = self.section_matrices(sections, frequency)
        load = self.load_impedance(bore, frequency)

        impedances = [None] * len(sections)
        z = load
        for i in range(len(sections) - 1, -1, -1):
            z = transform_impedance(matrices[i], z)
            if not _is_finite(z):
                raise StructureError(
                    f"non-finite impedance at section {i} ({sections[i]}) for {frequency} Hz")
            impedances[i] = z

        return TransferChain(sections, matrices, impedances, load)

    def input_impedance(self, bore: Bore, frequency: float) -> complex:
        return self.transfer_chain(bore, frequency).impedances[0]

    def pressure_distribution(self, bore: Bore, frequency: float, step=None):
        """
        Sound pressure level along the bore for 60 dB SPL at the input.

        Args:
            bore: The bore.
            frequency: Frequency in Hz.
            step: If given, segments are divided into pieces of at most step mm first.

        Returns:
            tuple: (x_mm, spl_db) arrays, x measured from the input end.
        """
        if step is not None:
            bore = bore.divide(step)
        chain = self.transfer_chain(bore, frequency)

        p = complex(INPUT_PRESSURE)
        x = 0.0
        positions = [x]
        pressures = [p]
        for s, (m11, m12, m21, m22), zi in zip(chain.sections, chain.matrices, chain.impedances):
            u = p / zi
            det = m11 * m22 - m12 * m21
            p = (m22 * p - m12 * u) / det
            x += s.L
            positions.append(x)
            pressures.append(p)

        magnitude = np.maximum(np.abs(np.array(pressures)), np.finfo(float).tiny)
        return np.array(positions) * 1e3, 20 * np.log10(magnitude / REFERENCE_PRESSURE)
