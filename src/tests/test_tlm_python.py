"""
Pytest unit tests for mensurlab.sim.tlm_python.
"""

import cmath
import math
import numpy as np
import pytest

from mensurlab.bore import CLOSED, Bore, Segment
from mensurlab.errors import MensurValueError, StructureError
from mensurlab.sim.radiation import BAFFLE, NONE, PIPE
from mensurlab.sim.tlm_python import (
    SECTION_STEP_RATIO,
    Section,
    TransmissionLineModel,
    area_gradients,
    area_variation_matrix,
    cone_matrix,
    cylinder_matrix,
    subdivide_sections,
    transform_impedance,
)


def lossless(**kwargs):
    return TransmissionLineModel(wall_loss=False, **kwargs)


class TestMatrices:
    """Tests for the two-port matrices."""

    def test_cylinder_is_reciprocal(self):
        m11, m12, m21, m22 = cylinder_matrix(0.01, 0.3, 5.0, 410.0)
        assert m11 * m22 - m12 * m21 == pytest.approx(1)

    def test_cone_is_reciprocal(self):
        m11, m12, m21, m22 = cone_matrix(0.005, 0.02, 0.3, 5.0, 410.0)
        assert m11 * m22 - m12 * m21 == pytest.approx(1)

    def test_cone_approaches_cylinder(self):
        cone = cone_matrix(0.01, 0.01 * (1 + 1e-7), 0.3, 5.0, 410.0)
        cylinder = cylinder_matrix(0.01, 0.3, 5.0, 410.0)
        for a, b in zip(cone, cylinder):
            assert a == pytest.approx(b, rel=1e-5)

    def test_area_variation_without_taper_is_cylinder(self):
        m = area_variation_matrix(0.01, 0.01, 0.3, 5.0, 410.0, 0.0, 0.0)
        cylinder = cylinder_matrix(0.01, 0.3, 5.0, 410.0)
        for a, b in zip(m, cylinder):
            assert a == pytest.approx(b)

    def test_infinite_load(self):
        m = cylinder_matrix(0.01, 0.3, 5.0, 410.0)
        assert transform_impedance(m, None) == pytest.approx(m[0] / m[2])


class TestSections:
    """Tests for section subdivision and area gradients."""

    def test_subdivide_limits_ratio(self):
        sections = subdivide_sections([Section(0.005, 0.03, 0.4)])
        assert len(sections) > 1
        for s in sections:
            assert max(s.r1, s.r2) / min(s.r1, s.r2) <= SECTION_STEP_RATIO + 1e-12
        assert sum(s.L for s in sections) == pytest.approx(0.4)
        assert sections[-1].r2 == 0.03

    def test_cylinders_are_not_subdivided(self):
        assert len(subdivide_sections([Section(0.005, 0.005, 0.4)])) == 1

    def test_step_between_sections_is_kept(self):
        sections = subdivide_sections([Section(0.005, 0.005, 0.1), Section(0.01, 0.01, 0.1)])
        assert sections == [Section(0.005, 0.005, 0.1), Section(0.01, 0.01, 0.1)]

    def test_gradients_are_averaged_with_neighbours(self):
        sections = [Section(0.01, 0.01, 0.1), Section(0.01, 0.02, 0.1)]
        gradients = area_gradients(sections)
        own_entry = 2 * math.pi * 0.1 * 0.01
        assert gradients[0] == (0.0, pytest.approx(own_entry / 2))
        assert gradients[1][0] == pytest.approx(own_entry / 2)


class TestTransmissionLineModel:
    """Tests for TransmissionLineModel."""

    def test_open_cylinder_without_radiation(self):
        model = lossless(radiation=NONE)
        r, L, f = 0.01, 1.0, 300.0
        k = 2 * math.pi * f / model.air.c0
        expected = 1j * model.air.rhoc0 / (math.pi * r * r) * math.tan(k * L)
        z = model.input_impedance(Bore([Segment(10, 10, 1000)]), f)
        assert z == pytest.approx(expected, rel=1e-9)

    def test_closed_cylinder(self):
        model = lossless(radiation=PIPE)
        r, L, f = 0.01, 1.0, 300.0
        k = 2 * math.pi * f / model.air.c0
        expected = -1j * model.air.rhoc0 / (math.pi * r * r) / math.tan(k * L)
        z = model.input_impedance(Bore([Segment(10, 10, 1000, terminal=CLOSED)]), f)
        assert z == pytest.approx(expected, rel=1e-9)

    def test_divided_bore_gives_same_impedance(self):
        model = lossless(radiation=BAFFLE)
        bore = Bore([Segment(5, 5, 100), Segment(5, 30, 700)])
        for f in (100.0, 437.0, 1200.0):
            z = model.input_impedance(bore, f)
            assert model.input_impedance(bore.divide(50), f) == pytest.approx(z, rel=1e-8)

    def test_wall_loss_lowers_peak(self):
        bore = Bore([Segment(10, 10, 1000)])
        lossy = TransmissionLineModel(radiation=NONE, wall_loss=True)
        f = lossy.air.c0 / 4
        assert abs(lossy.input_impedance(bore, f)) < abs(lossless(radiation=NONE).input_impedance(bore, f))
        assert lossy.input_impedance(bore, f).real > 0

    def test_section_variation_on_cylinder_matches_plain_model(self):
        bore = Bore([Segment(5, 5, 300), Segment(5, 5, 500)])
        plain = lossless()
        smooth = lossless(section_variation=True)
        for f in (150.0, 500.0):
            assert smooth.input_impedance(bore, f) == pytest.approx(plain.input_impedance(bore, f), rel=1e-9)

    def test_section_variation_on_cone_is_finite(self):
        model = TransmissionLineModel(section_variation=True)
        z = model.input_impedance(Bore([Segment(5, 20, 800)]), 300.0)
        assert cmath.isfinite(z)
        assert z.real > 0

    def test_spectrum(self):
        model = TransmissionLineModel()
        bore = Bore([Segment(8, 8, 100), Segment(8, 40, 900)])
        frequencies = np.array([50.0, 100.0, 150.0])
        spectrum = model.get_impedance_spectrum(bore, frequencies)
        assert spectrum.dtype == np.complex128
        assert len(spectrum) == 3
        assert spectrum[1] == model.input_impedance(bore, 100.0)

    def test_transfer_chain(self):
        model = TransmissionLineModel()
        bore = Bore([Segment(8, 8, 100), Segment(8, 40, 900)])
        chain = model.transfer_chain(bore, 200.0)
        assert len(chain.matrices) == len(chain.impedances) == 2
        assert chain.impedances[0] == model.input_impedance(bore, 200.0)
        assert chain.impedances[1] == pytest.approx(transform_impedance(chain.matrices[1], chain.load))

    def test_non_positive_frequency(self):
        with pytest.raises(MensurValueError):
            TransmissionLineModel().input_impedance(Bore([Segment(5, 5, 10)]), 0)

    def test_degenerate_segment_raises(self):
        class Degenerate:
            termination = "open"
            segments = [Segment(5, 5, 0)]

            def __iter__(self):
                return iter(self.segments)

            def bell_radius(self):
                return 5

        with pytest.raises(StructureError):
            TransmissionLineModel().input_impedance(Degenerate(), 100.0)

    def test_results_are_finite(self):
        model = TransmissionLineModel(radiation=NONE, wall_loss=False)
        bore = Bore([Segment(10, 10, 1000)])
        # the lossless quarter-wave resonance is the hardest case
        z = model.input_impedance(bore, model.air.c0 / 4 * 1.0001)
        assert cmath.isfinite(z)


class TestPressureDistribution:
    """Tests for TransmissionLineModel.pressure_distribution."""

    def test_starts_at_60_db(self):
        model = TransmissionLineModel()
        x, spl = model.pressure_distribution(Bore([Segment(8, 8, 100), Segment(8, 40, 900)]), 200.0)
        assert x[0] == 0
        assert x[-1] == pytest.approx(1000)
        assert spl[0] == pytest.approx(60)
        assert len(x) == len(spl) == 3

    def test_step_refines(self):
        model = TransmissionLineModel()
        x, spl = model.pressure_distribution(Bore([Segment(8, 8, 1000)]), 200.0, step=10)
        assert len(x) == 101
        assert np.all(np.diff(x) > 0)

    def test_closed_cylinder_standing_wave(self):
        # lossless closed pipe: |p(x)| = p0 * |cos(k(L-x)) / cos(kL)|
        model = lossless(radiation=NONE)
        bore = Bore([Segment(10, 10, 1000, terminal=CLOSED)])
        f = 100.0
        x, spl = model.pressure_distribution(bore, f, step=100)
        k = 2 * math.pi * f / model.air.c0
        expected = 0.02 * np.abs(np.cos(k * (1.0 - x / 1000)) / np.cos(k * 1.0))
        assert spl == pytest.approx(20 * np.log10(expected / 2e-5), abs=1e-6)
