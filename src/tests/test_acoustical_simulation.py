"""
Pytest unit tests for mensurlab.acoustical_simulation.
"""

import os
import shutil
import tempfile
import threading
import pytest
import numpy as np

from mensurlab.bore import Bore, Segment
from mensurlab.errors import MensurValueError, StructureError, SweepCancelled
from mensurlab.parse.canonical import read_canonical
from mensurlab.parse.formats import read_bore
from mensurlab.acoustical_simulation import (
    SweepResult,
    acoustical_simulation,
    compute_impedance,
    convert_structured_to_canonical,
    dump_canonical_segments,
    get_sweep_frequencies,
    magnitude_db,
)

DATA = os.path.join(os.path.dirname(__file__), "data")


class TestGetSweepFrequencies:
    """Tests for get_sweep_frequencies."""

    def test_step(self):
        freqs = get_sweep_frequencies(2000, 2.5)
        assert len(freqs) == 800
        assert freqs[0] == 2.5
        assert freqs[-1] == 2000

    def test_step_not_dividing_maximum(self):
        freqs = get_sweep_frequencies(100, 30)
        assert list(freqs) == [30, 60, 90]

    def test_num_points_overrides_step(self):
        freqs = get_sweep_frequencies(2000, 2.5, num_points=100)
        assert len(freqs) == 100
        assert freqs[0] == pytest.approx(20)
        assert freqs[-1] == 2000
        assert np.allclose(np.diff(freqs), 20)

    def test_ascending(self):
        assert np.all(np.diff(get_sweep_frequencies(1000, 7)) > 0)

    def test_invalid_values(self):
        with pytest.raises(MensurValueError):
            get_sweep_frequencies(0, 2.5)
        with pytest.raises(MensurValueError):
            get_sweep_frequencies(2000, 0)
        with pytest.raises(MensurValueError):
            get_sweep_frequencies(2000, -1)
        with pytest.raises(MensurValueError):
            get_sweep_frequencies(2000, 2.5, num_points=-3)
        with pytest.raises(MensurValueError):
            get_sweep_frequencies(100, 200)


class TestSweepResult:
    """Tests for SweepResult and magnitude_db."""

    def test_columns(self):
        result = SweepResult([10.0, 20.0], [3 + 4j, -1j])
        assert list(result.real) == [3, 0]
        assert list(result.imag) == [4, -1]
        assert result.magnitude_db[0] == pytest.approx(20 * np.log10(5))
        assert result.magnitude_db[1] == pytest.approx(0)
        assert len(result) == 2
        assert result.samples()[0].impedance == 3 + 4j

    def test_dataframe(self):
        df = SweepResult([10.0], [1 + 1j]).to_dataframe()
        assert list(df.columns) == ["freq", "imp.real", "imp.imag", "mag"]

    def test_write_header(self):
        result = SweepResult([10.0, 20.0], [3 + 4j, 1j])
        with tempfile.NamedTemporaryFile(suffix=".imp", delete=False, mode="w") as f:
            path = f.name
        try:
            result.write(path)
            with open(path) as fp:
                lines = fp.read().splitlines()
            assert lines[0] == "freq,imp.real,imp.imag,mag"
            assert len(lines) == 3
            assert lines[1].startswith("10,3,4,")
        finally:
            os.unlink(path)

    def test_zero_magnitude_raises(self):
        with pytest.raises(StructureError):
            magnitude_db([0j])


class TestAcousticalSimulation:
    """Tests for acoustical_simulation."""

    bore = Bore([Segment(8, 8, 100), Segment(8, 5, 300), Segment(5, 50, 800)])
    frequencies = np.arange(20.0, 1000.0, 20.0)

    def test_lengths_match(self):
        result = acoustical_simulation(self.bore, self.frequencies)
        assert len(result) == len(self.frequencies)
        assert all(len(a) == len(self.frequencies) for a in result.as_tuple())
        assert np.all(np.isfinite(result.magnitude_db))

    def test_deterministic(self):
        a = acoustical_simulation(self.bore, self.frequencies)
        b = acoustical_simulation(self.bore, self.frequencies)
        assert np.array_equal(a.real, b.real)
        assert np.array_equal(a.imag, b.imag)

    def test_workers_do_not_change_the_result(self):
        serial = acoustical_simulation(self.bore, self.frequencies, num_workers=1)
        parallel = acoustical_simulation(self.bore, self.frequencies, num_workers=4)
        assert np.array_equal(serial.frequencies, parallel.frequencies)
        assert np.array_equal(serial.real, parallel.real)
        assert np.array_equal(serial.imag, parallel.imag)

    def test_progress_bar(self):
        result = acoustical_simulation(self.bore, self.frequencies[:3], progress=True)
        assert len(result) == 3

    def test_cancel(self):
        event = threading.Event()
        event.set()
        with pytest.raises(SweepCancelled):
            acoustical_simulation(self.bore, self.frequencies, cancel_event=event)
        with pytest.raises(SweepCancelled):
            acoustical_simulation(self.bore, self.frequencies, num_workers=2, cancel_event=event)

    def test_invalid_workers(self):
        with pytest.raises(MensurValueError):
            acoustical_simulation(self.bore, self.frequencies, num_workers=0)

    def test_open_cylinder_resonance(self):
        # first impedance peak of a tube with an ideal open end lies at c/4L
        bore = Bore([Segment(10, 10, 1000)])
        frequencies = np.arange(50.0, 150.0, 0.5)
        result = acoustical_simulation(bore, frequencies, radiation="none", wall_loss=False)
        peak = frequencies[np.argmax(result.magnitude_db)]
        assert peak == pytest.approx(345.7 / 4, rel=0.03)


class TestFileEntryPoints:
    """Tests for compute_impedance, dump_canonical_segments and convert_structured_to_canonical."""

    def test_structured_and_canonical_give_same_spectrum(self):
        structured = compute_impedance(os.path.join(DATA, "valve.xmen"), max_frequency=500, frequency_step=10)
        canonical = compute_impedance(os.path.join(DATA, "valve.men"), max_frequency=500, frequency_step=10)
        assert np.array_equal(structured[0], canonical[0])
        for a, b in zip(structured[1:], canonical[1:]):
            assert np.allclose(a, b, rtol=1e-5, atol=1e-8)

    def test_compute_impedance_shape(self):
        freqs, real, imag, mag = compute_impedance(os.path.join(DATA, "simple.men"), max_frequency=200,
                                                   frequency_step=10)
        assert len(freqs) == len(real) == len(imag) == len(mag) == 20

    def test_dump_segments(self):
        segments = dump_canonical_segments(os.path.join(DATA, "valve.xmen"))
        assert segments == read_canonical(os.path.join(DATA, "valve.men")).to_tuples()

    def test_dump_with_branches(self):
        segments = dump_canonical_segments(os.path.join(DATA, "valve.xmen"), active_branches=[])
        assert [s[3] for s in segments].count("bypass") == 1

    def test_convert(self):
        with tempfile.TemporaryDirectory() as tmp:
            source = os.path.join(tmp, "valve.xmen")
            shutil.copy(os.path.join(DATA, "valve.xmen"), source)
            written = convert_structured_to_canonical(source)
            assert written == os.path.join(tmp, "valve.men")
            converted = read_canonical(written)
            resolved = read_bore(source)
            assert converted.to_tuples() == resolved.to_tuples()
            assert converted.termination == resolved.termination
            with open(written) as f:
                assert f.readline().startswith("# converted from valve.xmen")

    def test_convert_refuses_to_overwrite_input(self):
        path = os.path.join(DATA, "valve.xmen")
        with pytest.raises(MensurValueError):
            convert_structured_to_canonical(path, path)
