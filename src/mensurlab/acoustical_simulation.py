"""
Acoustical simulation entry point for mensurlab.

This module runs the transmission-line model of a bore over a frequency sweep
and provides the file level entry points: compute the impedance spectrum of a
bore file, dump its canonical segments and convert a structured file into the
canonical format. The simulation model itself lives in `mensurlab.sim.tlm_python`.
"""

import logging
import os
from collections import namedtuple
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pandas as pd
from tqdm import tqdm

from .bore import Bore
from .errors import MensurValueError, StructureError, SweepCancelled
from .parse.canonical import write_canonical
from .parse.formats import MensurFormat, detect_format, read_bore
from .parse.topology import dump_segments
from .sim.radiation import PIPE
from .sim.tlm_python import TransmissionLineModel

# |Z| of 0 dB
REFERENCE_IMPEDANCE = 1.0

ImpedanceSample = namedtuple("ImpedanceSample", ["frequency", "impedance", "magnitude_db"])


class SweepResult:
    """
    Impedance spectrum of a bore: four equal-length arrays ordered by ascending frequency.

    Attributes:
        frequencies: Frequencies in Hz.
        real: Real part of the input impedance in Pa·s/m³.
        imag: Imaginary part of the input impedance in Pa·s/m³.
        magnitude_db: 20*log10(|Z| / REFERENCE_IMPEDANCE).
    """

    def __init__(self, frequencies, impedance):
        impedance = np.asarray(impedance, dtype=np.complex128)
        self.frequencies = np.asarray(frequencies, dtype=np.float64)
        self.real = impedance.real.copy()
        self.imag = impedance.imag.copy()
        self.magnitude_db = magnitude_db(impedance)

    @property
    def impedance(self):
        return self.real + 1j * self.imag

    def __len__(self):
        return len(self.frequencies)

    def samples(self):
        return [ImpedanceSample(f, complex(r, i), m) for f, r, i, m
                in zip(self.frequencies, self.real, self.imag, self.magnitude_db)]

    def as_tuple(self):
        return self.frequencies, self.real, self.imag, self.magnitude_db

    def to_dataframe(self):
        return pd.DataFrame({
            "freq": self.frequencies,
            "imp.real": self.real,
            "imp.imag": self.imag,
            "mag": self.magnitude_db,
        })

    def write(self, outfile):
        """Write the spectrum as CSV with the header freq,imp.real,imp.imag,mag."""
        self.to_dataframe().to_csv(outfile, index=False, float_format="%.10g")


def magnitude_db(impedance):
    magnitude = np.abs(np.asarray(impedance))
    if np.any(magnitude == 0):
        raise StructureError("impedance magnitude of zero cannot be expressed in dB")
    return 20 * np.log10(magnitude / REFERENCE_IMPEDANCE)


def get_sweep_frequencies(max_frequency: float, frequency_step: float, num_points: int = 0):
    """
    Frequencies of a linear sweep.

    Args:
        max_frequency: Last frequency of the sweep in Hz (inclusive).
        frequency_step: Spacing in Hz; the sweep is step, 2*step, ... <= max_frequency.
        num_points: If > 0, overrides the step: exactly num_points equally spaced
            frequencies, the last one equal to max_frequency.

    Returns:
        np.ndarray: Ascending frequencies in Hz.

    Raises:
        MensurValueError: Non-positive maximum, step or a negative number of points.
    """
    if not np.isfinite(max_frequency) or max_frequency <= 0:
        raise MensurValueError(f"maximum frequency must be positive, got {max_frequency}")
    if num_points < 0 or int(num_points) != num_points:
        raise MensurValueError(f"number of points must be a non-negative integer, got {num_points}")

    if num_points > 0:
        num_points = int(num_points)
        frequencies = max_frequency / num_points * np.arange(1, num_points + 1)
        frequencies[-1] = max_frequency
        return frequencies

    if not np.isfinite(frequency_step) or frequency_step <= 0:
        raise MensurValueError(f"frequency step must be positive, got {frequency_step}")
    n = int(np.floor(max_frequency / frequency_step + 1e-9))
    if n == 0:
        raise MensurValueError(
            f"frequency step {frequency_step} Hz is larger than the maximum frequency {max_frequency} Hz")
    return frequency_step * np.arange(1, n + 1)


def acoustical_simulation(
    bore: Bore,
    frequencies: np.ndarray,
    temperature: float = 24.0,
    radiation: str = PIPE,
    wall_loss: bool = True,
    section_variation: bool = False,
    num_workers: int = 1,
    progress: bool = False,
    cancel_event=None,
):
    """
    Compute the acoustic input impedance of a bore at the given frequencies.

    Every frequency is evaluated independently on the same immutable bore, so
    the sweep can be spread over a thread pool. The order of the result follows
    `frequencies`.

    Args:
        bore: Resolved bore.
        frequencies: 1D array of frequencies in Hz.
        temperature: Air temperature in °C.
        radiation: Radiation mode of the open end, "none", "pipe" or "baffle".
        wall_loss: Apply visco-thermal wall losses.
        section_variation: Use the area-variation two-port on subdivided sections.
        num_workers: Number of worker threads, 1 evaluates in the calling thread.
        progress: Show a tqdm progress bar.
        cancel_event: Optional threading.Event; checked once per frequency.

    Returns:
        SweepResult

    Raises:
        SweepCancelled: cancel_event was set during the sweep.

    Example:
        >>> from mensurlab import Bore, Segment, acoustical_simulation
        >>> import numpy as np
        >>> bore = Bore([Segment(10, 10, 1000)])
        >>> result = acoustical_simulation(bore, np.array([100.0, 200.0]))
        >>> len(result) == 2
        True
    """
    frequencies = np.asarray(frequencies, dtype=np.float64)
    model = TransmissionLineModel(
        temperature=temperature,
        radiation=radiation,
        wall_loss=wall_loss,
        section_variation=section_variation,
    )

    def evaluate(frequency):
        if cancel_event is not None and cancel_event.is_set():
            raise SweepCancelled(f"sweep cancelled before {frequency} Hz")
        return model.input_impedance(bore, frequency)

    if num_workers is None or num_workers < 1:
        raise MensurValueError(f"number of workers must be at least 1, got {num_workers}")

    if num_workers == 1:
        iterator = map(evaluate, frequencies)
        if progress:
            iterator = tqdm(iterator, total=len(frequencies), unit="Hz")
        impedance = list(iterator)
    else:
        logging.debug(f"sweep of {len(frequencies)} frequencies on {num_workers} threads")
        with ThreadPoolExecutor(max_workers=num_workers) as pool:
            iterator = pool.map(evaluate, frequencies)
            if progress:
                iterator = tqdm(iterator, total=len(frequencies), unit="Hz")
            impedance = list(iterator)

    return SweepResult(frequencies, impedance)


def compute_impedance(
    path,
    max_frequency=2000.0,
    frequency_step=2.5,
    num_points=0,
    temperature=24.0,
    radiation=PIPE,
    wall_loss=True,
    section_variation=False,
    active_branches=None,
    num_workers=1,
):
    """
    Compute the input impedance spectrum of a bore file (.men or .xmen).

    The file is parsed and resolved completely before the first frequency is
    evaluated.

    Returns:
        tuple: (frequencies, real, imag, magnitude_db) numpy arrays.
    """
    bore = read_bore(path, active_branches=active_branches)
    frequencies = get_sweep_frequencies(max_frequency, frequency_step, num_points)
    logging.info(f"{path}: {len(bore)} segments, {bore.length():.1f} mm, "
                 f"{len(frequencies)} frequencies up to {frequencies[-1]:.1f} Hz")
    result = acoustical_simulation(
        bore,
        frequencies,
        temperature=temperature,
        radiation=radiation,
        wall_loss=wall_loss,
        section_variation=section_variation,
        num_workers=num_workers,
    )
    return result.as_tuple()


def dump_canonical_segments(path, active_branches=None):
    """Return the resolved bore of a file as (front, back, length, comment) tuples."""
    return dump_segments(read_bore(path, active_branches=active_branches))


def convert_structured_to_canonical(input_path, output_path=None, active_branches=None):
    """
    Write the canonical equivalent of a bore file.

    Args:
        input_path: Structured (or canonical) bore file.
        output_path: Target file, defaults to input_path with suffix .men.

    Returns:
        str: The path written.
    """
    if output_path is None:
        output_path = os.path.splitext(str(input_path))[0] + ".men"
    if os.path.abspath(str(output_path)) == os.path.abspath(str(input_path)):
        raise MensurValueError(f"refusing to overwrite the input file {input_path}")

    fmt = detect_format(input_path)
    if fmt != MensurFormat.STRUCTURED:
        logging.warning(f"{input_path} is already canonical, writing it normalised")
    bore = read_bore(input_path, fmt=fmt, active_branches=active_branches)
    write_canonical(bore, output_path, comment=f"converted from {os.path.basename(str(input_path))}")
    logging.info(f"wrote {len(bore)} segments to {output_path}")
    return str(output_path)
