"""
Resonance analysis of impedance spectra.

The peaks of the input impedance magnitude are the resonances of the bore.
They are listed with the nearest equal-tempered note and the deviation from it
in cents.
"""

import numpy as np
import pandas as pd
from scipy.signal import argrelextrema

NOTE_NAMES = ["A", "A#", "B", "C", "C#", "D", "D#", "E", "F", "F#", "G", "G#"]


def freq_to_note(freq, base_freq=440):
    """Convert a frequency in Hz to a note number relative to base_freq (base_freq -> 0)."""
    return 12 * (np.log2(freq) - np.log2(base_freq))


def note_to_freq(note, base_freq=440):
    return base_freq * np.power(2, note / 12)


def freq_to_note_and_cent(freq, base_freq=440):
    """Return (note_number, cent_diff): the nearest note and the deviation of freq from it in cents."""
    note = freq_to_note(freq, base_freq=base_freq)
    nearest = int(np.round(note))
    return nearest, float((note - nearest) * 100)


def note_name(note):
    """Name of a note number, 0 -> A4."""
    note = int(np.round(note)) + 48
    octave = (note - 3) // 12 + 1
    return NOTE_NAMES[note % 12] + str(octave)


def get_resonances(frequencies, magnitude_db, threshold_db=None, base_freq=440):
    """
    List the local maxima of an impedance magnitude spectrum.

    Args:
        frequencies: 1D array of frequencies in Hz.
        magnitude_db: Impedance magnitude in dB at each frequency.
        threshold_db: Only peaks at or above this level are listed.
        base_freq: Tuning reference for the note names (default 440).

    Returns:
        pd.DataFrame: Columns freq, magnitude_db, note_name, cent_diff and
            rel_mag (level relative to the strongest listed peak in dB).
    """
    frequencies = np.asarray(frequencies, dtype=np.float64)
    magnitude_db = np.asarray(magnitude_db, dtype=np.float64)

    extrema = argrelextrema(magnitude_db, np.greater)[0]
    if threshold_db is not None:
        extrema = extrema[magnitude_db[extrema] >= threshold_db]

    peak_freqs = frequencies[extrema]
    note_and_cent = [freq_to_note_and_cent(f, base_freq=base_freq) for f in peak_freqs]

    peaks = pd.DataFrame({
        "freq": peak_freqs,
        "magnitude_db": magnitude_db[extrema],
        "note_name": [note_name(n[0]) for n in note_and_cent],
        "cent_diff": [n[1] for n in note_and_cent],
    })
    if len(peaks) > 0:
        peaks["rel_mag"] = peaks.magnitude_db - peaks.magnitude_db.max()
    else:
        peaks["rel_mag"] = pd.Series(dtype=np.float64)
    return peaks
