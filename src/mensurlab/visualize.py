"""
Visualization of bore profiles and impedance spectra.

Provides:
- Bore profile plot (half section) from a Bore
- Impedance spectrum plot of a SweepResult, with resonance markers
"""

import numpy as np
import matplotlib.pyplot as plt

from .analysis import get_resonances


def plot_bore(bore, ax=None, show_stair=True, **kwargs):
    """
    Plot the bore profile: position along the bore (mm) vs radius (mm), mirrored at the axis.

    Args:
        bore: The Bore to draw.
        ax: Matplotlib axes. If None, current axes or new figure is used.
        show_stair: Draw radius steps between segments as vertical stairs.
        **kwargs: Passed to fill_between (e.g. color, label).

    Returns:
        matplotlib axes used.
    """
    if ax is None:
        ax = plt.gca()
    points = bore.to_xy(show_stair=show_stair)
    x = np.array([p[0] for p in points])
    r = np.array([p[1] for p in points])
    ax.fill_between(x, -r, r, **kwargs)
    ax.plot(x, r, color="black", linewidth=0.8)
    ax.plot(x, -r, color="black", linewidth=0.8)
    ax.set_xlabel("Position (mm)")
    ax.set_ylabel("Radius (mm)")
    ax.set_title("Bore profile")
    for spine in ("top", "right"):
        ax.spines[spine].set_visible(False)
    return ax


def plot_impedance_spectrum(result, ax=None, show_resonances=True, threshold_db=None, **kwargs):
    """
    Plot the impedance magnitude (dB) of a sweep.

    Args:
        result: SweepResult of acoustical_simulation.
        ax: Matplotlib axes. If None, current axes or new figure is used.
        show_resonances: Mark the impedance peaks.
        threshold_db: Only mark peaks at or above this level.
        **kwargs: Passed to ax.plot (e.g. color, label).

    Returns:
        matplotlib axes used.
    """
    if ax is None:
        ax = plt.gca()
    ax.plot(result.frequencies, result.magnitude_db, **kwargs)
    if show_resonances and len(result) > 2:
        peaks = get_resonances(result.frequencies, result.magnitude_db, threshold_db=threshold_db)
        ax.scatter(peaks.freq, peaks.magnitude_db, color="red", s=10, zorder=3)
    ax.set_xlabel("Frequency (Hz)")
    ax.set_ylabel("|Z| (dB)")
    ax.set_title("Input impedance")
    ax.grid(True, alpha=0.3)
    return ax
