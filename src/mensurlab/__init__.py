"""
mensurlab: acoustic input impedance of wind instrument bores.

Import from the root for the main API, e.g.::

    from mensurlab import compute_impedance, read_bore, acoustical_simulation

Submodules (for more specific imports):

- **acoustical_simulation** – frequency sweep, compute_impedance, file conversion
- **bore** – Segment and Bore (bore geometry)
- **parse** – canonical (.men) and structured (.xmen) readers, topology resolution
- **sim** – air properties, wall loss, radiation and the transmission-line model
- **analysis** – resonances and note names
- **visualize** – bore and spectrum plots
- **app** – application shell, config, logging, command line
"""

from .errors import (
    MensurError,
    MensurSyntaxError,
    ExpressionError,
    StructureError,
    MensurValueError,
    SweepCancelled,
)
from .bore import Segment, Bore, OPEN, CLOSED
from .parse import (
    VariableTable,
    evaluate_expression,
    is_variable_definition,
    parse_canonical,
    write_canonical,
    parse_structured,
    resolve,
    dump_segments,
    MensurFormat,
    detect_format,
    read_bore,
)
from .sim import (
    AirProperties,
    WallLossModel,
    RadiationModel,
    TransmissionLineModel,
    NONE,
    PIPE,
    BAFFLE,
)
from .acoustical_simulation import (
    acoustical_simulation,
    compute_impedance,
    dump_canonical_segments,
    convert_structured_to_canonical,
    get_sweep_frequencies,
    SweepResult,
    ImpedanceSample,
)
from .analysis import get_resonances, freq_to_note_and_cent, note_name
from .visualize import plot_bore, plot_impedance_spectrum

__all__ = [
    "MensurError",
    "MensurSyntaxError",
    "ExpressionError",
    "StructureError",
    "MensurValueError",
    "SweepCancelled",
    "Segment",
    "Bore",
    "OPEN",
    "CLOSED",
    "VariableTable",
    "evaluate_expression",
    "is_variable_definition",
    "parse_canonical",
    "write_canonical",
    "parse_structured",
    "resolve",
    "dump_segments",
    "MensurFormat",
    "detect_format",
    "read_bore",
    "AirProperties",
    "WallLossModel",
    "RadiationModel",
    "TransmissionLineModel",
    "NONE",
    "PIPE",
    "BAFFLE",
    "acoustical_simulation",
    "compute_impedance",
    "dump_canonical_segments",
    "convert_structured_to_canonical",
    "get_sweep_frequencies",
    "SweepResult",
    "ImpedanceSample",
    "get_resonances",
    "freq_to_note_and_cent",
    "note_name",
    "plot_bore",
    "plot_impedance_spectrum",
]
