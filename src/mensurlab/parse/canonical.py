"""
Reader and writer of the canonical bore format (.men).

One segment per line::

    # comment
    front, back, length[, comment]
    ...
    OPEN_END            (or CLOSED_END)

All numbers are plain literals in mm (radii and lengths). The legacy
terminator lines "r, 0, 0" (open) and "0, 0, 0" (closed) are understood too.
"""

import io
import logging

from ..bore import CLOSED, OPEN, Bore, Segment
from ..errors import MensurSyntaxError, StructureError
from .expression import is_numeric_literal

TERMINATORS = {"OPEN_END": OPEN, "CLOSED_END": CLOSED}


def strip_comment(line):
    i = line.find("#")
    if i >= 0:
        line = line[:i]
    return line.strip()


def split_fields(line):
    return [f.strip() for f in line.split(",")]


def _read_number(field, line_number):
    if not is_numeric_literal(field):
        raise MensurSyntaxError(f"\"{field}\" is not a number", line_number)
    return float(field)


def parse_canonical(text):
    """
    Parse canonical bore text into a Bore.

    Raises:
        MensurSyntaxError: A line is neither a terminator nor a data line.
        StructureError: A segment of positive length has zero radius, or no segment is left.
    """
    segments = []
    terminal = None
    for line_number, raw in enumerate(text.splitlines(), start=1):
        line = strip_comment(raw)
        if len(line) == 0:
            continue

        if terminal is not None:
            logging.debug(f"line {line_number}: ignored after {terminal} terminator")
            continue

        fields = split_fields(line)
        if fields[0].upper() in TERMINATORS:
            terminal = TERMINATORS[fields[0].upper()]
            continue

        if len(fields) < 3:
            raise MensurSyntaxError(f"expected front, back, length[, comment], got \"{line}\"",
                                    line_number)
        front = _read_number(fields[0], line_number)
        back = _read_number(fields[1], line_number)
        length = _read_number(fields[2], line_number)
        comment = line.split(",", 3)[3].strip() if len(fields) > 3 else ""

        if length == 0:
            if back == 0:
                terminal = CLOSED if front == 0 else OPEN
                continue
            logging.debug(f"line {line_number}: dropped zero length segment")
            continue

        if front == 0 or back == 0:
            raise StructureError(f"line {line_number}: segment of length {length} has zero radius")

        segments.append(Segment(front, back, length, comment))

    if len(segments) == 0:
        raise StructureError("bore file contains no segments")

    if terminal is None:
        logging.warning("bore has no OPEN_END/CLOSED_END terminator, assuming an open end")
        terminal = OPEN

    segments[-1] = segments[-1].with_terminal(terminal)
    return Bore(segments)


def read_canonical(path):
    with open(path) as f:
        return parse_canonical(f.read())


def format_canonical(bore, comment=None):
    """Return the canonical text of a bore. Numbers are written with repr so they read back exactly."""
    out = io.StringIO()
    if comment is not None:
        for line in str(comment).splitlines():
            out.write(f"# {line}\n")
    for s in bore:
        fields = [repr(s.front), repr(s.back), repr(s.length)]
        if len(s.comment) > 0:
            fields.append(s.comment)
        out.write(", ".join(fields) + "\n")
    out.write("CLOSED_END\n" if bore.termination == CLOSED else "OPEN_END\n")
    return out.getvalue()


def write_canonical(bore, outfile, comment=None):
    """Write a bore to a path or to an open text stream."""
    text = format_canonical(bore, comment=comment)
    if hasattr(outfile, "write"):
        outfile.write(text)
    else:
        with open(outfile, "w") as f:
            f.write(text)
