"""
Detection of the bore file dialect and the single entry point for reading a bore.
"""

import logging
import os
import re
from enum import Enum

from ..errors import StructureError
from .canonical import parse_canonical
from .structured import parse_structured
from .topology import resolve


class MensurFormat(Enum):
    CANONICAL = "canonical"
    STRUCTURED = "structured"


SUFFIXES = {
    ".men": MensurFormat.CANONICAL,
    ".xmen": MensurFormat.STRUCTURED,
}

_MAIN_LINE = re.compile(r"^\s*MAIN\s*(#.*)?$", re.IGNORECASE | re.MULTILINE)


def detect_format(path, text=None):
    """
    Decide which dialect a bore file is written in.

    The suffix decides (.xmen structured, .men canonical). For any other
    suffix the text is inspected: a MAIN line means structured.
    """
    suffix = os.path.splitext(str(path))[1].lower()
    if suffix in SUFFIXES:
        return SUFFIXES[suffix]
    if text is None:
        with open(path) as f:
            text = f.read()
    if _MAIN_LINE.search(text) is not None:
        return MensurFormat.STRUCTURED
    return MensurFormat.CANONICAL


def parse_bore(text, fmt, active_branches=None):
    """Parse bore text of a known format into a Bore."""
    if fmt == MensurFormat.STRUCTURED:
        return resolve(parse_structured(text), active_branches=active_branches)

    bore = parse_canonical(text)
    if active_branches:
        raise StructureError(
            f"Unknown branch: {', '.join(sorted(active_branches))} (canonical bores have no branches)")
    return bore


def read_bore(path, fmt=None, active_branches=None):
    """
    Read a bore file of either dialect and return the resolved Bore.

    Args:
        path: File to read.
        fmt: MensurFormat, detected from the file when None.
        active_branches: Valve loops to route through (structured files only).
    """
    with open(path) as f:
        text = f.read()
    if fmt is None:
        fmt = detect_format(path, text)
    logging.debug(f"reading {path} as {fmt.value} bore")
    return parse_bore(text, fmt, active_branches=active_branches)
