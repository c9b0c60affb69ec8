"""
Bore file parsers: canonical (.men) and structured (.xmen) formats.
"""

from .expression import VariableTable, evaluate_expression, is_variable_definition
from .canonical import parse_canonical, read_canonical, write_canonical
from .structured import Block, Document, Marker, parse_structured, read_structured
from .topology import SideRef, attach_side_references, check_cycles, dump_segments, resolve
from .formats import MensurFormat, detect_format, parse_bore, read_bore
