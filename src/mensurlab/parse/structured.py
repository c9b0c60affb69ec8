"""
Parser of the structured bore format (.xmen).

Example::

    # variables may appear anywhere and are bound in file order
    r_pipe = 11.5 / 2

    MAIN
    8, 8, 100
    BRANCH, valve1, 0     # ratio > 0.5 routes through the valve loop
    r_pipe, r_pipe, 30    # bypass
    MERGE, valve1
    r_pipe, 60, 400, bell
    OPEN_END
    END_MAIN

    GROUP, valve1
    r_pipe, r_pipe, 120
    END_GROUP

The parser builds a Document (an arena of blocks addressed by index) and
checks the block structure. Linearising it into a Bore is done by
mensurlab.parse.topology.
"""

import logging
from collections import namedtuple

from ..bore import Segment
from ..errors import ExpressionError, MensurSyntaxError, MensurValueError, StructureError
from .canonical import TERMINATORS, split_fields, strip_comment
from .expression import VariableTable, is_variable_definition

MAIN = "main"
GROUP = "group"

INSERT = "insert"
SPLIT = "split"
JOIN = "join"

UNSUPPORTED = ("SPLIT", "TONEHOLE")

Marker = namedtuple("Marker", ["kind", "name", "ratio", "line"])


class Block:
    """MAIN (name None) or a named GROUP: ordered segments and markers plus a terminal tag."""

    def __init__(self, name, kind, line):
        self.name = name
        self.kind = kind
        self.line = line
        self.entries = []
        self.terminal = None
        self.closed = False

    @property
    def label(self):
        return "MAIN" if self.kind == MAIN else self.name

    def __repr__(self):
        return f"Block({self.label}, {len(self.entries)} entries, {self.terminal})"


class Document:
    """
    Parsed structured file.

    Attributes:
        blocks: All blocks in file order, addressed by index.
        main: Index of the MAIN block.
        groups: Group name to block index.
        pairings: (block_index, split_entry_index, join_entry_index, name) of each BRANCH/MERGE pair.
        variables: The VariableTable after the whole file was read.
    """

    def __init__(self):
        self.blocks = []
        self.main = None
        self.groups = {}
        self.pairings = []
        self.variables = None

    def add_block(self, block):
        self.blocks.append(block)
        return len(self.blocks) - 1

    def block(self, index):
        return self.blocks[index]

    def branch_names(self):
        names = set()
        for block in self.blocks:
            for entry in block.entries:
                if isinstance(entry, Marker) and entry.kind == SPLIT:
                    names.add(entry.name)
        return names


class _ParseContext:
    """Mutable parse state: variables, the open block and its unmatched BRANCH markers."""

    def __init__(self):
        self.variables = VariableTable()
        self.document = Document()
        self.current = None
        self.open_branches = []
        self.line_number = 0

    def block(self):
        return self.document.block(self.current)


def _require_block(ctx, what):
    if ctx.current is None:
        raise StructureError(f"line {ctx.line_number}: {what} outside of MAIN/GROUP")
    block = ctx.block()
    if block.terminal is not None:
        raise StructureError(f"line {ctx.line_number}: {what} after the terminator of {block.label}")
    return block


def _value(ctx, field):
    try:
        return ctx.variables.value(field)
    except ExpressionError as e:
        raise ExpressionError(f"line {ctx.line_number}: {e}") from e


def _start_block(ctx, keyword, fields):
    if ctx.current is not None:
        raise StructureError(
            f"line {ctx.line_number}: {keyword} inside {ctx.block().label}, blocks cannot be nested")
    document = ctx.document

    if keyword == "MAIN":
        if document.main is not None:
            raise StructureError("Multiple MAIN definitions found")
        block = Block(None, MAIN, ctx.line_number)
        ctx.current = document.add_block(block)
        document.main = ctx.current
        return

    if len(fields) < 2 or len(fields[1]) == 0:
        raise MensurSyntaxError("GROUP needs a name", ctx.line_number)
    name = fields[1]
    if name in document.groups:
        raise StructureError(f"Duplicate GROUP name: {name}")
    ctx.current = document.add_block(Block(name, GROUP, ctx.line_number))
    document.groups[name] = ctx.current


def _end_block(ctx, keyword):
    expected = "END_MAIN" if ctx.current is not None and ctx.block().kind == MAIN else "END_GROUP"
    if ctx.current is None or keyword != expected:
        raise StructureError(f"line {ctx.line_number}: {keyword} without matching start")
    if len(ctx.open_branches) > 0:
        _, name = ctx.open_branches[-1]
        raise StructureError(f"Cannot find joining point for {name}")
    ctx.block().closed = True
    ctx.current = None


def _add_marker(ctx, keyword, fields):
    block = _require_block(ctx, keyword)
    if len(fields) < 2 or len(fields[1]) == 0:
        raise MensurSyntaxError(f"{keyword} needs a name", ctx.line_number)
    name = fields[1]

    if keyword == "INSERT":
        if len(fields) > 2:
            raise MensurSyntaxError("INSERT takes only a name", ctx.line_number)
        block.entries.append(Marker(INSERT, name, 0.0, ctx.line_number))
        return

    ratio = _value(ctx, fields[2]) if len(fields) > 2 and len(fields[2]) > 0 else 0.0
    if not 0 <= ratio <= 1:
        raise MensurValueError(f"line {ctx.line_number}: {keyword} ratio must be within [0, 1], got {ratio}")

    if keyword == "BRANCH":
        block.entries.append(Marker(SPLIT, name, ratio, ctx.line_number))
        ctx.open_branches.append((len(block.entries) - 1, name))
        return

    # MERGE closes the innermost open BRANCH
    if len(ctx.open_branches) == 0 or all(n != name for _, n in ctx.open_branches):
        raise StructureError(f"MERGE without matching BRANCH: {name}")
    split_index, open_name = ctx.open_branches[-1]
    if open_name != name:
        raise StructureError(
            f"line {ctx.line_number}: MERGE of {name} crosses the still open BRANCH {open_name}")
    ctx.open_branches.pop()
    block.entries.append(Marker(JOIN, name, ratio, ctx.line_number))
    ctx.document.pairings.append((ctx.current, split_index, len(block.entries) - 1, name))


def _add_segment(ctx, line, fields):
    block = _require_block(ctx, "segment")
    if len(fields) < 3:
        raise MensurSyntaxError(f"expected front, back, length[, comment], got \"{', '.join(fields)}\"",
                                ctx.line_number)
    front = _value(ctx, fields[0])
    back = _value(ctx, fields[1])
    length = _value(ctx, fields[2])
    comment = line.split(",", 3)[3].strip() if len(fields) > 3 else ""
    try:
        block.entries.append(Segment(front, back, length, comment))
    except MensurValueError as e:
        raise MensurValueError(f"line {ctx.line_number}: {e}") from e


def _parse_line(ctx, line):
    if is_variable_definition(line):
        name, expr = line.split("=", 1)
        try:
            ctx.variables.bind(name, expr)
        except ExpressionError as e:
            raise ExpressionError(f"line {ctx.line_number}: {e}") from e
        return

    fields = split_fields(line)
    keyword = fields[0].upper()

    if keyword in ("MAIN", "GROUP"):
        _start_block(ctx, keyword, fields)
    elif keyword in ("END_MAIN", "END_GROUP"):
        _end_block(ctx, keyword)
    elif keyword in ("INSERT", "BRANCH", "MERGE"):
        _add_marker(ctx, keyword, fields)
    elif keyword in TERMINATORS:
        block = _require_block(ctx, keyword)
        block.terminal = TERMINATORS[keyword]
    elif keyword in UNSUPPORTED:
        raise StructureError(
            f"line {ctx.line_number}: {keyword} (open side branch) is not supported, "
            "a bore has exactly one radiating end")
    else:
        _add_segment(ctx, line, fields)


def parse_structured(text):
    """
    Parse structured bore text into a Document.

    All variables are evaluated and the block structure is validated before
    the document is returned.

    Raises:
        MensurSyntaxError: Unrecognised line shape.
        ExpressionError: Invalid formula, unknown identifier or duplicate variable.
        StructureError: Invalid block or BRANCH/MERGE structure.
    """
    ctx = _ParseContext()
    for line_number, raw in enumerate(text.splitlines(), start=1):
        ctx.line_number = line_number
        line = strip_comment(raw)
        if len(line) > 0:
            _parse_line(ctx, line)

    document = ctx.document
    if ctx.current is not None:
        block = ctx.block()
        if len(ctx.open_branches) > 0:
            raise StructureError(f"Cannot find joining point for {ctx.open_branches[-1][1]}")
        raise StructureError(f"{block.label} starting at line {block.line} is not terminated")
    if document.main is None:
        raise StructureError("No MAIN definition found")

    for block in document.blocks:
        for entry in block.entries:
            if isinstance(entry, Marker) and entry.kind in (INSERT, SPLIT) and entry.name not in document.groups:
                raise StructureError(f"Undefined reference: {entry.name}")

    document.variables = ctx.variables
    logging.debug(f"parsed {len(document.blocks)} blocks, {len(document.groups)} groups, "
                  f"{len(document.pairings)} branches, {len(ctx.variables)} variables")
    return document


def read_structured(path):
    with open(path) as f:
        return parse_structured(f.read())
