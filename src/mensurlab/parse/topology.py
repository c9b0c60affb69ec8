"""
Linearisation of a structured Document into a canonical Bore.

Every BRANCH (split) and MERGE (join) marker gets a side reference naming the
group of the valve loop, the entry position the reference applies to and the
partner marker. The resolver then walks MAIN depth first, inlines INSERTed
groups and, at each BRANCH, keeps either the bypass (the entries between BRANCH
and MERGE) or the loop group.
"""

import logging
from collections import namedtuple

from ..bore import Bore
from ..errors import StructureError
from .structured import INSERT, JOIN, MAIN, SPLIT, Marker

SideRef = namedtuple("SideRef", ["branch_block", "insert_at", "partner"])

# a BRANCH with a ratio above this routes through its loop
ROUTE_THRESHOLD = 0.5


def _attach_side(document, side_table, block_index, entry_index, partner_index, name):
    """Attach a side reference to one SPLIT or JOIN marker."""
    if name not in document.groups:
        raise StructureError(f"Undefined reference: {name}")
    block = document.block(block_index)
    if not 0 <= entry_index < len(block.entries):
        raise StructureError(f"marker {name} at entry {entry_index} is outside {block.label}")
    insert_at = entry_index + 1 if entry_index < partner_index else entry_index
    side_table[(block_index, entry_index)] = SideRef(
        document.groups[name], insert_at, (block_index, partner_index))


def attach_side_references(document):
    """Return the side table (block_index, entry_index) -> SideRef for all SPLIT and JOIN markers."""
    side_table = {}
    for block_index, split_index, join_index, name in document.pairings:
        _attach_side(document, side_table, block_index, split_index, join_index, name)
        _attach_side(document, side_table, block_index, join_index, split_index, name)

    for block_index, block in enumerate(document.blocks):
        for entry_index, entry in enumerate(block.entries):
            if isinstance(entry, Marker) and entry.kind in (SPLIT, JOIN):
                if (block_index, entry_index) not in side_table:
                    raise StructureError(
                        f"Unresolved side reference for {entry.kind} marker {entry.name} "
                        f"(line {entry.line})")
    return side_table


def check_cycles(document):
    """
    Reject a group that contains itself through INSERT or BRANCH references.

    Every block is visited, also groups behind a bypassed BRANCH and groups
    nothing refers to, so the outcome does not depend on the chosen route.
    """
    visiting, done = 1, 2
    state = {}

    def visit(index, path):
        state[index] = visiting
        for entry in document.block(index).entries:
            if not isinstance(entry, Marker) or entry.kind not in (INSERT, SPLIT):
                continue
            target = document.groups[entry.name]
            if state.get(target) == visiting:
                names = [document.block(i).label for i in path[path.index(target):]]
                names.append(document.block(target).label)
                raise StructureError(f"Cyclic reference: {' -> '.join(names)}")
            if target not in state:
                visit(target, path + [target])
        state[index] = done

    for index in range(len(document.blocks)):
        if index not in state:
            visit(index, [index])


class _Resolver:

    def __init__(self, document, side_table, active_branches):
        self.document = document
        self.side_table = side_table
        self.active_branches = active_branches

    def takes_branch(self, marker):
        if self.active_branches is not None:
            return marker.name in self.active_branches
        return marker.ratio > ROUTE_THRESHOLD

    def linearize(self, block_index):
        block = self.document.block(block_index)

        segments = []
        i = 0
        while i < len(block.entries):
            entry = block.entries[i]

            if not isinstance(entry, Marker):
                if entry.length == 0:
                    logging.debug(f"{block.label}: dropped zero length segment")
                elif entry.front == 0 or entry.back == 0:
                    raise StructureError(
                        f"{block.label}: segment of length {entry.length} has zero radius")
                else:
                    segments.append(entry)

            elif entry.kind == INSERT:
                segments.extend(self.linearize(self.document.groups[entry.name]))

            elif entry.kind == SPLIT:
                side = self.side_table[(block_index, i)]
                partner = self.side_table[side.partner]
                if not 0 <= side.insert_at <= partner.insert_at <= len(block.entries):
                    raise StructureError(
                        f"insertion index {side.insert_at} of {entry.name} is outside {block.label}")
                if self.takes_branch(entry):
                    logging.debug(f"routing through branch {entry.name}")
                    segments.extend(self.linearize(side.branch_block))
                    # continue after the MERGE marker
                    i = side.partner[1] + 1
                    continue

            i += 1

        if block.kind != MAIN and block.terminal is not None:
            logging.debug(f"terminator of group {block.name} ignored when inlined")
        return segments


def resolve(document, active_branches=None):
    """
    Resolve a Document into a Bore.

    Args:
        document: Parsed structured file.
        active_branches: Names of the valve loops to route through. None keeps
            the routing given by the BRANCH ratios of the file.

    Raises:
        StructureError: Unresolved side reference, cyclic group reference,
            unknown branch name or an empty resulting bore.
    """
    check_cycles(document)
    if active_branches is not None:
        active_branches = set(active_branches)
        unknown = active_branches - document.branch_names()
        if len(unknown) > 0:
            raise StructureError(f"Unknown branch: {', '.join(sorted(unknown))}")

    side_table = attach_side_references(document)
    resolver = _Resolver(document, side_table, active_branches)
    segments = resolver.linearize(document.main)

    if len(segments) == 0:
        raise StructureError("resolved bore is empty")

    main = document.block(document.main)
    if main.terminal is None:
        logging.warning("MAIN has no OPEN_END/CLOSED_END terminator, assuming an open end")
    else:
        segments[-1] = segments[-1].with_terminal(main.terminal)
    return Bore(segments)


def dump_segments(bore):
    """The bore as a list of (front, back, length, comment) tuples."""
    return bore.to_tuples()
