"""
Bore geometry of a wind instrument for mensurlab.

A bore (the *mensur*) is an ordered list of conical or cylindrical segments
running from the input end (mouthpiece) to the radiating end (bell). Each
segment has a front radius, a back radius and a length, all in mm. The
resolved bore is immutable: parsers build it once and the simulation reads it.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .errors import MensurValueError, StructureError

OPEN = "open"
CLOSED = "closed"


@dataclass(frozen=True)
class Segment:
    """
    Single duct element of the bore.

    Attributes:
        front: Radius at the input side in mm.
        back: Radius at the bell side in mm.
        length: Length along the bore axis in mm.
        comment: Free text label from the bore file.
        terminal: "open" or "closed" on the last segment of a path, else None.
    """

    front: float
    back: float
    length: float
    comment: str = ""
    terminal: Optional[str] = None

    def __post_init__(self):
        for name in ("front", "back", "length"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise MensurValueError(f"segment {name} must be finite, got {value}")
            if value < 0:
                raise MensurValueError(f"segment {name} must not be negative, got {value}")
        if self.terminal not in (None, OPEN, CLOSED):
            raise MensurValueError(f"unknown terminal kind \"{self.terminal}\"")

    def as_tuple(self) -> Tuple[float, float, float, str]:
        return (self.front, self.back, self.length, self.comment)

    def is_degenerate(self) -> bool:
        """True if the radius or the length is exactly zero (a topology artifact)."""
        return self.front == 0 or self.back == 0 or self.length == 0

    def is_cylinder(self) -> bool:
        return self.front == self.back

    def with_terminal(self, terminal):
        return Segment(self.front, self.back, self.length, self.comment, terminal)


class Bore:
    """
    Canonical bore: a marker-free, ordered sequence of segments.

    The last segment carries the termination of the path (open or closed).
    """

    def __init__(self, segments):
        segments = tuple(segments)
        if len(segments) == 0:
            raise StructureError("bore has no segments")
        for i, segment in enumerate(segments):
            if segment.is_degenerate():
                raise StructureError(
                    f"degenerate segment {i} ({segment.front}, {segment.back}, {segment.length}) in bore")
        self._segments = segments

    @property
    def segments(self):
        return self._segments

    @property
    def termination(self):
        """Termination of the radiating end, "open" unless the last segment says "closed"."""
        return self._segments[-1].terminal or OPEN

    def __len__(self):
        return len(self._segments)

    def __iter__(self):
        return iter(self._segments)

    def __getitem__(self, i):
        return self._segments[i]

    def __eq__(self, other):
        if not isinstance(other, Bore):
            return NotImplemented
        return self._segments == other._segments

    def __hash__(self):
        return hash(self._segments)

    def __repr__(self):
        return f"Bore({len(self)} segments, {self.length():.1f} mm, {self.termination})"

    def to_tuples(self) -> List[Tuple[float, float, float, str]]:
        """Return the segments as (front, back, length, comment) tuples."""
        return [s.as_tuple() for s in self._segments]

    def length(self):
        """Total length in mm."""
        return sum(s.length for s in self._segments)

    def input_radius(self):
        return self._segments[0].front

    def bell_radius(self):
        return self._segments[-1].back

    def compute_volume(self):
        """Internal volume in mm³ (sum of conical frustums)."""
        v = 0
        for s in self._segments:
            v += math.pi * s.length / 3 * (s.front**2 + s.front * s.back + s.back**2)
        return v

    def to_xy(self, show_stair=False):
        """
        Profile of the bore as (x, radius, comment) points, x measured from the input end in mm.

        With show_stair, a step between the back radius of a segment and the
        front radius of the next one is drawn as a vertical stair down to the axis.
        """
        points = []
        x = 0.0
        for i, s in enumerate(self._segments):
            points.append((x, s.front, s.comment))
            x += s.length
            if show_stair and i + 1 < len(self._segments) and s.back != self._segments[i + 1].front:
                points.append((x, s.back, "stair"))
                points.append((x, 0.0, "stair"))
        points.append((x, self._segments[-1].back, ""))
        return points

    def divide(self, step):
        """
        Return a new bore where no segment is longer than step (mm).

        Each long segment is sliced from the bell side towards the input, so a
        shorter remainder piece ends up at the input side of the segment.
        """
        if step <= 0:
            raise MensurValueError(f"division step must be positive, got {step}")

        divided = []
        for s in self._segments:
            if s.length <= step:
                divided.append(s)
                continue

            num = int(s.length / step)
            rest = s.length - step * num
            taper = (s.back - s.front) / s.length

            # positions of the cut points, measured from the front of the segment
            cuts = [0.0]
            if rest > 1e-9 * s.length:
                cuts.append(rest)
            else:
                rest = 0.0
            cuts.extend(rest + step * i for i in range(1, num + 1))
            cuts[-1] = s.length

            for i in range(len(cuts) - 1):
                front = s.front if i == 0 else s.front + taper * cuts[i]
                back = s.back if i == len(cuts) - 2 else s.front + taper * cuts[i + 1]
                divided.append(Segment(front, back, cuts[i + 1] - cuts[i], s.comment))

            if s.terminal is not None:
                divided[-1] = divided[-1].with_terminal(s.terminal)

        return Bore(divided)

    def write_canonical(self, outfile, comment=None):
        """Write the bore in canonical (.men) format."""
        from .parse.canonical import write_canonical
        write_canonical(self, outfile, comment=comment)
