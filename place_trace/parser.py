"""Line parser for canvas history CSV exports.

Two dataset eras are supported:

    2022  2022-04-04 00:55:57.168 UTC,<user>,#6A5CFF,"1908,1854"
    2023  2023-07-20 13:00:26.088 UTC,<user>,"{X: 428, Y: -131, R: 18}",#FFFFFF

The placement field holds a tile ("x,y"), a rectangle ("x1,y1,x2,y2", read as
left,top,right,bottom) or a circle ("{X: n, Y: n, R: n}"). The 2022 export
uses unsigned 16-bit coordinates, the 2023 export signed ones. Tile and
rectangle numbers are bare integers; a "+" sign or padding inside the quotes
is malformed.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from place_trace.errors import ParseError
from place_trace.events import EditEvent, parse_timestamp
from place_trace.geometry import Circle, Point, Rectangle, Shape

_INT = r"(-?\d+)"
RECTANGLE_PATTERN = re.compile(rf"^{_INT},{_INT},{_INT},{_INT}$")
POINT_PATTERN = re.compile(rf"^{_INT},{_INT}$")
CIRCLE_PATTERN = re.compile(rf"^\{{\s*X:\s*{_INT},\s*Y:\s*{_INT},\s*R:\s*{_INT}\s*\}}$")


class Era(str, Enum):
    PLACE_2022 = "2022"
    PLACE_2023 = "2023"


@dataclass(frozen=True)
class LineLayout:
    shape_before_color: bool
    int_range: Tuple[int, int]


LAYOUTS = {
    Era.PLACE_2022: LineLayout(shape_before_color=False, int_range=(0, 0xFFFF)),
    Era.PLACE_2023: LineLayout(shape_before_color=True, int_range=(-0x8000, 0x7FFF)),
}

ParseResult = Union[EditEvent, ParseError]


class RecordParser:
    """Turn raw history lines into ``EditEvent`` values.

    ``parse`` never raises for bad input; it hands back a ``ParseError`` so the
    scan loops can log the line and move on.
    """

    def __init__(self, era: Union[Era, str] = Era.PLACE_2022):
        self.era = Era(era)
        self.layout = LAYOUTS[self.era]

    def parse(self, line: str) -> ParseResult:
        try:
            return self._parse(line)
        except ParseError as exc:
            return exc

    def _parse(self, line: str) -> EditEvent:
        parts = line.rstrip("\r\n").split(",", 2)
        if len(parts) != 3:
            raise ParseError(line, "missing fields")
        timestamp, author_id, rest = parts
        try:
            moment = parse_timestamp(timestamp)
        except ValueError:
            raise ParseError(line, "bad timestamp") from None
        if not author_id:
            raise ParseError(line, "empty user id")

        if self.layout.shape_before_color:
            if "," not in rest:
                raise ParseError(line, "missing fields")
            shape_text, color = rest.rsplit(",", 1)
        else:
            if "," not in rest:
                raise ParseError(line, "missing fields")
            color, shape_text = rest.split(",", 1)

        color = color.strip()
        if not color or '"' in color:
            raise ParseError(line, "bad color")

        placement = self.parse_shape(_unquote(shape_text, line))
        if placement is None:
            raise ParseError(line, "unrecognised coordinate")
        return EditEvent(
            timestamp=timestamp,
            time=moment,
            author_id=author_id,
            color=color,
            placement=placement,
        )

    def parse_shape(self, text: str) -> Optional[Shape]:
        """Rectangle first, then tile, then circle. ``None`` when nothing fits."""
        match = RECTANGLE_PATTERN.match(text)
        if match:
            values = self._ints(match.groups())
            return None if values is None else Rectangle.from_corners(*values)

        match = POINT_PATTERN.match(text)
        if match:
            values = self._ints(match.groups())
            return None if values is None else Point(*values)

        match = CIRCLE_PATTERN.match(text)
        if match:
            values = self._ints(match.groups())
            if values is None or values[2] < 0:
                return None
            x, y, radius = values
            return Circle(center=Point(x, y), radius=radius)

        return None

    def _ints(self, groups: Tuple[str, ...]) -> Optional[Tuple[int, ...]]:
        low, high = self.layout.int_range
        values = tuple(int(group) for group in groups)
        if any(value < low or value > high for value in values):
            return None
        return values


def _unquote(text: str, line: str) -> str:
    quoted_start = text.startswith('"')
    quoted_end = text.endswith('"') and len(text) > 1
    if quoted_start and quoted_end:
        inner = text[1:-1]
    elif quoted_start or text.endswith('"'):
        raise ParseError(line, "unbalanced quotes")
    else:
        inner = text
    if '"' in inner:
        raise ParseError(line, "unbalanced quotes")
    return inner
