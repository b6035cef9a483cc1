"""Tile geometry for canvas placements.

Placements come in three shapes: a single tile, an axis-aligned rectangle and
a circle. They are kept as separate frozen dataclasses joined by the ``Shape``
union; every predicate below dispatches on the concrete type.

Intersection tests sample corners rather than solving the full overlap
problem. Two rectangles crossing like a plus sign, with no corner of either
inside the other, are reported as disjoint. Matching results depend on this,
so it is kept as-is.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterator, Tuple, Union


@dataclass(frozen=True)
class Point:
    x: int
    y: int


@dataclass(frozen=True)
class Rectangle:
    """Inclusive tile bounds. Callers must pass ``top <= bottom`` and ``left <= right``."""

    top: int
    left: int
    bottom: int
    right: int

    @classmethod
    def from_corners(cls, x1: int, y1: int, x2: int, y2: int) -> "Rectangle":
        # Log and config order is left,top,right,bottom.
        return cls(top=y1, left=x1, bottom=y2, right=x2)

    @property
    def is_ordered(self) -> bool:
        return self.top <= self.bottom and self.left <= self.right

    def corners(self) -> Tuple[Point, Point, Point, Point]:
        return (
            Point(self.left, self.top),
            Point(self.right, self.top),
            Point(self.left, self.bottom),
            Point(self.right, self.bottom),
        )

    def contains(self, point: Point) -> bool:
        return self.contains_xy(point.x, point.y)

    def contains_xy(self, x: int, y: int) -> bool:
        return self.left <= x <= self.right and self.top <= y <= self.bottom

    def intersects(self, other: "Rectangle") -> bool:
        return any(self.contains(corner) for corner in other.corners()) or any(
            other.contains(corner) for corner in self.corners()
        )

    def tiles(self) -> Iterator[Point]:
        # Right and bottom edges are exclusive when a placed rectangle is painted.
        for x in range(self.left, self.right):
            for y in range(self.top, self.bottom):
                yield Point(x, y)

    def as_bounds(self) -> Tuple[int, int, int, int]:
        return (self.left, self.top, self.right, self.bottom)


@dataclass(frozen=True)
class Circle:
    center: Point
    radius: int

    def contains_point(self, x: int, y: int) -> bool:
        dx = x - self.center.x
        dy = y - self.center.y
        return dx * dx + dy * dy < self.radius * self.radius

    def extremes(self) -> Tuple[Point, Point, Point, Point]:
        cx, cy, r = self.center.x, self.center.y, self.radius
        return (Point(cx - r, cy), Point(cx + r, cy), Point(cx, cy - r), Point(cx, cy + r))

    def intersects(self, rect: Rectangle) -> bool:
        if any(self.contains_point(corner.x, corner.y) for corner in rect.corners()):
            return True
        return any(rect.contains(point) for point in self.extremes())

    def rasterize(self) -> FrozenSet[Point]:
        """Return the tiles covered by the circle.

        Scan lines run over ``|dy| < radius``. On each line the half width is
        the largest ``dx`` with ``dx*dx + dy*dy < radius*radius``, walked down
        from the previous line's value, and the line covers ``x`` in
        ``[cx - dx, cx + dx)``.
        """
        cx, cy, r = self.center.x, self.center.y, self.radius
        limit = r * r
        points = set()
        dx = r
        for dy in range(r):
            while dx > 0 and dx * dx + dy * dy >= limit:
                dx -= 1
            for x in range(cx - dx, cx + dx):
                points.add(Point(x, cy + dy))
                if dy:
                    points.add(Point(x, cy - dy))
        return frozenset(points)


Shape = Union[Point, Rectangle, Circle]


def touches(region: Rectangle, shape: Shape) -> bool:
    """Spatial test of a placement against a search region."""
    if isinstance(shape, Point):
        return region.contains(shape)
    if isinstance(shape, Rectangle):
        return region.intersects(shape)
    if isinstance(shape, Circle):
        return shape.intersects(region)
    raise TypeError(f"Unsupported shape: {shape!r}")


def expand(shape: Shape) -> Iterator[Point]:
    """Yield every tile a placement paints."""
    if isinstance(shape, Point):
        yield shape
    elif isinstance(shape, Rectangle):
        yield from shape.tiles()
    elif isinstance(shape, Circle):
        yield from shape.rasterize()
    else:
        raise TypeError(f"Unsupported shape: {shape!r}")


def describe(shape: Shape) -> str:
    if isinstance(shape, Point):
        return f"{shape.x},{shape.y}"
    if isinstance(shape, Rectangle):
        return f"{shape.left},{shape.top},{shape.right},{shape.bottom}"
    if isinstance(shape, Circle):
        return f"{{X: {shape.center.x}, Y: {shape.center.y}, R: {shape.radius}}}"
    raise TypeError(f"Unsupported shape: {shape!r}")
