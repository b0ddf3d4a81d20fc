"""Utility functions for board conversion.

Handles unit conversion, plane transforms, arc geometry and number parsing.
"""

import math

from .cbf_model import Box, Point
from .fixed32 import Fixed32, Vec2S

MILS_PER_MM = 39.3701


def fixed_to_mils(value: Fixed32) -> float:
    """Tebo fixed-point values are hundredths of a mil."""
    return value.to_float()


def vec2s_to_point(v: Vec2S) -> Point:
    return Point(fixed_to_mils(v.x), fixed_to_mils(v.y))


def mm_to_mils(mm: float) -> float:
    return mm * MILS_PER_MM


def fmt(value: float) -> str:
    """Format a float for text output: 6 decimal places, strip trailing zeros."""
    s = f"{value:.6f}"
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    return s


def box_of(points) -> Box:
    """Axis-aligned bounding box of a non-empty point sequence."""
    xs = [p.x for p in points]
    ys = [p.y for p in points]
    return Box(Point(min(xs), min(ys)), Point(max(xs), max(ys)))


def box_contains(outer: Box, inner: Box) -> bool:
    return (outer.min.x <= inner.min.x and outer.min.y <= inner.min.y
            and inner.max.x <= outer.max.x and inner.max.y <= outer.max.y)


class Transform:
    """2x3 affine matrix [a b tx; c d ty] acting on Points."""

    def __init__(self, a=1.0, b=0.0, c=0.0, d=1.0, tx=0.0, ty=0.0):
        self.a, self.b, self.c, self.d = a, b, c, d
        self.tx, self.ty = tx, ty

    @classmethod
    def translation(cls, x: float, y: float) -> "Transform":
        return cls(tx=x, ty=y)

    @classmethod
    def rotation(cls, degrees: float) -> "Transform":
        r = math.radians(degrees)
        cos, sin = math.cos(r), math.sin(r)
        return cls(cos, -sin, sin, cos)

    @classmethod
    def scaling(cls, sx: float, sy: float) -> "Transform":
        return cls(a=sx, d=sy)

    def __mul__(self, other: "Transform") -> "Transform":
        return Transform(
            self.a * other.a + self.b * other.c,
            self.a * other.b + self.b * other.d,
            self.c * other.a + self.d * other.c,
            self.c * other.b + self.d * other.d,
            self.a * other.tx + self.b * other.ty + self.tx,
            self.c * other.tx + self.d * other.ty + self.ty,
        )

    def apply(self, p: Point) -> Point:
        return Point(self.a * p.x + self.b * p.y + self.tx,
                     self.c * p.x + self.d * p.y + self.ty)


def poly_arc(a: Point, b: Point, curve: float, threshold: float) -> list:
    """Approximate a curved edge from a to b by chords.

    `curve` is the signed arc angle in degrees (positive = counter-clockwise).
    Edges no longer than `threshold` are returned unchanged; otherwise every
    chord subtends at most the angle of a `threshold`-long chord.

    Returns the list of (start, end) Point pairs.
    """
    dx, dy = b.x - a.x, b.y - a.y
    dist = math.hypot(dx, dy)
    if dist <= threshold or curve == 0:
        return [(a, b)]
    sign = 1 if curve > 0 else -1
    angle = abs(math.radians(curve))
    h = dist / (2 * math.tan(angle / 2))
    # Normal to the chord, on the side of the centre
    nx, ny = -sign * dy / dist, sign * dx / dist
    cx, cy = a.x + dx / 2 + nx * h, a.y + dy / 2 + ny * h
    rx, ry = a.x - cx, a.y - cy
    radius = math.hypot(rx, ry)
    max_sector = 2 * math.asin(min(1.0, threshold / (2 * radius)))
    sectors = max(2, math.ceil(angle / max_sector))
    step = angle / sectors

    edges = []
    prev = a
    for i in range(1, sectors):
        t = sign * i * step
        cos, sin = math.cos(t), math.sin(t)
        v = Point(cx + rx * cos - ry * sin, cy + rx * sin + ry * cos)
        edges.append((prev, v))
        prev = v
    edges.append((prev, b))
    return edges


def parse_float(s: str) -> float:
    """Parse a float string, handling edge cases."""
    try:
        return float(s)
    except (ValueError, TypeError):
        return 0.0


def parse_int(s: str) -> int:
    """Parse an int string, handling edge cases."""
    try:
        return int(s)
    except (ValueError, TypeError):
        return 0
