"""Hundredths-scaled fixed-point scalar used by the Tebo binary format."""

from dataclasses import dataclass
from typing import NamedTuple

DECIMAL_PLACES = 2
MULTIPLIER = 10 ** DECIMAL_PLACES


@dataclass(frozen=True, order=True)
class Fixed32:
    """32-bit integer holding a value in hundredths.

    Arithmetic and ordering work on the raw integer, so repeated additions
    never drift.
    """

    raw: int = 0

    @classmethod
    def from_value(cls, value: float) -> "Fixed32":
        return cls(round(value * MULTIPLIER))

    @property
    def int_part(self) -> int:
        # truncates toward zero, like C integer division
        q = abs(self.raw) // MULTIPLIER
        return -q if self.raw < 0 else q

    @property
    def frac_part(self) -> int:
        return abs(self.raw) % MULTIPLIER

    def to_float(self) -> float:
        return self.raw / MULTIPLIER

    def __add__(self, other: "Fixed32") -> "Fixed32":
        return Fixed32(self.raw + other.raw)

    def __sub__(self, other: "Fixed32") -> "Fixed32":
        return Fixed32(self.raw - other.raw)

    def __bool__(self):
        return self.raw != 0

    def __str__(self):
        sign = "-" if self.raw < 0 else ""
        return f"{sign}{abs(self.int_part)}.{self.frac_part:02d}"


class Vec2S(NamedTuple):
    """2D coordinate pair as stored in the binary format."""

    x: Fixed32
    y: Fixed32


class Box2S(NamedTuple):
    min: Vec2S
    max: Vec2S
