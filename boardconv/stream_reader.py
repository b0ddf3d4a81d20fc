"""Sequential little-endian reader over an in-memory byte buffer."""

import struct
from typing import List

from .errors import FormatViolation, UnexpectedEof
from .fixed32 import Fixed32, Vec2S

_U8 = struct.Struct("<B")
_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")
_S32 = struct.Struct("<i")
_F32 = struct.Struct("<f")

# struct format character per array element kind
_ARRAY_KINDS = {
    "u8": "B",
    "u16": "H",
    "u32": "I",
    "s32": "i",
    "f32": "f",
}


class StreamReader:
    """Forward-only cursor with primitive decoders for the Tebo format.

    Every read advances the cursor; reading past the end of the buffer
    raises UnexpectedEof.
    """

    def __init__(self, data: bytes):
        self.data = bytes(data)
        self.pos = 0

    def tell(self) -> int:
        return self.pos

    def seek(self, pos: int):
        if not 0 <= pos <= len(self.data):
            raise UnexpectedEof(pos, 0, len(self.data) - pos)
        self.pos = pos

    def remaining(self) -> int:
        return len(self.data) - self.pos

    def raw(self, count: int) -> bytes:
        if count > self.remaining():
            raise UnexpectedEof(self.pos, count, self.remaining())
        chunk = self.data[self.pos:self.pos + count]
        self.pos += count
        return chunk

    def _unpack(self, st: struct.Struct):
        return st.unpack(self.raw(st.size))[0]

    def u8(self) -> int:
        return self._unpack(_U8)

    def bool8(self) -> bool:
        offset = self.pos
        value = self.u8()
        if value > 1:
            raise FormatViolation(f"Boolean byte must be 0 or 1, got {value}", offset)
        return bool(value)

    def u16(self) -> int:
        return self._unpack(_U16)

    def u32(self) -> int:
        return self._unpack(_U32)

    def s32(self) -> int:
        return self._unpack(_S32)

    def f32(self) -> float:
        return self._unpack(_F32)

    def fixed(self) -> Fixed32:
        return Fixed32(self.s32())

    def vec2s(self) -> Vec2S:
        return Vec2S(Fixed32(self.s32()), Fixed32(self.s32()))

    def read_array(self, kind: str, count: int) -> List:
        """Read `count` little-endian elements of `kind` (u8/u16/u32/s32/f32)."""
        fmt = _ARRAY_KINDS[kind]
        st = struct.Struct(f"<{count}{fmt}")
        return list(st.unpack(self.raw(st.size)))

    def bools(self, count: int) -> List[bool]:
        return [self.bool8() for _ in range(count)]

    def string255(self) -> bytes:
        """Length-prefixed string: u8 size, then that many raw bytes."""
        size = self.u8()
        return self.raw(size)

    def expect(self, condition: bool, description: str, offset=None):
        if not condition:
            raise FormatViolation(description, self.pos if offset is None else offset)

    def expect_u32(self, expected: int, what: str) -> int:
        offset = self.pos
        value = self.u32()
        if value != expected:
            raise FormatViolation(f"{what}: expected {expected}, got {value}", offset)
        return value
