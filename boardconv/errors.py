"""Error taxonomy shared by every board format handler.

All errors are fatal for the conversion that raised them: decoders never
skip ahead or resynchronise after a failed check.
"""

from typing import Optional


class BoardError(Exception):
    """Base class for conversion failures.

    Args:
        message: Human-readable description of the violated invariant
        offset: Byte offset in the source file, when known
    """

    def __init__(self, message: str, offset: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.offset = offset

    def __str__(self):
        if self.offset is None:
            return self.message
        return f"{self.message} (at offset 0x{self.offset:08X})"


class UnexpectedEof(BoardError):
    """The binary cursor ran out of bytes."""

    def __init__(self, offset: int, wanted: int, available: int):
        super().__init__(
            f"Unexpected end of file: wanted {wanted} bytes, {available} left",
            offset,
        )
        self.wanted = wanted
        self.available = available


class FormatViolation(BoardError):
    """A structural invariant of a format or of the board model did not hold."""


class UnsupportedOperation(BoardError):
    """A format handler was invoked for a direction it does not support."""
