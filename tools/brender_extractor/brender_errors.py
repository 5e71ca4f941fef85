"""Errors raised while decoding BRender resource files.

All of them derive from ValueError so callers that already guard parsing
with ``except ValueError`` keep working.
"""
from typing import Optional

from brender_types import chunk_name


class BRenderError(ValueError):
    """Base class for every decode failure."""


class TruncatedStream(BRenderError):
    """Fewer bytes were available than a read required."""

    def __init__(self, wanted: int, got: int, offset: Optional[int] = None):
        self.wanted = wanted
        self.got = got
        self.offset = offset
        where = f" at offset {offset}" if offset is not None else ""
        super().__init__(f"Unexpected end of stream{where}: wanted {wanted} bytes, got {got}")


class FormatViolation(BRenderError):
    """Wrong chunk type, wrong order, or malformed terminator."""

    def __init__(self, message: str, expected: Optional[int] = None, actual: Optional[int] = None):
        self.expected = expected
        self.actual = actual
        super().__init__(message)

    @classmethod
    def unexpected_chunk(cls, expected: int, actual: int, size: int) -> "FormatViolation":
        return cls(
            f"Expected chunk {chunk_name(expected)} but got {chunk_name(actual)} ({size} bytes) instead",
            expected=expected,
            actual=actual,
        )


class UnrecognizedChunk(BRenderError):
    """An actor-graph chunk tag outside the known set."""

    def __init__(self, chunk_type: int, size: int):
        self.chunk_type = chunk_type
        self.size = size
        super().__init__(f"Unrecognised actor chunk 0x{chunk_type:02x} ({size} bytes)")


class AllocationFailure(BRenderError):
    """The pixelmap payload buffer could not be obtained."""


class ProtocolViolation(BRenderError):
    """An actor field chunk arrived while no actor was open."""
