"""Sequential big-endian reader for BRender chunk streams.

Every multi-byte field in .DAT/.MAT/.PIX/.ACT files is big-endian. All
field decoding goes through ``ChunkReader._unpack`` so byte order is
handled in exactly one place.

Chunk layout:
- type (uint32 BE)
- size (uint32 BE)
- entries (uint32 BE, or uint16 BE for FILE_NAME), only for mesh chunks
- payload
"""
import io
import struct
from typing import BinaryIO, Tuple

from brender_errors import FormatViolation, TruncatedStream
from brender_types import ChunkHeader, ChunkType, ExtendedChunkHeader, FileHeader


class ChunkReader:
    """Reads primitives, chunk headers and strings from a binary stream.

    The reader owns the stream cursor for the duration of a decode call and
    counts the bytes it consumes itself, so pipes and sockets decode too.
    """

    FILE_HEADER_SIZE = 8
    # The face-material list header under-reports its size by 8 bytes.
    FACE_MAT_LIST_SIZE_FIXUP = 8

    def __init__(self, file: BinaryIO):
        self.file = file
        self.offset = 0  # bytes consumed through this reader

    @classmethod
    def from_bytes(cls, data: bytes) -> "ChunkReader":
        return cls(io.BytesIO(data))

    def tell(self) -> int:
        return self.offset

    def read_bytes(self, count: int) -> bytes:
        """Read exactly ``count`` bytes.

        Raises:
            TruncatedStream: If the stream ends first
        """
        if count == 0:
            return b""
        data = self.file.read(count)
        if len(data) < count:
            raise TruncatedStream(count, len(data), self.offset)
        self.offset += count
        return data

    def _unpack(self, fmt: str, size: int):
        return struct.unpack(">" + fmt, self.read_bytes(size))

    def read_u8(self) -> int:
        return self._unpack("B", 1)[0]

    def read_i8(self) -> int:
        return self._unpack("b", 1)[0]

    def read_u16_be(self) -> int:
        return self._unpack("H", 2)[0]

    def read_i16_be(self) -> int:
        return self._unpack("h", 2)[0]

    def read_u32_be(self) -> int:
        return self._unpack("I", 4)[0]

    def read_f32_be(self) -> float:
        return self._unpack("f", 4)[0]

    def read_f32_array(self, count: int) -> Tuple[float, ...]:
        return self._unpack(f"{count}f", 4 * count)

    def at_end(self) -> bool:
        """Check whether the stream is exhausted without consuming input.

        Buffered streams (pipes included) are peeked; anything else must
        be seekable.
        """
        peek = getattr(self.file, "peek", None)
        if peek is not None:
            return not peek(1)
        if not self.file.read(1):
            return True
        self.file.seek(-1, io.SEEK_CUR)
        return False

    def read_chunk_header(self) -> ChunkHeader:
        chunk_type, size = self._unpack("II", 8)
        return ChunkHeader(type=chunk_type, size=size)

    def read_extended_chunk_header(self) -> ExtendedChunkHeader:
        """Read a chunk header carrying an entry count.

        FILE_NAME chunks store a 16-bit count, everything else a 32-bit one.
        FACE_MAT_LIST sizes are corrected by FACE_MAT_LIST_SIZE_FIXUP.
        """
        header = self.read_chunk_header()
        if header.type == ChunkType.FILE_NAME:
            entries = self.read_u16_be()
        else:
            entries = self.read_u32_be()

        size = header.size
        if header.type == ChunkType.FACE_MAT_LIST:
            size += self.FACE_MAT_LIST_SIZE_FIXUP

        return ExtendedChunkHeader(type=header.type, size=size, entries=entries)

    def read_c_string(self) -> str:
        """Read a NUL-terminated name, uppercased.

        Raises:
            TruncatedStream: If the stream ends before the NUL byte
        """
        buf = bytearray()
        while True:
            datum = self.read_u8()
            if datum == 0:
                break
            buf.append(datum)
        # bytes.upper() only touches ASCII letters, like C toupper()
        return bytes(buf).upper().decode("latin-1")

    def expect_chunk(self, expected: ChunkType) -> ChunkHeader:
        """Read a minimal header and require its type."""
        header = self.read_chunk_header()
        if header.type != expected:
            raise FormatViolation.unexpected_chunk(expected, header.type, header.size)
        return header

    def expect_extended_chunk(self, expected: ChunkType) -> ExtendedChunkHeader:
        """Read an extended header and require its type."""
        header = self.read_extended_chunk_header()
        if header.type != expected:
            raise FormatViolation.unexpected_chunk(expected, header.type, header.size)
        return header

    def expect_sentinel(self) -> None:
        """Require the (0, 0) chunk terminating a compound record."""
        header = self.read_chunk_header()
        if not header.is_sentinel:
            raise FormatViolation(
                f"Expected terminating chunk but got type 0x{header.type:x} ({header.size} bytes) instead",
                expected=ChunkType.NULL,
                actual=header.type,
            )

    def read_vertex(self) -> Tuple[float, float, float]:
        x, y, z = self.read_f32_array(3)
        return (x, y, z)

    def read_uvcoord(self) -> Tuple[float, float]:
        u, v = self.read_f32_array(2)
        return (u, v)

    def read_file_header(self) -> FileHeader:
        """Read the 0x12 chunk that opens every resource file.

        Raises:
            FormatViolation: If the chunk type or declared size is wrong
        """
        header = self.read_chunk_header()
        if header.type != ChunkType.FILE_HEADER:
            raise FormatViolation.unexpected_chunk(ChunkType.FILE_HEADER, header.type, header.size)
        if header.size != self.FILE_HEADER_SIZE:
            raise FormatViolation(
                f"File header chunk must be {self.FILE_HEADER_SIZE} bytes, got {header.size}",
                expected=ChunkType.FILE_HEADER,
                actual=header.type,
            )
        file_type = self.read_u32_be()
        self.read_u32_be()  # reserved
        return FileHeader(file_type=file_type)
