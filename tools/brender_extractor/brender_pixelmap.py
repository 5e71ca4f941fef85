"""Pixelmap decoding for BRender .PIX files.

Each pixelmap consists of two chunks and a terminator:
- PIXELMAP_HEADER (0x03):
  - what1 (uint8)
  - width, used width, height, used height (uint16 each)
  - what2 (uint16)
  - name (C string)
- PIXELMAP_DATA (0x21):
  - units (uint32), unit_bytes (uint32)
  - units * unit_bytes bytes of raw texel data
- NULL chunk (0, 0)

Texel data is kept verbatim; interpreting the pixel format is up to the caller.
"""
import logging
from dataclasses import dataclass, field, replace

from brender_errors import AllocationFailure
from brender_reader import ChunkReader
from brender_types import ChunkType

logger = logging.getLogger(__name__)


@dataclass
class Pixelmap:
    """Raw image with an exclusively owned texel buffer."""

    name: str = ""
    w: int = 0
    h: int = 0
    use_w: int = 0  # how much of w holds useful data
    use_h: int = 0
    what1: int = 0
    what2: int = 0
    units: int = 0
    unit_bytes: int = 0
    payload: bytearray = field(default_factory=bytearray, repr=False)

    @property
    def payload_size(self) -> int:
        return self.units * self.unit_bytes

    def clone(self) -> "Pixelmap":
        """Copy this pixelmap, including a private copy of its payload."""
        return replace(self, payload=bytearray(self.payload))

    @classmethod
    def read(cls, reader: ChunkReader) -> "Pixelmap":
        """Decode one pixelmap starting at its PIXELMAP_HEADER chunk.

        Raises:
            FormatViolation: On unexpected chunk order or a bad terminator
            TruncatedStream: If fewer bytes than the payload size remain
            AllocationFailure: If the payload buffer cannot be allocated
        """
        reader.expect_chunk(ChunkType.PIXELMAP_HEADER)
        pixelmap = cls()
        pixelmap.what1 = reader.read_u8()
        pixelmap.w = reader.read_u16_be()
        pixelmap.use_w = reader.read_u16_be()
        pixelmap.h = reader.read_u16_be()
        pixelmap.use_h = reader.read_u16_be()
        pixelmap.what2 = reader.read_u16_be()
        pixelmap.name = reader.read_c_string()

        reader.expect_chunk(ChunkType.PIXELMAP_DATA)
        pixelmap.units = reader.read_u32_be()
        pixelmap.unit_bytes = reader.read_u32_be()

        size = pixelmap.payload_size
        logger.debug("Reading pixelmap %s: %dx%d, %d payload bytes", pixelmap.name, pixelmap.w, pixelmap.h, size)
        try:
            pixelmap.payload = bytearray(reader.read_bytes(size))
        except (MemoryError, OverflowError) as e:
            raise AllocationFailure(f"Cannot allocate {size} bytes for pixelmap {pixelmap.name}") from e

        reader.expect_sentinel()
        return pixelmap
