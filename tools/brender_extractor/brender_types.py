"""Type definitions for BRender resource files (.DAT, .MAT, .PIX, .ACT)."""
from dataclasses import dataclass
from enum import IntEnum


class ChunkType(IntEnum):
    """Chunk type tags.

    Every chunk starts with a big-endian 32-bit type and a 32-bit size.
    Only the low byte is ever non-zero in shipped files.
    """
    NULL = 0x00
    PIXELMAP_HEADER = 0x03
    MATERIAL_DESC = 0x04
    FILE_HEADER = 0x12
    MATERIAL_LIST = 0x16
    VERTEX_LIST = 0x17
    UVMAP_LIST = 0x18
    FACE_MAT_LIST = 0x1A
    PIXELMAP_REF = 0x1C
    RENDERTAB_REF = 0x1F
    PIXELMAP_DATA = 0x21
    ACTOR_NAME = 0x23
    MESHFILE_REF = 0x24
    UNKNOWN_25 = 0x25
    MATERIAL_REF = 0x26
    UNKNOWN_2A = 0x2A
    ACTOR_TRANSFORM = 0x2B
    FACE_LIST = 0x35
    FILE_NAME = 0x36


class FileType(IntEnum):
    """Subtype stored in the file header chunk."""
    ACTOR = 0x1
    PIXELMAP = 0x2
    MATERIAL = 0x5
    MESH = 0xFACE


def chunk_name(chunk_type: int) -> str:
    """Readable name for a chunk type, used in error messages."""
    try:
        return f"0x{chunk_type:02x} ({ChunkType(chunk_type).name})"
    except ValueError:
        return f"0x{chunk_type:02x} (unrecognised)"


@dataclass
class ChunkHeader:
    """Minimal chunk header: type and size."""

    type: int
    size: int

    @property
    def is_sentinel(self) -> bool:
        return self.type == ChunkType.NULL and self.size == 0


@dataclass
class ExtendedChunkHeader:
    """Chunk header followed by an entry count (mesh chunks)."""

    type: int
    size: int
    entries: int = 0


@dataclass
class FileHeader:
    """Payload of the 0x12 chunk opening every resource file."""

    file_type: int

    @property
    def kind(self) -> str:
        try:
            return FileType(self.file_type).name.lower()
        except ValueError:
            return "unknown"
