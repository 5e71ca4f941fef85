"""Material decoding for BRender .MAT files.

A .MAT file indexes material names against pixelmap (.PIX) and shade
table (.TAB) names. Each material is:
- MATERIAL_DESC (0x04): 12 float32, then material name (C string)
- PIXELMAP_REF (0x1C), optional: pixelmap name
- RENDERTAB_REF (0x1F), required after PIXELMAP_REF: render table name
- NULL chunk (0, 0)
"""
import logging
from dataclasses import dataclass, field
from typing import List

from brender_errors import FormatViolation
from brender_reader import ChunkReader
from brender_types import ChunkType

logger = logging.getLogger(__name__)


@dataclass
class Material:
    """Material descriptor with optional texture references."""

    name: str = ""
    # Meaning unconfirmed, likely colour and lighting coefficients.
    params: List[float] = field(default_factory=lambda: [0.0] * Material.PARAM_COUNT)
    pixelmap_name: str = ""
    rendertab_name: str = ""

    PARAM_COUNT = 12

    @property
    def has_texture(self) -> bool:
        return bool(self.pixelmap_name)

    @classmethod
    def read(cls, reader: ChunkReader) -> "Material":
        """Decode one material starting at its MATERIAL_DESC chunk.

        Raises:
            FormatViolation: On unexpected chunk order or a bad terminator
            TruncatedStream: If the stream ends mid-material
        """
        reader.expect_chunk(ChunkType.MATERIAL_DESC)
        params = list(reader.read_f32_array(cls.PARAM_COUNT))
        material = cls(name=reader.read_c_string(), params=params)
        logger.debug("Reading material %s", material.name)

        header = reader.read_chunk_header()
        if header.is_sentinel:
            # Some materials end without defining pixmaps.
            return material
        if header.type != ChunkType.PIXELMAP_REF:
            raise FormatViolation.unexpected_chunk(ChunkType.PIXELMAP_REF, header.type, header.size)
        material.pixelmap_name = reader.read_c_string()

        reader.expect_chunk(ChunkType.RENDERTAB_REF)
        material.rendertab_name = reader.read_c_string()

        reader.expect_sentinel()
        return material
