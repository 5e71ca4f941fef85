"""Mesh decoding for BRender .DAT files.

A .DAT file is a file header chunk followed by any number of meshes.
Each mesh is a fixed sequence of chunks:
- FILE_NAME (0x36): uint16 entries, then mesh name (C string)
- VERTEX_LIST (0x17): entries x 3 float32
- UVMAP_LIST (0x18): entries x 2 float32
- FACE_LIST (0x35): entries x 9-byte face records
- MATERIAL_LIST (0x16), optional: uint32 count, then count C strings
- FACE_MAT_LIST (0x1A): uint32 reserved, then entries x uint16 material index
- NULL chunk (0, 0)

Meshes without materials end with the NULL chunk right after the face list.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from brender_errors import FormatViolation
from brender_material import Material
from brender_reader import ChunkReader
from brender_types import ChunkType

logger = logging.getLogger(__name__)


@dataclass
class Face:
    """Triangle referencing three vertices by index."""
    v1: int
    v2: int
    v3: int
    flags: int = 0  # usually a single bit set, but not always
    unknown: int = 0
    material_id: int = 0  # filled from FACE_MAT_LIST

    @classmethod
    def read(cls, reader: ChunkReader) -> "Face":
        v1 = reader.read_i16_be()
        v2 = reader.read_i16_be()
        v3 = reader.read_i16_be()
        flags = reader.read_i16_be()
        unknown = reader.read_i8()
        return cls(v1=v1, v2=v2, v3=v3, flags=flags, unknown=unknown)

    @property
    def indices(self) -> Tuple[int, int, int]:
        return (self.v1, self.v2, self.v3)


@dataclass
class Mesh:
    """One mesh from a .DAT file."""
    name: str = ""
    vertices: List[Tuple[float, float, float]] = field(default_factory=list)
    uvcoords: List[Tuple[float, float]] = field(default_factory=list)
    faces: List[Face] = field(default_factory=list)
    material_names: List[str] = field(default_factory=list)
    materials: Dict[str, Material] = field(default_factory=dict)

    @classmethod
    def read(cls, reader: ChunkReader) -> "Mesh":
        """Decode one mesh starting at the FILE_NAME chunk.

        Args:
            reader: Reader positioned at the start of the mesh

        Returns:
            Mesh with faces carrying their material ids

        Raises:
            FormatViolation: On unexpected chunk order or a bad terminator
            TruncatedStream: If the stream ends mid-mesh
        """
        mesh = cls()

        logger.debug("Reading filename entry")
        reader.expect_extended_chunk(ChunkType.FILE_NAME)
        mesh.name = reader.read_c_string()

        logger.debug("Reading vertex list of %s", mesh.name)
        header = reader.expect_extended_chunk(ChunkType.VERTEX_LIST)
        mesh.vertices = [reader.read_vertex() for _ in range(header.entries)]

        logger.debug("Reading uvmap list of %s", mesh.name)
        header = reader.expect_extended_chunk(ChunkType.UVMAP_LIST)
        mesh.uvcoords = [reader.read_uvcoord() for _ in range(header.entries)]

        logger.debug("Reading face list of %s", mesh.name)
        header = reader.expect_extended_chunk(ChunkType.FACE_LIST)
        mesh.faces = [Face.read(reader) for _ in range(header.entries)]

        logger.debug("Reading material list of %s", mesh.name)
        header = reader.read_chunk_header()
        if header.is_sentinel:
            # Some sub-meshes end without defining materials.
            return mesh
        if header.type != ChunkType.MATERIAL_LIST:
            raise FormatViolation.unexpected_chunk(ChunkType.MATERIAL_LIST, header.type, header.size)

        count = reader.read_u32_be()
        mesh.material_names = [reader.read_c_string() for _ in range(count)]

        logger.debug("Reading face material list of %s", mesh.name)
        header = reader.expect_extended_chunk(ChunkType.FACE_MAT_LIST)
        if header.entries != len(mesh.faces):
            raise FormatViolation(
                f"Face material list of {mesh.name} has {header.entries} entries "
                f"but the face list has {len(mesh.faces)}",
                expected=ChunkType.FACE_MAT_LIST,
                actual=header.type,
            )
        reader.read_u32_be()  # reserved
        for face in mesh.faces:
            face.material_id = reader.read_i16_be()

        reader.expect_sentinel()
        return mesh

    def bind_materials(self, materials: Iterable[Material]) -> List[str]:
        """Attach decoded materials referenced by this mesh.

        Args:
            materials: Candidate materials, typically from one or more .MAT files

        Returns:
            Referenced material names that were not found
        """
        by_name = {m.name: m for m in materials}
        missing = []
        for name in self.material_names:
            material = by_name.get(name)
            if material is None:
                missing.append(name)
                continue
            self.materials[name] = material

        if missing:
            logger.warning("Mesh %s references unknown materials: %s", self.name, ", ".join(missing))
        return missing

    def faces_by_material(self) -> Dict[int, List[Face]]:
        """Group faces by material id, in first-seen order."""
        groups: Dict[int, List[Face]] = {}
        for face in self.faces:
            groups.setdefault(face.material_id, []).append(face)
        return groups
