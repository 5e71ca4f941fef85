"""Actor hierarchy decoding for BRender .ACT files.

Actors group multiple meshes into a single car body with pivots, shafts
and wheels. Unlike meshes, an actor file is a loose stream of chunks
processed in whatever order it arrives:
- ACTOR_NAME (0x23): visible (uint8), what2 (uint8), name. Starts a new actor.
- ACTOR_TRANSFORM (0x2B): 4 x 3 float32. Three columns of a 3x3
  scale/rotation block, then the translation (-x is left, -z is front).
- MESHFILE_REF (0x24): mesh name (C string)
- MATERIAL_REF (0x26): material name (C string)
- 0x25, 0x2A: no payload, meaning unknown
- NULL chunk (0, 0): end of model
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from brender_errors import FormatViolation, ProtocolViolation, UnrecognizedChunk
from brender_reader import ChunkReader
from brender_types import ChunkHeader, ChunkType

logger = logging.getLogger(__name__)


@dataclass
class Transform:
    """3x3 block (row-major storage) plus translation."""
    matrix: List[List[float]] = field(default_factory=lambda: [[0.0] * 3 for _ in range(3)])
    translation: Tuple[float, float, float] = (0.0, 0.0, 0.0)

    @classmethod
    def read(cls, reader: ChunkReader) -> "Transform":
        transform = cls()
        for column in range(3):
            x, y, z = reader.read_vertex()
            transform.matrix[0][column] = x
            transform.matrix[1][column] = y
            transform.matrix[2][column] = z
        transform.translation = reader.read_vertex()
        return transform

    def to_column_major(self) -> List[float]:
        """Flatten to a 4x4 column-major matrix (glTF node layout)."""
        m = self.matrix
        tx, ty, tz = self.translation
        return [
            m[0][0], m[1][0], m[2][0], 0.0,
            m[0][1], m[1][1], m[2][1], 0.0,
            m[0][2], m[1][2], m[2][2], 0.0,
            tx, ty, tz, 1.0,
        ]


@dataclass
class Actor:
    """Named node tying a transform to mesh and material references."""
    name: str
    visible: int = 0
    what2: int = 0
    material_name: str = ""
    mesh_name: str = ""
    transform: Optional[Transform] = None  # None until an ACTOR_TRANSFORM chunk arrives


@dataclass
class Model:
    """All actors of one .ACT model, keyed by actor name."""
    parts: Dict[str, Actor] = field(default_factory=dict)

    @classmethod
    def read(cls, reader: ChunkReader) -> "Model":
        """Assemble a model from the chunk stream up to its NULL chunk.

        Raises:
            UnrecognizedChunk: On a chunk type outside the actor set
            ProtocolViolation: On an actor field chunk before any ACTOR_NAME
            FormatViolation: On a marker or terminator chunk with a payload
            TruncatedStream: If the stream ends before the NULL chunk
        """
        return ActorGraphAssembler(reader).run()


class ActorGraphAssembler:
    """State machine turning an actor chunk stream into a Model.

    Either no actor is open, or exactly one is. Field chunks apply to the
    open actor; ACTOR_NAME and the terminator commit it to the model, where
    a later actor replaces an earlier one of the same name.
    """

    def __init__(self, reader: ChunkReader):
        self.reader = reader
        self.model = Model()
        self.current: Optional[Actor] = None
        self._handlers = {
            ChunkType.ACTOR_NAME: self._on_actor_name,
            ChunkType.ACTOR_TRANSFORM: self._on_transform,
            ChunkType.MATERIAL_REF: self._on_material_ref,
            ChunkType.MESHFILE_REF: self._on_meshfile_ref,
            ChunkType.UNKNOWN_25: self._on_empty_marker,
            ChunkType.UNKNOWN_2A: self._on_empty_marker,
        }

    def run(self) -> Model:
        while True:
            header = self.reader.read_chunk_header()
            if header.type == ChunkType.NULL:
                self._commit()
                break

            handler = self._handlers.get(header.type)
            if handler is None:
                raise UnrecognizedChunk(header.type, header.size)
            handler(header)

        if header.size != 0:
            raise FormatViolation(
                f"Expected terminating chunk but got type 0x{header.type:x} ({header.size} bytes) instead",
                expected=ChunkType.NULL,
                actual=header.type,
            )
        return self.model

    def _commit(self):
        if self.current is not None:
            if self.current.name in self.model.parts:
                logger.debug("Actor %s replaces an earlier actor of the same name", self.current.name)
            self.model.parts[self.current.name] = self.current
            self.current = None

    def _require_actor(self, header: ChunkHeader) -> Actor:
        if self.current is None:
            raise ProtocolViolation(f"Chunk 0x{header.type:02x} appeared before any actor was named")
        return self.current

    def _on_actor_name(self, header: ChunkHeader):
        self._commit()
        visible = self.reader.read_u8()
        what2 = self.reader.read_u8()
        name = self.reader.read_c_string()
        logger.debug("Actor %s visible %d", name, visible)
        self.current = Actor(name=name, visible=visible, what2=what2)

    def _on_transform(self, header: ChunkHeader):
        actor = self._require_actor(header)
        actor.transform = Transform.read(self.reader)

    def _on_material_ref(self, header: ChunkHeader):
        actor = self._require_actor(header)
        actor.material_name = self.reader.read_c_string()

    def _on_meshfile_ref(self, header: ChunkHeader):
        actor = self._require_actor(header)
        actor.mesh_name = self.reader.read_c_string()

    def _on_empty_marker(self, header: ChunkHeader):
        if header.size != 0:
            raise FormatViolation(
                f"Marker chunk 0x{header.type:02x} must be empty, got {header.size} bytes",
                actual=header.type,
            )
