"""Whole-file loading of BRender resource files.

Every resource file starts with a FILE_HEADER chunk (0x12, 8 bytes):
- file type (uint32): 0xFACE mesh, 0x5 material, 0x2 pixelmap, 0x1 actor
- reserved (uint32)

The header is followed by records of that type until end of file.
"""
import logging
from pathlib import Path
from typing import BinaryIO, Callable, List, TypeVar, Union

from brender_actor import Model
from brender_errors import FormatViolation
from brender_material import Material
from brender_mesh import Mesh
from brender_pixelmap import Pixelmap
from brender_reader import ChunkReader
from brender_types import FileHeader, FileType

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResourceFile:
    """Loads all records of a .DAT, .MAT, .PIX or .ACT file."""

    def __init__(self, source: Union[str, Path, BinaryIO]):
        """Initialize loader with file path or file-like object.

        Args:
            source: Path to resource file or binary file object (rewound when seekable)
        """
        self.source = source

    def _get_file(self) -> BinaryIO:
        """Get file handle, opening if needed."""
        if isinstance(self.source, (str, Path)):
            return open(self.source, "rb")
        if self.source.seekable():
            self.source.seek(0)
        return self.source

    def _close_file(self, file: BinaryIO):
        """Close file if we opened it."""
        if isinstance(self.source, (str, Path)):
            file.close()

    def read_header(self) -> FileHeader:
        """Read only the file header chunk."""
        file = self._get_file()
        try:
            return ChunkReader(file).read_file_header()
        finally:
            self._close_file(file)

    def _load(self, expected: FileType, read_record: Callable[[ChunkReader], T]) -> List[T]:
        file = self._get_file()
        try:
            reader = ChunkReader(file)
            header = reader.read_file_header()
            if header.file_type != expected:
                raise FormatViolation(
                    f"Expected {expected.name.lower()} file (0x{int(expected):x}) "
                    f"but header declares type 0x{header.file_type:x} ({header.kind})"
                )

            records = []
            while not reader.at_end():
                records.append(read_record(reader))
            logger.debug("Loaded %d %s records from %s", len(records), expected.name.lower(), self.source)
            return records
        finally:
            self._close_file(file)

    def load_meshes(self) -> List[Mesh]:
        """Decode every mesh of a .DAT file."""
        return self._load(FileType.MESH, Mesh.read)

    def load_materials(self) -> List[Material]:
        """Decode every material of a .MAT file."""
        return self._load(FileType.MATERIAL, Material.read)

    def load_pixelmaps(self) -> List[Pixelmap]:
        """Decode every pixelmap of a .PIX file."""
        return self._load(FileType.PIXELMAP, Pixelmap.read)

    def load_models(self) -> List[Model]:
        """Decode every actor model of an .ACT file."""
        return self._load(FileType.ACTOR, Model.read)
