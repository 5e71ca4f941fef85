"""Tests for BRender mesh decoding."""
import struct
import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from brender_errors import FormatViolation, TruncatedStream
from brender_material import Material
from brender_mesh import Face, Mesh
from brender_reader import ChunkReader
from brender_types import ChunkType
from builders import build_mesh, chunk, sentinel


def test_read_face():
    """Should decode the 9-byte face record."""
    reader = ChunkReader.from_bytes(bytes([0x00, 0x01, 0x00, 0x02, 0x00, 0x03, 0xba, 0xbe, 0xff]))
    face = Face.read(reader)

    assert face.indices == (1, 2, 3)
    assert face.flags == struct.unpack(">h", b"\xba\xbe")[0]
    assert face.unknown == -1
    assert face.material_id == 0


def test_read_mesh_without_materials():
    """A sentinel in place of the material list ends the mesh."""
    mesh = Mesh.read(ChunkReader.from_bytes(build_mesh()))

    assert mesh.name == "CAR"
    assert mesh.vertices == [(1.0, 2.0, 3.0)]
    assert mesh.uvcoords == [(0.5, 0.5)]
    assert len(mesh.faces) == 1
    assert mesh.material_names == []
    assert mesh.materials == {}
    assert mesh.faces[0].material_id == 0


def test_read_mesh_with_materials():
    """Face material ids are applied positionally."""
    vertices = [(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (1.0, 1.0, 0.0)]
    uvs = [(0.0, 0.0), (1.0, 0.0), (0.0, 1.0), (1.0, 1.0)]
    faces = [(0, 1, 2, 1, 0), (1, 3, 2, 2, 0)]
    data = build_mesh(
        name="eagle.dat",
        vertices=vertices,
        uvs=uvs,
        faces=faces,
        material_names=["body", "glass"],
        face_materials=[2, 1],
    )

    reader = ChunkReader.from_bytes(data)
    mesh = Mesh.read(reader)

    assert mesh.name == "EAGLE.DAT"
    assert len(mesh.vertices) == 4
    assert mesh.material_names == ["BODY", "GLASS"]
    assert [f.material_id for f in mesh.faces] == [2, 1]
    assert [f.flags for f in mesh.faces] == [1, 2]
    assert reader.at_end()


def test_read_consecutive_meshes():
    """The shared cursor ends exactly after each mesh."""
    data = build_mesh(name="ONE") + build_mesh(name="TWO", material_names=["M"])
    reader = ChunkReader.from_bytes(data)

    assert Mesh.read(reader).name == "ONE"
    assert Mesh.read(reader).name == "TWO"
    assert reader.at_end()


def test_read_mesh_empty_lists():
    data = build_mesh(vertices=[], uvs=[], faces=[])
    mesh = Mesh.read(ChunkReader.from_bytes(data))

    assert mesh.vertices == []
    assert mesh.faces == []


def test_read_mesh_wrong_first_chunk():
    data = struct.pack(">III", 0x17, 4, 0) + sentinel()
    with pytest.raises(FormatViolation) as exc_info:
        Mesh.read(ChunkReader.from_bytes(data))

    assert exc_info.value.expected == ChunkType.FILE_NAME
    assert exc_info.value.actual == ChunkType.VERTEX_LIST


def test_read_mesh_out_of_order():
    """UV list before vertex list is rejected."""
    data = struct.pack(">IIH", 0x36, 0, 0) + b"CAR\x00"
    data += struct.pack(">III", 0x18, 4, 0)
    with pytest.raises(FormatViolation, match="VERTEX_LIST"):
        Mesh.read(ChunkReader.from_bytes(data))


def test_read_mesh_unexpected_chunk_instead_of_material_list():
    data = build_mesh()
    # Replace the trailing sentinel with a foreign chunk
    data = data[:-8] + chunk(0x17, 4)
    with pytest.raises(FormatViolation) as exc_info:
        Mesh.read(ChunkReader.from_bytes(data))

    assert exc_info.value.expected == ChunkType.MATERIAL_LIST


def test_read_mesh_zero_type_with_size_is_not_sentinel():
    data = build_mesh()[:-8] + chunk(0, 4)
    with pytest.raises(FormatViolation):
        Mesh.read(ChunkReader.from_bytes(data))


def test_read_mesh_face_material_count_mismatch():
    """Face and face-material lists must have the same length."""
    data = build_mesh(
        faces=[(0, 0, 0, 1, 0), (0, 0, 0, 1, 0)],
        material_names=["BODY"],
        face_materials=[1],
    )
    with pytest.raises(FormatViolation, match="1 entries but the face list has 2"):
        Mesh.read(ChunkReader.from_bytes(data))


def test_read_mesh_bad_terminator():
    data = build_mesh(material_names=["BODY"])[:-8] + chunk(0x16, 0)
    with pytest.raises(FormatViolation, match="terminating chunk"):
        Mesh.read(ChunkReader.from_bytes(data))


@pytest.mark.parametrize("material_names", [None, ["BODY", "GLASS"]])
def test_read_mesh_truncated_at_every_prefix(material_names):
    """Any truncation fails cleanly with a decode error."""
    data = build_mesh(material_names=material_names)
    for cut in range(len(data)):
        with pytest.raises((TruncatedStream, FormatViolation)):
            Mesh.read(ChunkReader.from_bytes(data[:cut]))


def test_bind_materials():
    data = build_mesh(material_names=["BODY", "GLASS"], face_materials=[1])
    mesh = Mesh.read(ChunkReader.from_bytes(data))
    body = Material(name="BODY", pixelmap_name="BODY.PIX", rendertab_name="BODY.TAB")
    other = Material(name="OTHER")

    missing = mesh.bind_materials([body, other])

    assert missing == ["GLASS"]
    assert mesh.materials == {"BODY": body}


def test_faces_by_material():
    mesh = Mesh(faces=[
        Face(0, 1, 2, material_id=2),
        Face(1, 2, 3, material_id=1),
        Face(2, 3, 4, material_id=2),
    ])

    groups = mesh.faces_by_material()

    assert list(groups) == [2, 1]
    assert [f.v1 for f in groups[2]] == [0, 2]
