"""Tests for whole-file resource loading."""
import io
import os
import tempfile
import pytest
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from brender_errors import FormatViolation, TruncatedStream
from brender_resource import ResourceFile
from brender_types import FileType
from builders import (
    actor_name,
    build_material,
    build_mesh,
    build_pixelmap,
    chunk,
    file_header,
    mesh_ref,
    pipe_stream,
    sentinel,
)


def test_load_meshes_from_file_object():
    data = file_header(0xFACE) + build_mesh(name="BODY") + build_mesh(name="WHEEL", material_names=["TYRE"])
    meshes = ResourceFile(io.BytesIO(data)).load_meshes()

    assert [m.name for m in meshes] == ["BODY", "WHEEL"]
    assert meshes[1].material_names == ["TYRE"]


def test_load_meshes_from_non_seekable_stream():
    """Streams that cannot rewind are read once from their current position."""
    data = file_header(0xFACE) + build_mesh(name="BODY") + build_mesh(name="WHEEL")
    meshes = ResourceFile(pipe_stream(data)).load_meshes()

    assert [m.name for m in meshes] == ["BODY", "WHEEL"]


def test_load_meshes_from_path():
    data = file_header(0xFACE) + build_mesh(name="CAR")

    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "CAR.DAT")
        with open(path, "wb") as f:
            f.write(data)

        meshes = ResourceFile(path).load_meshes()

    assert len(meshes) == 1
    assert meshes[0].name == "CAR"


def test_load_rewinds_file_object():
    """A caller's file object is read from the start and left open."""
    file = io.BytesIO(file_header(0xFACE) + build_mesh())
    file.seek(10)

    loader = ResourceFile(file)
    assert len(loader.load_meshes()) == 1
    assert len(loader.load_meshes()) == 1
    assert not file.closed


def test_load_header_only_file():
    assert ResourceFile(io.BytesIO(file_header(0x5))).load_materials() == []


def test_load_materials():
    data = (
        file_header(0x5)
        + build_material(name="BODY", pixelmap="BODY.PIX", rendertab="BODY.TAB")
        + build_material(name="FLAT")
    )
    materials = ResourceFile(io.BytesIO(data)).load_materials()

    assert [m.name for m in materials] == ["BODY", "FLAT"]
    assert materials[0].pixelmap_name == "BODY.PIX"


def test_load_pixelmaps():
    data = file_header(0x2) + build_pixelmap(name="A") + build_pixelmap(name="B", units=2, unit_bytes=2)
    pixelmaps = ResourceFile(io.BytesIO(data)).load_pixelmaps()

    assert [p.name for p in pixelmaps] == ["A", "B"]
    assert len(pixelmaps[1].payload) == 4


def test_load_models():
    data = file_header(0x1) + actor_name("CAR") + mesh_ref("CAR") + sentinel()
    models = ResourceFile(io.BytesIO(data)).load_models()

    assert len(models) == 1
    assert models[0].parts["CAR"].mesh_name == "CAR"


def test_read_header():
    header = ResourceFile(io.BytesIO(file_header(0x2) + b"junk")).read_header()

    assert header.file_type == FileType.PIXELMAP


def test_load_wrong_file_type():
    """Loading materials from a mesh file is rejected."""
    data = file_header(0xFACE) + build_mesh()
    with pytest.raises(FormatViolation, match="Expected material file"):
        ResourceFile(io.BytesIO(data)).load_materials()


def test_load_missing_file_header():
    with pytest.raises(FormatViolation):
        ResourceFile(io.BytesIO(build_mesh())).load_meshes()


def test_load_error_propagates():
    """A broken record aborts the whole load."""
    data = file_header(0xFACE) + build_mesh(name="GOOD") + build_mesh(name="BAD")[:-4]
    with pytest.raises(TruncatedStream):
        ResourceFile(io.BytesIO(data)).load_meshes()


def test_load_trailing_garbage():
    data = file_header(0x2) + build_pixelmap() + chunk(0x99, 0)
    with pytest.raises(FormatViolation):
        ResourceFile(io.BytesIO(data)).load_pixelmaps()


def test_bind_materials_across_files():
    meshes = ResourceFile(io.BytesIO(
        file_header(0xFACE) + build_mesh(material_names=["BODY", "GLASS"], face_materials=[2])
    )).load_meshes()
    materials = ResourceFile(io.BytesIO(
        file_header(0x5) + build_material(name="body") + build_material(name="glass")
    )).load_materials()

    assert meshes[0].bind_materials(materials) == []
    assert set(meshes[0].materials) == {"BODY", "GLASS"}
