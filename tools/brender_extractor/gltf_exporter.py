"""glTF exporter for decoded BRender meshes and actor models."""
import logging
import struct
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from pygltflib import (
    GLTF2,
    Buffer,
    BufferView,
    Accessor,
    Material as GLTFMaterial,
    Mesh as GLTFMesh,
    Primitive,
    Node,
    Scene,
    Asset,
)

from brender_actor import Model
from brender_mesh import Mesh

logger = logging.getLogger(__name__)

ARRAY_BUFFER = 34962
ELEMENT_ARRAY_BUFFER = 34963
FLOAT = 5126
UNSIGNED_SHORT = 5123
TRIANGLES = 4


class GLTFExporter:
    """Exports decoded meshes, optionally placed by a model, to GLB."""

    def __init__(self, meshes: Sequence[Mesh], model: Optional[Model] = None):
        """Initialize exporter.

        Args:
            meshes: Decoded meshes, usually from one .DAT file
            model: Optional actor model placing meshes by name
        """
        self.meshes = list(meshes)
        self.model = model

    def _compute_bounds(self, vertices: List[Tuple[float, float, float]]) -> Tuple[List[float], List[float]]:
        """Compute min/max bounds for vertices."""
        if not vertices:
            return [0, 0, 0], [0, 0, 0]

        axes = list(zip(*vertices))
        return [min(a) for a in axes], [max(a) for a in axes]

    def _material_name(self, mesh: Mesh, material_id: int) -> Optional[str]:
        """Resolve a face material id (1-based, 0 = none) to a name."""
        if 1 <= material_id <= len(mesh.material_names):
            return mesh.material_names[material_id - 1]
        return None

    def _add_view(self, gltf: GLTF2, blob: bytearray, data: bytes, target: Optional[int] = None) -> int:
        """Append data to the binary blob and return its buffer view index."""
        offset = len(blob)
        blob += data
        # Keep every view 4-byte aligned
        if len(blob) % 4 != 0:
            blob += b"\x00" * (4 - len(blob) % 4)
        gltf.bufferViews.append(
            BufferView(buffer=0, byteOffset=offset, byteLength=len(data), target=target)
        )
        return len(gltf.bufferViews) - 1

    def _add_accessor(self, gltf: GLTF2, **kwargs) -> int:
        gltf.accessors.append(Accessor(**kwargs))
        return len(gltf.accessors) - 1

    def _add_mesh(self, gltf: GLTF2, blob: bytearray, mesh: Mesh, materials: Dict[str, int]) -> int:
        """Add one mesh with a primitive per material and return its index."""
        vertex_data = b"".join(struct.pack("<fff", *v) for v in mesh.vertices)
        view = self._add_view(gltf, blob, vertex_data, ARRAY_BUFFER)
        min_bounds, max_bounds = self._compute_bounds(mesh.vertices)
        position = self._add_accessor(
            gltf,
            bufferView=view,
            componentType=FLOAT,
            count=len(mesh.vertices),
            type="VEC3",
            max=max_bounds,
            min=min_bounds,
        )

        attributes = {"POSITION": position}
        if mesh.uvcoords and len(mesh.uvcoords) == len(mesh.vertices):
            uv_data = b"".join(struct.pack("<ff", *uv) for uv in mesh.uvcoords)
            view = self._add_view(gltf, blob, uv_data, ARRAY_BUFFER)
            attributes["TEXCOORD_0"] = self._add_accessor(
                gltf, bufferView=view, componentType=FLOAT, count=len(mesh.uvcoords), type="VEC2"
            )

        primitives = []
        for material_id, faces in mesh.faces_by_material().items():
            indices = [i & 0xFFFF for face in faces for i in face.indices]
            index_data = struct.pack(f"<{len(indices)}H", *indices)
            view = self._add_view(gltf, blob, index_data, ELEMENT_ARRAY_BUFFER)
            accessor = self._add_accessor(
                gltf, bufferView=view, componentType=UNSIGNED_SHORT, count=len(indices), type="SCALAR"
            )

            material_name = self._material_name(mesh, material_id)
            material = None
            if material_name is not None:
                if material_name not in materials:
                    gltf.materials.append(GLTFMaterial(name=material_name))
                    materials[material_name] = len(gltf.materials) - 1
                material = materials[material_name]

            primitives.append(
                Primitive(attributes=dict(attributes), indices=accessor, material=material, mode=TRIANGLES)
            )

        gltf.meshes.append(GLTFMesh(name=mesh.name, primitives=primitives))
        return len(gltf.meshes) - 1

    def _find_mesh(self, mesh_indices: Dict[str, int], mesh_name: str) -> Optional[int]:
        """Look up a mesh by actor reference, with or without extension."""
        if mesh_name in mesh_indices:
            return mesh_indices[mesh_name]
        return mesh_indices.get(Path(mesh_name).stem)

    def export(self, output_path: str):
        """Export meshes (and model placement) to a glTF/GLB file.

        Args:
            output_path: Path for output .glb file

        Raises:
            ValueError: If no mesh has faces to export
        """
        drawable = [m for m in self.meshes if m.vertices and m.faces]
        if not drawable:
            raise ValueError("No mesh data to export")

        gltf = GLTF2()
        gltf.asset = Asset(version="2.0", generator="BRender Extractor")
        blob = bytearray()

        materials: Dict[str, int] = {}
        mesh_indices: Dict[str, int] = {}
        for mesh in drawable:
            mesh_indices[mesh.name] = self._add_mesh(gltf, blob, mesh, materials)

        if self.model is None:
            gltf.nodes = [Node(mesh=index, name=name) for name, index in mesh_indices.items()]
        else:
            for actor in self.model.parts.values():
                mesh_index = self._find_mesh(mesh_indices, actor.mesh_name) if actor.mesh_name else None
                if actor.mesh_name and mesh_index is None:
                    logger.warning("Actor %s references unknown mesh %s", actor.name, actor.mesh_name)
                gltf.nodes.append(
                    Node(
                        name=actor.name,
                        mesh=mesh_index,
                        matrix=actor.transform.to_column_major() if actor.transform else None,
                    )
                )

        gltf.scenes = [Scene(nodes=list(range(len(gltf.nodes))))]
        gltf.scene = 0

        gltf.buffers = [Buffer(byteLength=len(blob))]
        gltf.set_binary_blob(bytes(blob))
        gltf.save(output_path)
        logger.debug("Exported %d meshes, %d nodes to %s", len(gltf.meshes), len(gltf.nodes), output_path)
