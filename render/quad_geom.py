"""Turn a chunk's quads into Panda3D geometry shaded by ambient occlusion."""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from panda3d.core import (
    CullFaceAttrib,
    Geom,
    GeomNode,
    GeomTriangles,
    GeomVertexData,
    GeomVertexFormat,
    GeomVertexWriter,
    NodePath,
    RenderState,
    TransparencyAttrib,
)

from world.blocks import BLOCK_DEFS, Block, BlockRegistry
from world.chunks import ChunkPosition
from world.voxel_grid import CHUNK_SIZE

from .chunk_mesher import CORNER_SIGNS, Normal, Quad, corner_offsets

Vec3f = Tuple[float, float, float]


def _cross(a, b) -> Tuple[int, int, int]:
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def _face_layout(normal: Normal) -> Tuple[Tuple[Vec3f, ...], Tuple[int, int, int, int]]:
    """Corner vertex offsets from the voxel origin and a counter-clockwise ring."""
    n = normal.direction
    corners: List[Vec3f] = []
    for corner in range(len(CORNER_SIGNS)):
        d0, d1 = corner_offsets(normal, corner)
        corners.append(tuple(0.5 + 0.5 * (n[i] + d0[i] + d1[i]) for i in range(3)))
    # Corners in CORNER_SIGNS order walk (-,-) (+,-) (+,+) (-,+) as 0, 2, 3, 1.
    first_axis, second_axis = corner_offsets(normal, 3)
    facing = sum(c * v for c, v in zip(_cross(first_axis, second_axis), n))
    ring = (0, 2, 3, 1) if facing > 0 else (0, 1, 3, 2)
    return tuple(corners), ring


_FACE_LAYOUTS = {normal: _face_layout(normal) for normal in Normal}


class QuadGeomBuilder:
    """Builds one ``GeomNode`` per chunk from its :class:`Quad` list."""

    def __init__(
        self,
        block_registry: Optional[BlockRegistry] = None,
        cube_size: float = 1.0,
        ao_strength: float = 0.2,
    ) -> None:
        self.block_registry = block_registry or BLOCK_DEFS
        self._scale = float(cube_size) if cube_size else 1.0
        self.ao_strength = float(ao_strength)
        self._format = GeomVertexFormat.getV3n3c4()
        self._render_state = RenderState.make(
            CullFaceAttrib.make(CullFaceAttrib.MCullClockwise),
            TransparencyAttrib.make(TransparencyAttrib.M_none),
        )
        self._color_cache: Dict[Block, Tuple[float, float, float]] = {}

    def build_geomnode(
        self,
        quads: Iterable[Quad],
        chunk_position: ChunkPosition,
        chunk_size: int = CHUNK_SIZE,
    ) -> NodePath:
        """Emit a ``GeomNode`` with four vertices and two triangles per quad."""
        geom_node = GeomNode(f"chunk{chunk_position.as_tuple()}")
        vdata = GeomVertexData("chunk", self._format, Geom.UHStatic)
        vwriter = GeomVertexWriter(vdata, "vertex")
        nwriter = GeomVertexWriter(vdata, "normal")
        cwriter = GeomVertexWriter(vdata, "color")
        prim = GeomTriangles(Geom.UHStatic)

        vertex_index = 0
        for quad in quads:
            vertex_index = self._write_face(quad, vwriter, nwriter, cwriter, prim, vertex_index)

        node = NodePath(geom_node)
        origin = chunk_position.world_origin(chunk_size)
        node.setPos(*(float(c) * self._scale for c in origin))
        if vertex_index == 0:
            return node

        geom = Geom(vdata)
        geom.addPrimitive(prim)
        geom_node.addGeom(geom)
        node.setState(self._render_state)
        return node

    def shade(self, ao: int) -> float:
        return max(0.0, 1.0 - self.ao_strength * ao)

    def _block_color(self, block: Block) -> Tuple[float, float, float]:
        color = self._color_cache.get(block)
        if color is None:
            block_def = self.block_registry.get(block)
            color = block_def.color if block_def is not None else (1.0, 0.0, 1.0)
            self._color_cache[block] = color
        return color

    def _write_face(
        self,
        quad: Quad,
        vwriter: GeomVertexWriter,
        nwriter: GeomVertexWriter,
        cwriter: GeomVertexWriter,
        prim: GeomTriangles,
        vertex_index: int,
    ) -> int:
        corners, ring = _FACE_LAYOUTS[quad.normal]
        normal = quad.normal.direction
        r, g, b = self._block_color(quad.block)
        px, py, pz = quad.pos
        for corner in ring:
            cx, cy, cz = corners[corner]
            vwriter.addData3((px + cx) * self._scale, (py + cy) * self._scale, (pz + cz) * self._scale)
            nwriter.addData3(*normal)
            k = self.shade(quad.ambient_occlusion[corner])
            cwriter.addData4(r * k, g * k, b * k, 1.0)

        ao = [quad.ambient_occlusion[corner] for corner in ring]
        # Split along the diagonal whose ends are less occluded.
        if ao[0] + ao[2] > ao[1] + ao[3]:
            prim.addVertices(vertex_index + 1, vertex_index + 2, vertex_index + 3)
            prim.closePrimitive()
            prim.addVertices(vertex_index + 1, vertex_index + 3, vertex_index)
            prim.closePrimitive()
        else:
            prim.addVertices(vertex_index, vertex_index + 1, vertex_index + 2)
            prim.closePrimitive()
            prim.addVertices(vertex_index, vertex_index + 2, vertex_index + 3)
            prim.closePrimitive()
        return vertex_index + 4
