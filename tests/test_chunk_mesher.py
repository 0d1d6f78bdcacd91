import numpy as np
from panda3d.core import GeomVertexReader

from render.chunk_mesher import ChunkMesher, Normal, ambient_occlusion, mesh_chunk
from render.quad_geom import QuadGeomBuilder
from world.blocks import Block
from world.chunks import NEIGHBOR_OFFSETS, ChunkPosition
from world.neighborhood import Neighborhood
from world.terrain import BlockVolume


def _volume(size, solids=(), fill=Block.AIR):
    blocks = np.full((size, size, size), int(fill), dtype=np.uint8)
    for x, y, z, kind in solids:
        blocks[x, y, z] = int(kind)
    return BlockVolume.from_array(blocks)


def _alone(volume):
    cache = Neighborhood()
    cache.put_chunk((0, 0, 0), volume)
    return cache


def _collect_triangles(node):
    geom_node = node.node()
    tri_count = 0
    for i in range(geom_node.getNumGeoms()):
        geom = geom_node.getGeom(i)
        for p in range(geom.getNumPrimitives()):
            prim = geom.getPrimitive(p)
            tri_count += prim.getNumPrimitives()
    return tri_count


def test_single_cube_produces_six_quads():
    quads = mesh_chunk(_alone(_volume(4, [(1, 1, 1, Block.STONE)])))
    assert len(quads) == 6
    assert {q.normal for q in quads} == set(Normal)
    for quad in quads:
        assert quad.pos == (1, 1, 1)
        assert quad.block is Block.STONE
        assert quad.ambient_occlusion == (0, 0, 0, 0)


def test_solid_three_cube_only_shell():
    solids = [(x, y, z, Block.GRASS) for x in range(1, 4) for y in range(1, 4) for z in range(1, 4)]
    quads = mesh_chunk(_alone(_volume(5, solids)))
    # Surface area of 3x3x3 cube: 6 faces * 3*3 quads each
    assert len(quads) == 54


def test_hole_in_solid_world_has_six_faces():
    solid = _volume(32, fill=Block.STONE)
    blocks = solid.blocks.copy()
    blocks[16, 16, 16] = int(Block.AIR)
    cache = Neighborhood([solid] * 27)
    cache.put_chunk((0, 0, 0), BlockVolume.from_array(blocks))

    quads = mesh_chunk(cache)
    assert len(quads) == 6
    expected = {
        Normal.NEG_X: (17, 16, 16),
        Normal.POS_X: (15, 16, 16),
        Normal.NEG_Y: (16, 17, 16),
        Normal.POS_Y: (16, 15, 16),
        Normal.NEG_Z: (16, 16, 17),
        Normal.POS_Z: (16, 16, 15),
    }
    assert {q.normal: q.pos for q in quads} == expected
    # Every face inside the hole is fully enclosed.
    assert all(q.ambient_occlusion == (4, 4, 4, 4) for q in quads)


def test_faces_against_solid_neighbor_are_hidden():
    center = _volume(4, [(3, 1, 1, Block.STONE)])
    cache = _alone(center)
    assert len(mesh_chunk(cache)) == 6

    cache.put_chunk((1, 0, 0), _volume(4, fill=Block.STONE))
    quads = mesh_chunk(cache)
    assert len(quads) == 5
    assert Normal.POS_X not in {q.normal for q in quads}


def test_missing_neighbors_count_as_air():
    full = _volume(4, fill=Block.STONE)
    quads = mesh_chunk(_alone(full))
    assert len(quads) == 6 * 16

    cache = Neighborhood([full] * 27)
    assert len(mesh_chunk(cache)) == 0
    for offset in NEIGHBOR_OFFSETS:
        if offset != (0, 0, 0):
            cache.put_chunk(offset, None)
    assert len(mesh_chunk(cache)) == 6 * 16


def test_empty_or_missing_center_yields_nothing():
    assert len(mesh_chunk(Neighborhood())) == 0
    assert len(mesh_chunk(_alone(_volume(4)))) == 0


def test_ambient_occlusion_table():
    assert ambient_occlusion(True, True, False) == 4
    assert ambient_occlusion(True, True, True) == 4
    assert ambient_occlusion(True, False, True) == 3
    assert ambient_occlusion(False, True, False) == 2
    assert ambient_occlusion(False, False, True) == 1
    assert ambient_occlusion(False, False, False) == 0


def test_block_beside_face_darkens_two_corners():
    floor = [(x, 0, z, Block.STONE) for x in range(4) for z in range(4)]
    volume = _volume(4, floor + [(1, 1, 1, Block.STONE)])
    tops = {q.pos: q for q in mesh_chunk(_alone(volume)) if q.normal is Normal.POS_Y}
    assert sorted(tops[(2, 0, 1)].ambient_occlusion) == [0, 0, 2, 2]
    assert tops[(3, 0, 3)].ambient_occlusion == (0, 0, 0, 0)
    assert (1, 0, 1) not in tops


def test_custom_transparency_table():
    transparent = np.array([True, False, True])
    quads = ChunkMesher(transparent).build_quads(
        _alone(_volume(4, [(1, 1, 1, Block.STONE), (2, 1, 1, Block.GRASS)]))
    )
    stone = [q for q in quads if q.block is Block.STONE]
    grass = [q for q in quads if q.block is Block.GRASS]
    assert len(stone) == 6
    assert len(grass) == 5


def test_geom_has_two_triangles_per_quad():
    builder = QuadGeomBuilder()
    quads = mesh_chunk(_alone(_volume(4, [(1, 1, 1, Block.STONE)])))
    node = builder.build_geomnode(quads, ChunkPosition(1, 0, -1), 4)
    assert _collect_triangles(node) == 12
    assert node.node().getGeom(0).getVertexData().getNumRows() == 24
    assert tuple(node.getPos()) == (4.0, 0.0, -4.0)


def test_geom_triangles_face_along_normals():
    floor = [(x, 0, z, Block.STONE) for x in range(4) for z in range(4)]
    quads = mesh_chunk(_alone(_volume(4, floor + [(1, 1, 1, Block.GRASS)])))
    node = QuadGeomBuilder().build_geomnode(quads, ChunkPosition(0, 0, 0), 4)
    geom = node.node().getGeom(0)
    vdata = geom.getVertexData()
    vertices = GeomVertexReader(vdata, "vertex")
    normals = GeomVertexReader(vdata, "normal")
    prim = geom.getPrimitive(0)
    for t in range(prim.getNumPrimitives()):
        start = prim.getPrimitiveStart(t)
        corners = []
        for k in range(3):
            vertices.setRow(prim.getVertex(start + k))
            corners.append(tuple(vertices.getData3()))
        normals.setRow(prim.getVertex(start))
        n = tuple(normals.getData3())
        e1 = [corners[1][i] - corners[0][i] for i in range(3)]
        e2 = [corners[2][i] - corners[0][i] for i in range(3)]
        cross = (
            e1[1] * e2[2] - e1[2] * e2[1],
            e1[2] * e2[0] - e1[0] * e2[2],
            e1[0] * e2[1] - e1[1] * e2[0],
        )
        assert sum(c * v for c, v in zip(cross, n)) > 0


def test_empty_mesh_builds_empty_node():
    node = QuadGeomBuilder().build_geomnode([], ChunkPosition(0, 0, 0))
    assert node.node().getNumGeoms() == 0
