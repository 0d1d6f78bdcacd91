"""Chunk meshing: visible voxel faces with per-corner ambient occlusion."""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Iterator, List, NamedTuple, Optional, Tuple

import numpy as np

from world.blocks import TRANSPARENT, Block
from world.chunks import NEIGHBOR_OFFSETS
from world.neighborhood import Neighborhood
from world.terrain import BlockVolume
from world.voxel_grid import FACE_DIRECTIONS

Vec3i = Tuple[int, int, int]


class Normal(IntEnum):
    POS_X = 0
    NEG_X = 1
    POS_Y = 2
    NEG_Y = 3
    POS_Z = 4
    NEG_Z = 5

    @property
    def direction(self) -> Vec3i:
        return FACE_DIRECTIONS[self]


# Two axes spanning each face.  Corner ``i`` steps ``-`` along the first axis
# for i in (0, 1) and ``-`` along the second for i in (0, 2).
PERPENDICULAR_AXES: Dict[Normal, Tuple[Normal, Normal]] = {
    Normal.POS_X: (Normal.NEG_Z, Normal.NEG_Y),
    Normal.POS_Y: (Normal.NEG_Z, Normal.POS_X),
    Normal.POS_Z: (Normal.POS_X, Normal.NEG_Y),
    Normal.NEG_X: (Normal.POS_Z, Normal.NEG_Y),
    Normal.NEG_Y: (Normal.NEG_Z, Normal.NEG_X),
    Normal.NEG_Z: (Normal.NEG_X, Normal.NEG_Y),
}

CORNER_SIGNS: Tuple[Tuple[int, int], ...] = ((-1, -1), (-1, 1), (1, -1), (1, 1))


class Quad(NamedTuple):
    block: Block
    normal: Normal
    pos: Vec3i
    # Per corner, ordered as CORNER_SIGNS.
    ambient_occlusion: Tuple[int, int, int, int]
    width: int = 1
    height: int = 1


@dataclass(frozen=True)
class Quads:
    """The mesh of one chunk."""

    quads: Tuple[Quad, ...] = ()

    def __len__(self) -> int:
        return len(self.quads)

    def __iter__(self) -> Iterator[Quad]:
        return iter(self.quads)


def ambient_occlusion(side0: bool, side1: bool, corner: bool) -> int:
    """Occlusion level 0-4 of one face corner from its three neighbors."""
    if side0 and side1:
        return 4
    if side0 or side1:
        return 3 if corner else 2
    return 1 if corner else 0


def _ambient_occlusion_array(side0: np.ndarray, side1: np.ndarray, corner: np.ndarray) -> np.ndarray:
    corner_i = corner.astype(np.uint8)
    return np.where(side0 & side1, 4, np.where(side0 | side1, 2 + corner_i, corner_i)).astype(np.uint8)


def corner_offsets(normal: Normal, corner: int) -> Tuple[Vec3i, Vec3i]:
    """Offsets from the voxel in front of a face to the two side samples of ``corner``."""
    a0, a1 = PERPENDICULAR_AXES[normal]
    s0, s1 = CORNER_SIGNS[corner]
    d0 = a0.direction
    d1 = a1.direction
    return (
        (d0[0] * s0, d0[1] * s0, d0[2] * s0),
        (d1[0] * s1, d1[1] * s1, d1[2] * s1),
    )


def _axis_slices(offset: int, size: int) -> Tuple[slice, slice]:
    """(source, destination) slices copying a neighbor's border into the padding."""
    if offset < 0:
        return slice(size - 1, size), slice(0, 1)
    if offset > 0:
        return slice(0, 1), slice(size + 1, size + 2)
    return slice(0, size), slice(1, size + 1)


def padded_blocks(blocks: Neighborhood[BlockVolume], size: int) -> np.ndarray:
    """Center volume surrounded by a one-voxel shell taken from the neighbors.

    Shell voxels of missing neighbors are :attr:`Block.AIR`.
    """
    padded = np.full((size + 2,) * 3, int(Block.AIR), dtype=np.uint8)
    for offset in NEIGHBOR_OFFSETS:
        chunk = blocks.get_chunk(offset)
        if chunk is None:
            continue
        sx, dx = _axis_slices(offset[0], size)
        sy, dy = _axis_slices(offset[1], size)
        sz, dz = _axis_slices(offset[2], size)
        padded[dx, dy, dz] = chunk.blocks[sx, sy, sz]
    return padded


class ChunkMesher:
    """Emit one unit quad per voxel face that borders a transparent voxel."""

    def __init__(self, transparent: Optional[np.ndarray] = None) -> None:
        self.transparent = TRANSPARENT if transparent is None else transparent

    def build_quads(self, blocks: Neighborhood[BlockVolume]) -> Quads:
        center = blocks.center
        if center is None:
            return Quads()
        size = center.size
        padded = padded_blocks(blocks, size)
        solid = ~self.transparent[padded]
        inner = padded[1:-1, 1:-1, 1:-1]
        occupied = inner != int(Block.AIR)

        quads: List[Quad] = []
        for normal in Normal:
            quads.extend(self._face_quads(normal, padded, solid, inner, occupied, size))
        return Quads(tuple(quads))

    def _face_quads(
        self,
        normal: Normal,
        padded: np.ndarray,
        solid: np.ndarray,
        inner: np.ndarray,
        occupied: np.ndarray,
        size: int,
    ) -> List[Quad]:
        nx, ny, nz = normal.direction
        adjacent = padded[1 + nx:size + 1 + nx, 1 + ny:size + 1 + ny, 1 + nz:size + 1 + nz]
        visible = occupied & self.transparent[adjacent]
        xs, ys, zs = np.nonzero(visible)
        if xs.size == 0:
            return []

        # Padded coordinates of the voxel layer in front of each face.
        fx = xs + 1 + nx
        fy = ys + 1 + ny
        fz = zs + 1 + nz
        occlusion = np.empty((xs.size, 4), dtype=np.uint8)
        for corner in range(4):
            (ax, ay, az), (bx, by, bz) = corner_offsets(normal, corner)
            side0 = solid[fx + ax, fy + ay, fz + az]
            side1 = solid[fx + bx, fy + by, fz + bz]
            diagonal = solid[fx + ax + bx, fy + ay + by, fz + az + bz]
            occlusion[:, corner] = _ambient_occlusion_array(side0, side1, diagonal)

        kinds = inner[xs, ys, zs].tolist()
        positions = zip(xs.tolist(), ys.tolist(), zs.tolist())
        return [
            Quad(Block(kind), normal, pos, tuple(ao))
            for kind, pos, ao in zip(kinds, positions, occlusion.tolist())
        ]


def mesh_chunk(blocks: Neighborhood[BlockVolume]) -> Quads:
    """Worker entry point: mesh a neighborhood snapshot."""
    return ChunkMesher().build_quads(blocks)
