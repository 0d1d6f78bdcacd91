"""Height fields, block volumes and the passes that derive them per chunk."""
from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from engine.ecs import System, World

from .blocks import Block
from .chunks import Chunk, ChunkPosition
from .noise import FractalNoise
from .voxel_grid import CHUNK_SIZE, VoxelGrid

logger = logging.getLogger(__name__)


class HeightField:
    """One noise sample per ``(x, z)`` column of a chunk."""

    __slots__ = ("grid",)

    def __init__(self, grid: VoxelGrid) -> None:
        if grid.dims != 2:
            raise ValueError("height fields are 2-dimensional")
        self.grid = grid.freeze()

    @property
    def size(self) -> int:
        return self.grid.size

    def at(self, coords: Sequence[int]) -> float:
        return float(self.grid.at(coords))

    @classmethod
    def from_noise(cls, position: ChunkPosition, noise: FractalNoise, size: int = CHUNK_SIZE) -> "HeightField":
        ox, _, oz = position.world_origin(size)
        xs = np.arange(ox, ox + size, dtype=np.float64)
        zs = np.arange(oz, oz + size, dtype=np.float64)
        return cls(VoxelGrid(noise.grid2(xs, zs)))


class BlockVolume:
    """Block kinds of every voxel in a chunk, indexed ``[x, y, z]``."""

    __slots__ = ("grid",)

    def __init__(self, grid: VoxelGrid) -> None:
        if grid.dims != 3:
            raise ValueError("block volumes are 3-dimensional")
        self.grid = grid.freeze()

    @property
    def size(self) -> int:
        return self.grid.size

    @property
    def blocks(self) -> np.ndarray:
        return self.grid.array

    def at(self, coords: Sequence[int]) -> Block:
        return Block(int(self.grid.at(coords)))

    @classmethod
    def filled(cls, block: Block, size: int = CHUNK_SIZE) -> "BlockVolume":
        return cls(VoxelGrid.filled(size, 3, int(block)))

    @classmethod
    def from_array(cls, blocks: np.ndarray) -> "BlockVolume":
        return cls(VoxelGrid(np.array(blocks, dtype=np.uint8)))

    @classmethod
    def from_height_field(
        cls,
        position: ChunkPosition,
        heights: HeightField,
        amplitude: float,
    ) -> "BlockVolume":
        """Classify voxels against the scaled column height.

        More than one unit below the surface is stone, the last unit below
        it is grass, everything else is air.
        """
        size = heights.size
        _, oy, _ = position.world_origin(size)
        surface = heights.grid.array * amplitude  # [x, z]
        world_y = np.arange(oy, oy + size, dtype=np.float64)
        depth = surface[:, np.newaxis, :] - world_y[np.newaxis, :, np.newaxis]  # [x, y, z]
        blocks = np.full((size, size, size), int(Block.AIR), dtype=np.uint8)
        blocks[depth > 0.0] = int(Block.GRASS)
        blocks[depth > 1.0] = int(Block.STONE)
        return cls(VoxelGrid(blocks))


class AssignHeightFields(System):
    """Chunks with a position but no height field get one."""

    def __init__(self, world: World, noise: FractalNoise, chunk_size: int = CHUNK_SIZE) -> None:
        super().__init__(world)
        self.noise = noise
        self.chunk_size = chunk_size

    def run(self) -> None:
        commands = self.world.commands
        for entity, (position, _) in self.world.query(ChunkPosition, Chunk, without=(HeightField,)):
            commands.insert(entity, HeightField.from_noise(position, self.noise, self.chunk_size))


class AssignBlockVolumes(System):
    """Chunks with a height field but no block volume get one."""

    def __init__(self, world: World, amplitude: float) -> None:
        super().__init__(world)
        self.amplitude = amplitude

    def run(self) -> None:
        commands = self.world.commands
        created = 0
        for entity, (position, heights) in self.world.query(
            ChunkPosition, HeightField, without=(BlockVolume,)
        ):
            commands.insert(entity, BlockVolume.from_height_field(position, heights, self.amplitude))
            created += 1
        if created:
            logger.debug("generated %d block volumes", created)
