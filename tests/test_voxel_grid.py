import numpy as np
import pytest

from world.blocks import Block
from world.chunks import ChunkPosition
from world.terrain import BlockVolume, HeightField
from world.voxel_grid import FACE_DIRECTIONS, VoxelGrid


def test_default_fill_and_at():
    grid = VoxelGrid.filled(4, 3, 0)
    for x in range(4):
        for y in range(4):
            for z in range(4):
                assert grid.at((x, y, z)) == 0


def test_set_and_at():
    grid = VoxelGrid.filled(4, 3, 0)
    grid.set((1, 2, 3), 5)
    assert grid.at((1, 2, 3)) == 5
    assert grid.array[1, 2, 3] == 5


def test_bounds_and_index_errors():
    grid = VoxelGrid.filled(2, 3, 0)
    assert grid.bounds() == ((0, 0, 0), (1, 1, 1))
    with pytest.raises(IndexError):
        grid.at((2, 0, 0))
    with pytest.raises(IndexError):
        grid.set((-1, 0, 0), 1)
    with pytest.raises(IndexError):
        grid.at((0, 0))


def test_rejects_non_cubic_shapes():
    with pytest.raises(ValueError):
        VoxelGrid(np.zeros((2, 3, 2)))
    with pytest.raises(ValueError):
        VoxelGrid(np.zeros(4))


def test_frozen_grid_rejects_writes():
    grid = VoxelGrid.filled(2, 3, 0).freeze()
    assert grid.frozen
    with pytest.raises(ValueError):
        grid.set((0, 0, 0), 1)


def test_face_directions_are_unit_axes():
    assert len(FACE_DIRECTIONS) == 6
    expected = {
        (1, 0, 0),
        (-1, 0, 0),
        (0, 1, 0),
        (0, -1, 0),
        (0, 0, 1),
        (0, 0, -1),
    }
    assert set(FACE_DIRECTIONS) == expected


def test_block_volume_is_immutable_snapshot():
    source = np.zeros((4, 4, 4), dtype=np.uint8)
    volume = BlockVolume.from_array(source)
    source[0, 0, 0] = int(Block.STONE)
    assert volume.at((0, 0, 0)) is Block.AIR
    with pytest.raises(ValueError):
        volume.blocks[0, 0, 0] = 1


def test_block_volume_classifies_against_height():
    # Every column sits at world height 0.5 * 10 = 5.
    heights = HeightField(VoxelGrid(np.full((8, 8), 0.5)))
    volume = BlockVolume.from_height_field(ChunkPosition(0, 0, 0), heights, amplitude=10.0)
    for y in range(8):
        kind = volume.at((3, y, 4))
        if y < 4:
            assert kind is Block.STONE
        elif y == 4:
            assert kind is Block.GRASS
        else:
            assert kind is Block.AIR


def test_block_volume_uses_chunk_vertical_offset():
    heights = HeightField(VoxelGrid(np.full((8, 8), 0.5)))
    above = BlockVolume.from_height_field(ChunkPosition(0, 1, 0), heights, amplitude=10.0)
    below = BlockVolume.from_height_field(ChunkPosition(0, -1, 0), heights, amplitude=10.0)
    assert not above.blocks.any()
    assert (below.blocks == int(Block.STONE)).all()
