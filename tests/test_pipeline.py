import pytest

from engine.compute import ComputeInProgress
from engine.config import WorldSettings
from render.chunk_mesher import Quads, mesh_chunk
from world.chunks import ChunkPosition
from world.neighborhood import FullNeighborhood, Neighborhood
from world.pipeline import TerrainPipeline
from world.terrain import BlockVolume, HeightField

ORIGIN = ChunkPosition(0, 0, 0)


def _total_quads(pipeline):
    return sum(len(quads) for quads in pipeline.world.components_of_type(Quads).values())


def test_region_generates_blocks_and_meshes(pipeline):
    entities = pipeline.spawn_region(2)
    assert len(entities) == 125
    pipeline.run_until_idle(timeout=120.0)

    world = pipeline.world
    for entity in entities:
        assert world.has_component(entity, HeightField)
        assert world.has_component(entity, BlockVolume)
        assert world.has_component(entity, Quads)
        assert not world.has_component(entity, ComputeInProgress[Quads])

    center = pipeline.entity_at(ORIGIN)
    assert world.has_component(center, FullNeighborhood[BlockVolume])
    edge = pipeline.entity_at(ChunkPosition(2, 0, 0))
    assert not world.has_component(edge, FullNeighborhood[BlockVolume])
    assert world.has_component(edge, Neighborhood[BlockVolume])

    assert _total_quads(pipeline) > 0
    assert len(pipeline.quads_at(ORIGIN)) > 0
    assert pipeline.quad_count.value == _total_quads(pipeline)
    assert pipeline.idle


def test_surface_lies_inside_the_amplitude_band(pipeline):
    pipeline.spawn_region(2)
    pipeline.run_until_idle(timeout=120.0)
    below = pipeline.blocks.published(pipeline.entity_at(ChunkPosition(0, -2, 0)))
    above = pipeline.blocks.published(pipeline.entity_at(ChunkPosition(0, 1, 0)))
    assert below.blocks.all()
    assert not above.blocks.any()
    assert len(pipeline.quads_at(ChunkPosition(1, 1, 1))) == 0


def test_installed_mesh_matches_full_neighborhood(pipeline):
    pipeline.spawn_region(1)
    pipeline.run_until_idle(timeout=120.0)
    full = pipeline.blocks.full_neighborhood(pipeline.entity_at(ORIGIN))
    assert full is not None
    expected = mesh_chunk(Neighborhood(full.chunks))
    assert pipeline.quads_at(ORIGIN) == expected


def test_despawn_updates_neighbors_and_quad_count(pipeline):
    pipeline.spawn_region(1)
    pipeline.run_until_idle(timeout=120.0)

    assert pipeline.despawn_chunk(ChunkPosition(0, -1, 0))
    assert not pipeline.despawn_chunk(ChunkPosition(9, 9, 9))
    pipeline.run_until_idle(timeout=120.0)

    center = pipeline.entity_at(ORIGIN)
    assert pipeline.entity_at(ChunkPosition(0, -1, 0)) is None
    assert pipeline.blocks.full_neighborhood(center) is None
    assert pipeline.blocks.neighborhood(center).get_chunk((0, -1, 0)) is None
    assert pipeline.quad_count.value == _total_quads(pipeline)
    assert pipeline.quads_at(ORIGIN) == mesh_chunk(pipeline.blocks.neighborhood(center))


def test_respawned_chunk_restores_full_neighborhood(pipeline):
    pipeline.spawn_region(1)
    pipeline.run_until_idle(timeout=120.0)
    pipeline.despawn_chunk(ChunkPosition(1, 1, 1))
    pipeline.run_until_idle(timeout=120.0)
    pipeline.spawn_chunk(ChunkPosition(1, 1, 1))
    pipeline.run_until_idle(timeout=120.0)
    assert pipeline.blocks.full_neighborhood(pipeline.entity_at(ORIGIN)) is not None
    assert pipeline.quad_count.value == _total_quads(pipeline)


def test_spawn_chunk_is_idempotent(pipeline):
    first = pipeline.spawn_chunk(ORIGIN)
    assert pipeline.spawn_chunk(ORIGIN) == first
    assert len(pipeline.index) == 1


def test_same_seed_generates_same_blocks():
    settings = WorldSettings(seed=1234, chunk_size=16, spawn_radius=0, workers=1)
    volumes = []
    for _ in range(2):
        with TerrainPipeline(settings) as pipeline:
            pipeline.spawn_chunk(ORIGIN)
            pipeline.run_until_idle(timeout=60.0)
            volumes.append(pipeline.blocks.published(pipeline.entity_at(ORIGIN)).blocks.copy())
    assert (volumes[0] == volumes[1]).all()
    assert volumes[0].shape == (16, 16, 16)


def test_closed_pipeline_refuses_to_tick(settings):
    pipeline = TerrainPipeline(settings)
    pipeline.close()
    pipeline.close()
    with pytest.raises(RuntimeError):
        pipeline.tick()
