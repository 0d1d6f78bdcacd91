import pytest

from engine.config import WorldSettings
from world.pipeline import TerrainPipeline


@pytest.fixture
def settings():
    return WorldSettings(seed=0xDEADBEEF, chunk_size=32, amplitude=24.0, spawn_radius=2, workers=4)


@pytest.fixture
def pipeline(settings):
    with TerrainPipeline(settings) as running:
        yield running
