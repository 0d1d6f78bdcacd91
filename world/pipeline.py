"""Terrain generation pipeline: noise → height field → blocks → neighborhoods → mesh."""
from __future__ import annotations

import logging
import time
from concurrent.futures import Executor
from typing import List, Optional

from engine.compute import ComputeTasks, PollComputeTasks
from engine.config import WorldSettings
from engine.ecs import Entity, Schedule, World
from render.chunk_mesher import Quads
from render.meshing import AssignQuads, QuadCount

from .chunks import Chunk, ChunkIndex, ChunkPosition
from .neighborhood import NeighborhoodTracker
from .noise import FractalNoise
from .terrain import AssignBlockVolumes, AssignHeightFields, BlockVolume

logger = logging.getLogger(__name__)


class TerrainPipeline:
    """Owns the world, its registries and the per-tick pass order.

    Each :meth:`tick` runs terrain generation, neighbor propagation, mesh
    scheduling and result polling, in that order.  Nothing here blocks on
    a background computation.
    """

    def __init__(self, settings: Optional[WorldSettings] = None, *, executor: Optional[Executor] = None) -> None:
        self.settings = settings or WorldSettings.from_config()
        self.world = World()
        self.index = ChunkIndex().install(self.world)
        self.noise = FractalNoise(self.settings.seed, self.settings.noise_layers, self.settings.noise_scale)
        self.blocks = NeighborhoodTracker(self.world, self.index, BlockVolume).install()
        self.mesh_tasks: ComputeTasks[Quads] = ComputeTasks(
            self.world, Quads, executor=executor, max_workers=self.settings.workers
        )
        self.quad_count = QuadCount().install(self.world)

        self.schedule = Schedule(self.world)
        self.schedule.add_systems(
            AssignHeightFields(self.world, self.noise, self.settings.chunk_size),
            AssignBlockVolumes(self.world, self.settings.amplitude),
            *self.blocks.systems(),
            AssignQuads(self.world, self.mesh_tasks),
            PollComputeTasks(self.world, self.mesh_tasks),
        )
        self.ticks = 0
        self._closed = False
        logger.info(
            "terrain pipeline started (seed=%#x, chunk=%d, workers=%d)",
            self.settings.seed,
            self.settings.chunk_size,
            self.settings.workers,
        )

    # -- chunk lifecycle ---------------------------------------------------
    def spawn_chunk(self, position: ChunkPosition) -> Entity:
        existing = self.index.lookup_by_position(position)
        if existing is not None:
            return existing
        return self.world.spawn(Chunk(), position)

    def spawn_region(self, radius: int, center: ChunkPosition = ChunkPosition(0, 0, 0)) -> List[Entity]:
        """Spawn the cube of chunks within ``radius`` of ``center`` on every axis."""
        span = range(-radius, radius + 1)
        return [
            self.spawn_chunk(center.offset(dx, dy, dz))
            for dx in span
            for dy in span
            for dz in span
        ]

    def despawn_chunk(self, position: ChunkPosition) -> bool:
        entity = self.index.lookup_by_position(position)
        if entity is None:
            return False
        self.world.despawn(entity)
        return True

    def entity_at(self, position: ChunkPosition) -> Optional[Entity]:
        return self.index.lookup_by_position(position)

    def quads_at(self, position: ChunkPosition) -> Optional[Quads]:
        entity = self.index.lookup_by_position(position)
        return None if entity is None else self.world.get_component(entity, Quads)

    # -- driving -----------------------------------------------------------
    def tick(self) -> None:
        if self._closed:
            raise RuntimeError("pipeline is closed")
        self.schedule.run()
        self.ticks += 1

    @property
    def idle(self) -> bool:
        """True when no chunk has outstanding work of any kind."""
        if len(self.mesh_tasks) or not self.blocks.idle or len(self.world.commands):
            return False
        for _ in self.world.entities_with(Chunk, without=(BlockVolume,)):
            return False
        return True

    def run_until_idle(self, timeout: float = 60.0, poll_interval: float = 0.002) -> int:
        """Tick until :attr:`idle`; returns the number of ticks run."""
        deadline = time.monotonic() + timeout
        ran = 0
        while True:
            self.tick()
            ran += 1
            if self.idle:
                return ran
            if time.monotonic() > deadline:
                raise TimeoutError(
                    f"pipeline not idle after {timeout:.1f}s ({len(self.mesh_tasks)} mesh tasks in flight)"
                )
            if len(self.mesh_tasks):
                time.sleep(poll_interval)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.mesh_tasks.shutdown()
        logger.info("terrain pipeline stopped after %d ticks", self.ticks)

    def __enter__(self) -> "TerrainPipeline":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
