"""Passes that keep each chunk's ``Quads`` in step with its block neighborhood."""
from __future__ import annotations

import logging
from typing import Callable

from engine.compute import ComputeTasks
from engine.ecs import ON_INSERT, ON_REMOVE, ON_REPLACE, Entity, System, World
from world.chunks import Chunk
from world.neighborhood import Neighborhood
from world.terrain import BlockVolume

from .chunk_mesher import Quads, mesh_chunk

logger = logging.getLogger(__name__)


class QuadCount:
    """Running total of quads across every chunk's installed mesh."""

    def __init__(self) -> None:
        self.value = 0

    def install(self, world: World) -> "QuadCount":
        world.observe(ON_REPLACE, Quads, self._on_release)
        world.observe(ON_REMOVE, Quads, self._on_release)
        world.observe(ON_INSERT, Quads, self._on_insert)
        return self

    def _on_insert(self, world: World, entity: Entity) -> None:
        quads = world.get_component(entity, Quads)
        if quads is not None:
            self.value += len(quads)

    def _on_release(self, world: World, entity: Entity) -> None:
        quads = world.get_component(entity, Quads)
        if quads is not None:
            self.value -= len(quads)

    def __int__(self) -> int:
        return self.value


class AssignQuads(System):
    """Schedules a re-mesh whenever a chunk's block neighborhood changes.

    The worker gets a snapshot of the slot list, so later cache updates
    cannot race with the computation.
    """

    def __init__(
        self,
        world: World,
        tasks: ComputeTasks[Quads],
        mesher: Callable[[Neighborhood[BlockVolume]], Quads] = mesh_chunk,
    ) -> None:
        super().__init__(world)
        self.tasks = tasks
        self.mesher = mesher
        self.cache_kind = Neighborhood[BlockVolume]

    def run(self) -> None:
        spawned = 0
        for entity in self.changed(self.cache_kind):
            if not self.world.has_component(entity, Chunk):
                continue
            cache = self.world.get_component(entity, self.cache_kind)
            if cache is None:
                continue
            self.tasks.spawn(entity, self.mesher, cache.snapshot())
            spawned += 1
        if spawned:
            logger.debug("scheduled %d mesh tasks (%d in flight)", spawned, len(self.tasks))
