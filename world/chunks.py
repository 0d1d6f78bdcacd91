"""Chunk identities and the spatial index that maps positions to them."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import product
from typing import Dict, Iterator, Optional, Tuple

from engine.ecs import ON_INSERT, ON_REMOVE, Entity, World

logger = logging.getLogger(__name__)

Offset = Tuple[int, int, int]

# All 27 relative offsets of a neighborhood, including (0, 0, 0).
NEIGHBOR_OFFSETS: Tuple[Offset, ...] = tuple(product((-1, 0, 1), repeat=3))


@dataclass(frozen=True)
class ChunkPosition:
    x: int
    y: int
    z: int

    def offset(self, dx: int, dy: int, dz: int) -> "ChunkPosition":
        return ChunkPosition(self.x + dx, self.y + dy, self.z + dz)

    def neighborhood(self) -> Iterator[Tuple[Offset, "ChunkPosition"]]:
        """Yield ``(offset, position)`` for the 27 chunks around this one."""
        for off in NEIGHBOR_OFFSETS:
            yield off, self.offset(*off)

    def world_origin(self, chunk_size: int) -> Tuple[int, int, int]:
        return self.x * chunk_size, self.y * chunk_size, self.z * chunk_size

    def as_tuple(self) -> Tuple[int, int, int]:
        return self.x, self.y, self.z


class Chunk:
    """Marker for entities that are world chunks."""

    __slots__ = ()


class ChunkIndex:
    """Bidirectional map between chunk positions and chunk entities."""

    def __init__(self) -> None:
        self._entity_by_position: Dict[ChunkPosition, Entity] = {}
        self._position_by_entity: Dict[Entity, ChunkPosition] = {}

    def register(self, position: ChunkPosition, entity: Entity) -> None:
        previous_pos = self._position_by_entity.get(entity)
        if previous_pos is not None and previous_pos != position:
            self._entity_by_position.pop(previous_pos, None)
        stale = self._entity_by_position.get(position)
        if stale is not None and stale != entity:
            logger.warning("chunk position %s moved from entity %s to %s", position, stale, entity)
            self._position_by_entity.pop(stale, None)
        self._entity_by_position[position] = entity
        self._position_by_entity[entity] = position

    def unregister(self, entity: Entity) -> Optional[ChunkPosition]:
        position = self._position_by_entity.pop(entity, None)
        if position is not None and self._entity_by_position.get(position) == entity:
            del self._entity_by_position[position]
        return position

    def unregister_position(self, position: ChunkPosition) -> Optional[Entity]:
        entity = self._entity_by_position.pop(position, None)
        if entity is not None:
            self._position_by_entity.pop(entity, None)
        return entity

    def lookup_by_position(self, position: ChunkPosition) -> Optional[Entity]:
        return self._entity_by_position.get(position)

    def lookup_by_id(self, entity: Entity) -> Optional[ChunkPosition]:
        return self._position_by_entity.get(entity)

    def positions(self) -> Iterator[ChunkPosition]:
        return iter(list(self._entity_by_position))

    def __contains__(self, position: ChunkPosition) -> bool:
        return position in self._entity_by_position

    def __len__(self) -> int:
        return len(self._entity_by_position)

    # ------------------------------------------------------------------
    def install(self, world: World) -> "ChunkIndex":
        """Keep this index in lockstep with ``ChunkPosition`` components."""
        world.observe(ON_INSERT, ChunkPosition, self._on_position_inserted)
        world.observe(ON_REMOVE, ChunkPosition, self._on_position_removed)
        return self

    def _on_position_inserted(self, world: World, entity: Entity) -> None:
        position = world.get_component(entity, ChunkPosition)
        if position is None:
            logger.warning("failed to get chunk position for entity %s", entity)
            return
        self.register(position, entity)

    def _on_position_removed(self, world: World, entity: Entity) -> None:
        position = world.get_component(entity, ChunkPosition)
        if position is None:
            logger.warning("failed to get chunk position for entity %s", entity)
            return
        if self.lookup_by_position(position) == entity:
            self.unregister_position(position)
        else:
            self.unregister(entity)
