"""Per-chunk caches of a datum published by the chunk and its 26 neighbors.

For a tracked type ``T`` (for example :class:`world.terrain.BlockVolume`)
every chunk that publishes a ``T`` owns a ``Neighborhood[T]``: 27 slots, one
per offset in ``{-1, 0, 1}**3``, each holding the shared ``T`` of the chunk
at that offset or ``None``.  Published values are immutable, so slots hold
plain references and are never copied.

Slot updates are driven by two FIFO queues drained once per pass:

* :class:`NewNeighborhood`: a chunk needs its cache built from scratch;
* :class:`NeighborUpdate`: a chunk's ``T`` was (re)published or withdrawn
  and every existing neighbor must overwrite the slot that points back at
  it.  Overwrites from different sources touch different slots, so the
  order of events from different chunks does not matter.

``FullNeighborhood[T]`` is attached while all 27 slots are populated.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Generic, Hashable, List, Optional, Sequence, Tuple, Type, TypeVar

from engine.ecs import ON_REMOVE, Entity, System, World
from engine.event_bus import EventQueue

from .chunks import NEIGHBOR_OFFSETS, ChunkIndex, ChunkPosition, Offset

logger = logging.getLogger(__name__)

T = TypeVar("T")

NEIGHBORHOOD_SLOTS = 27


def slot_index(offset: Sequence[int]) -> int:
    """Slot of a relative offset ``(x, y, z)`` with each axis in ``{-1, 0, 1}``."""
    x, y, z = offset
    if not (-1 <= x <= 1 and -1 <= y <= 1 and -1 <= z <= 1):
        raise ValueError(f"neighborhood offset {tuple(offset)} out of range")
    return (x + 1) + 3 * (y + 1) + 9 * (z + 1)


def _split_position(coord: int, size: int) -> Tuple[int, int]:
    """Map a subject-local coordinate to (neighbor axis offset, neighbor-local coordinate)."""
    if coord < 0:
        axis = -1
    elif coord < size:
        axis = 0
    else:
        axis = 1
    return axis, coord % size


def _resolve(pos: Sequence[int], size: int) -> Tuple[Offset, Tuple[int, int, int]]:
    ax, lx = _split_position(pos[0], size)
    ay, ly = _split_position(pos[1], size)
    az, lz = _split_position(pos[2], size)
    return (ax, ay, az), (lx, ly, lz)


class Published(Generic[T]):
    """The shared, read-only copy of a chunk's ``T`` that neighbors point at."""

    __slots__ = ("value",)

    def __init__(self, value: T) -> None:
        self.value = value


class Neighborhood(Generic[T]):
    """27 optional references to the ``T`` of a chunk and its neighbors."""

    __slots__ = ("chunks",)

    def __init__(self, chunks: Optional[Sequence[Optional[T]]] = None) -> None:
        if chunks is None:
            self.chunks: List[Optional[T]] = [None] * NEIGHBORHOOD_SLOTS
        else:
            if len(chunks) != NEIGHBORHOOD_SLOTS:
                raise ValueError("a neighborhood has exactly 27 slots")
            self.chunks = list(chunks)

    def get_chunk(self, offset: Sequence[int]) -> Optional[T]:
        return self.chunks[slot_index(offset)]

    def put_chunk(self, offset: Sequence[int], value: Optional[T]) -> None:
        self.chunks[slot_index(offset)] = value

    @property
    def center(self) -> Optional[T]:
        return self.chunks[slot_index((0, 0, 0))]

    def populated(self) -> int:
        return sum(1 for chunk in self.chunks if chunk is not None)

    @property
    def is_full(self) -> bool:
        return all(chunk is not None for chunk in self.chunks)

    def snapshot(self) -> "Neighborhood[T]":
        """Copy the slot list; the referenced values are immutable and shared."""
        return Neighborhood(self.chunks)

    def item_at(self, pos: Sequence[int]):
        """Look up one voxel relative to the center chunk's local origin.

        ``pos`` may lie up to one chunk outside the center along each axis.
        Returns ``None`` when the owning slot is empty.
        """
        size = self._chunk_size()
        if size is None:
            return None
        offset, local = _resolve(pos, size)
        chunk = self.get_chunk(offset)
        if chunk is None:
            return None
        return chunk.at(local)

    def _chunk_size(self) -> Optional[int]:
        for chunk in self.chunks:
            if chunk is not None:
                return chunk.size
        return None


class FullNeighborhood(Generic[T]):
    """A neighborhood with every slot populated."""

    __slots__ = ("chunks",)

    def __init__(self, chunks: Sequence[Optional[T]]) -> None:
        if len(chunks) != NEIGHBORHOOD_SLOTS or any(chunk is None for chunk in chunks):
            raise ValueError("a full neighborhood needs 27 populated slots")
        self.chunks: Tuple[T, ...] = tuple(chunks)

    def get_chunk(self, offset: Sequence[int]) -> T:
        return self.chunks[slot_index(offset)]

    @property
    def center(self) -> T:
        return self.chunks[slot_index((0, 0, 0))]

    def item_at(self, pos: Sequence[int]):
        offset, local = _resolve(pos, self.center.size)
        return self.get_chunk(offset).at(local)


@dataclass(frozen=True)
class NewNeighborhood:
    entity: Entity
    position: ChunkPosition


@dataclass(frozen=True)
class NeighborUpdate(Generic[T]):
    position: ChunkPosition
    value: Optional[T]


class NeighborhoodTracker(Generic[T]):
    """Maintains ``Neighborhood[T]`` and ``FullNeighborhood[T]`` on chunks."""

    def __init__(self, world: World, index: ChunkIndex, datum_type: Type[T]) -> None:
        self.world = world
        self.index = index
        self.datum_type = datum_type
        self.published_kind: Hashable = Published[datum_type]
        self.cache_kind: Hashable = Neighborhood[datum_type]
        self.full_kind: Hashable = FullNeighborhood[datum_type]
        self.new_neighborhoods: EventQueue[NewNeighborhood] = EventQueue()
        self.updates: EventQueue[NeighborUpdate[T]] = EventQueue()

    def install(self) -> "NeighborhoodTracker[T]":
        self.world.observe(ON_REMOVE, self.datum_type, self._on_datum_removed)
        self.world.observe(ON_REMOVE, self.published_kind, self._on_published_removed)
        return self

    def systems(self) -> List[System]:
        """Passes in the order they must run each tick."""
        return [
            PublishCopies(self),
            EmitNewNeighborhoods(self),
            PopulateNeighborhoods(self),
            EmitNeighborUpdates(self),
            ConsumeNeighborUpdates(self),
            RefreshFullNeighborhoods(self),
        ]

    @property
    def idle(self) -> bool:
        return not self.new_neighborhoods and not self.updates

    # -- queries -----------------------------------------------------------
    def neighborhood(self, entity: Entity) -> Optional[Neighborhood[T]]:
        return self.world.get_component(entity, self.cache_kind)

    def full_neighborhood(self, entity: Entity) -> Optional[FullNeighborhood[T]]:
        return self.world.get_component(entity, self.full_kind)

    def published(self, entity: Entity) -> Optional[T]:
        copy = self.world.get_component(entity, self.published_kind)
        return None if copy is None else copy.value

    # -- work --------------------------------------------------------------
    def build_neighborhood(self, position: ChunkPosition) -> Neighborhood[T]:
        cache: Neighborhood[T] = Neighborhood()
        for offset, neighbor_pos in position.neighborhood():
            neighbor = self.index.lookup_by_position(neighbor_pos)
            if neighbor is None:
                continue
            cache.put_chunk(offset, self.published(neighbor))
        return cache

    def apply_update(self, event: NeighborUpdate[T]) -> int:
        """Write ``event.value`` into every existing neighbor's mirrored slot."""
        touched = 0
        for (dx, dy, dz), neighbor_pos in event.position.neighborhood():
            neighbor = self.index.lookup_by_position(neighbor_pos)
            if neighbor is None:
                continue
            cache = self.neighborhood(neighbor)
            if cache is None:
                continue
            cache.put_chunk((-dx, -dy, -dz), event.value)
            self.world.mark_changed(neighbor, self.cache_kind)
            touched += 1
        return touched

    # -- notifications -----------------------------------------------------
    def _on_datum_removed(self, world: World, entity: Entity) -> None:
        world.commands.remove(entity, self.published_kind)

    def _on_published_removed(self, world: World, entity: Entity) -> None:
        position = world.get_component(entity, ChunkPosition)
        if position is None:
            logger.warning("could not get position for notifying neighborhood of entity %s", entity)
            return
        self.updates.send(NeighborUpdate(position, None))


class _TrackerPass(System):
    def __init__(self, tracker: NeighborhoodTracker) -> None:
        super().__init__(tracker.world)
        self.tracker = tracker


class PublishCopies(_TrackerPass):
    """Share every freshly inserted datum with the neighborhood."""

    def run(self) -> None:
        tracker = self.tracker
        for entity in self.changed(tracker.datum_type):
            value = self.world.get_component(entity, tracker.datum_type)
            if value is not None:
                self.world.commands.insert(entity, Published(value), tracker.published_kind)


class EmitNewNeighborhoods(_TrackerPass):
    def run(self) -> None:
        tracker = self.tracker
        for entity, (position, _) in self.world.query(
            ChunkPosition, tracker.published_kind, without=(tracker.cache_kind,)
        ):
            tracker.new_neighborhoods.send(NewNeighborhood(entity, position))


class PopulateNeighborhoods(_TrackerPass):
    def run(self) -> None:
        tracker = self.tracker
        for event in tracker.new_neighborhoods.drain():
            cache = tracker.build_neighborhood(event.position)
            self.world.commands.insert(event.entity, cache, tracker.cache_kind)


class EmitNeighborUpdates(_TrackerPass):
    def run(self) -> None:
        tracker = self.tracker
        for entity in self.changed(tracker.published_kind):
            position = self.world.get_component(entity, ChunkPosition)
            if position is None:
                logger.warning("published %s on entity %s without a position", tracker.datum_type.__name__, entity)
                continue
            tracker.updates.send(NeighborUpdate(position, tracker.published(entity)))


class ConsumeNeighborUpdates(_TrackerPass):
    def run(self) -> None:
        tracker = self.tracker
        for event in tracker.updates.drain():
            tracker.apply_update(event)


class RefreshFullNeighborhoods(_TrackerPass):
    """Attach or revoke ``FullNeighborhood[T]`` after any cache change."""

    def run(self) -> None:
        tracker = self.tracker
        commands = self.world.commands
        for entity in self.changed(tracker.cache_kind):
            cache = tracker.neighborhood(entity)
            if cache is None:
                continue
            if cache.is_full:
                commands.insert(entity, FullNeighborhood(cache.chunks), tracker.full_kind)
            elif self.world.has_component(entity, tracker.full_kind):
                commands.remove(entity, tracker.full_kind)
