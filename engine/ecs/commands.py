"""Deferred structural mutations applied between passes."""
from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING, Any, Callable, Deque, Hashable, Optional

if TYPE_CHECKING:  # pragma: no cover
    from .world import Entity, World

logger = logging.getLogger(__name__)


class Commands:
    """FIFO queue of inserts, removals and despawns.

    Commands targeting an entity that no longer exists are dropped, so a pass
    may queue work for entities that could be despawned before the flush.
    """

    def __init__(self, world: "World") -> None:
        self._world = world
        self._queue: Deque[Callable[[], None]] = deque()

    def spawn(self, *components: Any) -> "Entity":
        """Reserve an entity now; its components arrive at the next flush."""
        entity = self._world.create_entity()
        for component in components:
            self.insert(entity, component)
        return entity

    def insert(self, entity: "Entity", component: Any, kind: Optional[Hashable] = None) -> None:
        def _apply() -> None:
            if not self._world.is_alive(entity):
                logger.debug("dropping insert of %s on dead entity %s", kind or type(component).__name__, entity)
                return
            self._world.add_component(entity, component, kind)

        self._queue.append(_apply)

    def remove(self, entity: "Entity", kind: Hashable) -> None:
        def _apply() -> None:
            if self._world.is_alive(entity):
                self._world.remove_component(entity, kind)

        self._queue.append(_apply)

    def despawn(self, entity: "Entity") -> None:
        self._queue.append(lambda: self._world.despawn(entity))

    def apply(self) -> int:
        """Apply queued commands in order, including ones queued by hooks."""
        applied = 0
        while self._queue:
            self._queue.popleft()()
            applied += 1
        return applied

    def __len__(self) -> int:
        return len(self._queue)
