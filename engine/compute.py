"""Background computation of components, keyed by the owning entity."""
from __future__ import annotations

import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, Generic, Hashable, Optional, Set, Type, TypeVar

from engine.ecs import ON_DESPAWN, Entity, System, World

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ComputeInProgress(Generic[T]):
    """Marker attached to an entity while a ``T`` is being computed for it."""

    __slots__ = ()


class ComputeTasks(Generic[T]):
    """Registry of in-flight computations producing ``T`` components.

    At most one task exists per owner.  Results are only ever installed by
    :meth:`poll`; an entry removed from the registry (replaced or owner
    despawned) can therefore never write its result.
    """

    def __init__(
        self,
        world: World,
        result_type: Type[T],
        *,
        executor: Optional[Executor] = None,
        max_workers: int = 4,
    ) -> None:
        self.world = world
        self.result_type = result_type
        self.marker_kind: Hashable = ComputeInProgress[result_type]
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=f"compute-{result_type.__name__}"
        )
        self._tasks: Dict[Entity, Future] = {}
        self._added_since_poll: Set[Entity] = set()
        world.observe(ON_DESPAWN, None, self._on_despawn)

    # ------------------------------------------------------------------
    def spawn(self, owner: Entity, fn: Callable[..., T], *args: Any, **kwargs: Any) -> Future:
        """Start ``fn`` on the pool for ``owner``, replacing any previous task."""
        previous = self._tasks.pop(owner, None)
        if previous is not None:
            previous.cancel()
            logger.debug("replacing %s task for entity %s", self.result_type.__name__, owner)
        future = self._executor.submit(fn, *args, **kwargs)
        self._tasks[owner] = future
        self._added_since_poll.add(owner)
        return future

    def cancel(self, owner: Entity) -> bool:
        future = self._tasks.pop(owner, None)
        self._added_since_poll.discard(owner)
        if future is None:
            return False
        future.cancel()
        return True

    def poll(self) -> int:
        """Install finished results without blocking; returns how many landed."""
        commands = self.world.commands
        for owner in self._added_since_poll:
            commands.insert(owner, ComputeInProgress(), self.marker_kind)
        self._added_since_poll.clear()

        installed = 0
        for owner, future in list(self._tasks.items()):
            if not future.done():
                continue
            del self._tasks[owner]
            commands.remove(owner, self.marker_kind)
            if future.cancelled():
                continue
            exc = future.exception()
            if exc is not None:
                logger.error(
                    "%s computation for entity %s failed",
                    self.result_type.__name__,
                    owner,
                    exc_info=(type(exc), exc, exc.__traceback__),
                )
                continue
            commands.insert(owner, future.result(), self.result_type)
            installed += 1
        return installed

    def pending(self) -> Set[Entity]:
        return set(self._tasks)

    def shutdown(self) -> None:
        for future in self._tasks.values():
            future.cancel()
        self._tasks.clear()
        self._added_since_poll.clear()
        if self._owns_executor:
            self._executor.shutdown(wait=True, cancel_futures=True)

    def __contains__(self, owner: Entity) -> bool:
        return owner in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    # ------------------------------------------------------------------
    def _on_despawn(self, world: World, entity: Entity) -> None:
        if self.cancel(entity):
            logger.debug("dropped %s task of despawned entity %s", self.result_type.__name__, entity)


class PollComputeTasks(System):
    """Pass that installs finished results of one :class:`ComputeTasks`."""

    def __init__(self, world: World, tasks: ComputeTasks) -> None:
        super().__init__(world)
        self.tasks = tasks

    def run(self) -> None:
        self.tasks.poll()
