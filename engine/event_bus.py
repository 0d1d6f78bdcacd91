"""Pub/sub notifications and per-pass FIFO event queues."""
from __future__ import annotations

from collections import deque
from typing import Any, Callable, Deque, Dict, Generic, Hashable, Iterator, List, TypeVar

E = TypeVar("E")


class EventBus:
    """Simple pub/sub event bus.

    Callbacks run synchronously inside :meth:`emit`, in subscription order.
    """

    def __init__(self) -> None:
        self._subs: Dict[Hashable, List[Callable[..., None]]] = {}

    def subscribe(self, event: Hashable, cb: Callable[..., None]) -> None:
        self._subs.setdefault(event, []).append(cb)

    def unsubscribe(self, event: Hashable, cb: Callable[..., None]) -> None:
        subs = self._subs.get(event)
        if subs and cb in subs:
            subs.remove(cb)

    def has_subscribers(self, event: Hashable) -> bool:
        return bool(self._subs.get(event))

    def emit(self, event: Hashable, *args: Any, **kwargs: Any) -> None:
        # Copy so a callback may subscribe further listeners while we iterate.
        for cb in list(self._subs.get(event, ())):
            cb(*args, **kwargs)


class EventQueue(Generic[E]):
    """FIFO buffer of events written by one pass and drained by a later one."""

    def __init__(self) -> None:
        self._events: Deque[E] = deque()

    def send(self, event: E) -> None:
        self._events.append(event)

    def drain(self) -> Iterator[E]:
        """Yield queued events oldest first, removing them as they are read."""
        while self._events:
            yield self._events.popleft()

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)

    def __bool__(self) -> bool:
        return bool(self._events)
