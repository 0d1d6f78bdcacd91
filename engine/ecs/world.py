"""Lightweight ECS world implementation."""
from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable, Dict, Hashable, Iterable, Iterator, List, Optional, Set, Tuple

from engine.event_bus import EventBus

from .commands import Commands

Entity = int
Hook = Callable[["World", Entity], None]

# Lifecycle notifications. on_replace and on_remove fire while the old value
# is still readable; on_add and on_insert fire after the new value is stored.
ON_ADD = "on_add"
ON_INSERT = "on_insert"
ON_REPLACE = "on_replace"
ON_REMOVE = "on_remove"
ON_DESPAWN = "on_despawn"


class World:
    """Minimal entity-component storage with typed queries and change ticks.

    Components are keyed by a *kind*, which defaults to the component's
    class.  Parameterised generics such as ``Neighborhood[BlockVolume]`` are
    hashable and compare equal, so they work as kinds too.
    """

    def __init__(self) -> None:
        self._next_entity_id: int = 1
        self._components: Dict[Hashable, Dict[Entity, Any]] = defaultdict(dict)
        self._entity_components: Dict[Entity, Set[Hashable]] = {}
        self._changed_at: Dict[Hashable, Dict[Entity, int]] = defaultdict(dict)
        self._hooks = EventBus()
        # Starts above System.last_run so pre-existing components count as changed.
        self.change_tick: int = 1
        self.commands = Commands(self)

    # -- entities ----------------------------------------------------------
    def create_entity(self) -> Entity:
        eid = self._next_entity_id
        self._next_entity_id += 1
        self._entity_components[eid] = set()
        return eid

    def spawn(self, *components: Any) -> Entity:
        entity = self.create_entity()
        for component in components:
            self.add_component(entity, component)
        return entity

    def is_alive(self, entity: Entity) -> bool:
        return entity in self._entity_components

    def despawn(self, entity: Entity) -> None:
        if entity not in self._entity_components:
            return
        self._hooks.emit((ON_DESPAWN, None), self, entity)
        kinds = list(self._entity_components.get(entity, ()))
        # Every component stays readable until all removal hooks have run.
        for kind in kinds:
            self._hooks.emit((ON_REMOVE, kind), self, entity)
        for kind in self._entity_components.pop(entity, ()):
            self._components[kind].pop(entity, None)
            self._changed_at[kind].pop(entity, None)

    def entities(self) -> List[Entity]:
        return list(self._entity_components)

    # -- components --------------------------------------------------------
    def add_component(self, entity: Entity, component: Any, kind: Optional[Hashable] = None) -> None:
        if entity not in self._entity_components:
            raise KeyError(f"entity {entity} does not exist")
        kind = type(component) if kind is None else kind
        existed = entity in self._components[kind]
        if existed:
            self._hooks.emit((ON_REPLACE, kind), self, entity)
        self._components[kind][entity] = component
        self._entity_components[entity].add(kind)
        self._changed_at[kind][entity] = self.change_tick
        if not existed:
            self._hooks.emit((ON_ADD, kind), self, entity)
        self._hooks.emit((ON_INSERT, kind), self, entity)

    def remove_component(self, entity: Entity, kind: Hashable) -> Optional[Any]:
        if entity not in self._components.get(kind, {}):
            return None
        self._hooks.emit((ON_REMOVE, kind), self, entity)
        # A hook may have despawned the entity already.
        value = self._components[kind].pop(entity, None)
        self._changed_at[kind].pop(entity, None)
        if entity in self._entity_components:
            self._entity_components[entity].discard(kind)
        return value

    def get_component(self, entity: Entity, kind: Hashable) -> Optional[Any]:
        return self._components.get(kind, {}).get(entity)

    def has_component(self, entity: Entity, kind: Hashable) -> bool:
        return kind in self._entity_components.get(entity, set())

    def entities_with(self, *kinds: Hashable, without: Iterable[Hashable] = ()) -> Iterator[Entity]:
        required = set(kinds)
        excluded = set(without)
        for entity, present in list(self._entity_components.items()):
            if required.issubset(present) and not (excluded & present):
                yield entity

    def query(self, *kinds: Hashable, without: Iterable[Hashable] = ()) -> Iterator[Tuple[Entity, Tuple[Any, ...]]]:
        for entity in self.entities_with(*kinds, without=without):
            yield entity, tuple(self._components[k][entity] for k in kinds)

    def components_of_type(self, kind: Hashable) -> Dict[Entity, Any]:
        return self._components.get(kind, {})

    # -- change detection --------------------------------------------------
    def increment_change_tick(self) -> int:
        self.change_tick += 1
        return self.change_tick

    def mark_changed(self, entity: Entity, kind: Hashable) -> None:
        """Flag an in-place mutation of a stored component."""
        if entity in self._components.get(kind, {}):
            self._changed_at[kind][entity] = self.change_tick

    def changed_since(self, kind: Hashable, tick: int) -> List[Entity]:
        """Entities whose ``kind`` component was inserted or marked after ``tick``."""
        stamps = self._changed_at.get(kind, {})
        return [entity for entity, stamp in stamps.items() if stamp > tick]

    # -- notifications -----------------------------------------------------
    def observe(self, hook: str, kind: Optional[Hashable], callback: Hook) -> None:
        """Register ``callback(world, entity)`` for a lifecycle notification.

        ``kind`` is ignored for :data:`ON_DESPAWN`.
        """
        key = (hook, None) if hook == ON_DESPAWN else (hook, kind)
        self._hooks.subscribe(key, callback)


class System:
    """Base class for passes run by a :class:`Schedule`."""

    def __init__(self, world: World) -> None:
        self.world = world
        self.last_run: int = 0

    def changed(self, kind: Hashable) -> List[Entity]:
        """Entities whose ``kind`` changed since this system last ran."""
        return self.world.changed_since(kind, self.last_run)

    def run(self) -> None:
        pass


class Schedule:
    """Runs systems in insertion order, flushing deferred commands after each."""

    def __init__(self, world: World) -> None:
        self.world = world
        self._systems: List[System] = []

    def add_system(self, system: System) -> System:
        self._systems.append(system)
        return system

    def add_systems(self, *systems: System) -> None:
        for system in systems:
            self.add_system(system)

    @property
    def systems(self) -> Tuple[System, ...]:
        return tuple(self._systems)

    def run(self) -> None:
        world = self.world
        for system in self._systems:
            tick = world.increment_change_tick()
            system.run()
            system.last_run = tick
            # Deferred mutations are stamped newer than the pass that queued them.
            world.increment_change_tick()
            world.commands.apply()
