"""Entity-component system used to host the chunk pipeline."""
from .commands import Commands
from .world import (
    ON_ADD,
    ON_DESPAWN,
    ON_INSERT,
    ON_REMOVE,
    ON_REPLACE,
    Entity,
    Schedule,
    System,
    World,
)

__all__ = [
    "World",
    "System",
    "Schedule",
    "Commands",
    "Entity",
    "ON_ADD",
    "ON_INSERT",
    "ON_REPLACE",
    "ON_REMOVE",
    "ON_DESPAWN",
]
