"""Block kinds and their static properties."""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Tuple

import numpy as np


class Block(IntEnum):
    AIR = 0
    STONE = 1
    GRASS = 2

    @property
    def is_transparent(self) -> bool:
        return BLOCK_DEFS[self].transparent


@dataclass(frozen=True)
class BlockDef:
    material: str
    color: Tuple[float, float, float]
    transparent: bool = False


BlockRegistry = Dict[Block, BlockDef]

BLOCK_DEFS: BlockRegistry = {
    Block.AIR: BlockDef(material="air", color=(0.0, 0.0, 0.0), transparent=True),
    Block.STONE: BlockDef(material="stone", color=(0.52, 0.52, 0.55)),
    Block.GRASS: BlockDef(material="grass", color=(0.36, 0.62, 0.28)),
}

# Indexed by block id; lets the mesher classify whole arrays at once.
TRANSPARENT = np.array([BLOCK_DEFS[b].transparent for b in sorted(Block)], dtype=bool)
TRANSPARENT.flags.writeable = False
