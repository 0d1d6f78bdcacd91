"""Dense voxel storage and the per-chunk data derived from it."""
from __future__ import annotations

from typing import Protocol, Sequence, Tuple, TypeVar

import numpy as np

CHUNK_SIZE = 32

Face = Tuple[int, int, int]

FACE_DIRECTIONS: Tuple[Face, ...] = (
    (1, 0, 0),
    (-1, 0, 0),
    (0, 1, 0),
    (0, -1, 0),
    (0, 0, 1),
    (0, 0, -1),
)

Item = TypeVar("Item", covariant=True)


class SpatiallyIndexed(Protocol[Item]):
    """Anything addressable by integer coordinates."""

    def at(self, coords: Sequence[int]) -> Item:
        ...


class VoxelGrid:
    """Fixed-size square or cubic grid backed by a numpy array.

    Grids are frozen once published so that they can be shared between
    chunks and worker threads without copying.
    """

    __slots__ = ("size", "_data")

    def __init__(self, data: np.ndarray) -> None:
        if data.ndim not in (2, 3):
            raise ValueError("voxel grids are 2- or 3-dimensional")
        if len(set(data.shape)) != 1 or data.shape[0] <= 0:
            raise ValueError(f"grid must have equal positive edges, got {data.shape}")
        self.size = int(data.shape[0])
        self._data = data

    @classmethod
    def filled(cls, size: int, dims: int, value, dtype=np.uint8) -> "VoxelGrid":
        return cls(np.full((size,) * dims, value, dtype=dtype))

    @property
    def dims(self) -> int:
        return self._data.ndim

    @property
    def array(self) -> np.ndarray:
        return self._data

    def freeze(self) -> "VoxelGrid":
        self._data.flags.writeable = False
        return self

    @property
    def frozen(self) -> bool:
        return not self._data.flags.writeable

    def in_bounds(self, coords: Sequence[int]) -> bool:
        return len(coords) == self.dims and all(0 <= c < self.size for c in coords)

    # SpatiallyIndexed -----------------------------------------------------
    def at(self, coords: Sequence[int]):
        if not self.in_bounds(coords):
            raise IndexError(f"voxel coordinates {tuple(coords)} out of range")
        return self._data[tuple(coords)]

    def set(self, coords: Sequence[int], value) -> None:
        if not self.in_bounds(coords):
            raise IndexError(f"voxel coordinates {tuple(coords)} out of range")
        self._data[tuple(coords)] = value

    def bounds(self) -> Tuple[Tuple[int, ...], Tuple[int, ...]]:
        return (0,) * self.dims, (self.size - 1,) * self.dims
