"""Fractal (multi-octave) simplex noise."""
from __future__ import annotations

from typing import List, Sequence

import numpy as np
from opensimplex import OpenSimplex

_U32 = 0xFFFFFFFF


def rotate_left_32(value: int, shift: int) -> int:
    value &= _U32
    shift %= 32
    return ((value << shift) | (value >> (32 - shift))) & _U32


class _Octave:
    __slots__ = ("amplitude", "scale", "translation", "noise")

    def __init__(self, seed: int, amplitude: float, scale: float) -> None:
        self.amplitude = amplitude
        self.scale = scale
        # Offsetting each octave by half its own scale keeps the lattices of
        # different octaves from lining up at the origin.
        self.translation = 0.5 * scale
        self.noise = OpenSimplex(seed=seed)

    def _local(self, coord: float) -> float:
        return (coord + self.translation) / self.scale

    def get(self, point: Sequence[float]) -> float:
        if len(point) == 2:
            value = self.noise.noise2(self._local(point[0]), self._local(point[1]))
        elif len(point) == 3:
            value = self.noise.noise3(self._local(point[0]), self._local(point[1]), self._local(point[2]))
        else:
            raise ValueError(f"noise is defined for 2-D and 3-D points, got {len(point)}-D")
        return value * self.amplitude

    def grid2(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        local_x = (np.asarray(xs, dtype=np.float64) + self.translation) / self.scale
        local_y = (np.asarray(ys, dtype=np.float64) + self.translation) / self.scale
        # noise2array returns shape (len(ys), len(xs)).
        return self.noise.noise2array(local_x, local_y).T * self.amplitude


class FractalNoise:
    """Sum of ``layers`` simplex octaves normalised to roughly [-1, 1].

    Octaves are numbered ``k = 1..layers``.  Octave ``k`` has amplitude
    ``0.5**k``, a feature scale of ``noise_scale * 0.5**(k - 1)`` and the
    seed ``seed`` rotated left by ``k - 1`` bits.
    """

    def __init__(self, seed: int, layers: int, noise_scale: float) -> None:
        if layers < 1:
            raise ValueError("layers must be at least 1")
        if noise_scale <= 0.0:
            raise ValueError("noise_scale must be positive")
        self.seed = seed & _U32
        self.layers = int(layers)
        self.noise_scale = float(noise_scale)
        # Amplitudes 1/2 + 1/4 + ... + 1/2**N sum to 1 - 0.5**N.
        self._inverse_sum = 1.0 / (1.0 - 0.5 ** self.layers)
        self._octaves: List[_Octave] = []
        for k in range(1, self.layers + 1):
            amplitude = 0.5 ** k
            scale = self.noise_scale * 0.5 ** (k - 1)
            self._octaves.append(_Octave(rotate_left_32(self.seed, k - 1), amplitude, scale))

    def get(self, point: Sequence[float]) -> float:
        """Sample the field at a 2-D or 3-D point."""
        total = sum(octave.get(point) for octave in self._octaves)
        return total * self._inverse_sum

    def grid2(self, xs: Sequence[float], ys: Sequence[float]) -> np.ndarray:
        """Sample every ``(x, y)`` combination; result is indexed ``[ix, iy]``."""
        total = np.zeros((len(xs), len(ys)), dtype=np.float64)
        for octave in self._octaves:
            total += octave.grid2(np.asarray(xs), np.asarray(ys))
        return total * self._inverse_sum
