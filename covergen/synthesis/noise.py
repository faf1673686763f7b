"""Seeded 2D Perlin noise.

``sample`` and ``sample_grid`` run the same float operations in the same
order, so a grid sample is bit-identical to the matching scalar sample.
"""

import math
from typing import List

import numpy as np

from covergen.synthesis.prng import SeededRandom

TABLE_SIZE = 256


def build_permutation(seed: int) -> List[int]:
    p = list(range(TABLE_SIZE))
    rng = SeededRandom(seed)
    for i in range(TABLE_SIZE - 1, 0, -1):
        j = math.floor(rng.next() * (i + 1))
        p[i], p[j] = p[j], p[i]
    return p + p


def fade(t):
    return t * t * t * (t * (t * 6 - 15) + 10)


def lerp(a, b, t):
    return a + t * (b - a)


def grad(h: int, x: float, y: float) -> float:
    h &= 3
    u = x if h < 2 else y
    v = y if h < 2 else x
    return (u if (h & 1) == 0 else -u) + (v if (h & 2) == 0 else -v)


def _grad_array(h: np.ndarray, x: np.ndarray, y: np.ndarray) -> np.ndarray:
    h = h & 3
    u = np.where(h < 2, x, y)
    v = np.where(h < 2, y, x)
    return np.where((h & 1) == 0, u, -u) + np.where((h & 2) == 0, v, -v)


class PerlinNoise:
    def __init__(self, seed: int) -> None:
        self.seed = seed
        self.permutation = tuple(build_permutation(seed))
        self._table = np.array(self.permutation, dtype=np.int64)

    def sample(self, x: float, y: float) -> float:
        p = self.permutation
        fx = math.floor(x)
        fy = math.floor(y)
        xi = fx & 255
        yi = fy & 255
        x = x - fx
        y = y - fy
        u = fade(x)
        v = fade(y)

        aa = p[p[xi] + yi]
        ab = p[p[xi] + yi + 1]
        ba = p[p[xi + 1] + yi]
        bb = p[p[xi + 1] + yi + 1]

        res = lerp(
            lerp(grad(aa, x, y), grad(ba, x - 1, y), u),
            lerp(grad(ab, x, y - 1), grad(bb, x - 1, y - 1), u),
            v,
        )
        return (res + 1) / 2

    def sample_grid(self, xs, ys) -> np.ndarray:
        """Sample at broadcast pairs of ``xs`` and ``ys``."""
        xs, ys = np.broadcast_arrays(np.asarray(xs, dtype=np.float64), np.asarray(ys, dtype=np.float64))
        p = self._table
        fx = np.floor(xs)
        fy = np.floor(ys)
        xi = fx.astype(np.int64) & 255
        yi = fy.astype(np.int64) & 255
        x = xs - fx
        y = ys - fy
        u = fade(x)
        v = fade(y)

        aa = p[p[xi] + yi]
        ab = p[p[xi] + yi + 1]
        ba = p[p[xi + 1] + yi]
        bb = p[p[xi + 1] + yi + 1]

        res = lerp(
            lerp(_grad_array(aa, x, y), _grad_array(ba, x - 1, y), u),
            lerp(_grad_array(ab, x, y - 1), _grad_array(bb, x - 1, y - 1), u),
            v,
        )
        return (res + 1) / 2
