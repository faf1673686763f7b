"""Tests for the seeded Perlin noise field."""

from __future__ import annotations

import numpy as np
import pytest

from covergen.synthesis.noise import PerlinNoise, build_permutation


class TestPermutation:
    def test_is_duplicated_permutation(self):
        table = build_permutation(1234)
        assert len(table) == 512
        assert sorted(table[:256]) == list(range(256))
        assert table[:256] == table[256:]

    def test_same_seed_same_table(self):
        assert build_permutation(77) == build_permutation(77)

    def test_different_seed_different_table(self):
        assert build_permutation(77) != build_permutation(78)


class TestSample:
    def test_deterministic(self):
        a = PerlinNoise(42)
        b = PerlinNoise(42)
        for x, y in [(0.3, 0.7), (12.5, -3.25), (100.01, 200.99)]:
            assert a.sample(x, y) == b.sample(x, y)

    def test_lattice_points_are_midpoint(self):
        noise = PerlinNoise(5)
        for x, y in [(0, 0), (3, 7), (-4, 2), (255, 256)]:
            assert noise.sample(float(x), float(y)) == 0.5

    def test_bounded_on_dense_grid(self):
        noise = PerlinNoise(2024)
        xs = np.linspace(-20, 20, 401)
        ys = np.linspace(-20, 20, 401)
        values = noise.sample_grid(xs[None, :], ys[:, None])
        assert values.min() >= 0.0
        assert values.max() <= 1.0 + 1e-12

    def test_continuous_as_step_shrinks(self):
        noise = PerlinNoise(11)
        x, y = 2.37, 5.81
        near = abs(noise.sample(x + 1e-3, y) - noise.sample(x, y))
        nearer = abs(noise.sample(x + 1e-5, y) - noise.sample(x, y))
        assert near < 1e-2
        assert nearer < 1e-4
        assert nearer <= near

    def test_continuous_across_cell_boundary(self):
        noise = PerlinNoise(11)
        left = noise.sample(3.0 - 1e-9, 1.4)
        right = noise.sample(3.0 + 1e-9, 1.4)
        assert left == pytest.approx(right, abs=1e-7)

    def test_seeds_produce_different_fields(self):
        xs = np.linspace(0.1, 9.9, 50)
        a = PerlinNoise(1).sample_grid(xs, xs[::-1])
        b = PerlinNoise(2).sample_grid(xs, xs[::-1])
        assert not np.array_equal(a, b)


class TestGrid:
    def test_grid_matches_scalar_exactly(self):
        noise = PerlinNoise(314159)
        xs = np.arange(0, 40, 2) * 0.01
        ys = np.arange(0, 30, 2) * 0.01
        grid = noise.sample_grid(xs[None, :], ys[:, None])
        for j, y in enumerate(ys):
            for i, x in enumerate(xs):
                assert grid[j, i] == noise.sample(float(x), float(y))

    def test_grid_matches_scalar_for_negative_and_large_inputs(self):
        noise = PerlinNoise(8)
        pts = [(-0.5, -1.75), (300.2, 12.9), (0.999, 255.5), (-256.1, 511.3)]
        xs = np.array([p[0] for p in pts])
        ys = np.array([p[1] for p in pts])
        grid = noise.sample_grid(xs, ys)
        assert list(grid) == [noise.sample(x, y) for x, y in pts]
