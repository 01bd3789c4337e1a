"""
Test the free block pool.

Verifies scatter bounds, edge wrapping, pairwise attraction, the cKDTree and
O(n) neighbor paths agreeing, release jitter, removal and spontaneous
generation.
"""

import numpy as np
import pytest

from ecosim.block_pool import BlockPool
from ecosim.data_types import BlockType, NUM_BLOCK_TYPES, SimulationConfig, WorldParameters
from ecosim.rng import make_rng


def _params(global_speed=0.4, attraction_range=12.0) -> WorldParameters:
    return WorldParameters(initial_block_count=0, global_speed=global_speed,
                           attraction_range=attraction_range)


def test_scatter_within_bounds():
    pool = BlockPool(1200.0, 800.0)
    pool.scatter(800, make_rng(42), speed_span=0.2)

    assert pool.count == 800
    assert np.all(pool.positions[:, 0] >= 0.0) and np.all(pool.positions[:, 0] <= 1200.0)
    assert np.all(pool.positions[:, 1] >= 0.0) and np.all(pool.positions[:, 1] <= 800.0)
    assert np.all(np.abs(pool.velocities) <= 0.1)
    assert pool.types.min() >= 0 and pool.types.max() < NUM_BLOCK_TYPES
    assert pool.counts_by_type().sum() == 800

    print(f"[OK] Scattered {pool.count} blocks, by type: {pool.counts_by_type().tolist()}")


def test_wrap_left_edge():
    """Block at x=1 moving -10 with speed 1 re-enters at x=width"""
    pool = BlockPool(200.0, 100.0)
    pool.add_block([1.0, 50.0], [-10.0, 0.0], BlockType.CARBON)

    config = SimulationConfig(attraction_probability=0.0, block_damping=1.0)
    pool.update(_params(global_speed=1.0), config, make_rng(1))

    assert pool.positions[0, 0] == 200.0
    assert pool.positions[0, 1] == 50.0


def test_wrap_right_and_bottom_edges():
    pool = BlockPool(200.0, 100.0)
    pool.add_block([199.0, 99.0], [5.0, 5.0], BlockType.CARBON)

    config = SimulationConfig(attraction_probability=0.0, block_damping=1.0)
    pool.update(_params(global_speed=1.0), config, make_rng(1))

    assert pool.positions[0].tolist() == [0.0, 0.0]


def test_pairwise_attraction():
    """Two blocks 5 apart pull toward each other by strength, then damp"""
    pool = BlockPool(400.0, 400.0)
    pool.add_block([100.0, 100.0], [0.0, 0.0], BlockType.NUTRIENT)
    pool.add_block([105.0, 100.0], [0.0, 0.0], BlockType.CARBON)

    config = SimulationConfig(attraction_probability=1.0, attraction_strength=0.01, block_damping=0.98)
    pool.update(_params(global_speed=0.0), config, make_rng(3))

    assert pool.velocities[0, 0] == pytest.approx(0.0098)
    assert pool.velocities[1, 0] == pytest.approx(-0.0098)
    assert pool.velocities[0, 1] == pytest.approx(0.0)

    # Speed zero: nothing moved
    assert pool.positions[0].tolist() == [100.0, 100.0]
    assert pool.ages.tolist() == [1, 1]


def test_attraction_ignores_far_and_coincident_blocks():
    pool = BlockPool(400.0, 400.0)
    pool.add_block([100.0, 100.0], [0.0, 0.0], BlockType.NUTRIENT)
    pool.add_block([100.0, 100.0], [0.0, 0.0], BlockType.NUTRIENT)  # coincident
    pool.add_block([150.0, 100.0], [0.0, 0.0], BlockType.NUTRIENT)  # outside range

    config = SimulationConfig(attraction_probability=1.0, block_damping=1.0)
    pool.update(_params(global_speed=0.0), config, make_rng(3))

    assert np.all(pool.velocities == 0.0)


def test_ckdtree_matches_linear_scan():
    """Both neighbor paths produce identical drift"""
    results = []
    for use_ckdtree in (True, False):
        pool = BlockPool(300.0, 300.0, use_ckdtree=use_ckdtree)
        pool.scatter(400, make_rng(99), speed_span=0.2)
        rng = make_rng(7)
        config = SimulationConfig(attraction_probability=0.5)
        for _ in range(5):
            pool.update(_params(attraction_range=20.0), config, rng)
        results.append((pool.positions.copy(), pool.velocities.copy()))

    assert np.allclose(results[0][0], results[1][0])
    assert np.allclose(results[0][1], results[1][1])
    print("[OK] cKDTree and O(n) attraction agree over 5 ticks")


def test_release_jitter():
    pool = BlockPool(400.0, 400.0)
    center = np.array([200.0, 200.0])
    pool.release(BlockType.PROTEIN, 50, center, make_rng(5), jitter_span=10.0, speed_span=0.5)

    assert pool.count == 50
    assert np.all(np.abs(pool.positions - center) <= 5.0)
    assert np.all(np.abs(pool.velocities) <= 0.25)
    assert np.all(pool.types == int(BlockType.PROTEIN))
    assert np.all(pool.ages == 0)

    pool.release(BlockType.PROTEIN, 0, center, make_rng(5), jitter_span=10.0, speed_span=0.5)
    assert pool.count == 50


def test_release_composition():
    pool = BlockPool(400.0, 400.0)
    composition = np.zeros(NUM_BLOCK_TYPES, dtype=np.int64)
    composition[BlockType.AEROBIC] = 2
    composition[BlockType.LOCOMOTION] = 3

    released = pool.release_composition(composition, np.array([10.0, 10.0]), make_rng(0), 10.0, 0.5)

    assert released == 5
    counts = pool.counts_by_type()
    assert counts[BlockType.AEROBIC] == 2
    assert counts[BlockType.LOCOMOTION] == 3


def test_remove_batch():
    pool = BlockPool(400.0, 400.0)
    for i in range(6):
        pool.add_block([float(i), 0.0], [0.0, 0.0], BlockType(i))

    pool.remove([1, 4, 3, 4])

    assert pool.count == 3
    assert pool.positions[:, 0].tolist() == [0.0, 2.0, 5.0]
    assert pool.types.tolist() == [0, 2, 5]

    pool.remove([])
    assert pool.count == 3


def test_spawn_random():
    pool = BlockPool(400.0, 400.0)
    rng = make_rng(11)

    assert pool.spawn_random(rng, probability=0.0, speed_span=0.2) == 0
    assert pool.count == 0

    assert pool.spawn_random(rng, probability=1.0, speed_span=0.2) == 1
    assert pool.count == 1
    block = pool[0]
    assert 0.0 <= block.position[0] <= 400.0
    assert block.free
    assert block.age == 0


def test_views_and_serialization():
    pool = BlockPool(400.0, 400.0)
    pool.add_block([1.0, 2.0], [0.1, 0.0], BlockType.CHLOROPLAST)

    blocks = list(pool)
    assert len(blocks) == 1
    assert blocks[0].block_type is BlockType.CHLOROPLAST

    snapshot = pool.to_dict()
    assert snapshot['count'] == 1
    assert snapshot['blocks'][0]['block_type'] == 'CHLOROPLAST'
    assert snapshot['blocks'][0]['position'] == [1.0, 2.0]

    pool.clear()
    assert len(pool) == 0
