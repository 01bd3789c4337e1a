"""
Free building block population.

Blocks are stored structure-of-arrays (positions, velocities, types, ages) so
the per-tick drift is vectorized. Only free blocks live here; a block that is
consumed into an organism is removed and survives only as a count in that
organism's composition.
"""

import numpy as np
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence

from .data_types import BlockType, NUM_BLOCK_TYPES, SimulationConfig, WorldParameters
from .spatial import wrap_positions
from .rng import centered_uniform, uniform_position
from .constants import USE_CKDTREE, CKDTREE_LEAFSIZE

from scipy.spatial import cKDTree


@dataclass
class BuildingBlock:
    """
    Read-only view of one free block.

    Attributes:
        index: Row in the pool at the time the view was taken
        position: [x, y]
        velocity: [vx, vy]
        block_type: BlockType
        age: Ticks since the block was created
        free: Always True for pool members
    """
    index: int
    position: np.ndarray
    velocity: np.ndarray
    block_type: BlockType
    age: int
    free: bool = True

    def to_dict(self) -> dict:
        return {
            'position': self.position.tolist(),
            'velocity': self.velocity.tolist(),
            'block_type': self.block_type.name,
            'age': self.age,
            'free': self.free
        }


class BlockPool:
    """
    Free building blocks in a width x height world.

    Arrays:
        positions: (N, 2) float64
        velocities: (N, 2) float64
        types: (N,) int64 BlockType values
        ages: (N,) int64
    """

    def __init__(self, width: float, height: float, use_ckdtree: Optional[bool] = None):
        self.width = width
        self.height = height

        # False selects the O(n) scan, kept for A/B comparison
        self.use_ckdtree = USE_CKDTREE if use_ckdtree is None else use_ckdtree

        self.positions = np.empty((0, 2), dtype=np.float64)
        self.velocities = np.empty((0, 2), dtype=np.float64)
        self.types = np.empty(0, dtype=np.int64)
        self.ages = np.empty(0, dtype=np.int64)

    # ------------------------------------------------------------------
    # Container protocol
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.types)

    @property
    def count(self) -> int:
        return len(self.types)

    def __getitem__(self, index: int) -> BuildingBlock:
        return BuildingBlock(
            index=index,
            position=self.positions[index].copy(),
            velocity=self.velocities[index].copy(),
            block_type=BlockType(int(self.types[index])),
            age=int(self.ages[index])
        )

    def __iter__(self) -> Iterator[BuildingBlock]:
        for i in range(len(self)):
            yield self[i]

    def counts_by_type(self) -> np.ndarray:
        """(NUM_BLOCK_TYPES,) count of free blocks per type"""
        return np.bincount(self.types, minlength=NUM_BLOCK_TYPES)

    def clear(self):
        self.positions = np.empty((0, 2), dtype=np.float64)
        self.velocities = np.empty((0, 2), dtype=np.float64)
        self.types = np.empty(0, dtype=np.int64)
        self.ages = np.empty(0, dtype=np.int64)

    # ------------------------------------------------------------------
    # Creation / removal
    # ------------------------------------------------------------------

    def add(self, positions: np.ndarray, velocities: np.ndarray, types: Sequence[int]):
        """
        Append blocks (age 0).

        Args:
            positions: (K, 2) positions
            velocities: (K, 2) velocities
            types: (K,) BlockType values
        """
        positions = np.asarray(positions, dtype=np.float64).reshape(-1, 2)
        velocities = np.asarray(velocities, dtype=np.float64).reshape(-1, 2)
        types = np.asarray(types, dtype=np.int64).reshape(-1)

        self.positions = np.concatenate([self.positions, positions])
        self.velocities = np.concatenate([self.velocities, velocities])
        self.types = np.concatenate([self.types, types])
        self.ages = np.concatenate([self.ages, np.zeros(len(types), dtype=np.int64)])

    def add_block(self, position, velocity, block_type: BlockType):
        """Append a single block"""
        self.add(np.asarray(position)[np.newaxis, :],
                 np.asarray(velocity)[np.newaxis, :],
                 [int(block_type)])

    def scatter(self, count: int, rng: np.random.Generator, speed_span: float):
        """
        Scatter count blocks of uniformly random type across the world.

        Args:
            count: Number of blocks
            rng: Shared generator
            speed_span: Velocity components drawn from (U - 0.5) * span
        """
        if count <= 0:
            return
        positions = rng.random((count, 2)) * np.array([self.width, self.height])
        velocities = (rng.random((count, 2)) - 0.5) * speed_span
        types = rng.integers(0, NUM_BLOCK_TYPES, size=count)
        self.add(positions, velocities, types)

    def remove(self, indices: Sequence[int]):
        """
        Remove blocks by index in one batch.

        Indices are applied highest-first against the pre-removal layout,
        so removing several rows never shifts a row still to be removed.
        """
        indices = np.unique(np.asarray(indices, dtype=np.int64))[::-1]
        if len(indices) == 0:
            return
        keep = np.ones(len(self), dtype=bool)
        keep[indices] = False
        self.positions = self.positions[keep]
        self.velocities = self.velocities[keep]
        self.types = self.types[keep]
        self.ages = self.ages[keep]

    def release(self, block_type: BlockType, count: int, near_position: np.ndarray,
                rng: np.random.Generator, jitter_span: float, speed_span: float):
        """
        Re-insert count free blocks of one type around a position.

        Used when an organism dies or is eaten.

        Args:
            block_type: Type of the released blocks
            count: Number of blocks (non-positive counts release nothing)
            near_position: Center of the release
            rng: Shared generator
            jitter_span: Positional offset drawn from (U - 0.5) * span per axis
            speed_span: Velocity drawn from (U - 0.5) * span per axis
        """
        if count <= 0:
            return
        positions = near_position + (rng.random((count, 2)) - 0.5) * jitter_span
        velocities = (rng.random((count, 2)) - 0.5) * speed_span
        self.add(positions, velocities, np.full(count, int(block_type), dtype=np.int64))

    def release_composition(self, composition: np.ndarray, near_position: np.ndarray,
                            rng: np.random.Generator, jitter_span: float, speed_span: float) -> int:
        """
        Release a whole composition vector.

        Returns:
            Number of blocks released
        """
        released = 0
        for type_value in np.nonzero(composition)[0]:
            count = int(composition[type_value])
            self.release(BlockType(int(type_value)), count, near_position, rng, jitter_span, speed_span)
            released += count
        return released

    def spawn_random(self, rng: np.random.Generator, probability: float, speed_span: float) -> int:
        """
        Spontaneous generation: with the given probability add one block of
        random type at a random position.

        Returns:
            Number of blocks created (0 or 1)
        """
        if rng.random() >= probability:
            return 0
        position = uniform_position(rng, self.width, self.height)
        velocity = centered_uniform(rng, speed_span)
        block_type = BlockType(int(rng.integers(0, NUM_BLOCK_TYPES)))
        self.add_block(position, velocity, block_type)
        return 1

    # ------------------------------------------------------------------
    # Per-tick drift
    # ------------------------------------------------------------------

    def update(self, params: WorldParameters, config: SimulationConfig, rng: np.random.Generator):
        """
        Advance every free block by one tick.

        1. Each block rolls attraction_probability; winners step
           attraction_strength toward every other block within
           attraction_range (distances from the start-of-pass snapshot).
        2. Damp velocity.
        3. Integrate position scaled by global_speed and wrap at the edges.
        4. Age every block.
        """
        n = len(self)
        if n == 0:
            return

        attracting = np.nonzero(rng.random(n) < config.attraction_probability)[0]
        if len(attracting) > 0 and params.attraction_range > 0:
            self.velocities += self._attraction_steps(
                attracting, params.attraction_range, config.attraction_strength
            )

        self.velocities *= config.block_damping
        self.positions = wrap_positions(
            self.positions + self.velocities * params.global_speed,
            self.width, self.height
        )
        self.ages += 1

    def _attraction_steps(self, rows: np.ndarray, attraction_range: float, strength: float) -> np.ndarray:
        """
        Velocity deltas for the attracting rows.

        Returns:
            (N, 2) array, zero for rows that did not attract
        """
        deltas = np.zeros_like(self.velocities)
        snapshot = self.positions

        if self.use_ckdtree:
            tree = cKDTree(snapshot, leafsize=CKDTREE_LEAFSIZE)
            neighbor_lists = tree.query_ball_point(snapshot[rows], r=attraction_range)
        else:
            neighbor_lists = [
                np.nonzero(np.sum((snapshot - snapshot[row]) ** 2, axis=1) <= attraction_range ** 2)[0]
                for row in rows
            ]

        for row, neighbors in zip(rows, neighbor_lists):
            if len(neighbors) == 0:
                continue
            offsets = snapshot[np.asarray(neighbors, dtype=np.int64)] - snapshot[row]
            dists = np.sqrt(np.einsum('ij,ij->i', offsets, offsets))
            # Strictly inside the range and not coincident (excludes the block itself)
            mask = (dists > 0.0) & (dists < attraction_range)
            if not np.any(mask):
                continue
            deltas[row] = (offsets[mask] / dists[mask, np.newaxis]).sum(axis=0) * strength

        return deltas

    def to_dict(self) -> dict:
        """
        Serialize pool to JSON-compatible dict.

        Returns:
            Dict with count and per-block records
        """
        return {
            'count': len(self),
            'blocks': [block.to_dict() for block in self]
        }
