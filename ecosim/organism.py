"""
Organism runtime representation.

Organisms are formed from free blocks (or born by reproduction) and exist in
the OrganismRegistry. Each organism carries a unique instance_id, position,
velocity, energy state, mutable life-history traits and an immutable
composition vector.
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional

from .data_types import composition_dict


@dataclass
class Organism:
    """
    Runtime organism in simulation.

    Attributes:
        instance_id: Unique identifier (format: "{archetype_id}-{serial:05d}")
        archetype_id: Archetype definition ID (e.g., "AEROBIC_BACTERIA")
        position: 2D position [x, y] in world units
        velocity: 2D velocity [vx, vy] in world units per tick
        energy: Current energy, clamped to [0, 100]
        age: Ticks alive
        time_since_fed: Ticks since last meal (or since birth/formation)
        hibernating: True while in the low-metabolism, non-moving state
        starvation_resistance: Heritable starvation tolerance (ticks)
        metabolism_rate: Heritable per-tick energy cost
        composition: (NUM_BLOCK_TYPES,) int64 block counts, fixed at creation
        parent_id: instance_id of the parent, None for formed organisms
        generation: 0 for formed organisms, parent generation + 1 for offspring
    """
    instance_id: str
    archetype_id: str
    position: np.ndarray  # [x, y] float64
    velocity: np.ndarray  # [vx, vy] float64
    energy: float
    starvation_resistance: float
    metabolism_rate: float
    composition: np.ndarray  # int64 counts indexed by BlockType
    age: int = 0
    time_since_fed: int = 0
    hibernating: bool = False
    parent_id: Optional[str] = None
    generation: int = 0

    def __post_init__(self):
        """Ensure position, velocity and composition are owned numpy arrays"""
        self.position = np.array(self.position, dtype=np.float64)
        self.velocity = np.array(self.velocity, dtype=np.float64)
        self.composition = np.array(self.composition, dtype=np.int64)
        # A living organism never changes its structural composition
        self.composition.setflags(write=False)

    @property
    def block_count(self) -> int:
        """Blocks returned to the pool when this organism dies"""
        return int(self.composition.sum())

    def add_energy(self, amount: float, max_energy: float = 100.0):
        """Change energy by amount, clamped to [0, max_energy]"""
        self.energy = min(max_energy, max(0.0, self.energy + amount))

    def to_dict(self) -> dict:
        """
        Serialize organism to JSON-compatible dict.

        Returns:
            Dict with all organism fields
        """
        return {
            'instance_id': self.instance_id,
            'archetype_id': self.archetype_id,
            'position': self.position.tolist(),
            'velocity': self.velocity.tolist(),
            'energy': float(self.energy),
            'age': int(self.age),
            'time_since_fed': int(self.time_since_fed),
            'hibernating': bool(self.hibernating),
            'starvation_resistance': float(self.starvation_resistance),
            'metabolism_rate': float(self.metabolism_rate),
            'composition': composition_dict(self.composition),
            'parent_id': self.parent_id,
            'generation': self.generation
        }
