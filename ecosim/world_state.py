"""
World state container passed to every update function.

Constructed by EcosystemSimulation.reset(), mutated in place each tick, and
torn down only by replacement.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .data_types import Catalog, SimulationConfig, WorldParameters
from .gas_field import GasField
from .block_pool import BlockPool

if TYPE_CHECKING:
    from .registry import OrganismRegistry


@dataclass
class BlockLedger:
    """
    Running block accounting since the last reset.

    Invariant (asserted per tick when ECOSIM_DEBUG_INVARIANTS=1):
        free + embedded == scattered + spawned + replicated
    Formation and release move blocks between free and embedded without
    changing the total.
    """
    scattered: int = 0  # Initial random scatter at reset
    spawned: int = 0  # Spontaneous generation
    formed: int = 0  # free -> embedded
    released: int = 0  # embedded -> free (death and predation)
    replicated: int = 0  # Embedded blocks duplicated by reproduction

    @property
    def expected_total(self) -> int:
        return self.scattered + self.spawned + self.replicated

    def to_dict(self) -> dict:
        return {
            'scattered': self.scattered,
            'spawned': self.spawned,
            'formed': self.formed,
            'released': self.released,
            'replicated': self.replicated
        }


@dataclass
class WorldState:
    """
    Everything one tick reads and writes.

    Attributes:
        width, height: World bounds in world units
        params: Host-tunable parameters (speed, attraction range, ...)
        config: Simulation tunables
        catalog: Compatibility table and archetypes
        gas: Gas field
        blocks: Free block pool
        organisms: Live organism registry
        rng: Shared random source for every probabilistic gate
        ledger: Block accounting
        tick: Ticks completed since reset
    """
    width: float
    height: float
    params: WorldParameters
    config: SimulationConfig
    catalog: Catalog
    gas: GasField
    blocks: BlockPool
    organisms: 'OrganismRegistry'
    rng: np.random.Generator
    ledger: BlockLedger = field(default_factory=BlockLedger)
    tick: int = 0

    def total_blocks(self) -> int:
        """Free plus embedded blocks"""
        return self.blocks.count + self.organisms.embedded_block_count()
