"""
Read-only population summaries for display consumers.

summarize() never mutates world state and tolerates empty populations
(every mean reports 0.0).
"""

from dataclasses import dataclass, field
from typing import Dict, List, TYPE_CHECKING

import numpy as np

from .data_types import BlockType

if TYPE_CHECKING:
    from .world_state import WorldState


def _mean(values: List[float]) -> float:
    return float(np.mean(values)) if values else 0.0


@dataclass
class SpeciesStats:
    """Aggregates for one archetype"""
    count: int = 0
    mean_energy: float = 0.0
    mean_age: float = 0.0
    mean_starvation_resistance: float = 0.0
    mean_metabolism_rate: float = 0.0

    def to_dict(self) -> dict:
        return {
            'count': int(self.count),
            'mean_energy': float(self.mean_energy),
            'mean_age': float(self.mean_age),
            'mean_starvation_resistance': float(self.mean_starvation_resistance),
            'mean_metabolism_rate': float(self.mean_metabolism_rate)
        }


@dataclass
class EcosystemStats:
    """Per-tick summary of the world"""
    tick: int = 0
    total_organisms: int = 0
    mean_energy: float = 0.0
    mean_age: float = 0.0
    hibernating: int = 0
    free_blocks: int = 0
    embedded_blocks: int = 0
    mean_oxygen: float = 0.0
    mean_co2: float = 0.0
    species: Dict[str, SpeciesStats] = field(default_factory=dict)
    free_blocks_by_type: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """
        Serialize to dict.
        Ensures no numpy types leak through.
        """
        return {
            'tick': int(self.tick),
            'total_organisms': int(self.total_organisms),
            'mean_energy': float(self.mean_energy),
            'mean_age': float(self.mean_age),
            'hibernating': int(self.hibernating),
            'free_blocks': int(self.free_blocks),
            'embedded_blocks': int(self.embedded_blocks),
            'mean_oxygen': float(self.mean_oxygen),
            'mean_co2': float(self.mean_co2),
            'species': {k: v.to_dict() for k, v in self.species.items()},
            'free_blocks_by_type': {k: int(v) for k, v in self.free_blocks_by_type.items()}
        }


class StatsAggregator:
    """Derives EcosystemStats from a WorldState"""

    def summarize(self, state: 'WorldState') -> EcosystemStats:
        organisms = list(state.organisms)

        grouped: Dict[str, List] = {}
        for organism in organisms:
            grouped.setdefault(organism.archetype_id, []).append(organism)

        species = {}
        for archetype_id, members in grouped.items():
            species[archetype_id] = SpeciesStats(
                count=len(members),
                mean_energy=_mean([o.energy for o in members]),
                mean_age=_mean([o.age for o in members]),
                mean_starvation_resistance=_mean([o.starvation_resistance for o in members]),
                mean_metabolism_rate=_mean([o.metabolism_rate for o in members])
            )

        type_counts = state.blocks.counts_by_type()

        return EcosystemStats(
            tick=state.tick,
            total_organisms=len(organisms),
            mean_energy=_mean([o.energy for o in organisms]),
            mean_age=_mean([o.age for o in organisms]),
            hibernating=state.organisms.hibernating_count(),
            free_blocks=state.blocks.count,
            embedded_blocks=state.organisms.embedded_block_count(),
            mean_oxygen=state.gas.mean_oxygen,
            mean_co2=state.gas.mean_co2,
            species=species,
            free_blocks_by_type={bt.name: int(type_counts[int(bt)]) for bt in BlockType}
        )
