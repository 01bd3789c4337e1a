"""
Live organism collection and the per-tick lifecycle pass.

update_all() walks the list from the end backward. Removing a row before the
cursor shifts the cursor down by one, so every organism present at the start
of the tick is visited exactly once; offspring appended during the pass are
first visited next tick.
"""

import numpy as np
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, TYPE_CHECKING

from .data_types import Archetype
from .organism import Organism
from .behavior import (
    can_breathe, update_hibernation, effective_metabolism,
    steering_force, integrate_motion, exchange_gas, find_capture
)
from .spatial import wrap_position
from .rng import centered_uniform

if TYPE_CHECKING:
    from .world_state import WorldState


@dataclass
class TickEvents:
    """Lifecycle events counted during one update_all() pass"""
    births: int = 0
    deaths: int = 0
    predations: int = 0
    skipped: int = 0  # Organisms outside the gas grid this tick

    def to_dict(self) -> dict:
        return {
            'births': self.births,
            'deaths': self.deaths,
            'predations': self.predations,
            'skipped': self.skipped
        }


class OrganismRegistry:
    """
    Ordered list of live organisms.

    Serial numbers for instance ids are issued here so formed organisms and
    offspring never collide.
    """

    def __init__(self):
        self.organisms: List[Organism] = []
        self._serial: int = 0

    # ------------------------------------------------------------------
    # Container protocol
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.organisms)

    def __iter__(self) -> Iterator[Organism]:
        return iter(self.organisms)

    def __getitem__(self, index: int) -> Organism:
        return self.organisms[index]

    def add(self, organism: Organism) -> Organism:
        self.organisms.append(organism)
        return organism

    def remove_at(self, index: int) -> Organism:
        return self.organisms.pop(index)

    def next_id(self, archetype_id: str) -> str:
        instance_id = f"{archetype_id}-{self._serial:05d}"
        self._serial += 1
        return instance_id

    def create(
        self,
        archetype: Archetype,
        position: np.ndarray,
        velocity: np.ndarray,
        energy: float,
        starvation_resistance: float,
        metabolism_rate: float,
        composition: np.ndarray,
        parent: Optional[Organism] = None
    ) -> Organism:
        """Construct and register a new organism"""
        organism = Organism(
            instance_id=self.next_id(archetype.archetype_id),
            archetype_id=archetype.archetype_id,
            position=position,
            velocity=velocity,
            energy=energy,
            starvation_resistance=starvation_resistance,
            metabolism_rate=metabolism_rate,
            composition=composition,
            parent_id=parent.instance_id if parent is not None else None,
            generation=parent.generation + 1 if parent is not None else 0
        )
        return self.add(organism)

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def embedded_block_count(self) -> int:
        """Blocks held in all living compositions"""
        return int(sum(o.block_count for o in self.organisms))

    def counts_by_archetype(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for organism in self.organisms:
            counts[organism.archetype_id] = counts.get(organism.archetype_id, 0) + 1
        return counts

    def hibernating_count(self) -> int:
        return sum(1 for o in self.organisms if o.hibernating)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def update_all(self, state: 'WorldState') -> TickEvents:
        """
        Run the behavior state machine for every organism.

        Args:
            state: World state (gas field and block pool are mutated)

        Returns:
            TickEvents counts for this pass
        """
        events = TickEvents()
        cursor = len(self.organisms) - 1
        while cursor >= 0:
            cursor = self._update_one(state, cursor, events)
            cursor -= 1
        return events

    def _update_one(self, state: 'WorldState', index: int, events: TickEvents) -> int:
        """
        Advance one organism.

        Returns:
            The cursor after any removals (the organism's own row, or the row
            it occupied if it died)
        """
        config = state.config
        organism = self.organisms[index]
        archetype = state.catalog[organism.archetype_id]

        # 1. Outside the grid: transient no-op
        cell = state.gas.cell_at(organism.position)
        if cell is None:
            events.skipped += 1
            return index

        # 2-4. Respiration, hibernation, metabolism
        breathing = can_breathe(state.gas, cell, archetype, config)
        update_hibernation(organism, archetype, breathing, config)
        metabolism = effective_metabolism(organism, config)

        # 5. Movement (hibernating organisms stay put)
        if not organism.hibernating:
            force = steering_force(state, self.organisms, index, archetype, cell)
            integrate_motion(organism, force, archetype, state)

        # 6. Gas exchange
        exchange_gas(state, organism, archetype, cell, breathing, metabolism)

        # 7. Predation, at most one meal
        ate = False
        if not organism.hibernating and archetype.is_predator:
            prey_row = find_capture(self.organisms, index, archetype, archetype.size + config.capture_margin)
            if prey_row is not None:
                prey = self.remove_at(prey_row)
                self._release(state, prey)
                organism.add_energy(config.feeding_bonus, config.max_energy)
                organism.time_since_fed = 0
                events.predations += 1
                ate = True
                if prey_row < index:
                    index -= 1

        if not ate:
            organism.time_since_fed += 1

        # 8. Reproduction
        if (organism.energy > config.reproduction_energy
                and organism.time_since_fed < config.reproduction_fed_window
                and state.rng.random() < config.reproduction_probability):
            self._reproduce(state, organism, archetype)
            events.births += 1

        # 9. Aging
        organism.age += 1

        # 10. Death by starvation
        if (organism.time_since_fed > organism.starvation_resistance
                and organism.energy <= config.death_energy):
            self.remove_at(index)
            self._release(state, organism)
            events.deaths += 1

        return index

    def _reproduce(self, state: 'WorldState', parent: Organism, archetype: Archetype) -> Organism:
        """
        Spawn a mutated copy of the parent.

        The child duplicates the parent's composition without drawing on the
        block pool; the ledger records the duplicated blocks.
        """
        config = state.config
        rng = state.rng

        position = wrap_position(
            parent.position + centered_uniform(rng, config.child_offset),
            state.width, state.height
        )
        velocity = centered_uniform(rng, config.initial_organism_speed)
        starvation_resistance = parent.starvation_resistance + (rng.random() - 0.5) * config.starvation_mutation
        metabolism_rate = parent.metabolism_rate * (
            1.0 - config.metabolism_mutation / 2.0 + rng.random() * config.metabolism_mutation
        )

        child = self.create(
            archetype=archetype,
            position=position,
            velocity=velocity,
            energy=config.child_energy,
            starvation_resistance=starvation_resistance,
            metabolism_rate=metabolism_rate,
            composition=parent.composition.copy(),
            parent=parent
        )
        parent.energy = config.parent_energy_after
        state.ledger.replicated += child.block_count
        return child

    def _release(self, state: 'WorldState', organism: Organism):
        """Return an organism's full composition to the pool at its last position"""
        config = state.config
        released = state.blocks.release_composition(
            organism.composition, organism.position, state.rng,
            jitter_span=config.release_jitter, speed_span=config.release_speed
        )
        state.ledger.released += released

    def to_dict(self) -> dict:
        return {
            'count': len(self.organisms),
            'by_archetype': self.counts_by_archetype(),
            'organisms': [o.to_dict() for o in self.organisms]
        }
