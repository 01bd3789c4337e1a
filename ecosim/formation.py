"""
Formation engine: turns clusters of free blocks into organisms.

Each tick every archetype gets a low-probability attempt. An attempt picks a
random seed block, tallies the free blocks around it, and succeeds when the
neighborhood satisfies the recipe and the recipe's block types are pairwise
compatible. At most one organism forms per tick.
"""

import numpy as np
from typing import Optional, TYPE_CHECKING

from .data_types import Archetype, Catalog, NUM_BLOCK_TYPES
from .organism import Organism
from .spatial import distances_to
from .rng import centered_uniform

if TYPE_CHECKING:
    from .world_state import WorldState


def satisfiable(available: np.ndarray, requires: np.ndarray) -> bool:
    """True if available counts cover every required count"""
    return bool(np.all(available >= requires))


def is_compatible(catalog: Catalog, archetype: Archetype) -> bool:
    """
    Check pairwise compatibility of the archetype's required block types.

    The catalog matrix is already symmetric, so one lookup per pair covers
    both directions. A recipe with a single type is trivially compatible.
    """
    required = np.nonzero(archetype.requires)[0]
    if len(required) < 2:
        return True
    pairs = catalog.compatibility[np.ix_(required, required)]
    off_diagonal = ~np.eye(len(required), dtype=bool)
    return bool(np.all(pairs[off_diagonal]))


def select_blocks(neighborhood: np.ndarray, types: np.ndarray, requires: np.ndarray) -> np.ndarray:
    """
    Pick the blocks a recipe consumes from a neighborhood.

    For each required type, take the first `count` blocks of that type while
    scanning neighborhood indices in reverse order (later-indexed blocks
    are preferred).

    Args:
        neighborhood: Ascending pool indices of candidate blocks
        types: Full pool type array
        requires: Required counts per type

    Returns:
        Selected pool indices
    """
    reversed_hood = neighborhood[::-1]
    hood_types = types[reversed_hood]
    selected = []
    for type_value in np.nonzero(requires)[0]:
        matches = reversed_hood[hood_types == type_value]
        selected.append(matches[:int(requires[type_value])])
    if not selected:
        return np.empty(0, dtype=np.int64)
    return np.concatenate(selected)


class FormationEngine:
    """
    Recipe matcher over the BlockPool.

    Organism ids are issued by the registry so formed organisms and offspring
    share one serial sequence.
    """

    def try_form(self, state: 'WorldState') -> Optional[Organism]:
        """
        Run one formation pass.

        Archetypes are tried in catalog order; the first success wins and is
        added to the registry.

        Returns:
            The new organism, or None
        """
        config = state.config
        for archetype in state.catalog.archetypes:
            # Per-archetype gate bounds the cost of the neighborhood scan
            if state.rng.random() >= config.formation_probability:
                continue

            organism = self.attempt(state, archetype)
            if organism is not None:
                return organism

        return None

    def attempt(self, state: 'WorldState', archetype: Archetype) -> Optional[Organism]:
        """
        Try to form one organism of the given archetype (no probability gate).

        Returns:
            The new organism (already registered), or None
        """
        pool = state.blocks
        if len(pool) == 0:
            return None

        seed_index = int(state.rng.integers(0, len(pool)))
        seed_position = pool.positions[seed_index]

        # Snapshot of nearby free block indices (ascending)
        dists = distances_to(pool.positions, seed_position)
        neighborhood = np.nonzero(dists < state.config.formation_radius)[0]

        available = np.bincount(pool.types[neighborhood], minlength=NUM_BLOCK_TYPES)
        if not satisfiable(available, archetype.requires):
            return None

        if not is_compatible(state.catalog, archetype):
            return None

        selected = select_blocks(neighborhood, pool.types, archetype.requires)
        centroid = pool.positions[selected].mean(axis=0)

        # Batch removal, highest index first
        pool.remove(selected)
        state.ledger.formed += len(selected)

        organism = state.organisms.create(
            archetype=archetype,
            position=centroid,
            velocity=centered_uniform(state.rng, state.config.initial_organism_speed),
            energy=state.config.max_energy,
            starvation_resistance=archetype.starvation_time,
            metabolism_rate=archetype.metabolism,
            composition=archetype.requires.copy()
        )
        return organism
