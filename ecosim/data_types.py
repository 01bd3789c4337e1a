"""
Data types mirroring YAML schema structures.

These dataclasses are populated by loader.py from YAML files.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional
from enum import Enum, IntEnum

import numpy as np

from . import constants as C


# ============================================================================
# Enumerations
# ============================================================================

class BlockType(IntEnum):
    """Fixed catalog of building block types (values index dense count vectors)"""
    NUTRIENT = 0
    CARBON = 1
    PROTEIN = 2
    LOCOMOTION = 3
    PHOTORECEPTOR = 4
    CHEMORECEPTOR = 5
    HERBIVORE_ENZYME = 6
    CARNIVORE_ENZYME = 7
    AEROBIC = 8
    AQUATIC = 9
    CHLOROPLAST = 10
    MITOCHONDRIA = 11


NUM_BLOCK_TYPES = len(BlockType)


class GasKind(Enum):
    """Gas species tracked by the gas field"""
    OXYGEN = "oxygen"
    CO2 = "co2"


def composition_vector(counts: Dict[BlockType, int]) -> np.ndarray:
    """
    Build a dense count vector from a {BlockType: count} mapping.

    Returns:
        (NUM_BLOCK_TYPES,) int64 array indexed by BlockType value
    """
    vec = np.zeros(NUM_BLOCK_TYPES, dtype=np.int64)
    for block_type, count in counts.items():
        vec[int(block_type)] = int(count)
    return vec


def composition_dict(vec: np.ndarray) -> Dict[str, int]:
    """Serialize a dense count vector to {block_type_name: count}, skipping zeros"""
    return {BlockType(i).name: int(n) for i, n in enumerate(vec) if n > 0}


# ============================================================================
# Archetype (Recipe) Definition
# ============================================================================

@dataclass
class Archetype:
    """Static species template: the recipe that forms it and its behavior parameters"""
    archetype_id: str
    name: str
    requires: np.ndarray  # (NUM_BLOCK_TYPES,) int64 required counts
    size: float
    max_speed: float
    metabolism: float
    starvation_time: float
    respiration: GasKind  # Gas consumed
    production: Optional[GasKind]  # Gas produced, None for consume-only organisms
    prey: List[str] = field(default_factory=list)  # Archetype ids this species may eat
    can_hibernate: bool = True
    color: Optional[str] = None  # Cosmetic, owned by the renderer
    shape: Optional[str] = None  # Cosmetic, owned by the renderer
    description: Optional[str] = None

    @property
    def block_budget(self) -> int:
        return int(self.requires.sum())

    @property
    def is_predator(self) -> bool:
        return len(self.prey) > 0


@dataclass
class Catalog:
    """Block compatibility table and ordered archetype table"""
    compatibility: np.ndarray  # (NUM_BLOCK_TYPES, NUM_BLOCK_TYPES) bool, symmetric
    archetypes: List[Archetype]

    def __post_init__(self):
        self._by_id = {a.archetype_id: a for a in self.archetypes}

    def get(self, archetype_id: str) -> Optional[Archetype]:
        return self._by_id.get(archetype_id)

    def __getitem__(self, archetype_id: str) -> Archetype:
        return self._by_id[archetype_id]

    @property
    def archetype_ids(self) -> List[str]:
        return [a.archetype_id for a in self.archetypes]


# ============================================================================
# World Definition
# ============================================================================

@dataclass
class WorldParameters:
    """Host-tunable parameters (sliders in an interactive front end)"""
    initial_block_count: int = C.INITIAL_BLOCK_COUNT_DEFAULT
    global_speed: float = C.GLOBAL_SPEED_DEFAULT
    attraction_range: float = C.ATTRACTION_RANGE_DEFAULT


@dataclass
class SimulationConfig:
    """Simulation tunables; defaults are the reference values from constants.py"""
    # Gas field
    gas_cell_size: float = C.GAS_CELL_SIZE
    gas_baseline: float = C.GAS_BASELINE
    gas_retention: float = C.GAS_RETENTION
    gas_relaxation: float = C.GAS_RELAXATION
    breath_threshold: float = C.BREATH_THRESHOLD
    gas_consume_factor: float = C.GAS_CONSUME_FACTOR
    gas_produce_factor: float = C.GAS_PRODUCE_FACTOR
    suffocation_factor: float = C.SUFFOCATION_FACTOR

    # Building blocks
    attraction_probability: float = C.ATTRACTION_PROBABILITY
    attraction_strength: float = C.ATTRACTION_STRENGTH
    block_damping: float = C.BLOCK_DAMPING
    spawn_probability: float = C.SPAWN_PROBABILITY
    spawn_speed: float = C.SPAWN_SPEED
    release_jitter: float = C.RELEASE_JITTER
    release_speed: float = C.RELEASE_SPEED

    # Formation
    formation_probability: float = C.FORMATION_PROBABILITY
    formation_radius: float = C.FORMATION_RADIUS
    initial_organism_speed: float = C.INITIAL_ORGANISM_SPEED

    # Behavior
    max_energy: float = C.MAX_ENERGY
    sense_radius: float = C.SENSE_RADIUS
    capture_margin: float = C.CAPTURE_MARGIN
    feeding_bonus: float = C.FEEDING_BONUS
    hunt_force: float = C.HUNT_FORCE
    gradient_force: float = C.GRADIENT_FORCE
    wander_force: float = C.WANDER_FORCE
    organism_damping: float = C.ORGANISM_DAMPING
    immobile_force_factor: float = C.IMMOBILE_FORCE_FACTOR
    hibernation_enter_fraction: float = C.HIBERNATION_ENTER_FRACTION
    hibernation_exit_fraction: float = C.HIBERNATION_EXIT_FRACTION
    hibernation_metabolism_factor: float = C.HIBERNATION_METABOLISM_FACTOR
    death_energy: float = C.DEATH_ENERGY

    # Reproduction
    reproduction_energy: float = C.REPRODUCTION_ENERGY
    reproduction_fed_window: int = C.REPRODUCTION_FED_WINDOW
    reproduction_probability: float = C.REPRODUCTION_PROBABILITY
    child_energy: float = C.CHILD_ENERGY
    parent_energy_after: float = C.PARENT_ENERGY_AFTER
    child_offset: float = C.CHILD_OFFSET
    starvation_mutation: float = C.STARVATION_MUTATION
    metabolism_mutation: float = C.METABOLISM_MUTATION


@dataclass
class World:
    """World configuration"""
    world_id: str
    name: str
    width: float
    height: float
    parameters: WorldParameters
    simulation: SimulationConfig
    catalog_path: str
    seed: Optional[int] = None
    description: Optional[str] = None
