"""
Per-organism behavior evaluation.

Respiration checks, the hibernation hysteresis, steering (hunt prey or climb
the gas gradient), motion integration and gas exchange. The registry calls
these in a fixed order for each organism; predation, reproduction and death
live in registry.py because they add or remove organisms.
"""

import numpy as np
from typing import List, Optional, TYPE_CHECKING

from .data_types import Archetype, BlockType, SimulationConfig
from .gas_field import Cell, GasField
from .organism import Organism
from .spatial import COMPASS_DIRECTIONS, clamp_speed, distance_2d, normalize, wrap_position
from .rng import centered_uniform

if TYPE_CHECKING:
    from .world_state import WorldState


def can_breathe(gas: GasField, cell: Cell, archetype: Archetype, config: SimulationConfig) -> bool:
    """True if the archetype's consumed gas in this cell exceeds the breath threshold"""
    return gas.value(cell, archetype.respiration) > config.breath_threshold


def update_hibernation(organism: Organism, archetype: Archetype, breathing: bool, config: SimulationConfig):
    """
    Apply the hibernation hysteresis.

    Enter:  time_since_fed > enter_fraction * starvation_resistance and cannot breathe
    Leave:  hibernating, breathing, and time_since_fed < exit_fraction * starvation_resistance

    The gap between the two fractions keeps the flag from flapping.
    """
    resistance = organism.starvation_resistance

    if (archetype.can_hibernate
            and not breathing
            and organism.time_since_fed > config.hibernation_enter_fraction * resistance):
        organism.hibernating = True

    if (organism.hibernating
            and breathing
            and organism.time_since_fed < config.hibernation_exit_fraction * resistance):
        organism.hibernating = False


def effective_metabolism(organism: Organism, config: SimulationConfig) -> float:
    """Metabolic cost this tick (reduced while hibernating)"""
    if organism.hibernating:
        return organism.metabolism_rate * config.hibernation_metabolism_factor
    return organism.metabolism_rate


def has_locomotion(organism: Organism) -> bool:
    return organism.composition[int(BlockType.LOCOMOTION)] > 0


def find_nearest_prey(
    organisms: List[Organism],
    index: int,
    archetype: Archetype,
    max_distance: float
) -> Optional[int]:
    """
    Find the nearest eligible prey strictly within max_distance.

    Args:
        organisms: Registry list
        index: Row of the hunter (excluded)
        archetype: Hunter archetype (prey list)
        max_distance: Sensing radius

    Returns:
        Row of the nearest prey, or None (ties keep the lower row)
    """
    if not archetype.prey:
        return None

    hunter = organisms[index]
    best_row = None
    best_dist = max_distance

    for row, candidate in enumerate(organisms):
        if row == index or candidate.archetype_id not in archetype.prey:
            continue
        dist = distance_2d(hunter.position, candidate.position)
        if dist < best_dist:
            best_dist = dist
            best_row = row

    return best_row


def find_capture(
    organisms: List[Organism],
    index: int,
    archetype: Archetype,
    capture_radius: float
) -> Optional[int]:
    """
    Find a prey within capture radius, scanning rows from the end.

    Returns:
        Row of the first prey in contact, or None
    """
    if not archetype.prey:
        return None

    hunter = organisms[index]
    for row in range(len(organisms) - 1, -1, -1):
        if row == index:
            continue
        candidate = organisms[row]
        if candidate.archetype_id not in archetype.prey:
            continue
        if distance_2d(hunter.position, candidate.position) < capture_radius:
            return row

    return None


def gradient_direction(gas: GasField, organism: Organism, archetype: Archetype, cell: Cell) -> Optional[np.ndarray]:
    """
    Compass direction toward more of the consumed gas.

    Samples one cell size away in 8 directions; only a strictly better value
    than the current cell counts. Samples outside the grid are ignored.

    Returns:
        Unit direction, or None if no neighbor is better
    """
    best_value = gas.value(cell, archetype.respiration)
    best_direction = None

    for direction in COMPASS_DIRECTIONS:
        sample = gas.sample(organism.position + direction * gas.cell_size, archetype.respiration)
        if sample is not None and sample > best_value:
            best_value = sample
            best_direction = direction

    return best_direction


def steering_force(
    state: 'WorldState',
    organisms: List[Organism],
    index: int,
    archetype: Archetype,
    cell: Cell
) -> np.ndarray:
    """
    Compute the movement force for an active organism.

    Predators with prey in sensing range close the distance. Otherwise the
    organism climbs the gradient of the gas it consumes and adds a small
    random wander. Organisms built without LOCOMOTION blocks push with a
    reduced force.

    Returns:
        Force vector [fx, fy]
    """
    config = state.config
    organism = organisms[index]
    force = np.zeros(2, dtype=np.float64)

    prey_row = find_nearest_prey(organisms, index, archetype, config.sense_radius)
    if prey_row is not None:
        direction, _ = normalize(organisms[prey_row].position - organism.position)
        force += direction * config.hunt_force
    else:
        direction = gradient_direction(state.gas, organism, archetype, cell)
        if direction is not None:
            force += direction * config.gradient_force
        force += centered_uniform(state.rng, config.wander_force)

    if not has_locomotion(organism):
        force *= config.immobile_force_factor

    return force


def integrate_motion(organism: Organism, force: np.ndarray, archetype: Archetype, state: 'WorldState'):
    """
    Apply force, damping and speed limit, then move and wrap.

    All velocity integration is scaled by the global speed parameter.
    """
    speed = state.params.global_speed
    velocity = (organism.velocity + force * speed) * state.config.organism_damping
    organism.velocity = clamp_speed(velocity, archetype.max_speed * speed)
    organism.position = wrap_position(organism.position + organism.velocity, state.width, state.height)


def exchange_gas(
    state: 'WorldState',
    organism: Organism,
    archetype: Archetype,
    cell: Cell,
    breathing: bool,
    metabolism: float
):
    """
    Respire and pay the metabolic cost.

    Breathing: consumed gas -2m, produced gas +3m (if any), energy -m.
    Suffocating: no gas exchange, energy -2m.
    """
    config = state.config
    if breathing:
        state.gas.exchange(
            cell,
            consumed=archetype.respiration,
            produced=archetype.production,
            consumed_amount=config.gas_consume_factor * metabolism,
            produced_amount=config.gas_produce_factor * metabolism
        )
        organism.add_energy(-metabolism, config.max_energy)
    else:
        organism.add_energy(-config.suffocation_factor * metabolism, config.max_energy)
