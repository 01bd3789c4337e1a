"""
Test the organism lifecycle pass.

Scenarios:
- Predation: prey removed, blocks released, predator fed
- Hibernation entered under suffocation (no movement, reduced cost)
- Reproduction: parent/child energy, duplicated composition, no pool draw
- Starvation death: composition returned to the pool
- Organisms outside the gas grid skip the tick
- Cursor bookkeeping when a lower row is eaten
"""

import numpy as np
import pytest

from ecosim.data_types import GasKind
from ecosim.tests.scenario_harness import build_world_state, make_organism, quiet_config


def test_predation():
    """Protozoa in contact with bacteria eats it"""
    print("\n" + "=" * 60)
    print("Lifecycle: predation")
    print("=" * 60)

    state = build_world_state(**quiet_config())
    prey = make_organism(state, 'AEROBIC_BACTERIA', [203.0, 200.0])
    predator = make_organism(state, 'PREDATORY_PROTOZOA', [200.0, 200.0], energy=50.0, time_since_fed=40)

    events = state.organisms.update_all(state)

    assert events.predations == 1
    assert len(state.organisms) == 1
    assert state.organisms[0] is predator
    assert predator.energy == pytest.approx(50.0 - predator.metabolism_rate + 30.0)
    assert predator.time_since_fed == 0
    assert predator.age == 1

    # Prey composition back in the pool near where it died
    assert state.blocks.count == prey.block_count
    assert np.array_equal(state.blocks.counts_by_type(), prey.composition)
    assert np.all(np.abs(state.blocks.positions - prey.position) <= state.config.release_jitter / 2)
    assert state.ledger.released == prey.block_count

    print(f"[OK] {predator.instance_id} ate {prey.instance_id}, energy={predator.energy:.2f}")


def test_feeding_caps_energy():
    state = build_world_state(**quiet_config())
    make_organism(state, 'AEROBIC_BACTERIA', [203.0, 200.0])
    predator = make_organism(state, 'PREDATORY_PROTOZOA', [200.0, 200.0], energy=90.0)

    state.organisms.update_all(state)

    assert predator.energy == 100.0


def test_predator_ignores_non_prey():
    state = build_world_state(**quiet_config())
    algae = make_organism(state, 'PHOTOSYNTHETIC_ALGAE', [203.0, 200.0])
    predator = make_organism(state, 'PREDATORY_PROTOZOA', [200.0, 200.0], time_since_fed=5)

    events = state.organisms.update_all(state)

    assert events.predations == 0
    assert len(state.organisms) == 2
    assert predator.time_since_fed == 6
    assert algae.time_since_fed == 1


def test_hibernation_under_suffocation():
    """No oxygen and hungry: hibernates, stays put, pays 10% metabolism doubled"""
    state = build_world_state(**quiet_config())
    organism = make_organism(state, 'AEROBIC_BACTERIA', [220.0, 220.0], energy=80.0, time_since_fed=150)
    state.gas.oxygen[5, 5] = 5.0
    start = organism.position.copy()

    state.organisms.update_all(state)

    assert organism.hibernating
    assert np.array_equal(organism.position, start)
    expected_cost = 2 * organism.metabolism_rate * state.config.hibernation_metabolism_factor
    assert organism.energy == pytest.approx(80.0 - expected_cost)
    assert state.gas.oxygen[5, 5] == 5.0
    assert organism.time_since_fed == 151

    # Air returns, but still hungry: remains hibernating
    state.gas.oxygen[5, 5] = 50.0
    state.organisms.update_all(state)
    assert organism.hibernating

    print("[OK] Hibernating organism held position and paid reduced cost")


def test_hibernating_predator_does_not_eat():
    state = build_world_state(**quiet_config())
    make_organism(state, 'AEROBIC_BACTERIA', [203.0, 200.0])
    make_organism(state, 'PREDATORY_PROTOZOA', [200.0, 200.0], hibernating=True, time_since_fed=150)

    events = state.organisms.update_all(state)

    assert events.predations == 0
    assert len(state.organisms) == 2


def test_reproduction():
    """Guaranteed reproduction: parent drops to 50, child starts at 60"""
    overrides = quiet_config()
    overrides['reproduction_probability'] = 1.0
    state = build_world_state(**overrides)
    parent = make_organism(state, 'AEROBIC_BACTERIA', [220.0, 220.0], energy=80.0)
    pool_before = state.blocks.count

    events = state.organisms.update_all(state)

    assert events.births == 1
    assert len(state.organisms) == 2
    child = state.organisms[1]

    assert parent.energy == state.config.parent_energy_after
    assert child.energy == state.config.child_energy
    assert np.array_equal(child.composition, parent.composition)
    assert child.archetype_id == parent.archetype_id
    assert child.parent_id == parent.instance_id
    assert child.generation == parent.generation + 1
    assert child.instance_id != parent.instance_id

    # Appended during the pass, first visited next tick
    assert child.age == 0
    assert child.time_since_fed == 0

    # Placement and heritable mutation ranges
    assert np.all(np.abs(child.position - parent.position) <= state.config.child_offset / 2)
    assert abs(child.starvation_resistance - parent.starvation_resistance) <= state.config.starvation_mutation / 2
    ratio = child.metabolism_rate / parent.metabolism_rate
    assert 1.0 - state.config.metabolism_mutation / 2 <= ratio <= 1.0 + state.config.metabolism_mutation / 2

    # The block pool is not drawn on
    assert state.blocks.count == pool_before
    assert state.ledger.replicated == parent.block_count


def test_no_reproduction_when_low_energy_or_hungry():
    overrides = quiet_config()
    overrides['reproduction_probability'] = 1.0
    state = build_world_state(**overrides)
    make_organism(state, 'AEROBIC_BACTERIA', [100.0, 100.0], energy=70.0)
    make_organism(state, 'AEROBIC_BACTERIA', [300.0, 300.0], energy=95.0, time_since_fed=49)

    events = state.organisms.update_all(state)

    assert events.births == 0
    assert len(state.organisms) == 2


def test_starvation_death():
    state = build_world_state(**quiet_config())
    organism = make_organism(state, 'AEROBIC_BACTERIA', [220.0, 220.0], energy=10.02, time_since_fed=250)

    events = state.organisms.update_all(state)

    assert events.deaths == 1
    assert len(state.organisms) == 0
    assert state.blocks.count == organism.block_count
    assert np.array_equal(state.blocks.counts_by_type(), organism.composition)
    assert state.ledger.released == organism.block_count


def test_starving_with_energy_survives():
    state = build_world_state(**quiet_config())
    make_organism(state, 'AEROBIC_BACTERIA', [220.0, 220.0], energy=40.0, time_since_fed=250)

    events = state.organisms.update_all(state)

    assert events.deaths == 0
    assert len(state.organisms) == 1


def test_outside_grid_is_skipped():
    """A position placed beyond the world has no cell and is left untouched"""
    state = build_world_state(**quiet_config())
    organism = make_organism(state, 'AEROBIC_BACTERIA', [-5.0, 200.0], energy=80.0, time_since_fed=3)

    events = state.organisms.update_all(state)

    assert events.skipped == 1
    assert organism.age == 0
    assert organism.energy == 80.0
    assert organism.time_since_fed == 3
    assert np.array_equal(organism.position, [-5.0, 200.0])


def test_wrapped_organism_keeps_living():
    """Crossing the left and top edges lands on a valid cell; starvation still applies"""
    print("\n" + "=" * 60)
    print("Lifecycle: wrap across left/top edges")
    print("=" * 60)

    state = build_world_state(**quiet_config())
    organism = make_organism(state, 'AEROBIC_BACTERIA', [0.05, 0.05], energy=11.0, time_since_fed=500)
    organism.velocity = np.array([-0.1, -0.1])
    blocks = organism.block_count

    events = state.organisms.update_all(state)
    assert events.skipped == 0
    assert organism.position.tolist() == [state.width, state.height]
    assert state.gas.cell_at(organism.position) == (state.gas.rows - 1, state.gas.cols - 1)

    skipped = 0
    for tick in range(2, 60):
        events = state.organisms.update_all(state)
        skipped += events.skipped
        if len(state.organisms) == 0:
            break
        assert organism.age == tick

    assert skipped == 0
    assert len(state.organisms) == 0
    assert state.blocks.count == blocks

    print(f"[OK] Wrapped organism starved after {organism.age} ticks")


def test_cursor_adjusts_when_lower_row_eaten():
    """Every organism present at the start of the pass is visited once"""
    state = build_world_state(**quiet_config())
    bystander = make_organism(state, 'PHOTOSYNTHETIC_ALGAE', [50.0, 50.0])   # row 0
    make_organism(state, 'AEROBIC_BACTERIA', [303.0, 300.0])                # row 1, eaten
    predator = make_organism(state, 'PREDATORY_PROTOZOA', [300.0, 300.0])   # row 2

    events = state.organisms.update_all(state)

    assert events.predations == 1
    assert [o.instance_id for o in state.organisms] == [bystander.instance_id, predator.instance_id]
    assert bystander.age == 1
    assert predator.age == 1


def test_gas_exchange_applied_to_cell():
    state = build_world_state(**quiet_config())
    organism = make_organism(state, 'AEROBIC_BACTERIA', [220.0, 220.0])
    organism.hibernating = False

    state.organisms.update_all(state)

    cell = state.gas.cell_at(organism.position)
    m = organism.metabolism_rate
    assert state.gas.value(cell, GasKind.OXYGEN) == pytest.approx(50.0 - 2 * m)
    assert state.gas.value(cell, GasKind.CO2) == pytest.approx(50.0 + 3 * m)


def test_instance_ids_unique():
    state = build_world_state(**quiet_config())
    ids = {make_organism(state, 'AEROBIC_BACTERIA', [10.0 * i + 5.0, 5.0]).instance_id for i in range(20)}
    assert len(ids) == 20

    snapshot = state.organisms.to_dict()
    assert snapshot['count'] == 20
    assert snapshot['organisms'][0]['composition']['PROTEIN'] == 2


class TestAggregates:
    """Registry-level counts used by stats and snapshots"""

    def test_counts_by_archetype(self):
        state = build_world_state(**quiet_config())
        make_organism(state, 'AEROBIC_BACTERIA', [100.0, 100.0])
        make_organism(state, 'AEROBIC_BACTERIA', [150.0, 100.0])
        make_organism(state, 'APEX_PREDATOR', [300.0, 300.0], hibernating=True)

        registry = state.organisms
        assert registry.counts_by_archetype() == {'AEROBIC_BACTERIA': 2, 'APEX_PREDATOR': 1}
        assert registry.hibernating_count() == 1
        assert registry.embedded_block_count() == 6 + 6 + 15
        assert registry.to_dict()['by_archetype']['APEX_PREDATOR'] == 1

    def test_remove_at_returns_organism(self):
        state = build_world_state(**quiet_config())
        first = make_organism(state, 'AEROBIC_BACTERIA', [100.0, 100.0])
        second = make_organism(state, 'AEROBIC_BACTERIA', [150.0, 100.0])

        assert state.organisms.remove_at(0) is first
        assert list(state.organisms) == [second]
