"""
Ecosim simulation kernel.

Main simulation class that owns the world state, the tick loop, and
telemetry. The host (renderer / UI loop) calls tick() once per frame and
decides on its own whether to keep calling it; there is no internal pause.
"""

import dataclasses
import numpy as np
import os
import time
from typing import Dict, List, Optional
from pathlib import Path

from .data_types import World, Catalog, WorldParameters
from .loader import load_all_data, DEFAULT_SCHEMA_DIR
from .gas_field import GasField
from .block_pool import BlockPool
from .registry import OrganismRegistry, TickEvents
from .formation import FormationEngine
from .stats import StatsAggregator, EcosystemStats
from .world_state import WorldState, BlockLedger
from .rng import make_seed, make_rng
from .constants import TICK_TIME_WINDOW, ECOSYSTEM_LOG_INTERVAL


class EcosystemSimulation:
    """
    Main simulation class for the micro-ecosystem.

    Tick order:
        gas diffusion -> block drift + spontaneous generation -> formation
        -> organism lifecycle -> stats
    """

    def __init__(
        self,
        data_root: Optional[Path] = None,
        schema_dir: Optional[Path] = DEFAULT_SCHEMA_DIR,
        world_file: Optional[Path] = None,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
        width: Optional[float] = None,
        height: Optional[float] = None,
        config_overrides: Optional[Dict[str, float]] = None,
        **parameter_overrides
    ):
        """
        Initialize simulation from data pack.

        Args:
            data_root: Path to data directory (defaults to the packaged data)
            schema_dir: Optional path to JSON schemas (None skips validation)
            world_file: World YAML relative to data_root
            seed: Overrides the world seed (None keeps the data pack seed)
            rng: Inject a generator directly; it is reused across resets
            width, height: Override world bounds
            config_overrides: SimulationConfig fields to replace
            **parameter_overrides: WorldParameters fields (initial_block_count,
                global_speed, attraction_range)
        """
        # Load data pack
        print("Loading data pack...")
        data = load_all_data(data_root, schema_dir, world_file)

        self.world: World = data['world']
        self.catalog: Catalog = data['catalog']

        self.width: float = float(width) if width is not None else self.world.width
        self.height: float = float(height) if height is not None else self.world.height
        self.params: WorldParameters = dataclasses.replace(self.world.parameters, **parameter_overrides)
        self.config = dataclasses.replace(self.world.simulation, **(config_overrides or {}))

        self.seed: Optional[int] = seed if seed is not None else self.world.seed
        self._injected_rng: Optional[np.random.Generator] = rng
        self._reset_count: int = 0
        if self.seed is None and rng is None:
            print("[WARN] No seed configured; runs will not be reproducible")

        self.formation = FormationEngine()
        self.aggregator = StatsAggregator()

        # Simulation state
        self.state: Optional[WorldState] = None
        self.last_events: TickEvents = TickEvents()
        self.last_stats: Optional[EcosystemStats] = None
        self.total_formed: int = 0

        # Performance metrics
        self._tick_times: List[float] = []
        self._tick_time_sum: float = 0.0
        self._tick_time_window: int = TICK_TIME_WINDOW  # Rolling average window

        # Phase timing breakdown
        self._gas_times: List[float] = []
        self._block_times: List[float] = []
        self._formation_times: List[float] = []
        self._organism_times: List[float] = []
        self._stats_times: List[float] = []

        self.reset()

        print(f"[OK] Simulation initialized: {self.state.blocks.count} blocks, "
              f"{len(self.catalog.archetypes)} archetypes, "
              f"grid={self.state.gas.rows}x{self.state.gas.cols}, seed={self.seed}")

    # ------------------------------------------------------------------
    # Host controls
    # ------------------------------------------------------------------

    def _next_rng(self) -> np.random.Generator:
        if self._injected_rng is not None:
            return self._injected_rng
        if self.seed is None:
            return make_rng()
        return make_rng(make_seed(self.seed, "reset", self._reset_count))

    def reset(self) -> WorldState:
        """
        Rebuild the world: baseline gas field, freshly scattered block pool,
        empty organism registry.

        Returns:
            The new WorldState
        """
        config = self.config
        rng = self._next_rng()
        self._reset_count += 1

        gas = GasField(
            self.width, self.height,
            cell_size=config.gas_cell_size,
            baseline=config.gas_baseline,
            retention=config.gas_retention,
            relaxation=config.gas_relaxation
        )
        blocks = BlockPool(self.width, self.height)
        blocks.scatter(self.params.initial_block_count, rng, config.spawn_speed)

        self.state = WorldState(
            width=self.width,
            height=self.height,
            params=self.params,
            config=config,
            catalog=self.catalog,
            gas=gas,
            blocks=blocks,
            organisms=OrganismRegistry(),
            rng=rng,
            ledger=BlockLedger(scattered=blocks.count)
        )
        self.last_events = TickEvents()
        self.last_stats = self.aggregator.summarize(self.state)
        self.total_formed = 0
        return self.state

    def set_parameters(self, **changes) -> WorldParameters:
        """
        Update host parameters in place (slider changes).

        global_speed and attraction_range apply from the next tick;
        initial_block_count applies at the next reset().
        """
        for name, value in changes.items():
            if not hasattr(self.params, name):
                raise AttributeError(f"Unknown world parameter: {name}")
            setattr(self.params, name, value)
        return self.params

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick(self) -> EcosystemStats:
        """
        Advance simulation by one time step.

        Returns:
            EcosystemStats for the new state
        """
        start_time = time.perf_counter()
        state = self.state

        # ============================================================
        # PHASE 1: GAS DIFFUSION
        # ============================================================
        phase_start = time.perf_counter()
        state.gas.diffuse()
        self._gas_times.append(time.perf_counter() - phase_start)

        # ============================================================
        # PHASE 2: FREE BLOCK DRIFT + SPONTANEOUS GENERATION
        # ============================================================
        phase_start = time.perf_counter()
        state.blocks.update(state.params, state.config, state.rng)
        state.ledger.spawned += state.blocks.spawn_random(
            state.rng, state.config.spawn_probability, state.config.spawn_speed
        )
        self._block_times.append(time.perf_counter() - phase_start)

        # ============================================================
        # PHASE 3: FORMATION (at most one organism per tick)
        # ============================================================
        phase_start = time.perf_counter()
        formed = self.formation.try_form(state)
        if formed is not None:
            self.total_formed += 1
        self._formation_times.append(time.perf_counter() - phase_start)

        # ============================================================
        # PHASE 4: ORGANISM LIFECYCLE
        # ============================================================
        phase_start = time.perf_counter()
        self.last_events = state.organisms.update_all(state)
        self._organism_times.append(time.perf_counter() - phase_start)

        state.tick += 1

        # ============================================================
        # PHASE 5: STATS (read-only)
        # ============================================================
        phase_start = time.perf_counter()
        self.last_stats = self.aggregator.summarize(state)
        self._stats_times.append(time.perf_counter() - phase_start)

        # Record timing
        elapsed = time.perf_counter() - start_time
        self._record_tick_time(elapsed)

        # Debug invariant check (zero perf impact when env var not set)
        # Invariant: free + embedded blocks match the ledger's sources
        if os.getenv('ECOSIM_DEBUG_INVARIANTS') == '1':
            assert state.total_blocks() == state.ledger.expected_total, \
                f"block total ({state.total_blocks()}) != ledger ({state.ledger.expected_total})"

        return self.last_stats

    def run(self, ticks: int) -> EcosystemStats:
        """Tick repeatedly; returns the final stats"""
        for _ in range(ticks):
            self.tick()
        return self.last_stats

    # ------------------------------------------------------------------
    # Telemetry
    # ------------------------------------------------------------------

    def get_stats(self) -> EcosystemStats:
        return self.last_stats

    def get_tick_stats(self) -> dict:
        """
        Get current tick timing statistics.

        Returns:
            Dict with tick_count, avg_tick_time_ms, last_tick_time_ms
        """
        if not self._tick_times:
            return {
                'tick_count': self.state.tick,
                'avg_tick_time_ms': 0.0,
                'last_tick_time_ms': 0.0
            }

        avg_time = self._tick_time_sum / len(self._tick_times)
        last_time = self._tick_times[-1]

        return {
            'tick_count': self.state.tick,
            'avg_tick_time_ms': avg_time * 1000.0,
            'last_tick_time_ms': last_time * 1000.0
        }

    def _record_tick_time(self, elapsed: float):
        """
        Record tick timing for rolling average.

        Args:
            elapsed: Tick time in seconds
        """
        self._tick_times.append(elapsed)
        self._tick_time_sum += elapsed

        # Maintain rolling window
        if len(self._tick_times) > self._tick_time_window:
            removed = self._tick_times.pop(0)
            self._tick_time_sum -= removed

        # Phase lists share the same window
        for phase_times in (self._gas_times, self._block_times, self._formation_times,
                            self._organism_times, self._stats_times):
            if len(phase_times) > self._tick_time_window:
                phase_times.pop(0)

    def get_snapshot(self) -> dict:
        """
        Get complete simulation state snapshot for renderers.

        Returns:
            Dict with tick_count, gas grid, blocks, organisms, stats, timing
        """
        state = self.state
        return {
            'tick_count': state.tick,
            'bounds': {'width': self.width, 'height': self.height},
            'gas': state.gas.to_dict(),
            'blocks': state.blocks.to_dict(),
            'organisms': state.organisms.to_dict(),
            'stats': self.last_stats.to_dict(),
            'ledger': state.ledger.to_dict(),
            'timing': self.get_tick_stats()
        }

    def print_tick_summary(self):
        """Print tick summary to console (lightweight monitoring)"""
        stats = self.get_tick_stats()
        print(f"Tick {stats['tick_count']:5d} | "
              f"Avg: {stats['avg_tick_time_ms']:6.3f} ms | "
              f"Last: {stats['last_tick_time_ms']:6.3f} ms | "
              f"Organisms: {len(self.state.organisms)} | "
              f"Blocks: {self.state.blocks.count}")

    def print_ecosystem_summary(self, every: int = ECOSYSTEM_LOG_INTERVAL):
        """
        Print population and timing breakdown on interval.

        Args:
            every: Print interval in ticks
        """
        if self.state.tick == 0 or self.state.tick % every != 0:
            return

        window = len(self._tick_times)
        if window == 0:
            return

        def avg_ms(times: List[float]) -> float:
            return sum(times) / len(times) * 1000.0 if times else 0.0

        stats = self.last_stats
        print(f"\n[Ecosystem] Tick {self.state.tick} | organisms={stats.total_organisms} "
              f"hibernating={stats.hibernating} blocks={stats.free_blocks} "
              f"embedded={stats.embedded_blocks} formed={self.total_formed}")
        print(f"  energy_mean={stats.mean_energy:.1f} age_mean={stats.mean_age:.0f} | "
              f"O2={stats.mean_oxygen:.1f} CO2={stats.mean_co2:.1f}")
        for archetype_id, species in stats.species.items():
            print(f"  {archetype_id:24s} n={species.count:4d} "
                  f"energy={species.mean_energy:5.1f} age={species.mean_age:6.0f} "
                  f"starv={species.mean_starvation_resistance:6.1f} "
                  f"metab={species.mean_metabolism_rate:.4f}")
        print(f"  Gas:       {avg_ms(self._gas_times):6.3f} ms")
        print(f"  Blocks:    {avg_ms(self._block_times):6.3f} ms")
        print(f"  Formation: {avg_ms(self._formation_times):6.3f} ms")
        print(f"  Organisms: {avg_ms(self._organism_times):6.3f} ms")
        print(f"  Stats:     {avg_ms(self._stats_times):6.3f} ms")
        print(f"  Total:     {avg_ms(self._tick_times):6.3f} ms")
