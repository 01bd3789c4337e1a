"""
Central configuration constants for ecosim simulation.

Defines reference values, thresholds, and configuration parameters
used across multiple modules. SimulationConfig takes its defaults from here,
so a data pack only needs to list the values it overrides.
"""

# ============================================================================
# Spatial Indexing Configuration
# ============================================================================

# Enable scipy.cKDTree for free-block attraction scans
# Set to False to use O(n) fallback for performance comparison
USE_CKDTREE = True

# cKDTree build parameters
CKDTREE_LEAFSIZE = 16


# ============================================================================
# Host Parameter Defaults
# ============================================================================

INITIAL_BLOCK_COUNT_DEFAULT = 800
GLOBAL_SPEED_DEFAULT = 0.4
ATTRACTION_RANGE_DEFAULT = 12.0  # world units


# ============================================================================
# Gas Field
# ============================================================================

GAS_CELL_SIZE = 40.0          # world units per grid cell
GAS_BASELINE = 50.0           # Initial value and equilibrium target
GAS_MIN = 0.0
GAS_MAX = 100.0
GAS_RETENTION = 0.95          # Weight of a cell's own value during diffusion
GAS_RELAXATION = 0.001        # Fraction of distance to baseline recovered per tick

# Respiration
BREATH_THRESHOLD = 10.0       # Consumed gas must exceed this to breathe
GAS_CONSUME_FACTOR = 2.0      # Consumed gas debit = factor * effective metabolism
GAS_PRODUCE_FACTOR = 3.0      # Produced gas credit = factor * effective metabolism
SUFFOCATION_FACTOR = 2.0      # Energy drain multiplier when unable to breathe


# ============================================================================
# Building Blocks
# ============================================================================

ATTRACTION_PROBABILITY = 0.02  # Per-block, per-tick chance to scan for neighbors
ATTRACTION_STRENGTH = 0.01     # Velocity step toward each neighbor
BLOCK_DAMPING = 0.98
SPAWN_PROBABILITY = 0.05       # Per-tick chance of spontaneous block generation
SPAWN_SPEED = 0.2              # Velocity span for scattered/spawned blocks
RELEASE_JITTER = 10.0          # Positional span when releasing blocks (+/- 5)
RELEASE_SPEED = 0.5            # Velocity span for released blocks


# ============================================================================
# Formation
# ============================================================================

FORMATION_PROBABILITY = 0.001  # Per-archetype, per-tick attempt gate
FORMATION_RADIUS = 35.0        # Neighborhood radius around the seed block
INITIAL_ORGANISM_SPEED = 0.3   # Velocity span for newly formed organisms


# ============================================================================
# Organism Behavior
# ============================================================================

MAX_ENERGY = 100.0
SENSE_RADIUS = 120.0           # Prey detection distance
CAPTURE_MARGIN = 2.0           # Capture radius = archetype size + margin
FEEDING_BONUS = 30.0
HUNT_FORCE = 0.2
GRADIENT_FORCE = 0.1
WANDER_FORCE = 0.05
ORGANISM_DAMPING = 0.96
IMMOBILE_FORCE_FACTOR = 0.3    # Force scale for organisms without LOCOMOTION blocks

# Hibernation hysteresis (fractions of starvation resistance)
HIBERNATION_ENTER_FRACTION = 0.5
HIBERNATION_EXIT_FRACTION = 0.3
HIBERNATION_METABOLISM_FACTOR = 0.1

# Death
DEATH_ENERGY = 10.0


# ============================================================================
# Reproduction
# ============================================================================

REPRODUCTION_ENERGY = 70.0       # Parent energy must exceed this
REPRODUCTION_FED_WINDOW = 50     # time_since_fed must be below this
REPRODUCTION_PROBABILITY = 0.002
CHILD_ENERGY = 60.0
PARENT_ENERGY_AFTER = 50.0
CHILD_OFFSET = 15.0              # Positional span around the parent (+/- 7.5)
STARVATION_MUTATION = 20.0       # starvation_resistance += (U - 0.5) * span
METABOLISM_MUTATION = 0.1        # metabolism *= (1 - span/2) + U * span


# ============================================================================
# Performance / Telemetry Configuration
# ============================================================================

# Tick timing window for rolling average
TICK_TIME_WINDOW = 100  # Number of ticks to average

# Ecosystem summary interval for print_ecosystem_summary()
ECOSYSTEM_LOG_INTERVAL = 500
