"""
RNG utilities for ecosim simulation.

A single numpy.random.Generator(PCG64) is the shared random source for every
probabilistic gate in a tick. Seeds are derived with SHA256 from hierarchical
components (world_seed, reset_index, ...) so a seeded world replays the same
way on the same platform.
"""

import hashlib
import numpy as np
from typing import Any, Optional


def make_seed(*components: Any) -> int:
    """
    Generate deterministic 64-bit seed from hierarchical components.

    Uses SHA256 to hash components into stable seed value.

    Args:
        *components: Seed components (world_seed, reset_index, etc.)

    Returns:
        64-bit integer seed for numpy RNG

    Example:
        reset_seed = make_seed(world_seed, "reset", 3)
    """
    # Join all components with colon separator
    hash_input = ":".join(str(c) for c in components)

    # SHA256 hash and extract 64-bit integer
    hash_bytes = hashlib.sha256(hash_input.encode('utf-8')).digest()
    seed = int.from_bytes(hash_bytes[:8], byteorder='big')

    return seed


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """
    Create the shared generator.

    Args:
        seed: 64-bit seed, or None for OS entropy

    Returns:
        numpy Generator backed by PCG64
    """
    return np.random.Generator(np.random.PCG64(seed))


def centered_uniform(rng: np.random.Generator, span: float, size: int = 2) -> np.ndarray:
    """
    Draw values uniformly from [-span/2, span/2).

    Equivalent to (U - 0.5) * span per component, the form used for all
    velocity kicks and positional jitter.
    """
    return (rng.random(size) - 0.5) * span


def uniform_position(rng: np.random.Generator, width: float, height: float) -> np.ndarray:
    """Uniform random position inside [0, width) x [0, height)"""
    return rng.random(2) * np.array([width, height], dtype=np.float64)
