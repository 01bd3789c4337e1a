"""
Spatial utility functions for 2D geometry.

Helper functions for distance calculations, steering vectors, speed clamping
and toroidal wraparound in the bounded world.
"""

import numpy as np
from typing import Tuple


def distance_2d(pos_a: np.ndarray, pos_b: np.ndarray) -> float:
    """
    Calculate Euclidean distance between two 2D points.

    Args:
        pos_a: Position [x, y]
        pos_b: Position [x, y]

    Returns:
        Distance in world units
    """
    diff = pos_a - pos_b
    return float(np.sqrt(np.dot(diff, diff)))


def distances_to(positions: np.ndarray, point: np.ndarray) -> np.ndarray:
    """
    Distances from every row of positions to a single point.

    Args:
        positions: (N, 2) array
        point: Position [x, y]

    Returns:
        (N,) array of distances
    """
    if len(positions) == 0:
        return np.empty(0, dtype=np.float64)
    diff = positions - point
    return np.sqrt(np.einsum('ij,ij->i', diff, diff))


def normalize(vec: np.ndarray) -> Tuple[np.ndarray, float]:
    """
    Normalize vector to unit length.

    Args:
        vec: Vector to normalize [x, y]

    Returns:
        Tuple of (normalized vector, original length)
    """
    length = np.sqrt(np.dot(vec, vec))

    if length < 1e-9:
        # Zero vector, return zero direction so callers add no force
        return np.zeros(2, dtype=np.float64), 0.0

    return vec / length, float(length)


def clamp_speed(velocity: np.ndarray, max_speed: float) -> np.ndarray:
    """
    Clamp velocity magnitude to maximum speed.

    Args:
        velocity: Velocity vector [vx, vy]
        max_speed: Maximum allowed speed

    Returns:
        Velocity with clamped magnitude
    """
    speed_sq = np.dot(velocity, velocity)

    if speed_sq > max_speed * max_speed:
        # Rescale to max_speed
        speed = np.sqrt(speed_sq)
        return velocity * (max_speed / speed)

    return velocity


def wrap_position(position: np.ndarray, width: float, height: float) -> np.ndarray:
    """
    Wrap a position across the world edges.

    A coordinate that leaves one side re-enters on the opposite edge:
    x < 0 becomes width, x > width becomes 0 (same for y).

    Args:
        position: Position [x, y]
        width: World width
        height: World height

    Returns:
        Wrapped position (new array)
    """
    return wrap_positions(position[np.newaxis, :], width, height)[0]


def wrap_positions(positions: np.ndarray, width: float, height: float) -> np.ndarray:
    """
    Vectorized wrap_position for an (N, 2) array.

    Returns:
        Wrapped positions (new array)
    """
    bounds = np.array([width, height], dtype=np.float64)
    wrapped = np.where(positions < 0.0, bounds, positions)
    wrapped = np.where(positions > bounds, 0.0, wrapped)
    return wrapped


# 8 compass directions, counter-clockwise from +x in 45 degree steps
COMPASS_DIRECTIONS = np.array(
    [[np.cos(k * np.pi / 4), np.sin(k * np.pi / 4)] for k in range(8)],
    dtype=np.float64
)
