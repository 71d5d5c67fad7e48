"""Scalar 2D helpers shared by the tick engine.

All coordinates live in the normalized unit square; velocities are in
field-units per second.
"""
import math
from typing import Tuple

# Playable rectangle
FIELD_LEFT = 0.10
FIELD_RIGHT = 0.90
FIELD_TOP = 0.15
FIELD_BOTTOM = 0.85

# Goal mouth: vertical band centred on the field midline
GOAL_HEIGHT = 0.30
GOAL_TOP = 0.5 - GOAL_HEIGHT / 2
GOAL_BOTTOM = 0.5 + GOAL_HEIGHT / 2


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def length(x: float, y: float) -> float:
    return math.hypot(x, y)


def normalize(x: float, y: float) -> Tuple[float, float]:
    """Unit vector for (x, y); a zero vector stays zero."""
    mag = math.hypot(x, y) or 1.0
    return x / mag, y / mag


def decay(value: float, base: float, dt: float) -> float:
    """Exponential per-second decay: ``value * base ** dt``."""
    return value * (base ** dt)


def cap_speed(vx: float, vy: float, max_speed: float) -> Tuple[float, float]:
    """Rescale (vx, vy) so its magnitude does not exceed ``max_speed``."""
    speed = math.hypot(vx, vy)
    if speed > max_speed and speed > 0:
        scale = max_speed / speed
        return vx * scale, vy * scale
    return vx, vy


def approach(value: float, target: float, delta: float) -> float:
    """Move ``value`` linearly toward ``target`` by at most ``delta``."""
    if value < target:
        return min(target, value + delta)
    return max(target, value - delta)


def bounce_axis(pos: float, vel: float, low: float, high: float, damping: float) -> Tuple[float, float]:
    """Clamp ``pos`` into [low, high] and reflect ``vel`` inward on contact."""
    if pos < low:
        return low, abs(vel) * damping
    if pos > high:
        return high, -abs(vel) * damping
    return pos, vel


def contact_normal(ax: float, ay: float, bx: float, by: float) -> Tuple[float, float, float]:
    """Unit normal pointing from a to b and the centre distance.

    Coincident centres fall back to the +x axis so callers can always
    separate the bodies.
    """
    dx = bx - ax
    dy = by - ay
    dist = math.hypot(dx, dy)
    if dist < 1e-9:
        return 1.0, 0.0, 0.0
    return dx / dist, dy / dist, dist


def in_goal_band(y: float) -> bool:
    """True only strictly inside the goal mouth; the posts bounce."""
    return GOAL_TOP < y < GOAL_BOTTOM
