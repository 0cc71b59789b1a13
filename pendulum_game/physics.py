"""
Numerical helpers for the inverted pendulum on a horizontally driven base.

This module provides:
- The angular acceleration of the rod (gravity torque plus base reaction)
- A semi-implicit Euler step with the time step given in milliseconds
- The lagged finite-difference estimate of the base acceleration
- Fall detection and angle clamping
- Rod geometry for visualization (integer polygon and float tip)

Angles are measured from the upward vertical; positive theta leans right.
Screen coordinates grow downwards, as on the game board.
"""

from __future__ import annotations

import math
from typing import List, Tuple

Point = Tuple[int, int]


def angular_acceleration(
    theta: float,
    gravity: float,
    length: float,
    base_acceleration: float,
    gravity_scale: float = 1.0,
) -> float:
    """Return theta'' for the inverted pendulum.

    The first term is the gravitational torque that tips the rod over, the
    second is the reaction to the base acceleration projected onto the rod.
    """
    g = float(gravity) * float(gravity_scale)
    l = max(1e-9, float(length))
    return g / l * math.sin(theta) + float(base_acceleration) * math.cos(theta) / l


def semi_implicit_euler(theta: float, theta_dot: float, theta_ddot: float, dt_ms: float) -> Tuple[float, float]:
    """Advance (theta, theta_dot) by dt_ms: velocity first, then angle with the new velocity."""
    dt = float(dt_ms) / 1000.0
    theta_dot = theta_dot + theta_ddot * dt
    theta = theta + theta_dot * dt
    return theta, theta_dot


def base_acceleration_estimate(
    used: float,
    prev: float,
    velocity: float,
    dt_ms: float,
    accel_scale: float,
) -> float:
    """Second difference of the base position, relative to the previous velocity sample.

    `velocity` is the displacement recorded on the previous tick, so the result lags
    the live input by one tick.
    """
    dt = float(dt_ms)
    return ((float(used) - float(prev)) / dt - float(velocity)) / dt * float(accel_scale)


def has_fallen(theta: float, threshold: float) -> bool:
    return abs(theta) > threshold


def clamp_angle(theta: float, threshold: float) -> float:
    return math.copysign(threshold, theta)


def rod_polygon(pivot_x: float, pivot_y: float, theta: float, length: float, width: float) -> List[Point]:
    """Four integer corners of the rod: two at the pivot, two at the tip."""
    cos_t = math.cos(theta)
    sin_t = math.sin(theta)
    half = width / 2.0
    tip_x = pivot_x + sin_t * length
    tip_y = pivot_y - cos_t * length
    xs = [
        pivot_x + cos_t * half,
        pivot_x - cos_t * half,
        tip_x - cos_t * half,
        tip_x + cos_t * half,
    ]
    ys = [
        pivot_y + sin_t * half,
        pivot_y - sin_t * half,
        tip_y - sin_t * half,
        tip_y + sin_t * half,
    ]
    # truncate toward zero like the board's integer pixel grid
    return [(int(x), int(y)) for x, y in zip(xs, ys)]


def rod_tip(pivot_x: float, pivot_y: float, theta: float, length: float) -> Tuple[float, float]:
    return pivot_x + math.sin(theta) * length, pivot_y - math.cos(theta) * length
