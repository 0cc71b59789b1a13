"""
Named constants for the pendulum simulation and the game session.

Two fall-threshold policies are in use for the same game, so both are exposed
as presets instead of baking one into the engine:

- UPRIGHT_LIMIT: the session ends once the rod tilts past horizontal (pi/2)
- FULL_TURN: the rod may swing down to pointing straight down (pi)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

Bounds = Tuple[int, int]


@dataclass(frozen=True)
class PhysicsConfig:
    """Fixed constants of one pivot-mounted rod. Units are board pixels and ms."""

    length: float = 100.0
    pivot_height: int = 200
    stroke_width: int = 20
    fall_threshold: float = math.pi / 2.0
    gravity_scale: float = 1.0
    accel_scale: float = 500.0
    seed_theta: float = 0.1
    initial_position: int = 240
    tick_ms: int = 1000 // 60  # 60 Hz, integer approximation


@dataclass(frozen=True)
class SessionConfig:
    default_gravity: int = 100
    default_phase_duration_ms: int = 10000
    gravity_range: Bounds = (1, 500)
    phase_duration_range: Bounds = (1000, 20000)
    position_range: Bounds = (0, 480)


UPRIGHT_LIMIT = PhysicsConfig()
FULL_TURN = PhysicsConfig(fall_threshold=math.pi)


def clamp(value: int, bounds: Bounds) -> int:
    lo, hi = bounds
    return max(lo, min(hi, int(value)))
