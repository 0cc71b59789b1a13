from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from pendulum_game.config import PhysicsConfig
from pendulum_game.physics import (
    angular_acceleration,
    base_acceleration_estimate,
    clamp_angle,
    has_fallen,
    rod_polygon,
    rod_tip,
    semi_implicit_euler,
)

logger = logging.getLogger(__name__)


@dataclass
class PendulumState:
    """Mutable state of the rod and the sampled history of its base."""

    theta: float = 0.0
    theta_dot: float = 0.0
    theta_ddot: float = 0.0

    # live input, written from the UI side only
    base_position: int = 0
    # samples taken once per tick
    base_position_used: int = 0
    base_position_prev: int = 0
    base_velocity: float = 0.0
    base_acceleration: float = 0.0

    is_fallen: bool = False

    @classmethod
    def fresh(cls, config: PhysicsConfig, position: Optional[int] = None) -> "PendulumState":
        x = config.initial_position if position is None else int(position)
        return cls(
            theta=config.seed_theta,
            base_position=x,
            base_position_used=x,
            base_position_prev=x,
        )


@dataclass(frozen=True)
class RodGeometry:
    pivot_x: int
    pivot_y: int
    theta: float
    length: float
    stroke_width: int
    polygon: List[Tuple[int, int]] = field(default_factory=list)
    tip: Tuple[float, float] = (0.0, 0.0)


class SimulationEngine:
    """Fixed-step integrator for a single inverted pendulum.

    Gravity is pulled from `gravity_source` on every step. `on_fallen` is called once
    when the rod crosses the fall threshold and `on_tick` after every step; both run
    on the stepping thread.
    """

    def __init__(
        self,
        config: PhysicsConfig,
        gravity_source: Callable[[], float],
        on_fallen: Optional[Callable[[], None]] = None,
        on_tick: Optional[Callable[[], None]] = None,
    ) -> None:
        self.config = config
        self._gravity_source = gravity_source
        self._on_fallen = on_fallen
        self._on_tick = on_tick
        # serializes step() against reset() on restart
        self._lock = threading.Lock()
        self.state = PendulumState.fresh(config)

    def reset(self, position: Optional[int] = None) -> None:
        """Start over from the seed angle with the base resting at `position`."""
        with self._lock:
            self.state = PendulumState.fresh(self.config, position)

    def set_position(self, position: int) -> None:
        # single attribute write, picked up on the next tick
        self.state.base_position = int(position)

    def step(self, dt_ms: int) -> None:
        """Advance the pendulum by dt_ms milliseconds."""
        if dt_ms < 0:
            raise ValueError(f"dt_ms must be non-negative, got {dt_ms}")
        if dt_ms == 0:
            return

        cfg = self.config
        with self._lock:
            s = self.state
            if s.is_fallen:
                return

            s.theta_ddot = angular_acceleration(
                s.theta, self._gravity_source(), cfg.length, s.base_acceleration, cfg.gravity_scale
            )
            s.theta, s.theta_dot = semi_implicit_euler(s.theta, s.theta_dot, s.theta_ddot, dt_ms)

            s.base_acceleration = base_acceleration_estimate(
                s.base_position_used, s.base_position_prev, s.base_velocity, dt_ms, cfg.accel_scale
            )
            s.base_velocity = float(s.base_position_used - s.base_position_prev)
            s.base_position_prev = s.base_position_used
            s.base_position_used = s.base_position

            fell = self._test_fallen(s)

        if fell and self._on_fallen is not None:
            self._on_fallen()
        if self._on_tick is not None:
            self._on_tick()

    def _test_fallen(self, s: PendulumState) -> bool:
        threshold = self.config.fall_threshold
        if not has_fallen(s.theta, threshold):
            return False
        s.theta = clamp_angle(s.theta, threshold)
        s.is_fallen = True
        logger.info("Pendulum fell over (theta=%.3f rad)", s.theta)
        return True

    def geometry(self) -> RodGeometry:
        cfg = self.config
        s = self.state
        x = s.base_position
        y = cfg.pivot_height
        return RodGeometry(
            pivot_x=x,
            pivot_y=y,
            theta=s.theta,
            length=cfg.length,
            stroke_width=cfg.stroke_width,
            polygon=rod_polygon(x, y, s.theta, cfg.length, cfg.stroke_width),
            tip=rod_tip(x, y, s.theta, cfg.length),
        )
