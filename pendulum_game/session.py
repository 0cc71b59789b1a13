from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, Optional

from pendulum_game.config import PhysicsConfig, SessionConfig, clamp
from pendulum_game.engine import PendulumState, RodGeometry, SimulationEngine
from pendulum_game.events import ActivityChanged, EventBus, Phase, PhaseChanged, TimeTicked
from pendulum_game.timer import PhaseTimer

logger = logging.getLogger(__name__)

# POSITION has no successor yet; the velocity/acceleration/jerk input modes are not built
_NEXT_PHASE: Dict[Phase, Phase] = {
    Phase.VELOCITY: Phase.ACCELERATION,
    Phase.ACCELERATION: Phase.JERK,
    Phase.JERK: Phase.WINNER,
}


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


class GameSession:
    """Lifecycle, phases and the fixed-step loop of one balancing game.

    Threading: the loop thread steps the engine; the caller's thread (UI) and the
    timer thread call the setters, `start_game`, `stop_game` and `timeout`. The
    configuration setters are plain attribute writes without a lock: each value is
    a single int, the last write wins, and the loop picks it up on its next tick.
    Only stepping and restarting are serialized, so a loop left over from a
    previous game never steps the new game's state.
    """

    def __init__(
        self,
        physics: Optional[PhysicsConfig] = None,
        settings: Optional[SessionConfig] = None,
        clock: Optional[Callable[[], int]] = None,
        timer_factory: Optional[Callable[[Callable[[], None]], PhaseTimer]] = None,
        threaded: bool = True,
    ) -> None:
        self.physics = physics or PhysicsConfig()
        self.settings = settings or SessionConfig()
        self.events = EventBus()
        self._clock = clock or _wall_clock_ms
        self._threaded = threaded

        self._gravity = self.settings.default_gravity
        self._phase_duration_ms = self.settings.default_phase_duration_ms
        self._position = self.physics.initial_position

        self._phase = Phase.NOT_STARTED
        self._active = False
        self._phase_start_ms = self._clock()

        self.engine = SimulationEngine(
            self.physics,
            gravity_source=lambda: self._gravity,
            on_fallen=self._on_fallen,
            on_tick=self._on_tick,
        )
        factory = timer_factory or (lambda cb: PhaseTimer(cb, name="phase-timer"))
        self._timer = factory(self.timeout)

        self._step_lock = threading.RLock()
        self._loop_thread: Optional[threading.Thread] = None
        self._loop_stop: Optional[threading.Event] = None

    # ------------------------------------------------------------------ lifecycle

    def start_game(self) -> None:
        """Start a new game with the current settings, discarding any game in progress."""
        with self._step_lock:
            self._signal_loop_stop()
            self.engine.reset(self._position)
            self._active = True
            self._timer.arm(self._phase_duration_ms)
            self._phase_start_ms = self._clock()
        logger.info(
            "Game started (gravity=%d, phase_duration=%d ms)", self._gravity, self._phase_duration_ms
        )
        self.set_phase(Phase.POSITION)
        self.events.publish(ActivityChanged(True))
        if self._threaded:
            self._spawn_loop()

    def stop_game(self) -> None:
        """Stop the current game. Safe to call repeatedly and from any thread."""
        self._timer.cancel()
        was_active = self._active
        self._active = False
        self._signal_loop_stop()
        if was_active:
            logger.info("Game stopped in phase %s", self._phase)
        self.events.publish(ActivityChanged(False))

    def timeout(self) -> None:
        """Phase timer callback."""
        # serialized with ticks so a fall and a timeout never both change the phase
        with self._step_lock:
            if not self._running():
                return
            self._phase_start_ms = self._clock()
            nxt = _NEXT_PHASE.get(self._phase)
            if nxt is None:
                logger.debug("Phase %s timed out; no next phase", self._phase)
                return
            self.set_phase(nxt)
            if nxt is Phase.WINNER:
                self.stop_game()

    def set_phase(self, new_phase: Phase) -> None:
        old = self._phase
        self._phase = new_phase
        logger.info("Phase %s -> %s", old, new_phase)
        self.events.publish(PhaseChanged(old, new_phase))

    def _on_fallen(self) -> None:
        self.set_phase(Phase.LOSER)
        self.stop_game()

    def _on_tick(self) -> None:
        self.events.publish(TimeTicked())

    # ------------------------------------------------------------------ loop

    def _running(self) -> bool:
        return self._active and not self._phase.is_terminal

    def tick(self) -> bool:
        """Run one iteration of the fixed-step loop. Returns whether the game goes on."""
        return self._tick(None)

    def _tick(self, stop: Optional[threading.Event]) -> bool:
        with self._step_lock:
            if (stop is not None and stop.is_set()) or not self._running():
                return False
            self.engine.step(self.physics.tick_ms)
        return self._running()

    def _spawn_loop(self) -> None:
        stop = threading.Event()
        thread = threading.Thread(target=self._run_loop, args=(stop,), name="simulation-loop", daemon=True)
        self._loop_stop = stop
        self._loop_thread = thread
        thread.start()

    def _signal_loop_stop(self) -> None:
        if self._loop_stop is not None:
            self._loop_stop.set()

    def _run_loop(self, stop: threading.Event) -> None:
        period = self.physics.tick_ms / 1000.0
        try:
            while True:
                started = time.monotonic()
                if not self._tick(stop):
                    break
                remaining = period - (time.monotonic() - started)
                if stop.wait(max(0.0, remaining)):
                    break
        except Exception:
            logger.exception("Simulation loop failed")
            if not stop.is_set():
                self.stop_game()
        logger.debug("Simulation loop exited")

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the loop thread. Returns True once it is gone."""
        thread = self._loop_thread
        if thread is None or thread is threading.current_thread():
            return thread is None
        thread.join(timeout)
        return not thread.is_alive()

    # ------------------------------------------------------------------ settings

    def set_gravity(self, gravity: int) -> None:
        self._gravity = clamp(gravity, self.settings.gravity_range)

    def get_gravity(self) -> int:
        return self._gravity

    def set_phase_duration(self, duration_ms: int) -> None:
        self._phase_duration_ms = clamp(duration_ms, self.settings.phase_duration_range)

    def get_phase_duration(self) -> int:
        return self._phase_duration_ms

    def set_position(self, position: int) -> None:
        self._position = clamp(position, self.settings.position_range)
        self.engine.set_position(self._position)

    # ------------------------------------------------------------------ queries

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def phase_start_ms(self) -> int:
        return self._phase_start_ms

    @property
    def pendulum(self) -> PendulumState:
        return self.engine.state

    def get_phase(self) -> str:
        return str(self._phase)

    def time_remaining(self) -> int:
        """Milliseconds left in the current phase. Negative if the timer is late."""
        return int(self._phase_duration_ms - (self._clock() - self._phase_start_ms))

    def geometry(self) -> RodGeometry:
        return self.engine.geometry()
