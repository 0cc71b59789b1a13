"""Cancellable periodic timer used to time out game phases."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PhaseTimer:
    """Fires `callback` every `delay_ms` after `arm()` until cancelled.

    Re-arming cancels the pending schedule first. Each arm/cancel bumps a
    generation counter so a firing that races a cancel is discarded.
    """

    def __init__(self, callback: Callable[[], None], name: str = "phase-timer") -> None:
        self._callback = callback
        self._name = name
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._delay_ms = 0

    @property
    def armed(self) -> bool:
        with self._lock:
            return self._timer is not None

    def arm(self, delay_ms: int) -> None:
        with self._lock:
            self._cancel_locked()
            self._delay_ms = max(0, int(delay_ms))
            self._schedule_locked()
        logger.debug("%s armed for %d ms", self._name, delay_ms)

    def cancel(self) -> None:
        with self._lock:
            was_armed = self._timer is not None
            self._cancel_locked()
        if was_armed:
            logger.debug("%s cancelled", self._name)

    def _cancel_locked(self) -> None:
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule_locked(self) -> None:
        generation = self._generation
        timer = threading.Timer(self._delay_ms / 1000.0, self._fire, args=(generation,))
        timer.name = self._name
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            # periodic: next firing is scheduled before running the callback
            self._schedule_locked()
        logger.debug("%s fired", self._name)
        self._callback()
