"""Game phases and the typed change notifications published by a session."""

from __future__ import annotations

import enum
import logging
import queue
import threading
from dataclasses import dataclass
from typing import Callable, List, Tuple, Union

logger = logging.getLogger(__name__)


class Phase(enum.Enum):
    NOT_STARTED = "Not started"
    POSITION = "Position"
    # reserved for the velocity/acceleration/jerk input modes
    VELOCITY = "Velocity"
    ACCELERATION = "Acceleration"
    JERK = "Jerk"
    WINNER = "Winner"
    LOSER = "Loser"

    def __str__(self) -> str:
        return self.value

    @property
    def is_terminal(self) -> bool:
        return self in (Phase.WINNER, Phase.LOSER)


@dataclass(frozen=True)
class PhaseChanged:
    old: Phase
    new: Phase


@dataclass(frozen=True)
class TimeTicked:
    pass


@dataclass(frozen=True)
class ActivityChanged:
    active: bool


Event = Union[PhaseChanged, TimeTicked, ActivityChanged]
Listener = Callable[[Event], None]


class EventBus:
    """Broadcast registry. Events are delivered synchronously on the publishing thread."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def subscribe_queue(self, maxsize: int = 256) -> Tuple["queue.Queue[Event]", Callable[[], None]]:
        """Return a bounded queue fed with every event, and its unsubscribe handle.

        New events are dropped while the queue is full.
        """
        q: "queue.Queue[Event]" = queue.Queue(maxsize=maxsize)

        def push(event: Event) -> None:
            try:
                q.put_nowait(event)
            except queue.Full:
                pass

        return q, self.subscribe(push)

    def publish(self, event: Event) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Listener %r failed on %r", listener, event)
