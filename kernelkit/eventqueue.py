"""Bounded queue of input events with blocking and non-blocking reads."""

from __future__ import annotations

import enum
import threading
from collections import deque
from dataclasses import dataclass
from typing import Optional

from kernelkit.errors import InvalidRequestError

EVENT_BUFFER_SIZE = 32


class EventType(enum.IntEnum):
    KEY_DOWN = 1
    KEY_UP = 2
    BUTTON_DOWN = 3
    BUTTON_UP = 4
    MOUSE_MOVE = 5


@dataclass(frozen=True)
class Event:
    """One input event: a key, a mouse button or a mouse movement."""

    type: int
    code: int = 0
    x: int = 0
    y: int = 0


class EventQueue:
    """Holds at most EVENT_BUFFER_SIZE - 1 pending events; extras are counted and dropped."""

    def __init__(self) -> None:
        self._events: deque[Event] = deque()
        self._cond = threading.Condition()
        self.overflow_count = 0

    def post(self, event: Event) -> bool:
        """Append event; return False and count an overflow if the queue is full."""
        with self._cond:
            if len(self._events) >= EVENT_BUFFER_SIZE - 1:
                self.overflow_count += 1
                return False
            self._events.append(event)
            self._cond.notify()
            return True

    def post_values(self, type: int, code: int, x: int = 0, y: int = 0) -> bool:
        """Build an Event from its fields and post it."""
        return self.post(Event(type, code, x, y))

    def _drain(self, max_events: int) -> list[Event]:
        count = min(max_events, len(self._events))
        return [self._events.popleft() for _ in range(count)]

    @staticmethod
    def _check(max_events: int) -> None:
        if max_events < 1:
            raise InvalidRequestError("must read at least one event")

    def read(self, max_events: int = 1, timeout: Optional[float] = None) -> list[Event]:
        """Wait for at least one event, then return up to max_events.

        With a timeout, an empty list is returned when it expires.
        """
        self._check(max_events)
        with self._cond:
            if not self._cond.wait_for(lambda: bool(self._events), timeout):
                return []
            return self._drain(max_events)

    def read_nonblock(self, max_events: int = 1) -> list[Event]:
        """Return up to max_events pending events without waiting."""
        self._check(max_events)
        with self._cond:
            return self._drain(max_events)

    def read_key(self) -> int:
        """Wait for the next key-down event and return its code."""
        while True:
            for event in self.read(1):
                if event.type == EventType.KEY_DOWN:
                    return event.code

    def __len__(self) -> int:
        with self._cond:
            return len(self._events)