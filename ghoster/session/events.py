"""Workout event system for broadcasting scheduler state to displays.

The scheduler pushes everything a display needs (phase changes, the big
shot/rest text, progress, the elapsed clock, flashes) through a
WorkoutEventEmitter. Displays are pure subscribers: the scheduler never
reads anything back from them and never waits on them.

Usage:
    emitter = WorkoutEventEmitter()
    emitter.subscribe(WorkoutEventType.DISPLAY, lambda evt: print(evt.data["text"]))
    emitter.emit(WorkoutEvent(WorkoutEventType.DISPLAY, data={"text": "Front left"}))
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Any, Optional
import logging
import time


class WorkoutEventType(Enum):
    """Types of events published while a workout runs."""

    # Workout lifecycle
    WORKOUT_START = auto()     # Workout started (or replayed)
    WORKOUT_COMPLETE = auto()  # Workout finished (limits reached / list exhausted)
    WORKOUT_STOP = auto()      # Workout stopped manually
    WORKOUT_PAUSE = auto()     # Paused
    WORKOUT_RESUME = auto()    # Resumed from pause

    # Phase machine
    PHASE_CHANGE = auto()      # data: phase, previous

    # Display updates
    DISPLAY = auto()           # data: text (shot text, "Rest", countdown number, "Go!", "Done")
    PROGRESS = auto()          # data: fraction (0.0-1.0)
    ELAPSED = auto()           # data: seconds, text ("MM:SS")
    FLASH = auto()             # data: duration

    # Cues
    SHOT_CUE = auto()          # data: pattern, shot_number

    # Pattern lifecycle
    PATTERN_START = auto()     # data: index, name, pass
    PATTERN_END = auto()       # data: index, name, shots, elapsed
    PATTERN_SKIPPED = auto()   # data: index, name, reason
    LOOP = auto()              # data: pass

    # Errors (narration failures etc., never fatal)
    ERROR = auto()


@dataclass
class WorkoutEvent:
    """A workout event with optional payload data.

    Attributes:
        event_type: Type of event that occurred
        data: Optional dictionary with event-specific data
        timestamp: Set by the emitter when not given
    """
    event_type: WorkoutEventType
    data: Optional[dict[str, Any]] = None
    timestamp: Optional[float] = None

    def __str__(self) -> str:
        if self.data:
            data_str = ", ".join(f"{k}={v}" for k, v in self.data.items())
            return f"WorkoutEvent({self.event_type.name}, {data_str})"
        return f"WorkoutEvent({self.event_type.name})"


EventCallback = Callable[[WorkoutEvent], None]


class WorkoutEventEmitter:
    """Event bus for workout state changes.

    Subscribers register per event type (or for everything with
    ``subscribe_all``). A subscriber that raises is logged and skipped; the
    exception never reaches the scheduler.

    Example:
        emitter = WorkoutEventEmitter(clock=timebase.now)

        def on_shot(event: WorkoutEvent):
            print(f"cue #{event.data['shot_number']}")

        emitter.subscribe(WorkoutEventType.SHOT_CUE, on_shot)
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        """
        Args:
            clock: Timestamp source (defaults to time.monotonic)
        """
        self._subscribers: dict[WorkoutEventType, list[EventCallback]] = {}
        self._catch_all: list[EventCallback] = []
        self.clock = clock or time.monotonic
        self.logger = logging.getLogger(__name__)

    def subscribe(self, event_type: WorkoutEventType, callback: EventCallback) -> None:
        """Subscribe to a specific event type.

        Args:
            event_type: Type of event to listen for
            callback: Function to call when event occurs (receives WorkoutEvent)
        """
        callbacks = self._subscribers.setdefault(event_type, [])
        if callback not in callbacks:
            callbacks.append(callback)
            self.logger.debug(f"[events] Subscribed to {event_type.name} (total={len(callbacks)})")

    def subscribe_all(self, callback: EventCallback) -> None:
        if callback not in self._catch_all:
            self._catch_all.append(callback)

    def unsubscribe(self, event_type: Optional[WorkoutEventType], callback: EventCallback) -> None:
        """Unsubscribe from one event type (or from the catch-all list when None)."""
        if event_type is None:
            if callback in self._catch_all:
                self._catch_all.remove(callback)
            return
        callbacks = self._subscribers.get(event_type)
        if callbacks and callback in callbacks:
            callbacks.remove(callback)
            self.logger.debug(f"[events] Unsubscribed from {event_type.name} (total={len(callbacks)})")

    def emit(self, event: WorkoutEvent) -> None:
        """Emit an event to all subscribed callbacks."""
        if event.timestamp is None:
            event.timestamp = self.clock()

        # PROGRESS fires every tick; keep it behind the tick-trace filter
        if event.event_type is WorkoutEventType.PROGRESS:
            self.logger.debug(f"[tick] [events] Emitting: {event}")
        else:
            self.logger.debug(f"[events] Emitting: {event}")

        for callback in list(self._subscribers.get(event.event_type, ())) + list(self._catch_all):
            try:
                callback(event)
            except Exception as e:
                self.logger.error(f"[events] Callback error for {event.event_type.name}: {e}", exc_info=True)

    def clear_all(self) -> None:
        """Remove all event subscribers (useful for testing/cleanup)."""
        self._subscribers.clear()
        self._catch_all.clear()
        self.logger.debug("[events] Cleared all subscribers")
