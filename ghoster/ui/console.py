"""Plain-text workout display for headless runs."""

from __future__ import annotations

import sys
from typing import Optional, TextIO

from ..session.events import WorkoutEvent, WorkoutEventEmitter, WorkoutEventType


class ConsoleDisplay:
    """
    Prints what a workout window would show, one line per change.

    Subscribes to the event bus; PROGRESS ticks are not printed.
    """

    def __init__(self, stream: Optional[TextIO] = None, show_clock: bool = True):
        self.stream = stream or sys.stdout
        self.show_clock = show_clock
        self.clock_text = "00:00"
        self._emitter: Optional[WorkoutEventEmitter] = None

    def attach(self, emitter: WorkoutEventEmitter) -> None:
        self._emitter = emitter
        emitter.subscribe_all(self.on_event)

    def detach(self) -> None:
        if self._emitter is not None:
            self._emitter.unsubscribe(None, self.on_event)
            self._emitter = None

    def _write(self, text: str) -> None:
        self.stream.write(f"[{self.clock_text}] {text}\n")
        self.stream.flush()

    def on_event(self, event: WorkoutEvent) -> None:
        data = event.data or {}
        kind = event.event_type
        if kind is WorkoutEventType.ELAPSED:
            self.clock_text = data.get("text", self.clock_text)
        elif kind is WorkoutEventType.DISPLAY:
            text = data.get("text", "")
            if text:
                self._write(text)
        elif kind is WorkoutEventType.SHOT_CUE:
            self._write(f"** BEEP ** (shot {data.get('shot_number')}, total {data.get('global_shot')})")
        elif kind is WorkoutEventType.PATTERN_START:
            self._write(f"== {data.get('name')} (pass {data.get('pass')}) ==")
        elif kind is WorkoutEventType.PATTERN_SKIPPED:
            self._write(f"-- skipped {data.get('name')}: {data.get('reason')}")
        elif kind is WorkoutEventType.LOOP:
            self._write(f"== starting pass {data.get('pass')} ==")
        elif kind is WorkoutEventType.WORKOUT_COMPLETE:
            self._write(f"Workout complete: {data.get('shots')} shots")
        elif kind is WorkoutEventType.WORKOUT_STOP:
            self._write("Workout stopped")
        elif kind is WorkoutEventType.ERROR:
            self._write(f"!! {data.get('source', 'error')}: {data.get('error')}")
