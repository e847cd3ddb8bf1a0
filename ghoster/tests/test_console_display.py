"""Tests for the headless console display."""

import io

from ..session.controller import SessionController
from ..session.pattern import Pattern
from ..session.workout import Workout
from ..ui.console import ConsoleDisplay


def test_console_prints_the_workout(clock, narrator, cues, emitter):
    stream = io.StringIO()
    display = ConsoleDisplay(stream)
    display.attach(emitter)
    workout = Workout(patterns=[Pattern(name="Corners", shot_options="Front left", shot_interval=4.0, limit=2)])
    controller = SessionController(workout, clock, narrator, cues, emitter, seed=1)
    controller.start()
    clock.advance(15.0)

    lines = stream.getvalue().splitlines()
    assert lines[0].endswith("== Corners (pass 1) ==")
    assert sum("Front left" in line for line in lines) == 2
    assert sum("** BEEP **" in line for line in lines) == 2
    assert any("Workout complete: 2 shots" in line for line in lines)
    assert lines[-1].endswith("Done")
    # Elapsed clock prefixes later lines
    assert lines[-1].startswith("[00:0")


def test_detach_stops_output(clock, narrator, cues, emitter):
    stream = io.StringIO()
    display = ConsoleDisplay(stream)
    display.attach(emitter)
    display.detach()
    controller = SessionController(Workout(patterns=[Pattern(limit=1)]), clock, narrator, cues, emitter)
    controller.start()
    clock.advance(10.0)
    assert stream.getvalue() == ""
