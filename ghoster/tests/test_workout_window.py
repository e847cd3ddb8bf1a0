"""Tests for the Qt workout window (offscreen)."""

import pytest
from PyQt6.QtCore import Qt

from ..session.controller import SessionController
from ..session.pattern import Pattern
from ..session.state import Phase
from ..session.workout import Workout
from ..ui.workout_window import WorkoutWindow


@pytest.fixture
def window(qtbot, clock, narrator, cues, emitter):
    workout = Workout(patterns=[Pattern(name="Lunges", shot_options="Left\nRight", shot_interval=4.0, limit=2)])
    controller = SessionController(workout, clock, narrator, cues, emitter, seed=2)
    win = WorkoutWindow(controller)
    qtbot.addWidget(win)
    return win


def test_window_follows_the_run(window, clock):
    window.controller.start()
    assert window.label_pattern.text() == "Lunges"
    clock.advance(1.0)
    assert window.label_shot.text() == "Left"
    clock.advance(1.0)
    assert window.progress_bar.value() == 500
    assert window.label_clock.text() == "00:02"


def test_shot_cue_flashes_red(window, clock, qtbot):
    window.controller.start()
    clock.advance(1.9)
    assert not window.is_flashing
    clock.advance(0.2)
    assert window.is_flashing
    assert "#ef4444" in window.styleSheet()
    qtbot.waitUntil(lambda: not window.is_flashing, timeout=2000)
    assert window.styleSheet() == ""


def test_pause_button(window, clock, qtbot):
    window.controller.start()
    clock.advance(1.0)
    qtbot.mouseClick(window.btn_primary, Qt.MouseButton.LeftButton)
    assert window.controller.phase is Phase.PAUSED
    assert window.btn_primary.text() == "Resume"
    assert window.label_shot.text() == "Paused"
    clock.advance(1.0)
    qtbot.mouseClick(window.btn_primary, Qt.MouseButton.LeftButton)
    assert window.btn_primary.text() == "Pause"


def test_completion_offers_replay_and_exit(window, clock, qtbot):
    window.controller.start()
    clock.advance(20.0)
    assert window.controller.phase is Phase.COMPLETED
    assert window.btn_primary.text() == "Replay"
    assert window.btn_secondary.text() == "Exit"
    assert window.label_shot.text() == "Done"
    with qtbot.waitSignal(window.closed_by_user, timeout=1000):
        qtbot.mouseClick(window.btn_secondary, Qt.MouseButton.LeftButton)
    assert window.controller.phase is Phase.IDLE


def test_stop_button(window, clock, qtbot):
    window.controller.start()
    clock.advance(1.0)
    qtbot.mouseClick(window.btn_secondary, Qt.MouseButton.LeftButton)
    assert window.controller.phase is Phase.IDLE
    assert window.btn_primary.text() == "Start"
