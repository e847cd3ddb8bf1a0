"""
Workout Window - the full-screen-ish view shown while a workout runs.

Shows the big shot / rest / countdown text, the interval progress bar and
the elapsed clock, flashes red on every shot cue, and offers pause/stop
(replay/exit once the workout is complete). It only reads the event bus;
the buttons call straight into the SessionController.
"""

import logging
from typing import Optional

from PyQt6.QtCore import Qt, QTimer, pyqtSignal
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QProgressBar
)

from ..session.controller import SessionController
from ..session.events import WorkoutEvent, WorkoutEventType
from ..session.state import Phase


FLASH_STYLE = "background-color: #ef4444;"


class WorkoutWindow(QWidget):
    """
    Qt view of a running workout.

    Buttons:
        left  - Pause / Resume, becomes Replay when the workout is complete
        right - Stop, becomes Exit when the workout is complete
    """

    # Emitted when the user leaves the completed (or stopped) workout
    closed_by_user = pyqtSignal()

    def __init__(self, controller: SessionController, title: str = "Ghoster", parent=None):
        super().__init__(parent)
        self.logger = logging.getLogger(__name__)
        self.controller = controller
        self.setWindowTitle(title)
        self.resize(480, 360)

        self._flashing = False
        self._flash_timer = QTimer(self)
        self._flash_timer.setSingleShot(True)
        self._flash_timer.timeout.connect(self._end_flash)

        self._init_ui()
        controller.events.subscribe_all(self._on_event)

    def _init_ui(self):
        layout = QVBoxLayout(self)
        layout.setSpacing(12)
        layout.setContentsMargins(16, 16, 16, 16)

        self.label_pattern = QLabel("")
        self.label_pattern.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.label_pattern.setStyleSheet("color: #888;")
        layout.addWidget(self.label_pattern)

        self.label_shot = QLabel(" ")
        self.label_shot.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.label_shot.setStyleSheet("font-size: 36pt; font-weight: bold;")
        self.label_shot.setWordWrap(True)
        layout.addWidget(self.label_shot, 1)

        self.progress_bar = QProgressBar()
        self.progress_bar.setMinimum(0)
        self.progress_bar.setMaximum(1000)
        self.progress_bar.setValue(0)
        self.progress_bar.setTextVisible(False)
        layout.addWidget(self.progress_bar)

        self.label_clock = QLabel("00:00")
        self.label_clock.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.label_clock.setStyleSheet("font-size: 14pt;")
        layout.addWidget(self.label_clock)

        buttons = QHBoxLayout()
        self.btn_primary = QPushButton("Pause")
        self.btn_primary.clicked.connect(self._on_primary)
        buttons.addWidget(self.btn_primary)

        self.btn_secondary = QPushButton("Stop")
        self.btn_secondary.clicked.connect(self._on_secondary)
        buttons.addWidget(self.btn_secondary)
        layout.addLayout(buttons)

    # ===== Buttons =====

    def _on_primary(self):
        phase = self.controller.phase
        if phase is Phase.COMPLETED:
            self.controller.replay()
        elif phase is Phase.IDLE:
            self.controller.start()
        else:
            self.controller.toggle_pause()

    def _on_secondary(self):
        if self.controller.phase is Phase.COMPLETED:
            self.controller.exit()
            self.closed_by_user.emit()
        else:
            self.controller.stop()

    def _refresh_buttons(self):
        phase = self.controller.phase
        if phase is Phase.COMPLETED:
            self.btn_primary.setText("Replay")
            self.btn_secondary.setText("Exit")
        elif phase is Phase.PAUSED:
            self.btn_primary.setText("Resume")
            self.btn_secondary.setText("Stop")
        elif phase is Phase.IDLE:
            self.btn_primary.setText("Start")
            self.btn_secondary.setText("Stop")
        else:
            self.btn_primary.setText("Pause")
            self.btn_secondary.setText("Stop")

    # ===== Event bus =====

    def _on_event(self, event: WorkoutEvent):
        data = event.data or {}
        kind = event.event_type
        if kind is WorkoutEventType.DISPLAY:
            self.label_shot.setText(data.get("text") or " ")
        elif kind is WorkoutEventType.PROGRESS:
            self.progress_bar.setValue(int(round(float(data.get("fraction", 0.0)) * 1000)))
        elif kind is WorkoutEventType.ELAPSED:
            self.label_clock.setText(data.get("text", "00:00"))
        elif kind is WorkoutEventType.FLASH:
            self._start_flash(float(data.get("duration", 0.15)))
        elif kind is WorkoutEventType.PATTERN_START:
            self.label_pattern.setText(data.get("name", ""))
        elif kind is WorkoutEventType.WORKOUT_START:
            self.label_clock.setText("00:00")
        elif kind in (WorkoutEventType.PHASE_CHANGE, WorkoutEventType.WORKOUT_STOP):
            if kind is WorkoutEventType.WORKOUT_STOP or data.get("phase") == Phase.PAUSED.value:
                self._end_flash()
            self._refresh_buttons()

    def _start_flash(self, duration: float):
        self._flashing = True
        self.setStyleSheet(FLASH_STYLE)
        self._flash_timer.start(max(1, int(duration * 1000)))

    def _end_flash(self):
        self._flash_timer.stop()
        if self._flashing:
            self._flashing = False
            self.setStyleSheet("")

    @property
    def is_flashing(self) -> bool:
        return self._flashing

    def closeEvent(self, event):
        self.controller.events.unsubscribe(None, self._on_event)
        if self.controller.is_running:
            self.logger.info("Window closed during a workout; stopping")
            self.controller.stop()
        super().closeEvent(event)
