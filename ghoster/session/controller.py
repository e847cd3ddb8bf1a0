"""
Session Controller - the start/stop/pause/resume surface used by the UI.

Owns the seeded random source, derives the run order from the pattern
provider (shuffled copy when the order mode is randomized) and hands it to
the PhaseScheduler. Providers are re-read at start, at every loop and on
replay, so the run always reflects the current workout.
"""

from __future__ import annotations

import logging
import random
from typing import List, Optional, Protocol

from ..engine.cues import CuePlayer
from ..engine.narrator import Narrator
from ..engine.timebase import Timebase
from .events import WorkoutEventEmitter
from .pattern import Pattern, SeriesOrder
from .scheduler import PhaseScheduler
from .state import Phase, RunState
from .timing import DEFAULT_TIMING, EngineTiming
from .workout import WorkoutSettings


class PatternProvider(Protocol):
    def get_patterns(self) -> List[Pattern]: ...


class SettingsProvider(Protocol):
    def get_settings(self) -> WorkoutSettings: ...


class SessionController:
    """
    Public API for running a workout.

    Usage:
        controller = SessionController(workout, timebase, narrator, cues, seed=42)
        controller.start()
        controller.toggle_pause()
        controller.stop()

    Invalid operations (resume while running, pause while idle, replay
    before completion) are logged and ignored; they return False.
    """

    def __init__(
        self,
        patterns: PatternProvider,
        timebase: Timebase,
        narrator: Narrator,
        cues: CuePlayer,
        events: Optional[WorkoutEventEmitter] = None,
        *,
        settings: Optional[SettingsProvider] = None,
        seed: Optional[int] = None,
        timing: EngineTiming = DEFAULT_TIMING,
    ):
        self.patterns = patterns
        self.settings_provider = settings if settings is not None else patterns
        self.timebase = timebase
        self.narrator = narrator
        self.events = events or WorkoutEventEmitter(clock=timebase.now)
        self.timing = timing
        self.seed = seed
        self.rng = random.Random(seed)
        self.logger = logging.getLogger(__name__)

        self.scheduler = PhaseScheduler(
            timebase, narrator, cues, self.events,
            timing=timing, rng=self.rng, reorder=self._derive_run_order,
        )
        self._last_toggle: Optional[float] = None

    # ------------------------------------------------------------------ state
    @property
    def phase(self) -> Phase:
        return self.scheduler.phase

    @property
    def run_state(self) -> RunState:
        return self.scheduler.state

    @property
    def is_running(self) -> bool:
        return self.scheduler.is_running

    @property
    def is_paused(self) -> bool:
        return self.scheduler.phase is Phase.PAUSED

    # -------------------------------------------------------------- run order
    def _derive_run_order(self) -> List[Pattern]:
        order = list(self.patterns.get_patterns())
        if self.settings_provider.get_settings().order_mode is SeriesOrder.RANDOMIZED:
            self.rng.shuffle(order)
        return order

    # ------------------------------------------------------------- lifecycle
    def start(self) -> bool:
        """Start a run from pattern 0. Refused when already running or nothing is runnable."""
        if self.is_running:
            self.logger.warning(f"[session] Cannot start: already {self.phase.value}")
            return False

        settings = self.settings_provider.get_settings()
        run_order = self._derive_run_order()
        if not any(p.is_runnable for p in run_order):
            self.logger.error("[session] Cannot start: no pattern has any shots")
            return False

        self._last_toggle = None
        self.logger.info(f"[session] Starting workout ({len(run_order)} patterns, seed={self.seed})")
        return self.scheduler.start(run_order, settings)

    def stop(self) -> bool:
        return self.scheduler.stop()

    def replay(self) -> bool:
        """Restart a completed workout with fresh counters and a re-derived run order."""
        if self.phase is not Phase.COMPLETED:
            self.logger.warning(f"[session] Cannot replay: phase is {self.phase.value}")
            return False
        self.logger.info("[session] Replaying workout")
        return self.start()

    def exit(self) -> bool:
        """Leave the completed screen (or abandon a run) and return to idle."""
        if self.phase is Phase.IDLE:
            self.logger.debug("[session] Exit ignored: already idle")
            return False
        return self.scheduler.stop()

    # ------------------------------------------------------------ pause/resume
    def _debounced(self) -> bool:
        now = self.timebase.now()
        if self._last_toggle is not None and now - self._last_toggle < self.timing.pause_debounce_s:
            self.logger.debug(f"[session] Pause/resume ignored ({now - self._last_toggle:.3f}s since last toggle)")
            return True
        self._last_toggle = now
        return False

    def pause(self) -> bool:
        if not self.phase.pausable:
            self.logger.warning(f"[session] Cannot pause: phase is {self.phase.value}")
            return False
        if self._debounced():
            return False
        return self.scheduler.pause()

    def resume(self) -> bool:
        if self.phase is not Phase.PAUSED:
            self.logger.warning(f"[session] Cannot resume: phase is {self.phase.value}")
            return False
        if self._debounced():
            return False
        return self.scheduler.resume()

    def toggle_pause(self) -> bool:
        """Pause when running, resume when paused."""
        if self.phase is Phase.PAUSED:
            return self.resume()
        return self.pause()
