"""Wiring of a runnable workout session.

Builds the narrator, tone output, cue player, event bus and controller
for one workout on a given timebase. Shared by the headless CLI run, the
desktop window and the virtual-time simulation.
"""

from __future__ import annotations

import logging
import os
import random
from dataclasses import dataclass
from typing import Optional

from .engine.audio import ToneOutput
from .engine.cues import CuePlayer
from .engine.narrator import Narrator, Pyttsx3Narrator, VirtualNarrator
from .engine.timebase import Timebase
from .session.controller import SessionController
from .session.events import WorkoutEventEmitter
from .session.workout import Workout

logger = logging.getLogger(__name__)

_TRUTHY = ("1", "true", "True", "yes")


def env_flag(name: str) -> bool:
    return os.environ.get(name, "0") in _TRUTHY


@dataclass
class RunOptions:
    """User-facing switches for one run.

    Attributes:
        seed: Seed for offsets, shuffles and random split-step hints
        countdown: Overrides the workout's countdownSeconds when not None
        no_audio: Skip the pygame mixer (cues become silent)
        no_voice: Use the silent virtual narrator instead of pyttsx3
        pitch: Power-up cue pitch (low / medium / high)
        voice_wpm: Base speech rate in words per minute (None = engine default)
    """
    seed: Optional[int] = None
    countdown: Optional[int] = None
    no_audio: bool = False
    no_voice: bool = False
    pitch: str = "medium"
    voice_wpm: Optional[int] = None

    @classmethod
    def from_env(cls, **overrides) -> RunOptions:
        """Options with GHOSTER_NO_AUDIO / GHOSTER_NO_VOICE applied."""
        options = cls(**overrides)
        options.no_audio = options.no_audio or env_flag("GHOSTER_NO_AUDIO")
        options.no_voice = options.no_voice or env_flag("GHOSTER_NO_VOICE")
        return options


@dataclass
class SessionBundle:
    controller: SessionController
    narrator: Narrator
    cues: CuePlayer
    events: WorkoutEventEmitter
    output: Optional[ToneOutput] = None

    def close(self) -> None:
        """Stop the run (if any) and release speech and audio resources."""
        if self.controller.is_running:
            self.controller.stop()
        self.narrator.close()
        if self.output is not None:
            self.output.close()


def apply_overrides(workout: Workout, options: RunOptions) -> Workout:
    if options.countdown is not None:
        workout.settings.countdown_seconds = max(0, int(options.countdown))
    return workout


def build_session(workout: Workout, timebase: Timebase, options: RunOptions) -> SessionBundle:
    """Create every collaborator of a SessionController for ``workout``."""
    apply_overrides(workout, options)

    if options.no_voice:
        narrator: Narrator = VirtualNarrator(timebase)
        logger.info("[runtime] Voice disabled; using silent narrator")
    else:
        narrator = Pyttsx3Narrator(timebase, base_rate_wpm=options.voice_wpm)

    output = None
    if options.no_audio:
        logger.info("[runtime] Audio disabled; cues are silent")
    else:
        output = ToneOutput()
        if not output.init_ok:
            logger.warning("[runtime] Audio device unavailable; cues are silent")

    cue_rng = random.Random(options.seed)
    cues = CuePlayer(output, pitch=options.pitch, rng=cue_rng)
    events = WorkoutEventEmitter(clock=timebase.now)
    controller = SessionController(workout, timebase, narrator, cues, events, seed=options.seed)
    return SessionBundle(controller=controller, narrator=narrator, cues=cues, events=events, output=output)
