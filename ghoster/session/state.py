"""
Run state for the phase scheduler.

``RunState`` is created at start, owned and mutated only by the
PhaseScheduler, and thrown away at stop. While paused, ``paused`` holds a
PauseSnapshot carrying just what the suspended phase needs to resume.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional

from ..engine.cues import SplitStepSpeed
from ..engine.narrator import DEFAULT_VOICE, VoiceProfile
from .pattern import Pattern


class Phase(Enum):
    """Scheduler phase; exactly one is active at any instant."""
    IDLE = "idle"
    COUNTDOWN = "countdown"
    SHOT = "shot"
    REST = "rest"
    PAUSED = "paused"
    COMPLETED = "completed"

    @property
    def pausable(self) -> bool:
        return self in (Phase.COUNTDOWN, Phase.SHOT, Phase.REST)


@dataclass
class IntervalState:
    """
    One shot interval.

    Attributes:
        effective: Interval length (base + random offset), fixed for the interval
        shot_text: Shot announced during this interval
        first_of_workout: Very first interval of the run (announcement anchors on the base interval)
        speed: Resolved power-up speed, None when no hint plays
        elapsed: Seconds into the interval already accounted for
        anchor: Clock time at which ``elapsed`` was zero (valid while running)
        power_up_fired / shot_cue_fired / announced: Sub-events already played
    """
    effective: float
    shot_text: str
    first_of_workout: bool = False
    speed: Optional[SplitStepSpeed] = None
    elapsed: float = 0.0
    anchor: float = 0.0
    power_up_fired: bool = False
    shot_cue_fired: bool = False
    announced: bool = False

    @property
    def midpoint(self) -> float:
        return self.effective / 2.0

    def snapshot(self) -> IntervalState:
        return replace(self)


@dataclass
class PauseSnapshot:
    """What a paused phase needs to resume. Only the suspended phase's field is set."""
    phase: Phase
    display_text: str = ""
    countdown_remaining: Optional[int] = None
    interval: Optional[IntervalState] = None
    rest_remaining: Optional[int] = None


@dataclass
class RunState:
    """Ephemeral state of one workout run."""
    phase: Phase = Phase.IDLE
    run_order: List[Pattern] = field(default_factory=list)
    pattern_index: int = 0
    pass_number: int = 1
    ran_pattern_this_pass: bool = False

    # Active pattern
    shot_order: List[str] = field(default_factory=list)
    shot_cursor: int = 0
    pattern_shots: int = 0
    pattern_elapsed: float = 0.0
    voice: VoiceProfile = DEFAULT_VOICE

    # Whole workout
    global_shots: int = 0
    global_elapsed: float = 0.0
    clock_seconds: int = 0
    first_shot_pending: bool = True

    # Phase-specific
    countdown_total: int = 0
    countdown_remaining: int = 0
    interval: Optional[IntervalState] = None
    rest_total: int = 0
    rest_remaining: int = 0
    paused: Optional[PauseSnapshot] = None

    # Last values pushed to the display
    display_text: str = ""
    progress: float = 0.0

    @property
    def pattern(self) -> Optional[Pattern]:
        if 0 <= self.pattern_index < len(self.run_order):
            return self.run_order[self.pattern_index]
        return None

    @property
    def current_shot(self) -> str:
        if not self.shot_order:
            return ""
        return self.shot_order[self.shot_cursor % len(self.shot_order)]
