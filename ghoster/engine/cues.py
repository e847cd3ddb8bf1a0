"""
Cue player - the two-tone shot cue and the split-step power-up ramp.

Cues are fire-and-forget: ``play_*`` returns immediately and the sound
mixes in the background. Without an output (``--no-audio``, tests) the
player still records what it would have played in ``history``.
"""

from __future__ import annotations

import logging
import random
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .tones import (
    PITCH_BASE_HZ,
    generate_power_up_int16_stereo,
    generate_two_tone_int16_stereo,
)


class SplitStepSpeed(Enum):
    """Power-up hint speed selected per pattern."""
    NONE = "None"
    SLOW = "Slow"
    MEDIUM = "Medium"
    FAST = "Fast"
    RANDOM = "Random"

    @classmethod
    def parse(cls, value: Union[str, "SplitStepSpeed", None]) -> "SplitStepSpeed":
        if isinstance(value, cls):
            return value
        if value is None or value == "":
            return cls.NONE
        for member in cls:
            if member.value.lower() == str(value).strip().lower():
                return member
        raise ValueError(f"unknown split-step speed {value!r}")


CONCRETE_SPEEDS = (SplitStepSpeed.SLOW, SplitStepSpeed.MEDIUM, SplitStepSpeed.FAST)

# Seconds between the start of the power-up ramp and the shot cue it leads into
POWER_UP_LEAD_SECONDS = {
    SplitStepSpeed.SLOW: 0.50625,
    SplitStepSpeed.MEDIUM: 0.5,
    SplitStepSpeed.FAST: 0.49375,
}


def resolve_speed(speed: Union[str, SplitStepSpeed, None], rng: Optional[random.Random] = None) -> Optional[SplitStepSpeed]:
    """Turn a configured hint into a concrete speed (None when no hint plays).

    ``Random`` picks uniformly among Slow, Medium and Fast.
    """
    speed = SplitStepSpeed.parse(speed)
    if speed is SplitStepSpeed.NONE:
        return None
    if speed is SplitStepSpeed.RANDOM:
        return (rng or random).choice(CONCRETE_SPEEDS)
    return speed


def power_up_lead(speed: Optional[SplitStepSpeed]) -> float:
    if speed is None:
        return 0.0
    return POWER_UP_LEAD_SECONDS[speed]


@dataclass(frozen=True)
class PlayedCue:
    kind: str                      # "shot" | "power_up"
    speed: Optional[str] = None


class CuePlayer:
    """Synthesizes and plays cues on an optional ToneOutput."""

    HISTORY_SIZE = 256

    def __init__(self, output=None, pitch: str = "medium", rng: Optional[random.Random] = None):
        if pitch not in PITCH_BASE_HZ:
            raise ValueError(f"unknown pitch {pitch!r} (expected one of {sorted(PITCH_BASE_HZ)})")
        self.output = output
        self.pitch = pitch
        self.rng = rng or random.Random()
        self.history: deque[PlayedCue] = deque(maxlen=self.HISTORY_SIZE)
        self.logger = logging.getLogger(__name__)

    def play_shot_cue(self) -> None:
        self.history.append(PlayedCue("shot"))
        self._emit(generate_two_tone_int16_stereo())

    def play_split_step_cue(self, speed: Union[str, SplitStepSpeed, None]) -> Optional[SplitStepSpeed]:
        """Play the power-up ramp; returns the speed actually played (None = nothing)."""
        resolved = resolve_speed(speed, self.rng)
        if resolved is None:
            return None
        self.history.append(PlayedCue("power_up", resolved.value))
        self._emit(generate_power_up_int16_stereo(resolved.value, self.pitch))
        return resolved

    def stop(self) -> None:
        if self.output is not None:
            self.output.stop()

    def _emit(self, pcm) -> None:
        if self.output is None:
            return
        try:
            self.output.play(pcm)
        except Exception as e:
            # A cue that fails to play must never stall the workout
            self.logger.warning("[cues] playback failed: %s", e)
