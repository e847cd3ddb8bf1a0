"""
Pattern Data Model - one configured drill.

A Pattern is a list of shots (display / spoken text) plus the timing that
spaces them out, the limit that ends the pattern and the rest that follows
it. Patterns are consumed read-only by the scheduler; the JSON keys are the
ones written by the workout editor.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List

from ..engine.cues import SplitStepSpeed
from ..engine.narrator import VoiceProfile


class SeriesOrder(Enum):
    """Order in which a pattern's shots (or a workout's patterns) are run."""
    IN_ORDER = "in-order"
    RANDOMIZED = "randomized"


class LimitType(Enum):
    """What ends a pattern."""
    SHOT = "shot"  # Completed shot count
    TIME = "time"  # Seconds spent in the pattern's intervals


DEFAULT_SHOT_OPTIONS = "Front left\nFront right\nMid left\nMid right\nBack left\nBack right"


@dataclass
class Pattern:
    """
    One drill: shot list, timing, limit and rest.

    Attributes:
        name: Display name
        shot_options: Newline-separated shot texts (blank lines ignored)
        announce_shots: Speak shot names, intro and outro
        intro_message: Spoken before the first shot of the pattern
        outro_message: Spoken after the last shot of the pattern
        series_order: Shot order within the pattern
        shot_interval: Base seconds between shot cues (> 0)
        random_offset: Extra uniform-random seconds per interval (>= 0)
        next_shot_announcement: Seconds before the shot cue that the next shot is spoken
        split_step_hint: Power-up cue speed played before each shot cue
        limit_type: Whether ``limit`` counts shots or seconds
        limit: Shot count or seconds
        post_rest: Whole seconds of rest after the pattern (>= 0)
        speech_rate: Narration rate multiplier for this pattern
        speech_voice: Voice id/name or "default"
    """
    name: str = "New Pattern"
    shot_options: str = DEFAULT_SHOT_OPTIONS
    announce_shots: bool = True
    intro_message: str = ""
    outro_message: str = ""
    series_order: SeriesOrder = SeriesOrder.IN_ORDER
    shot_interval: float = 6.0
    random_offset: float = 0.0
    next_shot_announcement: float = 2.0
    split_step_hint: SplitStepSpeed = SplitStepSpeed.NONE
    limit_type: LimitType = LimitType.SHOT
    limit: float = 20
    post_rest: int = 0
    speech_rate: float = 1.0
    speech_voice: str = "default"

    @property
    def shot_list(self) -> List[str]:
        """Runnable shot texts (trimmed, blank lines dropped)."""
        return [line.strip() for line in self.shot_options.splitlines() if line.strip()]

    @property
    def is_runnable(self) -> bool:
        return bool(self.shot_list)

    @property
    def expected_interval(self) -> float:
        """Mean interval length (base + half the random offset)."""
        return self.shot_interval + self.random_offset / 2.0

    @property
    def voice(self) -> VoiceProfile:
        return VoiceProfile(voice_id=self.speech_voice or "default", rate=self.speech_rate)

    def validate(self) -> tuple[bool, str]:
        """
        Validate pattern configuration.

        An empty shot list is not an error here: such a pattern is skipped
        when the workout reaches it.

        Returns:
            (is_valid, error_message)
        """
        if self.shot_interval <= 0:
            return False, f"shotInterval must be positive, got {self.shot_interval}"
        if self.random_offset < 0:
            return False, f"randomOffset must be non-negative, got {self.random_offset}"
        if self.next_shot_announcement < 0:
            return False, f"nextShotAnnouncement must be non-negative, got {self.next_shot_announcement}"
        if self.limit <= 0:
            return False, f"patternLimit must be positive, got {self.limit}"
        if self.post_rest < 0:
            return False, f"postSequenceRest must be non-negative, got {self.post_rest}"
        if self.speech_rate <= 0:
            return False, f"speechRate must be positive, got {self.speech_rate}"
        return True, ""

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the workout-file pattern shape."""
        return {
            "patternName": self.name,
            "shotOptions": self.shot_options,
            "announceShots": self.announce_shots,
            "introMessage": self.intro_message,
            "outroMessage": self.outro_message,
            "seriesOrder": self.series_order.value,
            "shotInterval": self.shot_interval,
            "randomOffset": self.random_offset,
            "nextShotAnnouncement": self.next_shot_announcement,
            "splitStepHint": self.split_step_hint.value,
            "limitType": self.limit_type.value,
            "patternLimit": self.limit,
            "postSequenceRest": self.post_rest,
            "speechRate": self.speech_rate,
            "speechVoice": self.speech_voice,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Pattern:
        """
        Deserialize from a workout-file pattern.

        Older files lack ``speechRate``, ``speechVoice`` and ``splitStepHint``;
        those fall back to 1.0, "default" and "None".

        Raises:
            ValueError: If an enumerated or numeric field holds a bad value
        """
        if not isinstance(data, dict):
            raise ValueError(f"pattern must be an object, got {type(data).__name__}")
        shot_options = data.get("shotOptions", DEFAULT_SHOT_OPTIONS)
        if isinstance(shot_options, list):
            shot_options = "\n".join(str(s) for s in shot_options)
        return cls(
            name=str(data.get("patternName", "New Pattern")),
            shot_options=str(shot_options),
            announce_shots=bool(data.get("announceShots", True)),
            intro_message=str(data.get("introMessage", "") or ""),
            outro_message=str(data.get("outroMessage", "") or ""),
            series_order=SeriesOrder(data.get("seriesOrder", "in-order")),
            shot_interval=_number(data, "shotInterval", 6.0),
            random_offset=_number(data, "randomOffset", 0.0),
            next_shot_announcement=_number(data, "nextShotAnnouncement", 2.0),
            split_step_hint=SplitStepSpeed.parse(data.get("splitStepHint", "None")),
            limit_type=LimitType(data.get("limitType", "shot")),
            limit=_number(data, "patternLimit", 20),
            post_rest=int(_number(data, "postSequenceRest", 0)),
            speech_rate=_number(data, "speechRate", 1.0),
            speech_voice=str(data.get("speechVoice", "default") or "default"),
        )


def _number(data: Dict[str, Any], key: str, default: float) -> float:
    value = data.get(key, default)
    # bool is an int subclass; a checkbox value in a numeric field is a bad file
    if isinstance(value, bool):
        raise ValueError(f"{key} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{key} must be a number, got {value!r}") from None
