"""
Timing constants and time formatting helpers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .pattern import LimitType, Pattern
from .workout import GlobalLimitType, WorkoutSettings


@dataclass(frozen=True)
class EngineTiming:
    """Fixed engine periods in seconds."""
    tick_s: float = 0.1              # shot-interval progress tick
    rest_tick_s: float = 1.0         # rest / countdown tick
    go_grace_s: float = 1.0          # after "Go!" before the first pattern
    pattern_end_gap_s: float = 0.5   # after the last interval of a pattern
    flash_s: float = 0.15            # screen flash on a shot cue
    pause_debounce_s: float = 0.3    # minimum gap between pause/resume toggles
    clock_s: float = 1.0             # workout clock refresh
    rest_cue_from: int = 10          # rest seconds that get a cue + spoken number


DEFAULT_TIMING = EngineTiming()

_ONES = (
    "", "one", "two", "three", "four", "five", "six", "seven", "eight", "nine",
    "ten", "eleven", "twelve", "thirteen", "fourteen", "fifteen", "sixteen",
    "seventeen", "eighteen", "nineteen",
)
_TENS = ("", "", "twenty", "thirty", "forty", "fifty", "sixty", "seventy", "eighty", "ninety")


def format_time(seconds: float) -> str:
    """Seconds as MM:SS (rounded to the nearest second)."""
    total = int(round(max(0.0, seconds)))
    minutes, secs = divmod(total, 60)
    return f"{minutes:02d}:{secs:02d}"


def number_word(n: int) -> str:
    if n < 20:
        return _ONES[n]
    if n < 100:
        tens, ones = divmod(n, 10)
        return _TENS[tens] + (f"-{_ONES[ones]}" if ones else "")
    return str(n)


def friendly_duration(seconds: int) -> str:
    """Spoken form of a rest length.

    Examples: "thirty seconds", "one minute and a half", "two minutes, five",
    "one minute, twenty seconds".
    """
    seconds = int(seconds)
    if seconds == 0:
        return "zero seconds"
    if seconds < 0:
        return ""
    minutes, secs = divmod(seconds, 60)
    if minutes == 0:
        return f"{number_word(secs)} seconds"

    result = "one minute" if minutes == 1 else f"{number_word(minutes)} minutes"
    if secs == 30:
        result += " and a half"
    elif 0 < secs < 10:
        result += f", {number_word(secs)}"
    elif secs:
        result += f", {number_word(secs)} seconds"
    return result


def rest_announcement(rest_seconds: int) -> str:
    if rest_seconds >= 30:
        return f"Rest for {friendly_duration(rest_seconds)}"
    return "Rest"


def should_announce_countdown(remaining: int) -> bool:
    return remaining <= 10 or remaining % 10 == 0


def estimate_total_seconds(patterns: Iterable[Pattern], settings: WorkoutSettings) -> float:
    """Rough workout length for display before starting."""
    patterns = [p for p in patterns if p.is_runnable]
    if settings.global_limit_type is GlobalLimitType.TIME:
        return float(settings.global_time_limit)
    if settings.global_limit_type is GlobalLimitType.SHOT:
        if not patterns:
            return 0.0
        mean_interval = sum(p.expected_interval for p in patterns) / len(patterns)
        return settings.global_shot_limit * mean_interval

    total = 0.0
    for p in patterns:
        if p.limit_type is LimitType.TIME:
            total += p.limit
        else:
            total += p.limit * p.expected_interval
        total += p.post_rest
    return total
