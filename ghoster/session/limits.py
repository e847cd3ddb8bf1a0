"""
Pattern and workout limit predicates.

Pure functions over the counters kept by the scheduler. ``should_end_pattern``
is evaluated once per completed interval, after the counters for that shot
have been incremented.
"""

from __future__ import annotations

from .pattern import LimitType, Pattern
from .workout import GlobalLimitType, WorkoutSettings


def global_shot_limit_reached(settings: WorkoutSettings, global_shots: int) -> bool:
    return (settings.global_limit_type is GlobalLimitType.SHOT
            and global_shots >= settings.global_shot_limit)


def global_time_limit_reached(settings: WorkoutSettings, global_elapsed: float) -> bool:
    # Small epsilon: elapsed time is accumulated from float clock readings
    return (settings.global_limit_type is GlobalLimitType.TIME
            and global_elapsed >= settings.global_time_limit - 1e-6)


def global_limit_reached(settings: WorkoutSettings, global_shots: int, global_elapsed: float) -> bool:
    return (global_shot_limit_reached(settings, global_shots)
            or global_time_limit_reached(settings, global_elapsed))


def should_end_pattern(
    pattern: Pattern,
    pattern_shots: int,
    pattern_elapsed: float,
    global_shots: int,
    settings: WorkoutSettings,
) -> bool:
    """True when the pattern must stop after the interval that just completed.

    Ends on the global shot limit, or on the pattern's own shot or time limit.
    """
    if global_shot_limit_reached(settings, global_shots):
        return True
    if pattern.limit_type is LimitType.SHOT:
        return pattern_shots >= pattern.limit
    return pattern_elapsed >= pattern.limit - 1e-6


def needs_loop(settings: WorkoutSettings, global_shots: int, global_elapsed: float) -> bool:
    """At the end of the run order: start another pass?"""
    if settings.global_limit_type is GlobalLimitType.ALL:
        return False
    return not global_limit_reached(settings, global_shots, global_elapsed)
