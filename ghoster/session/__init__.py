"""
Workout session system for Ghoster.

A workout is a list of Patterns (shot list + timing + limits) run
back-to-back with rests, under global settings that can loop the list
until a shot or time limit is reached.

Core Components:
- Pattern / Workout: data model and the workout JSON file
- PhaseScheduler: countdown -> shot <-> rest -> completed state machine with pause/resume
- SessionController: run order, seeded randomness and the UI-facing API
- WorkoutEventEmitter: push-model display sink
"""

from .pattern import (
    Pattern,
    SeriesOrder,
    LimitType,
)

from .workout import (
    Workout,
    WorkoutSettings,
    GlobalLimitType,
    WorkoutFileError,
)

from .events import (
    WorkoutEventType,
    WorkoutEvent,
    WorkoutEventEmitter,
)

from .state import Phase, RunState, IntervalState, PauseSnapshot
from .timing import EngineTiming, format_time, friendly_duration, estimate_total_seconds
from .scheduler import PhaseScheduler
from .controller import SessionController

__all__ = [
    # Data model
    'Pattern',
    'SeriesOrder',
    'LimitType',
    'Workout',
    'WorkoutSettings',
    'GlobalLimitType',
    'WorkoutFileError',

    # Event system
    'WorkoutEventType',
    'WorkoutEvent',
    'WorkoutEventEmitter',

    # Execution
    'Phase',
    'RunState',
    'IntervalState',
    'PauseSnapshot',
    'EngineTiming',
    'format_time',
    'friendly_duration',
    'estimate_total_seconds',
    'PhaseScheduler',
    'SessionController',
]
