"""
Workout Data Model - patterns plus the global settings that run them.

A workout file is the editor's JSON export::

    {"patterns": [...], "globalSettings": {...}}

``Workout`` is also what the session controller reads from at start and at
every loop: ``get_patterns()`` and ``get_settings()`` are re-read each time,
so edits made between loops take effect on the next pass.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List
import json
import logging

from .pattern import Pattern, SeriesOrder


logger = logging.getLogger(__name__)


class WorkoutFileError(ValueError):
    """A workout file could not be read or does not have the workout shape."""


class GlobalLimitType(Enum):
    """Workout-wide stop condition."""
    ALL = "all"    # Run every pattern once, no global limit
    SHOT = "shot"  # Stop after N shots in total (looping the list if needed)
    TIME = "time"  # Stop after N seconds in total (looping the list if needed)


@dataclass
class WorkoutSettings:
    """
    Global workout settings.

    Attributes:
        order_mode: Pattern order for each pass (shuffled per pass if randomized)
        countdown_seconds: Countdown before the first pattern (0 = none)
        global_limit_type: Workout-wide stop condition
        global_shot_limit: Total shots when the limit type is "shot"
        global_time_limit: Total seconds when the limit type is "time"
    """
    order_mode: SeriesOrder = SeriesOrder.IN_ORDER
    countdown_seconds: int = 0
    global_limit_type: GlobalLimitType = GlobalLimitType.ALL
    global_shot_limit: int = 0
    global_time_limit: float = 60

    def validate(self) -> tuple[bool, str]:
        if self.countdown_seconds < 0:
            return False, f"workoutCountdownTime must be non-negative, got {self.countdown_seconds}"
        if self.global_limit_type is GlobalLimitType.SHOT and self.global_shot_limit <= 0:
            return False, f"globalShotLimit must be positive, got {self.global_shot_limit}"
        if self.global_limit_type is GlobalLimitType.TIME and self.global_time_limit <= 0:
            return False, f"globalTimeLimit must be positive, got {self.global_time_limit}"
        return True, ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workoutOrderMode": self.order_mode.value,
            "workoutCountdownTime": self.countdown_seconds,
            "globalLimitType": self.global_limit_type.value,
            "globalShotLimit": self.global_shot_limit,
            "globalTimeLimit": self.global_time_limit,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> WorkoutSettings:
        """Deserialize; falsy values fall back to the editor's defaults."""
        if not isinstance(data, dict):
            raise ValueError(f"globalSettings must be an object, got {type(data).__name__}")
        return cls(
            order_mode=SeriesOrder(data.get("workoutOrderMode") or "in-order"),
            countdown_seconds=int(data.get("workoutCountdownTime") or 0),
            global_limit_type=GlobalLimitType(data.get("globalLimitType") or "all"),
            global_shot_limit=int(data.get("globalShotLimit") or 0),
            global_time_limit=float(data.get("globalTimeLimit") or 60),
        )


@dataclass
class Workout:
    """
    A named list of patterns with global settings.

    Attributes:
        name: Display name (the file stem when loaded from disk)
        patterns: Ordered patterns as edited
        settings: Global settings
    """
    name: str = "Workout"
    patterns: List[Pattern] = field(default_factory=list)
    settings: WorkoutSettings = field(default_factory=WorkoutSettings)

    # Provider interface used by the session controller
    def get_patterns(self) -> List[Pattern]:
        return list(self.patterns)

    def get_settings(self) -> WorkoutSettings:
        return self.settings

    @property
    def runnable_patterns(self) -> List[Pattern]:
        return [p for p in self.patterns if p.is_runnable]

    def validate(self) -> tuple[bool, str]:
        """
        Validate workout configuration.

        Returns:
            (is_valid, error_message)
        """
        if not self.patterns:
            return False, "Workout must contain at least one pattern"
        for i, pattern in enumerate(self.patterns):
            is_valid, msg = pattern.validate()
            if not is_valid:
                return False, f"Pattern {i} ('{pattern.name}'): {msg}"
        if not self.runnable_patterns:
            return False, "No pattern has any shots"
        return self.settings.validate()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "patterns": [p.to_dict() for p in self.patterns],
            "globalSettings": self.settings.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any, name: str = "Workout") -> Workout:
        """
        Deserialize a workout-file object.

        Raises:
            WorkoutFileError: If the object does not have the workout shape
        """
        if not isinstance(data, dict):
            raise WorkoutFileError("workout file must contain a JSON object")
        if "patterns" not in data or "globalSettings" not in data:
            raise WorkoutFileError("workout file needs both 'patterns' and 'globalSettings'")
        if not isinstance(data["patterns"], list):
            raise WorkoutFileError("'patterns' must be a list")
        patterns = []
        for i, item in enumerate(data["patterns"]):
            try:
                patterns.append(Pattern.from_dict(item))
            except ValueError as e:
                raise WorkoutFileError(f"pattern {i}: {e}") from e
        try:
            settings = WorkoutSettings.from_dict(data["globalSettings"])
        except (TypeError, ValueError) as e:
            raise WorkoutFileError(f"globalSettings: {e}") from e
        return cls(name=name, patterns=patterns, settings=settings)

    def save(self, path: Path) -> None:
        """
        Save workout to a JSON file.

        Raises:
            WorkoutFileError: If the workout fails validation
            OSError: If the file cannot be written
        """
        is_valid, msg = self.validate()
        if not is_valid:
            raise WorkoutFileError(f"Cannot save invalid workout: {msg}")
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)

    @classmethod
    def load(cls, path: Path) -> Workout:
        """
        Load and validate a workout JSON file.

        Raises:
            WorkoutFileError: Missing file, invalid JSON, wrong shape or failed validation
        """
        path = Path(path)
        if not path.exists():
            raise WorkoutFileError(f"Workout file not found: {path}")
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError) as e:
            raise WorkoutFileError(f"Cannot read {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise WorkoutFileError(f"Invalid JSON in {path}: {e}") from e

        workout = cls.from_dict(data, name=path.stem)
        is_valid, msg = workout.validate()
        if not is_valid:
            raise WorkoutFileError(f"Invalid workout in {path}: {msg}")
        logger.info("Loaded workout %r (%d patterns) from %s", workout.name, len(workout.patterns), path)
        return workout
