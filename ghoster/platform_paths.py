"""Platform-specific per-user paths.

Keeps logs and user workouts out of the install folder. No extra
dependencies (e.g. platformdirs); standard environment variables only.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

APP_NAME = "Ghoster"


def is_windows() -> bool:
    return os.name == "nt"


def get_user_data_dir(app_name: str = APP_NAME) -> Path:
    """Return a persistent per-user data directory.

    Windows: %APPDATA%\\Ghoster, elsewhere ~/.ghoster
    """
    if is_windows():
        base = os.getenv("APPDATA")
        if base:
            return Path(base) / app_name
        return Path.home() / "AppData" / "Roaming" / app_name
    return Path.home() / f".{app_name.lower()}"


def get_log_dir(app_name: str = APP_NAME) -> Path:
    """Per-user log directory (%LOCALAPPDATA% on Windows so logs don't roam)."""
    local_appdata = os.environ.get("LOCALAPPDATA")
    if is_windows() and local_appdata:
        return Path(local_appdata) / app_name
    return get_user_data_dir(app_name) / "logs"


def get_workouts_dir(app_name: str = APP_NAME) -> Path:
    return get_user_data_dir(app_name) / "workouts"


def ensure_dir(path: Path) -> Path:
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def resolve_workout_path(name: str | os.PathLike) -> Path:
    """Resolve a workout argument: an existing path, or a name in the workouts dir.

    ``drills`` finds ``~/.ghoster/workouts/drills.json`` when no ``drills``
    file exists in the current directory.
    """
    path = Path(name)
    if path.exists():
        return path
    candidates = [get_workouts_dir() / path.name]
    if path.suffix != ".json":
        candidates.append(get_workouts_dir() / f"{path.name}.json")
    for candidate in candidates:
        if candidate.exists():
            logger.debug("Resolved workout %s -> %s", name, candidate)
            return candidate
    return path
