"""Tests for per-user paths and workout name resolution."""

import pytest

from .. import platform_paths


@pytest.fixture
def posix_home(tmp_path, monkeypatch):
    monkeypatch.setattr(platform_paths, "is_windows", lambda: False)
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path


def test_posix_dirs(posix_home):
    assert platform_paths.get_user_data_dir() == posix_home / ".ghoster"
    assert platform_paths.get_log_dir() == posix_home / ".ghoster" / "logs"
    assert platform_paths.get_workouts_dir() == posix_home / ".ghoster" / "workouts"


def test_windows_dirs(tmp_path, monkeypatch):
    monkeypatch.setattr(platform_paths, "is_windows", lambda: True)
    monkeypatch.setenv("APPDATA", str(tmp_path / "Roaming"))
    monkeypatch.setenv("LOCALAPPDATA", str(tmp_path / "Local"))
    assert platform_paths.get_user_data_dir() == tmp_path / "Roaming" / "Ghoster"
    assert platform_paths.get_log_dir() == tmp_path / "Local" / "Ghoster"


def test_resolve_existing_path_wins(posix_home, tmp_path):
    path = tmp_path / "local.json"
    path.write_text("{}", encoding="utf-8")
    assert platform_paths.resolve_workout_path(path) == path


def test_resolve_name_in_workouts_dir(posix_home, monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    workouts = platform_paths.ensure_dir(platform_paths.get_workouts_dir())
    (workouts / "drills.json").write_text("{}", encoding="utf-8")
    assert platform_paths.resolve_workout_path("drills") == workouts / "drills.json"
    assert platform_paths.resolve_workout_path("drills.json") == workouts / "drills.json"


def test_unresolved_name_is_returned_unchanged(posix_home):
    assert str(platform_paths.resolve_workout_path("missing-workout")) == "missing-workout"
