"""Tests for time formatting, spoken durations and the length estimate."""

import pytest

from ..session.pattern import LimitType, Pattern
from ..session.timing import (
    estimate_total_seconds,
    format_time,
    friendly_duration,
    number_word,
    rest_announcement,
    should_announce_countdown,
)
from ..session.workout import GlobalLimitType, WorkoutSettings


@pytest.mark.parametrize("seconds, text", [
    (0, "00:00"),
    (59.4, "00:59"),
    (59.6, "01:00"),
    (75, "01:15"),
    (3600, "60:00"),
    (-5, "00:00"),
])
def test_format_time(seconds, text):
    assert format_time(seconds) == text


def test_number_word():
    assert number_word(7) == "seven"
    assert number_word(40) == "forty"
    assert number_word(25) == "twenty-five"


@pytest.mark.parametrize("seconds, text", [
    (30, "thirty seconds"),
    (45, "forty-five seconds"),
    (60, "one minute"),
    (90, "one minute and a half"),
    (125, "two minutes, five"),
    (80, "one minute, twenty seconds"),
    (0, "zero seconds"),
])
def test_friendly_duration(seconds, text):
    assert friendly_duration(seconds) == text


def test_rest_announcement_threshold():
    assert rest_announcement(29) == "Rest"
    assert rest_announcement(30) == "Rest for thirty seconds"
    assert rest_announcement(90) == "Rest for one minute and a half"


def test_countdown_announcements():
    spoken = [n for n in range(30, 0, -1) if should_announce_countdown(n)]
    assert spoken == [30, 20, 10, 9, 8, 7, 6, 5, 4, 3, 2, 1]


class TestEstimate:

    def test_all_patterns_once(self):
        patterns = [
            Pattern(shot_interval=5, random_offset=2, limit_type=LimitType.SHOT, limit=4, post_rest=10),
            Pattern(limit_type=LimitType.TIME, limit=30, post_rest=0),
            Pattern(shot_options=""),
        ]
        assert estimate_total_seconds(patterns, WorkoutSettings()) == pytest.approx(4 * 6 + 10 + 30)

    def test_global_time(self):
        settings = WorkoutSettings(global_limit_type=GlobalLimitType.TIME, global_time_limit=300)
        assert estimate_total_seconds([Pattern()], settings) == 300

    def test_global_shots_use_mean_interval(self):
        settings = WorkoutSettings(global_limit_type=GlobalLimitType.SHOT, global_shot_limit=10)
        patterns = [Pattern(shot_interval=4), Pattern(shot_interval=6)]
        assert estimate_total_seconds(patterns, settings) == pytest.approx(50)
