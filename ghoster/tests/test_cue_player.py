"""Tests for the cue player and split-step speed resolution."""

import random
from unittest.mock import MagicMock

import pytest

from ..engine.cues import (
    CONCRETE_SPEEDS,
    POWER_UP_LEAD_SECONDS,
    CuePlayer,
    SplitStepSpeed,
    power_up_lead,
    resolve_speed,
)


class TestSplitStepSpeed:

    def test_parse_is_case_insensitive(self):
        assert SplitStepSpeed.parse("medium") is SplitStepSpeed.MEDIUM
        assert SplitStepSpeed.parse("FAST") is SplitStepSpeed.FAST
        assert SplitStepSpeed.parse(SplitStepSpeed.SLOW) is SplitStepSpeed.SLOW

    def test_parse_missing_means_none(self):
        assert SplitStepSpeed.parse(None) is SplitStepSpeed.NONE
        assert SplitStepSpeed.parse("") is SplitStepSpeed.NONE
        assert SplitStepSpeed.parse("None") is SplitStepSpeed.NONE

    def test_parse_rejects_unknown(self):
        with pytest.raises(ValueError):
            SplitStepSpeed.parse("Turbo")

    def test_resolve(self):
        assert resolve_speed("None") is None
        assert resolve_speed("Slow") is SplitStepSpeed.SLOW
        rng = random.Random(3)
        picks = {resolve_speed("Random", rng) for _ in range(50)}
        assert picks == set(CONCRETE_SPEEDS)

    def test_leads(self):
        assert power_up_lead(None) == 0.0
        assert POWER_UP_LEAD_SECONDS[SplitStepSpeed.SLOW] == pytest.approx(0.50625)
        assert POWER_UP_LEAD_SECONDS[SplitStepSpeed.MEDIUM] == pytest.approx(0.5)
        assert POWER_UP_LEAD_SECONDS[SplitStepSpeed.FAST] == pytest.approx(0.49375)


class TestCuePlayer:

    def test_shot_cue_plays_on_output(self):
        output = MagicMock()
        player = CuePlayer(output)
        player.play_shot_cue()
        output.play.assert_called_once()
        pcm = output.play.call_args[0][0]
        assert pcm.shape[1] == 2
        assert [c.kind for c in player.history] == ["shot"]

    def test_split_step_none_plays_nothing(self):
        output = MagicMock()
        player = CuePlayer(output)
        assert player.play_split_step_cue("None") is None
        output.play.assert_not_called()
        assert len(player.history) == 0

    def test_split_step_random_records_concrete_speed(self):
        player = CuePlayer(rng=random.Random(1))
        played = player.play_split_step_cue(SplitStepSpeed.RANDOM)
        assert played in CONCRETE_SPEEDS
        assert player.history[-1].kind == "power_up"
        assert player.history[-1].speed == played.value

    def test_output_errors_are_swallowed(self):
        output = MagicMock()
        output.play.side_effect = RuntimeError("device gone")
        player = CuePlayer(output)
        player.play_shot_cue()
        assert len(player.history) == 1

    def test_stop_forwards_to_output(self):
        output = MagicMock()
        CuePlayer(output).stop()
        output.stop.assert_called_once()

    def test_bad_pitch_rejected(self):
        with pytest.raises(ValueError):
            CuePlayer(pitch="ultra")
