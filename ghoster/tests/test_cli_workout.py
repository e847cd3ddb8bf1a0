import json
import subprocess
import sys
from pathlib import Path

import pytest

from .. import cli
from ..runtime import RunOptions
from ..session.pattern import Pattern
from ..session.workout import Workout, WorkoutSettings

REPO_ROOT = Path(__file__).resolve().parents[2]

DRILL = {
    "patterns": [
        {
            "patternName": "Corners",
            "shotOptions": "Front left\nFront right",
            "shotInterval": 6,
            "nextShotAnnouncement": 2,
            "limitType": "shot",
            "patternLimit": 2,
        }
    ],
    "globalSettings": {
        "workoutOrderMode": "in-order",
        "workoutCountdownTime": 0,
        "globalLimitType": "all",
    },
}


def run_cmd(args, tmp_path):
    python = sys.executable
    log_file = str(tmp_path / "ghoster.log")
    result = subprocess.run(
        [python, "-m", "ghoster", *args, "--log-file", log_file],
        capture_output=True, text=True, cwd=REPO_ROOT,
    )
    return result.returncode, result.stdout, result.stderr


@pytest.fixture
def drill_file(tmp_path):
    path = tmp_path / "corners.json"
    path.write_text(json.dumps(DRILL), encoding="utf-8")
    return path


def test_help_exits_zero():
    result = subprocess.run([sys.executable, "-m", "ghoster", "--help"], capture_output=True, text=True, cwd=REPO_ROOT)
    assert result.returncode == 0
    assert "Ghoster CLI" in result.stdout


def test_selftest_exits_zero(tmp_path):
    code, out, err = run_cmd(["selftest"], tmp_path)
    assert code == 0, err
    assert "Selftest OK" in out


def test_logging_flags_after_subcommand():
    parser = cli.build_parser()
    args = parser.parse_args(["simulate", "w.json", "--log-level", "DEBUG", "--log-mode", "trace", "--json"])
    assert args.command == "simulate"
    assert args.log_level == "DEBUG"
    assert args.log_mode == "trace"
    assert args.json is True


def test_run_flags():
    parser = cli.build_parser()
    args = parser.parse_args(["run", "w.json", "--seed", "7", "--no-audio", "--pitch", "high", "--countdown", "3"])
    assert args.seed == 7
    assert args.no_audio is True
    assert args.no_voice is False
    assert args.pitch == "high"
    assert args.countdown == 3
    assert args.gui is False


def test_subcommand_required():
    parser = cli.build_parser()
    with pytest.raises(SystemExit):
        parser.parse_args([])


class TestValidateAndPrint:
    def test_validate_good_file(self, drill_file, tmp_path):
        code, out, _ = run_cmd(["validate", str(drill_file)], tmp_path)
        assert code == 0
        assert "Workout 'corners' is valid (1 patterns)" in out

    def test_validate_bad_file(self, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text('{"patterns": []}', encoding="utf-8")
        code, out, _ = run_cmd(["validate", str(bad)], tmp_path)
        assert code == 1
        assert out.startswith("Error:")

    def test_validate_missing_file(self, tmp_path):
        code, out, _ = run_cmd(["validate", str(tmp_path / "nope.json")], tmp_path)
        assert code == 1
        assert "not found" in out

    def test_print_json(self, drill_file, tmp_path):
        code, out, _ = run_cmd(["print", str(drill_file), "--json"], tmp_path)
        assert code == 0
        summary = json.loads(out)
        assert summary["name"] == "corners"
        assert summary["globalLimitType"] == "all"
        assert summary["patterns"][0]["name"] == "Corners"
        assert summary["estimatedSeconds"] > 0

    def test_print_text(self, drill_file, tmp_path):
        code, out, _ = run_cmd(["print", str(drill_file)], tmp_path)
        assert code == 0
        assert "Workout: corners" in out
        assert "Estimated time:" in out


class TestSimulate:
    def test_simulate_json(self, drill_file, tmp_path):
        code, out, err = run_cmd(["simulate", str(drill_file), "--seed", "3", "--json"], tmp_path)
        assert code == 0, err
        result = json.loads(out)
        assert result["completed"] is True
        assert result["shots"] == 2

    def test_simulate_text(self, drill_file, tmp_path):
        code, out, _ = run_cmd(["simulate", str(drill_file)], tmp_path)
        assert code == 0
        assert "SHOT_CUE" in out
        assert "[simulate] corners: completed" in out

    def test_timeline_in_process(self):
        workout = Workout.from_dict(DRILL, name="corners")
        result = cli.simulate_workout(workout, seed=1)
        assert result["completed"]
        assert result["shots"] == 2
        assert result["passes"] == 1

        timeline = result["timeline"]
        cue_times = [e["t"] for e in timeline if e["kind"] == "SHOT_CUE"]
        assert cue_times == pytest.approx([3.0, 9.0], abs=1e-6)
        tones = [e for e in timeline if e["kind"] == "TONE"]
        assert [t["t"] for t in tones] == pytest.approx([3.0, 9.0], abs=1e-6)
        assert tones[0]["duration"] == pytest.approx(0.3)
        spoken = [e["text"] for e in timeline if e["kind"] == "SPEECH"]
        assert spoken == ["Front left", "Front right", "Workout complete"]
        assert [e["t"] for e in timeline] == sorted(e["t"] for e in timeline)

    def test_countdown_is_simulated(self):
        workout = Workout(
            patterns=[Pattern(shot_options="Left", shot_interval=4.0, limit=1)],
            settings=WorkoutSettings(countdown_seconds=3),
        )
        result = cli.simulate_workout(workout, seed=1)
        spoken = [e["text"] for e in result["timeline"] if e["kind"] == "SPEECH"]
        assert spoken[:4] == ["3", "2", "1", "Go!"]
        cue = next(e for e in result["timeline"] if e["kind"] == "SHOT_CUE")
        # 3 s countdown + 1 s "Go!" grace + half the interval
        assert cue["t"] == pytest.approx(6.0, abs=1e-6)

    def test_empty_workout_does_not_start(self):
        result = cli.simulate_workout(Workout(patterns=[Pattern(shot_options="")]))
        assert result == {"completed": False, "seconds": 0.0, "shots": 0, "passes": 0, "timeline": []}


@pytest.mark.slow
@pytest.mark.asyncio
async def test_headless_run_completes(capsys):
    workout = Workout(patterns=[Pattern(name="Quick", shot_options="Left", shot_interval=1.0, limit=2)])
    options = RunOptions(no_audio=True, no_voice=True, seed=1)
    code = await cli._run_headless(workout, options, interactive=False)
    assert code == 0
    out = capsys.readouterr().out
    assert "== Quick (pass 1) ==" in out
    assert out.count("** BEEP **") == 2
    assert "Workout complete: 2 shots" in out
    assert out.rstrip().endswith("Done")
