import json
import pathlib
import subprocess
import sys

ROOT = pathlib.Path(__file__).resolve().parents[2]


def test_run_py_without_args_shows_help():
    """Legacy run.py with no arguments prints the CLI help and exits 0."""
    proc = subprocess.run([sys.executable, str(ROOT / "run.py")], capture_output=True, text=True, timeout=30)
    assert proc.returncode == 0, proc.stderr
    assert "Ghoster CLI" in proc.stdout


def test_run_py_forwards_subcommands(tmp_path):
    workout = {
        "patterns": [{"patternName": "Lunges", "shotOptions": "Left\nRight"}],
        "globalSettings": {},
    }
    path = tmp_path / "lunges.json"
    path.write_text(json.dumps(workout), encoding="utf-8")
    proc = subprocess.run(
        [sys.executable, str(ROOT / "run.py"), "--debug", "validate", str(path),
         "--log-file", str(tmp_path / "run.log")],
        capture_output=True, text=True, timeout=30,
    )
    assert proc.returncode == 0, proc.stderr
    assert "Workout 'lunges' is valid (1 patterns)" in proc.stdout
