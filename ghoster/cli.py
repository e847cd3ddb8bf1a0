"""Ghoster command-line interface.

Argparse-based CLI that initializes logging early. Exposed via the
``ghoster`` console script and ``python -m ghoster``.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import random
import sys
import threading
from typing import Optional

# Suppress pygame support prompt so JSON outputs (e.g. print --json) remain clean.
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

from .engine.cues import CuePlayer
from .engine.narrator import VirtualNarrator
from .engine.timebase import AsyncioTimebase, ManualTimebase
from .engine.tones import PITCH_BASE_HZ, SAMPLE_RATE
from .logging_utils import setup_logging, get_default_log_path, LogMode
from .platform_paths import resolve_workout_path
from .runtime import RunOptions, build_session, env_flag
from .session.controller import SessionController
from .session.events import WorkoutEvent, WorkoutEventEmitter, WorkoutEventType
from .session.pattern import Pattern
from .session.state import Phase
from .session.timing import estimate_total_seconds, format_time
from .session.workout import Workout, WorkoutFileError
from .ui.console import ConsoleDisplay


def _add_logging_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Set log level (default: WARNING)",
    )
    parser.add_argument(
        "--log-mode",
        choices=[mode.value for mode in LogMode],
        default=None,
        help="Logging preset: quiet suppresses console info, trace forces DEBUG with tick lines "
        "(default: GHOSTER_LOG_MODE or normal)",
    )
    parser.add_argument(
        "--log-file",
        default=str(get_default_log_path()),
        help="Path to log file (default: per-user Ghoster directory)",
    )
    parser.add_argument(
        "--log-format",
        choices=["plain", "json"],
        default="plain",
        help="Log format (plain or json)",
    )


def _build_logging_parent() -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    _add_logging_args(parent)
    return parent


def _load_workout(path_arg: str) -> Optional[Workout]:
    """Load a workout file, printing the error and returning None on failure."""
    log = logging.getLogger(__name__)
    path = resolve_workout_path(path_arg)
    try:
        return Workout.load(path)
    except WorkoutFileError as exc:
        log.error("Failed to load workout %s: %s", path, exc)
        print(f"Error: {exc}")
        return None


# ---------------------------------------------------------------------------
# selftest
# ---------------------------------------------------------------------------

def selftest() -> int:
    """Fast import-and-run smoke test. Returns exit code."""
    try:
        import numpy  # noqa: F401
        import pygame  # noqa: F401
        import pyttsx3  # noqa: F401
        from .engine.tones import generate_two_tone_int16_stereo

        pcm = generate_two_tone_int16_stereo()
        if pcm.shape[1] != 2:
            raise RuntimeError(f"shot cue has unexpected shape {pcm.shape}")

        workout = Workout(
            name="selftest",
            patterns=[Pattern(name="selftest", shot_options="Left\nRight", shot_interval=2.0, limit=2)],
        )
        timebase = ManualTimebase()
        events = WorkoutEventEmitter(clock=timebase.now)
        controller = SessionController(workout, timebase, VirtualNarrator(timebase), CuePlayer(), events, seed=1)
        controller.start()
        timebase.advance(10.0)
        if controller.phase is not Phase.COMPLETED or controller.run_state.global_shots != 2:
            raise RuntimeError(
                f"virtual run ended in {controller.phase.value} after {controller.run_state.global_shots} shots"
            )

        msg = "Selftest OK: imports + virtual workout run"
        logging.getLogger(__name__).info(msg)
        print(msg)
        return 0
    except Exception as e:
        logging.getLogger(__name__).error("Selftest failed: %s", e)
        print(f"Selftest failed: {e}")
        return 1


# ---------------------------------------------------------------------------
# validate / print
# ---------------------------------------------------------------------------

def cmd_validate(args) -> int:
    """Exit 0 when the workout file loads and validates."""
    workout = _load_workout(args.file)
    if workout is None:
        return 1
    for i, pattern in enumerate(workout.patterns):
        if not pattern.is_runnable:
            print(f"Warning: pattern {i} '{pattern.name}' has no shots and will be skipped")
    print(f"Workout '{workout.name}' is valid ({len(workout.patterns)} patterns)")
    return 0


def _workout_summary(workout: Workout) -> dict:
    settings = workout.settings
    estimate = estimate_total_seconds(workout.patterns, settings)
    return {
        "name": workout.name,
        "orderMode": settings.order_mode.value,
        "countdownSeconds": settings.countdown_seconds,
        "globalLimitType": settings.global_limit_type.value,
        "globalShotLimit": settings.global_shot_limit,
        "globalTimeLimit": settings.global_time_limit,
        "estimatedSeconds": estimate,
        "patterns": [
            {
                "name": p.name,
                "shots": len(p.shot_list),
                "seriesOrder": p.series_order.value,
                "shotInterval": p.shot_interval,
                "randomOffset": p.random_offset,
                "limitType": p.limit_type.value,
                "patternLimit": p.limit,
                "postSequenceRest": p.post_rest,
                "splitStepHint": p.split_step_hint.value,
            }
            for p in workout.patterns
        ],
    }


def cmd_print(args) -> int:
    workout = _load_workout(args.file)
    if workout is None:
        return 1
    summary = _workout_summary(workout)
    if getattr(args, "json", False):
        print(json.dumps(summary, ensure_ascii=False, indent=2))
        return 0

    print(f"Workout: {summary['name']}")
    print(f"  order={summary['orderMode']} countdown={summary['countdownSeconds']}s "
          f"limit={summary['globalLimitType']}")
    for i, p in enumerate(summary["patterns"]):
        unit = "shots" if p["limitType"] == "shot" else "s"
        print(f"  {i + 1}. {p['name']}: {p['shots']} shot options, every {p['shotInterval']:g}s "
              f"(+0-{p['randomOffset']:g}s), limit {p['patternLimit']:g} {unit}, rest {p['postSequenceRest']}s, "
              f"split-step {p['splitStepHint']}")
    print(f"  Estimated time: {format_time(summary['estimatedSeconds'])}")
    return 0


# ---------------------------------------------------------------------------
# simulate (virtual time)
# ---------------------------------------------------------------------------

class _RecordingOutput:
    """ToneOutput stand-in for virtual runs: records when each tone starts."""

    def __init__(self, timebase: ManualTimebase):
        self.timebase = timebase
        self.played: list[tuple[float, float]] = []

    def play(self, pcm) -> bool:
        self.played.append((self.timebase.now(), len(pcm) / float(SAMPLE_RATE)))
        return True

    def stop(self) -> None:
        pass


_SIM_SKIPPED = (WorkoutEventType.PROGRESS, WorkoutEventType.ELAPSED, WorkoutEventType.PHASE_CHANGE)


def simulate_workout(
    workout: Workout,
    *,
    seed: Optional[int] = None,
    speech_wpm: float = 150.0,
    max_seconds: float = 6 * 3600.0,
    step: float = 0.5,
) -> dict:
    """Run ``workout`` in virtual time and return its timeline.

    Returns:
        {"completed": bool, "seconds": float, "shots": int, "passes": int,
         "timeline": [{"t": float, "kind": str, ...}, ...]}
    """
    timebase = ManualTimebase()
    narrator = VirtualNarrator(timebase, seconds_per_word=60.0 / max(1.0, speech_wpm))
    output = _RecordingOutput(timebase)
    cues = CuePlayer(output, rng=random.Random(seed))
    events = WorkoutEventEmitter(clock=timebase.now)
    recorded: list[WorkoutEvent] = []

    def _record(evt: WorkoutEvent) -> None:
        if evt.event_type not in _SIM_SKIPPED:
            recorded.append(evt)

    events.subscribe_all(_record)

    controller = SessionController(workout, timebase, narrator, cues, events, seed=seed)
    done = {"value": False}
    controller.scheduler.on_complete = lambda: done.update(value=True)

    if not controller.start():
        return {"completed": False, "seconds": 0.0, "shots": 0, "passes": 0, "timeline": []}
    while not done["value"] and controller.phase is not Phase.IDLE and timebase.now() < max_seconds:
        timebase.advance(step)
    narrator.close()

    timeline = [{"t": evt.timestamp, "kind": evt.event_type.name, **(evt.data or {})} for evt in recorded]
    timeline += [{"t": rec.time, "kind": "SPEECH", "text": rec.text, "rate": rec.voice.rate} for rec in narrator.spoken]
    timeline += [{"t": t, "kind": "TONE", "duration": round(d, 3)} for t, d in output.played]
    timeline.sort(key=lambda item: item["t"])

    st = controller.run_state
    return {
        "completed": done["value"],
        "seconds": timebase.now(),
        "shots": st.global_shots,
        "passes": st.pass_number,
        "timeline": timeline,
    }


def _format_entry(entry: dict) -> str:
    extras = ", ".join(f"{k}={v}" for k, v in entry.items() if k not in ("t", "kind"))
    return f"{entry['t']:9.3f}  {entry['kind']:<16} {extras}".rstrip()


def cmd_simulate(args) -> int:
    workout = _load_workout(args.file)
    if workout is None:
        return 1
    if args.countdown is not None:
        workout.settings.countdown_seconds = max(0, args.countdown)

    result = simulate_workout(
        workout,
        seed=args.seed,
        speech_wpm=args.speech_wpm,
        max_seconds=args.max_seconds,
    )
    if getattr(args, "json", False):
        print(json.dumps(result, ensure_ascii=False, indent=2, default=str))
    else:
        for entry in result["timeline"]:
            print(_format_entry(entry))
        status = "completed" if result["completed"] else "did not complete"
        print(f"[simulate] {workout.name}: {status} after {format_time(result['seconds'])} "
              f"({result['shots']} shots, {result['passes']} pass(es))")
    return 0 if result["completed"] else 2


# ---------------------------------------------------------------------------
# run (real time)
# ---------------------------------------------------------------------------

_HELP_TEXT = "Commands: p = pause/resume, s = stop, r = replay, q = quit"


async def _run_headless(workout: Workout, options: RunOptions, interactive: bool) -> int:
    log = logging.getLogger(__name__)
    loop = asyncio.get_running_loop()
    timebase = AsyncioTimebase(loop)
    bundle = build_session(workout, timebase, options)
    controller = bundle.controller
    display = ConsoleDisplay()
    display.attach(bundle.events)
    finished = asyncio.Event()

    def _on_complete() -> None:
        if interactive:
            print("Workout finished. r = replay, q = quit")
        else:
            finished.set()

    controller.scheduler.on_complete = _on_complete
    bundle.events.subscribe(WorkoutEventType.WORKOUT_STOP, lambda _evt: finished.set())

    def _handle(line: str) -> None:
        cmd = line.strip().lower()
        if not cmd:
            return
        if cmd == "p":
            controller.toggle_pause()
        elif cmd == "s":
            controller.stop()
        elif cmd == "r":
            controller.replay()
        elif cmd == "q":
            if not controller.exit():
                finished.set()
        else:
            print(_HELP_TEXT)

    def _reader() -> None:
        # Daemon thread: never keeps the process alive after the run
        for line in sys.stdin:
            loop.call_soon_threadsafe(_handle, line)

    if interactive:
        print(_HELP_TEXT)
        threading.Thread(target=_reader, name="stdin-commands", daemon=True).start()

    try:
        if not controller.start():
            print("Error: nothing to run (no pattern has any shots)")
            return 1
        await finished.wait()
    finally:
        display.detach()
        bundle.close()
    log.info("[cli] Run finished: %d shots", controller.run_state.global_shots)
    return 0


def _run_options(args) -> RunOptions:
    return RunOptions.from_env(
        seed=args.seed,
        countdown=args.countdown,
        no_audio=args.no_audio,
        no_voice=args.no_voice,
        pitch=args.pitch,
        voice_wpm=args.voice_rate,
    )


def cmd_run(args) -> int:
    workout = _load_workout(args.file)
    if workout is None:
        return 1
    options = _run_options(args)

    if getattr(args, "gui", False):
        from .app import run_workout_window

        return run_workout_window(workout, options)

    interactive = sys.stdin is not None and sys.stdin.isatty()
    try:
        return asyncio.run(_run_headless(workout, options, interactive))
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130


# ---------------------------------------------------------------------------
# voices
# ---------------------------------------------------------------------------

def cmd_voices(args) -> int:
    from .engine.narrator import Pyttsx3Narrator

    log = logging.getLogger(__name__)
    narrator = Pyttsx3Narrator(ManualTimebase())
    try:
        voices = narrator.list_voices()
    except Exception as exc:
        log.error("Could not query speech voices: %s", exc)
        print(f"Error: text-to-speech unavailable: {exc}")
        return 1
    finally:
        narrator.close()

    if getattr(args, "json", False):
        print(json.dumps(voices, ensure_ascii=False, indent=2))
    else:
        for voice in voices:
            langs = ", ".join(voice["languages"]) or "-"
            print(f"{voice['name']}  [{langs}]\n    id: {voice['id']}")
        print(f"{len(voices)} voice(s)")
    return 0


# ---------------------------------------------------------------------------
# parser / main
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    logging_parent = _build_logging_parent()
    parser = argparse.ArgumentParser(
        description="Ghoster CLI",
        parents=[logging_parent],
    )
    sub = parser.add_subparsers(dest="command", required=True)

    def add_subparser(name: str, **kwargs: object) -> argparse.ArgumentParser:
        parents = list(kwargs.pop("parents", []))
        parents.insert(0, logging_parent)
        return sub.add_parser(name, parents=parents, **kwargs)

    p_run = add_subparser("run", help="Run a workout in real time")
    p_run.add_argument("file", help="Workout JSON file (or a name in the workouts folder)")
    p_run.add_argument("--gui", action="store_true", help="Show the workout window instead of console output")
    p_run.add_argument("--seed", type=int, default=None, help="Seed for offsets and shuffles (deterministic replays)")
    p_run.add_argument("--countdown", type=int, default=None, help="Override countdownSeconds")
    p_run.add_argument("--no-audio", action="store_true", help="Disable tone cues (env GHOSTER_NO_AUDIO=1)")
    p_run.add_argument("--no-voice", action="store_true", help="Disable speech (env GHOSTER_NO_VOICE=1)")
    p_run.add_argument("--pitch", choices=sorted(PITCH_BASE_HZ), default="medium", help="Split-step cue pitch")
    p_run.add_argument("--voice-rate", type=int, default=None, help="Base speech rate in words per minute")

    p_sim = add_subparser("simulate", help="Run a workout in virtual time and print the timeline")
    p_sim.add_argument("file", help="Workout JSON file")
    p_sim.add_argument("--seed", type=int, default=None, help="Random seed")
    p_sim.add_argument("--countdown", type=int, default=None, help="Override countdownSeconds")
    p_sim.add_argument("--json", action="store_true", help="Emit the timeline as JSON")
    p_sim.add_argument("--speech-wpm", type=float, default=150.0, help="Simulated speech rate (words per minute)")
    p_sim.add_argument("--max-seconds", type=float, default=6 * 3600.0, help="Virtual-time safety cap")

    p_val = add_subparser("validate", help="Validate a workout file")
    p_val.add_argument("file", help="Workout JSON file")

    p_print = add_subparser("print", help="Summarize a workout and estimate its length")
    p_print.add_argument("file", help="Workout JSON file")
    p_print.add_argument("--json", action="store_true", help="Emit JSON")

    p_voices = add_subparser("voices", help="List text-to-speech voices")
    p_voices.add_argument("--json", action="store_true", help="Emit JSON")

    add_subparser("selftest", help="Quick environment/import check")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging before doing any work
    log_mode = args.log_mode or os.environ.get("GHOSTER_LOG_MODE")
    if args.log_mode:
        os.environ["GHOSTER_LOG_MODE"] = args.log_mode
    setup_logging(
        level="DEBUG" if env_flag("GHOSTER_DEBUG") else args.log_level,
        log_file=args.log_file,
        json_format=(args.log_format == "json"),
        log_mode=log_mode,
        add_console=True,
    )

    cmd = args.command
    if cmd == "run":
        return cmd_run(args)
    if cmd == "simulate":
        return cmd_simulate(args)
    if cmd == "validate":
        return cmd_validate(args)
    if cmd == "print":
        return cmd_print(args)
    if cmd == "voices":
        return cmd_voices(args)
    if cmd == "selftest":
        return selftest()
    parser.error(f"unknown command {cmd!r}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
