"""
Phase Scheduler - the workout state machine.

    idle -> countdown -> shot <-> rest -> completed
                 \\         |       /
                  +---- paused ----+

All work happens in timebase callbacks on the control thread. Every timer
and narration continuation is bound to the generation that created it;
entering a phase (or a new interval), pausing, stopping and completing all
bump the generation and cancel the tracked timers, so a late callback from
a previous phase is dropped instead of acting on the new one.

Within one shot interval of effective length ``d`` (midpoint ``m = d/2``):
- power-up cue at ``m - lead(speed)`` when a split-step hint is set
- shot cue + flash at ``m``
- next-shot display/announcement at ``m - nextShotAnnouncement``
  (``shotInterval/2 - nextShotAnnouncement`` for the first shot of the run)
Each sub-event records that it fired, so resuming never plays it twice.
"""

from __future__ import annotations

import logging
import random
from concurrent.futures import Future
from typing import Callable, List, Optional

from ..engine.cues import CuePlayer, power_up_lead, resolve_speed
from ..engine.narrator import DEFAULT_VOICE, Narrator, VoiceProfile
from ..engine.timebase import Timebase, TimerHandle
from .events import WorkoutEvent, WorkoutEventEmitter, WorkoutEventType
from .limits import global_limit_reached, global_time_limit_reached, needs_loop, should_end_pattern
from .pattern import Pattern, SeriesOrder
from .state import IntervalState, PauseSnapshot, Phase, RunState
from .timing import DEFAULT_TIMING, EngineTiming, format_time, rest_announcement, should_announce_countdown
from .workout import WorkoutSettings


_EPS = 1e-6


class PhaseScheduler:
    """
    Drives one workout run.

    Usage:
        scheduler = PhaseScheduler(timebase, narrator, cues, events, rng=random.Random(7))
        scheduler.start(run_order, settings)
        scheduler.pause(); scheduler.resume(); scheduler.stop()

    Args:
        timebase: Clock and timers (all callbacks on the control thread)
        narrator: Speech; keep-alive is started/stopped with the run
        cues: Tone cue player
        events: Display sink
        timing: Engine constants
        rng: Random source for offsets, shot shuffles and random hints
        reorder: Called at the end of each pass to get the next run order
        on_complete: Called once the completion announcement has finished
    """

    def __init__(
        self,
        timebase: Timebase,
        narrator: Narrator,
        cues: CuePlayer,
        events: Optional[WorkoutEventEmitter] = None,
        *,
        timing: EngineTiming = DEFAULT_TIMING,
        rng: Optional[random.Random] = None,
        reorder: Optional[Callable[[], List[Pattern]]] = None,
        on_complete: Optional[Callable[[], None]] = None,
    ):
        self.timebase = timebase
        self.narrator = narrator
        self.cues = cues
        self.events = events or WorkoutEventEmitter(clock=timebase.now)
        self.timing = timing
        self.rng = rng or random.Random()
        self.reorder = reorder
        self.on_complete = on_complete
        self.logger = logging.getLogger(__name__)

        self.state = RunState()
        self.settings = WorkoutSettings()
        self._generation = 0
        self._timers: list[TimerHandle] = []
        self._clock_timer: Optional[TimerHandle] = None

    # ------------------------------------------------------------------ state
    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_running(self) -> bool:
        return self.state.phase in (Phase.COUNTDOWN, Phase.SHOT, Phase.REST, Phase.PAUSED)

    # ------------------------------------------------------------- public API
    def start(self, run_order: List[Pattern], settings: WorkoutSettings) -> bool:
        """Begin a run: countdown if configured, else straight to the first pattern."""
        if self.is_running:
            self.logger.warning(f"[scheduler] Cannot start: already {self.state.phase.value}")
            return False

        self._cancel_timers()
        self.settings = settings
        self.state = RunState(run_order=list(run_order))
        self.logger.info(
            f"[scheduler] Starting workout: {len(run_order)} patterns, "
            f"order={settings.order_mode.value}, limit={settings.global_limit_type.value}"
        )
        self.events.emit(WorkoutEvent(WorkoutEventType.WORKOUT_START, data={
            "patterns": [p.name for p in run_order],
            "countdown": settings.countdown_seconds,
        }))
        self.narrator.start_keep_alive()
        self._start_clock()

        if settings.countdown_seconds > 0:
            self.state.countdown_total = settings.countdown_seconds
            self._enter_countdown(settings.countdown_seconds)
        else:
            self._dispatch()
        return True

    def pause(self) -> bool:
        """Suspend the active phase. Valid from countdown, shot and rest only."""
        st = self.state
        if not st.phase.pausable:
            self.logger.warning(f"[scheduler] Cannot pause: phase is {st.phase.value}")
            return False

        snapshot = PauseSnapshot(phase=st.phase, display_text=st.display_text)
        if st.phase is Phase.COUNTDOWN:
            snapshot.countdown_remaining = st.countdown_remaining
        elif st.phase is Phase.SHOT:
            if st.interval is not None:
                self._account_interval_time(st.interval)
                snapshot.interval = st.interval.snapshot()
        else:
            snapshot.rest_remaining = st.rest_remaining

        self._enter(Phase.PAUSED)
        self._stop_clock()
        self.narrator.stop_keep_alive()
        self.narrator.cancel()
        self.cues.stop()
        st.paused = snapshot

        where = f"{snapshot.phase.value}"
        if snapshot.interval is not None:
            where += f" at {snapshot.interval.elapsed:.2f}/{snapshot.interval.effective:.2f}s"
        self.logger.info(f"[scheduler] Paused during {where}")
        self._display("Paused")
        self.events.emit(WorkoutEvent(WorkoutEventType.WORKOUT_PAUSE, data={"phase": snapshot.phase.value}))
        return True

    def resume(self) -> bool:
        """Re-enter the suspended phase from its snapshot."""
        st = self.state
        if st.phase is not Phase.PAUSED or st.paused is None:
            self.logger.warning(f"[scheduler] Cannot resume: phase is {st.phase.value}")
            return False

        snapshot = st.paused
        st.paused = None
        self.logger.info(f"[scheduler] Resuming {snapshot.phase.value}")
        self.events.emit(WorkoutEvent(WorkoutEventType.WORKOUT_RESUME, data={"phase": snapshot.phase.value}))
        self.narrator.start_keep_alive()
        self._start_clock()

        if snapshot.phase is Phase.COUNTDOWN:
            if snapshot.countdown_remaining and snapshot.countdown_remaining > 0:
                self._enter_countdown(snapshot.countdown_remaining)
            else:
                # Paused during the "Go!" grace
                self._dispatch()
        elif snapshot.phase is Phase.REST:
            if global_limit_reached(self.settings, st.global_shots, st.global_elapsed):
                self._complete()
            elif snapshot.rest_remaining and snapshot.rest_remaining > 0:
                self._enter_rest_countdown(snapshot.rest_remaining, resumed=True)
            else:
                self._advance_pattern()
        else:
            self._display(snapshot.display_text)
            # Interval None: paused during the intro, which is not replayed
            self._start_interval(resume_from=snapshot.interval)
        return True

    def stop(self) -> bool:
        """Abort the run and return to idle."""
        st = self.state
        if st.phase is Phase.IDLE:
            self.logger.debug("[scheduler] Stop ignored: already idle")
            return False
        was = st.phase
        self._enter(Phase.IDLE)
        self._halt_side_effects()
        st.paused = None
        st.interval = None
        self.logger.info(f"[scheduler] Stopped (was {was.value})")
        self.events.emit(WorkoutEvent(WorkoutEventType.WORKOUT_STOP, data={
            "shots": st.global_shots,
            "elapsed": st.global_elapsed,
        }))
        return True

    # -------------------------------------------------------------- countdown
    def _enter_countdown(self, remaining: int) -> None:
        self._enter(Phase.COUNTDOWN)
        self.state.countdown_remaining = remaining
        self._show_countdown()
        self._every(self.timing.rest_tick_s, self._on_countdown_tick)

    def _show_countdown(self) -> None:
        st = self.state
        n = st.countdown_remaining
        self._display(str(n))
        total = max(st.countdown_total, n, 1)
        self._progress((total - n) / total)
        if should_announce_countdown(n):
            self._speak(str(n), DEFAULT_VOICE)

    def _on_countdown_tick(self) -> None:
        st = self.state
        st.countdown_remaining -= 1
        if st.countdown_remaining > 0:
            self._show_countdown()
            return
        st.countdown_remaining = 0
        self._enter(Phase.COUNTDOWN)
        self._display("Go!")
        self._progress(1.0)
        self._speak("Go!", DEFAULT_VOICE)
        self._after(self.timing.go_grace_s, self._dispatch)

    # --------------------------------------------------------------- dispatch
    def _dispatch(self) -> None:
        """Start the pattern at the current index (looping / skipping / completing as needed)."""
        st = self.state
        while True:
            if global_limit_reached(self.settings, st.global_shots, st.global_elapsed):
                self.logger.info("[scheduler] Global limit reached at dispatch")
                self._complete()
                return

            if st.pattern_index >= len(st.run_order):
                if not st.ran_pattern_this_pass:
                    self.logger.error("[scheduler] No runnable pattern in this pass; finishing workout")
                    self._complete()
                    return
                if not needs_loop(self.settings, st.global_shots, st.global_elapsed):
                    self._complete()
                    return
                self._start_next_pass()
                continue

            pattern = st.run_order[st.pattern_index]
            if pattern.is_runnable:
                break
            self.logger.warning(f"[scheduler] Skipping pattern {st.pattern_index} ('{pattern.name}'): no shots")
            self.events.emit(WorkoutEvent(WorkoutEventType.PATTERN_SKIPPED, data={
                "index": st.pattern_index, "name": pattern.name, "reason": "empty shot list",
            }))
            st.pattern_index += 1

        self._start_pattern(pattern)

    def _start_next_pass(self) -> None:
        st = self.state
        if self.reorder is not None:
            st.run_order = list(self.reorder())
        elif self.settings.order_mode is SeriesOrder.RANDOMIZED:
            self.rng.shuffle(st.run_order)
        st.pattern_index = 0
        st.pass_number += 1
        st.ran_pattern_this_pass = False
        self.logger.info(
            f"[scheduler] Global limit not reached; starting pass {st.pass_number} "
            f"({st.global_shots} shots, {st.global_elapsed:.1f}s so far)"
        )
        self.events.emit(WorkoutEvent(WorkoutEventType.LOOP, data={"pass": st.pass_number}))

    def _start_pattern(self, pattern: Pattern) -> None:
        st = self.state
        st.ran_pattern_this_pass = True
        st.pattern_shots = 0
        st.pattern_elapsed = 0.0
        st.shot_order = pattern.shot_list
        if pattern.series_order is SeriesOrder.RANDOMIZED:
            self.rng.shuffle(st.shot_order)
        st.shot_cursor = 0
        st.voice = pattern.voice
        st.interval = None

        self._enter(Phase.SHOT)
        self.logger.info(f"[scheduler] Pattern {st.pattern_index} '{pattern.name}' (pass {st.pass_number})")
        self.events.emit(WorkoutEvent(WorkoutEventType.PATTERN_START, data={
            "index": st.pattern_index, "name": pattern.name, "pass": st.pass_number,
        }))

        if pattern.announce_shots and pattern.intro_message.strip():
            self._display("Intro")
            self._progress(0.0)
            self._speak_then(pattern.intro_message, st.voice, self._start_interval)
        else:
            self._start_interval()

    # ------------------------------------------------------------- intervals
    def _start_interval(self, resume_from: Optional[IntervalState] = None) -> None:
        st = self.state
        pattern = st.pattern
        self._enter(Phase.SHOT)

        if resume_from is None:
            effective = pattern.shot_interval + self.rng.uniform(0.0, pattern.random_offset)
            interval = IntervalState(
                effective=effective,
                shot_text=st.current_shot,
                first_of_workout=st.first_shot_pending,
                speed=resolve_speed(pattern.split_step_hint, self.rng),
            )
            st.first_shot_pending = False
            self._display("")
            self._progress(0.0)
        else:
            interval = resume_from

        interval.anchor = self.timebase.now() - interval.elapsed
        st.interval = interval
        self.logger.debug(
            f"[scheduler] Interval: effective={interval.effective:.3f}s elapsed={interval.elapsed:.3f}s "
            f"shot='{interval.shot_text}' speed={interval.speed.value if interval.speed else None}"
        )
        self._schedule_interval_events(pattern, interval)
        self._every(self.timing.tick_s, self._on_interval_tick)

    def _schedule_interval_events(self, pattern: Pattern, interval: IntervalState) -> None:
        # Once the shot cue has played the midpoint is behind us and nothing else is due
        if interval.shot_cue_fired:
            return

        e = interval.elapsed
        m = interval.midpoint
        due_now: list[Callable[[], None]] = []

        def plan(at: float, fire: Callable[[], None]) -> None:
            if at > e + _EPS:
                self._after(at - e, fire)
            else:
                due_now.append(fire)

        if interval.speed is not None and not interval.power_up_fired:
            plan(m - power_up_lead(interval.speed), self._fire_power_up)

        plan(m, self._fire_shot_cue)

        if pattern.announce_shots and interval.shot_text and not interval.announced:
            anchor = pattern.shot_interval / 2.0 if interval.first_of_workout else m
            plan(anchor - pattern.next_shot_announcement, self._fire_announcement)

        # Already due (fresh interval with a long lead, or a resume): power-up, cue, announcement
        for fire in due_now:
            fire()

    def _fire_power_up(self) -> None:
        interval = self.state.interval
        if interval is None or interval.power_up_fired:
            return
        interval.power_up_fired = True
        self.cues.play_split_step_cue(interval.speed)

    def _fire_shot_cue(self) -> None:
        st = self.state
        interval = st.interval
        if interval is None or interval.shot_cue_fired:
            return
        interval.shot_cue_fired = True
        self.cues.play_shot_cue()
        self._flash()
        self.events.emit(WorkoutEvent(WorkoutEventType.SHOT_CUE, data={
            "pattern": st.pattern.name if st.pattern else "",
            "shot_number": st.pattern_shots + 1,
            "global_shot": st.global_shots + 1,
        }))

    def _fire_announcement(self) -> None:
        st = self.state
        interval = st.interval
        if interval is None or interval.announced:
            return
        interval.announced = True
        self._display(interval.shot_text)
        self._speak(interval.shot_text, st.voice)

    def _account_interval_time(self, interval: IntervalState) -> None:
        st = self.state
        elapsed = self.timebase.now() - interval.anchor
        delta = max(0.0, elapsed - interval.elapsed)
        interval.elapsed = elapsed
        st.pattern_elapsed += delta
        st.global_elapsed += delta

    def _on_interval_tick(self) -> None:
        st = self.state
        interval = st.interval
        if interval is None:
            return
        self._account_interval_time(interval)
        self._progress(min(1.0, interval.elapsed / interval.effective))
        self.logger.debug(
            f"[tick] [scheduler] e={interval.elapsed:.2f}/{interval.effective:.2f} "
            f"global={st.global_elapsed:.2f}"
        )

        if global_time_limit_reached(self.settings, st.global_elapsed):
            self.logger.info(f"[scheduler] Global time limit reached mid-interval ({st.global_elapsed:.2f}s)")
            self._complete()
            return

        if interval.elapsed >= interval.effective - _EPS:
            self._finish_interval()

    def _finish_interval(self) -> None:
        st = self.state
        pattern = st.pattern
        st.pattern_shots += 1
        st.global_shots += 1
        self.logger.debug(
            f"[scheduler] Interval done: pattern {st.pattern_shots} / global {st.global_shots} shots"
        )

        if should_end_pattern(pattern, st.pattern_shots, st.pattern_elapsed, st.global_shots, self.settings):
            self._end_pattern()
            return

        st.shot_cursor += 1
        if st.shot_cursor >= len(st.shot_order):
            st.shot_cursor = 0
            if pattern.series_order is SeriesOrder.RANDOMIZED:
                self.rng.shuffle(st.shot_order)
        self._start_interval()

    # ------------------------------------------------------- pattern end/rest
    def _end_pattern(self) -> None:
        st = self.state
        pattern = st.pattern
        self.logger.info(
            f"[scheduler] Pattern '{pattern.name}' done: {st.pattern_shots} shots, {st.pattern_elapsed:.1f}s"
        )
        self.events.emit(WorkoutEvent(WorkoutEventType.PATTERN_END, data={
            "index": st.pattern_index, "name": pattern.name,
            "shots": st.pattern_shots, "elapsed": st.pattern_elapsed,
        }))
        # Rest starts now so a pause during the gap or the outro resumes as rest
        self._enter(Phase.REST)
        st.interval = None
        st.rest_total = pattern.post_rest
        st.rest_remaining = pattern.post_rest
        self.narrator.cancel()
        self._after(self.timing.pattern_end_gap_s, self._after_pattern_gap)

    def _after_pattern_gap(self) -> None:
        pattern = self.state.pattern
        if pattern.announce_shots and pattern.outro_message.strip():
            self._display("Outro")
            self._progress(1.0)
            self._speak_then(pattern.outro_message, self.state.voice, self._after_outro)
        else:
            self._after_outro()

    def _after_outro(self) -> None:
        st = self.state
        if global_limit_reached(self.settings, st.global_shots, st.global_elapsed):
            self._complete()
            return
        if st.rest_remaining > 0:
            self._display("Rest")
            self._progress(0.0)
            text = rest_announcement(st.rest_remaining)
            self._speak_then(text, st.voice.with_rate(1.0), lambda: self._enter_rest_countdown(st.rest_remaining))
        else:
            self._advance_pattern()

    def _enter_rest_countdown(self, remaining: int, resumed: bool = False) -> None:
        self._enter(Phase.REST)
        self.state.rest_remaining = remaining
        self._show_rest(cue=not resumed)
        self._every(self.timing.rest_tick_s, self._on_rest_tick)

    def _show_rest(self, cue: bool = True) -> None:
        st = self.state
        r = st.rest_remaining
        self._display(str(r))
        total = max(st.rest_total, r, 1)
        self._progress((total - r) / total)
        if 1 <= r <= self.timing.rest_cue_from:
            if cue:
                self.cues.play_shot_cue()
                self._flash()
            self._speak(str(r), st.voice.with_rate(1.0))

    def _on_rest_tick(self) -> None:
        st = self.state
        st.global_elapsed += self.timing.rest_tick_s
        if global_time_limit_reached(self.settings, st.global_elapsed):
            self.logger.info(f"[scheduler] Global time limit reached during rest ({st.global_elapsed:.2f}s)")
            self._complete()
            return
        st.rest_remaining -= 1
        if st.rest_remaining <= 0:
            st.rest_remaining = 0
            self._display("0")
            self._progress(1.0)
            self._advance_pattern()
            return
        self._show_rest()

    def _advance_pattern(self) -> None:
        self.state.pattern_index += 1
        self._dispatch()

    # ------------------------------------------------------------- completion
    def _complete(self) -> None:
        st = self.state
        if st.phase is Phase.COMPLETED:
            return
        self._enter(Phase.COMPLETED)
        self._halt_side_effects()
        st.interval = None
        st.paused = None
        self.logger.info(
            f"[scheduler] Workout complete: {st.global_shots} shots, {st.global_elapsed:.1f}s, "
            f"{st.pass_number} pass(es)"
        )
        self.events.emit(WorkoutEvent(WorkoutEventType.WORKOUT_COMPLETE, data={
            "shots": st.global_shots,
            "elapsed": st.global_elapsed,
            "passes": st.pass_number,
        }))
        self._speak_then("Workout complete", DEFAULT_VOICE, self._show_done)

    def _show_done(self) -> None:
        self._display("Done")
        self._progress(1.0)
        if self.on_complete is not None:
            self.on_complete()

    def _halt_side_effects(self) -> None:
        self._cancel_timers()
        self._stop_clock()
        self.narrator.stop_keep_alive()
        self.narrator.cancel()

    # ----------------------------------------------------------- workout clock
    def _start_clock(self) -> None:
        self._stop_clock()
        self._clock_timer = self.timebase.every(self.timing.clock_s, self._on_clock_tick)

    def _stop_clock(self) -> None:
        if self._clock_timer is not None:
            self.timebase.cancel(self._clock_timer)
            self._clock_timer = None

    def _on_clock_tick(self) -> None:
        st = self.state
        if st.phase in (Phase.PAUSED, Phase.IDLE, Phase.COMPLETED):
            return
        st.clock_seconds += 1
        self.events.emit(WorkoutEvent(WorkoutEventType.ELAPSED, data={
            "seconds": st.clock_seconds,
            "text": format_time(st.clock_seconds),
        }))

    # --------------------------------------------------------------- plumbing
    def _enter(self, phase: Phase) -> None:
        """Cancel every tracked timer, invalidate old callbacks and switch phase."""
        self._cancel_timers()
        self._generation += 1
        previous = self.state.phase
        self.state.phase = phase
        if previous is not phase:
            self.logger.debug(f"[scheduler] Phase {previous.value} -> {phase.value} (gen {self._generation})")
            self.events.emit(WorkoutEvent(WorkoutEventType.PHASE_CHANGE, data={
                "phase": phase.value, "previous": previous.value,
            }))

    def _cancel_timers(self) -> None:
        self.timebase.cancel_all(self._timers)
        self._timers.clear()

    def _guard(self, fn: Callable[[], None]) -> Callable[[], None]:
        generation = self._generation

        def _run() -> None:
            if generation != self._generation:
                return
            fn()
        return _run

    def _after(self, delay: float, fn: Callable[[], None]) -> TimerHandle:
        handle = self.timebase.after(delay, self._guard(fn))
        self._timers = [h for h in self._timers if h.active]
        self._timers.append(handle)
        return handle

    def _every(self, period: float, fn: Callable[[], None]) -> TimerHandle:
        handle = self.timebase.every(period, self._guard(fn))
        self._timers.append(handle)
        return handle

    def _speak(self, text: str, voice: VoiceProfile) -> Future:
        """Fire-and-forget narration; failures are reported, never raised."""
        future = self.narrator.speak(text, voice)
        future.add_done_callback(lambda f: self._check_narration(text, f))
        return future

    def _speak_then(self, text: str, voice: VoiceProfile, then: Callable[[], None]) -> Future:
        """Narrate, then continue in the same generation (failure counts as finished)."""
        proceed = self._guard(then)

        def _done(future: Future) -> None:
            self._check_narration(text, future)
            proceed()

        future = self.narrator.speak(text, voice)
        future.add_done_callback(_done)
        return future

    def _check_narration(self, text: str, future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is None:
            return
        self.logger.error(f"[scheduler] Narration failed for '{text}': {error}")
        self.events.emit(WorkoutEvent(WorkoutEventType.ERROR, data={
            "source": "narrator", "text": text, "error": str(error),
        }))

    def _display(self, text: str) -> None:
        self.state.display_text = text
        self.events.emit(WorkoutEvent(WorkoutEventType.DISPLAY, data={"text": text}))

    def _progress(self, fraction: float) -> None:
        self.state.progress = fraction
        self.events.emit(WorkoutEvent(WorkoutEventType.PROGRESS, data={"fraction": fraction}))

    def _flash(self) -> None:
        self.events.emit(WorkoutEvent(WorkoutEventType.FLASH, data={"duration": self.timing.flash_s}))
