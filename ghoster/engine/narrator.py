"""
Narrator - text-to-speech playback with interruption and keep-alive.

``speak()`` returns a ``concurrent.futures.Future`` that resolves when the
utterance ends. Futures are always resolved on the control thread: speech
backends that run elsewhere marshal completion through ``Timebase.post``.

Semantics:
- A new ``speak()`` interrupts whatever is playing (audible or keep-alive)
- Interruption counts as success (the interrupted future resolves to None)
- Any other engine failure resolves the future with NarrationError
- Keep-alive plays silent utterances back-to-back while enabled so the
  speech engine never goes cold between audible cues

Backends:
- Pyttsx3Narrator: offline speech through pyttsx3 on a worker thread
- VirtualNarrator: silent, timebase-driven stand-in (tests / simulation)
"""

from __future__ import annotations

import itertools
import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

import pyttsx3

from .timebase import Timebase, TimerHandle


class NarrationError(RuntimeError):
    """Speech engine failure other than an interruption."""


@dataclass(frozen=True)
class VoiceProfile:
    """Voice selection for one utterance.

    Attributes:
        voice_id: Engine voice id or name, "default" for the system voice
        rate: Speech rate multiplier (1.0 = engine default)
        volume: Output volume 0.0-1.0
    """
    voice_id: str = "default"
    rate: float = 1.0
    volume: float = 1.0

    @property
    def is_default_voice(self) -> bool:
        return not self.voice_id or self.voice_id == "default"

    def with_rate(self, rate: float) -> VoiceProfile:
        return replace(self, rate=rate)


DEFAULT_VOICE = VoiceProfile()
SILENT_VOICE = VoiceProfile(volume=0.0)

_utterance_ids = itertools.count(1)


@dataclass(eq=False)
class Utterance:
    text: str
    voice: VoiceProfile
    silent: bool = False
    interrupted: bool = False
    future: Future = field(default_factory=Future, repr=False)
    utterance_id: int = field(default_factory=lambda: next(_utterance_ids))


class Narrator(ABC):
    """Base class holding the interruption and keep-alive rules.

    Backends implement ``_begin`` (start playback, later call ``_finish`` on
    the control thread) and ``_halt`` (stop playback of an utterance that
    was interrupted).
    """

    KEEP_ALIVE_GAP_S = 0.05    # pause between silent utterances
    KEEP_ALIVE_RETRY_S = 0.1   # retry delay while the engine is busy

    def __init__(self, timebase: Timebase):
        self.timebase = timebase
        self.logger = logging.getLogger(__name__)
        self._current: Optional[Utterance] = None
        self._keep_alive_enabled = False
        self._keep_alive_timer: Optional[TimerHandle] = None

    # ------------------------------------------------------------------ state
    @property
    def speaking(self) -> bool:
        """True while an audible utterance is playing."""
        return self._current is not None and not self._current.silent

    @property
    def keep_alive_active(self) -> bool:
        return self._keep_alive_enabled

    # ------------------------------------------------------------------ speech
    def speak(self, text: str, voice: Optional[VoiceProfile] = None) -> Future:
        """Speak ``text``; the returned future resolves when playback ends."""
        self._cancel_keep_alive_timer()
        self._interrupt_current()

        if not text or not text.strip():
            done: Future = Future()
            done.set_result(None)
            self._schedule_keep_alive(self.KEEP_ALIVE_GAP_S)
            return done

        utterance = Utterance(text.strip(), voice or DEFAULT_VOICE)
        self._current = utterance
        self.logger.debug("[narrator] speak #%d %r", utterance.utterance_id, utterance.text)
        try:
            self._begin(utterance)
        except Exception as exc:
            self._current = None
            self.logger.error("[narrator] could not start %r: %s", utterance.text, exc)
            utterance.future.set_exception(NarrationError(str(exc)))
            self._schedule_keep_alive(self.KEEP_ALIVE_GAP_S)
        return utterance.future

    def cancel(self) -> None:
        """Interrupt the current utterance; its future resolves successfully.

        While keep-alive is enabled the silent chain picks up again after the gap.
        """
        self._interrupt_current()
        self._schedule_keep_alive(self.KEEP_ALIVE_GAP_S)

    def _interrupt_current(self) -> None:
        utterance = self._current
        if utterance is None:
            return
        self._current = None
        utterance.interrupted = True
        try:
            self._halt(utterance)
        except Exception as exc:
            self.logger.warning("[narrator] halt failed: %s", exc)
        if not utterance.future.done():
            utterance.future.set_result(None)
        if not utterance.silent:
            self.logger.debug("[narrator] interrupted #%d", utterance.utterance_id)

    def _finish(self, utterance: Utterance, error: Optional[BaseException] = None) -> None:
        """Playback of ``utterance`` ended. Must run on the control thread."""
        if utterance is self._current:
            self._current = None
        if utterance.interrupted:
            # Resolved when it was interrupted; whoever interrupted owns what follows
            return

        if utterance.silent:
            if error is not None:
                self.logger.warning("[narrator] keep-alive utterance failed: %s", error)
            if not utterance.future.done():
                utterance.future.set_result(None)
        elif not utterance.future.done():
            if error is not None:
                self.logger.error("[narrator] speech failed for %r: %s", utterance.text, error)
                if not isinstance(error, NarrationError):
                    error = NarrationError(str(error))
                utterance.future.set_exception(error)
            else:
                utterance.future.set_result(None)

        self._schedule_keep_alive(self.KEEP_ALIVE_GAP_S)

    # -------------------------------------------------------------- keep-alive
    def start_keep_alive(self) -> None:
        """Enable the silent-utterance chain (no-op if already running)."""
        if self._keep_alive_enabled and (self._current is not None or self._keep_alive_timer is not None):
            return
        self._keep_alive_enabled = True
        self.logger.debug("[narrator] keep-alive started")
        self._cancel_keep_alive_timer()
        if self._current is None:
            self._speak_silent()

    def stop_keep_alive(self) -> None:
        """Disable the chain and stop any silent utterance in flight."""
        was_enabled = self._keep_alive_enabled
        self._keep_alive_enabled = False
        self._cancel_keep_alive_timer()
        if self._current is not None and self._current.silent:
            self._interrupt_current()
        if was_enabled:
            self.logger.debug("[narrator] keep-alive stopped")

    def _schedule_keep_alive(self, delay: float) -> None:
        if not self._keep_alive_enabled:
            return
        self._cancel_keep_alive_timer()
        self._keep_alive_timer = self.timebase.after(delay, self._speak_silent)

    def _cancel_keep_alive_timer(self) -> None:
        if self._keep_alive_timer is not None:
            self.timebase.cancel(self._keep_alive_timer)
            self._keep_alive_timer = None

    def _speak_silent(self) -> None:
        self._keep_alive_timer = None
        if not self._keep_alive_enabled:
            return
        if self._current is not None:
            self._keep_alive_timer = self.timebase.after(self.KEEP_ALIVE_RETRY_S, self._speak_silent)
            return
        utterance = Utterance(" ", SILENT_VOICE, silent=True)
        self._current = utterance
        try:
            self._begin(utterance)
        except Exception as exc:
            self._current = None
            self.logger.warning("[narrator] keep-alive utterance could not start: %s", exc)
            self._schedule_keep_alive(self.KEEP_ALIVE_RETRY_S)

    # ---------------------------------------------------------------- lifecycle
    def close(self) -> None:
        self.stop_keep_alive()
        self._interrupt_current()

    def list_voices(self) -> list[dict]:
        return []

    # ----------------------------------------------------------------- backend
    @abstractmethod
    def _begin(self, utterance: Utterance) -> None:
        """Start playback; call ``_finish`` on the control thread when it ends."""

    @abstractmethod
    def _halt(self, utterance: Utterance) -> None:
        """Stop playback of an interrupted utterance."""


class Pyttsx3Narrator(Narrator):
    """Offline text-to-speech through pyttsx3.

    The engine is created lazily and driven from a single worker thread
    (pyttsx3 engines are not thread-safe and ``runAndWait`` blocks).
    Completion is posted back to the control thread. Interrupting only
    marks the utterance; the worker stops the engine from its own
    ``started-word`` callback, so speech ends at the next word boundary.
    """

    def __init__(
        self,
        timebase: Timebase,
        *,
        base_rate_wpm: Optional[int] = None,
        driver_name: Optional[str] = None,
    ):
        super().__init__(timebase)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="narrator")
        self._engine = None
        self._engine_lock = threading.Lock()
        self._default_voice_id: Optional[str] = None
        self._base_rate_wpm = base_rate_wpm
        self._driver_name = driver_name
        self._closed = False
        self._active: Optional[Utterance] = None

    def _ensure_engine(self):
        with self._engine_lock:
            if self._engine is None:
                engine = pyttsx3.init(self._driver_name)
                if self._base_rate_wpm is None:
                    self._base_rate_wpm = int(engine.getProperty("rate") or 200)
                self._default_voice_id = engine.getProperty("voice")
                engine.connect("started-word", self._on_word)
                self._engine = engine
                self.logger.info("[narrator] pyttsx3 engine ready (rate=%s wpm)", self._base_rate_wpm)
            return self._engine

    def _resolve_voice_id(self, engine, wanted: str) -> Optional[str]:
        wanted_norm = wanted.strip().lower()
        for voice in engine.getProperty("voices") or []:
            vid = str(getattr(voice, "id", "") or "")
            name = str(getattr(voice, "name", "") or "")
            if wanted_norm in (vid.lower(), name.lower()):
                return vid
        return None

    def _apply_voice(self, engine, profile: VoiceProfile) -> None:
        voice_id = self._default_voice_id
        if not profile.is_default_voice:
            resolved = self._resolve_voice_id(engine, profile.voice_id)
            if resolved is None:
                self.logger.warning("[narrator] voice %r not found; using default", profile.voice_id)
            else:
                voice_id = resolved
        if voice_id:
            engine.setProperty("voice", voice_id)
        engine.setProperty("rate", int(round((self._base_rate_wpm or 200) * max(0.1, profile.rate))))
        engine.setProperty("volume", max(0.0, min(1.0, profile.volume)))

    def _run(self, utterance: Utterance) -> None:
        error: Optional[BaseException] = None
        if not utterance.interrupted:
            try:
                engine = self._ensure_engine()
                self._apply_voice(engine, utterance.voice)
                self._active = utterance
                engine.say(utterance.text)
                engine.runAndWait()
            except Exception as exc:
                error = NarrationError(f"{type(exc).__name__}: {exc}")
            finally:
                self._active = None
        self.timebase.post(lambda: self._finish(utterance, error))

    def _begin(self, utterance: Utterance) -> None:
        if self._closed:
            raise NarrationError("narrator is closed")
        self._executor.submit(self._run, utterance)

    def _on_word(self, name, location, length) -> None:
        # Runs inside runAndWait on the worker thread
        utterance = self._active
        if utterance is not None and utterance.interrupted and self._engine is not None:
            self._engine.stop()

    def _halt(self, utterance: Utterance) -> None:
        # utterance.interrupted is already set; _on_word stops the engine
        self.logger.debug("[narrator] stop requested for #%d", utterance.utterance_id)

    def list_voices(self) -> list[dict]:
        engine = self._ensure_engine()
        voices = []
        for voice in engine.getProperty("voices") or []:
            voices.append({
                "id": str(getattr(voice, "id", "")),
                "name": str(getattr(voice, "name", "")),
                "languages": [str(lang) for lang in (getattr(voice, "languages", None) or [])],
            })
        return voices

    def close(self) -> None:
        super().close()
        self._closed = True
        self._executor.shutdown(wait=False, cancel_futures=True)


@dataclass
class SpokenRecord:
    time: float
    text: str
    voice: VoiceProfile


class VirtualNarrator(Narrator):
    """Silent narrator whose utterances take timebase time.

    Each audible utterance lasts ``max(min_duration, words * seconds_per_word / rate)``.
    Texts listed in ``fail_texts`` finish with a NarrationError instead.
    """

    SILENT_DURATION_S = 0.1

    def __init__(
        self,
        timebase: Timebase,
        *,
        seconds_per_word: float = 0.4,
        min_duration: float = 0.3,
        fail_texts: Iterable[str] = (),
    ):
        super().__init__(timebase)
        self.seconds_per_word = seconds_per_word
        self.min_duration = min_duration
        self.fail_texts = set(fail_texts)
        self.spoken: list[SpokenRecord] = []
        self.silent_count = 0
        self._timers: dict[int, TimerHandle] = {}

    def duration_for(self, utterance: Utterance) -> float:
        if utterance.silent:
            return self.SILENT_DURATION_S
        words = max(1, len(utterance.text.split()))
        rate = max(0.1, utterance.voice.rate)
        return max(self.min_duration, words * self.seconds_per_word / rate)

    def _begin(self, utterance: Utterance) -> None:
        if utterance.silent:
            self.silent_count += 1
        else:
            self.spoken.append(SpokenRecord(self.timebase.now(), utterance.text, utterance.voice))

        def _done() -> None:
            self._timers.pop(utterance.utterance_id, None)
            error = None
            if utterance.text in self.fail_texts:
                error = NarrationError(f"synthesis-failed: {utterance.text!r}")
            self._finish(utterance, error)

        self._timers[utterance.utterance_id] = self.timebase.after(self.duration_for(utterance), _done)

    def _halt(self, utterance: Utterance) -> None:
        self.timebase.cancel(self._timers.pop(utterance.utterance_id, None))

    @property
    def texts(self) -> list[str]:
        return [record.text for record in self.spoken]
