"""
Timebase - one-shot and recurring callbacks on the single control thread.

Everything the workout engine does happens inside timebase callbacks:
phase ticks, cue timers, narration continuations. A Timebase never runs
two callbacks concurrently; other threads (the speech worker) hand work
back to the control thread through ``post()``.

Implementations:
- ManualTimebase: deterministic virtual clock for tests and simulation
- AsyncioTimebase: real time on an asyncio loop (plain or qasync/Qt)
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional


Callback = Callable[[], None]

_handle_ids = itertools.count(1)


@dataclass(eq=False)
class TimerHandle:
    """Opaque handle returned by ``after()`` / ``every()``.

    Attributes:
        delay: Delay (one-shot) or period (recurring) in seconds
        recurring: True for ``every()`` handles
        cancelled: Set once the handle is cancelled
        expired: Set once a one-shot handle has fired
    """
    delay: float
    recurring: bool = False
    cancelled: bool = False
    expired: bool = False
    handle_id: int = field(default_factory=lambda: next(_handle_ids))
    # Backend-specific payload (asyncio TimerHandle etc.)
    _native: Any = field(default=None, repr=False)

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.expired)


class Timebase(ABC):
    """Monotonic scheduling of callbacks on one control thread."""

    @abstractmethod
    def now(self) -> float:
        """Current monotonic time in seconds."""

    @abstractmethod
    def after(self, delay: float, callback: Callback) -> TimerHandle:
        """Run ``callback`` once, ``delay`` seconds from now."""

    @abstractmethod
    def every(self, period: float, callback: Callback) -> TimerHandle:
        """Run ``callback`` every ``period`` seconds until cancelled."""

    @abstractmethod
    def cancel(self, handle: Optional[TimerHandle]) -> None:
        """Cancel a handle. Unknown, expired or cancelled handles are ignored."""

    @abstractmethod
    def post(self, callback: Callback) -> None:
        """Thread-safe: run ``callback`` on the control thread as soon as possible."""

    def cancel_all(self, handles) -> None:
        for handle in list(handles):
            self.cancel(handle)


# ---------------------------------------------------------------------------
# Virtual clock
# ---------------------------------------------------------------------------

@dataclass(order=True)
class _Entry:
    deadline: float
    seq: int
    handle: TimerHandle = field(compare=False)
    callback: Callback = field(compare=False)
    origin: float = field(default=0.0, compare=False)
    count: int = field(default=0, compare=False)


class ManualTimebase(Timebase):
    """Deterministic virtual clock.

    Time only moves when ``advance()`` / ``advance_to()`` is called. Due
    callbacks run in deadline order (ties in scheduling order) and the
    clock reads exactly each callback's deadline while it runs, so a
    callback scheduled "now" from inside another callback runs within the
    same advance. Callback exceptions propagate to the caller of advance().

    Example:
        clock = ManualTimebase()
        clock.after(1.5, lambda: print("fired"))
        clock.advance(2.0)   # prints "fired"
    """

    def __init__(self, start: float = 0.0):
        self._now = float(start)
        self._queue: list[_Entry] = []
        self._seq = itertools.count()
        self._posted: list[Callback] = []
        self._post_lock = threading.Lock()

    def now(self) -> float:
        return self._now

    def after(self, delay: float, callback: Callback) -> TimerHandle:
        delay = max(0.0, float(delay))
        handle = TimerHandle(delay=delay)
        heapq.heappush(self._queue, _Entry(self._now + delay, next(self._seq), handle, callback))
        return handle

    def every(self, period: float, callback: Callback) -> TimerHandle:
        period = float(period)
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")
        handle = TimerHandle(delay=period, recurring=True)
        heapq.heappush(
            self._queue,
            _Entry(self._now + period, next(self._seq), handle, callback, origin=self._now, count=1),
        )
        return handle

    def cancel(self, handle: Optional[TimerHandle]) -> None:
        if handle is None or not handle.active:
            return
        handle.cancelled = True

    def post(self, callback: Callback) -> None:
        with self._post_lock:
            self._posted.append(callback)

    @property
    def pending_count(self) -> int:
        """Number of live timers plus posted callbacks."""
        with self._post_lock:
            posted = len(self._posted)
        return posted + sum(1 for entry in self._queue if entry.handle.active)

    def run_pending(self) -> None:
        """Run everything due at the current instant (including posted callbacks)."""
        self.advance(0.0)

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError(f"cannot move the clock backwards ({seconds})")
        self.advance_to(self._now + seconds)

    def advance_to(self, target: float) -> None:
        target = float(target)
        if target < self._now:
            raise ValueError(f"cannot move the clock backwards to {target} (now={self._now})")
        while True:
            self._drain_posted()
            if not self._queue or self._queue[0].deadline > target + 1e-9:
                break
            entry = heapq.heappop(self._queue)
            if not entry.handle.active:
                continue
            self._now = max(self._now, entry.deadline)
            if entry.handle.recurring:
                entry.count += 1
                entry.deadline = entry.origin + entry.count * entry.handle.delay
                entry.seq = next(self._seq)
                heapq.heappush(self._queue, entry)
            else:
                entry.handle.expired = True
            entry.callback()
        self._now = target

    def _drain_posted(self) -> None:
        while True:
            with self._post_lock:
                if not self._posted:
                    return
                callback = self._posted.pop(0)
            callback()


# ---------------------------------------------------------------------------
# Real time (asyncio / qasync)
# ---------------------------------------------------------------------------

class AsyncioTimebase(Timebase):
    """Timebase backed by an asyncio event loop.

    Works with a plain loop (headless CLI) and with a qasync QEventLoop
    (desktop window), so Qt widgets and the scheduler share one thread.
    Recurring timers are re-armed with ``call_at(origin + n*period)``.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        # Without an explicit loop we must be constructed inside a running one
        self.loop = loop if loop is not None else asyncio.get_running_loop()
        self.logger = logging.getLogger(__name__)

    def now(self) -> float:
        return self.loop.time()

    def after(self, delay: float, callback: Callback) -> TimerHandle:
        delay = max(0.0, float(delay))
        handle = TimerHandle(delay=delay)

        def _fire() -> None:
            if not handle.active:
                return
            handle.expired = True
            callback()

        handle._native = self.loop.call_later(delay, _fire)
        return handle

    def every(self, period: float, callback: Callback) -> TimerHandle:
        period = float(period)
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")
        handle = TimerHandle(delay=period, recurring=True)
        origin = self.loop.time()
        state = {"count": 1}

        def _fire() -> None:
            if not handle.active:
                return
            state["count"] += 1
            handle._native = self.loop.call_at(origin + state["count"] * period, _fire)
            callback()

        handle._native = self.loop.call_at(origin + period, _fire)
        return handle

    def cancel(self, handle: Optional[TimerHandle]) -> None:
        if handle is None or not handle.active:
            return
        handle.cancelled = True
        native = handle._native
        if native is not None:
            native.cancel()
            handle._native = None

    def post(self, callback: Callback) -> None:
        try:
            self.loop.call_soon_threadsafe(callback)
        except RuntimeError as exc:
            # Loop already closed (shutdown race with the speech worker)
            self.logger.debug("[timebase] post dropped: %s", exc)
