# (c) 2026 (KriaetvAspie / AspieTheBard)
# Licensed under the Polyform Noncommercial License 1.0.0
"""
scheduler.py — Interval timer handles the engine arms and disarms.

The engine never sleeps or spawns threads itself; it asks an
IntervalScheduler to call ``callback`` every *interval* seconds until it
disarms it.  Two implementations:

  ThreadingIntervalScheduler  — real wall-clock timer (threading.Timer),
                                used by the CLI in scheduled mode.
  ManualScheduler             — records the armed callback; ``fire()``
                                invokes it.  Used by tests and headless runs.
"""

from __future__ import annotations

import abc
import threading
from typing import Callable, Optional


class IntervalScheduler(abc.ABC):
    """At most one armed callback at a time.  ``arm`` replaces any previous one."""

    @abc.abstractmethod
    def arm(self, interval: float, callback: Callable[[], None]) -> None:
        """Start calling *callback* every *interval* seconds."""

    @abc.abstractmethod
    def disarm(self) -> None:
        """Stop.  Safe to call when nothing is armed."""

    @property
    @abc.abstractmethod
    def armed(self) -> bool:
        """True while a callback is scheduled."""


class ThreadingIntervalScheduler(IntervalScheduler):
    """Re-arms a daemon ``threading.Timer`` after every firing.

    A generation counter guards against a timer that had already fired
    when ``disarm`` ran: its callback sees a stale generation and returns
    without calling through or re-arming.
    """

    def __init__(self) -> None:
        self._lock       = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._interval   = 0.0
        self._callback: Optional[Callable[[], None]] = None

    def arm(self, interval: float, callback: Callable[[], None]) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval!r}")
        with self._lock:
            self._cancel_locked()
            self._interval = float(interval)
            self._callback = callback
            self._start_locked(self._generation)

    def disarm(self) -> None:
        with self._lock:
            self._cancel_locked()
            self._callback = None

    @property
    def armed(self) -> bool:
        with self._lock:
            return self._callback is not None

    # ── internals ─────────────────────────────────────────────────────────

    def _cancel_locked(self) -> None:
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _start_locked(self, generation: int) -> None:
        timer = threading.Timer(self._interval, self._fire, args=(generation,))
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._callback is None:
                return
            callback = self._callback
        callback()
        with self._lock:
            # The callback may have disarmed (run ended) or re-armed.
            if generation == self._generation and self._callback is not None:
                self._start_locked(generation)


class ManualScheduler(IntervalScheduler):
    """Deterministic stand-in: nothing happens until ``fire()`` is called."""

    def __init__(self) -> None:
        self.interval: Optional[float] = None
        self.arm_count    = 0
        self.disarm_count = 0
        self._callback: Optional[Callable[[], None]] = None

    def arm(self, interval: float, callback: Callable[[], None]) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval!r}")
        self.interval  = float(interval)
        self._callback = callback
        self.arm_count += 1

    def disarm(self) -> None:
        self._callback = None
        self.disarm_count += 1

    @property
    def armed(self) -> bool:
        return self._callback is not None

    @property
    def callback(self) -> Optional[Callable[[], None]]:
        """The currently armed callback, or None."""
        return self._callback

    def fire(self, times: int = 1) -> int:
        """Invoke the armed callback up to *times* times.  Returns how many ran."""
        ran = 0
        for _ in range(times):
            if self._callback is None:
                break
            self._callback()
            ran += 1
        return ran
