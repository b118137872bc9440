from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Executor, Future
from typing import Callable, Optional

CycleFn = Callable[[int], None]             # (tick number) -> None
SkipCallback = Callable[[int], None]        # called for each skipped tick
FaultCallback = Callable[[str], None]       # timer loop died unexpectedly


class CadenceScheduler(threading.Thread):
    """
    Fixed-interval tick driver with skip-on-overlap.

    Each tick dispatches one cycle to `executor` unless the previous cycle is
    still in flight, in which case the tick is dropped. Ticks follow wall-clock
    deadlines; cycle duration never delays the timer. Deadlines missed while
    the thread was descheduled are dropped rather than fired in a burst.
    """

    def __init__(
        self,
        interval_s: float,
        cycle: CycleFn,
        executor: Executor,
        *,
        initial_delay_s: float = 0.0,
        on_skip: Optional[SkipCallback] = None,
        on_fault: Optional[FaultCallback] = None,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(name="arstream-cadence", daemon=True)
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self.interval_s = float(interval_s)
        self.initial_delay_s = max(0.0, float(initial_delay_s))
        self._cycle = cycle
        self._executor = executor
        self._on_skip = on_skip
        self._on_fault = on_fault
        self._log = logger or logging.getLogger(__name__)

        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._stopped = False
        self._in_flight = False
        self._ticks = 0

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def stopped(self) -> bool:
        return self._stopped

    def tick(self) -> bool:
        """
        Evaluate one tick. Returns True when a cycle was dispatched.
        """
        with self._lock:
            if self._stopped:
                return False
            self._ticks += 1
            n = self._ticks

            if self._in_flight:
                skipped = True
            else:
                skipped = False
                self._in_flight = True
                try:
                    fut = self._executor.submit(self._cycle, n)
                except RuntimeError:
                    # executor already shut down (teardown race)
                    self._in_flight = False
                    return False
                fut.add_done_callback(self._cycle_done)

        if skipped:
            self._log.debug("TICK_SKIPPED tick=%d", n)
            if self._on_skip is not None:
                try:
                    self._on_skip(n)
                except Exception:
                    self._log.exception("SKIP_CALLBACK_ERROR")
            return False
        return True

    def _cycle_done(self, fut: Future) -> None:
        with self._lock:
            self._in_flight = False
        if fut.cancelled():
            return
        exc = fut.exception()
        if exc is not None:
            self._log.error("CYCLE_UNHANDLED_ERROR err=%r", exc)

    def run(self) -> None:
        try:
            self._loop()
        except Exception as e:
            self._log.exception("CADENCE_LOOP_CRASHED")
            if self._on_fault is not None and not self._stopped:
                self._on_fault(f"scheduler crashed: {e}")

    def _loop(self) -> None:
        next_at = time.monotonic() + self.initial_delay_s
        while not self._stop_event.is_set():
            delay = next_at - time.monotonic()
            if delay > 0 and self._stop_event.wait(delay):
                break

            self.tick()

            next_at += self.interval_s
            now = time.monotonic()
            if next_at <= now:
                missed = int((now - next_at) // self.interval_s) + 1
                next_at += missed * self.interval_s
                self._log.debug("TIMER_DEADLINES_MISSED count=%d", missed)

    def stop(self) -> None:
        """
        Stop ticking. After return no further cycle is dispatched.
        In-flight cycles are not awaited.
        """
        with self._lock:
            self._stopped = True
            self._stop_event.set()
        if self.is_alive() and threading.current_thread() is not self:
            self.join(timeout=1.0)
