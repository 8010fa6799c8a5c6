"""Single-threaded cooperative timer loop for watcher ticks and deferred steps."""

from __future__ import annotations

import heapq
import itertools
import time
from typing import Callable


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class TimerHandle:
    def __init__(self, loop: "TimerLoop", due_ms: int, callback: Callable[[], None], *, period_ms: int = 0, name: str = "") -> None:
        self._loop = loop
        self.due_ms = due_ms
        self.callback = callback
        self.period_ms = period_ms
        self.name = name or getattr(callback, "__name__", "timer")
        self.cancelled = False

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        self._loop._forget(self)

    @property
    def active(self) -> bool:
        return not self.cancelled


class TimerLoop:
    """Timers ordered by due time, then by scheduling order.

    Callbacks run on the caller's thread from ``run_due``. An exception in one
    callback is handed to ``on_error`` and never stops the remaining timers.
    """

    def __init__(
        self,
        clock: Callable[[], int] | None = None,
        *,
        on_error: Callable[[str, BaseException], None] | None = None,
    ) -> None:
        self.clock = clock or monotonic_ms
        self.on_error = on_error
        self._heap: list[tuple[int, int, TimerHandle]] = []
        self._live: set[TimerHandle] = set()
        self._seq = itertools.count()

    def now_ms(self) -> int:
        return int(self.clock())

    def call_later(self, delay_ms: int, callback: Callable[[], None], *, name: str = "") -> TimerHandle:
        handle = TimerHandle(self, self.now_ms() + max(0, int(delay_ms)), callback, name=name)
        self._push(handle)
        return handle

    def call_every(self, period_ms: int, callback: Callable[[], None], *, name: str = "") -> TimerHandle:
        period = int(period_ms)
        if period <= 0:
            raise ValueError("period_ms must be > 0")
        handle = TimerHandle(self, self.now_ms() + period, callback, period_ms=period, name=name)
        self._push(handle)
        return handle

    def pending(self) -> int:
        return len(self._live)

    def next_due_ms(self) -> int | None:
        while self._heap and self._heap[0][2].cancelled:
            heapq.heappop(self._heap)
        if not self._heap:
            return None
        return self._heap[0][0]

    def run_due(self) -> int:
        now = self.now_ms()
        ran = 0
        while True:
            due = self.next_due_ms()
            if due is None or due > now:
                break
            _, _, handle = heapq.heappop(self._heap)
            if handle.period_ms > 0:
                next_due = handle.due_ms + handle.period_ms
                if next_due <= now:
                    next_due = now + handle.period_ms
                handle.due_ms = next_due
                self._push(handle)
            else:
                self._live.discard(handle)
                handle.cancelled = True
            self._invoke(handle)
            ran += 1
        return ran

    def run_until(self, deadline_ms: int, sleep_fn: Callable[[int], None]) -> None:
        while True:
            self.run_due()
            now = self.now_ms()
            if now >= deadline_ms:
                return
            due = self.next_due_ms()
            target = deadline_ms if due is None else min(due, deadline_ms)
            sleep_fn(max(1, target - now))

    def run_forever(self, sleep_fn: Callable[[int], None], *, max_wait_ms: int = 250) -> None:
        try:
            while True:
                self.run_due()
                due = self.next_due_ms()
                wait = max_wait_ms if due is None else due - self.now_ms()
                sleep_fn(max(1, min(max_wait_ms, wait)))
        except KeyboardInterrupt:
            return

    def clear_all(self) -> int:
        count = len(self._live)
        for handle in list(self._live):
            handle.cancelled = True
        self._live.clear()
        self._heap.clear()
        return count

    def _push(self, handle: TimerHandle) -> None:
        self._live.add(handle)
        heapq.heappush(self._heap, (handle.due_ms, next(self._seq), handle))

    def _forget(self, handle: TimerHandle) -> None:
        self._live.discard(handle)

    def _invoke(self, handle: TimerHandle) -> None:
        try:
            handle.callback()
        except Exception as exc:
            if self.on_error is not None:
                try:
                    self.on_error(handle.name, exc)
                except Exception:
                    pass
