"""Per-session collaborators shared by the watchers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from autohelper.config import HelperConfig
from autohelper.diagnostics import DiagnosticSink
from autohelper.notifier import Notifier
from autohelper.scope import ScopeResolver
from autohelper.timers import TimerHandle, TimerLoop


class BusyLock:
    """Set on trigger, released by a fixed timer whatever happens to the click."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.busy = False
        self._release_timer: TimerHandle | None = None

    def acquire(self, loop: TimerLoop, settle_ms: int) -> None:
        self.busy = True
        if self._release_timer is not None:
            self._release_timer.cancel()
        self._release_timer = loop.call_later(settle_ms, self.release, name=f"{self.name}-settle")

    def release(self) -> None:
        self.busy = False
        self._release_timer = None

    def reset(self) -> None:
        if self._release_timer is not None:
            self._release_timer.cancel()
        self.release()


@dataclass
class HelperContext:
    loop: TimerLoop
    notifier: Notifier
    sink: DiagnosticSink
    scope: ScopeResolver
    config: HelperConfig
    on_action: Callable[[str], None] = field(default=lambda _kind: None)

    def now(self) -> int:
        return self.loop.now_ms()
