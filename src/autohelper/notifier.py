"""Single-flight toast notifier rendered in the host page corner."""

from __future__ import annotations

from autohelper.constants import DEFAULT_TOAST_MS, SEVERITY_ERROR, SEVERITY_NORMAL
from autohelper.diagnostics import DiagnosticSink
from autohelper.dom import PageHost
from autohelper.timers import TimerHandle, TimerLoop


class Notifier:
    """At most one toast is live; showing a new one removes the old one at once."""

    def __init__(
        self,
        host: PageHost,
        loop: TimerLoop,
        sink: DiagnosticSink,
        *,
        default_duration_ms: int = DEFAULT_TOAST_MS,
    ) -> None:
        self.host = host
        self.loop = loop
        self.sink = sink
        self.default_duration_ms = default_duration_ms
        self.current_message: str | None = None
        self._dismiss_timer: TimerHandle | None = None
        self._generation = 0

    def show(self, message: str, duration_ms: int | None = None, severity: str = SEVERITY_NORMAL) -> None:
        sev = SEVERITY_ERROR if severity == SEVERITY_ERROR else SEVERITY_NORMAL
        duration = self.default_duration_ms if duration_ms is None else int(duration_ms)
        self.dismiss()
        self._generation += 1
        generation = self._generation
        try:
            self.host.render_toast(message, sev)
        except Exception as exc:
            self.sink.error(f"toast render failed: {exc}")
            return
        self.current_message = message
        self.sink.info(f"toast: {message}")
        if duration > 0:
            self._dismiss_timer = self.loop.call_later(
                duration,
                lambda: self._expire(generation),
                name="toast-dismiss",
            )

    def dismiss(self) -> None:
        if self._dismiss_timer is not None:
            self._dismiss_timer.cancel()
            self._dismiss_timer = None
        if self.current_message is None:
            return
        self.current_message = None
        try:
            self.host.remove_toast()
        except Exception as exc:
            self.sink.error(f"toast removal failed: {exc}")

    def _expire(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._dismiss_timer = None
        self.dismiss()
