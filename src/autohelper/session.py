"""Helper session lifecycle and the public control surface.

A ``HelperSession`` owns every piece of transient state (timers, busy locks,
back-off, debounce, idle flags, the input subscription). ``AutoHelper`` keeps
at most one session alive; ``install`` replaces any previously installed
helper, which is how re-running the bootstrap behaves.
"""

from __future__ import annotations

from typing import Any, Callable

from autohelper.config import HelperConfig
from autohelper.constants import HELPER_NAME, HELPER_VERSION, SEVERITY_ERROR
from autohelper.context import HelperContext
from autohelper.diagnostics import DiagnosticSink
from autohelper.dom import PageHost
from autohelper.idle_watcher import IdleCycleWatcher
from autohelper.notifier import Notifier
from autohelper.recovery_watcher import ConnectionRecoveryWatcher
from autohelper.resume_watcher import ResumeBannerWatcher
from autohelper.scope import ScopeResolver
from autohelper.storage import SessionPaths, write_status
from autohelper.timers import TimerHandle, TimerLoop


class HelperSession:
    def __init__(
        self,
        host: PageHost,
        loop: TimerLoop,
        notifier: Notifier,
        sink: DiagnosticSink,
        config: HelperConfig,
        *,
        on_action: Callable[[str], None] | None = None,
    ) -> None:
        self.host = host
        self.loop = loop
        self.config = config
        self.ctx = HelperContext(
            loop=loop,
            notifier=notifier,
            sink=sink,
            scope=ScopeResolver(host, config.scope_selectors),
            config=config,
            on_action=on_action or (lambda _kind: None),
        )
        self.resume = ResumeBannerWatcher(self.ctx)
        self.recovery = ConnectionRecoveryWatcher(self.ctx)
        self.idle = IdleCycleWatcher(self.ctx)
        self.timers: list[TimerHandle] = []
        self.active = False
        self._unsubscribe: Callable[[], None] | None = None

    def start(self) -> bool:
        sink = self.ctx.sink
        if self.ctx.scope.resolve() is None:
            sink.error("conversation pane not found; no watchers armed")
            self.ctx.notifier.show(
                f"❌ {HELPER_NAME}: conversation pane not found",
                0,
                SEVERITY_ERROR,
            )
            return False
        self.idle.reset()
        if self.config.idle_enabled:
            try:
                self._unsubscribe = self.host.subscribe_input(self.idle.on_user_input)
            except Exception as exc:
                sink.error(f"input subscription failed: {exc}")
        tasks: list[tuple[int, Callable[[], None], str]] = [
            (self.config.resume_poll_ms, self.resume.tick, "resume-watch"),
            (self.config.retry_poll_ms, self.recovery.tick, "retry-watch"),
            (self.config.resume_button_poll_ms, self.recovery.tick_resume_button, "resume-button-watch"),
        ]
        if self.config.idle_enabled:
            tasks.append((self.config.idle_poll_ms, self.idle.tick, "idle-watch"))
        for period, tick, name in tasks:
            self.timers.append(self.loop.call_every(period, tick, name=name))
        self.active = True
        for _, tick, name in tasks:
            self._run_now(tick, name)
        sink.info(f"session armed with {len(tasks)} watchers")
        return True

    def stop(self) -> None:
        for timer in self.timers:
            timer.cancel()
        self.timers = []
        if self._unsubscribe is not None:
            try:
                self._unsubscribe()
            except Exception as exc:
                self.ctx.sink.error(f"input unsubscribe failed: {exc}")
            self._unsubscribe = None
        self.idle.reset()
        self.resume.reset()
        self.recovery.reset()
        self.ctx.scope.reset()
        self.active = False

    def snapshot(self) -> dict[str, Any]:
        return {
            "active": self.active,
            "idle_state": self.idle.state,
            "resume_clicks": self.resume.clicks,
            "recovery_clicks": self.recovery.clicks,
            "tabs_clicked": self.idle.tabs_clicked,
            "backoff_delay_ms": self.recovery.backoff.current_delay_ms,
            "next_eligible_at": self.recovery.backoff.next_eligible_at,
        }

    def _run_now(self, tick: Callable[[], None], name: str) -> None:
        try:
            tick()
        except Exception as exc:
            self.ctx.sink.error(f"{name} failed: {exc}")


class AutoHelper:
    def __init__(
        self,
        host: PageHost,
        *,
        config: HelperConfig | None = None,
        loop: TimerLoop | None = None,
        sink: DiagnosticSink | None = None,
        paths: SessionPaths | None = None,
    ) -> None:
        self.host = host
        self.config = config or HelperConfig()
        self.sink = sink or DiagnosticSink(verbose=self.config.debug)
        if self.sink.alert is None:
            self.sink.alert = self._alert
        self.loop = loop or TimerLoop(on_error=self._on_timer_error)
        if self.loop.on_error is None:
            self.loop.on_error = self._on_timer_error
        self.paths = paths
        self.notifier = Notifier(host, self.loop, self.sink, default_duration_ms=self.config.toast_ms)
        self.session: HelperSession | None = None

    def start(self, silent: bool = False) -> bool:
        self.stop(silent=True)
        session = HelperSession(
            self.host,
            self.loop,
            self.notifier,
            self.sink,
            self.config,
            on_action=self._on_action,
        )
        self.session = session
        if not session.start():
            self._write_status("failed")
            return False
        self._write_status("running")
        if not silent:
            self.notifier.show(f"🚀 {HELPER_NAME} started")
        return True

    def stop(self, silent: bool = False) -> None:
        session = self.session
        self.session = None
        if session is not None:
            session.stop()
            self._write_status("stopped", session)
        if not silent:
            self.notifier.show(f"🛑 {HELPER_NAME} stopped")

    def show_toast(self, message: str, duration_ms: int | None = None) -> None:
        self.notifier.show(message, duration_ms)

    def set_debug(self, enabled: bool = True) -> None:
        self.sink.verbose = bool(enabled)
        self._alert("Debug alerts " + ("ENABLED" if enabled else "disabled"))

    def clear_all_intervals(self) -> int:
        """Last resort when ``stop`` cannot clean up.

        Cancels every timer of this loop, including the toast timer, and
        clears every ``setInterval`` of the host page, not only ours.
        """
        # Session and toast teardown must run before the loop drops their timers.
        session = self.session
        self.session = None
        if session is not None:
            session.stop()
            self._write_status("stopped", session)
        self.notifier.dismiss()
        cleared = self.loop.clear_all()
        try:
            cleared += int(self.host.clear_page_intervals() or 0)
        except Exception as exc:
            self.sink.error(f"page interval purge failed: {exc}")
        self._alert("💥 All intervals cleared.\nRun the helper again to restart.")
        return cleared

    def status(self) -> dict[str, Any]:
        if self.session is None:
            return {"active": False}
        return self.session.snapshot()

    def _on_action(self, kind: str) -> None:
        self.sink.info(f"action={kind}")
        self._write_status("running")

    def _on_timer_error(self, name: str, exc: BaseException) -> None:
        self.sink.error(f"{name} failed: {exc}")

    def _alert(self, message: str) -> None:
        try:
            self.host.alert(message)
        except Exception as exc:
            self.sink.error(f"alert failed: {exc}")

    def _write_status(self, state: str, session: HelperSession | None = None) -> None:
        if self.paths is None:
            return
        current = session or self.session
        snapshot = current.snapshot() if current is not None else {}
        try:
            write_status(self.paths, state=state, snapshot=snapshot)
        except Exception as exc:
            self.sink.error(f"status write failed: {exc}")


_ACTIVE: AutoHelper | None = None


def install(
    host: PageHost,
    *,
    config: HelperConfig | None = None,
    loop: TimerLoop | None = None,
    sink: DiagnosticSink | None = None,
    paths: SessionPaths | None = None,
    silent: bool = True,
) -> AutoHelper:
    global _ACTIVE
    previous = _ACTIVE
    if previous is not None:
        previous.stop(silent=True)
        previous.notifier.dismiss()
    helper = AutoHelper(host, config=config, loop=loop, sink=sink, paths=paths)
    _ACTIVE = helper
    if helper.start(silent=silent):
        helper.show_toast(f"🔧 {HELPER_NAME} v{HELPER_VERSION} loaded")
    return helper


def active_helper() -> AutoHelper | None:
    return _ACTIVE
