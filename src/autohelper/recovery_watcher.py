"""Connection recovery: retry button, retry icon fallback and single "resume" button.

The three strategies share one back-off tracker and its eligibility clock.
The retry button and icon fallback also share a busy lock; the single
"resume" button keeps its own lock and runs on its own tick.
"""

from __future__ import annotations

from autohelper.backoff import BackoffState
from autohelper.common import format_seconds
from autohelper.constants import (
    COMPOSER_INPUT_SELECTOR,
    CONNECTION_FAILED_PHRASE,
    RESUME_BUTTON_SELECTOR,
    RESUME_BUTTON_TEXT,
    RETRY_ICON_SELECTOR,
    TRY_AGAIN_SELECTOR,
    TRY_AGAIN_TEXT,
)
from autohelper.context import BusyLock, HelperContext
from autohelper.dom import PageNode, first_visible, last_visible
from autohelper.preview_click import ClickHandle, preview_and_click


class ConnectionRecoveryWatcher:
    def __init__(self, ctx: HelperContext) -> None:
        self.ctx = ctx
        self.backoff = BackoffState(
            floor_ms=ctx.config.backoff_floor_ms,
            ceiling_ms=ctx.config.backoff_ceiling_ms,
        )
        self.retry_lock = BusyLock("retry")
        self.resume_lock = BusyLock("resume-connection")
        self.clicks = 0
        self.pending_clicks: dict[str, ClickHandle] = {}

    def reset(self) -> None:
        self.retry_lock.reset()
        self.resume_lock.reset()
        for handle in self.pending_clicks.values():
            handle.cancel()
        self.pending_clicks.clear()
        self.backoff.reset()

    def tick(self) -> None:
        scope = self.ctx.scope.current()
        if scope is None:
            return
        failures = scope.query_text("*", (CONNECTION_FAILED_PHRASE,), match="prefix")
        if not failures and self._find_resume_button(scope) is None:
            self.backoff.reset()
            return
        if not failures:
            return
        if self.retry_lock.busy or not self.backoff.eligible(self.ctx.now()):
            return
        button = self._find_try_again(failures)
        if button is not None:
            self._trigger(button, self.retry_lock, '🔄 "Try again" clicked')
            return
        icon = self._find_retry_icon(scope)
        if icon is not None:
            self._trigger(icon, self.retry_lock, "🔄 Retry icon clicked")
            return
        self.ctx.sink.debug("Connection failure shown but no retry control found")

    def tick_resume_button(self) -> None:
        if self.resume_lock.busy or not self.backoff.eligible(self.ctx.now()):
            return
        scope = self.ctx.scope.current()
        if scope is None:
            return
        button = self._find_resume_button(scope)
        if button is None:
            return
        self._trigger(button, self.resume_lock, '▶️ "Resume" clicked')

    def _find_try_again(self, failures: list[PageNode]) -> PageNode | None:
        for failure in failures:
            block = failure.nearest_block() or failure
            candidates = block.query_text(
                TRY_AGAIN_SELECTOR,
                (TRY_AGAIN_TEXT,),
                match="contains",
                ignore_case=True,
            )
            button = first_visible(candidates)
            if button is not None:
                return button
        return None

    def _find_retry_icon(self, scope: PageNode) -> PageNode | None:
        icons = [
            node
            for node in scope.query_all(RETRY_ICON_SELECTOR)
            if node.closest(COMPOSER_INPUT_SELECTOR) is None
        ]
        return last_visible(icons)

    def _find_resume_button(self, scope: PageNode) -> PageNode | None:
        candidates = scope.query_text(
            RESUME_BUTTON_SELECTOR,
            (RESUME_BUTTON_TEXT,),
            match="exact",
            ignore_case=True,
        )
        return first_visible(candidates)

    def _trigger(self, target: PageNode, lock: BusyLock, message: str) -> None:
        self.ctx.sink.debug(f"Recovery trigger: {message}")
        lock.acquire(self.ctx.loop, self.ctx.config.busy_settle_ms)
        self.pending_clicks[lock.name] = preview_and_click(
            self.ctx.loop,
            target,
            lambda: self._activate(target, message),
            delay_before_ms=self.ctx.config.preview_delay_ms,
            highlight_ms=self.ctx.config.highlight_ms,
        )

    def _activate(self, target: PageNode, message: str) -> None:
        if not target.is_visible():
            self.ctx.sink.debug("recovery target vanished before click")
            return
        target.click()
        next_delay = self.backoff.advance(self.ctx.now())
        self.clicks += 1
        self.ctx.notifier.show(f"{message} (next {format_seconds(next_delay)})")
        self.ctx.on_action("recovery")
