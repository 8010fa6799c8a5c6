"""Click "resume the conversation" when the tool-call ceiling banner shows up."""

from __future__ import annotations

from autohelper.constants import RESUME_BANNER_PHRASES, RESUME_LINK_SELECTOR, RESUME_LINK_TEXT
from autohelper.context import BusyLock, HelperContext
from autohelper.dom import PageNode, first_visible
from autohelper.preview_click import ClickHandle, preview_and_click


class ResumeBannerWatcher:
    def __init__(self, ctx: HelperContext) -> None:
        self.ctx = ctx
        self.lock = BusyLock("resume")
        self.last_click_at: int | None = None
        self.clicks = 0
        self.pending: ClickHandle | None = None

    def reset(self) -> None:
        self.lock.reset()
        if self.pending is not None:
            self.pending.cancel()
            self.pending = None
        self.last_click_at = None

    def tick(self) -> None:
        if self.lock.busy:
            return
        now = self.ctx.now()
        if self.last_click_at is not None and now - self.last_click_at < self.ctx.config.resume_debounce_ms:
            return
        scope = self.ctx.scope.current()
        if scope is None:
            return
        link = self._find_link(scope)
        if link is None:
            return
        self.ctx.sink.debug('Clicking "resume the conversation"')
        self.lock.acquire(self.ctx.loop, self.ctx.config.busy_settle_ms)
        self.pending = preview_and_click(
            self.ctx.loop,
            link,
            lambda: self._activate(link),
            delay_before_ms=self.ctx.config.preview_delay_ms,
            highlight_ms=self.ctx.config.highlight_ms,
        )

    def _find_link(self, scope: PageNode) -> PageNode | None:
        for banner in scope.query_text("*", RESUME_BANNER_PHRASES):
            links = banner.query_text(RESUME_LINK_SELECTOR, (RESUME_LINK_TEXT,), match="exact")
            link = first_visible(links)
            if link is not None:
                return link
        return None

    def _activate(self, link: PageNode) -> None:
        if not link.is_visible():
            self.ctx.sink.debug("resume link vanished before click")
            return
        link.click()
        self.last_click_at = self.ctx.now()
        self.clicks += 1
        self.ctx.notifier.show("🟢 Resumed conversation")
        self.ctx.on_action("resume")
