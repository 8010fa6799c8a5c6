"""Highlight a target, click it after a visible delay, then clear the highlight."""

from __future__ import annotations

from typing import Callable

from autohelper.constants import DEFAULT_HIGHLIGHT_MS, DEFAULT_PREVIEW_DELAY_MS, HIGHLIGHT_CSS
from autohelper.dom import PageNode
from autohelper.timers import TimerHandle, TimerLoop


class ClickHandle:
    """Pending preview-click or highlight cue.

    ``highlighted`` tracks whether the outline is still applied, so ``cancel``
    clears it even after the loop has already dropped the timers.
    """

    def __init__(self, target: PageNode | None = None) -> None:
        self.target = target
        self.click_timer: TimerHandle | None = None
        self.clear_timer: TimerHandle | None = None
        self.clicked = False
        self.highlighted = False

    @property
    def inert(self) -> bool:
        return self.click_timer is None and self.clear_timer is None

    def cancel(self) -> None:
        for timer in (self.click_timer, self.clear_timer):
            if timer is not None:
                timer.cancel()
        self.clear_highlight()

    def clear_highlight(self) -> None:
        if not self.highlighted or self.target is None:
            return
        self.highlighted = False
        if self.target.is_attached():
            self.target.set_highlight(False)


def preview_and_click(
    loop: TimerLoop,
    target: PageNode | None,
    action: Callable[[], None],
    *,
    delay_before_ms: int = DEFAULT_PREVIEW_DELAY_MS,
    highlight_ms: int = DEFAULT_HIGHLIGHT_MS,
    css: str = HIGHLIGHT_CSS,
) -> ClickHandle:
    """Returns an inert handle when ``target`` is absent or not visible.

    ``action`` runs exactly once after ``delay_before_ms`` even if the target
    has since gone away; callers re-check inside ``action`` when that matters.
    """
    if target is None or not target.is_visible():
        return ClickHandle()
    handle = ClickHandle(target)
    target.set_highlight(True, css)
    handle.highlighted = True

    def _fire() -> None:
        handle.clicked = True
        action()

    handle.click_timer = loop.call_later(delay_before_ms, _fire, name="preview-click")
    handle.clear_timer = loop.call_later(highlight_ms, handle.clear_highlight, name="preview-clear")
    return handle


def highlight_briefly(loop: TimerLoop, target: PageNode | None, duration_ms: int, *, css: str = HIGHLIGHT_CSS) -> ClickHandle | None:
    if target is None or not target.is_visible():
        return None
    handle = ClickHandle(target)
    target.set_highlight(True, css)
    handle.highlighted = True
    handle.clear_timer = loop.call_later(duration_ms, handle.clear_highlight, name="highlight-clear")
    return handle
