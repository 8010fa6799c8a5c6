"""Idle escalation: notices, pre-cycle warning, then a cancellable tab cycle."""

from __future__ import annotations

from autohelper.constants import TAB_STRIP_HIGHLIGHT_CSS
from autohelper.context import HelperContext
from autohelper.dom import PageNode
from autohelper.preview_click import ClickHandle, highlight_briefly, preview_and_click
from autohelper.timers import TimerHandle

ACTIVE = "ACTIVE"
IDLE_NOTICED = "IDLE_NOTICED"
PRE_CYCLE_WARNED = "PRE_CYCLE_WARNED"
CYCLING = "CYCLING"


class CycleController:
    """One in-flight tab cycle. ``cancel`` is idempotent and synchronous."""

    def __init__(self) -> None:
        self.active = True
        self.step_timer: TimerHandle | None = None
        self.click: ClickHandle | None = None

    def cancel(self) -> bool:
        if not self.active:
            return False
        self.active = False
        if self.step_timer is not None:
            self.step_timer.cancel()
            self.step_timer = None
        if self.click is not None:
            self.click.cancel()
            self.click = None
        return True


class IdleCycleWatcher:
    def __init__(self, ctx: HelperContext) -> None:
        self.ctx = ctx
        self.last_activity_at = ctx.now()
        self.idle_notice_shown = False
        self.pre_cycle_notice_shown = False
        self.cycle: CycleController | None = None
        self.tabs_clicked = 0
        self._strip_cue: ClickHandle | None = None

    @property
    def cycling_active(self) -> bool:
        return self.cycle is not None and self.cycle.active

    @property
    def state(self) -> str:
        if self.cycling_active:
            return CYCLING
        if self.pre_cycle_notice_shown:
            return PRE_CYCLE_WARNED
        if self.idle_notice_shown:
            return IDLE_NOTICED
        return ACTIVE

    def reset(self) -> None:
        if self.cycle is not None:
            self.cycle.cancel()
        self.cycle = None
        if self._strip_cue is not None:
            self._strip_cue.cancel()
            self._strip_cue = None
        self._back_to_active()

    def on_user_input(self, trusted: bool) -> None:
        """Only trusted device input moves the idle clock; synthetic clicks never do."""
        if not trusted:
            return
        was_cycling = self.cycling_active
        had_notice = self.idle_notice_shown or self.pre_cycle_notice_shown
        if was_cycling:
            self.cycle.cancel()
            self.cycle = None
        self._back_to_active()
        if was_cycling:
            self.ctx.notifier.show("⏹ Tab cycle cancelled (user activity)")
        elif had_notice:
            self.ctx.notifier.show("👋 Activity detected, idle timer reset")

    def tick(self) -> None:
        if self.cycling_active:
            return
        scope = self.ctx.scope.current()
        if scope is None:
            return
        cfg = self.ctx.config
        idle_ms = self.ctx.now() - self.last_activity_at
        if idle_ms >= cfg.idle_timeout_ms:
            self._start_cycle(scope)
            return
        warn_at = cfg.idle_timeout_ms - cfg.idle_pre_warning_ms
        if idle_ms >= warn_at:
            if not self.pre_cycle_notice_shown:
                self.pre_cycle_notice_shown = True
                self.idle_notice_shown = True
                remaining = (cfg.idle_timeout_ms - idle_ms) // 1000
                self.ctx.notifier.show(f"⏳ Idle {idle_ms // 1000}s, cycling tabs in {remaining}s")
                self._strip_cue = highlight_briefly(
                    self.ctx.loop,
                    self._tab_strip(scope),
                    cfg.tab_strip_cue_ms,
                    css=TAB_STRIP_HIGHLIGHT_CSS,
                )
            return
        if idle_ms >= cfg.idle_notice_ms and not self.idle_notice_shown:
            self.idle_notice_shown = True
            self.ctx.notifier.show(f"💤 Idle for {idle_ms // 1000}s")

    def _tab_strip(self, scope: PageNode) -> PageNode | None:
        for node in scope.query_all(self.ctx.config.tab_strip_selector):
            if node.is_visible():
                return node
        return None

    def _start_cycle(self, scope: PageNode) -> None:
        strip = self._tab_strip(scope)
        tabs: list[PageNode] = []
        if strip is not None:
            tabs = [t for t in strip.query_all(self.ctx.config.tab_item_selector) if t.is_visible()]
        if not tabs:
            self.ctx.sink.info("idle cycle aborted: no visible tabs")
            self.ctx.notifier.show("⚠️ No tabs found to cycle")
            self._back_to_active()
            return
        self.cycle = CycleController()
        self.ctx.sink.info(f"idle cycle started over {len(tabs)} tabs")
        self._step(self.cycle, tabs, 0)

    def _step(self, cycle: CycleController, tabs: list[PageNode], index: int) -> None:
        if not cycle.active:
            return
        if index >= len(tabs):
            cycle.active = False
            self.cycle = None
            self._back_to_active()
            self.ctx.notifier.show("✅ Tab cycle complete")
            self.ctx.on_action("cycle")
            return
        tab = tabs[index]
        label = tab.label() or f"tab {index + 1}"
        self.ctx.notifier.show(f"🔁 Tab {index + 1}/{len(tabs)}: {label}")
        cycle.click = preview_and_click(
            self.ctx.loop,
            tab,
            lambda: self._click_tab(cycle, tab),
            delay_before_ms=self.ctx.config.preview_delay_ms,
            highlight_ms=self.ctx.config.highlight_ms,
        )
        cycle.step_timer = self.ctx.loop.call_later(
            self.ctx.config.tab_dwell_ms,
            lambda: self._step(cycle, tabs, index + 1),
            name="cycle-step",
        )

    def _click_tab(self, cycle: CycleController, tab: PageNode) -> None:
        if not cycle.active or not tab.is_attached():
            return
        tab.click()
        self.tabs_clicked += 1

    def _back_to_active(self) -> None:
        self.last_activity_at = self.ctx.now()
        self.idle_notice_shown = False
        self.pre_cycle_notice_shown = False
