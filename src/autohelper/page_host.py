"""Sync Playwright implementation of the page-tree collaborator interfaces."""

from __future__ import annotations

import weakref
from typing import Any, Callable, Sequence

from autohelper.common import collapse_ws
from autohelper.constants import (
    ACTIVITY_BINDING,
    ACTIVITY_EVENTS,
    CONTROL_BINDING,
    CONTROL_GLOBAL,
    CONTROL_METHODS,
    HIGHLIGHT_CSS,
    SEVERITY_ERROR,
    TOAST_ELEMENT_ID,
)


class _PageBindings:
    """Binding state shared by every host on one page; a binding name can only be exposed once."""

    def __init__(self) -> None:
        self.input_callbacks: list[Callable[[bool], None]] = []
        self.input_bound = False
        self.control_bound = False
        self.dialogs_handled = False
        self.commands: list[tuple[str, list[Any]]] = []


_PAGE_BINDINGS: "weakref.WeakKeyDictionary[Any, _PageBindings]" = weakref.WeakKeyDictionary()


def _bindings_for(page: Any) -> _PageBindings:
    state = _PAGE_BINDINGS.get(page)
    if state is None:
        state = _PageBindings()
        _PAGE_BINDINGS[page] = state
    return state

_IS_VISIBLE_JS = """
(el) => {
  if (!el || !el.isConnected) return false;
  const rect = el.getBoundingClientRect();
  if (rect.width <= 0 || rect.height <= 0) return false;
  const style = window.getComputedStyle(el);
  if (style.display === 'none' || style.visibility === 'hidden') return false;
  if (Number(style.opacity) === 0) return false;
  return true;
}
"""

_QUERY_TEXT_JS = """
(root, args) => {
  const norm = (s) => String(s || '').replace(/\\s+/g, ' ').trim();
  const fold = (s) => (args.ignoreCase ? s.toLowerCase() : s);
  const needles = (args.phrases || []).map((p) => fold(norm(p))).filter(Boolean);
  const hits = [];
  for (const el of root.querySelectorAll(args.selector)) {
    const hay = fold(norm(el.textContent));
    if (!hay) continue;
    const ok = needles.some((n) => {
      if (args.match === 'prefix') return hay.startsWith(n);
      if (args.match === 'exact') return hay === n;
      return hay.includes(n);
    });
    if (ok) hits.push(el);
  }
  return hits;
}
"""

_NEAREST_BLOCK_JS = """
(el) => {
  const blocks = new Set(['block', 'flex', 'grid', 'list-item', 'table', 'flow-root']);
  let cur = el.parentElement;
  while (cur && cur !== document.body) {
    if (blocks.has(window.getComputedStyle(cur).display)) return cur;
    cur = cur.parentElement;
  }
  return null;
}
"""

_HIGHLIGHT_JS = """
(el, args) => {
  if (args.on) {
    if (el.dataset.autohelperPrevOutline === undefined) {
      el.dataset.autohelperPrevOutline = el.style.outline || '';
      el.dataset.autohelperPrevOffset = el.style.outlineOffset || '';
    }
    el.style.outline = args.css;
    el.style.outlineOffset = '2px';
    return;
  }
  if (el.dataset.autohelperPrevOutline === undefined) return;
  el.style.outline = el.dataset.autohelperPrevOutline;
  el.style.outlineOffset = el.dataset.autohelperPrevOffset || '';
  delete el.dataset.autohelperPrevOutline;
  delete el.dataset.autohelperPrevOffset;
}
"""

_RENDER_TOAST_JS = """
([id, message, severity]) => {
  document.getElementById(id)?.remove();
  const div = document.createElement('div');
  div.id = id;
  div.textContent = message;
  div.style.position = 'fixed';
  div.style.bottom = '12px';
  div.style.right = '12px';
  div.style.zIndex = '2147483647';
  div.style.background = severity === 'error' ? '#b91c1c' : '#333';
  div.style.color = '#fff';
  div.style.padding = '6px 10px';
  div.style.borderRadius = '4px';
  div.style.font = '12px/1.3 monospace';
  div.style.opacity = '.92';
  div.style.pointerEvents = 'none';
  div.style.whiteSpace = 'pre-line';
  (document.body || document.documentElement).appendChild(div);
}
"""

_INSTALL_LISTENERS_JS = """
([binding, events]) => {
  const key = '__autohelperActivityListener';
  if (window[key]) {
    for (const name of window[key].events) {
      window.removeEventListener(name, window[key].fn, true);
    }
  }
  const fn = (e) => {
    try {
      window[binding]?.({ trusted: !!e.isTrusted, type: e.type });
    } catch (_err) {}
  };
  for (const name of events) {
    window.addEventListener(name, fn, { capture: true, passive: true });
  }
  window[key] = { fn, events };
}
"""

_REMOVE_LISTENERS_JS = """
() => {
  const key = '__autohelperActivityListener';
  const current = window[key];
  if (!current) return;
  for (const name of current.events) {
    window.removeEventListener(name, current.fn, true);
  }
  delete window[key];
}
"""

_INSTALL_CONTROLS_JS = """
([binding, name, methods]) => {
  const api = {};
  for (const method of methods) {
    api[method] = (...args) => {
      window[binding]?.({ method, args });
      return 'queued';
    };
  }
  window[name] = api;
}
"""

_ALERT_JS = """
([msg]) => { window.setTimeout(() => window.alert(msg), 0); }
"""

_CLEAR_INTERVALS_JS = """
() => {
  const max = window.setInterval(() => {}, 9999);
  for (let i = max; i >= 0; --i) window.clearInterval(i);
  return max + 1;
}
"""


class PlaywrightNode:
    def __init__(self, handle: Any) -> None:
        self.handle = handle

    def text(self) -> str:
        try:
            return str(self.handle.text_content() or "")
        except Exception:
            return ""

    def label(self) -> str:
        try:
            raw = self.handle.evaluate(
                "(el) => el.getAttribute('aria-label') || el.getAttribute('title') || el.textContent || ''"
            )
        except Exception:
            return ""
        return collapse_ws(raw)

    def is_attached(self) -> bool:
        try:
            return bool(self.handle.evaluate("(el) => el.isConnected"))
        except Exception:
            return False

    def is_visible(self) -> bool:
        try:
            return bool(self.handle.evaluate(_IS_VISIBLE_JS))
        except Exception:
            return False

    def query_all(self, selector: str) -> list["PlaywrightNode"]:
        try:
            return [PlaywrightNode(h) for h in self.handle.query_selector_all(selector)]
        except Exception:
            return []

    def query_text(
        self,
        selector: str,
        phrases: Sequence[str],
        *,
        match: str = "contains",
        ignore_case: bool = False,
    ) -> list["PlaywrightNode"]:
        args = {
            "selector": selector,
            "phrases": list(phrases),
            "match": match,
            "ignoreCase": bool(ignore_case),
        }
        try:
            array = self.handle.evaluate_handle(_QUERY_TEXT_JS, args)
        except Exception:
            return []
        try:
            return _elements_from_array(array)
        finally:
            try:
                array.dispose()
            except Exception:
                pass

    def closest(self, selector: str) -> "PlaywrightNode | None":
        return self._element_or_none("(el, sel) => el.closest(sel)", selector)

    def nearest_block(self) -> "PlaywrightNode | None":
        return self._element_or_none(_NEAREST_BLOCK_JS)

    def click(self) -> None:
        # el.click() dispatches an untrusted event, so it never counts as user activity.
        try:
            self.handle.evaluate("(el) => { if (el.isConnected) el.click(); }")
        except Exception:
            return

    def set_highlight(self, on: bool, css: str = "") -> None:
        try:
            self.handle.evaluate(_HIGHLIGHT_JS, {"on": bool(on), "css": css or HIGHLIGHT_CSS})
        except Exception:
            return

    def _element_or_none(self, script: str, arg: Any = None) -> "PlaywrightNode | None":
        try:
            if arg is None:
                result = self.handle.evaluate_handle(script)
            else:
                result = self.handle.evaluate_handle(script, arg)
        except Exception:
            return None
        element = result.as_element()
        if element is None:
            try:
                result.dispose()
            except Exception:
                pass
            return None
        return PlaywrightNode(element)


def _elements_from_array(array: Any) -> list[PlaywrightNode]:
    props = array.get_properties()
    keyed: list[tuple[int, Any]] = []
    for key, value in props.items():
        if not str(key).isdigit():
            continue
        keyed.append((int(key), value))
    keyed.sort(key=lambda item: item[0])
    nodes: list[PlaywrightNode] = []
    for _, value in keyed:
        element = value.as_element()
        if element is not None:
            nodes.append(PlaywrightNode(element))
    return nodes


class PlaywrightHost:
    def __init__(self, page: Any) -> None:
        self.page = page
        self._bindings = _bindings_for(page)

    def query_all(self, selector: str) -> list[PlaywrightNode]:
        if _page_is_closed(self.page):
            return []
        try:
            return [PlaywrightNode(h) for h in self.page.query_selector_all(selector)]
        except Exception:
            return []

    def render_toast(self, message: str, severity: str) -> None:
        sev = "error" if severity == SEVERITY_ERROR else "normal"
        self.page.evaluate(_RENDER_TOAST_JS, [TOAST_ELEMENT_ID, message, sev])

    def remove_toast(self) -> None:
        if _page_is_closed(self.page):
            return
        self.page.evaluate("([id]) => document.getElementById(id)?.remove()", [TOAST_ELEMENT_ID])

    def alert(self, message: str) -> None:
        """Show a blocking page alert that the operator has to dismiss.

        Playwright auto-dismisses dialogs only while no ``dialog`` listener is
        registered, so a listener that leaves the dialog open is attached first.
        The alert itself is deferred with ``setTimeout`` so ``evaluate`` returns.
        """
        if _page_is_closed(self.page):
            return
        if not self._bindings.dialogs_handled:
            self.page.on("dialog", _leave_dialog_for_operator)
            self._bindings.dialogs_handled = True
        self.page.evaluate(_ALERT_JS, [message])

    def subscribe_input(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        state = self._bindings
        if not state.input_bound:
            self.page.expose_binding(ACTIVITY_BINDING, _make_input_dispatch(state))
            state.input_bound = True
        state.input_callbacks.append(callback)
        self.page.evaluate(_INSTALL_LISTENERS_JS, [ACTIVITY_BINDING, list(ACTIVITY_EVENTS)])

        def _unsubscribe() -> None:
            if callback in state.input_callbacks:
                state.input_callbacks.remove(callback)
            if state.input_callbacks or _page_is_closed(self.page):
                return
            self.page.evaluate(_REMOVE_LISTENERS_JS)

        return _unsubscribe

    def expose_controls(self) -> None:
        """Publish ``window.AutoHelper`` whose methods queue calls for ``take_commands``."""
        state = self._bindings
        if not state.control_bound:
            self.page.expose_binding(CONTROL_BINDING, _make_control_dispatch(state))
            state.control_bound = True
        self.page.evaluate(_INSTALL_CONTROLS_JS, [CONTROL_BINDING, CONTROL_GLOBAL, list(CONTROL_METHODS)])

    def take_commands(self) -> list[tuple[str, list[Any]]]:
        commands = list(self._bindings.commands)
        self._bindings.commands.clear()
        return commands

    def clear_page_intervals(self) -> int:
        if _page_is_closed(self.page):
            return 0
        return int(self.page.evaluate(_CLEAR_INTERVALS_JS) or 0)

    def wait(self, ms: int) -> None:
        self.page.wait_for_timeout(max(1, int(ms)))


def _leave_dialog_for_operator(_dialog: Any) -> None:
    return None


def _make_input_dispatch(state: _PageBindings) -> Callable[..., None]:
    def _dispatch(_source: Any, payload: Any = None) -> None:
        trusted = bool(payload.get("trusted", False)) if isinstance(payload, dict) else False
        for callback in list(state.input_callbacks):
            callback(trusted)

    return _dispatch


def _make_control_dispatch(state: _PageBindings) -> Callable[..., None]:
    def _dispatch(_source: Any, payload: Any = None) -> None:
        if not isinstance(payload, dict):
            return
        method = str(payload.get("method", "") or "")
        args = payload.get("args")
        state.commands.append((method, list(args) if isinstance(args, list) else []))

    return _dispatch


def _page_is_closed(page: Any | None) -> bool:
    if page is None:
        return True
    checker = getattr(page, "is_closed", None)
    if callable(checker):
        try:
            return bool(checker())
        except Exception:
            return True
    return False
