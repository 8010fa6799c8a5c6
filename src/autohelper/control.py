"""Operator commands queued from ``window.AutoHelper`` in the page."""

from __future__ import annotations

from typing import Any

from autohelper.session import AutoHelper


def perform_control_action(helper: AutoHelper, method: str, args: list[Any]) -> None:
    action = str(method or "").strip()
    if action == "start":
        helper.start(silent=_flag(args, 0, False))
        return
    if action == "stop":
        helper.stop(silent=_flag(args, 0, False))
        return
    if action == "showToast":
        message = str(args[0]) if args else ""
        duration = _int_or_none(args[1]) if len(args) > 1 else None
        helper.show_toast(message, duration)
        return
    if action == "setDebug":
        helper.set_debug(_flag(args, 0, True))
        return
    if action == "clearAllIntervals":
        helper.clear_all_intervals()
        return
    raise ValueError(f"Unsupported control action: {action}")


class ControlPump:
    """Sleep function for the timer loop that also applies queued operator commands.

    Binding callbacks only fire while Playwright is pumping events, so commands
    are drained right after each ``wait`` and run on the loop's thread.
    """

    def __init__(self, host: Any, helper: AutoHelper) -> None:
        self.host = host
        self.helper = helper

    def wait(self, ms: int) -> None:
        self.host.wait(ms)
        self.drain()

    def drain(self) -> int:
        ran = 0
        for method, args in self.host.take_commands():
            self.helper.sink.info(f"control: {method}")
            try:
                perform_control_action(self.helper, method, args)
            except Exception as exc:
                self.helper.sink.error(f"control {method} failed: {exc}")
                continue
            ran += 1
        return ran


def _flag(args: list[Any], index: int, default: bool) -> bool:
    if len(args) <= index or args[index] is None:
        return default
    return bool(args[index])


def _int_or_none(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None

