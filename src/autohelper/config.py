"""Runtime configuration for helper sessions (defaults, env overrides, validation)."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path

from autohelper import constants as c


@dataclass(frozen=True)
class HelperConfig:
    resume_poll_ms: int = c.DEFAULT_RESUME_POLL_MS
    retry_poll_ms: int = c.DEFAULT_RETRY_POLL_MS
    resume_button_poll_ms: int = c.DEFAULT_RESUME_BUTTON_POLL_MS
    idle_poll_ms: int = c.DEFAULT_IDLE_POLL_MS
    preview_delay_ms: int = c.DEFAULT_PREVIEW_DELAY_MS
    highlight_ms: int = c.DEFAULT_HIGHLIGHT_MS
    busy_settle_ms: int = c.DEFAULT_BUSY_SETTLE_MS
    resume_debounce_ms: int = c.DEFAULT_RESUME_DEBOUNCE_MS
    backoff_floor_ms: int = c.DEFAULT_BACKOFF_FLOOR_MS
    backoff_ceiling_ms: int = c.DEFAULT_BACKOFF_CEILING_MS
    idle_notice_ms: int = c.DEFAULT_IDLE_NOTICE_MS
    idle_pre_warning_ms: int = c.DEFAULT_IDLE_PRE_WARNING_MS
    idle_timeout_ms: int = c.DEFAULT_IDLE_TIMEOUT_MS
    tab_dwell_ms: int = c.DEFAULT_TAB_DWELL_MS
    tab_strip_cue_ms: int = c.DEFAULT_TAB_STRIP_CUE_MS
    toast_ms: int = c.DEFAULT_TOAST_MS
    idle_enabled: bool = True
    debug: bool = False
    scope_selectors: tuple[str, ...] = c.SCOPE_SELECTORS
    tab_strip_selector: str = c.TAB_STRIP_SELECTOR
    tab_item_selector: str = c.TAB_ITEM_SELECTOR
    runs_dir: Path = Path("runs") / "autohelper"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "HelperConfig":
        env = os.environ if environ is None else environ
        overrides: dict[str, object] = {}
        for item in fields(cls):
            key = f"AUTOHELPER_{item.name.upper()}"
            raw = env.get(key)
            if raw is None or not str(raw).strip():
                continue
            overrides[item.name] = _parse_value(key, str(raw).strip(), item.default)
        config = cls(**overrides)
        config.validate()
        return config

    def validate(self) -> None:
        for name in (
            "resume_poll_ms",
            "retry_poll_ms",
            "resume_button_poll_ms",
            "idle_poll_ms",
            "highlight_ms",
            "busy_settle_ms",
            "backoff_floor_ms",
            "idle_timeout_ms",
            "tab_dwell_ms",
        ):
            if int(getattr(self, name)) <= 0:
                raise ValueError(f"{name} must be > 0")
        if self.preview_delay_ms < 0:
            raise ValueError("preview_delay_ms must be >= 0")
        if self.backoff_floor_ms > self.backoff_ceiling_ms:
            raise ValueError("backoff_floor_ms must be <= backoff_ceiling_ms")
        if not 0 <= self.idle_pre_warning_ms < self.idle_timeout_ms:
            raise ValueError("idle_pre_warning_ms must be >= 0 and < idle_timeout_ms")
        if not self.scope_selectors:
            raise ValueError("scope_selectors must not be empty")


def _parse_value(key: str, raw: str, default: object) -> object:
    if isinstance(default, bool):
        low = raw.lower()
        if low in {"1", "true", "yes", "on"}:
            return True
        if low in {"0", "false", "no", "off"}:
            return False
        raise ValueError(f"{key} must be a boolean, got {raw!r}")
    if isinstance(default, int):
        try:
            return int(raw)
        except ValueError as exc:
            raise ValueError(f"{key} must be an integer, got {raw!r}") from exc
    if isinstance(default, tuple):
        parts = tuple(part.strip() for part in raw.split("||") if part.strip())
        if not parts:
            raise ValueError(f"{key} must list at least one selector")
        return parts
    if isinstance(default, Path):
        return Path(raw)
    return raw
