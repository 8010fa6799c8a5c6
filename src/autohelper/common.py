"""Shared text and runtime helpers."""

from __future__ import annotations

import importlib.util
from typing import Iterable

MATCH_MODES = ("contains", "prefix", "exact")


def collapse_ws(value: object) -> str:
    return " ".join(str(value or "").split())


def text_matches(text: str, phrases: Iterable[str], *, match: str = "contains", ignore_case: bool = False) -> bool:
    if match not in MATCH_MODES:
        raise ValueError(f"Unsupported match mode: {match}")
    hay = collapse_ws(text)
    if ignore_case:
        hay = hay.lower()
    for phrase in phrases:
        needle = collapse_ws(phrase)
        if ignore_case:
            needle = needle.lower()
        if not needle:
            continue
        if match == "contains" and needle in hay:
            return True
        if match == "prefix" and hay.startswith(needle):
            return True
        if match == "exact" and hay == needle:
            return True
    return False


def format_seconds(ms: int) -> str:
    seconds = max(0, int(ms)) / 1000.0
    if seconds.is_integer():
        return f"{int(seconds)}s"
    return f"{seconds:.1f}s"


def playwright_available() -> bool:
    return importlib.util.find_spec("playwright") is not None


def safe_page_title(page: object) -> str:
    title_attr = getattr(page, "title", None)
    if not callable(title_attr):
        return ""
    try:
        value = title_attr()
    except Exception:
        return ""
    return str(value or "")


def safe_page_url(page: object) -> str:
    try:
        return str(getattr(page, "url", "") or "")
    except Exception:
        return ""
