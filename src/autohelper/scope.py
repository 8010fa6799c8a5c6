"""Locate and cache the active conversation pane."""

from __future__ import annotations

from typing import Sequence

from autohelper.dom import PageHost, PageNode


class ScopeResolver:
    def __init__(self, host: PageHost, selectors: Sequence[str]) -> None:
        self.host = host
        self.selectors = tuple(selectors)
        self._cached: PageNode | None = None

    def resolve(self) -> PageNode | None:
        self._cached = None
        for selector in self.selectors:
            for node in self.host.query_all(selector):
                if node.is_attached() and node.is_visible():
                    self._cached = node
                    return node
        return None

    def current(self) -> PageNode | None:
        if self._cached is not None and self._cached.is_attached():
            return self._cached
        return self.resolve()

    def reset(self) -> None:
        self._cached = None
