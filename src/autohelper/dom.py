"""Page-tree collaborator interfaces consumed by the watchers."""

from __future__ import annotations

from typing import Callable, Protocol, Sequence


class PageNode(Protocol):
    def text(self) -> str: ...

    def label(self) -> str: ...

    def is_attached(self) -> bool: ...

    def is_visible(self) -> bool: ...

    def query_all(self, selector: str) -> list["PageNode"]: ...

    def query_text(
        self,
        selector: str,
        phrases: Sequence[str],
        *,
        match: str = "contains",
        ignore_case: bool = False,
    ) -> list["PageNode"]: ...

    def closest(self, selector: str) -> "PageNode | None": ...

    def nearest_block(self) -> "PageNode | None": ...

    def click(self) -> None: ...

    def set_highlight(self, on: bool, css: str = "") -> None: ...


class PageHost(Protocol):
    def query_all(self, selector: str) -> list[PageNode]: ...

    def render_toast(self, message: str, severity: str) -> None: ...

    def remove_toast(self) -> None: ...

    def alert(self, message: str) -> None: ...

    def subscribe_input(self, callback: Callable[[bool], None]) -> Callable[[], None]: ...

    def clear_page_intervals(self) -> int: ...

    def wait(self, ms: int) -> None: ...


def first_visible(nodes: Sequence[PageNode]) -> PageNode | None:
    for node in nodes:
        if node.is_visible():
            return node
    return None


def last_visible(nodes: Sequence[PageNode]) -> PageNode | None:
    for node in reversed(list(nodes)):
        if node.is_visible():
            return node
    return None
