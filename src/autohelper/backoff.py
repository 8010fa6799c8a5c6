"""Exponential back-off shared by the connection recovery strategies."""

from __future__ import annotations

from dataclasses import dataclass

from autohelper.constants import DEFAULT_BACKOFF_CEILING_MS, DEFAULT_BACKOFF_FLOOR_MS


@dataclass
class BackoffState:
    floor_ms: int = DEFAULT_BACKOFF_FLOOR_MS
    ceiling_ms: int = DEFAULT_BACKOFF_CEILING_MS
    current_delay_ms: int = DEFAULT_BACKOFF_FLOOR_MS
    next_eligible_at: int = 0

    def __post_init__(self) -> None:
        self.current_delay_ms = self.floor_ms

    def eligible(self, now_ms: int) -> bool:
        return now_ms >= self.next_eligible_at

    def advance(self, now_ms: int) -> int:
        """Schedule the next attempt with the current delay, then double it.

        Returns the doubled delay, which is what the next round will wait.
        """
        self.next_eligible_at = now_ms + self.current_delay_ms
        self.current_delay_ms = min(self.current_delay_ms * 2, self.ceiling_ms)
        return self.current_delay_ms

    def reset(self) -> None:
        self.current_delay_ms = self.floor_ms
        self.next_eligible_at = 0
