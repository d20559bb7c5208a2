"""Bounded exponential backoff for reconnecting the realtime channel."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ReconnectPolicy:
    """Hand out increasing delays until `max_attempts` is used up.

    `next_delay()` returns None once the budget is exhausted; the caller then
    moves to its FAILED state. `reset()` restores the full budget after a
    successful connection.
    """

    max_attempts: int = 5
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 30.0
    attempts: int = field(default=0, init=False)

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts

    def next_delay(self) -> Optional[float]:
        if self.exhausted:
            return None
        delay = min(self.base_delay * (self.multiplier ** self.attempts), self.max_delay)
        self.attempts += 1
        return delay

    def reset(self) -> None:
        self.attempts = 0
