"""Countdown and expiry evaluation.

Expiry is derived, never stored: every consumer recomputes it from the wall
clock on each tick.
"""

import asyncio
import time
from collections.abc import AsyncIterator, Callable
from enum import Enum

from pydantic import BaseModel

from approval_gateway.models.action import ApprovalAction, ApprovalStatus

Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def is_expired(action: ApprovalAction, now: int) -> bool:
    """True once ``now`` is past the action's expiry."""
    return now > action.expiry


class DisplayState(str, Enum):
    """What a list or detail view shows for an action."""

    PENDING = "pending"
    EXPIRED = "expired"
    APPROVED = "approved"
    REJECTED = "rejected"


class Countdown(BaseModel):
    """Time left before an action can no longer be decided."""

    remaining_seconds: int
    minutes: int
    seconds: int
    expired: bool

    @property
    def label(self) -> str:
        """``MM:SS`` rendering of the remaining time."""
        return f"{self.minutes:02d}:{self.seconds:02d}"


def countdown(action: ApprovalAction, now: int) -> Countdown:
    """Evaluate the countdown for ``action`` at instant ``now``."""
    remaining = max(0, (action.expiry - now) // 1000)
    minutes, seconds = divmod(remaining, 60)
    return Countdown(
        remaining_seconds=remaining,
        minutes=minutes,
        seconds=seconds,
        expired=is_expired(action, now),
    )


def display_state(action: ApprovalAction, now: int) -> DisplayState:
    """Decided actions show their outcome; pending ones may show as expired."""
    if action.status is ApprovalStatus.APPROVED:
        return DisplayState.APPROVED
    if action.status is ApprovalStatus.REJECTED:
        return DisplayState.REJECTED
    if is_expired(action, now):
        return DisplayState.EXPIRED
    return DisplayState.PENDING


async def ticks(
    action: ApprovalAction,
    interval: float = 1.0,
    clock: Clock = now_ms,
) -> AsyncIterator[Countdown]:
    """Yield a fresh countdown every ``interval`` seconds.

    The first value is yielded immediately. Iteration ends after the first
    expired value.
    """
    while True:
        current = countdown(action, clock())
        yield current
        if current.expired:
            return
        await asyncio.sleep(interval)
