"""Approval state, synchronization and device identity."""

from approval_gateway.manager.device_identity import DeviceIdentityProvider
from approval_gateway.manager.expiry import (
    Countdown,
    DisplayState,
    countdown,
    display_state,
    is_expired,
    now_ms,
    ticks,
)
from approval_gateway.manager.notification_decoder import DecodeResult, NotificationDecoder
from approval_gateway.manager.repository import ApprovalRepository, RepositorySnapshot
from approval_gateway.manager.sync_engine import DecisionResult, PollResult, SyncEngine

__all__ = [
    "ApprovalRepository",
    "Countdown",
    "countdown",
    "DecisionResult",
    "DecodeResult",
    "DeviceIdentityProvider",
    "display_state",
    "DisplayState",
    "is_expired",
    "NotificationDecoder",
    "now_ms",
    "PollResult",
    "RepositorySnapshot",
    "SyncEngine",
    "ticks",
]
