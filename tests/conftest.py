"""Global test configuration for the approval gateway."""

import os
from unittest.mock import AsyncMock, MagicMock

import pytest

from approval_gateway.manager.repository import ApprovalRepository
from approval_gateway.models.action import ActionKind, ApprovalAction, ApprovalStatus
from approval_gateway.models.wire import DecisionResponse

NOW = 1_700_000_000_000  # Fixed epoch-ms clock for deterministic tests
BACKEND = "https://x"


def clock() -> int:
    return NOW


def make_action(
    action_id: str = "a1",
    coin: str = "ETH",
    kind: ActionKind = ActionKind.SWAP,
    amount: str = "1.5",
    expiry: int = NOW + 300_000,
    status: ApprovalStatus = ApprovalStatus.PENDING,
    created_at: int = NOW,
) -> ApprovalAction:
    return ApprovalAction(
        id=action_id,
        coin=coin,
        action_kind=kind,
        amount=amount,
        expiry=expiry,
        approve_endpoint=f"{BACKEND}/approve",
        reject_endpoint=f"{BACKEND}/reject",
        status=status,
        created_at=created_at,
    )


def backend_item(action_id: str = "a1", **overrides) -> dict:
    """Build a raw element as returned by GET /pushcut/status."""
    item = {
        "actionId": action_id,
        "coin": "ETH",
        "action": "swap",
        "amount": "1.5",
        "expiry": NOW + 300_000,
        "approveUrl": f"{BACKEND}/approve",
        "rejectUrl": f"{BACKEND}/reject",
    }
    item.update(overrides)
    return item


def push_payload(action_id: str = "p1", **overrides) -> dict:
    """Build a raw push-notification data payload."""
    payload = {
        "actionId": action_id,
        "coin": "BTC",
        "action": "transfer",
        "amount": "0.25",
        "expiry": NOW + 60_000,
        "approveUrl": "https://agent.example/approve/p1",
        "rejectUrl": "https://agent.example/reject/p1",
    }
    payload.update(overrides)
    return payload


@pytest.fixture(autouse=True, scope="session")
def _isolate_settings(tmp_path_factory):
    """Point settings at a throwaway state directory.

    Only sets values that aren't already present, so real env vars take
    precedence.
    """
    key = "STATE_DIR"
    original = os.environ.get(key)
    if original is None:
        os.environ[key] = str(tmp_path_factory.mktemp("state"))

    from approval_gateway.config import get_settings
    get_settings.cache_clear()

    yield

    if original is None:
        os.environ.pop(key, None)
    get_settings.cache_clear()


@pytest.fixture
def repository() -> ApprovalRepository:
    return ApprovalRepository()


@pytest.fixture
def mock_backend():
    """A mock ApprovalsBackend."""
    backend = MagicMock()
    backend.base_url = BACKEND
    backend.fetch_pending = AsyncMock(return_value=[])
    backend.submit_decision = AsyncMock(return_value=DecisionResponse(success=True))
    backend.register_device = AsyncMock(return_value=None)
    return backend


@pytest.fixture
def mock_identity():
    """A mock DeviceIdentityProvider with token ``dev-1``."""
    identity = MagicMock()
    identity.get_or_create_token = AsyncMock(return_value="dev-1")
    return identity
