"""Notification decoder - turns push payloads into pending actions.

Push payloads are untrusted input. A malformed payload is reported in the
result and never reaches the repository.
"""

import logging
from typing import Any

from pydantic import BaseModel

from approval_gateway.manager.expiry import Clock, now_ms
from approval_gateway.manager.repository import ApprovalRepository
from approval_gateway.models.action import ApprovalAction
from approval_gateway.models.validation import ValidationIssue
from approval_gateway.validator import validate_notification

logger = logging.getLogger(__name__)


class DecodeResult(BaseModel):
    """Outcome of decoding one push payload."""

    success: bool
    action: ApprovalAction | None = None
    inserted: bool = False  # False for replays of already decided actions
    error: ValidationIssue | None = None


class NotificationDecoder:
    """Validates push payloads and upserts them into the repository."""

    def __init__(self, repository: ApprovalRepository, clock: Clock = now_ms) -> None:
        self._repository = repository
        self._clock = clock

    async def decode(self, raw_payload: Any) -> DecodeResult:
        """Decode a push payload and insert it as a pending action.

        Args:
            raw_payload: The notification's data dictionary

        Returns:
            DecodeResult; ``success`` is False when the payload was invalid
        """
        result = validate_notification(raw_payload, now_ms=self._clock())
        if not result.success:
            logger.warning(f"Invalid notification payload: {result.error.describe()}")
            return DecodeResult(success=False, error=result.error)

        inserted = await self._repository.insert_or_replace_pending(result.action)
        if inserted:
            logger.info(
                f"Notification queued action {result.action.id} "
                f"({result.action.action_kind.value} {result.action.amount} {result.action.coin})"
            )
        return DecodeResult(success=True, action=result.action, inserted=inserted)
