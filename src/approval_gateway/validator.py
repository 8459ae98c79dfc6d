"""Validation of every payload that can become an ApprovalAction.

Two decode modes exist and the difference is intentional:

- strict (``validate_backend_list``): the backend list endpoint is the source
  of truth, so an unknown action kind is an error and one bad element rejects
  the whole list. Dropping elements silently could hide an action a human
  must see.
- lenient (``validate_notification``): push payloads may come from third
  parties running newer kinds than this client knows; unknown kinds become
  ``other`` instead of losing the notification.

All functions are pure and return result models instead of raising.
"""

from typing import Any

from pydantic import ValidationError as PydanticValidationError

from approval_gateway.models.action import ActionKind, ApprovalAction, ApprovalStatus
from approval_gateway.models.validation import (
    BatchValidationResult,
    ValidationIssue,
    ValidationResult,
)
from approval_gateway.models.wire import BackendApprovalItem, NotificationPayload

APPROVE_PATH = "/approve"
REJECT_PATH = "/reject"


def _issue_from(error: PydanticValidationError, index: int | None = None) -> ValidationIssue:
    """Convert the first pydantic error into a ValidationIssue."""
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or "payload"
    return ValidationIssue(field=field, message=first["msg"], index=index)


def _build(index: int | None = None, **fields: Any) -> ValidationResult:
    try:
        action = ApprovalAction(**fields)
    except PydanticValidationError as e:
        return ValidationResult.fail(_issue_from(e, index))
    return ValidationResult.ok(action)


def validate_action(raw: Any) -> ValidationResult:
    """Validate a canonical record, e.g. one read back from persisted history."""
    try:
        action = ApprovalAction.model_validate(raw)
    except PydanticValidationError as e:
        return ValidationResult.fail(_issue_from(e))
    return ValidationResult.ok(action)


def validate_backend_item(
    raw: Any,
    *,
    backend_url: str,
    now_ms: int,
    index: int | None = None,
) -> ValidationResult:
    """Validate one backend list element in strict mode.

    Args:
        raw: Decoded JSON element
        backend_url: Base URL used for missing approve/reject endpoints
        now_ms: Creation stamp for the resulting record
        index: Position in the enclosing list, reported on failure

    Returns:
        ValidationResult with a pending ApprovalAction on success
    """
    try:
        item = BackendApprovalItem.model_validate(raw)
    except PydanticValidationError as e:
        return ValidationResult.fail(_issue_from(e, index))

    action_id = item.resolved_id
    if action_id is None:
        return ValidationResult.fail(
            ValidationIssue(field="actionId", message="actionId or id is required", index=index)
        )

    base = backend_url.rstrip("/")
    return _build(
        index,
        id=action_id,
        coin=item.coin,
        action_kind=item.action,
        amount=item.amount,
        expiry=item.expiry,
        approve_endpoint=item.approve_url or f"{base}{APPROVE_PATH}",
        reject_endpoint=item.reject_url or f"{base}{REJECT_PATH}",
        status=ApprovalStatus.PENDING,
        created_at=now_ms,
    )


def validate_backend_list(raw: Any, *, backend_url: str, now_ms: int) -> BatchValidationResult:
    """Validate a full ``/pushcut/status`` response in strict mode.

    The first invalid element aborts the batch; no partial list is returned.
    """
    if not isinstance(raw, list):
        return BatchValidationResult(
            success=False,
            error=ValidationIssue(
                field="payload",
                message=f"expected a list, got {type(raw).__name__}",
            ),
        )

    actions: list[ApprovalAction] = []
    for index, element in enumerate(raw):
        result = validate_backend_item(
            element, backend_url=backend_url, now_ms=now_ms, index=index
        )
        if not result.success:
            return BatchValidationResult(success=False, error=result.error)
        actions.append(result.action)

    return BatchValidationResult(success=True, actions=actions)


def validate_notification(raw: Any, *, now_ms: int) -> ValidationResult:
    """Validate a push payload in lenient mode (unknown kinds become ``other``)."""
    try:
        payload = NotificationPayload.model_validate(raw)
    except PydanticValidationError as e:
        return ValidationResult.fail(_issue_from(e))

    return _build(
        id=payload.action_id,
        coin=payload.coin,
        action_kind=ActionKind.coerce(payload.action),
        amount=payload.amount,
        expiry=payload.expiry,
        approve_endpoint=payload.approve_url,
        reject_endpoint=payload.reject_url,
        status=ApprovalStatus.PENDING,
        created_at=now_ms,
    )
