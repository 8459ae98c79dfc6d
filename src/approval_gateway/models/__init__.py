"""Pydantic models for the approval gateway - the contracts."""

from approval_gateway.models.action import (
    ActionKind,
    ApprovalAction,
    ApprovalStatus,
    DeviceIdentity,
)
from approval_gateway.models.validation import (
    BatchValidationResult,
    ValidationIssue,
    ValidationResult,
)
from approval_gateway.models.wire import (
    BackendApprovalItem,
    DecisionRequest,
    DecisionResponse,
    DeviceRegistrationRequest,
    DeviceRegistrationResponse,
    NotificationPayload,
)

__all__ = [
    "ActionKind",
    "ApprovalAction",
    "ApprovalStatus",
    "BackendApprovalItem",
    "BatchValidationResult",
    "DecisionRequest",
    "DecisionResponse",
    "DeviceIdentity",
    "DeviceRegistrationRequest",
    "DeviceRegistrationResponse",
    "NotificationPayload",
    "ValidationIssue",
    "ValidationResult",
]
