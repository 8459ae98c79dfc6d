"""Custom exceptions for the approval gateway.

Validation problems are not exceptions; see ``approval_gateway.models.validation``.
"""


class ApprovalGatewayError(Exception):
    """Base class for gateway errors."""


class ApiError(ApprovalGatewayError):
    """Raised when the backend answers with a non-2xx status."""

    def __init__(self, status_code: int, message: str | None = None) -> None:
        self.status_code = status_code
        super().__init__(message or f"API error: {status_code}")


class NetworkError(ApprovalGatewayError):
    """Raised on transport failures, timeouts and unreadable bodies."""


class ActionNotFoundError(ApprovalGatewayError):
    """Raised when a decision targets an action that is not pending locally."""

    def __init__(self, action_id: str) -> None:
        self.action_id = action_id
        super().__init__(f"Action not found: {action_id}")


class ActionExpiredError(ApprovalGatewayError):
    """Raised when a decision is attempted after the action's expiry."""

    def __init__(self, action_id: str, expiry: int) -> None:
        self.action_id = action_id
        self.expiry = expiry
        super().__init__(f"Action {action_id} expired at {expiry}")


class AlreadyDecidingError(ApprovalGatewayError):
    """Raised when a decision for the same action is already in flight."""

    def __init__(self, action_id: str) -> None:
        self.action_id = action_id
        super().__init__(f"Decision already in flight for action {action_id}")
