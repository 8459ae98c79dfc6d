"""Approval Gateway - human approval of time-boxed agent actions."""

__version__ = "0.1.0"

from approval_gateway.exceptions import (
    ActionExpiredError,
    ActionNotFoundError,
    AlreadyDecidingError,
    ApiError,
    ApprovalGatewayError,
    NetworkError,
)

__all__ = [
    "__version__",
    "ActionExpiredError",
    "ActionNotFoundError",
    "AlreadyDecidingError",
    "ApiError",
    "ApprovalGatewayError",
    "NetworkError",
]
