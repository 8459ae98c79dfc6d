"""Validation result models.

Validation failures are returned as values rather than raised, so callers
decide whether to drop a record (notifications) or abort (list fetch).
"""

from pydantic import BaseModel, Field

from approval_gateway.models.action import ApprovalAction


class ValidationIssue(BaseModel):
    """Where and why a payload failed validation."""

    field: str
    message: str
    index: int | None = None  # Position in a batch, when validating a list

    def describe(self) -> str:
        where = f"item {self.index}, " if self.index is not None else ""
        return f"{where}field '{self.field}': {self.message}"


class ValidationResult(BaseModel):
    """Outcome of validating a single record."""

    success: bool
    action: ApprovalAction | None = None
    error: ValidationIssue | None = None

    @classmethod
    def ok(cls, action: ApprovalAction) -> "ValidationResult":
        return cls(success=True, action=action)

    @classmethod
    def fail(cls, issue: ValidationIssue) -> "ValidationResult":
        return cls(success=False, error=issue)


class BatchValidationResult(BaseModel):
    """Outcome of validating a whole list. All or nothing."""

    success: bool
    actions: list[ApprovalAction] = Field(default_factory=list)
    error: ValidationIssue | None = None
