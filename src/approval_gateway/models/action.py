"""Approval action models - the canonical record every component shares."""

import math
from enum import Enum
from typing import Annotated, Any

import httpx
from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
)


def _check_absolute_url(value: str) -> str:
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL as e:
        raise ValueError(f"invalid URL: {e}") from e
    if url.scheme not in ("http", "https") or not url.host:
        raise ValueError("must be an absolute http(s) URL")
    return value


def _whole_millis(value: Any) -> Any:
    """Truncate a float epoch-ms value to int; other types pass through."""
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError("must be a finite number")
        return int(value)
    return value


NonEmptyStr = Annotated[StrictStr, Field(min_length=1)]
EpochMillis = Annotated[StrictInt, Field(gt=0), BeforeValidator(_whole_millis)]
EndpointUrl = Annotated[StrictStr, AfterValidator(_check_absolute_url)]


class ActionKind(str, Enum):
    """Kinds of automated action an agent can stage."""

    SWAP = "swap"
    TRANSFER = "transfer"
    TRADE = "trade"
    STAKE = "stake"
    UNSTAKE = "unstake"
    OTHER = "other"

    @classmethod
    def coerce(cls, value: str) -> "ActionKind":
        """Map an unrecognised kind to OTHER (push payloads only)."""
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class ApprovalStatus(str, Enum):
    """Lifecycle status of an action. Moves forward only."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_final(self) -> bool:
        return self is not ApprovalStatus.PENDING


class ApprovalAction(BaseModel):
    """A staged action awaiting (or having received) a human decision.

    Instances are frozen so snapshots handed to readers can never change
    underneath them. Field aliases are the names used on the wire and in
    persisted history.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: NonEmptyStr
    coin: NonEmptyStr
    action_kind: ActionKind = Field(alias="action")
    amount: NonEmptyStr  # Opaque decimal string, never parsed
    expiry: EpochMillis
    approve_endpoint: EndpointUrl = Field(alias="approveUrl")
    reject_endpoint: EndpointUrl = Field(alias="rejectUrl")
    status: ApprovalStatus = ApprovalStatus.PENDING
    created_at: EpochMillis = Field(alias="timestamp")

    def endpoint_for(self, outcome: ApprovalStatus) -> str:
        """Return the URL a decision with ``outcome`` must be posted to."""
        if outcome is ApprovalStatus.APPROVED:
            return self.approve_endpoint
        if outcome is ApprovalStatus.REJECTED:
            return self.reject_endpoint
        raise ValueError(f"Not a decision outcome: {outcome}")

    def to_storage(self) -> dict:
        """Serialize using wire names, for persisted history."""
        return self.model_dump(mode="json", by_alias=True)


class DeviceIdentity(BaseModel):
    """This client's identity as seen by the backend."""

    token: str
    registered: bool = False
