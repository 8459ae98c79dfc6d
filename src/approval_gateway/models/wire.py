"""Wire-transfer models for the backend REST surface and push payloads."""

from pydantic import BaseModel, ConfigDict, Field

from approval_gateway.models.action import (
    ActionKind,
    EndpointUrl,
    EpochMillis,
    NonEmptyStr,
)


class BackendApprovalItem(BaseModel):
    """One element of the ``GET /pushcut/status`` response.

    The backend is authoritative for this list, so ``action`` must be one of
    the known kinds; there is no fallback to ``other`` here.
    """

    model_config = ConfigDict(populate_by_name=True)

    action_id: NonEmptyStr | None = Field(default=None, alias="actionId")
    id: NonEmptyStr | None = None
    coin: NonEmptyStr
    action: ActionKind
    amount: NonEmptyStr
    expiry: EpochMillis
    approve_url: EndpointUrl | None = Field(default=None, alias="approveUrl")
    reject_url: EndpointUrl | None = Field(default=None, alias="rejectUrl")

    @property
    def resolved_id(self) -> str | None:
        return self.action_id or self.id


class NotificationPayload(BaseModel):
    """Data carried by an approval push notification.

    ``action`` is kept as a free string; third-party senders may use kinds
    this client does not know yet, which map to ``other``.
    """

    model_config = ConfigDict(populate_by_name=True)

    action_id: NonEmptyStr = Field(alias="actionId")
    coin: NonEmptyStr
    action: NonEmptyStr
    amount: NonEmptyStr
    expiry: EpochMillis
    approve_url: EndpointUrl = Field(alias="approveUrl")
    reject_url: EndpointUrl = Field(alias="rejectUrl")


class DecisionRequest(BaseModel):
    """Body posted to an action's approve or reject endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    token: NonEmptyStr
    action_id: NonEmptyStr = Field(alias="actionId")


class DecisionResponse(BaseModel):
    """Optional body returned by approve/reject. Informational only."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool | None = None
    message: str | None = None
    action_id: str | None = Field(default=None, alias="actionId")


class DeviceRegistrationRequest(BaseModel):
    """Body posted to ``/devices/register``."""

    model_config = ConfigDict(populate_by_name=True)

    token: NonEmptyStr
    push_token: str | None = Field(default=None, alias="pushToken")


class DeviceRegistrationResponse(BaseModel):
    """Optional body returned by ``/devices/register``."""

    success: bool
    token: str | None = None
    message: str | None = None
