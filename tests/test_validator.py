"""Tests for payload validation (strict list mode and lenient push mode)."""

from conftest import BACKEND, NOW, backend_item, make_action, push_payload

from approval_gateway.models.action import ActionKind, ApprovalStatus
from approval_gateway.validator import (
    validate_action,
    validate_backend_item,
    validate_backend_list,
    validate_notification,
)


class TestValidateAction:
    """Tests for validate_action() on canonical records."""

    def test_valid_record(self):
        result = validate_action(make_action().to_storage())
        assert result.success is True
        assert result.action.id == "a1"
        assert result.error is None

    def test_not_a_mapping(self):
        result = validate_action("nope")
        assert result.success is False
        assert result.error.field == "payload"

    def test_missing_field(self):
        raw = make_action().to_storage()
        del raw["coin"]
        result = validate_action(raw)
        assert result.success is False
        assert result.error.field == "coin"

    def test_non_positive_created_at(self):
        raw = make_action().to_storage()
        raw["timestamp"] = 0
        result = validate_action(raw)
        assert result.success is False
        assert result.error.field == "timestamp"

    def test_unknown_status(self):
        raw = make_action().to_storage()
        raw["status"] = "cancelled"
        assert validate_action(raw).success is False


class TestValidateBackendItem:
    """Tests for a single /pushcut/status element."""

    def test_valid_item(self):
        result = validate_backend_item(backend_item(), backend_url=BACKEND, now_ms=NOW)
        assert result.success is True
        action = result.action
        assert action.id == "a1"
        assert action.action_kind == ActionKind.SWAP
        assert action.status == ApprovalStatus.PENDING
        assert action.created_at == NOW

    def test_id_fallback(self):
        raw = backend_item()
        del raw["actionId"]
        raw["id"] = "legacy-7"
        result = validate_backend_item(raw, backend_url=BACKEND, now_ms=NOW)
        assert result.action.id == "legacy-7"

    def test_action_id_preferred_over_id(self):
        raw = backend_item("primary", id="secondary")
        result = validate_backend_item(raw, backend_url=BACKEND, now_ms=NOW)
        assert result.action.id == "primary"

    def test_missing_both_ids(self):
        raw = backend_item()
        del raw["actionId"]
        result = validate_backend_item(raw, backend_url=BACKEND, now_ms=NOW, index=4)
        assert result.success is False
        assert result.error.field == "actionId"
        assert result.error.index == 4

    def test_default_endpoints(self):
        raw = backend_item()
        del raw["approveUrl"]
        raw["rejectUrl"] = None
        result = validate_backend_item(raw, backend_url="https://backend.test/", now_ms=NOW)
        assert result.action.approve_endpoint == "https://backend.test/approve"
        assert result.action.reject_endpoint == "https://backend.test/reject"

    def test_unknown_kind_fails_closed(self):
        result = validate_backend_item(
            backend_item(action="bridge"), backend_url=BACKEND, now_ms=NOW
        )
        assert result.success is False
        assert result.error.field == "action"

    def test_string_expiry_rejected(self):
        result = validate_backend_item(
            backend_item(expiry=str(NOW)), backend_url=BACKEND, now_ms=NOW
        )
        assert result.success is False
        assert result.error.field == "expiry"

    def test_bool_expiry_rejected(self):
        result = validate_backend_item(backend_item(expiry=True), backend_url=BACKEND, now_ms=NOW)
        assert result.success is False

    def test_float_expiry_accepted(self):
        result = validate_backend_item(
            backend_item(expiry=float(NOW + 300_000)), backend_url=BACKEND, now_ms=NOW
        )
        assert result.success is True
        assert result.action.expiry == NOW + 300_000
        assert isinstance(result.action.expiry, int)

    def test_fractional_expiry_truncated(self):
        result = validate_backend_item(
            backend_item(expiry=NOW + 300_000.75), backend_url=BACKEND, now_ms=NOW
        )
        assert result.action.expiry == NOW + 300_000

    def test_non_finite_expiry_rejected(self):
        for value in (float("inf"), float("nan")):
            result = validate_backend_item(
                backend_item(expiry=value), backend_url=BACKEND, now_ms=NOW
            )
            assert result.success is False
            assert result.error.field == "expiry"

    def test_sub_millisecond_expiry_rejected(self):
        result = validate_backend_item(backend_item(expiry=0.5), backend_url=BACKEND, now_ms=NOW)
        assert result.success is False

    def test_numeric_amount_rejected(self):
        result = validate_backend_item(backend_item(amount=1.5), backend_url=BACKEND, now_ms=NOW)
        assert result.success is False
        assert result.error.field == "amount"

    def test_empty_coin_rejected(self):
        result = validate_backend_item(backend_item(coin=""), backend_url=BACKEND, now_ms=NOW)
        assert result.success is False
        assert result.error.field == "coin"

    def test_relative_url_rejected(self):
        result = validate_backend_item(
            backend_item(approveUrl="/approve"), backend_url=BACKEND, now_ms=NOW
        )
        assert result.success is False
        assert result.error.field == "approveUrl"

    def test_non_http_url_rejected(self):
        result = validate_backend_item(
            backend_item(rejectUrl="ftp://x/reject"), backend_url=BACKEND, now_ms=NOW
        )
        assert result.success is False
        assert result.error.field == "rejectUrl"


class TestValidateBackendList:
    """Tests for whole-list validation."""

    def test_valid_list(self):
        raw = [backend_item("a1"), backend_item("a2", action="stake")]
        result = validate_backend_list(raw, backend_url=BACKEND, now_ms=NOW)
        assert result.success is True
        assert [a.id for a in result.actions] == ["a1", "a2"]

    def test_empty_list(self):
        result = validate_backend_list([], backend_url=BACKEND, now_ms=NOW)
        assert result.success is True
        assert result.actions == []

    def test_not_a_list(self):
        result = validate_backend_list({"items": []}, backend_url=BACKEND, now_ms=NOW)
        assert result.success is False
        assert result.error.field == "payload"
        assert "dict" in result.error.message

    def test_float_expiries_do_not_abort_batch(self):
        raw = [backend_item("a1", expiry=float(NOW + 300_000)), backend_item("a2")]
        result = validate_backend_list(raw, backend_url=BACKEND, now_ms=NOW)
        assert result.success is True
        assert [a.id for a in result.actions] == ["a1", "a2"]

    def test_bad_element_rejects_whole_batch(self):
        raw = [backend_item("a1"), backend_item("a2", expiry=-5), backend_item("a3")]
        result = validate_backend_list(raw, backend_url=BACKEND, now_ms=NOW)
        assert result.success is False
        assert result.actions == []
        assert result.error.index == 1
        assert result.error.field == "expiry"
        assert "item 1" in result.error.describe()


class TestValidateNotification:
    """Tests for lenient push payload validation."""

    def test_valid_payload(self):
        result = validate_notification(push_payload(), now_ms=NOW)
        assert result.success is True
        assert result.action.id == "p1"
        assert result.action.action_kind == ActionKind.TRANSFER
        assert result.action.approve_endpoint == "https://agent.example/approve/p1"

    def test_unknown_kind_coerced_to_other(self):
        result = validate_notification(push_payload(action="bridge"), now_ms=NOW)
        assert result.success is True
        assert result.action.action_kind == ActionKind.OTHER

    def test_endpoints_required(self):
        raw = push_payload()
        del raw["rejectUrl"]
        result = validate_notification(raw, now_ms=NOW)
        assert result.success is False
        assert result.error.field == "rejectUrl"

    def test_id_required(self):
        raw = push_payload()
        del raw["actionId"]
        result = validate_notification(raw, now_ms=NOW)
        assert result.success is False
        assert result.error.field == "actionId"

    def test_float_expiry_accepted(self):
        result = validate_notification(push_payload(expiry=float(NOW + 60_000)), now_ms=NOW)
        assert result.success is True
        assert result.action.expiry == NOW + 60_000

    def test_string_expiry_rejected(self):
        result = validate_notification(push_payload(expiry=str(NOW + 60_000)), now_ms=NOW)
        assert result.success is False
        assert result.error.field == "expiry"

    def test_none_payload(self):
        result = validate_notification(None, now_ms=NOW)
        assert result.success is False
