"""Tests for order webhook signature checks and payload parsing."""

import json

import pytest

from membership_access.access.webhooks import (
    WebhookSignatureError,
    construct_order_event,
    sign_payload,
    verify_signature,
)

SECRET = "whsec_test"


def _body(**overrides) -> bytes:
    payload = {
        "order_id": 500,
        "subject_id": 42,
        "status": "completed",
        "line_items": [{"product_ref": 10, "is_membership_plan": True, "plan_duration": 30}],
    }
    payload.update(overrides)
    return json.dumps(payload).encode()


class TestVerifySignature:
    def test_valid_signature(self):
        body = _body()
        verify_signature(body, sign_payload(body, SECRET), SECRET)

    def test_missing_signature(self):
        with pytest.raises(WebhookSignatureError, match="Missing"):
            verify_signature(_body(), None, SECRET)

    def test_tampered_body(self):
        signature = sign_payload(_body(), SECRET)
        with pytest.raises(WebhookSignatureError, match="mismatch"):
            verify_signature(_body(subject_id=43), signature, SECRET)


class TestConstructOrderEvent:
    def test_parses_signed_event(self):
        body = _body()
        event = construct_order_event(body, sign_payload(body, SECRET), SECRET)

        assert event.order_id == 500
        assert event.grants_access is True
        assert [item.product_ref for item in event.membership_items] == [10]

    def test_no_secret_skips_verification(self):
        event = construct_order_event(_body(), None, secret="")
        assert event.subject_id == 42

    def test_guest_subject_normalized(self):
        event = construct_order_event(_body(subject_id=0), None, secret="")
        assert event.subject_id is None

    def test_pending_status_does_not_grant(self):
        event = construct_order_event(_body(status="pending"), None, secret="")
        assert event.grants_access is False

    def test_invalid_payload(self):
        with pytest.raises(ValueError, match="Invalid order event payload"):
            construct_order_event(b'{"subject_id": 42}', None, secret="")

    def test_invalid_unit(self):
        body = _body(line_items=[{"product_ref": 10, "is_membership_plan": True, "plan_duration_unit": "decades"}])
        with pytest.raises(ValueError):
            construct_order_event(body, None, secret="")

    def test_bad_signature_checked_before_parsing(self):
        with pytest.raises(WebhookSignatureError):
            construct_order_event(b"not json", "bogus", SECRET)
