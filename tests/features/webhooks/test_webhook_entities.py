"""Tests for webhook entities."""

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone

import pytest

from neo_webhooks.core.exceptions import WebhookValidationError
from neo_webhooks.core.value_objects import RetryItemId, SubscriptionId
from neo_webhooks.features.webhooks.entities import (
    CircuitState,
    DeliveryResult,
    DispatchSummary,
    EventEnvelope,
    RetryItem,
    Subscription,
    DEFAULT_RETRY_PRIORITY,
)


NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestSubscription:
    """Test Subscription entity."""

    def test_valid_subscription(self, make_subscription):
        subscription = make_subscription(event_types=["order.created", "order.updated"])

        assert subscription.active is True
        assert subscription.consecutive_retry_count == 0
        assert subscription.last_error is None
        assert subscription.event_types == ["order.created", "order.updated"]
        assert subscription.headers == {}

    def test_secret_not_in_repr(self, make_subscription):
        """Test the secret never appears in repr (and therefore in logs)."""
        subscription = make_subscription(secret="super-secret-value")
        assert "super-secret-value" not in repr(subscription)

    def test_secret_not_in_dict(self, make_subscription):
        subscription = make_subscription()
        assert "secret" not in subscription.to_dict()

    def test_text_secret_stored_as_bytes(self, make_subscription):
        subscription = make_subscription(secret="raw-secret")
        assert subscription.secret == b"raw-secret"

    def test_binary_secret_kept_verbatim(self, make_subscription):
        secret = bytes(range(128, 160))
        subscription = make_subscription(secret=bytearray(secret))
        assert subscription.secret == secret

    @pytest.mark.parametrize("headers", [
        {"X-Shop": "caf\u00e9"},
        {"X-Note": "line\nbreak"},
    ])
    def test_undeliverable_header_values_rejected(self, make_subscription, headers):
        with pytest.raises(WebhookValidationError):
            make_subscription(headers=headers)

    @pytest.mark.parametrize("overrides", [
        {"url": "not-a-url"},
        {"url": "ftp://example.com/hook"},
        {"secret": ""},
        {"event_types": []},
        {"event_types": ["NotValid"]},
        {"tenant_id": ""},
        {"headers": {"bad header": "x"}},
        {"consecutive_retry_count": -1},
    ])
    def test_invalid_subscription_rejected(self, make_subscription, overrides):
        with pytest.raises(WebhookValidationError):
            make_subscription(**overrides)

    def test_event_type_matching_is_exact(self, make_subscription):
        subscription = make_subscription(event_types=["order.created"])

        assert subscription.is_subscribed_to("order.created")
        assert not subscription.is_subscribed_to("order.created.v2")
        assert not subscription.is_subscribed_to("order")

    def test_inactive_subscription_not_deliverable(self, make_subscription):
        subscription = make_subscription(active=False)
        assert not subscription.is_deliverable_for("order.created")

    def test_mark_success_resets_retry_count(self, make_subscription):
        subscription = make_subscription(consecutive_retry_count=2, last_error="HTTP 500")

        subscription.mark_success(NOW)

        assert subscription.consecutive_retry_count == 0
        assert subscription.last_error is None
        assert subscription.last_triggered_at == NOW

    def test_mark_failure_increments_while_active(self, make_subscription):
        subscription = make_subscription()

        subscription.mark_failure("HTTP 500", NOW)
        subscription.mark_failure("HTTP 502", NOW)

        assert subscription.consecutive_retry_count == 2
        assert subscription.last_error == "HTTP 502"

    def test_mark_failure_on_inactive_keeps_count(self, make_subscription):
        subscription = make_subscription(active=False, consecutive_retry_count=3)

        subscription.mark_failure("Timeout after 10.0s", NOW)

        assert subscription.consecutive_retry_count == 3
        assert subscription.last_error == "Timeout after 10.0s"

    def test_deactivate_is_idempotent(self, make_subscription):
        subscription = make_subscription()

        assert subscription.deactivate("too many failures", NOW) is True
        assert subscription.active is False
        assert subscription.last_error == "too many failures"

        assert subscription.deactivate("again", NOW) is False
        assert subscription.last_error == "too many failures"

    def test_reactivate_clears_error_state(self, make_subscription):
        subscription = make_subscription(active=False, last_error="down", consecutive_retry_count=4)

        assert subscription.reactivate(NOW) is True
        assert subscription.active is True
        assert subscription.last_error is None
        assert subscription.consecutive_retry_count == 0
        assert subscription.reactivate(NOW) is False

    def test_dict_round_trip_keeps_secret(self, make_subscription):
        subscription = make_subscription(headers={"X-Key": "v"})
        subscription.mark_success(NOW)

        restored = Subscription.from_dict({**subscription.to_dict(), "secret": subscription.secret})

        assert restored == subscription
        assert restored.secret == subscription.secret

    def test_naive_timestamps_become_utc(self, make_subscription):
        subscription = make_subscription(created_at=datetime(2024, 1, 1), updated_at=datetime(2024, 1, 1))
        assert subscription.created_at.tzinfo == timezone.utc


class TestEventEnvelope:
    """Test EventEnvelope wire format."""

    def test_exact_body_bytes(self):
        envelope = EventEnvelope.create("product.created", "tenant-1", {"id": 1}, now=NOW)

        assert envelope.to_json_bytes() == (
            b'{"eventType":"product.created","timestamp":"2024-01-01T00:00:00.000Z",'
            b'"triggeredBy":"tenant-1","data":{"id":1}}'
        )

    def test_timestamp_millisecond_precision(self):
        moment = datetime(2024, 3, 5, 7, 8, 9, 123456, tzinfo=timezone.utc)
        envelope = EventEnvelope.create("order.created", "t", None, now=moment)
        assert envelope.timestamp == "2024-03-05T07:08:09.123Z"

    def test_timestamp_converted_to_utc(self):
        moment = datetime(2024, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=2)))
        envelope = EventEnvelope.create("order.created", "t", None, now=moment)
        assert envelope.timestamp == "2024-01-01T00:00:00.000Z"

    def test_non_ascii_payload_is_utf8(self):
        envelope = EventEnvelope.create("order.created", "t", {"name": "café"}, now=NOW)
        assert "café".encode("utf-8") in envelope.to_json_bytes()

    def test_non_finite_number_not_serialized(self):
        envelope = EventEnvelope.create("order.created", "t", {"total": float("nan")}, now=NOW)
        with pytest.raises(ValueError):
            envelope.to_json_bytes()

    def test_null_payload(self):
        envelope = EventEnvelope.create("order.created", "t", None, now=NOW)
        assert envelope.to_json_bytes().endswith(b'"data":null}')

    def test_stored_form_reproduces_identical_bytes(self):
        """Test a retried envelope serializes to the same body as the original."""
        envelope = EventEnvelope.create("order.created", "t", {"b": 2, "a": [1, 2]}, now=NOW)
        restored = EventEnvelope.from_dict(envelope.to_dict())

        assert restored == envelope
        assert restored.to_json_bytes() == envelope.to_json_bytes()

    def test_envelope_is_immutable(self):
        envelope = EventEnvelope.create("order.created", "t", {}, now=NOW)
        with pytest.raises(FrozenInstanceError):
            envelope.event_type = "order.updated"


class TestRetryItem:
    """Test RetryItem entity."""

    @pytest.fixture
    def envelope(self):
        return EventEnvelope.create("order.created", "t", {"id": 1}, now=NOW)

    def test_attempts_must_be_positive(self, envelope):
        with pytest.raises(ValueError):
            RetryItem(
                id=RetryItemId.generate(),
                subscription_id=SubscriptionId.generate(),
                envelope=envelope,
                attempts=0,
                next_retry_at=NOW,
            )

    def test_default_priority(self, envelope):
        item = RetryItem(
            id=RetryItemId.generate(),
            subscription_id=SubscriptionId.generate(),
            envelope=envelope,
            attempts=1,
            next_retry_at=NOW,
        )
        assert item.priority == DEFAULT_RETRY_PRIORITY

    def test_is_due_respects_schedule_and_lease(self, envelope):
        item = RetryItem(
            id=RetryItemId.generate(),
            subscription_id=SubscriptionId.generate(),
            envelope=envelope,
            attempts=1,
            next_retry_at=NOW + timedelta(seconds=1),
        )

        assert not item.is_due(NOW)
        assert item.is_due(NOW + timedelta(seconds=1))

        item.claimed_until = NOW + timedelta(seconds=60)
        item.claimed_by = "worker-a"
        assert not item.is_due(NOW + timedelta(seconds=30))
        assert item.is_due(NOW + timedelta(seconds=60))

    def test_dict_round_trip(self, envelope):
        item = RetryItem(
            id=RetryItemId.generate(),
            subscription_id=SubscriptionId.generate(),
            envelope=envelope,
            attempts=2,
            next_retry_at=NOW,
            last_error="HTTP 503",
            created_at=NOW,
        )
        assert RetryItem.from_dict(item.to_dict()) == item


class TestCircuitState:
    """Test circuit state derivation."""

    @pytest.mark.parametrize("count,expected", [
        (0, CircuitState.HEALTHY),
        (1, CircuitState.DEGRADED),
        (2, CircuitState.DEGRADED),
        (3, CircuitState.TRIPPED),
        (7, CircuitState.TRIPPED),
    ])
    def test_from_count(self, count, expected):
        assert CircuitState.from_count(count, threshold=3) is expected


class TestDeliveryValues:
    """Test delivery result and dispatch summary values."""

    @pytest.mark.parametrize("status", [200, 201, 204, 299])
    def test_2xx_is_success(self, status):
        result = DeliveryResult.from_status(status, "req", 1.0)
        assert result.success
        assert result.error is None

    @pytest.mark.parametrize("status", [199, 301, 400, 404, 500, 503])
    def test_non_2xx_is_failure(self, status):
        result = DeliveryResult.from_status(status, "req", 1.0)
        assert not result.success
        assert result.error == f"HTTP {status}"
        assert result.status_code == status

    def test_failure_without_response(self):
        result = DeliveryResult.failure("Timeout after 10.0s")
        assert not result.success
        assert result.status_code is None

    def test_summary_attempted(self):
        summary = DispatchSummary(matched=6, delivered=2, skipped=1, queued=1, tripped=1, failed=1)
        assert summary.attempted == 5
        assert summary.to_dict()["skipped"] == 1
