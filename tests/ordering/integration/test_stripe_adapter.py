"""Stripe adapter tests with the SDK's PaymentIntent calls replaced."""

import pytest
import stripe
from ordering.exceptions import UpstreamFailureError
from ordering.payments.stripe_adapter import StripeGateway


def _intent(status="requires_capture", amount=49800, **extra):
    return {
        "id": "pi_123",
        "status": status,
        "amount": amount,
        "currency": "php",
        "payment_method_types": ["card"],
        "client_secret": "pi_123_secret_abc",
        **extra,
    }


@pytest.fixture()
def sdk(monkeypatch):
    """Record PaymentIntent calls and answer them from ``sdk["replies"]``."""
    state = {"calls": [], "replies": {}}

    def fake(name):
        def call(*args, **params):
            state["calls"].append((name, args, params))
            reply = state["replies"][name]
            if isinstance(reply, Exception):
                raise reply
            return reply

        return call

    for name in ("create", "retrieve", "modify", "capture"):
        monkeypatch.setattr(stripe.PaymentIntent, name, fake(name))
    return state


def _gateway():
    return StripeGateway(api_key="sk_test_123")


class TestCreateSource:
    def test_manual_capture_intent(self, sdk):
        sdk["replies"]["create"] = _intent(status="requires_payment_method")

        source = _gateway().create_source(49800, "PHP", "card", "https://shop.test/return")

        name, args, params = sdk["calls"][0]
        assert name == "create"
        assert params["api_key"] == "sk_test_123"
        assert params["amount"] == 49800
        assert params["currency"] == "php"
        assert params["payment_method_types"] == ["card"]
        assert params["capture_method"] == "manual"

        assert source.source_id == "pi_123"
        assert source.status == "pending"
        assert source.currency == "PHP"
        assert source.client_secret == "pi_123_secret_abc"


class TestGetSource:
    def test_confirmed_intent_is_chargeable(self, sdk):
        sdk["replies"]["retrieve"] = _intent()

        source = _gateway().get_source("pi_123")

        assert sdk["calls"][0][1] == ("pi_123",)
        assert source.status == "chargeable"
        assert source.amount == 49800


class TestCreatePayment:
    def test_capture_succeeds(self, sdk):
        sdk["replies"]["modify"] = _intent()
        sdk["replies"]["capture"] = _intent(status="succeeded", amount_received=49800)

        result = _gateway().create_payment("pi_123", 49800, "PHP", "Order ord-1")

        assert sdk["calls"][0][2]["description"] == "Order ord-1"
        name, args, params = sdk["calls"][1]
        assert (name, args, params["amount_to_capture"]) == ("capture", ("pi_123",), 49800)
        assert result.paid
        assert result.payment_id == "pi_123"
        assert result.amount == 49800

    def test_declined_card(self, sdk):
        sdk["replies"]["modify"] = _intent()
        sdk["replies"]["capture"] = stripe.CardError(
            "Your card was declined.",
            None,
            "card_declined",
            http_status=402,
            json_body={"error": {"message": "Your card was declined.", "code": "card_declined"}},
        )

        with pytest.raises(UpstreamFailureError) as exc_info:
            _gateway().create_payment("pi_123", 49800, "PHP", "Order ord-1")

        assert exc_info.value.messages == {"payment": ["Your card was declined."]}
        assert exc_info.value.details["error"]["code"] == "card_declined"


class TestGetPayment:
    def test_succeeded_intent_is_paid(self, sdk):
        sdk["replies"]["retrieve"] = _intent(status="succeeded", amount_received=28200, amount=28200)

        result = _gateway().get_payment("pi_123")
        assert result.paid
        assert result.amount == 28200

    def test_uncaptured_intent_is_not_paid(self, sdk):
        sdk["replies"]["retrieve"] = _intent()

        result = _gateway().get_payment("pi_123")
        assert not result.paid
        assert result.status == "requires_capture"

    def test_unknown_intent(self, sdk):
        sdk["replies"]["retrieve"] = stripe.InvalidRequestError(
            "No such payment_intent: 'pi_missing'",
            "intent",
            http_status=404,
        )

        with pytest.raises(UpstreamFailureError):
            _gateway().get_payment("pi_missing")
