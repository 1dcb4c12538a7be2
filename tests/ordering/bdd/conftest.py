"""Shared BDD fixtures and step definitions for ordering and delivery."""

import json
from datetime import UTC, datetime

import pytest
from ordering import exceptions
from ordering.catalogue.management import RegisterProduct
from ordering.catalogue.product import Product
from ordering.delivery.assignment import AcceptTask
from ordering.delivery.proof import DELIVERY, PICKUP, submit_proof
from ordering.delivery.registration import RegisterRider
from ordering.delivery.rider import Rider
from ordering.order.cancellation import CancelOrder
from ordering.order.checkout import check_out
from ordering.order.creation import CreateOrder
from ordering.order.order import Order
from ordering.order.receipt import ConfirmReceipt
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from pytest_bdd import given, parsers, then, when

PROOF_IMAGE = b"\xff\xd8\xff\xe0" + b"0" * 64


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def products():
    """Product ids keyed by product name."""
    return {}


@pytest.fixture()
def checkout_time():
    return datetime.now(UTC)


@pytest.fixture()
def error():
    """Container for the exception captured by a When step."""
    return {"exc": None}


def attempt(error, action):
    try:
        return action()
    except (ValidationError, ObjectNotFoundError) as exc:
        error["exc"] = exc
        return None


@pytest.fixture()
def capture(error):
    """Run an action, keeping any domain error for the Then steps."""
    return lambda action: attempt(error, action)


@pytest.fixture()
def place(products):
    return lambda *args: _place(products, *args)


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _product(products, name):
    return current_domain.repository_for(Product).get(products[name])


def _place(products, customer, first_qty, first, second_qty, second, method):
    lines = [
        {"product_id": products[first], "quantity": first_qty},
        {"product_id": products[second], "quantity": second_qty},
    ]
    return current_domain.process(
        CreateOrder(
            customer_id=customer,
            items=json.dumps(lines),
            payment_method=method,
            shipping_address="12 Mabini St, Quezon City",
        ),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{name}" priced {price:g} with {stock:d} in stock'))
def _(products, name, price, stock):
    products[name] = current_domain.process(
        RegisterProduct(name=name, price=price, stock=stock),
        asynchronous=False,
    )


@given(
    parsers.cfparse(
        'customer "{customer}" has ordered {first_qty:d} "{first}" and {second_qty:d} "{second}" paying "{method}"'
    ),
    target_fixture="order_id",
)
def _(products, customer, first_qty, first, second_qty, second, method):
    return _place(products, customer, first_qty, first, second_qty, second, method)


@given(parsers.cfparse('customer "{customer}" has checked the order out'))
def _(order_id, customer, checkout_time):
    check_out(order_id, customer, as_of=checkout_time)


@given(parsers.cfparse('customer "{customer}" has cancelled the order'))
def _(order_id, customer, checkout_time):
    current_domain.process(
        CancelOrder(order_id=order_id, customer_id=customer, reason="Changed my mind", as_of=checkout_time),
        asynchronous=False,
    )


@given(parsers.cfparse('rider "{rider_id}" is registered'))
def _(rider_id):
    current_domain.process(RegisterRider(rider_id=rider_id, name=rider_id.title()), asynchronous=False)


@given(parsers.cfparse('rider "{rider_id}" has accepted the order'))
def _(order_id, rider_id):
    current_domain.process(AcceptTask(order_id=order_id, rider_id=rider_id), asynchronous=False)


@given(parsers.cfparse('rider "{rider_id}" has uploaded the {leg} proof'))
def _(order_id, rider_id, leg):
    submit_proof(order_id, rider_id, {"pickup": PICKUP, "delivery": DELIVERY}[leg], PROOF_IMAGE, "image/jpeg")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('customer "{customer}" confirms receipt'))
def _(order_id, customer, capture):
    capture(lambda: current_domain.process(ConfirmReceipt(order_id=order_id, customer_id=customer), asynchronous=False))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _(order_id, status):
    assert _order(order_id).status == status


@then(parsers.cfparse('the action fails with "{error_type}"'))
def _(error, error_type):
    assert error["exc"] is not None, f"Expected {error_type} but nothing was raised"
    assert isinstance(error["exc"], getattr(exceptions, error_type)), repr(error["exc"])


@then(parsers.cfparse('"{name}" has {stock:d} in stock'))
def _(products, name, stock):
    assert _product(products, name).stock == stock


@then(parsers.cfparse('rider "{rider_id}" has earned {amount:g} over {deliveries:d} deliveries'))
def _(rider_id, amount, deliveries):
    rider = current_domain.repository_for(Rider).get(rider_id)
    assert rider.lifetime_earnings == pytest.approx(amount)
    assert rider.total_deliveries == deliveries


@then(parsers.cfparse('rider "{rider_id}" is free'))
def _(rider_id):
    assert current_domain.repository_for(Rider).get(rider_id).active_order_id is None
