import json

import pytest
from protean.integrations.pytest import DomainFixture

_ENV_VARS = (
    "BREWDROP_VAT_RATE",
    "BREWDROP_SHIPPING_FEE",
    "BREWDROP_DELIVERY_FEE",
    "BREWDROP_CURRENCY",
    "BREWDROP_CANCELLATION_WINDOW_MINUTES",
    "BREWDROP_ESTIMATED_DELIVERY_DAYS",
    "BREWDROP_PAID_ORDER_DELIVERY_DAYS",
    "BREWDROP_MAX_PROOF_BYTES",
    "PAYMENT_GATEWAY",
    "IMAGE_STORE",
)


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield

        from protean import current_domain

        for _, provider in current_domain.providers.items():
            provider._data_reset()

        for _, broker in current_domain.brokers.items():
            broker._data_reset()

        current_domain.event_store.store._data_reset()


@pytest.fixture(autouse=True)
def _adapters(monkeypatch):
    """Fresh settings, fake gateway and fake image store for every test."""
    from ordering.media import reset_image_store, set_image_store
    from ordering.media.fake_adapter import FakeImageStore
    from ordering.payments import reset_gateway, set_gateway
    from ordering.payments.fake_adapter import FakeGateway
    from ordering.settings import reset_settings

    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    reset_settings()
    set_gateway(FakeGateway())
    set_image_store(FakeImageStore())

    yield

    reset_gateway()
    reset_image_store()
    reset_settings()


@pytest.fixture()
def gateway():
    from ordering.payments import get_gateway

    return get_gateway()


@pytest.fixture()
def image_store():
    from ordering.media import get_image_store

    return get_image_store()


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------
@pytest.fixture()
def register_product():
    """Register a product through the command bus and return its id."""
    from ordering.catalogue.management import RegisterProduct
    from protean import current_domain

    def _register(name="Iced Latte", price=150.0, stock=10, image=None):
        return current_domain.process(
            RegisterProduct(name=name, price=price, stock=stock, image=image),
            asynchronous=False,
        )

    return _register


@pytest.fixture()
def register_rider():
    from ordering.delivery.registration import RegisterRider
    from protean import current_domain

    def _register(rider_id="rider-001", name="Rico"):
        return current_domain.process(RegisterRider(rider_id=rider_id, name=name), asynchronous=False)

    return _register


@pytest.fixture()
def latte(register_product):
    return register_product(name="Iced Latte", price=150.0, stock=10)


@pytest.fixture()
def cookie(register_product):
    return register_product(name="Choco Cookie", price=50.0, stock=5)


@pytest.fixture()
def place_order(latte, cookie):
    """Create a TO_PAY order for 2 lattes and 1 cookie (total 498.00)."""
    from ordering.order.creation import CreateOrder
    from protean import current_domain

    def _place(customer_id="cust-001", items=None, payment_method="COD"):
        lines = items or [
            {"product_id": latte, "quantity": 2},
            {"product_id": cookie, "quantity": 1},
        ]
        return current_domain.process(
            CreateOrder(
                customer_id=customer_id,
                items=json.dumps(lines),
                payment_method=payment_method,
                shipping_address="12 Mabini St, Quezon City",
                latitude=14.6507,
                longitude=121.0494,
            ),
            asynchronous=False,
        )

    return _place


@pytest.fixture()
def checked_out_order(place_order):
    """A COD order that went through checkout and awaits a rider."""
    from ordering.order.checkout import check_out

    order_id = place_order()
    check_out(order_id, "cust-001")
    return order_id
