"""Pydantic request/response schemas for the ordering API.

These are external contracts, separate from the internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class OrderLineSchema(BaseModel):
    product_id: str
    quantity: int = Field(ge=1)
    image: str | None = None


# ---------------------------------------------------------------------------
# Product Request Schemas
# ---------------------------------------------------------------------------
class RegisterProductRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    price: float = Field(ge=0)
    stock: int = Field(ge=0, default=0)
    image: str | None = None


class RestockProductRequest(BaseModel):
    quantity: int = Field(ge=1)


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CreateOrderRequest(BaseModel):
    items: list[OrderLineSchema] = Field(min_length=1)
    payment_method: str = "COD"
    shipping_address: str
    latitude: float | None = None
    longitude: float | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [{"product_id": "prod-001", "quantity": 2}],
                    "payment_method": "COD",
                    "shipping_address": "12 Mabini St, Quezon City",
                    "latitude": 14.6507,
                    "longitude": 121.0494,
                }
            ]
        }
    }


class CreatePaidOrderRequest(CreateOrderRequest):
    payment_method: str = "Paymongo"
    payment_reference: str = Field(min_length=1)


class PaymentSourceRequest(BaseModel):
    source_type: str = "gcash"
    redirect_url: str


class CheckoutRequest(BaseModel):
    source_id: str | None = None
    payment_reference: str | None = None


class CancelOrderRequest(BaseModel):
    cancellation_reason: str = Field(min_length=1, max_length=500)


# ---------------------------------------------------------------------------
# Rider Request Schemas
# ---------------------------------------------------------------------------
class RegisterRiderRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class ProductIdResponse(BaseModel):
    product_id: str


class StockResponse(BaseModel):
    product_id: str
    stock: int


class OrderIdResponse(BaseModel):
    order_id: str


class RiderIdResponse(BaseModel):
    rider_id: str


class StatusResponse(BaseModel):
    status: str = "ok"


class PaymentSourceResponse(BaseModel):
    source_id: str
    status: str
    amount: int
    currency: str
    checkout_url: str | None = None
    client_secret: str | None = None


class ProofResponse(BaseModel):
    proof_url: str


class ValidationResponse(BaseModel):
    order_id: str
    outcome: str


class OrderItemView(BaseModel):
    product_id: str
    name: str
    image: str | None = None
    unit_price: float
    quantity: int
    line_subtotal: float


class StatusEntryView(BaseModel):
    status: str
    actor_id: str
    recorded_at: datetime


class DeliveryView(BaseModel):
    latitude: float | None = None
    longitude: float | None = None
    estimated_delivery: datetime | None = None
    assigned_at: datetime | None = None
    pickup_proof_url: str | None = None
    pickup_completed_at: datetime | None = None
    pickup_validated: bool = False
    pickup_validated_at: datetime | None = None
    delivery_proof_url: str | None = None
    delivered_at: datetime | None = None
    delivery_validated: bool = False
    delivery_validated_at: datetime | None = None


class OrderView(BaseModel):
    order_id: str
    customer_id: str
    status: str
    items: list[OrderItemView]
    items_subtotal: float
    vat: float
    shipping_fee: float
    total_amount: float
    currency: str
    payment_method: str
    payment_reference: str | None = None
    shipping_address: str
    assigned_rider_id: str | None = None
    delivery: DeliveryView
    cancellation_deadline: datetime | None = None
    can_cancel: bool = False
    cancellation_reason: str | None = None
    cancelled_at: datetime | None = None
    status_history: list[StatusEntryView]
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TaskView(OrderView):
    """An order as offered to riders, with the fee the rider earns on completion."""

    delivery_fee: float


class PaginationView(BaseModel):
    current_page: int
    total_pages: int
    total: int
    has_next_page: bool
    has_prev_page: bool


class OrderPageResponse(BaseModel):
    orders: list[OrderView]
    pagination: PaginationView


class RiderStatsResponse(BaseModel):
    rider_id: str
    name: str
    lifetime_earnings: float
    total_deliveries: int
    active_order: OrderView | None = None
