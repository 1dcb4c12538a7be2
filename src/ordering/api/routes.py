"""FastAPI routes for the ordering context: products, orders, riders and delivery tasks."""

import json

from fastapi import APIRouter, Depends, File, Query, UploadFile
from protean.utils.globals import current_domain

from ordering.api.identity import Actor, Role, current_actor
from ordering.api.schemas import (
    CancelOrderRequest,
    CheckoutRequest,
    CreateOrderRequest,
    CreatePaidOrderRequest,
    DeliveryView,
    OrderIdResponse,
    OrderItemView,
    OrderPageResponse,
    OrderView,
    PaymentSourceRequest,
    PaymentSourceResponse,
    ProductIdResponse,
    ProofResponse,
    RegisterProductRequest,
    RegisterRiderRequest,
    RestockProductRequest,
    RiderIdResponse,
    RiderStatsResponse,
    StatusEntryView,
    StatusResponse,
    StockResponse,
    TaskView,
    ValidationResponse,
)
from ordering.catalogue.management import DeactivateProduct, RegisterProduct, RestockProduct
from ordering.delivery import queries
from ordering.delivery.assignment import AcceptTask
from ordering.delivery.proof import DELIVERY, PICKUP, submit_proof
from ordering.delivery.registration import RegisterRider
from ordering.delivery.validation import ValidateDelivery, ValidatePickup
from ordering.order.cancellation import CancelOrder
from ordering.order.checkout import check_out, create_payment_source
from ordering.order.creation import CreateOrder, CreatePaidOrder
from ordering.order.receipt import ConfirmReceipt
from ordering.utils.concurrency import run_with_retry


def order_view(order) -> OrderView:
    """Render an Order aggregate as its API representation."""
    delivery = order.delivery
    return OrderView(
        order_id=str(order.id),
        customer_id=str(order.customer_id),
        status=order.status,
        items=[
            OrderItemView(
                product_id=str(item.product_id),
                name=item.name,
                image=item.image,
                unit_price=item.unit_price,
                quantity=item.quantity,
                line_subtotal=item.line_subtotal,
            )
            for item in order.ordered_items()
        ],
        items_subtotal=order.pricing.items_subtotal,
        vat=order.pricing.vat,
        shipping_fee=order.pricing.shipping_fee,
        total_amount=order.pricing.total_amount,
        currency=order.pricing.currency,
        payment_method=order.payment_method,
        payment_reference=order.payment_reference,
        shipping_address=order.shipping_address,
        assigned_rider_id=str(order.assigned_rider_id) if order.assigned_rider_id else None,
        delivery=DeliveryView(
            latitude=delivery.latitude,
            longitude=delivery.longitude,
            estimated_delivery=delivery.estimated_delivery,
            assigned_at=delivery.assigned_at,
            pickup_proof_url=delivery.pickup_proof_url,
            pickup_completed_at=delivery.pickup_completed_at,
            pickup_validated=bool(delivery.pickup_validated),
            pickup_validated_at=delivery.pickup_validated_at,
            delivery_proof_url=delivery.delivery_proof_url,
            delivered_at=delivery.delivered_at,
            delivery_validated=bool(delivery.delivery_validated),
            delivery_validated_at=delivery.delivery_validated_at,
        ),
        cancellation_deadline=order.cancellation_deadline,
        can_cancel=bool(order.can_cancel),
        cancellation_reason=order.cancellation_reason,
        cancelled_at=order.cancelled_at,
        status_history=[
            StatusEntryView(status=entry.status, actor_id=str(entry.actor_id), recorded_at=entry.recorded_at)
            for entry in order.history()
        ],
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def task_view(order, delivery_fee) -> TaskView:
    return TaskView(**order_view(order).model_dump(), delivery_fee=delivery_fee)


def _lines(body: CreateOrderRequest) -> str:
    return json.dumps([line.model_dump() for line in body.items])


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.post("", status_code=201, response_model=ProductIdResponse)
async def register_product(body: RegisterProductRequest, actor: Actor = Depends(current_actor)) -> ProductIdResponse:
    actor.require(Role.ADMIN)
    command = RegisterProduct(
        name=body.name,
        price=body.price,
        stock=body.stock,
        image=body.image,
    )
    result = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=result)


@product_router.put("/{product_id}/restock", response_model=StockResponse)
async def restock_product(
    product_id: str, body: RestockProductRequest, actor: Actor = Depends(current_actor)
) -> StockResponse:
    actor.require(Role.ADMIN)
    command = RestockProduct(product_id=product_id, quantity=body.quantity)
    stock = run_with_retry(lambda: current_domain.process(command, asynchronous=False))
    return StockResponse(product_id=product_id, stock=stock)


@product_router.put("/{product_id}/deactivate", response_model=StatusResponse)
async def deactivate_product(product_id: str, actor: Actor = Depends(current_actor)) -> StatusResponse:
    actor.require(Role.ADMIN)
    current_domain.process(DeactivateProduct(product_id=product_id), asynchronous=False)
    return StatusResponse(status="deactivated")


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def create_order(body: CreateOrderRequest, actor: Actor = Depends(current_actor)) -> OrderIdResponse:
    actor.require(Role.CUSTOMER)
    command = CreateOrder(
        customer_id=actor.user_id,
        items=_lines(body),
        payment_method=body.payment_method,
        shipping_address=body.shipping_address,
        latitude=body.latitude,
        longitude=body.longitude,
    )
    result = current_domain.process(command, asynchronous=False)
    return OrderIdResponse(order_id=result)


@order_router.post("/paid", status_code=201, response_model=OrderIdResponse)
async def create_paid_order(body: CreatePaidOrderRequest, actor: Actor = Depends(current_actor)) -> OrderIdResponse:
    actor.require(Role.CUSTOMER)
    command = CreatePaidOrder(
        customer_id=actor.user_id,
        items=_lines(body),
        payment_method=body.payment_method,
        payment_reference=body.payment_reference,
        shipping_address=body.shipping_address,
        latitude=body.latitude,
        longitude=body.longitude,
    )
    result = run_with_retry(lambda: current_domain.process(command, asynchronous=False))
    return OrderIdResponse(order_id=result)


@order_router.get("", response_model=OrderPageResponse)
async def list_orders(
    status: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    actor: Actor = Depends(current_actor),
) -> OrderPageResponse:
    actor.require(Role.CUSTOMER)
    result = queries.list_customer_orders(actor.user_id, status=status, page=page, limit=limit)
    return OrderPageResponse(
        orders=[order_view(order) for order in result["orders"]],
        pagination=result["pagination"],
    )


@order_router.get("/{order_id}", response_model=OrderView)
async def get_order(order_id: str, actor: Actor = Depends(current_actor)) -> OrderView:
    return order_view(queries.get_order(order_id, actor.user_id, actor.role.value))


@order_router.post("/{order_id}/payment-source", status_code=201, response_model=PaymentSourceResponse)
async def create_source(
    order_id: str, body: PaymentSourceRequest, actor: Actor = Depends(current_actor)
) -> PaymentSourceResponse:
    actor.require(Role.CUSTOMER)
    source = create_payment_source(order_id, actor.user_id, body.source_type, body.redirect_url)
    return PaymentSourceResponse(
        source_id=source.source_id,
        status=source.status,
        amount=source.amount,
        currency=source.currency,
        checkout_url=source.checkout_url,
        client_secret=source.client_secret,
    )


@order_router.put("/{order_id}/checkout", response_model=OrderView)
async def checkout_order(order_id: str, body: CheckoutRequest, actor: Actor = Depends(current_actor)) -> OrderView:
    actor.require(Role.CUSTOMER)
    check_out(
        order_id,
        actor.user_id,
        source_id=body.source_id,
        payment_reference=body.payment_reference,
    )
    return order_view(queries.get_order(order_id, actor.user_id, actor.role.value))


@order_router.put("/{order_id}/cancel", response_model=OrderView)
async def cancel_order(order_id: str, body: CancelOrderRequest, actor: Actor = Depends(current_actor)) -> OrderView:
    actor.require(Role.CUSTOMER)
    command = CancelOrder(
        order_id=order_id,
        customer_id=actor.user_id,
        reason=body.cancellation_reason,
    )
    run_with_retry(lambda: current_domain.process(command, asynchronous=False))
    return order_view(queries.get_order(order_id, actor.user_id, actor.role.value))


@order_router.put("/{order_id}/confirm-receipt", response_model=OrderView)
async def confirm_receipt(order_id: str, actor: Actor = Depends(current_actor)) -> OrderView:
    actor.require(Role.CUSTOMER)
    command = ConfirmReceipt(order_id=order_id, customer_id=actor.user_id)
    run_with_retry(lambda: current_domain.process(command, asynchronous=False))
    return order_view(queries.get_order(order_id, actor.user_id, actor.role.value))


# ---------------------------------------------------------------------------
# Rider Router
# ---------------------------------------------------------------------------
rider_router = APIRouter(prefix="/riders", tags=["riders"])


@rider_router.post("", status_code=201, response_model=RiderIdResponse)
async def register_rider(body: RegisterRiderRequest, actor: Actor = Depends(current_actor)) -> RiderIdResponse:
    actor.require(Role.DELIVERY)
    result = current_domain.process(RegisterRider(rider_id=actor.user_id, name=body.name), asynchronous=False)
    return RiderIdResponse(rider_id=result)


# ---------------------------------------------------------------------------
# Delivery Router
# ---------------------------------------------------------------------------
delivery_router = APIRouter(prefix="/delivery", tags=["delivery"])


@delivery_router.get("/available", response_model=list[TaskView])
async def list_available(actor: Actor = Depends(current_actor)) -> list[TaskView]:
    actor.require(Role.DELIVERY)
    return [task_view(order, fee) for order, fee in queries.list_available()]


@delivery_router.get("/my", response_model=list[TaskView])
async def my_tasks(actor: Actor = Depends(current_actor)) -> list[TaskView]:
    actor.require(Role.DELIVERY)
    return [task_view(order, fee) for order, fee in queries.my_tasks(actor.user_id)]


@delivery_router.get("/stats", response_model=RiderStatsResponse)
async def rider_stats(actor: Actor = Depends(current_actor)) -> RiderStatsResponse:
    actor.require(Role.DELIVERY)
    stats = queries.rider_stats(actor.user_id)
    active_order = stats.pop("active_order")
    return RiderStatsResponse(**stats, active_order=order_view(active_order) if active_order else None)


@delivery_router.get("/tasks", response_model=list[OrderView])
async def list_tasks(
    status: str | None = None,
    assigned: bool | None = None,
    actor: Actor = Depends(current_actor),
) -> list[OrderView]:
    actor.require(Role.ADMIN)
    return [order_view(order) for order in queries.list_tasks(status=status, assigned=assigned)]


@delivery_router.post("/{order_id}/accept", response_model=OrderView)
async def accept_task(order_id: str, actor: Actor = Depends(current_actor)) -> OrderView:
    actor.require(Role.DELIVERY)
    current_domain.process(AcceptTask(order_id=order_id, rider_id=actor.user_id), asynchronous=False)
    return order_view(queries.get_order(order_id, actor.user_id, actor.role.value))


@delivery_router.put("/{order_id}/pickup-proof", response_model=ProofResponse)
async def upload_pickup_proof(
    order_id: str, file: UploadFile = File(...), actor: Actor = Depends(current_actor)
) -> ProofResponse:
    actor.require(Role.DELIVERY)
    data = await file.read()
    url = submit_proof(order_id, actor.user_id, PICKUP, data, file.content_type)
    return ProofResponse(proof_url=url)


@delivery_router.put("/{order_id}/delivery-proof", response_model=ProofResponse)
async def upload_delivery_proof(
    order_id: str, file: UploadFile = File(...), actor: Actor = Depends(current_actor)
) -> ProofResponse:
    actor.require(Role.DELIVERY)
    data = await file.read()
    url = submit_proof(order_id, actor.user_id, DELIVERY, data, file.content_type)
    return ProofResponse(proof_url=url)


@delivery_router.put("/{order_id}/validate-pickup", response_model=ValidationResponse)
async def validate_pickup(order_id: str, actor: Actor = Depends(current_actor)) -> ValidationResponse:
    actor.require(Role.ADMIN)
    command = ValidatePickup(order_id=order_id, admin_id=actor.user_id)
    outcome = run_with_retry(lambda: current_domain.process(command, asynchronous=False))
    return ValidationResponse(order_id=order_id, outcome=outcome)


@delivery_router.put("/{order_id}/validate-delivery", response_model=ValidationResponse)
async def validate_delivery(order_id: str, actor: Actor = Depends(current_actor)) -> ValidationResponse:
    actor.require(Role.ADMIN)
    command = ValidateDelivery(order_id=order_id, admin_id=actor.user_id)
    outcome = run_with_retry(lambda: current_domain.process(command, asynchronous=False))
    return ValidationResponse(order_id=order_id, outcome=outcome)
