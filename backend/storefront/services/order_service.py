# Overview: Service-layer operations for orders; checkout, status transitions, tracking.

"""
Order Service

LIFECYCLE:
1. Checkout creates the order (pending) with a point-in-time snapshot of
   item prices/names and the shipping address.
2. A payment result moves it to completed or failed. Both are terminal.

On completion the shopper's cart is cleared and loyalty points are credited
in the same transaction as the status change, so a failure cannot leave a
paid order next to a stale cart.

Checkout accepts an optional idempotency key; resubmitting with the same key
returns the original order instead of creating a duplicate.
"""

from __future__ import annotations

import secrets
from datetime import timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Order, OrderStatusHistory, Product
from ..models.orders import ORDER_STATUS_PENDING, ORDER_STATUS_COMPLETED, ORDER_STATUS_FAILED
from ..validation import ValidationError
from .. import pricing
from . import cart_service, loyalty_service
from .events_service import broker
from .concurrency import lock_for_update, run_with_retry
from storefront.time_utils import utcnow


ALLOWED_TRANSITIONS = {
    ORDER_STATUS_PENDING: {ORDER_STATUS_COMPLETED, ORDER_STATUS_FAILED},
    ORDER_STATUS_COMPLETED: set(),
    ORDER_STATUS_FAILED: set(),
}

# Post-payment fulfilment steps, set by staff via `flask orders track`
TRACKING_STATUSES = ("processing", "shipped", "in_transit", "out_for_delivery", "delivered")

PAYMENT_METHOD_LABELS = {"upi": "UPI", "cod": "Cash on Delivery"}


class OrderError(Exception):
    """Raised for order operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class OrderNotFoundError(OrderError):
    pass


class OrderAccessError(OrderError):
    pass


class OrderStateError(OrderError):
    pass


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def generate_order_ref() -> str:
    """Opaque 16 hex character reference, distinct from the numeric id."""
    while True:
        ref = secrets.token_hex(8)
        if not db.session.query(Order.id).filter_by(order_ref=ref).first():
            return ref


def shipping_fee_for(amount: int) -> int:
    return pricing.shipping_fee(
        amount,
        threshold=current_app.config.get("FREE_SHIPPING_THRESHOLD", pricing.FREE_SHIPPING_THRESHOLD),
        flat_fee=current_app.config.get("FLAT_SHIPPING_FEE", pricing.FLAT_SHIPPING_FEE),
    )


def snapshot_items(items: list[dict]) -> tuple[list[dict], int]:
    """
    Price requested items from the catalog.

    Duplicate productIds are merged. Returns (snapshot, subtotal) where each
    snapshot entry is {productId, quantity, price, name}.
    """
    merged: dict[int, int] = {}
    for item in items:
        merged[item["product_id"]] = merged.get(item["product_id"], 0) + item["quantity"]

    products = {
        p.id: p
        for p in db.session.query(Product).filter(Product.id.in_(list(merged))).all()
    }

    missing = [pid for pid in merged if pid not in products]
    if missing:
        raise ValidationError(
            "Invalid order data",
            [{"path": ["items"], "message": f"Product not found: {pid}"} for pid in missing],
        )

    snapshot = [
        {
            "productId": pid,
            "quantity": qty,
            "price": products[pid].price,
            "name": products[pid].name,
        }
        for pid, qty in merged.items()
    ]
    amount = pricing.subtotal((line["price"], line["quantity"]) for line in snapshot)
    return snapshot, amount


def _find_by_idempotency_key(user_id: int, key: str) -> Order | None:
    return db.session.query(Order).filter_by(user_id=user_id, idempotency_key=key).first()


def _append_history(order: Order, status: str, description: str, location: str | None = None) -> None:
    db.session.add(OrderStatusHistory(
        order_id=order.id,
        status=status,
        location=location,
        description=description,
        timestamp=utcnow(),
    ))


def create_order(
    user_id: int,
    items: list[dict],
    shipping: dict,
    idempotency_key: str | None = None,
    client_total: int | None = None,
    clear_cart: bool = False,
) -> tuple[Order, bool]:
    """
    Create a pending order from validated checkout data.

    Returns (order, created). created is False when the idempotency key
    matched an order this user already placed. clear_cart=True empties the
    shopper's cart in the same transaction as the insert (POST /api/orders).
    """
    if idempotency_key:
        existing = _find_by_idempotency_key(user_id, idempotency_key)
        if existing:
            current_app.logger.info(
                "Checkout replay for user %s with key %s -> %s", user_id, idempotency_key, existing.order_ref
            )
            return existing, False

    snapshot, amount = snapshot_items(items)
    fee = shipping_fee_for(amount)
    total = amount + fee

    if client_total is not None and client_total not in (amount, total):
        current_app.logger.warning(
            "Checkout total mismatch for user %s: client=%s server=%s", user_id, client_total, total
        )

    order = Order(
        order_ref=generate_order_ref(),
        user_id=user_id,
        status=ORDER_STATUS_PENDING,
        items=snapshot,
        shipping=dict(shipping),
        subtotal=amount,
        shipping_fee=fee,
        total=total,
        idempotency_key=idempotency_key,
        last_updated=utcnow(),
    )
    db.session.add(order)

    try:
        db.session.flush()
        _append_history(order, ORDER_STATUS_PENDING, "Order placed, awaiting payment")
        if clear_cart:
            cart_service.clear_cart(user_id, commit=False)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        if idempotency_key:
            existing = _find_by_idempotency_key(user_id, idempotency_key)
            if existing:
                return existing, False
        raise

    current_app.logger.info(
        "Order %s created for user %s: %s items, total %s",
        order.order_ref, user_id, len(snapshot), total,
    )
    broker.publish("order_created", {"orderRef": order.order_ref, "status": order.status}, user_id=user_id)
    return order, True


def get_order(order_ref: str) -> Order | None:
    return db.session.query(Order).filter_by(order_ref=order_ref).first()


def get_order_for_user(order_ref: str, user_id: int) -> Order:
    order = get_order(order_ref)
    if not order:
        raise OrderNotFoundError("Order not found")
    if order.user_id != user_id:
        raise OrderAccessError("You don't have permission to access this order")
    return order


def list_orders(user_id: int) -> list[Order]:
    """Orders for a user, newest first."""
    return (
        db.session.query(Order)
        .filter_by(user_id=user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def update_status(order_ref: str, user_id: int, status: str, payment_method: str | None = None) -> Order:
    """
    Apply a payment result to an order.

    pending -> completed | failed. Anything else raises OrderStateError.
    """
    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(order_ref=order_ref)).first()
        if not order:
            raise OrderNotFoundError("Order not found")
        if order.user_id != user_id:
            raise OrderAccessError("You don't have permission to modify this order")

        if not can_transition(order.status, status):
            raise OrderStateError(
                f"Cannot change order status from {order.status} to {status}",
                details={"current_status": order.status, "requested_status": status},
            )

        now = utcnow()
        order.status = status
        order.payment_method = payment_method
        order.last_updated = now

        method_label = PAYMENT_METHOD_LABELS.get(payment_method, payment_method or "unknown method")
        if status == ORDER_STATUS_COMPLETED:
            order.tracking_status = "processing"
            order.estimated_delivery = now + timedelta(
                days=current_app.config.get("DELIVERY_ESTIMATE_DAYS", 7)
            )
            _append_history(order, status, f"Payment confirmed via {method_label}")
            cart_service.clear_cart(order.user_id, commit=False)
            loyalty_service.award_order_points(order)
        else:
            _append_history(order, status, f"Payment failed via {method_label}")

        db.session.commit()
        return order

    order = run_with_retry(_op)

    current_app.logger.info("Order %s status -> %s (%s)", order.order_ref, order.status, payment_method)
    broker.publish(
        "order_status",
        {"orderRef": order.order_ref, "status": order.status},
        user_id=order.user_id,
    )
    return order


def update_tracking(
    order_ref: str,
    tracking_status: str,
    tracking_number: str | None = None,
    location: str | None = None,
    description: str | None = None,
) -> Order:
    """
    Record a fulfilment step (staff action). Only paid orders can be tracked.
    """
    if tracking_status not in TRACKING_STATUSES:
        raise OrderError(f"Unknown tracking status: {tracking_status}")

    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(order_ref=order_ref)).first()
        if not order:
            raise OrderNotFoundError("Order not found")
        if order.status != ORDER_STATUS_COMPLETED:
            raise OrderStateError("Only completed orders can be tracked")

        order.tracking_status = tracking_status
        if tracking_number:
            order.tracking_number = tracking_number
        order.last_updated = utcnow()
        _append_history(
            order,
            tracking_status,
            description or f"Order {tracking_status.replace('_', ' ')}",
            location=location,
        )
        db.session.commit()
        return order

    order = run_with_retry(_op)
    broker.publish(
        "order_tracking",
        {"orderRef": order.order_ref, "trackingStatus": order.tracking_status},
        user_id=order.user_id,
    )
    return order
