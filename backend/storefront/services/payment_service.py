# Overview: Simulated UPI payment; payment page payload and payment results.

from __future__ import annotations

from urllib.parse import urlencode

from flask import current_app

from ..models import Order
from . import order_service


def upi_uri(order: Order) -> str:
    """upi://pay deep link for QR rendering; amount in major units."""
    params = {
        "pa": current_app.config.get("UPI_ID", "khush@upi"),
        "pn": current_app.config.get("UPI_MERCHANT_NAME", "KHUSH.IN"),
        "am": f"{order.total / 100:.2f}",
        "cu": "INR",
        "tn": f"Order {order.order_ref}",
    }
    return "upi://pay?" + urlencode(params)


def payment_details(order: Order) -> dict:
    return {
        "status": order.status,
        "upiId": current_app.config.get("UPI_ID", "khush@upi"),
        "merchantName": current_app.config.get("UPI_MERCHANT_NAME", "KHUSH.IN"),
        "amount": order.total,
        "orderRef": order.order_ref,
        "upiUri": upi_uri(order),
    }


def record_payment_result(order_ref: str, user_id: int, status: str, method: str) -> Order:
    """
    Apply the shopper-reported payment outcome.

    There is no gateway callback; the payment page reports the result
    itself, so this simply drives the order state machine.
    """
    current_app.logger.info("Payment result for %s: %s via %s", order_ref, status, method)
    return order_service.update_status(order_ref, user_id, status, payment_method=method)
