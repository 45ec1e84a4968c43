# Overview: Service-layer operations for return requests.

"""
Return Service

RULES:
- Returns can only be requested against the shopper's own completed orders.
- Every returned productId must appear in the order.
- The quantity requested for a product, summed over all open or approved
  requests for the same order, cannot exceed the quantity ordered.
- Requests start pending; staff approve or reject them via
  `flask returns approve|reject`.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import ReturnRequest
from ..models.orders import (
    ORDER_STATUS_COMPLETED,
    RETURN_STATUS_PENDING,
    RETURN_STATUS_APPROVED,
    RETURN_STATUS_REJECTED,
)
from ..validation import ValidationError
from . import order_service
from .events_service import broker
from storefront.time_utils import utcnow


class ReturnError(Exception):
    pass


class ReturnNotFoundError(ReturnError):
    pass


class ReturnStateError(ReturnError):
    pass


def _already_requested(order_ref: str) -> dict[int, int]:
    counts: dict[int, int] = {}
    requests = (
        db.session.query(ReturnRequest)
        .filter(
            ReturnRequest.order_ref == order_ref,
            ReturnRequest.status.in_([RETURN_STATUS_PENDING, RETURN_STATUS_APPROVED]),
        )
        .all()
    )
    for req in requests:
        for item in req.items or []:
            counts[item["productId"]] = counts.get(item["productId"], 0) + item["quantity"]
    return counts


def create_return(
    user_id: int,
    order_ref: str,
    reason: str,
    items: list[dict],
    additional_notes: str | None = None,
) -> ReturnRequest:
    order = order_service.get_order_for_user(order_ref, user_id)

    if order.status != ORDER_STATUS_COMPLETED:
        raise order_service.OrderStateError(
            "Only completed orders can be returned",
            details={"current_status": order.status},
        )

    ordered = {line["productId"]: line["quantity"] for line in order.items or []}
    requested = _already_requested(order_ref)

    errors = []
    for index, item in enumerate(items):
        pid = item["productId"]
        if pid not in ordered:
            errors.append({"path": ["items", index, "productId"], "message": "Product is not part of this order"})
            continue
        remaining = ordered[pid] - requested.get(pid, 0)
        if item["quantity"] > remaining:
            errors.append({
                "path": ["items", index, "quantity"],
                "message": f"At most {max(remaining, 0)} can be returned",
            })
        requested[pid] = requested.get(pid, 0) + item["quantity"]
    if errors:
        raise ValidationError("Invalid return request", errors)

    req = ReturnRequest(
        order_ref=order_ref,
        user_id=user_id,
        reason=reason,
        items=[dict(item) for item in items],
        additional_notes=additional_notes,
        status=RETURN_STATUS_PENDING,
        created_at=utcnow(),
    )
    db.session.add(req)
    db.session.commit()

    current_app.logger.info("Return request %s created for order %s", req.id, order_ref)
    return req


def list_returns(user_id: int) -> list[ReturnRequest]:
    return (
        db.session.query(ReturnRequest)
        .filter_by(user_id=user_id)
        .order_by(ReturnRequest.created_at.desc(), ReturnRequest.id.desc())
        .all()
    )


def resolve_return(return_id: int, approve: bool) -> ReturnRequest:
    req = db.session.get(ReturnRequest, return_id)
    if req is None:
        raise ReturnNotFoundError(f"Return request {return_id} not found")
    if req.status != RETURN_STATUS_PENDING:
        raise ReturnStateError(f"Return request {return_id} is already {req.status}")

    req.status = RETURN_STATUS_APPROVED if approve else RETURN_STATUS_REJECTED
    req.resolved_at = utcnow()
    db.session.commit()

    broker.publish(
        "return_status",
        {"returnId": req.id, "orderRef": req.order_ref, "status": req.status},
        user_id=req.user_id,
    )
    return req
