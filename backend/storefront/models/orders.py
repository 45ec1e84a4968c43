from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z

# Order lifecycle
ORDER_STATUS_PENDING = "pending"
ORDER_STATUS_COMPLETED = "completed"
ORDER_STATUS_FAILED = "failed"

# Return request lifecycle
RETURN_STATUS_PENDING = "pending"
RETURN_STATUS_APPROVED = "approved"
RETURN_STATUS_REJECTED = "rejected"


class Order(db.Model):
    """
    Customer order created at checkout.

    items and shipping are JSON snapshots taken when the order is created,
    so historical orders do not change when products are edited.

    LIFECYCLE: pending -> completed | failed (both terminal).
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_ref", name="uq_orders_order_ref"),
        db.UniqueConstraint("user_id", "idempotency_key", name="uq_orders_user_idempotency"),
        db.Index("ix_orders_user_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_ref = db.Column(db.String(64), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=ORDER_STATUS_PENDING, index=True)

    # [{productId, quantity, price, name}]
    items = db.Column(db.JSON, nullable=False)
    # {fullName, address, city, state, pincode, phone}
    shipping = db.Column(db.JSON, nullable=False)

    # All amounts in minor units
    subtotal = db.Column(db.Integer, nullable=False)
    shipping_fee = db.Column(db.Integer, nullable=False, default=0)
    total = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(16), nullable=True)

    # Client supplied token used to dedupe repeated checkout submissions
    idempotency_key = db.Column(db.String(128), nullable=True)

    tracking_number = db.Column(db.String(255), nullable=True)
    tracking_status = db.Column(db.String(50), nullable=True)
    estimated_delivery = db.Column(db.DateTime(timezone=True), nullable=True)

    last_updated = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    user = db.relationship("User", backref=db.backref("orders", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_history: bool = False) -> dict:
        data = {
            "id": self.id,
            "orderRef": self.order_ref,
            "userId": self.user_id,
            "status": self.status,
            "items": list(self.items or []),
            "shipping": dict(self.shipping or {}),
            "subtotal": self.subtotal,
            "shippingFee": self.shipping_fee,
            "total": self.total,
            "paymentMethod": self.payment_method,
            "trackingNumber": self.tracking_number,
            "trackingStatus": self.tracking_status,
            "estimatedDelivery": to_utc_z(self.estimated_delivery) if self.estimated_delivery else None,
            "lastUpdated": to_utc_z(self.last_updated),
            "createdAt": to_utc_z(self.created_at),
        }
        if include_history:
            history = sorted(self.status_history, key=lambda h: (h.timestamp, h.id))
            data["statusHistory"] = [h.to_dict() for h in history]
        return data


class OrderStatusHistory(db.Model):
    """Append-only log of order status changes."""
    __tablename__ = "order_status_history"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    status = db.Column(db.String(50), nullable=False)
    location = db.Column(db.String(255), nullable=True)
    description = db.Column(db.String(255), nullable=False)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", backref=db.backref("status_history", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "orderId": self.order_id,
            "status": self.status,
            "location": self.location,
            "description": self.description,
            "timestamp": to_utc_z(self.timestamp),
        }


class ReturnRequest(db.Model):
    """
    Customer return request against a completed order.

    items: [{productId, quantity, reason}]
    LIFECYCLE: pending -> approved | rejected (resolved by staff via CLI).
    """
    __tablename__ = "return_requests"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_ref = db.Column(db.String(64), db.ForeignKey("orders.order_ref"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    reason = db.Column(db.String(255), nullable=False)
    items = db.Column(db.JSON, nullable=False)
    additional_notes = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default=RETURN_STATUS_PENDING, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "orderRef": self.order_ref,
            "reason": self.reason,
            "status": self.status,
            "items": list(self.items or []),
            "additionalNotes": self.additional_notes,
            "createdAt": to_utc_z(self.created_at),
            "resolvedAt": to_utc_z(self.resolved_at) if self.resolved_at else None,
        }
