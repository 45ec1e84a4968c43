from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z


class CartItem(db.Model):
    """One cart line per (user, product). Last write wins."""
    __tablename__ = "cart_items"
    __table_args__ = (
        db.UniqueConstraint("user_id", "product_id", name="uq_cart_items_user_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False, default=1)

    is_gift = db.Column(db.Boolean, nullable=False, default=False)
    gift_message = db.Column(db.Text, nullable=True)
    # Informational only, never added to totals
    gift_wrap_type = db.Column(db.String(50), nullable=True)
    gift_wrap_cost = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    product = db.relationship("Product")
    user = db.relationship("User", backref=db.backref("cart_items", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "productId": self.product_id,
            "quantity": self.quantity,
            "isGift": self.is_gift,
            "giftMessage": self.gift_message,
            "giftWrapType": self.gift_wrap_type,
            "giftWrapCost": self.gift_wrap_cost,
            "product": self.product.to_dict() if self.product else None,
            "updatedAt": to_utc_z(self.updated_at),
        }
