from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z


class Product(db.Model):
    """
    Catalog product.

    Prices are integer minor currency units (paise). Products are seeded and
    administered out of band; the storefront only reads them.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    price = db.Column(db.Integer, nullable=False)
    category = db.Column(db.String(64), nullable=False)
    collection = db.Column(db.String(64), nullable=False, default="standard")

    # Ordered list of image URLs
    images = db.Column(db.JSON, nullable=False, default=list)
    customizable = db.Column(db.Boolean, nullable=False, default=False)

    # Opaque feature map rendered by the product page
    features = db.Column(db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "category": self.category,
            "collection": self.collection,
            "images": list(self.images or []),
            "customizable": self.customizable,
            "features": dict(self.features or {}),
            "created_at": to_utc_z(self.created_at),
        }
