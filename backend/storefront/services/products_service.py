# Overview: Service-layer operations for products; catalog reads and seeding.

from __future__ import annotations

from ..extensions import db
from ..models import Product
from ..validation import ValidationError, enforce_rules_product


CATEGORIES = {
    "lighters": "Luxury Lighters",
    "refueling": "Refueling Solutions",
}

MIN_SEARCH_LENGTH = 2

# Starter catalog loaded by `flask catalog seed`
DEFAULT_CATALOG = [
    {
        "name": "Aurum Classic Lighter",
        "description": "Hand-polished brass windproof lighter with a signature flame chime.",
        "price": 1249900,
        "category": "lighters",
        "collection": "premium",
        "images": ["/images/products/aurum-classic-1.jpg", "/images/products/aurum-classic-2.jpg"],
        "customizable": True,
        "features": {"material": "brass", "flame": "windproof", "engraving": True},
    },
    {
        "name": "Noir Jet Flame",
        "description": "Matte black triple jet torch lighter for cigars.",
        "price": 899900,
        "category": "lighters",
        "collection": "standard",
        "images": ["/images/products/noir-jet-1.jpg"],
        "customizable": False,
        "features": {"material": "zinc alloy", "flame": "triple jet"},
    },
    {
        "name": "Heritage Engraved Lighter",
        "description": "Sterling silver lighter with bespoke hand engraving.",
        "price": 2499900,
        "category": "lighters",
        "collection": "premium",
        "images": ["/images/products/heritage-1.jpg", "/images/products/heritage-2.jpg"],
        "customizable": True,
        "features": {"material": "sterling silver", "engraving": True, "giftBox": True},
    },
    {
        "name": "Premium Butane Refill",
        "description": "Five times refined butane, 300 ml, with universal adapters.",
        "price": 99900,
        "category": "refueling",
        "collection": "standard",
        "images": ["/images/products/butane-refill-1.jpg"],
        "customizable": False,
        "features": {"volume_ml": 300, "adapters": 5},
    },
    {
        "name": "Flint & Wick Service Kit",
        "description": "Replacement flints, wicks and a cleaning brush for petrol lighters.",
        "price": 2900,
        "category": "refueling",
        "collection": "standard",
        "images": ["/images/products/service-kit-1.jpg"],
        "customizable": False,
        "features": {"flints": 12, "wicks": 2},
    },
]


def list_products(category: str | None = None, query: str | None = None) -> list[Product]:
    """List catalog products, optionally filtered by category and/or text query."""
    q = db.session.query(Product)
    if category:
        q = q.filter(db.func.lower(Product.category) == category.lower())
    if query:
        like = f"%{query.lower()}%"
        q = q.filter(db.or_(
            db.func.lower(Product.name).like(like),
            db.func.lower(Product.description).like(like),
            db.func.lower(Product.category).like(like),
            db.func.lower(Product.collection).like(like),
        ))
    return q.order_by(Product.id.asc()).all()


def get_product(product_id: int) -> Product | None:
    return db.session.get(Product, product_id)


def search_products(query: str) -> list[Product]:
    """Case-insensitive search over name, description, category and collection."""
    query = (query or "").strip()
    if len(query) < MIN_SEARCH_LENGTH:
        raise ValidationError(f"Search query must be at least {MIN_SEARCH_LENGTH} characters")
    return list_products(query=query)


def create_product(patch: dict, commit: bool = True) -> Product:
    """Create a catalog product (seed and admin tooling only)."""
    enforce_rules_product(patch)
    product = Product(
        name=patch["name"],
        description=patch["description"],
        price=patch["price"],
        category=patch["category"],
        collection=patch.get("collection") or "standard",
        images=list(patch.get("images") or []),
        customizable=bool(patch.get("customizable", False)),
        features=dict(patch.get("features") or {}),
    )
    db.session.add(product)
    if commit:
        db.session.commit()
    return product


def seed_catalog(products: list[dict] | None = None) -> int:
    """
    Load products whose name is not yet in the catalog.

    Idempotent: re-running only inserts missing names. Returns count created.
    """
    products = products if products is not None else DEFAULT_CATALOG
    existing = {name for (name,) in db.session.query(Product.name).all()}
    created = 0
    for patch in products:
        if patch["name"] in existing:
            continue
        create_product(patch, commit=False)
        existing.add(patch["name"])
        created += 1
    db.session.commit()
    return created
