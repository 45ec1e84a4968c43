# Overview: Service-layer operations for the shopping cart.

"""
Cart Service

One CartItem row per (user, product). Adding a product that is already in
the cart merges into the existing line by adding the quantities, matching
the client reducer's ADD_ITEM. The server enforces quantity >= 1 only; the
upper bound of 10 is a client-side concern.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import CartItem, Product
from storefront.time_utils import utcnow


class CartError(Exception):
    """Raised for cart operation errors."""


class ProductNotFoundError(CartError):
    pass


class CartItemNotFoundError(CartError):
    pass


def get_cart(user_id: int) -> list[CartItem]:
    return (
        db.session.query(CartItem)
        .filter_by(user_id=user_id)
        .order_by(CartItem.id.asc())
        .all()
    )


def cart_subtotal(items: list[CartItem]) -> int:
    """Sum of price x quantity in minor units."""
    return sum(item.product.price * item.quantity for item in items if item.product)


def _get_line(user_id: int, product_id: int) -> CartItem | None:
    return db.session.query(CartItem).filter_by(user_id=user_id, product_id=product_id).first()


def _merge(line: CartItem, quantity: int, is_gift: bool | None, gift_message: str | None) -> None:
    line.quantity = line.quantity + quantity
    if is_gift is not None:
        line.is_gift = is_gift
        line.gift_message = gift_message if is_gift else None
    line.updated_at = utcnow()


def add_item(
    user_id: int,
    product_id: int,
    quantity: int,
    is_gift: bool | None = None,
    gift_message: str | None = None,
) -> CartItem:
    """
    Add a product to the cart or merge into the existing line.

    Gift fields are only touched when is_gift is given, so re-adding a
    product does not wipe a gift message set earlier.
    """
    product = db.session.get(Product, product_id)
    if not product:
        raise ProductNotFoundError("Product not found")

    line = _get_line(user_id, product_id)
    if line is not None:
        _merge(line, quantity, is_gift, gift_message)
        db.session.commit()
        return line

    line = CartItem(
        user_id=user_id,
        product_id=product_id,
        quantity=quantity,
        is_gift=bool(is_gift),
        gift_message=gift_message if is_gift else None,
    )
    db.session.add(line)
    try:
        db.session.commit()
    except IntegrityError:
        # A concurrent add inserted the line first; merge into it instead
        db.session.rollback()
        line = _get_line(user_id, product_id)
        if line is None:
            raise
        current_app.logger.info("Cart add race for user %s product %s; merging", user_id, product_id)
        _merge(line, quantity, is_gift, gift_message)
        db.session.commit()
    return line


def update_quantity(user_id: int, product_id: int, quantity: int) -> CartItem:
    if quantity < 1:
        raise CartError("Quantity must be at least 1")

    line = _get_line(user_id, product_id)
    if line is None:
        raise CartItemNotFoundError("Cart item not found")

    line.quantity = quantity
    line.updated_at = utcnow()
    db.session.commit()
    return line


def update_gift(user_id: int, product_id: int, is_gift: bool, gift_message: str | None = None) -> CartItem:
    line = _get_line(user_id, product_id)
    if line is None:
        raise CartItemNotFoundError("Cart item not found")

    line.is_gift = is_gift
    line.gift_message = gift_message if is_gift else None
    line.updated_at = utcnow()
    db.session.commit()
    return line


def remove_item(user_id: int, product_id: int) -> bool:
    """Delete the line. Returns False when there was nothing to delete."""
    deleted = (
        db.session.query(CartItem)
        .filter_by(user_id=user_id, product_id=product_id)
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return bool(deleted)


def clear_cart(user_id: int, commit: bool = True) -> int:
    """Delete every line for the user. commit=False lets callers batch it."""
    deleted = (
        db.session.query(CartItem)
        .filter_by(user_id=user_id)
        .delete(synchronize_session=False)
    )
    if commit:
        db.session.commit()
    return deleted
