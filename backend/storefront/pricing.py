# Overview: Checkout pricing rules shared by the order service and the Python client.

"""
All amounts are integer minor currency units (paise). The free shipping
threshold is compared against the subtotal in those same units.
"""

from __future__ import annotations

FREE_SHIPPING_THRESHOLD = 5000
FLAT_SHIPPING_FEE = 599


def line_total(price: int, quantity: int) -> int:
    return price * quantity


def subtotal(lines) -> int:
    """lines: iterable of (price, quantity) pairs."""
    return sum(line_total(price, quantity) for price, quantity in lines)


def shipping_fee(amount: int, threshold: int = FREE_SHIPPING_THRESHOLD,
                 flat_fee: int = FLAT_SHIPPING_FEE) -> int:
    """Free at or above the threshold, flat fee below it."""
    return 0 if amount >= threshold else flat_fee


def order_total(amount: int, threshold: int = FREE_SHIPPING_THRESHOLD,
                flat_fee: int = FLAT_SHIPPING_FEE) -> int:
    return amount + shipping_fee(amount, threshold, flat_fee)


def format_price(amount: int, symbol: str = "₹") -> str:
    """25000 -> '₹250.00'"""
    sign = "-" if amount < 0 else ""
    major, minor = divmod(abs(amount), 100)
    return f"{sign}{symbol}{major:,}.{minor:02d}"
