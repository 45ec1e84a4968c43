# Overview: Client-side cart state; a pure reducer plus a store that syncs with the API.

"""
Cart store.

reduce(state, action) is a pure function over immutable CartState values.
CartStore owns one state and exposes network-backed operations that call
the server first and dispatch locally only when the call succeeded. On
failure the store dispatches SET_ERROR and re-raises, so callers can test
for AuthRequiredError (message "AUTH_REQUIRED") and open a login prompt.

total is the sum of price * quantity in minor units. Gift wrap cost is
tracked separately and never enters total.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from .. import pricing
from .api import ApiError


MAX_QUANTITY = 10

SET_CART_ITEMS = "SET_CART_ITEMS"
ADD_ITEM = "ADD_ITEM"
REMOVE_ITEM = "REMOVE_ITEM"
UPDATE_QUANTITY = "UPDATE_QUANTITY"
UPDATE_GIFT = "UPDATE_GIFT"
UPDATE_GIFT_WRAP = "UPDATE_GIFT_WRAP"
SET_LOADING = "SET_LOADING"
SET_ERROR = "SET_ERROR"
CLEAR_CART = "CLEAR_CART"
SET_DISCOUNT = "SET_DISCOUNT"
CLEAR_DISCOUNT = "CLEAR_DISCOUNT"


@dataclass(frozen=True)
class CartLine:
    product: Dict[str, Any]
    quantity: int
    is_gift: bool = False
    gift_message: Optional[str] = None

    @property
    def product_id(self) -> int:
        return self.product["id"]


@dataclass(frozen=True)
class GiftWrap:
    type: Optional[str] = None
    cost: int = 0


@dataclass(frozen=True)
class Discount:
    code: str
    percent: int


@dataclass(frozen=True)
class CartState:
    items: Tuple[CartLine, ...] = ()
    total: int = 0
    gift_wrap: GiftWrap = field(default_factory=GiftWrap)
    discount: Optional[Discount] = None
    is_loading: bool = False
    error: Optional[str] = None


@dataclass(frozen=True)
class Action:
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)


def calculate_total(items) -> int:
    return sum(line.product["price"] * line.quantity for line in items)


def _with_items(state: CartState, items) -> CartState:
    items = tuple(items)
    return replace(state, items=items, total=calculate_total(items))


def line_from_server(data: Dict[str, Any]) -> CartLine:
    """Build a CartLine from a /api/cart row (camelCase, product embedded)."""
    return CartLine(
        product=data["product"],
        quantity=data["quantity"],
        is_gift=bool(data.get("isGift")),
        gift_message=data.get("giftMessage"),
    )


def reduce(state: CartState, action: Action) -> CartState:
    payload = action.payload

    if action.type == SET_CART_ITEMS:
        return replace(_with_items(state, payload["items"]), is_loading=False, error=None)

    if action.type == ADD_ITEM:
        product = payload["product"]
        quantity = payload.get("quantity") or 1
        if any(line.product_id == product["id"] for line in state.items):
            items = [
                replace(line, quantity=line.quantity + quantity) if line.product_id == product["id"] else line
                for line in state.items
            ]
        else:
            items = list(state.items) + [CartLine(product=product, quantity=quantity)]
        return _with_items(state, items)

    if action.type == REMOVE_ITEM:
        return _with_items(state, [line for line in state.items if line.product_id != payload["product_id"]])

    if action.type == UPDATE_QUANTITY:
        if payload["quantity"] < 1:
            return state
        return _with_items(state, [
            replace(line, quantity=payload["quantity"]) if line.product_id == payload["product_id"] else line
            for line in state.items
        ])

    if action.type == UPDATE_GIFT:
        is_gift = payload["is_gift"]
        return replace(state, items=tuple(
            replace(line, is_gift=is_gift, gift_message=payload.get("gift_message") if is_gift else None)
            if line.product_id == payload["product_id"] else line
            for line in state.items
        ))

    if action.type == UPDATE_GIFT_WRAP:
        return replace(state, gift_wrap=GiftWrap(type=payload.get("type"), cost=payload.get("cost", 0)))

    if action.type == SET_LOADING:
        return replace(state, is_loading=bool(payload["is_loading"]))

    if action.type == SET_ERROR:
        return replace(state, error=payload.get("error"), is_loading=False)

    if action.type == CLEAR_CART:
        return replace(state, items=(), total=0, discount=None)

    if action.type == SET_DISCOUNT:
        return replace(state, discount=Discount(code=payload["code"], percent=payload["percent"]))

    if action.type == CLEAR_DISCOUNT:
        return replace(state, discount=None)

    return state


class CartStore:
    """
    Single owner of cart state for one shopper session.

    api is a StorefrontClient (or anything with the same cart methods).
    pending_updates holds product ids with a request in flight, for
    disabling per-line controls.
    """

    def __init__(self, api, state: Optional[CartState] = None):
        self.api = api
        self.state = state or CartState()
        self.pending_updates: Set[int] = set()
        self._listeners: List[Callable[[CartState], None]] = []

    def subscribe(self, listener: Callable[[CartState], None]) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def dispatch(self, action: Action) -> CartState:
        new_state = reduce(self.state, action)
        if new_state is not self.state:
            self.state = new_state
            for listener in list(self._listeners):
                listener(new_state)
        return self.state

    def _fail(self, exc: Exception) -> None:
        message = exc.message if isinstance(exc, ApiError) else str(exc)
        self.dispatch(Action(SET_ERROR, {"error": message}))

    def _line(self, product_id: int) -> Optional[CartLine]:
        return next((line for line in self.state.items if line.product_id == product_id), None)

    def refresh(self) -> CartState:
        self.dispatch(Action(SET_LOADING, {"is_loading": True}))
        try:
            rows = self.api.get_cart()
        except Exception as exc:
            self._fail(exc)
            raise
        return self.dispatch(Action(SET_CART_ITEMS, {"items": [line_from_server(row) for row in rows]}))

    def add_item(self, product: Dict[str, Any], quantity: int = 1) -> CartState:
        """Add up to the per-line maximum; quantities below 1 are ignored."""
        if quantity < 1:
            return self.state
        existing = self._line(product["id"])
        quantity = min(quantity, MAX_QUANTITY - (existing.quantity if existing else 0))
        if quantity < 1:
            return self.state

        self.pending_updates.add(product["id"])
        try:
            self.api.add_to_cart(product["id"], quantity)
        except Exception as exc:
            self._fail(exc)
            raise
        finally:
            self.pending_updates.discard(product["id"])
        return self.dispatch(Action(ADD_ITEM, {"product": product, "quantity": quantity}))

    def remove_item(self, product_id: int) -> CartState:
        self.pending_updates.add(product_id)
        try:
            self.api.remove_from_cart(product_id)
        except Exception as exc:
            self._fail(exc)
            raise
        finally:
            self.pending_updates.discard(product_id)
        return self.dispatch(Action(REMOVE_ITEM, {"product_id": product_id}))

    def update_quantity(self, product_id: int, quantity: int) -> CartState:
        if quantity < 1:
            return self.state
        quantity = min(quantity, MAX_QUANTITY)

        self.pending_updates.add(product_id)
        try:
            self.api.update_quantity(product_id, quantity)
        except Exception as exc:
            self._fail(exc)
            raise
        finally:
            self.pending_updates.discard(product_id)
        return self.dispatch(Action(UPDATE_QUANTITY, {"product_id": product_id, "quantity": quantity}))

    def update_gift(self, product_id: int, is_gift: bool, gift_message: Optional[str] = None) -> CartState:
        self.pending_updates.add(product_id)
        try:
            self.api.update_gift(product_id, is_gift, gift_message)
        except Exception as exc:
            self._fail(exc)
            raise
        finally:
            self.pending_updates.discard(product_id)
        return self.dispatch(Action(UPDATE_GIFT, {
            "product_id": product_id, "is_gift": is_gift, "gift_message": gift_message,
        }))

    def set_gift_wrap(self, wrap_type: Optional[str], cost: int) -> CartState:
        return self.dispatch(Action(UPDATE_GIFT_WRAP, {"type": wrap_type, "cost": cost}))

    def apply_discount(self, code: str, percent: int) -> CartState:
        return self.dispatch(Action(SET_DISCOUNT, {"code": code, "percent": percent}))

    def clear_discount(self) -> CartState:
        return self.dispatch(Action(CLEAR_DISCOUNT))

    def clear_cart(self) -> CartState:
        try:
            self.api.clear_cart()
        except Exception as exc:
            self._fail(exc)
            raise
        return self.dispatch(Action(CLEAR_CART))

    def checkout_summary(self) -> Dict[str, Any]:
        """Figures shown on the checkout page; the server recomputes them."""
        amount = self.state.total
        fee = pricing.shipping_fee(amount)
        return {
            "subtotal": amount,
            "shipping": fee,
            "total": amount + fee,
            "display": pricing.format_price(amount + fee),
        }

    def checkout_lines(self) -> List[Dict[str, int]]:
        """Items payload for POST /api/checkout."""
        return [{"productId": line.product_id, "quantity": line.quantity} for line in self.state.items]

    def payment_completed(self) -> CartState:
        """The server already emptied the cart when the order completed."""
        return self.dispatch(Action(CLEAR_CART))
