# Overview: Pytest coverage for the client cart reducer and store.

import pytest

from storefront.client.api import ApiError, AuthRequiredError
from storefront.client.cart_store import (
    ADD_ITEM,
    CLEAR_CART,
    MAX_QUANTITY,
    REMOVE_ITEM,
    SET_CART_ITEMS,
    SET_DISCOUNT,
    SET_ERROR,
    UPDATE_GIFT_WRAP,
    UPDATE_QUANTITY,
    Action,
    CartLine,
    CartState,
    CartStore,
    calculate_total,
    line_from_server,
    reduce,
)


LIGHTER = {"id": 1, "name": "Aurum Classic Lighter", "price": 10000}
CASE = {"id": 2, "name": "Leather Case", "price": 1500}


class FakeApi:
    """Records cart calls; raises `error` when set."""

    def __init__(self, rows=None):
        self.calls = []
        self.rows = rows or []
        self.error = None

    def _record(self, name, *args):
        self.calls.append((name, *args))
        if self.error is not None:
            raise self.error
        return {"message": "ok", "cart": []}

    def get_cart(self):
        self.calls.append(("get_cart",))
        if self.error is not None:
            raise self.error
        return self.rows

    def add_to_cart(self, product_id, quantity):
        return self._record("add_to_cart", product_id, quantity)

    def remove_from_cart(self, product_id):
        return self._record("remove_from_cart", product_id)

    def update_quantity(self, product_id, quantity):
        return self._record("update_quantity", product_id, quantity)

    def update_gift(self, product_id, is_gift, gift_message=None):
        return self._record("update_gift", product_id, is_gift, gift_message)

    def clear_cart(self):
        return self._record("clear_cart")


def _state(*lines):
    items = tuple(CartLine(product=p, quantity=q) for p, q in lines)
    return CartState(items=items, total=calculate_total(items))


class TestReducer:
    def test_add_new_and_existing(self):
        state = reduce(CartState(), Action(ADD_ITEM, {"product": LIGHTER, "quantity": 2}))
        state = reduce(state, Action(ADD_ITEM, {"product": LIGHTER, "quantity": 1}))
        state = reduce(state, Action(ADD_ITEM, {"product": CASE}))

        assert [(line.product_id, line.quantity) for line in state.items] == [(1, 3), (2, 1)]
        assert state.total == 3 * 10000 + 1500

    def test_total_always_matches_items(self):
        state = _state((LIGHTER, 1), (CASE, 2))
        for action in [
            Action(UPDATE_QUANTITY, {"product_id": 2, "quantity": 5}),
            Action(REMOVE_ITEM, {"product_id": 1}),
            Action(ADD_ITEM, {"product": LIGHTER, "quantity": 4}),
        ]:
            state = reduce(state, action)
            assert state.total == calculate_total(state.items)

        quantities = {line.product_id: line.quantity for line in state.items}
        assert quantities == {2: 5, 1: 4}

    def test_readd_after_remove_starts_fresh(self):
        state = _state((LIGHTER, 7))
        state = reduce(state, Action(REMOVE_ITEM, {"product_id": 1}))
        state = reduce(state, Action(ADD_ITEM, {"product": LIGHTER, "quantity": 2}))
        assert [(line.product_id, line.quantity) for line in state.items] == [(1, 2)]
        assert state.total == 20000

    def test_update_quantity_below_one_is_ignored(self):
        state = _state((LIGHTER, 2))
        assert reduce(state, Action(UPDATE_QUANTITY, {"product_id": 1, "quantity": 0})) is state

    def test_gift_wrap_not_in_total(self):
        state = reduce(_state((LIGHTER, 1)), Action(UPDATE_GIFT_WRAP, {"type": "premium", "cost": 4900}))
        assert state.gift_wrap.cost == 4900
        assert state.total == 10000

    def test_clear_cart_drops_discount(self):
        state = reduce(_state((LIGHTER, 1)), Action(SET_DISCOUNT, {"code": "WELCOME10", "percent": 10}))
        state = reduce(state, Action(CLEAR_CART))
        assert state.items == ()
        assert state.total == 0
        assert state.discount is None

    def test_set_items_resets_loading_and_error(self):
        state = CartState(is_loading=True, error="boom")
        state = reduce(state, Action(SET_CART_ITEMS, {"items": [CartLine(product=CASE, quantity=2)]}))
        assert state.is_loading is False
        assert state.error is None
        assert state.total == 3000

    def test_unknown_action(self):
        state = CartState()
        assert reduce(state, Action("NOPE")) is state

    def test_line_from_server(self):
        line = line_from_server({
            "productId": 1, "quantity": 2, "isGift": True, "giftMessage": "Hi", "product": LIGHTER,
        })
        assert line.product_id == 1
        assert line.is_gift is True
        assert line.gift_message == "Hi"


class TestCartStore:
    def test_refresh_loads_server_cart(self):
        api = FakeApi(rows=[{"productId": 1, "quantity": 2, "isGift": False, "product": LIGHTER}])
        store = CartStore(api)
        state = store.refresh()
        assert state.total == 20000
        assert state.is_loading is False

    def test_add_item_calls_server_then_updates(self):
        api = FakeApi()
        store = CartStore(api)
        seen = []
        store.subscribe(seen.append)

        store.add_item(LIGHTER, 2)

        assert api.calls == [("add_to_cart", 1, 2)]
        assert store.state.items[0].quantity == 2
        assert len(seen) == 1
        assert store.pending_updates == set()

    def test_add_item_clamps_merged_quantity(self):
        api = FakeApi()
        store = CartStore(api, state=_state((LIGHTER, 8)))

        store.add_item(LIGHTER, 5)

        assert api.calls == [("add_to_cart", 1, 2)]
        assert store.state.items[0].quantity == MAX_QUANTITY

    def test_add_item_at_maximum_is_noop(self):
        api = FakeApi()
        store = CartStore(api, state=_state((LIGHTER, MAX_QUANTITY)))
        store.add_item(LIGHTER, 1)
        assert api.calls == []

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_add_item_below_one_is_noop(self, quantity):
        api = FakeApi()
        store = CartStore(api)
        store.add_item(LIGHTER, quantity)
        assert api.calls == []

    def test_update_quantity_clamps(self):
        api = FakeApi()
        store = CartStore(api, state=_state((LIGHTER, 1)))
        store.update_quantity(1, 25)
        assert api.calls == [("update_quantity", 1, MAX_QUANTITY)]
        assert store.state.items[0].quantity == MAX_QUANTITY

    def test_failure_sets_error_and_keeps_state(self):
        api = FakeApi()
        api.error = ApiError(404, "Product not found")
        store = CartStore(api, state=_state((LIGHTER, 1)))

        with pytest.raises(ApiError):
            store.remove_item(1)

        assert store.state.items[0].product_id == 1
        assert store.state.error == "Product not found"
        assert store.pending_updates == set()

    def test_auth_required_surfaces(self):
        api = FakeApi()
        api.error = AuthRequiredError()
        store = CartStore(api)

        with pytest.raises(AuthRequiredError) as exc_info:
            store.add_item(LIGHTER)

        assert str(exc_info.value) == "AUTH_REQUIRED"
        assert store.state.error == "AUTH_REQUIRED"
        assert store.state.items == ()

    def test_update_gift(self):
        api = FakeApi()
        store = CartStore(api, state=_state((LIGHTER, 1)))
        store.update_gift(1, True, "Congrats")
        assert store.state.items[0].is_gift is True
        assert store.state.items[0].gift_message == "Congrats"

        store.update_gift(1, False, "ignored")
        assert store.state.items[0].gift_message is None

    def test_clear_cart(self):
        api = FakeApi()
        store = CartStore(api, state=_state((LIGHTER, 1)))
        store.clear_cart()
        assert api.calls == [("clear_cart",)]
        assert store.state.items == ()

    def test_checkout_summary(self):
        store = CartStore(FakeApi(), state=_state((CASE, 2)))
        assert store.checkout_summary() == {
            "subtotal": 3000, "shipping": 599, "total": 3599, "display": "₹35.99",
        }
        assert store.checkout_lines() == [{"productId": 2, "quantity": 2}]

    def test_unsubscribe(self):
        store = CartStore(FakeApi())
        seen = []
        unsubscribe = store.subscribe(seen.append)
        unsubscribe()
        store.set_gift_wrap("basic", 2900)
        assert seen == []

    def test_error_action(self):
        store = CartStore(FakeApi())
        store.dispatch(Action(SET_ERROR, {"error": "offline"}))
        assert store.state.error == "offline"
