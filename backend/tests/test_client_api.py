# Overview: Pytest coverage for the httpx storefront client.

import httpx
import pytest

from conftest import VALID_SHIPPING
from storefront.client import AUTH_REQUIRED, ApiError, AuthRequiredError, CartStore, StorefrontClient


def _client(handler, **kwargs):
    return StorefrontClient(base_url="http://test", transport=httpx.MockTransport(handler), **kwargs)


class TestErrorHandling:
    def test_401_raises_auth_required(self):
        def handler(request):
            return httpx.Response(401, json={"message": "Authentication required"})

        with _client(handler) as api:
            with pytest.raises(AuthRequiredError) as exc_info:
                api.get_cart()
        assert exc_info.value.message == AUTH_REQUIRED
        assert exc_info.value.status == 401

    def test_error_carries_server_message(self):
        def handler(request):
            return httpx.Response(400, json={
                "message": "Invalid request data",
                "errors": [{"path": ["quantity"], "message": "Must be at least 1"}],
            })

        with _client(handler) as api:
            with pytest.raises(ApiError) as exc_info:
                api.add_to_cart(1, 0)
        assert exc_info.value.status == 400
        assert exc_info.value.message == "Invalid request data"
        assert exc_info.value.errors[0]["path"] == ["quantity"]

    def test_error_without_json_body(self):
        def handler(request):
            return httpx.Response(502, text="Bad Gateway")

        with _client(handler) as api:
            with pytest.raises(ApiError) as exc_info:
                api.products()
        assert exc_info.value.status == 502
        assert exc_info.value.message == "Bad Gateway"


class TestRequests:
    def test_bearer_token_sent(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json=[])

        with _client(handler, token="abc123") as api:
            api.get_cart()
        assert seen["auth"] == "Bearer abc123"

    def test_login_stores_token(self):
        def handler(request):
            if request.url.path == "/api/login":
                return httpx.Response(200, json={"user": {"id": 1}, "token": "tok"})
            return httpx.Response(200, json={"id": 1, "auth": request.headers.get("Authorization")})

        with _client(handler) as api:
            api.login("asha", "Password123")
            assert api.token == "tok"
            assert api.me()["auth"] == "Bearer tok"

    def test_get_retried_once(self):
        attempts = []

        def handler(request):
            attempts.append(request.url.path)
            if len(attempts) == 1:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json=[])

        with _client(handler) as api:
            assert api.products() == []
        assert len(attempts) == 2

    def test_get_gives_up_after_retry(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with _client(handler) as api:
            with pytest.raises(httpx.ConnectError):
                api.products()

    def test_post_not_retried(self):
        attempts = []

        def handler(request):
            attempts.append(request.url.path)
            raise httpx.ConnectError("refused", request=request)

        with _client(handler) as api:
            with pytest.raises(httpx.ConnectError):
                api.add_to_cart(1, 1)
        assert len(attempts) == 1

    def test_logout_forgets_token_when_rejected(self):
        def handler(request):
            return httpx.Response(401, json={"message": "Authentication required"})

        with _client(handler, token="stale") as api:
            with pytest.raises(AuthRequiredError):
                api.logout()
            assert api.token is None
            assert api.current_user is None

    def test_create_order_posts_to_orders(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["key"] = request.headers.get("Idempotency-Key")
            return httpx.Response(201, json={"message": "Order created successfully", "order": {"orderRef": "abc"}})

        with _client(handler) as api:
            body = api.create_order(VALID_SHIPPING, [{"productId": 1, "quantity": 1}], idempotency_key="k-2")
        assert body["order"]["orderRef"] == "abc"
        assert seen == {"path": "/api/orders", "key": "k-2"}

    def test_checkout_sends_idempotency_key(self):
        seen = {}

        def handler(request):
            seen["key"] = request.headers.get("Idempotency-Key")
            return httpx.Response(201, json={"orderRef": "abc"})

        with _client(handler) as api:
            api.checkout(VALID_SHIPPING, [{"productId": 1, "quantity": 1}], idempotency_key="k-1")
        assert seen["key"] == "k-1"


class TestAgainstApp:
    """Drives the Flask app in-process through httpx.WSGITransport."""

    def test_guest_shopping_flow(self, app, db_session, product_a, cheap_product):
        with StorefrontClient(base_url="http://localhost", transport=httpx.WSGITransport(app=app)) as api:
            with pytest.raises(AuthRequiredError):
                api.get_cart()

            user = api.guest_login()
            assert user["is_guest"] is True

            store = CartStore(api)
            store.add_item(api.product(product_a.id), 2)
            store.add_item(api.product(cheap_product.id), 1)
            store.refresh()
            assert store.state.total == 2 * 10000 + 1500

            ref = api.checkout(VALID_SHIPPING, store.checkout_lines(), idempotency_key="flow-1")["orderRef"]
            assert api.order(ref)["total"] == store.checkout_summary()["total"]
            assert api.payment_details(ref)["amount"] == store.checkout_summary()["total"]

            api.report_payment(ref, "completed", "upi")
            store.payment_completed()

            assert api.get_cart() == []
            assert api.order(ref)["status"] == "completed"
