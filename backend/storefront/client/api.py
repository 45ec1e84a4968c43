# Overview: HTTP client for the storefront REST API.

"""
Storefront API client.

Wraps httpx.Client with the session token handling the browser gets from
its cookie: the token returned by login/register/guest-login is sent as a
Bearer header on every later request.

Errors:
- 401 raises AuthRequiredError, whose message is exactly "AUTH_REQUIRED"
- any other non-2xx raises ApiError(status, message, errors)
GET requests are retried once on transport errors; mutations never are.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx


AUTH_REQUIRED = "AUTH_REQUIRED"


class ApiError(Exception):
    def __init__(self, status: int, message: str, errors: Optional[List[Dict]] = None):
        super().__init__(message)
        self.status = status
        self.message = message
        self.errors = errors or []


class AuthRequiredError(ApiError):
    def __init__(self):
        super().__init__(401, AUTH_REQUIRED)


class StorefrontClient:
    """
    Client for /api endpoints.

    Pass transport=httpx.WSGITransport(app=app) to drive a Flask app
    in-process, or httpx.MockTransport(handler) in unit tests.
    """

    GET_RETRIES = 1

    def __init__(
        self,
        base_url: str = "http://localhost:5000",
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
        token: Optional[str] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)
        self.token: Optional[str] = token
        self.current_user: Optional[Dict] = None

    def _headers(self, extra: Optional[Dict] = None) -> Dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if extra:
            headers.update(extra)
        return headers

    def _handle(self, response: httpx.Response) -> Any:
        if response.status_code == 401:
            raise AuthRequiredError()
        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = {}
            message = body.get("message") if isinstance(body, dict) else None
            errors = body.get("errors") if isinstance(body, dict) else None
            raise ApiError(response.status_code, message or response.reason_phrase or "Request failed", errors)
        if not response.content:
            return None
        return response.json()

    def request(self, method: str, path: str, json: Optional[Dict] = None,
                params: Optional[Dict] = None, headers: Optional[Dict] = None) -> Any:
        attempts = 1 + (self.GET_RETRIES if method == "GET" else 0)
        for attempt in range(attempts):
            try:
                response = self.client.request(
                    method, path, json=json, params=params, headers=self._headers(headers)
                )
            except httpx.TransportError:
                if attempt >= attempts - 1:
                    raise
                continue
            return self._handle(response)

    def get(self, path: str, params: Optional[Dict] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Optional[Dict] = None, headers: Optional[Dict] = None) -> Any:
        return self.request("POST", path, json=json, headers=headers)

    def patch(self, path: str, json: Optional[Dict] = None) -> Any:
        return self.request("PATCH", path, json=json)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)

    # -- auth -----------------------------------------------------------------

    def _store_session(self, data: Dict) -> Dict:
        self.token = data.get("token")
        self.current_user = data.get("user")
        return self.current_user

    def register(self, username: str, password: str, email: str, **extra) -> Dict:
        payload = {"username": username, "password": password, "email": email, **extra}
        return self._store_session(self.post("/api/register", json=payload))

    def login(self, username: str, password: str) -> Dict:
        return self._store_session(self.post("/api/login", json={"username": username, "password": password}))

    def guest_login(self) -> Dict:
        return self._store_session(self.post("/api/guest-login"))

    def convert_guest(self, username: str, password: str, email: str, **extra) -> Dict:
        payload = {"username": username, "password": password, "email": email, **extra}
        return self._store_session(self.post("/api/convert-guest", json=payload))

    def logout(self) -> None:
        """Forget the session locally even if the server rejects the call."""
        try:
            if self.token:
                self.post("/api/logout")
        finally:
            self.token = None
            self.current_user = None

    def me(self) -> Dict:
        return self.get("/api/user")

    # -- catalog --------------------------------------------------------------

    def products(self, category: Optional[str] = None, q: Optional[str] = None) -> List[Dict]:
        params = {key: value for key, value in (("category", category), ("q", q)) if value}
        return self.get("/api/products", params=params or None)

    def product(self, product_id: int) -> Dict:
        return self.get(f"/api/products/{product_id}")

    def search(self, query: str) -> List[Dict]:
        return self.get(f"/api/products/search/{query}")

    # -- cart -----------------------------------------------------------------

    def get_cart(self) -> List[Dict]:
        return self.get("/api/cart")

    def add_to_cart(self, product_id: int, quantity: int = 1, is_gift: Optional[bool] = None,
                    gift_message: Optional[str] = None) -> Dict:
        payload: Dict[str, Any] = {"productId": product_id, "quantity": quantity}
        if is_gift is not None:
            payload["isGift"] = is_gift
        if gift_message is not None:
            payload["giftMessage"] = gift_message
        return self.post("/api/cart", json=payload)

    def remove_from_cart(self, product_id: int) -> Dict:
        return self.delete(f"/api/cart/{product_id}")

    def update_quantity(self, product_id: int, quantity: int) -> Dict:
        return self.patch(f"/api/cart/{product_id}/quantity", json={"quantity": quantity})

    def update_gift(self, product_id: int, is_gift: bool, gift_message: Optional[str] = None) -> Dict:
        payload: Dict[str, Any] = {"isGift": is_gift}
        if gift_message is not None:
            payload["giftMessage"] = gift_message
        return self.patch(f"/api/cart/{product_id}/gift", json=payload)

    def clear_cart(self) -> Dict:
        return self.delete("/api/cart")

    # -- checkout / orders ----------------------------------------------------

    def checkout(self, shipping: Dict, items: List[Dict], total: Optional[int] = None,
                 idempotency_key: Optional[str] = None) -> Dict:
        payload: Dict[str, Any] = {"shipping": shipping, "items": items}
        if total is not None:
            payload["total"] = total
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        return self.post("/api/checkout", json=payload, headers=headers)

    def create_order(self, shipping: Dict, items: List[Dict], total: Optional[int] = None,
                     idempotency_key: Optional[str] = None) -> Dict:
        """POST /api/orders; the server empties the cart once the order exists."""
        payload: Dict[str, Any] = {"shipping": shipping, "items": items}
        if total is not None:
            payload["total"] = total
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        return self.post("/api/orders", json=payload, headers=headers)

    def payment_details(self, order_ref: str) -> Dict:
        return self.get(f"/api/payment/{order_ref}")

    def report_payment(self, order_ref: str, status: str, method: str) -> Dict:
        return self.post(f"/api/payment/{order_ref}/status", json={"status": status, "method": method})

    def orders(self) -> List[Dict]:
        return self.get("/api/orders")

    def order(self, order_ref: str) -> Dict:
        return self.get(f"/api/orders/{order_ref}")

    def returns(self) -> List[Dict]:
        return self.get("/api/returns")

    def request_return(self, order_ref: str, reason: str, items: List[Dict],
                       additional_notes: Optional[str] = None) -> Dict:
        payload: Dict[str, Any] = {"orderRef": order_ref, "reason": reason, "items": items}
        if additional_notes is not None:
            payload["additionalNotes"] = additional_notes
        return self.post("/api/returns", json=payload)

    def loyalty(self) -> Dict:
        return self.get("/api/loyalty")

    def referral_stats(self) -> Dict:
        return self.get("/api/referrals/stats")

    def close(self):
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
