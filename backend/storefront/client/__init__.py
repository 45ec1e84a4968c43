from .api import StorefrontClient, ApiError, AuthRequiredError, AUTH_REQUIRED
from .cart_store import CartStore, CartState, Action, reduce
from .realtime import ReconnectingConnection

__all__ = [
    "StorefrontClient",
    "ApiError",
    "AuthRequiredError",
    "AUTH_REQUIRED",
    "CartStore",
    "CartState",
    "Action",
    "reduce",
    "ReconnectingConnection",
]
