# backend/storefront/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/storefront.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///storefront.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Comma separated list of browser origins allowed to call the API with cookies
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:5000",
        ).split(",")
        if origin.strip()
    ]

    # Session cookie carrying the plaintext session token
    AUTH_COOKIE_NAME = os.environ.get("AUTH_COOKIE_NAME", "sid")
    SESSION_COOKIE_SECURE = _env_bool("SESSION_COOKIE_SECURE", False)

    # Checkout pricing, all amounts in minor currency units (paise)
    FREE_SHIPPING_THRESHOLD = int(os.environ.get("FREE_SHIPPING_THRESHOLD", "5000"))
    FLAT_SHIPPING_FEE = int(os.environ.get("FLAT_SHIPPING_FEE", "599"))

    GUEST_ACCOUNT_TTL_DAYS = int(os.environ.get("GUEST_ACCOUNT_TTL_DAYS", "30"))
    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "24"))

    # Simulated UPI payee shown on the payment page
    UPI_ID = os.environ.get("UPI_ID", "khush@upi")
    UPI_MERCHANT_NAME = os.environ.get("UPI_MERCHANT_NAME", "KHUSH.IN")

    # Seconds between keepalive comments on the event stream
    EVENT_STREAM_KEEPALIVE = int(os.environ.get("EVENT_STREAM_KEEPALIVE", "30"))

    # bcrypt cost factor; tests lower it to keep fixtures fast
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Days between payment confirmation and the delivery estimate shown to shoppers
    DELIVERY_ESTIMATE_DAYS = int(os.environ.get("DELIVERY_ESTIMATE_DAYS", "7"))
