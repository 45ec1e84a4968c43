# backend/storefront/routes/system.py
"""
Health endpoints.

/api/health answers without touching the database (load balancer probe).
/api/health/detailed runs each check below, reports its latency and
returns 503 if any of them fails.
"""

import time

from flask import Blueprint, current_app

from ..extensions import db
from ..models import Product, User, SessionToken
from ..services.events_service import broker
from storefront.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__, url_prefix="/api")


def _timed_check(name: str, probe) -> dict:
    started = time.perf_counter()
    try:
        details = probe()
        result = {"status": "healthy", "details": details}
    except Exception:
        current_app.logger.exception("Health check %s failed", name)
        db.session.rollback()
        result = {"status": "unhealthy", "error": f"{name} check failed"}
    result["latency_ms"] = round((time.perf_counter() - started) * 1000, 2)
    return result


def _database_probe() -> dict:
    return {
        "products": db.session.query(Product).count(),
        "users": db.session.query(User).count(),
    }


def _sessions_probe() -> dict:
    active = (
        db.session.query(SessionToken)
        .filter(SessionToken.is_revoked.is_(False), SessionToken.expires_at >= utcnow())
        .count()
    )
    return {"active_sessions": active}


@system_bp.get("/health")
def health():
    return {"status": "ok", "timestamp": to_utc_z(utcnow())}


@system_bp.get("/health/detailed")
def health_detailed():
    started = time.perf_counter()
    checks = {
        "database": _timed_check("database", _database_probe),
        "session_service": _timed_check("session_service", _sessions_probe),
    }
    healthy = all(check["status"] == "healthy" for check in checks.values())

    body = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.perf_counter() - started) * 1000, 2),
        "checks": checks,
        "event_stream": {"subscribers": broker.subscriber_count()},
    }
    return body, 200 if healthy else 503
