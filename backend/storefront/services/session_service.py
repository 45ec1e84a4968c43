# Overview: Database-backed shopper sessions; issue, validate, revoke and prune tokens.

"""
Shopper sessions.

The browser holds a random token (cookie `sid`, or the Bearer header for
API clients). Only its SHA-256 digest is stored, in session_tokens, so a
leaked table cannot be replayed. Keeping sessions in the database lets
every worker behind the same database authenticate the same shopper.

Lifetime is SESSION_TTL_HOURS from login. A guest's session additionally
ends when the guest account expires.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from storefront.time_utils import utcnow


DEFAULT_SESSION_TTL_HOURS = 24
TOKEN_BYTES = 32


@dataclass
class SessionContext:
    user: User
    session: SessionToken


def session_ttl() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_TTL_HOURS", DEFAULT_SESSION_TTL_HOURS))


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def session_expiry(user: User, now: datetime) -> datetime:
    """Login time plus the TTL, cut short by the guest account's own expiry."""
    expires_at = now + session_ttl()
    if user.is_guest and user.expires_at is not None:
        expires_at = min(expires_at, user.expires_at)
    return expires_at


def _active_session(token: str) -> SessionToken | None:
    return (
        db.session.query(SessionToken)
        .filter_by(token_hash=hash_token(token), is_revoked=False)
        .first()
    )


def _revoke(session: SessionToken, reason: str, now: datetime | None = None) -> None:
    session.is_revoked = True
    session.revoked_at = now or utcnow()
    session.revoked_reason = reason


def create_session(user_id: int, user_agent: str | None = None,
                   ip_address: str | None = None) -> tuple[SessionToken, str]:
    """
    Start a session for user_id.

    Returns (session_row, token). The token is only ever returned here;
    callers hand it to the client and forget it.
    """
    user = db.session.get(User, user_id)
    if user is None:
        raise ValueError("User not found")

    token = secrets.token_hex(TOKEN_BYTES)
    now = utcnow()
    session = SessionToken(
        user_id=user.id,
        token_hash=hash_token(token),
        created_at=now,
        last_used_at=now,
        expires_at=session_expiry(user, now),
        user_agent=(user_agent or "")[:512] or None,
        ip_address=ip_address,
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()
    return session, token


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a token to its user, or None.

    Unknown, revoked and expired tokens all yield None. A token whose guest
    account has lapsed is revoked on the spot.
    """
    session = _active_session(token)
    now = utcnow()
    if session is None or session.expires_at < now or session.user is None:
        return None

    user = session.user
    if user.is_guest and user.expires_at is not None and user.expires_at < now:
        _revoke(session, "Guest account expired", now)
        db.session.commit()
        current_app.logger.info("Session for expired guest %s revoked", user.id)
        return None

    session.last_used_at = now
    db.session.commit()
    return SessionContext(user=user, session=session)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """False when the token was unknown or already revoked."""
    session = _active_session(token)
    if session is None:
        return False
    _revoke(session, reason)
    db.session.commit()
    return True


def cleanup_expired_sessions(retention_days: int = 30) -> int:
    """
    Delete dead sessions (expired or revoked) created before the retention
    window. Used by `flask maintenance cleanup-sessions`.
    """
    now = utcnow()
    deleted = (
        db.session.query(SessionToken)
        .filter(
            db.or_(SessionToken.expires_at < now, SessionToken.is_revoked.is_(True)),
            SessionToken.created_at < now - timedelta(days=retention_days),
        )
        .delete(synchronize_session=False)
    )
    db.session.commit()
    current_app.logger.info("Pruned %s sessions older than %s days", deleted, retention_days)
    return deleted
