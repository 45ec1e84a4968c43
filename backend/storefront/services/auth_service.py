# Overview: Service-layer operations for accounts; registration, login, guests.

"""
Account service.

Passwords are hashed with bcrypt. Guest accounts get random credentials and
an expiry (GUEST_ACCOUNT_TTL_DAYS); converting a guest keeps the same user
row so cart lines and orders follow the shopper into the permanent account.
"""

import secrets
from datetime import timedelta

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from storefront.time_utils import utcnow


class AccountError(ValueError):
    """Raised for registration/conversion problems (duplicate username, etc.)."""


def hash_password(password: str) -> str:
    """Hash password using bcrypt (cost from BCRYPT_ROUNDS, default 12)."""
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt check. Malformed hashes never verify."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def _username_taken(username: str, exclude_user_id: int | None = None) -> bool:
    query = db.session.query(User).filter(User.username == username)
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    return db.session.query(query.exists()).scalar()


def create_user(
    username: str,
    email: str,
    password: str,
    first_name: str | None = None,
    last_name: str | None = None,
    referral_code: str | None = None,
) -> User:
    """
    Register a permanent account.

    If referral_code is given it must belong to an existing shopper; the
    referral is recorded as pending and paid out when this user's first
    order completes.
    """
    from . import loyalty_service

    if _username_taken(username):
        raise AccountError("Username already exists")

    referrer = None
    if referral_code:
        referrer = loyalty_service.find_referrer(referral_code)
        if referrer is None:
            raise AccountError("Invalid referral code")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        is_guest=False,
    )
    db.session.add(user)
    db.session.flush()

    loyalty_service.ensure_account(user.id)
    if referrer is not None:
        loyalty_service.record_referral(referrer_id=referrer.id, referred_id=user.id)

    db.session.commit()
    current_app.logger.info("Registered user %s (id=%s)", user.username, user.id)
    return user


def create_guest_user() -> User:
    """Create a guest with random credentials that expires after the TTL."""
    ttl_days = current_app.config.get("GUEST_ACCOUNT_TTL_DAYS", 30)

    username = f"guest_{secrets.token_hex(6)}"
    while _username_taken(username):
        username = f"guest_{secrets.token_hex(6)}"

    user = User(
        username=username,
        email=f"{username}@guest.local",
        password_hash=hash_password(secrets.token_urlsafe(24)),
        is_guest=True,
        expires_at=utcnow() + timedelta(days=ttl_days),
    )
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("Created guest user %s (id=%s)", user.username, user.id)
    return user


def convert_guest(
    user: User,
    username: str,
    email: str,
    password: str,
    first_name: str | None = None,
    last_name: str | None = None,
) -> User:
    """Turn a guest into a permanent account in place."""
    from . import loyalty_service

    if not user.is_guest:
        raise AccountError("Only guest accounts can be converted")

    if _username_taken(username, exclude_user_id=user.id):
        raise AccountError("Username already exists")

    user.username = username
    user.email = email
    user.password_hash = hash_password(password)
    user.first_name = first_name
    user.last_name = last_name
    user.is_guest = False
    user.expires_at = None

    loyalty_service.ensure_account(user.id)
    db.session.commit()
    current_app.logger.info("Converted guest user id=%s to %s", user.id, user.username)
    return user


def is_expired_guest(user: User) -> bool:
    return bool(user.is_guest and user.expires_at is not None and user.expires_at < utcnow())


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate by username (or email) and password.

    Returns the User on success and stamps last_login_at; None otherwise.
    Expired guest accounts cannot log in.
    """
    user = db.session.query(User).filter(
        db.or_(User.username == username, User.email == username)
    ).first()

    if not user:
        return None

    if is_expired_guest(user):
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None
