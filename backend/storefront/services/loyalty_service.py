# Overview: Service-layer operations for loyalty points, tiers and referrals.

"""
Loyalty Service

EARNING RULES:
- Orders: 1 point per 10 rupees of the order total (total is in paise).
- Referrals: the referrer earns REFERRAL_BONUS_POINTS once, when the shopper
  they referred completes a first order.

Tiers are derived from lifetime points so redemptions (when added) never
demote a shopper.

All writes here join the caller's transaction; nothing in this module
commits except get_summary() when it has to open an account.
"""

from __future__ import annotations

import secrets

from flask import current_app

from ..extensions import db
from ..models import LoyaltyAccount, LoyaltyTransaction, Referral, User
from storefront.time_utils import utcnow


MINOR_UNITS_PER_POINT = 1000
REFERRAL_BONUS_POINTS = 500

TRANSACTION_ORDER = "ORDER"
TRANSACTION_REFERRAL = "REFERRAL"

REFERRAL_PENDING = "pending"
REFERRAL_COMPLETED = "completed"

# Ascending by threshold
TIERS = (
    ("bronze", 0),
    ("silver", 1000),
    ("gold", 5000),
    ("platinum", 10000),
)

REFERRAL_CODE_LENGTH = 8
_REFERRAL_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def points_for_total(total: int) -> int:
    return max(total, 0) // MINOR_UNITS_PER_POINT


def tier_for(lifetime_points: int) -> str:
    tier = TIERS[0][0]
    for name, threshold in TIERS:
        if lifetime_points >= threshold:
            tier = name
    return tier


def next_tier(lifetime_points: int) -> dict | None:
    """Next tier name and the points still needed, or None at the top."""
    for name, threshold in TIERS:
        if lifetime_points < threshold:
            return {"tier": name, "pointsNeeded": threshold - lifetime_points}
    return None


def generate_referral_code() -> str:
    while True:
        code = "".join(secrets.choice(_REFERRAL_ALPHABET) for _ in range(REFERRAL_CODE_LENGTH))
        if not db.session.query(LoyaltyAccount.id).filter_by(referral_code=code).first():
            return code


def get_account(user_id: int) -> LoyaltyAccount | None:
    return db.session.query(LoyaltyAccount).filter_by(user_id=user_id).first()


def ensure_account(user_id: int) -> LoyaltyAccount:
    account = get_account(user_id)
    if account is None:
        account = LoyaltyAccount(
            user_id=user_id,
            referral_code=generate_referral_code(),
            points=0,
            lifetime_points=0,
            tier=TIERS[0][0],
        )
        db.session.add(account)
        db.session.flush()
    return account


def find_referrer(referral_code: str) -> User | None:
    """Owner of a referral code (case-insensitive), ignoring guests."""
    account = (
        db.session.query(LoyaltyAccount)
        .filter(db.func.upper(LoyaltyAccount.referral_code) == referral_code.strip().upper())
        .first()
    )
    if account is None or account.user is None or account.user.is_guest:
        return None
    return account.user


def record_referral(referrer_id: int, referred_id: int) -> Referral:
    if referrer_id == referred_id:
        raise ValueError("Users cannot refer themselves")
    referral = Referral(
        referrer_id=referrer_id,
        referred_id=referred_id,
        status=REFERRAL_PENDING,
        points_awarded=False,
        created_at=utcnow(),
    )
    db.session.add(referral)
    db.session.flush()
    return referral


def _credit(account: LoyaltyAccount, points: int, transaction_type: str, reason: str,
            order_id: int | None = None, referral_id: int | None = None) -> LoyaltyTransaction:
    account.points += points
    account.lifetime_points += points
    account.tier = tier_for(account.lifetime_points)
    account.last_updated = utcnow()

    txn = LoyaltyTransaction(
        account_id=account.id,
        transaction_type=transaction_type,
        points=points,
        order_id=order_id,
        referral_id=referral_id,
        reason=reason,
        occurred_at=utcnow(),
    )
    db.session.add(txn)
    return txn


def award_order_points(order) -> int:
    """
    Credit points for a completed order and settle a pending referral.

    Returns points credited to the buyer. Safe to call once per order; a
    second call for the same order credits nothing.
    """
    already = (
        db.session.query(LoyaltyTransaction.id)
        .filter_by(order_id=order.id, transaction_type=TRANSACTION_ORDER)
        .first()
    )
    if already:
        return 0

    points = points_for_total(order.total)
    if points:
        account = ensure_account(order.user_id)
        _credit(account, points, TRANSACTION_ORDER, f"Order {order.order_ref}", order_id=order.id)

    _settle_referral(order)
    return points


def _settle_referral(order) -> None:
    referral = (
        db.session.query(Referral)
        .filter_by(referred_id=order.user_id, status=REFERRAL_PENDING, points_awarded=False)
        .first()
    )
    if referral is None:
        return

    referrer_account = ensure_account(referral.referrer_id)
    _credit(
        referrer_account,
        REFERRAL_BONUS_POINTS,
        TRANSACTION_REFERRAL,
        f"Referral of user {order.user_id}",
        referral_id=referral.id,
    )
    referral.status = REFERRAL_COMPLETED
    referral.points_awarded = True
    current_app.logger.info(
        "Referral %s completed: %s points to user %s",
        referral.id, REFERRAL_BONUS_POINTS, referral.referrer_id,
    )


def get_summary(user_id: int) -> dict:
    account = get_account(user_id)
    if account is None:
        account = ensure_account(user_id)
        db.session.commit()

    recent = (
        db.session.query(LoyaltyTransaction)
        .filter_by(account_id=account.id)
        .order_by(LoyaltyTransaction.occurred_at.desc(), LoyaltyTransaction.id.desc())
        .limit(20)
        .all()
    )
    summary = account.to_dict()
    summary["nextTier"] = next_tier(account.lifetime_points)
    summary["transactions"] = [txn.to_dict() for txn in recent]
    return summary


def referral_stats(user_id: int) -> dict:
    """Referral dashboard: counts, points earned and per-referral history."""
    account = get_account(user_id)
    if account is None:
        account = ensure_account(user_id)
        db.session.commit()

    referrals = (
        db.session.query(Referral)
        .filter_by(referrer_id=user_id)
        .order_by(Referral.created_at.desc(), Referral.id.desc())
        .all()
    )
    completed = [r for r in referrals if r.status == REFERRAL_COMPLETED]

    return {
        "totalReferrals": len(referrals),
        "activeReferrals": len(completed),
        "pointsEarned": sum(REFERRAL_BONUS_POINTS for r in completed if r.points_awarded),
        "referralCode": account.referral_code,
        "history": [
            {
                "id": r.id,
                "type": r.status,
                "pointsAwarded": REFERRAL_BONUS_POINTS if r.points_awarded else 0,
                "createdAt": r.to_dict()["createdAt"],
                "referredName": r.referred.username if r.referred else None,
            }
            for r in referrals
        ],
    }
