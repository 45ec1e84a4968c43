from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z


class LoyaltyAccount(db.Model):
    """
    Loyalty points account, one per user.

    referral_code is the code other shoppers enter at registration.
    """
    __tablename__ = "loyalty_accounts"
    __table_args__ = (
        db.UniqueConstraint("user_id", name="uq_loyalty_accounts_user"),
        db.UniqueConstraint("referral_code", name="uq_loyalty_accounts_referral_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    referral_code = db.Column(db.String(16), nullable=False)

    points = db.Column(db.Integer, nullable=False, default=0)
    lifetime_points = db.Column(db.Integer, nullable=False, default=0)
    tier = db.Column(db.String(16), nullable=False, default="bronze")

    last_updated = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    user = db.relationship("User", backref=db.backref("loyalty_account", uselist=False, lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "points": self.points,
            "lifetimePoints": self.lifetime_points,
            "tier": self.tier,
            "referralCode": self.referral_code,
            "lastUpdated": to_utc_z(self.last_updated),
        }


class LoyaltyTransaction(db.Model):
    """
    Append-only ledger of loyalty point events.

    TRANSACTION TYPES:
    - ORDER: Points earned from a completed order
    - REFERRAL: Points earned when a referred shopper completes a first order
    """
    __tablename__ = "loyalty_transactions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("loyalty_accounts.id"), nullable=False, index=True)
    transaction_type = db.Column(db.String(16), nullable=False)
    points = db.Column(db.Integer, nullable=False)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)
    referral_id = db.Column(db.Integer, db.ForeignKey("referrals.id"), nullable=True)
    reason = db.Column(db.String(255), nullable=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    account = db.relationship("LoyaltyAccount", backref=db.backref("transactions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.transaction_type,
            "points": self.points,
            "orderId": self.order_id,
            "referralId": self.referral_id,
            "reason": self.reason,
            "occurredAt": to_utc_z(self.occurred_at),
        }


class Referral(db.Model):
    """
    Referrer/referred pair recorded at registration.

    LIFECYCLE: pending -> completed once the referred shopper's first order
    completes; points_awarded guards against paying the referrer twice.
    """
    __tablename__ = "referrals"
    __table_args__ = (
        db.UniqueConstraint("referred_id", name="uq_referrals_referred"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    referrer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    referred_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending")
    points_awarded = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    referrer = db.relationship("User", foreign_keys=[referrer_id])
    referred = db.relationship("User", foreign_keys=[referred_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "referrerId": self.referrer_id,
            "referredId": self.referred_id,
            "referredName": self.referred.username if self.referred else None,
            "status": self.status,
            "pointsAwarded": self.points_awarded,
            "createdAt": to_utc_z(self.created_at),
        }
