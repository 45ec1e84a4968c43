# Overview: Pytest coverage for the flask CLI command groups.

import pytest

from conftest import auth_headers, checkout_payload
from storefront.extensions import db
from storefront.models import Order, Product, User


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


def _paid_order(client, token, product):
    headers = auth_headers(token)
    ref = client.post('/api/checkout', headers=headers, json=checkout_payload((product, 1))).json["orderRef"]
    client.post(f'/api/payment/{ref}/status', headers=headers, json={"status": "completed", "method": "upi"})
    return ref


class TestCatalogCommands:
    def test_seed_and_list(self, runner, db_session):
        result = runner.invoke(args=["catalog", "seed"])
        assert "PASS Added 5 products." in result.output
        assert db.session.query(Product).count() == 5

        result = runner.invoke(args=["catalog", "list", "--category", "refueling"])
        assert "Premium Butane Refill" in result.output
        assert "Noir Jet Flame" not in result.output

    def test_system_init_is_repeatable(self, runner, db_session):
        runner.invoke(args=["system", "init"])
        result = runner.invoke(args=["system", "init"])
        assert "0 catalog products added" in result.output


class TestUserCommands:
    def test_create_user(self, runner, db_session):
        result = runner.invoke(args=[
            "users", "create", "--username", "staff", "--email", "staff@example.com",
            "--password", "Password123",
        ])
        assert "PASS Created user: staff" in result.output
        assert db.session.query(User).filter_by(username="staff").one().is_guest is False

    def test_create_user_short_password(self, runner, db_session):
        result = runner.invoke(args=[
            "users", "create", "--username", "staff", "--email", "staff@example.com", "--password", "short",
        ])
        assert "FAIL" in result.output
        assert db.session.query(User).count() == 0

    def test_list_hides_guests_by_default(self, runner, client, shopper):
        client.post('/api/guest-login')

        plain = runner.invoke(args=["users", "list"]).output
        assert "asha" in plain
        assert "guest_" not in plain

        assert "guest_" in runner.invoke(args=["users", "list", "--guests"]).output


class TestOrderCommands:
    def test_track_completed_order(self, runner, client, shopper_token, product_a):
        ref = _paid_order(client, shopper_token, product_a)

        result = runner.invoke(args=[
            "orders", "track", ref, "shipped", "--tracking-number", "AWB123", "--location", "Mumbai Hub",
        ])
        assert f"PASS Order {ref} is now shipped" in result.output

        order = db.session.query(Order).filter_by(order_ref=ref).one()
        assert order.tracking_number == "AWB123"

        detail = client.get(f'/api/orders/{ref}', headers=auth_headers(shopper_token)).json
        assert detail["trackingStatus"] == "shipped"
        assert detail["statusHistory"][-1]["location"] == "Mumbai Hub"

    def test_track_pending_order_fails(self, runner, client, shopper_token, product_a):
        headers = auth_headers(shopper_token)
        ref = client.post('/api/checkout', headers=headers, json=checkout_payload((product_a, 1))).json["orderRef"]

        result = runner.invoke(args=["orders", "track", ref, "shipped"])
        assert "FAIL" in result.output

    def test_list_orders_by_status(self, runner, client, shopper_token, product_a):
        ref = _paid_order(client, shopper_token, product_a)
        assert ref in runner.invoke(args=["orders", "list", "--status", "completed"]).output
        assert "No orders found." in runner.invoke(args=["orders", "list", "--status", "failed"]).output


class TestReturnCommands:
    def test_approve_and_reject(self, runner, client, shopper_token, product_a):
        ref = _paid_order(client, shopper_token, product_a)
        req_id = client.post('/api/returns', headers=auth_headers(shopper_token), json={
            "orderRef": ref, "reason": "Changed my mind",
            "items": [{"productId": product_a.id, "quantity": 1, "reason": "Changed my mind"}],
        }).json["returnRequest"]["id"]

        assert "pending" in runner.invoke(args=["returns", "list"]).output

        result = runner.invoke(args=["returns", "approve", str(req_id)])
        assert f"PASS Return request {req_id} approved" in result.output

        result = runner.invoke(args=["returns", "reject", str(req_id)])
        assert "FAIL" in result.output

    def test_resolve_unknown(self, runner, db_session):
        assert "FAIL" in runner.invoke(args=["returns", "approve", "999"]).output


class TestMaintenanceCommands:
    def test_cleanup_sessions(self, runner, shopper_token):
        result = runner.invoke(args=["maintenance", "cleanup-sessions", "--retention-days", "30"])
        assert "Deleted 0 sessions" in result.output
