# Overview: Pytest coverage for return requests.

import pytest

from conftest import auth_headers, checkout_payload
from storefront.services import return_service


def _paid_order(client, token, *lines):
    headers = auth_headers(token)
    ref = client.post('/api/checkout', headers=headers, json=checkout_payload(*lines)).json["orderRef"]
    client.post(f'/api/payment/{ref}/status', headers=headers, json={"status": "completed", "method": "upi"})
    return ref


def _return_body(ref, product, quantity, reason="Damaged in transit"):
    return {
        "orderRef": ref,
        "reason": reason,
        "items": [{"productId": product.id, "quantity": quantity, "reason": reason}],
    }


class TestCreateReturn:
    def test_create_for_completed_order(self, client, shopper_token, product_a):
        ref = _paid_order(client, shopper_token, (product_a, 2))

        response = client.post('/api/returns', headers=auth_headers(shopper_token), json={
            **_return_body(ref, product_a, 1),
            "additionalNotes": "Box was crushed",
        })
        assert response.status_code == 201
        req = response.json["returnRequest"]
        assert req["status"] == "pending"
        assert req["orderRef"] == ref
        assert req["additionalNotes"] == "Box was crushed"

    def test_pending_order_cannot_be_returned(self, client, shopper_token, product_a):
        headers = auth_headers(shopper_token)
        ref = client.post('/api/checkout', headers=headers, json=checkout_payload((product_a, 1))).json["orderRef"]

        response = client.post('/api/returns', headers=headers, json=_return_body(ref, product_a, 1))
        assert response.status_code == 409

    def test_product_not_in_order(self, client, shopper_token, product_a, product_b):
        ref = _paid_order(client, shopper_token, (product_a, 1))
        response = client.post('/api/returns', headers=auth_headers(shopper_token), json=_return_body(ref, product_b, 1))
        assert response.status_code == 400
        assert response.json["errors"][0]["path"] == ["items", 0, "productId"]

    def test_cannot_return_more_than_ordered(self, client, shopper_token, product_a):
        headers = auth_headers(shopper_token)
        ref = _paid_order(client, shopper_token, (product_a, 2))

        assert client.post('/api/returns', headers=headers, json=_return_body(ref, product_a, 2)).status_code == 201
        response = client.post('/api/returns', headers=headers, json=_return_body(ref, product_a, 1))
        assert response.status_code == 400
        assert response.json["errors"][0]["message"] == "At most 0 can be returned"

    def test_rejected_request_frees_quantity(self, client, shopper_token, product_a):
        headers = auth_headers(shopper_token)
        ref = _paid_order(client, shopper_token, (product_a, 1))

        req_id = client.post('/api/returns', headers=headers, json=_return_body(ref, product_a, 1)).json["returnRequest"]["id"]
        return_service.resolve_return(req_id, approve=False)

        response = client.post('/api/returns', headers=headers, json=_return_body(ref, product_a, 1))
        assert response.status_code == 201

    def test_other_users_order(self, client, shopper_token, other_token, product_a):
        ref = _paid_order(client, shopper_token, (product_a, 1))
        response = client.post('/api/returns', headers=auth_headers(other_token), json=_return_body(ref, product_a, 1))
        assert response.status_code == 403

    def test_unknown_order(self, client, shopper_token, product_a):
        response = client.post('/api/returns', headers=auth_headers(shopper_token), json=_return_body("missing", product_a, 1))
        assert response.status_code == 404

    def test_validation(self, client, shopper_token):
        response = client.post('/api/returns', headers=auth_headers(shopper_token), json={"orderRef": "x", "items": []})
        assert response.status_code == 400
        assert response.json["message"] == "Invalid return request"


class TestListAndResolve:
    def test_list_own_returns(self, client, shopper_token, other_token, product_a):
        ref = _paid_order(client, shopper_token, (product_a, 1))
        client.post('/api/returns', headers=auth_headers(shopper_token), json=_return_body(ref, product_a, 1))

        assert len(client.get('/api/returns', headers=auth_headers(shopper_token)).json) == 1
        assert client.get('/api/returns', headers=auth_headers(other_token)).json == []

    def test_resolve_only_once(self, client, shopper_token, product_a):
        ref = _paid_order(client, shopper_token, (product_a, 1))
        req_id = client.post(
            '/api/returns', headers=auth_headers(shopper_token), json=_return_body(ref, product_a, 1)
        ).json["returnRequest"]["id"]

        req = return_service.resolve_return(req_id, approve=True)
        assert req.status == "approved"
        assert req.resolved_at is not None

        with pytest.raises(return_service.ReturnStateError):
            return_service.resolve_return(req_id, approve=False)

    def test_resolve_unknown(self, db_session):
        with pytest.raises(return_service.ReturnNotFoundError):
            return_service.resolve_return(12345, approve=True)
