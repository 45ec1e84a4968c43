# Overview: Pytest coverage for the cart API.

import pytest

from conftest import auth_headers


pytestmark = pytest.mark.cart


class TestCartAuth:
    def test_get_cart_requires_auth(self, client, db_session):
        response = client.get('/api/cart')
        assert response.status_code == 401
        assert response.json == {"message": "Authentication required"}

    def test_add_requires_auth(self, client, product_a):
        response = client.post('/api/cart', json={"productId": product_a.id, "quantity": 1})
        assert response.status_code == 401

    def test_invalid_token_rejected(self, client, db_session):
        response = client.get('/api/cart', headers=auth_headers("not-a-real-token"))
        assert response.status_code == 401


class TestCartOperations:
    def test_empty_cart(self, client, shopper_token):
        response = client.get('/api/cart', headers=auth_headers(shopper_token))
        assert response.status_code == 200
        assert response.json == []

    def test_add_item_returns_cart(self, client, shopper_token, product_a):
        response = client.post('/api/cart', headers=auth_headers(shopper_token), json={
            "productId": product_a.id, "quantity": 2,
        })
        assert response.status_code == 200
        assert response.json["message"] == "Item added to cart"
        cart = response.json["cart"]
        assert len(cart) == 1
        assert cart[0]["productId"] == product_a.id
        assert cart[0]["quantity"] == 2
        assert cart[0]["product"]["price"] == 10000

    def test_add_same_product_merges(self, client, shopper_token, product_a):
        headers = auth_headers(shopper_token)
        client.post('/api/cart', headers=headers, json={"productId": product_a.id, "quantity": 2})
        response = client.post('/api/cart', headers=headers, json={"productId": product_a.id, "quantity": 3})

        cart = response.json["cart"]
        assert len(cart) == 1
        assert cart[0]["quantity"] == 5

    def test_readd_keeps_gift_message(self, client, shopper_token, product_a):
        headers = auth_headers(shopper_token)
        client.post('/api/cart', headers=headers, json={
            "productId": product_a.id, "quantity": 1, "isGift": True, "giftMessage": "Happy birthday",
        })
        response = client.post('/api/cart', headers=headers, json={"productId": product_a.id, "quantity": 1})

        line = response.json["cart"][0]
        assert line["isGift"] is True
        assert line["giftMessage"] == "Happy birthday"

    def test_add_unknown_product(self, client, shopper_token, db_session):
        response = client.post('/api/cart', headers=auth_headers(shopper_token), json={
            "productId": 9999, "quantity": 1,
        })
        assert response.status_code == 404
        assert response.json["message"] == "Product not found"

    @pytest.mark.parametrize("body", [
        {"productId": 1, "quantity": 0},
        {"productId": 1, "quantity": 1.5},
        {"productId": 1, "quantity": True},
        {"productId": "abc", "quantity": 1},
        {"quantity": 1},
    ])
    def test_add_rejects_invalid_payload(self, client, shopper_token, body):
        response = client.post('/api/cart', headers=auth_headers(shopper_token), json=body)
        assert response.status_code == 400
        assert response.json["message"] == "Invalid request data"
        assert response.json["errors"]
        assert all("path" in err and "message" in err for err in response.json["errors"])

    def test_update_quantity(self, client, shopper_token, product_a):
        headers = auth_headers(shopper_token)
        client.post('/api/cart', headers=headers, json={"productId": product_a.id, "quantity": 1})

        response = client.patch(f'/api/cart/{product_a.id}/quantity', headers=headers, json={"quantity": 4})
        assert response.status_code == 200
        assert response.json["cart"][0]["quantity"] == 4

    def test_update_quantity_has_no_server_maximum(self, client, shopper_token, product_a):
        headers = auth_headers(shopper_token)
        client.post('/api/cart', headers=headers, json={"productId": product_a.id, "quantity": 1})

        response = client.patch(f'/api/cart/{product_a.id}/quantity', headers=headers, json={"quantity": 25})
        assert response.status_code == 200
        assert response.json["cart"][0]["quantity"] == 25

    def test_update_quantity_below_one_rejected(self, client, shopper_token, product_a):
        headers = auth_headers(shopper_token)
        client.post('/api/cart', headers=headers, json={"productId": product_a.id, "quantity": 1})

        response = client.patch(f'/api/cart/{product_a.id}/quantity', headers=headers, json={"quantity": 0})
        assert response.status_code == 400

    def test_update_quantity_missing_line(self, client, shopper_token, product_a):
        response = client.patch(
            f'/api/cart/{product_a.id}/quantity', headers=auth_headers(shopper_token), json={"quantity": 2}
        )
        assert response.status_code == 404

    def test_invalid_product_id_in_path(self, client, shopper_token):
        response = client.delete('/api/cart/abc', headers=auth_headers(shopper_token))
        assert response.status_code == 400
        assert response.json["message"] == "Invalid product ID format"

    def test_update_gift(self, client, shopper_token, product_a):
        headers = auth_headers(shopper_token)
        client.post('/api/cart', headers=headers, json={"productId": product_a.id, "quantity": 1})

        response = client.patch(f'/api/cart/{product_a.id}/gift', headers=headers, json={
            "isGift": True, "giftMessage": "For you",
        })
        assert response.status_code == 200
        line = response.json["cart"][0]
        assert line["isGift"] is True
        assert line["giftMessage"] == "For you"

        response = client.patch(f'/api/cart/{product_a.id}/gift', headers=headers, json={"isGift": False})
        line = response.json["cart"][0]
        assert line["isGift"] is False
        assert line["giftMessage"] is None

    def test_remove_item_is_idempotent(self, client, shopper_token, product_a, product_b):
        headers = auth_headers(shopper_token)
        client.post('/api/cart', headers=headers, json={"productId": product_a.id, "quantity": 1})
        client.post('/api/cart', headers=headers, json={"productId": product_b.id, "quantity": 1})

        first = client.delete(f'/api/cart/{product_a.id}', headers=headers)
        second = client.delete(f'/api/cart/{product_a.id}', headers=headers)

        assert first.status_code == 200
        assert second.status_code == 200
        assert [line["productId"] for line in second.json["cart"]] == [product_b.id]

    def test_clear_cart(self, client, shopper_token, product_a, product_b):
        headers = auth_headers(shopper_token)
        client.post('/api/cart', headers=headers, json={"productId": product_a.id, "quantity": 1})
        client.post('/api/cart', headers=headers, json={"productId": product_b.id, "quantity": 1})

        response = client.delete('/api/cart', headers=headers)
        assert response.status_code == 200
        assert client.get('/api/cart', headers=headers).json == []

    def test_carts_are_per_user(self, client, shopper_token, other_token, product_a):
        client.post('/api/cart', headers=auth_headers(shopper_token), json={"productId": product_a.id, "quantity": 1})

        response = client.get('/api/cart', headers=auth_headers(other_token))
        assert response.json == []

    def test_legacy_paths(self, client, shopper_token, product_a):
        headers = auth_headers(shopper_token)
        response = client.post('/api/cart/add', headers=headers, json={"productId": product_a.id, "quantity": 1})
        assert response.status_code == 200

        response = client.patch(f'/api/cart/update/{product_a.id}', headers=headers, json={"quantity": 3})
        assert response.json["cart"][0]["quantity"] == 3

        response = client.delete('/api/cart/clear', headers=headers)
        assert response.json["cart"] == []

    def test_concurrent_first_add_merges(self, client, shopper_token, product_a, monkeypatch):
        from storefront.services import cart_service

        headers = auth_headers(shopper_token)
        client.post('/api/cart', headers=headers, json={"productId": product_a.id, "quantity": 2})

        # Second request's lookup ran before the first insert committed
        real_lookup = cart_service._get_line
        lookups = []

        def lookup_before_insert(user_id, product_id):
            lookups.append(product_id)
            if len(lookups) == 1:
                return None
            return real_lookup(user_id, product_id)

        monkeypatch.setattr(cart_service, "_get_line", lookup_before_insert)
        response = client.post('/api/cart', headers=headers, json={"productId": product_a.id, "quantity": 3})

        assert response.status_code == 200
        assert [(line["productId"], line["quantity"]) for line in response.json["cart"]] == [(product_a.id, 5)]
