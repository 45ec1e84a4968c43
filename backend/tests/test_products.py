# Overview: Pytest coverage for catalog reads.

import pytest

from storefront.services import products_service


@pytest.fixture
def catalog(db_session):
    products_service.seed_catalog()
    return {p.name: p for p in products_service.list_products()}


class TestProductRoutes:
    def test_list_products_is_public(self, client, catalog):
        response = client.get('/api/products')
        assert response.status_code == 200
        assert len(response.json) == len(products_service.DEFAULT_CATALOG)
        assert all(isinstance(p["price"], int) for p in response.json)

    def test_filter_by_category(self, client, catalog):
        names = {p["name"] for p in client.get('/api/products?category=refueling').json}
        assert names == {"Premium Butane Refill", "Flint & Wick Service Kit"}

        same = client.get('/api/products/category/Refueling').json
        assert {p["name"] for p in same} == names

    def test_query_filter(self, client, catalog):
        names = [p["name"] for p in client.get('/api/products?q=ENGRAV').json]
        assert names == ["Heritage Engraved Lighter"]

    def test_get_product(self, client, catalog):
        product = catalog["Noir Jet Flame"]
        body = client.get(f'/api/products/{product.id}').json
        assert body["id"] == product.id
        assert body["price"] == 899900
        assert body["features"]["flame"] == "triple jet"

    def test_get_product_bad_id(self, client, db_session):
        response = client.get('/api/products/lighter')
        assert response.status_code == 400
        assert response.json["message"] == "Invalid product ID format"

    def test_get_missing_product(self, client, db_session):
        response = client.get('/api/products/424242')
        assert response.status_code == 404
        assert response.json["message"] == "Product not found"

    def test_search(self, client, catalog):
        names = {p["name"] for p in client.get('/api/products/search/butane').json}
        assert names == {"Premium Butane Refill"}

    def test_search_too_short(self, client, catalog):
        response = client.get('/api/products/search/a')
        assert response.status_code == 400

    def test_unknown_category_is_empty(self, client, catalog):
        assert client.get('/api/products/category/cigars').json == []


class TestSeeding:
    def test_seed_is_idempotent(self, db_session):
        first = products_service.seed_catalog()
        second = products_service.seed_catalog()
        assert first == len(products_service.DEFAULT_CATALOG)
        assert second == 0
