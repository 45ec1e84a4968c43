# Overview: Flask API routes for catalog reads.

from flask import Blueprint, request, jsonify, current_app

from ..services import products_service
from ..validation import ValidationError, parse_product_id


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products_route():
    """List products; optional ?category= and ?q= filters."""
    try:
        category = (request.args.get("category") or "").strip() or None
        query = (request.args.get("q") or "").strip() or None
        products = products_service.list_products(category=category, query=query)
        return jsonify([p.to_dict() for p in products]), 200

    except Exception:
        current_app.logger.exception("Failed to fetch products")
        return jsonify({"message": "Failed to fetch products"}), 500


@products_bp.get("/<product_id>")
def get_product_route(product_id: str):
    try:
        pid = parse_product_id(product_id)
        product = products_service.get_product(pid)
        if not product:
            return jsonify({"message": "Product not found"}), 404
        return jsonify(product.to_dict()), 200

    except ValidationError as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to fetch product")
        return jsonify({"message": "Failed to fetch product"}), 500


@products_bp.get("/category/<category>")
def products_by_category_route(category: str):
    try:
        category = category.strip()
        if not category:
            return jsonify({"message": "Category is required"}), 400
        products = products_service.list_products(category=category)
        return jsonify([p.to_dict() for p in products]), 200

    except Exception:
        current_app.logger.exception("Failed to fetch products for category %s", category)
        return jsonify({"message": "Failed to fetch products"}), 500


@products_bp.get("/search/<query>")
def search_products_route(query: str):
    try:
        products = products_service.search_products(query)
        return jsonify([p.to_dict() for p in products]), 200

    except ValidationError as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to search products")
        return jsonify({"message": "Failed to search products"}), 500
