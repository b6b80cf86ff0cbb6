from flask import Blueprint, jsonify

from storefront.errors import NotFoundError
from storefront.schemas import normalize_product, product_schema
from storefront.services import get_services
from storefront.utils.auth import admin_required
from storefront.utils.http import load_json

products_bp = Blueprint('products', __name__)


# -------------------- CATALOG -------------------- #

@products_bp.route('/products', methods=['GET'])
def list_products():
    products = get_services().repository.load_all('product')
    return jsonify([normalize_product(p) for p in products]), 200


@products_bp.route('/products/<int:product_id>', methods=['GET'])
def get_product(product_id):
    product = get_services().repository.load_one('product', product_id)
    if not product:
        raise NotFoundError('Product not found')
    return jsonify(normalize_product(product)), 200


# -------------------- ADMIN -------------------- #

@products_bp.route('/admin/products', methods=['POST'])
@admin_required
def create_product():
    data = normalize_product(load_json(product_schema))
    product = get_services().repository.save('product', data)
    return jsonify({'message': 'Product added', 'product': product}), 201


@products_bp.route('/admin/products/<int:product_id>', methods=['PUT'])
@admin_required
def update_product(product_id):
    """Replace-style update: fields missing from the body keep their stored values."""
    repository = get_services().repository
    existing = repository.load_one('product', product_id)
    if not existing:
        raise NotFoundError('Product not found')

    changes = load_json(product_schema, partial=True)
    for key in ('options', 'health', 'variantImages'):
        if isinstance(changes.get(key), dict) and isinstance(existing.get(key), dict):
            changes[key] = {**existing[key], **changes[key]}
    product = normalize_product({**existing, **changes, 'id': product_id})
    repository.save('product', product)
    return jsonify({'message': 'Product updated', 'product': product}), 200


@products_bp.route('/admin/products/<int:product_id>', methods=['DELETE'])
@admin_required
def delete_product(product_id):
    get_services().repository.delete('product', product_id)
    return jsonify({'message': 'Product deleted'}), 200
