from flask import Blueprint, jsonify, request

from storefront.errors import NotFoundError, ValidationError
from storefront.schemas import order_schema, payment_intent_schema
from storefront.services import get_services
from storefront.utils.auth import admin_required, jwt_required_custom
from storefront.utils.http import load_json

orders_bp = Blueprint('orders', __name__)


def _affiliate_id_param():
    raw = request.args.get('affiliateId') or request.args.get('aff')
    if raw in (None, ''):
        return None
    try:
        affiliate_id = int(raw)
    except ValueError:
        raise ValidationError('affiliateId must be an integer')
    if affiliate_id <= 0:
        raise ValidationError('affiliateId must be positive')
    return affiliate_id


# ---------------- PLACE AN ORDER ----------------
@orders_bp.route('/orders', methods=['POST'])
def create_order():
    data = load_json(order_schema)
    order, commission = get_services().orders.create_order(data, _affiliate_id_param())
    return jsonify({
        'message': 'Order created',
        'order': order,
        'commission': commission
    }), 201


# ---------------- ADMIN ORDER VIEWS ----------------
@orders_bp.route('/admin/orders', methods=['GET'])
@admin_required
def list_orders():
    orders = get_services().repository.load_all('order')
    affiliate_id = _affiliate_id_param()
    if affiliate_id is not None:
        orders = [o for o in orders if o.get('affiliateId') == affiliate_id]
    return jsonify(orders), 200


@orders_bp.route('/admin/orders/<int:order_id>', methods=['GET'])
@admin_required
def get_order(order_id):
    order = get_services().repository.load_one('order', order_id)
    if not order:
        raise NotFoundError('Order not found')
    return jsonify(order), 200


# ---------------- PAYMENT INTENT ----------------
@orders_bp.route('/create-payment-intent', methods=['POST'])
@jwt_required_custom
def create_payment_intent():
    """Creates a Stripe PaymentIntent for wallet payments. amount is in cents."""
    data = load_json(payment_intent_schema)
    intent = get_services().payments.create_payment_intent(data['amount'], data['currency'])
    return jsonify({'clientSecret': intent['clientSecret']}), 200
