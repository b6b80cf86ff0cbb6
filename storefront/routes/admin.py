from flask import Blueprint, jsonify, request

from storefront.schemas import (
    affiliate_settings_schema, commission_rate_schema, shipping_preview_schema
)
from storefront.services import get_services
from storefront.utils.auth import admin_required
from storefront.utils.http import load_json

admin_bp = Blueprint('admin', __name__)


@admin_bp.route('/dashboard', methods=['GET'])
@admin_required
def get_admin_dashboard():
    """Counts across the catalog plus the affiliate program totals."""
    services = get_services()
    repository = services.repository
    orders = repository.load_all('order')
    return jsonify({
        'stats': {
            'total_products': len(repository.load_all('product')),
            'total_users': len(repository.load_all('user')),
            'total_orders': len(orders),
            'referred_orders': sum(1 for o in orders if o.get('affiliateId')),
            'affiliates': services.ledger.program_stats()
        }
    }), 200


# ---------------- AFFILIATES ----------------

@admin_bp.route('/affiliates', methods=['GET'])
@admin_required
def list_affiliates():
    return jsonify(get_services().ledger.list_all()), 200


@admin_bp.route('/affiliate-stats', methods=['GET'])
@admin_required
def get_affiliate_program_stats():
    return jsonify(get_services().ledger.program_stats()), 200


@admin_bp.route('/affiliates/<int:affiliate_id>/commission', methods=['PUT'])
@admin_required
def update_commission_rate(affiliate_id):
    data = load_json(commission_rate_schema)
    affiliate = get_services().ledger.set_commission_rate(affiliate_id, data['rate'])
    return jsonify({'message': 'Commission rate updated', 'affiliate': affiliate}), 200


@admin_bp.route('/affiliates/<int:affiliate_id>/approve', methods=['POST'])
@admin_required
def approve_affiliate(affiliate_id):
    affiliate = get_services().ledger.approve(affiliate_id)
    return jsonify({'message': 'Affiliate approved', 'affiliate': affiliate}), 200


@admin_bp.route('/affiliates/<int:affiliate_id>/suspend', methods=['POST'])
@admin_required
def suspend_affiliate(affiliate_id):
    affiliate = get_services().ledger.suspend(affiliate_id)
    return jsonify({'message': 'Affiliate suspended', 'affiliate': affiliate}), 200


@admin_bp.route('/affiliates/<int:affiliate_id>/payout', methods=['POST'])
@admin_required
def process_payout(affiliate_id):
    payout = get_services().ledger.process_payout(affiliate_id)
    return jsonify({'message': 'Payout processed', 'payout': payout}), 200


@admin_bp.route('/affiliate-settings', methods=['GET'])
@admin_required
def get_affiliate_settings():
    return jsonify(get_services().settings.load()), 200


@admin_bp.route('/affiliate-settings', methods=['PUT'])
@admin_required
def update_affiliate_settings():
    changes = load_json(affiliate_settings_schema)
    settings = get_services().settings.save(changes)
    return jsonify({'message': 'Settings saved', 'settings': settings}), 200


# ---------------- SHIPPING & MEDIA ----------------

@admin_bp.route('/shipping-preview', methods=['POST'])
@admin_required
def shipping_preview():
    data = load_json(shipping_preview_schema)
    quote = get_services().shipping.preview(data['weight'], data['fromZip'], data['toZip'])
    return jsonify(quote), 200


@admin_bp.route('/upload-media', methods=['POST'])
@admin_required
def upload_media():
    files = get_services().media.save_all(request.files.getlist('media'))
    return jsonify({
        'success': True,
        'message': f'Uploaded {len(files)} file(s)',
        'files': files
    }), 200
