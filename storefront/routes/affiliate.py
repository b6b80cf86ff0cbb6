from flask import Blueprint, current_app, jsonify

from storefront.affiliates import next_payout_date
from storefront.services import get_services
from storefront.utils.auth import affiliate_required, current_user_id

affiliate_bp = Blueprint('affiliate', __name__)


@affiliate_bp.route('/link/<product_id>', methods=['GET'])
@affiliate_required
def get_affiliate_link(product_id):
    base = current_app.config['FRONTEND_URL'].rstrip('/')
    link = f'{base}/product/{product_id}?aff={current_user_id()}'
    return jsonify({'link': link}), 200


@affiliate_bp.route('/commission-data', methods=['GET'])
@affiliate_required
def get_commission_data():
    """Program settings as seen by this affiliate, with their own rate."""
    services = get_services()
    settings = services.settings.load()
    data = {**settings, 'rate': settings['defaultRate']}

    entry = services.ledger.get(current_user_id())
    if entry and entry.get('commissionRate'):
        data['rate'] = entry['commissionRate']
    return jsonify(data), 200


@affiliate_bp.route('/stats', methods=['GET'])
@affiliate_required
def get_affiliate_stats():
    services = get_services()
    affiliate_id = current_user_id()
    stats = services.ledger.stats(affiliate_id)
    entry = services.ledger.require(affiliate_id)
    stats['nextPayoutDate'] = next_payout_date(
        entry.get('lastPayoutDate'),
        entry.get('joinedDate'),
        services.settings.load()['payoutSchedule']
    )
    return jsonify(stats), 200
