import logging

from storefront.affiliates.ledger import SUSPENDED
from storefront.errors import NotFoundError, PersistenceError, StorefrontError
from storefront.orders.totals import checkout_totals, commission_base
from storefront.utils.helpers import money_float

logger = logging.getLogger(__name__)

ACCEPT = 'accept'
REJECT = 'reject'
ORPHAN_POLICIES = (ACCEPT, REJECT)

CREDITED = 'credited'
ORPHANED = 'orphaned'
FAILED = 'failed'


class OrderPipeline:
    """Persists orders and credits the referring affiliate.

    The order is written first and is the primary artifact: once it is saved,
    a failure while updating the ledger is logged and recorded on the order,
    never raised. The two writes are not atomic.
    """

    def __init__(self, repository, ledger, orphan_policy=ACCEPT):
        if orphan_policy not in ORPHAN_POLICIES:
            raise ValueError(f'ORPHAN_REFERRAL_POLICY must be one of {ORPHAN_POLICIES}')
        self.repository = repository
        self.ledger = ledger
        self.orphan_policy = orphan_policy

    def create_order(self, order_data, affiliate_id=None):
        """Save a validated order payload and attribute it to affiliate_id.

        Returns ``(order, commission)``; commission is None when nothing was credited.
        """
        affiliate = None
        if affiliate_id is not None:
            affiliate = self.ledger.get(affiliate_id)
            if affiliate is None and self.orphan_policy == REJECT:
                raise NotFoundError(f'Unknown affiliate {affiliate_id}')

        order = dict(order_data)
        order['affiliateId'] = affiliate_id
        order['totals'] = checkout_totals(order['items'])
        order['status'] = 'pending'
        if affiliate_id is not None:
            order['referralStatus'] = self._initial_referral_status(affiliate, affiliate_id)

        order = self.repository.save('order', order)
        logger.info('Order %s created (total %.2f)', order['id'], order['totals']['total'])

        if order.get('referralStatus') != CREDITED:
            return order, None

        try:
            commission = self.ledger.record_referred_order(
                affiliate_id, order['id'], commission_base(order['items'])
            )
        except (StorefrontError, OSError) as e:
            message = e.message if isinstance(e, StorefrontError) else str(e)
            logger.error('Failed to credit affiliate %s for order %s: %s',
                         affiliate_id, order['id'], message)
            order['referralStatus'] = FAILED
            self._save_quietly(order)
            return order, None

        logger.info('Credited affiliate %s with %s for order %s', affiliate_id, commission, order['id'])
        return order, money_float(commission)

    def _initial_referral_status(self, affiliate, affiliate_id):
        if affiliate is None:
            logger.warning('Orphaned referral: affiliate %s does not exist', affiliate_id)
            return ORPHANED
        if affiliate['status'] == SUSPENDED:
            logger.warning('Referral for suspended affiliate %s not credited', affiliate_id)
            return SUSPENDED
        return CREDITED

    def _save_quietly(self, order):
        try:
            self.repository.save('order', order)
        except PersistenceError as e:
            logger.error('Could not flag order %s: %s', order['id'], e.message)
