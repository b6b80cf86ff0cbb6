# storefront/affiliates/payouts.py

import logging
from dateutil.relativedelta import relativedelta

from storefront.affiliates.ledger import ACTIVE
from storefront.errors import StorefrontError
from storefront.utils.helpers import parse_iso, to_money

logger = logging.getLogger(__name__)

SCHEDULES = {
    'weekly': relativedelta(weeks=1),
    'biweekly': relativedelta(weeks=2),
    'monthly': relativedelta(months=1),
}


def next_payout_date(last_payout, joined, schedule):
    """Date of the next scheduled payout, counted from the last one (or joining)."""
    start = parse_iso(last_payout) or parse_iso(joined)
    if start is None:
        return None
    step = SCHEDULES.get(schedule, SCHEDULES['monthly'])
    return (start + step).date().isoformat()


def run_scheduled_payouts(ledger, settings_store):
    """
    Pay out every active affiliate whose pending balance reached the minimum.
    One failing affiliate does not stop the run.
    """
    settings = settings_store.load()
    minimum = to_money(settings.get('minimumPayout', 0))
    logger.info('Running scheduled payouts (minimum %s)...', minimum)

    payouts = []
    for entry in ledger.list_all():
        if entry['status'] != ACTIVE:
            continue
        pending = to_money(entry['pendingPayout'])
        if pending <= 0 or pending < minimum:
            continue
        try:
            payouts.append(ledger.process_payout(entry['id']))
        except StorefrontError as e:
            logger.error('Error paying out affiliate %s: %s', entry['id'], e.message)
            continue

    if not payouts:
        logger.info('No affiliates are due for a payout.')
    else:
        logger.info('Scheduled payout run finished: %d payout(s).', len(payouts))
    return payouts
