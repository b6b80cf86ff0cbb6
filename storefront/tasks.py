# storefront/tasks.py

import logging

from . import create_app
from .affiliates import run_scheduled_payouts
from .services import get_services

logger = logging.getLogger(__name__)


def process_scheduled_payouts():
    """
    A scheduled task (cron or similar) paying out affiliates whose pending
    balance reached the program minimum.
    """
    app = create_app()
    with app.app_context():
        services = get_services()
        payouts = run_scheduled_payouts(services.ledger, services.settings)
        logger.info('Scheduled payout job finished with %d payout(s).', len(payouts))
        return payouts


if __name__ == '__main__':
    process_scheduled_payouts()
