from .ledger import AffiliateLedger, validate_rate, PENDING, ACTIVE, SUSPENDED
from .settings import AffiliateSettingsStore, DEFAULT_SETTINGS
from .payouts import run_scheduled_payouts, next_payout_date

__all__ = [
    'AffiliateLedger', 'AffiliateSettingsStore', 'DEFAULT_SETTINGS',
    'validate_rate', 'run_scheduled_payouts', 'next_payout_date',
    'PENDING', 'ACTIVE', 'SUSPENDED'
]
