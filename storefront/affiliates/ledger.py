import json
import logging
import re
import time
from decimal import Decimal, InvalidOperation
from pathlib import Path

from storefront.errors import (
    ConflictError, InvalidRateError, NotFoundError, PersistenceError, ValidationError
)
from storefront.storage import write_atomic
from storefront.storage.locks import KeyedLocks
from storefront.utils.helpers import money_float, to_decimal, to_money, utc_now_iso

logger = logging.getLogger(__name__)

PENDING = 'pending'
ACTIVE = 'active'
SUSPENDED = 'suspended'
STATUSES = (PENDING, ACTIVE, SUSPENDED)

FALLBACK_RATE = Decimal('0.10')


def validate_rate(rate):
    """Return rate as a Decimal in (0, 1] or raise InvalidRateError."""
    if isinstance(rate, bool) or rate is None:
        raise InvalidRateError()
    try:
        value = Decimal(str(rate))
    except InvalidOperation:
        raise InvalidRateError()
    if not value.is_finite() or value <= 0 or value > 1:
        raise InvalidRateError()
    return value


def commission_rate_of(entry):
    rate = entry.get('commissionRate')
    return Decimal(str(rate)) if rate else FALLBACK_RATE


class AffiliateLedger:
    """One JSON document per affiliate holding status, rate and money totals.

    Every mutation is a load-modify-write under a per-affiliate lock, so
    referral, commission and payout events on the same entry are applied one
    at a time. Entries are plaintext JSON unless a cipher is given, in which
    case they use the same ``iv:cipher`` envelope as the other records.
    """

    def __init__(self, data_dir, settings, cipher=None):
        self.directory = Path(data_dir) / 'affiliates'
        self.payouts_directory = self.directory / 'payouts'
        self.settings = settings
        self.cipher = cipher
        self._locks = KeyedLocks()
        self._last_payout_id = 0

    @property
    def suffix(self):
        return '.enc.json' if self.cipher else '.json'

    def path_for(self, affiliate_id):
        return self.directory / f'affiliate-{int(affiliate_id)}{self.suffix}'

    # ------------------ FILE ACCESS ------------------

    def _read(self, path):
        try:
            text = path.read_text(encoding='utf-8')
            if self.cipher:
                text = self.cipher.decrypt(text)
            return self._normalize(json.loads(text))
        except (OSError, ValueError) as e:
            raise PersistenceError(f'Failed to load {path.name}: {e}')

    def _write(self, entry):
        text = json.dumps(entry, indent=2)
        if self.cipher:
            text = self.cipher.encrypt(text)
        write_atomic(self.path_for(entry['id']), text)

    @staticmethod
    def _normalize(entry):
        # entries written before payouts were tracked lack some fields
        entry.setdefault('status', PENDING)
        entry.setdefault('totalCommissions', 0)
        entry.setdefault('pendingPayout', 0)
        entry.setdefault('commissions', [])
        entry.setdefault('referrals', [])
        entry.setdefault('payouts', [])
        entry.setdefault('lastPayoutDate', None)
        return entry

    def _mutate(self, affiliate_id, change):
        """Apply change(entry) under the entry's lock and persist the result."""
        with self._locks.hold(int(affiliate_id)):
            path = self.path_for(affiliate_id)
            if not path.exists():
                raise NotFoundError('Affiliate not found')
            entry = self._read(path)
            result = change(entry)
            self._write(entry)
            return entry if result is None else result

    # ------------------ QUERIES ------------------

    def exists(self, affiliate_id):
        return self.path_for(affiliate_id).exists()

    def get(self, affiliate_id):
        try:
            path = self.path_for(affiliate_id)
        except (TypeError, ValueError):
            return None
        if not path.exists():
            return None
        try:
            return self._read(path)
        except PersistenceError as e:
            logger.error(e.message)
            return None

    def require(self, affiliate_id):
        entry = self.get(affiliate_id)
        if entry is None:
            raise NotFoundError('Affiliate not found')
        return entry

    def list_all(self):
        if not self.directory.exists():
            return []
        pattern = re.compile(rf'^affiliate-\d+{re.escape(self.suffix)}$')
        entries = []
        for path in sorted(self.directory.iterdir()):
            if not pattern.match(path.name):
                continue
            try:
                entries.append(self._read(path))
            except PersistenceError as e:
                logger.error(e.message)
        return sorted(entries, key=lambda e: e.get('id') or 0)

    # ------------------ LIFECYCLE ------------------

    def create_pending(self, user_id, email, rate=None, notes=None):
        rate = validate_rate(self.settings.default_rate if rate is None else rate)
        now = utc_now_iso()
        with self._locks.hold(int(user_id)):
            if self.exists(user_id):
                raise ConflictError('Already registered as affiliate')
            entry = {
                'id': int(user_id),
                'userId': int(user_id),
                'email': email,
                'status': PENDING,
                'commissionRate': float(rate),
                'totalCommissions': 0,
                'pendingPayout': 0,
                'commissions': [],
                'referrals': [],
                'payouts': [],
                'joinedDate': now,
                'lastPayoutDate': None,
                'application': {
                    'date': now,
                    'status': PENDING,
                    'notes': notes or 'Auto-generated from registration'
                }
            }
            self._write(entry)
        logger.info('Affiliate %s registered, awaiting approval', user_id)
        return entry

    def _set_status(self, affiliate_id, status):
        def change(entry):
            if entry['status'] != status:
                logger.info('Affiliate %s: %s -> %s', affiliate_id, entry['status'], status)
            entry['status'] = status
            if entry.get('application'):
                entry['application']['status'] = status
        return self._mutate(affiliate_id, change)

    def approve(self, affiliate_id):
        return self._set_status(affiliate_id, ACTIVE)

    def suspend(self, affiliate_id):
        return self._set_status(affiliate_id, SUSPENDED)

    def set_commission_rate(self, affiliate_id, rate):
        value = validate_rate(rate)

        def change(entry):
            entry['commissionRate'] = float(value)
        return self._mutate(affiliate_id, change)

    # ------------------ MONEY ------------------

    @staticmethod
    def _append_referral(entry, order_id, amount):
        entry['referrals'].append({
            'orderId': order_id,
            'date': utc_now_iso(),
            'amount': money_float(amount)
        })

    @staticmethod
    def _append_commission(entry, order_id, amount):
        amount = to_money(amount)
        if amount < 0:
            raise ValidationError('Commission amount cannot be negative')
        entry['commissions'].append({
            'orderId': order_id,
            'amount': float(amount),
            'date': utc_now_iso(),
            'status': PENDING
        })
        entry['pendingPayout'] = float(to_money(entry['pendingPayout']) + amount)
        return amount

    def record_referral(self, affiliate_id, order_id, amount):
        return self._mutate(
            affiliate_id, lambda entry: self._append_referral(entry, order_id, amount)
        )

    def record_commission(self, affiliate_id, order_id, amount):
        def change(entry):
            self._append_commission(entry, order_id, amount)
        return self._mutate(affiliate_id, change)

    def record_referred_order(self, affiliate_id, order_id, subtotal):
        """Attribute one order: referral plus commission in a single write.

        Returns the commission amount as a Decimal.
        """
        result = {}

        def change(entry):
            commission = to_decimal(subtotal) * commission_rate_of(entry)
            self._append_referral(entry, order_id, subtotal)
            result['commission'] = self._append_commission(entry, order_id, commission)

        self._mutate(affiliate_id, change)
        return result['commission']

    def _payout_id(self):
        # one lock for the whole payouts directory, ids never repeat in-process
        with self._locks.hold('payouts'):
            payout_id = max(int(time.time() * 1000), self._last_payout_id + 1)
            while (self.payouts_directory / f'payout-{payout_id}.json').exists():
                payout_id += 1
            self._last_payout_id = payout_id
            return payout_id

    def process_payout(self, affiliate_id):
        """Pay out everything pending. Returns the payout record.

        The affiliate entry is written before the payout file, so a failed
        entry write leaves no paid payout behind.
        """

        def change(entry):
            amount = to_money(entry['pendingPayout'])
            if amount <= 0:
                raise ValidationError('No pending commission to pay out')

            now = utc_now_iso()
            payout = {
                'id': self._payout_id(),
                'affiliateId': entry['id'],
                'amount': float(amount),
                'date': now,
                'status': 'paid'
            }
            for commission in entry['commissions']:
                if commission.get('status') == PENDING:
                    commission['status'] = 'paid'
                    commission['payoutId'] = payout['id']

            entry['totalCommissions'] = float(to_money(entry['totalCommissions']) + amount)
            entry['pendingPayout'] = 0
            entry['lastPayoutDate'] = now
            entry['payouts'].append(payout)
            return payout

        payout = self._mutate(affiliate_id, change)
        write_atomic(
            self.payouts_directory / f"payout-{payout['id']}.json",
            json.dumps(payout, indent=2)
        )
        logger.info('Paid out %.2f to affiliate %s', payout['amount'], affiliate_id)
        return payout

    # ------------------ REPORTING ------------------

    def stats(self, affiliate_id):
        entry = self.require(affiliate_id)
        referrals = len(entry['referrals'])
        commissions = len(entry['commissions'])
        conversion = round(min(100.0, commissions / referrals * 100), 1) if referrals else 0
        return {
            'totalCommissions': money_float(entry['totalCommissions']),
            'totalSales': referrals,
            'pendingCommissions': money_float(entry['pendingPayout']),
            'conversionRate': conversion,
            'status': entry['status'],
            'commissionRate': float(commission_rate_of(entry))
        }

    def program_stats(self):
        entries = self.list_all()
        return {
            'totalAffiliates': len(entries),
            'activeAffiliates': sum(1 for e in entries if e['status'] == ACTIVE),
            'totalCommissionsPaid': float(sum((to_money(e['totalCommissions']) for e in entries), Decimal('0'))),
            'pendingPayouts': float(sum((to_money(e['pendingPayout']) for e in entries), Decimal('0'))),
            'totalSalesGenerated': sum(len(e['referrals']) for e in entries)
        }
