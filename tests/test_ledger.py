import json
import threading

import pytest

from storefront.affiliates import (
    AffiliateLedger, AffiliateSettingsStore, next_payout_date, run_scheduled_payouts
)
from storefront.affiliates import ledger as ledger_module
from storefront.errors import (
    ConflictError, InvalidRateError, NotFoundError, PersistenceError, ValidationError
)
from storefront.storage import RecordCipher, write_atomic

KEY = '00112233445566778899aabbccddeeff' * 2


@pytest.fixture
def settings(tmp_path):
    return AffiliateSettingsStore(tmp_path)


@pytest.fixture
def ledger(tmp_path, settings):
    return AffiliateLedger(tmp_path, settings)


@pytest.fixture
def active(ledger):
    ledger.create_pending(7, 'aff7@example.com')
    ledger.approve(7)
    return ledger


def test_create_pending_defaults(ledger, tmp_path):
    entry = ledger.create_pending(3, 'aff@example.com')

    assert entry['status'] == 'pending'
    assert entry['commissionRate'] == 0.10
    assert entry['pendingPayout'] == 0
    assert entry['totalCommissions'] == 0
    stored = json.loads((tmp_path / 'affiliates' / 'affiliate-3.json').read_text())
    assert stored['userId'] == 3
    assert stored['email'] == 'aff@example.com'


def test_create_pending_uses_settings_default_rate(ledger, settings):
    settings.save({'defaultRate': 0.25})
    assert ledger.create_pending(3, 'aff@example.com')['commissionRate'] == 0.25


def test_create_pending_twice_conflicts(ledger):
    ledger.create_pending(3, 'aff@example.com')
    with pytest.raises(ConflictError):
        ledger.create_pending(3, 'aff@example.com')


def test_approve_is_idempotent(ledger):
    ledger.create_pending(3, 'aff@example.com')
    once = ledger.approve(3)
    twice = ledger.approve(3)

    assert once['status'] == twice['status'] == 'active'
    assert ledger.get(3) == twice


def test_suspend(active):
    assert active.suspend(7)['status'] == 'suspended'
    assert active.suspend(7)['status'] == 'suspended'


def test_unknown_affiliate(ledger):
    assert ledger.get(99) is None
    with pytest.raises(NotFoundError):
        ledger.approve(99)
    with pytest.raises(NotFoundError):
        ledger.process_payout(99)


@pytest.mark.parametrize('rate', [0, -0.1, 1.5, 'abc', None, True])
def test_set_commission_rate_rejects_out_of_range(active, rate):
    with pytest.raises(InvalidRateError):
        active.set_commission_rate(7, rate)
    assert active.get(7)['commissionRate'] == 0.10


@pytest.mark.parametrize('rate', [0.05, '0.2', 1])
def test_set_commission_rate(active, rate):
    assert active.set_commission_rate(7, rate)['commissionRate'] == float(rate)


def test_record_commission_accumulates(active):
    active.record_commission(7, 1, 4)
    entry = active.record_commission(7, 2, 1.255)

    assert entry['pendingPayout'] == 5.26
    assert [c['status'] for c in entry['commissions']] == ['pending', 'pending']
    assert entry['commissions'][1]['amount'] == 1.26


def test_negative_commission_rejected(active):
    with pytest.raises(ValidationError):
        active.record_commission(7, 1, -5)
    assert active.get(7)['pendingPayout'] == 0


def test_record_referral(active):
    entry = active.record_referral(7, 12, 40)
    assert entry['referrals'][0]['orderId'] == 12
    assert entry['referrals'][0]['amount'] == 40.0
    assert entry['pendingPayout'] == 0


def test_record_referred_order(active):
    commission = active.record_referred_order(7, 1, 40)

    entry = active.get(7)
    assert float(commission) == 4.00
    assert entry['pendingPayout'] == 4.00
    assert entry['commissions'][0]['orderId'] == 1
    assert entry['referrals'][0]['amount'] == 40.0


def test_process_payout_moves_pending_to_total(active, tmp_path):
    active.record_commission(7, 1, 4)
    active.record_commission(7, 2, 6)
    before = active.get(7)

    payout = active.process_payout(7)
    after = active.get(7)

    assert payout['amount'] == 10.0
    assert payout['status'] == 'paid'
    assert after['pendingPayout'] == 0
    assert after['totalCommissions'] == before['totalCommissions'] + before['pendingPayout']
    assert after['lastPayoutDate'] == payout['date']
    assert after['payouts'] == [payout]
    assert all(c['status'] == 'paid' for c in after['commissions'])
    payout_file = tmp_path / 'affiliates' / 'payouts' / f"payout-{payout['id']}.json"
    assert json.loads(payout_file.read_text()) == payout


def test_total_commissions_only_grows(active):
    active.record_commission(7, 1, 4)
    active.process_payout(7)
    active.record_commission(7, 2, 3)
    active.process_payout(7)

    entry = active.get(7)
    assert entry['totalCommissions'] == 7.0
    assert len(entry['payouts']) == 2
    assert entry['payouts'][0]['id'] != entry['payouts'][1]['id']


def test_payout_with_nothing_pending(active):
    with pytest.raises(ValidationError):
        active.process_payout(7)


def test_failed_entry_write_leaves_no_payout_file(active, tmp_path, monkeypatch):
    active.record_commission(7, 1, 4)

    def failing_write(path, text):
        if path.name.startswith('affiliate-'):
            raise PersistenceError('disk full')
        write_atomic(path, text)

    monkeypatch.setattr(ledger_module, 'write_atomic', failing_write)
    with pytest.raises(PersistenceError):
        active.process_payout(7)

    assert list((tmp_path / 'affiliates' / 'payouts').glob('payout-*.json')) == []
    entry = active.get(7)
    assert entry['pendingPayout'] == 4.0
    assert entry['payouts'] == []


def test_payout_ids_unique_across_affiliates(ledger, tmp_path, monkeypatch):
    ids = range(1, 9)
    for affiliate_id in ids:
        ledger.create_pending(affiliate_id, f'aff{affiliate_id}@example.com')
        ledger.record_commission(affiliate_id, affiliate_id, 5)
    # every payout lands in the same millisecond
    monkeypatch.setattr(ledger_module.time, 'time', lambda: 1_800_000_000.0)

    threads = [threading.Thread(target=ledger.process_payout, args=(i,)) for i in ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    files = list((tmp_path / 'affiliates' / 'payouts').glob('payout-*.json'))
    assert len(files) == len(ids)
    paid_to = sorted(json.loads(f.read_text())['affiliateId'] for f in files)
    assert paid_to == list(ids)


def test_concurrent_commissions_and_payout_lose_nothing(active):
    count = 40
    active.record_commission(7, 0, 1)
    errors = []

    def commission(order_id):
        try:
            active.record_commission(7, order_id, 1)
        except Exception as e:
            errors.append(e)

    def payout():
        try:
            active.process_payout(7)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=commission, args=(i,)) for i in range(1, count)]
    threads.insert(count // 2, threading.Thread(target=payout))
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    entry = active.get(7)
    assert errors == []
    assert len(entry['commissions']) == count
    assert entry['pendingPayout'] + entry['totalCommissions'] == count
    assert len(entry['payouts']) == 1


def test_stats(active):
    active.record_referred_order(7, 1, 40)
    active.record_referred_order(7, 2, 10)

    stats = active.stats(7)
    assert stats['totalSales'] == 2
    assert stats['pendingCommissions'] == 5.0
    assert stats['conversionRate'] == 100.0
    assert stats['totalCommissions'] == 0


def test_program_stats(active):
    active.create_pending(8, 'aff8@example.com')
    active.record_referred_order(7, 1, 40)
    active.process_payout(7)
    active.record_referred_order(7, 2, 10)

    stats = active.program_stats()
    assert stats['totalAffiliates'] == 2
    assert stats['activeAffiliates'] == 1
    assert stats['totalCommissionsPaid'] == 4.0
    assert stats['pendingPayouts'] == 1.0
    assert stats['totalSalesGenerated'] == 2


def test_legacy_entry_without_payouts(ledger, tmp_path):
    directory = tmp_path / 'affiliates'
    directory.mkdir()
    (directory / 'affiliate-5.json').write_text(json.dumps({
        'id': 5, 'userId': 5, 'status': 'active', 'commissionRate': 0.1,
        'pendingPayout': 2, 'commissions': [{'orderId': 1, 'amount': 2, 'status': 'pending'}]
    }))

    payout = ledger.process_payout(5)
    assert payout['amount'] == 2.0
    assert ledger.get(5)['totalCommissions'] == 2.0


def test_encrypted_entries(tmp_path, settings):
    ledger = AffiliateLedger(tmp_path, settings, cipher=RecordCipher(KEY))
    ledger.create_pending(4, 'hidden@example.com')

    path = tmp_path / 'affiliates' / 'affiliate-4.enc.json'
    assert 'hidden@example.com' not in path.read_text()
    assert ledger.get(4)['email'] == 'hidden@example.com'
    assert [e['id'] for e in ledger.list_all()] == [4]


def test_corrupt_entry_is_skipped(active, tmp_path):
    (tmp_path / 'affiliates' / 'affiliate-9.json').write_text('{not json')
    assert [e['id'] for e in active.list_all()] == [7]
    assert active.get(9) is None


def test_settings_merge_with_defaults(settings):
    assert settings.load()['minimumPayout'] == 50
    saved = settings.save({'minimumPayout': 20})
    assert saved['minimumPayout'] == 20
    assert saved['payoutSchedule'] == 'monthly'
    assert settings.load() == saved


def test_scheduled_payouts_respect_minimum_and_status(active, settings):
    settings.save({'minimumPayout': 5})
    active.create_pending(8, 'aff8@example.com')
    active.record_commission(8, 1, 50)
    active.record_commission(7, 2, 6)

    payouts = run_scheduled_payouts(active, settings)

    assert [p['affiliateId'] for p in payouts] == [7]
    assert active.get(8)['pendingPayout'] == 50.0


def test_scheduled_payouts_skip_small_balances(active, settings):
    active.record_commission(7, 1, 4)
    assert run_scheduled_payouts(active, settings) == []
    assert active.get(7)['pendingPayout'] == 4.0


def test_next_payout_date():
    assert next_payout_date('2026-01-31T10:00:00.000Z', None, 'monthly') == '2026-02-28'
    assert next_payout_date(None, '2026-03-01T00:00:00.000Z', 'weekly') == '2026-03-08'
    assert next_payout_date(None, None, 'monthly') is None
