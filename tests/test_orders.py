import pytest

from storefront.affiliates import AffiliateLedger, AffiliateSettingsStore
from storefront.errors import NotFoundError
from storefront.orders import OrderPipeline, checkout_totals, commission_base
from storefront.storage import EntityRepository, RecordCipher, RecordStore

KEY = '00112233445566778899aabbccddeeff' * 2


@pytest.fixture
def repository(tmp_path):
    return EntityRepository(RecordStore(tmp_path / 'data', RecordCipher(KEY)))


@pytest.fixture
def ledger(tmp_path):
    ledger = AffiliateLedger(tmp_path / 'data', AffiliateSettingsStore(tmp_path / 'data'))
    ledger.create_pending(7, 'aff7@example.com')
    ledger.approve(7)
    return ledger


def order_payload(*items):
    return {'items': list(items), 'address': {'zip': '10001'}, 'paymentMethod': 'card'}


def test_commission_base_ignores_promo_prices():
    items = [{'price': 20, 'quantity': 2, 'promoPrice': 15}, {'price': 5.5, 'quantity': 1}]
    assert float(commission_base(items)) == 45.5


def test_checkout_totals_small_order():
    totals = checkout_totals([{'price': 20, 'quantity': 2, 'promoPrice': 15}])
    assert totals == {'subtotal': 30.0, 'shipping': 9.99, 'tax': 2.4, 'total': 42.39}


def test_checkout_totals_free_shipping():
    totals = checkout_totals([{'price': 60, 'quantity': 2}])
    assert totals['shipping'] == 0
    assert totals['total'] == 129.6


def test_order_without_affiliate(repository, ledger):
    pipeline = OrderPipeline(repository, ledger)
    order, commission = pipeline.create_order(order_payload({'price': 20, 'quantity': 2}))

    assert commission is None
    assert order['affiliateId'] is None
    assert 'referralStatus' not in order
    assert repository.load_one('order', order['id'])['status'] == 'pending'


def test_order_credits_affiliate(repository, ledger):
    pipeline = OrderPipeline(repository, ledger)
    order, commission = pipeline.create_order(order_payload({'price': 20, 'quantity': 2}), 7)

    assert commission == 4.0
    assert order['affiliateId'] == 7
    assert order['referralStatus'] == 'credited'
    entry = ledger.get(7)
    assert entry['pendingPayout'] == 4.0
    assert entry['commissions'][0]['orderId'] == order['id']


def test_pending_affiliate_is_credited(repository, ledger):
    ledger.create_pending(8, 'aff8@example.com')
    pipeline = OrderPipeline(repository, ledger)
    _, commission = pipeline.create_order(order_payload({'price': 10, 'quantity': 1}), 8)
    assert commission == 1.0


def test_orphaned_referral_accepted(repository, ledger):
    pipeline = OrderPipeline(repository, ledger, orphan_policy='accept')
    order, commission = pipeline.create_order(order_payload({'price': 20, 'quantity': 1}), 99)

    assert commission is None
    assert order['referralStatus'] == 'orphaned'
    assert repository.load_one('order', order['id'])['affiliateId'] == 99
    assert ledger.get(99) is None


def test_orphaned_referral_rejected(repository, ledger):
    pipeline = OrderPipeline(repository, ledger, orphan_policy='reject')
    with pytest.raises(NotFoundError):
        pipeline.create_order(order_payload({'price': 20, 'quantity': 1}), 99)
    assert repository.load_all('order') == []


def test_suspended_affiliate_not_credited(repository, ledger):
    ledger.suspend(7)
    pipeline = OrderPipeline(repository, ledger)
    order, commission = pipeline.create_order(order_payload({'price': 20, 'quantity': 1}), 7)

    assert commission is None
    assert order['referralStatus'] == 'suspended'
    assert ledger.get(7)['pendingPayout'] == 0


def test_ledger_failure_keeps_order(repository, ledger, monkeypatch):
    def broken(*args, **kwargs):
        raise OSError('disk full')

    monkeypatch.setattr(ledger, 'record_referred_order', broken)
    pipeline = OrderPipeline(repository, ledger)
    order, commission = pipeline.create_order(order_payload({'price': 20, 'quantity': 1}), 7)

    assert commission is None
    assert repository.load_one('order', order['id'])['referralStatus'] == 'failed'


def test_unknown_policy():
    with pytest.raises(ValueError):
        OrderPipeline(None, None, orphan_policy='ignore')
