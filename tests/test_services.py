import pytest
import requests
import stripe

from storefront.errors import ServiceNotConfiguredError, UpstreamServiceError
from storefront.services.payments import PaymentGateway
from storefront.services.shipping import ShippingRateClient


class FakeResponse:
    def __init__(self, status_code, body):
        self.status_code = status_code
        self.ok = status_code < 400
        self._body = body

    def json(self):
        return self._body


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error:
            raise self.error
        return self.response


def test_shipping_rates_sorted_cheapest_first():
    session = FakeSession(FakeResponse(200, {'rates': [
        {'carrier': 'UPS', 'service': 'Ground', 'rate': '11.20'},
        {'carrier': 'USPS', 'service': 'Priority', 'rate': '7.45'},
    ]}))
    client = ShippingRateClient('key', session=session)

    quote = client.preview(2, '90210', '10001')

    assert [r['carrier'] for r in quote['rates']] == ['USPS', 'UPS']
    assert quote['lowestRate'] == 7.45
    sent = session.calls[0][1]['json']['shipment']
    assert sent['parcel']['weight'] == 32
    assert sent['to_address'] == {'zip': '10001'}


def test_shipping_provider_error_passes_message_through():
    session = FakeSession(FakeResponse(422, {'error': {'message': 'Invalid zip'}}))
    with pytest.raises(UpstreamServiceError) as excinfo:
        ShippingRateClient('key', session=session).preview(1, '00000', '10001')
    assert excinfo.value.message == 'Invalid zip'


def test_shipping_provider_unreachable():
    session = FakeSession(error=requests.ConnectionError('connection refused'))
    with pytest.raises(UpstreamServiceError):
        ShippingRateClient('key', session=session).preview(1, '90210', '10001')


def test_shipping_not_configured():
    with pytest.raises(ServiceNotConfiguredError):
        ShippingRateClient(None).preview(1, '90210', '10001')


def test_payment_intent_not_configured():
    with pytest.raises(ServiceNotConfiguredError):
        PaymentGateway('').create_payment_intent(1000)


def test_payment_intent_uses_its_own_key(monkeypatch):
    captured = {}

    class Intent:
        id = 'pi_123'
        client_secret = 'pi_123_secret'

    def fake_create(**kwargs):
        captured.update(kwargs)
        return Intent()

    monkeypatch.setattr(stripe.PaymentIntent, 'create', fake_create)
    result = PaymentGateway('sk_test_abc').create_payment_intent(4238.6, 'USD')

    assert result == {'clientSecret': 'pi_123_secret', 'id': 'pi_123'}
    assert captured['api_key'] == 'sk_test_abc'
    assert captured['amount'] == 4239
    assert captured['currency'] == 'usd'


def test_payment_provider_error(monkeypatch):
    def fake_create(**kwargs):
        raise stripe.StripeError('card declined')

    monkeypatch.setattr(stripe.PaymentIntent, 'create', fake_create)
    with pytest.raises(UpstreamServiceError):
        PaymentGateway('sk_test_abc').create_payment_intent(1000)
