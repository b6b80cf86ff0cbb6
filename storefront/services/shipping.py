import logging
import requests

from storefront.errors import ServiceNotConfiguredError, UpstreamServiceError

logger = logging.getLogger(__name__)

EASYPOST_SHIPMENTS_URL = 'https://api.easypost.com/v2/shipments'


class ShippingRateClient:
    """Quotes carrier rates for a parcel through the EasyPost REST API."""

    def __init__(self, api_key=None, timeout=15, session=None):
        self.api_key = api_key or None
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def configured(self):
        return bool(self.api_key)

    def preview(self, weight_lbs, from_zip, to_zip):
        """Return ``{'rates': [...], 'lowestRate': float | None}``, cheapest first."""
        if not self.configured:
            raise ServiceNotConfiguredError('Shipping provider not configured')

        payload = {
            'shipment': {
                'from_address': {'zip': from_zip},
                'to_address': {'zip': to_zip},
                # EasyPost weighs parcels in ounces
                'parcel': {'weight': weight_lbs * 16},
            }
        }
        try:
            response = self.session.post(
                EASYPOST_SHIPMENTS_URL, json=payload,
                auth=(self.api_key, ''), timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error('Shipping provider unreachable: %s', e)
            raise UpstreamServiceError(str(e))

        body = _json_or_empty(response)
        if not response.ok:
            message = body.get('error', {}).get('message') or f'HTTP {response.status_code}'
            logger.error('Shipping provider error: %s', message)
            raise UpstreamServiceError(message)

        rates = sorted(
            (
                {
                    'carrier': r.get('carrier'),
                    'service': r.get('service'),
                    'rate': float(r.get('rate') or 0)
                }
                for r in body.get('rates', [])
            ),
            key=lambda r: r['rate']
        )
        return {'rates': rates, 'lowestRate': rates[0]['rate'] if rates else None}


def _json_or_empty(response):
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
