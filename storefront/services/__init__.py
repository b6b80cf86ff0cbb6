from flask import current_app

from storefront.affiliates import AffiliateLedger, AffiliateSettingsStore
from storefront.orders import OrderPipeline
from storefront.storage import EntityRepository, RecordCipher, RecordStore
from .media import MediaStore
from .payments import PaymentGateway
from .shipping import ShippingRateClient

EXTENSION_KEY = 'storefront'


class Services:
    """Everything a request handler needs, built once per app from its config."""

    def __init__(self, config):
        self.cipher = RecordCipher(config['ENCRYPT_KEY'])
        self.store = RecordStore(config['DATA_DIR'], self.cipher)
        self.repository = EntityRepository(self.store)
        self.settings = AffiliateSettingsStore(config['DATA_DIR'])
        self.ledger = AffiliateLedger(
            config['DATA_DIR'],
            self.settings,
            cipher=self.cipher if config['ENCRYPT_AFFILIATE_RECORDS'] else None
        )
        self.orders = OrderPipeline(
            self.repository, self.ledger, orphan_policy=config['ORPHAN_REFERRAL_POLICY']
        )
        self.payments = PaymentGateway(config.get('STRIPE_SECRET_KEY'))
        self.shipping = ShippingRateClient(config.get('EASYPOST_API_KEY'))
        self.media = MediaStore(
            config['MEDIA_DIR'],
            config['ALLOWED_MEDIA_EXTENSIONS'],
            max_files=config.get('MAX_UPLOAD_FILES', 20)
        )


def init_services(app):
    services = Services(app.config)
    app.extensions[EXTENSION_KEY] = services
    return services


def get_services():
    return current_app.extensions[EXTENSION_KEY]
