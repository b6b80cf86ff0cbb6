import logging
import stripe

from storefront.errors import ServiceNotConfiguredError, UpstreamServiceError

logger = logging.getLogger(__name__)


class PaymentGateway:
    """Creates Stripe PaymentIntents with the key it was built with."""

    def __init__(self, api_key=None):
        self.api_key = api_key or None

    @property
    def configured(self):
        return bool(self.api_key)

    def create_payment_intent(self, amount, currency='usd'):
        """amount is in the smallest currency unit (cents)."""
        if not self.configured:
            raise ServiceNotConfiguredError('Stripe not configured')
        try:
            intent = stripe.PaymentIntent.create(
                api_key=self.api_key,
                amount=int(round(amount)),
                currency=currency.lower(),
                automatic_payment_methods={'enabled': True},
            )
        except stripe.StripeError as e:
            logger.error('Payment intent error: %s', e)
            raise UpstreamServiceError(getattr(e, 'user_message', None) or str(e))
        return {'clientSecret': intent.client_secret, 'id': intent.id}
