import logging

import razorpay
from razorpay.errors import BadRequestError, SignatureVerificationError
from razorpay.utility import Utility
from django.conf import settings
from django.utils.crypto import get_random_string
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from core.exceptions import PaymentGatewayError

logger = logging.getLogger(__name__)


class RazorpayClient:

    MAX_RETRIES = 3
    BACKOFF_FACTOR = 0.5

    def __init__(self):
        self.key_id = getattr(settings, 'RAZORPAY_KEY_ID', '') or ''
        self.key_secret = getattr(settings, 'RAZORPAY_KEY_SECRET', '') or ''

        self.is_mock = not self.key_id or 'xxxx' in self.key_id or not self.key_secret or self.key_secret == 'xxxx'

        self.client = None
        if not self.is_mock:
            self.client = razorpay.Client(auth=(self.key_id, self.key_secret))
            self._configure_client_session()
        else:
            logger.warning("⚠️ Running in MOCK PAYMENT MODE. No real transactions will occur.")

    def _configure_client_session(self):

        try:
            if hasattr(self.client, 'session'):
                retry_strategy = Retry(
                    total=self.MAX_RETRIES,
                    backoff_factor=self.BACKOFF_FACTOR,
                    status_forcelist=[429, 500, 502, 503, 504],
                    allowed_methods=["POST", "GET"]
                )
                adapter = HTTPAdapter(max_retries=retry_strategy)
                self.client.session.mount("https://", adapter)
                self.client.session.mount("http://", adapter)
                logger.info("✅ Razorpay client session configured with retry strategy")
        except Exception as e:
            logger.warning(f"⚠️ Could not configure Razorpay session: {e}")

    def _call(self, operation, func, *args, **kwargs):
        """Run one gateway call; transient HTTP failures are already retried by the session adapter."""
        try:
            return func(*args, **kwargs)
        except BadRequestError as e:
            logger.error(f"❌ [RAZORPAY_{operation}] Request rejected: {e}")
            raise PaymentGatewayError(gateway_message=str(e))
        except Exception as e:
            logger.error(f"❌ [RAZORPAY_{operation}] API error: {e}")
            raise PaymentGatewayError(gateway_message=str(e))

    def create_order(self, amount, currency="INR", receipt="receipt", notes=None):

        data = {
            "amount": int(amount * 100),
            "currency": currency,
            "receipt": receipt,
            "payment_capture": 1
        }
        if notes:
            data["notes"] = notes

        logger.info(
            f"💳 [RAZORPAY_ORDER] Creating order: Amount={amount} {currency} | "
            f"Receipt={receipt} | Mock={self.is_mock}"
        )

        if self.is_mock:
            order_id = f"order_mock_{get_random_string(14)}"
            logger.info(f"🎭 [RAZORPAY_ORDER_MOCK] Mock order created: {order_id}")
            return {
                'id': order_id,
                'amount': data['amount'],
                'currency': currency,
                'receipt': receipt,
                'status': 'created',
            }

        order = self._call('ORDER', self.client.order.create, data=data)
        logger.info(
            f"✅ [RAZORPAY_ORDER] Order created successfully: {order['id']} | "
            f"Amount: {order['amount']} | Status: {order.get('status', 'created')}"
        )
        return order

    def fetch_order(self, order_id):
        """Return ``(order, payments)`` for an order as reported by the gateway."""
        if self.is_mock:
            logger.info(f"🎭 [RAZORPAY_FETCH_MOCK] Order {order_id} reported as created")
            return {'id': order_id, 'status': 'created'}, []

        order = self._call('FETCH', self.client.order.fetch, order_id)
        payments = self._call('FETCH', self.client.order.payments, order_id)
        return order, payments.get('items', [])

    def verify_webhook_signature(self, payload, signature):

        if self.is_mock:
            logger.info("🎭 [RAZORPAY_WEBHOOK] Mock mode, signature check skipped")
            return True

        secret = getattr(settings, 'RAZORPAY_WEBHOOK_SECRET', '')
        if not secret or not signature:
            logger.warning("Webhook signature or secret missing")
            return False

        try:
            Utility().verify_webhook_signature(payload, signature, secret)
            return True
        except SignatureVerificationError as e:
            logger.warning(f"Webhook signature verification failed: {e}")
            return False


razorpay_client = RazorpayClient()
