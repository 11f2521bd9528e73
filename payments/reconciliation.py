import logging

from django.db import transaction

from reservations.ledger import supports_select_for_update
from .email_utils import send_email_on_commit, send_payment_failed_email, send_payment_success_email
from .models import Payment

logger = logging.getLogger(__name__)


EVENT_OUTCOMES = {
    'payment.captured': Payment.STATUS_SUCCEEDED,
    'order.paid': Payment.STATUS_SUCCEEDED,
    'payment.failed': Payment.STATUS_FAILED,
    'refund.processed': Payment.STATUS_REFUNDED,
    'payment_link.cancelled': Payment.STATUS_CANCELED,
    'payment_link.expired': Payment.STATUS_CANCELED,
}


def _entity(payload, name):
    return ((payload or {}).get(name) or {}).get('entity') or {}


def extract_order_id(payload):
    """Find the gateway order id in a webhook ``payload`` block, whichever entity carries it."""
    payment = _entity(payload, 'payment')
    if payment.get('order_id'):
        return payment['order_id']

    order = _entity(payload, 'order')
    if order.get('id'):
        return order['id']

    return _entity(payload, 'payment_link').get('order_id')


class PaymentReconciler:

    @staticmethod
    def handle_event(event_type, order_id, payload=None):
        """Apply a gateway event to the Payment for ``order_id``; returns True if its status changed.

        Events arrive at least once and in any order. Unknown events and
        unknown orders are acknowledged without effect so the gateway stops
        redelivering them.
        """
        new_status = EVENT_OUTCOMES.get(event_type)
        if new_status is None:
            logger.info(f"Unhandled webhook event: {event_type} (order {order_id})")
            return False

        if not order_id:
            logger.warning(f"Webhook event {event_type} carried no order id")
            return False

        payment_entity = _entity(payload, 'payment')
        failure_reason = None
        if new_status == Payment.STATUS_FAILED:
            failure_reason = payment_entity.get('error_description') or 'Unknown error'

        with transaction.atomic():
            payments = Payment.objects.select_related('reservation')
            if supports_select_for_update():
                payments = payments.select_for_update()
            payment = payments.filter(razorpay_order_id=order_id).first()

            if payment is None:
                logger.warning(f"Payment not found for order_id: {order_id} (event {event_type})")
                return False

            return PaymentReconciler.apply_status(
                payment,
                new_status,
                failure_reason=failure_reason,
                gateway_payment_id=payment_entity.get('id'),
            )

    @staticmethod
    def apply_status(payment, new_status, failure_reason=None, gateway_payment_id=None):
        """Move ``payment`` to ``new_status`` and update its reservation.

        Must run inside a transaction holding the payment row. Notifications
        are queued for after commit and only for an actual transition.
        """
        previous = payment.status
        if not payment.transition_to(new_status, failure_reason=failure_reason, gateway_payment_id=gateway_payment_id):
            logger.info(f"Payment {payment.pk} stays {previous}; {new_status} is a duplicate or not allowed")
            return False

        payment.reservation.refresh_paid_flag()
        logger.info(
            f"Payment {payment.pk} ({payment.razorpay_order_id}) moved {previous} -> {new_status}; "
            f"reservation {payment.reservation_id} paid={payment.reservation.is_paid}"
        )

        if new_status == Payment.STATUS_SUCCEEDED:
            send_email_on_commit(send_payment_success_email, payment.pk)
        elif new_status == Payment.STATUS_FAILED:
            send_email_on_commit(send_payment_failed_email, payment.pk)
        return True
