import logging

from django.conf import settings
from django.db import transaction

from core.exceptions import InvalidInputError, NotFoundError, UnauthorizedError
from reservations.ledger import supports_select_for_update
from reservations.models import Reservation
from .models import Payment
from .razorpay_utils import razorpay_client
from .reconciliation import PaymentReconciler

logger = logging.getLogger(__name__)


def serialize_payment(payment):
    return {
        'paymentId': payment.id,
        'reservationId': payment.reservation_id,
        'orderId': payment.razorpay_order_id,
        'amount': payment.amount,
        'currency': payment.currency,
        'status': payment.status,
        'failureReason': payment.failure_reason,
        'createdAt': payment.created_at,
        'paidAt': payment.paid_at,
        'refundedAt': payment.refunded_at,
    }


def normalize_gateway_status(order, gateway_payments):
    """Collapse a Razorpay order and its payment attempts into one Payment status."""
    statuses = [p.get('status') for p in gateway_payments]

    if 'refunded' in statuses:
        return Payment.STATUS_REFUNDED, None
    if order.get('status') == 'paid' or 'captured' in statuses:
        return Payment.STATUS_SUCCEEDED, None
    if statuses and all(s == 'failed' for s in statuses):
        return Payment.STATUS_FAILED, gateway_payments[-1].get('error_description') or 'Unknown error'
    if order.get('status') == 'attempted' or statuses:
        return Payment.STATUS_ATTEMPTED, None
    return Payment.STATUS_CREATED, None


class PaymentService:

    @staticmethod
    def create_payment_intent(user, reservation_id):

        if reservation_id is None or reservation_id <= 0:
            raise InvalidInputError("Reservation ID must be a positive integer")

        reservation = Reservation.objects.select_related('showtime__movie').filter(pk=reservation_id).first()
        if reservation is None:
            raise NotFoundError(f"Reservation with ID {reservation_id} does not exist.")
        if not reservation.is_owned_by(user):
            logger.warning(f"User {user.pk} tried to pay for reservation {reservation_id} owned by user {reservation.user_id}")
            raise UnauthorizedError("You are not authorized to pay for this reservation.")
        if reservation.is_paid:
            raise InvalidInputError(f"Reservation {reservation_id} is already paid.")

        amount = reservation.showtime.price
        currency = getattr(settings, 'PAYMENT_CURRENCY', 'INR')

        order = razorpay_client.create_order(
            amount,
            currency=currency,
            receipt=f"reservation_{reservation.id}",
            notes={
                'reservation_id': str(reservation.id),
                'user_id': str(user.pk),
                'movie': reservation.showtime.movie.title,
                'seat_number': str(reservation.seat_number),
            },
        )

        with transaction.atomic():
            # The hold sweep may have released the seat while the order was created
            reservations = Reservation.objects.filter(pk=reservation.pk)
            if supports_select_for_update():
                reservations = reservations.select_for_update()
            if reservations.first() is None:
                logger.warning(f"Reservation {reservation.pk} released before order {order['id']} was recorded")
                raise NotFoundError(f"Reservation with ID {reservation_id} does not exist.")

            payment = Payment.objects.create(
                reservation=reservation,
                user=user,
                amount=amount,
                currency=currency,
                razorpay_order_id=order['id'],
                status=Payment.STATUS_CREATED,
            )

        logger.info(
            f"💳 Payment {payment.id} created for reservation {reservation.id}: "
            f"order {payment.razorpay_order_id} | {amount} {currency}"
        )

        return {
            'paymentId': payment.id,
            'clientSecret': payment.razorpay_order_id,
            'intentId': payment.razorpay_order_id,
            'amount': payment.amount,
            'currency': payment.currency,
            'status': payment.status,
            'keyId': razorpay_client.key_id,
        }

    @staticmethod
    def _get_owned_payment(user, payment_id):

        if payment_id is None or payment_id <= 0:
            raise InvalidInputError("Payment ID must be a positive integer")

        payment = Payment.objects.filter(pk=payment_id).first()
        if payment is None:
            raise NotFoundError(f"Payment with ID {payment_id} does not exist.")
        if not payment.is_owned_by(user):
            logger.warning(f"User {user.pk} tried to access payment {payment_id} owned by user {payment.user_id}")
            raise UnauthorizedError("You are not authorized to access this payment.")
        return payment

    @staticmethod
    def verify_payment(user, payment_id):

        payment = PaymentService._get_owned_payment(user, payment_id)

        order, gateway_payments = razorpay_client.fetch_order(payment.razorpay_order_id)
        new_status, failure_reason = normalize_gateway_status(order, gateway_payments)
        gateway_payment_id = gateway_payments[-1].get('id') if gateway_payments else None

        logger.info(f"🔍 Verifying payment {payment.id}: gateway reports {new_status} for order {payment.razorpay_order_id}")

        with transaction.atomic():
            payments = Payment.objects.select_related('reservation')
            if supports_select_for_update():
                payments = payments.select_for_update()
            payment = payments.get(pk=payment.pk)

            PaymentReconciler.apply_status(
                payment,
                new_status,
                failure_reason=failure_reason,
                gateway_payment_id=gateway_payment_id,
            )

        return serialize_payment(payment)

    @staticmethod
    def get_payment(user, payment_id):
        return serialize_payment(PaymentService._get_owned_payment(user, payment_id))

    @staticmethod
    def is_payment_completed(reservation_id):
        return Payment.objects.filter(reservation_id=reservation_id, status=Payment.STATUS_SUCCEEDED).exists()
