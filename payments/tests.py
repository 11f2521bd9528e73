import hashlib
import hmac
import json
from datetime import date, timedelta
from decimal import Decimal
from unittest import mock

from django.contrib.auth.models import User
from django.core import mail
from django.core.cache import cache
from django.test import Client, TestCase, override_settings
from django.utils import timezone
from razorpay.errors import BadRequestError

from core.exceptions import (
    InvalidInputError, NotFoundError, PaymentGatewayError, SeatConflictError, UnauthorizedError,
)
from movies.models import Movie
from movies.theater_models import Showtime, Theater
from reservations.availability import SeatAvailability
from reservations.models import Reservation
from reservations.services import ReservationService
from .email_utils import send_email_safe, send_payment_failed_email, send_payment_success_email
from .models import Payment
from .razorpay_utils import RazorpayClient, razorpay_client
from .reconciliation import PaymentReconciler, extract_order_id
from .services import PaymentService, normalize_gateway_status

WEBHOOK_URL = '/api/Webhook/razorpay'


class PaymentTestCase(TestCase):

    def setUp(self):
        cache.clear()
        mock_mode = mock.patch.object(razorpay_client, 'is_mock', True)
        mock_mode.start()
        self.addCleanup(mock_mode.stop)
        self.client = Client()
        movie = Movie.objects.create(title='Test Movie', duration_in_minutes=120, release_date=date(2025, 1, 1))
        theater = Theater.objects.create(name='Hall 1', total_seats=50)
        self.showtime = Showtime.objects.create(
            movie=movie,
            theater=theater,
            start_time=timezone.now() + timedelta(days=1),
            price=Decimal('120.00'),
        )
        self.alice = User.objects.create_user(username='alice', email='alice@example.com', password='testpass123')
        self.bob = User.objects.create_user(username='bob', email='bob@example.com', password='testpass123')

        self.email_patcher = mock.patch('payments.email_utils.send_email_safe')
        self.send_email = self.email_patcher.start()
        self.addCleanup(self.email_patcher.stop)

    def reserve(self, user, seat):
        with self.captureOnCommitCallbacks(execute=True):
            return ReservationService.create_reservation(user, self.showtime.id, seat)

    def reserve_with_intent(self, user=None, seat=12):
        user = user or self.alice
        reservation = self.reserve(user, seat)
        intent = PaymentService.create_payment_intent(user, reservation['id'])
        return reservation, intent

    def webhook(self, event, order_id, **payment_fields):
        body = {
            'event': event,
            'payload': {
                'payment': {'entity': {'id': 'pay_test123', 'order_id': order_id, **payment_fields}},
            },
        }
        with self.captureOnCommitCallbacks(execute=True):
            return self.client.post(WEBHOOK_URL, data=json.dumps(body), content_type='application/json')

    def sent_emails(self):
        return [c.args[0].name.rsplit('.', 1)[-1] for c in self.send_email.call_args_list]


class PaymentFlowTests(PaymentTestCase):

    def test_reserve_pay_and_conflict_end_to_end(self):

        reservation, intent = self.reserve_with_intent(seat=12)
        self.assertFalse(Reservation.objects.get(pk=reservation['id']).is_paid)

        payment = Payment.objects.get(pk=intent['paymentId'])
        self.assertEqual(intent['status'], Payment.STATUS_CREATED)
        self.assertEqual(intent['clientSecret'], payment.razorpay_order_id)
        self.assertEqual(intent['intentId'], payment.razorpay_order_id)
        self.assertEqual(payment.amount, Decimal('120.00'))

        response = self.webhook('payment.captured', payment.razorpay_order_id)
        self.assertEqual(response.status_code, 200)

        payment.refresh_from_db()
        self.assertEqual(payment.status, Payment.STATUS_SUCCEEDED)
        self.assertIsNotNone(payment.paid_at)
        self.assertEqual(payment.razorpay_payment_id, 'pay_test123')
        self.assertTrue(Reservation.objects.get(pk=reservation['id']).is_paid)
        self.assertTrue(PaymentService.is_payment_completed(reservation['id']))

        with self.assertRaises(SeatConflictError):
            ReservationService.create_reservation(self.bob, self.showtime.id, 12)

        available = SeatAvailability.available_seats(self.showtime.id)
        self.assertEqual(len(available), 49)
        self.assertNotIn(12, available)

    def test_duplicate_success_events_are_idempotent(self):

        reservation, intent = self.reserve_with_intent()
        order_id = intent['clientSecret']

        self.webhook('payment.captured', order_id)
        first = Payment.objects.get(pk=intent['paymentId'])

        self.webhook('payment.captured', order_id)
        self.webhook('order.paid', order_id)
        second = Payment.objects.get(pk=intent['paymentId'])

        self.assertEqual(second.status, Payment.STATUS_SUCCEEDED)
        self.assertEqual(second.paid_at, first.paid_at)
        self.assertTrue(Reservation.objects.get(pk=reservation['id']).is_paid)
        self.assertEqual(self.sent_emails(), ['send_payment_success_email'])

    def test_failed_payment_records_reason_and_keeps_seat(self):

        reservation, intent = self.reserve_with_intent()

        self.webhook('payment.failed', intent['clientSecret'], error_description='Card declined')

        payment = Payment.objects.get(pk=intent['paymentId'])
        self.assertEqual(payment.status, Payment.STATUS_FAILED)
        self.assertEqual(payment.failure_reason, 'Card declined')
        self.assertFalse(Reservation.objects.get(pk=reservation['id']).is_paid)
        self.assertNotIn(12, SeatAvailability.available_seats(self.showtime.id))
        self.assertEqual(self.sent_emails(), ['send_payment_failed_email'])

    def test_failure_without_description_uses_default_reason(self):

        reservation, intent = self.reserve_with_intent()

        self.webhook('payment.failed', intent['clientSecret'])

        self.assertEqual(Payment.objects.get(pk=intent['paymentId']).failure_reason, 'Unknown error')

    def test_retry_after_failure_can_succeed(self):

        reservation, intent = self.reserve_with_intent()

        self.webhook('payment.failed', intent['clientSecret'], error_description='Card declined')
        self.webhook('payment.captured', intent['clientSecret'])

        payment = Payment.objects.get(pk=intent['paymentId'])
        self.assertEqual(payment.status, Payment.STATUS_SUCCEEDED)
        self.assertIsNone(payment.failure_reason)
        self.assertTrue(Reservation.objects.get(pk=reservation['id']).is_paid)

    def test_late_failure_does_not_undo_success(self):

        reservation, intent = self.reserve_with_intent()

        self.webhook('payment.captured', intent['clientSecret'])
        self.webhook('payment.failed', intent['clientSecret'], error_description='Late event')

        self.assertEqual(Payment.objects.get(pk=intent['paymentId']).status, Payment.STATUS_SUCCEEDED)
        self.assertTrue(Reservation.objects.get(pk=reservation['id']).is_paid)
        self.assertEqual(self.sent_emails(), ['send_payment_success_email'])

    def test_refund_clears_paid_flag_but_keeps_seat(self):

        reservation, intent = self.reserve_with_intent()
        self.webhook('payment.captured', intent['clientSecret'])

        self.webhook('refund.processed', intent['clientSecret'])

        payment = Payment.objects.get(pk=intent['paymentId'])
        self.assertEqual(payment.status, Payment.STATUS_REFUNDED)
        self.assertIsNotNone(payment.refunded_at)
        self.assertFalse(Reservation.objects.get(pk=reservation['id']).is_paid)
        self.assertNotIn(12, SeatAvailability.available_seats(self.showtime.id))

        self.webhook('payment.captured', intent['clientSecret'])
        self.assertEqual(Payment.objects.get(pk=intent['paymentId']).status, Payment.STATUS_REFUNDED)

    def test_refund_delivered_before_capture_stays_refunded(self):

        reservation, intent = self.reserve_with_intent()

        self.webhook('refund.processed', intent['clientSecret'])
        self.webhook('payment.captured', intent['clientSecret'])

        payment = Payment.objects.get(pk=intent['paymentId'])
        self.assertEqual(payment.status, Payment.STATUS_REFUNDED)
        self.assertIsNotNone(payment.paid_at)
        self.assertIsNotNone(payment.refunded_at)
        self.assertFalse(Reservation.objects.get(pk=reservation['id']).is_paid)
        self.assertFalse(PaymentService.is_payment_completed(reservation['id']))
        self.assertEqual(self.sent_emails(), [])

    def test_refund_after_failure_is_recorded(self):

        reservation, intent = self.reserve_with_intent()

        self.webhook('payment.failed', intent['clientSecret'], error_description='Bank timeout')
        self.webhook('refund.processed', intent['clientSecret'])

        payment = Payment.objects.get(pk=intent['paymentId'])
        self.assertEqual(payment.status, Payment.STATUS_REFUNDED)
        self.assertIsNone(payment.failure_reason)

    def test_canceled_is_terminal(self):

        reservation, intent = self.reserve_with_intent()
        body = {
            'event': 'payment_link.expired',
            'payload': {'payment_link': {'entity': {'id': 'plink_1', 'order_id': intent['clientSecret']}}},
        }
        with self.captureOnCommitCallbacks(execute=True):
            self.client.post(WEBHOOK_URL, data=json.dumps(body), content_type='application/json')

        self.assertEqual(Payment.objects.get(pk=intent['paymentId']).status, Payment.STATUS_CANCELED)

        self.webhook('payment.captured', intent['clientSecret'])

        self.assertEqual(Payment.objects.get(pk=intent['paymentId']).status, Payment.STATUS_CANCELED)
        self.assertFalse(Reservation.objects.get(pk=reservation['id']).is_paid)
        self.assertEqual(self.sent_emails(), [])

    def test_unknown_event_and_unknown_order_are_acknowledged(self):

        reservation, intent = self.reserve_with_intent()

        self.assertEqual(self.webhook('payment.authorized', intent['clientSecret']).status_code, 200)
        self.assertEqual(self.webhook('payment.captured', 'order_does_not_exist').status_code, 200)
        self.assertEqual(Payment.objects.get(pk=intent['paymentId']).status, Payment.STATUS_CREATED)

    def test_malformed_webhook_body_is_rejected(self):

        response = self.client.post(WEBHOOK_URL, data='{not json', content_type='application/json')
        self.assertEqual(response.status_code, 400)

        response = self.client.post(WEBHOOK_URL, data='[1, 2]', content_type='application/json')
        self.assertEqual(response.status_code, 400)

    def test_webhook_processing_error_asks_for_redelivery(self):

        reservation, intent = self.reserve_with_intent()

        with mock.patch.object(PaymentReconciler, 'handle_event', side_effect=RuntimeError('db down')):
            response = self.webhook('payment.captured', intent['clientSecret'])

        self.assertEqual(response.status_code, 500)

    def test_webhook_only_accepts_post(self):
        self.assertEqual(self.client.get(WEBHOOK_URL).status_code, 405)


class WebhookSignatureTests(PaymentTestCase):

    def sign(self, body, secret='whsec_test'):
        return hmac.new(secret.encode(), body.encode(), hashlib.sha256).hexdigest()

    @override_settings(RAZORPAY_WEBHOOK_SECRET='whsec_test')
    def test_signature_is_checked_outside_mock_mode(self):

        reservation, intent = self.reserve_with_intent()
        body = json.dumps({
            'event': 'payment.captured',
            'payload': {'payment': {'entity': {'id': 'pay_1', 'order_id': intent['clientSecret']}}},
        })

        with mock.patch.object(razorpay_client, 'is_mock', False):
            bad = self.client.post(
                WEBHOOK_URL, data=body, content_type='application/json',
                HTTP_X_RAZORPAY_SIGNATURE='0' * 64,
            )
            missing = self.client.post(WEBHOOK_URL, data=body, content_type='application/json')

            self.assertEqual(bad.status_code, 400)
            self.assertEqual(missing.status_code, 400)
            self.assertEqual(Payment.objects.get(pk=intent['paymentId']).status, Payment.STATUS_CREATED)

            with self.captureOnCommitCallbacks(execute=True):
                good = self.client.post(
                    WEBHOOK_URL, data=body, content_type='application/json',
                    HTTP_X_RAZORPAY_SIGNATURE=self.sign(body),
                )

        self.assertEqual(good.status_code, 200)
        self.assertEqual(Payment.objects.get(pk=intent['paymentId']).status, Payment.STATUS_SUCCEEDED)

    @override_settings(RAZORPAY_WEBHOOK_SECRET='')
    def test_missing_secret_rejects_live_webhooks(self):

        with mock.patch.object(razorpay_client, 'is_mock', False):
            self.assertFalse(razorpay_client.verify_webhook_signature('{}', 'abc'))


class PaymentIntentTests(PaymentTestCase):

    def test_only_owner_can_create_intent(self):

        reservation = self.reserve(self.alice, 12)

        with self.assertRaises(UnauthorizedError):
            PaymentService.create_payment_intent(self.bob, reservation['id'])

        self.assertFalse(Payment.objects.exists())

    def test_unknown_reservation_is_not_found(self):

        with self.assertRaises(NotFoundError):
            PaymentService.create_payment_intent(self.alice, 999999)

    def test_paid_reservation_cannot_be_paid_again(self):

        reservation, intent = self.reserve_with_intent()
        self.webhook('payment.captured', intent['clientSecret'])

        with self.assertRaises(InvalidInputError):
            PaymentService.create_payment_intent(self.alice, reservation['id'])

    def test_gateway_failure_creates_no_payment(self):

        reservation = self.reserve(self.alice, 12)

        with mock.patch.object(
            razorpay_client, 'create_order',
            side_effect=PaymentGatewayError(gateway_message='gateway timeout'),
        ):
            with self.assertRaises(PaymentGatewayError) as ctx:
                PaymentService.create_payment_intent(self.alice, reservation['id'])

        self.assertIn('Payment processing failed: gateway timeout', ctx.exception.message)
        self.assertFalse(Payment.objects.exists())

    def test_hold_released_during_order_creation_records_no_payment(self):

        reservation = self.reserve(self.alice, 12)
        real_create_order = razorpay_client.create_order

        def create_order_then_release(*args, **kwargs):
            order = real_create_order(*args, **kwargs)
            Reservation.objects.filter(pk=reservation['id']).delete()
            return order

        with mock.patch.object(razorpay_client, 'create_order', side_effect=create_order_then_release):
            with self.assertRaises(NotFoundError):
                PaymentService.create_payment_intent(self.alice, reservation['id'])

        self.assertFalse(Payment.objects.exists())

    def test_intent_amount_uses_showtime_price(self):

        reservation = self.reserve(self.alice, 12)
        Showtime.objects.filter(pk=self.showtime.pk).update(price=Decimal('250.00'))

        intent = PaymentService.create_payment_intent(self.alice, reservation['id'])

        self.assertEqual(intent['amount'], Decimal('250.00'))
        self.assertEqual(intent['currency'], 'INR')


class PaymentVerificationTests(PaymentTestCase):

    def test_verify_applies_gateway_status(self):

        reservation, intent = self.reserve_with_intent()
        gateway_state = (
            {'id': intent['clientSecret'], 'status': 'paid'},
            [{'id': 'pay_abc', 'status': 'captured'}],
        )

        with mock.patch.object(razorpay_client, 'fetch_order', return_value=gateway_state):
            with self.captureOnCommitCallbacks(execute=True):
                status = PaymentService.verify_payment(self.alice, intent['paymentId'])

        self.assertEqual(status['status'], Payment.STATUS_SUCCEEDED)
        self.assertIsNotNone(status['paidAt'])
        self.assertTrue(Reservation.objects.get(pk=reservation['id']).is_paid)
        self.assertEqual(self.sent_emails(), ['send_payment_success_email'])

    def test_verify_in_mock_mode_leaves_payment_created(self):

        reservation, intent = self.reserve_with_intent()

        status = PaymentService.verify_payment(self.alice, intent['paymentId'])

        self.assertEqual(status['status'], Payment.STATUS_CREATED)

    def gateway_verify(self, intent, order, gateway_payments):
        with mock.patch.object(razorpay_client, 'fetch_order', return_value=(order, gateway_payments)):
            with self.captureOnCommitCallbacks(execute=True):
                return PaymentService.verify_payment(self.alice, intent['paymentId'])

    def test_verify_catches_up_on_missed_capture_and_refund(self):

        reservation, intent = self.reserve_with_intent()

        status = self.gateway_verify(
            intent,
            {'id': intent['clientSecret'], 'status': 'paid'},
            [{'id': 'pay_abc', 'status': 'refunded'}],
        )

        self.assertEqual(status['status'], Payment.STATUS_REFUNDED)
        self.assertIsNotNone(status['paidAt'])
        self.assertIsNotNone(status['refundedAt'])
        self.assertEqual(Payment.objects.get(pk=intent['paymentId']).razorpay_payment_id, 'pay_abc')
        self.assertFalse(Reservation.objects.get(pk=reservation['id']).is_paid)
        self.assertNotIn(12, SeatAvailability.available_seats(self.showtime.id))

    def test_verify_walks_forward_through_missed_webhooks(self):

        reservation, intent = self.reserve_with_intent()

        attempted = self.gateway_verify(
            intent, {'status': 'attempted'}, [{'id': 'pay_1', 'status': 'authorized'}],
        )
        self.assertEqual(attempted['status'], Payment.STATUS_ATTEMPTED)

        failed = self.gateway_verify(
            intent, {'status': 'attempted'}, [{'id': 'pay_1', 'status': 'failed', 'error_description': 'Card declined'}],
        )
        self.assertEqual(failed['status'], Payment.STATUS_FAILED)
        self.assertEqual(failed['failureReason'], 'Card declined')

        paid = self.gateway_verify(
            intent, {'status': 'paid'}, [{'id': 'pay_1', 'status': 'failed'}, {'id': 'pay_2', 'status': 'captured'}],
        )
        self.assertEqual(paid['status'], Payment.STATUS_SUCCEEDED)
        self.assertIsNone(paid['failureReason'])
        self.assertTrue(Reservation.objects.get(pk=reservation['id']).is_paid)

        # A stale gateway read cannot move the payment backwards
        stale = self.gateway_verify(intent, {'status': 'attempted'}, [{'id': 'pay_1', 'status': 'authorized'}])
        self.assertEqual(stale['status'], Payment.STATUS_SUCCEEDED)
        self.assertEqual(self.sent_emails(), ['send_payment_failed_email', 'send_payment_success_email'])

    def test_verify_and_get_are_owner_only(self):

        reservation, intent = self.reserve_with_intent()

        with self.assertRaises(UnauthorizedError):
            PaymentService.verify_payment(self.bob, intent['paymentId'])
        with self.assertRaises(UnauthorizedError):
            PaymentService.get_payment(self.bob, intent['paymentId'])
        with self.assertRaises(NotFoundError):
            PaymentService.get_payment(self.alice, 999999)

        self.assertEqual(PaymentService.get_payment(self.alice, intent['paymentId'])['paymentId'], intent['paymentId'])

    def test_normalize_gateway_status(self):

        cases = [
            (({'status': 'created'}, []), Payment.STATUS_CREATED),
            (({'status': 'attempted'}, [{'status': 'authorized'}]), Payment.STATUS_ATTEMPTED),
            (({'status': 'paid'}, [{'status': 'captured'}]), Payment.STATUS_SUCCEEDED),
            (({'status': 'attempted'}, [{'status': 'failed'}, {'status': 'captured'}]), Payment.STATUS_SUCCEEDED),
            (({'status': 'paid'}, [{'status': 'refunded'}]), Payment.STATUS_REFUNDED),
        ]
        for (order, payments), expected in cases:
            self.assertEqual(normalize_gateway_status(order, payments)[0], expected)

        status, reason = normalize_gateway_status(
            {'status': 'attempted'},
            [{'status': 'failed', 'error_description': 'Insufficient funds'}],
        )
        self.assertEqual(status, Payment.STATUS_FAILED)
        self.assertEqual(reason, 'Insufficient funds')

    def test_extract_order_id_from_each_entity(self):

        self.assertEqual(extract_order_id({'payment': {'entity': {'order_id': 'order_a'}}}), 'order_a')
        self.assertEqual(extract_order_id({'order': {'entity': {'id': 'order_b'}}}), 'order_b')
        self.assertEqual(extract_order_id({'payment_link': {'entity': {'order_id': 'order_c'}}}), 'order_c')
        self.assertIsNone(extract_order_id({}))


class PaymentEndpointTests(PaymentTestCase):

    def test_create_intent_endpoint(self):

        reservation = self.reserve(self.alice, 12)
        body = {'reservationId': reservation['id']}

        anonymous = self.client.post('/api/Payment/CreatePaymentIntent', body, content_type='application/json')
        self.assertEqual(anonymous.status_code, 401)

        self.client.force_login(self.bob)
        forbidden = self.client.post('/api/Payment/CreatePaymentIntent', body, content_type='application/json')
        self.assertEqual(forbidden.status_code, 403)

        self.client.force_login(self.alice)
        response = self.client.post('/api/Payment/CreatePaymentIntent', body, content_type='application/json')
        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertEqual(data['status'], 'created')
        self.assertEqual(data['amount'], '120.00')

        detail = self.client.get(f"/api/Payment/{data['paymentId']}")
        self.assertEqual(detail.json()['data']['orderId'], data['clientSecret'])

    def test_gateway_failure_maps_to_bad_gateway(self):

        reservation = self.reserve(self.alice, 12)
        self.client.force_login(self.alice)

        with mock.patch.object(
            razorpay_client, 'create_order',
            side_effect=PaymentGatewayError(gateway_message='gateway timeout'),
        ):
            response = self.client.post(
                '/api/Payment/CreatePaymentIntent',
                {'reservationId': reservation['id']},
                content_type='application/json',
            )

        self.assertEqual(response.status_code, 502)
        self.assertIn('Payment processing failed', response.json()['message'])

    def test_verify_endpoint(self):

        reservation, intent = self.reserve_with_intent()
        self.client.force_login(self.bob)

        self.assertEqual(self.client.post(f"/api/Payment/VerifyPayment/{intent['paymentId']}").status_code, 403)

        self.client.force_login(self.alice)
        response = self.client.post(f"/api/Payment/VerifyPayment/{intent['paymentId']}")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['status'], 'created')


class PaymentEmailTests(PaymentTestCase):

    def make_payment(self, status):
        reservation = self.reserve(self.alice, 12)
        return Payment.objects.create(
            reservation_id=reservation['id'],
            user=self.alice,
            amount=Decimal('120.00'),
            razorpay_order_id='order_email_test',
            status=status,
            failure_reason='Card declined' if status == Payment.STATUS_FAILED else None,
        )

    def test_success_email_is_rendered_and_sent(self):

        payment = self.make_payment(Payment.STATUS_SUCCEEDED)

        send_payment_success_email(payment.pk)

        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.to, ['alice@example.com'])
        self.assertIn('Reservation Confirmed', message.subject)
        self.assertIn(payment.reservation.secret_code, message.body)

    def test_failed_email_is_sent_only_for_failed_payments(self):

        payment = self.make_payment(Payment.STATUS_FAILED)

        send_payment_success_email(payment.pk)
        self.assertEqual(len(mail.outbox), 0)

        send_payment_failed_email(payment.pk)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn('Card declined', mail.outbox[0].body)

    def test_missing_payment_sends_nothing(self):

        send_payment_success_email(999999)

        self.assertEqual(len(mail.outbox), 0)

    def test_queue_failure_is_swallowed(self):

        task = mock.Mock()
        task.name = 'payments.email_utils.send_payment_success_email'
        task.delay.side_effect = ConnectionError('broker down')

        self.assertIsNone(send_email_safe(task, 1))


class RazorpayClientTests(TestCase):

    @override_settings(RAZORPAY_KEY_ID='', RAZORPAY_KEY_SECRET='')
    def test_missing_keys_enable_mock_mode(self):

        client = RazorpayClient()
        order = client.create_order(Decimal('120.00'), currency='INR', receipt='reservation_1')

        self.assertTrue(client.is_mock)
        self.assertTrue(order['id'].startswith('order_mock_'))
        self.assertEqual(order['amount'], 12000)
        self.assertTrue(client.verify_webhook_signature('{}', ''))

    def test_gateway_errors_are_raised_after_one_call(self):

        client = RazorpayClient()
        failing = mock.Mock(side_effect=ConnectionError('connection reset'))

        with self.assertRaises(PaymentGatewayError) as ctx:
            client._call('ORDER', failing)

        self.assertEqual(failing.call_count, 1)
        self.assertIn('connection reset', ctx.exception.message)

    def test_rejected_requests_are_not_retried(self):

        client = RazorpayClient()
        rejected = mock.Mock(side_effect=BadRequestError('The amount must be atleast INR 1.00'))

        with self.assertRaises(PaymentGatewayError):
            client._call('ORDER', rejected)

        self.assertEqual(rejected.call_count, 1)

    @override_settings(RAZORPAY_KEY_ID='rzp_test_1234567890', RAZORPAY_KEY_SECRET='test_secret')
    def test_live_client_retries_in_the_http_session(self):

        client = RazorpayClient()
        adapter = client.client.session.get_adapter('https://api.razorpay.com/v1/orders')

        self.assertFalse(client.is_mock)
        self.assertEqual(adapter.max_retries.total, RazorpayClient.MAX_RETRIES)
        self.assertIn(503, adapter.max_retries.status_forcelist)
