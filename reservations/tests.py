import re
import threading
from datetime import date, timedelta
from decimal import Decimal
from io import StringIO
from unittest import mock, skipUnless

from django.contrib.auth.models import User
from django.core.cache import cache
from django.core.management import call_command
from django.db import connection
from django.test import Client, TestCase, TransactionTestCase, override_settings
from django.utils import timezone

from core.exceptions import InvalidInputError, NotFoundError, SeatConflictError, UnauthorizedError
from movies.models import Movie
from movies.theater_models import Showtime, Theater
from payments.models import Payment
from .availability import SeatAvailability
from .ledger import SeatLedger
from .models import Reservation
from .services import ReservationService
from .tasks import find_stale_holds, release_hold, release_stale_holds


def make_showtime(total_seats=50, price='120.00', title='Test Movie'):
    movie = Movie.objects.create(
        title=title,
        description='Test Description',
        duration_in_minutes=120,
        release_date=date(2025, 1, 1),
    )
    theater = Theater.objects.create(name='Hall 1', total_seats=total_seats)
    return Showtime.objects.create(
        movie=movie,
        theater=theater,
        start_time=timezone.now() + timedelta(days=1),
        price=Decimal(price),
    )


class ReservationTestCase(TestCase):

    def setUp(self):
        cache.clear()
        self.showtime = make_showtime()
        self.alice = User.objects.create_user(username='alice', email='alice@example.com', password='testpass123')
        self.bob = User.objects.create_user(username='bob', email='bob@example.com', password='testpass123')

    def reserve(self, user, seat, showtime=None):
        with self.captureOnCommitCallbacks(execute=True):
            return ReservationService.create_reservation(user, (showtime or self.showtime).id, seat)


class ReservationCreationTests(ReservationTestCase):

    def test_create_reservation_returns_unpaid_detail_with_secret_code(self):

        reservation = self.reserve(self.alice, 12)

        self.assertEqual(reservation['seatNumber'], 12)
        self.assertEqual(reservation['showtimeId'], self.showtime.id)
        self.assertFalse(reservation['isPaid'])
        self.assertRegex(reservation['secretCode'], r'^[A-Z0-9]{8}$')
        self.assertTrue(Reservation.objects.filter(showtime=self.showtime, seat_number=12).exists())

    def test_seat_numbers_outside_theater_are_rejected(self):

        for seat in (0, -1, 51):
            with self.assertRaises(InvalidInputError):
                ReservationService.create_reservation(self.alice, self.showtime.id, seat)

        self.assertFalse(Reservation.objects.exists())

    def test_first_and_last_seat_are_valid(self):

        self.reserve(self.alice, 1)
        self.reserve(self.alice, 50)

        self.assertEqual(Reservation.objects.count(), 2)

    def test_unknown_showtime_is_not_found(self):

        with self.assertRaises(NotFoundError):
            ReservationService.create_reservation(self.alice, 999999, 1)

    def test_non_positive_showtime_id_is_invalid(self):

        with self.assertRaises(InvalidInputError):
            ReservationService.create_reservation(self.alice, 0, 1)

    def test_second_reservation_for_same_seat_conflicts(self):

        self.reserve(self.alice, 12)

        with self.assertRaises(SeatConflictError) as ctx:
            ReservationService.create_reservation(self.bob, self.showtime.id, 12)

        self.assertEqual(ctx.exception.status_code, 409)
        self.assertEqual(Reservation.objects.filter(showtime=self.showtime, seat_number=12).count(), 1)

    def test_insert_race_is_reported_as_seat_conflict(self):

        self.reserve(self.alice, 12)

        # A concurrent request that passed the pre-check before alice committed
        with mock.patch.object(SeatLedger, 'is_occupied', return_value=False):
            with self.assertRaises(SeatConflictError):
                ReservationService.create_reservation(self.bob, self.showtime.id, 12)

        self.assertEqual(Reservation.objects.get(showtime=self.showtime, seat_number=12).user, self.alice)

    def test_same_seat_number_in_another_showtime_is_independent(self):

        other = make_showtime(title='Other Movie')

        self.reserve(self.alice, 12)
        self.reserve(self.bob, 12, showtime=other)

        self.assertEqual(Reservation.objects.filter(seat_number=12).count(), 2)

    def test_secret_codes_use_uppercase_letters_and_digits(self):

        codes = {self.reserve(self.alice, seat)['secretCode'] for seat in range(1, 11)}

        for code in codes:
            self.assertTrue(re.fullmatch(r'[A-Z0-9]{8}', code))


class SeatAvailabilityTests(ReservationTestCase):

    def test_available_and_booked_partition_the_theater(self):

        for seat in (3, 12, 50):
            self.reserve(self.alice, seat)

        booked = SeatAvailability.booked_seats(self.showtime.id)
        available = SeatAvailability.available_seats(self.showtime.id)

        self.assertEqual(booked, {3, 12, 50})
        self.assertFalse(booked & available)
        self.assertEqual(booked | available, set(range(1, 51)))

    def test_availability_summary(self):

        for seat in range(1, 6):
            self.reserve(self.alice, seat)

        summary = SeatAvailability.availability_summary(self.showtime.id)

        self.assertEqual(summary['totalSeats'], 50)
        self.assertEqual(summary['reservedSeats'], 5)
        self.assertEqual(summary['availableSeats'], 45)
        self.assertEqual(summary['occupancyPercentage'], 10.0)
        self.assertTrue(summary['isAvailable'])

    def test_occupancy_is_rounded_to_two_decimals(self):

        showtime = make_showtime(total_seats=3, title='Small Hall Movie')
        self.reserve(self.alice, 1, showtime=showtime)

        summary = SeatAvailability.availability_summary(showtime.id)

        self.assertEqual(summary['occupancyPercentage'], 33.33)

    def test_full_showtime_is_not_available(self):

        showtime = make_showtime(total_seats=2, title='Tiny Hall Movie')
        self.reserve(self.alice, 1, showtime=showtime)
        self.reserve(self.bob, 2, showtime=showtime)

        summary = SeatAvailability.availability_summary(showtime.id)

        self.assertFalse(summary['isAvailable'])
        self.assertEqual(SeatAvailability.available_seats(showtime.id), set())

    def test_cached_seat_map_is_refreshed_after_reservation_commits(self):

        self.assertIn(12, SeatAvailability.available_seats(self.showtime.id))

        self.reserve(self.alice, 12)

        self.assertNotIn(12, SeatAvailability.available_seats(self.showtime.id))
        self.assertFalse(SeatAvailability.is_seat_available(self.showtime.id, 12))

    def test_check_seat_message(self):

        self.reserve(self.alice, 12)

        taken = SeatAvailability.check_seat(self.showtime.id, 12)
        free = SeatAvailability.check_seat(self.showtime.id, 13)

        self.assertFalse(taken['isAvailable'])
        self.assertIn('already booked', taken['message'])
        self.assertTrue(free['isAvailable'])

    def test_seat_checks_validate_bounds_and_ids(self):

        with self.assertRaises(InvalidInputError):
            SeatAvailability.is_seat_available(self.showtime.id, 51)
        with self.assertRaises(InvalidInputError):
            SeatAvailability.booked_seats(0)
        with self.assertRaises(NotFoundError):
            SeatAvailability.available_seats(999999)


class OwnershipTests(ReservationTestCase):

    def test_non_owner_cannot_cancel(self):

        reservation = self.reserve(self.alice, 12)

        with self.assertRaises(UnauthorizedError):
            ReservationService.cancel_reservation(reservation['id'], self.bob)

        self.assertTrue(Reservation.objects.filter(pk=reservation['id']).exists())

    def test_non_owner_cannot_change_seat(self):

        reservation = self.reserve(self.alice, 12)

        with self.assertRaises(UnauthorizedError):
            ReservationService.update_seat(reservation['id'], 20, self.bob)

        self.assertEqual(Reservation.objects.get(pk=reservation['id']).seat_number, 12)

    def test_owner_cancel_frees_the_seat(self):

        reservation = self.reserve(self.alice, 12)

        with self.captureOnCommitCallbacks(execute=True):
            self.assertTrue(ReservationService.cancel_reservation(reservation['id'], self.alice))

        self.assertFalse(Reservation.objects.filter(pk=reservation['id']).exists())
        self.assertIn(12, SeatAvailability.available_seats(self.showtime.id))

        self.reserve(self.bob, 12)

    def test_cancel_unknown_reservation_is_not_found(self):

        with self.assertRaises(NotFoundError):
            ReservationService.cancel_reservation(999999, self.alice)

    def test_secret_code_only_shown_to_owner(self):

        reservation = self.reserve(self.alice, 12)

        self.assertIn('secretCode', ReservationService.get_reservation(reservation['id'], user=self.alice))
        self.assertNotIn('secretCode', ReservationService.get_reservation(reservation['id'], user=self.bob))
        self.assertNotIn('secretCode', ReservationService.get_reservation(reservation['id']))


class SeatChangeTests(ReservationTestCase):

    def test_change_to_same_seat_is_noop_and_occupied_seat_conflicts(self):

        reservation = self.reserve(self.alice, 7)
        self.reserve(self.bob, 8)

        self.assertTrue(ReservationService.update_seat(reservation['id'], 7, self.alice))

        with self.assertRaises(SeatConflictError):
            ReservationService.update_seat(reservation['id'], 8, self.alice)

        self.assertEqual(Reservation.objects.get(pk=reservation['id']).seat_number, 7)
        self.assertEqual(Reservation.objects.get(user=self.bob).seat_number, 8)

    def test_change_to_free_seat_moves_reservation(self):

        reservation = self.reserve(self.alice, 7)

        with self.captureOnCommitCallbacks(execute=True):
            ReservationService.update_seat(reservation['id'], 9, self.alice)

        self.assertEqual(Reservation.objects.get(pk=reservation['id']).seat_number, 9)
        available = SeatAvailability.available_seats(self.showtime.id)
        self.assertIn(7, available)
        self.assertNotIn(9, available)

    def test_change_outside_theater_is_invalid(self):

        reservation = self.reserve(self.alice, 7)

        with self.assertRaises(InvalidInputError):
            ReservationService.update_seat(reservation['id'], 51, self.alice)

        self.assertEqual(Reservation.objects.get(pk=reservation['id']).seat_number, 7)

    def test_seat_change_race_is_reported_as_conflict(self):

        reservation = self.reserve(self.alice, 7)
        self.reserve(self.bob, 8)

        with mock.patch.object(SeatLedger, 'is_occupied', return_value=False):
            with self.assertRaises(SeatConflictError):
                ReservationService.update_seat(reservation['id'], 8, self.alice)

        self.assertEqual(Reservation.objects.get(pk=reservation['id']).seat_number, 7)


class VerificationTests(ReservationTestCase):

    def setUp(self):
        super().setUp()
        self.reservation = self.reserve(self.alice, 12)
        self.code = self.reservation['secretCode']

    def test_exact_code_is_valid(self):

        is_valid, detail = ReservationService.verify_reservation(self.reservation['id'], self.code)

        self.assertTrue(is_valid)
        self.assertEqual(detail['id'], self.reservation['id'])

    def test_any_mismatch_is_invalid(self):

        other = self.reserve(self.bob, 13)

        cases = [
            (self.reservation['id'], 'WRONG123'),
            (self.reservation['id'], self.code.lower() if self.code.lower() != self.code else 'ZZZZZZZZ'),
            (self.reservation['id'], other['secretCode']),
            (999999, self.code),
        ]
        for reservation_id, code in cases:
            self.assertEqual(ReservationService.verify_reservation(reservation_id, code), (False, None))

    def test_empty_code_is_rejected(self):

        with self.assertRaises(InvalidInputError):
            ReservationService.verify_reservation(self.reservation['id'], '  ')


class UserReservationListingTests(ReservationTestCase):

    def test_listing_is_paginated_and_scoped_to_user(self):

        for seat in (1, 2, 3):
            self.reserve(self.alice, seat)
        self.reserve(self.bob, 4)

        page = ReservationService.get_user_reservations(self.alice, page_number=1, page_size=2)

        self.assertEqual(page['totalCount'], 3)
        self.assertEqual(page['totalPages'], 2)
        self.assertEqual(len(page['items']), 2)

        last = ReservationService.get_user_reservations(self.alice, page_number=2, page_size=2)
        self.assertEqual(len(last['items']), 1)

    def test_page_bounds_are_validated(self):

        with self.assertRaises(InvalidInputError):
            ReservationService.get_user_reservations(self.alice, page_number=0, page_size=10)
        with self.assertRaises(InvalidInputError):
            ReservationService.get_user_reservations(self.alice, page_number=1, page_size=101)

    def test_empty_listing(self):

        page = ReservationService.get_user_reservations(self.bob, page_number=1, page_size=10)

        self.assertEqual(page['items'], [])
        self.assertEqual(page['totalCount'], 0)
        self.assertEqual(page['totalPages'], 0)


class HoldSweepTests(ReservationTestCase):

    def age(self, reservation_id, seconds):
        Reservation.objects.filter(pk=reservation_id).update(
            created_at=timezone.now() - timedelta(seconds=seconds)
        )

    @override_settings(RESERVATION_HOLD_TIMEOUT=None)
    def test_sweep_is_disabled_by_default(self):

        reservation = self.reserve(self.alice, 12)
        self.age(reservation['id'], 3600)

        self.assertEqual(release_stale_holds(), "Hold timeout disabled")
        self.assertTrue(Reservation.objects.filter(pk=reservation['id']).exists())

    @override_settings(RESERVATION_HOLD_TIMEOUT=600)
    def test_sweep_releases_only_stale_unpaid_holds(self):

        stale = self.reserve(self.alice, 1)
        fresh = self.reserve(self.alice, 2)
        paying = self.reserve(self.bob, 3)
        paid = self.reserve(self.bob, 4)
        for reservation in (stale, paying, paid):
            self.age(reservation['id'], 3600)

        Payment.objects.create(
            reservation_id=paying['id'], user=self.bob, amount=Decimal('120.00'),
            razorpay_order_id='order_inflight', status=Payment.STATUS_CREATED,
        )
        Payment.objects.create(
            reservation_id=paid['id'], user=self.bob, amount=Decimal('120.00'),
            razorpay_order_id='order_paid', status=Payment.STATUS_SUCCEEDED,
        )
        Reservation.objects.filter(pk=paid['id']).update(is_paid=True)

        with self.captureOnCommitCallbacks(execute=True):
            result = release_stale_holds()

        self.assertEqual(result, "Released 1 stale holds")
        remaining = set(Reservation.objects.values_list('pk', flat=True))
        self.assertEqual(remaining, {fresh['id'], paying['id'], paid['id']})
        self.assertIn(1, SeatAvailability.available_seats(self.showtime.id))

    @override_settings(RESERVATION_HOLD_TIMEOUT=600)
    def test_sweep_skips_when_another_worker_holds_the_lock(self):

        from core.cache import CacheKeyBuilder
        cache.add(CacheKeyBuilder.lock('release_stale_holds'), 'locked')
        reservation = self.reserve(self.alice, 12)
        self.age(reservation['id'], 3600)

        self.assertIn("Skipped", release_stale_holds())
        self.assertTrue(Reservation.objects.filter(pk=reservation['id']).exists())

    def add_payment(self, reservation, status, order_id, age_seconds=0):
        payment = Payment.objects.create(
            reservation_id=reservation['id'], user=self.alice, amount=Decimal('120.00'),
            razorpay_order_id=order_id, status=status,
        )
        Payment.objects.filter(pk=payment.pk).update(created_at=timezone.now() - timedelta(seconds=age_seconds))
        return payment

    @override_settings(RESERVATION_HOLD_TIMEOUT=600)
    def test_old_in_flight_payment_keeps_the_hold(self):

        attempted = self.reserve(self.alice, 5)
        self.age(attempted['id'], 7200)
        payment = self.add_payment(attempted, Payment.STATUS_ATTEMPTED, 'order_old_attempt', age_seconds=7000)

        with self.captureOnCommitCallbacks(execute=True):
            self.assertEqual(release_stale_holds(), "Released 0 stale holds")

        self.assertTrue(Reservation.objects.filter(pk=attempted['id']).exists())
        self.assertTrue(Payment.objects.filter(pk=payment.pk).exists())

    @override_settings(RESERVATION_HOLD_TIMEOUT=600)
    def test_dead_payments_do_not_keep_the_hold(self):

        failed = self.reserve(self.alice, 6)
        canceled = self.reserve(self.alice, 7)
        for reservation in (failed, canceled):
            self.age(reservation['id'], 3600)
        self.add_payment(failed, Payment.STATUS_FAILED, 'order_failed', age_seconds=3000)
        self.add_payment(canceled, Payment.STATUS_CANCELED, 'order_canceled', age_seconds=3000)

        with self.captureOnCommitCallbacks(execute=True):
            self.assertEqual(release_stale_holds(), "Released 2 stale holds")

        self.assertFalse(Payment.objects.exists())

    def test_hold_is_rechecked_before_release(self):

        reservation = self.reserve(self.alice, 8)
        self.age(reservation['id'], 3600)
        self.assertEqual(list(find_stale_holds(600).values_list('pk', flat=True)), [reservation['id']])

        # Checkout starts after the candidate list was read
        self.add_payment(reservation, Payment.STATUS_CREATED, 'order_late')

        cutoff = timezone.now() - timedelta(seconds=600)
        self.assertIsNone(release_hold(reservation['id'], cutoff))
        self.assertTrue(Reservation.objects.filter(pk=reservation['id']).exists())

    def test_management_command_releases_holds(self):

        reservation = self.reserve(self.alice, 9)
        self.age(reservation['id'], 3600)
        out = StringIO()

        with self.captureOnCommitCallbacks(execute=True):
            call_command('release_stale_holds', timeout=600, stdout=out)

        self.assertIn('Released 1 stale holds', out.getvalue())
        self.assertFalse(Reservation.objects.filter(pk=reservation['id']).exists())
        self.assertIn(9, SeatAvailability.available_seats(self.showtime.id))


class ReservationEndpointTests(ReservationTestCase):

    def setUp(self):
        super().setUp()
        self.client = Client()

    def test_create_requires_authentication(self):

        response = self.client.post(
            '/api/Reservation/CreateReservation',
            {'showtimeId': self.showtime.id, 'seatNumber': 12},
            content_type='application/json',
        )

        self.assertEqual(response.status_code, 401)
        self.assertFalse(response.json()['success'])

    def test_create_and_conflict(self):

        self.client.force_login(self.alice)
        body = {'showtimeId': self.showtime.id, 'seatNumber': 12}

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post('/api/Reservation/CreateReservation', body, content_type='application/json')

        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertTrue(payload['success'])
        self.assertEqual(payload['data']['seatNumber'], 12)

        self.client.force_login(self.bob)
        response = self.client.post('/api/Reservation/CreateReservation', body, content_type='application/json')

        self.assertEqual(response.status_code, 409)
        self.assertFalse(response.json()['success'])

    def test_create_validates_body(self):

        self.client.force_login(self.alice)

        response = self.client.post(
            '/api/Reservation/CreateReservation',
            {'showtimeId': self.showtime.id},
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn('seatNumber', response.json()['errors'])

        response = self.client.post(
            '/api/Reservation/CreateReservation', 'not json', content_type='application/json'
        )
        self.assertEqual(response.status_code, 400)

        response = self.client.post(
            '/api/Reservation/CreateReservation',
            {'showtimeId': self.showtime.id, 'seatNumber': 99},
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 400)

    def test_detail_head_and_delete(self):

        reservation = self.reserve(self.alice, 12)
        url = f"/api/Reservation/{reservation['id']}"

        response = self.client.get(url)
        self.assertEqual(response.status_code, 200)
        self.assertNotIn('secretCode', response.json()['data'])

        self.assertEqual(self.client.head(url).status_code, 200)
        self.assertEqual(self.client.head('/api/Reservation/999999').status_code, 204)

        self.assertEqual(self.client.delete(url).status_code, 401)

        self.client.force_login(self.bob)
        self.assertEqual(self.client.delete(url).status_code, 403)

        self.client.force_login(self.alice)
        self.assertIn('secretCode', self.client.get(url).json()['data'])
        self.assertEqual(self.client.delete(url).status_code, 200)
        self.assertEqual(self.client.head(url).status_code, 204)
        self.assertEqual(self.client.get(url).status_code, 404)

    def test_verify_endpoint(self):

        reservation = self.reserve(self.alice, 12)
        url = f"/api/Reservation/Verify/{reservation['id']}"

        valid = self.client.post(f"{url}?secretCode={reservation['secretCode']}")
        invalid = self.client.post(f"{url}?secretCode=NOTVALID")

        self.assertEqual(valid.status_code, 200)
        self.assertTrue(valid.json()['data']['isValid'])
        self.assertEqual(valid.json()['data']['reservation']['id'], reservation['id'])
        self.assertFalse(invalid.json()['data']['isValid'])
        self.assertEqual(self.client.post(url).status_code, 400)

    def test_seat_map_endpoints(self):

        self.reserve(self.alice, 12)

        check = self.client.get(
            f'/api/Reservation/CheckSeatAvailability?showtimeId={self.showtime.id}&seatNumber=12'
        )
        reserved = self.client.get(f'/api/Reservation/{self.showtime.id}/ReservedSeats')
        available = self.client.get(f'/api/Reservation/{self.showtime.id}/AvailableSeats')

        self.assertFalse(check.json()['data']['isAvailable'])
        self.assertEqual(reserved.json()['data'], [12])
        self.assertEqual(len(available.json()['data']), 49)
        self.assertNotIn(12, available.json()['data'])
        self.assertEqual(self.client.get('/api/Reservation/999999/ReservedSeats').status_code, 404)

    def test_update_seat_endpoint(self):

        reservation = self.reserve(self.alice, 7)
        self.reserve(self.bob, 8)
        url = f"/api/Reservation/{reservation['id']}/UpdateSeat"

        self.client.force_login(self.alice)

        self.assertEqual(self.client.put(f'{url}?newSeatNumber=7').status_code, 200)
        self.assertEqual(self.client.put(f'{url}?newSeatNumber=8').status_code, 409)
        self.assertEqual(self.client.put(f'{url}?newSeatNumber=abc').status_code, 400)
        self.assertEqual(self.client.put(f'{url}?newSeatNumber=9').status_code, 200)
        self.assertEqual(Reservation.objects.get(pk=reservation['id']).seat_number, 9)

    def test_my_reservations_endpoint(self):

        self.reserve(self.alice, 1)
        self.reserve(self.alice, 2)
        self.client.force_login(self.alice)

        response = self.client.get('/api/Reservation/MyReservations?pageNumber=1&pageSize=1')

        data = response.json()['data']
        self.assertEqual(response.status_code, 200)
        self.assertEqual(data['totalCount'], 2)
        self.assertEqual(len(data['items']), 1)
        self.assertEqual(
            self.client.get('/api/Reservation/MyReservations?pageSize=500').status_code, 400
        )

    def test_wrong_method_is_rejected(self):

        self.assertEqual(self.client.get('/api/Reservation/CreateReservation').status_code, 405)


@skipUnless(connection.vendor == 'postgresql', 'needs a database with row-level concurrency')
class ConcurrentReservationTests(TransactionTestCase):

    def test_only_one_concurrent_reservation_wins(self):

        cache.clear()
        showtime = make_showtime()
        users = [User.objects.create_user(username=f'user{i}', password='testpass123') for i in range(8)]
        barrier = threading.Barrier(len(users))
        outcomes = []
        outcomes_lock = threading.Lock()

        def attempt(user):
            outcome = 'error'
            try:
                barrier.wait()
                ReservationService.create_reservation(user, showtime.id, 12)
                outcome = 'reserved'
            except SeatConflictError:
                outcome = 'conflict'
            finally:
                connection.close()
                with outcomes_lock:
                    outcomes.append(outcome)

        threads = [threading.Thread(target=attempt, args=(user,)) for user in users]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(outcomes.count('reserved'), 1)
        self.assertEqual(outcomes.count('conflict'), len(users) - 1)
        self.assertEqual(Reservation.objects.filter(showtime=showtime, seat_number=12).count(), 1)
