from datetime import date, timedelta
from decimal import Decimal
from io import StringIO

from django.contrib.auth.models import User
from django.core.cache import cache
from django.core.management import call_command
from django.test import Client, TestCase
from django.utils import timezone

from reservations.services import ReservationService
from .models import Category, Movie
from .theater_models import Showtime, Theater


class CatalogTestCase(TestCase):

    def setUp(self):
        cache.clear()
        self.client = Client()
        self.category = Category.objects.create(name='Drama')
        self.movie = Movie.objects.create(
            title='Quiet Rooms',
            description='Test Description',
            duration_in_minutes=105,
            release_date=date(2025, 5, 2),
            category=self.category,
        )
        self.theater = Theater.objects.create(name='Hall A', total_seats=50)
        now = timezone.now()
        self.tomorrow = Showtime.objects.create(
            movie=self.movie, theater=self.theater,
            start_time=now + timedelta(days=1), price=Decimal('150.00'),
        )
        self.next_month = Showtime.objects.create(
            movie=self.movie, theater=self.theater,
            start_time=now + timedelta(days=20), price=Decimal('150.00'),
        )
        self.yesterday = Showtime.objects.create(
            movie=self.movie, theater=self.theater,
            start_time=now - timedelta(days=1), price=Decimal('150.00'),
        )


class ShowtimeEndpointTests(CatalogTestCase):

    def test_showtime_list_is_paginated_in_start_order(self):

        response = self.client.get('/api/Showtime?pageNumber=1&pageSize=2')

        data = response.json()['data']
        self.assertEqual(response.status_code, 200)
        self.assertEqual(data['totalCount'], 3)
        self.assertEqual(data['totalPages'], 2)
        self.assertEqual([s['id'] for s in data['items']], [self.yesterday.id, self.tomorrow.id])

    def test_showtime_list_validates_paging(self):

        self.assertEqual(self.client.get('/api/Showtime?pageNumber=0').status_code, 400)
        self.assertEqual(self.client.get('/api/Showtime?pageSize=101').status_code, 400)
        self.assertEqual(self.client.get('/api/Showtime?pageSize=x').status_code, 400)

    def test_showtime_list_is_cached_until_a_showtime_changes(self):

        self.client.get('/api/Showtime')

        # Bypasses signals, so the cached listing is served
        Showtime.objects.filter(pk=self.tomorrow.pk).update(price=Decimal('999.00'))
        cached = self.client.get('/api/Showtime').json()['data']['items']
        self.assertNotIn('999.00', [s['price'] for s in cached])

        with self.captureOnCommitCallbacks(execute=True):
            self.tomorrow.refresh_from_db()
            self.tomorrow.save()

        fresh = self.client.get('/api/Showtime').json()['data']['items']
        self.assertIn('999.00', [s['price'] for s in fresh])

    def test_new_showtime_appears_after_commit(self):

        self.client.get('/api/Showtime')

        with self.captureOnCommitCallbacks(execute=True):
            Showtime.objects.create(
                movie=self.movie, theater=self.theater,
                start_time=timezone.now() + timedelta(days=2), price=Decimal('150.00'),
            )

        self.assertEqual(self.client.get('/api/Showtime').json()['data']['totalCount'], 4)

    def test_upcoming_showtimes_window(self):

        response = self.client.get('/api/Showtime/Upcoming?days=7')

        ids = [s['id'] for s in response.json()['data']]
        self.assertEqual(ids, [self.tomorrow.id])

        wide = self.client.get('/api/Showtime/Upcoming?days=30').json()['data']
        self.assertEqual([s['id'] for s in wide], [self.tomorrow.id, self.next_month.id])

        self.assertEqual(self.client.get('/api/Showtime/Upcoming?days=0').status_code, 400)
        self.assertEqual(self.client.get('/api/Showtime/Upcoming?days=31').status_code, 400)

    def test_showtime_detail_and_availability(self):

        user = User.objects.create_user(username='alice', password='testpass123')
        with self.captureOnCommitCallbacks(execute=True):
            for seat in (1, 2):
                ReservationService.create_reservation(user, self.tomorrow.id, seat)

        detail = self.client.get(f'/api/Showtime/{self.tomorrow.id}').json()['data']
        availability = self.client.get(f'/api/Showtime/{self.tomorrow.id}/Availability').json()['data']
        reserved = self.client.get(f'/api/Showtime/{self.tomorrow.id}/ReservedSeats').json()['data']

        self.assertEqual(detail['movie']['title'], 'Quiet Rooms')
        self.assertTrue(detail['isUpcoming'])
        self.assertEqual(detail['availability']['reservedSeats'], 2)
        self.assertEqual(availability['availableSeats'], 48)
        self.assertEqual(availability['occupancyPercentage'], 4.0)
        self.assertEqual(reserved, [1, 2])

    def test_missing_showtime_is_not_found(self):

        response = self.client.get('/api/Showtime/999999')

        self.assertEqual(response.status_code, 404)
        self.assertFalse(response.json()['success'])
        self.assertEqual(self.client.get('/api/Showtime/999999/Availability').status_code, 404)


class MovieEndpointTests(CatalogTestCase):

    def test_movie_list(self):

        Movie.objects.create(title='Older Film', duration_in_minutes=90, release_date=date(2020, 1, 1))

        data = self.client.get('/api/Movie?pageSize=10').json()['data']

        self.assertEqual(data['totalCount'], 2)
        self.assertEqual(data['items'][0]['title'], 'Quiet Rooms')
        self.assertEqual(data['items'][0]['category']['name'], 'Drama')
        self.assertIsNone(data['items'][1]['category'])

    def test_movie_list_refreshes_after_movie_saved(self):

        self.client.get('/api/Movie')

        with self.captureOnCommitCallbacks(execute=True):
            Movie.objects.create(title='New Release', duration_in_minutes=100, release_date=date(2026, 1, 1))

        titles = [m['title'] for m in self.client.get('/api/Movie').json()['data']['items']]
        self.assertIn('New Release', titles)

    def test_movie_detail_lists_only_upcoming_showtimes(self):

        data = self.client.get(f'/api/Movie/{self.movie.id}').json()['data']

        self.assertEqual(data['duration'], '1h 45m')
        self.assertEqual(
            [s['id'] for s in data['upcomingShowtimes']],
            [self.tomorrow.id, self.next_month.id],
        )

    def test_missing_movie_is_not_found(self):
        self.assertEqual(self.client.get('/api/Movie/999999').status_code, 404)


class SeedCatalogCommandTests(TestCase):

    def test_seed_is_idempotent(self):

        call_command('seed_catalog', days=1, stdout=StringIO())
        call_command('seed_catalog', days=1, stdout=StringIO())

        self.assertEqual(Category.objects.count(), 4)
        self.assertEqual(Movie.objects.count(), 4)
        self.assertEqual(Theater.objects.count(), 3)
        self.assertEqual(Showtime.objects.count(), 9)
        self.assertEqual(Theater.objects.get(name='Hall A').total_seats, 50)
