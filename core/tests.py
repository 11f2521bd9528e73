import json

from django.contrib.auth.models import AnonymousUser, User
from django.core.cache import cache
from django.core.exceptions import PermissionDenied
from django.db import DatabaseError
from django.test import Client, RequestFactory, SimpleTestCase, TestCase

from .cache import CacheInvalidator, CacheKeyBuilder, CacheNamespaces, cache_get, cache_set
from .decorators import api_login_required, api_view
from .error_handlers import GlobalExceptionMiddleware, csrf_failure
from .exceptions import (
    InvalidInputError,
    NotFoundError,
    PaymentGatewayError,
    SeatConflictError,
    UnauthorizedError,
)
from .pagination import paginate, validate_pagination
from .responses import api_response, parse_int, parse_json_body


def body(response):
    return json.loads(response.content)


class ResponseEnvelopeTests(SimpleTestCase):

    def test_success_envelope(self):

        response = api_response({'id': 1}, message='Created', status=201)

        self.assertEqual(response.status_code, 201)
        self.assertEqual(body(response), {'success': True, 'message': 'Created', 'data': {'id': 1}})

    def test_parse_int(self):

        self.assertEqual(parse_int('12', 'seatNumber'), 12)
        self.assertEqual(parse_int(7, 'seatNumber'), 7)
        self.assertEqual(parse_int(None, 'pageSize', required=False, default=10), 10)

        for bad in ('abc', '1.5', True, [1]):
            with self.assertRaises(InvalidInputError):
                parse_int(bad, 'seatNumber')

        with self.assertRaises(InvalidInputError) as ctx:
            parse_int('', 'showtimeId')
        self.assertIn('showtimeId', ctx.exception.errors)

    def test_parse_json_body(self):

        factory = RequestFactory()

        request = factory.post('/', data='{"a": 1}', content_type='application/json')
        self.assertEqual(parse_json_body(request), {'a': 1})

        self.assertEqual(parse_json_body(factory.post('/', data='', content_type='application/json')), {})

        with self.assertRaises(InvalidInputError):
            parse_json_body(factory.post('/', data='{oops', content_type='application/json'))

        with self.assertRaises(InvalidInputError):
            parse_json_body(factory.post('/', data='[1]', content_type='application/json'))


class PaginationTests(SimpleTestCase):

    def test_bounds(self):

        validate_pagination(1, 1)
        validate_pagination(3, 100)

        for page_number, page_size in ((0, 10), (1, 0), (1, 101), (-2, 10)):
            with self.assertRaises(InvalidInputError):
                validate_pagination(page_number, page_size)

    def test_paginate_plain_list(self):

        result = paginate(list(range(25)), 3, 10, lambda n: n * 2)

        self.assertEqual(result['items'], [40, 42, 44, 46, 48])
        self.assertEqual(result['totalCount'], 25)
        self.assertEqual(result['totalPages'], 3)

    def test_paginate_empty(self):

        result = paginate([], 1, 10, str)

        self.assertEqual(result['items'], [])
        self.assertEqual(result['totalPages'], 0)


class ApiViewTests(SimpleTestCase):

    def setUp(self):
        self.factory = RequestFactory()

    def call(self, error, method='get'):

        @api_view(['GET'])
        def view(request):
            raise error

        request = getattr(self.factory, method)('/api/test')
        return view(request)

    def test_errors_map_to_status_codes(self):

        cases = [
            (InvalidInputError('bad'), 400),
            (UnauthorizedError(), 403),
            (NotFoundError('gone'), 404),
            (SeatConflictError(showtime_id=1, seat_number=7), 409),
            (PaymentGatewayError(gateway_message='timeout'), 502),
            (DatabaseError('connection lost'), 503),
            (RuntimeError('boom'), 500),
        ]
        for error, status in cases:
            response = self.call(error)
            self.assertEqual(response.status_code, status, type(error).__name__)
            self.assertFalse(body(response)['success'])
            self.assertIsNone(body(response)['data'])

    def test_conflict_message_names_the_seat(self):

        data = body(self.call(SeatConflictError(showtime_id=4, seat_number=7)))

        self.assertEqual(data['message'], 'Seat 7 for showtime 4 is already booked.')

    def test_unexpected_error_hides_details(self):

        data = body(self.call(RuntimeError('secret internals')))

        self.assertNotIn('secret internals', data['message'])

    def test_validation_errors_are_included(self):

        data = body(self.call(InvalidInputError('bad', errors={'seatNumber': ['required']})))

        self.assertEqual(data['errors'], {'seatNumber': ['required']})

    def test_wrong_method(self):

        response = self.call(RuntimeError(), method='post')

        self.assertEqual(response.status_code, 405)

    def test_login_required(self):

        @api_view(['GET'])
        @api_login_required
        def view(request):
            return api_response(True)

        request = self.factory.get('/api/test')
        request.user = AnonymousUser()

        self.assertEqual(view(request).status_code, 401)


class GlobalExceptionMiddlewareTests(SimpleTestCase):

    def setUp(self):
        self.middleware = GlobalExceptionMiddleware(lambda request: None)
        self.request = RequestFactory().get('/somewhere')

    def test_database_error_is_service_unavailable(self):

        response = self.middleware.process_exception(self.request, DatabaseError('down'))

        self.assertEqual(response.status_code, 503)

    def test_domain_errors_use_envelope(self):

        response = self.middleware.process_exception(self.request, NotFoundError('Showtime not found'))

        self.assertEqual(response.status_code, 404)
        self.assertEqual(body(response)['message'], 'Showtime not found')

    def test_permission_denied(self):

        response = self.middleware.process_exception(self.request, PermissionDenied())

        self.assertEqual(response.status_code, 403)

    def test_other_errors_fall_through(self):
        self.assertIsNone(self.middleware.process_exception(self.request, ValueError('x')))


class JsonErrorHandlerTests(TestCase):

    def test_unknown_url_returns_json_404(self):

        response = Client().get('/api/DoesNotExist')

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response['Content-Type'], 'application/json')
        self.assertFalse(response.json()['success'])


class CacheInvalidatorTests(SimpleTestCase):

    def setUp(self):
        cache.clear()

    def test_generation_bump_orphans_listing_keys(self):

        before = CacheKeyBuilder.listing(CacheNamespaces.SHOWTIMES, 1, 10)
        cache_set(before, ['cached'], 60)

        CacheInvalidator.invalidate_namespace(CacheNamespaces.SHOWTIMES)

        after = CacheKeyBuilder.listing(CacheNamespaces.SHOWTIMES, 1, 10)
        self.assertNotEqual(before, after)
        self.assertIsNone(cache_get(after))

    def test_namespaces_are_independent(self):

        movies_key = CacheKeyBuilder.listing(CacheNamespaces.MOVIES, 1, 10)

        CacheInvalidator.invalidate_namespace(CacheNamespaces.SHOWTIMES)

        self.assertEqual(movies_key, CacheKeyBuilder.listing(CacheNamespaces.MOVIES, 1, 10))

    def test_invalidate_namespace_without_generation(self):

        CacheInvalidator.invalidate_namespace(CacheNamespaces.MOVIES)

        self.assertEqual(CacheInvalidator.current_generation(CacheNamespaces.MOVIES), 2)

    def test_invalidate_showtime_drops_booked_seats(self):

        key = CacheKeyBuilder.booked_seats(5)
        cache_set(key, [1, 2], 60)
        generation = CacheInvalidator.current_generation(CacheNamespaces.SHOWTIMES)

        CacheInvalidator.invalidate_showtime(5)

        self.assertIsNone(cache_get(key))
        self.assertEqual(CacheInvalidator.current_generation(CacheNamespaces.SHOWTIMES), generation + 1)


class CsrfTests(TestCase):

    def setUp(self):
        self.client = Client(enforce_csrf_checks=True)
        User.objects.create_user(username='alice', email='alice@example.com', password='Str0ng-Passw0rd!')

    def test_json_clients_can_post_without_a_token(self):

        login = self.client.post(
            '/api/Account/Login',
            {'email': 'alice@example.com', 'password': 'Str0ng-Passw0rd!'},
            content_type='application/json',
        )
        self.assertEqual(login.status_code, 200)
        self.assertEqual(login['Content-Type'], 'application/json')

        verify = self.client.post('/api/Reservation/Verify/1?secretCode=ABC')
        self.assertEqual(verify.status_code, 200)
        self.assertEqual(verify.json()['data'], {'isValid': False})

        self.assertEqual(self.client.post('/api/Account/Logout').status_code, 200)

    def test_csrf_failure_uses_envelope(self):

        response = csrf_failure(RequestFactory().post('/admin/login/'), reason='CSRF cookie not set.')

        self.assertEqual(response.status_code, 403)
        self.assertFalse(body(response)['success'])
