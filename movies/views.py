import logging
from datetime import timedelta

from django.utils import timezone

from core.cache import CacheKeyBuilder, CacheNamespaces, CacheTimeouts, cache_get, cache_set
from core.decorators import api_view
from core.exceptions import InvalidInputError, NotFoundError
from core.pagination import DEFAULT_PAGE_SIZE, paginate, validate_pagination
from core.responses import api_response, parse_int
from reservations.availability import SeatAvailability
from .models import Movie
from .serializers import movie_detail as serialize_movie_detail
from .serializers import movie_summary, showtime_detail as serialize_showtime_detail, showtime_summary
from .theater_models import Showtime

logger = logging.getLogger(__name__)

MAX_UPCOMING_DAYS = 30


def _page_params(request):
    page_number = parse_int(request.GET.get('pageNumber'), 'pageNumber', required=False, default=1)
    page_size = parse_int(request.GET.get('pageSize'), 'pageSize', required=False, default=DEFAULT_PAGE_SIZE)
    validate_pagination(page_number, page_size)
    return page_number, page_size


def _cached_listing(namespace, parts, build):
    """Serve a listing from the cache, computing and storing it on a miss."""
    cache_key = CacheKeyBuilder.listing(namespace, *parts)
    result = cache_get(cache_key)
    if result is not None:
        logger.debug(f"Cache hit for {cache_key}")
        return result

    result = build()
    cache_set(cache_key, result, CacheTimeouts.LISTING)
    return result


@api_view(['GET'])
def showtime_list(request):

    page_number, page_size = _page_params(request)

    def build():
        showtimes = Showtime.objects.select_related('movie', 'theater').order_by('start_time', 'id')
        return paginate(showtimes, page_number, page_size, showtime_summary)

    result = _cached_listing(CacheNamespaces.SHOWTIMES, ('list', page_number, page_size), build)
    return api_response(result, message='Showtimes retrieved successfully')


@api_view(['GET'])
def upcoming_showtimes(request):

    days = parse_int(request.GET.get('days'), 'days', required=False, default=7)
    if days < 1 or days > MAX_UPCOMING_DAYS:
        raise InvalidInputError(f'days must be between 1 and {MAX_UPCOMING_DAYS}')

    def build():
        now = timezone.now()
        showtimes = (
            Showtime.objects.upcoming(now)
            .filter(start_time__lte=now + timedelta(days=days))
            .select_related('movie', 'theater')
            .order_by('start_time', 'id')
        )
        return [showtime_summary(s) for s in showtimes]

    result = _cached_listing(CacheNamespaces.SHOWTIMES, ('upcoming', days), build)
    return api_response(result, message='Upcoming showtimes retrieved successfully')


@api_view(['GET'])
def showtime_detail(request, showtime_id):

    showtime = SeatAvailability.get_showtime(showtime_id)
    availability = SeatAvailability.availability_summary(showtime_id)
    return api_response(
        serialize_showtime_detail(showtime, availability),
        message='Showtime retrieved successfully',
    )


@api_view(['GET'])
def showtime_availability(request, showtime_id):

    summary = SeatAvailability.availability_summary(showtime_id)
    return api_response(summary, message='Availability retrieved successfully')


@api_view(['GET'])
def showtime_reserved_seats(request, showtime_id):

    seats = sorted(SeatAvailability.booked_seats(showtime_id))
    return api_response(seats, message='Reserved seats retrieved successfully')


@api_view(['GET'])
def movie_list(request):

    page_number, page_size = _page_params(request)

    def build():
        movies = Movie.objects.select_related('category').order_by('-release_date', 'id')
        return paginate(movies, page_number, page_size, movie_summary)

    result = _cached_listing(CacheNamespaces.MOVIES, ('list', page_number, page_size), build)
    return api_response(result, message='Movies retrieved successfully')


@api_view(['GET'])
def movie_detail(request, movie_id):

    movie = Movie.objects.select_related('category').filter(pk=movie_id).first()
    if movie is None:
        raise NotFoundError(f"Movie with ID {movie_id} does not exist.")

    showtimes = movie.showtimes.upcoming().select_related('movie', 'theater').order_by('start_time', 'id')
    return api_response(
        serialize_movie_detail(movie, showtimes),
        message='Movie retrieved successfully',
    )
