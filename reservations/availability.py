import logging

from core.cache import CacheKeyBuilder, CacheTimeouts, cache_get, cache_set
from core.exceptions import InvalidInputError, NotFoundError
from movies.theater_models import Showtime
from .ledger import SeatLedger

logger = logging.getLogger(__name__)


class SeatAvailability:
    """Read-only seat-map projections for a showtime.

    Results may come from the cache and be up to ``CacheTimeouts.BOOKED_SEATS``
    stale. Nothing here may be used to decide whether a seat can be reserved;
    that decision belongs to ``SeatLedger``.
    """

    @staticmethod
    def get_showtime(showtime_id):

        if showtime_id <= 0:
            raise InvalidInputError("Showtime ID must be a positive integer")
        try:
            return Showtime.objects.select_related('theater', 'movie').get(pk=showtime_id)
        except Showtime.DoesNotExist:
            raise NotFoundError(f"Showtime with ID {showtime_id} does not exist.")

    @staticmethod
    def _booked_for(showtime):

        cache_key = CacheKeyBuilder.booked_seats(showtime.id)
        cached = cache_get(cache_key)
        if cached is not None:
            return set(cached)

        booked = SeatLedger.occupied_seats(showtime.id)
        cache_set(cache_key, sorted(booked), CacheTimeouts.BOOKED_SEATS)
        logger.debug(f"Booked seats cached for showtime {showtime.id}: {len(booked)} seats")
        return booked

    @staticmethod
    def booked_seats(showtime_id):
        showtime = SeatAvailability.get_showtime(showtime_id)
        return SeatAvailability._booked_for(showtime)

    @staticmethod
    def available_seats(showtime_id):

        showtime = SeatAvailability.get_showtime(showtime_id)
        booked = SeatAvailability._booked_for(showtime)
        return set(range(1, showtime.total_seats + 1)) - booked

    @staticmethod
    def is_seat_available(showtime_id, seat_number):

        if seat_number <= 0:
            raise InvalidInputError("Seat number must be a positive integer")
        showtime = SeatAvailability.get_showtime(showtime_id)
        if not showtime.is_valid_seat(seat_number):
            raise InvalidInputError(
                f"Seat number {seat_number} exceeds total seats {showtime.total_seats} for the theater."
            )
        return seat_number not in SeatAvailability._booked_for(showtime)

    @staticmethod
    def check_seat(showtime_id, seat_number):

        is_available = SeatAvailability.is_seat_available(showtime_id, seat_number)
        if is_available:
            message = f"Seat {seat_number} for showtime {showtime_id} is available."
        else:
            message = f"Seat {seat_number} for showtime {showtime_id} is already booked."
        return {
            'showtimeId': showtime_id,
            'seatNumber': seat_number,
            'isAvailable': is_available,
            'message': message,
        }

    @staticmethod
    def availability_summary(showtime_id):

        showtime = SeatAvailability.get_showtime(showtime_id)
        total = showtime.total_seats
        reserved = len(SeatAvailability._booked_for(showtime))
        available = total - reserved
        occupancy = round(reserved / total * 100, 2) if total else 0.0

        return {
            'showtimeId': showtime.id,
            'totalSeats': total,
            'reservedSeats': reserved,
            'availableSeats': available,
            'occupancyPercentage': occupancy,
            'isAvailable': available > 0,
        }
