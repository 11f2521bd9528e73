import logging

from django.utils.crypto import constant_time_compare

from core.exceptions import InvalidInputError, NotFoundError, UnauthorizedError
from core.pagination import paginate
from .availability import SeatAvailability
from .ledger import SeatLedger
from .models import Reservation
from .serializers import reservation_detail, reservation_summary

logger = logging.getLogger(__name__)


def _require_positive(value, label):
    if value is None or value <= 0:
        raise InvalidInputError(f"{label} must be a positive integer")


class ReservationService:

    @staticmethod
    def _detail_queryset():
        return Reservation.objects.select_related('showtime__movie', 'showtime__theater')

    @staticmethod
    def create_reservation(user, showtime_id, seat_number):

        _require_positive(showtime_id, "Showtime ID")
        _require_positive(seat_number, "Seat number")

        showtime = SeatAvailability.get_showtime(showtime_id)
        if not showtime.is_valid_seat(seat_number):
            raise InvalidInputError(
                f"Seat number {seat_number} exceeds total seats {showtime.total_seats} for the theater."
            )

        reservation = SeatLedger.reserve(showtime, seat_number, user)

        reservation = ReservationService._detail_queryset().get(pk=reservation.pk)
        return reservation_detail(reservation)

    @staticmethod
    def get_reservation(reservation_id, user=None):

        _require_positive(reservation_id, "Reservation ID")
        try:
            reservation = ReservationService._detail_queryset().get(pk=reservation_id)
        except Reservation.DoesNotExist:
            raise NotFoundError(f"Reservation with ID {reservation_id} does not exist.")
        return reservation_detail(reservation, include_secret=reservation.is_owned_by(user))

    @staticmethod
    def verify_reservation(reservation_id, secret_code):
        """Return ``(True, detail)`` only when ``secret_code`` matches; every other case is ``(False, None)``."""
        _require_positive(reservation_id, "Reservation ID")
        if not secret_code or not secret_code.strip():
            raise InvalidInputError("Secret code cannot be null or empty")

        reservation = ReservationService._detail_queryset().filter(pk=reservation_id).first()
        if reservation is None or not constant_time_compare(reservation.secret_code, secret_code):
            logger.info(f"Verification failed for reservation id {reservation_id}")
            return False, None

        logger.info(f"Reservation {reservation_id} verified")
        return True, reservation_detail(reservation)

    @staticmethod
    def cancel_reservation(reservation_id, user):

        _require_positive(reservation_id, "Reservation ID")
        ReservationService._assert_owner(reservation_id, user, "cancel")
        return SeatLedger.cancel(reservation_id, user)

    @staticmethod
    def update_seat(reservation_id, new_seat_number, user):

        _require_positive(reservation_id, "Reservation ID")
        _require_positive(new_seat_number, "New seat number")
        ReservationService._assert_owner(reservation_id, user, "update")
        return SeatLedger.change_seat(reservation_id, new_seat_number, user)

    @staticmethod
    def _assert_owner(reservation_id, user, action):

        owner_id = Reservation.objects.filter(pk=reservation_id).values_list('user_id', flat=True).first()
        if owner_id is None:
            raise NotFoundError(f"Reservation with ID {reservation_id} does not exist.")
        if owner_id != user.pk:
            logger.warning(f"User {user.pk} tried to {action} reservation {reservation_id} owned by user {owner_id}")
            raise UnauthorizedError(f"You are not authorized to {action} this reservation.")

    @staticmethod
    def get_user_reservations(user, page_number=1, page_size=10):

        reservations = (
            ReservationService._detail_queryset()
            .filter(user=user)
            .order_by('-created_at', '-id')
        )
        return paginate(reservations, page_number, page_size, reservation_summary)

    @staticmethod
    def reservation_exists(reservation_id):

        _require_positive(reservation_id, "Reservation ID")
        return SeatLedger.exists(reservation_id)

    @staticmethod
    def check_seat_availability(showtime_id, seat_number):

        _require_positive(showtime_id, "Showtime ID")
        _require_positive(seat_number, "Seat number")
        return SeatAvailability.check_seat(showtime_id, seat_number)

    @staticmethod
    def get_reserved_seats(showtime_id):
        return sorted(SeatAvailability.booked_seats(showtime_id))

    @staticmethod
    def get_available_seats(showtime_id):
        return sorted(SeatAvailability.available_seats(showtime_id))
