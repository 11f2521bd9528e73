import logging

from django.db import IntegrityError, connection, transaction

from core.cache import CacheInvalidator
from core.exceptions import InvalidInputError, NotFoundError, SeatConflictError, UnauthorizedError
from .models import Reservation

logger = logging.getLogger(__name__)


def supports_select_for_update():
    return connection.features.has_select_for_update


class SeatLedger:
    """Authoritative store of (showtime, seat) occupancy.

    The ``unique_seat_per_showtime`` constraint is what makes check-then-insert
    atomic: the ``is_occupied`` pre-check only produces a friendlier path for
    the common case, and a concurrent insert that slips past it surfaces as an
    ``IntegrityError`` which is translated into the same ``SeatConflictError``.
    """

    @staticmethod
    def is_occupied(showtime_id, seat_number, exclude_reservation_id=None):

        reservations = Reservation.objects.filter(showtime_id=showtime_id, seat_number=seat_number)
        if exclude_reservation_id is not None:
            reservations = reservations.exclude(pk=exclude_reservation_id)
        return reservations.exists()

    @staticmethod
    def occupied_seats(showtime_id):
        return set(
            Reservation.objects.filter(showtime_id=showtime_id).values_list('seat_number', flat=True)
        )

    @staticmethod
    def exists(reservation_id):
        return Reservation.objects.filter(pk=reservation_id).exists()

    @staticmethod
    def _get_for_update(reservation_id):

        reservations = Reservation.objects.all()
        if supports_select_for_update():
            reservations = reservations.select_for_update()
        try:
            return reservations.get(pk=reservation_id)
        except Reservation.DoesNotExist:
            raise NotFoundError(f"Reservation with ID {reservation_id} does not exist.")

    @staticmethod
    def reserve(showtime, seat_number, user):

        if SeatLedger.is_occupied(showtime.id, seat_number):
            logger.info(f"Seat {seat_number} for showtime {showtime.id} already held, rejecting user {user.id}")
            raise SeatConflictError(showtime.id, seat_number)

        try:
            with transaction.atomic():
                reservation = Reservation.objects.create(
                    showtime=showtime,
                    user=user,
                    seat_number=seat_number,
                )
        except IntegrityError:
            logger.warning(
                f"Seat {seat_number} for showtime {showtime.id} was taken concurrently; "
                f"user {user.id} lost the race"
            )
            raise SeatConflictError(showtime.id, seat_number)

        CacheInvalidator.invalidate_showtime_on_commit(showtime.id)
        logger.info(f"Reservation {reservation.id} created: showtime {showtime.id} seat {seat_number} user {user.id}")
        return reservation

    @staticmethod
    def cancel(reservation_id, user):

        with transaction.atomic():
            reservation = SeatLedger._get_for_update(reservation_id)
            if not reservation.is_owned_by(user):
                raise UnauthorizedError("You are not authorized to cancel this reservation.")

            showtime_id = reservation.showtime_id
            seat_number = reservation.seat_number
            reservation.delete()

        CacheInvalidator.invalidate_showtime_on_commit(showtime_id)
        logger.info(f"Reservation {reservation_id} cancelled by user {user.id}; seat {seat_number} of showtime {showtime_id} released")
        return True

    @staticmethod
    def change_seat(reservation_id, new_seat, user):

        with transaction.atomic():
            reservation = SeatLedger._get_for_update(reservation_id)
            if not reservation.is_owned_by(user):
                raise UnauthorizedError("You are not authorized to update this reservation.")

            showtime = reservation.showtime
            if not showtime.is_valid_seat(new_seat):
                raise InvalidInputError(
                    f"Seat number {new_seat} exceeds total seats {showtime.total_seats} for the theater."
                )

            old_seat = reservation.seat_number
            if new_seat == old_seat:
                return True

            if SeatLedger.is_occupied(showtime.id, new_seat, exclude_reservation_id=reservation.id):
                raise SeatConflictError(showtime.id, new_seat)

            try:
                with transaction.atomic():
                    Reservation.objects.filter(pk=reservation.pk).update(seat_number=new_seat)
            except IntegrityError:
                logger.warning(f"Seat {new_seat} for showtime {showtime.id} was taken concurrently during seat change")
                raise SeatConflictError(showtime.id, new_seat)

        CacheInvalidator.invalidate_showtime_on_commit(showtime.id)
        logger.info(f"Reservation {reservation_id} moved from seat {old_seat} to {new_seat} (showtime {showtime.id})")
        return True
