import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from django.utils import timezone

from core.cache import CacheInvalidator, CacheKeyBuilder, CacheTimeouts

logger = logging.getLogger(__name__)


def _holding_statuses():
    from payments.models import Payment

    # A payment in any of these states may still end with captured money
    return (Payment.STATUS_SUCCEEDED,) + Payment.IN_FLIGHT_STATUSES


def _cutoff(timeout_seconds, now=None):
    return (now or timezone.now()) - timedelta(seconds=timeout_seconds)


def find_stale_holds(timeout_seconds, now=None):
    """Unpaid reservations older than the timeout with no succeeded or in-flight payment, of any age."""
    from .models import Reservation

    return (
        Reservation.objects
        .filter(is_paid=False, created_at__lt=_cutoff(timeout_seconds, now))
        .exclude(payments__status__in=_holding_statuses())
        .distinct()
    )


def release_hold(reservation_id, cutoff):
    """Re-check one hold under row locks and delete it; returns the deleted reservation or None.

    Payment rows are locked before the reservation, the same order the
    webhook uses, so a capture either commits first and keeps the hold or
    waits until the hold is gone.
    """
    from payments.models import Payment
    from .ledger import supports_select_for_update
    from .models import Reservation

    with transaction.atomic():
        payments = Payment.objects.filter(reservation_id=reservation_id)
        reservations = Reservation.objects.filter(pk=reservation_id, is_paid=False, created_at__lt=cutoff)
        if supports_select_for_update():
            payments = payments.select_for_update()
            reservations = reservations.select_for_update()

        list(payments.values_list('pk', flat=True))
        reservation = reservations.first()
        if reservation is None:
            return None

        if Payment.objects.filter(reservation_id=reservation_id, status__in=_holding_statuses()).exists():
            logger.info(f"Reservation {reservation_id} has a live payment, keeping its hold")
            return None

        reservation.delete()
        CacheInvalidator.invalidate_showtime_on_commit(reservation.showtime_id)

    logger.info(
        f"Released stale hold: reservation {reservation_id} "
        f"(showtime {reservation.showtime_id}, seat {reservation.seat_number})"
    )
    return reservation


def release_holds(timeout_seconds, now=None):

    cutoff = _cutoff(timeout_seconds, now)
    candidate_ids = list(find_stale_holds(timeout_seconds, now).values_list('pk', flat=True))

    released = 0
    for reservation_id in candidate_ids:
        if release_hold(reservation_id, cutoff) is not None:
            released += 1
    return released


@shared_task(bind=True, max_retries=3)
def release_stale_holds(self):

    timeout = getattr(settings, 'RESERVATION_HOLD_TIMEOUT', None)
    if not timeout:
        return "Hold timeout disabled"

    lock_key = CacheKeyBuilder.lock('release_stale_holds')
    if not cache.add(lock_key, "locked", timeout=CacheTimeouts.SWEEP_LOCK):
        logger.info("Another worker is already releasing stale holds - skipping")
        return "Skipped - lock held by another worker"

    try:
        released = release_holds(timeout)
        result = f"Released {released} stale holds"
        logger.info(result)
        return result

    except Exception as e:
        logger.error(f"Error in release_stale_holds task: {e}")
        raise self.retry(exc=e, countdown=60 * (2 ** self.request.retries))

    finally:
        cache.delete(lock_key)
