from django.conf import settings
from django.core.management.base import BaseCommand
import logging

from reservations.tasks import find_stale_holds, release_holds

logger = logging.getLogger(__name__)

class Command(BaseCommand):
    help = 'Release unpaid reservations older than the hold timeout'

    def add_arguments(self, parser):
        parser.add_argument(
            '--timeout',
            type=int,
            default=None,
            help='Hold timeout in seconds (defaults to RESERVATION_HOLD_TIMEOUT)',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List the holds that would be released without deleting them',
        )

    def handle(self, *args, **options):
        timeout = options['timeout'] or getattr(settings, 'RESERVATION_HOLD_TIMEOUT', None)

        if not timeout:
            self.stdout.write(
                self.style.WARNING('Hold timeout is not configured. Pass --timeout or set RESERVATION_HOLD_TIMEOUT.')
            )
            return

        stale = list(find_stale_holds(timeout))

        if not stale:
            self.stdout.write(self.style.SUCCESS('No stale holds to release'))
            return

        self.stdout.write(
            self.style.WARNING(f'Found {len(stale)} unpaid reservations older than {timeout}s')
        )

        for reservation in stale:
            self.stdout.write(
                f'  - reservation {reservation.pk} | showtime {reservation.showtime_id} | seat {reservation.seat_number}'
            )

        if options['dry_run']:
            self.stdout.write(self.style.SUCCESS('Dry run, nothing released.'))
            return

        released = release_holds(timeout)
        self.stdout.write(
            self.style.SUCCESS(f'Released {released} stale holds.')
        )
