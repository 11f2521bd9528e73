from datetime import date, timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from movies.models import Category, Movie
from movies.theater_models import Theater, Showtime

CATEGORIES = [
    ('Action', 'High-energy films with stunts and chases'),
    ('Drama', 'Character-driven stories'),
    ('Comedy', 'Films made to make you laugh'),
    ('Sci-Fi', 'Speculative stories about science and the future'),
]

MOVIES = [
    ('The Last Horizon', 'Sci-Fi', 142, 13, date(2024, 11, 8)),
    ('Midnight Run Again', 'Action', 118, 16, date(2025, 2, 14)),
    ('Quiet Rooms', 'Drama', 105, 12, date(2025, 5, 2)),
    ('Second Helpings', 'Comedy', 96, 0, date(2025, 7, 19)),
]

THEATERS = [
    ('Hall A', 50),
    ('Hall B', 100),
    ('IMAX', 200),
]

SHOW_HOURS = [13, 17, 21]


class Command(BaseCommand):
    help = 'Create demo categories, movies, theaters and showtimes'

    def add_arguments(self, parser):
        parser.add_argument('--days', type=int, default=3, help='Number of days of showtimes to create')
        parser.add_argument('--clear', action='store_true', help='Delete existing showtimes first')

    def handle(self, *args, **options):
        days = options['days']

        with transaction.atomic():
            if options['clear']:
                deleted, _ = Showtime.objects.all().delete()
                self.stdout.write(self.style.WARNING(f'Deleted {deleted} existing rows'))

            categories = {}
            for name, description in CATEGORIES:
                categories[name], _ = Category.objects.get_or_create(name=name, defaults={'description': description})

            movies = []
            for title, category, duration, age, release_date in MOVIES:
                movie, _ = Movie.objects.get_or_create(
                    title=title,
                    defaults={
                        'category': categories[category],
                        'duration_in_minutes': duration,
                        'suitable_age': age,
                        'release_date': release_date,
                        'description': f'{title} - demo listing',
                    },
                )
                movies.append(movie)

            theaters = []
            for name, seats in THEATERS:
                theater, _ = Theater.objects.get_or_create(name=name, defaults={'total_seats': seats})
                theaters.append(theater)

            today = timezone.localtime().replace(minute=0, second=0, microsecond=0)
            created = 0
            for day in range(days):
                for index, theater in enumerate(theaters):
                    for slot, hour in enumerate(SHOW_HOURS):
                        movie = movies[(index + slot + day) % len(movies)]
                        start_time = (today + timedelta(days=day)).replace(hour=hour)
                        _, was_created = Showtime.objects.get_or_create(
                            movie=movie,
                            theater=theater,
                            start_time=start_time,
                            defaults={'price': Decimal('150.00') + 50 * index},
                        )
                        created += was_created

        self.stdout.write(self.style.SUCCESS(
            f'Catalog ready: {len(categories)} categories, {len(movies)} movies, '
            f'{len(theaters)} theaters, {created} new showtimes'
        ))
