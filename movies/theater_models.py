from django.db import models
from django.core.validators import MinValueValidator
from django.utils import timezone


class Theater(models.Model):
    name = models.CharField(max_length=200)

    # Seats are numbered 1..total_seats
    total_seats = models.PositiveIntegerField(default=100, validators=[MinValueValidator(1)])

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.name} ({self.total_seats} seats)"

    class Meta:
        ordering = ['name']


class ShowtimeQuerySet(models.QuerySet):

    def upcoming(self, now=None):
        return self.filter(start_time__gte=now or timezone.now())

    def past(self, now=None):
        return self.filter(start_time__lt=now or timezone.now())


class Showtime(models.Model):
    movie = models.ForeignKey('movies.Movie', on_delete=models.CASCADE, related_name='showtimes')
    theater = models.ForeignKey(Theater, on_delete=models.CASCADE, related_name='showtimes')

    start_time = models.DateTimeField(db_index=True)
    price = models.DecimalField(max_digits=8, decimal_places=2, validators=[MinValueValidator(0)])

    created_at = models.DateTimeField(auto_now_add=True)

    objects = ShowtimeQuerySet.as_manager()

    def __str__(self):
        return f"{self.movie.title} - {self.start_time:%Y-%m-%d %H:%M}"

    @property
    def total_seats(self):
        return self.theater.total_seats

    def is_upcoming(self):
        return self.start_time >= timezone.now()

    def is_valid_seat(self, seat_number):
        return 1 <= seat_number <= self.theater.total_seats

    class Meta:
        ordering = ['start_time']
