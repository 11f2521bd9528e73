import string

from django.conf import settings
from django.contrib.auth.models import User
from django.core.validators import MinValueValidator
from django.db import models
from django.utils.crypto import get_random_string

from movies.theater_models import Showtime

SECRET_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_secret_code():
    # Not checked for uniqueness; the id is always presented alongside the code.
    length = getattr(settings, 'SECRET_CODE_LENGTH', 8)
    return get_random_string(length, allowed_chars=SECRET_CODE_ALPHABET)


class Reservation(models.Model):

    showtime = models.ForeignKey(Showtime, on_delete=models.CASCADE, related_name='reservations')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='reservations')
    seat_number = models.PositiveIntegerField(validators=[MinValueValidator(1)])

    secret_code = models.CharField(max_length=16, default=generate_secret_code, editable=False)
    is_paid = models.BooleanField(default=False, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['showtime', 'seat_number'],
                name='unique_seat_per_showtime',
            ),
        ]

    def __str__(self):
        return f"Reservation {self.pk} - showtime {self.showtime_id} seat {self.seat_number}"

    def is_owned_by(self, user):
        return user is not None and self.user_id == user.pk

    def refresh_paid_flag(self, save=True):
        """Recompute ``is_paid`` from the linked payments; returns True if it changed."""
        from payments.models import Payment

        is_paid = self.payments.filter(status=Payment.STATUS_SUCCEEDED).exists()
        if is_paid == self.is_paid:
            return False
        self.is_paid = is_paid
        if save:
            self.save(update_fields=['is_paid'])
        return True
