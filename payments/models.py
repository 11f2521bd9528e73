from django.contrib.auth.models import User
from django.db import models
from django.utils import timezone

from reservations.models import Reservation


class Payment(models.Model):

    STATUS_CREATED = 'created'
    STATUS_ATTEMPTED = 'attempted'
    STATUS_SUCCEEDED = 'succeeded'
    STATUS_FAILED = 'failed'
    STATUS_REFUNDED = 'refunded'
    STATUS_CANCELED = 'canceled'

    STATUS_CHOICES = [
        (STATUS_CREATED, 'Created'),
        (STATUS_ATTEMPTED, 'Attempted'),
        (STATUS_SUCCEEDED, 'Succeeded'),
        (STATUS_FAILED, 'Failed'),
        (STATUS_REFUNDED, 'Refunded'),
        (STATUS_CANCELED, 'Canceled'),
    ]

    IN_FLIGHT_STATUSES = (STATUS_CREATED, STATUS_ATTEMPTED)

    # Monotonic: refunded and canceled are terminal, succeeded only moves to refunded.
    # A refund implies an earlier capture, so it is accepted from any unpaid state too.
    ALLOWED_TRANSITIONS = {
        STATUS_CREATED: {STATUS_ATTEMPTED, STATUS_SUCCEEDED, STATUS_FAILED, STATUS_REFUNDED, STATUS_CANCELED},
        STATUS_ATTEMPTED: {STATUS_SUCCEEDED, STATUS_FAILED, STATUS_REFUNDED, STATUS_CANCELED},
        STATUS_FAILED: {STATUS_SUCCEEDED, STATUS_REFUNDED, STATUS_CANCELED},
        STATUS_SUCCEEDED: {STATUS_REFUNDED},
        STATUS_REFUNDED: set(),
        STATUS_CANCELED: set(),
    }

    reservation = models.ForeignKey(Reservation, on_delete=models.CASCADE, related_name='payments')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='payments')

    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default='INR')

    razorpay_order_id = models.CharField(max_length=100, unique=True)
    razorpay_payment_id = models.CharField(max_length=100, blank=True, null=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_CREATED, db_index=True)
    failure_reason = models.CharField(max_length=255, blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Payment {self.pk} ({self.razorpay_order_id}) - {self.status}"

    def can_transition_to(self, new_status):
        return new_status in self.ALLOWED_TRANSITIONS.get(self.status, set())

    def transition_to(self, new_status, failure_reason=None, gateway_payment_id=None):
        """Apply ``new_status`` if the move is allowed; returns True when the status changed."""
        if new_status == self.status or not self.can_transition_to(new_status):
            return False

        self.status = new_status
        if gateway_payment_id:
            self.razorpay_payment_id = gateway_payment_id

        if new_status == self.STATUS_SUCCEEDED:
            self.paid_at = timezone.now()
            self.failure_reason = None
        elif new_status == self.STATUS_FAILED:
            self.failure_reason = (failure_reason or 'Unknown error')[:255]
        elif new_status == self.STATUS_REFUNDED:
            self.refunded_at = timezone.now()
            # Capture was never recorded here
            if self.paid_at is None:
                self.paid_at = self.refunded_at
            self.failure_reason = None

        self.save()
        return True

    def is_owned_by(self, user):
        return user is not None and self.user_id == user.pk

    @property
    def is_completed(self):
        return self.status == self.STATUS_SUCCEEDED
