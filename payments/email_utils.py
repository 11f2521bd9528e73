import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.db import transaction
from django.template.loader import render_to_string

logger = logging.getLogger(__name__)


def send_email_safe(task_func, *args):
    """Queue an email task; broker outages are logged and never reach the caller."""
    try:
        logger.info(f"📧 Queueing email: {task_func.name} with args: {args}")
        return task_func.delay(*args)
    except Exception as e:
        logger.error(
            f"❌ 📧 ERROR queueing email: {task_func.name}\n"
            f"   Error: {type(e).__name__}: {str(e)}\n"
            f"   Args: {args}\n"
            f"   Email NOT sent to user."
        )
        return None


def send_email_on_commit(task_func, *args):
    transaction.on_commit(lambda: send_email_safe(task_func, *args))


def _payment_context(payment):
    reservation = payment.reservation
    showtime = reservation.showtime
    return {
        'payment': payment,
        'reservation': reservation,
        'user': payment.user,
        'showtime': showtime,
        'movie': showtime.movie,
        'theater': showtime.theater,
    }


def _send(subject, template_name, context, recipient):

    text_content = render_to_string(f'{template_name}.txt', context)
    html_content = render_to_string(f'{template_name}.html', context)

    email = EmailMultiAlternatives(subject, text_content, settings.DEFAULT_FROM_EMAIL, [recipient])
    email.attach_alternative(html_content, "text/html")
    email.send()


def _load_payment(payment_id):
    from .models import Payment

    return (
        Payment.objects
        .select_related('user', 'reservation__showtime__movie', 'reservation__showtime__theater')
        .filter(pk=payment_id)
        .first()
    )


@shared_task
def send_payment_success_email(payment_id):
    from .models import Payment

    try:
        logger.info(f"🔄 [CONFIRMATION_EMAIL] Processing confirmation email for payment_id={payment_id}")
        payment = _load_payment(payment_id)
        if payment is None:
            logger.warning(f"⏭️  SKIPPED: Confirmation email for payment {payment_id} - payment no longer exists")
            return "Email not sent - payment not found"

        if payment.status != Payment.STATUS_SUCCEEDED:
            logger.warning(
                f"⏭️  SKIPPED: Confirmation email for payment {payment_id} - "
                f"Status is {payment.status}, not {Payment.STATUS_SUCCEEDED}"
            )
            return f"Email not sent - payment status is {payment.status}"

        user = payment.user
        if not user.email:
            logger.warning(f"⏭️  SKIPPED: Confirmation email for payment {payment_id} - user {user.pk} has no email")
            return "Email not sent - no recipient"

        context = _payment_context(payment)
        subject = f'🎬 Reservation Confirmed - #{payment.reservation_id} seat {payment.reservation.seat_number}'
        _send(subject, 'payment_success', context, user.email)

        logger.info(f"✅ 📧 CONFIRMATION EMAIL SENT | Payment: {payment_id} | To: {user.email}")
        return f"Email sent successfully to {user.email}"
    except Exception as e:
        logger.error(f"❌ 📧 ERROR sending confirmation email for payment {payment_id}: {type(e).__name__}: {str(e)}")
        return f"Error sending email: {str(e)}"


@shared_task
def send_payment_failed_email(payment_id):
    from .models import Payment

    try:
        logger.info(f"🔄 [FAILURE_EMAIL] Processing payment failed email for payment_id={payment_id}")
        payment = _load_payment(payment_id)
        if payment is None:
            logger.warning(f"⏭️  Skipping payment failed email for payment {payment_id} - payment no longer exists")
            return "Email not sent - payment not found"

        if payment.status != Payment.STATUS_FAILED:
            logger.warning(
                f"⏭️  Skipping payment failed email for payment {payment_id} - "
                f"Status is {payment.status}, not {Payment.STATUS_FAILED}"
            )
            return f"Email not sent - payment status is {payment.status}"

        user = payment.user
        if not user.email:
            logger.warning(f"⏭️  Skipping payment failed email for payment {payment_id} - user {user.pk} has no email")
            return "Email not sent - no recipient"

        context = _payment_context(payment)
        subject = f'❌ Payment Failed - Reservation #{payment.reservation_id}'
        _send(subject, 'payment_failed', context, user.email)

        logger.info(f"✅ Payment failed email sent to {user.email}")
        return f"Payment failed email sent to {user.email}"
    except Exception as e:
        logger.error(f"❌ Error sending payment failed email: {str(e)}")
        return f"Error sending payment failed email: {str(e)}"
