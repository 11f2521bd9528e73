import os
from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'moviereservation.settings')

app = Celery('moviereservation')
app.config_from_object('django.conf:settings', namespace='CELERY')

app.autodiscover_tasks()
app.autodiscover_tasks(related_name='email_utils')

app.conf.beat_schedule = {
    'release-stale-holds-every-minute': {
        'task': 'reservations.tasks.release_stale_holds',
        'schedule': 60.0,  # Every minute; no-op unless RESERVATION_HOLD_TIMEOUT is set
    },
}
