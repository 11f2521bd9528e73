import logging

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from core.cache import CacheInvalidator
from .models import Category, Movie
from .theater_models import Showtime, Theater

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Movie)
@receiver(post_delete, sender=Movie)
@receiver(post_save, sender=Category)
@receiver(post_delete, sender=Category)
@receiver(post_save, sender=Theater)
@receiver(post_delete, sender=Theater)
def invalidate_catalog_listings(sender, instance, **kwargs):
    logger.info(f"{sender.__name__} {instance.pk} changed, invalidating catalog listings")
    CacheInvalidator.invalidate_catalog_on_commit()


@receiver(post_save, sender=Showtime)
@receiver(post_delete, sender=Showtime)
def invalidate_showtime_views(sender, instance, **kwargs):
    logger.info(f"Showtime {instance.pk} changed, invalidating its cached views")
    CacheInvalidator.invalidate_showtime_on_commit(instance.pk)
    CacheInvalidator.invalidate_catalog_on_commit()
