import logging

from django.core.cache import cache
from django.db import transaction

logger = logging.getLogger(__name__)


class CacheKeyBuilder:

    VERSION = "v1"
    PREFIX = "moviereservation"

    @staticmethod
    def booked_seats(showtime_id):
        return f"{CacheKeyBuilder.PREFIX}:{CacheKeyBuilder.VERSION}:booked_seats:{showtime_id}"

    @staticmethod
    def generation(namespace):
        return f"{CacheKeyBuilder.PREFIX}:{CacheKeyBuilder.VERSION}:generation:{namespace}"

    @staticmethod
    def listing(namespace, *parts):
        """Key for a listing-style query, scoped to the namespace's current generation."""
        generation = CacheInvalidator.current_generation(namespace)
        suffix = ":".join(str(p) for p in parts)
        return f"{CacheKeyBuilder.PREFIX}:{CacheKeyBuilder.VERSION}:{namespace}:g{generation}:{suffix}"

    @staticmethod
    def lock(name):
        return f"{CacheKeyBuilder.PREFIX}:{CacheKeyBuilder.VERSION}:lock:{name}"


class CacheNamespaces:

    SHOWTIMES = "showtimes"
    MOVIES = "movies"


class CacheTimeouts:

    BOOKED_SEATS = 300  # 5 minutes
    LISTING = 300
    GENERATION = None  # never expires
    SWEEP_LOCK = 300


def cache_get(key):
    try:
        return cache.get(key)
    except Exception as e:
        logger.warning(f"Cache read failed for {key}: {e}")
        return None


def cache_set(key, value, timeout):
    try:
        cache.set(key, value, timeout=timeout)
    except Exception as e:
        logger.warning(f"Cache write failed for {key}: {e}")


class CacheInvalidator:

    @staticmethod
    def current_generation(namespace):

        key = CacheKeyBuilder.generation(namespace)
        try:
            generation = cache.get(key)
            if generation is None:
                cache.add(key, 1, timeout=CacheTimeouts.GENERATION)
                generation = cache.get(key) or 1
            return generation
        except Exception as e:
            logger.warning(f"Cache generation lookup failed for {namespace}: {e}")
            return 0

    @staticmethod
    def invalidate_namespace(namespace):
        """Orphan every listing key under ``namespace`` by bumping its generation."""
        key = CacheKeyBuilder.generation(namespace)
        try:
            try:
                cache.incr(key)
            except ValueError:
                # incr on a missing key raises; start a fresh generation instead
                cache.add(key, 2, timeout=CacheTimeouts.GENERATION)
            logger.info(f"Cache namespace '{namespace}' invalidated")
        except Exception as e:
            logger.error(f"Cache invalidation error for namespace {namespace}: {e}")

    @staticmethod
    def invalidate_showtime(showtime_id):

        try:
            cache.delete(CacheKeyBuilder.booked_seats(showtime_id))
            logger.info(f"Cache invalidated for showtime {showtime_id}")
        except Exception as e:
            logger.error(f"Cache invalidation error for showtime {showtime_id}: {e}")
        CacheInvalidator.invalidate_namespace(CacheNamespaces.SHOWTIMES)

    @staticmethod
    def invalidate_showtime_on_commit(showtime_id):
        transaction.on_commit(lambda: CacheInvalidator.invalidate_showtime(showtime_id))

    @staticmethod
    def invalidate_catalog_on_commit():

        def _invalidate():
            CacheInvalidator.invalidate_namespace(CacheNamespaces.SHOWTIMES)
            CacheInvalidator.invalidate_namespace(CacheNamespaces.MOVIES)

        transaction.on_commit(_invalidate)
