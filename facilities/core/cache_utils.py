"""
Caching utilities for expensive aggregate queries

Each prefix carries a generation number stored in the cache itself. Keys embed
the generation, so bumping it invalidates every key of the prefix on any
backend. Redis (django-redis) additionally drops the stale keys by pattern.
"""
from django.core.cache import cache
from functools import wraps
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache key prefixes
DASHBOARD_STATS_PREFIX = 'dashboard_stats'
ML_PREDICTIONS_PREFIX = 'ml_predictions'
RENTAL_COSTS_PREFIX = 'rental_costs'
FOOD_SUPPLY_STATS_PREFIX = 'food_supply_stats'

# Cache TTLs (in seconds)
DASHBOARD_STATS_CACHE_TTL = 120  # 2 minutes
ML_PREDICTIONS_CACHE_TTL = 900  # 15 minutes
RENTAL_COSTS_CACHE_TTL = 600  # 10 minutes
FOOD_SUPPLY_STATS_CACHE_TTL = 300  # 5 minutes


def _generation_key(prefix):
    return f"{prefix}:generation"


def get_generation(prefix):
    generation = cache.get(_generation_key(prefix))
    if generation is None:
        generation = 1
        cache.add(_generation_key(prefix), generation, None)
    return generation


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments and the prefix generation"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:g{get_generation(prefix)}:{key_hash}"


def cached_query(cache_ttl=60, key_prefix="query"):
    """
    Decorator to cache expensive computations

    Usage:
        @cached_query(cache_ttl=120, key_prefix="dashboard_stats")
        def build_stats(user_id):
            return data

    Pass refresh=True to the wrapped function to bypass the cached value.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, refresh=False, **kwargs):
            cache_key = make_cache_key(key_prefix, *args, **kwargs)

            if not refresh:
                cached_data = cache.get(cache_key)
                if cached_data is not None:
                    logger.debug(f"Cache HIT for {key_prefix}: {cache_key}")
                    return cached_data

            logger.debug(f"Cache MISS for {key_prefix}: {cache_key}")
            result = func(*args, **kwargs)
            cache.set(cache_key, result, cache_ttl)
            return result
        return wrapper
    return decorator


def invalidate_cache_pattern(pattern):
    """
    Invalidate all cache keys generated under a prefix
    Bumps the prefix generation; on Redis the old keys are also deleted
    """
    try:
        try:
            cache.incr(_generation_key(pattern))
        except ValueError:
            cache.set(_generation_key(pattern), 2, None)
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")
        return

    delete_pattern = getattr(cache, 'delete_pattern', None)
    if delete_pattern is not None:
        try:
            deleted = delete_pattern(f"{pattern}:g[0-9]*")
            logger.info(f"Invalidated {deleted} cache keys matching pattern: {pattern}")
        except Exception as e:
            logger.warning(f"Could not delete cache keys for {pattern}: {str(e)}")


def invalidate_dashboard_cache():
    """Invalidate dashboard stats and ML prediction caches"""
    invalidate_cache_pattern(DASHBOARD_STATS_PREFIX)
    invalidate_cache_pattern(ML_PREDICTIONS_PREFIX)
    logger.info("Invalidated dashboard cache")


def invalidate_rental_costs_cache():
    invalidate_cache_pattern(RENTAL_COSTS_PREFIX)
    logger.info("Invalidated rental costs cache")


def invalidate_food_supply_cache():
    invalidate_cache_pattern(FOOD_SUPPLY_STATS_PREFIX)
    logger.info("Invalidated food supply cache")
