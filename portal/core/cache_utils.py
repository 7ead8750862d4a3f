"""
Caching utilities for client portal content lists and dashboards
Uses Redis (django-redis) when configured
"""
from django.core.cache import cache, caches
from functools import wraps
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
CLIENT_LIST_CACHE_TTL = 300  # 5 minutes
CONTENT_LIST_CACHE_TTL = 600  # 10 minutes
DASHBOARD_CACHE_TTL = 120  # 2 minutes

# Cache key prefixes
CLIENT_LIST_PREFIX = 'client_list'
CONTENT_LIST_PREFIX = 'content_list'
DASHBOARD_PREFIX = 'admin_dashboard'


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    # Hash it to keep key length reasonable
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def cached_query(cache_ttl=60, key_prefix="query"):
    """
    Decorator to cache expensive queries

    Usage:
        @cached_query(cache_ttl=120, key_prefix="admin_dashboard")
        def build_dashboard(now_bucket):
            return data
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = make_cache_key(key_prefix, *args, **kwargs)

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


def get_cached(prefix, **filters):
    """
    Look up a cached payload for a list endpoint.
    Returns tuple: (cached_data, cache_key)
    """
    cache_key = make_cache_key(prefix, **filters)
    cached_data = cache.get(cache_key)
    if cached_data is not None:
        logger.debug(f"Cache HIT for {prefix}: {cache_key}")
    return cached_data, cache_key


def set_cached(cache_key, data, ttl):
    cache.set(cache_key, data, ttl)
    logger.debug(f"Cached {cache_key}")


def invalidate_cache_pattern(pattern):
    """
    Invalidate all cache keys matching a pattern.
    Uses Redis SCAN when the default cache is django-redis; other backends
    are cleared entirely since they only hold portal keys.
    """
    backend = caches['default'].__class__.__module__
    if not backend.startswith('django_redis'):
        cache.clear()
        logger.debug(f"Cleared local cache for pattern: {pattern}")
        return

    try:
        from django_redis import get_redis_connection
        redis_conn = get_redis_connection("default")

        keys = []
        cursor = 0
        while True:
            cursor, partial_keys = redis_conn.scan(cursor, match=f"*{pattern}*", count=100)
            keys.extend(partial_keys)
            if cursor == 0:
                break

        if keys:
            redis_conn.delete(*keys)
            logger.info(f"Invalidated {len(keys)} cache keys matching pattern: {pattern}")
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")


def invalidate_client_list_cache():
    invalidate_cache_pattern(CLIENT_LIST_PREFIX)


def invalidate_content_cache():
    invalidate_cache_pattern(CONTENT_LIST_PREFIX)


def invalidate_dashboard_cache():
    invalidate_cache_pattern(DASHBOARD_PREFIX)
