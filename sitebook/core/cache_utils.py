"""
Caching utilities for expensive per-organization summaries
Uses the default cache (Redis through django-redis in deployments)
"""
from django.conf import settings
from django.core.cache import cache
from functools import wraps
import hashlib
import logging

logger = logging.getLogger(__name__)

OVERVIEW_CACHE_PREFIX = 'overview'


def overview_cache_ttl():
    return getattr(settings, 'OVERVIEW_CACHE_TTL', 300)


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def cached_query(cache_ttl=None, key_prefix="query"):
    """
    Decorator to cache expensive queries

    Positional and keyword arguments form the key, so callers must pass plain
    values (ids, strings) rather than model instances.

    Usage:
        @cached_query(key_prefix="overview")
        def build_overview(organization_id):
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
            cache.set(cache_key, result, cache_ttl if cache_ttl is not None else overview_cache_ttl())
            return result

        wrapper.cache_key = lambda *args, **kwargs: make_cache_key(key_prefix, *args, **kwargs)
        return wrapper
    return decorator


def invalidate_organization_cache(organization_id):
    """Drop cached summaries for one organization"""
    if organization_id is None:
        return
    try:
        cache.delete(make_cache_key(OVERVIEW_CACHE_PREFIX, organization_id))
        logger.debug(f"Invalidated overview cache for organization {organization_id}")
    except Exception as e:
        logger.warning(f"Could not invalidate cache for organization {organization_id}: {str(e)}")
