"""
Cache invalidation signals
Automatically invalidate cache when data changes
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import (
    invalidate_client_list_cache,
    invalidate_content_cache,
    invalidate_dashboard_cache,
)

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()

CLIENT_MODELS = {'Client'}
CONTENT_MODELS = {'Resource', 'Video', 'Offer', 'Update', 'WeeklyProduct', 'ProductLink'}
DASHBOARD_MODELS = {'Client', 'Task', 'ServiceRequest', 'ChatMessage'}


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Useful for bulk operations to prevent excessive cache clearing.
    Remember to manually invalidate cache after the block!
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


@receiver([post_save, post_delete])
def invalidate_portal_caches(sender, instance, **kwargs):
    """Invalidate list and dashboard caches when portal data changes"""
    if is_suspended():
        return

    model_name = sender.__name__
    try:
        if model_name in CLIENT_MODELS:
            invalidate_client_list_cache()
        if model_name in CONTENT_MODELS:
            invalidate_content_cache()
        if model_name in DASHBOARD_MODELS:
            invalidate_dashboard_cache()
    except Exception as e:
        logger.warning(f"Error invalidating cache for {model_name}: {e}")
