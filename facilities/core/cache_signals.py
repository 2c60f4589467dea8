"""
Cache invalidation signals
Automatically invalidate aggregate caches when data changes
"""
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import (
    invalidate_dashboard_cache, invalidate_rental_costs_cache, invalidate_food_supply_cache
)

logger = logging.getLogger(__name__)

_thread_locals = threading.local()

DASHBOARD_MODELS = {
    'Asset', 'Ticket', 'FoodSupply', 'KitchenFoodSupply', 'FoodConsumption',
    'FoodDisposal', 'RecipeUsage', 'Vehicle', 'VehicleRental',
}
RENTAL_COST_MODELS = {'Vehicle', 'VehicleMaintenance'}
FOOD_SUPPLY_MODELS = {
    'FoodSupply', 'FoodConsumption', 'FoodDisposal', 'RecipeUsage',
}


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Useful for bulk operations; invalidate manually after the block.
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


def _on_commit(callback):
    try:
        transaction.on_commit(callback)
    except Exception as e:
        logger.warning(f"Could not schedule cache invalidation: {e}")


@receiver([post_save, post_delete])
def invalidate_aggregate_caches(sender, instance, **kwargs):
    """Invalidate aggregate caches after the write commits"""
    if is_suspended():
        return

    model_name = sender.__name__
    if model_name in DASHBOARD_MODELS:
        _on_commit(invalidate_dashboard_cache)
    if model_name in RENTAL_COST_MODELS:
        _on_commit(invalidate_rental_costs_cache)
    if model_name in FOOD_SUPPLY_MODELS:
        _on_commit(invalidate_food_supply_cache)
