"""
Stock bookkeeping shared by consumption, disposal, ordering and recipes.

A kitchen draws from its KitchenFoodSupply row when one exists, otherwise
from the supply's own quantity.
"""
import logging
from collections import OrderedDict
from decimal import Decimal, ROUND_HALF_UP

from .models import KitchenFoodSupply

logger = logging.getLogger('facilities.food_supply')

MAX_RECIPE_DEPTH = 5
CENTS = Decimal('0.01')


def money(value):
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def get_stock_holder(food_supply, kitchen=None):
    """Return the record whose quantity a kitchen draws from"""
    if kitchen is not None:
        row = KitchenFoodSupply.objects.filter(kitchen=kitchen, food_supply=food_supply).first()
        if row:
            return row
    return food_supply


def available_quantity(food_supply, kitchen=None):
    return get_stock_holder(food_supply, kitchen).quantity


def deduct_stock(food_supply, quantity, kitchen=None):
    """
    Remove quantity from the kitchen row (or the supply).

    Returns the holder that was updated. Callers check availability first.
    """
    holder = get_stock_holder(food_supply, kitchen)
    holder.quantity = holder.quantity - quantity
    holder.save(update_fields=['quantity', 'updated_at'])
    return holder


def expand_recipe(recipe, multiplier=Decimal('1'), _depth=0, _path=None):
    """
    Flatten a recipe into its food supply requirements.

    multiplier scales the recipe's ingredient quantities (1 = one batch of
    recipe.servings servings). Sub-recipe ingredients are expanded by
    ingredient quantity / sub-recipe servings. Returns an OrderedDict keyed
    by food supply id with supply, quantity and waste_fraction.
    """
    path = set(_path or ())
    if recipe.pk in path or _depth > MAX_RECIPE_DEPTH:
        logger.warning(f"Recipe {recipe.pk} expansion stopped: cycle or depth limit")
        return OrderedDict()
    path.add(recipe.pk)

    requirements = OrderedDict()
    for ingredient in recipe.ingredients.select_related('food_supply', 'subrecipe'):
        required = ingredient.quantity * multiplier
        if ingredient.food_supply_id:
            entry = requirements.setdefault(ingredient.food_supply_id, {
                'food_supply': ingredient.food_supply,
                'quantity': Decimal('0'),
                'waste_fraction': ingredient.waste_fraction,
            })
            entry['quantity'] += required
        elif ingredient.subrecipe_id:
            subrecipe = ingredient.subrecipe
            sub_multiplier = required / Decimal(subrecipe.servings or 1)
            for supply_id, sub_entry in expand_recipe(subrecipe, sub_multiplier, _depth + 1, path).items():
                entry = requirements.setdefault(supply_id, {
                    'food_supply': sub_entry['food_supply'],
                    'quantity': Decimal('0'),
                    'waste_fraction': sub_entry['waste_fraction'],
                })
                entry['quantity'] += sub_entry['quantity']
    return requirements


def recipe_batch_cost(recipe):
    """Ingredient cost of one batch (recipe.servings servings)"""
    total = Decimal('0')
    for entry in expand_recipe(recipe).values():
        total += entry['quantity'] * entry['food_supply'].price_per_unit
    return money(total)


def find_shortages(requirements, kitchen=None):
    """List requirements that the kitchen cannot cover"""
    shortages = []
    for entry in requirements.values():
        supply = entry['food_supply']
        available = available_quantity(supply, kitchen)
        if available < entry['quantity']:
            shortages.append({
                'food_supply': supply.id,
                'name': supply.name,
                'unit': supply.unit,
                'required': float(entry['quantity']),
                'available': float(available),
            })
    return shortages
