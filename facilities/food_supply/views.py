import logging
from datetime import timedelta
from decimal import Decimal
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.conf import settings
from django.shortcuts import get_object_or_404
from django.db import transaction
from django.db.models import Q, Sum, Count
from django.utils import timezone
from facilities.core.cache_utils import cached_query, FOOD_SUPPLY_STATS_PREFIX, FOOD_SUPPLY_STATS_CACHE_TTL
from facilities.core.utils import (
    create_audit_log, is_admin_or_manager, is_truthy, parse_decimal, parse_int, parse_date,
)
from facilities.kitchens.models import Kitchen
from facilities.kitchens.utils import can_access_kitchen
from . import analytics
from .filters import FoodSupplyFilter
from .inventory import (
    available_quantity, deduct_stock, expand_recipe, find_shortages, money,
)
from .models import (
    FoodSupply, KitchenFoodSupply, KitchenBarcode, FoodConsumption, FoodDisposal,
    Recipe, RecipeUsage,
)
from .serializers import (
    FoodSupplySerializer, KitchenFoodSupplySerializer, FoodConsumptionSerializer,
    FoodDisposalSerializer, RecipeSerializer, RecipeUsageSerializer,
)

logger = logging.getLogger('facilities.food_supply')

DISPOSAL_REASONS = [choice[0] for choice in FoodDisposal.REASON_CHOICES]


def _kitchen_or_error(request, kitchen_id, required=True):
    """Resolve a kitchen id from the request; returns (kitchen, error_response)"""
    if not kitchen_id:
        if required:
            return None, Response({'error': 'Kitchen is required'}, status=status.HTTP_400_BAD_REQUEST)
        return None, None
    kitchen = Kitchen.objects.filter(pk=parse_int(kitchen_id)).first()
    if not kitchen:
        return None, Response({'error': 'Kitchen not found'}, status=status.HTTP_404_NOT_FOUND)
    if not can_access_kitchen(request.user, kitchen):
        return None, Response({'error': 'You are not assigned to this kitchen'}, status=status.HTTP_403_FORBIDDEN)
    return kitchen, None


def _positive_quantity(value):
    quantity = parse_decimal(value)
    if quantity is None or quantity <= 0:
        return None
    return quantity


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def food_supply_list_create(request):
    """List food supplies or add a new one"""
    if request.method == 'GET':
        queryset = FoodSupply.objects.select_related('kitchen', 'vendor')
        filterset = FoodSupplyFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        return Response(FoodSupplySerializer(filterset.qs, many=True).data)

    serializer = FoodSupplySerializer(data=request.data)
    if not serializer.is_valid():
        logger.warning(f"Food supply validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    supply = serializer.save()
    logger.info(f"Food supply {supply.name} added by {request.user.username}")
    create_audit_log(request, 'create', 'FoodSupply', supply.id, object_name=supply.name, barcode=supply.barcode)
    return Response(FoodSupplySerializer(supply).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def food_supply_detail(request, pk):
    """Retrieve, update or delete a food supply"""
    supply = get_object_or_404(FoodSupply.objects.select_related('kitchen', 'vendor'), pk=pk)

    if request.method == 'GET':
        data = FoodSupplySerializer(supply).data
        data['kitchen_stock'] = KitchenFoodSupplySerializer(
            supply.kitchen_stock.select_related('food_supply'), many=True
        ).data
        return Response(data)

    if request.method == 'DELETE':
        if not is_admin_or_manager(request.user):
            return Response({'error': 'Only administrators and managers can delete supplies'}, status=status.HTTP_403_FORBIDDEN)
        if supply.recipe_ingredients.exists():
            return Response({'error': 'This supply is used by one or more recipes'}, status=status.HTTP_409_CONFLICT)
        logger.info(f"User {request.user.username} deleting food supply {supply.name}")
        create_audit_log(request, 'delete', 'FoodSupply', supply.id, object_name=supply.name)
        supply.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = FoodSupplySerializer(supply, data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    supply = serializer.save()
    create_audit_log(request, 'update', 'FoodSupply', supply.id, changes=dict(request.data),
                     object_name=supply.name, barcode=supply.barcode)
    return Response(FoodSupplySerializer(supply).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def food_supply_scan(request):
    """Look up a supply by its own barcode or by a kitchen barcode"""
    code = (request.query_params.get('barcode') or request.query_params.get('q') or '').strip()
    if not code:
        return Response({'error': 'Barcode is required'}, status=status.HTTP_400_BAD_REQUEST)

    supply = FoodSupply.objects.select_related('kitchen', 'vendor').filter(barcode__iexact=code).first()
    if supply:
        create_audit_log(request, 'barcode_scan', 'FoodSupply', supply.id, object_name=supply.name, barcode=code)
        return Response({'food_supply': FoodSupplySerializer(supply).data, 'kitchen': None})

    kitchen_barcode = KitchenBarcode.objects.select_related('kitchen', 'food_supply').filter(barcode__iexact=code).first()
    if kitchen_barcode:
        kitchen = kitchen_barcode.kitchen
        supply = kitchen_barcode.food_supply
        create_audit_log(request, 'barcode_scan', 'FoodSupply', supply.id, object_name=supply.name, barcode=code)
        return Response({
            'food_supply': FoodSupplySerializer(supply).data,
            'kitchen': {'id': kitchen.id, 'name': kitchen.name, 'floor_number': kitchen.floor_number},
            'available_quantity': float(available_quantity(supply, kitchen)),
        })

    recipe = Recipe.objects.filter(name__iexact=code).first()
    if recipe:
        return Response({
            'error': f'This barcode belongs to the recipe "{recipe.name}", not a food supply',
            'recipe': recipe.id,
        }, status=status.HTTP_404_NOT_FOUND)

    return Response({'error': 'Food supply not found', 'barcode': code}, status=status.HTTP_404_NOT_FOUND)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def food_supply_consume(request):
    """Record consumption of a supply by a kitchen"""
    supply_id = request.data.get('supply') or request.data.get('food_supply')
    supply = FoodSupply.objects.filter(pk=parse_int(supply_id)).first() if supply_id else None
    if not supply:
        return Response({'error': 'Food supply not found'}, status=status.HTTP_400_BAD_REQUEST)
    quantity = _positive_quantity(request.data.get('quantity'))
    if quantity is None:
        return Response({'error': 'Quantity must be greater than 0'}, status=status.HTTP_400_BAD_REQUEST)
    kitchen, error = _kitchen_or_error(request, request.data.get('kitchen'))
    if error:
        return error

    try:
        with transaction.atomic():
            available = available_quantity(supply, kitchen)
            if available < quantity:
                return Response({
                    'error': 'Insufficient quantity',
                    'available': float(available),
                    'requested': float(quantity),
                }, status=status.HTTP_400_BAD_REQUEST)
            holder = deduct_stock(supply, quantity, kitchen)
            consumption = FoodConsumption.objects.create(
                food_supply=supply,
                kitchen=kitchen,
                user=request.user,
                quantity=quantity,
                expiration_date=holder.expiration_date,
                notes=request.data.get('notes', ''),
            )
    except Exception as e:
        logger.error(f"Unexpected error recording consumption: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    logger.info(f"{request.user.username} consumed {quantity} {supply.unit} of {supply.name} in {kitchen.name}")
    create_audit_log(request, 'food_consume', 'FoodSupply', supply.id,
                     changes={'quantity': float(quantity), 'kitchen': kitchen.id},
                     object_name=supply.name, barcode=supply.barcode)
    return Response({
        'consumption': FoodConsumptionSerializer(consumption).data,
        'remaining': float(holder.quantity),
    }, status=status.HTTP_201_CREATED)


def _dispose_direct(request):
    supply_id = request.data.get('food_supply') or request.data.get('supply')
    supply = FoodSupply.objects.filter(pk=parse_int(supply_id)).first() if supply_id else None
    if not supply:
        return Response({'error': 'Food supply not found'}, status=status.HTTP_400_BAD_REQUEST)
    quantity = _positive_quantity(request.data.get('quantity'))
    if quantity is None:
        return Response({'error': 'Quantity must be greater than 0'}, status=status.HTTP_400_BAD_REQUEST)
    reason = request.data.get('reason')
    if reason not in DISPOSAL_REASONS:
        return Response({'error': f'Reason must be one of: {", ".join(DISPOSAL_REASONS)}'}, status=status.HTTP_400_BAD_REQUEST)
    kitchen, error = _kitchen_or_error(request, request.data.get('kitchen'), required=False)
    if error:
        return error

    with transaction.atomic():
        available = available_quantity(supply, kitchen)
        if available < quantity:
            return Response({
                'error': 'Insufficient quantity',
                'available': float(available),
                'requested': float(quantity),
            }, status=status.HTTP_400_BAD_REQUEST)
        holder = deduct_stock(supply, quantity, kitchen)
        supply.refresh_from_db()
        supply.total_wasted = supply.total_wasted + quantity
        supply.save(update_fields=['total_wasted', 'updated_at'])
        disposal = FoodDisposal.objects.create(
            food_supply=supply,
            kitchen=kitchen,
            user=request.user,
            quantity=quantity,
            reason=reason,
            source='direct',
            cost=money(quantity * supply.price_per_unit),
            notes=request.data.get('notes', ''),
        )

    logger.info(f"{request.user.username} disposed {quantity} {supply.unit} of {supply.name} ({reason})")
    create_audit_log(request, 'food_dispose', 'FoodSupply', supply.id,
                     changes={'quantity': float(quantity), 'reason': reason, 'cost': float(disposal.cost)},
                     object_name=supply.name, barcode=supply.barcode)
    return Response({
        'disposal': FoodDisposalSerializer(disposal).data,
        'remaining': float(holder.quantity),
    }, status=status.HTTP_201_CREATED)


def _dispose_recipe(request):
    recipe_id = request.data.get('recipe')
    recipe = Recipe.objects.filter(pk=parse_int(recipe_id)).first() if recipe_id else None
    if not recipe:
        return Response({'error': 'Recipe not found'}, status=status.HTTP_400_BAD_REQUEST)
    servings = _positive_quantity(request.data.get('servings'))
    if servings is None:
        return Response({'error': 'Servings must be greater than 0'}, status=status.HTTP_400_BAD_REQUEST)
    reason = request.data.get('reason')
    if reason not in DISPOSAL_REASONS:
        return Response({'error': f'Reason must be one of: {", ".join(DISPOSAL_REASONS)}'}, status=status.HTTP_400_BAD_REQUEST)
    kitchen, error = _kitchen_or_error(request, request.data.get('kitchen'), required=False)
    if error:
        return error

    ratio = servings / Decimal(recipe.servings or 1)
    disposals = []
    insufficient = []
    total_cost = Decimal('0')
    with transaction.atomic():
        for entry in expand_recipe(recipe, ratio).values():
            supply = entry['food_supply']
            required = entry['quantity']
            available = available_quantity(supply, kitchen)
            deducted = min(required, available)
            if deducted < required:
                insufficient.append({
                    'food_supply': supply.id,
                    'name': supply.name,
                    'required': float(required),
                    'available': float(available),
                })
            if deducted <= 0:
                continue
            deduct_stock(supply, deducted, kitchen)
            supply.refresh_from_db()
            supply.total_wasted = supply.total_wasted + deducted
            supply.save(update_fields=['total_wasted', 'updated_at'])
            cost = money(deducted * supply.price_per_unit)
            total_cost += cost
            disposals.append(FoodDisposal.objects.create(
                food_supply=supply,
                kitchen=kitchen,
                user=request.user,
                recipe=recipe,
                quantity=deducted,
                reason=reason,
                source='recipe',
                cost=cost,
                notes=request.data.get('notes', ''),
            ))

    logger.info(f"{request.user.username} disposed {servings} servings of recipe {recipe.name} ({reason})")
    create_audit_log(request, 'food_dispose', 'Recipe', recipe.id,
                     changes={'servings': float(servings), 'reason': reason, 'cost': float(total_cost)},
                     object_name=recipe.name)
    return Response({
        'recipe': recipe.id,
        'servings': float(servings),
        'disposals': FoodDisposalSerializer(disposals, many=True).data,
        'total_cost': float(total_cost),
        'insufficient_ingredients': insufficient,
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def food_supply_dispose(request):
    """Dispose of a supply directly or of prepared recipe servings"""
    try:
        if request.data.get('source') == 'recipe':
            return _dispose_recipe(request)
        return _dispose_direct(request)
    except Exception as e:
        logger.error(f"Unexpected error recording disposal: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def food_supply_order(request):
    """Receive an order of supplies into a kitchen"""
    kitchen, error = _kitchen_or_error(request, request.data.get('kitchen'))
    if error:
        return error
    items = request.data.get('items')
    if not isinstance(items, list) or not items:
        return Response({'error': 'At least one item is required'}, status=status.HTTP_400_BAD_REQUEST)

    default_expiration = timezone.localdate() + timedelta(days=settings.FOOD_SUPPLY_DEFAULT_SHELF_LIFE_DAYS)
    processed = []
    try:
        with transaction.atomic():
            for index, item in enumerate(items):
                if not isinstance(item, dict):
                    raise ValueError(f'Item {index + 1} is not an object')
                supply = FoodSupply.objects.filter(pk=parse_int(item.get('food_supply'))).first()
                if not supply:
                    raise ValueError(f'Item {index + 1}: food supply not found')
                quantity = _positive_quantity(item.get('quantity'))
                if quantity is None:
                    raise ValueError(f'Item {index + 1}: quantity must be greater than 0')
                expiration_date = parse_date(item.get('expiration_date')) or default_expiration

                row = KitchenFoodSupply.objects.select_for_update().filter(kitchen=kitchen, food_supply=supply).first()
                if row:
                    row.quantity = row.quantity + quantity
                    row.expiration_date = expiration_date
                    row.save(update_fields=['quantity', 'expiration_date', 'updated_at'])
                    action = 'updated'
                else:
                    row = KitchenFoodSupply.objects.create(
                        kitchen=kitchen, food_supply=supply, quantity=quantity, expiration_date=expiration_date,
                    )
                    action = 'created'
                processed.append({
                    'food_supply': supply.id,
                    'name': supply.name,
                    'quantity': float(quantity),
                    'new_quantity': float(row.quantity),
                    'expiration_date': expiration_date.isoformat(),
                    'action': action,
                })
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Unexpected error processing order: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    logger.info(f"Order of {len(processed)} items received into {kitchen.name} by {request.user.username}")
    create_audit_log(request, 'food_order', 'Kitchen', kitchen.id,
                     changes={'items': processed}, object_name=kitchen.name)
    return Response({'kitchen': kitchen.id, 'processed_items': processed}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def food_supply_order_recommendations(request):
    """Reorder quantities with low stock and expiry flags"""
    kitchen, error = _kitchen_or_error(request, request.query_params.get('kitchen'), required=False)
    if error:
        return error
    return Response(analytics.order_recommendations(kitchen=kitchen))


@cached_query(cache_ttl=FOOD_SUPPLY_STATS_CACHE_TTL, key_prefix=FOOD_SUPPLY_STATS_PREFIX)
def build_food_supply_stats(today_iso):
    now = timezone.now()
    today = timezone.localdate()
    since = now - timedelta(days=30)
    supplies = FoodSupply.objects.all()

    categories = [
        {'category': row['category'], 'count': row['count'], 'quantity': float(row['quantity'] or 0)}
        for row in supplies.values('category').annotate(count=Count('id'), quantity=Sum('quantity')).order_by('category')
    ]
    direct_value = analytics.total_cost_of(
        FoodConsumption.objects.filter(created_at__gte=since, recipe__isnull=True).select_related('food_supply')
    )
    recipe_value = analytics.total_of(RecipeUsage.objects.filter(created_at__gte=since), 'cost')
    total_consumed = direct_value + recipe_value

    disposals = FoodDisposal.objects.all()
    expiration_waste = analytics.total_of(disposals.filter(reason='expired'), 'cost')
    ingredient_waste = analytics.total_of(disposals.filter(reason='ingredient_waste'), 'cost')
    total_waste = analytics.total_of(disposals, 'cost')
    by_reason = [
        {'reason': row['reason'], 'quantity': float(row['quantity'] or 0), 'cost': float(row['cost'] or 0)}
        for row in disposals.values('reason').annotate(quantity=Sum('quantity'), cost=Sum('cost')).order_by('reason')
    ]

    return {
        'total_supplies': supplies.count(),
        'expiring_soon': supplies.filter(expiration_date__gte=today, expiration_date__lte=today + timedelta(days=30)).count(),
        'expired': supplies.filter(expiration_date__lt=today).count(),
        'categories': categories,
        'recent': FoodSupplySerializer(supplies.order_by('-created_at')[:5], many=True).data,
        'total_consumed': float(total_consumed),
        'expiration_waste_cost': float(expiration_waste),
        'ingredient_waste_cost': float(ingredient_waste),
        'total_waste_cost': float(total_waste),
        'waste_percentage': analytics.percentage(total_waste, total_consumed + total_waste),
        'waste_by_reason': by_reason,
        'currency': settings.DEFAULT_CURRENCY,
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def food_supply_stats(request):
    """Inventory, consumption and waste totals"""
    try:
        data = build_food_supply_stats(
            timezone.localdate().isoformat(), refresh=is_truthy(request.query_params.get('refresh'))
        )
    except Exception as e:
        logger.error(f"Unexpected error building food supply stats: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def food_supply_waste_reasons(request):
    """Waste for one kitchen grouped by reason"""
    kitchen, error = _kitchen_or_error(request, request.query_params.get('kitchen'))
    if error:
        return error
    return Response(analytics.waste_reasons(analytics.kitchen_disposals(kitchen)))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def food_supply_waste_patterns(request):
    """Waste by category with trends and operational insights"""
    kitchen, error = _kitchen_or_error(request, request.query_params.get('kitchen'), required=False)
    if error:
        return error
    if kitchen is not None:
        return Response(analytics.waste_patterns(analytics.kitchen_supplies(kitchen), analytics.kitchen_disposals(kitchen)))
    return Response(analytics.waste_patterns(FoodSupply.objects.all(), FoodDisposal.objects.all()))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def food_supply_forecast(request):
    """Demand forecast from recent consumption"""
    lookback_days = max(parse_int(request.query_params.get('days'), 30), 1)
    forecast_days = max(parse_int(request.query_params.get('forecast'), 7), 1)
    kitchen, error = _kitchen_or_error(request, request.query_params.get('kitchen'), required=False)
    if error:
        return error

    if kitchen is not None:
        supplies = analytics.kitchen_supplies(kitchen)
        consumptions = FoodConsumption.objects.filter(kitchen=kitchen)
        usages = RecipeUsage.objects.filter(kitchen=kitchen)
        disposals = analytics.kitchen_disposals(kitchen)
    else:
        supplies = FoodSupply.objects.all()
        consumptions = FoodConsumption.objects.all()
        usages = RecipeUsage.objects.all()
        disposals = FoodDisposal.objects.all()

    try:
        data = analytics.consumption_forecast(
            supplies, consumptions, usages, disposals,
            lookback_days=lookback_days, forecast_days=forecast_days, kitchen=kitchen,
        )
    except Exception as e:
        logger.error(f"Unexpected error building forecast: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def consumption_history(request):
    """Consumption records, newest first"""
    queryset = FoodConsumption.objects.select_related('food_supply', 'kitchen', 'recipe', 'user')
    supply_id = request.query_params.get('supply')
    if supply_id:
        queryset = queryset.filter(food_supply_id=parse_int(supply_id))
    kitchen_id = request.query_params.get('kitchen')
    if kitchen_id:
        queryset = queryset.filter(kitchen_id=parse_int(kitchen_id))
    if not is_admin_or_manager(request.user):
        queryset = queryset.filter(kitchen__assignments__user=request.user)
    limit = min(max(parse_int(request.query_params.get('limit'), 100), 1), 500)
    return Response(FoodConsumptionSerializer(queryset[:limit], many=True).data)


def _recipe_queryset():
    return Recipe.objects.prefetch_related('ingredients__food_supply', 'ingredients__subrecipe')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def recipe_list_create(request):
    """List recipes or create one with its ingredients"""
    if request.method == 'GET':
        recipes = _recipe_queryset()
        search = request.query_params.get('search', '').strip()
        if search:
            recipes = recipes.filter(Q(name__icontains=search) | Q(description__icontains=search))
        if 'is_subrecipe' in request.query_params:
            recipes = recipes.filter(is_subrecipe=is_truthy(request.query_params.get('is_subrecipe')))
        return Response(RecipeSerializer(recipes, many=True).data)

    data = request.data.copy()
    ingredients_data = data.pop('ingredients', [])
    serializer = RecipeSerializer(data=data, context={'ingredients_data': ingredients_data, 'request': request})
    if not serializer.is_valid():
        logger.warning(f"Recipe validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    recipe = serializer.save(created_by=request.user)
    logger.info(f"Recipe {recipe.name} created by {request.user.username}")
    create_audit_log(request, 'create', 'Recipe', recipe.id, object_name=recipe.name)
    return Response(RecipeSerializer(_recipe_queryset().get(pk=recipe.pk)).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def recipe_detail(request, pk):
    """Retrieve, update or delete a recipe"""
    recipe = get_object_or_404(_recipe_queryset(), pk=pk)

    if request.method == 'GET':
        data = RecipeSerializer(recipe).data
        data['usage_count'] = recipe.usages.count()
        return Response(data)

    if request.method == 'DELETE':
        if recipe.used_in.exists():
            return Response({'error': 'This recipe is used as a sub-recipe'}, status=status.HTTP_409_CONFLICT)
        logger.info(f"User {request.user.username} deleting recipe {recipe.name}")
        create_audit_log(request, 'delete', 'Recipe', recipe.id, object_name=recipe.name)
        recipe.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    data = request.data.copy()
    ingredients_data = data.pop('ingredients', None)
    serializer = RecipeSerializer(
        recipe, data=data, partial=request.method == 'PATCH',
        context={'ingredients_data': ingredients_data, 'request': request},
    )
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    recipe = serializer.save()
    create_audit_log(request, 'update', 'Recipe', recipe.id, object_name=recipe.name)
    return Response(RecipeSerializer(_recipe_queryset().get(pk=recipe.pk)).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def recipe_use(request, pk):
    """
    Prepare servings of a recipe in a kitchen.

    Every ingredient (sub-recipes expanded) must be available unless force
    is set, in which case stock is deducted as far as it goes. Ingredients
    with a waste percentage record an ingredient_waste disposal.
    """
    recipe = get_object_or_404(Recipe, pk=pk)
    kitchen, error = _kitchen_or_error(request, request.data.get('kitchen'))
    if error:
        return error
    servings = parse_int(request.data.get('servings'), 1)
    if servings is None or servings < 1:
        return Response({'error': 'Servings must be at least 1'}, status=status.HTTP_400_BAD_REQUEST)
    force = is_truthy(request.data.get('force'))

    requirements = expand_recipe(recipe, Decimal(servings) / Decimal(recipe.servings or 1))
    if not requirements:
        return Response({'error': 'Recipe has no ingredients'}, status=status.HTTP_400_BAD_REQUEST)
    shortages = find_shortages(requirements, kitchen)
    if shortages and not force:
        return Response({
            'error': 'Insufficient ingredients',
            'insufficient_ingredients': shortages,
        }, status=status.HTTP_400_BAD_REQUEST)

    try:
        with transaction.atomic():
            cost = Decimal('0')
            waste_cost = Decimal('0')
            ingredients_used = []
            for entry in requirements.values():
                supply = entry['food_supply']
                required = entry['quantity']
                deducted = min(required, available_quantity(supply, kitchen))
                if deducted <= 0:
                    continue
                holder = deduct_stock(supply, deducted, kitchen)
                cost += deducted * supply.price_per_unit
                FoodConsumption.objects.create(
                    food_supply=supply,
                    kitchen=kitchen,
                    user=request.user,
                    recipe=recipe,
                    quantity=deducted,
                    expiration_date=holder.expiration_date,
                    notes=f'Used in recipe {recipe.name}',
                )
                waste_quantity = deducted * entry['waste_fraction']
                if waste_quantity > 0:
                    ingredient_waste_cost = money(waste_quantity * supply.price_per_unit)
                    waste_cost += ingredient_waste_cost
                    FoodDisposal.objects.create(
                        food_supply=supply,
                        kitchen=kitchen,
                        user=request.user,
                        recipe=recipe,
                        quantity=waste_quantity,
                        reason='ingredient_waste',
                        source='recipe',
                        cost=ingredient_waste_cost,
                        notes=f'Preparation waste for recipe {recipe.name}',
                    )
                    supply.refresh_from_db()
                    supply.total_wasted = supply.total_wasted + waste_quantity
                    supply.save(update_fields=['total_wasted', 'updated_at'])
                ingredients_used.append({
                    'food_supply': supply.id,
                    'name': supply.name,
                    'quantity': float(deducted),
                    'waste_quantity': float(waste_quantity),
                })

            cost = money(cost)
            waste_cost = money(waste_cost)
            selling_price = money(recipe.selling_price * servings)
            usage = RecipeUsage.objects.create(
                recipe=recipe,
                kitchen=kitchen,
                user=request.user,
                servings_used=servings,
                cost=cost,
                waste_cost=waste_cost,
                selling_price=selling_price,
                profit=selling_price - cost - waste_cost,
                notes=request.data.get('notes', ''),
            )
    except Exception as e:
        logger.error(f"Unexpected error using recipe {recipe.id}: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    logger.info(f"{request.user.username} prepared {servings} servings of {recipe.name} in {kitchen.name}")
    create_audit_log(request, 'recipe_use', 'Recipe', recipe.id,
                     changes={'servings': servings, 'kitchen': kitchen.id, 'cost': float(cost)},
                     object_name=recipe.name)
    return Response({
        'usage': RecipeUsageSerializer(usage).data,
        'ingredients_used': ingredients_used,
        'insufficient_ingredients': shortages,
    }, status=status.HTTP_201_CREATED)
