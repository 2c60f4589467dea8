"""Per-kitchen consumption, waste and financial reports"""
from datetime import timedelta
from decimal import Decimal

from django.db.models import Sum
from django.db.models.functions import TruncDate, TruncMonth
from django.utils import timezone

from facilities.food_supply.analytics import (
    line_cost, total_of, total_cost_of, percentage, kitchen_disposals,
)
from facilities.food_supply.models import FoodConsumption, RecipeUsage

RECENT_ACTIVITY_LIMIT = 20


def month_start(moment):
    """First instant of the month in the current time zone"""
    if timezone.is_aware(moment):
        moment = timezone.localtime(moment)
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def previous_month_start(moment):
    start = month_start(moment)
    return month_start(start - timedelta(days=1))


def efficiency_score(consumed, wasted, servings):
    """100 - waste / (consumption + waste + recipe servings) x 100, clamped to 0..100"""
    denominator = float(consumed) + float(wasted) + float(servings)
    if denominator <= 0:
        return 100.0
    score = 100 - float(wasted) / denominator * 100
    return round(max(0.0, min(100.0, score)), 1)


def consumption_summary(kitchen, days=30, include_details=False, include_trends=False, now=None):
    now = now or timezone.now()
    since = now - timedelta(days=days)

    consumptions = FoodConsumption.objects.filter(kitchen=kitchen, created_at__gte=since).select_related('food_supply')
    usages = RecipeUsage.objects.filter(kitchen=kitchen, created_at__gte=since)
    disposals = kitchen_disposals(kitchen).filter(created_at__gte=since)

    consumed_quantity = total_of(consumptions)
    consumed_cost = total_cost_of(consumptions)
    direct_quantity = total_of(consumptions.filter(recipe__isnull=True))
    recipe_quantity = consumed_quantity - direct_quantity

    usage_totals = usages.aggregate(
        servings=Sum('servings_used'), cost=Sum('cost'), revenue=Sum('selling_price'),
        waste_cost=Sum('waste_cost'), profit=Sum('profit'),
    )
    servings = usage_totals['servings'] or 0
    revenue = Decimal(usage_totals['revenue'] or 0)
    profit = Decimal(usage_totals['profit'] or 0)

    waste_quantity = total_of(disposals)
    waste_cost = total_of(disposals, 'cost')
    expiration = disposals.filter(reason='expired')
    ingredient = disposals.filter(reason='ingredient_waste')
    ingredient_quantity = total_of(ingredient)

    top_items = [
        {
            'food_supply': row['food_supply'],
            'name': row['food_supply__name'],
            'unit': row['food_supply__unit'],
            'quantity': float(row['quantity'] or 0),
            'cost': float(row['cost'] or 0),
        }
        for row in consumptions.values('food_supply', 'food_supply__name', 'food_supply__unit')
        .annotate(quantity=Sum('quantity'), cost=Sum(line_cost())).order_by('-quantity')[:5]
    ]

    summary = {
        'kitchen': {'id': kitchen.id, 'name': kitchen.name},
        'period_days': days,
        'consumption': {
            'total_quantity': float(consumed_quantity),
            'direct_quantity': float(direct_quantity),
            'recipe_quantity': float(recipe_quantity),
            'total_cost': float(consumed_cost),
            'entries': consumptions.count(),
        },
        'recipes': {
            'servings': servings,
            'cost': float(usage_totals['cost'] or 0),
            'revenue': float(revenue),
            'waste_cost': float(usage_totals['waste_cost'] or 0),
            'profit': float(profit),
            'profit_margin': percentage(profit, revenue),
        },
        'waste': {
            'total_quantity': float(waste_quantity),
            'total_cost': float(waste_cost),
            'expiration_quantity': float(total_of(expiration)),
            'expiration_cost': float(total_of(expiration, 'cost')),
            'ingredient_quantity': float(ingredient_quantity),
            'ingredient_cost': float(total_of(ingredient, 'cost')),
            'waste_percentage': percentage(waste_quantity, consumed_quantity + waste_quantity),
            'ingredient_waste_percentage': percentage(ingredient_quantity, consumed_quantity),
        },
        'efficiency': efficiency_score(consumed_quantity, waste_quantity, servings),
        'top_items': top_items,
    }

    if include_details:
        from facilities.food_supply.serializers import FoodConsumptionSerializer
        summary['details'] = FoodConsumptionSerializer(
            consumptions.select_related('kitchen', 'recipe', 'user')[:100], many=True
        ).data

    if include_trends:
        daily = {}
        for row in consumptions.annotate(day=TruncDate('created_at')).values('day').annotate(
                quantity=Sum('quantity'), cost=Sum(line_cost())).order_by('day'):
            daily[row['day']] = {'quantity': float(row['quantity'] or 0), 'cost': float(row['cost'] or 0), 'waste': 0.0}
        for row in disposals.annotate(day=TruncDate('created_at')).values('day').annotate(
                quantity=Sum('quantity')).order_by('day'):
            entry = daily.setdefault(row['day'], {'quantity': 0.0, 'cost': 0.0, 'waste': 0.0})
            entry['waste'] = float(row['quantity'] or 0)
        summary['trends'] = [
            {'date': day.isoformat(), **values} for day, values in sorted(daily.items())
        ]

    return summary


def _period_metrics(kitchen, start, end):
    consumptions = FoodConsumption.objects.filter(kitchen=kitchen, created_at__gte=start, created_at__lt=end)
    disposals = kitchen_disposals(kitchen).filter(created_at__gte=start, created_at__lt=end)
    usages = RecipeUsage.objects.filter(kitchen=kitchen, created_at__gte=start, created_at__lt=end)
    totals = usages.aggregate(revenue=Sum('selling_price'), cost=Sum('cost'), profit=Sum('profit'))
    revenue = Decimal(totals['revenue'] or 0)
    profit = Decimal(totals['profit'] or 0)
    return {
        'consumption_cost': float(total_cost_of(consumptions)),
        'waste_cost': float(total_of(disposals, 'cost')),
        'recipe_revenue': float(revenue),
        'recipe_cost': float(totals['cost'] or 0),
        'recipe_profit': float(profit),
        'profit_margin': percentage(profit, revenue),
    }


def financial_metrics(kitchen, now=None):
    now = now or timezone.now()
    current_start = month_start(now)
    previous_start = previous_month_start(now)
    current = _period_metrics(kitchen, current_start, now + timedelta(seconds=1))
    previous = _period_metrics(kitchen, previous_start, current_start)

    changes = {}
    for key in ('consumption_cost', 'waste_cost', 'recipe_revenue', 'recipe_profit'):
        if previous[key]:
            changes[key] = round((current[key] - previous[key]) / abs(previous[key]) * 100, 1)
        else:
            changes[key] = None
    return {
        'kitchen': {'id': kitchen.id, 'name': kitchen.name},
        'current_month': {'start': current_start.date().isoformat(), **current},
        'previous_month': {'start': previous_start.date().isoformat(), **previous},
        'change_percentage': changes,
    }


def monthly_consumption(kitchen, months=6, now=None):
    now = now or timezone.now()
    start = month_start(now)
    for _ in range(months - 1):
        start = previous_month_start(start)

    rows = FoodConsumption.objects.filter(kitchen=kitchen, created_at__gte=start).annotate(
        month=TruncMonth('created_at', tzinfo=timezone.get_current_timezone())
    ).values('month').annotate(quantity=Sum('quantity'), cost=Sum(line_cost())).order_by('month')
    by_month = {row['month'].strftime('%Y-%m'): row for row in rows}

    series = []
    cursor = start
    for _ in range(months):
        key = cursor.strftime('%Y-%m')
        row = by_month.get(key)
        series.append({
            'month': key,
            'quantity': float(row['quantity'] or 0) if row else 0.0,
            'cost': float(row['cost'] or 0) if row else 0.0,
        })
        cursor = month_start(cursor + timedelta(days=32))
    return {'kitchen': {'id': kitchen.id, 'name': kitchen.name}, 'months': series}


def recent_activity(kitchen, limit=RECENT_ACTIVITY_LIMIT):
    """Consumptions, disposals and recipe usages merged newest first"""
    events = []
    for row in FoodConsumption.objects.filter(kitchen=kitchen).select_related('food_supply', 'user', 'recipe')[:limit]:
        events.append({
            'type': 'consumption',
            'id': row.id,
            'description': f"Used {row.quantity} {row.food_supply.unit} of {row.food_supply.name}",
            'quantity': float(row.quantity),
            'cost': float(row.quantity * row.food_supply.price_per_unit),
            'recipe': row.recipe.name if row.recipe_id else None,
            'user': row.user.email if row.user_id else None,
            'date': row.created_at,
        })
    for row in kitchen_disposals(kitchen).select_related('food_supply', 'user')[:limit]:
        events.append({
            'type': 'disposal',
            'id': row.id,
            'description': f"Disposed {row.quantity} {row.food_supply.unit} of {row.food_supply.name} ({row.get_reason_display()})",
            'quantity': float(row.quantity),
            'cost': float(row.cost),
            'reason': row.reason,
            'user': row.user.email if row.user_id else None,
            'date': row.created_at,
        })
    for row in RecipeUsage.objects.filter(kitchen=kitchen).select_related('recipe', 'user')[:limit]:
        events.append({
            'type': 'recipe_usage',
            'id': row.id,
            'description': f"Prepared {row.servings_used} servings of {row.recipe.name}",
            'quantity': row.servings_used,
            'cost': float(row.cost),
            'profit': float(row.profit),
            'user': row.user.email if row.user_id else None,
            'date': row.created_at,
        })
    events.sort(key=lambda event: event['date'], reverse=True)
    events = events[:limit]
    for event in events:
        event['date'] = event['date'].isoformat()
    return events
