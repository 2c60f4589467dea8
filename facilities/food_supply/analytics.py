"""
Aggregations behind the food supply reports: waste breakdowns, waste
patterns with operational insights, reorder recommendations and the
consumption forecast. Every figure is derived from stored records; with no
data the numbers are zero and trends are "stable".
"""
import logging
from datetime import timedelta
from decimal import Decimal

from django.db.models import Sum, F, Q, DecimalField, ExpressionWrapper
from django.utils import timezone

from .models import FoodSupply, FoodDisposal, KitchenFoodSupply

logger = logging.getLogger('facilities.food_supply')

REORDER_STOCK_THRESHOLD = Decimal('5')
REORDER_TARGET = Decimal('20')
REORDER_DEFAULT_QUANTITY = Decimal('10')
LOW_STOCK_RATIO = Decimal('0.2')
EXPIRING_DAYS = 7
TREND_THRESHOLD = 10
CRITICAL_DEPLETION_DAYS = 14
MAX_DEPLETION_DAYS = 999
MIN_DAILY_RATE = 0.01

REASON_LABELS = dict(FoodDisposal.REASON_CHOICES)

STANDARD_INSIGHTS = [
    {
        'title': 'Inconsistent portion control',
        'description': 'Portion sizes vary between shifts, which inflates ingredient usage and plate waste.',
        'impact': 'medium',
        'recommendation': 'Standardise portion tools and post portion guides at each station.',
    },
    {
        'title': 'Supplier quality variance',
        'description': 'Deliveries of uneven quality shorten usable shelf life.',
        'impact': 'medium',
        'recommendation': 'Track rejected deliveries per vendor and review them in vendor evaluations.',
    },
    {
        'title': 'Staff training opportunities',
        'description': 'Prep and storage practices are a common source of avoidable waste.',
        'impact': 'low',
        'recommendation': 'Run short refresher sessions on prep yield, labelling and storage.',
    },
]


def kitchen_supplies(kitchen):
    """Supplies owned by a kitchen or stocked in it"""
    stocked = KitchenFoodSupply.objects.filter(kitchen=kitchen).values('food_supply')
    return FoodSupply.objects.filter(Q(kitchen=kitchen) | Q(id__in=stocked))


def kitchen_disposals(kitchen):
    """Disposals recorded in a kitchen or against supplies it owns"""
    return FoodDisposal.objects.filter(Q(kitchen=kitchen) | Q(food_supply__kitchen=kitchen))


def line_cost():
    """quantity x supply price, usable in annotate/aggregate"""
    return ExpressionWrapper(
        F('quantity') * F('food_supply__price_per_unit'),
        output_field=DecimalField(max_digits=20, decimal_places=5),
    )


def total_of(queryset, field='quantity'):
    value = queryset.aggregate(total=Sum(field))['total']
    return Decimal(value or 0)


def total_cost_of(queryset):
    value = queryset.aggregate(total=Sum(line_cost()))['total']
    return Decimal(value or 0)


def percentage(part, whole, digits=1):
    if not whole:
        return 0
    return round(float(part) / float(whole) * 100, digits)


def classify_trend(recent, previous):
    """Compare two equal windows: > +10% increasing, < -10% decreasing"""
    recent = float(recent or 0)
    previous = float(previous or 0)
    if previous > 0:
        change = (recent - previous) / previous * 100
        if change > TREND_THRESHOLD:
            return 'increasing'
        if change < -TREND_THRESHOLD:
            return 'decreasing'
        return 'stable'
    if recent > 0:
        return 'increasing'
    return 'stable'


def waste_reasons(disposals):
    """Disposals grouped by reason, largest share first"""
    rows = list(disposals.values('reason').annotate(quantity=Sum('quantity')))
    total = sum(Decimal(row['quantity'] or 0) for row in rows)
    reasons = [
        {
            'reason': row['reason'],
            'label': REASON_LABELS.get(row['reason'], row['reason']),
            'quantity': float(row['quantity'] or 0),
            'percentage': round(percentage(row['quantity'], total)),
        }
        for row in rows
    ]
    reasons.sort(key=lambda item: (-item['percentage'], -item['quantity']))
    return {'reasons': reasons, 'total_waste': float(total)}


def build_waste_insights(category_share, reason_share, total_waste):
    insights = []
    if category_share.get('vegetables', 0) > 25:
        insights.append({
            'title': 'Vegetable over-ordering',
            'description': f"Vegetables account for {category_share['vegetables']:.0f}% of all waste.",
            'impact': 'high',
            'recommendation': 'Order vegetables in smaller, more frequent deliveries matched to the menu.',
        })
    if category_share.get('dairy', 0) > 15:
        insights.append({
            'title': 'Improper storage temperatures',
            'description': f"Dairy accounts for {category_share['dairy']:.0f}% of all waste.",
            'impact': 'high',
            'recommendation': 'Log refrigerator temperatures twice a day and service units that drift.',
        })
    if reason_share.get('expired', 0) > 20:
        insights.append({
            'title': 'Inventory rotation issues',
            'description': f"{reason_share['expired']:.0f}% of waste is expired stock.",
            'impact': 'medium',
            'recommendation': 'Enforce first-in first-out rotation and review expiring items daily.',
        })
    if reason_share.get('quality_issues', 0) > 15:
        insights.append({
            'title': 'Quality control gaps',
            'description': f"{reason_share['quality_issues']:.0f}% of waste is due to quality issues.",
            'impact': 'medium',
            'recommendation': 'Inspect deliveries on arrival and reject items that fail checks.',
        })
    if reason_share.get('overproduction', 0) > 10:
        insights.append({
            'title': 'Batch size inefficiency',
            'description': f"{reason_share['overproduction']:.0f}% of waste comes from overproduction.",
            'impact': 'medium',
            'recommendation': 'Size batches from recent recipe usage instead of fixed quantities.',
        })
    if reason_share.get('damaged', 0) > 5:
        insights.append({
            'title': 'Handling procedures',
            'description': f"{reason_share['damaged']:.0f}% of waste is damaged stock.",
            'impact': 'low',
            'recommendation': 'Review receiving and shelving procedures for fragile goods.',
        })
    if total_waste > 0:
        insights.append({
            'title': 'Menu planning gaps',
            'description': 'Some stock is wasted before the menu uses it.',
            'impact': 'low',
            'recommendation': 'Plan specials around items close to expiry.',
        })

    titles = {insight['title'] for insight in insights}
    for standard in STANDARD_INSIGHTS:
        if len(insights) >= 3:
            break
        if standard['title'] not in titles:
            insights.append(dict(standard))
    return insights


def waste_patterns(supplies, disposals, now=None):
    """
    Waste per category with a 30 day trend, plus insights.

    supplies and disposals are querysets already scoped by the caller
    (e.g. to one kitchen).
    """
    now = now or timezone.now()
    recent_start = now - timedelta(days=30)
    previous_start = now - timedelta(days=60)

    stock = {
        row['category']: Decimal(row['quantity'] or 0)
        for row in supplies.values('category').annotate(quantity=Sum('quantity'))
    }
    wasted = {
        row['food_supply__category']: Decimal(row['quantity'] or 0)
        for row in disposals.values('food_supply__category').annotate(quantity=Sum('quantity'))
    }
    recent = {
        row['food_supply__category']: row['quantity']
        for row in disposals.filter(created_at__gte=recent_start)
        .values('food_supply__category').annotate(quantity=Sum('quantity'))
    }
    previous = {
        row['food_supply__category']: row['quantity']
        for row in disposals.filter(created_at__gte=previous_start, created_at__lt=recent_start)
        .values('food_supply__category').annotate(quantity=Sum('quantity'))
    }
    total_waste = sum(wasted.values(), Decimal('0'))

    categories = []
    for category in sorted(set(stock) | set(wasted)):
        categories.append({
            'category': category,
            'quantity': float(stock.get(category, 0)),
            'wasted': float(wasted.get(category, 0)),
            'waste_percentage': percentage(wasted.get(category, 0), total_waste),
            'trend': classify_trend(recent.get(category), previous.get(category)),
        })
    categories.sort(key=lambda item: (-item['waste_percentage'], item['category']))

    reason_data = waste_reasons(disposals)
    category_share = {item['category']: item['waste_percentage'] for item in categories}
    reason_share = {
        item['reason']: percentage(item['quantity'], reason_data['total_waste'])
        for item in reason_data['reasons']
    }

    return {
        'categories': categories,
        'reasons': reason_data['reasons'],
        'total_waste': float(total_waste),
        'insights': build_waste_insights(category_share, reason_share, total_waste),
    }


def recommended_order_quantity(stock):
    if stock < REORDER_STOCK_THRESHOLD:
        return REORDER_TARGET - stock
    return REORDER_DEFAULT_QUANTITY


def order_recommendations(kitchen=None, today=None):
    """Reorder suggestions for every supply, or every stock row of a kitchen"""
    today = today or timezone.localdate()
    if kitchen is not None:
        rows = [
            (row.food_supply, row.quantity, row.expiration_date)
            for row in KitchenFoodSupply.objects.filter(kitchen=kitchen).select_related('food_supply')
        ]
    else:
        rows = [(supply, supply.quantity, supply.expiration_date) for supply in FoodSupply.objects.all()]

    if not rows:
        return {'recommendations': [], 'average_stock': 0, 'low_stock_count': 0, 'expiring_count': 0}

    average_stock = sum((stock for _, stock, _ in rows), Decimal('0')) / len(rows)
    recommendations = []
    for supply, stock, expiration_date in rows:
        days_left = (expiration_date - today).days
        quantity = recommended_order_quantity(stock)
        recommendations.append({
            'food_supply': supply.id,
            'name': supply.name,
            'category': supply.category,
            'unit': supply.unit,
            'current_stock': float(stock),
            'recommended_quantity': float(quantity),
            'estimated_cost': float(quantity * supply.price_per_unit),
            'is_low_stock': stock < average_stock * LOW_STOCK_RATIO,
            'is_expiring': 0 <= days_left <= EXPIRING_DAYS,
            'is_expired': days_left < 0,
            'days_until_expiration': days_left,
        })
    recommendations.sort(key=lambda item: (not item['is_low_stock'], not item['is_expiring'], item['name']))
    return {
        'recommendations': recommendations,
        'average_stock': round(float(average_stock), 3),
        'low_stock_count': sum(1 for item in recommendations if item['is_low_stock']),
        'expiring_count': sum(1 for item in recommendations if item['is_expiring']),
    }


def consumption_forecast(supplies, consumptions, usages, disposals, lookback_days=30, forecast_days=7,
                         kitchen=None, now=None):
    """
    Project demand from the look-back window.

    consumptions already include the per-ingredient rows written by recipe
    use, so direct and recipe consumption are both counted once.
    """
    now = now or timezone.now()
    since = now - timedelta(days=lookback_days)
    consumptions = consumptions.filter(created_at__gte=since)
    usages = usages.filter(created_at__gte=since)
    disposals = disposals.filter(created_at__gte=since)

    consumed = {
        row['food_supply']: Decimal(row['quantity'] or 0)
        for row in consumptions.values('food_supply').annotate(quantity=Sum('quantity'))
    }
    wasted = {
        row['food_supply']: Decimal(row['quantity'] or 0)
        for row in disposals.values('food_supply').annotate(quantity=Sum('quantity'))
    }
    if kitchen is not None:
        stock_by_supply = {
            row.food_supply_id: row.quantity
            for row in KitchenFoodSupply.objects.filter(kitchen=kitchen)
        }
    else:
        stock_by_supply = {
            row['food_supply']: Decimal(row['quantity'] or 0)
            for row in KitchenFoodSupply.objects.values('food_supply').annotate(quantity=Sum('quantity'))
        }

    items = []
    for supply in supplies:
        used = consumed.get(supply.id, Decimal('0'))
        waste = wasted.get(supply.id, Decimal('0'))
        if kitchen is not None:
            stock = stock_by_supply.get(supply.id, supply.quantity if supply.kitchen_id == kitchen.id else Decimal('0'))
        else:
            stock = supply.quantity + stock_by_supply.get(supply.id, Decimal('0'))

        daily_rate = float(used) / lookback_days if lookback_days else 0
        if used > 0:
            daily_rate = max(daily_rate, MIN_DAILY_RATE)
        demand = daily_rate * forecast_days
        if used > 0:
            demand = max(demand, 1)
        if daily_rate > 0:
            depletion = min(float(stock) / daily_rate, MAX_DEPLETION_DAYS)
        else:
            depletion = MAX_DEPLETION_DAYS
        suggested = max(demand - float(stock), 0)

        items.append({
            'food_supply': supply.id,
            'name': supply.name,
            'category': supply.category,
            'unit': supply.unit,
            'current_stock': float(stock),
            'daily_rate': round(daily_rate, 3),
            'forecast_demand': round(demand, 2),
            'days_until_depletion': round(depletion, 1),
            'suggested_order': round(suggested, 2),
            'estimated_cost': round(suggested * float(supply.price_per_unit), 2),
            'waste_percentage': percentage(waste, used + waste),
        })
    items.sort(key=lambda item: (item['days_until_depletion'], item['name']))

    recipes = []
    for row in usages.values('recipe', 'recipe__name').annotate(servings=Sum('servings_used'), cost=Sum('cost')):
        servings = row['servings'] or 0
        cost_per_use = float(row['cost'] or 0) / servings if servings else 0
        forecast_uses = servings / lookback_days * forecast_days if lookback_days else 0
        recipes.append({
            'recipe': row['recipe'],
            'name': row['recipe__name'],
            'servings_used': servings,
            'forecast_uses': round(forecast_uses, 2),
            'cost_per_use': round(cost_per_use, 2),
            'forecast_cost': round(forecast_uses * cost_per_use, 2),
        })
    recipes.sort(key=lambda item: -item['forecast_cost'])

    critical = [
        item for item in items
        if item['daily_rate'] > 0 and item['days_until_depletion'] < CRITICAL_DEPLETION_DAYS
    ]
    waste_cost = total_of(disposals, 'cost')
    return {
        'items': items,
        'critical_items': critical,
        'recipes': recipes,
        'waste_by_reason': waste_reasons(disposals)['reasons'],
        'totals': {
            'forecast_order_cost': round(sum(item['estimated_cost'] for item in items), 2),
            'forecast_recipe_cost': round(sum(item['forecast_cost'] for item in recipes), 2),
            'waste_cost': float(waste_cost),
            'critical_count': len(critical),
        },
        'metadata': {
            'lookback_days': lookback_days,
            'forecast_days': forecast_days,
            'kitchen': kitchen.id if kitchen is not None else None,
            'generated_at': now.isoformat(),
        },
    }
