"""
Collects records for the AI analysis endpoints and turns the model output
into insight sections, recommendations, notifications and dashboard stats.
"""
import logging
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db.models import Count, Sum, Q
from django.utils import timezone

from facilities.assets.models import Asset, AssetHistory
from facilities.food_supply.analytics import total_cost_of, total_of, percentage
from facilities.food_supply.models import FoodSupply, FoodConsumption, FoodDisposal
from facilities.tickets.models import Ticket
from facilities.tickets.views import visible_tickets
from facilities.vehicles.models import Vehicle, VehicleRental, VehicleMaintenance
from . import ml

logger = logging.getLogger('facilities.insights')

BUDGET_HORIZONS = [1, 3, 6]
HISTORY_MONTHS = 12
TOP_OPTIMIZATIONS = 5
OVERPURCHASE_WINDOW_DAYS = 30
DASHBOARD_LOW_STOCK_QUANTITY = 10
NOTIFICATION_EXPIRY_DAYS = 7
OPEN_TICKET_STATUSES = ['OPEN', 'IN_PROGRESS']

SECTION_CATEGORIES = {
    'predictions': 'consumption_prediction',
    'optimizations': 'cost_optimization',
    'anomalies': 'consumption_anomaly',
    'kitchen_anomalies': 'kitchen_consumption',
    'asset_disposals': 'asset_disposal',
    'location_overpurchasing': 'asset_overpurchasing',
}

SECTION_TEXT = {
    'predictions': ('Consumption Predictions', 'ML-based predictions for future consumption patterns'),
    'optimizations': ('Smart Optimization Opportunities', 'Data-driven recommendations for quantity optimization'),
    'anomalies': ('Detected Anomalies', 'Unusual patterns detected in your consumption data'),
    'kitchen_anomalies': ('Kitchen Consumption Anomalies', 'Kitchens with unusually high consumption patterns'),
    'asset_disposals': ('Recent Asset Disposals', 'Recently disposed assets that may require attention'),
    'location_overpurchasing': ('Location Overpurchasing', 'Locations with unusually high asset acquisition rates'),
}

SEVERITY_ORDER = {'high': 0, 'medium': 1, 'low': 2, 'info': 3}


def money(amount):
    return f"{settings.DEFAULT_CURRENCY} {float(amount):,.2f}"


def as_percent(fraction):
    return int(round(float(fraction) * 100))


def month_starts(today, count=HISTORY_MONTHS):
    """First day of the last `count` months, oldest first"""
    current = today.replace(day=1)
    return [ml.add_months(current, -offset) for offset in range(count - 1, -1, -1)]


def monthly_food_costs(consumptions, months):
    totals = {(month.year, month.month): Decimal('0') for month in months}
    for consumption in consumptions:
        moment = timezone.localtime(consumption.created_at)
        key = (moment.year, moment.month)
        if key in totals:
            totals[key] += consumption.quantity * consumption.food_supply.price_per_unit
    return [float(totals[(month.year, month.month)]) for month in months]


def monthly_rental_costs(rentals, months, now):
    """Sum of vehicle rental amounts for every rental overlapping each month"""
    amounts = []
    for month in months:
        next_month = ml.add_months(month, 1)
        total = Decimal('0')
        for rental in rentals:
            start = timezone.localtime(rental.start_date).date()
            end = rental.ended_at or rental.end_date
            if rental.status == 'ACTIVE' and end < now:
                end = now
            end = timezone.localtime(end).date()
            if start < next_month and end >= month:
                total += rental.vehicle.rental_amount
        amounts.append(float(total))
    return amounts


def build_ml_analysis(now=None):
    """Model output for the last twelve months of records"""
    now = now or timezone.now()
    today = timezone.localdate(now)
    year_ago = now - timedelta(days=365)

    consumptions = list(
        FoodConsumption.objects.filter(created_at__gte=year_ago)
        .select_related('food_supply', 'kitchen').order_by('created_at', 'id')
    )
    points_by_supply = {}
    for consumption in consumptions:
        points_by_supply.setdefault(consumption.food_supply_id, []).append(
            (consumption.created_at, consumption.quantity)
        )

    supplies = list(FoodSupply.objects.all())
    supply_names = {supply.id: supply.name for supply in supplies}

    predictions = [
        {
            'supply_id': supply_id,
            'supply_name': supply_names.get(supply_id, ''),
            'prediction': ml.predict_consumption(points),
        }
        for supply_id, points in points_by_supply.items()
    ]

    optimizations = [
        {
            'supply_id': supply.id,
            'supply_name': supply.name,
            'category': supply.category,
            'recommendation': ml.optimization_recommendation(points_by_supply.get(supply.id, []), supply.price_per_unit),
        }
        for supply in supplies
    ]

    months = month_starts(today)
    food_costs = monthly_food_costs(consumptions, months)
    rentals = list(
        VehicleRental.objects.exclude(status='CANCELLED')
        .filter(Q(status='ACTIVE') | Q(end_date__gte=year_ago))
        .select_related('vehicle')
    )
    rental_costs = monthly_rental_costs(rentals, months, now)
    current_rental = Vehicle.objects.aggregate(total=Sum('rental_amount'))['total'] or Decimal('0')

    budget = []
    for horizon in BUDGET_HORIZONS:
        food = ml.budget_forecast(food_costs, months, horizon)
        rental = ml.rental_forecast(rental_costs, months, current_rental, horizon, now=timezone.localtime(now))
        budget.append({
            'months': horizon,
            'prediction': ml.combine_forecasts(food, rental),
            'category_predictions': {'food': food, 'vehicle_rental': rental},
        })

    anomalies = []
    for supply_id, points in points_by_supply.items():
        result = ml.consumption_anomaly([quantity for _, quantity in points])
        if result['is_anomaly']:
            anomalies.append({
                'supply_id': supply_id,
                'supply_name': supply_names.get(supply_id, ''),
                'anomaly_result': result,
            })

    logger.info(f"ML analysis built from {len(consumptions)} consumptions and {len(supplies)} supplies")
    return {
        'consumption_predictions': predictions,
        'optimization_recommendations': optimizations,
        'budget_predictions': budget,
        'anomaly_detections': anomalies,
    }


def find_kitchen_anomalies(now=None):
    now = now or timezone.now()
    rows = [
        {
            'kitchen_id': consumption.kitchen_id,
            'kitchen_name': consumption.kitchen.name,
            'floor_number': consumption.kitchen.floor_number,
            'supply_id': consumption.food_supply_id,
            'supply_name': consumption.food_supply.name,
            'unit': consumption.food_supply.unit,
            'quantity': consumption.quantity,
        }
        for consumption in FoodConsumption.objects.filter(created_at__gte=now - timedelta(days=365))
        .select_related('kitchen', 'food_supply')
    ]
    return ml.kitchen_anomalies(rows)


def find_asset_disposals(now=None):
    now = now or timezone.now()
    disposals = []
    for history in AssetHistory.objects.filter(action='DISPOSED', created_at__gte=now - timedelta(days=365)) \
            .select_related('asset'):
        asset = history.asset
        disposals.append({
            'asset_id': asset.id,
            'asset_name': asset.name,
            'disposed_at': (asset.disposed_at or history.created_at).isoformat(),
            'floor_number': asset.floor_number or 'Unknown',
            'room_number': asset.room_number or 'Unknown',
            'purchase_amount': float(asset.purchase_amount or 0),
            'severity': ml.disposal_severity(asset.purchase_amount),
        })
    return disposals


def find_location_overpurchasing(now=None):
    now = now or timezone.now()
    assets = list(
        Asset.objects.exclude(status='DISPOSED')
        .values('floor_number', 'room_number', 'purchase_amount', 'created_at')
    )
    return ml.location_overpurchasing(assets, now - timedelta(days=OVERPURCHASE_WINDOW_DAYS))


def _section(key, items):
    title, description = SECTION_TEXT[key]
    return {'title': title, 'description': description, 'items': items}


def build_insights(analysis, kitchen_anomalies, asset_disposals, overpurchasing):
    """Readable insight sections from the model output"""
    key_points = []
    optimizations = analysis['optimization_recommendations']
    budget = analysis['budget_predictions']
    anomalies = analysis['anomaly_detections']

    if optimizations:
        yearly = sum(item['recommendation']['potential_savings'] for item in optimizations) * 12
        key_points.append(f"Potential annual savings of {money(yearly)} identified through quantity optimization")
    next_month = next((row for row in budget if row['months'] == 1), None)
    if next_month:
        key_points.append(
            f"Next month's budget is predicted to be {money(next_month['prediction']['predicted_amount'])} "
            f"with {as_percent(next_month['prediction']['confidence'])}% confidence"
        )
    if anomalies:
        key_points.append(f"{len(anomalies)} anomalies detected in your consumption patterns that require attention")
    if not key_points:
        key_points.append('Consumption patterns are stable with no significant anomalies')

    prediction_items = [
        {
            'id': row['supply_id'],
            'name': row['supply_name'],
            'predicted_quantity': round(row['prediction']['predicted_quantity'], 2),
            'confidence': as_percent(row['prediction']['confidence']),
            'trend': row['prediction']['trend'],
            'seasonality_factor': round(row['prediction']['seasonality_factor'], 2),
        }
        for row in analysis['consumption_predictions']
    ]

    ranked = sorted(
        (row for row in optimizations if row['recommendation']['potential_savings'] > 0),
        key=lambda row: -row['recommendation']['potential_savings'],
    )[:TOP_OPTIMIZATIONS]
    optimization_items = []
    for row in ranked:
        recommendation = row['recommendation']
        yearly = recommendation['potential_savings'] * 12
        optimization_items.append({
            'id': row['supply_id'],
            'name': row['supply_name'],
            'food_category': row['category'],
            'current_usage': round(recommendation['average_quantity'], 3),
            'recommended_usage': round(recommendation['recommended_quantity'], 3),
            'monthly_savings': round(recommendation['potential_savings'], 2),
            'yearly_savings': round(yearly, 2),
            'confidence': as_percent(recommendation['confidence']),
            'difficulty': recommendation['implementation_difficulty'],
            'reason_code': recommendation['reason_code'],
            'reason': ml.REASON_DESCRIPTIONS.get(
                recommendation['reason_code'], 'Optimization opportunity based on consumption analysis'
            ),
            'severity': 'medium' if yearly > 1000 else 'low',
        })

    anomaly_items = [
        {
            'id': row['supply_id'],
            'name': row['supply_name'],
            'severity': row['anomaly_result']['severity'],
            'score': round(row['anomaly_result']['score'], 2),
            'causes': row['anomaly_result']['possible_causes'],
        }
        for row in anomalies
    ]

    budget_rows = [
        {
            'months': row['months'],
            'amount': round(row['prediction']['predicted_amount'], 2),
            'confidence': as_percent(row['prediction']['confidence']),
            'upper_bound': round(row['prediction']['upper_bound'], 2),
            'lower_bound': round(row['prediction']['lower_bound'], 2),
            'risk_factor': as_percent(row['prediction']['risk_factor']),
        }
        for row in budget
    ]

    kitchen_items = []
    for anomaly in kitchen_anomalies:
        kitchen_items.append({
            'id': anomaly['kitchen_id'],
            'name': anomaly['kitchen_name'],
            'floor_number': anomaly['floor_number'],
            'severity': anomaly['severity'],
            'anomaly_score': round(anomaly['anomaly_score'], 2),
            'details': [
                {
                    'food_name': detail['food_name'],
                    'avg_consumption': round(detail['avg_consumption'], 3),
                    'kitchen_consumption': round(detail['kitchen_consumption'], 3),
                    'percentage_above_avg': round(detail['percentage_above_avg']),
                    'unit': detail['unit'],
                }
                for detail in anomaly['details']
            ],
        })
        if anomaly['severity'] == 'high':
            key_points.append(
                f'Kitchen "{anomaly["kitchen_name"]}" on Floor {anomaly["floor_number"]} has unusually high '
                f'consumption patterns that require attention'
            )

    disposal_items = []
    for disposal in asset_disposals:
        disposal_items.append({
            'id': disposal['asset_id'],
            'name': disposal['asset_name'],
            'disposed_at': disposal['disposed_at'],
            'floor_number': disposal['floor_number'],
            'room_number': disposal['room_number'],
            'purchase_amount': round(disposal['purchase_amount'], 2),
            'severity': disposal['severity'],
        })
        if disposal['severity'] == 'high':
            key_points.append(
                f'High-value asset "{disposal["asset_name"]}" ({money(disposal["purchase_amount"])}) was disposed '
                f'from Floor {disposal["floor_number"]}, Room {disposal["room_number"]}'
            )

    overpurchasing_items = []
    for location in overpurchasing:
        overpurchasing_items.append(dict(location, total_value=round(location['total_value'], 2)))
        if location['severity'] == 'high':
            key_points.append(
                f"{location['location']} has acquired {location['recent_purchases']} new assets recently, "
                f"suggesting potential overpurchasing"
            )

    return {
        'summary': {
            'title': 'ML Analysis Summary',
            'description': 'Insights based on your historical data',
            'key_points': key_points,
        },
        'predictions': _section('predictions', prediction_items),
        'optimizations': _section('optimizations', optimization_items),
        'anomalies': _section('anomalies', anomaly_items),
        'budget': {
            'title': 'Budget Forecasting',
            'description': 'Budget predictions with confidence intervals',
            'predictions': budget_rows,
        },
        'kitchen_anomalies': _section('kitchen_anomalies', kitchen_items),
        'asset_disposals': _section('asset_disposals', disposal_items),
        'location_overpurchasing': _section('location_overpurchasing', overpurchasing_items),
    }


def filter_insights(insights, category=None, severity=None):
    """Copy of the insights keeping only items of one category and/or severity"""
    category = (category or '').strip().lower()
    severity = (severity or '').strip().lower()
    filtered = dict(insights)
    for key, section_category in SECTION_CATEGORIES.items():
        items = insights[key]['items']
        if category and category != section_category:
            items = []
        if severity:
            items = [item for item in items if item.get('severity') == severity]
        filtered[key] = dict(insights[key], items=items)
    return filtered


def _vehicle_maintenance_checks(now):
    recommendations = []
    rows = VehicleMaintenance.objects.filter(maintenance_date__gte=(now - timedelta(days=365)).date()) \
        .values('vehicle', 'vehicle__make', 'vehicle__model', 'vehicle__plate_number') \
        .annotate(count=Count('id'), cost=Sum('cost'))
    for row in rows:
        label = f'Vehicle "{row["vehicle__make"]} {row["vehicle__model"]}" (Plate: {row["vehicle__plate_number"]})'
        if row['count'] >= 3:
            recommendations.append({
                'category': 'vehicle_rentals',
                'severity': 'high' if row['count'] >= 5 else 'medium',
                'message': f"{label} required {row['count']} maintenance actions in the last year. "
                           f"Consider reviewing for chronic issues.",
            })
        cost = row['cost'] or Decimal('0')
        if cost > 10000:
            recommendations.append({
                'category': 'vehicle_rentals',
                'severity': 'high' if cost > 20000 else 'medium',
                'message': f"{label} incurred {money(cost)} in maintenance costs in the last year. "
                           f"Consider replacement or major overhaul.",
            })
    return recommendations


def _food_checks(now):
    recommendations = []
    today = timezone.localdate(now)
    since = now - timedelta(days=30)

    consumed = total_cost_of(FoodConsumption.objects.filter(created_at__gte=since))
    wasted = total_of(FoodDisposal.objects.filter(created_at__gte=since), 'cost')
    waste_share = percentage(wasted, consumed + wasted)
    if waste_share > 10:
        recommendations.append({
            'category': 'food_supply',
            'severity': 'high' if waste_share > 20 else 'medium',
            'message': f"Waste accounts for {waste_share}% of food spend in the last 30 days ({money(wasted)}). "
                       f"Review storage and portioning practices.",
        })

    expiring = FoodSupply.objects.filter(
        quantity__gt=0, expiration_date__gte=today,
        expiration_date__lte=today + timedelta(days=NOTIFICATION_EXPIRY_DAYS),
    ).count()
    if expiring:
        recommendations.append({
            'category': 'food_supply',
            'severity': 'medium',
            'message': f"{expiring} food supplies expire within {NOTIFICATION_EXPIRY_DAYS} days. "
                       f"Prioritise them in upcoming menus.",
        })

    expired = FoodSupply.objects.filter(quantity__gt=0, expiration_date__lt=today).count()
    if expired:
        recommendations.append({
            'category': 'food_supply',
            'severity': 'high',
            'message': f"{expired} food supplies are past their expiration date and still in stock. "
                       f"Dispose of them and record the waste.",
        })
    return recommendations


def _ticket_checks(now):
    recommendations = []
    open_tickets = Ticket.objects.filter(status__in=OPEN_TICKET_STATUSES)
    critical = open_tickets.filter(priority='CRITICAL').count()
    if critical:
        recommendations.append({
            'category': 'tickets',
            'severity': 'high',
            'message': f"{critical} critical tickets are still open.",
        })
    stale = open_tickets.filter(created_at__lt=now - timedelta(days=7)).count()
    if stale:
        recommendations.append({
            'category': 'tickets',
            'severity': 'medium',
            'message': f"{stale} tickets have been open for more than a week.",
        })
    return recommendations


def build_recommendations(insights, now=None):
    """Flat recommendation list for the alert feed"""
    now = now or timezone.now()
    recommendations = [
        {'category': 'ai_insight', 'severity': 'info', 'message': point}
        for point in insights['summary']['key_points']
    ]

    recommendations += _vehicle_maintenance_checks(now)
    recommendations += _food_checks(now)
    recommendations += _ticket_checks(now)

    for item in insights['anomalies']['items']:
        recommendations.append({
            'category': 'consumption_anomaly',
            'severity': item['severity'],
            'message': f"Unusual consumption detected for {item['name']}: {item['causes'][0]}",
        })
    for item in insights['optimizations']['items'][:3]:
        recommendations.append({
            'category': 'cost_optimization',
            'severity': item['severity'],
            'message': f"Potential savings of {money(item['yearly_savings'])}/year by optimizing {item['name']} usage. "
                       f"{item['reason']}",
        })
    for item in insights['kitchen_anomalies']['items']:
        top = item['details'][0]
        recommendations.append({
            'category': 'kitchen_consumption',
            'severity': item['severity'],
            'message': f'Kitchen "{item["name"]}" on Floor {item["floor_number"]} is consuming '
                       f'{top["percentage_above_avg"]}% more {top["food_name"]} than average.',
        })
    for item in insights['asset_disposals']['items']:
        recommendations.append({
            'category': 'asset_disposal',
            'severity': item['severity'],
            'message': f'Asset "{item["name"]}" worth {money(item["purchase_amount"])} was disposed from '
                       f'Floor {item["floor_number"]}, Room {item["room_number"]}.',
        })
    for item in insights['location_overpurchasing']['items']:
        recommendations.append({
            'category': 'asset_overpurchasing',
            'severity': item['severity'],
            'message': f"{item['location']} has acquired {item['recent_purchases']} new assets recently, "
                       f"totaling {money(item['total_value'])}.",
        })

    recommendations.sort(key=lambda item: SEVERITY_ORDER.get(item['severity'], len(SEVERITY_ORDER)))
    return recommendations


def severity_counts(items):
    counts = {severity: 0 for severity in SEVERITY_ORDER}
    for item in items:
        counts[item['severity']] = counts.get(item['severity'], 0) + 1
    return counts


def _notification(notification_id, kind, severity, title, message, timestamp, entity_type, entity_id, action_url):
    return {
        'id': notification_id,
        'type': kind,
        'severity': severity,
        'title': title,
        'message': message,
        'timestamp': timestamp.isoformat(),
        'related_entity_type': entity_type,
        'related_entity_id': entity_id,
        'action_required': severity == 'high',
        'action_url': action_url,
    }


def build_notifications(now=None):
    """Notification feed derived from the current state of the records"""
    now = now or timezone.now()
    today = timezone.localdate(now)
    notifications = []

    stocked = FoodSupply.objects.filter(quantity__gt=0)
    for supply in stocked.filter(expiration_date__lt=today):
        notifications.append(_notification(
            f'food-expired-{supply.id}', 'food_expired', 'high',
            'Food supply expired',
            f"{supply.name} expired on {supply.expiration_date.isoformat()} with "
            f"{supply.quantity} {supply.unit} still in stock.",
            supply.updated_at, 'food_supply', supply.id, f'/food-supply/{supply.id}',
        ))
    expiry_limit = today + timedelta(days=NOTIFICATION_EXPIRY_DAYS)
    for supply in stocked.filter(expiration_date__gte=today, expiration_date__lte=expiry_limit):
        days_left = (supply.expiration_date - today).days
        notifications.append(_notification(
            f'food-expiring-{supply.id}', 'food_expiring', 'high' if days_left <= 2 else 'medium',
            'Food supply expiring soon',
            f"{supply.name} expires in {days_left} days.",
            supply.updated_at, 'food_supply', supply.id, f'/food-supply/{supply.id}',
        ))
    for supply in FoodSupply.objects.filter(quantity__lte=settings.FOOD_SUPPLY_LOW_STOCK_QUANTITY):
        notifications.append(_notification(
            f'food-low-stock-{supply.id}', 'low_stock', 'medium',
            'Low stock',
            f"Only {supply.quantity} {supply.unit} of {supply.name} left.",
            supply.updated_at, 'food_supply', supply.id, f'/food-supply/{supply.id}',
        ))

    for ticket in Ticket.objects.filter(priority='CRITICAL', status__in=OPEN_TICKET_STATUSES):
        notifications.append(_notification(
            f'ticket-critical-{ticket.id}', 'critical_ticket', 'high',
            'Critical ticket open',
            f"{ticket.display_id}: {ticket.title}",
            ticket.created_at, 'ticket', ticket.id, f'/tickets/{ticket.id}',
        ))

    for asset in Asset.objects.filter(status__in=['CRITICAL', 'DAMAGED']):
        notifications.append(_notification(
            f'asset-{asset.status.lower()}-{asset.id}', 'asset_condition',
            'high' if asset.status == 'CRITICAL' else 'medium',
            f"Asset {asset.get_status_display().lower()}",
            f"{asset.name} ({asset.asset_id}) is marked {asset.get_status_display().lower()}.",
            asset.updated_at, 'asset', asset.id, f'/assets/{asset.id}',
        ))

    for rental in VehicleRental.objects.filter(status='ACTIVE', end_date__lt=now).select_related('vehicle', 'user'):
        notifications.append(_notification(
            f'rental-overdue-{rental.id}', 'rental_overdue', 'high',
            'Vehicle rental overdue',
            f"{rental.vehicle} was due back on {timezone.localtime(rental.end_date).date().isoformat()} "
            f"({rental.user.display_name}).",
            rental.end_date, 'vehicle_rental', rental.id, f'/vehicles/{rental.vehicle_id}',
        ))

    notifications.sort(key=lambda item: item['timestamp'], reverse=True)
    notifications.sort(key=lambda item: SEVERITY_ORDER[item['severity']])
    return notifications


def build_dashboard(user, now=None):
    """Headline figures for the dashboard"""
    now = now or timezone.now()
    month_start = timezone.localtime(now).replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    assets = Asset.objects.all()
    active_assets = assets.exclude(status='DISPOSED')
    assets_by_status = {
        row['status']: row['count']
        for row in assets.values('status').annotate(count=Count('id')).order_by('status')
    }

    vehicles_by_status = {
        row['status']: row['count']
        for row in Vehicle.objects.values('status').annotate(count=Count('id')).order_by('status')
    }
    monthly_rental = Vehicle.objects.aggregate(total=Sum('rental_amount'))['total'] or Decimal('0')

    tickets = visible_tickets(user).filter(status__in=OPEN_TICKET_STATUSES)

    return {
        'assets': {
            'total': active_assets.count(),
            'by_status': assets_by_status,
            'total_value': float(total_of(active_assets, 'purchase_amount')),
            'disposed_value': float(total_of(assets.filter(status='DISPOSED'), 'purchase_amount')),
        },
        'food': {
            'total_supplies': FoodSupply.objects.count(),
            'low_stock': FoodSupply.objects.filter(quantity__lte=DASHBOARD_LOW_STOCK_QUANTITY).count(),
            'month_consumption_cost': float(
                total_cost_of(FoodConsumption.objects.filter(created_at__gte=month_start))
            ),
        },
        'vehicles': {
            'total': sum(vehicles_by_status.values()),
            'by_status': vehicles_by_status,
            'active_rentals': VehicleRental.objects.filter(status='ACTIVE').count(),
            'monthly_rental_total': float(monthly_rental),
        },
        'tickets': {
            'open': tickets.count(),
            'critical': tickets.filter(priority='CRITICAL').count(),
        },
        'currency': settings.DEFAULT_CURRENCY,
    }
