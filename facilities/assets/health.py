"""
Asset health analytics: health score, maintenance predictions,
lifecycle timeline and total cost of ownership.

All functions take an asset plus optional pre-fetched related rows and a
reference date, so they can be exercised without hitting the API.
"""
from collections import Counter
from datetime import datetime, timedelta, time as dt_time

from django.conf import settings
from django.utils import timezone

LIFESPAN_MONTHS = {
    'FURNITURE': 120,
    'ELECTRONICS': 36,
    'EQUIPMENT': 60,
}
DEFAULT_LIFESPAN_MONTHS = 60

HEALTH_WEIGHTS = {
    'age': 0.25,
    'maintenance': 0.30,
    'usage': 0.20,
    'condition': 0.25,
}

CONDITION_BASE = {
    'DISPOSED': 0,
    'CRITICAL': 10,
    'DAMAGED': 30,
    'MAINTENANCE': 50,
    'IN_TRANSIT': 70,
    'ACTIVE': 90,
    'LIKE_NEW': 100,
}

# (months of age before routine service, confidence)
ROUTINE_MAINTENANCE = {
    'ELECTRONICS': (12, 90),
    'EQUIPMENT': (6, 85),
    'FURNITURE': (24, 80),
}

TICKET_COST_ESTIMATES = {
    'CRITICAL': 1000,
    'HIGH': 500,
    'MEDIUM': 250,
    'LOW': 100,
}

ANNUAL_DEPRECIATION_RATES = {
    'ELECTRONICS': 0.25,
    'FURNITURE': 0.05,
    'EQUIPMENT': 0.15,
}
DEFAULT_DEPRECIATION_RATE = 0.10

ELECTRONICS_MONTHLY_OPERATING_RATE = 0.02
ELECTRONICS_MONTHLY_OPERATING_FLAT = 20

OPEN_TICKET_STATUSES = ('OPEN', 'IN_PROGRESS')
CLOSED_TICKET_STATUSES = ('RESOLVED', 'CLOSED')


def clamp(value, low=0, high=100):
    return max(low, min(high, value))


def months_between(start, end):
    """Whole calendar months from start to end, never negative"""
    if start is None or end is None:
        return 0
    months = (end.year - start.year) * 12 + (end.month - start.month)
    return max(0, months)


def get_lifespan_months(asset_type):
    return LIFESPAN_MONTHS.get(asset_type, DEFAULT_LIFESPAN_MONTHS)


def get_asset_start_date(asset):
    if asset.purchase_date:
        return asset.purchase_date
    if asset.created_at:
        return timezone.localdate(asset.created_at) if timezone.is_aware(asset.created_at) else asset.created_at.date()
    return timezone.localdate()


def _as_datetime(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        if timezone.is_naive(value):
            return timezone.make_aware(value)
        return value
    return timezone.make_aware(datetime.combine(value, dt_time.min))


def _related(asset, tickets, movements, history):
    if tickets is None:
        tickets = list(asset.tickets.all())
    if movements is None:
        movements = list(asset.movements.all())
    if history is None:
        history = list(asset.history.all())
    return tickets, movements, history


def _status_changes(history):
    return [entry for entry in history if entry.action == 'STATUS_CHANGED']


def get_health_rating(score):
    if score >= 80:
        return 'excellent'
    if score >= 60:
        return 'good'
    if score >= 40:
        return 'fair'
    return 'poor'


def calculate_age_score(asset, today):
    age_months = months_between(get_asset_start_date(asset), today)
    lifespan = get_lifespan_months(asset.type)
    return clamp(100 - (age_months / lifespan) * 100), age_months, lifespan


def calculate_maintenance_score(tickets):
    if not tickets:
        return 100
    closed = sum(1 for t in tickets if t.status in CLOSED_TICKET_STATUSES)
    score = closed / len(tickets) * 100
    unresolved_critical = sum(
        1 for t in tickets if t.priority == 'CRITICAL' and t.status not in CLOSED_TICKET_STATUSES
    )
    score -= 20 * unresolved_critical
    return clamp(score)


def calculate_usage_score(movements, now):
    recent_cutoff = now - timedelta(days=90)
    recent = sum(1 for m in movements if m.moved_at and m.moved_at >= recent_cutoff)
    return clamp(100 - 5 * len(movements) - 10 * recent)


def calculate_condition_score(asset, tickets, history, now):
    base = CONDITION_BASE.get(asset.status, 90)
    score = base

    six_months_ago = now - timedelta(days=182)
    three_months_ago = now - timedelta(days=90)
    score -= 5 * sum(1 for t in tickets if t.created_at and t.created_at >= six_months_ago)

    changes = _status_changes(history)
    recent_maintenance = sum(
        1 for entry in changes
        if entry.details.get('to_status') == 'MAINTENANCE' and entry.created_at >= three_months_ago
    )
    score -= 10 * recent_maintenance

    repairs = sum(
        1 for entry in changes
        if entry.details.get('from_status') == 'MAINTENANCE' and entry.details.get('to_status') == 'ACTIVE'
    )
    score += 5 * repairs
    if asset.status in ('ACTIVE', 'LIKE_NEW'):
        score = min(score, base)
    return clamp(score)


def calculate_health_score(asset, tickets=None, movements=None, history=None, now=None):
    """Weighted 0-100 health score with per-factor breakdown"""
    tickets, movements, history = _related(asset, tickets, movements, history)
    now = now or timezone.now()
    today = timezone.localdate(now) if timezone.is_aware(now) else now.date()

    age_score, age_months, lifespan = calculate_age_score(asset, today)
    raw = {
        'age': age_score,
        'maintenance': calculate_maintenance_score(tickets),
        'usage': calculate_usage_score(movements, now),
        'condition': calculate_condition_score(asset, tickets, history, now),
    }
    overall = round(sum(HEALTH_WEIGHTS[name] * value for name, value in raw.items()))
    factors = {name: round(value) for name, value in raw.items()}
    return {
        'asset_id': asset.asset_id,
        'overall_score': overall,
        'rating': get_health_rating(overall),
        'factors': factors,
        'age_in_months': age_months,
        'lifespan_months': lifespan,
        'ticket_count': len(tickets),
        'movement_count': len(movements),
    }


def predict_maintenance(asset, tickets=None, now=None):
    """Upcoming maintenance needs sorted by due date"""
    if tickets is None:
        tickets = list(asset.tickets.all())
    now = now or timezone.now()
    today = timezone.localdate(now) if timezone.is_aware(now) else now.date()
    age_months = months_between(get_asset_start_date(asset), today)
    predictions = []

    routine = ROUTINE_MAINTENANCE.get(asset.type)
    if routine and age_months >= routine[0]:
        predictions.append({
            'type': 'ROUTINE',
            'title': 'Routine maintenance',
            'description': f"{asset.get_type_display()} assets are serviced every {routine[0]} months",
            'due_date': (today + timedelta(days=30)).isoformat(),
            'confidence': routine[1],
        })

    title_counts = Counter(t.title.strip().lower() for t in tickets if t.title)
    for title, count in sorted(title_counts.items()):
        if count >= 2:
            predictions.append({
                'type': 'PREVENTIVE',
                'title': 'Recurring issue',
                'description': f"'{title}' has been reported {count} times",
                'due_date': (today + timedelta(days=30)).isoformat(),
                'confidence': 75,
            })

    urgent_open = [
        t for t in tickets
        if t.priority in ('CRITICAL', 'HIGH') and t.status in OPEN_TICKET_STATUSES
    ]
    if urgent_open or asset.status in ('CRITICAL', 'DAMAGED'):
        if asset.status == 'CRITICAL':
            confidence = 99
        elif asset.status == 'DAMAGED':
            confidence = 90
        else:
            confidence = 95
        predictions.append({
            'type': 'CRITICAL',
            'title': 'Immediate attention required',
            'description': f"{len(urgent_open)} urgent open ticket(s), status {asset.status}",
            'due_date': (today + timedelta(days=3)).isoformat(),
            'confidence': confidence,
        })

    lifespan = get_lifespan_months(asset.type)
    if age_months > 0.8 * lifespan:
        end_of_life = get_asset_start_date(asset) + timedelta(days=lifespan * 30)
        predictions.append({
            'type': 'PREVENTIVE',
            'title': 'Approaching end of life',
            'description': f"Asset is {age_months} months old of an expected {lifespan}",
            'due_date': max(end_of_life, today).isoformat(),
            'confidence': 70,
        })

    predictions.sort(key=lambda p: p['due_date'])
    return predictions


def _status_change_event_type(details):
    from_status = details.get('from_status')
    to_status = details.get('to_status')
    if to_status == 'MAINTENANCE':
        return 'MAINTENANCE'
    if to_status in ('DAMAGED', 'CRITICAL'):
        return 'ISSUE'
    if from_status == 'MAINTENANCE' and to_status == 'ACTIVE':
        return 'REFURBISHMENT'
    return 'STATUS_CHANGE'


def build_lifecycle_events(asset, tickets=None, movements=None, history=None):
    """Chronological lifecycle timeline"""
    tickets, movements, history = _related(asset, tickets, movements, history)
    events = [{
        'type': 'REGISTRATION',
        'date': _as_datetime(asset.created_at),
        'title': 'Asset registered',
        'description': f"{asset.name} registered as {asset.asset_id}",
    }]

    for movement in movements:
        events.append({
            'type': 'MOVEMENT',
            'date': _as_datetime(movement.moved_at),
            'title': 'Asset moved',
            'description': f"Moved from floor {movement.from_floor or '-'}, room {movement.from_room or '-'} "
                           f"to floor {movement.to_floor}, room {movement.to_room}",
        })

    for ticket in tickets:
        events.append({
            'type': 'REPAIR' if ticket.priority in ('CRITICAL', 'HIGH') else 'MAINTENANCE',
            'date': _as_datetime(ticket.created_at),
            'title': ticket.title,
            'description': f"Ticket {ticket.display_id} ({ticket.priority})",
        })
        if ticket.resolved_at:
            events.append({
                'type': 'RESOLUTION',
                'date': _as_datetime(ticket.resolved_at),
                'title': f"Resolved: {ticket.title}",
                'description': f"Ticket {ticket.display_id} resolved",
            })

    for entry in history:
        if entry.action == 'UPDATED':
            changed = ', '.join(sorted((entry.details.get('changed_fields') or {}).keys()))
            events.append({
                'type': 'INSPECTION',
                'date': _as_datetime(entry.created_at),
                'title': 'Asset details updated',
                'description': f"Updated fields: {changed}" if changed else 'Asset details updated',
            })
        elif entry.action == 'STATUS_CHANGED':
            events.append({
                'type': _status_change_event_type(entry.details),
                'date': _as_datetime(entry.created_at),
                'title': 'Status changed',
                'description': f"{entry.details.get('from_status')} -> {entry.details.get('to_status')}",
            })

    if asset.disposed_at:
        events.append({
            'type': 'DISPOSAL',
            'date': _as_datetime(asset.disposed_at),
            'title': 'Asset disposed',
            'description': 'Asset removed from service',
        })

    events.sort(key=lambda e: e['date'])
    for event in events:
        event['date'] = event['date'].isoformat()
    return events


def calculate_tco(asset, tickets=None, now=None):
    """Total cost of ownership breakdown"""
    if tickets is None:
        tickets = list(asset.tickets.all())
    now = now or timezone.now()
    today = timezone.localdate(now) if timezone.is_aware(now) else now.date()
    age_months = months_between(get_asset_start_date(asset), today)
    amount = float(asset.purchase_amount or 0)

    maintenance_costs = sum(TICKET_COST_ESTIMATES.get(t.priority, 100) for t in tickets)

    rate = ANNUAL_DEPRECIATION_RATES.get(asset.type, DEFAULT_DEPRECIATION_RATE)
    depreciation = min(amount * rate / 12 * age_months, amount)

    operational_costs = 0.0
    if asset.type == 'ELECTRONICS':
        if amount:
            operational_costs = amount * ELECTRONICS_MONTHLY_OPERATING_RATE * age_months
        else:
            operational_costs = ELECTRONICS_MONTHLY_OPERATING_FLAT * age_months

    total_cost = amount + maintenance_costs + operational_costs
    return {
        'asset_id': asset.asset_id,
        'initial_cost': round(amount, 2),
        'maintenance_costs': round(maintenance_costs, 2),
        'operational_costs': round(operational_costs, 2),
        'depreciation': round(depreciation, 2),
        'current_value': round(amount - depreciation, 2),
        'total_cost': round(total_cost, 2),
        'age_in_months': age_months,
        'annual_depreciation_rate': rate,
        'ticket_count': len(tickets),
        'currency': settings.DEFAULT_CURRENCY,
    }
