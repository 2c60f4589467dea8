"""Ticket identifiers and status transition bookkeeping"""
from django.utils import timezone

from facilities.core.utils import next_daily_sequence
from .models import Ticket, TicketHistory

VALID_STATUSES = [choice[0] for choice in Ticket.STATUS_CHOICES]
VALID_PRIORITIES = [choice[0] for choice in Ticket.PRIORITY_CHOICES]


def generate_ticket_identifiers():
    """TKT-YYYYMMDD-NNNN display id and its dash-free barcode"""
    display_id = next_daily_sequence(Ticket, 'TKT')
    return display_id, display_id.replace('-', '')


def normalize_status(value, default='OPEN'):
    value = str(value or '').strip().upper()
    return value if value in VALID_STATUSES else default


def normalize_priority(value, default='MEDIUM'):
    value = str(value or '').strip().upper()
    return value if value in VALID_PRIORITIES else default


def _plural(count, unit):
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def format_resolution_time(seconds):
    """'2 hours, 5 minutes'; seconds only under an hour; zero parts are left out"""
    seconds = int(seconds or 0)
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    parts = []
    if hours:
        parts.append(_plural(hours, 'hour'))
    if minutes:
        parts.append(_plural(minutes, 'minute'))
    if secs and not hours:
        parts.append(_plural(secs, 'second'))
    return ', '.join(parts) or _plural(0, 'second')


def record_ticket_change(ticket, user, old_status, old_priority, comment=''):
    """
    Write the history entry for a status/priority change or a comment.

    Moving to IN_PROGRESS stamps started_at. Moving from IN_PROGRESS to
    RESOLVED measures the time since the latest IN_PROGRESS entry.
    Returns the entry, or None when nothing changed and no comment was given.
    """
    status_changed = ticket.status != old_status
    priority_changed = ticket.priority != old_priority
    comment = (comment or '').strip()
    if not (status_changed or priority_changed or comment):
        return None

    if not comment:
        parts = []
        if status_changed:
            parts.append(f"Status changed from {old_status} to {ticket.status}")
        if priority_changed:
            parts.append(f"Priority changed from {old_priority} to {ticket.priority}")
        comment = '. '.join(parts)

    now = timezone.now()
    started_at = None
    resolution_time = None
    if status_changed and ticket.status == 'IN_PROGRESS':
        started_at = now
    elif status_changed and ticket.status == 'RESOLVED' and old_status == 'IN_PROGRESS':
        work_started = ticket.history.filter(status='IN_PROGRESS').order_by('-created_at', '-id').first()
        if work_started:
            start = work_started.started_at or work_started.created_at
            resolution_time = max(0, int((now - start).total_seconds()))
            comment = f"{comment}. Resolution time: {format_resolution_time(resolution_time)}"

    return TicketHistory.objects.create(
        ticket=ticket,
        user=user,
        status=ticket.status if status_changed else None,
        priority=ticket.priority if priority_changed else None,
        comment=comment,
        started_at=started_at,
        resolution_time=resolution_time,
    )
