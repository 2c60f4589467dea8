"""Utility functions for audit logging, access checks and request parsing"""
import logging
from datetime import datetime, date
from decimal import Decimal, InvalidOperation

from django.utils import timezone

from .models import AuditLog

logger = logging.getLogger(__name__)

PRIVILEGED_GROUPS = ['Admin', 'Manager']


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, object_reference=None,
                     barcode=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, update, delete, asset_move, ...)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object
        object_reference: Reference identifier (asset id, ticket number, ...)
        barcode: Barcode if applicable
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        ip_address = get_client_ip(request) if request else None

        if not action or not model_name or not object_id:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        return AuditLog.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            object_reference=object_reference,
            barcode=barcode,
            changes=changes or {},
            ip_address=ip_address
        )
    except Exception as e:
        # Don't fail the main operation if audit logging fails
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def is_admin_or_manager(user):
    """Superusers, staff, ADMIN/MANAGER roles and the Admin/Manager groups are privileged"""
    if not user or not user.is_authenticated:
        return False
    if user.is_superuser or user.is_staff:
        return True
    if getattr(user, 'role', None) in ('ADMIN', 'MANAGER'):
        return True
    return user.groups.filter(name__in=PRIVILEGED_GROUPS).exists()


def is_truthy(value):
    """Query-string flag parsing ('true', '1', 'yes')"""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ('true', '1', 'yes', 'on')


def parse_decimal(value):
    """Return a Decimal or None for blank/invalid input"""
    if value is None or value == '':
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None


def parse_int(value, default=None):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def parse_date(value):
    """Parse YYYY-MM-DD or an ISO datetime into a date, None when invalid"""
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return datetime.strptime(text[:10], '%Y-%m-%d').date()
    except ValueError:
        return None


def parse_datetime(value):
    """Parse an ISO date/datetime into an aware datetime, None when invalid"""
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip().replace('Z', '+00:00')
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            parsed_date = parse_date(text)
            if parsed_date is None:
                return None
            parsed = datetime.combine(parsed_date, datetime.min.time())
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def next_daily_sequence(model, prefix, field='display_id', created_field='created_at'):
    """
    Build the next PREFIX-YYYYMMDD-NNNN identifier for today.

    NNNN is the count of rows created today plus one; bumped until unused.
    """
    now = timezone.now()
    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    count = model.objects.filter(**{f'{created_field}__gte': today_start}).count()
    date_part = now.strftime('%Y%m%d')
    sequence = count + 1
    candidate = f"{prefix}-{date_part}-{sequence:04d}"
    while model.objects.filter(**{field: candidate}).exists():
        sequence += 1
        candidate = f"{prefix}-{date_part}-{sequence:04d}"
    return candidate
