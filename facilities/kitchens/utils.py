"""Kitchen access rules and barcode generation"""
from django.utils import timezone
from facilities.core.utils import is_admin_or_manager
from .models import Kitchen


def visible_kitchens(user):
    """Privileged users see every kitchen, others only their assignments"""
    queryset = Kitchen.objects.select_related('location')
    if is_admin_or_manager(user):
        return queryset
    return queryset.filter(assignments__user=user).distinct()


def can_access_kitchen(user, kitchen):
    if is_admin_or_manager(user):
        return True
    return kitchen.assignments.filter(user=user).exists()


def build_kitchen_barcode(kitchen, food_supply, now=None):
    """KIT<kitchen id>SUP<supply id><timestamp>, upper case"""
    now = now or timezone.now()
    stamp = f"{int(now.timestamp() * 1000):x}"
    return f"KIT{kitchen.id}SUP{food_supply.id}{stamp}".upper()
