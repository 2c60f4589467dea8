from datetime import timedelta
import django_filters
from django.conf import settings
from django.db.models import Q
from django.utils import timezone
from .models import FoodSupply, KitchenFoodSupply


class FoodSupplyFilter(django_filters.FilterSet):
    """Filters for the food supply list"""
    category = django_filters.CharFilter(field_name='category', lookup_expr='iexact')
    kitchen = django_filters.NumberFilter(method='filter_kitchen')
    vendor = django_filters.NumberFilter(field_name='vendor_id')
    expiring_soon = django_filters.BooleanFilter(method='filter_expiring_soon')
    low_stock = django_filters.BooleanFilter(method='filter_low_stock')
    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = FoodSupply
        fields = ['category', 'kitchen', 'vendor']

    def filter_kitchen(self, queryset, name, value):
        if value is None:
            return queryset
        stocked = KitchenFoodSupply.objects.filter(kitchen_id=value).values('food_supply')
        return queryset.filter(Q(kitchen_id=value) | Q(id__in=stocked))

    def filter_expiring_soon(self, queryset, name, value):
        if not value:
            return queryset
        today = timezone.localdate()
        limit = today + timedelta(days=settings.FOOD_SUPPLY_EXPIRING_SOON_DAYS)
        return queryset.filter(expiration_date__gte=today, expiration_date__lte=limit)

    def filter_low_stock(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(quantity__lte=settings.FOOD_SUPPLY_LOW_STOCK_QUANTITY)

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) |
            Q(barcode__icontains=value) |
            Q(notes__icontains=value)
        )
