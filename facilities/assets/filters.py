import django_filters
from django.db.models import Q
from .models import Asset


class AssetFilter(django_filters.FilterSet):
    """Filters for the asset list"""
    status = django_filters.CharFilter(field_name='status', lookup_expr='iexact')
    type = django_filters.CharFilter(field_name='type', lookup_expr='iexact')
    vendor = django_filters.NumberFilter(field_name='vendor_id')
    location = django_filters.NumberFilter(field_name='location_id')
    floor = django_filters.CharFilter(field_name='floor_number')
    room = django_filters.CharFilter(field_name='room_number')
    include_disposed = django_filters.BooleanFilter(method='filter_include_disposed')
    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = Asset
        fields = ['status', 'type', 'vendor', 'location', 'floor', 'room']

    def filter_include_disposed(self, queryset, name, value):
        if value is False:
            return queryset.exclude(status='DISPOSED')
        return queryset

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) |
            Q(asset_id__icontains=value) |
            Q(barcode__icontains=value) |
            Q(description__icontains=value)
        )
