from django.contrib import admin
from .models import Location


@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    list_display = ['name', 'building', 'floor_number', 'room_number', 'is_active', 'created_at']
    list_filter = ['is_active', 'building', 'floor_number']
    search_fields = ['name', 'building', 'room_number', 'description']
    ordering = ['building', 'floor_number', 'room_number']
