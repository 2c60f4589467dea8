from django.contrib import admin
from .models import Asset, AssetHistory, AssetMovement, AssetDocument


class AssetHistoryInline(admin.TabularInline):
    model = AssetHistory
    extra = 0
    readonly_fields = ['action', 'details', 'user', 'created_at']


@admin.register(Asset)
class AssetAdmin(admin.ModelAdmin):
    list_display = ['asset_id', 'name', 'type', 'status', 'floor_number', 'room_number', 'vendor', 'purchase_amount', 'created_at']
    list_filter = ['type', 'status', 'vendor', 'created_at']
    search_fields = ['asset_id', 'barcode', 'name', 'description']
    ordering = ['-created_at']
    readonly_fields = ['asset_id', 'barcode', 'created_at', 'updated_at']
    inlines = [AssetHistoryInline]


@admin.register(AssetMovement)
class AssetMovementAdmin(admin.ModelAdmin):
    list_display = ['asset', 'from_floor', 'from_room', 'to_floor', 'to_room', 'moved_by', 'moved_at']
    search_fields = ['asset__asset_id', 'asset__name', 'reason']
    ordering = ['-moved_at']


@admin.register(AssetDocument)
class AssetDocumentAdmin(admin.ModelAdmin):
    list_display = ['asset', 'file_name', 'file_type', 'file_size', 'uploaded_by', 'uploaded_at']
    search_fields = ['asset__asset_id', 'file_name']
    ordering = ['-uploaded_at']
