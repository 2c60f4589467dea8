from django.contrib import admin
from .models import Ticket, TicketHistory


class TicketHistoryInline(admin.TabularInline):
    model = TicketHistory
    extra = 0
    readonly_fields = ['user', 'status', 'priority', 'comment', 'started_at', 'resolution_time', 'created_at']


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ['display_id', 'title', 'status', 'priority', 'asset', 'created_by', 'assigned_to', 'created_at']
    list_filter = ['status', 'priority', 'created_at']
    search_fields = ['display_id', 'barcode', 'title', 'description']
    ordering = ['-created_at']
    readonly_fields = ['display_id', 'barcode', 'resolved_at', 'created_at', 'updated_at']
    inlines = [TicketHistoryInline]
