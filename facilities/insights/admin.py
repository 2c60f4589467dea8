from django.contrib import admin
from .models import NotificationRead


@admin.register(NotificationRead)
class NotificationReadAdmin(admin.ModelAdmin):
    list_display = ['notification_id', 'user', 'read_at']
    list_filter = ['read_at']
    search_fields = ['notification_id', 'user__username']
