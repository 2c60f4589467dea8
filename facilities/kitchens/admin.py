from django.contrib import admin
from .models import Kitchen, KitchenAssignment


class KitchenAssignmentInline(admin.TabularInline):
    model = KitchenAssignment
    fk_name = 'kitchen'
    extra = 0
    readonly_fields = ['assigned_by', 'created_at']


@admin.register(Kitchen)
class KitchenAdmin(admin.ModelAdmin):
    list_display = ['name', 'floor_number', 'location', 'created_at']
    search_fields = ['name', 'description']
    inlines = [KitchenAssignmentInline]
