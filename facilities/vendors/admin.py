from django.contrib import admin
from .models import Vendor, VendorEvaluation


class VendorEvaluationInline(admin.TabularInline):
    model = VendorEvaluation
    extra = 0
    readonly_fields = ['reviewer', 'previous_scores', 'created_at']


@admin.register(Vendor)
class VendorAdmin(admin.ModelAdmin):
    list_display = ['name', 'email', 'phone', 'reliability_score', 'quality_score', 'response_time_score', 'last_review_date']
    search_fields = ['name', 'email', 'phone']
    ordering = ['name']
    inlines = [VendorEvaluationInline]


@admin.register(VendorEvaluation)
class VendorEvaluationAdmin(admin.ModelAdmin):
    list_display = ['vendor', 'reviewer', 'reliability_score', 'quality_score', 'response_time_score', 'created_at']
    list_filter = ['created_at']
    search_fields = ['vendor__name', 'notes']
    ordering = ['-created_at']
