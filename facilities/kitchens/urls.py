from django.urls import path
from .views import (
    kitchen_list_create, kitchen_detail, kitchen_assignments, kitchen_barcodes, kitchen_stock,
    kitchen_consumption_summary, kitchen_financial_metrics, kitchen_monthly_consumption,
    kitchen_recent_activity, kitchen_waste_reasons, kitchen_waste_patterns,
)

urlpatterns = [
    path('kitchens/', kitchen_list_create, name='kitchen-list-create'),
    path('kitchens/<int:pk>/', kitchen_detail, name='kitchen-detail'),
    path('kitchens/<int:pk>/assignments/', kitchen_assignments, name='kitchen-assignments'),
    path('kitchens/<int:pk>/barcodes/', kitchen_barcodes, name='kitchen-barcodes'),
    path('kitchens/<int:pk>/stock/', kitchen_stock, name='kitchen-stock'),
    path('kitchens/<int:pk>/consumption-summary/', kitchen_consumption_summary, name='kitchen-consumption-summary'),
    path('kitchens/<int:pk>/financial-metrics/', kitchen_financial_metrics, name='kitchen-financial-metrics'),
    path('kitchens/<int:pk>/monthly-consumption/', kitchen_monthly_consumption, name='kitchen-monthly-consumption'),
    path('kitchens/<int:pk>/recent-activity/', kitchen_recent_activity, name='kitchen-recent-activity'),
    path('kitchens/<int:pk>/waste-reasons/', kitchen_waste_reasons, name='kitchen-waste-reasons'),
    path('kitchens/<int:pk>/waste-patterns/', kitchen_waste_patterns, name='kitchen-waste-patterns'),
]
