from django.urls import path
from .views import (
    asset_list_create, asset_scan, asset_stats, asset_duplicate,
    asset_detail, asset_move, asset_dispose, asset_status,
    asset_history, asset_tickets, asset_documents, asset_label,
    asset_health, asset_maintenance_predictions, asset_lifecycle, asset_tco,
)

urlpatterns = [
    path('assets/', asset_list_create, name='asset-list-create'),
    path('assets/scan/', asset_scan, name='asset-scan'),
    path('assets/stats/', asset_stats, name='asset-stats'),
    path('assets/duplicate/', asset_duplicate, name='asset-duplicate'),
    path('assets/<int:pk>/', asset_detail, name='asset-detail'),
    path('assets/<int:pk>/move/', asset_move, name='asset-move'),
    path('assets/<int:pk>/dispose/', asset_dispose, name='asset-dispose'),
    path('assets/<int:pk>/status/', asset_status, name='asset-status'),
    path('assets/<int:pk>/history/', asset_history, name='asset-history'),
    path('assets/<int:pk>/tickets/', asset_tickets, name='asset-tickets'),
    path('assets/<int:pk>/documents/', asset_documents, name='asset-documents'),
    path('assets/<int:pk>/label/', asset_label, name='asset-label'),
    path('assets/<int:pk>/health/', asset_health, name='asset-health'),
    path('assets/<int:pk>/maintenance-predictions/', asset_maintenance_predictions, name='asset-maintenance-predictions'),
    path('assets/<int:pk>/lifecycle/', asset_lifecycle, name='asset-lifecycle'),
    path('assets/<int:pk>/tco/', asset_tco, name='asset-tco'),
]
