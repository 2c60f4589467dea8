from django.urls import path
from .views import ai_analysis, ml_predictions, notifications, dashboard_stats

urlpatterns = [
    path('ai-analysis/', ai_analysis, name='ai-analysis'),
    path('ai-analysis/ml-predictions/', ml_predictions, name='ai-analysis-ml-predictions'),
    path('ai-analysis/notifications/', notifications, name='ai-analysis-notifications'),
    path('dashboard/stats/', dashboard_stats, name='dashboard-stats'),
]
