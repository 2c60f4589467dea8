from django.urls import path
from .views import ticket_list_create, ticket_detail, ticket_history, ticket_by_barcode, ticket_stats

urlpatterns = [
    path('tickets/', ticket_list_create, name='ticket-list-create'),
    path('tickets/barcode/', ticket_by_barcode, name='ticket-barcode'),
    path('tickets/stats/', ticket_stats, name='ticket-stats'),
    path('tickets/<int:pk>/', ticket_detail, name='ticket-detail'),
    path('tickets/<int:pk>/history/', ticket_history, name='ticket-history'),
]
