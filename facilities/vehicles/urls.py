from django.urls import path
from .views import (
    vehicle_list_create, vehicle_detail, vehicle_status, vehicle_maintenance, rental_list,
    vehicle_assign, rental_end, trip_start, trip_end, location_update, trip_stats, trip_history,
    rental_costs,
)

urlpatterns = [
    path('vehicles/', vehicle_list_create, name='vehicle-list-create'),
    path('vehicles/rentals/', rental_list, name='vehicle-rentals'),
    path('vehicles/rentals/<int:pk>/end/', rental_end, name='vehicle-rental-end'),
    path('vehicles/assign/', vehicle_assign, name='vehicle-assign'),
    path('vehicles/trips/start/', trip_start, name='vehicle-trip-start'),
    path('vehicles/trips/end/', trip_end, name='vehicle-trip-end'),
    path('vehicles/trips/stats/', trip_stats, name='vehicle-trip-stats'),
    path('vehicles/trips/history/', trip_history, name='vehicle-trip-history'),
    path('vehicles/location/', location_update, name='vehicle-location'),
    path('vehicles/rental-costs/', rental_costs, name='vehicle-rental-costs'),
    path('vehicles/<int:pk>/', vehicle_detail, name='vehicle-detail'),
    path('vehicles/<int:pk>/status/', vehicle_status, name='vehicle-status'),
    path('vehicles/<int:pk>/maintenance/', vehicle_maintenance, name='vehicle-maintenance'),
]
