from django.contrib import admin
from .models import Vehicle, VehicleRental, VehicleTrip, VehicleLocation, VehicleMaintenance


@admin.register(Vehicle)
class VehicleAdmin(admin.ModelAdmin):
    list_display = ['name', 'plate_number', 'year', 'type', 'status', 'rental_amount']
    list_filter = ['status', 'type']
    search_fields = ['name', 'make', 'model', 'plate_number']
    readonly_fields = ['name', 'created_at', 'updated_at']


@admin.register(VehicleRental)
class VehicleRentalAdmin(admin.ModelAdmin):
    list_display = ['display_id', 'vehicle', 'user', 'start_date', 'end_date', 'status', 'total_cost']
    list_filter = ['status']
    search_fields = ['display_id', 'vehicle__plate_number', 'user__username']
    readonly_fields = ['display_id', 'created_at', 'updated_at']


@admin.register(VehicleTrip)
class VehicleTripAdmin(admin.ModelAdmin):
    list_display = ['id', 'vehicle', 'user', 'start_time', 'end_time', 'distance', 'completion_status']
    list_filter = ['completion_status', 'is_auto_started', 'is_auto_ended']
    date_hierarchy = 'start_time'


@admin.register(VehicleLocation)
class VehicleLocationAdmin(admin.ModelAdmin):
    list_display = ['vehicle', 'user', 'trip', 'latitude', 'longitude', 'recorded_at']
    list_filter = ['vehicle']


@admin.register(VehicleMaintenance)
class VehicleMaintenanceAdmin(admin.ModelAdmin):
    list_display = ['vehicle', 'maintenance_date', 'cost', 'created_by']
    list_filter = ['vehicle']
    date_hierarchy = 'maintenance_date'
