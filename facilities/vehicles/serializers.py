from rest_framework import serializers
from facilities.core.serializers import UserSummarySerializer
from .models import Vehicle, VehicleRental, VehicleTrip, VehicleLocation, VehicleMaintenance
from .tracking import format_duration


class VehicleSerializer(serializers.ModelSerializer):
    class Meta:
        model = Vehicle
        fields = ['id', 'name', 'make', 'model', 'year', 'plate_number', 'type', 'color', 'status',
                  'rental_amount', 'image_url', 'created_at', 'updated_at']
        read_only_fields = ['name', 'created_at', 'updated_at']
        extra_kwargs = {'rental_amount': {'required': True}}

    def validate_make(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Make is required')
        return value

    def validate_model(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Model is required')
        return value

    def validate_plate_number(self, value):
        return value.strip().upper()

    def validate_year(self, value):
        if value < 1950 or value > 2100:
            raise serializers.ValidationError('Year is out of range')
        return value

    def validate_rental_amount(self, value):
        if value < 0:
            raise serializers.ValidationError('Rental amount cannot be negative')
        return value


class VehicleRentalSerializer(serializers.ModelSerializer):
    vehicle_name = serializers.CharField(source='vehicle.name', read_only=True)
    plate_number = serializers.CharField(source='vehicle.plate_number', read_only=True)
    user_name = serializers.SerializerMethodField()
    is_overdue = serializers.BooleanField(read_only=True)

    class Meta:
        model = VehicleRental
        fields = ['id', 'display_id', 'vehicle', 'vehicle_name', 'plate_number', 'user', 'user_name',
                  'start_date', 'end_date', 'status', 'daily_rate', 'total_cost', 'notes',
                  'is_overdue', 'ended_at', 'created_at']

    def get_user_name(self, obj):
        return obj.user.display_name

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if data['daily_rate'] is None:
            data['daily_rate'] = str(instance.vehicle.rental_amount)
        return data


class VehicleLocationSerializer(serializers.ModelSerializer):
    class Meta:
        model = VehicleLocation
        fields = ['id', 'vehicle', 'trip', 'latitude', 'longitude', 'recorded_at']


class VehicleTripSerializer(serializers.ModelSerializer):
    vehicle_name = serializers.CharField(source='vehicle.name', read_only=True)
    user = UserSummarySerializer(read_only=True)
    duration_ms = serializers.IntegerField(read_only=True)
    duration_display = serializers.SerializerMethodField()

    class Meta:
        model = VehicleTrip
        fields = ['id', 'vehicle', 'vehicle_name', 'user', 'rental', 'start_time', 'end_time',
                  'start_latitude', 'start_longitude', 'end_latitude', 'end_longitude', 'distance',
                  'is_auto_started', 'is_auto_ended', 'completion_status', 'duration_ms',
                  'duration_display', 'metadata']

    def get_duration_display(self, obj):
        if obj.duration_ms is None:
            return None
        return format_duration(obj.duration_ms)


class VehicleMaintenanceSerializer(serializers.ModelSerializer):
    class Meta:
        model = VehicleMaintenance
        fields = ['id', 'vehicle', 'description', 'cost', 'maintenance_date', 'created_by', 'created_at']
        read_only_fields = ['vehicle', 'created_by', 'created_at']

    def validate_cost(self, value):
        if value < 0:
            raise serializers.ValidationError('Cost cannot be negative')
        return value
