from rest_framework import serializers
from facilities.core.serializers import UserSummarySerializer
from facilities.locations.models import Location
from .models import Kitchen, KitchenAssignment


class KitchenSerializer(serializers.ModelSerializer):
    location = serializers.PrimaryKeyRelatedField(queryset=Location.objects.all(), required=False, allow_null=True)
    location_name = serializers.CharField(source='location.display_name', read_only=True, default=None)

    class Meta:
        model = Kitchen
        fields = ['id', 'name', 'floor_number', 'description', 'location', 'location_name',
                  'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Kitchen name is required')
        return value


class KitchenAssignmentSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)
    assigned_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = KitchenAssignment
        fields = ['id', 'kitchen', 'user', 'assigned_by', 'created_at']
