from rest_framework import serializers
from .models import Location


class LocationSerializer(serializers.ModelSerializer):
    display_name = serializers.CharField(read_only=True)
    asset_count = serializers.SerializerMethodField()

    class Meta:
        model = Location
        fields = ['id', 'name', 'display_name', 'building', 'floor_number', 'room_number',
                  'description', 'is_active', 'asset_count', 'created_at', 'updated_at']

    def get_asset_count(self, obj):
        return obj.assets.exclude(status='DISPOSED').count()
