from decimal import Decimal
from rest_framework import serializers
from facilities.core.serializers import UserSummarySerializer
from facilities.locations.models import Location
from facilities.vendors.models import Vendor
from .models import Asset, AssetHistory, AssetMovement, AssetDocument


class AssetListSerializer(serializers.ModelSerializer):
    vendor_name = serializers.CharField(source='vendor.name', read_only=True)
    location_name = serializers.SerializerMethodField()

    class Meta:
        model = Asset
        fields = ['id', 'asset_id', 'barcode', 'name', 'type', 'status', 'floor_number', 'room_number',
                  'location', 'location_name', 'vendor', 'vendor_name', 'owner', 'purchase_amount',
                  'purchase_date', 'image_url', 'created_at', 'updated_at']

    def get_location_name(self, obj):
        if obj.location_id:
            return obj.location.display_name
        if obj.floor_number or obj.room_number:
            return f"Floor {obj.floor_number}, Room {obj.room_number}"
        return None


class AssetSerializer(serializers.ModelSerializer):
    vendor = serializers.PrimaryKeyRelatedField(queryset=Vendor.objects.all())
    location = serializers.PrimaryKeyRelatedField(queryset=Location.objects.all(), required=False, allow_null=True)
    vendor_name = serializers.CharField(source='vendor.name', read_only=True)
    owner = UserSummarySerializer(read_only=True)
    latitude = serializers.FloatField(min_value=-90, max_value=90, required=False, allow_null=True)
    longitude = serializers.FloatField(min_value=-180, max_value=180, required=False, allow_null=True)
    document_count = serializers.SerializerMethodField()

    class Meta:
        model = Asset
        fields = ['id', 'asset_id', 'barcode', 'name', 'description', 'type', 'status',
                  'floor_number', 'room_number', 'location', 'vendor', 'vendor_name', 'owner',
                  'purchase_amount', 'purchase_date', 'image_url', 'latitude', 'longitude',
                  'last_moved_at', 'disposed_at', 'document_count', 'created_at', 'updated_at']
        read_only_fields = ['asset_id', 'barcode', 'last_moved_at', 'disposed_at', 'created_at', 'updated_at']

    def get_document_count(self, obj):
        return obj.documents.count()

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Asset name is required')
        return value

    def validate_status(self, value):
        if value == 'DISPOSED':
            raise serializers.ValidationError('Use the dispose endpoint to dispose of an asset')
        return value

    def validate_purchase_amount(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError('Purchase amount cannot be negative')
        return value

    def _coordinate(self, value):
        if value is None:
            return None
        return Decimal(str(round(value, 6)))

    def validate_latitude(self, value):
        return self._coordinate(value)

    def validate_longitude(self, value):
        return self._coordinate(value)


class AssetHistorySerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = AssetHistory
        fields = ['id', 'action', 'details', 'user', 'created_at']


class AssetMovementSerializer(serializers.ModelSerializer):
    moved_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = AssetMovement
        fields = ['id', 'from_floor', 'from_room', 'to_floor', 'to_room', 'reason', 'moved_by', 'moved_at']


class AssetDocumentSerializer(serializers.ModelSerializer):
    uploaded_by = UserSummarySerializer(read_only=True)
    url = serializers.CharField(read_only=True)

    class Meta:
        model = AssetDocument
        fields = ['id', 'asset', 'file_name', 'file_type', 'file_size', 'url', 'uploaded_by', 'uploaded_at']
