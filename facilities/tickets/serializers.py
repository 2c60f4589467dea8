from rest_framework import serializers
from facilities.core.serializers import UserSummarySerializer
from .models import Ticket, TicketHistory
from .utils import format_resolution_time


class TicketSerializer(serializers.ModelSerializer):
    created_by = UserSummarySerializer(read_only=True)
    assigned_to = UserSummarySerializer(read_only=True)
    asset_name = serializers.SerializerMethodField()
    asset_code = serializers.SerializerMethodField()

    class Meta:
        model = Ticket
        fields = ['id', 'display_id', 'barcode', 'title', 'description', 'status', 'priority',
                  'asset', 'asset_name', 'asset_code', 'created_by', 'assigned_to',
                  'resolved_at', 'created_at', 'updated_at']

    def get_asset_name(self, obj):
        return obj.asset.name if obj.asset_id else None

    def get_asset_code(self, obj):
        return obj.asset.asset_id if obj.asset_id else None


class TicketHistorySerializer(serializers.ModelSerializer):
    user_email = serializers.SerializerMethodField()
    resolution_time_display = serializers.SerializerMethodField()

    class Meta:
        model = TicketHistory
        fields = ['id', 'status', 'priority', 'comment', 'user', 'user_email', 'started_at',
                  'resolution_time', 'resolution_time_display', 'created_at']

    def get_user_email(self, obj):
        if obj.user_id:
            return obj.user.email or obj.user.username
        return 'System'

    def get_resolution_time_display(self, obj):
        if obj.resolution_time is None:
            return None
        return format_resolution_time(obj.resolution_time)
