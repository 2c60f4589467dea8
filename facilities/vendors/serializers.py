from rest_framework import serializers
from facilities.core.serializers import UserSummarySerializer
from .models import Vendor, VendorEvaluation

VENDOR_TYPES = [choice[0] for choice in Vendor.TYPE_CHOICES]


class VendorSerializer(serializers.ModelSerializer):
    overall_score = serializers.FloatField(read_only=True)

    class Meta:
        model = Vendor
        fields = ['id', 'name', 'email', 'phone', 'address', 'types',
                  'reliability_score', 'quality_score', 'response_time_score', 'overall_score',
                  'last_review_date', 'notes', 'created_at', 'updated_at']
        read_only_fields = ['last_review_date', 'created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Vendor name is required')
        return value

    def validate_types(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError('Vendor types must be a list')
        normalized = []
        for item in value:
            upper = str(item).upper()
            if upper not in VENDOR_TYPES:
                raise serializers.ValidationError(f'Invalid vendor type: {item}')
            if upper not in normalized:
                normalized.append(upper)
        return normalized


class VendorEvaluationSerializer(serializers.ModelSerializer):
    reviewer = UserSummarySerializer(read_only=True)

    class Meta:
        model = VendorEvaluation
        fields = ['id', 'reliability_score', 'quality_score', 'response_time_score',
                  'previous_scores', 'notes', 'reviewer', 'created_at']


class VendorPerformanceInputSerializer(serializers.Serializer):
    """Scores submitted by a reviewer; at least one is required"""
    reliability_score = serializers.IntegerField(min_value=0, max_value=100, required=False, allow_null=True)
    quality_score = serializers.IntegerField(min_value=0, max_value=100, required=False, allow_null=True)
    response_time_score = serializers.IntegerField(min_value=0, max_value=100, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if all(attrs.get(field) is None for field in Vendor.SCORE_FIELDS):
            raise serializers.ValidationError('At least one performance score is required')
        return attrs
