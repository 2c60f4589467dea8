import logging
from decimal import Decimal
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.db import transaction
from django.db.models import Q, Sum
from django.utils import timezone
from facilities.core.utils import create_audit_log, is_admin_or_manager
from .models import Vendor, VendorEvaluation
from .serializers import (
    VendorSerializer, VendorEvaluationSerializer, VendorPerformanceInputSerializer
)

logger = logging.getLogger('facilities.vendors')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def vendor_list_create(request):
    """List vendors (filter by type/search) or create a vendor"""
    if request.method == 'GET':
        vendors = Vendor.objects.all()
        search = request.query_params.get('search', '').strip()
        if search:
            vendors = vendors.filter(
                Q(name__icontains=search) | Q(email__icontains=search) | Q(phone__icontains=search)
            )

        vendor_type = request.query_params.get('type', '').strip().upper()
        if vendor_type:
            # JSON containment lookups are not portable across backends
            vendors = [vendor for vendor in vendors if vendor_type in (vendor.types or [])]

        serializer = VendorSerializer(vendors, many=True)
        return Response(serializer.data)

    serializer = VendorSerializer(data=request.data)
    if serializer.is_valid():
        vendor = serializer.save()
        logger.info(f"Vendor '{vendor.name}' created by {request.user.username}")
        create_audit_log(request, 'create', 'Vendor', vendor.id, object_name=vendor.name)
        return Response(VendorSerializer(vendor).data, status=status.HTTP_201_CREATED)
    logger.warning(f"Vendor creation validation failed: {serializer.errors}")
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def vendor_detail(request, pk):
    """Retrieve, update or delete a vendor"""
    vendor = get_object_or_404(Vendor, pk=pk)

    if request.method == 'GET':
        return Response(VendorSerializer(vendor).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = VendorSerializer(vendor, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request, 'update', 'Vendor', vendor.id, changes=dict(request.data), object_name=vendor.name)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    if not is_admin_or_manager(request.user):
        return Response({'error': 'Only administrators can delete vendors'}, status=status.HTTP_403_FORBIDDEN)
    if vendor.assets.exists():
        return Response(
            {'error': 'Vendor has assets and cannot be deleted', 'asset_count': vendor.assets.count()},
            status=status.HTTP_409_CONFLICT
        )
    logger.info(f"User {request.user.username} deleting vendor {pk} ({vendor.name})")
    create_audit_log(request, 'delete', 'Vendor', vendor.id, object_name=vendor.name)
    vendor.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def vendor_performance(request, pk):
    """Read a vendor's performance history or record a new evaluation"""
    vendor = get_object_or_404(Vendor, pk=pk)

    if request.method == 'GET':
        evaluations = vendor.evaluations.select_related('reviewer')
        return Response({
            'vendor': VendorSerializer(vendor).data,
            'overall_score': vendor.overall_score,
            'performance_history': VendorEvaluationSerializer(evaluations, many=True).data,
        })

    input_serializer = VendorPerformanceInputSerializer(data=request.data)
    if not input_serializer.is_valid():
        return Response(input_serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = input_serializer.validated_data

    with transaction.atomic():
        previous = {field: getattr(vendor, field) for field in Vendor.SCORE_FIELDS}
        for field in Vendor.SCORE_FIELDS:
            if data.get(field) is not None:
                setattr(vendor, field, data[field])
        vendor.last_review_date = timezone.now()
        if data.get('notes'):
            vendor.notes = data['notes']
        vendor.save()

        evaluation = VendorEvaluation.objects.create(
            vendor=vendor,
            reviewer=request.user,
            reliability_score=vendor.reliability_score,
            quality_score=vendor.quality_score,
            response_time_score=vendor.response_time_score,
            previous_scores=previous,
            notes=data.get('notes', ''),
        )

    logger.info(f"Vendor {vendor.id} performance updated by {request.user.username}")
    create_audit_log(
        request, 'vendor_review', 'Vendor', vendor.id,
        changes={'previous': previous, 'current': {f: getattr(vendor, f) for f in Vendor.SCORE_FIELDS}},
        object_name=vendor.name
    )
    return Response({
        'vendor': VendorSerializer(vendor).data,
        'evaluation': VendorEvaluationSerializer(evaluation).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def vendor_assets(request, pk):
    """Assets supplied by a vendor with count and total purchase value"""
    from facilities.assets.serializers import AssetListSerializer

    vendor = get_object_or_404(Vendor, pk=pk)
    assets = vendor.assets.select_related('vendor', 'location').order_by('-created_at')
    total_value = assets.aggregate(total=Sum('purchase_amount'))['total'] or Decimal('0.00')
    return Response({
        'vendor': {'id': vendor.id, 'name': vendor.name},
        'count': assets.count(),
        'total_value': total_value,
        'assets': AssetListSerializer(assets, many=True).data,
    })
