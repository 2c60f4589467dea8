import logging
import os
from decimal import Decimal
import requests
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import JSONParser, MultiPartParser, FormParser
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.conf import settings
from django.core.files.base import ContentFile
from django.shortcuts import get_object_or_404
from django.db import transaction
from django.db.models import Q, Sum, Count
from django.utils import timezone
from facilities.core.utils import (
    create_audit_log, is_admin_or_manager, is_truthy, parse_int, parse_decimal, parse_date
)
from facilities.vendors.models import Vendor
from .filters import AssetFilter
from .health import calculate_health_score, predict_maintenance, build_lifecycle_events, calculate_tco
from .label_generator import generate_label_image
from .models import Asset, AssetHistory, AssetMovement, AssetDocument
from .serializers import (
    AssetSerializer, AssetListSerializer, AssetHistorySerializer,
    AssetMovementSerializer, AssetDocumentSerializer
)
from .utils import generate_unique_asset_identifiers

logger = logging.getLogger('facilities.assets')

TRACKED_FIELDS = [
    'name', 'description', 'type', 'status', 'floor_number', 'room_number', 'location',
    'vendor', 'purchase_amount', 'purchase_date', 'image_url', 'latitude', 'longitude',
]
MAX_DUPLICATE_COUNT = 100


def can_modify_asset(user, asset):
    return is_admin_or_manager(user) or asset.owner_id == user.id


def _history_value(value):
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if hasattr(value, 'pk'):
        return value.pk
    return str(value)


def _asset_lookup(code):
    """Exact barcode/asset id first, then partial matches, then the name"""
    asset = Asset.objects.filter(Q(barcode__iexact=code) | Q(asset_id__iexact=code)).first()
    if asset:
        return asset
    asset = Asset.objects.filter(Q(barcode__icontains=code) | Q(asset_id__icontains=code)).order_by('-created_at').first()
    if asset:
        return asset
    return Asset.objects.filter(name__icontains=code).order_by('-created_at').first()


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def asset_list_create(request):
    """List assets (scoped to the owner unless privileged) or register a new asset"""
    try:
        if request.method == 'GET':
            code = request.query_params.get('barcode') or request.query_params.get('asset_id')
            if code:
                asset = _asset_lookup(code.strip())
                if not asset:
                    return Response({'error': 'Asset not found', 'code': code}, status=status.HTTP_404_NOT_FOUND)
                return Response(AssetSerializer(asset).data)

            queryset = Asset.objects.select_related('vendor', 'location')
            if not is_admin_or_manager(request.user):
                queryset = queryset.filter(owner=request.user)
            filterset = AssetFilter(request.query_params, queryset=queryset)
            if not filterset.is_valid():
                return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
            serializer = AssetListSerializer(filterset.qs, many=True)
            return Response(serializer.data)

        serializer = AssetSerializer(data=request.data)
        if not serializer.is_valid():
            logger.warning(f"Asset creation validation failed: {serializer.errors}")
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        with transaction.atomic():
            asset_id, barcode = generate_unique_asset_identifiers(serializer.validated_data['type'])
            asset = serializer.save(asset_id=asset_id, barcode=barcode, owner=request.user)
            AssetHistory.objects.create(
                asset=asset,
                user=request.user,
                action='REGISTERED',
                details={
                    'floor_number': asset.floor_number,
                    'room_number': asset.room_number,
                    'type': asset.type,
                    'vendor': asset.vendor.name,
                    'purchase_amount': _history_value(asset.purchase_amount),
                    'purchase_date': _history_value(asset.purchase_date),
                },
            )

        logger.info(f"Asset {asset.asset_id} registered by {request.user.username}")
        create_audit_log(
            request, 'create', 'Asset', asset.id,
            changes={'type': asset.type, 'vendor': asset.vendor_id},
            object_name=asset.name, object_reference=asset.asset_id, barcode=asset.barcode
        )
        return Response(AssetSerializer(asset).data, status=status.HTTP_201_CREATED)
    except Exception as e:
        logger.error(f"Unexpected error in asset_list_create: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def asset_scan(request):
    """Look up an asset from a scanned barcode or typed code"""
    code = request.query_params.get('q', '').strip()
    if not code:
        return Response({'error': 'A barcode or asset id is required'}, status=status.HTTP_400_BAD_REQUEST)

    asset = _asset_lookup(code)
    if not asset:
        logger.info(f"Scan for '{code}' by {request.user.username} found nothing")
        return Response({'error': 'No asset matches the scanned code', 'code': code}, status=status.HTTP_404_NOT_FOUND)

    create_audit_log(request, 'barcode_scan', 'Asset', asset.id, object_name=asset.name,
                     object_reference=asset.asset_id, barcode=code)
    return Response(AssetSerializer(asset).data)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def asset_detail(request, pk):
    """Retrieve, update or delete an asset; updates are recorded in the history"""
    asset = get_object_or_404(Asset.objects.select_related('vendor', 'location', 'owner'), pk=pk)

    if request.method == 'GET':
        return Response(AssetSerializer(asset).data)

    if not can_modify_asset(request.user, asset):
        logger.warning(f"User {request.user.username} attempted to modify asset {pk} without access")
        return Response({'error': 'You do not have permission to modify this asset'}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'DELETE':
        if not is_admin_or_manager(request.user):
            return Response({'error': 'Only administrators can delete assets'}, status=status.HTTP_403_FORBIDDEN)
        logger.info(f"User {request.user.username} deleting asset {asset.asset_id}")
        create_audit_log(request, 'delete', 'Asset', asset.id, object_name=asset.name,
                         object_reference=asset.asset_id, barcode=asset.barcode)
        asset.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    if asset.status == 'DISPOSED':
        return Response({'error': 'Disposed assets cannot be modified'}, status=status.HTTP_400_BAD_REQUEST)

    before = {field: _history_value(getattr(asset, field)) for field in TRACKED_FIELDS}
    serializer = AssetSerializer(asset, data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        asset = serializer.save()
        after = {field: _history_value(getattr(asset, field)) for field in TRACKED_FIELDS}
        changed_fields = {
            field: {'from': before[field], 'to': after[field]}
            for field in TRACKED_FIELDS if before[field] != after[field]
        }
        if changed_fields:
            AssetHistory.objects.create(
                asset=asset, user=request.user, action='UPDATED',
                details={'changed_fields': changed_fields},
            )
            if 'status' in changed_fields:
                AssetHistory.objects.create(
                    asset=asset, user=request.user, action='STATUS_CHANGED',
                    details={'from_status': before['status'], 'to_status': after['status']},
                )

    if changed_fields:
        create_audit_log(request, 'update', 'Asset', asset.id, changes=changed_fields,
                         object_name=asset.name, object_reference=asset.asset_id)
    return Response(AssetSerializer(asset).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def asset_move(request, pk):
    """Move an asset to another floor/room"""
    asset = get_object_or_404(Asset, pk=pk)
    if not can_modify_asset(request.user, asset):
        return Response({'error': 'You do not have permission to move this asset'}, status=status.HTTP_403_FORBIDDEN)
    if asset.status == 'DISPOSED':
        return Response({'error': 'Disposed assets cannot be moved'}, status=status.HTTP_400_BAD_REQUEST)

    to_floor = str(request.data.get('floor_number', '')).strip()
    to_room = str(request.data.get('room_number', '')).strip()
    if not to_floor or not to_room:
        return Response({'error': 'floor_number and room_number are required'}, status=status.HTTP_400_BAD_REQUEST)
    reason = str(request.data.get('reason', '')).strip()

    with transaction.atomic():
        movement = AssetMovement.objects.create(
            asset=asset,
            from_floor=asset.floor_number,
            from_room=asset.room_number,
            to_floor=to_floor,
            to_room=to_room,
            reason=reason,
            moved_by=request.user,
        )
        asset.floor_number = to_floor
        asset.room_number = to_room
        asset.status = 'ACTIVE'
        asset.last_moved_at = timezone.now()
        location_id = request.data.get('location')
        if location_id:
            asset.location_id = parse_int(location_id)
        asset.save()
        AssetHistory.objects.create(
            asset=asset, user=request.user, action='MOVED',
            details={
                'from_floor': movement.from_floor, 'from_room': movement.from_room,
                'to_floor': to_floor, 'to_room': to_room, 'reason': reason,
            },
        )

    logger.info(f"Asset {asset.asset_id} moved to floor {to_floor}, room {to_room} by {request.user.username}")
    create_audit_log(request, 'asset_move', 'Asset', asset.id,
                     changes={'to_floor': to_floor, 'to_room': to_room, 'reason': reason},
                     object_name=asset.name, object_reference=asset.asset_id)
    return Response({
        'asset': AssetSerializer(asset).data,
        'movement': AssetMovementSerializer(movement).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def asset_dispose(request, pk):
    """Dispose of an asset with a reason"""
    asset = get_object_or_404(Asset, pk=pk)
    if not can_modify_asset(request.user, asset):
        return Response({'error': 'You do not have permission to dispose of this asset'}, status=status.HTTP_403_FORBIDDEN)
    if asset.status == 'DISPOSED':
        return Response({'error': 'Asset is already disposed'}, status=status.HTTP_400_BAD_REQUEST)

    reason = str(request.data.get('reason', '')).strip()
    if not reason:
        return Response({'error': 'A disposal reason is required'}, status=status.HTTP_400_BAD_REQUEST)

    previous_status = asset.status
    with transaction.atomic():
        asset.status = 'DISPOSED'
        asset.disposed_at = timezone.now()
        asset.save()
        AssetHistory.objects.create(
            asset=asset, user=request.user, action='DISPOSED',
            details={'previous_status': previous_status, 'reason': reason},
        )

    logger.info(f"Asset {asset.asset_id} disposed by {request.user.username}: {reason}")
    create_audit_log(request, 'asset_dispose', 'Asset', asset.id,
                     changes={'previous_status': previous_status, 'reason': reason},
                     object_name=asset.name, object_reference=asset.asset_id)
    return Response(AssetSerializer(asset).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def asset_status(request, pk):
    """Change an asset's status"""
    asset = get_object_or_404(Asset, pk=pk)
    if not can_modify_asset(request.user, asset):
        return Response({'error': 'You do not have permission to modify this asset'}, status=status.HTTP_403_FORBIDDEN)

    new_status = str(request.data.get('status', '')).strip().upper()
    valid_statuses = [choice[0] for choice in Asset.STATUS_CHOICES if choice[0] != 'DISPOSED']
    if new_status not in valid_statuses:
        return Response({'error': f'Status must be one of: {", ".join(valid_statuses)}'}, status=status.HTTP_400_BAD_REQUEST)
    if asset.status == 'DISPOSED':
        return Response({'error': 'Disposed assets cannot change status'}, status=status.HTTP_400_BAD_REQUEST)
    if asset.status == new_status:
        return Response(AssetSerializer(asset).data)

    previous_status = asset.status
    with transaction.atomic():
        asset.status = new_status
        asset.save(update_fields=['status', 'updated_at'])
        AssetHistory.objects.create(
            asset=asset, user=request.user, action='STATUS_CHANGED',
            details={'from_status': previous_status, 'to_status': new_status,
                     'note': str(request.data.get('note', '')).strip()},
        )
    create_audit_log(request, 'update', 'Asset', asset.id,
                     changes={'status': {'from': previous_status, 'to': new_status}},
                     object_name=asset.name, object_reference=asset.asset_id)
    return Response(AssetSerializer(asset).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def asset_history(request, pk):
    """History entries and movements of an asset, newest first"""
    asset = get_object_or_404(Asset, pk=pk)
    history = asset.history.select_related('user')
    movements = asset.movements.select_related('moved_by')
    return Response({
        'asset_id': asset.asset_id,
        'history': AssetHistorySerializer(history, many=True).data,
        'movements': AssetMovementSerializer(movements, many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def asset_tickets(request, pk):
    """Tickets linked to an asset"""
    from facilities.tickets.serializers import TicketSerializer

    asset = get_object_or_404(Asset, pk=pk)
    tickets = asset.tickets.select_related('created_by', 'assigned_to').order_by('-created_at')
    return Response(TicketSerializer(tickets, many=True).data)


def _verify_document_url(url):
    """HEAD-check an external document link; returns an error message or None"""
    try:
        response = requests.head(url, timeout=5, allow_redirects=True)
    except requests.exceptions.RequestException as e:
        logger.warning(f"Failed to verify document URL {url}: {str(e)}")
        return 'Document URL could not be reached'
    if response.status_code == 404:
        return 'Document URL returns 404'
    if response.status_code >= 400:
        logger.warning(f"Document URL {url} returned {response.status_code}")
    return None


@api_view(['GET', 'POST', 'DELETE'])
@permission_classes([IsAuthenticated])
@parser_classes([JSONParser, MultiPartParser, FormParser])
def asset_documents(request, pk):
    """List, upload or delete documents attached to an asset"""
    asset = get_object_or_404(Asset, pk=pk)

    if request.method == 'GET':
        documents = asset.documents.select_related('uploaded_by')
        return Response(AssetDocumentSerializer(documents, many=True).data)

    if request.method == 'POST':
        upload = request.FILES.get('file')
        file_url = str(request.data.get('file_url', '')).strip()
        if not upload and not file_url:
            return Response({'error': 'A file or file_url is required'}, status=status.HTTP_400_BAD_REQUEST)

        if upload:
            if upload.size > settings.ASSET_DOCUMENT_MAX_SIZE:
                return Response({'error': 'File is too large'}, status=status.HTTP_400_BAD_REQUEST)
            document = AssetDocument(
                asset=asset,
                file=upload,
                file_name=request.data.get('file_name') or upload.name,
                file_type=getattr(upload, 'content_type', '') or '',
                file_size=upload.size,
                uploaded_by=request.user,
            )
        else:
            if is_truthy(request.data.get('verify_url')):
                error = _verify_document_url(file_url)
                if error:
                    return Response({'error': error}, status=status.HTTP_400_BAD_REQUEST)
            document = AssetDocument(
                asset=asset,
                file_url=file_url,
                file_name=request.data.get('file_name') or file_url.rsplit('/', 1)[-1] or 'document',
                file_type=request.data.get('file_type', ''),
                file_size=parse_int(request.data.get('file_size'), 0) or 0,
                uploaded_by=request.user,
            )

        with transaction.atomic():
            document.save()
            AssetHistory.objects.create(
                asset=asset, user=request.user, action='DOCUMENT_ADDED',
                details={'document_id': document.id, 'file_name': document.file_name},
            )
        create_audit_log(request, 'document_upload', 'AssetDocument', document.id,
                         object_name=document.file_name, object_reference=asset.asset_id)
        return Response(AssetDocumentSerializer(document).data, status=status.HTTP_201_CREATED)

    document_id = request.query_params.get('document_id') or request.data.get('document_id')
    if not document_id:
        return Response({'error': 'document_id is required'}, status=status.HTTP_400_BAD_REQUEST)
    document = AssetDocument.objects.filter(pk=parse_int(document_id), asset=asset).first()
    if not document:
        return Response({'error': 'Document not found for this asset'}, status=status.HTTP_404_NOT_FOUND)
    if not (is_admin_or_manager(request.user) or document.uploaded_by_id == request.user.id):
        return Response({'error': 'You can only delete documents you uploaded'}, status=status.HTTP_403_FORBIDDEN)

    with transaction.atomic():
        AssetHistory.objects.create(
            asset=asset, user=request.user, action='DOCUMENT_DELETED',
            details={'document_id': document.id, 'file_name': document.file_name},
        )
        if document.file:
            document.file.delete(save=False)
        create_audit_log(request, 'document_delete', 'AssetDocument', document.id,
                         object_name=document.file_name, object_reference=asset.asset_id)
        document.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


def _copy_document(document, asset, user):
    """Attach a copy of a document to another asset; stored files are copied, never shared"""
    copy = AssetDocument(
        asset=asset, file_url=document.file_url, file_name=document.file_name,
        file_type=document.file_type, file_size=document.file_size, uploaded_by=user,
    )
    if document.file:
        with document.file.open('rb') as source:
            copy.file.save(os.path.basename(document.file.name), ContentFile(source.read()), save=False)
    copy.save()
    return copy


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def asset_duplicate(request):
    """Create `count` copies of an asset, each with fresh identifiers"""
    count = parse_int(request.data.get('count'))
    if count is None or count < 1:
        return Response({'error': 'count must be a positive integer'}, status=status.HTTP_400_BAD_REQUEST)
    if count > MAX_DUPLICATE_COUNT:
        return Response({'error': f'count cannot exceed {MAX_DUPLICATE_COUNT}'}, status=status.HTTP_400_BAD_REQUEST)

    original = None
    original_id = request.data.get('original_asset_id')
    if original_id:
        original = Asset.objects.filter(pk=parse_int(original_id)).first()
        if not original:
            return Response({'error': 'Original asset not found'}, status=status.HTTP_404_NOT_FOUND)

    def pick(field, default=''):
        value = request.data.get(field)
        if value not in (None, ''):
            return value
        return getattr(original, field, default) if original else default

    fields = {
        'name': str(pick('name')).strip(),
        'type': str(pick('type')).strip().upper(),
        'floor_number': str(pick('floor_number')).strip(),
        'room_number': str(pick('room_number')).strip(),
    }
    missing = [field for field, value in fields.items() if not value]
    vendor_id = request.data.get('vendor') or (original.vendor_id if original else None)
    if not vendor_id:
        missing.append('vendor')
    if missing:
        return Response({'error': f'Missing required fields: {", ".join(missing)}'}, status=status.HTTP_400_BAD_REQUEST)
    if fields['type'] not in [choice[0] for choice in Asset.TYPE_CHOICES]:
        return Response({'error': 'Invalid asset type'}, status=status.HTTP_400_BAD_REQUEST)
    vendor = Vendor.objects.filter(pk=parse_int(vendor_id)).first()
    if not vendor:
        return Response({'error': 'Vendor not found'}, status=status.HTTP_400_BAD_REQUEST)

    created = []
    reserved = set()
    with transaction.atomic():
        for index in range(count):
            asset_id, barcode = generate_unique_asset_identifiers(fields['type'], reserved)
            asset = Asset.objects.create(
                asset_id=asset_id,
                barcode=barcode,
                vendor=vendor,
                owner=request.user,
                description=pick('description'),
                purchase_amount=parse_decimal(pick('purchase_amount', None)),
                purchase_date=parse_date(pick('purchase_date', None)),
                image_url=pick('image_url'),
                location=original.location if original else None,
                **fields,
            )
            AssetHistory.objects.create(
                asset=asset, user=request.user, action='REGISTERED',
                details={
                    'duplicated': True,
                    'original_asset_id': original.asset_id if original else None,
                    'floor_number': asset.floor_number,
                    'room_number': asset.room_number,
                },
            )
            if index == 0 and original:
                for document in original.documents.all():
                    _copy_document(document, asset, request.user)
            create_audit_log(request, 'asset_duplicate', 'Asset', asset.id,
                             changes={'original_asset_id': original.asset_id if original else None},
                             object_name=asset.name, object_reference=asset.asset_id, barcode=asset.barcode)
            created.append(asset)

    logger.info(f"User {request.user.username} duplicated {count} asset(s) of '{fields['name']}'")
    return Response({
        'count': len(created),
        'assets': AssetListSerializer(created, many=True).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def asset_label(request, pk):
    """Printable Code128 label for an asset"""
    asset = get_object_or_404(Asset.objects.select_related('vendor'), pk=pk)
    subtitle_parts = [asset.vendor.name]
    if asset.purchase_date:
        subtitle_parts.append(asset.purchase_date.isoformat())
    footer = f"Floor {asset.floor_number}, Room {asset.room_number}" if asset.floor_number else None
    try:
        image = generate_label_image(asset.name, asset.barcode, subtitle=' '.join(subtitle_parts), footer=footer)
    except Exception as e:
        logger.error(f"Failed to generate label for asset {asset.asset_id}: {str(e)}", exc_info=True)
        return Response({'error': f'Failed to generate label: {str(e)}'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response({'asset_id': asset.asset_id, 'barcode': asset.barcode, 'image': image})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def asset_stats(request):
    """Totals by status and type with active and disposed value"""
    assets = Asset.objects.all()
    if not is_admin_or_manager(request.user):
        assets = assets.filter(owner=request.user)

    active = assets.exclude(status='DISPOSED')
    disposed = assets.filter(status='DISPOSED')
    by_status = {row['status']: row['count'] for row in assets.values('status').annotate(count=Count('id'))}
    by_type = {row['type']: row['count'] for row in active.values('type').annotate(count=Count('id'))}
    return Response({
        'total': assets.count(),
        'active': active.count(),
        'disposed': disposed.count(),
        'by_status': by_status,
        'by_type': by_type,
        'total_value': active.aggregate(total=Sum('purchase_amount'))['total'] or Decimal('0.00'),
        'disposed_value': disposed.aggregate(total=Sum('purchase_amount'))['total'] or Decimal('0.00'),
        'currency': settings.DEFAULT_CURRENCY,
    })


def _analytics_rows(asset):
    tickets = list(asset.tickets.all())
    movements = list(asset.movements.all())
    history = list(asset.history.all())
    return tickets, movements, history


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def asset_health(request, pk):
    asset = get_object_or_404(Asset, pk=pk)
    tickets, movements, history = _analytics_rows(asset)
    return Response(calculate_health_score(asset, tickets, movements, history))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def asset_maintenance_predictions(request, pk):
    asset = get_object_or_404(Asset, pk=pk)
    predictions = predict_maintenance(asset, list(asset.tickets.all()))
    return Response({'asset_id': asset.asset_id, 'predictions': predictions})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def asset_lifecycle(request, pk):
    asset = get_object_or_404(Asset, pk=pk)
    tickets, movements, history = _analytics_rows(asset)
    return Response({'asset_id': asset.asset_id, 'events': build_lifecycle_events(asset, tickets, movements, history)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def asset_tco(request, pk):
    asset = get_object_or_404(Asset, pk=pk)
    return Response(calculate_tco(asset, list(asset.tickets.all())))
