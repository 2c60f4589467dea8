import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from django.db import transaction, IntegrityError
from django.db.models import Q
from django.utils import timezone
from facilities.core.utils import create_audit_log, is_admin_or_manager, is_truthy, parse_int
from facilities.food_supply import analytics as food_analytics
from facilities.food_supply.models import FoodSupply, KitchenFoodSupply, KitchenBarcode
from facilities.food_supply.serializers import KitchenBarcodeSerializer, KitchenFoodSupplySerializer
from . import analytics
from .models import Kitchen, KitchenAssignment
from .serializers import KitchenSerializer, KitchenAssignmentSerializer
from .utils import visible_kitchens, can_access_kitchen, build_kitchen_barcode

User = get_user_model()

logger = logging.getLogger('facilities.kitchens')

FORBIDDEN_KITCHEN = {'error': 'You are not assigned to this kitchen'}
PRIVILEGED_ONLY = {'error': 'Only administrators and managers can manage kitchens'}


def _history_counts(kitchen):
    return {
        'supplies': food_analytics.kitchen_supplies(kitchen).count(),
        'consumptions': kitchen.consumptions.count(),
        'recipe_usages': kitchen.recipe_usages.count(),
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def kitchen_list_create(request):
    """List visible kitchens or create one"""
    if request.method == 'GET':
        kitchens = visible_kitchens(request.user)
        search = request.query_params.get('search', '').strip()
        if search:
            kitchens = kitchens.filter(Q(name__icontains=search) | Q(description__icontains=search))
        floor = request.query_params.get('floor')
        if floor:
            kitchens = kitchens.filter(floor_number=floor)
        return Response(KitchenSerializer(kitchens, many=True).data)

    if not is_admin_or_manager(request.user):
        return Response(PRIVILEGED_ONLY, status=status.HTTP_403_FORBIDDEN)
    serializer = KitchenSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    kitchen = serializer.save()
    logger.info(f"Kitchen {kitchen.name} created by {request.user.username}")
    create_audit_log(request, 'create', 'Kitchen', kitchen.id, object_name=kitchen.name)
    return Response(KitchenSerializer(kitchen).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def kitchen_detail(request, pk):
    """
    Retrieve, update or delete a kitchen.

    DELETE refuses with 409 while the kitchen has consumption or recipe
    history, unless force=true is passed.
    """
    kitchen = get_object_or_404(Kitchen.objects.select_related('location'), pk=pk)
    if not can_access_kitchen(request.user, kitchen):
        return Response(FORBIDDEN_KITCHEN, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'GET':
        data = KitchenSerializer(kitchen).data
        data['counts'] = _history_counts(kitchen)
        data['assigned_users'] = KitchenAssignmentSerializer(
            kitchen.assignments.select_related('user', 'assigned_by'), many=True
        ).data
        return Response(data)

    if not is_admin_or_manager(request.user):
        return Response(PRIVILEGED_ONLY, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'DELETE':
        counts = _history_counts(kitchen)
        force = is_truthy(request.query_params.get('force'))
        if (counts['consumptions'] or counts['recipe_usages']) and not force:
            return Response({
                'error': 'Kitchen has consumption history. Pass force=true to delete it anyway.',
                'counts': counts,
            }, status=status.HTTP_409_CONFLICT)
        logger.info(f"User {request.user.username} deleting kitchen {kitchen.name} (force={force})")
        create_audit_log(request, 'delete', 'Kitchen', kitchen.id, changes={'counts': counts},
                         object_name=kitchen.name)
        kitchen.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = KitchenSerializer(kitchen, data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    kitchen = serializer.save()
    create_audit_log(request, 'update', 'Kitchen', kitchen.id, changes=dict(request.data), object_name=kitchen.name)
    return Response(KitchenSerializer(kitchen).data)


@api_view(['GET', 'POST', 'DELETE'])
@permission_classes([IsAuthenticated])
def kitchen_assignments(request, pk):
    """List, add or remove users assigned to a kitchen"""
    kitchen = get_object_or_404(Kitchen, pk=pk)
    if request.method == 'GET':
        if not can_access_kitchen(request.user, kitchen):
            return Response(FORBIDDEN_KITCHEN, status=status.HTTP_403_FORBIDDEN)
        assignments = kitchen.assignments.select_related('user', 'assigned_by')
        return Response(KitchenAssignmentSerializer(assignments, many=True).data)

    if not is_admin_or_manager(request.user):
        return Response(PRIVILEGED_ONLY, status=status.HTTP_403_FORBIDDEN)
    user_id = request.data.get('user') or request.query_params.get('user')
    user = User.objects.filter(pk=parse_int(user_id)).first() if user_id else None
    if not user:
        return Response({'error': 'User not found'}, status=status.HTTP_400_BAD_REQUEST)

    if request.method == 'DELETE':
        deleted, _ = KitchenAssignment.objects.filter(kitchen=kitchen, user=user).delete()
        if not deleted:
            return Response({'error': 'User is not assigned to this kitchen'}, status=status.HTTP_404_NOT_FOUND)
        logger.info(f"{user.username} unassigned from kitchen {kitchen.name} by {request.user.username}")
        return Response(status=status.HTTP_204_NO_CONTENT)

    try:
        with transaction.atomic():
            assignment = KitchenAssignment.objects.create(kitchen=kitchen, user=user, assigned_by=request.user)
    except IntegrityError:
        return Response({'error': 'User is already assigned to this kitchen'}, status=status.HTTP_400_BAD_REQUEST)
    logger.info(f"{user.username} assigned to kitchen {kitchen.name} by {request.user.username}")
    return Response(KitchenAssignmentSerializer(assignment).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def kitchen_barcodes(request, pk):
    """List kitchen barcodes or generate them for one or all supplies"""
    kitchen = get_object_or_404(Kitchen, pk=pk)
    if not can_access_kitchen(request.user, kitchen):
        return Response(FORBIDDEN_KITCHEN, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'GET':
        barcodes = kitchen.barcodes.select_related('food_supply', 'kitchen')
        return Response(KitchenBarcodeSerializer(barcodes, many=True).data)

    now = timezone.now()
    if is_truthy(request.data.get('generate_all')):
        existing = kitchen.barcodes.values('food_supply')
        supplies = food_analytics.kitchen_supplies(kitchen).exclude(id__in=existing)
        with transaction.atomic():
            created = [
                KitchenBarcode.objects.create(
                    kitchen=kitchen, food_supply=supply, barcode=build_kitchen_barcode(kitchen, supply, now),
                )
                for supply in supplies
            ]
        logger.info(f"Generated {len(created)} barcodes for kitchen {kitchen.name}")
        return Response({
            'created': len(created),
            'barcodes': KitchenBarcodeSerializer(created, many=True).data,
        }, status=status.HTTP_201_CREATED)

    supply_id = request.data.get('food_supply')
    supply = FoodSupply.objects.filter(pk=parse_int(supply_id)).first() if supply_id else None
    if not supply:
        return Response({'error': 'Food supply not found'}, status=status.HTTP_400_BAD_REQUEST)
    if KitchenBarcode.objects.filter(kitchen=kitchen, food_supply=supply).exists():
        return Response({'error': 'A barcode already exists for this supply in this kitchen'}, status=status.HTTP_400_BAD_REQUEST)
    barcode = KitchenBarcode.objects.create(
        kitchen=kitchen, food_supply=supply, barcode=build_kitchen_barcode(kitchen, supply, now),
    )
    logger.info(f"Barcode {barcode.barcode} created for {supply.name} in {kitchen.name}")
    return Response(KitchenBarcodeSerializer(barcode).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def kitchen_stock(request, pk):
    """Per-kitchen stock rows"""
    kitchen = get_object_or_404(Kitchen, pk=pk)
    if not can_access_kitchen(request.user, kitchen):
        return Response(FORBIDDEN_KITCHEN, status=status.HTTP_403_FORBIDDEN)
    rows = KitchenFoodSupply.objects.filter(kitchen=kitchen).select_related('food_supply')
    return Response(KitchenFoodSupplySerializer(rows, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def kitchen_consumption_summary(request, pk):
    kitchen = get_object_or_404(Kitchen, pk=pk)
    if not can_access_kitchen(request.user, kitchen):
        return Response(FORBIDDEN_KITCHEN, status=status.HTTP_403_FORBIDDEN)
    days = max(parse_int(request.query_params.get('days'), 30), 1)
    try:
        data = analytics.consumption_summary(
            kitchen,
            days=days,
            include_details=is_truthy(request.query_params.get('include_details')),
            include_trends=is_truthy(request.query_params.get('include_trends')),
        )
    except Exception as e:
        logger.error(f"Error building consumption summary for kitchen {pk}: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def kitchen_financial_metrics(request, pk):
    kitchen = get_object_or_404(Kitchen, pk=pk)
    if not can_access_kitchen(request.user, kitchen):
        return Response(FORBIDDEN_KITCHEN, status=status.HTTP_403_FORBIDDEN)
    return Response(analytics.financial_metrics(kitchen))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def kitchen_monthly_consumption(request, pk):
    kitchen = get_object_or_404(Kitchen, pk=pk)
    if not can_access_kitchen(request.user, kitchen):
        return Response(FORBIDDEN_KITCHEN, status=status.HTTP_403_FORBIDDEN)
    months = min(max(parse_int(request.query_params.get('months'), 6), 1), 24)
    return Response(analytics.monthly_consumption(kitchen, months=months))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def kitchen_recent_activity(request, pk):
    kitchen = get_object_or_404(Kitchen, pk=pk)
    if not can_access_kitchen(request.user, kitchen):
        return Response(FORBIDDEN_KITCHEN, status=status.HTTP_403_FORBIDDEN)
    return Response(analytics.recent_activity(kitchen))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def kitchen_waste_reasons(request, pk):
    kitchen = get_object_or_404(Kitchen, pk=pk)
    if not can_access_kitchen(request.user, kitchen):
        return Response(FORBIDDEN_KITCHEN, status=status.HTTP_403_FORBIDDEN)
    return Response(food_analytics.waste_reasons(food_analytics.kitchen_disposals(kitchen)))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def kitchen_waste_patterns(request, pk):
    kitchen = get_object_or_404(Kitchen, pk=pk)
    if not can_access_kitchen(request.user, kitchen):
        return Response(FORBIDDEN_KITCHEN, status=status.HTTP_403_FORBIDDEN)
    return Response(food_analytics.waste_patterns(
        food_analytics.kitchen_supplies(kitchen), food_analytics.kitchen_disposals(kitchen)
    ))
