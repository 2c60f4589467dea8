import logging
import math
from decimal import Decimal
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.conf import settings
from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from django.db import transaction
from django.db.models import Q, Sum
from django.utils import timezone
from facilities.core.cache_utils import cached_query, RENTAL_COSTS_PREFIX, RENTAL_COSTS_CACHE_TTL
from facilities.core.utils import (
    create_audit_log, is_admin_or_manager, is_truthy, parse_decimal, parse_int,
    parse_datetime, next_daily_sequence,
)
from .models import Vehicle, VehicleRental, VehicleTrip, VehicleLocation, VehicleMaintenance
from .serializers import (
    VehicleSerializer, VehicleRentalSerializer, VehicleTripSerializer, VehicleLocationSerializer,
    VehicleMaintenanceSerializer,
)
from .tracking import validate_coordinates, path_distance_km, detect_stop_points, format_duration

User = get_user_model()

logger = logging.getLogger('facilities.vehicles')

PRIVILEGED_ONLY = {'error': 'Only administrators and managers can manage vehicles'}
VEHICLE_STATUSES = [choice[0] for choice in Vehicle.STATUS_CHOICES]


def visible_vehicles(user):
    queryset = Vehicle.objects.all()
    if is_admin_or_manager(user):
        return queryset
    return queryset.filter(rentals__user=user, rentals__status='ACTIVE').distinct()


def active_rental_for(user):
    """The user's active rental of a vehicle that is currently RENTED"""
    return VehicleRental.objects.select_related('vehicle').filter(
        user=user, status='ACTIVE', vehicle__status='RENTED'
    ).order_by('-start_date').first()


def _trip_points(trip):
    return [
        (float(point.latitude), float(point.longitude), point.recorded_at)
        for point in trip.points.all()
    ]


def _close_trip(trip, latitude, longitude, completion_status, auto_ended=False, now=None):
    """Record the end point and compute distance over the trip's points"""
    now = now or timezone.now()
    VehicleLocation.objects.create(
        vehicle=trip.vehicle, user=trip.user, trip=trip,
        latitude=Decimal(str(round(latitude, 6))), longitude=Decimal(str(round(longitude, 6))),
        recorded_at=now,
    )
    points = _trip_points(trip)
    trip.end_time = now
    trip.end_latitude = Decimal(str(round(latitude, 6)))
    trip.end_longitude = Decimal(str(round(longitude, 6)))
    trip.distance = Decimal(str(round(path_distance_km(points), 3)))
    trip.completion_status = completion_status
    trip.is_auto_ended = auto_ended
    metadata = dict(trip.metadata or {})
    metadata['point_count'] = len(points)
    metadata['stops'] = detect_stop_points(points)
    trip.metadata = metadata
    trip.save()
    return trip


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def vehicle_list_create(request):
    """List vehicles visible to the user or add a vehicle"""
    if request.method == 'GET':
        vehicles = visible_vehicles(request.user)
        status_filter = request.query_params.get('status')
        if status_filter:
            vehicles = vehicles.filter(status=status_filter.upper())
        type_filter = request.query_params.get('type')
        if type_filter:
            vehicles = vehicles.filter(type=type_filter.upper())
        search = request.query_params.get('search', '').strip()
        if search:
            vehicles = vehicles.filter(
                Q(name__icontains=search) | Q(plate_number__icontains=search) | Q(make__icontains=search)
            )
        return Response(VehicleSerializer(vehicles, many=True).data)

    if not is_admin_or_manager(request.user):
        return Response(PRIVILEGED_ONLY, status=status.HTTP_403_FORBIDDEN)
    serializer = VehicleSerializer(data=request.data)
    if not serializer.is_valid():
        logger.warning(f"Vehicle validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    vehicle = serializer.save()
    logger.info(f"Vehicle {vehicle.plate_number} added by {request.user.username}")
    create_audit_log(request, 'create', 'Vehicle', vehicle.id, object_name=vehicle.name,
                     object_reference=vehicle.plate_number)
    return Response(VehicleSerializer(vehicle).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def vehicle_detail(request, pk):
    """Retrieve, update or delete a vehicle"""
    vehicle = get_object_or_404(Vehicle, pk=pk)

    if request.method == 'GET':
        if not visible_vehicles(request.user).filter(pk=vehicle.pk).exists():
            return Response({'error': 'You do not have access to this vehicle'}, status=status.HTTP_403_FORBIDDEN)
        data = VehicleSerializer(vehicle).data
        rental = vehicle.rentals.filter(status='ACTIVE').select_related('user', 'vehicle').first()
        data['active_rental'] = VehicleRentalSerializer(rental).data if rental else None
        return Response(data)

    if not is_admin_or_manager(request.user):
        return Response(PRIVILEGED_ONLY, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'DELETE':
        if vehicle.rentals.filter(status='ACTIVE').exists():
            return Response({'error': 'Vehicle has an active rental'}, status=status.HTTP_409_CONFLICT)
        logger.info(f"User {request.user.username} deleting vehicle {vehicle.plate_number}")
        create_audit_log(request, 'delete', 'Vehicle', vehicle.id, object_name=vehicle.name,
                         object_reference=vehicle.plate_number)
        vehicle.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = VehicleSerializer(vehicle, data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    vehicle = serializer.save()
    create_audit_log(request, 'update', 'Vehicle', vehicle.id, changes=dict(request.data),
                     object_name=vehicle.name, object_reference=vehicle.plate_number)
    return Response(VehicleSerializer(vehicle).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def vehicle_status(request, pk):
    """Change a vehicle's status"""
    vehicle = get_object_or_404(Vehicle, pk=pk)
    if not is_admin_or_manager(request.user):
        return Response(PRIVILEGED_ONLY, status=status.HTTP_403_FORBIDDEN)
    new_status = str(request.data.get('status', '')).upper()
    if new_status not in VEHICLE_STATUSES:
        return Response({'error': f'Status must be one of: {", ".join(VEHICLE_STATUSES)}'}, status=status.HTTP_400_BAD_REQUEST)
    if new_status == 'RENTED':
        return Response({'error': 'Use the assign endpoint to rent a vehicle'}, status=status.HTTP_400_BAD_REQUEST)
    if vehicle.rentals.filter(status='ACTIVE').exists():
        return Response({'error': 'End the active rental before changing the status'}, status=status.HTTP_409_CONFLICT)

    old_status = vehicle.status
    vehicle.status = new_status
    vehicle.save(update_fields=['status', 'updated_at'])
    logger.info(f"Vehicle {vehicle.plate_number} status {old_status} -> {new_status} by {request.user.username}")
    create_audit_log(request, 'update', 'Vehicle', vehicle.id,
                     changes={'status': {'from': old_status, 'to': new_status}},
                     object_name=vehicle.name, object_reference=vehicle.plate_number)
    return Response(VehicleSerializer(vehicle).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def vehicle_maintenance(request, pk):
    """List or record maintenance for a vehicle"""
    vehicle = get_object_or_404(Vehicle, pk=pk)
    if request.method == 'GET':
        records = vehicle.maintenance_records.all()
        total = records.aggregate(total=Sum('cost'))['total'] or Decimal('0')
        return Response({
            'vehicle': vehicle.id,
            'total_cost': float(total),
            'records': VehicleMaintenanceSerializer(records, many=True).data,
        })

    if not is_admin_or_manager(request.user):
        return Response(PRIVILEGED_ONLY, status=status.HTTP_403_FORBIDDEN)
    serializer = VehicleMaintenanceSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    with transaction.atomic():
        record = serializer.save(vehicle=vehicle, created_by=request.user)
        if is_truthy(request.data.get('set_status')) and vehicle.status == 'AVAILABLE':
            vehicle.status = 'MAINTENANCE'
            vehicle.save(update_fields=['status', 'updated_at'])
    logger.info(f"Maintenance recorded for {vehicle.plate_number}: {record.cost}")
    create_audit_log(request, 'create', 'VehicleMaintenance', record.id,
                     changes={'cost': float(record.cost)}, object_name=vehicle.name,
                     object_reference=vehicle.plate_number)
    return Response(VehicleMaintenanceSerializer(record).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def rental_list(request):
    """Active rentals (all for privileged users, otherwise the user's own)"""
    rentals = VehicleRental.objects.select_related('vehicle', 'user')
    status_filter = request.query_params.get('status', 'ACTIVE').upper()
    if status_filter != 'ALL':
        rentals = rentals.filter(status=status_filter)
    if not is_admin_or_manager(request.user):
        rentals = rentals.filter(user=request.user)
    return Response(VehicleRentalSerializer(rentals, many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def vehicle_assign(request):
    """Rent an available vehicle to a user"""
    if not is_admin_or_manager(request.user):
        return Response(PRIVILEGED_ONLY, status=status.HTTP_403_FORBIDDEN)

    vehicle_id = request.data.get('vehicle')
    vehicle = Vehicle.objects.filter(pk=parse_int(vehicle_id)).first() if vehicle_id else None
    if not vehicle:
        return Response({'error': 'Vehicle not found'}, status=status.HTTP_400_BAD_REQUEST)
    user_id = request.data.get('user')
    user = User.objects.filter(pk=parse_int(user_id)).first() if user_id else None
    if not user:
        return Response({'error': 'User not found'}, status=status.HTTP_400_BAD_REQUEST)
    start_date = parse_datetime(request.data.get('start_date'))
    end_date = parse_datetime(request.data.get('end_date'))
    if not start_date or not end_date:
        return Response({'error': 'Start and end dates are required'}, status=status.HTTP_400_BAD_REQUEST)
    if end_date <= start_date:
        return Response({'error': 'End date must be after the start date'}, status=status.HTTP_400_BAD_REQUEST)
    daily_rate = parse_decimal(request.data.get('daily_rate'))
    if daily_rate is not None and daily_rate < 0:
        return Response({'error': 'Daily rate cannot be negative'}, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        vehicle = Vehicle.objects.select_for_update().get(pk=vehicle.pk)
        if vehicle.status != 'AVAILABLE':
            return Response({'error': f'Vehicle is not available (status {vehicle.status})'}, status=status.HTTP_400_BAD_REQUEST)
        rental = VehicleRental.objects.create(
            display_id=next_daily_sequence(VehicleRental, 'RNT'),
            vehicle=vehicle,
            user=user,
            start_date=start_date,
            end_date=end_date,
            daily_rate=daily_rate,
            notes=request.data.get('notes', ''),
        )
        vehicle.status = 'RENTED'
        vehicle.save(update_fields=['status', 'updated_at'])

    logger.info(f"Vehicle {vehicle.plate_number} assigned to {user.username} ({rental.display_id})")
    create_audit_log(request, 'vehicle_assign', 'VehicleRental', rental.id,
                     changes={'vehicle': vehicle.id, 'user': user.id},
                     object_name=vehicle.name, object_reference=rental.display_id)
    return Response(VehicleRentalSerializer(rental).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def rental_end(request, pk):
    """
    Complete an active rental.

    Billed days are the ceiling of the rental span in days, at least one.
    """
    rental = get_object_or_404(VehicleRental.objects.select_related('vehicle', 'user'), pk=pk)
    if not (is_admin_or_manager(request.user) or rental.user_id == request.user.id):
        return Response({'error': 'You do not have access to this rental'}, status=status.HTTP_403_FORBIDDEN)
    if rental.status != 'ACTIVE':
        return Response({'error': f'Rental is not active (status {rental.status})'}, status=status.HTTP_400_BAD_REQUEST)

    end_date = parse_datetime(request.data.get('end_date')) or timezone.now()
    span_days = abs((end_date - rental.start_date).total_seconds()) / 86400
    days = max(math.ceil(span_days), 1)
    daily_rate = rental.effective_daily_rate
    total = daily_rate * days

    with transaction.atomic():
        rental.status = 'COMPLETED'
        rental.end_date = end_date
        rental.ended_at = timezone.now()
        rental.daily_rate = daily_rate
        rental.total_cost = total
        rental.save()
        vehicle = rental.vehicle
        vehicle.status = 'AVAILABLE'
        vehicle.save(update_fields=['status', 'updated_at'])

    logger.info(f"Rental {rental.display_id} ended: {days} days, total {total}")
    create_audit_log(request, 'vehicle_return', 'VehicleRental', rental.id,
                     changes={'days': days, 'total_cost': float(total)},
                     object_name=vehicle.name, object_reference=rental.display_id)
    data = VehicleRentalSerializer(rental).data
    data['days'] = days
    return Response(data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def trip_start(request):
    """
    Start a trip on the user's rented vehicle.

    An open trip is closed as INCOMPLETE at the new start point first.
    """
    try:
        latitude, longitude = validate_coordinates(request.data.get('latitude'), request.data.get('longitude'))
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    rental = active_rental_for(request.user)
    if not rental:
        return Response({'error': 'No active rental found for this user'}, status=status.HTTP_400_BAD_REQUEST)

    now = timezone.now()
    with transaction.atomic():
        open_trip = VehicleTrip.objects.filter(user=request.user, end_time__isnull=True).first()
        auto_closed = None
        if open_trip:
            auto_closed = _close_trip(open_trip, latitude, longitude, 'INCOMPLETE', auto_ended=True, now=now)
            logger.warning(f"Open trip {open_trip.id} auto-ended for {request.user.username}")

        trip = VehicleTrip.objects.create(
            vehicle=rental.vehicle,
            user=request.user,
            rental=rental,
            start_time=now,
            start_latitude=Decimal(str(round(latitude, 6))),
            start_longitude=Decimal(str(round(longitude, 6))),
            is_auto_started=is_truthy(request.data.get('is_auto_started')),
            metadata=request.data.get('metadata') or {},
        )
        VehicleLocation.objects.create(
            vehicle=rental.vehicle, user=request.user, trip=trip,
            latitude=trip.start_latitude, longitude=trip.start_longitude, recorded_at=now,
        )

    logger.info(f"Trip {trip.id} started by {request.user.username} on {rental.vehicle.plate_number}")
    return Response({
        'trip': VehicleTripSerializer(trip).data,
        'auto_ended_trip': auto_closed.id if auto_closed else None,
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def trip_end(request):
    """End the user's open trip and compute its distance"""
    try:
        latitude, longitude = validate_coordinates(request.data.get('latitude'), request.data.get('longitude'))
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    trip = VehicleTrip.objects.select_related('vehicle').filter(user=request.user, end_time__isnull=True).first()
    if not trip:
        return Response({'error': 'No active trip found'}, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        trip = _close_trip(trip, latitude, longitude, 'COMPLETED',
                           auto_ended=is_truthy(request.data.get('is_auto_ended')))
    logger.info(f"Trip {trip.id} ended by {request.user.username}: {trip.distance} km")
    return Response(VehicleTripSerializer(trip).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def location_update(request):
    """Record a GPS point for the user's rented vehicle"""
    try:
        latitude, longitude = validate_coordinates(request.data.get('latitude'), request.data.get('longitude'))
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    vehicle_id = request.data.get('vehicle')
    if vehicle_id:
        vehicle = Vehicle.objects.filter(pk=parse_int(vehicle_id)).first()
        if not vehicle:
            return Response({'error': 'Vehicle not found'}, status=status.HTTP_404_NOT_FOUND)
        if not (is_admin_or_manager(request.user) or
                vehicle.rentals.filter(user=request.user, status='ACTIVE').exists()):
            return Response({'error': 'You do not have access to this vehicle'}, status=status.HTTP_403_FORBIDDEN)
    else:
        rental = active_rental_for(request.user)
        if not rental:
            return Response({'error': 'No active rental found for this user'}, status=status.HTTP_400_BAD_REQUEST)
        vehicle = rental.vehicle

    trip = VehicleTrip.objects.filter(user=request.user, vehicle=vehicle, end_time__isnull=True).first()
    point = VehicleLocation.objects.create(
        vehicle=vehicle,
        user=request.user,
        trip=trip,
        latitude=Decimal(str(round(latitude, 6))),
        longitude=Decimal(str(round(longitude, 6))),
        recorded_at=parse_datetime(request.data.get('timestamp')) or timezone.now(),
    )
    return Response(VehicleLocationSerializer(point).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def trip_stats(request):
    """Totals for completed trips on the user's current vehicle"""
    rental = active_rental_for(request.user)
    if not rental:
        return Response({
            'vehicle': None, 'trip_count': 0, 'total_distance': 0.0,
            'total_duration_ms': 0, 'total_duration': format_duration(0),
        })

    trips = VehicleTrip.objects.filter(user=request.user, vehicle=rental.vehicle, completion_status='COMPLETED')
    total_ms = sum(trip.duration_ms or 0 for trip in trips)
    total_distance = trips.aggregate(total=Sum('distance'))['total'] or Decimal('0')
    return Response({
        'vehicle': {'id': rental.vehicle.id, 'name': rental.vehicle.name, 'plate_number': rental.vehicle.plate_number},
        'trip_count': trips.count(),
        'total_distance': round(float(total_distance), 3),
        'total_duration_ms': total_ms,
        'total_duration': format_duration(total_ms),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def trip_history(request):
    """Trips for the user; privileged users may pass ?user="""
    trips = VehicleTrip.objects.select_related('vehicle', 'user')
    user_filter = request.query_params.get('user')
    if is_admin_or_manager(request.user):
        if user_filter:
            trips = trips.filter(user_id=parse_int(user_filter))
    else:
        trips = trips.filter(user=request.user)
    vehicle_filter = request.query_params.get('vehicle')
    if vehicle_filter:
        trips = trips.filter(vehicle_id=parse_int(vehicle_filter))
    limit = min(max(parse_int(request.query_params.get('limit'), 50), 1), 500)
    return Response(VehicleTripSerializer(trips[:limit], many=True).data)


@cached_query(cache_ttl=RENTAL_COSTS_CACHE_TTL, key_prefix=RENTAL_COSTS_PREFIX)
def build_rental_costs(month_key):
    today = timezone.localdate()
    month_start = today.replace(day=1)
    year_start = today.replace(month=1, day=1)

    monthly_rental = Vehicle.objects.aggregate(total=Sum('rental_amount'))['total'] or Decimal('0')
    maintenance = VehicleMaintenance.objects.all()
    month_maintenance = maintenance.filter(maintenance_date__gte=month_start, maintenance_date__lte=today) \
        .aggregate(total=Sum('cost'))['total'] or Decimal('0')
    year_maintenance = maintenance.filter(maintenance_date__gte=year_start, maintenance_date__lte=today) \
        .aggregate(total=Sum('cost'))['total'] or Decimal('0')
    yearly_rental = monthly_rental * 12

    return {
        'month': month_key,
        'monthly_rental_total': float(monthly_rental),
        'yearly_rental_projection': float(yearly_rental),
        'maintenance_month_to_date': float(month_maintenance),
        'maintenance_year_to_date': float(year_maintenance),
        'monthly_total': float(monthly_rental + month_maintenance),
        'yearly_total': float(yearly_rental + year_maintenance),
        'vehicle_count': Vehicle.objects.count(),
        'currency': settings.DEFAULT_CURRENCY,
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def rental_costs(request):
    """Fleet rental and maintenance costs"""
    try:
        data = build_rental_costs(
            timezone.localdate().strftime('%Y-%m'), refresh=is_truthy(request.query_params.get('refresh'))
        )
    except Exception as e:
        logger.error(f"Error building rental costs: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response(data)
