import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.db import IntegrityError
from django.db.models import Q
from facilities.core.utils import is_admin_or_manager, is_truthy
from .models import Location
from .serializers import LocationSerializer

logger = logging.getLogger('facilities.locations')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def location_list_create(request):
    """List locations or create a new location (create requires admin/manager)"""
    try:
        if request.method == 'GET':
            locations = Location.objects.all()
            if not is_truthy(request.query_params.get('include_inactive')):
                locations = locations.filter(is_active=True)

            search = request.query_params.get('search', '').strip()
            if search:
                locations = locations.filter(
                    Q(name__icontains=search) |
                    Q(building__icontains=search) |
                    Q(room_number__icontains=search) |
                    Q(description__icontains=search)
                )

            floor = request.query_params.get('floor')
            if floor:
                locations = locations.filter(floor_number=floor)

            serializer = LocationSerializer(locations, many=True)
            return Response(serializer.data)

        if not is_admin_or_manager(request.user):
            logger.warning(f"User {request.user.username} attempted to create location without privileges")
            return Response({'error': 'Only administrators can create locations'}, status=status.HTTP_403_FORBIDDEN)

        serializer = LocationSerializer(data=request.data)
        if serializer.is_valid():
            try:
                location = serializer.save()
                logger.info(f"Location '{location}' created by {request.user.username}")
                return Response(serializer.data, status=status.HTTP_201_CREATED)
            except IntegrityError as e:
                logger.error(f"IntegrityError creating location: {str(e)}", exc_info=True)
                return Response({'error': 'A location with this building, floor and room already exists'}, status=status.HTTP_400_BAD_REQUEST)

        logger.warning(f"Location creation validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Unexpected error in location_list_create: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def location_detail(request, pk):
    """Retrieve, update or delete a location (update/delete requires admin/manager)"""
    location = get_object_or_404(Location, pk=pk)

    if request.method == 'GET':
        return Response(LocationSerializer(location).data)

    if not is_admin_or_manager(request.user):
        logger.warning(f"User {request.user.username} attempted to modify location {pk} without privileges")
        return Response({'error': 'Only administrators can modify locations'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = LocationSerializer(location, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            try:
                serializer.save()
            except IntegrityError:
                return Response({'error': 'A location with this building, floor and room already exists'}, status=status.HTTP_400_BAD_REQUEST)
            logger.info(f"Location {pk} updated by {request.user.username}")
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    logger.info(f"User {request.user.username} deleting location {pk} ({location})")
    location.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)
