import logging
from datetime import timedelta
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from django.db import transaction
from django.db.models import Q, Count, Avg
from django.db.models.functions import TruncDate
from django.utils import timezone
from facilities.assets.models import Asset
from facilities.core.utils import create_audit_log, is_admin_or_manager, parse_int
from .models import Ticket, TicketHistory
from .serializers import TicketSerializer, TicketHistorySerializer
from .utils import (
    generate_ticket_identifiers, normalize_status, normalize_priority, record_ticket_change,
)

User = get_user_model()

logger = logging.getLogger('facilities.tickets')

MIN_TITLE_LENGTH = 3
MIN_DESCRIPTION_LENGTH = 10
STATUS_ONLY_FIELDS = {'status', 'priority', 'comment'}


def visible_tickets(user):
    queryset = Ticket.objects.select_related('asset', 'created_by', 'assigned_to')
    if is_admin_or_manager(user):
        return queryset
    return queryset.filter(Q(created_by=user) | Q(assigned_to=user))


def can_view_ticket(user, ticket):
    return is_admin_or_manager(user) or user.id in (ticket.created_by_id, ticket.assigned_to_id)


def validate_ticket_text(title, description):
    """Return an error message for short title/description, or None"""
    if len(title) < MIN_TITLE_LENGTH:
        return f'Title must be at least {MIN_TITLE_LENGTH} characters'
    if len(description) < MIN_DESCRIPTION_LENGTH:
        return f'Description must be at least {MIN_DESCRIPTION_LENGTH} characters'
    return None


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def ticket_list_create(request):
    """List visible tickets or open a new ticket"""
    if request.method == 'GET':
        tickets = visible_tickets(request.user)

        status_filter = request.query_params.get('status')
        if status_filter:
            tickets = tickets.filter(status=status_filter.upper())
        priority_filter = request.query_params.get('priority')
        if priority_filter:
            tickets = tickets.filter(priority=priority_filter.upper())
        asset_filter = request.query_params.get('asset')
        if asset_filter:
            tickets = tickets.filter(asset_id=parse_int(asset_filter))
        assigned_filter = request.query_params.get('assigned_to')
        if assigned_filter:
            tickets = tickets.filter(assigned_to_id=parse_int(assigned_filter))
        search = request.query_params.get('search', '').strip()
        if search:
            tickets = tickets.filter(
                Q(title__icontains=search) | Q(description__icontains=search) | Q(display_id__icontains=search)
            )

        return Response(TicketSerializer(tickets, many=True).data)

    title = str(request.data.get('title', '')).strip()
    description = str(request.data.get('description', '')).strip()
    error = validate_ticket_text(title, description)
    if error:
        return Response({'error': error}, status=status.HTTP_400_BAD_REQUEST)

    asset = None
    asset_id = request.data.get('asset')
    if asset_id:
        asset = Asset.objects.filter(pk=parse_int(asset_id)).first()
        if not asset:
            return Response({'error': 'Asset not found'}, status=status.HTTP_400_BAD_REQUEST)

    assigned_to = None
    assigned_id = request.data.get('assigned_to')
    if assigned_id:
        assigned_to = User.objects.filter(pk=parse_int(assigned_id)).first()

    try:
        with transaction.atomic():
            display_id, barcode = generate_ticket_identifiers()
            ticket = Ticket.objects.create(
                display_id=display_id,
                barcode=barcode,
                title=title,
                description=description,
                priority=normalize_priority(request.data.get('priority')),
                status='OPEN',
                asset=asset,
                created_by=request.user,
                assigned_to=assigned_to,
            )
            TicketHistory.objects.create(
                ticket=ticket, user=request.user, status='OPEN', priority=ticket.priority,
                comment='Ticket created',
            )
    except Exception as e:
        logger.error(f"Unexpected error creating ticket: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    logger.info(f"Ticket {ticket.display_id} created by {request.user.username}")
    create_audit_log(request, 'create', 'Ticket', ticket.id, object_name=ticket.title,
                     object_reference=ticket.display_id, barcode=ticket.barcode)
    return Response(TicketSerializer(ticket).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def ticket_detail(request, pk):
    """Retrieve, update or delete a ticket"""
    ticket = get_object_or_404(Ticket.objects.select_related('asset', 'created_by', 'assigned_to'), pk=pk)
    if not can_view_ticket(request.user, ticket):
        return Response({'error': 'You do not have access to this ticket'}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'GET':
        return Response(TicketSerializer(ticket).data)

    if request.method == 'DELETE':
        if not (is_admin_or_manager(request.user) or ticket.created_by_id == request.user.id):
            return Response({'error': 'Only the creator or an administrator can delete a ticket'}, status=status.HTTP_403_FORBIDDEN)
        logger.info(f"User {request.user.username} deleting ticket {ticket.display_id}")
        create_audit_log(request, 'delete', 'Ticket', ticket.id, object_name=ticket.title,
                         object_reference=ticket.display_id)
        ticket.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    data = request.data
    status_only = set(data.keys()) <= STATUS_ONLY_FIELDS
    if request.method == 'PUT' and not status_only:
        title = str(data.get('title', '')).strip()
        description = str(data.get('description', '')).strip()
        error = validate_ticket_text(title, description)
        if error:
            return Response({'error': error}, status=status.HTTP_400_BAD_REQUEST)
        ticket.title = title
        ticket.description = description
    else:
        if 'title' in data:
            title = str(data.get('title', '')).strip()
            if len(title) < MIN_TITLE_LENGTH:
                return Response({'error': f'Title must be at least {MIN_TITLE_LENGTH} characters'}, status=status.HTTP_400_BAD_REQUEST)
            ticket.title = title
        if 'description' in data:
            description = str(data.get('description', '')).strip()
            if len(description) < MIN_DESCRIPTION_LENGTH:
                return Response({'error': f'Description must be at least {MIN_DESCRIPTION_LENGTH} characters'}, status=status.HTTP_400_BAD_REQUEST)
            ticket.description = description

    old_status = ticket.status
    old_priority = ticket.priority
    if 'status' in data:
        ticket.status = normalize_status(data.get('status'))
    if 'priority' in data:
        ticket.priority = normalize_priority(data.get('priority'))
    if 'assigned_to' in data:
        assigned_id = data.get('assigned_to')
        ticket.assigned_to = User.objects.filter(pk=parse_int(assigned_id)).first() if assigned_id else None
    if 'asset' in data:
        asset_id = data.get('asset')
        if asset_id:
            asset = Asset.objects.filter(pk=parse_int(asset_id)).first()
            if not asset:
                return Response({'error': 'Asset not found'}, status=status.HTTP_400_BAD_REQUEST)
            ticket.asset = asset
        else:
            ticket.asset = None

    if ticket.status == 'RESOLVED' and old_status != 'RESOLVED':
        ticket.resolved_at = timezone.now()
    elif ticket.status in ('OPEN', 'IN_PROGRESS'):
        ticket.resolved_at = None

    with transaction.atomic():
        ticket.save()
        entry = record_ticket_change(ticket, request.user, old_status, old_priority, data.get('comment', ''))

    if old_status != ticket.status:
        logger.info(f"Ticket {ticket.display_id} moved {old_status} -> {ticket.status} by {request.user.username}")
        create_audit_log(request, 'ticket_status', 'Ticket', ticket.id,
                         changes={'status': {'from': old_status, 'to': ticket.status}},
                         object_name=ticket.title, object_reference=ticket.display_id)

    response_data = TicketSerializer(ticket).data
    if entry:
        response_data['history_entry'] = TicketHistorySerializer(entry).data
    return Response(response_data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def ticket_history(request, pk):
    """List history entries (newest first) or add a comment"""
    ticket = get_object_or_404(Ticket, pk=pk)
    if not can_view_ticket(request.user, ticket):
        return Response({'error': 'You do not have access to this ticket'}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'GET':
        entries = ticket.history.select_related('user')
        return Response(TicketHistorySerializer(entries, many=True).data)

    comment = str(request.data.get('comment', '')).strip()
    if not comment:
        return Response({'error': 'Comment is required'}, status=status.HTTP_400_BAD_REQUEST)
    entry = TicketHistory.objects.create(ticket=ticket, user=request.user, comment=comment)
    return Response(TicketHistorySerializer(entry).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def ticket_by_barcode(request):
    """Find a ticket from its printed barcode"""
    code = request.query_params.get('barcode', '').strip()
    if not code:
        return Response({'error': 'Barcode is required'}, status=status.HTTP_400_BAD_REQUEST)
    ticket = Ticket.objects.filter(
        Q(barcode__iexact=code) | Q(display_id__iexact=code)
    ).select_related('asset', 'created_by', 'assigned_to').first()
    if not ticket:
        return Response({'error': 'Ticket not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(TicketSerializer(ticket).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def ticket_stats(request):
    """Ticket counts, distribution and a 30 day timeline"""
    tickets = visible_tickets(request.user)
    since = timezone.now() - timedelta(days=30)

    by_status = {row['status']: row['count'] for row in tickets.values('status').annotate(count=Count('id'))}
    by_priority = {row['priority']: row['count'] for row in tickets.values('priority').annotate(count=Count('id'))}
    timeline = tickets.filter(created_at__gte=since).annotate(
        date=TruncDate('created_at')
    ).values('date').annotate(count=Count('id')).order_by('date')
    average_resolution = TicketHistory.objects.filter(
        ticket__in=tickets, resolution_time__isnull=False
    ).aggregate(avg=Avg('resolution_time'))['avg']

    return Response({
        'counts': {
            'total': tickets.count(),
            'open': by_status.get('OPEN', 0),
            'in_progress': by_status.get('IN_PROGRESS', 0),
            'resolved': by_status.get('RESOLVED', 0),
            'closed': by_status.get('CLOSED', 0),
            'critical': by_priority.get('CRITICAL', 0),
            'high': by_priority.get('HIGH', 0),
        },
        'by_status': by_status,
        'by_priority': by_priority,
        'recent': TicketSerializer(tickets.order_by('-created_at')[:5], many=True).data,
        'tickets_over_time': [
            {'date': row['date'].isoformat(), 'count': row['count']} for row in timeline
        ],
        'with_assets': tickets.filter(asset__isnull=False).count(),
        'without_assets': tickets.filter(asset__isnull=True).count(),
        'average_resolution_time': round(average_resolution) if average_resolution is not None else None,
    })
