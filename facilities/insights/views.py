import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.utils import timezone
from facilities.core.cache_utils import (
    cached_query, ML_PREDICTIONS_PREFIX, ML_PREDICTIONS_CACHE_TTL,
    DASHBOARD_STATS_PREFIX, DASHBOARD_STATS_CACHE_TTL,
)
from facilities.core.models import User
from facilities.core.utils import create_audit_log, is_truthy
from . import analysis
from .models import NotificationRead

logger = logging.getLogger('facilities.insights')


@cached_query(cache_ttl=ML_PREDICTIONS_CACHE_TTL, key_prefix=ML_PREDICTIONS_PREFIX)
def build_ml_predictions(today_iso):
    ml_analysis = analysis.build_ml_analysis()
    insights = analysis.build_insights(
        ml_analysis,
        analysis.find_kitchen_anomalies(),
        analysis.find_asset_disposals(),
        analysis.find_location_overpurchasing(),
    )
    return {'ml_analysis': ml_analysis, 'insights': insights}


@cached_query(cache_ttl=DASHBOARD_STATS_CACHE_TTL, key_prefix=DASHBOARD_STATS_PREFIX)
def build_dashboard_stats(user_id, today_iso):
    return analysis.build_dashboard(User.objects.get(pk=user_id))


def _ml_predictions(request):
    return build_ml_predictions(
        timezone.localdate().isoformat(), refresh=is_truthy(request.query_params.get('refresh'))
    )


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def ml_predictions(request):
    """
    Consumption predictions, optimisations, budget forecasts and anomalies.

    ?category= and ?severity= narrow the insight item lists.
    """
    try:
        data = _ml_predictions(request)
    except Exception as e:
        logger.error(f"Error generating ML predictions: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    insights = analysis.filter_insights(
        data['insights'],
        category=request.query_params.get('category'),
        severity=request.query_params.get('severity'),
    )
    return Response({'ml_analysis': data['ml_analysis'], 'insights': insights})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def ai_analysis(request):
    """Recommendation feed with counts per severity"""
    try:
        data = _ml_predictions(request)
        recommendations = analysis.build_recommendations(data['insights'])
    except Exception as e:
        logger.error(f"Error generating AI analysis: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    category = (request.query_params.get('category') or '').strip().lower()
    severity = (request.query_params.get('severity') or '').strip().lower()
    if category:
        recommendations = [item for item in recommendations if item['category'] == category]
    if severity:
        recommendations = [item for item in recommendations if item['severity'] == severity]

    return Response({
        'recommendations': recommendations,
        'counts': analysis.severity_counts(recommendations),
        'total': len(recommendations),
        'generated_at': timezone.now().isoformat(),
    })


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def notifications(request):
    """
    GET: derived notifications with the user's read state
    PUT: {id, is_read} marks one notification, {mark_all: true} marks all read
    """
    if request.method == 'GET':
        feed = analysis.build_notifications()
        read_ids = set(
            NotificationRead.objects.filter(user=request.user).values_list('notification_id', flat=True)
        )
        for item in feed:
            item['is_read'] = item['id'] in read_ids
        if is_truthy(request.query_params.get('unread')):
            feed = [item for item in feed if not item['is_read']]
        return Response({
            'notifications': feed,
            'unread_count': sum(1 for item in feed if not item['is_read']),
        })

    if is_truthy(request.data.get('mark_all')):
        ids = [item['id'] for item in analysis.build_notifications()]
        already = set(
            NotificationRead.objects.filter(user=request.user, notification_id__in=ids)
            .values_list('notification_id', flat=True)
        )
        NotificationRead.objects.bulk_create([
            NotificationRead(user=request.user, notification_id=notification_id)
            for notification_id in ids if notification_id not in already
        ])
        logger.info(f"User {request.user.username} marked {len(ids)} notifications read")
        create_audit_log(request, 'notifications_read', 'NotificationRead', request.user.id,
                         changes={'count': len(ids)}, object_name=request.user.username)
        return Response({'success': True, 'marked': len(ids)})

    notification_id = str(request.data.get('id') or '').strip()
    if not notification_id:
        return Response({'error': 'Notification id is required'}, status=status.HTTP_400_BAD_REQUEST)

    is_read = is_truthy(request.data.get('is_read', True))
    if is_read:
        NotificationRead.objects.get_or_create(user=request.user, notification_id=notification_id)
    else:
        NotificationRead.objects.filter(user=request.user, notification_id=notification_id).delete()
    logger.info(f"User {request.user.username} marked notification {notification_id} "
                f"{'read' if is_read else 'unread'}")
    return Response({'success': True, 'id': notification_id, 'is_read': is_read})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_stats(request):
    """Asset, food, vehicle and ticket headline figures"""
    try:
        data = build_dashboard_stats(
            request.user.id, timezone.localdate().isoformat(),
            refresh=is_truthy(request.query_params.get('refresh')),
        )
    except Exception as e:
        logger.error(f"Error building dashboard stats: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response(data)
