import logging
from datetime import timedelta

from django.db.models import Count, Q
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from portal.chat.models import ChatMessage
from portal.clients.models import Client
from portal.content.models import Offer, Update
from portal.content.serializers import UpdateSerializer
from portal.core.cache_utils import DASHBOARD_CACHE_TTL, DASHBOARD_PREFIX, cached_query
from portal.core.permissions import IsAgencyAdmin, IsPortalClient
from portal.tasks.models import Task, ServiceRequest
from portal.tasks.serializers import TaskSerializer

logger = logging.getLogger(__name__)

UPCOMING_DAYS = 7
DASHBOARD_LIST_LIMIT = 5
CLIENT_DASHBOARD_UPDATES = 3


def task_counts(tasks, now):
    """Counts per stored status plus the derived overdue count"""
    return tasks.aggregate(
        total=Count('id'),
        pending=Count('id', filter=Q(status=Task.STATUS_PENDING)),
        in_progress=Count('id', filter=Q(status=Task.STATUS_IN_PROGRESS)),
        completed=Count('id', filter=Q(status=Task.STATUS_COMPLETED)),
        overdue=Count('id', filter=Task.overdue_q(now)),
    )


@cached_query(cache_ttl=DASHBOARD_CACHE_TTL, key_prefix=DASHBOARD_PREFIX)
def build_admin_dashboard():
    now = timezone.now()
    tasks = Task.objects.all()
    open_tasks = ~Q(status=Task.STATUS_COMPLETED)

    by_priority = tasks.aggregate(
        low=Count('id', filter=Q(priority=Task.PRIORITY_LOW)),
        medium=Count('id', filter=Q(priority=Task.PRIORITY_MEDIUM)),
        high=Count('id', filter=Q(priority=Task.PRIORITY_HIGH)),
    )
    counts = task_counts(tasks, now)

    upcoming = tasks.select_related('client').filter(
        open_tasks, due_date__gte=now, due_date__lte=now + timedelta(days=UPCOMING_DAYS)
    ).order_by('due_date')[:DASHBOARD_LIST_LIMIT]
    recently_completed = tasks.select_related('client').filter(
        status=Task.STATUS_COMPLETED
    ).order_by('-completed_at', '-updated_at')[:DASHBOARD_LIST_LIMIT]

    return {
        'total_clients': Client.objects.count(),
        'tasks': {
            'total': counts['total'],
            'by_status': {
                Task.STATUS_PENDING: counts['pending'],
                Task.STATUS_IN_PROGRESS: counts['in_progress'],
                Task.STATUS_COMPLETED: counts['completed'],
            },
            'by_priority': by_priority,
            'high_priority_open': tasks.filter(open_tasks, priority=Task.PRIORITY_HIGH).count(),
            'overdue': counts['overdue'],
        },
        'upcoming': list(TaskSerializer(upcoming, many=True).data),
        'recently_completed': list(TaskSerializer(recently_completed, many=True).data),
        'pending_requests': ServiceRequest.objects.filter(status=ServiceRequest.STATUS_PENDING).count(),
        'unread_messages': ChatMessage.objects.filter(is_from_client=True, is_read=False).count(),
        'generated_at': now.isoformat(),
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def admin_dashboard(request):
    """Agency dashboard: client, task, request and chat totals"""
    return Response(build_admin_dashboard())


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPortalClient])
def client_dashboard(request):
    """Client portal dashboard for the signed-in client"""
    client = request.portal_client
    now = timezone.now()
    latest_updates = Update.objects.filter(is_published=True).order_by('-created_at', '-id')[:CLIENT_DASHBOARD_UPDATES]

    return Response({
        'client': {'id': client.id, 'name': client.name, 'company': client.company},
        'tasks': task_counts(client.tasks.all(), now),
        'unread_messages': client.messages.filter(is_from_client=False, is_read=False).count(),
        'open_requests': client.requests.filter(status__in=ServiceRequest.OPEN_STATUSES).count(),
        'active_offers': Offer.objects.filter(valid_until__gte=timezone.localdate()).count(),
        'latest_updates': UpdateSerializer(latest_updates, many=True).data,
    })
