import logging

from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from portal.core.permissions import IsAgencyAdmin, IsPortalClient
from portal.core.utils import create_audit_log
from .filters import TaskFilter, ServiceRequestFilter
from .models import Task, ServiceRequest
from .serializers import (
    TaskSerializer, ClientTaskCreateSerializer, ServiceRequestSerializer, ClientRequestSerializer
)

logger = logging.getLogger(__name__)

CLIENT_TASK_TABS = ['all', Task.STATUS_PENDING, Task.STATUS_IN_PROGRESS, Task.STATUS_COMPLETED, Task.STATUS_OVERDUE]


def filter_tasks_by_tab(queryset, tab, now=None):
    """Filter tasks by their display status (overdue counts as its own tab)"""
    now = now or timezone.now()
    overdue = Task.overdue_q(now)
    if tab == Task.STATUS_OVERDUE:
        return queryset.filter(overdue)
    if tab == Task.STATUS_COMPLETED:
        return queryset.filter(status=Task.STATUS_COMPLETED)
    if tab in (Task.STATUS_PENDING, Task.STATUS_IN_PROGRESS):
        return queryset.filter(status=tab).exclude(overdue)
    return queryset


# Task views (admin portal)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def task_list_create(request):
    """List tasks across clients or create a task"""
    if request.method == 'GET':
        task_filter = TaskFilter(
            request.query_params,
            queryset=Task.objects.select_related('client').order_by('-created_at', '-id')
        )
        if not task_filter.is_valid():
            return Response(task_filter.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer = TaskSerializer(task_filter.qs, many=True)
        return Response(serializer.data)
    else:
        serializer = TaskSerializer(data=request.data)
        if serializer.is_valid():
            task = serializer.save()
            create_audit_log(
                request=request, action='create', model_name='Task',
                object_id=task.id, object_name=task.title,
                changes={'client': task.client_id, 'status': task.status, 'priority': task.priority},
            )
            return Response(TaskSerializer(task).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def task_detail(request, pk):
    """Retrieve, update or delete a task"""
    task = get_object_or_404(Task.objects.select_related('client'), pk=pk)

    if request.method == 'GET':
        return Response(TaskSerializer(task).data)
    elif request.method in ('PUT', 'PATCH'):
        old_status = task.status
        serializer = TaskSerializer(task, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            task = serializer.save()
            if task.status != old_status:
                create_audit_log(
                    request=request, action='status_change', model_name='Task',
                    object_id=task.id, object_name=task.title,
                    changes={'from': old_status, 'to': task.status},
                )
            else:
                create_audit_log(
                    request=request, action='update', model_name='Task',
                    object_id=task.id, object_name=task.title,
                    changes={k: str(v) for k, v in serializer.validated_data.items()},
                )
            return Response(TaskSerializer(task).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        task_id, task_title = task.id, task.title
        task.delete()
        create_audit_log(
            request=request, action='delete', model_name='Task',
            object_id=task_id, object_name=task_title,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


# Task views (client portal)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsPortalClient])
def client_task_list_create(request):
    """Client portal: own tasks, filtered by tab, or create a new task"""
    client = request.portal_client

    if request.method == 'GET':
        tab = request.query_params.get('tab', 'all') or 'all'
        if tab not in CLIENT_TASK_TABS:
            return Response(
                {'error': f"Invalid tab. Choose one of: {', '.join(CLIENT_TASK_TABS)}"},
                status=status.HTTP_400_BAD_REQUEST
            )
        queryset = filter_tasks_by_tab(client.tasks.select_related('client').order_by('-created_at', '-id'), tab)
        return Response(TaskSerializer(queryset, many=True).data)

    serializer = ClientTaskCreateSerializer(data=request.data)
    if serializer.is_valid():
        task = serializer.save(client=client, status=Task.STATUS_PENDING)
        logger.info(f"Client {client.id} created task {task.id}")
        return Response(TaskSerializer(task).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


# ServiceRequest views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsPortalClient])
def client_request_list_create(request):
    """Client portal: own service requests or submit a new one"""
    client = request.portal_client

    if request.method == 'GET':
        queryset = client.requests.select_related('client').order_by('-created_at', '-id')
        return Response(ClientRequestSerializer(queryset, many=True).data)

    serializer = ClientRequestSerializer(data=request.data)
    if serializer.is_valid():
        service_request = serializer.save(client=client, status=ServiceRequest.STATUS_PENDING)
        logger.info(f"Client {client.id} submitted request {service_request.id}")
        return Response(ClientRequestSerializer(service_request).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def request_list(request):
    """List service requests from all clients"""
    request_filter = ServiceRequestFilter(
        request.query_params,
        queryset=ServiceRequest.objects.select_related('client').order_by('-created_at', '-id')
    )
    if not request_filter.is_valid():
        return Response(request_filter.errors, status=status.HTTP_400_BAD_REQUEST)
    return Response(ServiceRequestSerializer(request_filter.qs, many=True).data)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def request_detail(request, pk):
    """Retrieve, update the status of, or delete a service request"""
    service_request = get_object_or_404(ServiceRequest.objects.select_related('client'), pk=pk)

    if request.method == 'GET':
        return Response(ServiceRequestSerializer(service_request).data)
    elif request.method == 'PATCH':
        old_status = service_request.status
        serializer = ServiceRequestSerializer(service_request, data=request.data, partial=True)
        if serializer.is_valid():
            service_request = serializer.save()
            if service_request.status != old_status:
                create_audit_log(
                    request=request, action='status_change', model_name='ServiceRequest',
                    object_id=service_request.id, object_name=service_request.title,
                    changes={'from': old_status, 'to': service_request.status},
                )
            return Response(ServiceRequestSerializer(service_request).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        request_id, request_title = service_request.id, service_request.title
        service_request.delete()
        create_audit_log(
            request=request, action='delete', model_name='ServiceRequest',
            object_id=request_id, object_name=request_title,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)
