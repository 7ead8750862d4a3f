import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from portal.core.cache_utils import CLIENT_LIST_CACHE_TTL, CLIENT_LIST_PREFIX, get_cached, set_cached
from portal.core.permissions import IsAgencyAdmin, IsPortalClient
from portal.core.utils import create_audit_log
from .filters import ClientFilter
from .models import Client
from .serializers import (
    ClientSerializer, ClientCreateSerializer, ClientDetailSerializer,
    ClientPasswordSerializer, ClientProfileSerializer
)
from .services import delete_client, set_client_password

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def client_list_create(request):
    """List all clients or create a new client with a portal login"""
    if request.method == 'GET':
        search = request.query_params.get('search', '')
        has_account = request.query_params.get('has_account', '')

        cached_data, cache_key = get_cached(CLIENT_LIST_PREFIX, search=search, has_account=has_account)
        if cached_data is not None:
            return Response(cached_data)

        client_filter = ClientFilter(request.query_params, queryset=Client.objects.all().order_by('-created_at', '-id'))
        if not client_filter.is_valid():
            return Response(client_filter.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer = ClientSerializer(client_filter.qs, many=True)
        set_cached(cache_key, serializer.data, CLIENT_LIST_CACHE_TTL)
        return Response(serializer.data)
    else:
        serializer = ClientCreateSerializer(data=request.data)
        if serializer.is_valid():
            client = serializer.save()
            create_audit_log(
                request=request, action='create', model_name='Client',
                object_id=client.id, object_name=client.name,
                changes={'email': client.email, 'has_account': client.user_id is not None},
            )
            data = ClientDetailSerializer(client).data
            if serializer.generated_password:
                # Shown once so the admin can pass it on to the client
                data['generated_password'] = serializer.generated_password
            return Response(data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def client_detail(request, pk):
    """Retrieve, update or delete a client"""
    client = get_object_or_404(Client.objects.select_related('user'), pk=pk)

    if request.method == 'GET':
        serializer = ClientDetailSerializer(client)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ClientSerializer(client, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            client = serializer.save()
            create_audit_log(
                request=request, action='update', model_name='Client',
                object_id=client.id, object_name=client.name,
                changes={k: str(v) for k, v in serializer.validated_data.items()},
            )
            return Response(ClientDetailSerializer(client).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        client_id, client_name = client.id, client.name
        delete_client(client)
        create_audit_log(
            request=request, action='delete', model_name='Client',
            object_id=client_id, object_name=client_name,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def client_change_password(request, pk):
    """Reset the portal password of a client"""
    client = get_object_or_404(Client.objects.select_related('user'), pk=pk)
    serializer = ClientPasswordSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    if not set_client_password(client, serializer.validated_data['new_password']):
        return Response(
            {'error': 'Could not find user account for this client'},
            status=status.HTTP_400_BAD_REQUEST
        )

    create_audit_log(
        request=request, action='password_change', model_name='Client',
        object_id=client.id, object_name=client.name,
    )
    logger.info(f"Password reset for client {client.id} by user {request.user.id}")
    return Response({'message': 'Password updated successfully'})


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated, IsPortalClient])
def client_profile(request):
    """Client portal: view or edit own profile"""
    client = request.portal_client

    if request.method == 'GET':
        return Response(ClientProfileSerializer(client).data)

    serializer = ClientProfileSerializer(client, data=request.data, partial=True)
    if serializer.is_valid():
        client = serializer.save()
        if client.user and client.user.first_name != client.name[:150]:
            client.user.first_name = client.name[:150]
            client.user.save(update_fields=['first_name', 'updated_at'])
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
