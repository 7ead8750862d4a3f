import logging

from django.http import FileResponse, Http404
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import JSONParser, MultiPartParser, FormParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from portal.clients.models import Client
from portal.core.permissions import IsAgencyAdmin, IsPortalClient, IsAdminOrPortalClient, is_admin_user
from .models import ChatMessage
from .serializers import ChatMessageSerializer, ConversationSerializer, MessageCreateSerializer
from .services import send_message, mark_conversation_read, conversation_summaries

logger = logging.getLogger(__name__)


def _parse_since(request):
    """Return (since, error_response) for the optional `since` query param"""
    raw = request.query_params.get('since')
    if not raw:
        return None, None
    try:
        since = parse_datetime(raw.strip().replace(' ', '+'))
    except ValueError:
        since = None
    if since is None:
        return None, Response(
            {'error': 'Invalid since parameter. Use an ISO 8601 datetime.'},
            status=status.HTTP_400_BAD_REQUEST
        )
    if timezone.is_naive(since):
        since = timezone.make_aware(since)
    return since, None


def _conversation_response(request, client):
    since, error = _parse_since(request)
    if error:
        return error
    messages = ChatMessage.objects.filter(client=client).select_related('client', 'sender')
    if since is not None:
        messages = messages.filter(created_at__gt=since)
    messages = messages.order_by('created_at', 'id')
    return Response(ChatMessageSerializer(messages, many=True, context={'request': request}).data)


def _send_response(request, client, is_from_client):
    payload = MessageCreateSerializer(data=request.data)
    if not payload.is_valid():
        return Response(payload.errors, status=status.HTTP_400_BAD_REQUEST)
    chat_message = send_message(
        client=client,
        sender=request.user,
        message=payload.validated_data['message'],
        is_from_client=is_from_client,
        attachment=payload.validated_data.get('attachment'),
    )
    serializer = ChatMessageSerializer(chat_message, context={'request': request})
    return Response(serializer.data, status=status.HTTP_201_CREATED)


# Chat views (admin portal)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def conversation_list(request):
    """Every client with unread count and latest message"""
    return Response(ConversationSerializer(conversation_summaries(), many=True).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
@parser_classes([JSONParser, MultiPartParser, FormParser])
def admin_client_messages(request, client_id):
    """Conversation with one client (GET supports ?since=) or send a message"""
    client = get_object_or_404(Client, pk=client_id)
    if request.method == 'GET':
        return _conversation_response(request, client)
    return _send_response(request, client, is_from_client=False)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def admin_mark_read(request, client_id):
    """Mark every message from this client as read"""
    client = get_object_or_404(Client, pk=client_id)
    updated = mark_conversation_read(client, from_client=True)
    return Response({'updated': updated})


# Chat views (client portal)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsPortalClient])
@parser_classes([JSONParser, MultiPartParser, FormParser])
def client_messages(request):
    """Client portal: own conversation (GET supports ?since=) or send a message"""
    client = request.portal_client
    if request.method == 'GET':
        return _conversation_response(request, client)
    return _send_response(request, client, is_from_client=True)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPortalClient])
def client_mark_read(request):
    """Client portal: mark every agency message as read"""
    updated = mark_conversation_read(request.portal_client, from_client=False)
    return Response({'updated': updated})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminOrPortalClient])
def message_mark_read(request, pk):
    """Mark one received message as read: client messages for admins, agency messages for the owning client"""
    if is_admin_user(request.user):
        messages = ChatMessage.objects.filter(is_from_client=True)
    else:
        messages = ChatMessage.objects.filter(client=request.portal_client, is_from_client=False)
    chat_message = get_object_or_404(messages, pk=pk)
    if not chat_message.is_read:
        chat_message.is_read = True
        chat_message.save(update_fields=['is_read'])
    return Response(ChatMessageSerializer(chat_message, context={'request': request}).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminOrPortalClient])
def message_attachment(request, pk):
    """Download a chat attachment (admins, or the client who owns the conversation)"""
    messages = ChatMessage.objects.all()
    if not is_admin_user(request.user):
        messages = messages.filter(client=request.portal_client)
    chat_message = get_object_or_404(messages, pk=pk)
    if not chat_message.attachment:
        raise Http404('Message has no attachment')
    return FileResponse(
        chat_message.attachment.open('rb'),
        as_attachment=chat_message.attachment_type != ChatMessage.ATTACHMENT_IMAGE,
        filename=chat_message.attachment_name or None,
    )
