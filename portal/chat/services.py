"""
Chat services: sending messages, read receipts and the admin conversation list
"""
import logging

from django.conf import settings
from django.db.models import Count, Max, Q, OuterRef, Subquery, Case, When, Value, IntegerField, F
from rest_framework.exceptions import ValidationError

from portal.clients.models import Client
from portal.core.cache_utils import invalidate_dashboard_cache
from .models import ChatMessage
from .notifications import queue_message_notification

logger = logging.getLogger(__name__)


def attachment_type_for(upload):
    content_type = getattr(upload, 'content_type', '') or ''
    return ChatMessage.ATTACHMENT_IMAGE if content_type.startswith('image/') else ChatMessage.ATTACHMENT_FILE


def send_message(client, sender, message, is_from_client, attachment=None):
    """Store a new unread message and queue its email notification"""
    text = (message or '').strip()
    if not text and not attachment:
        raise ValidationError({'error': 'Message or attachment is required'})

    max_size = settings.CHAT_ATTACHMENT_MAX_SIZE
    if attachment is not None and attachment.size > max_size:
        raise ValidationError(
            {'error': f"Attachment exceeds the maximum size of {max_size // (1024 * 1024)} MB"}
        )

    chat_message = ChatMessage(
        client=client,
        sender=sender,
        is_from_client=is_from_client,
        message=text,
        is_read=False,
    )
    if attachment is not None:
        chat_message.attachment_name = attachment.name[:255]
        chat_message.attachment_type = attachment_type_for(attachment)
        chat_message.attachment = attachment
    chat_message.save()

    logger.info(
        f"Message {chat_message.id} stored for client {client.id} "
        f"({'client' if is_from_client else 'admin'})"
    )
    queue_message_notification(chat_message)
    return chat_message


def mark_conversation_read(client, from_client):
    """Mark unread messages in a conversation as read; returns the count"""
    updated = ChatMessage.objects.filter(
        client=client, is_from_client=from_client, is_read=False
    ).update(is_read=True)
    if updated:
        # QuerySet.update() skips post_save
        invalidate_dashboard_cache()
    return updated


def conversation_summaries():
    """
    Every client with unread count and latest message.
    Clients with unread messages first, then by latest message, clients
    without messages last.
    """
    latest = ChatMessage.objects.filter(client=OuterRef('pk')).order_by('-created_at', '-id')
    return Client.objects.annotate(
        unread_count=Count('messages', filter=Q(messages__is_from_client=True, messages__is_read=False)),
        last_message_date=Max('messages__created_at'),
        last_message=Subquery(latest.values('message')[:1]),
        last_attachment_type=Subquery(latest.values('attachment_type')[:1]),
    ).annotate(
        has_unread=Case(When(unread_count__gt=0, then=Value(1)), default=Value(0), output_field=IntegerField()),
    ).order_by('-has_unread', F('last_message_date').desc(nulls_last=True), 'name')
