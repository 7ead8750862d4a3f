import os
import uuid

from django.db import models
from portal.core.models import User
from portal.clients.models import Client


def chat_attachment_path(instance, filename):
    """chat_attachments/{admin|client}-attachments/<client_id>/<uuid>.<ext>"""
    ext = os.path.splitext(filename)[1].lower()
    folder = 'client-attachments' if instance.is_from_client else 'admin-attachments'
    return f"chat_attachments/{folder}/{instance.client_id}/{uuid.uuid4().hex}{ext}"


class ChatMessage(models.Model):
    """One message in the conversation between the agency and a client"""
    ATTACHMENT_IMAGE = 'image'
    ATTACHMENT_FILE = 'file'

    ATTACHMENT_TYPE_CHOICES = [
        ('', 'None'),
        (ATTACHMENT_IMAGE, 'Image'),
        (ATTACHMENT_FILE, 'File'),
    ]

    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='messages')
    sender = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='chat_messages')
    is_from_client = models.BooleanField(default=False)
    message = models.TextField(blank=True, default='')
    attachment = models.FileField(upload_to=chat_attachment_path, max_length=500, blank=True, null=True)
    attachment_name = models.CharField(max_length=255, blank=True, default='')
    attachment_type = models.CharField(max_length=10, choices=ATTACHMENT_TYPE_CHOICES, blank=True, default='')
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        author = 'client' if self.is_from_client else 'admin'
        return f"{author} -> {self.client_id}: {self.message[:40]}"

    class Meta:
        db_table = 'client_messages'
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['client', 'created_at'], name='idx_message_client_created'),
            models.Index(fields=['client', 'is_from_client', 'is_read'], name='idx_message_unread'),
        ]
