from django.urls import reverse
from rest_framework import serializers

from .models import ChatMessage


class ChatMessageSerializer(serializers.ModelSerializer):
    sender_name = serializers.SerializerMethodField()
    attachment_url = serializers.SerializerMethodField()

    class Meta:
        model = ChatMessage
        fields = [
            'id', 'client', 'sender', 'sender_name', 'is_from_client', 'message',
            'attachment_url', 'attachment_name', 'attachment_type', 'is_read', 'created_at'
        ]
        read_only_fields = fields

    def get_sender_name(self, obj):
        if obj.is_from_client:
            return obj.client.name
        if obj.sender is not None:
            return obj.sender.full_name or obj.sender.username
        return None

    def get_attachment_url(self, obj):
        if not obj.attachment:
            return None
        request = self.context.get('request')
        url = reverse('chat-message-attachment', args=[obj.pk])
        return request.build_absolute_uri(url) if request else url


class ConversationSerializer(serializers.Serializer):
    """Row of the admin conversation list (annotated Client)"""
    client_id = serializers.IntegerField(source='id')
    client_name = serializers.CharField(source='name')
    client_email = serializers.EmailField(source='email')
    company = serializers.CharField(allow_null=True)
    avatar = serializers.CharField(allow_null=True)
    unread_count = serializers.IntegerField()
    last_message = serializers.SerializerMethodField()
    last_message_date = serializers.DateTimeField(allow_null=True)

    def get_last_message(self, obj):
        if obj.last_message:
            return obj.last_message
        if obj.last_attachment_type:
            return 'Sent an attachment'
        return None


class MessageCreateSerializer(serializers.Serializer):
    """Payload for sending a message; emptiness and size are checked by send_message"""
    message = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False, default='')
    attachment = serializers.FileField(required=False, allow_empty_file=True)
