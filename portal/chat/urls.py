from django.urls import path
from .views import (
    conversation_list, admin_client_messages, admin_mark_read,
    client_messages, client_mark_read, message_mark_read, message_attachment
)

urlpatterns = [
    # Admin chat endpoints
    path('chat/conversations/', conversation_list, name='chat-conversation-list'),
    path('chat/clients/<int:client_id>/messages/', admin_client_messages, name='chat-client-messages'),
    path('chat/clients/<int:client_id>/read/', admin_mark_read, name='chat-client-read'),
    path('chat/messages/<int:pk>/read/', message_mark_read, name='chat-message-read'),
    path('chat/messages/<int:pk>/attachment/', message_attachment, name='chat-message-attachment'),

    # Client portal chat endpoints
    path('client/chat/messages/', client_messages, name='client-chat-messages'),
    path('client/chat/read/', client_mark_read, name='client-chat-read'),
]
