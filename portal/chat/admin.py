from django.contrib import admin
from .models import ChatMessage


@admin.register(ChatMessage)
class ChatMessageAdmin(admin.ModelAdmin):
    list_display = ['id', 'client', 'sender', 'is_from_client', 'attachment_type', 'is_read', 'created_at']
    list_filter = ['is_from_client', 'is_read', 'attachment_type', 'created_at']
    search_fields = ['message', 'client__name', 'client__email']
    raw_id_fields = ['client', 'sender']
    readonly_fields = ['created_at']
    ordering = ['-created_at']
    date_hierarchy = 'created_at'
