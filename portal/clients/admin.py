from django.contrib import admin
from .models import Client


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ['name', 'email', 'company', 'phone', 'domain', 'user', 'created_at']
    list_filter = ['created_at']
    search_fields = ['name', 'email', 'company', 'phone']
    raw_id_fields = ['user']
    ordering = ['-created_at']
