from django.contrib import admin
from .models import Task, ServiceRequest


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ['title', 'client', 'status', 'priority', 'due_date', 'completed_at', 'created_at']
    list_filter = ['status', 'priority', 'due_date']
    search_fields = ['title', 'description', 'client__name']
    readonly_fields = ['completed_at', 'created_at', 'updated_at']
    ordering = ['-created_at']
    date_hierarchy = 'due_date'


@admin.register(ServiceRequest)
class ServiceRequestAdmin(admin.ModelAdmin):
    list_display = ['title', 'client', 'status', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['title', 'description', 'client__name']
    ordering = ['-created_at']
