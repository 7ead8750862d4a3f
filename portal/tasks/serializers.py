from django.utils import timezone
from rest_framework import serializers

from .models import Task, ServiceRequest


def _required_text(value, label):
    if not value or not value.strip():
        raise serializers.ValidationError(f"{label} is required")
    return value.strip()


class TaskSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.name', read_only=True)
    display_status = serializers.CharField(read_only=True)
    is_overdue = serializers.SerializerMethodField()

    class Meta:
        model = Task
        fields = [
            'id', 'client', 'client_name', 'title', 'description', 'status', 'priority',
            'due_date', 'completed_at', 'display_status', 'is_overdue', 'created_at', 'updated_at'
        ]
        read_only_fields = ['completed_at', 'created_at', 'updated_at']

    def get_is_overdue(self, obj):
        return obj.is_overdue_at(timezone.now())

    def validate_title(self, value):
        return _required_text(value, "Title")

    def create(self, validated_data):
        if validated_data.get('status') == Task.STATUS_COMPLETED:
            validated_data['completed_at'] = timezone.now()
        return super().create(validated_data)

    def update(self, instance, validated_data):
        new_status = validated_data.get('status', instance.status)
        if new_status == Task.STATUS_COMPLETED:
            if instance.status != Task.STATUS_COMPLETED or instance.completed_at is None:
                validated_data['completed_at'] = timezone.now()
        else:
            validated_data['completed_at'] = None
        return super().update(instance, validated_data)


class ClientTaskCreateSerializer(serializers.ModelSerializer):
    """Task created by a client from the portal; always starts pending"""

    class Meta:
        model = Task
        fields = ['id', 'title', 'description', 'priority', 'due_date']

    def validate_title(self, value):
        return _required_text(value, "Title")


class ServiceRequestSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.name', read_only=True)
    client_email = serializers.CharField(source='client.email', read_only=True)

    class Meta:
        model = ServiceRequest
        fields = [
            'id', 'client', 'client_name', 'client_email', 'title', 'description',
            'status', 'created_at', 'updated_at'
        ]
        read_only_fields = ['client', 'created_at', 'updated_at']

    def validate_title(self, value):
        return _required_text(value, "Title")

    def validate_description(self, value):
        return _required_text(value, "Description")


class ClientRequestSerializer(ServiceRequestSerializer):
    """Request submitted by a client; status is managed by the agency"""

    class Meta(ServiceRequestSerializer.Meta):
        read_only_fields = ['client', 'status', 'created_at', 'updated_at']
