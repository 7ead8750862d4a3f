from django.utils import timezone
from rest_framework import serializers

from portal.tasks.models import Task, ServiceRequest
from .models import Client
from .services import (
    create_client_with_account, email_in_use, normalize_email, sync_client_user,
    MIN_CLIENT_PASSWORD_LENGTH,
)


class ClientSerializer(serializers.ModelSerializer):
    has_account = serializers.SerializerMethodField()

    class Meta:
        model = Client
        fields = [
            'id', 'name', 'email', 'company', 'phone', 'domain', 'avatar',
            'user', 'has_account', 'created_at', 'updated_at'
        ]
        read_only_fields = ['user', 'created_at', 'updated_at']
        extra_kwargs = {'email': {'validators': []}}

    def get_has_account(self, obj):
        return obj.user_id is not None

    def validate_name(self, value):
        if not value.strip():
            raise serializers.ValidationError("Name is required")
        return value.strip()

    def validate_email(self, value):
        email = normalize_email(value)
        if email_in_use(email, exclude_client=self.instance):
            raise serializers.ValidationError("User with this email already exists")
        return email

    def update(self, instance, validated_data):
        instance = super().update(instance, validated_data)
        sync_client_user(instance)
        return instance


class ClientCreateSerializer(ClientSerializer):
    password = serializers.CharField(write_only=True, required=False, allow_blank=True)
    create_account = serializers.BooleanField(write_only=True, required=False, default=True)

    class Meta(ClientSerializer.Meta):
        fields = ClientSerializer.Meta.fields + ['password', 'create_account']

    def validate_password(self, value):
        if value and len(value) < MIN_CLIENT_PASSWORD_LENGTH:
            raise serializers.ValidationError(
                f"Password must be at least {MIN_CLIENT_PASSWORD_LENGTH} characters"
            )
        return value

    def create(self, validated_data):
        password = validated_data.pop('password', None)
        create_account = validated_data.pop('create_account', True)
        client, self.generated_password = create_client_with_account(
            validated_data, password=password, create_account=create_account
        )
        return client


class ClientDetailSerializer(ClientSerializer):
    task_summary = serializers.SerializerMethodField()
    open_requests = serializers.SerializerMethodField()

    class Meta(ClientSerializer.Meta):
        fields = ClientSerializer.Meta.fields + ['task_summary', 'open_requests']

    def get_task_summary(self, obj):
        tasks = obj.tasks.all()
        return {
            'total': tasks.count(),
            'pending': tasks.filter(status=Task.STATUS_PENDING).count(),
            'in_progress': tasks.filter(status=Task.STATUS_IN_PROGRESS).count(),
            'completed': tasks.filter(status=Task.STATUS_COMPLETED).count(),
            'overdue': tasks.filter(Task.overdue_q(timezone.now())).count(),
        }

    def get_open_requests(self, obj):
        return obj.requests.filter(status__in=ServiceRequest.OPEN_STATUSES).count()


class ClientPasswordSerializer(serializers.Serializer):
    new_password = serializers.CharField(write_only=True)
    new_password_confirm = serializers.CharField(write_only=True)

    def validate(self, attrs):
        if len(attrs['new_password']) < MIN_CLIENT_PASSWORD_LENGTH:
            raise serializers.ValidationError(
                {"new_password": f"Password must be at least {MIN_CLIENT_PASSWORD_LENGTH} characters"}
            )
        if attrs['new_password'] != attrs['new_password_confirm']:
            raise serializers.ValidationError({"new_password": "Passwords don't match"})
        return attrs


class ClientProfileSerializer(serializers.ModelSerializer):
    """Fields a client may see and edit about themselves"""

    class Meta:
        model = Client
        fields = ['id', 'name', 'email', 'company', 'phone', 'domain', 'avatar', 'created_at']
        read_only_fields = ['id', 'email', 'domain', 'avatar', 'created_at']

    def validate_name(self, value):
        if not value.strip():
            raise serializers.ValidationError("Name is required")
        return value.strip()
