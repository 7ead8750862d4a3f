from django.contrib.auth.models import Group
from django.contrib.auth.password_validation import validate_password
from django.db.models import Q
from rest_framework import serializers
from rest_framework_simplejwt.exceptions import AuthenticationFailed
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from portal.clients.models import Client
from portal.clients.services import email_in_use
from .models import User, AuditLog
from .permissions import (
    ADMIN_GROUP, ROLE_ADMIN, ROLE_CLIENT, is_admin_user, get_portal_client, role_for_user, home_for_role
)
from .utils import create_audit_log


class UserSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'username', 'email', 'first_name', 'last_name', 'full_name', 'phone',
            'is_active', 'is_staff', 'is_superuser', 'created_at', 'updated_at'
        ]
        read_only_fields = ['is_staff', 'is_superuser', 'created_at', 'updated_at']

    def validate_email(self, value):
        email = (value or '').strip().lower()
        if not email:
            raise serializers.ValidationError("Email is required")
        users = User.objects.filter(email__iexact=email)
        if self.instance is not None:
            users = users.exclude(pk=self.instance.pk)
        if users.exists():
            raise serializers.ValidationError("User with this email already exists")
        return email


class StaffCreateSerializer(UserSerializer):
    """Agency admin account; placed in the Admin group"""
    username = serializers.CharField(required=False, allow_blank=True)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True)

    class Meta(UserSerializer.Meta):
        fields = UserSerializer.Meta.fields + ['password', 'password_confirm']

    def validate_username(self, value):
        value = (value or '').strip()
        if value and User.objects.filter(username__iexact=value).exists():
            raise serializers.ValidationError("A user with that username already exists.")
        return value

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({"password": "Passwords don't match"})
        return attrs

    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        if not validated_data.get('username'):
            validated_data['username'] = validated_data['email']
        user = User.objects.create_user(password=password, is_staff=True, **validated_data)
        group, _ = Group.objects.get_or_create(name=ADMIN_GROUP)
        user.groups.add(group)
        return user


class MeSerializer(UserSerializer):
    """Current user with role flags"""
    groups = serializers.SerializerMethodField()
    role = serializers.SerializerMethodField()
    is_admin = serializers.SerializerMethodField()
    is_client = serializers.SerializerMethodField()
    client_id = serializers.SerializerMethodField()

    class Meta(UserSerializer.Meta):
        fields = UserSerializer.Meta.fields + ['groups', 'role', 'is_admin', 'is_client', 'client_id']

    def _role(self, obj):
        if not hasattr(self, '_role_cache'):
            self._role_cache = {}
        if obj.pk not in self._role_cache:
            self._role_cache[obj.pk] = role_for_user(obj)
        return self._role_cache[obj.pk]

    def get_groups(self, obj):
        return list(obj.groups.values_list('name', flat=True))

    def get_role(self, obj):
        return self._role(obj)

    def get_is_admin(self, obj):
        return self._role(obj) == ROLE_ADMIN

    def get_is_client(self, obj):
        return self._role(obj) == ROLE_CLIENT

    def get_client_id(self, obj):
        if self._role(obj) != ROLE_CLIENT:
            return None
        client = get_portal_client(obj)
        return client.id if client else None


class ProfileUpdateSerializer(UserSerializer):
    """Fields a signed-in user may change on their own account"""

    class Meta(UserSerializer.Meta):
        fields = ['first_name', 'last_name', 'full_name', 'phone', 'email']

    def validate_email(self, value):
        email = super().validate_email(value)
        client = getattr(self.instance, 'client_profile', None)
        if client is not None and email_in_use(email, exclude_client=client):
            raise serializers.ValidationError("User with this email already exists")
        return email

    def update(self, instance, validated_data):
        instance = super().update(instance, validated_data)
        client = getattr(instance, 'client_profile', None)
        if client is not None and client.email != instance.email:
            client.email = instance.email
            client.save(update_fields=['email', 'updated_at'])
        return instance


class PasswordChangeSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True)
    new_password_confirm = serializers.CharField(write_only=True)

    def validate_current_password(self, value):
        user = self.context['request'].user
        if not user.check_password(value):
            raise serializers.ValidationError("Current password is incorrect")
        return value

    def validate(self, attrs):
        if attrs['new_password'] != attrs['new_password_confirm']:
            raise serializers.ValidationError({"new_password": "Passwords don't match"})
        validate_password(attrs['new_password'], self.context['request'].user)
        return attrs


class AuditLogSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'action', 'model_name', 'object_id', 'object_name',
                  'changes', 'ip_address', 'created_at']


class PortalTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Email + password login; subclasses gate on role"""
    username_field = 'email'
    role = None

    def validate(self, attrs):
        attrs[self.username_field] = (attrs.get(self.username_field) or '').strip().lower()
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        self.check_role(self.user)

        create_audit_log(
            request=self.context.get('request'), action='login', model_name='User',
            object_id=self.user.id, object_name=self.user.email, user=self.user,
            changes={'portal': self.role},
        )
        data['role'] = self.role
        data['redirect'] = home_for_role(self.role)
        data['user'] = MeSerializer(self.user).data
        return data

    def check_role(self, user):
        pass

    def deny(self, message, email, user=None):
        create_audit_log(
            request=self.context.get('request'), action='login_denied', model_name='User',
            object_id=user.id if user else email, object_name=email, user=user,
            changes={'portal': self.role, 'reason': message},
        )
        raise AuthenticationFailed(message)

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['email'] = user.email
        token['groups'] = list(user.groups.values_list('name', flat=True))
        token['role'] = cls.role
        return token


class AdminTokenObtainPairSerializer(PortalTokenObtainPairSerializer):
    role = ROLE_ADMIN

    def check_role(self, user):
        if not is_admin_user(user):
            self.deny('Client accounts must sign in through the client portal.', user.email, user)


class ClientTokenObtainPairSerializer(PortalTokenObtainPairSerializer):
    role = ROLE_CLIENT

    def validate(self, attrs):
        email = (attrs.get(self.username_field) or '').strip().lower()
        existing = User.objects.filter(email__iexact=email).first()
        if existing is not None and is_admin_user(existing):
            self.deny('Admin users should use the admin login', email, existing)
        if not Client.objects.filter(Q(email__iexact=email) | Q(user__email__iexact=email)).exists():
            self.deny('No client account found with this email. Please contact support.', email, existing)
        return super().validate(attrs)

    def check_role(self, user):
        if get_portal_client(user) is None:
            self.deny('No client account found with this email. Please contact support.', user.email, user)

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        client = get_portal_client(user)
        token['client_id'] = client.id if client else None
        return token
