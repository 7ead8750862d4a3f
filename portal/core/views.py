import logging

from django.core.exceptions import ObjectDoesNotExist
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils.dateparse import parse_date
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .models import User, AuditLog
from .permissions import ADMIN_GROUP, IsAgencyAdmin, role_for_user, home_for_role
from .serializers import (
    UserSerializer, StaffCreateSerializer, MeSerializer, ProfileUpdateSerializer,
    PasswordChangeSerializer, AuditLogSerializer,
    AdminTokenObtainPairSerializer, ClientTokenObtainPairSerializer
)
from .utils import create_audit_log

logger = logging.getLogger(__name__)

SEARCH_RESULT_LIMIT = 20


class AdminTokenObtainPairView(TokenObtainPairView):
    """Admin portal login"""
    serializer_class = AdminTokenObtainPairSerializer


class ClientTokenObtainPairView(TokenObtainPairView):
    """Client portal login"""
    serializer_class = ClientTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that reports a deleted user as an invalid token"""
    def validate(self, attrs):
        try:
            refresh = self.token_class(attrs['refresh'])
        except TokenError:
            raise InvalidToken('Token is invalid or expired.')

        user_id = refresh.payload.get(api_settings.USER_ID_CLAIM)
        if user_id is not None and not User.objects.filter(**{api_settings.USER_ID_FIELD: user_id}).exists():
            raise InvalidToken('Token is invalid. User no longer exists.')

        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except ObjectDoesNotExist:
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout(request):
    """Blacklist the given refresh token"""
    refresh = request.data.get('refresh')
    if not refresh:
        return Response({'refresh': ['This field is required.']}, status=status.HTTP_400_BAD_REQUEST)
    try:
        RefreshToken(refresh).blacklist()
    except TokenError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response(status=status.HTTP_205_RESET_CONTENT)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with role flags; PATCH edits own profile"""
    user = request.user
    if request.method == 'PATCH':
        serializer = ProfileUpdateSerializer(user, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        user = serializer.save()
    return Response(MeSerializer(user).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def change_password(request):
    """Change own password"""
    serializer = PasswordChangeSerializer(data=request.data, context={'request': request})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    user = request.user
    user.set_password(serializer.validated_data['new_password'])
    user.save(update_fields=['password', 'updated_at'])
    create_audit_log(
        request=request, action='password_change', model_name='User',
        object_id=user.id, object_name=user.email,
    )
    return Response({'message': 'Password updated successfully'})


@api_view(['GET'])
@permission_classes([AllowAny])
def landing(request):
    """Where the signed-in user belongs: admin dashboard, client dashboard or login"""
    role = role_for_user(request.user)
    return Response({'role': role, 'redirect': home_for_role(role)})


# User views
def staff_queryset():
    return User.objects.filter(
        Q(groups__name=ADMIN_GROUP) | Q(is_staff=True) | Q(is_superuser=True)
    ).distinct().order_by('username')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def user_list_create(request):
    """List agency admin accounts or create a new one"""
    if request.method == 'GET':
        serializer = UserSerializer(staff_queryset(), many=True)
        return Response(serializer.data)
    else:
        serializer = StaffCreateSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            create_audit_log(
                request=request, action='create', model_name='User',
                object_id=user.id, object_name=user.email,
            )
            return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def user_detail(request, pk):
    """Retrieve, update or delete an agency admin account"""
    user = get_object_or_404(staff_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(UserSerializer(user).data)
    elif request.method == 'PATCH':
        serializer = UserSerializer(user, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            create_audit_log(
                request=request, action='update', model_name='User',
                object_id=user.id, object_name=user.email,
                changes={k: str(v) for k, v in serializer.validated_data.items()},
            )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if user.pk == request.user.pk:
            return Response({'error': 'You cannot delete your own account'}, status=status.HTTP_400_BAD_REQUEST)
        user_id, user_email = user.id, user.email
        user.delete()
        create_audit_log(
            request=request, action='delete', model_name='User',
            object_id=user_id, object_name=user_email,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def audit_log_list(request):
    """List audit logs with filtering"""
    queryset = AuditLog.objects.select_related('user')

    action_filter = request.query_params.get('action', None)
    if action_filter:
        queryset = queryset.filter(action=action_filter)

    model_filter = request.query_params.get('model', None)
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)

    for param, lookup in (('date_from', 'created_at__date__gte'), ('date_to', 'created_at__date__lte')):
        raw = request.query_params.get(param, None)
        if not raw:
            continue
        try:
            value = parse_date(raw)
        except ValueError:
            value = None
        if value is None:
            return Response({'error': f'Invalid {param}. Use YYYY-MM-DD.'}, status=status.HTTP_400_BAD_REQUEST)
        queryset = queryset.filter(**{lookup: value})

    queryset = queryset.order_by('-created_at', '-id')
    serializer = AuditLogSerializer(queryset, many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def audit_log_detail(request, pk):
    """Retrieve an audit log"""
    audit_log = get_object_or_404(AuditLog, pk=pk)
    serializer = AuditLogSerializer(audit_log)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def global_search(request):
    """Search clients, tasks, requests and content"""
    query = request.query_params.get('q', '').strip()

    if not query:
        return Response({
            'clients': [],
            'tasks': [],
            'requests': [],
            'resources': [],
            'offers': [],
            'updates': [],
            'weekly_products': [],
        })

    from portal.clients.filters import ClientFilter
    from portal.clients.models import Client
    from portal.clients.serializers import ClientSerializer
    from portal.tasks.filters import TaskFilter, ServiceRequestFilter
    from portal.tasks.models import Task, ServiceRequest
    from portal.tasks.serializers import TaskSerializer, ServiceRequestSerializer
    from portal.content.filters import ResourceFilter, OfferFilter, UpdateFilter, WeeklyProductFilter
    from portal.content.models import Resource, Offer, Update, WeeklyProduct
    from portal.content.serializers import (
        ResourceSerializer, OfferSerializer, UpdateSerializer, WeeklyProductSerializer
    )

    params = {'search': query}
    results = {}

    clients = ClientFilter(params, queryset=Client.objects.all()).qs[:SEARCH_RESULT_LIMIT]
    results['clients'] = ClientSerializer(clients, many=True).data

    tasks = TaskFilter(params, queryset=Task.objects.select_related('client')).qs[:SEARCH_RESULT_LIMIT]
    results['tasks'] = TaskSerializer(tasks, many=True).data

    requests_qs = ServiceRequest.objects.select_related('client')
    service_requests = ServiceRequestFilter(params, queryset=requests_qs).qs[:SEARCH_RESULT_LIMIT]
    results['requests'] = ServiceRequestSerializer(service_requests, many=True).data

    resources = ResourceFilter(params, queryset=Resource.objects.all()).qs[:SEARCH_RESULT_LIMIT]
    results['resources'] = ResourceSerializer(resources, many=True).data

    offers = OfferFilter(params, queryset=Offer.objects.all()).qs[:SEARCH_RESULT_LIMIT]
    results['offers'] = OfferSerializer(offers, many=True).data

    updates = UpdateFilter(params, queryset=Update.objects.all()).qs[:SEARCH_RESULT_LIMIT]
    results['updates'] = UpdateSerializer(updates, many=True).data

    products_qs = WeeklyProduct.objects.prefetch_related('links')
    products = WeeklyProductFilter(params, queryset=products_qs).qs[:SEARCH_RESULT_LIMIT]
    results['weekly_products'] = WeeklyProductSerializer(products, many=True).data

    return Response(results)
