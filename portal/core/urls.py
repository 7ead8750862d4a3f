from django.urls import path
from .views import (
    AdminTokenObtainPairView, ClientTokenObtainPairView, CustomTokenRefreshView,
    logout, user_me, change_password, landing,
    user_list_create, user_detail,
    audit_log_list, audit_log_detail,
    global_search
)

urlpatterns = [
    # Auth endpoints
    path('auth/admin/login/', AdminTokenObtainPairView.as_view(), name='admin-login'),
    path('auth/client/login/', ClientTokenObtainPairView.as_view(), name='client-login'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/logout/', logout, name='logout'),
    path('auth/me/', user_me, name='user-me'),
    path('auth/password/', change_password, name='change-password'),
    path('auth/landing/', landing, name='landing'),

    # User endpoints
    path('users/', user_list_create, name='user-list-create'),
    path('users/<int:pk>/', user_detail, name='user-detail'),

    # AuditLog endpoints
    path('audit-logs/', audit_log_list, name='audit-log-list'),
    path('audit-logs/<int:pk>/', audit_log_detail, name='audit-log-detail'),

    # Global search endpoint
    path('search/', global_search, name='global-search'),
]
