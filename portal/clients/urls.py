from django.urls import path
from .views import (
    client_list_create, client_detail, client_change_password, client_profile
)

urlpatterns = [
    # Client endpoints (admin portal)
    path('clients/', client_list_create, name='client-list-create'),
    path('clients/<int:pk>/', client_detail, name='client-detail'),
    path('clients/<int:pk>/password/', client_change_password, name='client-change-password'),

    # Client portal
    path('client/profile/', client_profile, name='client-profile'),
]
