from django.urls import path
from .views import admin_dashboard, client_dashboard

urlpatterns = [
    path('reports/dashboard/', admin_dashboard, name='admin-dashboard'),
    path('client/dashboard/', client_dashboard, name='client-dashboard'),
]
