from django.urls import path
from .views import (
    task_list_create, task_detail, client_task_list_create,
    client_request_list_create, request_list, request_detail
)

urlpatterns = [
    # Task endpoints
    path('tasks/', task_list_create, name='task-list-create'),
    path('tasks/<int:pk>/', task_detail, name='task-detail'),
    path('client/tasks/', client_task_list_create, name='client-task-list-create'),

    # Service request endpoints
    path('client/requests/', client_request_list_create, name='client-request-list-create'),
    path('requests/', request_list, name='request-list'),
    path('requests/<int:pk>/', request_detail, name='request-detail'),
]
