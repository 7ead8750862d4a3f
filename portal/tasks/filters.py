import django_filters
from django.db.models import Q
from django.utils import timezone

from .models import Task, ServiceRequest


class TaskFilter(django_filters.FilterSet):
    """Admin task list filters"""
    search = django_filters.CharFilter(method='filter_search')
    client = django_filters.NumberFilter(field_name='client_id')
    status = django_filters.ChoiceFilter(choices=Task.STATUS_CHOICES)
    priority = django_filters.ChoiceFilter(choices=Task.PRIORITY_CHOICES)
    overdue = django_filters.BooleanFilter(method='filter_overdue')

    class Meta:
        model = Task
        fields = ['search', 'client', 'status', 'priority', 'overdue']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(Q(title__icontains=value) | Q(description__icontains=value))

    def filter_overdue(self, queryset, name, value):
        if value is None:
            return queryset
        overdue = Task.overdue_q(timezone.now())
        return queryset.filter(overdue) if value else queryset.exclude(overdue)


class ServiceRequestFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search')
    client = django_filters.NumberFilter(field_name='client_id')
    status = django_filters.ChoiceFilter(choices=ServiceRequest.STATUS_CHOICES)

    class Meta:
        model = ServiceRequest
        fields = ['search', 'client', 'status']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(title__icontains=value) |
            Q(description__icontains=value) |
            Q(client__name__icontains=value)
        )
