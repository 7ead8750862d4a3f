import django_filters
from django.db.models import Q

from .models import Client


class ClientFilter(django_filters.FilterSet):
    """Search clients by name, email, company or phone"""
    search = django_filters.CharFilter(method='filter_search')
    has_account = django_filters.BooleanFilter(field_name='user', lookup_expr='isnull', exclude=True)

    class Meta:
        model = Client
        fields = ['search', 'has_account']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) |
            Q(email__icontains=value) |
            Q(company__icontains=value) |
            Q(phone__icontains=value)
        )
