import django_filters
from django.db.models import Q
from django.utils import timezone

from .models import Resource, Video, Offer, Update, WeeklyProduct


class SearchFilterMixin:
    """`search` across the fields listed in search_fields"""
    search_fields = ['title', 'description']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        query = Q()
        for field in self.search_fields:
            query |= Q(**{f'{field}__icontains': value})
        return queryset.filter(query)


class ResourceFilter(SearchFilterMixin, django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search')
    type = django_filters.ChoiceFilter(choices=Resource.TYPE_CHOICES)

    class Meta:
        model = Resource
        fields = ['search', 'type']


class VideoFilter(SearchFilterMixin, django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = Video
        fields = ['search']


class OfferFilter(SearchFilterMixin, django_filters.FilterSet):
    search_fields = ['title', 'description', 'code']

    search = django_filters.CharFilter(method='filter_search')
    active = django_filters.BooleanFilter(method='filter_active')

    class Meta:
        model = Offer
        fields = ['search', 'active']

    def filter_active(self, queryset, name, value):
        if value is None:
            return queryset
        today = timezone.localdate()
        if value:
            return queryset.filter(valid_until__gte=today)
        return queryset.filter(valid_until__lt=today)


class UpdateFilter(SearchFilterMixin, django_filters.FilterSet):
    search_fields = ['title', 'content']

    search = django_filters.CharFilter(method='filter_search')
    is_published = django_filters.BooleanFilter()

    class Meta:
        model = Update
        fields = ['search', 'is_published']


class WeeklyProductFilter(SearchFilterMixin, django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search')
    is_published = django_filters.BooleanFilter()

    class Meta:
        model = WeeklyProduct
        fields = ['search', 'is_published']
