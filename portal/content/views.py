import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import JSONParser, MultiPartParser, FormParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from portal.core.cache_utils import CONTENT_LIST_CACHE_TTL, CONTENT_LIST_PREFIX, get_cached, set_cached
from portal.core.permissions import IsAgencyAdmin, IsPortalClient
from portal.core.utils import create_audit_log
from .filters import ResourceFilter, VideoFilter, OfferFilter, UpdateFilter, WeeklyProductFilter
from .models import Resource, Video, Offer, Update, WeeklyProduct
from .serializers import (
    ResourceSerializer, VideoSerializer, OfferSerializer, UpdateSerializer,
    WeeklyProductSerializer, PublishSerializer
)

logger = logging.getLogger(__name__)


def _filtered_list(request, filter_class, queryset, serializer_class):
    content_filter = filter_class(request.query_params, queryset=queryset)
    if not content_filter.is_valid():
        return Response(content_filter.errors, status=status.HTTP_400_BAD_REQUEST)
    return Response(serializer_class(content_filter.qs, many=True).data)


def _cached_client_list(request, kind, filter_class, queryset, serializer_class):
    """Client portal list, cached per query until content changes"""
    params = {key: request.query_params.get(key, '') for key in filter_class.base_filters}
    cached_data, cache_key = get_cached(CONTENT_LIST_PREFIX, kind=kind, **params)
    if cached_data is not None:
        return Response(cached_data)

    content_filter = filter_class(request.query_params, queryset=queryset)
    if not content_filter.is_valid():
        return Response(content_filter.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer_class(content_filter.qs, many=True).data
    set_cached(cache_key, data, CONTENT_LIST_CACHE_TTL)
    return Response(data)


def _create(request, serializer_class, model_name):
    serializer = serializer_class(data=request.data)
    if serializer.is_valid():
        obj = serializer.save()
        create_audit_log(
            request=request, action='create', model_name=model_name,
            object_id=obj.id, object_name=obj.title,
        )
        return Response(serializer_class(obj).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


def _detail(request, obj, serializer_class, model_name, on_delete=None):
    if request.method == 'GET':
        return Response(serializer_class(obj).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = serializer_class(obj, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            obj = serializer.save()
            create_audit_log(
                request=request, action='update', model_name=model_name,
                object_id=obj.id, object_name=obj.title,
                changes={k: str(v) for k, v in serializer.validated_data.items() if k != 'links'},
            )
            return Response(serializer_class(obj).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        obj_id, obj_title = obj.id, obj.title
        if on_delete:
            on_delete(obj)
        obj.delete()
        create_audit_log(
            request=request, action='delete', model_name=model_name,
            object_id=obj_id, object_name=obj_title,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


def _publish(request, obj, serializer_class, model_name):
    """Set is_published from the body, or toggle it when omitted"""
    serializer = PublishSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    is_published = serializer.validated_data.get('is_published', not obj.is_published)
    if obj.is_published != is_published:
        obj.is_published = is_published
        obj.save(update_fields=['is_published', 'updated_at'])
        create_audit_log(
            request=request, action='publish' if is_published else 'unpublish',
            model_name=model_name, object_id=obj.id, object_name=obj.title,
        )
    return Response(serializer_class(obj).data)


def _delete_resource_file(resource):
    if resource.file:
        resource.file.delete(save=False)


# Resource views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
@parser_classes([JSONParser, MultiPartParser, FormParser])
def resource_list_create(request):
    """List all resources or create a link/file resource"""
    if request.method == 'GET':
        return _filtered_list(request, ResourceFilter, Resource.objects.all(), ResourceSerializer)
    return _create(request, ResourceSerializer, 'Resource')


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
@parser_classes([JSONParser, MultiPartParser, FormParser])
def resource_detail(request, pk):
    resource = get_object_or_404(Resource, pk=pk)
    return _detail(request, resource, ResourceSerializer, 'Resource', on_delete=_delete_resource_file)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPortalClient])
def client_resource_list(request):
    return _cached_client_list(request, 'resources', ResourceFilter, Resource.objects.all(), ResourceSerializer)


# Video views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def video_list_create(request):
    """List all videos or add one from a YouTube URL"""
    if request.method == 'GET':
        return _filtered_list(request, VideoFilter, Video.objects.all(), VideoSerializer)
    return _create(request, VideoSerializer, 'Video')


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def video_detail(request, pk):
    video = get_object_or_404(Video, pk=pk)
    return _detail(request, video, VideoSerializer, 'Video')


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPortalClient])
def client_video_list(request):
    return _cached_client_list(request, 'videos', VideoFilter, Video.objects.all(), VideoSerializer)


# Offer views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def offer_list_create(request):
    """List all offers or create a new offer"""
    if request.method == 'GET':
        return _filtered_list(request, OfferFilter, Offer.objects.all(), OfferSerializer)
    return _create(request, OfferSerializer, 'Offer')


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def offer_detail(request, pk):
    offer = get_object_or_404(Offer, pk=pk)
    return _detail(request, offer, OfferSerializer, 'Offer')


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPortalClient])
def client_offer_list(request):
    """Client portal offers; ?active=true hides expired ones"""
    return _cached_client_list(request, 'offers', OfferFilter, Offer.objects.all(), OfferSerializer)


# Update views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def update_list_create(request):
    """List all updates (drafts included) or create one"""
    if request.method == 'GET':
        return _filtered_list(request, UpdateFilter, Update.objects.all(), UpdateSerializer)
    return _create(request, UpdateSerializer, 'Update')


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def update_detail(request, pk):
    update = get_object_or_404(Update, pk=pk)
    return _detail(request, update, UpdateSerializer, 'Update')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def update_publish(request, pk):
    update = get_object_or_404(Update, pk=pk)
    return _publish(request, update, UpdateSerializer, 'Update')


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPortalClient])
def client_update_list(request):
    """Client portal: published updates, newest first"""
    queryset = Update.objects.filter(is_published=True).order_by('-created_at', '-id')
    return _cached_client_list(request, 'updates', UpdateFilter, queryset, UpdateSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPortalClient])
def client_update_detail(request, pk):
    update = get_object_or_404(Update, pk=pk, is_published=True)
    return Response(UpdateSerializer(update).data)


# WeeklyProduct views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def weekly_product_list_create(request):
    """List weekly products with their links or create one"""
    if request.method == 'GET':
        queryset = WeeklyProduct.objects.prefetch_related('links')
        return _filtered_list(request, WeeklyProductFilter, queryset, WeeklyProductSerializer)
    return _create(request, WeeklyProductSerializer, 'WeeklyProduct')


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def weekly_product_detail(request, pk):
    """Retrieve, update (links are replaced) or delete a weekly product"""
    product = get_object_or_404(WeeklyProduct.objects.prefetch_related('links'), pk=pk)
    return _detail(request, product, WeeklyProductSerializer, 'WeeklyProduct')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAgencyAdmin])
def weekly_product_publish(request, pk):
    product = get_object_or_404(WeeklyProduct, pk=pk)
    return _publish(request, product, WeeklyProductSerializer, 'WeeklyProduct')


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPortalClient])
def client_weekly_product_list(request):
    """Client portal: published weekly products with links"""
    queryset = WeeklyProduct.objects.filter(is_published=True).prefetch_related('links').order_by('-created_at', '-id')
    return _cached_client_list(request, 'weekly_products', WeeklyProductFilter, queryset, WeeklyProductSerializer)
