from django.urls import path
from .views import (
    resource_list_create, resource_detail, client_resource_list,
    video_list_create, video_detail, client_video_list,
    offer_list_create, offer_detail, client_offer_list,
    update_list_create, update_detail, update_publish, client_update_list, client_update_detail,
    weekly_product_list_create, weekly_product_detail, weekly_product_publish, client_weekly_product_list
)

urlpatterns = [
    # Resource endpoints
    path('resources/', resource_list_create, name='resource-list-create'),
    path('resources/<int:pk>/', resource_detail, name='resource-detail'),
    path('client/resources/', client_resource_list, name='client-resource-list'),

    # Video endpoints
    path('videos/', video_list_create, name='video-list-create'),
    path('videos/<int:pk>/', video_detail, name='video-detail'),
    path('client/videos/', client_video_list, name='client-video-list'),

    # Offer endpoints
    path('offers/', offer_list_create, name='offer-list-create'),
    path('offers/<int:pk>/', offer_detail, name='offer-detail'),
    path('client/offers/', client_offer_list, name='client-offer-list'),

    # Update endpoints
    path('updates/', update_list_create, name='update-list-create'),
    path('updates/<int:pk>/', update_detail, name='update-detail'),
    path('updates/<int:pk>/publish/', update_publish, name='update-publish'),
    path('client/updates/', client_update_list, name='client-update-list'),
    path('client/updates/<int:pk>/', client_update_detail, name='client-update-detail'),

    # WeeklyProduct endpoints
    path('weekly-products/', weekly_product_list_create, name='weekly-product-list-create'),
    path('weekly-products/<int:pk>/', weekly_product_detail, name='weekly-product-detail'),
    path('weekly-products/<int:pk>/publish/', weekly_product_publish, name='weekly-product-publish'),
    path('client/weekly-products/', client_weekly_product_list, name='client-weekly-product-list'),
]
