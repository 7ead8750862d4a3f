from django.contrib import admin
from .models import Resource, Video, Offer, Update, WeeklyProduct, ProductLink


@admin.register(Resource)
class ResourceAdmin(admin.ModelAdmin):
    list_display = ['title', 'type', 'url', 'created_at']
    list_filter = ['type', 'created_at']
    search_fields = ['title', 'description']
    ordering = ['-created_at']


@admin.register(Video)
class VideoAdmin(admin.ModelAdmin):
    list_display = ['title', 'youtube_id', 'created_at']
    search_fields = ['title', 'description', 'youtube_id']
    ordering = ['-created_at']


@admin.register(Offer)
class OfferAdmin(admin.ModelAdmin):
    list_display = ['title', 'discount_percentage', 'code', 'valid_until', 'created_at']
    list_filter = ['valid_until']
    search_fields = ['title', 'description', 'code']
    ordering = ['-created_at']


@admin.register(Update)
class UpdateAdmin(admin.ModelAdmin):
    list_display = ['title', 'is_published', 'created_at', 'updated_at']
    list_filter = ['is_published', 'created_at']
    search_fields = ['title', 'content']
    ordering = ['-created_at']


class ProductLinkInline(admin.TabularInline):
    model = ProductLink
    extra = 1
    fields = ['title', 'url']


@admin.register(WeeklyProduct)
class WeeklyProductAdmin(admin.ModelAdmin):
    list_display = ['title', 'is_published', 'created_at']
    list_filter = ['is_published', 'created_at']
    search_fields = ['title', 'description']
    inlines = [ProductLinkInline]
    ordering = ['-created_at']
