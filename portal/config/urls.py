"""
URL configuration for the agency portal.

Every app mounts its endpoints under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = f"{settings.AGENCY_NAME} Admin Panel"
admin.site.site_title = f"{settings.AGENCY_NAME} Admin Portal"
admin.site.index_title = "Agency portal administration"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('portal.core.urls')),
    path('api/v1/', include('portal.clients.urls')),
    path('api/v1/', include('portal.tasks.urls')),
    path('api/v1/', include('portal.chat.urls')),
    path('api/v1/', include('portal.content.urls')),
    path('api/v1/', include('portal.reports.urls')),
    # Chat attachments are served through the authenticated chat endpoint
    re_path(r'^media/(?!chat_attachments/)(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
]
