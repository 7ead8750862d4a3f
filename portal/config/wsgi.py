"""
WSGI config for the agency portal project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'portal.config.settings')

application = get_wsgi_application()
