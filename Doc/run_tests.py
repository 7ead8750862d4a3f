#!/usr/bin/env python
"""
Test runner script for the portal apps
Usage: python Doc/run_tests.py [app ...]
"""
import os
import sys

import django
from django.conf import settings
from django.test.utils import get_runner

PORTAL_APPS = [
    'portal.core',
    'portal.clients',
    'portal.tasks',
    'portal.chat',
    'portal.content',
    'portal.reports',
]

if __name__ == "__main__":
    sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'portal.config.settings')
    django.setup()
    TestRunner = get_runner(settings)
    test_runner = TestRunner()
    failures = test_runner.run_tests(sys.argv[1:] or PORTAL_APPS)
    sys.exit(bool(failures))
