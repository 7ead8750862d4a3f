"""
Test suite for the reports module
Tests: admin dashboard aggregates and caching, client dashboard
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from portal.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from portal.tasks.models import Task, ServiceRequest


class AdminDashboardTests(TestCase):
    """Test the agency dashboard"""

    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_admin()
        self.api = AuthenticatedAPIClient()
        self.api.authenticate_user(self.admin)

        self.acme = TestDataFactory.create_client(name='Acme')
        self.globex = TestDataFactory.create_client(name='Globex')
        TestDataFactory.create_task(self.acme, title='Soon', priority=Task.PRIORITY_HIGH, due_in_days=2)
        TestDataFactory.create_task(self.acme, title='Later', status=Task.STATUS_IN_PROGRESS, due_in_days=30)
        TestDataFactory.create_task(self.globex, title='Late', due_in_days=-1)
        TestDataFactory.create_task(self.globex, title='Done', status=Task.STATUS_COMPLETED, priority=Task.PRIORITY_HIGH)
        TestDataFactory.create_request(self.acme)
        TestDataFactory.create_request(self.globex, status=ServiceRequest.STATUS_COMPLETED)
        TestDataFactory.create_message(self.acme, 'Unread')
        TestDataFactory.create_message(self.globex, 'Read', is_read=True)

    def test_dashboard_totals(self):
        response = self.api.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data

        self.assertEqual(data['total_clients'], 2)
        self.assertEqual(data['tasks']['total'], 4)
        self.assertEqual(data['tasks']['by_status'], {'pending': 2, 'in_progress': 1, 'completed': 1})
        self.assertEqual(data['tasks']['by_priority'], {'low': 0, 'medium': 2, 'high': 2})
        self.assertEqual(data['tasks']['high_priority_open'], 1)
        self.assertEqual(data['tasks']['overdue'], 1)
        self.assertEqual(data['pending_requests'], 1)
        self.assertEqual(data['unread_messages'], 1)

    def test_upcoming_and_recently_completed(self):
        data = self.api.get('/api/v1/reports/dashboard/').data
        self.assertEqual([t['title'] for t in data['upcoming']], ['Soon'])
        self.assertEqual([t['title'] for t in data['recently_completed']], ['Done'])

    def test_dashboard_cache_invalidated_by_new_task(self):
        first = self.api.get('/api/v1/reports/dashboard/').data
        self.assertEqual(first['tasks']['total'], 4)

        # Cached between requests
        second = self.api.get('/api/v1/reports/dashboard/').data
        self.assertEqual(second['generated_at'], first['generated_at'])

        TestDataFactory.create_task(self.acme, title='Fresh')
        third = self.api.get('/api/v1/reports/dashboard/').data
        self.assertEqual(third['tasks']['total'], 5)

    def test_marking_read_refreshes_unread_count(self):
        self.assertEqual(self.api.get('/api/v1/reports/dashboard/').data['unread_messages'], 1)
        self.api.post(f'/api/v1/chat/clients/{self.acme.id}/read/')
        self.assertEqual(self.api.get('/api/v1/reports/dashboard/').data['unread_messages'], 0)

    def test_clients_cannot_see_admin_dashboard(self):
        self.api.authenticate_user(self.acme.user)
        response = self.api.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ClientDashboardTests(TestCase):
    """Test the client portal dashboard"""

    def setUp(self):
        cache.clear()
        self.client_record = TestDataFactory.create_client(name='Acme', company='Acme Inc')
        self.api = AuthenticatedAPIClient()
        self.api.authenticate_user(self.client_record.user)

    def test_client_dashboard(self):
        other = TestDataFactory.create_client()
        TestDataFactory.create_task(self.client_record, status=Task.STATUS_PENDING)
        TestDataFactory.create_task(self.client_record, status=Task.STATUS_COMPLETED)
        TestDataFactory.create_task(self.client_record, due_in_days=-4)
        TestDataFactory.create_task(other)
        TestDataFactory.create_message(self.client_record, 'From agency', is_from_client=False)
        TestDataFactory.create_message(self.client_record, 'From me')
        TestDataFactory.create_request(self.client_record)
        TestDataFactory.create_request(self.client_record, status=ServiceRequest.STATUS_IN_PROGRESS)
        TestDataFactory.create_request(self.client_record, status=ServiceRequest.STATUS_REJECTED)
        TestDataFactory.create_offer(valid_in_days=5)
        TestDataFactory.create_offer(valid_in_days=-5)
        for i in range(4):
            TestDataFactory.create_update(title=f'Update {i}')
        TestDataFactory.create_update(title='Draft', is_published=False)

        response = self.api.get('/api/v1/client/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data

        self.assertEqual(data['client'], {'id': self.client_record.id, 'name': 'Acme', 'company': 'Acme Inc'})
        self.assertEqual(data['tasks'], {'total': 3, 'pending': 2, 'in_progress': 0, 'completed': 1, 'overdue': 1})
        self.assertEqual(data['unread_messages'], 1)
        self.assertEqual(data['open_requests'], 2)
        self.assertEqual(data['active_offers'], 1)
        self.assertEqual([u['title'] for u in data['latest_updates']], ['Update 3', 'Update 2', 'Update 1'])

    def test_admin_cannot_see_client_dashboard(self):
        self.api.authenticate_user(TestDataFactory.create_admin())
        response = self.api.get('/api/v1/client/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
