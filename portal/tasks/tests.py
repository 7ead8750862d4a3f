"""
Test suite for the tasks module
Tests: derived overdue status, completion timestamps, admin task CRUD, client tasks and service requests
"""
from datetime import timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from portal.core.models import AuditLog
from portal.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from portal.tasks.models import Task, ServiceRequest


class TaskModelTests(TestCase):
    """Test derived task status"""

    def setUp(self):
        self.client_record = TestDataFactory.create_client()

    def test_overdue_when_past_due_and_open(self):
        task = TestDataFactory.create_task(self.client_record, status=Task.STATUS_IN_PROGRESS, due_in_days=-1)
        self.assertEqual(task.display_status, Task.STATUS_OVERDUE)
        self.assertTrue(Task.objects.filter(Task.overdue_q(timezone.now()), pk=task.pk).exists())

    def test_completed_task_is_never_overdue(self):
        task = TestDataFactory.create_task(self.client_record, status=Task.STATUS_COMPLETED, due_in_days=-1)
        self.assertEqual(task.display_status, Task.STATUS_COMPLETED)
        self.assertFalse(Task.objects.filter(Task.overdue_q(timezone.now())).exists())

    def test_future_task_keeps_stored_status(self):
        task = TestDataFactory.create_task(self.client_record, due_in_days=3)
        self.assertEqual(task.display_status, Task.STATUS_PENDING)

    def test_defaults(self):
        task = Task.objects.create(client=self.client_record, title='Defaults', due_date=timezone.now())
        self.assertEqual(task.status, Task.STATUS_PENDING)
        self.assertEqual(task.priority, Task.PRIORITY_MEDIUM)
        self.assertIsNone(task.completed_at)


class TaskAPITests(TestCase):
    """Test admin task endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client_record = TestDataFactory.create_client(name='Acme')
        self.api = AuthenticatedAPIClient()
        self.api.authenticate_user(self.admin)

    def _due(self, days=5):
        return (timezone.now() + timedelta(days=days)).isoformat()

    def test_create_task(self):
        response = self.api.post('/api/v1/tasks/', {
            'client': self.client_record.id,
            'title': 'Launch landing page',
            'priority': 'high',
            'due_date': self._due(),
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['client_name'], 'Acme')
        self.assertIsNone(response.data['completed_at'])

    def test_create_task_requires_title_client_due_date(self):
        response = self.api.post('/api/v1/tasks/', {'title': ''}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        for field in ('title', 'client', 'due_date'):
            self.assertIn(field, response.data)

    def test_create_completed_task_sets_completed_at(self):
        response = self.api.post('/api/v1/tasks/', {
            'client': self.client_record.id,
            'title': 'Already done',
            'status': 'completed',
            'due_date': self._due(),
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNotNone(response.data['completed_at'])

    def test_overdue_is_not_a_stored_status(self):
        response = self.api.post('/api/v1/tasks/', {
            'client': self.client_record.id,
            'title': 'Bad status',
            'status': 'overdue',
            'due_date': self._due(),
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_status_transitions_manage_completed_at(self):
        task = TestDataFactory.create_task(self.client_record)

        response = self.api.patch(f'/api/v1/tasks/{task.id}/', {'status': 'completed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        task.refresh_from_db()
        self.assertIsNotNone(task.completed_at)
        self.assertTrue(AuditLog.objects.filter(
            action='status_change', model_name='Task', object_id=str(task.id)
        ).exists())

        response = self.api.patch(f'/api/v1/tasks/{task.id}/', {'status': 'in_progress'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        task.refresh_from_db()
        self.assertIsNone(task.completed_at)

    def test_editing_completed_task_keeps_completed_at(self):
        task = TestDataFactory.create_task(self.client_record, status=Task.STATUS_COMPLETED)
        completed_at = task.completed_at
        response = self.api.patch(f'/api/v1/tasks/{task.id}/', {'title': 'Renamed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        task.refresh_from_db()
        self.assertEqual(task.completed_at, completed_at)

    def test_list_filters(self):
        other = TestDataFactory.create_client()
        TestDataFactory.create_task(self.client_record, title='SEO audit', priority=Task.PRIORITY_HIGH)
        TestDataFactory.create_task(self.client_record, title='Logo', due_in_days=-3)
        TestDataFactory.create_task(other, title='Other client task')

        response = self.api.get('/api/v1/tasks/', {'client': self.client_record.id})
        self.assertEqual(len(response.data), 2)

        response = self.api.get('/api/v1/tasks/', {'priority': 'high'})
        self.assertEqual([t['title'] for t in response.data], ['SEO audit'])

        response = self.api.get('/api/v1/tasks/', {'search': 'seo'})
        self.assertEqual(len(response.data), 1)

        response = self.api.get('/api/v1/tasks/', {'overdue': 'true'})
        self.assertEqual([t['title'] for t in response.data], ['Logo'])
        self.assertEqual(response.data[0]['display_status'], 'overdue')

        response = self.api.get('/api/v1/tasks/', {'overdue': 'false'})
        self.assertEqual(len(response.data), 2)

    def test_delete_task(self):
        task = TestDataFactory.create_task(self.client_record)
        response = self.api.delete(f'/api/v1/tasks/{task.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Task.objects.filter(pk=task.id).exists())

    def test_missing_task(self):
        response = self.api.get('/api/v1/tasks/99999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class ClientTaskTests(TestCase):
    """Test the client portal task views"""

    def setUp(self):
        self.client_record = TestDataFactory.create_client()
        self.api = AuthenticatedAPIClient()
        self.api.authenticate_user(self.client_record.user)

        TestDataFactory.create_task(self.client_record, title='Pending', status=Task.STATUS_PENDING)
        TestDataFactory.create_task(self.client_record, title='Working', status=Task.STATUS_IN_PROGRESS)
        TestDataFactory.create_task(self.client_record, title='Done', status=Task.STATUS_COMPLETED)
        TestDataFactory.create_task(self.client_record, title='Late', status=Task.STATUS_PENDING, due_in_days=-2)
        TestDataFactory.create_task(TestDataFactory.create_client(), title='Not mine')

    def _titles(self, tab):
        response = self.api.get('/api/v1/client/tasks/', {'tab': tab})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        return {t['title'] for t in response.data}

    def test_tabs_follow_display_status(self):
        self.assertEqual(self._titles('all'), {'Pending', 'Working', 'Done', 'Late'})
        self.assertEqual(self._titles('pending'), {'Pending'})
        self.assertEqual(self._titles('in_progress'), {'Working'})
        self.assertEqual(self._titles('completed'), {'Done'})
        self.assertEqual(self._titles('overdue'), {'Late'})

    def test_invalid_tab(self):
        response = self.api.get('/api/v1/client/tasks/', {'tab': 'archived'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_client_creates_pending_task(self):
        response = self.api.post('/api/v1/client/tasks/', {
            'title': 'Add blog section',
            'description': 'Weekly posts',
            'priority': 'low',
            'due_date': (timezone.now() + timedelta(days=10)).isoformat(),
            'status': 'completed',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['client'], self.client_record.id)

    def test_client_task_requires_due_date(self):
        response = self.api.post('/api/v1/client/tasks/', {'title': 'No date'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('due_date', response.data)

    def test_admin_cannot_use_client_tasks(self):
        self.api.authenticate_user(TestDataFactory.create_admin())
        response = self.api.get('/api/v1/client/tasks/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ServiceRequestTests(TestCase):
    """Test client requests and admin request handling"""

    def setUp(self):
        self.client_record = TestDataFactory.create_client(name='Requester')
        self.admin = TestDataFactory.create_admin()
        self.api = AuthenticatedAPIClient()

    def test_client_submits_request(self):
        self.api.authenticate_user(self.client_record.user)
        response = self.api.post('/api/v1/client/requests/', {
            'title': 'New landing page', 'description': 'For the summer sale', 'status': 'completed'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(ServiceRequest.objects.get().client, self.client_record)

    def test_client_request_requires_text(self):
        self.api.authenticate_user(self.client_record.user)
        response = self.api.post('/api/v1/client/requests/', {'title': 'Only title', 'description': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('description', response.data)

    def test_client_lists_only_own_requests(self):
        TestDataFactory.create_request(self.client_record, title='Mine')
        TestDataFactory.create_request(TestDataFactory.create_client(), title='Theirs')
        self.api.authenticate_user(self.client_record.user)
        response = self.api.get('/api/v1/client/requests/')
        self.assertEqual([r['title'] for r in response.data], ['Mine'])

    def test_admin_lists_and_filters_requests(self):
        TestDataFactory.create_request(self.client_record, title='Open one')
        TestDataFactory.create_request(self.client_record, title='Closed one', status=ServiceRequest.STATUS_COMPLETED)
        self.api.authenticate_user(self.admin)

        response = self.api.get('/api/v1/requests/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)
        self.assertEqual(response.data[0]['client_name'], 'Requester')

        response = self.api.get('/api/v1/requests/', {'status': 'pending'})
        self.assertEqual([r['title'] for r in response.data], ['Open one'])

    def test_admin_updates_request_status(self):
        service_request = TestDataFactory.create_request(self.client_record)
        self.api.authenticate_user(self.admin)
        response = self.api.patch(f'/api/v1/requests/{service_request.id}/', {'status': 'rejected'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        service_request.refresh_from_db()
        self.assertEqual(service_request.status, ServiceRequest.STATUS_REJECTED)
        self.assertTrue(AuditLog.objects.filter(action='status_change', model_name='ServiceRequest').exists())

    def test_admin_deletes_request(self):
        service_request = TestDataFactory.create_request(self.client_record)
        self.api.authenticate_user(self.admin)
        response = self.api.delete(f'/api/v1/requests/{service_request.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_client_cannot_manage_requests(self):
        service_request = TestDataFactory.create_request(self.client_record)
        self.api.authenticate_user(self.client_record.user)
        response = self.api.patch(f'/api/v1/requests/{service_request.id}/', {'status': 'completed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
