"""
Test suite for the clients module
Tests: client CRUD, portal account provisioning, password reset, profile, client resolution
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from portal.clients.models import Client
from portal.clients.services import resolve_client_for_user, generate_password
from portal.core.models import User
from portal.core.permissions import CLIENT_GROUP
from portal.core.test_utils import TestDataFactory, AuthenticatedAPIClient, DEFAULT_PASSWORD
from portal.tasks.models import Task, ServiceRequest


class ClientServiceTests(TestCase):
    """Test client account services"""

    def test_generate_password_length(self):
        password = generate_password()
        self.assertEqual(len(password), 16)
        self.assertTrue(password.isalnum())

    def test_email_is_stored_lower_case(self):
        client = Client.objects.create(name='Acme', email='  Info@ACME.test ')
        self.assertEqual(client.email, 'info@acme.test')

    def test_resolve_admin_returns_none(self):
        admin = TestDataFactory.create_admin()
        Client.objects.create(name='Same email', email=admin.email)
        self.assertIsNone(resolve_client_for_user(admin))

    def test_resolve_by_user(self):
        client = TestDataFactory.create_client()
        self.assertEqual(resolve_client_for_user(client.user), client)

    def test_resolve_by_email_links_client(self):
        user = TestDataFactory.create_user(username='x@shop.test', email='X@Shop.test')
        client = TestDataFactory.create_client(email='x@shop.test', with_account=False)
        self.assertEqual(resolve_client_for_user(user), client)
        client.refresh_from_db()
        self.assertEqual(client.user_id, user.id)

    def test_resolve_does_not_steal_linked_client(self):
        client = TestDataFactory.create_client(email='owned@shop.test')
        other = User.objects.create_user(username='other', email='OWNED@shop.test', password=DEFAULT_PASSWORD)
        self.assertIsNone(resolve_client_for_user(other))
        client.refresh_from_db()
        self.assertNotEqual(client.user_id, other.id)

    def test_resolve_unknown_user(self):
        self.assertIsNone(resolve_client_for_user(TestDataFactory.create_user()))


class ClientAPITests(TestCase):
    """Test admin client endpoints"""

    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_admin()
        self.api = AuthenticatedAPIClient()
        self.api.authenticate_user(self.admin)

    def test_create_client_with_password(self):
        response = self.api.post('/api/v1/clients/', {
            'name': 'Lotus Bakery',
            'email': 'Hello@Lotus.test',
            'company': 'Lotus Ltd',
            'password': 'secret1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['email'], 'hello@lotus.test')
        self.assertTrue(response.data['has_account'])
        self.assertNotIn('generated_password', response.data)

        user = User.objects.get(email='hello@lotus.test')
        self.assertTrue(user.check_password('secret1'))
        self.assertTrue(user.groups.filter(name=CLIENT_GROUP).exists())
        self.assertEqual(Client.objects.get(email='hello@lotus.test').user, user)

    def test_create_client_generates_password(self):
        response = self.api.post('/api/v1/clients/', {
            'name': 'Generated', 'email': 'gen@client.test'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        generated = response.data['generated_password']
        self.assertEqual(len(generated), 16)
        self.assertTrue(User.objects.get(email='gen@client.test').check_password(generated))

    def test_create_client_without_account(self):
        response = self.api.post('/api/v1/clients/', {
            'name': 'No Login', 'email': 'nologin@client.test', 'create_account': False
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['has_account'])
        self.assertFalse(User.objects.filter(email='nologin@client.test').exists())

    def test_create_client_short_password(self):
        response = self.api.post('/api/v1/clients/', {
            'name': 'Short', 'email': 'short@client.test', 'password': '123'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('password', response.data)
        self.assertFalse(Client.objects.filter(email='short@client.test').exists())

    def test_create_client_duplicate_email(self):
        TestDataFactory.create_client(email='dup@client.test')
        response = self.api.post('/api/v1/clients/', {
            'name': 'Dup', 'email': 'DUP@client.test'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(str(response.data['email'][0]), 'User with this email already exists')

    def test_create_client_email_used_by_admin(self):
        response = self.api.post('/api/v1/clients/', {
            'name': 'Clash', 'email': self.admin.email
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_client_email_used_as_username(self):
        TestDataFactory.create_user(username='bob@acme.test', email='ops@agency.test', groups=['Admin'])
        response = self.api.post('/api/v1/clients/', {
            'name': 'Bob', 'email': 'Bob@Acme.test'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(str(response.data['email'][0]), 'User with this email already exists')
        self.assertFalse(Client.objects.filter(email='bob@acme.test').exists())

    def test_update_client_email_used_as_username(self):
        TestDataFactory.create_user(username='taken@acme.test', email='ops@agency.test', groups=['Admin'])
        client = TestDataFactory.create_client(email='before@acme.test')
        response = self.api.patch(f'/api/v1/clients/{client.id}/', {'email': 'taken@acme.test'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        client.user.refresh_from_db()
        self.assertEqual(client.user.username, 'before@acme.test')

    def test_update_client_keeps_own_username(self):
        client = TestDataFactory.create_client(email='same@acme.test')
        response = self.api.patch(f'/api/v1/clients/{client.id}/', {'email': 'SAME@acme.test', 'company': 'Acme'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_create_client_requires_name(self):
        response = self.api.post('/api/v1/clients/', {'name': '  ', 'email': 'x@client.test'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data)

    def test_list_clients_newest_first_with_search(self):
        TestDataFactory.create_client(name='Alpha Widgets')
        TestDataFactory.create_client(name='Beta Gadgets', company='Widget Co')
        TestDataFactory.create_client(name='Gamma')

        response = self.api.get('/api/v1/clients/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([c['name'] for c in response.data], ['Gamma', 'Beta Gadgets', 'Alpha Widgets'])

        response = self.api.get('/api/v1/clients/', {'search': 'widget'})
        self.assertEqual({c['name'] for c in response.data}, {'Alpha Widgets', 'Beta Gadgets'})

    def test_list_cache_invalidated_on_create(self):
        TestDataFactory.create_client(name='First')
        self.assertEqual(len(self.api.get('/api/v1/clients/').data), 1)
        TestDataFactory.create_client(name='Second')
        self.assertEqual(len(self.api.get('/api/v1/clients/').data), 2)

    def test_detail_includes_task_summary(self):
        client = TestDataFactory.create_client()
        TestDataFactory.create_task(client, status=Task.STATUS_PENDING)
        TestDataFactory.create_task(client, status=Task.STATUS_IN_PROGRESS, due_in_days=-2)
        TestDataFactory.create_task(client, status=Task.STATUS_COMPLETED, due_in_days=-2)
        TestDataFactory.create_request(client)
        TestDataFactory.create_request(client, status=ServiceRequest.STATUS_REJECTED)

        response = self.api.get(f'/api/v1/clients/{client.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['task_summary'], {
            'total': 3, 'pending': 1, 'in_progress': 1, 'completed': 1, 'overdue': 1,
        })
        self.assertEqual(response.data['open_requests'], 1)

    def test_update_email_propagates_to_user(self):
        client = TestDataFactory.create_client()
        response = self.api.patch(f'/api/v1/clients/{client.id}/', {
            'email': 'Moved@Client.test', 'name': 'Renamed'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        client.user.refresh_from_db()
        self.assertEqual(client.user.email, 'moved@client.test')
        self.assertEqual(client.user.first_name, 'Renamed')

    def test_update_keeps_own_email(self):
        client = TestDataFactory.create_client()
        response = self.api.put(f'/api/v1/clients/{client.id}/', {
            'name': 'Same Email', 'email': client.email
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_delete_client_removes_login_and_tasks(self):
        client = TestDataFactory.create_client()
        user_id = client.user_id
        TestDataFactory.create_task(client)
        response = self.api.delete(f'/api/v1/clients/{client.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Client.objects.filter(pk=client.id).exists())
        self.assertFalse(User.objects.filter(pk=user_id).exists())
        self.assertFalse(Task.objects.exists())

    def test_reset_client_password(self):
        client = TestDataFactory.create_client()
        response = self.api.post(f'/api/v1/clients/{client.id}/password/', {
            'new_password': 'fresh-pass', 'new_password_confirm': 'fresh-pass'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        client.user.refresh_from_db()
        self.assertTrue(client.user.check_password('fresh-pass'))

    def test_reset_password_mismatch(self):
        client = TestDataFactory.create_client()
        response = self.api.post(f'/api/v1/clients/{client.id}/password/', {
            'new_password': 'fresh-pass', 'new_password_confirm': 'other-pass'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reset_password_without_account(self):
        client = TestDataFactory.create_client(with_account=False)
        response = self.api.post(f'/api/v1/clients/{client.id}/password/', {
            'new_password': 'fresh-pass', 'new_password_confirm': 'fresh-pass'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Could not find user account for this client')

    def test_client_cannot_use_admin_endpoints(self):
        client = TestDataFactory.create_client()
        self.api.authenticate_user(client.user)
        response = self.api.get('/api/v1/clients/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unauthenticated(self):
        self.api.logout()
        response = self.api.get('/api/v1/clients/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class ClientProfileTests(TestCase):
    """Test the client portal profile"""

    def setUp(self):
        self.client_record = TestDataFactory.create_client(name='Orig', company='Orig Co')
        self.api = AuthenticatedAPIClient()
        self.api.authenticate_user(self.client_record.user)

    def test_get_profile(self):
        response = self.api.get('/api/v1/client/profile/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Orig')

    def test_update_profile_ignores_email(self):
        original_email = self.client_record.email
        response = self.api.patch('/api/v1/client/profile/', {
            'name': 'New Name', 'company': 'New Co', 'phone': '12345', 'email': 'hack@x.test'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.client_record.refresh_from_db()
        self.assertEqual(self.client_record.name, 'New Name')
        self.assertEqual(self.client_record.company, 'New Co')
        self.assertEqual(self.client_record.email, original_email)

    def test_admin_cannot_use_client_profile(self):
        self.api.authenticate_user(TestDataFactory.create_admin())
        response = self.api.get('/api/v1/client/profile/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(str(response.data['detail']), "You don't have permission to access client areas.")
