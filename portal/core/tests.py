"""
Test suite for the core module
Tests: roles, admin/client login, token refresh and logout, profile, staff accounts, audit logs, search
"""
from io import StringIO

from django.contrib.auth.models import Group
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status
from rest_framework_simplejwt.tokens import AccessToken, RefreshToken

from portal.clients.models import Client
from portal.core.models import AuditLog, User
from portal.core.permissions import ADMIN_GROUP, CLIENT_GROUP, is_admin_user, role_for_user
from portal.core.test_utils import TestDataFactory, AuthenticatedAPIClient, DEFAULT_PASSWORD
from portal.core.utils import create_audit_log


class RoleTests(TestCase):
    """Test role resolution helpers"""

    def test_admin_group_is_admin(self):
        admin = TestDataFactory.create_admin()
        self.assertTrue(is_admin_user(admin))
        self.assertEqual(role_for_user(admin), 'admin')

    def test_superuser_without_group_is_admin(self):
        superuser = TestDataFactory.create_user(is_superuser=True, is_staff=True)
        self.assertTrue(is_admin_user(superuser))

    def test_superuser_in_client_group_is_not_admin(self):
        user = TestDataFactory.create_user(is_staff=True, groups=[CLIENT_GROUP])
        self.assertFalse(is_admin_user(user))

    def test_client_role(self):
        client = TestDataFactory.create_client()
        self.assertFalse(is_admin_user(client.user))
        self.assertEqual(role_for_user(client.user), 'client')

    def test_user_without_client_has_no_role(self):
        user = TestDataFactory.create_user()
        self.assertIsNone(role_for_user(user))


class AdminLoginTests(TestCase):
    """Test the admin portal login"""

    def setUp(self):
        self.api = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin(email='boss@agency.test')

    def test_admin_login_success(self):
        response = self.api.post('/api/v1/auth/admin/login/', {
            'email': 'boss@agency.test', 'password': DEFAULT_PASSWORD
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['role'], 'admin')
        self.assertEqual(response.data['redirect'], '/dashboard')
        self.assertTrue(AuditLog.objects.filter(action='login', user=self.admin).exists())

    def test_admin_login_email_is_case_insensitive(self):
        response = self.api.post('/api/v1/auth/admin/login/', {
            'email': '  BOSS@Agency.test ', 'password': DEFAULT_PASSWORD
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_admin_login_wrong_password(self):
        response = self.api.post('/api/v1/auth/admin/login/', {
            'email': 'boss@agency.test', 'password': 'wrong-password'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_admin_login_rejects_client_account(self):
        client = TestDataFactory.create_client(email='shop@client.test')
        response = self.api.post('/api/v1/auth/admin/login/', {
            'email': 'shop@client.test', 'password': DEFAULT_PASSWORD
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(
            str(response.data['detail']),
            'Client accounts must sign in through the client portal.'
        )
        self.assertTrue(AuditLog.objects.filter(action='login_denied', user=client.user).exists())


class ClientLoginTests(TestCase):
    """Test the client portal login"""

    def setUp(self):
        self.api = AuthenticatedAPIClient()

    def test_client_login_success(self):
        client = TestDataFactory.create_client(email='shop@client.test')
        response = self.api.post('/api/v1/auth/client/login/', {
            'email': 'Shop@Client.test', 'password': DEFAULT_PASSWORD
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['role'], 'client')
        self.assertEqual(response.data['redirect'], '/client/dashboard')
        token = AccessToken(response.data['access'])
        self.assertEqual(token['client_id'], client.id)
        self.assertEqual(token['role'], 'client')
        self.assertIn(CLIENT_GROUP, token['groups'])

    def test_client_login_rejects_admin(self):
        TestDataFactory.create_admin(email='boss@agency.test')
        response = self.api.post('/api/v1/auth/client/login/', {
            'email': 'boss@agency.test', 'password': DEFAULT_PASSWORD
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(str(response.data['detail']), 'Admin users should use the admin login')

    def test_client_login_without_client_record(self):
        TestDataFactory.create_user(username='orphan@test.com', email='orphan@test.com')
        response = self.api.post('/api/v1/auth/client/login/', {
            'email': 'orphan@test.com', 'password': DEFAULT_PASSWORD
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(
            str(response.data['detail']),
            'No client account found with this email. Please contact support.'
        )

    def test_client_login_links_unlinked_client(self):
        user = TestDataFactory.create_user(
            username='late@client.test', email='late@client.test', groups=[CLIENT_GROUP]
        )
        client = TestDataFactory.create_client(email='late@client.test', with_account=False)
        response = self.api.post('/api/v1/auth/client/login/', {
            'email': 'late@client.test', 'password': DEFAULT_PASSWORD
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        client.refresh_from_db()
        self.assertEqual(client.user, user)

    def test_client_login_wrong_password(self):
        TestDataFactory.create_client(email='shop@client.test')
        response = self.api.post('/api/v1/auth/client/login/', {
            'email': 'shop@client.test', 'password': 'not-it'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class TokenLifecycleTests(TestCase):
    """Test refresh and logout"""

    def setUp(self):
        self.api = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()

    def test_refresh_returns_new_access_token(self):
        refresh = RefreshToken.for_user(self.admin)
        response = self.api.post('/api/v1/auth/refresh/', {'refresh': str(refresh)}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_refresh_for_deleted_user_is_unauthorized(self):
        user = TestDataFactory.create_user()
        refresh = str(RefreshToken.for_user(user))
        user.delete()
        response = self.api.post('/api/v1/auth/refresh/', {'refresh': refresh}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_logout_blacklists_refresh_token(self):
        refresh = str(RefreshToken.for_user(self.admin))
        self.api.authenticate_user(self.admin)
        response = self.api.post('/api/v1/auth/logout/', {'refresh': refresh}, format='json')
        self.assertEqual(response.status_code, status.HTTP_205_RESET_CONTENT)

        response = self.api.post('/api/v1/auth/refresh/', {'refresh': refresh}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_logout_requires_refresh(self):
        self.api.authenticate_user(self.admin)
        response = self.api.post('/api/v1/auth/logout/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ProfileTests(TestCase):
    """Test /auth/me/, password change and landing"""

    def setUp(self):
        self.api = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.client_record = TestDataFactory.create_client()

    def test_me_for_admin(self):
        self.api.authenticate_user(self.admin)
        response = self.api.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['role'], 'admin')
        self.assertTrue(response.data['is_admin'])
        self.assertFalse(response.data['is_client'])
        self.assertIsNone(response.data['client_id'])
        self.assertIn(ADMIN_GROUP, response.data['groups'])

    def test_me_for_client(self):
        self.api.authenticate_user(self.client_record.user)
        response = self.api.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['role'], 'client')
        self.assertEqual(response.data['client_id'], self.client_record.id)

    def test_me_update_profile(self):
        self.api.authenticate_user(self.admin)
        response = self.api.patch('/api/v1/auth/me/', {
            'first_name': 'Asha', 'last_name': 'Rao', 'phone': '555-0100'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['full_name'], 'Asha Rao')

    def test_me_email_change_syncs_client(self):
        self.api.authenticate_user(self.client_record.user)
        response = self.api.patch('/api/v1/auth/me/', {'email': 'New@Client.test'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.client_record.refresh_from_db()
        self.assertEqual(self.client_record.email, 'new@client.test')

    def test_me_email_must_be_unique(self):
        self.api.authenticate_user(self.admin)
        response = self.api.patch('/api/v1/auth/me/', {'email': self.client_record.email}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_change_password(self):
        self.api.authenticate_user(self.admin)
        response = self.api.post('/api/v1/auth/password/', {
            'current_password': DEFAULT_PASSWORD,
            'new_password': 'An0ther-Secret!',
            'new_password_confirm': 'An0ther-Secret!',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.admin.refresh_from_db()
        self.assertTrue(self.admin.check_password('An0ther-Secret!'))
        self.assertTrue(AuditLog.objects.filter(action='password_change', user=self.admin).exists())

    def test_change_password_wrong_current(self):
        self.api.authenticate_user(self.admin)
        response = self.api.post('/api/v1/auth/password/', {
            'current_password': 'nope',
            'new_password': 'An0ther-Secret!',
            'new_password_confirm': 'An0ther-Secret!',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('current_password', response.data)

    def test_landing_anonymous(self):
        response = self.api.get('/api/v1/auth/landing/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['role'])
        self.assertEqual(response.data['redirect'], '/login')

    def test_landing_routes_by_role(self):
        self.api.authenticate_user(self.admin)
        self.assertEqual(self.api.get('/api/v1/auth/landing/').data['redirect'], '/dashboard')
        self.api.authenticate_user(self.client_record.user)
        self.assertEqual(self.api.get('/api/v1/auth/landing/').data['redirect'], '/client/dashboard')


class StaffAccountTests(TestCase):
    """Test agency admin account management"""

    def setUp(self):
        self.api = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.api.authenticate_user(self.admin)

    def test_create_staff_account(self):
        response = self.api.post('/api/v1/users/', {
            'email': 'new.admin@agency.test',
            'password': 'Str0ng-Passw0rd!',
            'password_confirm': 'Str0ng-Passw0rd!',
            'first_name': 'New',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['username'], 'new.admin@agency.test')
        self.assertTrue(Group.objects.get(name=ADMIN_GROUP).user_set.filter(email='new.admin@agency.test').exists())

    def test_create_staff_password_mismatch(self):
        response = self.api.post('/api/v1/users/', {
            'email': 'new.admin@agency.test',
            'password': 'Str0ng-Passw0rd!',
            'password_confirm': 'different',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_excludes_client_users(self):
        client = TestDataFactory.create_client()
        response = self.api.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        ids = [u['id'] for u in response.data]
        self.assertIn(self.admin.id, ids)
        self.assertNotIn(client.user.id, ids)

    def test_cannot_delete_self(self):
        response = self.api.delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_client_cannot_manage_users(self):
        client = TestDataFactory.create_client()
        self.api.authenticate_user(client.user)
        response = self.api.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class AuditLogTests(TestCase):
    """Test audit log helpers and endpoints"""

    def setUp(self):
        self.api = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()

    def test_create_audit_log_skips_missing_fields(self):
        self.assertIsNone(create_audit_log(action='create', model_name='Client'))

    def test_list_filters_by_action(self):
        create_audit_log(action='create', model_name='Client', object_id=1, user=self.admin)
        create_audit_log(action='delete', model_name='Client', object_id=1, user=self.admin)
        self.api.authenticate_user(self.admin)
        response = self.api.get('/api/v1/audit-logs/', {'action': 'delete'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['action'], 'delete')

    def test_detail(self):
        log = create_audit_log(action='create', model_name='Task', object_id=7, user=self.admin)
        self.api.authenticate_user(self.admin)
        response = self.api.get(f'/api/v1/audit-logs/{log.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['object_id'], '7')

    def test_clients_cannot_read_audit_logs(self):
        client = TestDataFactory.create_client()
        self.api.authenticate_user(client.user)
        response = self.api.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class GlobalSearchTests(TestCase):
    """Test admin global search"""

    def setUp(self):
        self.api = AuthenticatedAPIClient()
        self.api.authenticate_user(TestDataFactory.create_admin())

    def test_empty_query(self):
        response = self.api.get('/api/v1/search/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['clients'], [])

    def test_search_across_entities(self):
        client = TestDataFactory.create_client(name='Lotus Bakery')
        TestDataFactory.create_task(client, title='Lotus homepage refresh')
        TestDataFactory.create_update(title='Unrelated news')
        response = self.api.get('/api/v1/search/', {'q': 'lotus'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['clients']), 1)
        self.assertEqual(len(response.data['tasks']), 1)
        self.assertEqual(response.data['updates'], [])


class CreateUserGroupsCommandTests(TestCase):
    """Test the create_user_groups management command"""

    def test_creates_groups(self):
        call_command('create_user_groups', stdout=StringIO())
        self.assertTrue(Group.objects.filter(name=ADMIN_GROUP).exists())
        self.assertTrue(Group.objects.filter(name=CLIENT_GROUP).exists())

    def test_creates_admin_account(self):
        call_command(
            'create_user_groups', admin_email='Owner@Agency.test', admin_password='Owner-Pass-123',
            stdout=StringIO()
        )
        self.assertFalse(Client.objects.exists())
        owner = User.objects.get(email='owner@agency.test')
        self.assertTrue(is_admin_user(owner))
        self.assertTrue(owner.check_password('Owner-Pass-123'))
