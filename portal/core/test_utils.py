"""
Test utilities and factories for creating test data
"""
import random
import string
from datetime import timedelta

from django.contrib.auth.models import Group
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from portal.core.models import User
from portal.core.permissions import ADMIN_GROUP, CLIENT_GROUP
from portal.clients.models import Client
from portal.tasks.models import Task, ServiceRequest
from portal.chat.models import ChatMessage
from portal.content.models import Resource, Video, Offer, Update, WeeklyProduct, ProductLink

DEFAULT_PASSWORD = 'Sup3r-Secret!'


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password=DEFAULT_PASSWORD, is_staff=False, is_superuser=False, groups=None):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        user = User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )
        for group_name in groups or []:
            group, _ = Group.objects.get_or_create(name=group_name)
            user.groups.add(group)
        return user

    @staticmethod
    def create_admin(email=None, password=DEFAULT_PASSWORD):
        """Create an agency admin in the Admin group"""
        if not email:
            email = f'admin_{TestDataFactory.random_string(6)}@agency.test'
        return TestDataFactory.create_user(username=email, email=email, password=password, groups=[ADMIN_GROUP])

    @staticmethod
    def create_client(name=None, email=None, with_account=True, password=DEFAULT_PASSWORD, company=None):
        """Create a client, by default with a portal login in the Client group"""
        if not name:
            name = f'Client {TestDataFactory.random_string(6)}'
        if not email:
            email = f'client_{TestDataFactory.random_string(6)}@test.com'
        user = None
        if with_account:
            user = TestDataFactory.create_user(username=email, email=email, password=password, groups=[CLIENT_GROUP])
        return Client.objects.create(name=name, email=email, company=company, user=user)

    @staticmethod
    def create_task(client, title=None, status=Task.STATUS_PENDING, priority=Task.PRIORITY_MEDIUM, due_in_days=7):
        """Create a task due `due_in_days` from now (negative for past due)"""
        if not title:
            title = f'Task {TestDataFactory.random_string(6)}'
        return Task.objects.create(
            client=client,
            title=title,
            status=status,
            priority=priority,
            due_date=timezone.now() + timedelta(days=due_in_days),
            completed_at=timezone.now() if status == Task.STATUS_COMPLETED else None,
        )

    @staticmethod
    def create_request(client, title=None, description='Please help', status=ServiceRequest.STATUS_PENDING):
        if not title:
            title = f'Request {TestDataFactory.random_string(6)}'
        return ServiceRequest.objects.create(client=client, title=title, description=description, status=status)

    @staticmethod
    def create_message(client, message='Hello', is_from_client=True, sender=None, is_read=False):
        if sender is None and is_from_client:
            sender = client.user
        return ChatMessage.objects.create(
            client=client, sender=sender, message=message,
            is_from_client=is_from_client, is_read=is_read
        )

    @staticmethod
    def create_resource(title=None, url='https://example.com/guide'):
        if not title:
            title = f'Resource {TestDataFactory.random_string(6)}'
        return Resource.objects.create(title=title, type=Resource.TYPE_LINK, url=url)

    @staticmethod
    def create_video(title=None, youtube_id='dQw4w9WgXcQ'):
        if not title:
            title = f'Video {TestDataFactory.random_string(6)}'
        return Video.objects.create(title=title, youtube_id=youtube_id)

    @staticmethod
    def create_offer(title=None, discount=10, valid_in_days=30, code=None):
        if not title:
            title = f'Offer {TestDataFactory.random_string(6)}'
        return Offer.objects.create(
            title=title,
            discount_percentage=discount,
            valid_until=timezone.localdate() + timedelta(days=valid_in_days),
            code=code,
        )

    @staticmethod
    def create_update(title=None, content='Something new', is_published=True):
        if not title:
            title = f'Update {TestDataFactory.random_string(6)}'
        return Update.objects.create(title=title, content=content, is_published=is_published)

    @staticmethod
    def create_weekly_product(title=None, is_published=True, links=None):
        if not title:
            title = f'Product {TestDataFactory.random_string(6)}'
        product = WeeklyProduct.objects.create(title=title, is_published=is_published)
        for link_title, url in links or []:
            ProductLink.objects.create(product=product, title=link_title, url=url)
        return product


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
