"""
Test suite for the content module
Tests: resources, YouTube videos, offers, updates, weekly products and the cached client lists
"""
import shutil
import tempfile
from datetime import timedelta

from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status

from portal.core.models import AuditLog
from portal.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from portal.content.models import Resource, Video, Update, WeeklyProduct, ProductLink, extract_youtube_id

MEDIA_ROOT = tempfile.mkdtemp()


class YouTubeTests(TestCase):
    """Test video id extraction and derived URLs"""

    def test_extract_from_common_url_shapes(self):
        for url in [
            'https://www.youtube.com/watch?v=dQw4w9WgXcQ',
            'https://youtu.be/dQw4w9WgXcQ',
            'https://www.youtube.com/embed/dQw4w9WgXcQ',
            'https://www.youtube.com/watch?feature=share&v=dQw4w9WgXcQ',
            'https://www.youtube.com/v/dQw4w9WgXcQ?version=3',
        ]:
            self.assertEqual(extract_youtube_id(url), 'dQw4w9WgXcQ', url)

    def test_rejects_bad_urls(self):
        self.assertIsNone(extract_youtube_id('https://example.com/video'))
        self.assertIsNone(extract_youtube_id('https://youtu.be/short'))
        self.assertIsNone(extract_youtube_id(''))

    def test_derived_urls(self):
        video = TestDataFactory.create_video(youtube_id='dQw4w9WgXcQ')
        self.assertEqual(video.embed_url, 'https://www.youtube.com/embed/dQw4w9WgXcQ')
        self.assertEqual(video.thumbnail_url, 'https://img.youtube.com/vi/dQw4w9WgXcQ/hqdefault.jpg')


class AdminContentTestCase(TestCase):
    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_admin()
        self.api = AuthenticatedAPIClient()
        self.api.authenticate_user(self.admin)


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class ResourceTests(AdminContentTestCase):
    """Test resource endpoints"""

    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def test_create_link_resource(self):
        response = self.api.post('/api/v1/resources/', {
            'title': 'Brand guide', 'type': 'link', 'url': ' https://example.com/brand '
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['url'], 'https://example.com/brand')
        self.assertTrue(AuditLog.objects.filter(action='create', model_name='Resource').exists())

    def test_link_resource_requires_url(self):
        response = self.api.post('/api/v1/resources/', {'title': 'No url', 'type': 'link'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('url', response.data)

    def test_file_resource_requires_file(self):
        response = self.api.post('/api/v1/resources/', {'title': 'No file', 'type': 'file'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('file', response.data)

    def test_upload_file_resource(self):
        upload = SimpleUploadedFile('Checklist.PDF', b'%PDF-1.4', content_type='application/pdf')
        response = self.api.post('/api/v1/resources/', {
            'title': 'Checklist', 'type': 'file', 'file': upload
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        resource = Resource.objects.get()
        self.assertTrue(resource.file.name.startswith('resources/'))
        self.assertTrue(resource.file.name.endswith('.pdf'))
        self.assertEqual(resource.url, resource.file.url)
        self.assertEqual(response.data['url'], resource.file.url)

    def test_delete_file_resource_removes_file(self):
        upload = SimpleUploadedFile('old.txt', b'old', content_type='text/plain')
        self.api.post('/api/v1/resources/', {'title': 'Old', 'type': 'file', 'file': upload}, format='multipart')
        resource = Resource.objects.get()
        storage, name = resource.file.storage, resource.file.name
        self.assertTrue(storage.exists(name))

        response = self.api.delete(f'/api/v1/resources/{resource.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(storage.exists(name))

    def test_filter_by_type_and_search(self):
        TestDataFactory.create_resource(title='SEO checklist')
        Resource.objects.create(title='Logo pack', type=Resource.TYPE_FILE, url='/media/resources/x.zip')

        response = self.api.get('/api/v1/resources/', {'type': 'file'})
        self.assertEqual([r['title'] for r in response.data], ['Logo pack'])

        response = self.api.get('/api/v1/resources/', {'search': 'seo'})
        self.assertEqual([r['title'] for r in response.data], ['SEO checklist'])

    def test_client_cannot_create(self):
        client = TestDataFactory.create_client()
        self.api.authenticate_user(client.user)
        response = self.api.post('/api/v1/resources/', {'title': 'x', 'type': 'link', 'url': 'https://x.test'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class VideoTests(AdminContentTestCase):
    """Test video endpoints"""

    def test_create_from_url(self):
        response = self.api.post('/api/v1/videos/', {
            'title': 'Onboarding', 'youtube_url': 'https://youtu.be/dQw4w9WgXcQ'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['youtube_id'], 'dQw4w9WgXcQ')
        self.assertEqual(response.data['embed_url'], 'https://www.youtube.com/embed/dQw4w9WgXcQ')
        self.assertNotIn('youtube_url', response.data)

    def test_invalid_url(self):
        response = self.api.post('/api/v1/videos/', {
            'title': 'Broken', 'youtube_url': 'https://vimeo.com/123'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('youtube_url', response.data)

    def test_url_required_on_create(self):
        response = self.api.post('/api/v1/videos/', {'title': 'Nothing'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_youtube_id_must_be_eleven_characters(self):
        response = self.api.post('/api/v1/videos/', {'title': 'Short', 'youtube_id': 'abc'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_title_keeps_video(self):
        video = TestDataFactory.create_video()
        response = self.api.patch(f'/api/v1/videos/{video.id}/', {'title': 'Renamed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        video.refresh_from_db()
        self.assertEqual(video.youtube_id, 'dQw4w9WgXcQ')
        self.assertEqual(video.title, 'Renamed')


class OfferTests(AdminContentTestCase):
    """Test offer endpoints"""

    def test_create_offer(self):
        valid_until = (timezone.localdate() + timedelta(days=14)).isoformat()
        response = self.api.post('/api/v1/offers/', {
            'title': 'Spring sale', 'discount_percentage': 25, 'valid_until': valid_until, 'code': ' SPRING25 '
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['code'], 'SPRING25')
        self.assertFalse(response.data['is_expired'])

    def test_discount_out_of_range(self):
        valid_until = timezone.localdate().isoformat()
        response = self.api.post('/api/v1/offers/', {
            'title': 'Too generous', 'discount_percentage': 150, 'valid_until': valid_until
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('discount_percentage', response.data)

    def test_valid_until_required(self):
        response = self.api.post('/api/v1/offers/', {'title': 'Forever'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('valid_until', response.data)

    def test_expiry_is_by_date(self):
        self.assertFalse(TestDataFactory.create_offer(valid_in_days=0).is_expired)
        self.assertTrue(TestDataFactory.create_offer(valid_in_days=-1).is_expired)

    def test_active_filter(self):
        TestDataFactory.create_offer(title='Current', valid_in_days=3)
        TestDataFactory.create_offer(title='Expired', valid_in_days=-3)

        response = self.api.get('/api/v1/offers/', {'active': 'true'})
        self.assertEqual([o['title'] for o in response.data], ['Current'])

        response = self.api.get('/api/v1/offers/', {'active': 'false'})
        self.assertEqual([o['title'] for o in response.data], ['Expired'])

        response = self.api.get('/api/v1/offers/')
        self.assertEqual(len(response.data), 2)


class UpdateTests(AdminContentTestCase):
    """Test updates and publishing"""

    def test_create_draft(self):
        response = self.api.post('/api/v1/updates/', {
            'title': 'New feature', 'content': 'We launched reports', 'is_published': False
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['is_published'])

    def test_content_required(self):
        response = self.api.post('/api/v1/updates/', {'title': 'Empty', 'content': '  '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('content', response.data)

    def test_publish_and_toggle(self):
        update = TestDataFactory.create_update(is_published=False)

        response = self.api.post(f'/api/v1/updates/{update.id}/publish/', {'is_published': True}, format='json')
        self.assertTrue(response.data['is_published'])
        self.assertTrue(AuditLog.objects.filter(action='publish', model_name='Update').exists())

        response = self.api.post(f'/api/v1/updates/{update.id}/publish/', {}, format='json')
        self.assertFalse(response.data['is_published'])
        self.assertTrue(AuditLog.objects.filter(action='unpublish', model_name='Update').exists())

    def test_admin_sees_drafts(self):
        TestDataFactory.create_update(title='Draft', is_published=False)
        TestDataFactory.create_update(title='Live')
        response = self.api.get('/api/v1/updates/')
        self.assertEqual(len(response.data), 2)
        response = self.api.get('/api/v1/updates/', {'is_published': 'false'})
        self.assertEqual([u['title'] for u in response.data], ['Draft'])


class WeeklyProductTests(AdminContentTestCase):
    """Test weekly products and their links"""

    def test_create_with_links(self):
        response = self.api.post('/api/v1/weekly-products/', {
            'title': 'Pick of the week',
            'links': [
                {'title': 'Store', 'url': 'https://store.test/item'},
                {'title': 'Review', 'url': 'https://blog.test/review'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual([link['title'] for link in response.data['links']], ['Store', 'Review'])
        self.assertEqual(ProductLink.objects.count(), 2)

    def test_invalid_link_rejects_whole_product(self):
        response = self.api.post('/api/v1/weekly-products/', {
            'title': 'Broken',
            'links': [{'title': 'Store', 'url': 'not a url'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(WeeklyProduct.objects.exists())

    def test_update_replaces_links(self):
        product = TestDataFactory.create_weekly_product(links=[('Old', 'https://old.test')])
        response = self.api.patch(f'/api/v1/weekly-products/{product.id}/', {
            'links': [{'title': 'New', 'url': 'https://new.test'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([link['title'] for link in response.data['links']], ['New'])
        self.assertEqual(list(product.links.values_list('title', flat=True)), ['New'])

    def test_update_without_links_keeps_them(self):
        product = TestDataFactory.create_weekly_product(links=[('Keep', 'https://keep.test')])
        response = self.api.patch(f'/api/v1/weekly-products/{product.id}/', {'title': 'Renamed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([link['title'] for link in response.data['links']], ['Keep'])

    def test_delete_removes_links(self):
        product = TestDataFactory.create_weekly_product(links=[('A', 'https://a.test')])
        response = self.api.delete(f'/api/v1/weekly-products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(ProductLink.objects.exists())

    def test_publish(self):
        product = TestDataFactory.create_weekly_product(is_published=False)
        response = self.api.post(f'/api/v1/weekly-products/{product.id}/publish/', {'is_published': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_published'])


class ClientContentTests(TestCase):
    """Test the client portal content lists"""

    def setUp(self):
        cache.clear()
        self.client_record = TestDataFactory.create_client()
        self.api = AuthenticatedAPIClient()
        self.api.authenticate_user(self.client_record.user)

    def test_only_published_updates(self):
        TestDataFactory.create_update(title='Draft', is_published=False)
        live = TestDataFactory.create_update(title='Live')
        draft = Update.objects.get(title='Draft')

        response = self.api.get('/api/v1/client/updates/')
        self.assertEqual([u['title'] for u in response.data], ['Live'])

        response = self.api.get(f'/api/v1/client/updates/{live.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.api.get(f'/api/v1/client/updates/{draft.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_only_published_weekly_products(self):
        TestDataFactory.create_weekly_product(title='Hidden', is_published=False)
        TestDataFactory.create_weekly_product(title='Shown', links=[('Buy', 'https://buy.test')])
        response = self.api.get('/api/v1/client/weekly-products/')
        self.assertEqual([p['title'] for p in response.data], ['Shown'])
        self.assertEqual(response.data[0]['links'][0]['url'], 'https://buy.test')

    def test_active_offers(self):
        TestDataFactory.create_offer(title='Current', valid_in_days=1)
        TestDataFactory.create_offer(title='Expired', valid_in_days=-1)
        response = self.api.get('/api/v1/client/offers/', {'active': 'true'})
        self.assertEqual([o['title'] for o in response.data], ['Current'])

    def test_resources_and_videos(self):
        TestDataFactory.create_resource(title='Guide')
        TestDataFactory.create_video(title='Walkthrough')
        self.assertEqual(len(self.api.get('/api/v1/client/resources/').data), 1)
        self.assertEqual(len(self.api.get('/api/v1/client/videos/').data), 1)

    def test_list_cache_invalidated_on_change(self):
        TestDataFactory.create_resource(title='First')
        response = self.api.get('/api/v1/client/resources/')
        self.assertEqual(len(response.data), 1)

        TestDataFactory.create_resource(title='Second')
        response = self.api.get('/api/v1/client/resources/')
        self.assertEqual({r['title'] for r in response.data}, {'First', 'Second'})

    def test_admin_cannot_use_client_lists(self):
        self.api.authenticate_user(TestDataFactory.create_admin())
        response = self.api.get('/api/v1/client/resources/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
