"""
Test suite for the chat module
Tests: sending messages and attachments, polling, read receipts, conversation list, email notifications
"""
import shutil
import tempfile
from datetime import timedelta
from unittest import mock

import requests
from django.conf import settings
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status

from portal.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from portal.chat.models import ChatMessage, chat_attachment_path
from portal.chat.notifications import build_message_email, message_preview, notify_new_message

MEDIA_ROOT = tempfile.mkdtemp()


@override_settings(MEDIA_ROOT=MEDIA_ROOT, RESEND_API_KEY='')
class ClientChatTests(TestCase):
    """Test the client side of the conversation"""

    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        self.client_record = TestDataFactory.create_client(name='Chatty')
        self.api = AuthenticatedAPIClient()
        self.api.authenticate_user(self.client_record.user)

    def test_send_text_message(self):
        response = self.api.post('/api/v1/client/chat/messages/', {'message': '  Hi there  '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['message'], 'Hi there')
        self.assertTrue(response.data['is_from_client'])
        self.assertFalse(response.data['is_read'])
        self.assertEqual(response.data['sender_name'], 'Chatty')
        self.assertIsNone(response.data['attachment_url'])

    def test_empty_message_rejected(self):
        response = self.api.post('/api/v1/client/chat/messages/', {'message': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Message or attachment is required')
        self.assertFalse(ChatMessage.objects.exists())

    def test_image_attachment(self):
        upload = SimpleUploadedFile('Photo.PNG', b'\x89PNG fake', content_type='image/png')
        response = self.api.post('/api/v1/client/chat/messages/', {'attachment': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['attachment_type'], 'image')
        self.assertEqual(response.data['attachment_name'], 'Photo.PNG')

        stored = ChatMessage.objects.get()
        self.assertTrue(stored.attachment.name.startswith(
            f'chat_attachments/client-attachments/{self.client_record.id}/'
        ))
        self.assertTrue(stored.attachment.name.endswith('.png'))
        self.assertTrue(response.data['attachment_url'].endswith(f'/api/v1/chat/messages/{stored.id}/attachment/'))

    def test_file_attachment_with_text(self):
        upload = SimpleUploadedFile('brief.pdf', b'%PDF-1.4', content_type='application/pdf')
        response = self.api.post(
            '/api/v1/client/chat/messages/',
            {'message': 'See attached', 'attachment': upload},
            format='multipart'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['attachment_type'], 'file')
        self.assertEqual(response.data['message'], 'See attached')

    @override_settings(CHAT_ATTACHMENT_MAX_SIZE=10)
    def test_attachment_size_limit(self):
        upload = SimpleUploadedFile('big.txt', b'x' * 11, content_type='text/plain')
        response = self.api.post('/api/v1/client/chat/messages/', {'attachment': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)
        self.assertFalse(ChatMessage.objects.exists())

    def test_conversation_only_contains_own_messages(self):
        TestDataFactory.create_message(self.client_record, 'Mine')
        TestDataFactory.create_message(TestDataFactory.create_client(), 'Theirs')
        response = self.api.get('/api/v1/client/chat/messages/')
        self.assertEqual([m['message'] for m in response.data], ['Mine'])

    def test_polling_with_since(self):
        old = TestDataFactory.create_message(self.client_record, 'Old')
        ChatMessage.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(hours=1))
        TestDataFactory.create_message(self.client_record, 'New', is_from_client=False)

        since = (timezone.now() - timedelta(minutes=30)).isoformat()
        response = self.api.get('/api/v1/client/chat/messages/', {'since': since})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([m['message'] for m in response.data], ['New'])

    def test_invalid_since(self):
        response = self.api.get('/api/v1/client/chat/messages/', {'since': 'yesterday'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_since_with_impossible_date(self):
        response = self.api.get('/api/v1/client/chat/messages/', {'since': '2024-13-01T00:00:00'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Invalid since parameter', response.data['error'])

    def test_numeric_message_stored_as_text(self):
        response = self.api.post('/api/v1/client/chat/messages/', {'message': 123}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['message'], '123')

    def test_non_text_message_rejected(self):
        response = self.api.post('/api/v1/client/chat/messages/', {'message': {'text': 'hi'}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('message', response.data)
        self.assertFalse(ChatMessage.objects.exists())

    def test_mark_agency_messages_read(self):
        TestDataFactory.create_message(self.client_record, 'From agency 1', is_from_client=False)
        TestDataFactory.create_message(self.client_record, 'From agency 2', is_from_client=False)
        own = TestDataFactory.create_message(self.client_record, 'From me')

        response = self.api.post('/api/v1/client/chat/read/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['updated'], 2)
        own.refresh_from_db()
        self.assertFalse(own.is_read)

    def test_mark_single_message_scoped_to_own_conversation(self):
        mine = TestDataFactory.create_message(self.client_record, 'Mine', is_from_client=False)
        theirs = TestDataFactory.create_message(TestDataFactory.create_client(), 'Theirs', is_from_client=False)

        response = self.api.post(f'/api/v1/chat/messages/{mine.id}/read/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_read'])

        response = self.api.post(f'/api/v1/chat/messages/{theirs.id}/read/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        theirs.refresh_from_db()
        self.assertFalse(theirs.is_read)

    def test_client_cannot_mark_own_message_read(self):
        own = TestDataFactory.create_message(self.client_record, 'Sent by me')
        response = self.api.post(f'/api/v1/chat/messages/{own.id}/read/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        own.refresh_from_db()
        self.assertFalse(own.is_read)

    def test_download_own_attachment(self):
        upload = SimpleUploadedFile('notes.txt', b'meeting notes', content_type='text/plain')
        response = self.api.post('/api/v1/client/chat/messages/', {'attachment': upload}, format='multipart')
        message_id = response.data['id']

        response = self.api.get(f'/api/v1/chat/messages/{message_id}/attachment/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(b''.join(response.streaming_content), b'meeting notes')
        self.assertIn('notes.txt', response['Content-Disposition'])

    def test_attachment_hidden_from_other_clients_and_public_media(self):
        upload = SimpleUploadedFile('private.txt', b'secret', content_type='text/plain')
        response = self.api.post('/api/v1/client/chat/messages/', {'attachment': upload}, format='multipart')
        message = ChatMessage.objects.get(pk=response.data['id'])

        self.api.authenticate_user(TestDataFactory.create_client().user)
        response = self.api.get(f'/api/v1/chat/messages/{message.id}/attachment/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        self.api.logout()
        response = self.api.get(f'/api/v1/chat/messages/{message.id}/attachment/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        response = self.api.get(f'/media/{message.attachment.name}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_attachment_of_text_message(self):
        message = TestDataFactory.create_message(self.client_record, 'No file')
        response = self.api.get(f'/api/v1/chat/messages/{message.id}/attachment/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_client_cannot_open_admin_conversations(self):
        response = self.api.get('/api/v1/chat/conversations/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


@override_settings(MEDIA_ROOT=MEDIA_ROOT, RESEND_API_KEY='')
class AdminChatTests(TestCase):
    """Test the admin side of the conversation"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.admin.first_name = 'Dana'
        self.admin.last_name = 'Agent'
        self.admin.save()
        self.api = AuthenticatedAPIClient()
        self.api.authenticate_user(self.admin)

    def test_admin_sends_message(self):
        client = TestDataFactory.create_client()
        response = self.api.post(f'/api/v1/chat/clients/{client.id}/messages/', {'message': 'Update ready'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['is_from_client'])
        self.assertEqual(response.data['sender'], self.admin.id)
        self.assertEqual(response.data['sender_name'], 'Dana Agent')

    def test_admin_attachment_path(self):
        client = TestDataFactory.create_client()
        message = ChatMessage(client=client, is_from_client=False)
        path = chat_attachment_path(message, 'Report.PDF')
        self.assertTrue(path.startswith(f'chat_attachments/admin-attachments/{client.id}/'))
        self.assertTrue(path.endswith('.pdf'))

    def test_messages_for_unknown_client(self):
        response = self.api.get('/api/v1/chat/clients/99999/messages/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_conversation_in_chronological_order(self):
        client = TestDataFactory.create_client()
        first = TestDataFactory.create_message(client, 'First')
        ChatMessage.objects.filter(pk=first.pk).update(created_at=timezone.now() - timedelta(minutes=5))
        TestDataFactory.create_message(client, 'Second', is_from_client=False, sender=self.admin)
        response = self.api.get(f'/api/v1/chat/clients/{client.id}/messages/')
        self.assertEqual([m['message'] for m in response.data], ['First', 'Second'])

    def test_conversation_list_ordering_and_unread(self):
        quiet = TestDataFactory.create_client(name='Aaron Quiet')
        read = TestDataFactory.create_client(name='Bella Read')
        unread = TestDataFactory.create_client(name='Zed Unread')

        old = TestDataFactory.create_message(unread, 'Need help')
        ChatMessage.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(days=1))
        TestDataFactory.create_message(read, 'Thanks', is_read=True)

        response = self.api.get('/api/v1/chat/conversations/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [row['client_id'] for row in response.data],
            [unread.id, read.id, quiet.id]
        )
        self.assertEqual(response.data[0]['unread_count'], 1)
        self.assertEqual(response.data[0]['last_message'], 'Need help')
        self.assertEqual(response.data[1]['unread_count'], 0)
        self.assertIsNone(response.data[2]['last_message'])
        self.assertIsNone(response.data[2]['last_message_date'])

    def test_attachment_only_message_summary(self):
        client = TestDataFactory.create_client()
        ChatMessage.objects.create(
            client=client, sender=client.user, is_from_client=True,
            message='', attachment_type=ChatMessage.ATTACHMENT_IMAGE, attachment_name='a.png'
        )
        response = self.api.get('/api/v1/chat/conversations/')
        self.assertEqual(response.data[0]['last_message'], 'Sent an attachment')

    def test_admin_mark_read(self):
        client = TestDataFactory.create_client()
        TestDataFactory.create_message(client, 'One')
        TestDataFactory.create_message(client, 'Two')
        TestDataFactory.create_message(client, 'Reply', is_from_client=False, sender=self.admin)

        response = self.api.post(f'/api/v1/chat/clients/{client.id}/read/')
        self.assertEqual(response.data['updated'], 2)
        self.assertEqual(ChatMessage.objects.filter(is_read=False).count(), 1)

    def test_admin_marks_client_message(self):
        message = TestDataFactory.create_message(TestDataFactory.create_client(), 'Hi')
        response = self.api.post(f'/api/v1/chat/messages/{message.id}/read/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        message.refresh_from_db()
        self.assertTrue(message.is_read)

    def test_admin_cannot_mark_agency_message(self):
        message = TestDataFactory.create_message(
            TestDataFactory.create_client(), 'Our reply', is_from_client=False, sender=self.admin
        )
        response = self.api.post(f'/api/v1/chat/messages/{message.id}/read/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        message.refresh_from_db()
        self.assertFalse(message.is_read)

    def test_admin_downloads_client_attachment(self):
        client = TestDataFactory.create_client()
        message = ChatMessage.objects.create(
            client=client, sender=client.user, is_from_client=True, message='',
            attachment=SimpleUploadedFile('plan.pdf', b'%PDF-1.4'),
            attachment_name='plan.pdf', attachment_type=ChatMessage.ATTACHMENT_FILE,
        )
        response = self.api.get(f'/api/v1/chat/messages/{message.id}/attachment/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('attachment', response['Content-Disposition'])
        response.close()


@override_settings(
    RESEND_API_KEY='re_test',
    SUPPORT_EMAIL='support@agency.test',
    APP_URL='https://portal.agency.test',
    AGENCY_NAME='Test Agency',
)
class NotificationTests(TestCase):
    """Test email notifications for new messages"""

    def setUp(self):
        self.client_record = TestDataFactory.create_client(name='Acme', email='owner@acme.test')
        self.admin = TestDataFactory.create_admin()
        self.api = AuthenticatedAPIClient()

    def test_preview_truncation(self):
        self.assertEqual(message_preview('short'), 'short')
        preview = message_preview('x' * 150)
        self.assertEqual(len(preview), 103)
        self.assertTrue(preview.endswith('...'))

    def test_client_message_notifies_support(self):
        message = TestDataFactory.create_message(self.client_record, 'Where is my report?')
        to, subject, html = build_message_email(message)
        self.assertEqual(to, 'support@agency.test')
        self.assertEqual(subject, 'Acme sent you a message')
        self.assertIn(f'https://portal.agency.test/admin/chat/{self.client_record.id}', html)
        self.assertIn('Where is my report?', html)

    def test_admin_message_notifies_client_without_content(self):
        message = TestDataFactory.create_message(
            self.client_record, 'Secret numbers', is_from_client=False, sender=self.admin
        )
        to, subject, html = build_message_email(message)
        self.assertEqual(to, 'owner@acme.test')
        self.assertEqual(subject, 'You have received a new message from Test Agency')
        self.assertIn('https://portal.agency.test/client/chat', html)
        self.assertNotIn('Secret numbers', html)

    def test_html_is_escaped(self):
        self.client_record.name = '<b>Evil</b>'
        self.client_record.save()
        message = TestDataFactory.create_message(self.client_record, '<script>x</script>')
        _, _, html = build_message_email(message)
        self.assertNotIn('<script>', html)
        self.assertIn('&lt;b&gt;Evil&lt;/b&gt;', html)

    @mock.patch('portal.chat.notifications.requests.post')
    def test_notification_sent_after_commit(self, mock_post):
        mock_post.return_value = mock.Mock(ok=True, status_code=200, text='{}')
        self.api.authenticate_user(self.client_record.user)

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            response = self.api.post('/api/v1/client/chat/messages/', {'message': 'Hello'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(callbacks), 1)
        mock_post.assert_called_once()
        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], settings.RESEND_API_URL)
        self.assertEqual(kwargs['json']['to'], ['support@agency.test'])
        self.assertEqual(kwargs['headers']['Authorization'], 'Bearer re_test')

    @mock.patch('portal.chat.notifications.requests.post')
    def test_failed_delivery_does_not_fail_send(self, mock_post):
        mock_post.return_value = mock.Mock(ok=False, status_code=500, text='boom')
        self.api.authenticate_user(self.admin)

        with self.captureOnCommitCallbacks(execute=True):
            response = self.api.post(
                f'/api/v1/chat/clients/{self.client_record.id}/messages/', {'message': 'Hi'}, format='json'
            )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(mock_post.call_args.kwargs['json']['to'], ['owner@acme.test'])

    @mock.patch('portal.chat.notifications.requests.post')
    def test_network_error_is_swallowed(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError('down')
        message = TestDataFactory.create_message(self.client_record, 'Hi')
        self.assertFalse(notify_new_message(message))

    @override_settings(RESEND_API_KEY='')
    @mock.patch('portal.chat.notifications.requests.post')
    def test_skipped_without_api_key(self, mock_post):
        message = TestDataFactory.create_message(self.client_record, 'Hi')
        self.assertFalse(notify_new_message(message))
        mock_post.assert_not_called()
