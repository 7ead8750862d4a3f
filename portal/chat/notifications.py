"""
Email notifications for new chat messages, sent through the Resend HTTP API.

Notifications are queued with transaction.on_commit so a rolled back message
never triggers an email. Delivery failures are logged and never raised.
"""
import logging
from html import escape

import requests
from django.conf import settings
from django.db import transaction

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 100


def message_preview(text, length=PREVIEW_LENGTH):
    text = (text or '').strip()
    if len(text) > length:
        return text[:length] + '...'
    return text


def sender_display_name(user):
    """Admin's full name, falling back to the agency name"""
    if user is not None:
        full_name = getattr(user, 'full_name', '')
        if full_name:
            return full_name
    return settings.AGENCY_NAME


def build_message_email(message):
    """
    Build (recipient, subject, html) for a chat message.
    Returns None when there is nobody to notify.
    """
    client = message.client
    agency = escape(settings.AGENCY_NAME)
    client_name = escape(client.name)

    if message.is_from_client:
        preview = escape(message_preview(message.message)) or '(attachment)'
        link = f"{settings.APP_URL}/admin/chat/{client.id}"
        subject = f"{client.name} sent you a message"
        html = (
            f"<h2>New message from {client_name}</h2>"
            f"<p><strong>Client Name:</strong> {client_name}</p>"
            f"<p><strong>Message:</strong> {preview}</p>"
            f"<p>Log in to the admin dashboard to respond.</p>"
            f'<p><a href="{escape(link)}">View Conversation</a></p>'
        )
        return settings.SUPPORT_EMAIL, subject, html

    if not client.email:
        return None
    sender_name = escape(sender_display_name(message.sender))
    link = f"{settings.APP_URL}/client/chat"
    subject = f"You have received a new message from {settings.AGENCY_NAME}"
    html = (
        f"<h2>New message from {agency}</h2>"
        f"<p>You have received a new message from {sender_name} at {agency}.</p>"
        f"<p>Login to your client panel to view the message or respond.</p>"
        f'<p><a href="{escape(link)}">View Message</a></p>'
    )
    return client.email, subject, html


def send_email(to, subject, html):
    """POST one email to Resend. Returns True on success."""
    api_key = settings.RESEND_API_KEY
    if not api_key:
        logger.debug(f"RESEND_API_KEY not configured, skipping email to {to}")
        return False

    try:
        response = requests.post(
            settings.RESEND_API_URL,
            json={
                'from': settings.NOTIFICATION_FROM_EMAIL,
                'to': [to],
                'subject': subject,
                'html': html,
            },
            headers={
                'Content-Type': 'application/json',
                'Authorization': f'Bearer {api_key}',
            },
            timeout=settings.NOTIFICATION_TIMEOUT,
        )
        if not response.ok:
            logger.warning(f"Email sending failed ({response.status_code}): {response.text}")
            return False
        logger.info(f"Notification email sent to {to}")
        return True
    except requests.exceptions.RequestException as e:
        logger.warning(f"Failed to send notification email to {to}: {str(e)}")
        return False


def notify_new_message(message):
    try:
        email = build_message_email(message)
        if email is None:
            return False
        return send_email(*email)
    except Exception as e:
        logger.error(f"Error sending notification for message {message.pk}: {str(e)}")
        return False


def queue_message_notification(message):
    transaction.on_commit(lambda: notify_new_message(message))
