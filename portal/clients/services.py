"""
Client account services: portal login provisioning and user -> client resolution
"""
import logging
import secrets
import string

from django.contrib.auth.models import Group
from django.db import transaction
from django.db.models import Q

from portal.core.cache_signals import suspend_cache_signals
from portal.core.cache_utils import invalidate_client_list_cache, invalidate_dashboard_cache
from portal.core.models import User
from portal.core.permissions import CLIENT_GROUP, is_admin_user
from .models import Client

logger = logging.getLogger(__name__)

GENERATED_PASSWORD_LENGTH = 16
MIN_CLIENT_PASSWORD_LENGTH = 6


def generate_password(length=GENERATED_PASSWORD_LENGTH):
    alphabet = string.ascii_letters + string.digits
    return ''.join(secrets.choice(alphabet) for _ in range(length))


def normalize_email(email):
    return (email or '').strip().lower()


def email_in_use(email, exclude_client=None):
    """True if a client uses this email, or a login user has it as email or username"""
    email = normalize_email(email)
    clients = Client.objects.filter(email__iexact=email)
    # Client logins use the email as username
    users = User.objects.filter(Q(email__iexact=email) | Q(username__iexact=email))
    if exclude_client is not None:
        clients = clients.exclude(pk=exclude_client.pk)
        if exclude_client.user_id:
            users = users.exclude(pk=exclude_client.user_id)
    return clients.exists() or users.exists()


def resolve_client_for_user(user):
    """
    Find the Client record a user acts as in the client portal.

    Lookup order:
    1. Admin users never resolve to a client
    2. Client linked by user
    3. Client with the same email (case-insensitive); an unlinked record
       is linked to the user on the way
    """
    if not user or not user.is_authenticated or is_admin_user(user):
        return None

    client = Client.objects.filter(user=user).first()
    if client:
        return client

    if not user.email:
        return None

    client = Client.objects.filter(email__iexact=user.email).first()
    if client is None:
        return None

    if client.user_id is None:
        client.user = user
        client.save(update_fields=['user', 'updated_at'])
        logger.info(f"Linked client {client.id} to user {user.id}")
        return client

    if client.user_id == user.id:
        return client

    # Email matches a client that belongs to a different login
    logger.warning(f"User {user.id} email matches client {client.id} owned by user {client.user_id}")
    return None


def create_client_user(email, password, name=''):
    """Create a portal login in the Client group"""
    email = normalize_email(email)
    user = User.objects.create_user(
        username=email,
        email=email,
        password=password,
        first_name=(name or '')[:150],
    )
    group, _ = Group.objects.get_or_create(name=CLIENT_GROUP)
    user.groups.add(group)
    return user


def create_client_with_account(validated_data, password=None, create_account=True):
    """
    Create a Client and, unless disabled, its portal login.

    Returns (client, generated_password). generated_password is only set
    when no password was supplied and one had to be generated.
    """
    generated_password = None
    with transaction.atomic():
        user = None
        if create_account:
            if not password:
                password = generate_password()
                generated_password = password
            user = create_client_user(validated_data['email'], password, validated_data.get('name', ''))
        client = Client.objects.create(user=user, **validated_data)
    logger.info(f"Created client {client.id} ({client.email}) with account={bool(user)}")
    return client, generated_password


def sync_client_user(client):
    """Propagate email/name changes on a client to its login"""
    user = client.user
    if user is None:
        return
    changed = []
    if user.email != client.email:
        user.email = client.email
        user.username = client.email
        changed += ['email', 'username']
    if client.name and user.first_name != client.name[:150]:
        user.first_name = client.name[:150]
        changed.append('first_name')
    if changed:
        user.save(update_fields=changed + ['updated_at'])


def set_client_password(client, new_password):
    """Reset a client's portal password. Returns False if the client has no login."""
    if client.user is None:
        return False
    client.user.set_password(new_password)
    client.user.save(update_fields=['password', 'updated_at'])
    return True


def delete_client(client):
    """Delete a client with its tasks, messages, requests and login"""
    with transaction.atomic(), suspend_cache_signals():
        user = client.user
        client.delete()
        if user is not None and not is_admin_user(user):
            user.delete()
    invalidate_client_list_cache()
    invalidate_dashboard_cache()
