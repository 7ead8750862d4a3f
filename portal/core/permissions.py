"""
Role checks for the admin and client portals.

Roles are Django groups:
- Admin: agency staff, full access to the admin portal
- Client: customer accounts, access to the client portal only

A superuser/staff account with no application group is treated as Admin.
"""
from rest_framework.permissions import BasePermission

ADMIN_GROUP = 'Admin'
CLIENT_GROUP = 'Client'
APPLICATION_GROUPS = [ADMIN_GROUP, CLIENT_GROUP]

ROLE_ADMIN = 'admin'
ROLE_CLIENT = 'client'

ADMIN_HOME = '/dashboard'
CLIENT_HOME = '/client/dashboard'
LOGIN_PATH = '/login'
CLIENT_LOGIN_PATH = '/client/login'


def is_admin_user(user):
    """
    Check if user is an agency admin.
    Returns True if:
    - User is in 'Admin' group, OR
    - User is superuser/staff and not in any application group (fallback)
    """
    if not user or not user.is_authenticated:
        return False

    user_group_names = list(user.groups.values_list('name', flat=True))

    if ADMIN_GROUP in user_group_names:
        return True

    has_application_group = any(group in user_group_names for group in APPLICATION_GROUPS)
    if not has_application_group and (user.is_superuser or user.is_staff):
        return True

    return False


def get_portal_client(user):
    """Return the Client record a user may act as, or None"""
    from portal.clients.services import resolve_client_for_user
    return resolve_client_for_user(user)


def role_for_user(user):
    """Return 'admin', 'client' or None"""
    if not user or not user.is_authenticated:
        return None
    if is_admin_user(user):
        return ROLE_ADMIN
    if get_portal_client(user) is not None:
        return ROLE_CLIENT
    return None


def home_for_role(role):
    if role == ROLE_ADMIN:
        return ADMIN_HOME
    if role == ROLE_CLIENT:
        return CLIENT_HOME
    return LOGIN_PATH


class IsAgencyAdmin(BasePermission):
    """Allow access to agency admins only"""
    message = 'Only agency admins can access this resource.'

    def has_permission(self, request, view):
        return is_admin_user(request.user)


class IsPortalClient(BasePermission):
    """
    Allow access to client portal users only.
    The resolved Client record is attached to the request as `portal_client`.
    """
    message = "You don't have permission to access client areas."

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated or is_admin_user(user):
            return False
        client = get_portal_client(user)
        if client is None:
            return False
        request.portal_client = client
        return True


class IsAdminOrPortalClient(BasePermission):
    """Admins, or client users with a resolvable Client record"""
    message = "You don't have permission to access this resource."

    def has_permission(self, request, view):
        if is_admin_user(request.user):
            return True
        return IsPortalClient().has_permission(request, view)
