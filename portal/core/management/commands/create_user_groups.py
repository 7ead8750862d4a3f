from django.contrib.auth.models import Group, Permission
from django.core.management.base import BaseCommand, CommandError

from portal.core.models import User
from portal.core.permissions import ADMIN_GROUP, CLIENT_GROUP


class Command(BaseCommand):
    help = 'Create the Admin and Client user groups, and optionally an agency admin account'

    def add_arguments(self, parser):
        parser.add_argument('--admin-email', help='Create or promote this user to agency admin')
        parser.add_argument('--admin-password', help='Password for a newly created admin')

    def handle(self, *args, **options):
        groups_config = [
            {'name': ADMIN_GROUP, 'description': 'Agency staff - full access to the admin portal'},
            {'name': CLIENT_GROUP, 'description': 'Client accounts - client portal only'},
        ]

        created_count = 0
        existing_count = 0

        for group_config in groups_config:
            group, created = Group.objects.get_or_create(name=group_config['name'])

            if created:
                self.stdout.write(self.style.SUCCESS(f'✓ Created group: {group_config["name"]}'))
                created_count += 1
            else:
                self.stdout.write(f'  Group already exists: {group_config["name"]}')
                existing_count += 1

            # Admin gets every model permission so the Django admin site works too
            if group_config['name'] == ADMIN_GROUP:
                group.permissions.set(Permission.objects.all())
                self.stdout.write('  Added all permissions to Admin group')

        self.stdout.write(self.style.SUCCESS(
            f'\nCompleted: {created_count} groups created, {existing_count} groups already existed'
        ))

        admin_email = (options.get('admin_email') or '').strip().lower()
        if admin_email:
            self._ensure_admin(admin_email, options.get('admin_password'))

    def _ensure_admin(self, email, password):
        admin_group = Group.objects.get(name=ADMIN_GROUP)
        user = User.objects.filter(email__iexact=email).first()

        if user is None:
            if not password:
                raise CommandError('--admin-password is required to create a new admin')
            user = User.objects.create_user(username=email, email=email, password=password, is_staff=True)
            self.stdout.write(self.style.SUCCESS(f'✓ Created admin user: {email}'))
        else:
            if password:
                user.set_password(password)
            user.is_staff = True
            user.save()
            self.stdout.write(f'  Promoted existing user to admin: {email}')

        client_group = Group.objects.filter(name=CLIENT_GROUP).first()
        if client_group is not None:
            user.groups.remove(client_group)
        user.groups.add(admin_group)
