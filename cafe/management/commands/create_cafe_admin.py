"""
Management command: create an admin account, or promote an existing user to admin.
Safe to run multiple times.
"""
from django.core.management.base import BaseCommand, CommandError
from rest_framework.authtoken.models import Token

from cafe.models import User, UserRole


class Command(BaseCommand):
    help = 'Create or promote a cafe admin account'

    def add_arguments(self, parser):
        parser.add_argument('username')
        parser.add_argument('--password', help='Password for a new account (or reset for an existing one)')
        parser.add_argument('--name', default='', help='Display name')
        parser.add_argument(
            '--token',
            action='store_true',
            help='Print an API token for the account',
        )

    def handle(self, *args, **options):
        username = options['username'].strip()
        if not username:
            raise CommandError('username must not be empty')
        password = options.get('password')
        user = User.objects.filter(username=username).first()
        if user is None:
            if not password:
                raise CommandError('--password is required to create a new admin')
            user = User.objects.create_user(
                username=username,
                password=password,
                name=options['name'],
                role=UserRole.ADMIN,
                is_staff=True,
            )
            self.stdout.write(self.style.SUCCESS(f'Created admin {username} (id={user.pk}).'))
        else:
            user.role = UserRole.ADMIN
            user.is_staff = True
            if options['name']:
                user.name = options['name']
            if password:
                user.set_password(password)
            user.save()
            self.stdout.write(self.style.SUCCESS(f'Promoted {username} (id={user.pk}) to admin.'))
        if options['token']:
            token, _ = Token.objects.get_or_create(user=user)
            self.stdout.write(token.key)
