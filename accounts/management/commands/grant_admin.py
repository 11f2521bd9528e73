from django.contrib.auth.models import User
from django.core.management.base import BaseCommand, CommandError

from accounts.services import AccountService


class Command(BaseCommand):
    help = 'Give an existing account staff and superuser rights'

    def add_arguments(self, parser):
        parser.add_argument('email', type=str, help='Email (or username) of the account')
        parser.add_argument('--revoke', action='store_true', help='Remove admin rights instead')

    def handle(self, *args, **options):
        identifier = options['email'].strip()

        user = User.objects.filter(email__iexact=identifier).first() \
            or User.objects.filter(username__iexact=identifier).first()
        if user is None:
            raise CommandError(f'No account found for "{identifier}"')

        granted = not options['revoke']
        user.is_staff = granted
        user.is_superuser = granted
        user.save(update_fields=['is_staff', 'is_superuser'])

        profile = AccountService.get_or_create_profile(user)
        roles = ', '.join(profile.roles)

        if granted:
            self.stdout.write(self.style.SUCCESS(f'✅ {user.email or user.username} is now an admin ({roles})'))
        else:
            self.stdout.write(self.style.WARNING(f'⚠️  Admin rights removed from {user.email or user.username} ({roles})'))
