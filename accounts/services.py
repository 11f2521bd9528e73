import logging

from django.contrib.auth.models import User
from django.db import transaction

from core.exceptions import InvalidInputError
from .models import UserProfile

logger = logging.getLogger(__name__)


def form_errors(form):
    return {field: [str(e) for e in errors] for field, errors in form.errors.items()}


class AccountService:

    @staticmethod
    def get_or_create_profile(user):

        profile, created = UserProfile.objects.get_or_create(user=user)
        if created:
            logger.info(f"Created profile for existing user: {user.pk}")
        return profile

    @staticmethod
    def register(form):

        if not form.is_valid():
            raise InvalidInputError('Invalid registration data', errors=form_errors(form))

        data = form.cleaned_data
        first_name, _, last_name = data['name'].strip().partition(' ')

        with transaction.atomic():
            user = User.objects.create_user(
                username=data['email'],
                email=data['email'],
                password=data['password'],
                first_name=first_name,
                last_name=last_name,
            )
            UserProfile.objects.create(
                user=user,
                phone_number=data.get('phone_number') or '',
                birthday=data.get('birthday'),
            )

        logger.info(f"User {user.pk} registered")
        return user

    @staticmethod
    def profile_record(user):
        """The profile shape returned by every account endpoint."""
        profile = AccountService.get_or_create_profile(user)
        return {
            'id': user.id,
            'email': user.email,
            'name': profile.display_name,
            'phoneNumber': profile.phone_number,
            'birthday': profile.birthday,
            'createdAt': profile.created_at,
            'roles': profile.roles,
        }
