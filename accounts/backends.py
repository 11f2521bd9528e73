import logging

from django.contrib.auth.backends import ModelBackend
from django.contrib.auth.models import User

logger = logging.getLogger(__name__)


class EmailBackend(ModelBackend):
    """Authenticate with the account email, falling back to the username."""

    def find_user(self, identifier):
        identifier = identifier.strip()
        by_email = User.objects.filter(email__iexact=identifier).order_by('-date_joined').first()
        if by_email is not None:
            return by_email
        return User.objects.filter(username__iexact=identifier).first()

    def authenticate(self, request, username=None, password=None, **kwargs):
        identifier = username or kwargs.get('email')
        if not identifier or password is None:
            return None

        user = self.find_user(identifier)
        if user is None:
            # Run the hasher so unknown accounts take as long as wrong passwords
            User().set_password(password)
            return None

        if user.check_password(password) and self.user_can_authenticate(user):
            return user

        logger.info(f"Failed login for user {user.pk}")
        return None
