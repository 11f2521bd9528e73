from django.db import models
from django.contrib.auth.models import User


class UserProfile(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='profile')

    phone_number = models.CharField(max_length=20, blank=True)
    birthday = models.DateField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'accounts_userprofile'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.user.username}'s Profile"

    @property
    def display_name(self):
        return self.user.get_full_name() or self.user.username

    @property
    def roles(self):
        roles = ['Admin'] if self.user.is_staff or self.user.is_superuser else ['User']
        roles.extend(self.user.groups.values_list('name', flat=True))
        return roles
