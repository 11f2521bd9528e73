from io import StringIO

from django.contrib.auth.models import Group, User
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import Client, TestCase

from .models import UserProfile

PASSWORD = 'Str0ng-Passw0rd!'


class RegistrationTests(TestCase):

    def setUp(self):
        self.client = Client()

    def register(self, **overrides):
        body = {
            'email': 'alice@example.com',
            'name': 'Alice Smith',
            'password': PASSWORD,
            'confirmPassword': PASSWORD,
            'phoneNumber': '+91 98765 43210',
            'birthday': '1990-05-01',
        }
        body.update(overrides)
        return self.client.post('/api/Account/Register', body, content_type='application/json')

    def test_register_creates_user_and_profile(self):

        response = self.register()

        self.assertEqual(response.status_code, 201)
        data = response.json()['data']
        self.assertEqual(data['email'], 'alice@example.com')
        self.assertEqual(data['name'], 'Alice Smith')
        self.assertEqual(data['birthday'], '1990-05-01')

        user = User.objects.get(email='alice@example.com')
        self.assertEqual(user.username, 'alice@example.com')
        self.assertEqual(user.profile.phone_number, '+91 98765 43210')

    def test_duplicate_email_is_rejected(self):

        self.register()
        response = self.register(email='ALICE@example.com')

        self.assertEqual(response.status_code, 400)
        self.assertIn('email', response.json()['errors'])
        self.assertEqual(User.objects.count(), 1)

    def test_password_confirmation_must_match(self):

        response = self.register(confirmPassword='something-else-1')

        self.assertEqual(response.status_code, 400)
        self.assertIn('confirm_password', response.json()['errors'])
        self.assertFalse(User.objects.exists())

    def test_weak_password_is_rejected(self):

        response = self.register(password='123', confirmPassword='123')

        self.assertEqual(response.status_code, 400)
        self.assertIn('password', response.json()['errors'])


class LoginTests(TestCase):

    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(
            username='alice', email='alice@example.com', password=PASSWORD, first_name='Alice',
        )

    def login(self, email, password):
        return self.client.post(
            '/api/Account/Login',
            {'email': email, 'password': password},
            content_type='application/json',
        )

    def test_login_with_email_or_username(self):

        self.assertEqual(self.login('alice@example.com', PASSWORD).status_code, 200)
        self.assertEqual(self.login('ALICE', PASSWORD).status_code, 200)

    def test_wrong_password_is_unauthenticated(self):

        response = self.login('alice@example.com', 'wrong-password')

        self.assertEqual(response.status_code, 401)
        self.assertFalse(response.json()['success'])

    def test_unknown_account_is_unauthenticated(self):
        self.assertEqual(self.login('nobody@example.com', PASSWORD).status_code, 401)

    def test_inactive_user_cannot_login(self):

        self.user.is_active = False
        self.user.save()

        self.assertEqual(self.login('alice@example.com', PASSWORD).status_code, 401)

    def test_missing_fields_are_invalid(self):

        response = self.client.post('/api/Account/Login', {'email': 'alice@example.com'}, content_type='application/json')

        self.assertEqual(response.status_code, 400)

    def test_login_then_logout(self):

        self.login('alice@example.com', PASSWORD)
        self.assertEqual(self.client.get('/api/Account/Profile').status_code, 200)

        self.assertEqual(self.client.post('/api/Account/Logout').status_code, 200)
        self.assertEqual(self.client.get('/api/Account/Profile').status_code, 401)


class ProfileTests(TestCase):

    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(
            username='alice', email='alice@example.com', password=PASSWORD,
            first_name='Alice', last_name='Smith',
        )

    def test_profile_requires_login(self):

        response = self.client.get('/api/Account/Profile')

        self.assertEqual(response.status_code, 401)

    def test_profile_record_shape(self):

        self.client.force_login(self.user)

        data = self.client.get('/api/Account/Profile').json()['data']

        self.assertEqual(
            set(data),
            {'id', 'email', 'name', 'phoneNumber', 'birthday', 'createdAt', 'roles'},
        )
        self.assertEqual(data['name'], 'Alice Smith')
        self.assertEqual(data['roles'], ['User'])
        self.assertTrue(UserProfile.objects.filter(user=self.user).exists())

    def test_roles_include_staff_and_groups(self):

        self.user.is_staff = True
        self.user.save()
        self.user.groups.add(Group.objects.create(name='BoxOffice'))
        self.client.force_login(self.user)

        data = self.client.get('/api/Account/Profile').json()['data']

        self.assertEqual(data['roles'], ['Admin', 'BoxOffice'])

    def test_change_password(self):

        self.client.force_login(self.user)
        new_password = 'An0ther-Str0ng-One'

        wrong = self.client.post(
            '/api/Account/ChangePassword',
            {'currentPassword': 'nope', 'newPassword': new_password, 'confirmNewPassword': new_password},
            content_type='application/json',
        )
        self.assertEqual(wrong.status_code, 400)

        response = self.client.post(
            '/api/Account/ChangePassword',
            {'currentPassword': PASSWORD, 'newPassword': new_password, 'confirmNewPassword': new_password},
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 200)

        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password(new_password))
        self.assertEqual(self.client.get('/api/Account/Profile').status_code, 200)


class GrantAdminCommandTests(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(username='bob', email='bob@example.com', password=PASSWORD)

    def test_grant_and_revoke(self):

        call_command('grant_admin', 'BOB@example.com', stdout=StringIO())
        self.user.refresh_from_db()
        self.assertTrue(self.user.is_staff)
        self.assertTrue(self.user.is_superuser)
        self.assertEqual(self.user.profile.roles, ['Admin'])

        call_command('grant_admin', 'bob', '--revoke', stdout=StringIO())
        self.user.refresh_from_db()
        self.assertFalse(self.user.is_staff)

    def test_unknown_account(self):

        with self.assertRaises(CommandError):
            call_command('grant_admin', 'nobody@example.com', stdout=StringIO())
