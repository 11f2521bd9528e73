import logging

from django.contrib.auth import authenticate, login, logout, update_session_auth_hash
from django.contrib.auth.forms import PasswordChangeForm

from core.decorators import api_login_required, api_view
from core.exceptions import AuthenticationRequiredError, InvalidInputError
from core.responses import api_response, parse_json_body
from .forms import LoginForm, RegistrationForm
from .services import AccountService, form_errors

logger = logging.getLogger(__name__)


@api_view(['POST'])
def register(request):

    data = parse_json_body(request)
    form = RegistrationForm(data={
        'email': data.get('email'),
        'name': data.get('name'),
        'password': data.get('password'),
        'confirm_password': data.get('confirmPassword'),
        'phone_number': data.get('phoneNumber'),
        'birthday': data.get('birthday'),
    })

    user = AccountService.register(form)
    return api_response(
        AccountService.profile_record(user),
        message='Registration successful. Please login.',
        status=201,
    )


@api_view(['POST'])
def login_view(request):

    form = LoginForm(data=parse_json_body(request))
    if not form.is_valid():
        raise InvalidInputError('Please enter both email and password.', errors=form_errors(form))

    email = form.cleaned_data['email'].strip()
    user = authenticate(request, username=email, password=form.cleaned_data['password'])
    if user is None:
        raise AuthenticationRequiredError('Invalid email or password.')

    login(request, user)
    logger.info(f"User {user.pk} logged in successfully")
    return api_response(AccountService.profile_record(user), message='Login successful')


@api_view(['POST'])
@api_login_required
def logout_view(request):

    user_id = request.user.pk
    logout(request)
    logger.info(f"User {user_id} logged out")
    return api_response(True, message='Logged out successfully')


@api_view(['GET'])
@api_login_required
def profile(request):
    return api_response(AccountService.profile_record(request.user), message='Profile retrieved successfully')


@api_view(['POST'])
@api_login_required
def change_password(request):

    data = parse_json_body(request)
    form = PasswordChangeForm(request.user, data={
        'old_password': data.get('currentPassword'),
        'new_password1': data.get('newPassword'),
        'new_password2': data.get('confirmNewPassword'),
    })
    if not form.is_valid():
        raise InvalidInputError(
            'Password change failed. Check your current password.',
            errors=form_errors(form),
        )

    user = form.save()
    update_session_auth_hash(request, user)
    logger.info(f"User {user.pk} changed password")
    return api_response(True, message='Password changed successfully')
