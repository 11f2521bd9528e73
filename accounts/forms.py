from django import forms
from django.contrib.auth.models import User
from django.contrib.auth.password_validation import validate_password


class RegistrationForm(forms.Form):

    email = forms.EmailField(
        required=True,
        error_messages={'required': 'Please enter an email address.'},
    )
    name = forms.CharField(max_length=150, required=True)
    password = forms.CharField(required=True)
    confirm_password = forms.CharField(required=True)
    phone_number = forms.CharField(max_length=20, required=False)
    birthday = forms.DateField(required=False)

    def clean_email(self):
        email = self.cleaned_data.get('email', '').strip().lower()

        if User.objects.filter(email__iexact=email).exists():
            raise forms.ValidationError('This email is already registered.')

        return email

    def clean(self):
        cleaned_data = super().clean()
        password = cleaned_data.get('password')
        confirm_password = cleaned_data.get('confirm_password')

        if password and confirm_password and password != confirm_password:
            self.add_error('confirm_password', 'Passwords do not match.')
        elif password:
            try:
                validate_password(password)
            except forms.ValidationError as e:
                self.add_error('password', e)

        return cleaned_data


class LoginForm(forms.Form):

    email = forms.CharField(max_length=254, required=True)
    password = forms.CharField(required=True)
