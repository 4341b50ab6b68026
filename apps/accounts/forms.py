from django import forms
from django.conf import settings
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _

from apps.core.models import Environment
from .models import User


def validate_password_pair(form, password_field, confirm_field, required=True):
    """
    Shared check for "password + confirmation" pairs

    Adds the errors to the form and returns the password (or '' when optional
    and left blank).
    """
    password = form.cleaned_data.get(password_field) or ''
    confirm = form.cleaned_data.get(confirm_field) or ''

    if not password and not confirm and not required:
        return ''

    if len(password) < settings.MIN_PASSWORD_LENGTH:
        form.add_error(password_field, _('Password must be at least {} characters.').format(settings.MIN_PASSWORD_LENGTH))
    elif password != confirm:
        form.add_error(confirm_field, _('Passwords do not match.'))

    return password


class LoginForm(forms.Form):

    email = forms.EmailField(
        label=_('Email Address'),
        widget=forms.EmailInput(attrs={'placeholder': _('you@company.com'), 'autofocus': True}),
        error_messages={'required': _('Email is required')},
    )
    password = forms.CharField(
        label=_('Password'),
        widget=forms.PasswordInput(),
        error_messages={'required': _('Password is required')},
    )

    def clean_email(self):
        return self.cleaned_data['email'].strip().lower()


class UserForm(forms.ModelForm):
    """
    Create / edit a user from the admin panel

    - The 'admin' role cannot be assigned here
    - Every other role needs an environment
    - Password is required on create, optional on edit
    """

    password = forms.CharField(label=_('Password'), required=False, widget=forms.PasswordInput())
    confirm_password = forms.CharField(label=_('Confirm Password'), required=False, widget=forms.PasswordInput())

    role = forms.ChoiceField(
        label=_('Role'),
        choices=[choice for choice in User.ROLE_CHOICES if choice[0] != User.ROLE_ADMIN],
        initial=User.ROLE_STANDARD,
    )

    class Meta:
        model = User
        fields = ['name', 'email', 'role', 'job_title', 'environment']
        error_messages = {
            'name': {'required': _('Name is required')},
            'email': {'required': _('Email is required')},
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['environment'].queryset = Environment.objects.order_by('name')
        self.fields['environment'].required = False

    def clean_email(self):
        email = self.cleaned_data['email'].strip().lower()
        duplicates = User.objects.filter(email__iexact=email)
        if self.instance.pk:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise ValidationError(_('A user with this email already exists.'))
        return email

    def clean(self):
        cleaned_data = super().clean()

        role = cleaned_data.get('role')
        if role and role != User.ROLE_ADMIN and not cleaned_data.get('environment'):
            self.add_error('environment', _('An environment is required for this role.'))

        validate_password_pair(self, 'password', 'confirm_password', required=not self.instance.pk)
        return cleaned_data

    def save(self, commit=True):
        user = super().save(commit=False)
        password = self.cleaned_data.get('password')
        if password:
            user.set_password(password)
        elif not user.pk:
            user.set_unusable_password()
        if commit:
            user.save()
        return user


class PasswordChangeForm(forms.Form):

    current_password = forms.CharField(label=_('Current Password'), widget=forms.PasswordInput())
    new_password = forms.CharField(label=_('New Password'), widget=forms.PasswordInput())
    confirm_password = forms.CharField(label=_('Confirm New Password'), widget=forms.PasswordInput())

    def __init__(self, user, *args, **kwargs):
        self.user = user
        super().__init__(*args, **kwargs)

    def clean_current_password(self):
        current_password = self.cleaned_data['current_password']
        if not self.user.check_password(current_password):
            raise ValidationError(_('Current password is incorrect.'))
        return current_password

    def clean(self):
        cleaned_data = super().clean()
        validate_password_pair(self, 'new_password', 'confirm_password')
        return cleaned_data

    def save(self):
        self.user.set_password(self.cleaned_data['new_password'])
        self.user.save(update_fields=['password'])
        return self.user
