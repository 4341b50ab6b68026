from django import forms
from django.conf import settings
from django.core.exceptions import ValidationError

from apps.accounts.forms import validate_password_pair
from apps.accounts.models import User
from .models import Environment, EnvironmentSettings


class EnvironmentForm(forms.ModelForm):
    class Meta:
        model = Environment
        fields = [
            'name', 'company_name', 'cnpj', 'sector',
            'primary_contact_name', 'primary_contact_email',
            'phone', 'address', 'notes',
        ]
        error_messages = {
            'name': {'required': 'Environment name is required'},
        }

    def clean_name(self):
        return self.cleaned_data['name'].strip()


class EnvironmentCreateForm(EnvironmentForm):
    """
    New environment plus its first user

    The primary contact becomes the environment owner and logs in with
    the primary contact email and the password given here.
    """

    owner_password = forms.CharField(widget=forms.PasswordInput())
    owner_confirm_password = forms.CharField(widget=forms.PasswordInput())

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['primary_contact_email'].required = True

    def clean_primary_contact_email(self):
        email = self.cleaned_data['primary_contact_email'].strip().lower()
        if User.objects.filter(email__iexact=email).exists():
            raise ValidationError('A user with this email already exists. Use another primary contact email.')
        return email

    def clean(self):
        cleaned_data = super().clean()
        validate_password_pair(self, 'owner_password', 'owner_confirm_password')
        return cleaned_data

    def create_owner(self, environment):
        return User.objects.create_user(
            email=self.cleaned_data['primary_contact_email'],
            password=self.cleaned_data['owner_password'],
            name=self.cleaned_data.get('primary_contact_name') or environment.name,
            role=User.ROLE_OWNER,
            environment=environment,
        )


class EnvironmentSettingsForm(forms.ModelForm):
    class Meta:
        model = EnvironmentSettings
        fields = [
            'default_hourly_rate', 'default_billing_type', 'fixed_project_cost_rate',
            'deadline_warning_days', 'enable_deadline_warning', 'require_stage_deadline',
            'report_layout',
        ]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Partial updates: omitted fields keep their current value
        for field in self.fields.values():
            field.required = False

    def clean(self):
        cleaned_data = super().clean()
        for name in self.fields:
            if name not in self.data:
                cleaned_data[name] = getattr(self.instance, name)
        return cleaned_data

    def clean_default_hourly_rate(self):
        rate = self.cleaned_data.get('default_hourly_rate')
        if rate is not None and rate <= 0:
            raise ValidationError('Hourly rate must be greater than zero')
        return rate

    def clean_fixed_project_cost_rate(self):
        rate = self.cleaned_data.get('fixed_project_cost_rate')
        if rate is not None and rate < 0:
            raise ValidationError('Cost rate cannot be negative')
        return rate


class SettingsImageForm(forms.Form):

    FIELD_CHOICES = [
        ('logo_image', 'Logo'),
        ('signature_image', 'Signature'),
    ]

    field = forms.ChoiceField(choices=FIELD_CHOICES)
    image = forms.ImageField(required=False)

    def clean_image(self):
        image = self.cleaned_data.get('image')
        if image and image.size > settings.STAGE_IMAGE_MAX_FILE_SIZE:
            raise ValidationError('Image is too large')
        return image


class BackupImportForm(forms.Form):

    file = forms.FileField()

    def clean_file(self):
        uploaded_file = self.cleaned_data['file']
        if not uploaded_file.name.lower().endswith('.json'):
            raise ValidationError('Backup must be a .json file')
        if uploaded_file.size > settings.BACKUP_IMPORT_MAX_FILE_SIZE:
            raise ValidationError('Backup file is too large')
        return uploaded_file
