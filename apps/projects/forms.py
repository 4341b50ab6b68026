from django import forms
from django.conf import settings
from django.core.exceptions import ValidationError

from apps.core.formatting import parse_time
from .models import Project, Stage, StageTemplate


class ProjectForm(forms.ModelForm):
    """
    Create / edit a project

    - billing_type defaults to the environment default billing type
    - hourly projects need hourly_rate > 0 (defaults to the environment rate)
    - fixed projects need total_value > 0
    - on edit, omitted fields keep their value and billing fields are locked
      once the project left 'pending'
    """

    class Meta:
        model = Project
        fields = ['client_name', 'description', 'project_type', 'sub_type', 'billing_type', 'hourly_rate', 'total_value']
        error_messages = {
            'client_name': {'required': 'Client name is required'},
            'description': {'required': 'Description is required'},
        }

    def __init__(self, *args, **kwargs):
        self.env_settings = kwargs.pop('env_settings', None)
        super().__init__(*args, **kwargs)

        self.fields['billing_type'].required = False
        self.fields['project_type'].required = False

        if self.instance.pk:
            for name, field in self.fields.items():
                if name not in self.data:
                    field.required = False

    def clean_client_name(self):
        return (self.cleaned_data.get('client_name') or '').strip()

    def clean(self):
        cleaned_data = super().clean()

        if self.instance.pk:
            for name in self.fields:
                if name not in self.data:
                    cleaned_data[name] = getattr(self.instance, name)
            # Choice fields sent blank keep their value
            for name in ('billing_type', 'project_type'):
                if not cleaned_data.get(name):
                    cleaned_data[name] = getattr(self.instance, name)
            self._check_billing_lock(cleaned_data)
        else:
            self._apply_defaults(cleaned_data)

        billing_type = cleaned_data.get('billing_type')
        if billing_type == Project.BILLING_HOURLY:
            rate = cleaned_data.get('hourly_rate')
            if rate is None or rate <= 0:
                self.add_error('hourly_rate', 'Hourly rate must be greater than zero')
        elif billing_type == Project.BILLING_FIXED:
            total = cleaned_data.get('total_value')
            if total is None or total <= 0:
                self.add_error('total_value', 'Total value must be greater than zero')

        return cleaned_data

    def _apply_defaults(self, cleaned_data):
        env_settings = self.env_settings
        if not cleaned_data.get('project_type'):
            cleaned_data['project_type'] = 'residential'

        if not cleaned_data.get('billing_type'):
            cleaned_data['billing_type'] = env_settings.default_billing_type if env_settings else Project.BILLING_FIXED

        if cleaned_data['billing_type'] == Project.BILLING_HOURLY and cleaned_data.get('hourly_rate') is None:
            cleaned_data['hourly_rate'] = env_settings.default_hourly_rate if env_settings else settings.DEFAULT_HOURLY_RATE

    def _check_billing_lock(self, cleaned_data):
        if self.instance.is_pending():
            return

        changed = [
            name for name in Project.BILLING_FIELDS
            if name in self.data and cleaned_data.get(name) != getattr(self.instance, name)
        ]
        if changed:
            raise ValidationError('Billing can only be changed while the project is pending')


class StageForm(forms.ModelForm):

    class Meta:
        model = Stage
        fields = ['name', 'deadline']
        error_messages = {
            'name': {'required': 'Stage name is required'},
        }

    def __init__(self, *args, **kwargs):
        self.env_settings = kwargs.pop('env_settings', None)
        super().__init__(*args, **kwargs)

        if self.env_settings is not None and self.env_settings.require_stage_deadline:
            self.fields['deadline'].required = True
            self.fields['deadline'].error_messages['required'] = 'A deadline is required for every stage'

    def clean_name(self):
        name = self.cleaned_data['name'].strip()
        if not name:
            raise ValidationError('Stage name is required')
        return name


class TimeEditForm(forms.Form):

    time = forms.CharField(error_messages={'required': 'Time is required'})

    def clean_time(self):
        # Converted to seconds
        return parse_time(self.cleaned_data['time'])


class StageImageForm(forms.Form):

    image = forms.ImageField(error_messages={'required': 'Select an image to upload'})

    def clean_image(self):
        image = self.cleaned_data['image']
        if image.size > settings.STAGE_IMAGE_MAX_FILE_SIZE:
            limit_mb = settings.STAGE_IMAGE_MAX_FILE_SIZE // (1024 * 1024)
            raise ValidationError(f'Image is too large (max {limit_mb} MB)')
        return image


class StageTemplateForm(forms.ModelForm):

    class Meta:
        model = StageTemplate
        fields = ['name']
        error_messages = {
            'name': {'required': 'Template name is required'},
        }

    def clean_name(self):
        name = self.cleaned_data['name'].strip()
        if not name:
            raise ValidationError('Template name is required')
        return name
