from decimal import Decimal, InvalidOperation

from django import forms
from django.core.exceptions import ValidationError
from taggit.utils import parse_tags

from .models import Appointment, Interaction, Lead, Proposal


class LeadForm(forms.ModelForm):
    """
    Create / edit a lead

    Tags arrive either as a list (JSON clients) or as a comma separated
    string, and are applied with save_tags() after the lead is saved.
    """

    tags = forms.CharField(required=False)

    class Meta:
        model = Lead
        fields = ['name', 'email', 'phone', 'source', 'project_type', 'sub_type', 'notes', 'responsible', 'lost_reason']
        error_messages = {
            'name': {'required': 'Name is required', 'max_length': 'Name is too long (max 200 characters)'},
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        raw_tags = self.data.get('tags') if self.data else None
        if isinstance(raw_tags, (list, tuple)):
            self.data = self.data.copy()
            self.data['tags'] = ', '.join(str(tag) for tag in raw_tags)

    def clean_name(self):
        name = self.cleaned_data['name'].strip()
        if not name:
            raise ValidationError('Name is required')
        return name

    def clean_email(self):
        return (self.cleaned_data.get('email') or '').strip().lower()

    def clean_tags(self):
        return parse_tags(self.cleaned_data.get('tags') or '')

    def save_tags(self, lead):
        if 'tags' in self.data:
            lead.tags.set(self.cleaned_data['tags'], clear=True)


class ProposalForm(forms.ModelForm):
    """
    Create / edit a proposal

    Rules:
    - at least one item, every item with a name and a value >= 0
    - fixed: total is the sum of the item values unless given explicitly
    - hourly: total = hourly_rate x estimated_hours, both > 0
    - on edit, omitted fields keep their value
    """

    class Meta:
        model = Proposal
        fields = [
            'title', 'charge_type', 'hourly_rate', 'estimated_hours', 'total_value',
            'status', 'description', 'items', 'observations',
        ]
        error_messages = {
            'title': {'required': 'Proposal title is required'},
            'items': {'required': 'Add at least one item'},
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['charge_type'].required = False
        self.fields['status'].required = False
        self.fields['total_value'].required = False

        if self.instance.pk:
            for name, field in self.fields.items():
                if name not in self.data:
                    field.required = False

    def _keeps_instance_value(self, name):
        return bool(self.instance.pk) and name not in self.data

    def clean_items(self):
        if self._keeps_instance_value('items'):
            return self.instance.items

        items = self.cleaned_data.get('items')
        if not isinstance(items, list) or not items:
            raise ValidationError('Add at least one item')

        cleaned_items = []
        for index, item in enumerate(items, start=1):
            if not isinstance(item, dict):
                raise ValidationError(f'Item {index} is invalid')

            name = str(item.get('name') or '').strip()
            if not name:
                raise ValidationError(f'Item {index} needs a name')

            try:
                value = Decimal(str(item.get('value') if item.get('value') not in (None, '') else 0))
            except InvalidOperation:
                raise ValidationError(f'Item {index} has an invalid value')
            if value < 0:
                raise ValidationError(f'Item {index} value cannot be negative')

            cleaned_items.append({
                'name': name,
                'description': str(item.get('description') or '').strip(),
                'value': float(value),
            })

        return cleaned_items

    def clean(self):
        cleaned_data = super().clean()

        if self.instance.pk:
            for name in self.fields:
                if name != 'items' and name not in self.data:
                    cleaned_data[name] = getattr(self.instance, name)

        charge_type = cleaned_data.get('charge_type') or self.instance.charge_type or 'fixed'
        cleaned_data['charge_type'] = charge_type
        cleaned_data['status'] = cleaned_data.get('status') or self.instance.status

        if charge_type == 'hourly':
            rate = cleaned_data.get('hourly_rate')
            hours = cleaned_data.get('estimated_hours')
            if rate is None or rate <= 0:
                self.add_error('hourly_rate', 'Hourly rate must be greater than zero')
            if hours is None or hours <= 0:
                self.add_error('estimated_hours', 'Estimated hours must be greater than zero')
            if rate and hours and rate > 0 and hours > 0:
                cleaned_data['total_value'] = (rate * hours).quantize(Decimal('0.01'))
        elif 'items' in cleaned_data:
            explicit_total = self.data.get('total_value')
            if explicit_total in (None, ''):
                # Stored total is kept when neither items nor total are sent
                if not (self._keeps_instance_value('items') and self._keeps_instance_value('total_value')):
                    total = sum((Decimal(str(item['value'])) for item in cleaned_data['items']), Decimal('0'))
                    cleaned_data['total_value'] = total.quantize(Decimal('0.01'))
            elif cleaned_data.get('total_value') is not None and cleaned_data['total_value'] < 0:
                self.add_error('total_value', 'Total value cannot be negative')

        return cleaned_data


class InteractionForm(forms.ModelForm):

    class Meta:
        model = Interaction
        fields = ['interaction_type', 'date', 'details']
        error_messages = {
            'details': {'required': 'Describe the interaction'},
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['date'].required = False

    def clean_date(self):
        # Blank date keeps the model default (now)
        return self.cleaned_data.get('date') or self.instance.date


class AppointmentForm(forms.ModelForm):

    class Meta:
        model = Appointment
        fields = ['date_time', 'description', 'status']
        error_messages = {
            'date_time': {'required': 'Date and time are required'},
            'description': {'required': 'Description is required'},
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['status'].required = False

    def clean_status(self):
        return self.cleaned_data.get('status') or self.instance.status


class ColumnForm(forms.Form):

    label = forms.CharField(max_length=100, error_messages={'required': 'Column name is required'})

    def clean_label(self):
        label = self.cleaned_data['label'].strip()
        if not label:
            raise ValidationError('Column name is required')
        return label
