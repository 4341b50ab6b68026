import logging
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.utils import timezone
from django.utils.text import slugify
from taggit.managers import TaggableManager

logger = logging.getLogger(__name__)


# Default pipeline of a new environment: (key, label)
DEFAULT_KANBAN_COLUMNS = [
    ('new-contact', 'New contact'),
    ('qualification', 'Qualification'),
    ('proposal-sent', 'Proposal sent'),
    ('negotiation', 'In negotiation'),
    ('accepted', 'Accepted'),
    ('converted', 'Converted to project'),
    ('lost', 'Lost'),
]


class KanbanColumn(models.Model):

    # Columns the pipeline relies on; they cannot be deleted
    PROTECTED_KEYS = ('new-contact', 'accepted', 'lost', 'converted')

    KEY_CONVERTED = 'converted'
    KEY_LOST = 'lost'

    environment = models.ForeignKey('core.Environment', on_delete=models.CASCADE, related_name='kanban_columns')
    key = models.SlugField(max_length=100, help_text='Column identifier (slug of the label)')
    label = models.CharField(max_length=100, help_text='Column title shown on the board')
    order = models.PositiveIntegerField(default=0, help_text='Display order in Kanban (lower numbers = left)')

    class Meta:
        ordering = ['order', 'id']
        unique_together = ['environment', 'key']

    def __str__(self):
        return self.label

    def is_protected(self):
        return self.key in self.PROTECTED_KEYS

    @classmethod
    def ensure_defaults(cls, environment):
        """Seed the default pipeline when the environment has no columns yet"""
        if cls.objects.filter(environment=environment).exists():
            return []
        return [
            cls.objects.create(environment=environment, key=key, label=label, order=index)
            for index, (key, label) in enumerate(DEFAULT_KANBAN_COLUMNS)
        ]

    @classmethod
    def create_column(cls, environment, label):
        label = (label or '').strip()
        key = slugify(label)
        if not key:
            raise ValidationError('Column name is required')
        if cls.objects.filter(environment=environment, key=key).exists():
            raise ValidationError(f'A column with id "{key}" already exists')

        last = cls.objects.filter(environment=environment).order_by('-order').first()
        order = last.order + 1 if last else 0
        return cls.objects.create(environment=environment, key=key, label=label, order=order)

    @classmethod
    def renumber(cls, environment):
        for index, column in enumerate(cls.objects.filter(environment=environment).order_by('order', 'id')):
            if column.order != index:
                column.order = index
                column.save(update_fields=['order'])

    @classmethod
    @transaction.atomic
    def reorder(cls, environment, keys):
        current_keys = set(cls.objects.filter(environment=environment).values_list('key', flat=True))
        if len(keys) != len(current_keys) or set(keys) != current_keys:
            raise ValidationError('Column list does not match the board columns')

        for index, key in enumerate(keys):
            cls.objects.filter(environment=environment, key=key).update(order=index)

    @transaction.atomic
    def delete_column(self):
        if self.is_protected():
            raise ValidationError(f'Column "{self.label}" is required and cannot be deleted')
        if self.leads.exists():
            raise ValidationError('Move the leads out of this column before deleting it')

        environment = self.environment
        self.delete()
        KanbanColumn.renumber(environment)

    def to_dict(self):
        return {
            'id': self.id,
            'key': self.key,
            'label': self.label,
            'order': self.order,
            'protected': self.is_protected(),
        }


class Lead(models.Model):

    PROJECT_TYPE_CHOICES = [
        ('commercial', 'Commercial'),
        ('residential', 'Residential'),
    ]

    environment = models.ForeignKey('core.Environment', on_delete=models.CASCADE, related_name='leads')
    name = models.CharField(max_length=200, help_text='Lead full name or company')
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    source = models.CharField(max_length=100, blank=True, help_text='Where the lead came from (e.g. Instagram, referral)')
    project_type = models.CharField(max_length=20, choices=PROJECT_TYPE_CHOICES, blank=True)
    sub_type = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    responsible = models.CharField(max_length=150, blank=True, help_text='Person in charge of this lead')
    lost_reason = models.CharField(max_length=200, blank=True, help_text='Why the lead was lost (e.g. Price, Timing)')

    column = models.ForeignKey(KanbanColumn, on_delete=models.SET_NULL, null=True, blank=True, related_name='leads')
    position = models.PositiveIntegerField(default=0, help_text='Position inside the column')

    tags = TaggableManager(blank=True)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['position', '-created_at']
        indexes = [
            models.Index(fields=['environment', 'column'], name='lead_env_column_idx'),
        ]

    def __str__(self):
        return self.name

    def move_to(self, column, position=None):
        if column.environment_id != self.environment_id:
            raise ValidationError('Invalid column')

        self.column = column
        update_fields = ['column', 'updated_at']
        if position is not None:
            self.position = max(int(position), 0)
            update_fields.append('position')
        self.save(update_fields=update_fields)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'source': self.source,
            'project_type': self.project_type,
            'sub_type': self.sub_type,
            'notes': self.notes,
            'responsible': self.responsible,
            'lost_reason': self.lost_reason,
            'column': self.column.key if self.column else None,
            'position': self.position,
            'tags': [tag.name for tag in self.tags.all()],
            'created_at': self.created_at.isoformat(),
        }


class Proposal(models.Model):

    STATUS_DRAFT = 'draft'
    STATUS_SENT = 'sent'
    STATUS_ACCEPTED = 'accepted'
    STATUS_REJECTED = 'rejected'

    STATUS_CHOICES = [
        (STATUS_DRAFT, 'Draft'),
        (STATUS_SENT, 'Sent'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    CHARGE_TYPE_CHOICES = [
        ('fixed', 'Fixed price'),
        ('hourly', 'Per hour'),
    ]

    lead = models.ForeignKey(Lead, on_delete=models.CASCADE, related_name='proposals')
    title = models.CharField(max_length=200)
    charge_type = models.CharField(max_length=10, choices=CHARGE_TYPE_CHOICES, default='fixed')
    hourly_rate = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    estimated_hours = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    total_value = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_DRAFT, db_index=True)
    description = models.TextField(blank=True)
    items = models.JSONField(default=list, help_text='List of {name, description, value}')
    observations = models.TextField(blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    sent_at = models.DateTimeField(null=True, blank=True)
    accepted_at = models.DateTimeField(null=True, blank=True)

    project = models.OneToOneField('projects.Project', on_delete=models.SET_NULL, null=True, blank=True, related_name='proposal')

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.title} ({self.lead.name})"

    def save(self, *args, **kwargs):
        self.stamp_status_dates()
        super().save(*args, **kwargs)

    def stamp_status_dates(self):
        now = timezone.now()
        if self.status == self.STATUS_SENT and not self.sent_at:
            self.sent_at = now
        if self.status == self.STATUS_ACCEPTED and not self.accepted_at:
            self.accepted_at = now

    def is_fixed(self):
        return self.charge_type == 'fixed'

    def items_total(self):
        return sum((Decimal(str(item.get('value') or 0)) for item in self.items), Decimal('0'))

    def mark_as_sent(self):
        self.status = self.STATUS_SENT
        self.sent_at = timezone.now()
        self.save()

    def change_status(self, new_status):
        if new_status not in dict(self.STATUS_CHOICES):
            raise ValidationError('Invalid status')
        self.status = new_status
        self.save()

    @transaction.atomic
    def convert_to_project(self):
        """
        Create a pending Project from this accepted proposal

        The lead moves to the 'converted' column when the board has one.

        Returns:
            Project: The created project

        Raises:
            ValidationError: If the proposal is not accepted or already converted
        """
        from apps.projects.models import Project, STATUS_PENDING

        if self.status != self.STATUS_ACCEPTED:
            raise ValidationError('Only accepted proposals can be converted into projects')
        if self.project_id:
            raise ValidationError('This proposal was already converted into a project')

        lead = self.lead
        environment = lead.environment
        is_hourly = self.charge_type == Project.BILLING_HOURLY

        project = Project.objects.create(
            environment=environment,
            client_name=lead.name,
            description=self.description or lead.notes or 'Description to be defined',
            project_type=lead.project_type or 'residential',
            sub_type=lead.sub_type,
            status=STATUS_PENDING,
            billing_type=self.charge_type,
            hourly_rate=(self.hourly_rate or environment.get_settings().default_hourly_rate) if is_hourly else None,
            total_value=None if is_hourly else self.total_value,
            source_lead=lead,
        )

        self.project = project
        self.save(update_fields=['project'])

        converted_column = KanbanColumn.objects.filter(environment=environment, key=KanbanColumn.KEY_CONVERTED).first()
        if converted_column:
            lead.move_to(converted_column)

        logger.info(f"Proposal {self.pk} converted into project {project.pk} ({environment.db_name})")
        return project

    def to_dict(self):
        return {
            'id': self.id,
            'lead_id': self.lead_id,
            'title': self.title,
            'charge_type': self.charge_type,
            'hourly_rate': float(self.hourly_rate) if self.hourly_rate is not None else None,
            'estimated_hours': float(self.estimated_hours) if self.estimated_hours is not None else None,
            'total_value': float(self.total_value),
            'status': self.status,
            'status_display': self.get_status_display(),
            'description': self.description,
            'items': self.items,
            'observations': self.observations,
            'created_at': self.created_at.isoformat(),
            'sent_at': self.sent_at.isoformat() if self.sent_at else None,
            'accepted_at': self.accepted_at.isoformat() if self.accepted_at else None,
            'project_id': self.project_id,
        }


class Interaction(models.Model):

    TYPE_CHOICES = [
        ('call', 'Call'),
        ('visit', 'Visit'),
        ('meeting', 'Meeting'),
        ('note', 'Note'),
        ('email', 'Email'),
    ]

    lead = models.ForeignKey(Lead, on_delete=models.CASCADE, related_name='interactions')
    user = models.ForeignKey('accounts.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='interactions')
    interaction_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='note')
    date = models.DateTimeField(default=timezone.now, db_index=True)
    details = models.TextField()

    class Meta:
        ordering = ['-date', '-id']

    def __str__(self):
        return f"{self.get_interaction_type_display()} - {self.lead.name}"

    def to_dict(self):
        return {
            'id': self.id,
            'lead_id': self.lead_id,
            'lead_name': self.lead.name,
            'type': self.interaction_type,
            'type_display': self.get_interaction_type_display(),
            'date': self.date.isoformat(),
            'details': self.details,
            'user': self.user.get_full_name() if self.user else None,
        }


class Appointment(models.Model):

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('done', 'Done'),
        ('postponed', 'Postponed'),
    ]

    lead = models.ForeignKey(Lead, on_delete=models.CASCADE, related_name='appointments')
    date_time = models.DateTimeField(db_index=True)
    description = models.TextField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    reminder_sent = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['date_time']

    def __str__(self):
        return f"{self.lead.name} @ {self.date_time:%Y-%m-%d %H:%M}"

    def change_status(self, new_status):
        if new_status not in dict(self.STATUS_CHOICES):
            raise ValidationError('Invalid status')
        self.status = new_status
        self.save(update_fields=['status'])

    def to_dict(self):
        return {
            'id': self.id,
            'lead_id': self.lead_id,
            'date_time': self.date_time.isoformat(),
            'description': self.description,
            'status': self.status,
            'status_display': self.get_status_display(),
        }
