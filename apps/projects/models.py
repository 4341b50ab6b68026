import logging
import os
from datetime import timedelta
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.db.models import Sum
from django.utils import timezone

from apps.core.formatting import format_currency, format_time, seconds_to_hours

logger = logging.getLogger(__name__)


STATUS_PENDING = 'pending'
STATUS_IN_PROGRESS = 'in_progress'
STATUS_COMPLETED = 'completed'
STATUS_DELAYED = 'delayed'

STATUS_CHOICES = [
    (STATUS_PENDING, 'Pending'),
    (STATUS_IN_PROGRESS, 'In progress'),
    (STATUS_COMPLETED, 'Completed'),
    (STATUS_DELAYED, 'Delayed'),
]


class Project(models.Model):

    TYPE_CHOICES = [
        ('commercial', 'Commercial'),
        ('residential', 'Residential'),
    ]

    BILLING_FIXED = 'fixed'
    BILLING_HOURLY = 'hourly'
    BILLING_TYPE_CHOICES = [
        (BILLING_FIXED, 'Fixed price'),
        (BILLING_HOURLY, 'Per hour'),
    ]

    # Billing fields can only change while the project is pending
    BILLING_FIELDS = ('billing_type', 'hourly_rate', 'total_value')

    environment = models.ForeignKey('core.Environment', on_delete=models.CASCADE, related_name='projects')
    client_name = models.CharField(max_length=200, help_text='Client or project name')
    description = models.TextField(help_text='Scope of the project')
    project_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='residential')
    sub_type = models.CharField(max_length=100, blank=True, help_text='e.g. Apartment, Office, Store')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)

    billing_type = models.CharField(max_length=10, choices=BILLING_TYPE_CHOICES, default=BILLING_FIXED)
    hourly_rate = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True, help_text='Required for hourly projects')
    total_value = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True, help_text='Required for fixed-price projects')

    source_lead = models.ForeignKey('leads.Lead', on_delete=models.SET_NULL, null=True, blank=True, related_name='projects',
                                    help_text='CRM lead this project was converted from')

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['environment', 'status'], name='project_env_status_idx'),
        ]

    def __str__(self):
        return self.client_name

    def save(self, *args, **kwargs):
        if self.status == STATUS_COMPLETED and not self.completed_at:
            self.completed_at = timezone.now()
        elif self.status != STATUS_COMPLETED:
            self.completed_at = None
        super().save(*args, **kwargs)

    def is_hourly(self):
        return self.billing_type == self.BILLING_HOURLY

    def is_pending(self):
        return self.status == STATUS_PENDING

    def get_billing_label(self):
        if self.is_hourly():
            return f"Per hour ({format_currency(self.hourly_rate)}/h)"
        return f"Fixed price ({format_currency(self.total_value)})"

    def get_type_label(self):
        label = self.get_project_type_display()
        if self.sub_type:
            return f"{label} ({self.sub_type})"
        return label

    def get_total_seconds(self):
        return self.stages.aggregate(total=Sum('accumulated_time'))['total'] or 0

    def get_estimated_cost(self, total_seconds=None):
        """
        Hourly: total hours x rate. Fixed: the agreed total value.
        """
        if self.is_hourly():
            if total_seconds is None:
                total_seconds = self.get_total_seconds()
            return seconds_to_hours(total_seconds) * (self.hourly_rate or Decimal('0'))
        return self.total_value

    def change_status(self, new_status):
        if new_status not in dict(STATUS_CHOICES):
            raise ValidationError('Invalid status')
        self.status = new_status
        self.save()

    def clone(self):
        """Copy of this project (without stages) in pending status"""
        return Project.objects.create(
            environment=self.environment,
            client_name=f"{self.client_name} - Copy",
            description=self.description,
            project_type=self.project_type,
            sub_type=self.sub_type,
            status=STATUS_PENDING,
            billing_type=self.billing_type,
            hourly_rate=self.hourly_rate,
            total_value=self.total_value,
        )

    def add_stage(self, name, deadline=None):
        return Stage.objects.create(
            project=self,
            name=name,
            deadline=deadline,
            order=self.stages.count(),
            status=STATUS_PENDING,
            accumulated_time=0,
        )

    @transaction.atomic
    def add_default_stages(self):
        """Append one stage per environment stage template, in template order"""
        templates = StageTemplate.objects.filter(environment=self.environment).order_by('order', 'id')
        start = self.stages.count()
        created = [
            Stage.objects.create(project=self, name=template.name, order=start + index, status=STATUS_PENDING)
            for index, template in enumerate(templates)
        ]
        return created

    def renumber_stages(self):
        for index, stage in enumerate(self.stages.order_by('order', 'id')):
            if stage.order != index:
                stage.order = index
                stage.save(update_fields=['order'])

    @transaction.atomic
    def reorder_stages(self, stage_ids):
        current_ids = set(self.stages.values_list('id', flat=True))
        if len(stage_ids) != len(current_ids) or set(stage_ids) != current_ids:
            raise ValidationError('Stage list does not match the project stages')

        for index, stage_id in enumerate(stage_ids):
            Stage.objects.filter(pk=stage_id, project=self).update(order=index)

    def count_overdue_stages(self, today=None):
        today = today or timezone.localdate()
        return self.stages.filter(deadline__lt=today).exclude(status=STATUS_COMPLETED).count()

    def has_deadline_warning(self, warning_days, today=None):
        """True when an open stage is overdue or due within warning_days"""
        today = today or timezone.localdate()
        limit = today + timedelta(days=warning_days)
        return self.stages.filter(deadline__isnull=False, deadline__lte=limit).exclude(status=STATUS_COMPLETED).exists()


class Stage(models.Model):

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name='stages')
    name = models.CharField(max_length=200)
    deadline = models.DateField(null=True, blank=True)
    order = models.PositiveIntegerField(default=0, help_text='Position inside the project (0 = first)')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    accumulated_time = models.PositiveIntegerField(default=0, help_text='Worked time in seconds')

    # Running timer (empty when stopped)
    timer_started_at = models.DateTimeField(null=True, blank=True)
    timer_started_by = models.ForeignKey('accounts.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='running_stages')

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['order', 'id']

    def __str__(self):
        return f"{self.project.client_name} - {self.name}"

    @property
    def environment(self):
        return self.project.environment

    def is_timer_running(self):
        return self.timer_started_at is not None

    def is_overdue(self, today=None):
        if not self.deadline or self.status == STATUS_COMPLETED:
            return False
        today = today or timezone.localdate()
        return self.deadline < today

    def is_near_deadline(self, warning_days, today=None):
        if not self.deadline or self.status == STATUS_COMPLETED:
            return False
        today = today or timezone.localdate()
        return today <= self.deadline <= today + timedelta(days=warning_days)

    def get_running_seconds(self, now=None):
        if not self.is_timer_running():
            return 0
        now = now or timezone.now()
        return max(int((now - self.timer_started_at).total_seconds()), 0)

    def get_display_seconds(self, now=None):
        """Accumulated time plus the running timer, if any"""
        return self.accumulated_time + self.get_running_seconds(now)

    def get_formatted_time(self):
        return format_time(self.accumulated_time)

    def get_cost(self):
        project = self.project
        if not project.is_hourly():
            return None
        return seconds_to_hours(self.accumulated_time) * (project.hourly_rate or Decimal('0'))

    # TIMER
    def _lock_timer_row(self):
        """Lock this stage row and refresh the timer fields from it"""
        current = Stage.objects.select_for_update().only(
            'accumulated_time', 'timer_started_at', 'timer_started_by', 'status'
        ).get(pk=self.pk)
        self.accumulated_time = current.accumulated_time
        self.timer_started_at = current.timer_started_at
        self.timer_started_by_id = current.timer_started_by_id
        self.status = current.status

    @transaction.atomic
    def start_timer(self, user, now=None):
        """
        Start the timer of this stage

        Any other timer the user has running is stopped first (and its time
        entry recorded). A pending stage moves to in progress.
        """
        self._lock_timer_row()
        if self.is_timer_running():
            raise ValidationError('Timer is already running for this stage')

        now = now or timezone.now()

        running = Stage.objects.select_for_update().filter(timer_started_by=user, timer_started_at__isnull=False).exclude(pk=self.pk)
        for other in running:
            other.stop_timer(now=now)

        self.timer_started_at = now
        self.timer_started_by = user
        update_fields = ['timer_started_at', 'timer_started_by']
        if self.status == STATUS_PENDING:
            self.status = STATUS_IN_PROGRESS
            update_fields.append('status')
        self.save(update_fields=update_fields)

        logger.info(f"Timer started on stage {self.pk} by {user}")

    @transaction.atomic
    def stop_timer(self, now=None):
        """
        Stop the running timer, record a TimeEntry and accumulate its duration

        Returns:
            TimeEntry: The recorded entry
        """
        self._lock_timer_row()
        if not self.is_timer_running():
            raise ValidationError('Timer is not running for this stage')

        now = now or timezone.now()
        start_time = self.timer_started_at
        duration = max(int((now - start_time).total_seconds()), 0)

        entry = TimeEntry.objects.create(stage=self, start_time=start_time, end_time=now, duration=duration)

        self.accumulated_time += duration
        self.timer_started_at = None
        self.timer_started_by = None
        self.save(update_fields=['accumulated_time', 'timer_started_at', 'timer_started_by'])

        logger.info(f"Timer stopped on stage {self.pk}: {duration}s recorded")
        return entry

    @transaction.atomic
    def reset_timer(self):
        self._lock_timer_row()
        if self.is_timer_running():
            raise ValidationError('Stop the timer before resetting it')

        self.time_entries.all().delete()
        self.accumulated_time = 0
        self.save(update_fields=['accumulated_time'])

    @transaction.atomic
    def set_accumulated_time(self, seconds):
        self._lock_timer_row()
        if self.is_timer_running():
            raise ValidationError('Stop the timer before editing the time')
        if seconds < 0:
            raise ValidationError('Time cannot be negative')

        self.accumulated_time = seconds
        self.save(update_fields=['accumulated_time'])

    def change_status(self, new_status):
        if new_status not in dict(STATUS_CHOICES):
            raise ValidationError('Invalid status')
        self.status = new_status
        self.save(update_fields=['status'])

    @transaction.atomic
    def delete_and_renumber(self):
        project = self.project
        StageImage.purge(self.images.all())
        self.delete()
        project.renumber_stages()

    def to_dict(self, warning_days=None):
        data = {
            'id': self.id,
            'project_id': self.project_id,
            'name': self.name,
            'deadline': self.deadline.isoformat() if self.deadline else None,
            'order': self.order,
            'status': self.status,
            'status_display': self.get_status_display(),
            'accumulated_time': self.accumulated_time,
            'formatted_time': self.get_formatted_time(),
            'is_overdue': self.is_overdue(),
            'timer_running': self.is_timer_running(),
            'timer_started_at': self.timer_started_at.isoformat() if self.timer_started_at else None,
            'running_seconds': self.get_running_seconds(),
        }
        if warning_days is not None:
            data['is_near_deadline'] = self.is_near_deadline(warning_days)
        return data


class TimeEntry(models.Model):

    stage = models.ForeignKey(Stage, on_delete=models.CASCADE, related_name='time_entries')
    start_time = models.DateTimeField(db_index=True)
    end_time = models.DateTimeField()
    duration = models.PositiveIntegerField(help_text='Seconds between start and end')

    class Meta:
        ordering = ['-start_time']
        verbose_name_plural = 'Time entries'

    def __str__(self):
        return f"{self.stage.name}: {format_time(self.duration)}"


def _delete_stored_files(storage, file_names):
    for name in file_names:
        storage.delete(name)


class StageImage(models.Model):

    stage = models.ForeignKey(Stage, on_delete=models.CASCADE, related_name='images')
    image = models.ImageField(upload_to='stages/%Y/%m/')
    file_name = models.CharField(max_length=255, help_text='Original file name')
    uploaded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['uploaded_at', 'id']

    def __str__(self):
        return self.file_name

    def delete(self, *args, **kwargs):
        if self.image:
            self.image.delete(save=False)
        return super().delete(*args, **kwargs)

    @classmethod
    def purge(cls, images):
        """
        Delete image rows now and their files once the transaction commits

        A rolled back transaction keeps both the rows and the files.
        """
        images = list(images)
        storage = cls._meta.get_field('image').storage
        file_names = [image.image.name for image in images if image.image]

        cls.objects.filter(pk__in=[image.pk for image in images]).delete()
        transaction.on_commit(lambda: _delete_stored_files(storage, file_names))

    def to_dict(self):
        return {
            'id': self.id,
            'stage_id': self.stage_id,
            'file_name': self.file_name,
            'url': self.image.url if self.image else None,
            'uploaded_at': self.uploaded_at.isoformat() if self.uploaded_at else None,
        }

    @staticmethod
    def original_name(uploaded_file):
        return os.path.basename(uploaded_file.name)


class StageTemplate(models.Model):

    environment = models.ForeignKey('core.Environment', on_delete=models.CASCADE, related_name='stage_templates')
    name = models.CharField(max_length=200)
    order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['order', 'id']

    def __str__(self):
        return self.name

    @classmethod
    def renumber(cls, environment):
        for index, template in enumerate(cls.objects.filter(environment=environment).order_by('order', 'id')):
            if template.order != index:
                template.order = index
                template.save(update_fields=['order'])

    @classmethod
    @transaction.atomic
    def reorder(cls, environment, template_ids):
        current_ids = set(cls.objects.filter(environment=environment).values_list('id', flat=True))
        if len(template_ids) != len(current_ids) or set(template_ids) != current_ids:
            raise ValidationError('Template list does not match the environment templates')

        for index, template_id in enumerate(template_ids):
            cls.objects.filter(pk=template_id, environment=environment).update(order=index)

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'order': self.order}
