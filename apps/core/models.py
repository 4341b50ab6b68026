import re
import time
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


def generate_db_name(name):
    """Workspace key for a new environment: GeniusERPDB_Env_{SafeName}_{timestamp_ms}"""
    safe_name = re.sub(r'[^a-zA-Z0-9]', '_', name or '')
    return f"GeniusERPDB_Env_{safe_name}_{int(time.time() * 1000)}"


class Environment(models.Model):

    SECTOR_CHOICES = [
        ('architecture', _('Architecture')),
        ('engineering', _('Engineering')),
        ('interior_design', _('Interior Design')),
        ('construction', _('Construction')),
        ('other', _('Other')),
    ]

    # Basic Information
    name = models.CharField(max_length=200, help_text="Environment name")
    db_name = models.CharField(max_length=255, unique=True, editable=False, help_text="Workspace key (auto-generated)")
    company_name = models.CharField(max_length=200, blank=True, help_text="Legal company name")
    cnpj = models.CharField(max_length=18, blank=True, help_text="Company tax id (e.g. 12.345.678/0001-90)")
    logo = models.ImageField(upload_to='environments/logos/', null=True, blank=True, help_text="Environment logo")
    sector = models.CharField(max_length=20, choices=SECTOR_CHOICES, blank=True, help_text="Business sector")

    # Contact Information
    primary_contact_name = models.CharField(max_length=150, blank=True, help_text="Main contact person")
    primary_contact_email = models.EmailField(blank=True, help_text="Main contact email (also the owner login)")
    phone = models.CharField(max_length=20, blank=True, help_text="Contact phone number")
    address = models.TextField(blank=True, help_text="Physical address")
    notes = models.TextField(blank=True, help_text="Internal notes")

    # Status
    is_active = models.BooleanField(default=True, help_text="Is environment active?")

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Environment"
        verbose_name_plural = "Environments"
        ordering = ['name']
        indexes = [
            models.Index(fields=['is_active'], name='environment_is_active_idx'),
        ]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.db_name:
            self.db_name = generate_db_name(self.name)
        super().save(*args, **kwargs)

    def get_status_display_label(self):
        return 'Active' if self.is_active else 'Inactive'

    def get_users_count(self):
        return self.users.count()

    def get_active_users_count(self):
        return self.users.filter(is_active=True).count()

    def toggle_status(self):
        self.is_active = not self.is_active
        self.save(update_fields=['is_active', 'updated_at'])
        return self.is_active

    def get_settings(self):
        """Settings row of this environment, created on first access"""
        env_settings, _created = EnvironmentSettings.objects.get_or_create(
            environment=self,
            defaults=EnvironmentSettings.default_values(),
        )
        return env_settings

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'db_name': self.db_name,
            'company_name': self.company_name,
            'cnpj': self.cnpj,
            'logo': self.logo.url if self.logo else None,
            'sector': self.sector,
            'sector_display': self.get_sector_display() if self.sector else '',
            'primary_contact_name': self.primary_contact_name,
            'primary_contact_email': self.primary_contact_email,
            'phone': self.phone,
            'address': self.address,
            'notes': self.notes,
            'is_active': self.is_active,
            'status': self.get_status_display_label(),
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class EnvironmentSettings(models.Model):

    LAYOUT_SIMPLE = 'simple'
    LAYOUT_DETAILED = 'detailed'
    REPORT_LAYOUT_CHOICES = [
        (LAYOUT_SIMPLE, _('Simple')),
        (LAYOUT_DETAILED, _('Detailed')),
    ]

    BILLING_TYPE_CHOICES = [
        ('fixed', _('Fixed price')),
        ('hourly', _('Per hour')),
    ]

    environment = models.OneToOneField(Environment, on_delete=models.CASCADE, related_name='env_settings')

    # Report branding
    logo_image = models.ImageField(upload_to='environments/report_logos/', null=True, blank=True, help_text="Logo printed on reports and proposals")
    signature_image = models.ImageField(upload_to='environments/signatures/', null=True, blank=True, help_text="Signature printed at the end of reports")

    # Billing
    default_hourly_rate = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('120'), help_text="Default rate for hourly projects")
    default_billing_type = models.CharField(max_length=10, choices=BILLING_TYPE_CHOICES, default='fixed', help_text="Billing type pre-selected for new projects")
    fixed_project_cost_rate = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('75'), help_text="Internal cost per hour for fixed-price margin analysis")

    # Deadlines
    deadline_warning_days = models.PositiveIntegerField(default=7, help_text="Warn when a stage deadline is this many days away")
    enable_deadline_warning = models.BooleanField(default=True, help_text="Show deadline warnings on project lists")
    require_stage_deadline = models.BooleanField(default=False, help_text="New stages must have a deadline")

    # Reports
    report_layout = models.CharField(max_length=10, choices=REPORT_LAYOUT_CHOICES, default=LAYOUT_SIMPLE, help_text="Detailed reports include progress summary and images")

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Environment Settings"
        verbose_name_plural = "Environment Settings"

    def __str__(self):
        return f"Settings for {self.environment.name}"

    @staticmethod
    def default_values():
        return {
            'default_hourly_rate': Decimal(str(settings.DEFAULT_HOURLY_RATE)),
            'deadline_warning_days': settings.DEFAULT_DEADLINE_WARNING_DAYS,
            'fixed_project_cost_rate': Decimal(str(settings.FIXED_PROJECT_COST_RATE)),
        }

    def is_detailed_layout(self):
        return self.report_layout == self.LAYOUT_DETAILED

    def to_dict(self):
        return {
            'logo_image': self.logo_image.url if self.logo_image else None,
            'signature_image': self.signature_image.url if self.signature_image else None,
            'default_hourly_rate': float(self.default_hourly_rate),
            'default_billing_type': self.default_billing_type,
            'fixed_project_cost_rate': float(self.fixed_project_cost_rate),
            'deadline_warning_days': self.deadline_warning_days,
            'enable_deadline_warning': self.enable_deadline_warning,
            'require_stage_deadline': self.require_stage_deadline,
            'report_layout': self.report_layout,
        }
