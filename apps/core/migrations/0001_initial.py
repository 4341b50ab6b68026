from decimal import Decimal

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Environment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='Environment name', max_length=200)),
                ('db_name', models.CharField(editable=False, help_text='Workspace key (auto-generated)', max_length=255, unique=True)),
                ('company_name', models.CharField(blank=True, help_text='Legal company name', max_length=200)),
                ('cnpj', models.CharField(blank=True, help_text='Company tax id (e.g. 12.345.678/0001-90)', max_length=18)),
                ('logo', models.ImageField(blank=True, help_text='Environment logo', null=True, upload_to='environments/logos/')),
                ('sector', models.CharField(blank=True, choices=[('architecture', 'Architecture'), ('engineering', 'Engineering'), ('interior_design', 'Interior Design'), ('construction', 'Construction'), ('other', 'Other')], help_text='Business sector', max_length=20)),
                ('primary_contact_name', models.CharField(blank=True, help_text='Main contact person', max_length=150)),
                ('primary_contact_email', models.EmailField(blank=True, help_text='Main contact email (also the owner login)', max_length=254)),
                ('phone', models.CharField(blank=True, help_text='Contact phone number', max_length=20)),
                ('address', models.TextField(blank=True, help_text='Physical address')),
                ('notes', models.TextField(blank=True, help_text='Internal notes')),
                ('is_active', models.BooleanField(default=True, help_text='Is environment active?')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Environment',
                'verbose_name_plural': 'Environments',
                'ordering': ['name'],
                'indexes': [models.Index(fields=['is_active'], name='environment_is_active_idx')],
            },
        ),
        migrations.CreateModel(
            name='EnvironmentSettings',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('logo_image', models.ImageField(blank=True, help_text='Logo printed on reports and proposals', null=True, upload_to='environments/report_logos/')),
                ('signature_image', models.ImageField(blank=True, help_text='Signature printed at the end of reports', null=True, upload_to='environments/signatures/')),
                ('default_hourly_rate', models.DecimalField(decimal_places=2, default=Decimal('120'), help_text='Default rate for hourly projects', max_digits=10)),
                ('default_billing_type', models.CharField(choices=[('fixed', 'Fixed price'), ('hourly', 'Per hour')], default='fixed', help_text='Billing type pre-selected for new projects', max_length=10)),
                ('fixed_project_cost_rate', models.DecimalField(decimal_places=2, default=Decimal('75'), help_text='Internal cost per hour for fixed-price margin analysis', max_digits=10)),
                ('deadline_warning_days', models.PositiveIntegerField(default=7, help_text='Warn when a stage deadline is this many days away')),
                ('enable_deadline_warning', models.BooleanField(default=True, help_text='Show deadline warnings on project lists')),
                ('require_stage_deadline', models.BooleanField(default=False, help_text='New stages must have a deadline')),
                ('report_layout', models.CharField(choices=[('simple', 'Simple'), ('detailed', 'Detailed')], default='simple', help_text='Detailed reports include progress summary and images', max_length=10)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('environment', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='env_settings', to='core.environment')),
            ],
            options={
                'verbose_name': 'Environment Settings',
                'verbose_name_plural': 'Environment Settings',
            },
        ),
    ]
