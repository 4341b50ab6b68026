from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


STATUS_CHOICES = [('pending', 'Pending'), ('in_progress', 'In progress'), ('completed', 'Completed'), ('delayed', 'Delayed')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Project',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('client_name', models.CharField(help_text='Client or project name', max_length=200)),
                ('description', models.TextField(help_text='Scope of the project')),
                ('project_type', models.CharField(choices=[('commercial', 'Commercial'), ('residential', 'Residential')], default='residential', max_length=20)),
                ('sub_type', models.CharField(blank=True, help_text='e.g. Apartment, Office, Store', max_length=100)),
                ('status', models.CharField(choices=STATUS_CHOICES, db_index=True, default='pending', max_length=20)),
                ('billing_type', models.CharField(choices=[('fixed', 'Fixed price'), ('hourly', 'Per hour')], default='fixed', max_length=10)),
                ('hourly_rate', models.DecimalField(blank=True, decimal_places=2, help_text='Required for hourly projects', max_digits=10, null=True)),
                ('total_value', models.DecimalField(blank=True, decimal_places=2, help_text='Required for fixed-price projects', max_digits=12, null=True)),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('environment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='projects', to='core.environment')),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['environment', 'status'], name='project_env_status_idx')],
            },
        ),
        migrations.CreateModel(
            name='Stage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('deadline', models.DateField(blank=True, null=True)),
                ('order', models.PositiveIntegerField(default=0, help_text='Position inside the project (0 = first)')),
                ('status', models.CharField(choices=STATUS_CHOICES, default='pending', max_length=20)),
                ('accumulated_time', models.PositiveIntegerField(default=0, help_text='Worked time in seconds')),
                ('timer_started_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('project', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='stages', to='projects.project')),
                ('timer_started_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='running_stages', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['order', 'id'],
            },
        ),
        migrations.CreateModel(
            name='TimeEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('start_time', models.DateTimeField(db_index=True)),
                ('end_time', models.DateTimeField()),
                ('duration', models.PositiveIntegerField(help_text='Seconds between start and end')),
                ('stage', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='time_entries', to='projects.stage')),
            ],
            options={
                'verbose_name_plural': 'Time entries',
                'ordering': ['-start_time'],
            },
        ),
        migrations.CreateModel(
            name='StageImage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('image', models.ImageField(upload_to='stages/%Y/%m/')),
                ('file_name', models.CharField(help_text='Original file name', max_length=255)),
                ('uploaded_at', models.DateTimeField(auto_now_add=True)),
                ('stage', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='images', to='projects.stage')),
            ],
            options={
                'ordering': ['uploaded_at', 'id'],
            },
        ),
        migrations.CreateModel(
            name='StageTemplate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('order', models.PositiveIntegerField(default=0)),
                ('environment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='stage_templates', to='core.environment')),
            ],
            options={
                'ordering': ['order', 'id'],
            },
        ),
    ]
