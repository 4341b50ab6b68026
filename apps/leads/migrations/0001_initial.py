from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import taggit.managers


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
        ('projects', '0001_initial'),
        ('taggit', '__first__'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='KanbanColumn',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('key', models.SlugField(help_text='Column identifier (slug of the label)', max_length=100)),
                ('label', models.CharField(help_text='Column title shown on the board', max_length=100)),
                ('order', models.PositiveIntegerField(default=0, help_text='Display order in Kanban (lower numbers = left)')),
                ('environment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='kanban_columns', to='core.environment')),
            ],
            options={
                'ordering': ['order', 'id'],
                'unique_together': {('environment', 'key')},
            },
        ),
        migrations.CreateModel(
            name='Lead',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='Lead full name or company', max_length=200)),
                ('email', models.EmailField(blank=True, max_length=254)),
                ('phone', models.CharField(blank=True, max_length=20)),
                ('source', models.CharField(blank=True, help_text='Where the lead came from (e.g. Instagram, referral)', max_length=100)),
                ('project_type', models.CharField(blank=True, choices=[('commercial', 'Commercial'), ('residential', 'Residential')], max_length=20)),
                ('sub_type', models.CharField(blank=True, max_length=100)),
                ('notes', models.TextField(blank=True)),
                ('responsible', models.CharField(blank=True, help_text='Person in charge of this lead', max_length=150)),
                ('lost_reason', models.CharField(blank=True, help_text='Why the lead was lost (e.g. Price, Timing)', max_length=200)),
                ('position', models.PositiveIntegerField(default=0, help_text='Position inside the column')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('column', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='leads', to='leads.kanbancolumn')),
                ('environment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='leads', to='core.environment')),
                ('tags', taggit.managers.TaggableManager(blank=True, help_text='A comma-separated list of tags.', through='taggit.TaggedItem', to='taggit.Tag', verbose_name='Tags')),
            ],
            options={
                'ordering': ['position', '-created_at'],
                'indexes': [models.Index(fields=['environment', 'column'], name='lead_env_column_idx')],
            },
        ),
        migrations.CreateModel(
            name='Proposal',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=200)),
                ('charge_type', models.CharField(choices=[('fixed', 'Fixed price'), ('hourly', 'Per hour')], default='fixed', max_length=10)),
                ('hourly_rate', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('estimated_hours', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('total_value', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('sent', 'Sent'), ('accepted', 'Accepted'), ('rejected', 'Rejected')], db_index=True, default='draft', max_length=20)),
                ('description', models.TextField(blank=True)),
                ('items', models.JSONField(default=list, help_text='List of {name, description, value}')),
                ('observations', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('sent_at', models.DateTimeField(blank=True, null=True)),
                ('accepted_at', models.DateTimeField(blank=True, null=True)),
                ('lead', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='proposals', to='leads.lead')),
                ('project', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='proposal', to='projects.project')),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Interaction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('interaction_type', models.CharField(choices=[('call', 'Call'), ('visit', 'Visit'), ('meeting', 'Meeting'), ('note', 'Note'), ('email', 'Email')], default='note', max_length=20)),
                ('date', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('details', models.TextField()),
                ('lead', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='interactions', to='leads.lead')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='interactions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-date', '-id'],
            },
        ),
        migrations.CreateModel(
            name='Appointment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date_time', models.DateTimeField(db_index=True)),
                ('description', models.TextField()),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('done', 'Done'), ('postponed', 'Postponed')], default='pending', max_length=20)),
                ('reminder_sent', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('lead', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='appointments', to='leads.lead')),
            ],
            options={
                'ordering': ['date_time'],
            },
        ),
    ]
