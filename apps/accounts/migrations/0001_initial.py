from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone

import apps.accounts.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
        ('core', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('email', models.EmailField(db_index=True, help_text='Required. Used for login.', max_length=255, unique=True, verbose_name='email address')),
                ('name', models.CharField(help_text='Full name (e.g., Ana Costa)', max_length=150, verbose_name='name')),
                ('role', models.CharField(choices=[('standard', 'Standard'), ('manager', 'Manager'), ('owner', 'Owner'), ('admin', 'Administrator'), ('crm', 'CRM')], db_index=True, default='standard', help_text='Controls which areas of the application the user can reach', max_length=20, verbose_name='role')),
                ('job_title', models.CharField(blank=True, help_text='e.g., Architect, Sales Manager', max_length=100, verbose_name='job title')),
                ('is_active', models.BooleanField(default=True, help_text='Inactive users cannot log in.', verbose_name='active')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into admin site.', verbose_name='staff status')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('environment', models.ForeignKey(blank=True, help_text='The environment this user works in (empty only for administrators)', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='users', to='core.environment', verbose_name='environment')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'ordering': ['name', 'email'],
                'indexes': [
                    models.Index(fields=['environment', 'role'], name='user_env_role_idx'),
                    models.Index(fields=['is_active'], name='user_is_active_idx'),
                ],
            },
            managers=[
                ('objects', apps.accounts.models.UserManager()),
            ],
        ),
    ]
