# Models:
# 1. User - Custom user model (email login, role, environment)


from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin, BaseUserManager
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


# USER MANAGER (handles user creation)
class UserManager(BaseUserManager):
    """
    Custom user manager for User model

    Provides methods to:
    - Create regular users (bound to an environment)
    - Create superusers (global administrators)
    """

    def create_user(self, email, password=None, **extra_fields):
        """
        Create and save a regular user

        Args:
            email (str): User's email address (required)
            password (str): User's password
            **extra_fields: Additional fields (name, role, environment, etc.)

        Raises:
            ValueError: If email is not provided

        Example:
            user = User.objects.create_user(
                email='ana@studio.com',
                password='secret1',
                name='Ana Costa',
                role='manager',
                environment=environment
            )
        """
        if not email:
            raise ValueError(_('Users must have an email address'))

        email = self.normalize_email(email)

        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)

        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)

        return user

    def create_superuser(self, email, password=None, **extra_fields):
        """
        Create and save the global administrator

        Administrators are not bound to any environment
        """
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('role', User.ROLE_ADMIN)
        extra_fields.setdefault('name', 'Admin Global')

        if extra_fields.get('is_staff') is not True:
            raise ValueError(_('Superuser must have is_staff=True'))
        if extra_fields.get('is_superuser') is not True:
            raise ValueError(_('Superuser must have is_superuser=True'))

        return self.create_user(email, password, **extra_fields)


# USER MODEL
class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model for Genius ERP

    Features:
    - Email-based authentication (no username)
    - Multi-tenancy support (environment field)
    - Role-based access (standard, manager, owner, admin, crm)
    """

    ROLE_STANDARD = 'standard'
    ROLE_MANAGER = 'manager'
    ROLE_OWNER = 'owner'
    ROLE_ADMIN = 'admin'
    ROLE_CRM = 'crm'

    ROLE_CHOICES = [
        (ROLE_STANDARD, _('Standard')),
        (ROLE_MANAGER, _('Manager')),
        (ROLE_OWNER, _('Owner')),
        (ROLE_ADMIN, _('Administrator')),
        (ROLE_CRM, _('CRM')),
    ]

    # Roles allowed into each area of the application
    PROJECTS_ROLES = (ROLE_STANDARD, ROLE_MANAGER, ROLE_OWNER, ROLE_ADMIN)
    CRM_ROLES = (ROLE_CRM, ROLE_MANAGER, ROLE_OWNER, ROLE_ADMIN)
    DASHBOARD_ROLES = (ROLE_MANAGER, ROLE_OWNER, ROLE_ADMIN)
    SETTINGS_ROLES = (ROLE_OWNER, ROLE_ADMIN)

    email = models.EmailField(_('email address'), unique=True, max_length=255, db_index=True, help_text=_('Required. Used for login.'))
    name = models.CharField(_('name'), max_length=150, help_text=_('Full name (e.g., Ana Costa)'))

    # ENVIRONMENT & ROLE (Multi-tenancy)
    environment = models.ForeignKey('core.Environment', on_delete=models.PROTECT, related_name='users',
                                    null=True, blank=True, verbose_name=_('environment'),
                                    help_text=_('The environment this user works in (empty only for administrators)'))

    role = models.CharField(_('role'), max_length=20, choices=ROLE_CHOICES, default=ROLE_STANDARD, db_index=True,
                            help_text=_('Controls which areas of the application the user can reach'))

    job_title = models.CharField(_('job title'), max_length=100, blank=True, help_text=_('e.g., Architect, Sales Manager'))

    is_active = models.BooleanField(_('active'), default=True, help_text=_('Inactive users cannot log in.'))
    is_staff = models.BooleanField(_('staff status'), default=False, help_text=_('Designates whether the user can log into admin site.'))
    date_joined = models.DateTimeField(_('date joined'), default=timezone.now)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['name']

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['name', 'email']
        indexes = [
            models.Index(fields=['environment', 'role'], name='user_env_role_idx'),
            models.Index(fields=['is_active'], name='user_is_active_idx'),
        ]

    def __str__(self):
        if self.name:
            return f"{self.name} ({self.email})"
        return self.email

    def get_full_name(self):
        return self.name or self.email

    def get_short_name(self):
        return self.name.split(' ')[0] if self.name else self.email

    # ROLE CHECKS
    def is_admin(self):
        return self.role == self.ROLE_ADMIN or self.is_superuser

    def has_role(self, *roles):
        return self.is_admin() or self.role in roles

    def can_access_projects(self):
        return self.has_role(*self.PROJECTS_ROLES)

    def can_access_crm(self):
        return self.has_role(*self.CRM_ROLES)

    def can_access_dashboard(self):
        return self.has_role(*self.DASHBOARD_ROLES)

    def can_access_settings(self):
        return self.has_role(*self.SETTINGS_ROLES)

    def get_home(self):
        """Area the client should open after login"""
        if self.is_admin():
            return 'admin'
        if self.role == self.ROLE_CRM:
            return 'crm'
        return 'projects'

    def to_session_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'role': self.role,
            'role_display': self.get_role_display(),
            'job_title': self.job_title,
            'environment_id': self.environment_id,
            'environment_name': self.environment.name if self.environment else None,
            'home': self.get_home(),
        }
