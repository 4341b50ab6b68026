from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _

from .models import User


# CUSTOM USER ADMIN
@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = (
        'email',
        'name',
        'environment',
        'role_badge',
        'is_active_badge',
        'date_joined',
    )

    list_display_links = ('email', 'name')

    list_filter = (
        'role',
        'is_active',
        'is_staff',
        'environment',
    )
    search_fields = (
        'email',
        'name',
        'environment__name',
    )

    ordering = ('name',)
    list_per_page = 25
    list_select_related = ('environment',)

    fieldsets = (
        (_('Login Credentials'), {
            'fields': ('email', 'password'),
            'description': _('Email is used for login. Password is stored encrypted.')
        }),
        (_('Personal Information'), {
            'fields': ('name', 'job_title'),
        }),
        (_('Environment & Role'), {
            'fields': ('environment', 'role'),
        }),
        (_('Permissions'), {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
            'classes': ('collapse',),
        }),
        (_('Activity Tracking'), {
            'fields': ('date_joined', 'last_login'),
            'classes': ('collapse',),
        }),
    )

    # Fields shown when creating NEW user
    add_fieldsets = (
        (_('Login Credentials'), {
            'fields': ('email', 'password1', 'password2'),
            'classes': ('wide',),
        }),
        (_('Personal Information'), {
            'fields': ('name',),
        }),
        (_('Environment & Role'), {
            'fields': ('environment', 'role'),
        }),
    )

    readonly_fields = ('date_joined', 'last_login')

    ROLE_COLORS = {
        User.ROLE_ADMIN: '#28a745',
        User.ROLE_OWNER: '#6f42c1',
        User.ROLE_MANAGER: '#007bff',
        User.ROLE_CRM: '#fd7e14',
        User.ROLE_STANDARD: '#6c757d',
    }

    def role_badge(self, obj):
        return format_html(
            '<span style="background: {}; color: white; padding: 3px 10px; '
            'border-radius: 3px; font-size: 11px;">{}</span>',
            self.ROLE_COLORS.get(obj.role, '#6c757d'), obj.get_role_display()
        )

    role_badge.short_description = _('Role')
    role_badge.admin_order_field = 'role'

    def is_active_badge(self, obj):
        if obj.is_active:
            return format_html(
                '<span style="background: #28a745; color: white; padding: 3px 10px; '
                'border-radius: 3px; font-size: 11px;">✓ Active</span>'
            )
        return format_html(
            '<span style="background: #dc3545; color: white; padding: 3px 10px; '
            'border-radius: 3px; font-size: 11px;">✗ Inactive</span>'
        )

    is_active_badge.short_description = _('Status')
    is_active_badge.admin_order_field = 'is_active'

    def has_delete_permission(self, request, obj=None):
        if obj and obj == request.user:
            return False  # Cannot delete yourself
        return super().has_delete_permission(request, obj)


admin.site.site_header = _('Genius ERP Administration')
admin.site.site_title = _('Genius ERP')
admin.site.index_title = _('Welcome to Genius ERP Admin Panel')
