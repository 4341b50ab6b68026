from django.contrib import admin
from django.utils.html import format_html

from .models import Environment, EnvironmentSettings


class EnvironmentSettingsInline(admin.StackedInline):

    model = EnvironmentSettings
    can_delete = False
    extra = 0


@admin.register(Environment)
class EnvironmentAdmin(admin.ModelAdmin):

    list_display = [
        'name',
        'db_name',
        'contact_info',
        'status_badge',
        'users_count',
        'created_at'
    ]
    list_filter = ['is_active', 'sector', 'created_at']
    search_fields = ['name', 'company_name', 'db_name', 'primary_contact_email']
    readonly_fields = ['db_name', 'created_at', 'updated_at']
    inlines = [EnvironmentSettingsInline]

    fieldsets = (
        ('Basic Information', {
            'fields': ('name', 'db_name', 'company_name', 'cnpj', 'sector', 'logo')
        }),
        ('Contact Information', {
            'fields': ('primary_contact_name', 'primary_contact_email', 'phone', 'address')
        }),
        ('Status', {
            'fields': ('is_active', 'notes')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def contact_info(self, obj):
        if not (obj.primary_contact_name or obj.primary_contact_email):
            return '-'
        return format_html(
            '<div style="line-height: 1.5;">{}<br>{}</div>',
            obj.primary_contact_name or '',
            obj.primary_contact_email or ''
        )

    contact_info.short_description = 'Contact'

    def status_badge(self, obj):
        color = '#28a745' if obj.is_active else '#dc3545'
        return format_html(
            '<span style="background-color: {}; color: white; '
            'padding: 3px 10px; border-radius: 3px; font-size: 11px;">{}</span>',
            color,
            obj.get_status_display_label()
        )

    status_badge.short_description = 'Status'

    def users_count(self, obj):
        return format_html(
            '<span style="color: #1B2A4A; font-weight: bold;">{} users</span>',
            obj.get_active_users_count()
        )

    users_count.short_description = 'Users'
