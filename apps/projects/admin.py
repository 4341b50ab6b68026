from django.contrib import admin
from django.utils.html import format_html

from apps.core.formatting import format_time
from .models import STATUS_COMPLETED, STATUS_DELAYED, STATUS_IN_PROGRESS, Project, Stage, StageTemplate, TimeEntry

STATUS_COLORS = {
    STATUS_IN_PROGRESS: '#007bff',
    STATUS_COMPLETED: '#28a745',
    STATUS_DELAYED: '#dc3545',
}


def _status_badge(obj):
    return format_html(
        '<span style="background: {}; color: white; padding: 3px 10px; '
        'border-radius: 3px; font-size: 11px;">{}</span>',
        STATUS_COLORS.get(obj.status, '#6c757d'), obj.get_status_display()
    )


class StageInline(admin.TabularInline):

    model = Stage
    extra = 0
    fields = ['order', 'name', 'deadline', 'status', 'accumulated_time']
    ordering = ['order']


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):

    list_display = ['client_name', 'environment', 'project_type', 'status_badge', 'billing_type', 'created_at']
    list_filter = ['environment', 'status', 'billing_type', 'project_type']
    search_fields = ['client_name', 'description']
    list_select_related = ['environment']
    readonly_fields = ['completed_at', 'updated_at']
    inlines = [StageInline]

    def status_badge(self, obj):
        return _status_badge(obj)

    status_badge.short_description = 'Status'
    status_badge.admin_order_field = 'status'


@admin.register(Stage)
class StageAdmin(admin.ModelAdmin):

    list_display = ['name', 'project', 'order', 'status_badge', 'deadline', 'time_display', 'timer_started_by']
    list_filter = ['status', 'project__environment']
    search_fields = ['name', 'project__client_name']
    list_select_related = ['project', 'timer_started_by']

    def status_badge(self, obj):
        return _status_badge(obj)

    status_badge.short_description = 'Status'

    def time_display(self, obj):
        return format_time(obj.accumulated_time)

    time_display.short_description = 'Time'


@admin.register(TimeEntry)
class TimeEntryAdmin(admin.ModelAdmin):

    list_display = ['stage', 'start_time', 'end_time', 'duration']
    list_select_related = ['stage']
    date_hierarchy = 'start_time'


@admin.register(StageTemplate)
class StageTemplateAdmin(admin.ModelAdmin):

    list_display = ['name', 'environment', 'order']
    list_filter = ['environment']
