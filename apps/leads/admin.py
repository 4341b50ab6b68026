from django.contrib import admin
from django.utils.html import format_html

from .models import Appointment, Interaction, KanbanColumn, Lead, Proposal


class InteractionInline(admin.TabularInline):

    model = Interaction
    extra = 0
    fields = ['date', 'interaction_type', 'user', 'details']
    readonly_fields = ['user']
    classes = ['collapse']

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related('user')


class ProposalInline(admin.TabularInline):

    model = Proposal
    extra = 0
    fields = ['title', 'charge_type', 'total_value', 'status', 'project']
    readonly_fields = ['project']
    show_change_link = True


@admin.register(KanbanColumn)
class KanbanColumnAdmin(admin.ModelAdmin):

    list_display = ['label', 'key', 'environment', 'order', 'protected_display']
    list_filter = ['environment']
    ordering = ['environment', 'order']

    def protected_display(self, obj):
        return obj.is_protected()

    protected_display.boolean = True
    protected_display.short_description = 'Protected'


@admin.register(Lead)
class LeadAdmin(admin.ModelAdmin):

    list_display = ['id', 'name', 'email', 'phone', 'column_badge', 'responsible', 'environment', 'created_at']
    list_filter = ['environment', 'column', 'project_type', 'created_at']
    search_fields = ['name', 'phone', 'email', 'notes']
    ordering = ['-created_at']
    list_per_page = 50
    date_hierarchy = 'created_at'

    fieldsets = [
        ('Basic Information', {
            'fields': ['environment', 'name', 'phone', 'email', 'source']
        }),
        ('Pipeline', {
            'fields': ['column', 'position', 'responsible', 'lost_reason']
        }),
        ('Project', {
            'fields': ['project_type', 'sub_type']
        }),
        ('Additional Info', {
            'fields': ['notes', 'tags'],
            'classes': ['collapse'],
        }),
        ('Timestamps', {
            'fields': ['created_at', 'updated_at'],
            'classes': ['collapse'],
        }),
    ]

    readonly_fields = ['updated_at']
    inlines = [ProposalInline, InteractionInline]

    def column_badge(self, obj):
        if not obj.column:
            return format_html('<span style="color: #999;">-</span>')
        color = '#dc3545' if obj.column.key == KanbanColumn.KEY_LOST else '#1B2A4A'
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 8px; '
            'border-radius: 3px; font-size: 11px;">{}</span>',
            color,
            obj.column.label
        )

    column_badge.short_description = 'Column'

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related('environment', 'column')


@admin.register(Proposal)
class ProposalAdmin(admin.ModelAdmin):

    list_display = ['title', 'lead', 'charge_type', 'total_value', 'status', 'created_at', 'sent_at', 'accepted_at']
    list_filter = ['status', 'charge_type']
    search_fields = ['title', 'lead__name']
    readonly_fields = ['sent_at', 'accepted_at', 'project']
    list_select_related = ['lead']


@admin.register(Interaction)
class InteractionAdmin(admin.ModelAdmin):

    list_display = ['id', 'lead', 'user', 'interaction_type', 'date']
    list_filter = ['interaction_type', 'date']
    search_fields = ['details', 'lead__name']
    ordering = ['-date']
    list_select_related = ['lead', 'user']


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):

    list_display = ['lead', 'date_time', 'status', 'reminder_sent']
    list_filter = ['status', 'reminder_sent']
    search_fields = ['description', 'lead__name']
    list_select_related = ['lead']
