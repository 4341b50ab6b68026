import json
import logging

from django.db import transaction
from django.db.models import Count, Q
from django.http import HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.views.decorators.http import require_GET, require_POST

from apps.accounts.decorators import (
    admin_required,
    dashboard_access_required,
    environment_required,
    settings_access_required,
)
from apps.projects.models import StageImage
from . import analytics
from .backup import BackupError, export_workspace, export_workspace_zip, import_workspace
from .forms import BackupImportForm, EnvironmentCreateForm, EnvironmentForm, EnvironmentSettingsForm, SettingsImageForm
from .models import Environment
from .utils import clear_selected_environment, parse_date_range, request_data, set_selected_environment

logger = logging.getLogger(__name__)


def _bad_json():
    return JsonResponse({'success': False, 'error': 'Invalid JSON format'}, status=400)


def _form_errors(form):
    return JsonResponse({'success': False, 'errors': form.errors}, status=400)


def _environment_row(environment):
    data = environment.to_dict()
    data['users_count'] = getattr(environment, 'users_total', None)
    data['active_users_count'] = getattr(environment, 'users_active', None)
    if data['users_count'] is None:
        data['users_count'] = environment.get_users_count()
        data['active_users_count'] = environment.get_active_users_count()
    return data


# ENVIRONMENT ADMINISTRATION (global admin only)
@require_GET
@admin_required
def environment_list_view(request):
    environments = Environment.objects.annotate(
        users_total=Count('users', distinct=True),
        users_active=Count('users', filter=Q(users__is_active=True), distinct=True),
    ).order_by('name')

    search_query = request.GET.get('search', '').strip()
    if search_query:
        environments = environments.filter(Q(name__icontains=search_query) | Q(company_name__icontains=search_query))

    return JsonResponse({
        'success': True,
        'environments': [_environment_row(environment) for environment in environments],
        'selected_environment_id': request.session.get('selected_environment_id'),
    })


@require_POST
@admin_required
def environment_create_view(request):
    """
    Create an environment together with its owner account

    The primary contact email becomes the owner login. Environment,
    settings, default board columns and owner are created atomically.
    """
    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    form = EnvironmentCreateForm(data)
    if not form.is_valid():
        return _form_errors(form)

    with transaction.atomic():
        environment = form.save()
        owner = form.create_owner(environment)

    logger.info(f"Environment created: {environment.db_name} (owner {owner.email}) by {request.user.email}")

    return JsonResponse({
        'success': True,
        'environment': _environment_row(environment),
        'owner': owner.to_session_dict(),
    }, status=201)


@require_POST
@admin_required
def environment_edit_view(request, pk):
    environment = get_object_or_404(Environment, pk=pk)

    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    form = EnvironmentForm(data, instance=environment)
    if not form.is_valid():
        return _form_errors(form)

    environment = form.save()
    return JsonResponse({'success': True, 'environment': _environment_row(environment)})


@require_POST
@admin_required
def environment_toggle_status_view(request, pk):
    environment = get_object_or_404(Environment, pk=pk)
    is_active = environment.toggle_status()
    logger.info(f"Environment {environment.db_name} {'activated' if is_active else 'deactivated'} by {request.user.email}")
    return JsonResponse({'success': True, 'is_active': is_active})


@require_POST
@admin_required
def environment_delete_view(request, pk):
    environment = get_object_or_404(Environment, pk=pk)

    users_count = environment.get_users_count()
    if users_count:
        logger.warning(f"Refused to delete environment {environment.db_name}: {users_count} user(s) linked")
        return JsonResponse({
            'success': False,
            'error': f'This environment still has {users_count} user(s). Remove or move them first.',
        }, status=400)

    db_name = environment.db_name
    with transaction.atomic():
        StageImage.purge(StageImage.objects.filter(stage__project__environment=environment))
        environment.delete()
    if request.session.get('selected_environment_id') == pk:
        clear_selected_environment(request)

    logger.info(f"Environment deleted: {db_name} by {request.user.email}")
    return JsonResponse({'success': True})


@require_POST
@admin_required
def environment_select_view(request, pk):
    if not set_selected_environment(request, pk):
        return JsonResponse({'success': False, 'error': 'Environment not found'}, status=404)

    environment = Environment.objects.get(pk=pk)
    return JsonResponse({'success': True, 'environment': environment.to_dict()})


@require_POST
@admin_required
def environment_clear_selection_view(request):
    clear_selected_environment(request)
    return JsonResponse({'success': True})


@require_GET
@admin_required
def environment_users_view(request, pk):
    environment = get_object_or_404(Environment, pk=pk)
    users = environment.users.order_by('name', 'email')

    return JsonResponse({
        'success': True,
        'environment': environment.to_dict(),
        'users': [dict(user.to_session_dict(), is_active=user.is_active) for user in users],
    })


# SETTINGS (owner / admin)
def _settings_payload(request):
    env_settings = request.workspace.settings
    return dict(env_settings.to_dict(), environment=request.environment.to_dict())


@require_GET
@settings_access_required
@environment_required
def settings_view(request):
    return JsonResponse({'success': True, 'settings': _settings_payload(request)})


@require_POST
@settings_access_required
@environment_required
def settings_update_view(request):
    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    form = EnvironmentSettingsForm(data, instance=request.workspace.settings)
    if not form.is_valid():
        return _form_errors(form)

    form.save()
    logger.info(f"Settings updated for {request.environment.db_name} by {request.user.email}")
    return JsonResponse({'success': True, 'settings': _settings_payload(request)})


@require_POST
@settings_access_required
@environment_required
def settings_image_upload_view(request):
    form = SettingsImageForm(request.POST, request.FILES)
    if not form.is_valid():
        return _form_errors(form)

    image = form.cleaned_data.get('image')
    if not image:
        return JsonResponse({'success': False, 'error': 'Select an image to upload'}, status=400)

    env_settings = request.workspace.settings
    field_name = form.cleaned_data['field']
    current = getattr(env_settings, field_name)
    if current:
        current.delete(save=False)

    setattr(env_settings, field_name, image)
    env_settings.save()

    return JsonResponse({'success': True, 'settings': _settings_payload(request)})


@require_POST
@settings_access_required
@environment_required
def settings_image_remove_view(request):
    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    form = SettingsImageForm(data)
    if not form.is_valid():
        return _form_errors(form)

    env_settings = request.workspace.settings
    field_name = form.cleaned_data['field']
    current = getattr(env_settings, field_name)
    if current:
        current.delete(save=False)
    setattr(env_settings, field_name, None)
    env_settings.save()

    return JsonResponse({'success': True, 'settings': _settings_payload(request)})


# DATA MANAGEMENT
@require_GET
@settings_access_required
@environment_required
def backup_export_view(request):
    export_format = request.GET.get('format', 'json')
    basename = f"backup_{request.environment.db_name}_{timezone.localtime().strftime('%Y%m%d_%H%M%S')}"

    if export_format == 'json':
        document = export_workspace(request.workspace)
        response = HttpResponse(json.dumps(document, ensure_ascii=False, indent=2), content_type='application/json')
        response['Content-Disposition'] = f'attachment; filename="{basename}.json"'
        return response

    if export_format == 'zip':
        response = HttpResponse(export_workspace_zip(request.workspace), content_type='application/zip')
        response['Content-Disposition'] = f'attachment; filename="{basename}.zip"'
        return response

    return JsonResponse({'success': False, 'error': 'Invalid export format'}, status=400)


@require_POST
@settings_access_required
@environment_required
def backup_import_view(request):
    form = BackupImportForm(request.POST, request.FILES)
    if not form.is_valid():
        return _form_errors(form)

    try:
        document = json.loads(form.cleaned_data['file'].read().decode('utf-8'))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return JsonResponse({'success': False, 'error': 'Backup file is not valid JSON'}, status=400)

    try:
        counts = import_workspace(request.workspace, document)
    except BackupError as exc:
        return JsonResponse({'success': False, 'error': str(exc)}, status=400)

    return JsonResponse({'success': True, 'counts': counts})


# DASHBOARD (manager / owner / admin)
def _dashboard_endpoint(build):
    """Wrap an analytics builder as a dashboard JSON view with the date-range query params"""

    @require_GET
    @dashboard_access_required
    @environment_required
    def view(request):
        try:
            start, end = parse_date_range(request)
        except ValueError as exc:
            return JsonResponse({'success': False, 'error': str(exc)}, status=400)
        return JsonResponse({'success': True, 'data': build(request, start, end)})

    view.__name__ = build.__name__
    return view


def _has_explicit_range(request):
    return bool(request.GET.get('start') or request.GET.get('end'))


def _revenue_chart(request, start, end):
    if _has_explicit_range(request):
        return analytics.revenue_chart(request.workspace, start, end)
    return analytics.revenue_chart(request.workspace)


def _key_indicators(request, start, end):
    return analytics.key_indicators(request.workspace, start, end)


def _financial_analysis(request, start, end):
    return analytics.financial_analysis(request.workspace, start, end)


def _crm_analytics(request, start, end):
    return analytics.crm_analytics(request.workspace, start, end)


def _sales_pipeline(request, start, end):
    return analytics.sales_pipeline(request.workspace, start, end)


def _project_type_distribution(request, start, end):
    return analytics.project_type_distribution(request.workspace, start, end)


def _dashboard(request, start, end):
    return {
        'start': start.date().isoformat(),
        'end': end.date().isoformat(),
        'key_indicators': _key_indicators(request, start, end),
        'financial_analysis': _financial_analysis(request, start, end),
        'crm_analytics': _crm_analytics(request, start, end),
        'revenue_chart': _revenue_chart(request, start, end),
        'sales_pipeline': _sales_pipeline(request, start, end),
        'project_type_distribution': _project_type_distribution(request, start, end),
    }


dashboard_view = _dashboard_endpoint(_dashboard)
key_indicators_view = _dashboard_endpoint(_key_indicators)
financial_analysis_view = _dashboard_endpoint(_financial_analysis)
crm_analytics_view = _dashboard_endpoint(_crm_analytics)
revenue_chart_view = _dashboard_endpoint(_revenue_chart)
sales_pipeline_view = _dashboard_endpoint(_sales_pipeline)
project_type_distribution_view = _dashboard_endpoint(_project_type_distribution)
