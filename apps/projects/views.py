import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Prefetch, Q
from django.http import HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_POST

from apps.accounts.decorators import environment_required, projects_access_required
from apps.core.formatting import format_time, round_money
from apps.core.utils import request_data
from .forms import ProjectForm, StageForm, StageImageForm, StageTemplateForm, TimeEditForm
from .models import STATUS_CHOICES, Project, Stage, StageImage, StageTemplate
from .reports import build_project_report

logger = logging.getLogger(__name__)


def _bad_json():
    return JsonResponse({'success': False, 'error': 'Invalid JSON format'}, status=400)


def _form_errors(form):
    return JsonResponse({'success': False, 'errors': form.errors}, status=400)


def _rule_error(exc):
    return JsonResponse({'success': False, 'error': ' '.join(exc.messages)}, status=400)


def _get_project(request, pk):
    return get_object_or_404(Project, pk=pk, environment=request.environment)


def _get_stage(request, stage_id):
    return get_object_or_404(Stage.objects.select_related('project'), pk=stage_id, project__environment=request.environment)


def _warning_days(request):
    env_settings = request.workspace.settings
    return env_settings.deadline_warning_days if env_settings.enable_deadline_warning else None


def _project_row(project, warning_days):
    total_seconds = project.get_total_seconds()
    row = {
        'id': project.id,
        'client_name': project.client_name,
        'description': project.description,
        'project_type': project.project_type,
        'type_label': project.get_type_label(),
        'sub_type': project.sub_type,
        'status': project.status,
        'status_display': project.get_status_display(),
        'billing_type': project.billing_type,
        'billing_label': project.get_billing_label(),
        'hourly_rate': round_money(project.hourly_rate),
        'total_value': round_money(project.total_value),
        'source_lead_id': project.source_lead_id,
        'created_at': project.created_at.isoformat(),
        'completed_at': project.completed_at.isoformat() if project.completed_at else None,
        'total_seconds': total_seconds,
        'formatted_time': format_time(total_seconds),
        'estimated_cost': round_money(project.get_estimated_cost(total_seconds)),
        'overdue_stages': project.count_overdue_stages(),
        'deadline_warning': False,
    }
    if warning_days is not None:
        row['deadline_warning'] = project.has_deadline_warning(warning_days)
    return row


def _stage_payload(stage, warning_days):
    data = stage.to_dict(warning_days)
    data['images'] = [image.to_dict() for image in stage.images.all()]
    return data


# PROJECT VIEWS
@require_GET
@projects_access_required
@environment_required
def project_list_view(request):
    projects = request.workspace.projects()

    status = request.GET.get('status', '').strip()
    if status:
        projects = projects.filter(status=status)

    search_query = request.GET.get('search', '').strip()
    if search_query:
        projects = projects.filter(Q(client_name__icontains=search_query) | Q(description__icontains=search_query))

    warning_days = _warning_days(request)
    return JsonResponse({
        'success': True,
        'projects': [_project_row(project, warning_days) for project in projects],
        'total_count': projects.count(),
    })


@require_POST
@projects_access_required
@environment_required
def project_create_view(request):
    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    form = ProjectForm(data, env_settings=request.workspace.settings)
    if not form.is_valid():
        return _form_errors(form)

    project = form.save(commit=False)
    project.environment = request.environment
    project.save()
    logger.info(f"Project created: {project.pk} ({project.client_name}) by {request.user.email}")

    return JsonResponse({'success': True, 'project': _project_row(project, _warning_days(request))}, status=201)


@require_GET
@projects_access_required
@environment_required
def project_detail_view(request, pk):
    project = get_object_or_404(
        Project.objects.prefetch_related(Prefetch('stages', queryset=Stage.objects.prefetch_related('images'))),
        pk=pk,
        environment=request.environment,
    )
    warning_days = _warning_days(request)

    data = _project_row(project, warning_days)
    data['stages'] = [_stage_payload(stage, warning_days) for stage in project.stages.all()]

    return JsonResponse({'success': True, 'project': data})


@require_POST
@projects_access_required
@environment_required
def project_edit_view(request, pk):
    project = _get_project(request, pk)

    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    form = ProjectForm(data, instance=project, env_settings=request.workspace.settings)
    if not form.is_valid():
        return _form_errors(form)

    project = form.save()
    return JsonResponse({'success': True, 'project': _project_row(project, _warning_days(request))})


@require_POST
@projects_access_required
@environment_required
def project_change_status_view(request, pk):
    project = _get_project(request, pk)

    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    new_status = data.get('status')
    if new_status not in dict(STATUS_CHOICES):
        return JsonResponse({'success': False, 'error': 'Invalid status'}, status=400)

    project.change_status(new_status)
    return JsonResponse({
        'success': True,
        'status': project.status,
        'status_display': project.get_status_display(),
    })


@require_POST
@projects_access_required
@environment_required
def project_delete_view(request, pk):
    project = _get_project(request, pk)

    with transaction.atomic():
        StageImage.purge(StageImage.objects.filter(stage__project=project))
        name = project.client_name
        project.delete()

    logger.info(f"Project deleted: {pk} ({name}) by {request.user.email}")
    return JsonResponse({'success': True})


@require_POST
@projects_access_required
@environment_required
def project_clone_view(request, pk):
    project = _get_project(request, pk)
    clone = project.clone()
    logger.info(f"Project {project.pk} cloned into {clone.pk}")
    return JsonResponse({'success': True, 'project': _project_row(clone, _warning_days(request))}, status=201)


@require_GET
@projects_access_required
@environment_required
def project_report_view(request, pk):
    project = _get_project(request, pk)

    try:
        filename, pdf = build_project_report(project)
    except Exception:
        logger.error(f"Error generating report for project {project.pk}", exc_info=True)
        return JsonResponse({'success': False, 'error': 'Error generating the report'}, status=500)

    response = HttpResponse(pdf, content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


# STAGE VIEWS
@require_POST
@projects_access_required
@environment_required
def stage_add_view(request, pk):
    project = _get_project(request, pk)

    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    form = StageForm(data, env_settings=request.workspace.settings)
    if not form.is_valid():
        return _form_errors(form)

    stage = project.add_stage(form.cleaned_data['name'], form.cleaned_data.get('deadline'))
    return JsonResponse({'success': True, 'stage': _stage_payload(stage, _warning_days(request))}, status=201)


@require_POST
@projects_access_required
@environment_required
def stage_add_defaults_view(request, pk):
    project = _get_project(request, pk)

    stages = project.add_default_stages()
    if not stages:
        return JsonResponse({'success': False, 'error': 'No stage templates configured'}, status=400)

    warning_days = _warning_days(request)
    return JsonResponse({'success': True, 'stages': [stage.to_dict(warning_days) for stage in stages]}, status=201)


@require_POST
@projects_access_required
@environment_required
def stage_edit_view(request, stage_id):
    stage = _get_stage(request, stage_id)

    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    form = StageForm(data, instance=stage, env_settings=request.workspace.settings)
    if not form.is_valid():
        return _form_errors(form)

    stage = form.save()
    return JsonResponse({'success': True, 'stage': _stage_payload(stage, _warning_days(request))})


@require_POST
@projects_access_required
@environment_required
def stage_change_status_view(request, stage_id):
    stage = _get_stage(request, stage_id)

    try:
        data = request_data(request)
        stage.change_status(data.get('status'))
    except ValueError:
        return _bad_json()
    except ValidationError as exc:
        return _rule_error(exc)

    return JsonResponse({
        'success': True,
        'status': stage.status,
        'status_display': stage.get_status_display(),
    })


@require_POST
@projects_access_required
@environment_required
def stage_delete_view(request, stage_id):
    stage = _get_stage(request, stage_id)
    stage.delete_and_renumber()
    return JsonResponse({'success': True})


@require_POST
@projects_access_required
@environment_required
def stage_reorder_view(request, pk):
    project = _get_project(request, pk)

    try:
        data = request_data(request)
        stage_ids = [int(stage_id) for stage_id in data.get('stage_ids') or []]
    except ValueError:
        return _bad_json()
    except TypeError:
        return JsonResponse({'success': False, 'error': 'stage_ids must be a list of ids'}, status=400)

    try:
        project.reorder_stages(stage_ids)
    except ValidationError as exc:
        return _rule_error(exc)

    return JsonResponse({'success': True, 'stage_ids': list(project.stages.order_by('order', 'id').values_list('id', flat=True))})


# TIMER VIEWS
@require_POST
@projects_access_required
@environment_required
def timer_start_view(request, stage_id):
    stage = _get_stage(request, stage_id)

    try:
        stage.start_timer(request.user)
    except ValidationError as exc:
        logger.warning(f"Timer start refused on stage {stage.pk}: {exc.messages}")
        return _rule_error(exc)

    return JsonResponse({'success': True, 'stage': stage.to_dict()})


@require_POST
@projects_access_required
@environment_required
def timer_stop_view(request, stage_id):
    stage = _get_stage(request, stage_id)

    try:
        entry = stage.stop_timer()
    except ValidationError as exc:
        logger.warning(f"Timer stop refused on stage {stage.pk}: {exc.messages}")
        return _rule_error(exc)

    return JsonResponse({
        'success': True,
        'stage': stage.to_dict(),
        'entry': {
            'id': entry.id,
            'start_time': entry.start_time.isoformat(),
            'end_time': entry.end_time.isoformat(),
            'duration': entry.duration,
        },
    })


@require_POST
@projects_access_required
@environment_required
def timer_reset_view(request, stage_id):
    stage = _get_stage(request, stage_id)

    try:
        stage.reset_timer()
    except ValidationError as exc:
        return _rule_error(exc)

    return JsonResponse({'success': True, 'stage': stage.to_dict()})


@require_POST
@projects_access_required
@environment_required
def stage_edit_time_view(request, stage_id):
    stage = _get_stage(request, stage_id)

    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    form = TimeEditForm(data)
    if not form.is_valid():
        return _form_errors(form)

    try:
        stage.set_accumulated_time(form.cleaned_data['time'])
    except ValidationError as exc:
        return _rule_error(exc)

    return JsonResponse({'success': True, 'stage': stage.to_dict()})


# STAGE IMAGES
@require_POST
@projects_access_required
@environment_required
def stage_image_upload_view(request, stage_id):
    stage = _get_stage(request, stage_id)

    form = StageImageForm(request.POST, request.FILES)
    if not form.is_valid():
        return _form_errors(form)

    uploaded_file = form.cleaned_data['image']
    image = StageImage.objects.create(
        stage=stage,
        image=uploaded_file,
        file_name=StageImage.original_name(uploaded_file),
    )
    logger.info(f"Image {image.file_name} uploaded to stage {stage.pk}")

    return JsonResponse({'success': True, 'image': image.to_dict()}, status=201)


@require_POST
@projects_access_required
@environment_required
def stage_image_delete_view(request, image_id):
    image = get_object_or_404(StageImage, pk=image_id, stage__project__environment=request.environment)
    image.delete()
    return JsonResponse({'success': True})


# STAGE TEMPLATES
@require_GET
@projects_access_required
@environment_required
def template_list_view(request):
    templates = request.workspace.stage_templates().order_by('order', 'id')
    return JsonResponse({'success': True, 'templates': [template.to_dict() for template in templates]})


@require_POST
@projects_access_required
@environment_required
def template_add_view(request):
    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    form = StageTemplateForm(data)
    if not form.is_valid():
        return _form_errors(form)

    template = form.save(commit=False)
    template.environment = request.environment
    template.order = request.workspace.stage_templates().count()
    template.save()

    return JsonResponse({'success': True, 'template': template.to_dict()}, status=201)


@require_POST
@projects_access_required
@environment_required
def template_rename_view(request, template_id):
    template = get_object_or_404(StageTemplate, pk=template_id, environment=request.environment)

    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    form = StageTemplateForm(data, instance=template)
    if not form.is_valid():
        return _form_errors(form)

    template = form.save()
    return JsonResponse({'success': True, 'template': template.to_dict()})


@require_POST
@projects_access_required
@environment_required
def template_delete_view(request, template_id):
    template = get_object_or_404(StageTemplate, pk=template_id, environment=request.environment)

    with transaction.atomic():
        template.delete()
        StageTemplate.renumber(request.environment)

    return JsonResponse({'success': True})


@require_POST
@projects_access_required
@environment_required
def template_reorder_view(request):
    try:
        data = request_data(request)
        template_ids = [int(template_id) for template_id in data.get('template_ids') or []]
    except ValueError:
        return _bad_json()
    except TypeError:
        return JsonResponse({'success': False, 'error': 'template_ids must be a list of ids'}, status=400)

    try:
        StageTemplate.reorder(request.environment, template_ids)
    except ValidationError as exc:
        return _rule_error(exc)

    return JsonResponse({'success': True})
