import csv
import logging

import openpyxl
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q
from django.http import HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.views.decorators.http import require_GET, require_POST
from openpyxl.styles import Font, PatternFill

from apps.accounts.decorators import crm_access_required, environment_required
from apps.core.utils import request_data
from .documents import build_proposal_pdf
from .forms import AppointmentForm, ColumnForm, InteractionForm, LeadForm, ProposalForm
from .models import Appointment, Interaction, KanbanColumn, Lead, Proposal

logger = logging.getLogger(__name__)

EXPORT_HEADERS = ['ID', 'Name', 'Email', 'Phone', 'Source', 'Column', 'Responsible', 'Project Type', 'Created Date']


def _bad_json():
    return JsonResponse({'success': False, 'error': 'Invalid JSON format'}, status=400)


def _form_errors(form):
    return JsonResponse({'success': False, 'errors': form.errors}, status=400)


def _rule_error(exc):
    return JsonResponse({'success': False, 'error': ' '.join(exc.messages)}, status=400)


def _get_lead(request, pk):
    return get_object_or_404(Lead, pk=pk, environment=request.environment)


def _get_proposal(request, proposal_id):
    return get_object_or_404(Proposal.objects.select_related('lead'), pk=proposal_id, lead__environment=request.environment)


def _get_column(request, key):
    return get_object_or_404(KanbanColumn, key=key, environment=request.environment)


def _search(leads, search_query):
    if not search_query:
        return leads
    return leads.filter(
        Q(name__icontains=search_query) |
        Q(email__icontains=search_query) |
        Q(phone__icontains=search_query)
    )


# BOARD
@require_GET
@crm_access_required
@environment_required
def board_view(request):
    columns = list(request.workspace.kanban_columns().order_by('order', 'id'))

    leads = request.workspace.leads().select_related('column').prefetch_related('tags').order_by('position', '-created_at')
    leads = _search(leads, request.GET.get('search', '').strip())

    leads_by_column = {column.id: [] for column in columns}
    orphans = []
    for lead in leads:
        if lead.column_id in leads_by_column:
            leads_by_column[lead.column_id].append(lead.to_dict())
        else:
            orphans.append(lead.to_dict())

    # Leads without a (valid) column show up in the first column
    if columns and orphans:
        leads_by_column[columns[0].id] = orphans + leads_by_column[columns[0].id]

    board = []
    for column in columns:
        column_leads = leads_by_column[column.id]
        board.append(dict(column.to_dict(), leads=column_leads, count=len(column_leads)))

    return JsonResponse({
        'success': True,
        'columns': board,
        'total_count': sum(column['count'] for column in board),
    })


# LEADS
@require_POST
@crm_access_required
@environment_required
def lead_create_view(request):
    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    form = LeadForm(data)
    if not form.is_valid():
        return _form_errors(form)

    column_key = data.get('column')
    if column_key:
        column = request.workspace.kanban_columns().filter(key=column_key).first()
        if column is None:
            return JsonResponse({'success': False, 'error': 'Invalid column'}, status=400)
    else:
        column = request.workspace.kanban_columns().order_by('order', 'id').first()

    with transaction.atomic():
        lead = form.save(commit=False)
        lead.environment = request.environment
        lead.column = column
        lead.save()
        form.save_tags(lead)

    logger.info(f"Lead created: {lead.pk} ({lead.name}) in {request.environment.db_name}")
    return JsonResponse({'success': True, 'lead': lead.to_dict()}, status=201)


@require_GET
@crm_access_required
@environment_required
def lead_detail_view(request, pk):
    lead = _get_lead(request, pk)

    data = lead.to_dict()
    data['proposals'] = [proposal.to_dict() for proposal in lead.proposals.order_by('-created_at')]
    data['interactions'] = [interaction.to_dict() for interaction in lead.interactions.select_related('user').order_by('-date', '-id')]
    data['appointments'] = [appointment.to_dict() for appointment in lead.appointments.order_by('date_time')]

    return JsonResponse({'success': True, 'lead': data})


@require_POST
@crm_access_required
@environment_required
def lead_edit_view(request, pk):
    lead = _get_lead(request, pk)

    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    form = LeadForm(data, instance=lead)
    if not form.is_valid():
        return _form_errors(form)

    with transaction.atomic():
        lead = form.save()
        form.save_tags(lead)

    return JsonResponse({'success': True, 'lead': lead.to_dict()})


@require_POST
@crm_access_required
@environment_required
def lead_delete_view(request, pk):
    lead = _get_lead(request, pk)
    name = lead.name
    lead.delete()
    logger.info(f"Lead deleted: {pk} ({name}) by {request.user.email}")
    return JsonResponse({'success': True})


@require_POST
@crm_access_required
@environment_required
def lead_move_view(request, pk):
    lead = _get_lead(request, pk)

    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    column = request.workspace.kanban_columns().filter(key=data.get('column')).first()
    if column is None:
        return JsonResponse({'success': False, 'error': 'Invalid column'}, status=400)

    position = data.get('position')
    try:
        lead.move_to(column, position if position not in (None, '') else None)
    except (TypeError, ValueError):
        return JsonResponse({'success': False, 'error': 'Invalid position'}, status=400)

    return JsonResponse({'success': True, 'lead': lead.to_dict()})


# COLUMNS
@require_POST
@crm_access_required
@environment_required
def column_add_view(request):
    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    form = ColumnForm(data)
    if not form.is_valid():
        return _form_errors(form)

    try:
        column = KanbanColumn.create_column(request.environment, form.cleaned_data['label'])
    except ValidationError as exc:
        return _rule_error(exc)

    return JsonResponse({'success': True, 'column': column.to_dict()}, status=201)


@require_POST
@crm_access_required
@environment_required
def column_rename_view(request, key):
    column = _get_column(request, key)

    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    form = ColumnForm(data)
    if not form.is_valid():
        return _form_errors(form)

    column.label = form.cleaned_data['label']
    column.save(update_fields=['label'])
    return JsonResponse({'success': True, 'column': column.to_dict()})


@require_POST
@crm_access_required
@environment_required
def column_delete_view(request, key):
    column = _get_column(request, key)

    try:
        column.delete_column()
    except ValidationError as exc:
        logger.warning(f"Column delete refused ({key}): {exc.messages}")
        return _rule_error(exc)

    return JsonResponse({'success': True})


@require_POST
@crm_access_required
@environment_required
def column_reorder_view(request):
    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    keys = data.get('keys')
    if not isinstance(keys, list):
        return JsonResponse({'success': False, 'error': 'keys must be a list of column ids'}, status=400)

    try:
        KanbanColumn.reorder(request.environment, keys)
    except ValidationError as exc:
        return _rule_error(exc)

    return JsonResponse({'success': True})


# PROPOSALS
@require_POST
@crm_access_required
@environment_required
def proposal_create_view(request, pk):
    lead = _get_lead(request, pk)

    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    form = ProposalForm(data)
    if not form.is_valid():
        return _form_errors(form)

    proposal = form.save(commit=False)
    proposal.lead = lead
    proposal.save()

    return JsonResponse({'success': True, 'proposal': proposal.to_dict()}, status=201)


@require_POST
@crm_access_required
@environment_required
def proposal_edit_view(request, proposal_id):
    proposal = _get_proposal(request, proposal_id)

    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    form = ProposalForm(data, instance=proposal)
    if not form.is_valid():
        return _form_errors(form)

    proposal = form.save()
    return JsonResponse({'success': True, 'proposal': proposal.to_dict()})


@require_POST
@crm_access_required
@environment_required
def proposal_mark_sent_view(request, proposal_id):
    proposal = _get_proposal(request, proposal_id)
    proposal.mark_as_sent()
    return JsonResponse({'success': True, 'proposal': proposal.to_dict()})


@require_POST
@crm_access_required
@environment_required
def proposal_change_status_view(request, proposal_id):
    proposal = _get_proposal(request, proposal_id)

    try:
        data = request_data(request)
        proposal.change_status(data.get('status'))
    except ValueError:
        return _bad_json()
    except ValidationError as exc:
        return _rule_error(exc)

    return JsonResponse({'success': True, 'proposal': proposal.to_dict()})


@require_POST
@crm_access_required
@environment_required
def proposal_delete_view(request, proposal_id):
    proposal = _get_proposal(request, proposal_id)
    proposal.delete()
    return JsonResponse({'success': True})


@require_POST
@crm_access_required
@environment_required
def proposal_convert_view(request, proposal_id):
    proposal = _get_proposal(request, proposal_id)

    try:
        project = proposal.convert_to_project()
    except ValidationError as exc:
        logger.warning(f"Proposal {proposal.pk} conversion refused: {exc.messages}")
        return _rule_error(exc)

    return JsonResponse({
        'success': True,
        'project_id': project.id,
        'project_name': project.client_name,
    }, status=201)


@require_GET
@crm_access_required
@environment_required
def proposal_pdf_view(request, proposal_id):
    proposal = _get_proposal(request, proposal_id)

    try:
        filename, pdf = build_proposal_pdf(proposal)
    except Exception:
        logger.error(f"Error generating PDF for proposal {proposal.pk}", exc_info=True)
        return JsonResponse({'success': False, 'error': 'Error generating the proposal PDF'}, status=500)

    response = HttpResponse(pdf, content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


# INTERACTIONS
@require_POST
@crm_access_required
@environment_required
def interaction_add_view(request, pk):
    lead = _get_lead(request, pk)

    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    form = InteractionForm(data)
    if not form.is_valid():
        return _form_errors(form)

    interaction = form.save(commit=False)
    interaction.lead = lead
    interaction.user = request.user
    interaction.save()

    return JsonResponse({'success': True, 'interaction': interaction.to_dict()}, status=201)


@require_POST
@crm_access_required
@environment_required
def interaction_delete_view(request, interaction_id):
    interaction = get_object_or_404(Interaction, pk=interaction_id, lead__environment=request.environment)
    interaction.delete()
    return JsonResponse({'success': True})


# APPOINTMENTS
@require_POST
@crm_access_required
@environment_required
def appointment_add_view(request, pk):
    lead = _get_lead(request, pk)

    try:
        data = request_data(request)
    except ValueError:
        return _bad_json()

    form = AppointmentForm(data)
    if not form.is_valid():
        return _form_errors(form)

    appointment = form.save(commit=False)
    appointment.lead = lead
    appointment.save()

    return JsonResponse({'success': True, 'appointment': appointment.to_dict()}, status=201)


@require_POST
@crm_access_required
@environment_required
def appointment_change_status_view(request, appointment_id):
    appointment = get_object_or_404(Appointment, pk=appointment_id, lead__environment=request.environment)

    try:
        data = request_data(request)
        appointment.change_status(data.get('status'))
    except ValueError:
        return _bad_json()
    except ValidationError as exc:
        return _rule_error(exc)

    return JsonResponse({'success': True, 'appointment': appointment.to_dict()})


@require_POST
@crm_access_required
@environment_required
def appointment_delete_view(request, appointment_id):
    appointment = get_object_or_404(Appointment, pk=appointment_id, lead__environment=request.environment)
    appointment.delete()
    return JsonResponse({'success': True})


# EXPORT
def _export_row(lead):
    return [
        lead.id,
        lead.name,
        lead.email,
        lead.phone,
        lead.source,
        lead.column.label if lead.column else '',
        lead.responsible,
        lead.get_project_type_display() if lead.project_type else '',
        timezone.localtime(lead.created_at).strftime('%Y-%m-%d %H:%M'),
    ]


@require_GET
@crm_access_required
@environment_required
def lead_export_view(request):
    export_format = request.GET.get('format', 'excel')
    leads = request.workspace.leads().select_related('column').order_by('-created_at')
    leads = _search(leads, request.GET.get('search', '').strip())

    timestamp = timezone.localtime().strftime('%Y%m%d_%H%M%S')

    if export_format == 'excel':
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = "Leads"

        for col, header in enumerate(EXPORT_HEADERS, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.font = Font(bold=True, color="FFFFFF")
            cell.fill = PatternFill(start_color="1B2A4A", end_color="1B2A4A", fill_type="solid")

        for row, lead in enumerate(leads, start=2):
            for col, value in enumerate(_export_row(lead), start=1):
                ws.cell(row=row, column=col, value=value)

        for column_cells in ws.columns:
            max_length = max(len(str(cell.value)) if cell.value is not None else 0 for cell in column_cells)
            ws.column_dimensions[column_cells[0].column_letter].width = min(max_length + 2, 50)

        response = HttpResponse(content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet')
        response['Content-Disposition'] = f'attachment; filename="leads_{timestamp}.xlsx"'
        wb.save(response)
        return response

    if export_format == 'csv':
        response = HttpResponse(content_type='text/csv; charset=utf-8')
        response['Content-Disposition'] = f'attachment; filename="leads_{timestamp}.csv"'

        # Write BOM for Excel UTF-8 compatibility
        response.write('\ufeff')

        writer = csv.writer(response)
        writer.writerow(EXPORT_HEADERS)
        for lead in leads:
            writer.writerow(_export_row(lead))
        return response

    return JsonResponse({'success': False, 'error': 'Invalid export format'}, status=400)
