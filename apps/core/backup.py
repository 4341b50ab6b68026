"""
Workspace backup: export every tenant table as one JSON document and
restore it, replacing the current tenant data.

Document layout:
    {
        "version": 1,
        "exported_at": "...",
        "environment": {"id": ..., "name": ..., "db_name": ...},
        "data": {"settings": {...}, "projects": [...], ...}
    }

The JSON document carries image metadata only (file name and upload date).
The ZIP export adds the image files next to it. Images are skipped on import.
"""
import io
import json
import logging
import zipfile
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from apps.accounts.models import User
from apps.leads.models import Appointment, Interaction, KanbanColumn, Lead, Proposal
from apps.projects.models import Project, Stage, StageImage, StageTemplate, TimeEntry

logger = logging.getLogger(__name__)

BACKUP_VERSION = 1

TABLES = [
    'stage_templates', 'kanban_columns', 'leads', 'projects', 'stages',
    'time_entries', 'proposals', 'interactions', 'appointments',
]

SETTINGS_FIELDS = [
    'default_hourly_rate', 'default_billing_type', 'fixed_project_cost_rate',
    'deadline_warning_days', 'enable_deadline_warning', 'require_stage_deadline',
    'report_layout',
]


class BackupError(ValueError):
    """Raised when a backup document cannot be imported"""


# EXPORT

def _iso(value):
    return value.isoformat() if value else None


def _money(value):
    return str(value) if value is not None else None


def _image_meta(field_file, uploaded_at):
    if not field_file:
        return None
    return {'file_name': field_file.name.rsplit('/', 1)[-1], 'uploaded_at': _iso(uploaded_at)}


def export_workspace(workspace, now=None):
    now = now or timezone.now()
    env_settings = workspace.settings

    settings_data = {name: getattr(env_settings, name) for name in SETTINGS_FIELDS}
    settings_data['default_hourly_rate'] = _money(env_settings.default_hourly_rate)
    settings_data['fixed_project_cost_rate'] = _money(env_settings.fixed_project_cost_rate)
    settings_data['logo_image'] = _image_meta(env_settings.logo_image, env_settings.updated_at)
    settings_data['signature_image'] = _image_meta(env_settings.signature_image, env_settings.updated_at)

    data = {
        'settings': settings_data,
        'stage_templates': [
            {'id': t.id, 'name': t.name, 'order': t.order}
            for t in workspace.stage_templates().order_by('order', 'id')
        ],
        'kanban_columns': [
            {'id': c.id, 'key': c.key, 'label': c.label, 'order': c.order}
            for c in workspace.kanban_columns().order_by('order', 'id')
        ],
        'leads': [
            {
                'id': lead.id,
                'name': lead.name,
                'email': lead.email,
                'phone': lead.phone,
                'source': lead.source,
                'project_type': lead.project_type,
                'sub_type': lead.sub_type,
                'notes': lead.notes,
                'responsible': lead.responsible,
                'lost_reason': lead.lost_reason,
                'column': lead.column.key if lead.column else None,
                'position': lead.position,
                'tags': [tag.name for tag in lead.tags.all()],
                'created_at': _iso(lead.created_at),
            }
            for lead in workspace.leads().select_related('column').prefetch_related('tags').order_by('id')
        ],
        'projects': [
            {
                'id': p.id,
                'client_name': p.client_name,
                'description': p.description,
                'project_type': p.project_type,
                'sub_type': p.sub_type,
                'status': p.status,
                'billing_type': p.billing_type,
                'hourly_rate': _money(p.hourly_rate),
                'total_value': _money(p.total_value),
                'source_lead_id': p.source_lead_id,
                'created_at': _iso(p.created_at),
                'completed_at': _iso(p.completed_at),
            }
            for p in workspace.projects().order_by('id')
        ],
        'stages': [
            {
                'id': s.id,
                'project_id': s.project_id,
                'name': s.name,
                'deadline': _iso(s.deadline),
                'order': s.order,
                'status': s.status,
                'accumulated_time': s.accumulated_time,
            }
            for s in workspace.stages().order_by('id')
        ],
        'time_entries': [
            {
                'id': e.id,
                'stage_id': e.stage_id,
                'start_time': _iso(e.start_time),
                'end_time': _iso(e.end_time),
                'duration': e.duration,
            }
            for e in workspace.time_entries().order_by('id')
        ],
        'stage_images': [
            dict(_image_meta(i.image, i.uploaded_at) or {}, id=i.id, stage_id=i.stage_id, file_name=i.file_name)
            for i in workspace.stage_images().order_by('id')
        ],
        'proposals': [
            {
                'id': p.id,
                'lead_id': p.lead_id,
                'title': p.title,
                'charge_type': p.charge_type,
                'hourly_rate': _money(p.hourly_rate),
                'estimated_hours': _money(p.estimated_hours),
                'total_value': _money(p.total_value),
                'status': p.status,
                'description': p.description,
                'items': p.items,
                'observations': p.observations,
                'created_at': _iso(p.created_at),
                'sent_at': _iso(p.sent_at),
                'accepted_at': _iso(p.accepted_at),
                'project_id': p.project_id,
            }
            for p in workspace.proposals().order_by('id')
        ],
        'interactions': [
            {
                'id': i.id,
                'lead_id': i.lead_id,
                'interaction_type': i.interaction_type,
                'date': _iso(i.date),
                'details': i.details,
                'user_email': i.user.email if i.user else None,
            }
            for i in workspace.interactions().select_related('user').order_by('id')
        ],
        'appointments': [
            {
                'id': a.id,
                'lead_id': a.lead_id,
                'date_time': _iso(a.date_time),
                'description': a.description,
                'status': a.status,
                'reminder_sent': a.reminder_sent,
            }
            for a in workspace.appointments().order_by('id')
        ],
    }

    environment = workspace.environment
    return {
        'version': BACKUP_VERSION,
        'exported_at': _iso(now),
        'environment': {'id': environment.id, 'name': environment.name, 'db_name': environment.db_name},
        'data': data,
    }


def _read_file(field_file):
    try:
        with field_file.open('rb') as handle:
            return handle.read()
    except OSError:
        logger.warning(f"Backup export: file {field_file.name} is missing from storage")
        return None


def export_workspace_zip(workspace, now=None):
    """
    Export the workspace as a ZIP archive

    Layout:
        data.json                              same document as export_workspace()
        images/{stage_id}_{id}_{file_name}     stage images
        images/environment_logo                report logo, when set
        images/environment_signature           signature, when set

    Returns:
        bytes: The archive content
    """
    document = export_workspace(workspace, now)
    env_settings = workspace.settings

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as archive:
        archive.writestr('data.json', json.dumps(document, ensure_ascii=False, indent=2))

        for image in workspace.stage_images().order_by('id'):
            content = _read_file(image.image) if image.image else None
            if content is not None:
                archive.writestr(f'images/{image.stage_id}_{image.id}_{image.file_name}', content)

        for field_name, entry_name in (('logo_image', 'environment_logo'), ('signature_image', 'environment_signature')):
            field_file = getattr(env_settings, field_name)
            content = _read_file(field_file) if field_file else None
            if content is not None:
                archive.writestr(f'images/{entry_name}', content)

    return buffer.getvalue()


# IMPORT

def _decimal(value):
    if value in (None, ''):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise BackupError(f'Invalid number: {value}') from exc


def _datetime(value, required=False):
    if not value:
        if required:
            raise BackupError('Missing date')
        return None
    parsed = parse_datetime(value)
    if parsed is None:
        raise BackupError(f'Invalid date: {value}')
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def _date(value):
    if not value:
        return None
    parsed = parse_date(value)
    if parsed is None:
        raise BackupError(f'Invalid date: {value}')
    return parsed


def validate_document(document):
    """
    Check the document shape before anything is touched

    Returns:
        dict: The 'data' section, with every table present as a list
    """
    if not isinstance(document, dict) or not isinstance(document.get('data'), dict):
        raise BackupError('Invalid backup file: missing data section')

    data = document['data']
    for table in TABLES:
        rows = data.get(table, [])
        if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
            raise BackupError(f'Invalid backup file: "{table}" must be a list of records')

    if not isinstance(data.get('settings', {}), dict):
        raise BackupError('Invalid backup file: "settings" must be an object')

    return data


def _clear_workspace(workspace):
    StageImage.purge(workspace.stage_images())
    workspace.proposals().delete()
    workspace.projects().delete()
    workspace.leads().delete()
    workspace.kanban_columns().delete()
    workspace.stage_templates().delete()


def _restore_settings(workspace, settings_data):
    env_settings = workspace.settings
    for name in SETTINGS_FIELDS:
        if name not in settings_data:
            continue
        value = settings_data[name]
        if name in ('default_hourly_rate', 'fixed_project_cost_rate'):
            value = _decimal(value)
        setattr(env_settings, name, value)
    env_settings.full_clean(exclude=['environment', 'logo_image', 'signature_image'])
    env_settings.save()


@transaction.atomic
def import_workspace(workspace, document):
    """
    Replace all tenant data with the backup contents

    Ids are remapped; references between records follow the new ids.
    Runs in a single transaction: any error leaves the data untouched.

    Returns:
        dict: Number of imported records per table

    Raises:
        BackupError: If the document is malformed
    """
    data = validate_document(document)
    environment = workspace.environment

    try:
        _clear_workspace(workspace)
        _restore_settings(workspace, data.get('settings', {}))
        counts = _restore_rows(environment, data)
    except BackupError:
        raise
    except (AttributeError, KeyError, TypeError, ValueError, ValidationError, IntegrityError) as exc:
        logger.warning(f"Backup import failed for {environment.db_name}: {exc}")
        raise BackupError(f'Invalid backup file: {exc}') from exc

    logger.info(f"Backup imported into {environment.db_name}: {counts}")
    return counts


def _restore_rows(environment, data):
    counts = {}

    for row in data.get('stage_templates', []):
        StageTemplate.objects.create(environment=environment, name=row['name'], order=int(row.get('order') or 0))
    counts['stage_templates'] = len(data.get('stage_templates', []))

    columns = {}
    for row in data.get('kanban_columns', []):
        column = KanbanColumn.objects.create(
            environment=environment, key=row['key'], label=row.get('label') or row['key'], order=int(row.get('order') or 0)
        )
        columns[column.key] = column
    counts['kanban_columns'] = len(columns)

    lead_ids = {}
    for row in data.get('leads', []):
        lead = Lead.objects.create(
            environment=environment,
            name=row['name'],
            email=row.get('email') or '',
            phone=row.get('phone') or '',
            source=row.get('source') or '',
            project_type=row.get('project_type') or '',
            sub_type=row.get('sub_type') or '',
            notes=row.get('notes') or '',
            responsible=row.get('responsible') or '',
            lost_reason=row.get('lost_reason') or '',
            column=columns.get(row.get('column')),
            position=int(row.get('position') or 0),
            created_at=_datetime(row.get('created_at')) or timezone.now(),
        )
        if row.get('tags'):
            lead.tags.set(list(row['tags']))
        lead_ids[row['id']] = lead
    counts['leads'] = len(lead_ids)

    project_ids = {}
    for row in data.get('projects', []):
        project = Project(
            environment=environment,
            client_name=row['client_name'],
            description=row.get('description') or '',
            project_type=row.get('project_type') or 'residential',
            sub_type=row.get('sub_type') or '',
            status=row.get('status') or 'pending',
            billing_type=row.get('billing_type') or Project.BILLING_FIXED,
            hourly_rate=_decimal(row.get('hourly_rate')),
            total_value=_decimal(row.get('total_value')),
            source_lead=lead_ids.get(row.get('source_lead_id')),
            created_at=_datetime(row.get('created_at')) or timezone.now(),
            completed_at=_datetime(row.get('completed_at')),
        )
        project.save()
        project_ids[row['id']] = project
    counts['projects'] = len(project_ids)

    stage_ids = {}
    for row in data.get('stages', []):
        stage_ids[row['id']] = Stage.objects.create(
            project=project_ids[row['project_id']],
            name=row['name'],
            deadline=_date(row.get('deadline')),
            order=int(row.get('order') or 0),
            status=row.get('status') or 'pending',
            accumulated_time=int(row.get('accumulated_time') or 0),
        )
    counts['stages'] = len(stage_ids)

    for row in data.get('time_entries', []):
        TimeEntry.objects.create(
            stage=stage_ids[row['stage_id']],
            start_time=_datetime(row.get('start_time'), required=True),
            end_time=_datetime(row.get('end_time'), required=True),
            duration=int(row.get('duration') or 0),
        )
    counts['time_entries'] = len(data.get('time_entries', []))

    for row in data.get('proposals', []):
        Proposal.objects.create(
            lead=lead_ids[row['lead_id']],
            title=row['title'],
            charge_type=row.get('charge_type') or 'fixed',
            hourly_rate=_decimal(row.get('hourly_rate')),
            estimated_hours=_decimal(row.get('estimated_hours')),
            total_value=_decimal(row.get('total_value')) or Decimal('0'),
            status=row.get('status') or Proposal.STATUS_DRAFT,
            description=row.get('description') or '',
            items=row.get('items') or [],
            observations=row.get('observations') or '',
            created_at=_datetime(row.get('created_at')) or timezone.now(),
            sent_at=_datetime(row.get('sent_at')),
            accepted_at=_datetime(row.get('accepted_at')),
            project=project_ids.get(row.get('project_id')),
        )
    counts['proposals'] = len(data.get('proposals', []))

    users = {user.email.lower(): user for user in User.objects.filter(environment=environment)}
    for row in data.get('interactions', []):
        Interaction.objects.create(
            lead=lead_ids[row['lead_id']],
            user=users.get(str(row.get('user_email') or '').lower()),
            interaction_type=row.get('interaction_type') or 'note',
            date=_datetime(row.get('date')) or timezone.now(),
            details=row.get('details') or '',
        )
    counts['interactions'] = len(data.get('interactions', []))

    for row in data.get('appointments', []):
        Appointment.objects.create(
            lead=lead_ids[row['lead_id']],
            date_time=_datetime(row.get('date_time'), required=True),
            description=row.get('description') or '',
            status=row.get('status') or 'pending',
            reminder_sent=bool(row.get('reminder_sent')),
        )
    counts['appointments'] = len(data.get('appointments', []))

    return counts
