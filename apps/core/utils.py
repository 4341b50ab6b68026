"""
Helper utilities for environment (tenant) resolution
"""
import json
import logging
import threading
from datetime import datetime, time, timedelta

from django.conf import settings
from django.utils import timezone

from apps.core.models import Environment

logger = logging.getLogger(__name__)


# WORKSPACES

class Workspace:
    """
    Tenant-scoped view over one environment's data

    Every queryset returned here is filtered to the environment, so callers
    never have to remember the tenant filter themselves.
    """

    def __init__(self, environment):
        self.environment = environment
        self.environment_id = environment.pk
        self.db_name = environment.db_name

    def __repr__(self):
        return f"<Workspace {self.db_name}>"

    @property
    def settings(self):
        return self.environment.get_settings()

    def projects(self):
        from apps.projects.models import Project
        return Project.objects.filter(environment_id=self.environment_id)

    def stages(self):
        from apps.projects.models import Stage
        return Stage.objects.filter(project__environment_id=self.environment_id)

    def time_entries(self):
        from apps.projects.models import TimeEntry
        return TimeEntry.objects.filter(stage__project__environment_id=self.environment_id)

    def stage_images(self):
        from apps.projects.models import StageImage
        return StageImage.objects.filter(stage__project__environment_id=self.environment_id)

    def stage_templates(self):
        from apps.projects.models import StageTemplate
        return StageTemplate.objects.filter(environment_id=self.environment_id)

    def kanban_columns(self):
        from apps.leads.models import KanbanColumn
        return KanbanColumn.objects.filter(environment_id=self.environment_id)

    def leads(self):
        from apps.leads.models import Lead
        return Lead.objects.filter(environment_id=self.environment_id)

    def proposals(self):
        from apps.leads.models import Proposal
        return Proposal.objects.filter(lead__environment_id=self.environment_id)

    def interactions(self):
        from apps.leads.models import Interaction
        return Interaction.objects.filter(lead__environment_id=self.environment_id)

    def appointments(self):
        from apps.leads.models import Appointment
        return Appointment.objects.filter(lead__environment_id=self.environment_id)


_workspaces = {}
_workspaces_lock = threading.Lock()


def get_workspace(environment_id):
    """
    Resolve an environment id into its (cached) Workspace

    Raises:
        Environment.DoesNotExist: If no environment has this id
    """
    environment = Environment.objects.get(pk=environment_id)

    with _workspaces_lock:
        workspace = _workspaces.get(environment.db_name)
        if workspace is None:
            workspace = Workspace(environment)
            _workspaces[environment.db_name] = workspace
            logger.debug(f"Workspace opened: {environment.db_name}")
        else:
            workspace.environment = environment

    return workspace


def evict_workspace(db_name):
    with _workspaces_lock:
        _workspaces.pop(db_name, None)


def clear_workspace_cache():
    with _workspaces_lock:
        _workspaces.clear()


# CURRENT ENVIRONMENT

def get_user_environment(request):
    """
    Get the environment for the current user:
    - Admin: from session (selected environment)
    - Regular users: from user.environment

    Returns:
        Environment object or None
    """
    if not request.user.is_authenticated:
        return None

    if request.user.is_admin():
        environment_id = request.session.get('selected_environment_id')
        if environment_id:
            try:
                return Environment.objects.get(pk=environment_id)
            except Environment.DoesNotExist:
                # Environment deleted - clear session
                request.session.pop('selected_environment_id', None)
                return None
        return None

    return request.user.environment


def get_request_workspace(request):
    environment = get_user_environment(request)
    if environment is None:
        return None
    return get_workspace(environment.pk)


def set_selected_environment(request, environment_id):
    """
    Set the selected environment in session (Admin only)

    Returns:
        True if successful, False otherwise
    """
    if not request.user.is_admin():
        return False

    try:
        environment = Environment.objects.get(pk=environment_id)
    except Environment.DoesNotExist:
        return False

    request.session['selected_environment_id'] = environment.id
    return True


def clear_selected_environment(request):
    """Clear selected environment from session"""
    request.session.pop('selected_environment_id', None)


# REQUEST PARSING

def parse_json_body(request):
    """
    Decode a JSON request body

    Raises:
        ValueError: If the body is not a JSON object
    """
    try:
        data = json.loads(request.body or b'{}')
    except json.JSONDecodeError as exc:
        raise ValueError('Invalid JSON format') from exc

    if not isinstance(data, dict):
        raise ValueError('Invalid JSON format')
    return data


def request_data(request):
    """Form-encoded POST data, or the decoded JSON body for JSON requests"""
    if request.content_type == 'application/json':
        return parse_json_body(request)
    return request.POST


def parse_date_range(request, default_days=None):
    """
    Read ?start=YYYY-MM-DD&end=YYYY-MM-DD into aware datetimes

    Defaults to the last DASHBOARD_DEFAULT_RANGE_DAYS days (inclusive).
    The end is the last instant of the end day.

    Raises:
        ValueError: If a date is malformed or start is after end
    """
    if default_days is None:
        default_days = settings.DASHBOARD_DEFAULT_RANGE_DAYS

    today = timezone.localdate()
    start_raw = request.GET.get('start')
    end_raw = request.GET.get('end')

    end_date = datetime.strptime(end_raw, '%Y-%m-%d').date() if end_raw else today
    start_date = datetime.strptime(start_raw, '%Y-%m-%d').date() if start_raw else end_date - timedelta(days=default_days - 1)

    if start_date > end_date:
        raise ValueError('Start date must be before end date')

    start = timezone.make_aware(datetime.combine(start_date, time.min))
    end = timezone.make_aware(datetime.combine(end_date, time.max))
    return start, end
