"""
Dashboard analytics

Every function takes a Workspace (tenant-scoped querysets) and returns plain
dicts/lists ready for JsonResponse.
"""
from collections import Counter, defaultdict
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal

from django.db.models import Count, Sum
from django.utils import timezone

from apps.core.formatting import round_money, seconds_to_hours
from apps.leads.models import KanbanColumn, Proposal
from apps.projects.models import STATUS_COMPLETED, STATUS_IN_PROGRESS, Project

ZERO = Decimal('0')


def _month_start(value):
    return value.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _add_months(value, months):
    month_index = value.month - 1 + months
    return value.replace(year=value.year + month_index // 12, month=month_index % 12 + 1, day=1)


def _whole_days(delta):
    """Whole days of a timedelta, truncated toward zero"""
    return int(delta / timedelta(days=1))


def _round_half_up(value):
    return int(Decimal(value).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def _entry_revenue(entry):
    project = entry.stage.project
    if not project.is_hourly():
        return ZERO
    return seconds_to_hours(entry.duration) * (project.hourly_rate or ZERO)


def _entries_in_range(workspace, start, end):
    return workspace.time_entries().filter(start_time__range=(start, end)).select_related('stage__project')


# KEY INDICATORS
def key_indicators(workspace, start, end, now=None):
    now = timezone.localtime(now or timezone.now())
    month_start = _month_start(now)
    next_month = _add_months(month_start, 1)

    projects = workspace.projects()

    completed_this_month = sum(
        1 for project in projects.filter(status=STATUS_COMPLETED)
        if month_start <= (project.completed_at or project.created_at) < next_month
    )

    entries = list(_entries_in_range(workspace, start, end))
    seconds_worked = sum(entry.duration for entry in entries)
    hourly_revenue = sum((_entry_revenue(entry) for entry in entries), ZERO)

    fixed_forecast = projects.filter(
        billing_type=Project.BILLING_FIXED
    ).exclude(status=STATUS_COMPLETED).aggregate(total=Sum('total_value'))['total'] or ZERO

    proposals = workspace.proposals()
    accepted_values = list(proposals.filter(status=Proposal.STATUS_ACCEPTED).values_list('total_value', flat=True))
    pending_count = proposals.filter(status=Proposal.STATUS_SENT).count()
    decided_count = pending_count + len(accepted_values)

    avg_accepted = sum(accepted_values, ZERO) / len(accepted_values) if accepted_values else ZERO
    conversion_rate = round(len(accepted_values) / decided_count * 100, 1) if decided_count else None

    return {
        'projects_in_progress': projects.filter(status=STATUS_IN_PROGRESS).count(),
        'projects_completed_this_month': completed_this_month,
        'hours_worked': round(float(seconds_to_hours(seconds_worked)), 2),
        'fixed_revenue_forecast': round_money(fixed_forecast),
        'hourly_revenue_accumulated': round_money(hourly_revenue),
        'avg_accepted_proposal_value': round_money(avg_accepted),
        'proposals_pending': pending_count,
        'proposal_conversion_rate': conversion_rate,
    }


# FINANCIAL ANALYSIS
def financial_analysis(workspace, start, end):
    """
    Hours, cost and margin per project with activity in the range

    A project is listed when it was created in the range or has time
    logged in the range.
    """
    cost_rate = workspace.settings.fixed_project_cost_rate

    seconds_by_project = defaultdict(int)
    for entry in workspace.time_entries().filter(start_time__range=(start, end)).values('stage__project_id', 'duration'):
        seconds_by_project[entry['stage__project_id']] += entry['duration']

    rows = []
    for project in workspace.projects().order_by('-created_at'):
        created_in_range = start <= project.created_at <= end
        seconds = seconds_by_project.get(project.id, 0)
        if not created_in_range and not seconds:
            continue

        hours = seconds_to_hours(seconds)
        if project.is_hourly():
            cost = hours * (project.hourly_rate or ZERO)
            revenue = cost
            margin = None
        else:
            cost = hours * cost_rate
            revenue = project.total_value or ZERO
            margin = revenue - cost

        rows.append({
            'project_id': project.id,
            'client_name': project.client_name,
            'billing_type': project.billing_type,
            'status': project.status,
            'hours_logged': round(float(hours), 2),
            'revenue': round_money(revenue),
            'cost_realized': round_money(cost),
            'margin_estimated': round_money(margin),
            'deficit': margin is not None and margin < 0,
        })

    return rows


# CRM ANALYTICS
def crm_analytics(workspace, start, end, top=5):
    proposals = workspace.proposals().filter(status=Proposal.STATUS_ACCEPTED, created_at__range=(start, end)).select_related('lead')

    conversion_days = []
    value_by_client = defaultdict(lambda: ZERO)
    for proposal in proposals:
        if proposal.sent_at:
            closed_at = proposal.accepted_at or proposal.created_at
            conversion_days.append(_whole_days(closed_at - proposal.sent_at))
        value_by_client[proposal.lead.name] += proposal.total_value

    average_conversion = (
        _round_half_up(Decimal(sum(conversion_days)) / len(conversion_days)) if conversion_days else None
    )

    top_clients = sorted(value_by_client.items(), key=lambda item: item[1], reverse=True)[:top]

    lost_reasons = Counter(
        reason.strip() or 'Not informed'
        for reason in workspace.leads().filter(column__key=KanbanColumn.KEY_LOST).values_list('lost_reason', flat=True)
    )

    recent_interactions = workspace.interactions().select_related('lead', 'user').order_by('-date', '-id')[:top]

    return {
        'average_conversion_days': average_conversion,
        'top_clients_by_value': [
            {'name': name, 'total_value': round_money(total)} for name, total in top_clients
        ],
        'top_lost_reasons': [
            {'reason': reason, 'count': count} for reason, count in lost_reasons.most_common(top)
        ],
        'recent_interactions': [interaction.to_dict() for interaction in recent_interactions],
    }


# CHARTS
def revenue_chart(workspace, start=None, end=None, now=None):
    """
    Monthly revenue points

    fixed: total value of fixed projects created in the month
    hourly: hours x rate of time entries started in the month
    Defaults to the last 12 months.
    """
    now = timezone.localtime(now or timezone.now())
    if start is None:
        start = _add_months(_month_start(now), -11)
    if end is None:
        end = _add_months(_month_start(now), 1) - timedelta(microseconds=1)

    start = _month_start(timezone.localtime(start))
    end = timezone.localtime(end)

    fixed_by_month = defaultdict(lambda: ZERO)
    for created_at, total_value in workspace.projects().filter(
        billing_type=Project.BILLING_FIXED, created_at__range=(start, end)
    ).values_list('created_at', 'total_value'):
        fixed_by_month[_month_start(timezone.localtime(created_at))] += total_value or ZERO

    hourly_by_month = defaultdict(lambda: ZERO)
    for entry in _entries_in_range(workspace, start, end):
        hourly_by_month[_month_start(timezone.localtime(entry.start_time))] += _entry_revenue(entry)

    points = []
    month = start
    while month <= end:
        points.append({
            'month': month.strftime('%b/%y'),
            'fixed_revenue': round_money(fixed_by_month.get(month, ZERO)),
            'hourly_revenue': round_money(hourly_by_month.get(month, ZERO)),
        })
        month = _add_months(month, 1)

    return points


def sales_pipeline(workspace, start, end):
    counts = dict(
        workspace.leads().filter(created_at__range=(start, end))
        .order_by().values_list('column_id').annotate(total=Count('id'))
    )
    return [
        {'key': column.key, 'label': column.label, 'count': counts.get(column.id, 0)}
        for column in workspace.kanban_columns().order_by('order', 'id')
    ]


def project_type_distribution(workspace, start, end):
    counts = dict(
        workspace.projects().filter(created_at__range=(start, end))
        .order_by().values_list('project_type').annotate(total=Count('id'))
    )
    return [
        {'type': value, 'label': label, 'count': counts.get(value, 0)}
        for value, label in Project.TYPE_CHOICES
    ]


