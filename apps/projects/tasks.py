import logging

from celery import shared_task
from django.utils import timezone

from .models import STATUS_COMPLETED, STATUS_DELAYED, Stage

logger = logging.getLogger(__name__)


@shared_task
def flag_overdue_stages():
    """
    Periodic task: mark overdue stages as delayed
    Scheduled in config/celery.py
    """
    today = timezone.localdate()
    overdue = Stage.objects.filter(
        deadline__lt=today,
        project__environment__is_active=True,
    ).exclude(status__in=[STATUS_COMPLETED, STATUS_DELAYED])

    flagged = overdue.update(status=STATUS_DELAYED)
    if flagged:
        logger.info(f"{flagged} overdue stage(s) flagged as delayed")

    return f'{flagged} overdue stages flagged.'
