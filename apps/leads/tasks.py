import logging
from datetime import timedelta

from celery import shared_task
from django.utils import timezone

from .models import Appointment, Interaction

logger = logging.getLogger(__name__)


@shared_task
def send_appointment_reminders():
    """
    Periodic task to log reminders for upcoming appointments
    Scheduled in config/celery.py

    Every pending appointment in the next 24 hours gets one reminder note
    on its lead.
    """
    now = timezone.now()
    appointments = Appointment.objects.filter(
        status='pending',
        reminder_sent=False,
        date_time__gte=now,
        date_time__lte=now + timedelta(hours=24),
        lead__environment__is_active=True,
    ).select_related('lead')

    reminders_sent = 0

    for appointment in appointments:
        local_time = timezone.localtime(appointment.date_time)
        Interaction.objects.create(
            lead=appointment.lead,
            user=None,
            interaction_type='note',
            details=f'Reminder: appointment on {local_time:%d/%m/%Y %H:%M} - {appointment.description}',
        )
        appointment.reminder_sent = True
        appointment.save(update_fields=['reminder_sent'])
        reminders_sent += 1

    if reminders_sent:
        logger.info(f"{reminders_sent} appointment reminder(s) logged")

    return f'{reminders_sent} appointment reminders sent.'
