# Celery is a distributed task queue for running background jobs
#
# - Flag overdue project stages
# - Send appointment reminders for CRM leads
#
# Start worker: celery -A config worker -l info
# Start beat: celery -A config beat -l info
# ==============================================================================

import os
from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module for Celery
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('geniuserp')

# All settings prefixed with 'CELERY_' will be used
app.config_from_object('django.conf:settings', namespace='CELERY')

# Looks for tasks.py file in each app
app.autodiscover_tasks()


# CELERY BEAT SCHEDULE (Periodic Tasks)
app.conf.beat_schedule = {
    'flag-overdue-stages': {
        'task': 'apps.projects.tasks.flag_overdue_stages',
        'schedule': crontab(minute=0),  # Every hour at minute 0
    },
    'send-appointment-reminders': {
        'task': 'apps.leads.tasks.send_appointment_reminders',
        'schedule': crontab(minute='*/15'),  # Every 15 minutes
    },
}


@app.task(bind=True, ignore_result=True)
def debug_task(self):
    """
    Debug task to test Celery is working

    Usage:
        from config.celery import debug_task
        debug_task.delay()
    """
    print(f'Request: {self.request!r}')
