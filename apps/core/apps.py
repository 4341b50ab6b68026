from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.core'
    verbose_name = _('Environments')

    def ready(self):
        # Register signal handlers (environment provisioning)
        import apps.core.signals
