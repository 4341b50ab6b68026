import logging

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import Environment
from .utils import evict_workspace

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Environment)
def provision_environment(sender, instance, created, **kwargs):
    """New environments start with their settings row and the default pipeline"""
    if not created or kwargs.get('raw'):
        return

    from apps.leads.models import KanbanColumn

    instance.get_settings()
    KanbanColumn.ensure_defaults(instance)
    logger.info(f"Environment provisioned: {instance.name} ({instance.db_name})")


@receiver(post_delete, sender=Environment)
def release_environment_workspace(sender, instance, **kwargs):
    evict_workspace(instance.db_name)
    logger.info(f"Environment deleted: {instance.name} ({instance.db_name})")
