"""
Cache invalidation signals
Drop an organization's cached overview whenever one of its rows changes
"""
import logging

from django.db import transaction
from django.db.models.signals import post_save, post_delete

from sitebook.core.cache_utils import invalidate_organization_cache
from sitebook.finance.models import Expense, Payment, MemberAdvance
from sitebook.parties.models import Party
from sitebook.projects.models import Project, Stage, Task

logger = logging.getLogger(__name__)

OVERVIEW_SOURCES = (Expense, Payment, MemberAdvance, Project, Stage, Task, Party)


def invalidate_overview_cache(sender, instance, **kwargs):
    """Invalidate the overview of the instance's organization after commit"""
    organization_id = getattr(instance, 'organization_id', None)
    if organization_id is None:
        return

    # Running after commit keeps a concurrent request from caching stale rows
    def invalidate_after_commit():
        invalidate_organization_cache(organization_id)

    transaction.on_commit(invalidate_after_commit)
    logger.debug(f"{sender.__name__} {instance.pk} changed, overview of organization {organization_id} invalidated")


def connect_signals():
    for model in OVERVIEW_SOURCES:
        post_save.connect(invalidate_overview_cache, sender=model, dispatch_uid=f'overview_save_{model.__name__}')
        post_delete.connect(invalidate_overview_cache, sender=model, dispatch_uid=f'overview_delete_{model.__name__}')
