"""
Stored files follow their rows: deleting a document, directly or through its
project, removes the file from storage
"""
import logging

from django.db.models.signals import post_delete

from .models import Document

logger = logging.getLogger(__name__)


def delete_stored_file(sender, instance, **kwargs):
    if not instance.file:
        return
    name = instance.file.name
    instance.file.delete(save=False)
    logger.info(f"Removed stored file {name} of document {instance.pk}")


def connect_signals():
    post_delete.connect(delete_stored_file, sender=Document, dispatch_uid='document_delete_file')
