import os
import uuid

from django.db import models


def document_upload_to(instance, filename):
    """documents/<organization>/<project>/<random>_<name>"""
    safe_name = os.path.basename(filename)
    return f"documents/{instance.organization_id}/{instance.project_id}/{uuid.uuid4().hex}_{safe_name}"


class Document(models.Model):
    """A file attached to a project: drawings, bills, photos of the site"""
    organization = models.ForeignKey('core.Organization', on_delete=models.CASCADE, related_name='documents')
    project = models.ForeignKey('projects.Project', on_delete=models.CASCADE, related_name='documents')
    file = models.FileField(upload_to=document_upload_to, max_length=500)
    file_name = models.CharField(max_length=255)
    file_type = models.CharField(max_length=20, blank=True)  # extension
    mime_type = models.CharField(max_length=100)
    size = models.PositiveBigIntegerField()
    uploaded_by = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='uploaded_documents')
    uploaded_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.file_name

    class Meta:
        db_table = 'documents'
        ordering = ['-uploaded_at', '-id']
        indexes = [
            models.Index(fields=['organization', 'project'], name='document_org_project_idx'),
        ]
