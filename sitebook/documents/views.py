import logging
import mimetypes
import os

from django.conf import settings
from django.http import FileResponse
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from sitebook.core.exceptions import InvalidInput, NotFound
from sitebook.core.permissions import require_permission
from sitebook.core.responses import success_response, created_response, paginate_queryset
from sitebook.core.tenancy import get_organization
from sitebook.core.utils import create_audit_log
from sitebook.finance import store
from sitebook.projects.models import Project
from .models import Document
from .serializers import DocumentSerializer

logger = logging.getLogger('sitebook.documents')

ALLOWED_MIME_TYPES = {
    'image/jpeg',
    'image/png',
    'image/webp',
    'image/gif',
    'application/pdf',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'application/vnd.ms-excel',
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'application/vnd.openxmlformats-officedocument.presentationml.presentation',
}
GENERIC_MIME_TYPE = 'application/octet-stream'


def _mime_type(upload):
    """Declared content type, guessed from the name when the client sent none"""
    mime_type = (upload.content_type or '').split(';')[0].strip().lower()
    if not mime_type or mime_type == GENERIC_MIME_TYPE:
        mime_type = mimetypes.guess_type(upload.name)[0] or GENERIC_MIME_TYPE
    return mime_type


def _validate_upload(upload):
    if upload is None:
        raise InvalidInput('No file uploaded.', code='NO_FILE', details={'file': ['This field is required.']})
    max_size = settings.DOCUMENT_MAX_UPLOAD_SIZE
    if upload.size > max_size:
        raise InvalidInput(
            f'File exceeds the {max_size // (1024 * 1024)} MB limit.', code='FILE_TOO_LARGE',
            details={'file': [f'Size {upload.size} bytes is over {max_size} bytes.']},
        )
    mime_type = _mime_type(upload)
    if mime_type not in ALLOWED_MIME_TYPES:
        raise InvalidInput(
            f'File type {mime_type} is not allowed.', code='INVALID_FILE_TYPE',
            details={'file': ['Upload an image, PDF or Office document.']},
        )
    return mime_type


def _upload_project(request, organization):
    """Project from ?project= or the form body; must belong to the organization"""
    project_id = request.query_params.get('project') or request.data.get('project')
    if not project_id:
        raise InvalidInput('Project is required.', details={'project': ['This field is required.']})
    try:
        return store.get_for_organization(Project, organization, project_id)
    except NotFound:
        raise InvalidInput('Project not found in this organization.', code='INVALID_PROJECT',
                           details={'project': [f'Invalid project: {project_id}']})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, require_permission('documents')])
@parser_classes([MultiPartParser, FormParser])
def document_list_create(request):
    """List documents (optionally of one project, paginated) or upload one"""
    organization = get_organization(request)
    if request.method == 'GET':
        queryset = Document.objects.filter(organization=organization).select_related('project', 'uploaded_by')
        project_id = request.query_params.get('project')
        if project_id:
            queryset = queryset.filter(project=store.get_for_organization(Project, organization, project_id))
        return paginate_queryset(request, queryset, DocumentSerializer)

    project = _upload_project(request, organization)
    upload = request.FILES.get('file')
    mime_type = _validate_upload(upload)
    file_name = os.path.basename(upload.name)
    document = Document(
        organization=organization,
        project=project,
        file_name=file_name,
        file_type=os.path.splitext(file_name)[1].lstrip('.').lower(),
        mime_type=mime_type,
        size=upload.size,
        uploaded_by=request.user,
    )
    document.file.save(file_name, upload, save=False)
    document.save()
    create_audit_log(request, 'create', 'Document', document.pk,
                     changes={'project': project.pk, 'size': document.size},
                     object_name=document.file_name, organization=organization)
    logger.info(f"Document {document.pk} ({document.size} bytes) uploaded to project {project.pk} "
                f"by user {request.user.pk} (org {organization.pk})")
    return created_response(DocumentSerializer(document, context={'request': request}).data)


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated, require_permission('documents')])
def document_detail(request, pk):
    """Retrieve or delete a document. Deleting also removes the stored file"""
    organization = get_organization(request)
    document = store.get_for_organization(Document, organization, pk)

    if request.method == 'GET':
        return success_response(DocumentSerializer(document, context={'request': request}).data)
    create_audit_log(request, 'delete', 'Document', document.pk, object_name=document.file_name,
                     changes={'project': document.project_id}, organization=organization)
    document.delete()
    logger.info(f"Document {pk} deleted by user {request.user.pk} (org {organization.pk})")
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, require_permission('documents', 'read')])
def document_download(request, pk):
    """Stream the stored file as an attachment"""
    organization = get_organization(request)
    document = store.get_for_organization(Document, organization, pk)
    try:
        handle = document.file.open('rb')
    except FileNotFoundError:
        logger.error(f"Stored file of document {pk} is missing: {document.file.name}")
        raise NotFound('Stored file is missing.', code='FILE_MISSING')
    return FileResponse(handle, as_attachment=True, filename=document.file_name, content_type=document.mime_type)
