import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q

from sitebook.core.exceptions import InvalidInput
from sitebook.core.permissions import require_permission
from sitebook.core.responses import (
    success_response, created_response, validation_error_response, paginate_queryset,
)
from sitebook.core.tenancy import get_organization
from sitebook.core.utils import create_audit_log
from sitebook.finance import ledger, store, presenters
from .models import Project, Stage, Task
from .serializers import ProjectSerializer, StageSerializer, TaskSerializer, TaskStatusSerializer

logger = logging.getLogger('sitebook.projects')


def _choice_param(request, name, choices):
    value = request.query_params.get(name)
    if value and value not in dict(choices):
        raise InvalidInput(f'Unknown {name}: {value}', details={name: ['Invalid choice.']})
    return value


def _save_update(request, instance, serializer_class, organization, model_name):
    before = serializer_class(instance).data
    serializer = serializer_class(
        instance,
        data=request.data,
        partial=request.method == 'PATCH',
        context={'organization': organization, 'request': request},
    )
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    serializer.save()
    changes = {
        key: [before.get(key), value]
        for key, value in serializer.data.items()
        if key in request.data and before.get(key) != value
    }
    create_audit_log(request, 'update', model_name, instance.pk, changes=changes,
                     object_name=str(instance), organization=organization)
    return success_response(serializer.data)


# Project views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, require_permission('projects')])
def project_list_create(request):
    """List projects (search, status, client, paginated) or create a new project"""
    organization = get_organization(request)
    if request.method == 'GET':
        queryset = Project.objects.filter(organization=organization).select_related('client', 'project_type')
        search = request.query_params.get('search', None)
        project_status = _choice_param(request, 'status', Project.STATUS_CHOICES)
        client = request.query_params.get('client', None)
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(location__icontains=search))
        if project_status:
            queryset = queryset.filter(status=project_status)
        if client:
            queryset = queryset.filter(client_id=client)
        return paginate_queryset(request, queryset, ProjectSerializer)
    else:
        serializer = ProjectSerializer(data=request.data, context={'organization': organization, 'request': request})
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        project = serializer.save(organization=organization, created_by=request.user)
        create_audit_log(request, 'create', 'Project', project.pk, changes={'name': project.name},
                         object_name=project.name, organization=organization)
        logger.info(f"Project {project.pk} created by user {request.user.pk} (org {organization.pk})")
        return created_response(ProjectSerializer(project).data)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, require_permission('projects')])
def project_detail(request, pk):
    """Retrieve, update or delete a project"""
    organization = get_organization(request)
    project = store.get_for_organization(Project, organization, pk)

    if request.method == 'GET':
        return success_response(ProjectSerializer(project).data)
    elif request.method in ('PUT', 'PATCH'):
        old_status = project.status
        response = _save_update(request, project, ProjectSerializer, organization, 'Project')
        project.refresh_from_db()
        if project.status != old_status:
            create_audit_log(request, 'status_change', 'Project', project.pk,
                             changes={'status': [old_status, project.status]},
                             object_name=project.name, organization=organization)
        return response
    else:  # DELETE
        create_audit_log(request, 'delete', 'Project', project.pk, object_name=project.name,
                         organization=organization)
        project.delete()
        logger.info(f"Project {pk} deleted by user {request.user.pk} (org {organization.pk})")
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, require_permission('projects', 'read')])
def project_stats(request, pk):
    """Payment summary of a project with its budget position"""
    organization = get_organization(request)
    project = store.get_for_organization(Project, organization, pk)
    summary = store.project_payment_summary(organization, project)

    data = presenters.present_totals(summary)
    budget = project.budget
    data['budget'] = presenters.money(budget)
    data['remaining_budget'] = presenters.money(budget - summary['total_expenses'])
    data['budget_usage'] = presenters.percent(ledger.percentage(summary['total_expenses'], budget))
    data['stage_count'] = project.stages.count()
    return success_response(data)


# Stage views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, require_permission('stages')])
def stage_list_create(request):
    """List stages (optionally of one project) or create a new stage"""
    organization = get_organization(request)
    if request.method == 'GET':
        queryset = (
            Stage.objects.filter(organization=organization)
            .select_related('project')
            .prefetch_related('members')
        )
        project_id = request.query_params.get('project', None)
        stage_status = _choice_param(request, 'status', Stage.STATUS_CHOICES)
        if project_id:
            queryset = queryset.filter(project_id=project_id)
        if stage_status:
            queryset = queryset.filter(status=stage_status)
        return paginate_queryset(request, queryset, StageSerializer)
    else:
        serializer = StageSerializer(data=request.data, context={'organization': organization, 'request': request})
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        stage = serializer.save(organization=organization)
        create_audit_log(request, 'create', 'Stage', stage.pk, changes={'name': stage.name, 'project': stage.project_id},
                         object_name=stage.name, organization=organization)
        return created_response(StageSerializer(stage).data)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, require_permission('stages')])
def stage_detail(request, pk):
    """Retrieve, update or delete a stage"""
    organization = get_organization(request)
    stage = store.get_for_organization(Stage, organization, pk)

    if request.method == 'GET':
        return success_response(StageSerializer(stage).data)
    elif request.method in ('PUT', 'PATCH'):
        return _save_update(request, stage, StageSerializer, organization, 'Stage')
    else:  # DELETE
        create_audit_log(request, 'delete', 'Stage', stage.pk, object_name=stage.name, organization=organization)
        stage.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Task views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, require_permission('stages')])
def task_list_create(request):
    """List tasks (stage, project, status filters) or create a new task"""
    organization = get_organization(request)
    if request.method == 'GET':
        queryset = (
            Task.objects.filter(organization=organization)
            .select_related('stage')
            .prefetch_related('members')
        )
        stage_id = request.query_params.get('stage', None)
        project_id = request.query_params.get('project', None)
        task_status = _choice_param(request, 'status', Task.STATUS_CHOICES)
        if stage_id:
            queryset = queryset.filter(stage_id=stage_id)
        if project_id:
            queryset = queryset.filter(stage__project_id=project_id)
        if task_status:
            queryset = queryset.filter(status=task_status)
        return paginate_queryset(request, queryset, TaskSerializer)
    else:
        serializer = TaskSerializer(data=request.data, context={'organization': organization, 'request': request})
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        task = serializer.save(organization=organization)
        create_audit_log(request, 'create', 'Task', task.pk, changes={'name': task.name, 'stage': task.stage_id},
                         object_name=task.name, organization=organization)
        return created_response(TaskSerializer(task).data)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, require_permission('stages')])
def task_detail(request, pk):
    """Retrieve, update or delete a task"""
    organization = get_organization(request)
    task = store.get_for_organization(Task, organization, pk)

    if request.method == 'GET':
        return success_response(TaskSerializer(task).data)
    elif request.method in ('PUT', 'PATCH'):
        return _save_update(request, task, TaskSerializer, organization, 'Task')
    else:  # DELETE
        create_audit_log(request, 'delete', 'Task', task.pk, object_name=task.name, organization=organization)
        task.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, require_permission('stages', 'update')])
def task_status(request, pk):
    """Move a task along its status graph"""
    organization = get_organization(request)
    task = store.get_for_organization(Task, organization, pk)

    serializer = TaskStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    old_status = task.status
    try:
        task.transition_to(serializer.validated_data['status'])
    except ValueError as e:
        raise InvalidInput(str(e), code='INVALID_STATUS_TRANSITION',
                           details={'status': [str(e)]})

    if task.status != old_status:
        task.save(update_fields=['status', 'updated_at'])
        create_audit_log(request, 'status_change', 'Task', task.pk,
                         changes={'status': [old_status, task.status]},
                         object_name=task.name, organization=organization)
    return success_response(TaskSerializer(task).data)
