import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q

from sitebook.core.exceptions import Conflict, InvalidInput, NotFound
from sitebook.core.permissions import require_permission
from sitebook.core.responses import (
    success_response, created_response, validation_error_response, paginate_queryset,
)
from sitebook.core.tenancy import get_organization
from sitebook.core.utils import create_audit_log
from sitebook.finance import ledger, store, presenters
from sitebook.finance.models import Expense
from sitebook.projects.models import Project
from .models import BOQSection, BOQItem, BOQExpenseLink
from .serializers import BOQSectionSerializer, BOQItemSerializer, ExpenseLinkSerializer

logger = logging.getLogger('sitebook.boq')


def _get_item(organization, project, pk):
    item = BOQItem.objects.filter(organization=organization, project=project, pk=pk).first()
    if item is None:
        raise NotFound('BOQ item not found.')
    return item


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, require_permission('projects')])
def boq_item_list_create(request, project_id):
    """List a project's BOQ items (category, stage, section, search) or add one"""
    organization = get_organization(request)
    project = store.get_for_organization(Project, organization, project_id)
    context = {'organization': organization, 'project': project, 'request': request}

    if request.method == 'GET':
        queryset = (
            BOQItem.objects.filter(organization=organization, project=project)
            .select_related('section', 'stage', 'category')
            .prefetch_related('expenses')
        )
        for param, field in (('category', 'category_id'), ('stage', 'stage_id'), ('section', 'section_id')):
            value = request.query_params.get(param)
            if value:
                queryset = queryset.filter(**{field: value})
        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(Q(description__icontains=search) | Q(code__icontains=search))
        return paginate_queryset(request, queryset, BOQItemSerializer, context=context)
    else:
        serializer = BOQItemSerializer(data=request.data, context=context)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        item = serializer.save(organization=organization, project=project)
        create_audit_log(request, 'create', 'BOQItem', item.pk,
                         changes={'description': item.description, 'quoted': item.quoted_amount},
                         object_name=str(item), organization=organization)
        return created_response(BOQItemSerializer(item).data)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, require_permission('projects')])
def boq_item_detail(request, project_id, pk):
    """Retrieve, update or delete a BOQ item"""
    organization = get_organization(request)
    project = store.get_for_organization(Project, organization, project_id)
    item = _get_item(organization, project, pk)

    if request.method == 'GET':
        return success_response(BOQItemSerializer(item).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = BOQItemSerializer(
            item,
            data=request.data,
            partial=request.method == 'PATCH',
            context={'organization': organization, 'project': project, 'request': request},
        )
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        serializer.save()
        create_audit_log(request, 'update', 'BOQItem', item.pk,
                         changes={key: request.data[key] for key in request.data},
                         object_name=str(item), organization=organization)
        return success_response(serializer.data)
    else:  # DELETE
        create_audit_log(request, 'delete', 'BOQItem', item.pk, object_name=str(item), organization=organization)
        item.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, require_permission('projects')])
def boq_section_list_create(request, project_id):
    """List or create the BOQ sections of a project"""
    organization = get_organization(request)
    project = store.get_for_organization(Project, organization, project_id)

    if request.method == 'GET':
        sections = BOQSection.objects.filter(organization=organization, project=project)
        return success_response(BOQSectionSerializer(sections, many=True).data)
    else:
        serializer = BOQSectionSerializer(data=request.data, context={'project': project})
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        section = serializer.save(organization=organization, project=project)
        return created_response(BOQSectionSerializer(section).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, require_permission('projects', 'update')])
def boq_link_expense(request, project_id, pk):
    """Count an expense of the same project as actual spend of a BOQ item"""
    organization = get_organization(request)
    project = store.get_for_organization(Project, organization, project_id)
    item = _get_item(organization, project, pk)

    serializer = ExpenseLinkSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    expense_id = serializer.validated_data['expense']
    expense = Expense.objects.filter(organization=organization, pk=expense_id).first()
    if expense is None:
        raise NotFound('Expense not found.')
    if expense.project_id != project.pk:
        raise InvalidInput('Expense belongs to a different project.',
                           details={'expense': ['Expense belongs to a different project.']})
    if BOQExpenseLink.objects.filter(item=item, expense=expense).exists():
        raise Conflict('Expense is already linked to this BOQ item.', code='ALREADY_LINKED')

    BOQExpenseLink.objects.create(item=item, expense=expense)
    logger.info(f"Expense {expense.pk} linked to BOQ item {item.pk} (org {organization.pk})")
    return created_response(BOQItemSerializer(item).data)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, require_permission('projects', 'update')])
def boq_unlink_expense(request, project_id, pk, expense_id):
    """Remove an expense link from a BOQ item"""
    organization = get_organization(request)
    project = store.get_for_organization(Project, organization, project_id)
    item = _get_item(organization, project, pk)

    deleted, _ = BOQExpenseLink.objects.filter(item=item, expense_id=expense_id).delete()
    if not deleted:
        raise NotFound('Expense is not linked to this BOQ item.')
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, require_permission('projects', 'read')])
def boq_stats(request, project_id):
    """Quoted vs actual totals of a project's BOQ"""
    organization = get_organization(request)
    project = store.get_for_organization(Project, organization, project_id)

    items = list(
        BOQItem.objects.filter(organization=organization, project=project)
        .select_related('category')
        .prefetch_related('expenses')
    )
    actual_by_item = {item.pk: ledger.sum_expense_amounts(item.expenses.all()) for item in items}
    stats = ledger.compute_boq_stats(items, actual_by_item)

    breakdown = sorted(
        (
            {
                'category_id': entry['category_id'],
                'category_name': entry['category_name'],
                'quoted': presenters.money(entry['quoted']),
                'actual': presenters.money(entry['actual']),
                'count': entry['count'],
            }
            for entry in stats['category_breakdown'].values()
        ),
        key=lambda entry: entry['quoted'],
        reverse=True,
    )
    return success_response({
        'total_quoted': presenters.money(stats['total_quoted']),
        'total_actual': presenters.money(stats['total_actual']),
        'variance': presenters.money(stats['variance']),
        'variance_percent': presenters.percent(stats['variance_percent']),
        'budget_usage': presenters.percent(stats['budget_usage']),
        'item_count': stats['item_count'],
        'category_breakdown': breakdown,
    })
