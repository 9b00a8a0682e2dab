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
from sitebook.finance import store, presenters
from sitebook.finance.models import Payment
from sitebook.finance.serializers import ExpenseSerializer, PaymentSerializer, UnpaidExpenseSerializer
from sitebook.projects.models import Project
from .models import Party
from .serializers import PartySerializer

logger = logging.getLogger('sitebook.parties')

TRANSACTION_TYPES = ('payments', 'expenses')


def _project_filter(request, organization):
    """Optional ?project= narrowing for party summaries"""
    project_id = request.query_params.get('project')
    if not project_id:
        return None
    return store.get_for_organization(Project, organization, project_id)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, require_permission('parties')])
def party_list_create(request):
    """List parties (search, type, paginated) or create a new party"""
    organization = get_organization(request)
    if request.method == 'GET':
        queryset = Party.objects.filter(organization=organization).order_by('name')
        search = request.query_params.get('search', None)
        party_type = request.query_params.get('type', None)
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(phone__icontains=search) |
                Q(location__icontains=search)
            )
        if party_type:
            if party_type not in dict(Party.TYPE_CHOICES):
                raise InvalidInput(f'Unknown party type: {party_type}', details={'type': ['Invalid choice.']})
            queryset = queryset.filter(type=party_type)
        return paginate_queryset(request, queryset, PartySerializer)
    else:
        serializer = PartySerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        party = serializer.save(organization=organization)
        create_audit_log(request, 'create', 'Party', party.pk, changes=serializer.data,
                         object_name=party.name, organization=organization)
        return created_response(PartySerializer(party).data)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, require_permission('parties')])
def party_detail(request, pk):
    """Retrieve, update or delete a party"""
    organization = get_organization(request)
    party = store.get_for_organization(Party, organization, pk)

    if request.method == 'GET':
        return success_response(PartySerializer(party).data)
    elif request.method in ('PUT', 'PATCH'):
        before = PartySerializer(party).data
        serializer = PartySerializer(party, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        serializer.save()
        changes = {
            key: [before.get(key), value]
            for key, value in serializer.data.items()
            if key in request.data and before.get(key) != value
        }
        create_audit_log(request, 'update', 'Party', party.pk, changes=changes,
                         object_name=party.name, organization=organization)
        return success_response(serializer.data)
    else:  # DELETE
        # Expenses protect their party; the handler turns that into a 409
        create_audit_log(request, 'delete', 'Party', party.pk, object_name=party.name,
                         changes={'type': party.type}, organization=organization)
        party.delete()
        logger.info(f"Party {pk} deleted by user {request.user.pk} (org {organization.pk})")
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, require_permission('parties', 'read')])
def party_stats(request, pk):
    """Expenses, OUT payments and balance of one party"""
    organization = get_organization(request)
    party = store.get_for_organization(Party, organization, pk)
    stats = store.party_stats(organization, party, project=_project_filter(request, organization))
    data = presenters.present_party_stats(stats)
    data['party'] = PartySerializer(party).data
    return success_response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, require_permission('parties', 'read')])
def party_summary(request):
    """Credits summary of the organization grouped by party type"""
    organization = get_organization(request)
    return success_response(presenters.present_credits_summary(store.credits_summary(organization)))


@api_view(['GET'])
@permission_classes([IsAuthenticated, require_permission('parties', 'read')])
def party_unpaid_expenses(request, pk):
    """Expenses of a party that still have an unpaid amount"""
    organization = get_organization(request)
    party = store.get_for_organization(Party, organization, pk)
    rows = store.party_unpaid_expenses(organization, party, project=_project_filter(request, organization))
    return success_response(UnpaidExpenseSerializer(rows, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, require_permission('parties', 'read')])
def party_projects(request, pk):
    """Per project credit position of a party"""
    organization = get_organization(request)
    party = store.get_for_organization(Party, organization, pk)
    return success_response(presenters.present_party_projects(store.party_projects(organization, party)))


@api_view(['GET'])
@permission_classes([IsAuthenticated, require_permission('parties', 'read')])
def party_transactions(request, pk):
    """Paginated payments or expenses of a party (?type=payments|expenses)"""
    organization = get_organization(request)
    party = store.get_for_organization(Party, organization, pk)
    transaction_type = request.query_params.get('type', 'payments')
    if transaction_type not in TRANSACTION_TYPES:
        raise InvalidInput(
            f'type must be one of: {", ".join(TRANSACTION_TYPES)}.',
            details={'type': [f'Invalid value: {transaction_type}']},
        )
    project = _project_filter(request, organization)
    if transaction_type == 'expenses':
        queryset = store.fetch_expenses(organization, party=party, project=project)
        return paginate_queryset(request, queryset, ExpenseSerializer)
    queryset = store.fetch_payments(organization, party=party, project=project, payment_type=Payment.OUT)
    return paginate_queryset(request, queryset, PaymentSerializer)
