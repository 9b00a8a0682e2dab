import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from sitebook.core.models import User
from sitebook.core.permissions import require_permission
from sitebook.core.responses import (
    success_response, created_response, validation_error_response, paginate_queryset,
)
from sitebook.core.tenancy import get_organization
from sitebook.core.utils import create_audit_log
from sitebook.core.exceptions import NotFound
from sitebook.projects.models import Project
from . import ledger, store, presenters
from .filters import ExpenseFilter, PaymentFilter, MemberAdvanceFilter, filter_or_raise
from .models import Expense, Payment, MemberAdvance
from .serializers import ExpenseSerializer, PaymentSerializer, MemberAdvanceSerializer

logger = logging.getLogger('sitebook.finance')


def _update(request, instance, serializer_class, organization, model_name):
    """Shared PUT/PATCH handling. PATCH leaves omitted fields untouched, explicit null clears"""
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
    create_audit_log(request, 'update', model_name, instance.pk, changes=changes, organization=organization)
    return success_response(serializer.data)


# Expense views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, require_permission('expenses')])
def expense_list_create(request):
    """List expenses (filterable, paginated) or record a new one"""
    organization = get_organization(request)
    if request.method == 'GET':
        expenses = filter_or_raise(ExpenseFilter, request, store.expense_queryset(organization))
        return paginate_queryset(request, expenses, ExpenseSerializer)
    else:
        serializer = ExpenseSerializer(data=request.data, context={'organization': organization, 'request': request})
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        data = dict(serializer.validated_data)
        paid_amount = data.pop('paid_amount', None)
        reference_number = data.pop('reference_number', None)
        expense, payment = store.create_expense(
            organization,
            data,
            paid_amount=paid_amount,
            payment_mode=data.get('payment_mode'),
            recorded_by=request.user,
            reference_number=reference_number,
        )
        create_audit_log(request, 'create', 'Expense', expense.pk,
                         changes={'amount': expense.amount, 'paid_amount': paid_amount},
                         object_name=str(expense), organization=organization)
        response_data = ExpenseSerializer(expense).data
        response_data['payment_id'] = payment.pk if payment else None
        return created_response(response_data)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, require_permission('expenses')])
def expense_detail(request, pk):
    """Retrieve, update or delete an expense"""
    organization = get_organization(request)
    expense = store.get_for_organization(Expense, organization, pk)

    if request.method == 'GET':
        data = ExpenseSerializer(expense).data
        data['amount_unpaid'] = presenters.money(store.expense_unpaid_amount(organization, expense))
        return success_response(data)
    elif request.method in ('PUT', 'PATCH'):
        old_status = expense.status
        response = _update(request, expense, ExpenseSerializer, organization, 'Expense')
        expense.refresh_from_db()
        if expense.status != old_status:
            create_audit_log(request, 'status_change', 'Expense', expense.pk,
                             changes={'status': [old_status, expense.status]}, organization=organization)
        return response
    else:  # DELETE
        create_audit_log(request, 'delete', 'Expense', expense.pk,
                         changes={'amount': expense.amount}, object_name=str(expense), organization=organization)
        expense.delete()
        logger.info(f"Expense {pk} deleted by user {request.user.pk} (org {organization.pk})")
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, require_permission('expenses', 'read')])
def expenses_by_category(request):
    """Expense totals grouped by expense category"""
    organization = get_organization(request)
    expenses = filter_or_raise(ExpenseFilter, request, store.expense_queryset(organization))
    groups = ledger.compute_expenses_by_category(expenses)
    return success_response(presenters.present_expenses_by_category(groups))


# Payment views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, require_permission('payments')])
def payment_list_create(request):
    """List payments (filterable, paginated) or record a new one"""
    organization = get_organization(request)
    if request.method == 'GET':
        payments = filter_or_raise(PaymentFilter, request, store.payment_queryset(organization))
        return paginate_queryset(request, payments, PaymentSerializer)
    else:
        serializer = PaymentSerializer(data=request.data, context={'organization': organization, 'request': request})
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        payment = serializer.save(organization=organization, recorded_by=request.user)
        create_audit_log(request, 'payment_add', 'Payment', payment.pk,
                         changes={'type': payment.type, 'amount': payment.amount, 'expense': payment.expense_id},
                         object_name=str(payment), organization=organization)
        return created_response(PaymentSerializer(payment).data)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, require_permission('payments')])
def payment_detail(request, pk):
    """Retrieve, update or delete a payment"""
    organization = get_organization(request)
    payment = store.get_for_organization(Payment, organization, pk)

    if request.method == 'GET':
        return success_response(PaymentSerializer(payment).data)
    elif request.method in ('PUT', 'PATCH'):
        return _update(request, payment, PaymentSerializer, organization, 'Payment')
    else:  # DELETE
        create_audit_log(request, 'delete', 'Payment', payment.pk,
                         changes={'type': payment.type, 'amount': payment.amount},
                         object_name=str(payment), organization=organization)
        payment.delete()
        logger.info(f"Payment {pk} deleted by user {request.user.pk} (org {organization.pk})")
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, require_permission('payments', 'read')])
def payment_summary(request):
    """Totals received and paid, for the same filters as the payment list"""
    organization = get_organization(request)
    payments = filter_or_raise(PaymentFilter, request, store.payment_queryset(organization))
    return success_response(presenters.present_totals(ledger.compute_payment_totals(payments)))


# Member advance views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, require_permission('payments')])
def member_advance_list_create(request):
    """List member advances or give a new one"""
    organization = get_organization(request)
    if request.method == 'GET':
        advances = filter_or_raise(MemberAdvanceFilter, request, store.advance_queryset(organization))
        return paginate_queryset(request, advances, MemberAdvanceSerializer)
    else:
        serializer = MemberAdvanceSerializer(
            data=request.data, context={'organization': organization, 'request': request}
        )
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        advance = serializer.save(organization=organization, recorded_by=request.user)
        create_audit_log(request, 'create', 'MemberAdvance', advance.pk,
                         changes={'member': advance.member_id, 'amount': advance.amount},
                         organization=organization)
        return created_response(MemberAdvanceSerializer(advance).data)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, require_permission('payments')])
def member_advance_detail(request, pk):
    """Retrieve, update or delete a member advance"""
    organization = get_organization(request)
    advance = store.get_for_organization(MemberAdvance, organization, pk, label='Member advance')

    if request.method == 'GET':
        data = MemberAdvanceSerializer(advance).data
        data['spent'] = presenters.money(ledger.compute_member_spent(advance.expenses.all()))
        return success_response(data)
    elif request.method in ('PUT', 'PATCH'):
        return _update(request, advance, MemberAdvanceSerializer, organization, 'MemberAdvance')
    else:  # DELETE
        create_audit_log(request, 'delete', 'MemberAdvance', advance.pk,
                         changes={'amount': advance.amount}, organization=organization)
        advance.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


def _get_member(organization, member_id):
    member = User.objects.filter(pk=member_id, memberships__organization=organization).first()
    if member is None:
        raise NotFound('Member not found.')
    return member


@api_view(['GET'])
@permission_classes([IsAuthenticated, require_permission('payments', 'read')])
def member_advance_summary(request, project_id, member_id):
    """Advanced, spent and balance for one member on one project"""
    organization = get_organization(request)
    project = store.get_for_organization(Project, organization, project_id)
    member = _get_member(organization, member_id)
    summary = store.member_advance_summary(organization, project, member)
    return success_response(presenters.present_member_summary(summary, member=member, project=project))


@api_view(['GET'])
@permission_classes([IsAuthenticated, require_permission('payments', 'read')])
def project_member_advance_summaries(request, project_id):
    """Advance summary of every member on a project"""
    organization = get_organization(request)
    project = store.get_for_organization(Project, organization, project_id)
    rows = store.project_member_summaries(organization, project)
    return success_response([
        presenters.present_member_summary(row, member=row['member']) for row in rows
    ])


@api_view(['GET'])
@permission_classes([IsAuthenticated, require_permission('payments', 'read')])
def member_advance_balances(request, member_id):
    """Advance balances of one member across projects"""
    organization = get_organization(request)
    member = _get_member(organization, member_id)
    rows, total_balance = store.member_balances(organization, member)
    return success_response({
        'member': {'id': member.pk, 'name': member.get_display_name()},
        'projects': [presenters.present_member_summary(row, project=row['project']) for row in rows],
        'total_balance': presenters.money(total_balance),
    })
