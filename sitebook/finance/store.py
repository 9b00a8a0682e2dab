"""
Transaction store: organization-scoped access to expense, payment and advance rows

Every function takes the acting Organization as its first argument and never
reads it from anywhere else. Optional filters are ANDed; a filter left as None
is not applied. Summary helpers fetch rows here and hand them to
sitebook.finance.ledger for the arithmetic.
"""
import logging
from collections import defaultdict

from django.db import transaction

from sitebook.core.exceptions import InvalidInput, NotFound
from sitebook.parties.models import Party
from . import ledger
from .models import Expense, Payment, MemberAdvance

logger = logging.getLogger(__name__)


def _require_organization(organization):
    if organization is None:
        raise ValueError("organization is required for every store query")


def _pk(value):
    """Accept a model instance or a primary key"""
    return getattr(value, 'pk', value)


def check_date_range(date_from, date_to):
    if date_from and date_to and date_to < date_from:
        raise InvalidInput(
            'date_to must not be earlier than date_from.',
            details={'date_to': ['Must not be earlier than date_from.']},
        )


def get_for_organization(model, organization, pk, label=None):
    """Fetch one row of `model` belonging to `organization` or raise NotFound"""
    _require_organization(organization)
    label = label or model._meta.verbose_name.title()
    try:
        pk = int(pk)
    except (TypeError, ValueError):
        raise NotFound(f'{label} not found.')
    instance = model.objects.filter(organization=organization, pk=pk).first()
    if instance is None:
        raise NotFound(f'{label} not found.')
    return instance


# Row fetches

def expense_queryset(organization):
    _require_organization(organization)
    return (
        Expense.objects
        .filter(organization=organization)
        .select_related('project', 'party', 'stage', 'category', 'member_advance')
    )


def fetch_expenses(organization, project=None, party=None, stage=None, date_from=None,
                   date_to=None, status=None, category=None, member_advance=None):
    check_date_range(date_from, date_to)
    expenses = expense_queryset(organization)
    if project is not None:
        expenses = expenses.filter(project_id=_pk(project))
    if party is not None:
        expenses = expenses.filter(party_id=_pk(party))
    if stage is not None:
        expenses = expenses.filter(stage_id=_pk(stage))
    if category is not None:
        expenses = expenses.filter(category_id=_pk(category))
    if member_advance is not None:
        expenses = expenses.filter(member_advance_id=_pk(member_advance))
    if status:
        expenses = expenses.filter(status=status)
    if date_from:
        expenses = expenses.filter(expense_date__gte=date_from)
    if date_to:
        expenses = expenses.filter(expense_date__lte=date_to)
    return expenses


def payment_queryset(organization):
    _require_organization(organization)
    return (
        Payment.objects
        .filter(organization=organization)
        .select_related('project', 'party', 'expense')
    )


def fetch_payments(organization, project=None, party=None, expense=None, payment_type=None,
                   date_from=None, date_to=None):
    check_date_range(date_from, date_to)
    payments = payment_queryset(organization)
    if project is not None:
        payments = payments.filter(project_id=_pk(project))
    if party is not None:
        payments = payments.filter(party_id=_pk(party))
    if expense is not None:
        payments = payments.filter(expense_id=_pk(expense))
    if payment_type:
        payments = payments.filter(type=payment_type)
    if date_from:
        payments = payments.filter(payment_date__gte=date_from)
    if date_to:
        payments = payments.filter(payment_date__lte=date_to)
    return payments


def advance_queryset(organization):
    _require_organization(organization)
    return (
        MemberAdvance.objects
        .filter(organization=organization)
        .select_related('project', 'member')
    )


def fetch_member_advances(organization, project=None, member=None, date_from=None, date_to=None):
    check_date_range(date_from, date_to)
    advances = advance_queryset(organization)
    if project is not None:
        advances = advances.filter(project_id=_pk(project))
    if member is not None:
        advances = advances.filter(member_id=_pk(member))
    if date_from:
        advances = advances.filter(advance_date__gte=date_from)
    if date_to:
        advances = advances.filter(advance_date__lte=date_to)
    return advances


# Writes

def create_expense(organization, data, paid_amount=None, payment_mode=None, recorded_by=None,
                   reference_number=None):
    """
    Create an expense and, when paid_amount > 0, its OUT payment in one transaction.

    Returns (expense, payment or None).
    """
    _require_organization(organization)
    paid_amount = ledger.to_decimal(paid_amount)

    with transaction.atomic():
        expense = Expense.objects.create(organization=organization, recorded_by=recorded_by, **data)
        payment = None
        if paid_amount > ledger.ZERO:
            if not payment_mode:
                raise InvalidInput(
                    'payment_mode is required when paid_amount is given.',
                    details={'payment_mode': ['This field is required when paid_amount is given.']},
                )
            if paid_amount > expense.amount:
                raise InvalidInput(
                    'paid_amount cannot exceed the expense amount.',
                    details={'paid_amount': [f'Must not exceed {expense.amount}.']},
                )
            payment = Payment.objects.create(
                organization=organization,
                project=expense.project,
                party=expense.party,
                expense=expense,
                recorded_by=recorded_by,
                type=Payment.OUT,
                payment_mode=payment_mode,
                amount=paid_amount,
                payment_date=expense.expense_date,
                reference_number=reference_number,
            )

    if payment is not None:
        logger.info(f"Expense {expense.pk} created with payment {payment.pk} of {paid_amount} (org {organization.pk})")
    else:
        logger.info(f"Expense {expense.pk} created (org {organization.pk})")
    return expense, payment


def expense_unpaid_amount(organization, expense, exclude_payment=None):
    """Amount still owed on one expense, ignoring `exclude_payment` when editing it"""
    payments = fetch_payments(organization, expense=expense, payment_type=Payment.OUT)
    if exclude_payment is not None:
        payments = payments.exclude(pk=_pk(exclude_payment))
    paid = ledger.sum_amounts(payments)
    return expense.amount - paid


# Summaries

def party_stats(organization, party, project=None):
    expenses = list(fetch_expenses(organization, party=party, project=project))
    payments_out = list(fetch_payments(organization, party=party, project=project, payment_type=Payment.OUT))
    balance = ledger.compute_party_outstanding(expenses, payments_out)
    return {
        'total_expenses': ledger.sum_expense_amounts(expenses),
        'total_payments': ledger.sum_amounts(payments_out),
        'balance': balance,
        'expense_count': len(expenses),
        'payment_count': len(payments_out),
    }


def party_unpaid_expenses(organization, party, project=None):
    expenses = list(fetch_expenses(organization, party=party, project=project).order_by('expense_date', 'pk'))
    payments_out = list(fetch_payments(organization, party=party, project=project, payment_type=Payment.OUT))
    return ledger.compute_party_unpaid_expenses(expenses, payments_out)


def party_projects(organization, party):
    """Per project credit position of one party"""
    expenses_by_project = defaultdict(list)
    payments_by_project = defaultdict(list)
    projects = {}
    for expense in fetch_expenses(organization, party=party):
        expenses_by_project[expense.project_id].append(expense)
        projects[expense.project_id] = expense.project
    for payment in fetch_payments(organization, party=party, payment_type=Payment.OUT):
        payments_by_project[payment.project_id].append(payment)
        projects[payment.project_id] = payment.project

    rows = []
    for project_id, project in projects.items():
        expenses = expenses_by_project[project_id]
        payments_out = payments_by_project[project_id]
        rows.append({
            'project': project,
            'total_expenses': ledger.sum_expense_amounts(expenses),
            'total_payments': ledger.sum_amounts(payments_out),
            'balance': ledger.compute_party_outstanding(expenses, payments_out),
        })
    rows.sort(key=lambda row: row['project'].name)
    return rows


def credits_summary(organization):
    """Outstanding balances of every creditor party, bucketed by party type"""
    expenses_by_party = defaultdict(list)
    payments_by_party = defaultdict(list)
    for expense in fetch_expenses(organization).filter(party__isnull=False):
        expenses_by_party[expense.party_id].append(expense)
    for payment in fetch_payments(organization, payment_type=Payment.OUT).filter(party__isnull=False):
        payments_by_party[payment.party_id].append(payment)

    parties_by_type = defaultdict(list)
    for party_id, party_type in Party.objects.filter(organization=organization).values_list('pk', 'type'):
        parties_by_type[party_type].append((expenses_by_party[party_id], payments_by_party[party_id]))
    return ledger.compute_credits_summary(parties_by_type)


def project_payment_summary(organization, project):
    expenses = list(fetch_expenses(organization, project=project))
    payments_in, payments_out = ledger.split_payments(fetch_payments(organization, project=project))
    summary = ledger.compute_project_payment_summary(expenses, payments_in, payments_out)
    summary['expense_count'] = len(expenses)
    summary['payment_count'] = len(payments_in) + len(payments_out)
    return summary


def member_spent(organization, project, member):
    """Amount of expenses drawn from the member's advances on the project"""
    expenses = fetch_expenses(organization, project=project).filter(member_advance__member_id=_pk(member))
    return ledger.compute_member_spent(expenses)


def member_advance_summary(organization, project, member):
    advances = fetch_member_advances(organization, project=project, member=member)
    return ledger.compute_member_advance_summary(advances, member_spent(organization, project, member))


def project_member_summaries(organization, project):
    """Advance summary for every member who received an advance on the project"""
    advances_by_member = defaultdict(list)
    members = {}
    for advance in fetch_member_advances(organization, project=project):
        advances_by_member[advance.member_id].append(advance)
        members[advance.member_id] = advance.member

    spent_by_member = defaultdict(list)
    linked = fetch_expenses(organization, project=project).filter(member_advance__isnull=False)
    for expense in linked:
        spent_by_member[expense.member_advance.member_id].append(expense)

    rows = []
    for member_id, advances in advances_by_member.items():
        summary = ledger.compute_member_advance_summary(
            advances, ledger.compute_member_spent(spent_by_member[member_id])
        )
        summary['member'] = members[member_id]
        rows.append(summary)
    rows.sort(key=lambda row: row['member'].get_display_name())
    return rows


def member_balances(organization, member):
    """Advance summary of one member on every project they received advances for"""
    advances_by_project = defaultdict(list)
    projects = {}
    for advance in fetch_member_advances(organization, member=member):
        advances_by_project[advance.project_id].append(advance)
        projects[advance.project_id] = advance.project

    spent_by_project = defaultdict(list)
    linked = fetch_expenses(organization).filter(member_advance__member_id=_pk(member))
    for expense in linked:
        spent_by_project[expense.project_id].append(expense)

    rows = []
    for project_id, advances in advances_by_project.items():
        summary = ledger.compute_member_advance_summary(
            advances, ledger.compute_member_spent(spent_by_project[project_id])
        )
        summary['project'] = projects[project_id]
        rows.append(summary)
    rows.sort(key=lambda row: row['project'].name)
    total_balance = sum((row['balance'] for row in rows), ledger.ZERO)
    return rows, total_balance
