"""
Organization dashboard built from the ledger aggregator

All rows of an organization are loaded once and grouped in memory; every
figure is then derived through sitebook.finance.ledger. The assembled payload
is cached per organization and dropped by the signals in reports.signals.
"""
import logging
from collections import defaultdict

from django.utils import timezone

from sitebook.core.cache_utils import cached_query, OVERVIEW_CACHE_PREFIX
from sitebook.core.models import Organization
from sitebook.finance import ledger, store, presenters
from sitebook.finance.models import Expense, Payment
from sitebook.parties.models import Party
from sitebook.projects.models import Project, Stage, Task

logger = logging.getLogger(__name__)

TOP_OUTSTANDING = 5
TODAY_TASK_LIMIT = 10
RECENT_PROJECT_LIMIT = 5
APPROACHING_LIMIT_PERCENT = 80


def _is_overdue(stage, today):
    return stage.status != Stage.COMPLETED and stage.end_date < today


class ProjectLedger:
    """Money rows of one project, grouped for the dashboard"""

    def __init__(self, project):
        self.project = project
        self.expenses = []
        self.payments_in = []

    @property
    def spent(self):
        return ledger.sum_expense_amounts(self.expenses)

    @property
    def received(self):
        return ledger.sum_amounts(self.payments_in)

    @property
    def budget(self):
        return self.project.budget

    @property
    def usage(self):
        return ledger.percentage(self.spent, self.budget)

    def is_over_budget(self):
        return self.budget > ledger.ZERO and self.spent > self.budget


def _load(organization):
    projects = list(
        Project.objects.filter(organization=organization)
        .select_related('client')
        .prefetch_related('stages')
        .order_by('-updated_at')
    )
    ledgers = {project.pk: ProjectLedger(project) for project in projects}
    expenses = list(store.fetch_expenses(organization))
    for expense in expenses:
        ledgers[expense.project_id].expenses.append(expense)
    payments = list(store.fetch_payments(organization))
    for payment in payments:
        if payment.type == Payment.IN:
            ledgers[payment.project_id].payments_in.append(payment)
    return projects, ledgers, expenses, payments


def kpi_stats(ledgers, expenses, payments, today):
    receivables = ledger.ZERO
    attention = 0
    for entry in ledgers.values():
        if entry.project.status != Project.COMPLETED:
            receivables += max(entry.budget - entry.received, ledger.ZERO)
        if entry.project.status == Project.ACTIVE:
            if entry.is_over_budget() or any(_is_overdue(s, today) for s in entry.project.stages.all()):
                attention += 1
    _payments_in, payments_out = ledger.split_payments(payments)
    payables = max(ledger.compute_party_outstanding(expenses, payments_out), ledger.ZERO)
    return {
        'active_projects': sum(1 for e in ledgers.values() if e.project.status == Project.ACTIVE),
        'outstanding_receivables': presenters.money(receivables),
        'outstanding_payables': presenters.money(payables),
        'attention_needed': attention,
    }


def status_breakdown(projects):
    counts = {Project.ACTIVE: 0, Project.ON_HOLD: 0, Project.COMPLETED: 0}
    for project in projects:
        counts[project.status] = counts.get(project.status, 0) + 1
    return {
        'active': counts[Project.ACTIVE],
        'on_hold': counts[Project.ON_HOLD],
        'completed': counts[Project.COMPLETED],
    }


def projects_pl(ledgers, today):
    """Budget against spend for every project, worst health first"""
    rows = []
    for entry in ledgers.values():
        project = entry.project
        spent = entry.spent
        rows.append({
            'id': project.pk,
            'name': project.name,
            'client_name': project.client.name if project.client else None,
            'budget': presenters.money(entry.budget),
            'spent': presenters.money(spent),
            'remaining': presenters.money(entry.budget - spent),
            'health_percent': round(entry.usage),
            'status': project.status,
            'is_overdue': any(_is_overdue(stage, today) for stage in project.stages.all()),
        })
    rows.sort(key=lambda row: row['health_percent'], reverse=True)
    return rows


def today_tasks(organization):
    tasks = (
        Task.objects.filter(organization=organization, status__in=[Task.IN_PROGRESS, Task.NOT_STARTED])
        .select_related('stage__project')
        .prefetch_related('members')
        .order_by('-created_at')[:TODAY_TASK_LIMIT]
    )
    return [
        {
            'id': task.pk,
            'name': task.name,
            'project_id': task.stage.project_id,
            'project_name': task.stage.project.name,
            'stage_name': task.stage.name,
            'status': task.status,
            'assignees': [{'id': user.pk, 'name': user.get_display_name()} for user in task.members.all()],
        }
        for task in tasks
    ]


def outstanding_payables(organization, expenses, payments, today):
    """Creditor parties still owed money, largest first"""
    expenses_by_party = defaultdict(list)
    payments_by_party = defaultdict(list)
    for expense in expenses:
        if expense.party_id is not None:
            expenses_by_party[expense.party_id].append(expense)
    for payment in payments:
        if payment.party_id is not None and payment.type == Payment.OUT:
            payments_by_party[payment.party_id].append(payment)

    items = []
    parties = Party.objects.filter(organization=organization, type__in=Party.PAYABLE_TYPES)
    for party in parties:
        party_expenses = expenses_by_party.get(party.pk)
        if not party_expenses:
            continue
        outstanding = ledger.compute_party_outstanding(party_expenses, payments_by_party[party.pk])
        if outstanding <= ledger.ZERO:
            continue
        oldest = min(expense.expense_date for expense in party_expenses)
        items.append({
            'id': party.pk,
            'name': party.name,
            'type': party.type,
            'amount': outstanding,
            'age_days': (today - oldest).days,
        })
    items.sort(key=lambda item: item['amount'], reverse=True)
    for item in items:
        item['amount'] = presenters.money(item['amount'])
    return items[:TOP_OUTSTANDING]


def outstanding_receivables(ledgers, today):
    """Budget not yet received from clients on open projects, largest first"""
    items = []
    for entry in ledgers.values():
        project = entry.project
        if project.status == Project.COMPLETED or entry.budget == ledger.ZERO:
            continue
        outstanding = entry.budget - entry.received
        if outstanding <= ledger.ZERO:
            continue
        items.append({
            'id': project.pk,
            'name': project.client.name if project.client else project.name,
            'type': Party.CLIENT,
            'amount': outstanding,
            'age_days': (today - project.start_date).days,
        })
    items.sort(key=lambda item: item['amount'], reverse=True)
    for item in items:
        item['amount'] = presenters.money(item['amount'])
    return items[:TOP_OUTSTANDING]


def alerts(organization, ledgers, today):
    result = []
    active = [entry for entry in ledgers.values() if entry.project.status == Project.ACTIVE]

    over_budget = [
        {
            'id': entry.project.pk,
            'name': entry.project.name,
            'detail': f"Over by {round(entry.spent - entry.budget):,}",
        }
        for entry in active if entry.is_over_budget()
    ]
    if over_budget:
        result.append({'type': 'budget_overrun', 'count': len(over_budget), 'items': over_budget})

    approaching = []
    for entry in active:
        if entry.budget == ledger.ZERO:
            continue
        usage = entry.usage
        if APPROACHING_LIMIT_PERCENT <= usage < ledger.HUNDRED:
            approaching.append({
                'id': entry.project.pk,
                'name': entry.project.name,
                'detail': f"{round(usage)}% of budget used",
            })
    if approaching:
        result.append({'type': 'approaching_limit', 'count': len(approaching), 'items': approaching})

    overdue_stages = (
        Stage.objects.filter(organization=organization, end_date__lt=today)
        .exclude(status=Stage.COMPLETED)
        .select_related('project')
    )
    overdue = [
        {
            'id': stage.pk,
            'name': stage.name,
            'detail': f"{stage.project.name} - {(today - stage.end_date).days} days overdue",
        }
        for stage in overdue_stages
    ]
    if overdue:
        result.append({'type': 'overdue_stage', 'count': len(overdue), 'items': overdue})

    pending = Expense.objects.filter(organization=organization, status=Expense.PENDING).count()
    if pending:
        result.append({'type': 'pending_expense', 'count': pending, 'items': []})
    return result


def recent_projects(projects, ledgers):
    """Latest updated projects with spend against the stage budgets, capped at 100"""
    rows = []
    for project in projects[:RECENT_PROJECT_LIMIT]:
        stage_budget = sum((stage.budget_amount for stage in project.stages.all()), ledger.ZERO)
        progress = ledger.percentage(ledgers[project.pk].spent, stage_budget)
        rows.append({
            'id': project.pk,
            'name': project.name,
            'client_name': project.client.name if project.client else None,
            'status': project.status,
            'progress': min(round(progress), 100),
            'updated_at': project.updated_at.isoformat(),
        })
    return rows


@cached_query(key_prefix=OVERVIEW_CACHE_PREFIX)
def build_overview(organization_id):
    """Full dashboard payload of one organization"""
    organization = Organization.objects.get(pk=organization_id)
    today = timezone.localdate()
    projects, ledgers, expenses, payments = _load(organization)
    logger.info(f"Building overview for organization {organization_id}: "
                f"{len(projects)} projects, {len(expenses)} expenses, {len(payments)} payments")

    return {
        'kpi_stats': kpi_stats(ledgers, expenses, payments, today),
        'project_status_breakdown': status_breakdown(projects),
        'projects_pl': projects_pl(ledgers, today),
        'today_tasks': today_tasks(organization),
        'credits_summary': presenters.present_credits_summary(store.credits_summary(organization)),
        'outstanding_payables': outstanding_payables(organization, expenses, payments, today),
        'outstanding_receivables': outstanding_receivables(ledgers, today),
        'alerts': alerts(organization, ledgers, today),
        'recent_projects': recent_projects(projects, ledgers),
    }


OVERVIEW_SECTIONS = [
    'kpi_stats', 'project_status_breakdown', 'projects_pl', 'today_tasks', 'credits_summary',
    'outstanding_payables', 'outstanding_receivables', 'alerts', 'recent_projects',
]
