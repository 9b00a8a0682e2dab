"""
Ledger computations over expense, payment and member advance rows

Everything here is a pure function over in-memory rows: no database access, no
settings, no shared state. Rows are any objects with the attributes the
function reads (model instances in the API, simple records in tests).

Money is handled as Decimal throughout and never rounded here. Presentation
decides how to format or floor the results.
"""
from collections import OrderedDict
from decimal import Decimal

ZERO = Decimal('0')
HUNDRED = Decimal('100')

PAYMENT_IN = 'IN'
PAYMENT_OUT = 'OUT'

UNKNOWN_CATEGORY = 'Unknown'

# Party type -> bucket name in the credits summary. Clients are not creditors.
CREDIT_BUCKETS = OrderedDict([
    ('VENDOR', 'vendors'),
    ('LABOUR', 'labours'),
    ('SUBCONTRACTOR', 'subcontractors'),
])


def to_decimal(value):
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def expense_amount(expense):
    """rate x quantity, recomputed from the factors every time"""
    return to_decimal(expense.rate) * to_decimal(expense.quantity)


def sum_amounts(rows):
    return sum((to_decimal(row.amount) for row in rows), ZERO)


def sum_expense_amounts(expenses):
    return sum((expense_amount(expense) for expense in expenses), ZERO)


def percentage(numerator, denominator):
    """numerator / denominator x 100, or 0 when the denominator is zero"""
    denominator = to_decimal(denominator)
    if denominator == ZERO:
        return ZERO
    return to_decimal(numerator) / denominator * HUNDRED


def _is_out(payment):
    return getattr(payment, 'type', PAYMENT_OUT) == PAYMENT_OUT


def _is_in(payment):
    return getattr(payment, 'type', None) == PAYMENT_IN


def _row_id(row):
    row_id = getattr(row, 'pk', None)
    return row_id if row_id is not None else getattr(row, 'id', None)


def compute_party_outstanding(expenses, payments):
    """
    What the organization still owes a party.

    sum(expense amounts) - sum(OUT payment amounts). Negative means the party
    has been overpaid and is returned as is.
    """
    paid = sum((to_decimal(p.amount) for p in payments if _is_out(p)), ZERO)
    return sum_expense_amounts(expenses) - paid


def compute_party_unpaid_expenses(expenses, payments):
    """
    Expenses that still have money owed against them.

    Only OUT payments linked to an expense count towards it. Fully paid or
    overpaid expenses are left out. Input order is preserved.
    """
    paid_by_expense = {}
    for payment in payments:
        expense_id = getattr(payment, 'expense_id', None)
        if expense_id is None or not _is_out(payment):
            continue
        paid_by_expense[expense_id] = paid_by_expense.get(expense_id, ZERO) + to_decimal(payment.amount)

    unpaid = []
    for expense in expenses:
        amount = expense_amount(expense)
        paid = paid_by_expense.get(_row_id(expense), ZERO)
        amount_unpaid = amount - paid
        if amount_unpaid <= ZERO:
            continue
        unpaid.append({
            'expense': expense,
            'amount': amount,
            'amount_paid': paid,
            'amount_unpaid': amount_unpaid,
        })
    return unpaid


def _category_of(expense):
    category_id = getattr(expense, 'category_id', None)
    category = getattr(expense, 'category', None)
    name = getattr(category, 'name', None) if category is not None else None
    if name is None:
        name = getattr(expense, 'category_name', None)
    return category_id, name or UNKNOWN_CATEGORY


def compute_expenses_by_category(expenses):
    """
    Group expenses by category id.

    Returns {category_id: {category_id, category_name, total, count}}. The
    name is display only; consumers must not rely on key order.
    """
    groups = {}
    for expense in expenses:
        category_id, category_name = _category_of(expense)
        group = groups.get(category_id)
        if group is None:
            group = groups[category_id] = {
                'category_id': category_id,
                'category_name': category_name,
                'total': ZERO,
                'count': 0,
            }
        group['total'] += expense_amount(expense)
        group['count'] += 1
    return groups


def compute_member_spent(expenses):
    """Total of the expenses drawn from a member's advances"""
    return sum_expense_amounts(expenses)


def compute_member_advance_summary(advances, spent=ZERO):
    """
    Advanced vs spent for one member on one project.

    The caller supplies `spent`; nothing here guesses where spending comes from.
    """
    advances = list(advances)
    total_advanced = sum_amounts(advances)
    spent = to_decimal(spent)
    return {
        'total_advanced': total_advanced,
        'spent': spent,
        'balance': total_advanced - spent,
        'count': len(advances),
    }


def compute_project_payment_summary(expenses, payments_in, payments_out):
    """
    Cash position of a project: client receipts minus what was spent.

    Not the same thing as a party balance, which nets OUT payments instead.
    """
    total_expenses = sum_expense_amounts(expenses)
    total_in = sum_amounts(payments_in)
    total_out = sum_amounts(payments_out)
    return {
        'total_expenses': total_expenses,
        'total_payments_in': total_in,
        'total_payments_out': total_out,
        'balance': total_in - total_expenses,
    }


def split_payments(payments):
    """(IN payments, OUT payments)"""
    payments_in, payments_out = [], []
    for payment in payments:
        if _is_in(payment):
            payments_in.append(payment)
        elif _is_out(payment):
            payments_out.append(payment)
    return payments_in, payments_out


def compute_credits_summary(parties_by_type):
    """
    Outstanding balances bucketed by party type.

    `parties_by_type` maps a party type to an iterable of (expenses, payments)
    pairs, one pair per party. Bucket balances are raw signed sums, so an
    overpaid party lowers its bucket. CLIENT and unknown types are ignored.
    """
    summary = OrderedDict(
        (bucket, {'count': 0, 'balance': ZERO}) for bucket in CREDIT_BUCKETS.values()
    )
    for party_type, parties in parties_by_type.items():
        bucket = CREDIT_BUCKETS.get(party_type)
        if bucket is None:
            continue
        for expenses, payments in parties:
            summary[bucket]['count'] += 1
            summary[bucket]['balance'] += compute_party_outstanding(expenses, payments)

    summary['total'] = sum((summary[bucket]['balance'] for bucket in CREDIT_BUCKETS.values()), ZERO)
    return summary


def compute_boq_stats(items, actual_by_item):
    """
    Quoted vs actual spend over BOQ items.

    `actual_by_item` maps a BOQ item id to the amount of expenses linked to it.
    """
    total_quoted = ZERO
    total_actual = ZERO
    breakdown = {}
    item_count = 0
    for item in items:
        item_count += 1
        quoted = to_decimal(item.rate) * to_decimal(item.quantity)
        actual = to_decimal(actual_by_item.get(_row_id(item), ZERO))
        total_quoted += quoted
        total_actual += actual

        category_id, category_name = _category_of(item)
        entry = breakdown.get(category_id)
        if entry is None:
            entry = breakdown[category_id] = {
                'category_id': category_id,
                'category_name': category_name,
                'quoted': ZERO,
                'actual': ZERO,
                'count': 0,
            }
        entry['quoted'] += quoted
        entry['actual'] += actual
        entry['count'] += 1

    variance = total_quoted - total_actual
    return {
        'total_quoted': total_quoted,
        'total_actual': total_actual,
        'variance': variance,
        'variance_percent': percentage(variance, total_quoted),
        'budget_usage': percentage(total_actual, total_quoted),
        'item_count': item_count,
        'category_breakdown': breakdown,
    }


def compute_payment_totals(payments):
    """Received vs paid totals over a payment set"""
    payments_in, payments_out = split_payments(payments)
    total_in = sum_amounts(payments_in)
    total_out = sum_amounts(payments_out)
    return {
        'total_in': total_in,
        'total_out': total_out,
        'net': total_in - total_out,
        'count_in': len(payments_in),
        'count_out': len(payments_out),
        'count': len(payments_in) + len(payments_out),
    }
