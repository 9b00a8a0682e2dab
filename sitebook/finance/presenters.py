"""
Turn ledger results into response payloads

Amounts leave the API as JSON numbers. Flooring for "pending" style displays
happens here, never in the ledger.
"""
from decimal import Decimal

from . import ledger


def money(value):
    return float(ledger.to_decimal(value))


def percent(value):
    return round(float(ledger.to_decimal(value)), 2)


def pending(value):
    """Outstanding amount floored at zero for display"""
    return money(max(ledger.to_decimal(value), ledger.ZERO))


def present_totals(summary):
    """Convert every Decimal in a flat summary dict"""
    return {
        key: money(value) if isinstance(value, Decimal) else value
        for key, value in summary.items()
    }


def present_party_stats(stats):
    data = present_totals(stats)
    data['pending'] = pending(stats['balance'])
    return data


def present_expenses_by_category(groups):
    rows = [
        {
            'category_id': group['category_id'],
            'category_name': group['category_name'],
            'total': money(group['total']),
            'count': group['count'],
        }
        for group in groups.values()
    ]
    rows.sort(key=lambda row: row['total'], reverse=True)
    return {
        'categories': rows,
        'total': money(sum((group['total'] for group in groups.values()), ledger.ZERO)),
    }


def present_credits_summary(summary):
    data = {}
    for bucket in ledger.CREDIT_BUCKETS.values():
        data[bucket] = {
            'count': summary[bucket]['count'],
            'balance': money(summary[bucket]['balance']),
            'pending': pending(summary[bucket]['balance']),
        }
    data['total'] = money(summary['total'])
    return data


def present_member_summary(summary, member=None, project=None):
    data = {
        'total_advanced': money(summary['total_advanced']),
        'spent': money(summary['spent']),
        'balance': money(summary['balance']),
        'count': summary['count'],
    }
    if member is not None:
        data['member'] = {'id': member.pk, 'name': member.get_display_name(), 'phone': member.phone}
    if project is not None:
        data['project'] = {'id': project.pk, 'name': project.name}
    return data


def present_party_projects(rows):
    return [
        {
            'project': {'id': row['project'].pk, 'name': row['project'].name, 'status': row['project'].status},
            'total_expenses': money(row['total_expenses']),
            'total_payments': money(row['total_payments']),
            'balance': money(row['balance']),
            'pending': pending(row['balance']),
        }
        for row in rows
    ]
