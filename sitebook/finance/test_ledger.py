"""
Tests for the ledger aggregator
Pure computations over in-memory rows, no database
"""
from decimal import Decimal
from types import SimpleNamespace

from django.test import SimpleTestCase

from sitebook.finance import ledger


def expense(id, rate, quantity='1', category_id=1, category_name='Material'):
    return SimpleNamespace(
        id=id, rate=Decimal(rate), quantity=Decimal(quantity),
        category_id=category_id, category=SimpleNamespace(name=category_name),
    )


def payment(amount, type='OUT', expense_id=None):
    return SimpleNamespace(amount=Decimal(amount), type=type, expense_id=expense_id)


class ExpenseAmountTests(SimpleTestCase):

    def test_amount_is_rate_times_quantity(self):
        self.assertEqual(ledger.expense_amount(expense(1, '12.50', '2.5')), Decimal('31.25'))

    def test_decimal_sum_is_exact(self):
        rows = [expense(i, '0.10') for i in range(3)]
        self.assertEqual(ledger.sum_expense_amounts(rows), Decimal('0.30'))

    def test_float_input_is_converted_through_str(self):
        self.assertEqual(ledger.to_decimal(0.1), Decimal('0.1'))
        self.assertEqual(ledger.to_decimal(None), ledger.ZERO)


class PartyOutstandingTests(SimpleTestCase):

    def test_outstanding(self):
        expenses = [expense(1, '100'), expense(2, '50')]
        payments = [payment('120')]
        self.assertEqual(ledger.compute_party_outstanding(expenses, payments), Decimal('30'))

    def test_overpaid_party_is_negative(self):
        expenses = [expense(1, '100')]
        payments = [payment('300')]
        self.assertEqual(ledger.compute_party_outstanding(expenses, payments), Decimal('-200'))

    def test_in_payments_do_not_reduce_outstanding(self):
        expenses = [expense(1, '100')]
        payments = [payment('100', type='IN')]
        self.assertEqual(ledger.compute_party_outstanding(expenses, payments), Decimal('100'))

    def test_empty(self):
        self.assertEqual(ledger.compute_party_outstanding([], []), ledger.ZERO)

    def test_same_input_same_result(self):
        expenses = [expense(1, '100', '2')]
        payments = [payment('75'), payment('10', type='IN')]
        first = ledger.compute_party_outstanding(expenses, payments)
        self.assertEqual(first, ledger.compute_party_outstanding(expenses, payments))
        self.assertEqual(first, Decimal('125'))


class UnpaidExpensesTests(SimpleTestCase):

    def test_partially_paid_expenses(self):
        expenses = [expense(1, '100'), expense(2, '50'), expense(3, '80')]
        payments = [
            payment('50', expense_id=1),
            payment('80', expense_id=3),
            payment('999'),  # not linked to an expense
        ]
        unpaid = ledger.compute_party_unpaid_expenses(expenses, payments)
        self.assertEqual([row['expense'].id for row in unpaid], [1, 2])
        self.assertEqual([row['amount_unpaid'] for row in unpaid], [Decimal('50'), Decimal('50')])
        self.assertEqual(unpaid[0]['amount_paid'], Decimal('50'))

    def test_overpaid_expense_is_left_out(self):
        unpaid = ledger.compute_party_unpaid_expenses([expense(1, '100')], [payment('150', expense_id=1)])
        self.assertEqual(unpaid, [])

    def test_in_payment_linked_to_expense_is_ignored(self):
        unpaid = ledger.compute_party_unpaid_expenses([expense(1, '100')], [payment('100', 'IN', expense_id=1)])
        self.assertEqual(unpaid[0]['amount_unpaid'], Decimal('100'))

    def test_unpaid_total_matches_outstanding_without_overpayment(self):
        expenses = [expense(1, '100'), expense(2, '40')]
        payments = [payment('30', expense_id=1), payment('10', expense_id=2)]
        unpaid_total = sum(row['amount_unpaid'] for row in ledger.compute_party_unpaid_expenses(expenses, payments))
        self.assertEqual(unpaid_total, ledger.compute_party_outstanding(expenses, payments))

    def test_rate_times_quantity_with_linked_payment(self):
        expenses = [expense(1, '100', '2'), expense(2, '50')]
        payments = [payment('150', expense_id=1)]
        unpaid = ledger.compute_party_unpaid_expenses(expenses, payments)
        self.assertEqual([row['amount'] for row in unpaid], [Decimal('200'), Decimal('50')])
        self.assertEqual([row['amount_paid'] for row in unpaid], [Decimal('150'), ledger.ZERO])
        self.assertEqual([row['amount_unpaid'] for row in unpaid], [Decimal('50'), Decimal('50')])

    def test_same_input_same_result(self):
        expenses = [expense(1, '100', '2'), expense(2, '50')]
        payments = [payment('150', expense_id=1)]
        first = ledger.compute_party_unpaid_expenses(expenses, payments)
        self.assertEqual(first, ledger.compute_party_unpaid_expenses(expenses, payments))
        self.assertEqual(len(payments), 1)


class ExpensesByCategoryTests(SimpleTestCase):

    def test_groups_partition_the_input(self):
        expenses = [
            expense(1, '100', category_id=1, category_name='Material'),
            expense(2, '30', category_id=2, category_name='Labour'),
            expense(3, '20', category_id=1, category_name='Material'),
        ]
        groups = ledger.compute_expenses_by_category(expenses)
        self.assertEqual(groups[1]['total'], Decimal('120'))
        self.assertEqual(groups[1]['count'], 2)
        self.assertEqual(groups[2]['category_name'], 'Labour')
        self.assertEqual(sum(g['count'] for g in groups.values()), len(expenses))
        self.assertEqual(sum(g['total'] for g in groups.values()), ledger.sum_expense_amounts(expenses))

    def test_missing_category_name(self):
        row = SimpleNamespace(id=1, rate=Decimal('5'), quantity=Decimal('1'), category_id=9, category=None)
        groups = ledger.compute_expenses_by_category([row])
        self.assertEqual(groups[9]['category_name'], ledger.UNKNOWN_CATEGORY)

    def test_empty(self):
        self.assertEqual(ledger.compute_expenses_by_category([]), {})

    def test_same_input_same_result(self):
        expenses = [expense(1, '40'), expense(2, '60', category_id=2, category_name='Labour')]
        self.assertEqual(ledger.compute_expenses_by_category(expenses), ledger.compute_expenses_by_category(expenses))


class MemberAdvanceSummaryTests(SimpleTestCase):

    def test_summary(self):
        advances = [SimpleNamespace(amount=Decimal('1000')), SimpleNamespace(amount=Decimal('500'))]
        summary = ledger.compute_member_advance_summary(advances, spent=Decimal('1200'))
        self.assertEqual(summary['total_advanced'], Decimal('1500'))
        self.assertEqual(summary['balance'], Decimal('300'))
        self.assertEqual(summary['count'], 2)

    def test_overspent_balance_is_negative(self):
        summary = ledger.compute_member_advance_summary([SimpleNamespace(amount=Decimal('100'))], spent=Decimal('150'))
        self.assertEqual(summary['balance'], Decimal('-50'))

    def test_spent_defaults_to_zero(self):
        summary = ledger.compute_member_advance_summary([])
        self.assertEqual(summary, {'total_advanced': 0, 'spent': 0, 'balance': 0, 'count': 0})

    def test_same_input_same_result(self):
        advances = [SimpleNamespace(amount=Decimal('700'))]
        first = ledger.compute_member_advance_summary(advances, spent=Decimal('250'))
        self.assertEqual(first, ledger.compute_member_advance_summary(advances, spent=Decimal('250')))


class ProjectPaymentSummaryTests(SimpleTestCase):

    def test_balance_is_received_minus_expenses(self):
        summary = ledger.compute_project_payment_summary(
            [expense(1, '400')], [payment('1000', 'IN')], [payment('300')]
        )
        self.assertEqual(summary['total_expenses'], Decimal('400'))
        self.assertEqual(summary['total_payments_in'], Decimal('1000'))
        self.assertEqual(summary['total_payments_out'], Decimal('300'))
        self.assertEqual(summary['balance'], Decimal('600'))

    def test_empty_project(self):
        summary = ledger.compute_project_payment_summary([], [], [])
        self.assertTrue(all(value == ledger.ZERO for value in summary.values()))

    def test_same_input_same_result(self):
        args = ([expense(1, '400')], [payment('1000', 'IN')], [payment('300')])
        self.assertEqual(ledger.compute_project_payment_summary(*args), ledger.compute_project_payment_summary(*args))

    def test_split_payments(self):
        payments_in, payments_out = ledger.split_payments([payment('1', 'IN'), payment('2'), payment('3', 'IN')])
        self.assertEqual(len(payments_in), 2)
        self.assertEqual(len(payments_out), 1)


class CreditsSummaryTests(SimpleTestCase):

    def test_buckets_keep_raw_signed_balances(self):
        summary = ledger.compute_credits_summary({
            'VENDOR': [
                ([expense(1, '500')], []),
                ([expense(2, '100')], [payment('200')]),
            ],
            'LABOUR': [([expense(3, '50')], [payment('50')])],
            'CLIENT': [([expense(4, '999')], [])],
        })
        self.assertEqual(summary['vendors'], {'count': 2, 'balance': Decimal('400')})
        self.assertEqual(summary['labours'], {'count': 1, 'balance': Decimal('0')})
        self.assertEqual(summary['subcontractors'], {'count': 0, 'balance': Decimal('0')})
        self.assertEqual(summary['total'], Decimal('400'))
        self.assertNotIn('clients', summary)

    def test_total_is_sum_of_buckets(self):
        summary = ledger.compute_credits_summary({
            'VENDOR': [([expense(1, '10')], [])],
            'SUBCONTRACTOR': [([expense(2, '25')], [payment('5')])],
        })
        buckets = sum(summary[name]['balance'] for name in ledger.CREDIT_BUCKETS.values())
        self.assertEqual(summary['total'], buckets)

    def test_same_input_same_result(self):
        parties = {'VENDOR': [([expense(1, '10')], [payment('3')])]}
        self.assertEqual(ledger.compute_credits_summary(parties), ledger.compute_credits_summary(parties))


class BOQStatsTests(SimpleTestCase):

    def item(self, id, rate, quantity, category_id=1, category_name='Material'):
        return SimpleNamespace(
            id=id, rate=Decimal(rate), quantity=Decimal(quantity),
            category_id=category_id, category=SimpleNamespace(name=category_name),
        )

    def test_quoted_vs_actual(self):
        items = [self.item(1, '100', '10'), self.item(2, '50', '4', category_id=2, category_name='Labour')]
        stats = ledger.compute_boq_stats(items, {1: Decimal('800'), 2: Decimal('250')})
        self.assertEqual(stats['total_quoted'], Decimal('1200'))
        self.assertEqual(stats['total_actual'], Decimal('1050'))
        self.assertEqual(stats['variance'], Decimal('150'))
        self.assertEqual(stats['variance_percent'], Decimal('12.5'))
        self.assertEqual(stats['budget_usage'], Decimal('87.5'))
        self.assertEqual(stats['category_breakdown'][2]['actual'], Decimal('250'))
        self.assertEqual(stats['item_count'], 2)

    def test_no_items_guards_percentages(self):
        stats = ledger.compute_boq_stats([], {})
        self.assertEqual(stats['variance_percent'], ledger.ZERO)
        self.assertEqual(stats['budget_usage'], ledger.ZERO)


class PaymentTotalsTests(SimpleTestCase):

    def test_totals(self):
        totals = ledger.compute_payment_totals([payment('100', 'IN'), payment('30'), payment('20')])
        self.assertEqual(totals['total_in'], Decimal('100'))
        self.assertEqual(totals['total_out'], Decimal('50'))
        self.assertEqual(totals['net'], Decimal('50'))
        self.assertEqual((totals['count_in'], totals['count_out'], totals['count']), (1, 2, 3))
