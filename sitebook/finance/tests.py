"""
Test suite for the finance module
Tests: expenses with immediate payment, payments against expenses, member advances,
summaries and organization isolation
"""
from decimal import Decimal

from django.test import SimpleTestCase, TestCase
from django.utils import timezone
from rest_framework import status

from sitebook.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from sitebook.finance import store
from sitebook.finance.models import Expense, Payment
from sitebook.finance.serializers import ExpenseSerializer, UnpaidExpenseSerializer
from sitebook.parties.models import Party


class FinanceTestCase(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(user=self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user, self.organization)
        self.project = TestDataFactory.create_project(self.organization)
        self.vendor = TestDataFactory.create_party(self.organization, party_type=Party.VENDOR)
        self.category = TestDataFactory.expense_category(self.organization)

    def expense_payload(self, **overrides):
        payload = {
            'project': self.project.pk,
            'party': self.vendor.pk,
            'category': self.category.pk,
            'rate': '250.00',
            'quantity': '4',
            'expense_date': str(timezone.localdate()),
        }
        payload.update(overrides)
        return payload


class ExpenseAPITests(FinanceTestCase):
    """Test expense endpoints"""

    def test_create_expense(self):
        response = self.client.post('/api/v1/expenses/', self.expense_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data['data']
        self.assertEqual(Decimal(str(data['amount'])), Decimal('1000'))
        self.assertEqual(data['status'], 'PENDING')
        self.assertIsNone(data['payment_id'])

    def test_create_expense_with_paid_amount_creates_payment(self):
        response = self.client.post(
            '/api/v1/expenses/',
            self.expense_payload(paid_amount='400.00', payment_mode='CASH', reference_number='R-1'),
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        payment = Payment.objects.get(pk=response.data['data']['payment_id'])
        self.assertEqual(payment.type, Payment.OUT)
        self.assertEqual(payment.amount, Decimal('400.00'))
        self.assertEqual(payment.party_id, self.vendor.pk)
        self.assertEqual(payment.reference_number, 'R-1')

    def test_paid_amount_requires_payment_mode(self):
        response = self.client.post('/api/v1/expenses/', self.expense_payload(paid_amount='100'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('payment_mode', response.data['error']['details'])
        self.assertEqual(Expense.objects.count(), 0)

    def test_paid_amount_above_expense_rolls_back(self):
        response = self.client.post(
            '/api/v1/expenses/',
            self.expense_payload(paid_amount='5000', payment_mode='CASH'),
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Expense.objects.count(), 0)
        self.assertEqual(Payment.objects.count(), 0)

    def test_stage_of_another_project_rejected(self):
        other_project = TestDataFactory.create_project(self.organization)
        stage = TestDataFactory.create_stage(other_project)
        response = self.client.post('/api/v1/expenses/', self.expense_payload(stage=stage.pk), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('stage', response.data['error']['details'])

    def test_foreign_project_rejected(self):
        other = TestDataFactory.create_organization()
        foreign_project = TestDataFactory.create_project(other)
        response = self.client.post(
            '/api/v1/expenses/', self.expense_payload(project=foreign_project.pk), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('project', response.data['error']['details'])

    def test_approve_then_cannot_revert(self):
        expense = TestDataFactory.create_expense(self.project, party=self.vendor)
        response = self.client.patch(f'/api/v1/expenses/{expense.pk}/', {'status': 'APPROVED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.patch(f'/api/v1/expenses/{expense.pk}/', {'status': 'PENDING'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        expense.refresh_from_db()
        self.assertEqual(expense.status, Expense.APPROVED)

    def test_patch_leaves_other_fields(self):
        expense = TestDataFactory.create_expense(self.project, party=self.vendor, rate=Decimal('10'))
        response = self.client.patch(f'/api/v1/expenses/{expense.pk}/', {'notes': 'Checked'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        expense.refresh_from_db()
        self.assertEqual(expense.rate, Decimal('10'))
        self.assertEqual(expense.notes, 'Checked')

    def test_detail_shows_unpaid_amount(self):
        expense = TestDataFactory.create_expense(self.project, party=self.vendor, rate=Decimal('100'))
        TestDataFactory.create_payment(self.project, amount=Decimal('30'), party=self.vendor, expense=expense)
        response = self.client.get(f'/api/v1/expenses/{expense.pk}/')
        self.assertEqual(response.data['data']['amount_unpaid'], 70.0)

    def test_list_filters_and_date_range(self):
        TestDataFactory.create_expense(self.project, party=self.vendor, status=Expense.APPROVED)
        TestDataFactory.create_expense(self.project, party=self.vendor)
        response = self.client.get(f'/api/v1/expenses/?project={self.project.pk}&status=APPROVED')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['pagination']['total'], 1)

        response = self.client.get('/api/v1/expenses/?date_from=2024-05-10&date_to=2024-05-01')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'VALIDATION_ERROR')

    def test_other_organization_expense_not_found(self):
        other = TestDataFactory.create_organization()
        foreign = TestDataFactory.create_expense(TestDataFactory.create_project(other))
        response = self.client.get(f'/api/v1/expenses/{foreign.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_by_category_summary(self):
        labour = TestDataFactory.expense_category(self.organization, name='Labour')
        TestDataFactory.create_expense(self.project, rate=Decimal('100'))
        TestDataFactory.create_expense(self.project, rate=Decimal('300'), category=labour)
        TestDataFactory.create_expense(self.project, rate=Decimal('50'))
        response = self.client.get('/api/v1/expenses/summary/by-category/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data['data']
        self.assertEqual(data['total'], 450.0)
        self.assertEqual([row['category_name'] for row in data['categories']], ['Labour', 'Material'])
        self.assertEqual(data['categories'][1]['count'], 2)

    def test_delete_expense_audited(self):
        expense = TestDataFactory.create_expense(self.project)
        response = self.client.delete(f'/api/v1/expenses/{expense.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Expense.objects.filter(pk=expense.pk).exists())


class PaymentAPITests(FinanceTestCase):
    """Test payment endpoints"""

    def setUp(self):
        super().setUp()
        self.expense = TestDataFactory.create_expense(self.project, party=self.vendor, rate=Decimal('500'))

    def payment_payload(self, **overrides):
        payload = {
            'project': self.project.pk,
            'type': 'OUT',
            'payment_mode': 'ONLINE',
            'amount': '200.00',
            'payment_date': str(timezone.localdate()),
        }
        payload.update(overrides)
        return payload

    def test_payment_against_expense_defaults_party(self):
        response = self.client.post('/api/v1/payments/', self.payment_payload(expense=self.expense.pk), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['party'], self.vendor.pk)

    def test_payment_against_expense_must_be_out(self):
        response = self.client.post(
            '/api/v1/payments/', self.payment_payload(expense=self.expense.pk, type='IN'), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('type', response.data['error']['details'])

    def test_payment_cannot_exceed_unpaid(self):
        TestDataFactory.create_payment(self.project, amount=Decimal('400'), party=self.vendor, expense=self.expense)
        response = self.client.post('/api/v1/payments/', self.payment_payload(expense=self.expense.pk), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('amount', response.data['error']['details'])

    def test_editing_payment_excludes_itself_from_unpaid(self):
        payment = TestDataFactory.create_payment(
            self.project, amount=Decimal('400'), party=self.vendor, expense=self.expense
        )
        response = self.client.patch(f'/api/v1/payments/{payment.pk}/', {'amount': '500.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_expense_of_other_project_rejected(self):
        other_project = TestDataFactory.create_project(self.organization)
        response = self.client.post(
            '/api/v1/payments/', self.payment_payload(project=other_project.pk, expense=self.expense.pk), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_zero_amount_rejected(self):
        response = self.client.post('/api/v1/payments/', self.payment_payload(amount='0'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_payment_summary(self):
        TestDataFactory.create_payment(self.project, amount=Decimal('1000'), payment_type=Payment.IN)
        TestDataFactory.create_payment(self.project, amount=Decimal('250'), party=self.vendor)
        response = self.client.get(f'/api/v1/payments/summary/?project={self.project.pk}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data['data']
        self.assertEqual(data['total_in'], 1000.0)
        self.assertEqual(data['total_out'], 250.0)
        self.assertEqual(data['count'], 2)

    def test_accountant_can_record_payment(self):
        accountant = TestDataFactory.create_user()
        TestDataFactory.add_member(self.organization, user=accountant, role_name='ACCOUNTANT')
        client = AuthenticatedAPIClient()
        client.authenticate_user(accountant, self.organization)
        response = client.post('/api/v1/payments/', self.payment_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_supervisor_cannot_record_payment(self):
        supervisor = TestDataFactory.create_user()
        TestDataFactory.add_member(self.organization, user=supervisor, role_name='SUPERVISOR')
        client = AuthenticatedAPIClient()
        client.authenticate_user(supervisor, self.organization)
        response = client.post('/api/v1/payments/', self.payment_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class MemberAdvanceAPITests(FinanceTestCase):
    """Test member advances and their summaries"""

    def setUp(self):
        super().setUp()
        self.member = TestDataFactory.add_member(self.organization, role_name='SUPERVISOR').user

    def test_create_advance(self):
        response = self.client.post('/api/v1/member-advances/', {
            'project': self.project.pk,
            'member': self.member.pk,
            'amount': '5000.00',
            'purpose': 'Site petty cash',
            'payment_mode': 'CASH',
            'advance_date': '2024-06-01',
            'expected_settlement_date': '2024-06-30',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_settlement_before_advance_date_rejected(self):
        response = self.client.post('/api/v1/member-advances/', {
            'project': self.project.pk,
            'member': self.member.pk,
            'amount': '5000.00',
            'purpose': 'Site petty cash',
            'payment_mode': 'CASH',
            'advance_date': '2024-06-10',
            'expected_settlement_date': '2024-06-01',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_member_rejected(self):
        outsider = TestDataFactory.create_user()
        response = self.client.post('/api/v1/member-advances/', {
            'project': self.project.pk,
            'member': outsider.pk,
            'amount': '10.00',
            'purpose': 'x',
            'payment_mode': 'CASH',
            'advance_date': '2024-06-10',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('member', response.data['error']['details'])

    def test_member_summary_counts_linked_expenses(self):
        advance = TestDataFactory.create_member_advance(self.project, self.member, amount=Decimal('1000'))
        TestDataFactory.create_member_advance(self.project, self.member, amount=Decimal('500'))
        TestDataFactory.create_expense(self.project, rate=Decimal('300'), member_advance=advance)
        TestDataFactory.create_expense(self.project, rate=Decimal('999'))  # not drawn from an advance

        response = self.client.get(
            f'/api/v1/member-advances/projects/{self.project.pk}/members/{self.member.pk}/summary/'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data['data']
        self.assertEqual(data['total_advanced'], 1500.0)
        self.assertEqual(data['spent'], 300.0)
        self.assertEqual(data['balance'], 1200.0)
        self.assertEqual(data['count'], 2)

    def test_project_summaries_and_member_balances(self):
        other_project = TestDataFactory.create_project(self.organization)
        TestDataFactory.create_member_advance(self.project, self.member, amount=Decimal('100'))
        TestDataFactory.create_member_advance(other_project, self.member, amount=Decimal('250'))

        response = self.client.get(f'/api/v1/member-advances/projects/{self.project.pk}/summaries/')
        self.assertEqual(len(response.data['data']), 1)
        self.assertEqual(response.data['data'][0]['member']['id'], self.member.pk)

        response = self.client.get(f'/api/v1/member-advances/members/{self.member.pk}/balances/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['data']['projects']), 2)
        self.assertEqual(response.data['data']['total_balance'], 350.0)

    def test_unknown_member(self):
        outsider = TestDataFactory.create_user()
        response = self.client.get(f'/api/v1/member-advances/members/{outsider.pk}/balances/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class StoreTests(FinanceTestCase):
    """Test the organization-scoped store"""

    def test_requires_organization(self):
        with self.assertRaises(ValueError):
            store.fetch_expenses(None)

    def test_queries_never_cross_organizations(self):
        other = TestDataFactory.create_organization()
        other_project = TestDataFactory.create_project(other)
        TestDataFactory.create_expense(other_project)
        TestDataFactory.create_expense(self.project)
        self.assertEqual(store.fetch_expenses(self.organization).count(), 1)
        self.assertEqual(store.fetch_expenses(self.organization, project=other_project).count(), 0)

    def test_party_stats(self):
        TestDataFactory.create_expense(self.project, party=self.vendor, rate=Decimal('700'))
        TestDataFactory.create_payment(self.project, amount=Decimal('200'), party=self.vendor)
        TestDataFactory.create_payment(self.project, amount=Decimal('900'), party=self.vendor, payment_type=Payment.IN)
        stats = store.party_stats(self.organization, self.vendor)
        self.assertEqual(stats['total_expenses'], Decimal('700'))
        self.assertEqual(stats['total_payments'], Decimal('200'))
        self.assertEqual(stats['balance'], Decimal('500'))

    def test_project_payment_summary(self):
        TestDataFactory.create_expense(self.project, rate=Decimal('400'))
        TestDataFactory.create_payment(self.project, amount=Decimal('1000'), payment_type=Payment.IN)
        summary = store.project_payment_summary(self.organization, self.project)
        self.assertEqual(summary['balance'], Decimal('600'))
        self.assertEqual(summary['expense_count'], 1)


class LargeAmountRepresentationTests(SimpleTestCase):
    """rate x quantity at the column limits still renders"""

    def setUp(self):
        self.expense = Expense(rate=Decimal('9999999999999.99'), quantity=Decimal('99999999999.9999'))

    def test_expense_amount(self):
        field = ExpenseSerializer().fields['amount']
        self.assertEqual(field.to_representation(self.expense.amount), self.expense.amount)

    def test_unpaid_expense_amounts(self):
        fields = UnpaidExpenseSerializer().fields
        for name in ('amount', 'amount_paid', 'amount_unpaid'):
            self.assertEqual(fields[name].to_representation(self.expense.amount), self.expense.amount)
