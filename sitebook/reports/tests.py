"""
Test suite for the reports module
Tests: overview sections, KPIs, alerts, caching and cache invalidation
"""
from datetime import timedelta
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from sitebook.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from sitebook.finance.models import Payment
from sitebook.parties.models import Party
from sitebook.projects.models import Project, Task
from sitebook.reports.overview import OVERVIEW_SECTIONS, build_overview


class OverviewTestCase(TestCase):

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(user=self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user, self.organization)

        self.vendor = TestDataFactory.create_party(self.organization, name='Cement Depot')
        self.buyer = TestDataFactory.create_party(self.organization, name='Mr. Rao', party_type=Party.CLIENT)

        # 90% of budget used
        self.villa = TestDataFactory.create_project(self.organization, name='Villa', amount=Decimal('10000'),
                                                    client=self.buyer)
        TestDataFactory.create_expense(self.villa, party=self.vendor, rate=Decimal('9000'))
        TestDataFactory.create_payment(self.villa, amount=Decimal('4000'), payment_type=Payment.IN)
        TestDataFactory.create_payment(self.villa, amount=Decimal('2000'), party=self.vendor)

        # over budget
        self.shed = TestDataFactory.create_project(self.organization, name='Shed', amount=Decimal('1000'))
        TestDataFactory.create_expense(self.shed, rate=Decimal('1500'))

        self.done = TestDataFactory.create_project(self.organization, name='Done', amount=Decimal('5000'),
                                                   status=Project.COMPLETED)

    def get_overview(self):
        response = self.client.get('/api/v1/reports/overview/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        return response.data['data']

    def alert(self, data, alert_type):
        return next((row for row in data['alerts'] if row['type'] == alert_type), None)


class OverviewContentTests(OverviewTestCase):
    """Test the figures of each overview section"""

    def test_has_every_section(self):
        self.assertEqual(set(self.get_overview()), set(OVERVIEW_SECTIONS))

    def test_kpi_stats(self):
        kpis = self.get_overview()['kpi_stats']
        self.assertEqual(kpis['active_projects'], 2)
        self.assertEqual(kpis['outstanding_receivables'], 7000.0)
        self.assertEqual(kpis['outstanding_payables'], 8500.0)
        self.assertEqual(kpis['attention_needed'], 1)

    def test_status_breakdown(self):
        breakdown = self.get_overview()['project_status_breakdown']
        self.assertEqual(breakdown, {'active': 2, 'on_hold': 0, 'completed': 1})

    def test_projects_pl_sorted_by_health(self):
        rows = self.get_overview()['projects_pl']
        self.assertEqual([row['name'] for row in rows], ['Shed', 'Villa', 'Done'])
        self.assertEqual(rows[0]['health_percent'], 150)
        self.assertEqual(rows[0]['remaining'], -500.0)
        self.assertEqual(rows[1]['client_name'], 'Mr. Rao')

    def test_alerts(self):
        data = self.get_overview()
        self.assertEqual(self.alert(data, 'budget_overrun')['items'][0]['name'], 'Shed')
        self.assertEqual(self.alert(data, 'budget_overrun')['items'][0]['detail'], 'Over by 500')
        self.assertEqual(self.alert(data, 'approaching_limit')['items'][0]['name'], 'Villa')
        self.assertEqual(self.alert(data, 'pending_expense')['count'], 2)
        self.assertIsNone(self.alert(data, 'overdue_stage'))

    def test_overdue_stage(self):
        TestDataFactory.create_stage(self.villa, name='Slab', end_date=timezone.localdate() - timedelta(days=5))
        data = self.get_overview()
        overdue = self.alert(data, 'overdue_stage')
        self.assertEqual(overdue['count'], 1)
        self.assertEqual(overdue['items'][0]['detail'], 'Villa - 5 days overdue')
        self.assertEqual(data['kpi_stats']['attention_needed'], 2)
        self.assertTrue(next(row for row in data['projects_pl'] if row['name'] == 'Villa')['is_overdue'])

    def test_outstanding_payables(self):
        rows = self.get_overview()['outstanding_payables']
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['name'], 'Cement Depot')
        self.assertEqual(rows[0]['amount'], 7000.0)
        self.assertEqual(rows[0]['age_days'], 0)

    def test_outstanding_receivables(self):
        rows = self.get_overview()['outstanding_receivables']
        self.assertEqual([row['name'] for row in rows], ['Mr. Rao', 'Shed'])
        self.assertEqual([row['amount'] for row in rows], [6000.0, 1000.0])
        self.assertEqual(rows[0]['age_days'], 30)

    def test_credits_summary(self):
        credits = self.get_overview()['credits_summary']
        self.assertEqual(credits['vendors']['balance'], 7000.0)
        self.assertEqual(credits['total'], 7000.0)

    def test_today_tasks(self):
        stage = TestDataFactory.create_stage(self.villa)
        TestDataFactory.create_task(stage, name='Shuttering', status=Task.IN_PROGRESS)
        TestDataFactory.create_task(stage, name='Curing', status=Task.COMPLETED)
        tasks = self.get_overview()['today_tasks']
        self.assertEqual([task['name'] for task in tasks], ['Shuttering'])
        self.assertEqual(tasks[0]['project_name'], 'Villa')

    def test_recent_projects_progress(self):
        TestDataFactory.create_stage(self.villa, budget_amount=Decimal('18000'))
        rows = {row['name']: row for row in self.get_overview()['recent_projects']}
        self.assertEqual(rows['Villa']['progress'], 50)
        self.assertEqual(rows['Done']['progress'], 0)

    def test_other_organization_is_isolated(self):
        other = TestDataFactory.create_organization()
        TestDataFactory.create_expense(TestDataFactory.create_project(other), rate=Decimal('99999'))
        kpis = self.get_overview()['kpi_stats']
        self.assertEqual(kpis['active_projects'], 2)
        self.assertEqual(kpis['outstanding_payables'], 8500.0)

    def test_empty_organization(self):
        empty = TestDataFactory.create_organization()
        data = build_overview(empty.pk)
        self.assertEqual(data['kpi_stats']['active_projects'], 0)
        self.assertEqual(data['projects_pl'], [])
        self.assertEqual(data['alerts'], [])


class OverviewSectionTests(OverviewTestCase):
    """Test the single-section endpoint"""

    def test_section(self):
        response = self.client.get('/api/v1/reports/overview/kpi_stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['active_projects'], 2)

    def test_unknown_section(self):
        response = self.client.get('/api/v1/reports/overview/weather/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error']['code'], 'NOT_FOUND')

    def test_client_role_can_read(self):
        viewer = TestDataFactory.create_user()
        TestDataFactory.add_member(self.organization, user=viewer, role_name='CLIENT')
        client = AuthenticatedAPIClient()
        client.authenticate_user(viewer, self.organization)
        self.assertEqual(client.get('/api/v1/reports/overview/').status_code, status.HTTP_200_OK)


class OverviewCacheTests(OverviewTestCase):
    """Test caching of the overview and its invalidation"""

    def test_overview_is_cached(self):
        self.get_overview()
        self.assertIsNotNone(cache.get(build_overview.cache_key(self.organization.pk)))
        # queryset.update sends no signals, so the cached payload is served
        Project.objects.filter(pk=self.shed.pk).update(status=Project.COMPLETED)
        self.assertEqual(self.get_overview()['kpi_stats']['active_projects'], 2)

    def test_saving_a_row_invalidates_after_commit(self):
        self.get_overview()
        with self.captureOnCommitCallbacks(execute=True):
            TestDataFactory.create_expense(self.villa, party=self.vendor, rate=Decimal('500'))
        self.assertIsNone(cache.get(build_overview.cache_key(self.organization.pk)))
        self.assertEqual(self.get_overview()['kpi_stats']['outstanding_payables'], 9000.0)

    def test_deleting_a_row_invalidates(self):
        self.get_overview()
        with self.captureOnCommitCallbacks(execute=True):
            self.shed.delete()
        self.assertEqual(self.get_overview()['kpi_stats']['active_projects'], 1)

    def test_api_write_invalidates(self):
        self.get_overview()
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.patch(f'/api/v1/projects/{self.shed.pk}/', {'status': 'ON_HOLD'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        breakdown = self.get_overview()['project_status_breakdown']
        self.assertEqual(breakdown['on_hold'], 1)

    def test_other_organization_cache_untouched(self):
        other_user = TestDataFactory.create_user()
        other = TestDataFactory.create_organization(user=other_user)
        build_overview(other.pk)
        with self.captureOnCommitCallbacks(execute=True):
            TestDataFactory.create_expense(self.villa, rate=Decimal('1'))
        self.assertIsNotNone(cache.get(build_overview.cache_key(other.pk)))
