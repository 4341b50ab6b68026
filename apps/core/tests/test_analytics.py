"""
Dashboard Analytics Tests
=========================

Test Coverage:
1. Key indicators
2. Financial analysis (hourly vs fixed, deficit)
3. CRM analytics
4. Charts (revenue, pipeline, project types)
5. Dashboard endpoints

Run tests:
    docker compose exec web python manage.py test apps.core.tests.test_analytics
"""

from datetime import datetime, timedelta
from decimal import Decimal

from django.test import TestCase, Client
from django.urls import reverse
from django.utils import timezone
from django.contrib.auth import get_user_model

from apps.core import analytics
from apps.core.models import Environment
from apps.core.utils import get_workspace
from apps.leads.models import Interaction, KanbanColumn, Lead, Proposal
from apps.projects.models import Project, TimeEntry

User = get_user_model()


def aware(*args):
    return timezone.make_aware(datetime(*args))


class AnalyticsTestMixin:

    def setUp(self):
        self.environment = Environment.objects.create(name='Studio Norte')
        self.workspace = get_workspace(self.environment.pk)
        self.start = aware(2024, 3, 1)
        self.end = aware(2024, 3, 31, 23, 59, 59)

        self.hourly = Project.objects.create(
            environment=self.environment, client_name='Loja Centro', description='-',
            billing_type='hourly', hourly_rate=Decimal('100'), project_type='commercial',
            status='in_progress', created_at=aware(2024, 3, 5),
        )
        self.fixed = Project.objects.create(
            environment=self.environment, client_name='Casa Verde', description='-',
            billing_type='fixed', total_value=Decimal('1000'), created_at=aware(2024, 3, 10),
        )

        hourly_stage = self.hourly.add_stage('Layout')
        fixed_stage = self.fixed.add_stage('Briefing')

        # 2h on the hourly project, 20h on the fixed one (in March)
        self._entry(hourly_stage, aware(2024, 3, 6, 9), 7200)
        self._entry(fixed_stage, aware(2024, 3, 11, 9), 72000)
        # Outside the range
        self._entry(hourly_stage, aware(2024, 4, 2, 9), 3600)

    def _entry(self, stage, start, duration):
        return TimeEntry.objects.create(stage=stage, start_time=start, end_time=start + timedelta(seconds=duration), duration=duration)


class KeyIndicatorsTest(AnalyticsTestMixin, TestCase):

    def test_hours_and_revenue(self):
        data = analytics.key_indicators(self.workspace, self.start, self.end, now=aware(2024, 3, 20))

        self.assertEqual(data['projects_in_progress'], 1)
        self.assertEqual(data['hours_worked'], 22.0)
        self.assertEqual(data['hourly_revenue_accumulated'], 200.0)
        self.assertEqual(data['fixed_revenue_forecast'], 1000.0)

    def test_completed_this_month(self):
        self.fixed.change_status('completed')

        data = analytics.key_indicators(self.workspace, self.start, self.end)

        self.assertEqual(data['projects_completed_this_month'], 1)
        self.assertEqual(data['fixed_revenue_forecast'], 0.0)

    def test_proposal_indicators(self):
        lead = Lead.objects.create(environment=self.environment, name='Marta')
        Proposal.objects.create(lead=lead, title='A', total_value=Decimal('3000'), status='accepted')
        Proposal.objects.create(lead=lead, title='B', total_value=Decimal('1000'), status='accepted')
        Proposal.objects.create(lead=lead, title='C', total_value=Decimal('500'), status='sent')
        Proposal.objects.create(lead=lead, title='D', total_value=Decimal('500'), status='draft')

        data = analytics.key_indicators(self.workspace, self.start, self.end)

        self.assertEqual(data['avg_accepted_proposal_value'], 2000.0)
        self.assertEqual(data['proposals_pending'], 1)
        self.assertEqual(data['proposal_conversion_rate'], 66.7)

    def test_no_proposals(self):
        data = analytics.key_indicators(self.workspace, self.start, self.end)

        self.assertIsNone(data['proposal_conversion_rate'])
        self.assertEqual(data['avg_accepted_proposal_value'], 0.0)


class FinancialAnalysisTest(AnalyticsTestMixin, TestCase):

    def test_rows(self):
        rows = {row['client_name']: row for row in analytics.financial_analysis(self.workspace, self.start, self.end)}

        hourly = rows['Loja Centro']
        self.assertEqual(hourly['hours_logged'], 2.0)
        self.assertEqual(hourly['revenue'], 200.0)
        self.assertIsNone(hourly['margin_estimated'])
        self.assertFalse(hourly['deficit'])

        # 20h x 75 (default cost rate) = 1500 > 1000
        fixed = rows['Casa Verde']
        self.assertEqual(fixed['cost_realized'], 1500.0)
        self.assertEqual(fixed['margin_estimated'], -500.0)
        self.assertTrue(fixed['deficit'])

    def test_inactive_projects_excluded(self):
        Project.objects.create(
            environment=self.environment, client_name='Antigo', description='-',
            total_value=Decimal('10'), created_at=aware(2023, 1, 1),
        )

        names = [row['client_name'] for row in analytics.financial_analysis(self.workspace, self.start, self.end)]

        self.assertNotIn('Antigo', names)


class CrmAnalyticsTest(AnalyticsTestMixin, TestCase):

    def test_crm_analytics(self):
        lost = KanbanColumn.objects.get(environment=self.environment, key='lost')
        marta = Lead.objects.create(environment=self.environment, name='Marta')
        joao = Lead.objects.create(environment=self.environment, name='Joao')
        Lead.objects.create(environment=self.environment, name='Perdido 1', column=lost, lost_reason='Price')
        Lead.objects.create(environment=self.environment, name='Perdido 2', column=lost, lost_reason='Price')
        Lead.objects.create(environment=self.environment, name='Perdido 3', column=lost)

        Proposal.objects.create(
            lead=marta, title='A', total_value=Decimal('5000'), status='accepted',
            created_at=aware(2024, 3, 2), sent_at=aware(2024, 3, 2), accepted_at=aware(2024, 3, 12),
        )
        Proposal.objects.create(
            lead=joao, title='B', total_value=Decimal('8000'), status='accepted',
            created_at=aware(2024, 3, 3), sent_at=aware(2024, 3, 3), accepted_at=aware(2024, 3, 7),
        )
        Interaction.objects.create(lead=marta, details='Called')

        data = analytics.crm_analytics(self.workspace, self.start, self.end)

        self.assertEqual(data['average_conversion_days'], 7)
        self.assertEqual(data['top_clients_by_value'][0], {'name': 'Joao', 'total_value': 8000.0})
        self.assertEqual(data['top_lost_reasons'][0], {'reason': 'Price', 'count': 2})
        self.assertIn({'reason': 'Not informed', 'count': 1}, data['top_lost_reasons'])
        self.assertEqual(data['recent_interactions'][0]['details'], 'Called')

    def test_conversion_days_truncate_and_round_half_up(self):
        marta = Lead.objects.create(environment=self.environment, name='Marta')
        # Accepted a day and a half before it was marked sent
        Proposal.objects.create(
            lead=marta, title='A', total_value=Decimal('100'), status='accepted',
            created_at=aware(2024, 3, 9), sent_at=aware(2024, 3, 10, 12), accepted_at=aware(2024, 3, 9),
        )
        Proposal.objects.create(
            lead=marta, title='B', total_value=Decimal('100'), status='accepted',
            created_at=aware(2024, 3, 2), sent_at=aware(2024, 3, 2), accepted_at=aware(2024, 3, 8, 20),
        )

        data = analytics.crm_analytics(self.workspace, self.start, self.end)

        # (-1 + 6) / 2 = 2.5
        self.assertEqual(data['average_conversion_days'], 3)


class ChartsTest(AnalyticsTestMixin, TestCase):

    def test_revenue_chart_range(self):
        points = analytics.revenue_chart(self.workspace, aware(2024, 2, 1), aware(2024, 4, 30, 23, 59))

        self.assertEqual([p['month'] for p in points], ['Feb/24', 'Mar/24', 'Apr/24'])
        self.assertEqual(points[1]['fixed_revenue'], 1000.0)
        self.assertEqual(points[1]['hourly_revenue'], 200.0)
        self.assertEqual(points[2]['hourly_revenue'], 100.0)

    def test_revenue_chart_defaults_to_twelve_months(self):
        points = analytics.revenue_chart(self.workspace, now=aware(2024, 6, 15))

        self.assertEqual(len(points), 12)
        self.assertEqual(points[0]['month'], 'Jul/23')
        self.assertEqual(points[-1]['month'], 'Jun/24')

    def test_sales_pipeline(self):
        Lead.objects.create(
            environment=self.environment, name='Marta', created_at=aware(2024, 3, 4),
            column=KanbanColumn.objects.get(environment=self.environment, key='new-contact'),
        )

        pipeline = analytics.sales_pipeline(self.workspace, self.start, self.end)

        self.assertEqual(pipeline[0], {'key': 'new-contact', 'label': 'New contact', 'count': 1})
        self.assertEqual(len(pipeline), 7)

    def test_project_type_distribution(self):
        distribution = analytics.project_type_distribution(self.workspace, self.start, self.end)

        self.assertEqual(
            {row['type']: row['count'] for row in distribution},
            {'commercial': 1, 'residential': 1},
        )


class DashboardViewTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.environment = Environment.objects.create(name='Studio Norte')
        User.objects.create_user(email='manager@studio.com', password='testpass123', name='Manager',
                                 role='manager', environment=self.environment)
        User.objects.create_user(email='ana@studio.com', password='testpass123', name='Ana',
                                 role='standard', environment=self.environment)

    def test_standard_user_denied(self):
        self.client.login(email='ana@studio.com', password='testpass123')
        self.assertEqual(self.client.get(reverse('core:dashboard')).status_code, 403)

    def test_dashboard(self):
        self.client.login(email='manager@studio.com', password='testpass123')

        response = self.client.get(reverse('core:dashboard'), {'start': '2024-01-01', 'end': '2024-03-31'})

        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertEqual(data['start'], '2024-01-01')
        self.assertEqual(data['end'], '2024-03-31')
        self.assertEqual(len(data['revenue_chart']), 3)
        for key in ('key_indicators', 'financial_analysis', 'crm_analytics', 'sales_pipeline', 'project_type_distribution'):
            self.assertIn(key, data)

    def test_single_endpoints(self):
        self.client.login(email='manager@studio.com', password='testpass123')

        for name in ('key_indicators', 'financial_analysis', 'crm_analytics', 'revenue_chart',
                     'sales_pipeline', 'project_type_distribution'):
            with self.subTest(endpoint=name):
                response = self.client.get(reverse(f'core:{name}'))
                self.assertEqual(response.status_code, 200)
                self.assertTrue(response.json()['success'])

    def test_invalid_range(self):
        self.client.login(email='manager@studio.com', password='testpass123')

        response = self.client.get(reverse('core:key_indicators'), {'start': '2024-05-01', 'end': '2024-01-01'})

        self.assertEqual(response.status_code, 400)
