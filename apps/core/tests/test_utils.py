"""
Environment Resolution Tests
============================

Test Coverage:
1. Environment provisioning (settings row + default board)
2. Workspace scoping and caching
3. Date range parsing

Run tests:
    docker compose exec web python manage.py test apps.core.tests.test_utils
"""

from datetime import date
from decimal import Decimal

from django.test import TestCase, RequestFactory, override_settings
from django.utils import timezone

from apps.core.models import Environment, EnvironmentSettings
from apps.core import utils as core_utils
from apps.core.utils import clear_workspace_cache, get_workspace, parse_date_range
from apps.leads.models import KanbanColumn, Lead
from apps.projects.models import Project


class EnvironmentProvisioningTest(TestCase):

    def test_db_name_generated(self):
        environment = Environment.objects.create(name='Studio Norte & Co')

        self.assertTrue(environment.db_name.startswith('GeniusERPDB_Env_Studio_Norte___Co_'))

    def test_db_name_not_regenerated_on_save(self):
        environment = Environment.objects.create(name='Studio Norte')
        db_name = environment.db_name

        environment.name = 'Studio Sul'
        environment.save()

        self.assertEqual(environment.db_name, db_name)

    def test_settings_created_with_defaults(self):
        environment = Environment.objects.create(name='Studio Norte')

        env_settings = EnvironmentSettings.objects.get(environment=environment)
        self.assertEqual(env_settings.default_hourly_rate, Decimal('120'))
        self.assertEqual(env_settings.default_billing_type, 'fixed')
        self.assertEqual(env_settings.deadline_warning_days, 7)
        self.assertEqual(env_settings.report_layout, 'simple')

    def test_default_kanban_columns(self):
        environment = Environment.objects.create(name='Studio Norte')

        keys = list(KanbanColumn.objects.filter(environment=environment).values_list('key', flat=True))
        self.assertEqual(keys, ['new-contact', 'qualification', 'proposal-sent', 'negotiation', 'accepted', 'converted', 'lost'])

    def test_toggle_status(self):
        environment = Environment.objects.create(name='Studio Norte')

        self.assertFalse(environment.toggle_status())
        self.assertTrue(environment.toggle_status())


class WorkspaceTest(TestCase):

    def setUp(self):
        self.env_a = Environment.objects.create(name='Studio A')
        self.env_b = Environment.objects.create(name='Studio B')

        Project.objects.create(environment=self.env_a, client_name='Casa A', description='-', total_value=1000)
        Project.objects.create(environment=self.env_b, client_name='Casa B', description='-', total_value=1000)
        Lead.objects.create(environment=self.env_b, name='Lead B')

    def test_querysets_are_scoped(self):
        workspace = get_workspace(self.env_a.pk)

        self.assertEqual([p.client_name for p in workspace.projects()], ['Casa A'])
        self.assertEqual(workspace.leads().count(), 0)
        self.assertEqual(get_workspace(self.env_b.pk).leads().count(), 1)

    def test_workspace_is_cached_per_environment(self):
        self.assertIs(get_workspace(self.env_a.pk), get_workspace(self.env_a.pk))
        self.assertIsNot(get_workspace(self.env_a.pk), get_workspace(self.env_b.pk))

    def test_unknown_environment(self):
        with self.assertRaises(Environment.DoesNotExist):
            get_workspace(999999)

    def test_workspace_settings(self):
        self.assertEqual(get_workspace(self.env_a.pk).settings.environment, self.env_a)

    def test_clear_workspace_cache(self):
        workspace = get_workspace(self.env_a.pk)

        clear_workspace_cache()

        self.assertNotIn(self.env_a.db_name, core_utils._workspaces)
        self.assertIsNot(get_workspace(self.env_a.pk), workspace)

    def test_deleting_environment_evicts_workspace(self):
        get_workspace(self.env_a.pk)
        get_workspace(self.env_b.pk)
        db_name = self.env_a.db_name

        self.env_a.delete()

        self.assertNotIn(db_name, core_utils._workspaces)
        self.assertIn(self.env_b.db_name, core_utils._workspaces)


class DateRangeTest(TestCase):

    def setUp(self):
        self.factory = RequestFactory()

    def test_explicit_range(self):
        start, end = parse_date_range(self.factory.get('/', {'start': '2024-01-01', 'end': '2024-01-31'}))

        self.assertEqual(timezone.localtime(start).date(), date(2024, 1, 1))
        self.assertEqual(timezone.localtime(end).date(), date(2024, 1, 31))
        self.assertEqual(timezone.localtime(end).hour, 23)

    @override_settings(DASHBOARD_DEFAULT_RANGE_DAYS=30)
    def test_default_range(self):
        start, end = parse_date_range(self.factory.get('/'))

        self.assertEqual((timezone.localtime(end).date() - timezone.localtime(start).date()).days, 29)
        self.assertEqual(timezone.localtime(end).date(), timezone.localdate())

    def test_start_after_end(self):
        with self.assertRaises(ValueError):
            parse_date_range(self.factory.get('/', {'start': '2024-02-01', 'end': '2024-01-01'}))

    def test_malformed_date(self):
        with self.assertRaises(ValueError):
            parse_date_range(self.factory.get('/', {'start': '01/02/2024'}))
