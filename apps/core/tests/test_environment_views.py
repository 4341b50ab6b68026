"""
Environment Administration Views Tests
======================================

Test Coverage:
1. List / create / edit environments
2. Toggle status and delete
3. Environment selection (admin session)

Run tests:
    docker compose exec web python manage.py test apps.core.tests.test_environment_views
"""

from django.test import TestCase, Client
from django.urls import reverse
from django.contrib.auth import get_user_model
from apps.core.models import Environment
from apps.leads.models import KanbanColumn
import json

User = get_user_model()


class EnvironmentAdminViewTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.admin_user = User.objects.create_superuser(email='admin@geniuserp.com', password='testpass123')
        self.environment = Environment.objects.create(name='Studio Norte', company_name='Norte Arquitetura')
        self.client.login(email='admin@geniuserp.com', password='testpass123')

    def _post(self, url, payload=None):
        return self.client.post(url, data=json.dumps(payload or {}), content_type='application/json')

    def test_requires_admin(self):
        User.objects.create_user(email='owner@studio.com', password='testpass123', name='Owner',
                                 role='owner', environment=self.environment)
        client = Client()
        client.login(email='owner@studio.com', password='testpass123')

        response = client.get(reverse('core:environment_list'))

        self.assertEqual(response.status_code, 403)

    def test_list_environments_with_user_counts(self):
        User.objects.create_user(email='ana@studio.com', password='testpass123', name='Ana', environment=self.environment)
        User.objects.create_user(email='rui@studio.com', password='testpass123', name='Rui', environment=self.environment,
                                 is_active=False)

        response = self.client.get(reverse('core:environment_list'))

        environments = response.json()['environments']
        self.assertEqual(len(environments), 1)
        self.assertEqual(environments[0]['users_count'], 2)
        self.assertEqual(environments[0]['active_users_count'], 1)

    def test_list_search(self):
        Environment.objects.create(name='Atelier Sul')

        response = self.client.get(reverse('core:environment_list'), {'search': 'norte'})

        self.assertEqual([e['name'] for e in response.json()['environments']], ['Studio Norte'])

    def test_create_environment_with_owner(self):
        """
        Test: Creating an environment also creates its owner

        Expected: 201, owner can log in with the primary contact email
        """
        response = self._post(reverse('core:environment_create'), {
            'name': 'Atelier Sul',
            'company_name': 'Atelier Sul Ltda',
            'sector': 'architecture',
            'primary_contact_name': 'Marta Reis',
            'primary_contact_email': 'Marta@AtelierSul.com',
            'owner_password': 'secret123',
            'owner_confirm_password': 'secret123',
        })

        self.assertEqual(response.status_code, 201)
        environment = Environment.objects.get(name='Atelier Sul')
        owner = User.objects.get(email='marta@ateliersul.com')
        self.assertEqual(owner.role, 'owner')
        self.assertEqual(owner.environment, environment)
        self.assertTrue(owner.check_password('secret123'))
        self.assertTrue(KanbanColumn.objects.filter(environment=environment).exists())

    def test_create_environment_requires_contact_email(self):
        response = self._post(reverse('core:environment_create'), {
            'name': 'Atelier Sul',
            'owner_password': 'secret123',
            'owner_confirm_password': 'secret123',
        })

        self.assertEqual(response.status_code, 400)
        self.assertIn('primary_contact_email', response.json()['errors'])
        self.assertFalse(Environment.objects.filter(name='Atelier Sul').exists())

    def test_create_environment_duplicate_owner_email(self):
        response = self._post(reverse('core:environment_create'), {
            'name': 'Atelier Sul',
            'primary_contact_email': 'admin@geniuserp.com',
            'owner_password': 'secret123',
            'owner_confirm_password': 'secret123',
        })

        self.assertEqual(response.status_code, 400)
        self.assertIn('primary_contact_email', response.json()['errors'])

    def test_edit_environment(self):
        db_name = self.environment.db_name

        response = self._post(reverse('core:environment_edit', args=[self.environment.pk]), {
            'name': 'Studio Norte 2',
            'phone': '11 99999-0000',
        })

        self.assertEqual(response.status_code, 200)
        self.environment.refresh_from_db()
        self.assertEqual(self.environment.name, 'Studio Norte 2')
        self.assertEqual(self.environment.db_name, db_name)

    def test_toggle_status(self):
        response = self._post(reverse('core:environment_toggle_status', args=[self.environment.pk]))

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()['is_active'])

    def test_delete_refused_with_users(self):
        User.objects.create_user(email='ana@studio.com', password='testpass123', name='Ana', environment=self.environment)

        response = self._post(reverse('core:environment_delete', args=[self.environment.pk]))

        self.assertEqual(response.status_code, 400)
        self.assertTrue(Environment.objects.filter(pk=self.environment.pk).exists())

    def test_delete_clears_selection(self):
        self._post(reverse('core:environment_select', args=[self.environment.pk]))

        response = self._post(reverse('core:environment_delete', args=[self.environment.pk]))

        self.assertEqual(response.status_code, 200)
        self.assertFalse(Environment.objects.filter(pk=self.environment.pk).exists())
        self.assertNotIn('selected_environment_id', self.client.session)

    def test_select_environment(self):
        response = self._post(reverse('core:environment_select', args=[self.environment.pk]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.session['selected_environment_id'], self.environment.pk)

        # Tenant views now resolve to the selected environment
        response = self.client.get(reverse('projects:project_list'))
        self.assertEqual(response.status_code, 200)

    def test_select_unknown_environment(self):
        response = self._post(reverse('core:environment_select', args=[999999]))
        self.assertEqual(response.status_code, 404)

    def test_clear_selection(self):
        self._post(reverse('core:environment_select', args=[self.environment.pk]))
        self._post(reverse('core:environment_clear_selection'))

        response = self.client.get(reverse('projects:project_list'))
        self.assertEqual(response.status_code, 403)

    def test_environment_users(self):
        User.objects.create_user(email='ana@studio.com', password='testpass123', name='Ana', environment=self.environment)

        response = self.client.get(reverse('core:environment_users', args=[self.environment.pk]))

        self.assertEqual([u['email'] for u in response.json()['users']], ['ana@studio.com'])
