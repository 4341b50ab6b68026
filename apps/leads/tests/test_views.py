"""
CRM Views Tests
===============

Comprehensive tests for the CRM views.

Test Coverage:
1. Board view (columns + leads)
2. Lead create / detail / edit / delete / move
3. Column add / rename / delete / reorder
4. Proposals (create, edit, send, status, convert, pdf)
5. Interactions and appointments
6. Export (Excel / CSV)

Run tests:
    docker compose exec web python manage.py test apps.leads.tests.test_views
"""

import csv
import io
from decimal import Decimal

import openpyxl
from django.test import TestCase, Client
from django.urls import reverse
from django.contrib.auth import get_user_model
from apps.core.models import Environment
from apps.leads.models import Appointment, Interaction, KanbanColumn, Lead, Proposal
from apps.projects.models import Project
import json

User = get_user_model()


class CrmViewTestCase(TestCase):
    """Shared setup: one environment with a CRM user"""

    def setUp(self):
        self.client = Client()
        self.environment = Environment.objects.create(name='Studio Norte')
        self.user = User.objects.create_user(
            email='crm@studio.com',
            password='testpass123',
            name='Carla Dias',
            role='crm',
            environment=self.environment,
        )
        self.client.login(email='crm@studio.com', password='testpass123')

    def _post(self, url, payload=None):
        return self.client.post(url, data=json.dumps(payload or {}), content_type='application/json')

    def _column(self, key):
        return KanbanColumn.objects.get(environment=self.environment, key=key)


class BoardViewTest(CrmViewTestCase):

    def test_standard_user_denied(self):
        User.objects.create_user(email='ana@studio.com', password='testpass123', name='Ana', role='standard',
                                 environment=self.environment)
        client = Client()
        client.login(email='ana@studio.com', password='testpass123')

        self.assertEqual(client.get(reverse('leads:board')).status_code, 403)

    def test_board(self):
        Lead.objects.create(environment=self.environment, name='Marta', column=self._column('qualification'))

        response = self.client.get(reverse('leads:board'))

        self.assertEqual(response.status_code, 200)
        columns = {column['key']: column for column in response.json()['columns']}
        self.assertEqual(len(columns), 7)
        self.assertEqual(columns['qualification']['count'], 1)
        self.assertEqual(columns['qualification']['leads'][0]['name'], 'Marta')
        self.assertTrue(columns['lost']['protected'])

    def test_lead_without_column_goes_to_first_column(self):
        Lead.objects.create(environment=self.environment, name='Sem coluna')

        response = self.client.get(reverse('leads:board'))

        first = response.json()['columns'][0]
        self.assertEqual(first['key'], 'new-contact')
        self.assertEqual(first['leads'][0]['name'], 'Sem coluna')

    def test_board_search(self):
        Lead.objects.create(environment=self.environment, name='Marta', column=self._column('new-contact'))
        Lead.objects.create(environment=self.environment, name='Joao', column=self._column('new-contact'))

        response = self.client.get(reverse('leads:board'), {'search': 'mar'})

        self.assertEqual(response.json()['total_count'], 1)

    def test_board_is_tenant_scoped(self):
        other = Environment.objects.create(name='Atelier Sul')
        Lead.objects.create(environment=other, name='Outro')

        self.assertEqual(self.client.get(reverse('leads:board')).json()['total_count'], 0)


class LeadViewTest(CrmViewTestCase):

    def test_create_lead_defaults_to_first_column(self):
        response = self._post(reverse('leads:lead_create'), {
            'name': 'Marta Reis',
            'email': 'marta@mail.com',
            'project_type': 'residential',
            'tags': ['vip'],
        })

        self.assertEqual(response.status_code, 201)
        data = response.json()['lead']
        self.assertEqual(data['column'], 'new-contact')
        self.assertEqual(data['tags'], ['vip'])

    def test_create_lead_in_column(self):
        response = self._post(reverse('leads:lead_create'), {'name': 'Marta', 'column': 'negotiation'})

        self.assertEqual(response.json()['lead']['column'], 'negotiation')

    def test_create_lead_unknown_column(self):
        response = self._post(reverse('leads:lead_create'), {'name': 'Marta', 'column': 'nowhere'})

        self.assertEqual(response.status_code, 400)
        self.assertFalse(Lead.objects.exists())

    def test_create_lead_validation(self):
        response = self._post(reverse('leads:lead_create'), {'email': 'marta@mail.com'})

        self.assertEqual(response.status_code, 400)
        self.assertIn('name', response.json()['errors'])

    def test_detail(self):
        lead = Lead.objects.create(environment=self.environment, name='Marta')
        Interaction.objects.create(lead=lead, user=self.user, details='Called')

        response = self.client.get(reverse('leads:lead_detail', args=[lead.pk]))

        data = response.json()['lead']
        self.assertEqual(data['interactions'][0]['user'], 'Carla Dias')
        self.assertEqual(data['proposals'], [])

    def test_other_tenant_lead_is_404(self):
        other = Environment.objects.create(name='Atelier Sul')
        lead = Lead.objects.create(environment=other, name='Outro')

        self.assertEqual(self.client.get(reverse('leads:lead_detail', args=[lead.pk])).status_code, 404)

    def test_edit_lead(self):
        lead = Lead.objects.create(environment=self.environment, name='Marta')
        lead.tags.add('vip')

        response = self._post(reverse('leads:lead_edit', args=[lead.pk]), {
            'name': 'Marta Reis',
            'lost_reason': 'Price',
        })

        self.assertEqual(response.status_code, 200)
        lead.refresh_from_db()
        self.assertEqual(lead.name, 'Marta Reis')
        self.assertEqual(lead.lost_reason, 'Price')
        # Tags untouched when not sent
        self.assertEqual([tag.name for tag in lead.tags.all()], ['vip'])

    def test_delete_lead(self):
        lead = Lead.objects.create(environment=self.environment, name='Marta')

        response = self._post(reverse('leads:lead_delete', args=[lead.pk]))

        self.assertEqual(response.status_code, 200)
        self.assertFalse(Lead.objects.filter(pk=lead.pk).exists())

    def test_move_lead(self):
        lead = Lead.objects.create(environment=self.environment, name='Marta', column=self._column('new-contact'))

        response = self._post(reverse('leads:lead_move', args=[lead.pk]), {'column': 'lost', 'position': 0})

        self.assertEqual(response.status_code, 200)
        lead.refresh_from_db()
        self.assertEqual(lead.column.key, 'lost')

    def test_move_lead_invalid(self):
        lead = Lead.objects.create(environment=self.environment, name='Marta')

        self.assertEqual(self._post(reverse('leads:lead_move', args=[lead.pk]), {'column': 'nowhere'}).status_code, 400)
        self.assertEqual(
            self._post(reverse('leads:lead_move', args=[lead.pk]), {'column': 'lost', 'position': 'top'}).status_code,
            400,
        )


class ColumnViewTest(CrmViewTestCase):

    def test_add_column(self):
        response = self._post(reverse('leads:column_add'), {'label': 'Follow up'})

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['column']['key'], 'follow-up')

    def test_add_duplicate_column(self):
        response = self._post(reverse('leads:column_add'), {'label': 'Qualification'})
        self.assertEqual(response.status_code, 400)

    def test_rename_column_keeps_key(self):
        response = self._post(reverse('leads:column_rename', args=['qualification']), {'label': 'Qualificação'})

        self.assertEqual(response.status_code, 200)
        column = self._column('qualification')
        self.assertEqual(column.label, 'Qualificação')

    def test_delete_protected_column(self):
        response = self._post(reverse('leads:column_delete', args=['lost']))

        self.assertEqual(response.status_code, 400)
        self.assertTrue(KanbanColumn.objects.filter(environment=self.environment, key='lost').exists())

    def test_delete_column(self):
        response = self._post(reverse('leads:column_delete', args=['negotiation']))

        self.assertEqual(response.status_code, 200)
        self.assertFalse(KanbanColumn.objects.filter(environment=self.environment, key='negotiation').exists())

    def test_reorder_columns(self):
        keys = list(KanbanColumn.objects.filter(environment=self.environment).values_list('key', flat=True))
        keys = keys[1:] + keys[:1]

        response = self._post(reverse('leads:column_reorder'), {'keys': keys})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            list(KanbanColumn.objects.filter(environment=self.environment).values_list('key', flat=True)),
            keys,
        )

    def test_reorder_requires_list(self):
        response = self._post(reverse('leads:column_reorder'), {'keys': 'lost'})
        self.assertEqual(response.status_code, 400)


class ProposalViewTest(CrmViewTestCase):

    def setUp(self):
        super().setUp()
        self.lead = Lead.objects.create(environment=self.environment, name='Marta Reis', column=self._column('negotiation'))

    def _create(self, **extra):
        payload = {
            'title': 'Projeto Casa',
            'description': 'Reforma',
            'items': [{'name': 'Layout', 'description': 'Planta', 'value': 3000}, {'name': 'Executivo', 'value': 5000}],
        }
        payload.update(extra)
        return self._post(reverse('leads:proposal_create', args=[self.lead.pk]), payload)

    def test_create_fixed_proposal(self):
        response = self._create()

        self.assertEqual(response.status_code, 201)
        data = response.json()['proposal']
        self.assertEqual(data['total_value'], 8000.0)
        self.assertEqual(data['status'], 'draft')

    def test_create_invalid_proposal(self):
        response = self._create(items=[])

        self.assertEqual(response.status_code, 400)
        self.assertIn('items', response.json()['errors'])

    def test_edit_proposal(self):
        proposal_id = self._create().json()['proposal']['id']

        response = self._post(reverse('leads:proposal_edit', args=[proposal_id]), {
            'title': 'Projeto Casa v2',
            'charge_type': 'hourly',
            'hourly_rate': '200',
            'estimated_hours': '30',
            'items': [{'name': 'Horas técnicas'}],
        })

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['proposal']['total_value'], 6000.0)

    def test_send_and_accept(self):
        proposal_id = self._create().json()['proposal']['id']

        response = self._post(reverse('leads:proposal_mark_sent', args=[proposal_id]))
        self.assertIsNotNone(response.json()['proposal']['sent_at'])

        response = self._post(reverse('leads:proposal_change_status', args=[proposal_id]), {'status': 'accepted'})
        self.assertIsNotNone(response.json()['proposal']['accepted_at'])

    def test_change_status_invalid(self):
        proposal_id = self._create().json()['proposal']['id']

        response = self._post(reverse('leads:proposal_change_status', args=[proposal_id]), {'status': 'won'})

        self.assertEqual(response.status_code, 400)

    def test_convert(self):
        proposal_id = self._create(status='accepted').json()['proposal']['id']

        response = self._post(reverse('leads:proposal_convert', args=[proposal_id]))

        self.assertEqual(response.status_code, 201)
        project = Project.objects.get(pk=response.json()['project_id'])
        self.assertEqual(project.environment, self.environment)
        self.assertEqual(project.total_value, Decimal('8000.00'))
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.column.key, 'converted')

    def test_convert_draft_refused(self):
        proposal_id = self._create().json()['proposal']['id']

        response = self._post(reverse('leads:proposal_convert', args=[proposal_id]))

        self.assertEqual(response.status_code, 400)
        self.assertFalse(Project.objects.exists())

    def test_delete(self):
        proposal_id = self._create().json()['proposal']['id']

        self._post(reverse('leads:proposal_delete', args=[proposal_id]))

        self.assertFalse(Proposal.objects.filter(pk=proposal_id).exists())

    def test_pdf(self):
        proposal_id = self._create().json()['proposal']['id']

        response = self.client.get(reverse('leads:proposal_pdf', args=[proposal_id]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertIn('proposta_marta_reis_projeto_casa_', response['Content-Disposition'])


class InteractionAppointmentViewTest(CrmViewTestCase):

    def setUp(self):
        super().setUp()
        self.lead = Lead.objects.create(environment=self.environment, name='Marta Reis')

    def test_add_interaction(self):
        response = self._post(reverse('leads:interaction_add', args=[self.lead.pk]), {
            'interaction_type': 'call',
            'details': 'Discussed budget',
        })

        self.assertEqual(response.status_code, 201)
        interaction = Interaction.objects.get(lead=self.lead)
        self.assertEqual(interaction.user, self.user)
        self.assertIsNotNone(interaction.date)

    def test_add_interaction_requires_details(self):
        response = self._post(reverse('leads:interaction_add', args=[self.lead.pk]), {'interaction_type': 'call'})
        self.assertEqual(response.status_code, 400)

    def test_delete_interaction(self):
        interaction = Interaction.objects.create(lead=self.lead, details='x')

        self._post(reverse('leads:interaction_delete', args=[interaction.pk]))

        self.assertFalse(Interaction.objects.filter(pk=interaction.pk).exists())

    def test_appointments(self):
        response = self._post(reverse('leads:appointment_add', args=[self.lead.pk]), {
            'date_time': '2030-05-10T14:30:00',
            'description': 'Site visit',
        })

        self.assertEqual(response.status_code, 201)
        appointment_id = response.json()['appointment']['id']
        self.assertEqual(response.json()['appointment']['status'], 'pending')

        response = self._post(reverse('leads:appointment_change_status', args=[appointment_id]), {'status': 'postponed'})
        self.assertEqual(response.json()['appointment']['status'], 'postponed')

        self._post(reverse('leads:appointment_delete', args=[appointment_id]))
        self.assertFalse(Appointment.objects.filter(pk=appointment_id).exists())

    def test_appointment_requires_date(self):
        response = self._post(reverse('leads:appointment_add', args=[self.lead.pk]), {'description': 'Site visit'})

        self.assertEqual(response.status_code, 400)
        self.assertIn('date_time', response.json()['errors'])


class LeadExportViewTest(CrmViewTestCase):

    def setUp(self):
        super().setUp()
        Lead.objects.create(environment=self.environment, name='Marta Reis', email='marta@mail.com',
                            column=self._column('qualification'), project_type='commercial')

    def test_export_excel(self):
        response = self.client.get(reverse('leads:lead_export'), {'format': 'excel'})

        self.assertEqual(response.status_code, 200)
        self.assertIn('.xlsx', response['Content-Disposition'])

        workbook = openpyxl.load_workbook(io.BytesIO(response.content))
        sheet = workbook.active
        self.assertEqual(sheet.cell(row=1, column=2).value, 'Name')
        self.assertEqual(sheet.cell(row=2, column=2).value, 'Marta Reis')
        self.assertEqual(sheet.cell(row=2, column=6).value, 'Qualification')

    def test_export_csv(self):
        response = self.client.get(reverse('leads:lead_export'), {'format': 'csv'})

        self.assertEqual(response.status_code, 200)
        content = response.content.decode('utf-8')
        self.assertTrue(content.startswith('\ufeff'))

        rows = list(csv.reader(io.StringIO(content.lstrip('\ufeff'))))
        self.assertEqual(rows[0][:3], ['ID', 'Name', 'Email'])
        self.assertEqual(rows[1][1], 'Marta Reis')
        self.assertEqual(rows[1][7], 'Commercial')

    def test_export_invalid_format(self):
        response = self.client.get(reverse('leads:lead_export'), {'format': 'pdf'})
        self.assertEqual(response.status_code, 400)
