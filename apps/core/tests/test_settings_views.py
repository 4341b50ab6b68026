"""
Environment Settings Views Tests
================================

Run tests:
    docker compose exec web python manage.py test apps.core.tests.test_settings_views
"""

import shutil
import tempfile
from decimal import Decimal

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, Client, override_settings
from django.urls import reverse
from django.contrib.auth import get_user_model
from apps.core.models import Environment
import json

User = get_user_model()

TINY_GIF = (
    b'GIF89a\x01\x00\x01\x00\x80\x00\x00\x00\x00\x00\xff\xff\xff!\xf9\x04\x01\x00\x00\x00\x00'
    b',\x00\x00\x00\x00\x01\x00\x01\x00\x00\x02\x02D\x01\x00;'
)

MEDIA_ROOT = tempfile.mkdtemp()


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class SettingsViewTest(TestCase):

    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        self.client = Client()
        self.environment = Environment.objects.create(name='Studio Norte')
        User.objects.create_user(email='owner@studio.com', password='testpass123', name='Owner',
                                 role='owner', environment=self.environment)
        User.objects.create_user(email='manager@studio.com', password='testpass123', name='Manager',
                                 role='manager', environment=self.environment)
        self.client.login(email='owner@studio.com', password='testpass123')

    def _update(self, payload):
        return self.client.post(reverse('core:settings_update'), data=json.dumps(payload), content_type='application/json')

    def test_manager_cannot_open_settings(self):
        client = Client()
        client.login(email='manager@studio.com', password='testpass123')

        self.assertEqual(client.get(reverse('core:settings')).status_code, 403)

    def test_get_settings(self):
        response = self.client.get(reverse('core:settings'))

        data = response.json()['settings']
        self.assertEqual(data['default_hourly_rate'], 120.0)
        self.assertEqual(data['environment']['name'], 'Studio Norte')

    def test_partial_update(self):
        response = self._update({'default_hourly_rate': '150.00', 'report_layout': 'detailed'})

        self.assertEqual(response.status_code, 200)
        env_settings = self.environment.get_settings()
        self.assertEqual(env_settings.default_hourly_rate, Decimal('150.00'))
        self.assertEqual(env_settings.report_layout, 'detailed')
        # Untouched fields keep their values
        self.assertEqual(env_settings.deadline_warning_days, 7)
        self.assertTrue(env_settings.enable_deadline_warning)

    def test_invalid_rate(self):
        response = self._update({'default_hourly_rate': '0'})

        self.assertEqual(response.status_code, 400)
        self.assertIn('default_hourly_rate', response.json()['errors'])

    def test_invalid_layout(self):
        response = self._update({'report_layout': 'fancy'})
        self.assertEqual(response.status_code, 400)

    def test_upload_and_remove_logo(self):
        response = self.client.post(reverse('core:settings_image_upload'), {
            'field': 'logo_image',
            'image': SimpleUploadedFile('logo.gif', TINY_GIF, content_type='image/gif'),
        })

        self.assertEqual(response.status_code, 200)
        self.assertIsNotNone(response.json()['settings']['logo_image'])

        response = self.client.post(
            reverse('core:settings_image_remove'),
            data=json.dumps({'field': 'logo_image'}),
            content_type='application/json',
        )

        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.json()['settings']['logo_image'])

    def test_upload_rejects_non_image(self):
        response = self.client.post(reverse('core:settings_image_upload'), {
            'field': 'signature_image',
            'image': SimpleUploadedFile('notes.txt', b'not an image', content_type='text/plain'),
        })

        self.assertEqual(response.status_code, 400)
