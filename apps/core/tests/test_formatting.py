"""
Formatting Helpers Tests
========================

Run tests:
    docker compose exec web python manage.py test apps.core.tests.test_formatting
"""

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import SimpleTestCase

from apps.core.formatting import (
    format_currency,
    format_duration_hm,
    format_time,
    parse_time,
    round_money,
    safe_filename_part,
    seconds_to_hours,
)


class TimeFormattingTest(SimpleTestCase):

    def test_format_time(self):
        self.assertEqual(format_time(0), '00:00:00')
        self.assertEqual(format_time(3725), '01:02:05')
        self.assertEqual(format_time(None), '00:00:00')

    def test_format_time_beyond_99_hours(self):
        self.assertEqual(format_time(360000), '100:00:00')

    def test_parse_time(self):
        self.assertEqual(parse_time('01:02:05'), 3725)
        self.assertEqual(parse_time(' 00:00:00 '), 0)
        self.assertEqual(parse_time('120:30:00'), 120 * 3600 + 1800)

    def test_parse_time_rejects_invalid_values(self):
        for value in ('', '1:2', '01:60:00', '01:00:61', 'ab:cd:ef', '-01:00:00', None):
            with self.subTest(value=value):
                with self.assertRaises(ValidationError):
                    parse_time(value)

    def test_format_duration_hm(self):
        self.assertEqual(format_duration_hm(5400), '1h 30m')
        self.assertEqual(format_duration_hm(59), '0h 0m')

    def test_seconds_to_hours(self):
        self.assertEqual(seconds_to_hours(5400), Decimal('1.5'))


class MoneyFormattingTest(SimpleTestCase):

    def test_format_currency(self):
        self.assertEqual(format_currency(1234.5), 'R$ 1.234,50')
        self.assertEqual(format_currency(Decimal('1000000')), 'R$ 1.000.000,00')
        self.assertEqual(format_currency(0), 'R$ 0,00')
        self.assertEqual(format_currency(-12.3), '-R$ 12,30')

    def test_format_currency_none(self):
        self.assertEqual(format_currency(None), 'N/A')

    def test_round_money(self):
        self.assertEqual(round_money(Decimal('10.005')), 10.01)
        self.assertIsNone(round_money(None))


class FilenameTest(SimpleTestCase):

    def test_safe_filename_part(self):
        self.assertEqual(safe_filename_part('Casa Verde 2!'), 'casa_verde_2_')
        self.assertEqual(safe_filename_part('Ação'), 'a__o')
        self.assertEqual(safe_filename_part(None), '')
