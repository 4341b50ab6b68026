"""
Formatting helpers shared by views, reports and exports
"""
import re
from decimal import Decimal, ROUND_HALF_UP

from django.core.exceptions import ValidationError


TIME_PATTERN = re.compile(r'^(\d+):([0-5]\d):([0-5]\d)$')


def format_time(total_seconds):
    """
    Format seconds as HH:MM:SS (hours may exceed 99)

    Example:
        >>> format_time(3725)
        '01:02:05'
    """
    total_seconds = max(int(total_seconds or 0), 0)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def parse_time(value):
    """
    Parse HH:MM:SS into seconds

    Raises:
        ValidationError: If value is not a valid non-negative duration
    """
    match = TIME_PATTERN.match((value or '').strip())
    if not match:
        raise ValidationError('Invalid time format. Use HH:MM:SS')

    hours, minutes, seconds = (int(part) for part in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def format_duration_hm(total_seconds):
    """Format seconds as 'Xh Ym' (used on reports)"""
    total_seconds = max(int(total_seconds or 0), 0)
    hours, remainder = divmod(total_seconds, 3600)
    return f"{hours}h {remainder // 60}m"


def seconds_to_hours(total_seconds):
    return Decimal(int(total_seconds or 0)) / Decimal(3600)


def round_money(value):
    if value is None:
        return None
    return float(Decimal(str(value)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))


def format_currency(value):
    """
    Format a value as Brazilian Real

    Example:
        >>> format_currency(1234.5)
        'R$ 1.234,50'
        >>> format_currency(None)
        'N/A'
    """
    if value is None:
        return 'N/A'

    amount = Decimal(str(value)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    sign = '-' if amount < 0 else ''
    integer_part, decimal_part = f"{abs(amount):.2f}".split('.')
    integer_part = f"{int(integer_part):,}".replace(',', '.')
    return f"{sign}R$ {integer_part},{decimal_part}"


def safe_filename_part(value):
    """Lower-case value with every non-alphanumeric replaced by '_'"""
    return re.sub(r'[^a-z0-9]', '_', (value or '').lower())
