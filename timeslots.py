"""
Time-of-day helpers for booking slots.

Slot bounds are "HH:MM" strings. Comparisons are done on minutes since
midnight, and intervals are half-open so a booking ending at 10:00 does
not collide with one starting at 10:00.
"""

import re
from datetime import datetime

from errors import ValidationError

TIME_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})$')
MINUTES_PER_DAY = 24 * 60


def to_minutes(value):
    """Convert "HH:MM" to minutes since midnight."""
    hours, minutes = value.split(':')
    return int(hours) * 60 + int(minutes)


def overlaps(start_a, end_a, start_b, end_b):
    return (to_minutes(start_a) < to_minutes(end_b)
            and to_minutes(end_a) > to_minutes(start_b))


def parse_time(value, field='time'):
    """Validate a time-of-day and return it zero padded ("9:05" -> "09:05")."""
    match = TIME_PATTERN.match(str(value or '').strip())
    if not match:
        raise ValidationError(f'Invalid {field}, expected HH:MM')
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValidationError(f'Invalid {field}, expected HH:MM')
    return f'{hours:02d}:{minutes:02d}'


def parse_date(value, field='date'):
    try:
        return datetime.strptime(str(value or '').strip(), '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError(f'Invalid {field}, expected YYYY-MM-DD')


def parse_slot(start_time, end_time):
    """Validate both bounds of a slot and make sure it does not run backwards."""
    start = parse_time(start_time, 'startTime')
    end = parse_time(end_time, 'endTime')
    if to_minutes(start) >= to_minutes(end):
        raise ValidationError('Start time must be before end time')
    return start, end
