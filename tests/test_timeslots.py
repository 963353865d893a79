import random

import pytest

from errors import ValidationError
from timeslots import to_minutes, overlaps, parse_time, parse_date, parse_slot


def _fmt(minutes):
    return f'{minutes // 60:02d}:{minutes % 60:02d}'


def test_to_minutes():
    assert to_minutes('00:00') == 0
    assert to_minutes('09:30') == 570
    assert to_minutes('23:59') == 1439


def test_back_to_back_intervals_do_not_overlap():
    assert not overlaps('09:00', '10:00', '10:00', '11:00')
    assert not overlaps('10:00', '11:00', '09:00', '10:00')


def test_partial_and_nested_overlaps():
    assert overlaps('09:00', '10:00', '09:30', '10:30')
    assert overlaps('09:00', '12:00', '10:00', '11:00')
    assert overlaps('10:00', '11:00', '09:00', '12:00')
    assert overlaps('09:00', '10:00', '09:00', '10:00')


def test_overlap_is_symmetric():
    rng = random.Random(42)
    for _ in range(500):
        s1 = rng.randrange(0, 1439)
        e1 = rng.randrange(s1 + 1, 1440)
        s2 = rng.randrange(0, 1439)
        e2 = rng.randrange(s2 + 1, 1440)
        a, b, c, d = _fmt(s1), _fmt(e1), _fmt(s2), _fmt(e2)
        assert overlaps(a, b, c, d) == overlaps(c, d, a, b)
        assert overlaps(a, b, c, d) == (s1 < e2 and e1 > s2)


def test_parse_time_normalises_padding():
    assert parse_time('9:05') == '09:05'
    assert parse_time(' 14:30 ') == '14:30'


@pytest.mark.parametrize('value', ['24:00', '12:60', '1230', 'noon', '', None, '12:5'])
def test_parse_time_rejects_bad_values(value):
    with pytest.raises(ValidationError):
        parse_time(value)


def test_parse_slot_requires_start_before_end():
    assert parse_slot('09:00', '10:00') == ('09:00', '10:00')
    with pytest.raises(ValidationError):
        parse_slot('10:00', '10:00')
    with pytest.raises(ValidationError):
        parse_slot('11:00', '10:00')


def test_parse_date():
    assert parse_date('2024-06-01').isoformat() == '2024-06-01'
    with pytest.raises(ValidationError):
        parse_date('01/06/2024')
