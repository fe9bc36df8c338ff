import pytest

from presence.models import AttendanceRecord
from presence.utils.errors import ValidationError
from presence.utils.validators import MAX_ID, Validator

HUGE = int('9' * 400)


@pytest.mark.parametrize('lat,lng', [(HUGE, 0), (0, -HUGE)])
def test_coordinates_too_large_for_float(lat, lng):
    with pytest.raises(ValidationError):
        Validator.validate_coordinates(lat, lng)


def test_integer_coordinates_become_floats():
    assert Validator.validate_coordinates(40, -74) == (40.0, -74.0)


def test_descriptor_component_too_large_for_float():
    with pytest.raises(ValidationError):
        Validator.validate_descriptor([0.0] * 127 + [HUGE])


@pytest.mark.parametrize('value', [HUGE, float('inf'), 'abc', True, None])
def test_as_finite_float_refuses(value):
    assert Validator.as_finite_float(value) is None


@pytest.mark.parametrize('value,expected', [
    (1, True),
    (MAX_ID, True),
    (MAX_ID + 1, False),
    (0, False),
    (-3, False),
    (True, False),
    ('5', False),
])
def test_is_valid_id(value, expected):
    assert Validator.is_valid_id(value) is expected


@pytest.mark.parametrize('value', [-1, HUGE, float('nan'), '5'])
def test_invalid_accuracy(value):
    with pytest.raises(ValidationError):
        Validator.validate_accuracy(value)


def test_lookup_of_unstorable_id_finds_nothing(app):
    assert AttendanceRecord.get_by_id(int('9' * 30)) is None
    assert AttendanceRecord.get_by_id(0) is None
