from datetime import timedelta

import pytest

from presence.config import VerificationSettings, config, get_config


def test_defaults():
    settings = VerificationSettings()

    assert settings.face_match_threshold == 70.0
    assert settings.face_distance_threshold == 0.6
    assert settings.default_radius_meters == 100
    assert settings.rotation_interval == timedelta(seconds=300)
    assert settings.skew_tolerance == timedelta(0)


def test_from_config_reads_flask_keys():
    settings = VerificationSettings.from_config({
        'FACE_MATCH_THRESHOLD': '80',
        'FACE_DISTANCE_THRESHOLD': '0.5',
        'DEFAULT_RADIUS_METERS': '250',
        'QR_ROTATION_INTERVAL': '60',
        'TOKEN_CLOCK_SKEW_TOLERANCE': '5',
    })

    assert settings.face_match_threshold == 80.0
    assert settings.face_distance_threshold == 0.5
    assert settings.default_radius_meters == 250
    assert settings.rotation_interval == timedelta(seconds=60)
    assert settings.skew_tolerance == timedelta(seconds=5)


@pytest.mark.parametrize('overrides', [
    {'face_match_threshold': 120.0},
    {'face_match_threshold': -1.0},
    {'face_distance_threshold': 0},
    {'default_radius_meters': 0},
    {'qr_rotation_interval': -300},
    {'clock_skew_tolerance': -1},
])
def test_invalid_settings_rejected(overrides):
    with pytest.raises(ValueError):
        VerificationSettings(**overrides)


def test_get_config_falls_back_to_default():
    assert get_config('testing') is config['testing']
    assert get_config('unknown') is get_config('default')
