import pytest

from presence.config import VerificationSettings
from presence.services.biometric import BiometricMatcher, DescriptorCipher
from presence.utils.errors import DimensionMismatchError, PresenceError, ValidationError

from conftest import descriptor, shifted


@pytest.fixture
def matcher():
    return BiometricMatcher(VerificationSettings())


def test_identical_descriptors_match_fully(matcher):
    result = matcher.compare(descriptor(0.1), descriptor(0.1))

    assert result.distance == 0
    assert result.match is True
    assert result.score == 100
    assert matcher.accepts(result)


def test_distant_descriptors_do_not_match(matcher):
    base = descriptor(0.0)
    result = matcher.compare(base, shifted(base, 0.8))

    assert result.distance == pytest.approx(0.8)
    assert result.match is False
    assert result.score == pytest.approx(20)
    assert not matcher.accepts(result)


def test_threshold_distance_is_not_a_match(matcher):
    base = descriptor(0.0)
    result = matcher.compare(base, shifted(base, 0.6))
    assert result.match is False


def test_score_floor_at_zero(matcher):
    base = descriptor(-1.0)
    result = matcher.compare(base, shifted(base, 2.0))

    assert result.distance == pytest.approx(2.0)
    assert result.score == 0


def test_match_below_score_threshold_is_not_accepted(matcher):
    base = descriptor(0.0)
    result = matcher.compare(base, shifted(base, 0.35))

    assert result.match is True
    assert result.score == pytest.approx(65)
    assert not matcher.accepts(result)


def test_score_threshold_is_configurable():
    lenient = BiometricMatcher(VerificationSettings(face_match_threshold=60.0))
    base = descriptor(0.0)
    assert lenient.accepts(lenient.compare(base, shifted(base, 0.35)))


def test_dimension_mismatch(matcher):
    with pytest.raises(DimensionMismatchError):
        matcher.euclidean_distance([0.1] * 128, [0.1] * 127)
    assert issubclass(DimensionMismatchError, ValidationError)


def test_match_result_to_dict(matcher):
    base = descriptor(0.0)
    data = matcher.compare(base, shifted(base, 0.123456)).to_dict()

    assert data['distance'] == 0.1235
    assert data['score'] == 87.65
    assert data['threshold'] == 0.6


@pytest.mark.parametrize('value', [
    [0.0] * 127,
    [0.0] * 129,
    [0.0] * 127 + [1.5],
    [0.0] * 127 + [-1.01],
    [0.0] * 127 + [float('nan')],
    [0.0] * 127 + ['0.1'],
    [0.0] * 127 + [True],
    'not-a-descriptor',
    None,
])
def test_validate_rejects_malformed_descriptors(value):
    with pytest.raises(ValidationError):
        BiometricMatcher.validate(value)


def test_validate_accepts_boundaries():
    value = [1.0] * 64 + [-1.0] * 63 + [0]
    assert BiometricMatcher.validate(value) == [float(v) for v in value]


def test_cipher_hides_and_restores_descriptor():
    cipher = DescriptorCipher(DescriptorCipher.derive_key('test-secret-key'))
    vector = [round(i / 200, 4) for i in range(128)]

    token = cipher.encrypt(vector)

    assert '0.005' not in token
    assert cipher.decrypt(token) == vector


def test_cipher_rejects_foreign_ciphertext():
    ours = DescriptorCipher(DescriptorCipher.derive_key('one-secret'))
    theirs = DescriptorCipher(DescriptorCipher.derive_key('another-secret'))

    with pytest.raises(PresenceError) as exc_info:
        ours.decrypt(theirs.encrypt(descriptor(0.2)))
    assert exc_info.value.status_code == 500


def test_cipher_from_config_prefers_explicit_key():
    key = DescriptorCipher.derive_key('explicit')
    cipher = DescriptorCipher.from_config({
        'SECRET_KEY': 'unused',
        'BIOMETRIC_ENCRYPTION_KEY': key.decode(),
        'BIOMETRIC_ENCRYPTION_KEY_ID': 'v2',
    })

    assert cipher.key_id == 'v2'
    assert DescriptorCipher(key).decrypt(cipher.encrypt(descriptor(0.3))) == descriptor(0.3)
