"""
Tests for callback authentication schemes
"""

import logging

import pytest

from exam_sync.security.callback_auth import CallbackAuthValidator
from tests.fixtures import make_settings


def validator_for(**overrides) -> CallbackAuthValidator:
    return CallbackAuthValidator(make_settings(**overrides))


class TestBearerScheme:

    def test_accepts_correct_token(self):
        v = validator_for(CALLBACK_AUTH_SCHEME='bearer', CALLBACK_BEARER_TOKEN='s3cret')
        assert v.validate({'Authorization': 'Bearer s3cret'})

    def test_header_lookup_is_case_insensitive(self):
        v = validator_for(CALLBACK_AUTH_SCHEME='bearer', CALLBACK_BEARER_TOKEN='s3cret')
        assert v.validate({'AUTHORIZATION': 'Bearer s3cret'})

    @pytest.mark.parametrize('headers', [
        {'authorization': 'Bearer wrong'},
        {'authorization': 's3cret'},
        {'authorization': ''},
        {},
    ])
    def test_rejects_wrong_or_missing_token(self, headers):
        v = validator_for(CALLBACK_AUTH_SCHEME='bearer', CALLBACK_BEARER_TOKEN='s3cret')
        assert not v.validate(headers)

    def test_rejects_when_token_not_configured(self):
        v = validator_for(CALLBACK_AUTH_SCHEME='bearer', CALLBACK_BEARER_TOKEN='')
        assert not v.validate({'authorization': 'Bearer '})


class TestApiTokenScheme:

    def test_accepts_named_header(self):
        v = validator_for(
            CALLBACK_AUTH_SCHEME='api-token',
            CALLBACK_API_TOKEN_HEADER='X-Exam-Token',
            CALLBACK_API_TOKEN='tok-123',
        )
        assert v.validate({'x-exam-token': 'tok-123'})

    def test_rejects_wrong_value_or_header(self):
        v = validator_for(
            CALLBACK_AUTH_SCHEME='api-token',
            CALLBACK_API_TOKEN_HEADER='X-Exam-Token',
            CALLBACK_API_TOKEN='tok-123',
        )
        assert not v.validate({'x-exam-token': 'tok-124'})
        assert not v.validate({'x-api-token': 'tok-123'})


class TestKeySecretScheme:

    @pytest.fixture
    def validator(self):
        return validator_for(CALLBACK_AUTH_SCHEME='key-secret', CALLBACK_KEY='k1', CALLBACK_SECRET='s1')

    def test_accepts_both_values(self, validator):
        assert validator.validate({'key': 'k1', 'secret': 's1'})

    @pytest.mark.parametrize('headers', [
        {'key': 'k1', 'secret': 'nope'},
        {'key': 'nope', 'secret': 's1'},
        {'key': 'k1'},
        {'secret': 's1'},
    ])
    def test_any_single_wrong_field_rejects(self, validator, headers):
        assert not validator.validate(headers)


class TestCustomScheme:

    def test_accepts_configured_header_value(self):
        v = validator_for(
            CALLBACK_AUTH_SCHEME='custom',
            CALLBACK_CUSTOM_HEADER='X-Partner-Signature',
            CALLBACK_CUSTOM_VALUE='partner-abc',
        )
        assert v.validate({'X-Partner-Signature': 'partner-abc'})
        assert not v.validate({'X-Partner-Signature': 'partner-abd'})

    def test_unconfigured_custom_header_rejects(self):
        v = validator_for(CALLBACK_AUTH_SCHEME='custom', CALLBACK_CUSTOM_HEADER='', CALLBACK_CUSTOM_VALUE='')
        assert not v.validate({'': ''})


class TestNoneAndUnknownSchemes:

    def test_none_always_accepts_and_logs_risk(self, caplog):
        with caplog.at_level(logging.WARNING):
            v = validator_for(CALLBACK_AUTH_SCHEME='none')
        assert v.validate({})
        assert v.validate({'authorization': 'anything'})
        assert 'NOT authenticated' in caplog.text

    def test_unknown_scheme_fails_closed(self):
        v = validator_for(CALLBACK_AUTH_SCHEME='hmac-sha512', CALLBACK_BEARER_TOKEN='s3cret')
        assert not v.validate({'authorization': 'Bearer s3cret'})

    def test_never_raises_on_odd_headers(self):
        v = validator_for(CALLBACK_AUTH_SCHEME='bearer', CALLBACK_BEARER_TOKEN='s3cret')
        assert v.validate({'authorization': None}) is False
        assert v.validate({'authorization': 'Bearer s3crét'}) is False
