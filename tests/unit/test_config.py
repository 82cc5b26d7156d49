"""Unit tests for settings and the credential policy."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from loginvault.config import CredentialPolicy, Settings


def test_default_policy():
    policy = Settings().credential_policy()

    assert policy.login_token_ttl == timedelta(minutes=30)
    assert policy.reset_code_ttl == timedelta(hours=24)
    assert policy.hash_work_factor == 12
    assert policy.reset_code_bit_length == 256
    assert policy == CredentialPolicy()


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("LOGIN_TOKEN_TTL_MINUTES", "5")
    monkeypatch.setenv("BCRYPT_ROUNDS", "10")
    monkeypatch.setenv("APP_URL", "https://webmaker.example.org")

    settings = Settings()

    assert settings.app_url == "https://webmaker.example.org"
    assert settings.credential_policy().login_token_ttl == timedelta(minutes=5)
    assert settings.credential_policy().hash_work_factor == 10


@pytest.mark.parametrize("rounds", [3, 32])
def test_bcrypt_rounds_bounds(rounds):
    with pytest.raises(ValidationError):
        Settings(bcrypt_rounds=rounds)
