"""Tests for secrets/values.py module."""

import base64
import re
from unittest.mock import MagicMock

import pytest

from external_secrets_auto.exceptions import ConfigError
from external_secrets_auto.secrets.schema import SecretDeclaration
from external_secrets_auto.secrets.values import (
    DeclaredValueSource,
    StaticValueSource,
    generate_password,
    prompt_message,
)


@pytest.fixture
def secret():
    return SecretDeclaration.model_validate(
        {
            "name": "api-credentials",
            "keys": [
                {"key": "DATABASE_PASSWORD", "remoteKey": "api-db", "generate": True},
                {"key": "STRIPE_KEY", "remoteKey": "api-stripe", "prompt": "Stripe secret key"},
                {"key": "SMTP_PASSWORD", "remoteKey": "api-smtp"},
            ],
        }
    )


class TestGenerators:
    """Tests for random value generators."""

    def test_password_length(self):
        """Test passwords are exactly 32 characters by default."""
        assert len(generate_password()) == 32

    def test_password_custom_length(self):
        """Test a custom length is honoured."""
        assert len(generate_password(12)) == 12

    def test_password_is_base64_alphabet(self):
        """Test passwords only contain base64 characters."""
        assert re.fullmatch(r"[A-Za-z0-9+/]+", generate_password())

    def test_password_prefix_decodes(self):
        """Test the password is a slice of valid base64 output."""
        base64.b64decode(generate_password()[:32])

    def test_passwords_differ(self):
        """Test successive passwords are not repeated."""
        assert generate_password() != generate_password()


class TestPromptMessage:
    """Tests for prompt text selection."""

    def test_declared_prompt(self, secret):
        """Test an explicit prompt is used verbatim."""
        assert prompt_message(secret, secret.keys[1]) == "Stripe secret key"

    def test_default_prompt(self, secret):
        """Test the default prompt names secret, key and remote key."""
        message = prompt_message(secret, secret.keys[2])

        assert "api-credentials/SMTP_PASSWORD" in message
        assert "api-smtp" in message


class TestDeclaredValueSource:
    """Tests for DeclaredValueSource."""

    def test_generated_key_never_prompts(self, secret):
        """Test generate: true keys use the generator."""
        ask = MagicMock()
        source = DeclaredValueSource(ask, generator=lambda: "generated")

        assert source.value_for(secret, secret.keys[0]) == "generated"
        ask.assert_not_called()

    def test_manual_key_prompts(self, secret):
        """Test other keys are asked for with the prompt message."""
        ask = MagicMock(return_value="sk_live_123")
        source = DeclaredValueSource(ask)

        assert source.value_for(secret, secret.keys[1]) == "sk_live_123"
        ask.assert_called_once_with("Stripe secret key")


class TestStaticValueSource:
    """Tests for StaticValueSource."""

    def test_mapping_value(self, secret):
        """Test a supplied value is returned."""
        source = StaticValueSource({"api-smtp": "hunter2"})

        assert source.value_for(secret, secret.keys[2]) == "hunter2"

    def test_mapping_overrides_generation(self, secret):
        """Test an explicit value wins over generation."""
        source = StaticValueSource({"api-db": "fixed"}, generator=lambda: "generated")

        assert source.value_for(secret, secret.keys[0]) == "fixed"

    def test_generates_when_missing(self, secret):
        """Test generated keys fall back to the generator."""
        source = StaticValueSource({}, generator=lambda: "generated")

        assert source.value_for(secret, secret.keys[0]) == "generated"

    def test_missing_manual_value(self, secret):
        """Test a manual key without a value raises ConfigError."""
        source = StaticValueSource({})

        with pytest.raises(ConfigError) as exc_info:
            source.value_for(secret, secret.keys[2])

        assert "api-smtp" in str(exc_info.value)
