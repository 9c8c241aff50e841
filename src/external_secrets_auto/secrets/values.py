"""Sourcing values for secret keys that do not exist in the backend yet.

The provisioning run never talks to a terminal directly; it asks a
:class:`ValueSource` for each missing key. Generated keys are synthesized
here, manual keys are delegated to a callable (an interactive prompt in the
CLI, a mapping in tests or automation).
"""

import base64
import secrets
from collections.abc import Callable, Mapping
from typing import Protocol

from external_secrets_auto.exceptions import ConfigError
from external_secrets_auto.secrets.schema import SecretDeclaration, SecretKeyDeclaration

DEFAULT_VALUE_LENGTH = 32


def generate_password(length: int = DEFAULT_VALUE_LENGTH) -> str:
    """Generate a random base64 password of exactly ``length`` characters."""
    return base64.b64encode(secrets.token_bytes(length)).decode("ascii")[:length]


def prompt_message(secret: SecretDeclaration, entry: SecretKeyDeclaration) -> str:
    """Return the text shown when asking for a key's value."""
    if entry.prompt:
        return entry.prompt
    return f"Value for {secret.name}/{entry.key} (remote key {entry.remote_key})"


class ValueSource(Protocol):
    """Anything able to supply a value for a missing secret key."""

    def value_for(self, secret: SecretDeclaration, entry: SecretKeyDeclaration) -> str: ...


class DeclaredValueSource:
    """Generate values for ``generate: true`` keys, ask for everything else.

    Args:
        ask: Called with the prompt message for manual keys.
        generator: Produces values for generated keys.

    """

    def __init__(
        self,
        ask: Callable[[str], str],
        *,
        generator: Callable[[], str] = generate_password,
    ) -> None:
        self._ask = ask
        self._generator = generator

    def value_for(self, secret: SecretDeclaration, entry: SecretKeyDeclaration) -> str:
        if entry.generated:
            return self._generator()
        return self._ask(prompt_message(secret, entry))


class StaticValueSource:
    """Value source backed by a remote-key -> value mapping.

    Keys marked ``generate: true`` are still generated unless the mapping
    provides an explicit value.
    """

    def __init__(self, values: Mapping[str, str], *, generator: Callable[[], str] = generate_password) -> None:
        self._values = dict(values)
        self._generator = generator

    def value_for(self, secret: SecretDeclaration, entry: SecretKeyDeclaration) -> str:
        if entry.remote_key in self._values:
            return self._values[entry.remote_key]
        if entry.generated:
            return self._generator()
        raise ConfigError(f"No value supplied for {secret.name}/{entry.key} (remote key {entry.remote_key})")
