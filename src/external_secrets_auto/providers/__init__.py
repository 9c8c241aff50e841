"""Secret backend providers.

Backends are selected by name when the configuration is resolved; the rest
of the pipeline only sees the :class:`SecretProvider` interface.
"""

from external_secrets_auto.exceptions import ConfigError
from external_secrets_auto.providers.base import DEFAULT_STORE_NAME, SecretProvider
from external_secrets_auto.providers.gcp import GCPProvider

PROVIDERS: dict[str, type[SecretProvider]] = {
    GCPProvider.name: GCPProvider,
}


def get_provider(name: str, project_id: str, *, store_name: str = DEFAULT_STORE_NAME) -> SecretProvider:
    """Instantiate the provider registered under ``name``.

    Raises:
        ConfigError: If no provider has that name.

    """
    try:
        provider_cls = PROVIDERS[name]
    except KeyError:
        known = ", ".join(sorted(PROVIDERS))
        raise ConfigError(f"Unknown secret provider '{name}' (available: {known})") from None
    return provider_cls(project_id, store_name=store_name)


__all__ = [
    "DEFAULT_STORE_NAME",
    "GCPProvider",
    "PROVIDERS",
    "SecretProvider",
    "get_provider",
]
