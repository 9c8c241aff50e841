"""Provisioning of declared secrets in the backend and manifest generation.

Each remote key is handled on its own: look it up, and only if it is
missing obtain a value and create it. A failure stops the run without
rolling back keys already created; creation is idempotent so the run can
simply be repeated.
"""

from collections.abc import Sequence
from pathlib import Path

from icecream import ic

from external_secrets_auto import console
from external_secrets_auto.models import GenerationSummary, ProvisionSummary
from external_secrets_auto.providers.base import SecretProvider
from external_secrets_auto.secrets.manifests import (
    store_manifest_path,
    write_cluster_secret_store,
    write_external_secrets,
)
from external_secrets_auto.secrets.parsing import DeclarationFile, check_remote_key_uniqueness
from external_secrets_auto.secrets.values import ValueSource


def provision_secrets(
    provider: SecretProvider,
    declaration_files: Sequence[DeclarationFile],
    value_source: ValueSource,
) -> ProvisionSummary:
    """Create every declared remote key that does not exist yet.

    Args:
        provider: Initialized backend provider.
        declaration_files: Parsed declaration files.
        value_source: Supplies values for missing keys.

    Returns:
        Which remote keys were created and which already existed.

    Raises:
        SchemaError: If a remoteKey is declared twice (before any backend call).
        BackendError: If the backend fails for a key.

    """
    check_remote_key_uniqueness(declaration_files)
    summary = ProvisionSummary()

    for declaration_file in declaration_files:
        console.action(
            f"Provisioning secrets for {console.highlight(declaration_file.deployment_name)} "
            f"({declaration_file.path.name})"
        )
        for secret in declaration_file.secrets:
            for entry in secret.keys:
                if provider.exists(entry.remote_key):
                    console.step(f"{entry.remote_key} already exists")
                    summary.existing.append(entry.remote_key)
                    continue

                value = value_source.value_for(secret, entry)
                ic(entry.remote_key, entry.generated)
                provider.create(entry.remote_key, value)
                console.success(f"Created {console.highlight(entry.remote_key)}")
                summary.created.append(entry.remote_key)

    return summary


def generate_manifests(
    provider: SecretProvider,
    declaration_files: Sequence[DeclarationFile],
    root: str | Path,
) -> GenerationSummary:
    """Write the ClusterSecretStore and all ExternalSecret manifests.

    Args:
        provider: Provider describing the resources; no backend calls are made.
        declaration_files: Parsed declaration files.
        root: Repository root the store manifest is written below.

    Returns:
        Files written and files that were already up to date.

    """
    summary = GenerationSummary()
    write_cluster_secret_store(provider, store_manifest_path(root), summary)
    write_external_secrets(provider, declaration_files, summary)
    return summary
