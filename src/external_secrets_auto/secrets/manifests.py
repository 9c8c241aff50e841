"""External Secrets Operator manifest generation.

Providers describe their ``ClusterSecretStore`` and ``ExternalSecret``
resources as plain dictionaries; this module renders them to YAML and
writes them to the repository. Rendering is deterministic so that
regenerating from an unchanged declaration is a no-op diff.
"""

from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from icecream import ic

from external_secrets_auto import console
from external_secrets_auto.models import GenerationSummary

if TYPE_CHECKING:
    from external_secrets_auto.providers.base import SecretProvider
    from external_secrets_auto.secrets.parsing import DeclarationFile
    from external_secrets_auto.secrets.schema import SecretDeclaration

ESO_API_VERSION = "external-secrets.io/v1beta1"
CLUSTER_SECRET_STORE_KIND = "ClusterSecretStore"
EXTERNAL_SECRET_KIND = "ExternalSecret"
REFRESH_INTERVAL = "1h"
CREATION_POLICY = "Owner"

MANIFEST_DIR = "external-secrets"
STORE_MANIFEST_PATH = Path("infrastructure") / MANIFEST_DIR / "clustersecretstore.yaml"


def render_manifest(document: dict[str, Any]) -> str:
    """Render a Kubernetes resource as YAML, preserving key order."""
    return yaml.safe_dump(document, sort_keys=False, default_flow_style=False, allow_unicode=True)


def cluster_secret_store_document(name: str, spec: dict[str, Any]) -> dict[str, Any]:
    """Build a ClusterSecretStore resource around a backend-specific spec."""
    return {
        "apiVersion": ESO_API_VERSION,
        "kind": CLUSTER_SECRET_STORE_KIND,
        "metadata": {"name": name},
        "spec": spec,
    }


def external_secret_document(
    secret: "SecretDeclaration",
    namespace: str,
    *,
    store_name: str,
    refresh_interval: str = REFRESH_INTERVAL,
) -> dict[str, Any]:
    """Build the ExternalSecret resource for one declared secret.

    The resource only references backend entries by name; values are never
    embedded.
    """
    return {
        "apiVersion": ESO_API_VERSION,
        "kind": EXTERNAL_SECRET_KIND,
        "metadata": {"name": secret.name, "namespace": namespace},
        "spec": {
            "refreshInterval": refresh_interval,
            "secretStoreRef": {"name": store_name, "kind": CLUSTER_SECRET_STORE_KIND},
            "target": {"name": secret.name, "creationPolicy": CREATION_POLICY},
            "data": [{"secretKey": entry.key, "remoteRef": {"key": entry.remote_key}} for entry in secret.keys],
        },
    }


def store_manifest_path(root: str | Path) -> Path:
    """Location of the generated ClusterSecretStore below a repository root."""
    return Path(root) / STORE_MANIFEST_PATH


def external_secret_manifest_path(declaration_file: "DeclarationFile", secret: "SecretDeclaration") -> Path:
    """Location of a secret's ExternalSecret, next to its declaration file."""
    return declaration_file.path.parent / MANIFEST_DIR / f"{secret.name}-externalsecret.yaml"


def _write_if_changed(path: Path, content: str) -> bool:
    """Write ``content`` unless the file already holds exactly those bytes.

    Returns:
        True if the file was written.

    """
    data = content.encode("utf-8")
    if path.is_file() and path.read_bytes() == data:
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return True


def write_cluster_secret_store(
    provider: "SecretProvider",
    output_path: Path,
    summary: GenerationSummary | None = None,
) -> GenerationSummary:
    """Generate the ClusterSecretStore manifest file.

    Args:
        provider: Provider whose store is described.
        output_path: Destination file.
        summary: Summary to record the file in; a new one is created if omitted.

    Returns:
        The generation summary.

    """
    summary = summary if summary is not None else GenerationSummary()
    manifest = provider.describe_store()

    if _write_if_changed(output_path, manifest):
        console.success(f"Generated {CLUSTER_SECRET_STORE_KIND}: {console.highlight(str(output_path))}")
        summary.written.append(output_path)
    else:
        console.step(f"{CLUSTER_SECRET_STORE_KIND} unchanged: {output_path}")
        summary.unchanged.append(output_path)
    return summary


def write_external_secret(
    provider: "SecretProvider",
    secret: "SecretDeclaration",
    namespace: str,
    output_path: Path,
    summary: GenerationSummary | None = None,
) -> GenerationSummary:
    """Generate one ExternalSecret manifest file."""
    summary = summary if summary is not None else GenerationSummary()
    manifest = provider.describe_secret(secret, namespace)
    ic(output_path, namespace)

    if _write_if_changed(output_path, manifest):
        console.success(f"Generated {EXTERNAL_SECRET_KIND}: {console.highlight(str(output_path))}")
        summary.written.append(output_path)
    else:
        console.step(f"{EXTERNAL_SECRET_KIND} unchanged: {output_path}")
        summary.unchanged.append(output_path)
    return summary


def write_external_secrets(
    provider: "SecretProvider",
    declaration_files: Iterable["DeclarationFile"],
    summary: GenerationSummary | None = None,
) -> GenerationSummary:
    """Generate ExternalSecret manifests for every declared secret."""
    summary = summary if summary is not None else GenerationSummary()
    for declaration_file in declaration_files:
        for secret in declaration_file.secrets:
            write_external_secret(
                provider,
                secret,
                declaration_file.namespace_for(secret),
                external_secret_manifest_path(declaration_file, secret),
                summary,
            )
    return summary
