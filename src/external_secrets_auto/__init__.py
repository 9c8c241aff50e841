"""external-secrets-auto: Declarative secrets for External Secrets Operator.

This package reads ``secrets.yaml`` declarations, creates the missing
entries in a secret backend (GCP Secret Manager), renders the matching
ClusterSecretStore and ExternalSecret manifests and audits their sync state
in a Kubernetes cluster.

Example usage:
    from external_secrets_auto import GCPProvider, parse_declaration_file

    declaration_file = parse_declaration_file("deployments/app/secrets.yaml")
    provider = GCPProvider("my-project")
    print(provider.describe_store())
"""

__version__ = "0.1.0"

from external_secrets_auto.bootstrap import InfrastructureBootstrapper
from external_secrets_auto.cli import cli
from external_secrets_auto.cluster import Cluster
from external_secrets_auto.exceptions import (
    AuthError,
    BackendError,
    BinaryNotFoundError,
    BootstrapError,
    ClusterConnectionError,
    ClusterReadError,
    ClusterWriteError,
    ConfigError,
    DeclarationReadError,
    ExternalSecretsError,
    PolicyGrantError,
    SchemaError,
)
from external_secrets_auto.providers import GCPProvider, SecretProvider, get_provider
from external_secrets_auto.secrets.parsing import parse_declaration_file
from external_secrets_auto.validation import ClusterValidator

__all__ = [
    # Version
    "__version__",
    # Main CLI
    "cli",
    # Classes
    "Cluster",
    "ClusterValidator",
    "GCPProvider",
    "InfrastructureBootstrapper",
    "SecretProvider",
    # Functions
    "get_provider",
    "parse_declaration_file",
    # Exceptions
    "ExternalSecretsError",
    "AuthError",
    "BackendError",
    "BinaryNotFoundError",
    "BootstrapError",
    "ClusterConnectionError",
    "ClusterReadError",
    "ClusterWriteError",
    "ConfigError",
    "DeclarationReadError",
    "PolicyGrantError",
    "SchemaError",
]
