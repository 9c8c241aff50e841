"""Custom exceptions for external-secrets-auto.

This module defines the exception hierarchy used throughout the application
to provide meaningful error messages and proper error handling.
"""


class ExternalSecretsError(Exception):
    """Base exception for all external-secrets-auto errors.

    All custom exceptions in this package inherit from this class,
    allowing callers to catch all errors with a single except clause.
    """

    pass


class SchemaError(ExternalSecretsError):
    """Raised when a declaration file does not match the secrets schema.

    This can occur when:
    - The file is not valid YAML or not a YAML mapping
    - Required fields (name, keys, key, remoteKey) are missing
    - A field has the wrong type
    - A secret declares no keys, or repeats a key name
    - A remoteKey is declared more than once for the same backend
    """

    pass


class DeclarationReadError(ExternalSecretsError, OSError):
    """Raised when a declaration file cannot be read from disk."""

    pass


class ConfigError(ExternalSecretsError):
    """Raised when a required setting cannot be resolved from any source."""

    pass


class AuthError(ExternalSecretsError):
    """Raised when the secret backend rejects our credentials.

    This can occur when:
    - Application default credentials are missing or expired
    - The identity lacks permission on the project
    - The backend API is unreachable or disabled
    """

    pass


class BackendError(ExternalSecretsError):
    """Raised when the secret backend returns an unexpected response."""

    pass


class BinaryNotFoundError(ExternalSecretsError):
    """Raised when a required binary (gcloud) is not found in PATH."""

    pass


class BootstrapError(ExternalSecretsError):
    """Raised when an infrastructure bootstrap step fails.

    Attributes:
        step: Name of the bootstrap step that failed.

    """

    def __init__(self, message: str, *, step: str) -> None:
        super().__init__(message)
        self.step = step


class PolicyGrantError(BootstrapError):
    """Raised when the access policy grant keeps failing after every retry.

    Attributes:
        attempts: Number of attempts that were made.
        last_error: Exception raised by the final attempt, if known.

    """

    def __init__(self, message: str, *, attempts: int, last_error: BaseException | None = None) -> None:
        super().__init__(message, step="grant-access-policy")
        self.attempts = attempts
        self.last_error = last_error


class ClusterConnectionError(ExternalSecretsError):
    """Raised when the kubeconfig is invalid or the context cannot be loaded."""

    pass


class ClusterReadError(ExternalSecretsError):
    """Raised when the Kubernetes API cannot be queried.

    This can occur when:
    - The cluster is unreachable
    - The ExternalSecret CRD is not installed
    - The user may not list ExternalSecrets across namespaces
    """

    pass


class ClusterWriteError(ExternalSecretsError):
    """Raised when a namespace or Secret cannot be created in the cluster."""

    pass
