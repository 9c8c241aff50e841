"""Backend provider interface.

A provider binds the pipeline to one secret backend account or project. It
owns the backend client for its lifetime and knows how to describe the
External Secrets Operator resources that read from that backend.
"""

from abc import ABC, abstractmethod

from external_secrets_auto.secrets.manifests import (
    cluster_secret_store_document,
    external_secret_document,
    render_manifest,
)
from external_secrets_auto.secrets.schema import SecretDeclaration

DEFAULT_STORE_NAME = "gcp-secretstore"


class SecretProvider(ABC):
    """Capabilities every secret backend implements.

    Attributes:
        name: Short provider identifier used in configuration (e.g. ``gcp``).
        project_id: Backend account or project the provider is bound to.
        store_name: Name of the ClusterSecretStore that reads from it.

    """

    name: str = ""

    def __init__(self, project_id: str, *, store_name: str = DEFAULT_STORE_NAME) -> None:
        self.project_id = project_id
        self.store_name = store_name

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"{type(self).__name__}(project_id={self.project_id!r}, store_name={self.store_name!r})"

    @abstractmethod
    def initialize(self) -> None:
        """Authenticate against the backend with a read-only probe.

        Raises:
            AuthError: If credentials are invalid or the API is unreachable.

        """

    @abstractmethod
    def exists(self, remote_key: str) -> bool:
        """Return whether ``remote_key`` exists in the backend.

        Raises:
            BackendError: For any failure other than "not found".

        """

    @abstractmethod
    def create(self, remote_key: str, value: str) -> None:
        """Store ``value`` under ``remote_key``, creating it if needed.

        Calling this for an existing key adds a new version; it never fails
        because the key is already there.

        Raises:
            BackendError: If the backend rejects the write.

        """

    @abstractmethod
    def store_spec(self) -> dict:
        """Return the backend-specific ``spec`` of the ClusterSecretStore."""

    def describe_store(self, name: str | None = None) -> str:
        """Render the ClusterSecretStore manifest for this backend.

        Args:
            name: Store name, defaulting to the provider's ``store_name``.

        """
        return render_manifest(cluster_secret_store_document(name or self.store_name, self.store_spec()))

    def describe_secret(self, secret: SecretDeclaration, namespace: str) -> str:
        """Render the ExternalSecret manifest for one declared secret."""
        return render_manifest(external_secret_document(secret, namespace, store_name=self.store_name))
