"""GCP Secret Manager provider.

Secrets are created with automatic replication; values are stored as secret
versions so re-provisioning a key simply adds a new latest version. The
ClusterSecretStore authenticates with the service account key that the
bootstrapper stores in the ``gcpsm-secret`` Kubernetes Secret.
"""

from typing import Any

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import secretmanager
from icecream import ic

from external_secrets_auto.exceptions import AuthError, BackendError
from external_secrets_auto.providers.base import DEFAULT_STORE_NAME, SecretProvider

CREDENTIALS_NAMESPACE = "external-secrets-system"
CREDENTIALS_SECRET_NAME = "gcpsm-secret"
CREDENTIALS_SECRET_KEY = "secret-access-credentials"


class GCPProvider(SecretProvider):
    """Secret provider backed by GCP Secret Manager.

    Attributes:
        project_id: GCP project that holds the secrets.
        store_name: Name of the generated ClusterSecretStore.
        credentials_namespace: Namespace of the service account key Secret.
        credentials_secret_name: Name of the service account key Secret.
        credentials_secret_key: Key inside that Secret holding the JSON key.

    """

    name = "gcp"

    def __init__(
        self,
        project_id: str,
        *,
        store_name: str = DEFAULT_STORE_NAME,
        credentials_namespace: str = CREDENTIALS_NAMESPACE,
        credentials_secret_name: str = CREDENTIALS_SECRET_NAME,
        credentials_secret_key: str = CREDENTIALS_SECRET_KEY,
        client: secretmanager.SecretManagerServiceClient | None = None,
    ) -> None:
        super().__init__(project_id, store_name=store_name)
        self.credentials_namespace = credentials_namespace
        self.credentials_secret_name = credentials_secret_name
        self.credentials_secret_key = credentials_secret_key
        self._client = client

    @property
    def client(self) -> secretmanager.SecretManagerServiceClient:
        """Lazily create the Secret Manager client."""
        if self._client is None:
            try:
                self._client = secretmanager.SecretManagerServiceClient()
            except auth_exceptions.DefaultCredentialsError as err:
                raise AuthError(
                    "No Google application default credentials found. "
                    "Run 'gcloud auth application-default login' first."
                ) from err
        return self._client

    @property
    def _parent(self) -> str:
        return f"projects/{self.project_id}"

    def _secret_path(self, remote_key: str) -> str:
        return f"{self._parent}/secrets/{remote_key}"

    def initialize(self) -> None:
        """Probe Secret Manager by listing at most one secret.

        Raises:
            AuthError: If credentials are missing or rejected, or the API
                cannot be reached.

        """
        try:
            pager = self.client.list_secrets(request={"parent": self._parent, "page_size": 1})
            next(iter(pager), None)
        except (google_exceptions.Unauthenticated, google_exceptions.PermissionDenied) as err:
            raise AuthError(f"Access to Secret Manager in project '{self.project_id}' was denied: {err}") from err
        except google_exceptions.GoogleAPICallError as err:
            raise AuthError(f"Secret Manager in project '{self.project_id}' is unreachable: {err}") from err
        except auth_exceptions.GoogleAuthError as err:
            raise AuthError(f"Google authentication failed: {err}") from err

    def exists(self, remote_key: str) -> bool:
        try:
            self.client.get_secret(request={"name": self._secret_path(remote_key)})
        except google_exceptions.NotFound:
            return False
        except google_exceptions.GoogleAPICallError as err:
            raise BackendError(f"Failed to look up secret '{remote_key}': {err}") from err
        return True

    def create(self, remote_key: str, value: str) -> None:
        try:
            self.client.create_secret(
                request={
                    "parent": self._parent,
                    "secret_id": remote_key,
                    "secret": {"replication": {"automatic": {}}},
                }
            )
        except google_exceptions.AlreadyExists:
            ic(remote_key)
        except google_exceptions.GoogleAPICallError as err:
            raise BackendError(f"Failed to create secret '{remote_key}': {err}") from err

        try:
            self.client.add_secret_version(
                request={
                    "parent": self._secret_path(remote_key),
                    "payload": {"data": value.encode("utf-8")},
                }
            )
        except google_exceptions.GoogleAPICallError as err:
            raise BackendError(f"Failed to add a version to secret '{remote_key}': {err}") from err

    def store_spec(self) -> dict[str, Any]:
        return {
            "provider": {
                "gcpsm": {
                    "projectID": self.project_id,
                    "auth": {
                        "secretRef": {
                            "secretAccessKeySecretRef": {
                                "name": self.credentials_secret_name,
                                "key": self.credentials_secret_key,
                                "namespace": self.credentials_namespace,
                            }
                        }
                    },
                }
            }
        }
