"""Shared test fixtures for external-secrets-auto tests."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from external_secrets_auto.providers.base import SecretProvider

API_SECRETS_YAML = """secrets:
  - name: api-credentials
    keys:
      - key: DATABASE_PASSWORD
        remoteKey: api-database-password
        generate: true
      - key: STRIPE_KEY
        remoteKey: api-stripe-key
        prompt: "Stripe secret key"
"""

WORKER_SECRETS_YAML = """secrets:
  - name: worker-queue
    keys:
      - key: QUEUE_TOKEN
        remoteKey: worker-queue-token
        generate: true
"""

INFRASTRUCTURE_SECRETS_YAML = """secrets:
  - name: grafana-admin
    targetNamespace: monitoring
    keys:
      - key: admin-password
        remoteKey: grafana-admin-password
        generate: true
  - name: registry-token
    keys:
      - key: token
        remoteKey: registry-token
"""


class FakeProvider(SecretProvider):
    """In-memory secret backend."""

    name = "fake"

    def __init__(self, project_id: str = "test-project", *, store_name: str = "gcp-secretstore") -> None:
        super().__init__(project_id, store_name=store_name)
        self.store: dict[str, str] = {}
        self.initialized = False
        self.calls: list[tuple[str, str]] = []

    def initialize(self) -> None:
        self.initialized = True

    def exists(self, remote_key: str) -> bool:
        self.calls.append(("exists", remote_key))
        return remote_key in self.store

    def create(self, remote_key: str, value: str) -> None:
        self.calls.append(("create", remote_key))
        self.store[remote_key] = value

    def store_spec(self) -> dict:
        return {"provider": {"fake": {"projectID": self.project_id}}}


def write_declaration(path: Path, content: str) -> Path:
    """Write a declaration file, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def fake_provider():
    """In-memory provider with no backend access."""
    return FakeProvider()


@pytest.fixture
def platform_repo(tmp_path):
    """Repository with two deployments and an infrastructure declaration."""
    write_declaration(tmp_path / "deployments" / "api" / "secrets.yaml", API_SECRETS_YAML)
    write_declaration(tmp_path / "deployments" / "worker" / "secrets.yaml", WORKER_SECRETS_YAML)
    write_declaration(tmp_path / "infrastructure" / "secrets.yaml", INFRASTRUCTURE_SECRETS_YAML)
    return tmp_path


@pytest.fixture
def mock_kube_contexts():
    """Mock kubernetes config contexts."""
    with patch("kubernetes.config.list_kube_config_contexts") as mock:
        mock.return_value = ([{"name": "test-context"}], {"name": "test-context"})
        yield mock


@pytest.fixture
def mock_kube_config():
    """Mock kubernetes config loading."""
    with patch("kubernetes.config.load_kube_config") as mock:
        yield mock


@pytest.fixture
def mock_core_v1_api():
    """Mock CoreV1Api for namespace and secret access."""
    with patch("kubernetes.client.CoreV1Api") as mock:
        api_instance = MagicMock()
        mock.return_value = api_instance
        yield api_instance


@pytest.fixture
def mock_custom_objects_api():
    """Mock CustomObjectsApi for ExternalSecret access."""
    with patch("kubernetes.client.CustomObjectsApi") as mock:
        api_instance = MagicMock()
        mock.return_value = api_instance
        api_instance.list_cluster_custom_object.return_value = {"items": []}
        yield api_instance


@pytest.fixture
def cluster_mocks(mock_kube_contexts, mock_kube_config, mock_core_v1_api, mock_custom_objects_api):
    """Combined fixture for creating a Cluster instance without cluster access."""
    return {
        "contexts": mock_kube_contexts,
        "config": mock_kube_config,
        "core_api": mock_core_v1_api,
        "custom_api": mock_custom_objects_api,
    }


@pytest.fixture
def mock_subprocess():
    """Mock subprocess.run for command execution."""
    with patch("subprocess.run") as mock:
        mock.return_value = MagicMock(returncode=0, stdout="", stderr="")
        yield mock


@pytest.fixture
def mock_gcloud():
    """Mock gcloud runner that succeeds for every command."""
    gcloud = MagicMock()
    gcloud.run.return_value = ""
    gcloud.succeeds.return_value = True
    return gcloud
