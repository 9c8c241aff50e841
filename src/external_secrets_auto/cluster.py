"""Kubernetes cluster interaction utilities.

This module provides the Cluster class used to prepare the credentials the
External Secrets Operator needs and to read back ExternalSecret and Secret
objects for validation.
"""

from pathlib import Path
from typing import Any

import click
import questionary
from icecream import ic
from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import MaxRetryError

from external_secrets_auto import console
from external_secrets_auto.exceptions import ClusterConnectionError, ClusterReadError, ClusterWriteError
from external_secrets_auto.styles import POINTER, PROMPT_STYLE, QMARK

ESO_GROUP = "external-secrets.io"
ESO_VERSION = "v1beta1"
EXTERNAL_SECRET_PLURAL = "externalsecrets"

_NOT_FOUND = 404


class Cluster:
    """Manages Kubernetes cluster interactions for External Secrets.

    Attributes:
        context: The active Kubernetes context name.
        kubeconfig: Explicit kubeconfig path, or None for the default lookup.

    """

    def __init__(
        self,
        *,
        context: str | None = None,
        select_context: bool = False,
        kubeconfig: str | None = None,
    ) -> None:
        """Load the kubeconfig and pick the context to work with.

        Args:
            context: Context name to use; overrides selection.
            select_context: If True and no context is given, prompt for one.
            kubeconfig: Path to a kubeconfig file.

        Raises:
            ClusterConnectionError: If the kubeconfig is invalid or missing.

        """
        self.kubeconfig = kubeconfig
        self.context: str = context or self._set_context(select_context=select_context, kubeconfig=kubeconfig)
        try:
            config.load_kube_config(config_file=kubeconfig, context=self.context)
        except ConfigException as e:
            raise ClusterConnectionError(f"Cannot load context '{self.context}': {e}") from e

    @staticmethod
    def _set_context(*, select_context: bool, kubeconfig: str | None = None) -> str:
        """Determine the Kubernetes context to use.

        Args:
            select_context: If True, prompt user to select a context.
            kubeconfig: Path to a kubeconfig file.

        Returns:
            The selected or current context name.

        Raises:
            ClusterConnectionError: If kubeconfig is invalid or missing.
            click.Abort: If user cancels context selection.

        """
        try:
            contexts, current_context = config.list_kube_config_contexts(config_file=kubeconfig)
        except ConfigException as e:
            raise ClusterConnectionError(f"Invalid or missing kubeconfig: {e}") from e
        if select_context:
            context_names: list[str] = [context["name"] for context in contexts]
            context: str | None = questionary.select(
                "Select context to work with",
                choices=context_names,
                style=PROMPT_STYLE,
                pointer=POINTER,
                qmark=QMARK,
            ).ask()
            if context is None:
                console.warning("Context selection cancelled.")
                raise click.Abort()
        else:
            context = str(current_context["name"])
        console.action(f"Working with {console.highlight(context)} cluster")
        return context

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"Cluster(context={self.context!r}, kubeconfig={self.kubeconfig!r})"

    @staticmethod
    def _unreachable(e: MaxRetryError) -> ClusterReadError:
        return ClusterReadError(f"Failed to connect to the Kubernetes cluster: {e.reason}")

    def namespace_exists(self, namespace: str) -> bool:
        try:
            client.CoreV1Api().read_namespace(namespace)
        except ApiException as e:
            if e.status == _NOT_FOUND:
                return False
            raise ClusterReadError(f"Failed to read namespace '{namespace}': {e.reason}") from e
        except MaxRetryError as e:
            raise self._unreachable(e) from e
        return True

    def ensure_namespace(self, namespace: str) -> None:
        """Create ``namespace`` unless it already exists.

        Raises:
            ClusterWriteError: If the namespace cannot be created.

        """
        if self.namespace_exists(namespace):
            console.success(f"Namespace already exists: {console.highlight(namespace)}")
            return

        console.action(f"Creating namespace {console.highlight(namespace)}")
        body = client.V1Namespace(metadata=client.V1ObjectMeta(name=namespace))
        try:
            client.CoreV1Api().create_namespace(body)
        except ApiException as e:
            raise ClusterWriteError(f"Failed to create namespace '{namespace}': {e.reason}") from e
        except MaxRetryError as e:
            raise self._unreachable(e) from e
        console.success(f"Created namespace: {namespace}")

    def read_secret(self, name: str, namespace: str) -> Any | None:
        """Read a Kubernetes Secret.

        Returns:
            The V1Secret, or None if it does not exist.

        Raises:
            ApiException: For API errors other than "not found".
            ClusterReadError: If the cluster is unreachable.

        """
        try:
            return client.CoreV1Api().read_namespaced_secret(name, namespace)
        except ApiException as e:
            if e.status == _NOT_FOUND:
                return None
            raise
        except MaxRetryError as e:
            raise self._unreachable(e) from e

    def secret_exists(self, name: str, namespace: str) -> bool:
        return self.read_secret(name, namespace) is not None

    def ensure_credentials_secret(self, key_file: Path, *, name: str, namespace: str, key: str) -> None:
        """Store a service account key in a Kubernetes Secret.

        The namespace is created first if needed; an existing Secret is left
        untouched.

        Args:
            key_file: Local JSON key file.
            name: Secret name.
            namespace: Secret namespace.
            key: Key inside the Secret that holds the file content.

        Raises:
            ClusterWriteError: If the key cannot be read or the Secret cannot be created.

        """
        self.ensure_namespace(namespace)

        try:
            exists = self.secret_exists(name, namespace)
        except ApiException as e:
            raise ClusterReadError(f"Failed to read secret '{namespace}/{name}': {e.reason}") from e
        if exists:
            console.success(f"Secret already exists: {console.highlight(f'{namespace}/{name}')}")
            return

        try:
            key_content = key_file.read_text(encoding="utf-8")
        except OSError as e:
            raise ClusterWriteError(f"Failed to read key file '{key_file}': {e.strerror or e}") from e

        console.action(f"Creating secret {console.highlight(f'{namespace}/{name}')}")
        body = client.V1Secret(
            metadata=client.V1ObjectMeta(name=name, namespace=namespace),
            type="Opaque",
            string_data={key: key_content},
        )
        try:
            client.CoreV1Api().create_namespaced_secret(namespace, body)
        except ApiException as e:
            raise ClusterWriteError(f"Failed to create secret '{namespace}/{name}': {e.reason}") from e
        except MaxRetryError as e:
            raise self._unreachable(e) from e
        console.success(f"Created secret: {namespace}/{name}")

    def list_external_secrets(self) -> list[tuple[str, str]]:
        """List every ExternalSecret in the cluster.

        Returns:
            Sorted list of (namespace, name) pairs.

        Raises:
            ClusterReadError: If the objects cannot be listed.

        """
        try:
            response: dict[str, Any] = client.CustomObjectsApi().list_cluster_custom_object(
                ESO_GROUP, ESO_VERSION, EXTERNAL_SECRET_PLURAL
            )
        except ApiException as e:
            raise ClusterReadError(f"Failed to list ExternalSecrets: {e.reason}") from e
        except MaxRetryError as e:
            raise self._unreachable(e) from e

        found = [
            (item["metadata"]["namespace"], item["metadata"]["name"]) for item in response.get("items", [])
        ]
        ic(found)
        return sorted(found)

    def get_external_secret(self, name: str, namespace: str) -> dict[str, Any] | None:
        """Read one ExternalSecret.

        Returns:
            The object as a dictionary, or None if it does not exist.

        Raises:
            ApiException: For API errors other than "not found".
            ClusterReadError: If the cluster is unreachable.

        """
        try:
            return client.CustomObjectsApi().get_namespaced_custom_object(
                ESO_GROUP, ESO_VERSION, namespace, EXTERNAL_SECRET_PLURAL, name
            )
        except ApiException as e:
            if e.status == _NOT_FOUND:
                return None
            raise
        except MaxRetryError as e:
            raise self._unreachable(e) from e
