"""Read-only audit of ExternalSecret sync state.

For every ExternalSecret two results are produced: one for the
ExternalSecret itself (is the controller reporting ``Ready``?) and one for
the Kubernetes Secret it should have materialized. The two are kept apart
because they point at different causes: a missing or unready
ExternalSecret means the declaration is not applied or the backend entry is
wrong, while a Ready ExternalSecret without its Secret means the controller
itself is broken or lagging.

Nothing is cached; every run reads the cluster afresh.
"""

from collections.abc import Iterable
from typing import Any

from icecream import ic
from kubernetes.client.exceptions import ApiException

from external_secrets_auto import console
from external_secrets_auto.cluster import Cluster
from external_secrets_auto.models import ResourceKind, ValidationReport, ValidationResult, ValidationStatus
from external_secrets_auto.secrets.parsing import DeclarationFile

READY_CONDITION = "Ready"


def _result(
    name: str, namespace: str, resource: ResourceKind, status: ValidationStatus, message: str
) -> ValidationResult:
    return ValidationResult(name=name, namespace=namespace, resource=resource, status=status, message=message)


def external_secret_status(name: str, namespace: str, obj: dict[str, Any] | None) -> ValidationResult:
    """Classify an ExternalSecret from its reported conditions.

    Args:
        name: ExternalSecret name.
        namespace: ExternalSecret namespace.
        obj: The object as returned by the API, or None if it was not found.

    Returns:
        success when a ``Ready`` condition is ``True``, error otherwise.

    """
    kind = ResourceKind.EXTERNAL_SECRET
    if obj is None:
        return _result(name, namespace, kind, ValidationStatus.ERROR, "ExternalSecret not found")

    conditions = (obj.get("status") or {}).get("conditions") or []
    ready = next((c for c in conditions if c.get("type") == READY_CONDITION), None)

    if ready is not None and ready.get("status") == "True":
        return _result(name, namespace, kind, ValidationStatus.SUCCESS, "ExternalSecret is synced")

    message = (ready or {}).get("message") or "ExternalSecret not ready"
    return _result(name, namespace, kind, ValidationStatus.ERROR, message)


class ClusterValidator:
    """Checks that ExternalSecrets are synced and their Secrets exist.

    Attributes:
        cluster: Cluster to read from.

    """

    def __init__(self, cluster: Cluster) -> None:
        self.cluster = cluster

    def check_external_secret(self, name: str, namespace: str) -> ValidationResult:
        try:
            obj = self.cluster.get_external_secret(name, namespace)
        except ApiException as e:
            return _result(
                name, namespace, ResourceKind.EXTERNAL_SECRET, ValidationStatus.ERROR, f"Failed to check: {e.reason}"
            )
        ic(name, namespace, obj is not None)
        return external_secret_status(name, namespace, obj)

    def check_secret(self, name: str, namespace: str) -> ValidationResult:
        kind = ResourceKind.SECRET
        try:
            found = self.cluster.secret_exists(name, namespace)
        except ApiException as e:
            return _result(name, namespace, kind, ValidationStatus.ERROR, f"Failed to check: {e.reason}")
        if found:
            return _result(name, namespace, kind, ValidationStatus.SUCCESS, "Kubernetes Secret exists")
        return _result(name, namespace, kind, ValidationStatus.ERROR, "Kubernetes Secret not found")

    def _check_pair(self, name: str, namespace: str, report: ValidationReport) -> None:
        console.action(f"Validating {console.highlight(f'{namespace}/{name}')}")
        for result in (self.check_external_secret(name, namespace), self.check_secret(name, namespace)):
            report.add(result)
            if result.status is ValidationStatus.SUCCESS:
                console.success(f"  {result.message}")
            else:
                console.error(f"  {result.message}")

    def validate(self) -> ValidationReport:
        """Validate every ExternalSecret found in the cluster.

        Returns:
            Report whose ``success`` is False if any check failed.

        Raises:
            ClusterReadError: If ExternalSecrets cannot be listed.

        """
        report = ValidationReport()

        with console.spinner("Listing ExternalSecrets..."):
            external_secrets = self.cluster.list_external_secrets()

        if not external_secrets:
            console.warning("No ExternalSecrets found in cluster")
            return report

        console.info(f"Found {len(external_secrets)} ExternalSecrets")
        for namespace, name in external_secrets:
            self._check_pair(name, namespace, report)
        return report

    def validate_declared(self, declaration_files: Iterable[DeclarationFile]) -> ValidationReport:
        """Validate the declared secrets against the cluster.

        Every declared (name, namespace) is checked even when no
        ExternalSecret exists for it. ExternalSecrets found in the cluster
        but absent from the declarations are reported as warnings.

        Raises:
            ClusterReadError: If ExternalSecrets cannot be listed.

        """
        report = ValidationReport()
        declared: list[tuple[str, str]] = []
        for declaration_file in declaration_files:
            for secret in declaration_file.secrets:
                pair = (declaration_file.namespace_for(secret), secret.name)
                if pair not in declared:
                    declared.append(pair)

        with console.spinner("Listing ExternalSecrets..."):
            in_cluster = self.cluster.list_external_secrets()

        for namespace, name in declared:
            self._check_pair(name, namespace, report)

        for namespace, name in in_cluster:
            if (namespace, name) not in declared:
                report.add(
                    _result(
                        name,
                        namespace,
                        ResourceKind.EXTERNAL_SECRET,
                        ValidationStatus.WARNING,
                        "ExternalSecret is not declared in any secrets.yaml",
                    )
                )
        return report
