"""Data models for external-secrets-auto.

Runtime results produced by the bootstrapper, the provisioning run and the
cluster validator. Declaration models live in
:mod:`external_secrets_auto.secrets.schema`.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class ValidationStatus(str, Enum):
    """Outcome of a single cluster check.

    Inherits from str so values serialize directly to JSON.
    """

    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"


class ResourceKind(str, Enum):
    """Kind of cluster object a validation result refers to."""

    EXTERNAL_SECRET = "ExternalSecret"
    SECRET = "Secret"


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Observed status of one (name, namespace) pair.

    Attributes:
        name: The object name.
        namespace: The object namespace.
        resource: Which object was checked.
        status: success, error or warning.
        message: Human-readable explanation.

    """

    name: str
    namespace: str
    resource: ResourceKind
    status: ValidationStatus
    message: str

    @property
    def ok(self) -> bool:
        return self.status is not ValidationStatus.ERROR

    def to_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "namespace": self.namespace,
            "resource": self.resource.value,
            "status": self.status.value,
            "message": self.message,
        }


@dataclass(slots=True)
class ValidationReport:
    """Ordered validation results plus the aggregate verdict.

    A single ``error`` result fails the whole report; warnings never do.
    """

    results: list[ValidationResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(result.ok for result in self.results)

    @property
    def errors(self) -> list[ValidationResult]:
        return [result for result in self.results if result.status is ValidationStatus.ERROR]

    def add(self, result: ValidationResult) -> None:
        self.results.append(result)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "results": [result.to_dict() for result in self.results],
        }


@dataclass(frozen=True, slots=True)
class BootstrapResult:
    """Backend identity established by the bootstrapper.

    Attributes:
        service_account_email: Email of the sync controller's service account.
        key_file_path: Local path of the service account key.

    """

    service_account_email: str
    key_file_path: Path


@dataclass(slots=True)
class ProvisionSummary:
    """Remote keys touched by a provisioning run."""

    created: list[str] = field(default_factory=list)
    existing: list[str] = field(default_factory=list)


@dataclass(slots=True)
class GenerationSummary:
    """Manifest files produced by a generation run."""

    written: list[Path] = field(default_factory=list)
    unchanged: list[Path] = field(default_factory=list)

    @property
    def files(self) -> list[Path]:
        return [*self.written, *self.unchanged]
