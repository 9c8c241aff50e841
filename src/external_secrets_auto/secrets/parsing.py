"""Declaration file parsing and namespace inference.

This module loads ``secrets.yaml`` files, validates them against the
declaration schema and binds each file to a deployment and namespace based
on where it lives in the repository::

    deployments/<name>/secrets.yaml   -> deployment <name>, namespace <name>
    infrastructure/secrets.yaml       -> deployment infrastructure, no namespace
"""

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from icecream import ic
from pydantic import ValidationError

from external_secrets_auto.exceptions import DeclarationReadError, SchemaError
from external_secrets_auto.secrets.schema import SecretDeclaration, SecretsConfig

DECLARATION_FILENAME = "secrets.yaml"
DEPLOYMENTS_DIR = "deployments"
INFRASTRUCTURE_DIR = "infrastructure"
FALLBACK_NAMESPACE = "default"


@dataclass(frozen=True, slots=True)
class DeclarationFile:
    """A parsed declaration file plus the metadata inferred from its location.

    Attributes:
        path: Resolved path of the file.
        deployment_name: Deployment the file belongs to.
        default_namespace: Namespace secrets land in when they do not name
            one, or None for cross-namespace (infrastructure) files.
        secrets: The declared secrets, in file order.

    """

    path: Path
    deployment_name: str
    default_namespace: str | None
    secrets: tuple[SecretDeclaration, ...]

    def namespace_for(self, secret: SecretDeclaration) -> str:
        return resolve_target_namespace(secret, self.default_namespace)


def infer_deployment(path: str | Path) -> tuple[str, str | None]:
    """Infer the deployment name and default namespace from a file location.

    Args:
        path: Path to a declaration file.

    Returns:
        Tuple of (deployment_name, default_namespace). The namespace is None
        for files directly under an ``infrastructure`` directory.

    """
    directory = Path(path).resolve().parent

    if directory.parent.name == DEPLOYMENTS_DIR:
        return directory.name, directory.name
    if directory.name == INFRASTRUCTURE_DIR:
        return INFRASTRUCTURE_DIR, None
    return directory.name, directory.name


def resolve_target_namespace(secret: SecretDeclaration, default_namespace: str | None) -> str:
    """Resolve where a secret is synced to.

    Priority: the secret's own targetNamespace, then the file's inferred
    namespace, then ``default``.
    """
    return secret.target_namespace or default_namespace or FALLBACK_NAMESPACE


def _format_validation_error(err: ValidationError) -> str:
    problems = []
    for detail in err.errors():
        location = ".".join(str(part) for part in detail["loc"]) or "<root>"
        problems.append(f"{location}: {detail['msg']}")
    return "; ".join(problems)


def _load_document(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as err:
        raise DeclarationReadError(f"Cannot read declaration file '{path}': {err.strerror or err}") from err

    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as err:
        raise SchemaError(f"Declaration file '{path}' contains malformed YAML: {err}") from err


def parse_declaration_file(path: str | Path) -> DeclarationFile:
    """Parse and validate a single declaration file.

    Args:
        path: Path to the ``secrets.yaml`` file.

    Returns:
        The parsed DeclarationFile.

    Raises:
        DeclarationReadError: If the file cannot be read.
        SchemaError: If the file is not valid YAML or does not match the schema.

    """
    file_path = Path(path).resolve()
    document = _load_document(file_path)

    if not isinstance(document, dict):
        raise SchemaError(
            f"Declaration file '{file_path}' must be a YAML mapping with a top-level 'secrets' list"
        )

    try:
        config = SecretsConfig.model_validate(document)
    except ValidationError as err:
        raise SchemaError(f"Declaration file '{file_path}' is invalid: {_format_validation_error(err)}") from err

    deployment_name, default_namespace = infer_deployment(file_path)
    ic(file_path, deployment_name, default_namespace)

    return DeclarationFile(
        path=file_path,
        deployment_name=deployment_name,
        default_namespace=default_namespace,
        secrets=config.secrets,
    )


def parse_declaration_files(paths: Iterable[str | Path]) -> list[DeclarationFile]:
    """Parse several declaration files, failing on the first invalid one."""
    return [parse_declaration_file(path) for path in paths]


def find_declaration_files(root: str | Path) -> list[Path]:
    """Find declaration files in a platform repository.

    Looks for ``deployments/*/secrets.yaml`` and ``infrastructure/secrets.yaml``
    below ``root``.

    Args:
        root: Repository root directory.

    Returns:
        Sorted list of declaration file paths.

    """
    root_path = Path(root)
    found = sorted(root_path.glob(f"{DEPLOYMENTS_DIR}/*/{DECLARATION_FILENAME}"))
    infrastructure = root_path / INFRASTRUCTURE_DIR / DECLARATION_FILENAME
    if infrastructure.is_file():
        found.append(infrastructure)
    return found


def check_remote_key_uniqueness(files: Iterable[DeclarationFile]) -> None:
    """Ensure every remoteKey is declared only once across all files.

    Raises:
        SchemaError: On the first duplicate, naming both declaring secrets.

    """
    owners: dict[str, str] = {}
    for declaration_file in files:
        for secret in declaration_file.secrets:
            owner = f"{declaration_file.path}:{secret.name}"
            for entry in secret.keys:
                previous = owners.get(entry.remote_key)
                if previous is not None:
                    raise SchemaError(
                        f"remoteKey '{entry.remote_key}' is declared by both {previous} and {owner}"
                    )
                owners[entry.remote_key] = owner
