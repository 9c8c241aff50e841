"""Layered configuration for a single command invocation.

Settings are resolved once, in a fixed priority order, and then passed to
every component explicitly. For the backend project id the order is:

1. explicit value (command-line option)
2. environment (``GCP_PROJECT``, then ``GOOGLE_CLOUD_PROJECT``)
3. ``projectID`` of a previously generated ClusterSecretStore
4. interactive prompt, when one is supplied
"""

import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

import yaml
from icecream import ic

from external_secrets_auto.exceptions import ConfigError
from external_secrets_auto.providers import DEFAULT_STORE_NAME
from external_secrets_auto.secrets.manifests import store_manifest_path

PROJECT_ENV_VARS = ("GCP_PROJECT", "GOOGLE_CLOUD_PROJECT")
STORE_NAME_ENV_VAR = "EXTERNAL_SECRETS_STORE_NAME"
PROVIDER_ENV_VAR = "EXTERNAL_SECRETS_PROVIDER"
DEFAULT_PROVIDER = "gcp"


@dataclass(frozen=True, slots=True)
class Settings:
    """Resolved settings for one invocation.

    Attributes:
        provider: Secret backend name.
        project_id: Backend project id.
        project_source: Where the project id came from (for diagnostics).
        store_name: ClusterSecretStore name.
        root: Repository root holding declarations and manifests.
        context: Kubernetes context, or None for the current one.
        kubeconfig: Explicit kubeconfig path, or None for the default lookup.
        key_dir: Directory of service account keys, or None for ``~/.gcp``.

    """

    provider: str
    project_id: str
    project_source: str
    store_name: str
    root: Path
    context: str | None = None
    kubeconfig: str | None = None
    key_dir: Path | None = None


def project_from_store_manifest(root: str | Path) -> str | None:
    """Read the project id back from an already generated ClusterSecretStore.

    Returns:
        The ``spec.provider.gcpsm.projectID`` value, or None if the file is
        absent or does not contain one.

    """
    path = store_manifest_path(root)
    if not path.is_file():
        return None
    try:
        document = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError):
        return None
    try:
        project_id = document["spec"]["provider"]["gcpsm"]["projectID"]
    except (KeyError, TypeError):
        return None
    return str(project_id) if project_id else None


def resolve_project_id(
    explicit: str | None,
    *,
    root: str | Path,
    environ: Mapping[str, str],
    prompt: Callable[[], str] | None = None,
) -> tuple[str, str]:
    """Resolve the backend project id.

    Returns:
        Tuple of (project_id, source).

    Raises:
        ConfigError: If no source yields a project id.

    """
    if explicit:
        return explicit, "option"
    for name in PROJECT_ENV_VARS:
        if environ.get(name):
            return environ[name], f"${name}"
    inferred = project_from_store_manifest(root)
    if inferred:
        return inferred, str(store_manifest_path(root))
    if prompt is not None:
        answer = prompt()
        if answer:
            return answer, "prompt"
    raise ConfigError(
        "GCP project id not configured. Pass --project, set GCP_PROJECT, "
        "or generate a ClusterSecretStore first."
    )


def resolve_settings(
    *,
    project_id: str | None = None,
    provider: str | None = None,
    store_name: str | None = None,
    root: str | Path = ".",
    context: str | None = None,
    kubeconfig: str | None = None,
    key_dir: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
    prompt: Callable[[], str] | None = None,
) -> Settings:
    """Build the Settings for this invocation.

    Args:
        project_id: Explicit project id.
        provider: Explicit provider name.
        store_name: Explicit ClusterSecretStore name.
        root: Repository root.
        context: Kubernetes context.
        kubeconfig: Kubeconfig path.
        key_dir: Service account key directory.
        environ: Environment mapping, defaults to ``os.environ``.
        prompt: Asks the user for a project id as a last resort.

    Raises:
        ConfigError: If the project id cannot be resolved.

    """
    env = os.environ if environ is None else environ
    root_path = Path(root)
    resolved_project, source = resolve_project_id(project_id, root=root_path, environ=env, prompt=prompt)

    settings = Settings(
        provider=provider or env.get(PROVIDER_ENV_VAR) or DEFAULT_PROVIDER,
        project_id=resolved_project,
        project_source=source,
        store_name=store_name or env.get(STORE_NAME_ENV_VAR) or DEFAULT_STORE_NAME,
        root=root_path,
        context=context,
        kubeconfig=kubeconfig,
        key_dir=Path(key_dir) if key_dir else None,
    )
    ic(settings)
    return settings
