"""One-time setup of the GCP identity used by External Secrets Operator.

The bootstrapper walks a fixed sequence of steps::

    CHECK_API_ENABLED -> ENABLE_API -> ENSURE_IDENTITY
        -> GRANT_ACCESS_POLICY -> ENSURE_CREDENTIALS -> DONE

Every step checks for an existing resource first, so an interrupted run is
recovered by simply running it again. Granting the IAM role is retried with
exponential backoff because a freshly created service account is not
visible to IAM immediately.
"""

import os
import time
from collections.abc import Callable
from enum import Enum
from pathlib import Path

from external_secrets_auto import console
from external_secrets_auto.exceptions import BootstrapError, PolicyGrantError
from external_secrets_auto.gcloud import Gcloud, GcloudCommandError
from external_secrets_auto.models import BootstrapResult
from external_secrets_auto.retry import RetryExhaustedError, RetryPolicy, retry_call

SERVICE_ACCOUNT_NAME = "external-secrets"
SERVICE_ACCOUNT_DISPLAY_NAME = "External Secrets Operator"
SECRET_ACCESSOR_ROLE = "roles/secretmanager.secretAccessor"
SECRET_MANAGER_API = "secretmanager.googleapis.com"

# Pause after creating the service account before IAM sees it
IDENTITY_PROPAGATION_DELAY = 5.0

GRANT_RETRY_POLICY = RetryPolicy(max_attempts=5, base_delay=2.0, multiplier=2.0)


class BootstrapStep(str, Enum):
    """Steps of the bootstrap sequence, in execution order."""

    CHECK_API_ENABLED = "check-api-enabled"
    ENABLE_API = "enable-api"
    ENSURE_IDENTITY = "ensure-identity"
    GRANT_ACCESS_POLICY = "grant-access-policy"
    ENSURE_CREDENTIALS = "ensure-credentials"
    DONE = "done"


def service_account_email(project_id: str) -> str:
    """Return the email of the ESO service account in ``project_id``."""
    return f"{SERVICE_ACCOUNT_NAME}@{project_id}.iam.gserviceaccount.com"


def default_key_dir() -> Path:
    """Directory holding service account keys (``~/.gcp``)."""
    return Path.home() / ".gcp"


def key_file_path(project_id: str, key_dir: Path | None = None) -> Path:
    """Local path of the ESO service account key for ``project_id``."""
    return (key_dir or default_key_dir()) / f"external-secrets-{project_id}.json"


class InfrastructureBootstrapper:
    """Establishes the backend identity for the in-cluster sync controller.

    Attributes:
        project_id: GCP project to bootstrap.
        gcloud: Command runner scoped to the project.
        key_dir: Directory where the service account key is stored.
        retry_policy: Backoff schedule for the IAM grant.
        completed: Steps that finished during the last run, in order.

    """

    def __init__(
        self,
        project_id: str,
        *,
        gcloud: Gcloud | None = None,
        key_dir: Path | None = None,
        retry_policy: RetryPolicy = GRANT_RETRY_POLICY,
        propagation_delay: float = IDENTITY_PROPAGATION_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.project_id = project_id
        self.gcloud = gcloud or Gcloud(project_id)
        self.key_dir = key_dir or default_key_dir()
        self.retry_policy = retry_policy
        self.propagation_delay = propagation_delay
        self._sleep = sleep
        self.completed: list[BootstrapStep] = []

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"InfrastructureBootstrapper(project_id={self.project_id!r}, key_dir={self.key_dir!r})"

    @property
    def service_account_email(self) -> str:
        return service_account_email(self.project_id)

    @property
    def key_file_path(self) -> Path:
        return key_file_path(self.project_id, self.key_dir)

    def _call(self, step: BootstrapStep, args: list[str]) -> str:
        try:
            return self.gcloud.run(args)
        except GcloudCommandError as err:
            raise BootstrapError(f"Bootstrap step '{step.value}' failed: {err}", step=step.value) from err

    def api_enabled(self) -> bool:
        """Return whether the Secret Manager API is enabled in the project."""
        output = self._call(
            BootstrapStep.CHECK_API_ENABLED,
            [
                "services",
                "list",
                "--enabled",
                f"--filter=config.name:{SECRET_MANAGER_API}",
                "--format=value(config.name)",
            ],
        )
        return bool(output.strip())

    def ensure_api_enabled(self) -> None:
        console.action("Checking Secret Manager API")
        enabled = self.api_enabled()
        self.completed.append(BootstrapStep.CHECK_API_ENABLED)

        if enabled:
            console.success("Secret Manager API already enabled")
            return

        with console.spinner("Enabling Secret Manager API..."):
            self._call(BootstrapStep.ENABLE_API, ["services", "enable", SECRET_MANAGER_API])
        self.completed.append(BootstrapStep.ENABLE_API)
        console.success("Secret Manager API enabled")

    def identity_exists(self) -> bool:
        return self.gcloud.succeeds(["iam", "service-accounts", "describe", self.service_account_email])

    def ensure_identity(self) -> str:
        """Create the ESO service account unless it already exists.

        Returns:
            The service account email.

        """
        email = self.service_account_email
        if self.identity_exists():
            console.success(f"Service account already exists: {console.highlight(SERVICE_ACCOUNT_NAME)}")
        else:
            console.action(f"Creating service account {console.highlight(SERVICE_ACCOUNT_NAME)}")
            self._call(
                BootstrapStep.ENSURE_IDENTITY,
                [
                    "iam",
                    "service-accounts",
                    "create",
                    SERVICE_ACCOUNT_NAME,
                    f"--display-name={SERVICE_ACCOUNT_DISPLAY_NAME}",
                ],
            )
            console.success(f"Created service account: {SERVICE_ACCOUNT_NAME}")
            console.step("Waiting for service account propagation")
            self._sleep(self.propagation_delay)

        self.completed.append(BootstrapStep.ENSURE_IDENTITY)
        return email

    def grant_access_policy(self, email: str) -> None:
        """Bind the secret accessor role to the service account.

        The binding is additive in IAM, so repeating it is harmless.

        Raises:
            PolicyGrantError: If every attempt of the retry policy failed.

        """
        console.action(f"Granting {console.highlight(SECRET_ACCESSOR_ROLE)}")
        args = [
            "projects",
            "add-iam-policy-binding",
            self.project_id,
            f"--member=serviceAccount:{email}",
            f"--role={SECRET_ACCESSOR_ROLE}",
            "--condition=None",
        ]

        def _on_retry(attempt: int, delay: float, error: BaseException) -> None:
            console.warning(f"Retry {attempt}/{self.retry_policy.max_attempts} after {delay:g}s")

        try:
            retry_call(
                lambda: self.gcloud.run(args),
                self.retry_policy,
                retry_on=GcloudCommandError,
                on_retry=_on_retry,
                sleep=self._sleep,
            )
        except RetryExhaustedError as err:
            raise PolicyGrantError(
                f"Failed to grant {SECRET_ACCESSOR_ROLE} to {email} after {err.attempts} attempts: {err.last_error}",
                attempts=err.attempts,
                last_error=err.last_error,
            ) from err

        self.completed.append(BootstrapStep.GRANT_ACCESS_POLICY)
        console.success(f"Granted {SECRET_ACCESSOR_ROLE} role")

    def ensure_credentials(self, email: str) -> Path:
        """Create the service account key unless one is already stored locally.

        The key file is always left readable by its owner only.

        Returns:
            Path of the key file.

        """
        path = self.key_file_path

        if path.is_file():
            console.success(f"Service account key already exists: {console.highlight(str(path))}")
        else:
            console.action("Creating service account key")
            path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
            self._call(
                BootstrapStep.ENSURE_CREDENTIALS,
                ["iam", "service-accounts", "keys", "create", str(path), f"--iam-account={email}"],
            )
            console.success(f"Created service account key: {console.highlight(str(path))}")

        os.chmod(path, 0o600)
        self.completed.append(BootstrapStep.ENSURE_CREDENTIALS)
        return path

    def run(self) -> BootstrapResult:
        """Run the full bootstrap sequence.

        Returns:
            The service account email and local key path.

        Raises:
            BootstrapError: If a step fails.
            PolicyGrantError: If the IAM grant never succeeded.

        """
        self.completed = []
        self.ensure_api_enabled()
        email = self.ensure_identity()
        self.grant_access_policy(email)
        path = self.ensure_credentials(email)
        self.completed.append(BootstrapStep.DONE)
        return BootstrapResult(service_account_email=email, key_file_path=path)
