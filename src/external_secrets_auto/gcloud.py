"""Thin wrapper around the ``gcloud`` CLI.

IAM and service-usage operations are performed through ``gcloud`` so that
the bootstrapper uses the operator's existing CLI login.
"""

import shutil
import subprocess

from icecream import ic

from external_secrets_auto.exceptions import BinaryNotFoundError

_ERR_GCLOUD_NOT_FOUND = "gcloud CLI not found. Please install it: https://cloud.google.com/sdk/docs/install"


class GcloudCommandError(Exception):
    """Raised when a gcloud invocation exits with a non-zero status.

    Attributes:
        returncode: Exit status of the command.
        stderr: Captured standard error, stripped.

    """

    def __init__(self, args: list[str], returncode: int, stderr: str) -> None:
        details = f": {stderr}" if stderr else ""
        super().__init__(f"'gcloud {' '.join(args)}' failed with exit code {returncode}{details}")
        self.returncode = returncode
        self.stderr = stderr


class Gcloud:
    """Runs gcloud commands scoped to one project.

    Attributes:
        project_id: Project passed to every command via ``--project``.
        binary: Path to the gcloud executable.

    """

    def __init__(self, project_id: str, *, binary: str | None = None) -> None:
        self.project_id = project_id
        self.binary = binary or self._find_binary()

    @staticmethod
    def _find_binary() -> str:
        """Locate gcloud in PATH.

        Raises:
            BinaryNotFoundError: If gcloud is not installed.

        """
        found = shutil.which("gcloud")
        if found is None:
            raise BinaryNotFoundError(_ERR_GCLOUD_NOT_FOUND)
        return found

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"Gcloud(project_id={self.project_id!r}, binary={self.binary!r})"

    def run(self, args: list[str]) -> str:
        """Run ``gcloud <args> --project=<project>`` and return its stdout.

        Raises:
            BinaryNotFoundError: If the binary disappeared since lookup.
            GcloudCommandError: If the command fails.

        """
        cmd = [self.binary, *args, f"--project={self.project_id}"]
        ic(cmd)
        try:
            completed = subprocess.run(cmd, capture_output=True, text=True, check=True)
        except FileNotFoundError as err:
            raise BinaryNotFoundError(_ERR_GCLOUD_NOT_FOUND) from err
        except subprocess.CalledProcessError as err:
            raise GcloudCommandError(args, err.returncode, (err.stderr or "").strip()) from err
        return completed.stdout

    def succeeds(self, args: list[str]) -> bool:
        """Return whether a command exits successfully; used for existence checks."""
        try:
            self.run(args)
        except GcloudCommandError:
            return False
        return True
