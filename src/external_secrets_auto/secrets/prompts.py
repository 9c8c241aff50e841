"""Interactive user prompts.

Thin questionary wrappers used by the CLI. Nothing in the provisioning
pipeline imports this module directly; the CLI passes these callables in.
"""

import re

import click
import questionary

from external_secrets_auto import console
from external_secrets_auto.styles import PROMPT_STYLE, QMARK

# GCP project ids: 6-30 chars, lowercase letters, digits and hyphens
_PROJECT_ID_PATTERN = re.compile(r"^[a-z][a-z0-9-]{4,28}[a-z0-9]$")


def validate_project_id(value: str) -> bool | str:
    """Validate a GCP project id.

    Returns:
        True if valid, or an error message string if invalid.

    """
    if not value:
        return "Project id cannot be empty"
    if not _PROJECT_ID_PATTERN.match(value):
        return "Project id must be 6-30 lowercase letters, digits or hyphens and start with a letter"
    return True


def prompt_project_id() -> str:
    """Ask for the GCP project that hosts the secrets.

    Raises:
        click.Abort: If the prompt is cancelled.

    """
    project_id = questionary.text(
        "GCP project id for Secret Manager",
        validate=validate_project_id,
        style=PROMPT_STYLE,
        qmark=QMARK,
    ).ask()
    if project_id is None:
        console.warning("Project selection cancelled.")
        raise click.Abort()
    return project_id


def prompt_secret_value(message: str) -> str:
    """Ask for a secret value with masked input.

    Args:
        message: The prompt text, usually derived from the declaration.

    Returns:
        The entered value.

    Raises:
        click.Abort: If the prompt is cancelled.

    """
    value = questionary.password(
        message,
        validate=lambda x: True if x else "Value cannot be empty",
        style=PROMPT_STYLE,
        qmark=QMARK,
    ).ask()
    if value is None:
        console.warning("Value entry cancelled.")
        raise click.Abort()
    return value


def confirm(message: str, *, default: bool = True) -> bool:
    """Ask a yes/no question, aborting on cancellation."""
    answer = questionary.confirm(message, default=default, style=PROMPT_STYLE, qmark=QMARK).ask()
    if answer is None:
        raise click.Abort()
    return bool(answer)
