#!/usr/bin/env python
"""Command-line interface for external-secrets-auto.

This module provides the CLI entry point, turning command-line options into
resolved settings and driving the bootstrap, provisioning, generation and
validation steps.
"""

import json
import sys
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

import click
from icecream import ic

from external_secrets_auto import __version__, console
from external_secrets_auto.bootstrap import InfrastructureBootstrapper
from external_secrets_auto.cluster import Cluster
from external_secrets_auto.config import Settings, resolve_settings
from external_secrets_auto.exceptions import ConfigError, ExternalSecretsError
from external_secrets_auto.models import GenerationSummary, ProvisionSummary
from external_secrets_auto.providers import GCPProvider, SecretProvider, get_provider
from external_secrets_auto.secrets.parsing import (
    DeclarationFile,
    check_remote_key_uniqueness,
    find_declaration_files,
    parse_declaration_files,
)
from external_secrets_auto.secrets.prompts import confirm, prompt_project_id, prompt_secret_value
from external_secrets_auto.secrets.provisioning import generate_manifests, provision_secrets
from external_secrets_auto.secrets.values import DeclaredValueSource
from external_secrets_auto.validation import ClusterValidator


@contextmanager
def _exit_on_error() -> Generator[None, None, None]:
    """Report any external-secrets-auto error and exit with status 1."""
    try:
        yield
    except ExternalSecretsError as e:
        console.error(str(e))
        sys.exit(1)


def load_declarations(root: str, files: tuple[str, ...]) -> list[DeclarationFile]:
    """Parse the given declaration files, or discover them below ``root``.

    Raises:
        ConfigError: If no declaration files are found.
        SchemaError: If any file is invalid or a remoteKey is repeated.

    """
    paths = [Path(f) for f in files] if files else find_declaration_files(root)
    if not paths:
        raise ConfigError(f"No secrets.yaml files found under '{root}'")
    ic(paths)

    declaration_files = parse_declaration_files(paths)
    check_remote_key_uniqueness(declaration_files)
    return declaration_files


def _settings(root: str, project: str | None, store_name: str | None, **kwargs: object) -> Settings:
    settings = resolve_settings(
        project_id=project, store_name=store_name, root=root, prompt=prompt_project_id, **kwargs
    )
    console.info(
        f"Using project {console.highlight(settings.project_id)} (from {settings.project_source})"
    )
    return settings


def _provider(settings: Settings) -> SecretProvider:
    return get_provider(settings.provider, settings.project_id, store_name=settings.store_name)


def _print_summary(
    settings: Settings,
    generation: GenerationSummary,
    provisioning: ProvisionSummary | None = None,
) -> None:
    items = {
        "Project": settings.project_id,
        "Store": settings.store_name,
        "Manifests written": str(len(generation.written)),
        "Manifests unchanged": str(len(generation.unchanged)),
    }
    if provisioning is not None:
        items["Keys created"] = str(len(provisioning.created))
        items["Keys existing"] = str(len(provisioning.existing))
    console.newline()
    console.summary_panel("External Secrets", items)


def _root_option(func):
    return click.option(
        "--root",
        default=".",
        show_default=True,
        type=click.Path(file_okay=False),
        help="repository root with deployments/ and infrastructure/",
    )(func)


def _backend_options(func):
    func = click.option("--store-name", default=None, help="ClusterSecretStore name")(func)
    func = click.option("--project", "-p", default=None, help="GCP project id")(func)
    return _root_option(func)


def _cluster_options(func):
    func = click.option("--select", is_flag=True, default=False, help="prompt for context select")(func)
    func = click.option("--context", default=None, help="Kubernetes context to use")(func)
    return func


@click.group(
    invoke_without_command=True,
    help="Provision secrets and manage External Secrets manifests for Kubernetes",
)
@click.option("--version", "-v", required=False, is_flag=True, help="print version")
@click.option("--debug", required=False, is_flag=True, help="print debug information")
@click.pass_context
def cli(ctx: click.Context, version: bool, debug: bool) -> None:
    """Process global options.

    Args:
        ctx: Click context.
        version: Print version and exit.
        debug: Enable debug output.

    """
    if debug:
        ic.enable()
    else:
        ic.disable()

    if version:
        click.echo(__version__)
        ctx.exit(0)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command(help="Validate secrets.yaml files without contacting any backend")
@_root_option
@click.argument("files", nargs=-1, type=click.Path(dir_okay=False))
def check(root: str, files: tuple[str, ...]) -> None:
    with _exit_on_error():
        declaration_files = load_declarations(root, files)

    for declaration_file in declaration_files:
        namespace = declaration_file.default_namespace or "(per secret)"
        console.success(
            f"{declaration_file.path}: deployment {console.highlight(declaration_file.deployment_name)}, "
            f"namespace {namespace}, {len(declaration_file.secrets)} secret(s)"
        )


@cli.command(help="Generate ClusterSecretStore and ExternalSecret manifests")
@_backend_options
@click.argument("files", nargs=-1, type=click.Path(dir_okay=False))
def generate(root: str, project: str | None, store_name: str | None, files: tuple[str, ...]) -> None:
    with _exit_on_error():
        declaration_files = load_declarations(root, files)
        settings = _settings(root, project, store_name)
        provider = _provider(settings)
        summary = generate_manifests(provider, declaration_files, settings.root)

    _print_summary(settings, summary)


@cli.command(help="Create missing secrets in the backend and generate manifests")
@_backend_options
@click.argument("files", nargs=-1, type=click.Path(dir_okay=False))
def provision(root: str, project: str | None, store_name: str | None, files: tuple[str, ...]) -> None:
    with _exit_on_error():
        declaration_files = load_declarations(root, files)
        settings = _settings(root, project, store_name)
        provider = _provider(settings)

        with console.spinner("Authenticating with the secret backend..."):
            provider.initialize()

        provisioning = provision_secrets(provider, declaration_files, DeclaredValueSource(prompt_secret_value))
        generation = generate_manifests(provider, declaration_files, settings.root)

    _print_summary(settings, generation, provisioning)


@cli.command(help="Bootstrap the backend identity, cluster credentials, secrets and manifests")
@_backend_options
@_cluster_options
@click.option("--key-dir", default=None, type=click.Path(file_okay=False), help="service account key directory")
@click.option("--skip-bootstrap", is_flag=True, default=False, help="skip GCP identity setup")
@click.option("--yes", "-y", is_flag=True, default=False, help="do not ask for confirmation")
def setup(
    root: str,
    project: str | None,
    store_name: str | None,
    context: str | None,
    select: bool,
    key_dir: str | None,
    skip_bootstrap: bool,
    yes: bool,
) -> None:
    with _exit_on_error():
        declaration_files = load_declarations(root, ())
        settings = _settings(root, project, store_name, context=context, key_dir=key_dir)
        provider = _provider(settings)

        if not skip_bootstrap:
            if not yes and not confirm(f"Bootstrap External Secrets identity in project {settings.project_id}?"):
                raise click.Abort()
            bootstrapper = InfrastructureBootstrapper(settings.project_id, key_dir=settings.key_dir)
            result = bootstrapper.run()

            cluster = Cluster(context=settings.context, select_context=select, kubeconfig=settings.kubeconfig)
            if isinstance(provider, GCPProvider):
                cluster.ensure_credentials_secret(
                    result.key_file_path,
                    name=provider.credentials_secret_name,
                    namespace=provider.credentials_namespace,
                    key=provider.credentials_secret_key,
                )

        with console.spinner("Authenticating with the secret backend..."):
            provider.initialize()

        provisioning = provision_secrets(provider, declaration_files, DeclaredValueSource(prompt_secret_value))
        generation = generate_manifests(provider, declaration_files, settings.root)

    _print_summary(settings, generation, provisioning)


@cli.command(help="Check that ExternalSecrets are synced and their Secrets exist")
@_root_option
@_cluster_options
@click.option("--declared", is_flag=True, default=False, help="check the secrets declared under --root")
@click.option("--json", "as_json", is_flag=True, default=False, help="print the report as JSON")
def validate(root: str, context: str | None, select: bool, declared: bool, as_json: bool) -> None:
    with _exit_on_error():
        console.console.quiet = as_json
        try:
            declaration_files = load_declarations(root, ()) if declared else []
            cluster = Cluster(context=context, select_context=select)
            validator = ClusterValidator(cluster)
            report = validator.validate_declared(declaration_files) if declared else validator.validate()
        finally:
            # errors are reported after this, on an unmuted console
            console.console.quiet = False

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        console.validation_table(report.results, passed=report.success)

    if not report.success:
        sys.exit(1)


if __name__ == "__main__":
    cli()
