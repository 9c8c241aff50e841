"""Tests for cli.py module."""

import json
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from external_secrets_auto import __version__, console
from external_secrets_auto.cli import cli
from external_secrets_auto.exceptions import AuthError, ClusterReadError, PolicyGrantError
from external_secrets_auto.models import BootstrapResult
from external_secrets_auto.providers import GCPProvider

CLEAN_ENV = {
    "GCP_PROJECT": None,
    "GOOGLE_CLOUD_PROJECT": None,
    "EXTERNAL_SECRETS_STORE_NAME": None,
    "EXTERNAL_SECRETS_PROVIDER": None,
}


@pytest.fixture
def runner():
    return CliRunner()


class TestCliVersion:
    """Tests for version flag."""

    def test_version_flag(self, runner):
        """Test --version flag prints version."""
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_version_short_flag(self, runner):
        """Test -v flag prints version."""
        result = runner.invoke(cli, ["-v"])

        assert result.exit_code == 0
        assert __version__ in result.output


class TestCliHelp:
    """Tests for help output."""

    def test_help_flag(self, runner):
        """Test --help lists global options and commands."""
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "External Secrets" in result.output
        for name in ("--version", "--debug", "setup", "provision", "generate", "check", "validate"):
            assert name in result.output

    def test_no_command_prints_help(self, runner):
        """Test running without a command shows usage."""
        result = runner.invoke(cli, [])

        assert result.exit_code == 0
        assert "Usage" in result.output


class TestCliDebug:
    """Tests for debug mode."""

    def test_debug_flag_enables_icecream(self, runner):
        """Test --debug keeps icecream enabled."""
        with patch("external_secrets_auto.cli.ic") as mock_ic:
            result = runner.invoke(cli, ["--debug", "--version"])

        assert result.exit_code == 0
        mock_ic.enable.assert_called_once()
        mock_ic.disable.assert_not_called()

    def test_icecream_disabled_by_default(self, runner):
        """Test icecream is silenced without --debug."""
        with patch("external_secrets_auto.cli.ic") as mock_ic:
            runner.invoke(cli, ["--version"])

        mock_ic.disable.assert_called_once()


class TestCliCheck:
    """Tests for the check command."""

    def test_check_valid_repository(self, runner, platform_repo):
        """Test valid declarations pass."""
        result = runner.invoke(cli, ["check", "--root", str(platform_repo)])

        assert result.exit_code == 0
        assert "api" in result.output
        assert "infrastructure" in result.output

    def test_check_single_file(self, runner, platform_repo):
        """Test explicit files are checked instead of discovery."""
        path = platform_repo / "deployments" / "worker" / "secrets.yaml"

        result = runner.invoke(cli, ["check", str(path)])

        assert result.exit_code == 0
        assert "worker" in result.output

    def test_check_duplicate_remote_key(self, runner, platform_repo):
        """Test duplicate remote keys fail with exit code 1."""
        billing = platform_repo / "deployments" / "billing"
        billing.mkdir()
        (billing / "secrets.yaml").write_text(
            "secrets:\n  - name: billing\n    keys:\n      - key: T\n        remoteKey: registry-token\n"
        )

        result = runner.invoke(cli, ["check", "--root", str(platform_repo)])

        assert result.exit_code == 1
        assert "registry-token" in result.output

    def test_check_empty_root(self, runner, tmp_path):
        """Test a root without declarations fails."""
        result = runner.invoke(cli, ["check", "--root", str(tmp_path)])

        assert result.exit_code == 1
        assert "No secrets.yaml files found" in result.output


class TestCliGenerate:
    """Tests for the generate command."""

    def test_generate_writes_manifests(self, runner, platform_repo):
        """Test manifests are generated without backend access."""
        result = runner.invoke(
            cli, ["generate", "--root", str(platform_repo), "--project", "test-project"], env=CLEAN_ENV
        )

        assert result.exit_code == 0
        store = platform_repo / "infrastructure" / "external-secrets" / "clustersecretstore.yaml"
        assert "projectID: test-project" in store.read_text()
        manifest = platform_repo / "deployments" / "api" / "external-secrets" / "api-credentials-externalsecret.yaml"
        assert manifest.is_file()

    def test_generate_reuses_project_from_store(self, runner, platform_repo):
        """Test a second run finds the project in the generated store."""
        runner.invoke(cli, ["generate", "--root", str(platform_repo), "-p", "test-project"], env=CLEAN_ENV)

        with patch("external_secrets_auto.cli.prompt_project_id") as mock_prompt:
            result = runner.invoke(cli, ["generate", "--root", str(platform_repo)], env=CLEAN_ENV)

        assert result.exit_code == 0
        mock_prompt.assert_not_called()
        assert "test-project" in result.output

    def test_generate_prompts_for_project(self, runner, platform_repo):
        """Test the project is asked for when nothing configures it."""
        with patch("external_secrets_auto.cli.prompt_project_id", return_value="typed-project"):
            result = runner.invoke(cli, ["generate", "--root", str(platform_repo)], env=CLEAN_ENV)

        assert result.exit_code == 0
        assert "typed-project" in result.output


class TestCliProvision:
    """Tests for the provision command."""

    def test_provision_creates_missing_secrets(self, runner, platform_repo, fake_provider):
        """Test missing keys are created and manifests written."""
        with (
            patch("external_secrets_auto.cli.get_provider", return_value=fake_provider),
            patch("external_secrets_auto.cli.prompt_secret_value", return_value="typed") as mock_prompt,
        ):
            result = runner.invoke(
                cli, ["provision", "--root", str(platform_repo), "-p", "test-project"], env=CLEAN_ENV
            )

        assert result.exit_code == 0
        assert fake_provider.initialized is True
        assert len(fake_provider.store) == 5
        assert fake_provider.store["api-stripe-key"] == "typed"
        assert mock_prompt.call_count == 2
        assert (platform_repo / "infrastructure" / "external-secrets" / "clustersecretstore.yaml").is_file()

    def test_provision_auth_failure(self, runner, platform_repo, fake_provider):
        """Test authentication errors exit with code 1 before any write."""
        fake_provider.initialize = MagicMock(side_effect=AuthError("credentials expired"))

        with patch("external_secrets_auto.cli.get_provider", return_value=fake_provider):
            result = runner.invoke(
                cli, ["provision", "--root", str(platform_repo), "-p", "test-project"], env=CLEAN_ENV
            )

        assert result.exit_code == 1
        assert "credentials expired" in result.output
        assert fake_provider.calls == []


class TestCliSetup:
    """Tests for the setup command."""

    @pytest.fixture
    def gcp_provider(self):
        client = MagicMock()
        client.list_secrets.return_value = iter([])
        return GCPProvider("test-project", client=client)

    def test_setup_full(self, runner, platform_repo, gcp_provider, tmp_path):
        """Test bootstrap, credentials Secret, provisioning and generation run in order."""
        key_file = tmp_path / "key.json"
        with (
            patch("external_secrets_auto.cli.get_provider", return_value=gcp_provider),
            patch("external_secrets_auto.cli.InfrastructureBootstrapper") as mock_bootstrapper,
            patch("external_secrets_auto.cli.Cluster") as mock_cluster,
        ):
            mock_bootstrapper.return_value.run.return_value = BootstrapResult(
                service_account_email="external-secrets@test-project.iam.gserviceaccount.com",
                key_file_path=key_file,
            )

            result = runner.invoke(
                cli,
                ["setup", "--root", str(platform_repo), "-p", "test-project", "--context", "prod", "--yes"],
                env=CLEAN_ENV,
            )

        assert result.exit_code == 0
        mock_bootstrapper.return_value.run.assert_called_once()
        mock_cluster.assert_called_once_with(context="prod", select_context=False, kubeconfig=None)
        mock_cluster.return_value.ensure_credentials_secret.assert_called_once_with(
            key_file,
            name="gcpsm-secret",
            namespace="external-secrets-system",
            key="secret-access-credentials",
        )

    def test_setup_skip_bootstrap(self, runner, platform_repo, fake_provider):
        """Test --skip-bootstrap only provisions and generates."""
        with (
            patch("external_secrets_auto.cli.get_provider", return_value=fake_provider),
            patch("external_secrets_auto.cli.prompt_secret_value", return_value="typed"),
            patch("external_secrets_auto.cli.InfrastructureBootstrapper") as mock_bootstrapper,
        ):
            result = runner.invoke(
                cli, ["setup", "--root", str(platform_repo), "-p", "test-project", "--skip-bootstrap"], env=CLEAN_ENV
            )

        assert result.exit_code == 0
        mock_bootstrapper.assert_not_called()
        assert len(fake_provider.store) == 5

    def test_setup_policy_grant_failure(self, runner, platform_repo, gcp_provider):
        """Test an exhausted IAM grant exits with code 1."""
        with (
            patch("external_secrets_auto.cli.get_provider", return_value=gcp_provider),
            patch("external_secrets_auto.cli.InfrastructureBootstrapper") as mock_bootstrapper,
        ):
            mock_bootstrapper.return_value.run.side_effect = PolicyGrantError("gave up", attempts=5)

            result = runner.invoke(
                cli, ["setup", "--root", str(platform_repo), "-p", "test-project", "--yes"], env=CLEAN_ENV
            )

        assert result.exit_code == 1
        assert "gave up" in result.output

    def test_setup_declined(self, runner, platform_repo, gcp_provider):
        """Test declining the confirmation aborts before bootstrapping."""
        with (
            patch("external_secrets_auto.cli.get_provider", return_value=gcp_provider),
            patch("external_secrets_auto.cli.confirm", return_value=False),
            patch("external_secrets_auto.cli.InfrastructureBootstrapper") as mock_bootstrapper,
        ):
            result = runner.invoke(cli, ["setup", "--root", str(platform_repo), "-p", "test-project"], env=CLEAN_ENV)

        assert result.exit_code == 1
        mock_bootstrapper.assert_not_called()


class TestCliValidate:
    """Tests for the validate command."""

    @pytest.fixture
    def cluster(self):
        with patch("external_secrets_auto.cli.Cluster") as mock_cluster:
            instance = mock_cluster.return_value
            instance.list_external_secrets.return_value = [("api", "api-credentials")]
            instance.get_external_secret.return_value = {
                "status": {"conditions": [{"type": "Ready", "status": "True"}]}
            }
            instance.secret_exists.return_value = True
            yield instance

    def test_validate_success(self, runner, cluster):
        """Test a synced cluster exits with code 0."""
        result = runner.invoke(cli, ["validate"])

        assert result.exit_code == 0
        assert "api-credentials" in result.output

    def test_validate_failure(self, runner, cluster):
        """Test a missing Secret exits with code 1."""
        cluster.secret_exists.return_value = False

        result = runner.invoke(cli, ["validate"])

        assert result.exit_code == 1
        assert "Kubernetes Secret not found" in result.output

    def test_validate_json(self, runner, cluster):
        """Test --json prints only the machine-readable report."""
        result = runner.invoke(cli, ["validate", "--json"])

        assert result.exit_code == 0
        report = json.loads(result.output)
        assert report["success"] is True
        assert [r["resource"] for r in report["results"]] == ["ExternalSecret", "Secret"]

    def test_validate_declared(self, runner, cluster, platform_repo):
        """Test --declared checks declarations and warns about extras."""
        result = runner.invoke(cli, ["validate", "--declared", "--root", str(platform_repo), "--json"])

        report = json.loads(result.output)
        checked = {(r["namespace"], r["name"]) for r in report["results"]}
        assert ("worker", "worker-queue") in checked
        assert ("monitoring", "grafana-admin") in checked
        assert result.exit_code == 0

    def test_validate_json_reports_fatal_error(self, runner, cluster):
        """Test a cluster read failure is still reported with --json."""
        cluster.list_external_secrets.side_effect = ClusterReadError("Failed to list ExternalSecrets: Forbidden")

        result = runner.invoke(cli, ["validate", "--json"])

        assert result.exit_code == 1
        assert "Forbidden" in result.output

    def test_validate_json_unmutes_console(self, runner, cluster):
        """Test the console is not left muted after a failed run."""
        cluster.list_external_secrets.side_effect = ClusterReadError("unreachable")

        runner.invoke(cli, ["validate", "--json"])

        assert console.console.quiet is False
