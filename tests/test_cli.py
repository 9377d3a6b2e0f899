"""Tests for the deploy-spine CLI (Typer CliRunner, no real container)."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
import structlog
from structlog.testing import capture_logs
from typer.testing import CliRunner

from deploy_spine.cli import _setup_logging, app
from deploy_spine.config import DeploySettings
from deploy_spine.deployers import StubDeployer

runner = CliRunner()


PLAN = """\
container:
  id: tomcat9x
  name: Shop Tomcat
project:
  group_id: com.acme
  artifact_id: shop
  packaging: war
  artifact_path: target/shop.war
deployables:
  - location: resources/orders-ds.xml
    type: resource
    monitor:
      ping_url: http://localhost:1/never
      timeout_seconds: 30
"""

NOOP_PLAN = """\
container:
  id: tomcat9x
project:
  group_id: com.acme
  artifact_id: parent
  packaging: pom
"""

FAILING_PLAN = """\
container:
  id: tomcat9x
deployer:
  implementation: deploy_spine.deployers:StubDeployer
  properties:
    fail_on: [a.war]
deployables:
  - location: a.war
  - location: b.war
"""


@pytest.fixture
def write_plan(tmp_path):
    def _write(text: str, name: str = "plan.yaml"):
        path = tmp_path / name
        path.write_text(text)
        return path

    return _write


@pytest.fixture(autouse=True)
def no_entry_points():
    with patch("deploy_spine.selector.entry_points", return_value=[]):
        yield


class TestActionCommands:
    """Tests for deploy / undeploy / start / stop / redeploy."""

    def test_dry_run_json(self, write_plan):
        result = runner.invoke(app, ["deploy", str(write_plan(PLAN)), "--dry-run", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["container_id"] == "tomcat9x"
        assert data["deployer"] == "StubDeployer"
        assert data["overall_status"] == "PASSED"
        assert [a["outcome"] for a in data["artifacts"]] == ["succeeded", "succeeded"]
        assert [a["auto"] for a in data["artifacts"]] == [False, True]
        assert data["artifacts"][0]["monitored"] is False

    @pytest.mark.parametrize("command", ["undeploy", "start", "stop", "redeploy"])
    def test_every_action_available(self, write_plan, command):
        result = runner.invoke(app, [command, str(write_plan(PLAN)), "--dry-run", "--json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["action"] == command

    def test_dry_run_table(self, write_plan):
        result = runner.invoke(app, ["deploy", str(write_plan(PLAN)), "--dry-run"])

        assert result.exit_code == 0, result.output
        assert "dry run" in result.output
        assert "PASSED" in result.output

    def test_noop_plan_succeeds(self, write_plan):
        result = runner.invoke(app, ["deploy", str(write_plan(NOOP_PLAN))])

        assert result.exit_code == 0, result.output
        assert "nothing to deploy" in result.output

    def test_no_registered_deployer(self, write_plan):
        result = runner.invoke(app, ["deploy", str(write_plan(PLAN))])

        assert result.exit_code == 1
        assert "CONFIG" in result.output

    def test_action_failure_exits_1(self, write_plan):
        result = runner.invoke(app, ["deploy", str(write_plan(FAILING_PLAN))])

        assert result.exit_code == 1
        assert "ACTION" in result.output
        assert "failed" in result.output

    def test_invalid_plan(self, write_plan):
        result = runner.invoke(app, ["deploy", str(write_plan("deployables: []\n"))])

        assert result.exit_code == 1
        assert "plan" in result.output

    def test_missing_plan_file(self, tmp_path):
        result = runner.invoke(app, ["deploy", str(tmp_path / "missing.yaml")])
        assert result.exit_code != 0

    def test_policy_option(self, write_plan):
        result = runner.invoke(
            app, ["deploy", str(write_plan(PLAN)), "--dry-run", "--json", "--policy", "location"]
        )
        assert result.exit_code == 0, result.output

    def test_invalid_policy(self, write_plan):
        result = runner.invoke(app, ["deploy", str(write_plan(PLAN)), "--policy", "fuzzy"])
        assert result.exit_code == 2


class TestInfoCommands:
    """Tests for registrations and --version."""

    def test_registrations_json_empty(self):
        result = runner.invoke(app, ["registrations", "--json"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == []

    def test_registrations_from_entry_points(self):
        ep = MagicMock()
        ep.name = "tomcat9x.installed"
        ep.load.return_value = StubDeployer
        with patch("deploy_spine.selector.entry_points", return_value=[ep]):
            result = runner.invoke(app, ["registrations", "--json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == [
            {
                "container": "tomcat9x",
                "deployer_type": "installed",
                "factory": "deploy_spine.deployers:StubDeployer",
            }
        ]

    def test_registrations_none(self):
        result = runner.invoke(app, ["registrations"])
        assert result.exit_code == 0
        assert "No deployers registered" in result.output

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "deploy-spine" in result.output


class TestLoggingSetup:
    """Tests for CLI logging configuration."""

    def test_verbose_json_keeps_stdout_parseable(self, write_plan):
        result = runner.invoke(app, ["deploy", str(write_plan(PLAN)), "--dry-run", "--json", "--verbose"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["overall_status"] == "PASSED"

    @pytest.mark.parametrize(
        "log_format,renderer",
        [("json", structlog.processors.JSONRenderer), ("console", structlog.dev.ConsoleRenderer)],
    )
    def test_log_format_setting_selects_renderer(self, monkeypatch, log_format, renderer):
        monkeypatch.setenv("DEPLOY_SPINE_LOG_FORMAT", log_format)

        _setup_logging(DeploySettings(_env_file=None), verbose=False, json_out=False)

        assert isinstance(structlog.get_config()["processors"][-1], renderer)

    def test_json_output_raises_level_to_error(self):
        _setup_logging(DeploySettings(_env_file=None), verbose=False, json_out=True)

        with capture_logs() as logs:
            structlog.get_logger("tests").warning("monitor.timeout")

        assert logs == []
