"""Tests for the Accord CLI."""

from unittest.mock import patch

from typer.testing import CliRunner

from accord.cli import app
from accord.models import ApplyReport, ExecutionStatus, NodeResult, ResourceKind

runner = CliRunner()

DEFINITIONS = (
    "from accord.models import AccountSpec\n"
    "deploy = AccountSpec(title='deploy')\n"
)


def write_definitions(temp_dir, content=DEFINITIONS):
    path = temp_dir / "accounts.py"
    path.write_text(content)
    return path


def test_plan_command(temp_dir):
    path = write_definitions(temp_dir)

    result = runner.invoke(app, ["plan", str(path)])

    assert result.exit_code == 0
    assert "User[deploy]" in result.output
    assert "Directory[deploy_sshdir]" in result.output


def test_plan_missing_file(temp_dir):
    result = runner.invoke(app, ["plan", str(temp_dir / "nope.py")])

    assert result.exit_code == 1
    assert "not found" in result.output


def test_plan_malformed_key(temp_dir):
    path = write_definitions(
        temp_dir,
        "from accord.models import AccountSpec\n"
        "deploy = AccountSpec(title='deploy', ssh_keys=['blah'])\n",
    )

    result = runner.invoke(app, ["plan", str(path)])

    assert result.exit_code == 1
    assert "malformed" in result.output


@patch("accord.cli.AccordCore")
def test_apply_success(mock_core, temp_dir):
    path = write_definitions(temp_dir)
    mock_core.return_value.apply.return_value = {
        "deploy": ApplyReport(
            title="deploy",
            results=[NodeResult(ref="User[deploy]", kind=ResourceKind.USER, status=ExecutionStatus.SUCCESS)],
        )
    }

    result = runner.invoke(app, ["apply", str(path), "--dry-run"])

    assert result.exit_code == 0
    assert "All accounts converged" in result.output
    mock_core.return_value.apply.assert_called_once_with(path, dry_run=True)


@patch("accord.cli.AccordCore")
def test_apply_failure_exit_code(mock_core, temp_dir):
    path = write_definitions(temp_dir)
    mock_core.return_value.apply.return_value = {
        "deploy": ApplyReport(
            title="deploy",
            results=[
                NodeResult(
                    ref="User[deploy]",
                    kind=ResourceKind.USER,
                    status=ExecutionStatus.FAILED,
                    error="useradd failed",
                )
            ],
        )
    }

    result = runner.invoke(app, ["apply", str(path)])

    assert result.exit_code == 1
    assert "failed to converge" in result.output


def test_check_key_valid():
    result = runner.invoke(app, ["check-key", "ssh-rsa AAAA test1@test"])

    assert result.exit_code == 0
    assert "test1@test" in result.output


def test_check_key_malformed():
    result = runner.invoke(app, ["check-key", "blah"])

    assert result.exit_code == 1
    assert "malformed" in result.output


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert "Accord version" in result.output
