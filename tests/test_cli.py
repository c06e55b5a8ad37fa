from __future__ import annotations

from click.testing import CliRunner

from linearci.cli import cli

PASSING = """
from linearci import linear, stage, sh

def pipeline():
    return linear(
        "demo",
        stage("Build", sh("build", "echo building")),
        stage("Deploy", sh("deploy", "echo deploying")),
        notify="team@example.com",
    )
"""

FAILING = """
from linearci import linear, stage, sh

def pipeline():
    return linear(
        "demo",
        stage("Build", sh("build", "exit 7")),
        stage("Deploy", sh("deploy", "echo deploying > deployed.txt")),
        notify="team@example.com",
    )
"""


def _write(workspace, text, name="demo_pipeline.py"):
    path = workspace / name
    path.write_text(text)
    return path


def test_run_success(workspace):
    path = _write(workspace, PASSING)

    result = CliRunner().invoke(cli, ["run", "--pipeline", str(path), "--workspace", str(workspace), "--force"])

    assert result.exit_code == 0, result.output
    assert "RUN STARTED" in result.output
    assert result.output.strip().splitlines()[-1] == "Pipeline completed successfully."
    assert "NOTIFICATION" not in result.output


def test_run_failure_exits_nonzero_and_notifies_once(workspace):
    path = _write(workspace, FAILING)

    result = CliRunner().invoke(
        cli,
        ["run", "--pipeline", str(path), "--workspace", str(workspace), "--force"],
        env={"JOB_NAME": "demo-job", "BUILD_NUMBER": "3"},
    )

    assert result.exit_code == 1
    assert result.output.count("NOTIFICATION") == 1
    assert "Subject: Build Failed: demo-job #3" in result.output
    assert "Deploy: NOT RUN" in result.output
    assert not (workspace / "deployed.txt").exists()


def test_run_skips_other_branches(workspace):
    path = _write(workspace, PASSING)

    result = CliRunner().invoke(
        cli, ["run", "--pipeline", str(path), "--workspace", str(workspace), "--branch", "feature/x"]
    )

    assert result.exit_code == 0
    assert "Not triggered" in result.output
    assert "RUN STARTED" not in result.output


def test_run_on_trigger_branch(workspace):
    path = _write(workspace, PASSING)

    result = CliRunner().invoke(
        cli, ["run", "--pipeline", str(path), "--workspace", str(workspace)], env={"GIT_BRANCH": "origin/main"}
    )

    assert result.exit_code == 0, result.output
    assert "RUN STARTED" in result.output


def test_run_discovers_default_pipeline(workspace):
    _write(workspace, PASSING, name="linearci_pipeline.py")

    result = CliRunner().invoke(cli, ["run", "--workspace", str(workspace), "--force"])

    assert result.exit_code == 0, result.output


def test_run_without_pipeline_file(workspace):
    result = CliRunner().invoke(cli, ["run", "--workspace", str(workspace), "--force"])

    assert result.exit_code == 1
    assert "No pipeline file found" in result.output


def test_plan_prints_standard_commands(workspace):
    path = _write(
        workspace,
        "from linearci import java_deploy_pipeline\n"
        "from linearci.settings import load_settings\n"
        "PIPELINE = java_deploy_pipeline(load_settings())\n",
    )

    result = CliRunner().invoke(cli, ["plan", "--pipeline", str(path), "--workspace", str(workspace)])

    assert result.exit_code == 0, result.output
    assert "1. Checkout" in result.output
    assert "(always) Publish test report" in result.output
    assert "terraform apply -input=false -auto-approve -var-file=terraform.tfvars (in deploy/terraform)" in result.output
    assert "6. Deploy" in result.output
    assert "deploy-app.yml --extra-vars artifact_path=$ARTIFACT_PATH (in deploy/ansible)" in result.output


def test_check_reports_missing_inputs(workspace):
    result = CliRunner().invoke(cli, ["check", "--workspace", str(workspace)])

    assert result.exit_code == 1
    assert "ERROR variable file: not found: deploy/terraform/terraform.tfvars" in result.output
