from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_STATE_DIR = ".linearci"


def _flag(value: str | None, default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Build settings, read from the environment the CI server provides."""

    app_name: str = "webapp"
    app_dir: str = "webapp"
    artifact_glob: str = "webapp/target/*.jar"
    test_report_glob: str = "webapp/target/surefire-reports/*.xml"

    terraform_dir: str = "deploy/terraform"
    terraform_var_file: str = "terraform.tfvars"

    ansible_dir: str = "deploy/ansible"
    inventory: str = "inventory.ini"
    setup_playbook: str = "setup-servers.yml"
    deploy_playbook: str = "deploy-app.yml"

    deploy_manifest: str = "deploy/k8s/deployment.yaml"

    workspace: str = "."
    state_dir: str = DEFAULT_STATE_DIR

    job_name: str = "local"
    build_number: Optional[str] = None
    build_url: Optional[str] = None
    git_branch: Optional[str] = None
    trigger_branch: str = "main"

    # failure notification
    notify_to: Optional[str] = None
    smtp_host: Optional[str] = None
    smtp_port: int = 25
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from: str = "linearci@localhost"
    smtp_starttls: bool = False

    @property
    def workspace_path(self) -> Path:
        return Path(self.workspace).expanduser().resolve()

    @property
    def state_path(self) -> Path:
        p = Path(self.state_dir).expanduser()
        return p if p.is_absolute() else self.workspace_path / p

    def build_env(self) -> dict[str, str]:
        """Variables exported to every command of a run."""
        env = {
            "APP_NAME": self.app_name,
            "ARTIFACT_GLOB": self.artifact_glob,
            "TF_DIR": self.terraform_dir,
            "ANSIBLE_DIR": self.ansible_dir,
            "WORKSPACE": str(self.workspace_path),
            "JOB_NAME": self.job_name,
        }
        if self.build_number is not None:
            env["BUILD_NUMBER"] = self.build_number
        if self.build_url:
            env["BUILD_URL"] = self.build_url
        return env


def load_settings(environ: Mapping[str, str] | None = None, **overrides) -> Settings:
    """
    Build Settings from environment variables.

    Keyword overrides win over the environment (the CLI uses them for
    --workspace and friends).
    """
    env = os.environ if environ is None else environ
    d = Settings()

    def get(key: str, default):
        value = env.get(key)
        return default if value is None or value == "" else value

    values = dict(
        app_name=get("APP_NAME", d.app_name),
        app_dir=get("APP_DIR", d.app_dir),
        artifact_glob=get("ARTIFACT_GLOB", d.artifact_glob),
        test_report_glob=get("TEST_REPORT_GLOB", d.test_report_glob),
        terraform_dir=get("TF_DIR", d.terraform_dir),
        terraform_var_file=get("TF_VAR_FILE", d.terraform_var_file),
        ansible_dir=get("ANSIBLE_DIR", d.ansible_dir),
        inventory=get("ANSIBLE_INVENTORY", d.inventory),
        setup_playbook=get("SETUP_PLAYBOOK", d.setup_playbook),
        deploy_playbook=get("DEPLOY_PLAYBOOK", d.deploy_playbook),
        deploy_manifest=get("DEPLOY_MANIFEST", d.deploy_manifest),
        workspace=get("WORKSPACE", d.workspace),
        state_dir=get("LINEARCI_STATE_DIR", d.state_dir),
        job_name=get("JOB_NAME", d.job_name),
        build_number=get("BUILD_NUMBER", d.build_number),
        build_url=get("BUILD_URL", d.build_url),
        git_branch=get("GIT_BRANCH", d.git_branch),
        trigger_branch=get("LINEARCI_TRIGGER_BRANCH", d.trigger_branch),
        notify_to=get("LINEARCI_NOTIFY_TO", d.notify_to),
        smtp_host=get("LINEARCI_SMTP_HOST", d.smtp_host),
        smtp_port=int(get("LINEARCI_SMTP_PORT", d.smtp_port)),
        smtp_user=get("LINEARCI_SMTP_USER", d.smtp_user),
        smtp_password=get("LINEARCI_SMTP_PASSWORD", d.smtp_password),
        smtp_from=get("LINEARCI_SMTP_FROM", d.smtp_from),
        smtp_starttls=_flag(env.get("LINEARCI_SMTP_STARTTLS"), d.smtp_starttls),
    )
    values.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**values)
