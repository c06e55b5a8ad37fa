# standard.py
from __future__ import annotations

import posixpath

from .dsl import archive, checkout, junit, linear, stage
from .model import Pipeline
from .settings import Settings
from .step_workflows.ansible import playbook_step
from .step_workflows.maven import maven_step
from .step_workflows.terraform import terraform_apply, terraform_init


def java_deploy_pipeline(settings: Settings) -> Pipeline:
    """
    The standard six-stage pipeline for a Maven web application:
    checkout, build & test, archive, provision, configure, deploy.
    """
    return linear(
        settings.app_name,
        stage(
            "Checkout",
            checkout(),
        ),
        stage(
            "Build & Test",
            maven_step("Maven package", "clean package", cwd=settings.app_dir),
            always=[junit(settings.test_report_glob)],
        ),
        stage(
            "Archive",
            archive(settings.artifact_glob, fingerprint=True),
        ),
        stage(
            "Provision",
            terraform_init(),
            terraform_apply(settings.terraform_var_file),
            cwd=settings.terraform_dir,
        ),
        stage(
            "Configure",
            playbook_step(
                "Setup servers",
                settings.setup_playbook,
                inventory=settings.inventory,
            ),
            cwd=settings.ansible_dir,
        ),
        stage(
            "Deploy",
            playbook_step(
                "Deploy application",
                settings.deploy_playbook,
                inventory=settings.inventory,
                env_vars={"artifact_path": "ARTIFACT_PATH"},
            ),
            cwd=settings.ansible_dir,
        ),
        trigger_branch=settings.trigger_branch,
        notify=settings.notify_to,
        success_message=f"Pipeline for {settings.app_name} completed successfully.",
    )


def input_paths(settings: Settings) -> dict[str, str]:
    """Workspace-relative paths of the files the pipeline consumes."""
    return {
        "variable file": posixpath.join(settings.terraform_dir, settings.terraform_var_file),
        "inventory": posixpath.join(settings.ansible_dir, settings.inventory),
        "setup playbook": posixpath.join(settings.ansible_dir, settings.setup_playbook),
        "deploy playbook": posixpath.join(settings.ansible_dir, settings.deploy_playbook),
        "deploy manifest": settings.deploy_manifest,
    }
