from __future__ import annotations

import dataclasses

import pytest

from linearci.dsl import always, build, linear, sh, stage
from linearci.standard import java_deploy_pipeline
from linearci.settings import load_settings
from linearci.step_workflows.ansible import playbook_step
from linearci.step_workflows.maven import maven_step
from linearci.step_workflows.terraform import terraform_apply, terraform_init


def test_stage_applies_default_cwd_only_to_steps_without_one():
    s = stage(
        "Provision",
        sh("init", "terraform init"),
        sh("elsewhere", "ls", cwd="other"),
        always=always(sh("post", "true")),
        cwd="deploy/terraform",
    )
    assert [step.cwd for step in s.steps] == ["deploy/terraform", "other"]
    assert s.always[0].cwd == "deploy/terraform"


def test_stage_requires_steps():
    with pytest.raises(ValueError):
        stage("Empty")


def test_pipeline_rejects_duplicate_and_missing_stages():
    with pytest.raises(ValueError, match="Duplicate stage names"):
        linear("dup", stage("A", sh("x", "true")), stage("A", sh("y", "true")))
    with pytest.raises(ValueError):
        linear("none")


def test_pipeline_is_immutable():
    pl = linear("p", stage("A", sh("x", "true")))
    assert isinstance(pl.stages, tuple)
    with pytest.raises(dataclasses.FrozenInstanceError):
        pl.name = "other"

    s = pl.stages[0]
    assert isinstance(s.steps, tuple)
    assert isinstance(s.always, tuple)
    with pytest.raises(dataclasses.FrozenInstanceError):
        s.steps = ()


def test_builder():
    s = (
        build("Build")
        .define_step("compile", "mvn -B compile", cwd="webapp")
        .post_always(sh("report", "true"))
        .with_env(MAVEN_OPTS="-Xmx1g", RETRIES=0)
        .build()
    )
    assert [step.name for step in s.steps] == ["compile"]
    assert s.env == {"MAVEN_OPTS": "-Xmx1g", "RETRIES": "0"}
    assert [p.name for p in s.always] == ["report"]

    with pytest.raises(ValueError):
        build("Empty").build()


def test_tool_step_commands():
    assert maven_step("pkg").run == "mvn -B clean package"
    assert maven_step("pkg", "verify", args="-DskipITs", batch=False).run == "mvn verify -DskipITs"
    assert terraform_init().run == "terraform init -input=false"
    assert terraform_apply("prod.tfvars").run == "terraform apply -input=false -auto-approve -var-file=prod.tfvars"
    assert terraform_apply("x.tfvars", auto_approve=False).run == "terraform apply -input=false -var-file=x.tfvars"

    setup = playbook_step("s", "setup.yml", inventory="hosts.ini", extra_vars={"app_port": "8080"}, limit="web")
    assert setup.run == "ansible-playbook -i hosts.ini setup.yml --limit web --extra-vars app_port=8080"
    assert setup.kind == "sh"

    deploy = playbook_step("d", "deploy.yml", inventory="hosts.ini", env_vars={"artifact_path": "ARTIFACT_PATH"})
    assert deploy.run == "ansible-playbook -i hosts.ini deploy.yml"
    assert deploy.kind == "playbook"
    assert deploy.data["env_vars"] == {"artifact_path": "ARTIFACT_PATH"}
    assert deploy.tool == "ansible-playbook"


def test_standard_pipeline_layout():
    settings = load_settings({"TF_DIR": "infra", "ANSIBLE_DIR": "cm", "LINEARCI_NOTIFY_TO": "ops@example.com"})
    pl = java_deploy_pipeline(settings)

    assert pl.stage_names() == ["Checkout", "Build & Test", "Archive", "Provision", "Configure", "Deploy"]
    assert pl.notify == "ops@example.com"
    assert pl.trigger_branch == "main"

    build_stage = pl.stages[1]
    assert [p.kind for p in build_stage.always] == ["junit"]
    assert build_stage.steps[0].cwd == "webapp"

    assert {s.cwd for s in pl.stages[3].steps} == {"infra"}
    assert pl.stages[4].steps[0].cwd == "cm"
    assert pl.stages[5].steps[0].data["env_vars"] == {"artifact_path": "ARTIFACT_PATH"}
