# step_workflows/terraform.py
from __future__ import annotations

import shlex

from ..model import Step


# ---------------------------------------------------------------------
# Terraform step helpers
# ---------------------------------------------------------------------

def terraform_init(
    name: str = "Terraform init",
    *,
    cwd: str | None = None,
    args: str | None = None,
) -> Step:
    cmd_parts = ["terraform", "init", "-input=false"]
    if args:
        cmd_parts.extend(shlex.split(args))
    return Step(name=name, run=shlex.join(cmd_parts), cwd=cwd, data={"tool": "terraform"})


def terraform_apply(
    var_file: str,
    *,
    name: str = "Terraform apply",
    cwd: str | None = None,
    auto_approve: bool = True,
    args: str | None = None,
) -> Step:
    """Reconcile cloud resources against the declarative variable file."""
    cmd_parts = ["terraform", "apply", "-input=false"]
    if auto_approve:
        cmd_parts.append("-auto-approve")
    cmd_parts.append(f"-var-file={var_file}")
    if args:
        cmd_parts.extend(shlex.split(args))
    return Step(name=name, run=shlex.join(cmd_parts), cwd=cwd, data={"tool": "terraform"})
