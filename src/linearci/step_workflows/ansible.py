# step_workflows/ansible.py
from __future__ import annotations

import shlex
from typing import TYPE_CHECKING, Dict

from ..model import Stage, Step

if TYPE_CHECKING:
    from ..runner import RunContext


def playbook_step(
    name: str,
    playbook: str,
    *,
    inventory: str,
    cwd: str | None = None,
    extra_vars: Dict[str, str] | None = None,
    env_vars: Dict[str, str] | None = None,
    limit: str | None = None,
    args: str | None = None,
) -> Step:
    """
    Create an ansible-playbook step.

    `extra_vars` are fixed values. `env_vars` maps an extra var to a run
    variable read when the step runs, e.g. {"artifact_path": "ARTIFACT_PATH"}
    passes the path the Archive stage exported.
    """
    cmd_parts = ["ansible-playbook", "-i", inventory, playbook]
    if limit:
        cmd_parts.extend(["--limit", limit])
    for key, value in (extra_vars or {}).items():
        cmd_parts.extend(["--extra-vars", f"{key}={value}"])
    if args:
        cmd_parts.extend(shlex.split(args))

    data = {"tool": "ansible-playbook"}
    if env_vars:
        data["env_vars"] = dict(env_vars)
    return Step(
        name=name,
        run=shlex.join(cmd_parts),
        cwd=cwd,
        kind="playbook" if env_vars else "sh",
        data=data,
    )


def run_step(ctx: "RunContext", stage: Stage, step: Step) -> None:
    # Import here to avoid circular import
    from ..runner import CIError, run_command

    env = ctx.step_env(stage, step)
    extra = []
    for key, var in (step.data or {}).get("env_vars", {}).items():
        value = env.get(var)
        if not value:
            raise CIError(
                kind="missing_variable",
                stage=stage.name,
                step=step.name,
                message=f"{var} is not set (needed for --extra-vars {key})",
            )
        extra.append(f"--extra-vars {shlex.quote(f'{key}={value}')}")

    run_command(ctx, stage, step, cmd=" ".join([step.run, *extra]))
