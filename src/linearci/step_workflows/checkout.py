# step_workflows/checkout.py
from __future__ import annotations

import subprocess
from typing import TYPE_CHECKING

from ..git_facts import git
from ..model import Stage, Step

if TYPE_CHECKING:
    from ..runner import RunContext


# ---------------------------------------------------------------------
# Checkout step helper
# ---------------------------------------------------------------------

def checkout(
    name: str = "Checkout source",
    *,
    repo_url: str | None = None,
    ref: str | None = None,
    dest: str | None = None,
) -> Step:
    """
    Create a checkout step.

    Without repo_url the workspace is expected to already be a git work
    tree (the CI server checked it out); the step only records its HEAD.
    With repo_url the repository is cloned into `dest` (defaults to the
    repository name) or fetched if it is already there.
    """
    if dest is None and repo_url:
        dest = repo_url.rstrip("/").split("/")[-1].replace(".git", "")
    return Step(
        name=name,
        kind="checkout",
        data={"repo_url": repo_url, "ref": ref, "dest": dest or ".", "tool": "git"},
    )


# ---------------------------------------------------------------------
# Checkout step execution
# ---------------------------------------------------------------------

def run_step(ctx: "RunContext", stage: Stage, step: Step) -> None:
    # Import here to avoid circular import
    from ..runner import CIError, StepFailure, _check_tool_available

    _check_tool_available(ctx, stage, step, "git")

    data = step.data or {}
    repo_url = data.get("repo_url")
    ref = data.get("ref")
    dest = (ctx.workspace / data.get("dest", ".")).resolve()

    def record(cmd: str) -> None:
        ctx.console.print_command(cmd)
        if ctx.current is not None:
            ctx.current.commands.append(cmd)

    try:
        if repo_url:
            if (dest / ".git").exists():
                record("git fetch origin")
                git.fetch(dest)
            else:
                dest.parent.mkdir(parents=True, exist_ok=True)
                record(f"git clone {repo_url} {dest}")
                git.clone(repo_url, dest)
            if ref:
                record(f"git checkout {ref}")
                git.checkout(ref, dest)
        elif not git.is_work_tree(dest):
            raise CIError(
                kind="not_a_work_tree",
                stage=stage.name,
                step=step.name,
                message=f"{dest} is not a git work tree and no repo_url was given",
            )
        sha = git.head_sha(dest)
    except subprocess.CalledProcessError as e:
        cmd = " ".join(e.cmd) if isinstance(e.cmd, (list, tuple)) else str(e.cmd)
        raise StepFailure(
            stage=stage.name,
            step=step.name,
            cmd=cmd,
            exit_code=e.returncode,
            output_tail=e.stderr or "",
        )

    ctx.export("GIT_COMMIT", sha)
    ctx.console.print_info(f"Checked out {sha[:12]} in {dest}")
