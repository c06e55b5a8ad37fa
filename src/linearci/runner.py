# runner.py
from __future__ import annotations

import json
import os
import runpy
import subprocess
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Set, Tuple

from .model import Pipeline, RunResult, Stage, StageResult, Step
from .notify import Notifier, build_failure_notification, notifier_from_settings
from .settings import Settings, load_settings
from .ui.console import Console, get_console
from .git_facts.git import normalize_branch

# checkout ---> build & test ---> archive ---> provision ---> configure ---> deploy


@dataclass
class CIError(Exception):
    """
    Structured CI error with enough context for:
      - clean CLI output
      - the failure notification
      - debugging without full tracebacks
    """
    kind: str
    stage: str
    step: str | None
    message: str
    details: dict = field(default_factory=dict)
    exit_code: int | None = None

    def __str__(self) -> str:
        lines = [f"{self.kind}: {self.message}", f"stage={self.stage}"]
        if self.step:
            lines.append(f"step={self.step}")
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)


@dataclass
class StepFailure(Exception):
    stage: str
    step: str
    cmd: str
    exit_code: int
    output_tail: str = ""

    def __str__(self) -> str:
        return f"[{self.stage}] step '{self.step}' failed (exit={self.exit_code}): {self.cmd}"


TOOL_HINTS = {
    "git": "Install Git or fix PATH.",
    "mvn": "Install Apache Maven (and a JDK) or fix PATH.",
    "terraform": "Install Terraform (https://developer.hashicorp.com/terraform/install) or fix PATH.",
    "ansible-playbook": "Install Ansible (e.g., pip install ansible) or fix PATH.",
}

DEFAULT_PIPELINE_FILE = "linearci_pipeline.py"
OUTPUT_TAIL_LINES = 50


# ----------------------------------------------------------------------
# Pipeline loading (local file)
# ----------------------------------------------------------------------

def load_pipeline(path: str | Path) -> Pipeline:
    """
    Load a pipeline from a python file path.

    The file must define either:
      - pipeline() -> Pipeline
      - PIPELINE = Pipeline(...)
    """
    pl_path = Path(path).expanduser().resolve()
    if not pl_path.exists():
        raise FileNotFoundError(f"Pipeline file not found: {pl_path}")
    if pl_path.suffix != ".py":
        raise ValueError(f"Pipeline must be a .py file, got: {pl_path.name}")

    module_name = f"linearci_pipeline_{pl_path.stem}"
    globals_dict = runpy.run_path(str(pl_path), run_name=module_name)

    result = None
    if "pipeline" in globals_dict and callable(globals_dict["pipeline"]):
        result = globals_dict["pipeline"]()
    elif "PIPELINE" in globals_dict:
        result = globals_dict["PIPELINE"]

    if not isinstance(result, Pipeline):
        raise TypeError(
            "Pipeline file must return/define a Pipeline. "
            "Define pipeline() -> Pipeline or PIPELINE = linear(...)."
        )
    return result


# ----------------------------------------------------------------------
# Run context
# ----------------------------------------------------------------------

@dataclass
class RunContext:
    """Everything a step needs while a run is in progress."""
    settings: Settings
    workspace: Path
    build_dir: Path
    env: Dict[str, str]
    result: RunResult
    console: Console
    current: Optional[StageResult] = None
    checked_tools: Set[str] = field(default_factory=set)

    def export(self, key: str, value: str) -> None:
        """Make a value visible to every later step of this run."""
        self.env[key] = value
        self.console.print_debug(f"export {key}={value}")

    def step_env(self, stage: Stage, step: Step) -> Dict[str, str]:
        env = dict(self.env)
        env.update(stage.env or {})
        env.update(step.env or {})
        return env

    def resolve_cwd(self, stage: Stage, step: Step) -> Path:
        cwd = (self.workspace / (step.cwd or ".")).resolve()
        if not cwd.is_dir():
            raise CIError(
                kind="cwd_not_found",
                stage=stage.name,
                step=step.name,
                message=f"working directory not found: {cwd}",
            )
        return cwd


def next_build_number(state_path: Path) -> str:
    """One more than the highest numbered build directory."""
    builds = state_path / "builds"
    numbers = [int(p.name) for p in builds.glob("*") if p.is_dir() and p.name.isdigit()] if builds.exists() else []
    return str(max(numbers, default=0) + 1)


# ----------------------------------------------------------------------
# Execution primitives
# ----------------------------------------------------------------------

def _check_tool_available(ctx: RunContext, stage: Stage, step: Step, tool: str) -> None:
    """Check if a tool is available, raise helpful error if not."""
    if tool in ctx.checked_tools:
        return
    try:
        subprocess.run(
            [tool, "--version"],
            capture_output=True,
            check=True,
        )
    except (subprocess.CalledProcessError, FileNotFoundError):
        hint = TOOL_HINTS.get(tool, f"Install {tool} or fix PATH.")
        raise CIError(
            kind="tool_unavailable",
            stage=stage.name,
            step=step.name,
            message=f"{tool} is not available",
            details={"hint": hint, "tool": tool},
            exit_code=127,
        )
    ctx.checked_tools.add(tool)


def run_command(ctx: RunContext, stage: Stage, step: Step, cmd: Optional[str] = None) -> None:
    """
    Run a shell step, streaming its output to the console and build log.

    The command goes to the shell as written (`cmd` overrides `step.run`);
    variable references are expanded by the shell from `env`.
    """
    if step.tool:
        _check_tool_available(ctx, stage, step, step.tool)

    cwd = ctx.resolve_cwd(stage, step)
    env = ctx.step_env(stage, step)
    if cmd is None:
        cmd = step.run

    ctx.console.print_command(cmd)
    if ctx.current is not None:
        ctx.current.commands.append(cmd)

    tail: deque[str] = deque(maxlen=OUTPUT_TAIL_LINES)
    with subprocess.Popen(
        cmd,
        shell=True,
        cwd=str(cwd),
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        encoding="utf-8",
        errors="replace",
    ) as proc:
        assert proc.stdout is not None
        for line in proc.stdout:
            tail.append(line)
            ctx.console.print_output(line)
        returncode = proc.wait()

    if returncode != 0:
        raise StepFailure(
            stage=stage.name,
            step=step.name,
            cmd=cmd,
            exit_code=returncode,
            output_tail="".join(tail),
        )


def _run_step(ctx: RunContext, stage: Stage, step: Step) -> None:
    from .step_workflows import ansible, archive, checkout, junit

    ctx.console.print_step(step.name)
    handlers = {
        "sh": run_command,
        "checkout": checkout.run_step,
        "archive": archive.run_step,
        "junit": junit.run_step,
        "playbook": ansible.run_step,
    }
    handler = handlers.get(step.kind)
    if handler is None:
        raise CIError(
            kind="unknown_step_kind",
            stage=stage.name,
            step=step.name,
            message=f"no handler for step kind {step.kind!r}",
        )
    handler(ctx, stage, step)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _run_stage(ctx: RunContext, stage: Stage, result: StageResult) -> StageResult:
    """
    Run the stage's steps in order (first failure stops the rest), then its
    `always` post-actions. A post-action failure only fails the stage when
    the steps themselves succeeded.
    """
    console = ctx.console
    ctx.current = result
    result.started_at = _now()
    console.print_stage_start(stage.name)

    failure: Optional[Exception] = None
    try:
        for step in stage.steps:
            _run_step(ctx, stage, step)
    except Exception as e:
        failure = e

    for post in stage.always:
        console.print_post_action(post.name)
        try:
            _run_step(ctx, stage, post)
        except Exception as e:
            if failure is None:
                failure = e
            else:
                console.print_failure(post.name, str(e), exit_code=getattr(e, "exit_code", None))

    result.finished_at = _now()
    ctx.current = None

    if failure is None:
        result.status = "ok"
        console.print_stage_success(stage.name, result.duration)
        return result

    result.status = "failed"
    result.exit_code = getattr(failure, "exit_code", None)
    result.error = str(failure)
    hint = failure.details.get("hint") if isinstance(failure, CIError) else None
    console.print_failure(stage.name, result.error, exit_code=result.exit_code, hint=hint, is_stage=True)
    return result


# ----------------------------------------------------------------------
# Trigger
# ----------------------------------------------------------------------

def should_trigger(pipeline: Pipeline, branch: Optional[str]) -> Tuple[bool, str]:
    """
    Decide whether a push to `branch` starts a run of `pipeline`.
    An unknown branch never blocks the run.
    """
    if not pipeline.trigger_branch:
        return True, "no trigger branch configured"
    branch = normalize_branch(branch)
    if branch is None:
        return True, "branch unknown"
    if branch == pipeline.trigger_branch:
        return True, f"branch {branch} matches trigger"
    return False, f"branch {branch} does not match trigger branch {pipeline.trigger_branch}"


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def _notify_failure(
    pipeline: Pipeline,
    settings: Settings,
    result: RunResult,
    notifier: Notifier,
    console: Console,
) -> bool:
    recipient = pipeline.notify or settings.notify_to
    if not recipient:
        recipient = settings.smtp_from
        console.print_warning(f"no notification recipient configured, notifying {recipient}")

    notification = build_failure_notification(recipient, settings, result)
    try:
        notifier.send(notification)
    except Exception as e:
        console.print_error(
            "Failed to send notification",
            f"Could not notify {recipient}: {e}",
        )
        return False
    return True


def _write_result(build_dir: Path, result: RunResult) -> None:
    path = build_dir / "result.json"
    path.write_text(json.dumps(result.to_dict(), indent=2, sort_keys=True), encoding="utf-8")


def run_pipeline(
    pipeline: Pipeline,
    *,
    settings: Optional[Settings] = None,
    notifier: Optional[Notifier] = None,
    console: Optional[Console] = None,
) -> RunResult:
    """
    Run every stage of `pipeline` in order. The first failing stage stops
    the run and sends exactly one failure notification.
    """
    settings = settings or load_settings()
    console = console or get_console()
    notifier = notifier or notifier_from_settings(settings, console=console)

    workspace = settings.workspace_path
    if not workspace.is_dir():
        raise FileNotFoundError(f"Workspace not found: {workspace}")

    state = settings.state_path
    build_number = settings.build_number or next_build_number(state)
    build_dir = state / "builds" / build_number
    build_dir.mkdir(parents=True, exist_ok=True)

    env = os.environ.copy()
    env.update(settings.build_env())
    env["BUILD_NUMBER"] = build_number
    env.update(pipeline.env or {})

    result = RunResult(
        pipeline=pipeline.name,
        build_number=build_number,
        stages=[StageResult(name=s.name) for s in pipeline.stages],
        log_path=build_dir / "log.txt",
    )
    ctx = RunContext(
        settings=settings,
        workspace=workspace,
        build_dir=build_dir,
        env=env,
        result=result,
        console=console,
    )

    with result.log_path.open("w", encoding="utf-8") as log:
        console.attach_log(log)
        try:
            console.print_run_started(
                pipeline=pipeline.name,
                workspace=str(workspace),
                build_number=build_number,
                stage_count=len(pipeline.stages),
            )
            for stage, stage_result in zip(pipeline.stages, result.stages):
                _run_stage(ctx, stage, stage_result)
                if stage_result.status == "failed":
                    break

            console.print_results(result.statuses())
            if result.ok:
                console.print_success_message(pipeline.success_message)
            else:
                result.notified = _notify_failure(pipeline, settings, result, notifier, console)
        finally:
            console.detach_log()

    _write_result(build_dir, result)
    return result


if __name__ == "__main__":
    res = run_pipeline(load_pipeline(DEFAULT_PIPELINE_FILE))
    # simple exit code behavior
    raise SystemExit(0 if res.ok else 1)
