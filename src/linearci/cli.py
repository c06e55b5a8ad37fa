# cli.py
from __future__ import annotations

import subprocess
import sys
from pathlib import Path

import click

from linearci.git_facts.git import current_branch
from linearci.model import Step
from linearci.preflight import check_inputs
from linearci.runner import DEFAULT_PIPELINE_FILE, load_pipeline, run_pipeline, should_trigger
from linearci.settings import load_settings
from linearci.ui.console import Console, get_console, set_console


def find_pipeline_files(root: Path) -> list[Path]:
    """
    Find all pipeline files in a directory.

    Returns:
        List of Path objects for pipeline files
    """
    pipeline_files = []

    default_pipeline = root / DEFAULT_PIPELINE_FILE
    if default_pipeline.exists():
        return [default_pipeline]

    for path in root.glob("*_pipeline.py"):
        pipeline_files.append(path)

    return sorted(pipeline_files)


def discover_pipeline(pipeline_arg: str | None, root: Path) -> Path:
    """
    Discover pipeline file from argument or default.

    Raises:
        SystemExit: If the pipeline cannot be found or several candidates exist
    """
    console = get_console()

    if pipeline_arg:
        pipeline_path = Path(pipeline_arg)
        if not pipeline_path.exists() and pipeline_path.suffix != ".py":
            pipeline_path = Path(str(pipeline_path) + ".py")
        if not pipeline_path.exists():
            console.print_error(
                "Pipeline file not found",
                f"Could not find pipeline file: {pipeline_arg}",
                suggestion="Create a pipeline file or specify a different path:\n  linearci run --pipeline my_pipeline.py",
            )
            sys.exit(1)
        return pipeline_path

    pipeline_files = find_pipeline_files(root)

    if len(pipeline_files) == 0:
        console.print_error(
            "No pipeline file found",
            f"Could not find any pipeline files in {root}.",
            details=[
                "Looked for:",
                f"  {DEFAULT_PIPELINE_FILE}",
                "  *_pipeline.py",
            ],
            suggestion=f"Create a pipeline file:\n  {DEFAULT_PIPELINE_FILE}\n\nOr specify one explicitly:\n  linearci run --pipeline my_pipeline.py",
        )
        sys.exit(1)

    if len(pipeline_files) > 1:
        file_list = "\n".join(f"  {f}" for f in pipeline_files)
        console.print_error(
            "Multiple pipeline files found",
            "Found multiple pipeline files. Please specify which one to use:",
            details=[file_list],
            suggestion=f"Specify a pipeline explicitly:\n  linearci run --pipeline {pipeline_files[0].name}",
        )
        sys.exit(1)

    return pipeline_files[0]


def _detect_branch(workspace: Path) -> str | None:
    try:
        return current_branch(workspace)
    except (subprocess.CalledProcessError, FileNotFoundError):
        return None


def _describe(step: Step) -> str:
    data = step.data or {}
    if step.kind == "checkout":
        return f"git checkout {data.get('repo_url') or '(workspace)'} {data.get('ref') or ''}".rstrip()
    if step.kind == "archive":
        return f"archive {data.get('pattern')}"
    if step.kind == "junit":
        return f"publish test report {data.get('pattern')}"
    cmd = step.run
    if step.kind == "playbook":
        cmd += "".join(f" --extra-vars {key}=${var}" for key, var in data.get("env_vars", {}).items())
    where = f" (in {step.cwd})" if step.cwd else ""
    return f"{cmd}{where}"


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """linearci: sequential build, provision and deploy pipeline runner."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.option(
    "--pipeline",
    "pipeline_file",
    default=None,
    help=f"Pipeline file path (defaults to {DEFAULT_PIPELINE_FILE} if present)",
)
@click.option("--workspace", default=None, help="Workspace directory (defaults to $WORKSPACE or .)")
@click.option("--branch", default=None, help="Pushed branch (defaults to $GIT_BRANCH or the checked out branch)")
@click.option("--force", is_flag=True, default=False, help="Run even if the branch is not the trigger branch")
@click.pass_context
def run(ctx, pipeline_file, workspace, branch, force):
    """Run a pipeline, stopping at the first failing stage."""
    console = get_console()
    settings = load_settings(workspace=workspace)
    pipeline_path = discover_pipeline(pipeline_file, settings.workspace_path)

    try:
        pipeline = load_pipeline(pipeline_path)

        if not force:
            pushed = branch or settings.git_branch or _detect_branch(settings.workspace_path)
            triggered, reason = should_trigger(pipeline, pushed)
            if not triggered:
                console.print_info(f"Not triggered: {reason}")
                return
            console.print_debug(f"Triggered: {reason}")

        result = run_pipeline(pipeline, settings=settings, console=console)

        if not result.ok:
            sys.exit(1)

    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)


@cli.command()
@click.option(
    "--pipeline",
    "pipeline_file",
    default=None,
    help=f"Pipeline file path (defaults to {DEFAULT_PIPELINE_FILE} if present)",
)
@click.option("--workspace", default=None, help="Workspace directory (defaults to $WORKSPACE or .)")
def plan(pipeline_file, workspace):
    """Print the stages and commands of a pipeline without running them."""
    console = get_console()
    settings = load_settings(workspace=workspace)
    pipeline_path = discover_pipeline(pipeline_file, settings.workspace_path)

    try:
        pipeline = load_pipeline(pipeline_path)
    except Exception as e:
        console.print_error(
            "Failed to load pipeline",
            f"Could not load pipeline from {pipeline_path}",
            details=[str(e)],
        )
        sys.exit(1)

    console.print_header(f"Pipeline: {pipeline.name}")
    if pipeline.trigger_branch:
        console.print_info(f"Trigger: push to {pipeline.trigger_branch}")
    for i, stage in enumerate(pipeline.stages, start=1):
        console.print_plan_stage(i, stage.name)
        for step in stage.steps:
            console.print_plan_step(step.name, _describe(step))
        for post in stage.always:
            console.print_plan_step(post.name, _describe(post), post=True)


@cli.command()
@click.option("--workspace", default=None, help="Workspace directory (defaults to $WORKSPACE or .)")
def check(workspace):
    """Check that the variable file, inventory, playbooks and manifest are in place."""
    console = get_console()
    settings = load_settings(workspace=workspace)

    findings = check_inputs(settings)
    console.print_header("Preflight")
    for f in findings:
        marker = "OK   " if f.ok else "ERROR"
        console.print_info(f"{marker} {f.subject}: {f.message}")

    if not all(f.ok for f in findings):
        sys.exit(1)


if __name__ == "__main__":
    cli()
