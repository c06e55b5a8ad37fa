# src/linearci/dsl.py
from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Optional

from .model import Pipeline, Stage, Step
from .step_workflows.archive import archive
from .step_workflows.checkout import checkout
from .step_workflows.junit import junit


# ---------------------------------------------------------------------
# Step helper
# ---------------------------------------------------------------------

def sh(name: str, cmd: str, *, cwd: str | None = None, env: Optional[Dict[str, str]] = None) -> Step:
    """Create a shell step."""
    return Step(name=name, run=cmd, cwd=cwd, env={k: str(v) for k, v in (env or {}).items()})


def always(*steps: Step) -> List[Step]:
    """Post-actions that run whether the stage succeeds or fails."""
    return list(steps)


# ---------------------------------------------------------------------
# Functional Stage helper
# ---------------------------------------------------------------------

def stage(
    name: str,
    *steps: Step,  # allow: stage("x", sh(...), sh(...))
    steps_list: Optional[List[Step]] = None,  # allow: stage("x", steps_list=[...])
    env: Optional[Dict[str, str]] = None,
    always: Optional[List[Step]] = None,
    cwd: str | None = None,  # default cwd applied to steps missing cwd
) -> Stage:
    steps_final: List[Step] = []
    if steps_list:
        steps_final.extend(list(steps_list))
    steps_final.extend(list(steps))

    if not steps_final:
        raise ValueError(f"stage({name!r}) must have at least one step")

    post = list(always or [])
    if cwd is not None:
        steps_final = [s if s.cwd is not None else replace(s, cwd=cwd) for s in steps_final]
        post = [s if s.cwd is not None else replace(s, cwd=cwd) for s in post]

    return Stage(
        name=name,
        steps=tuple(steps_final),
        env={k: str(v) for k, v in (env or {}).items()},
        always=tuple(post),
    )


# ---------------------------------------------------------------------
# Builder API
# ---------------------------------------------------------------------

class StageBuilder:
    def __init__(self, name: str):
        self.name = name
        self._steps: list[Step] = []
        self._always: list[Step] = []
        self._env: dict[str, str] = {}

    def define_step(self, name: str, run: str, cwd: str | None = None):
        self._steps.append(Step(name=name, run=run, cwd=cwd))
        return self

    def add(self, *steps: Step):
        self._steps.extend(steps)
        return self

    def post_always(self, *steps: Step):
        self._always.extend(steps)
        return self

    def with_env(self, **env):
        # force values to str for env compatibility
        self._env.update({k: str(v) for k, v in env.items()})
        return self

    def build(self) -> Stage:
        if not self._steps:
            raise ValueError(f"Stage '{self.name}' has no steps")
        return Stage(name=self.name, steps=tuple(self._steps), env=dict(self._env), always=tuple(self._always))


def build(name: str) -> StageBuilder:
    """Convenience: build('Build').define_step(...).build()"""
    return StageBuilder(name)


# ---------------------------------------------------------------------
# Pipeline helper (single-file story)
# ---------------------------------------------------------------------

def linear(
    name: str,
    *stages: Stage,
    env: Optional[Dict[str, str]] = None,
    trigger_branch: Optional[str] = "main",
    notify: Optional[str] = None,
    success_message: str = "Pipeline completed successfully.",
) -> Pipeline:
    """
    Pipeline definition helper. Stages run strictly in the given order.

    Users can write:
        from linearci import linear, stage, sh

        def pipeline():
            return linear(
                "webapp",
                stage("Build", sh("Package", "mvn -B clean package")),
                stage("Deploy", sh(...)),
            )

    Or define PIPELINE = linear(...) directly.
    """
    if not stages:
        raise ValueError(f"pipeline {name!r} must have at least one stage")

    names = [s.name for s in stages]
    if len(set(names)) != len(names):
        dupes = sorted({n for n in names if names.count(n) > 1})
        raise ValueError(f"Duplicate stage names found: {dupes}")

    return Pipeline(
        name=name,
        stages=tuple(stages),
        env={k: str(v) for k, v in (env or {}).items()},
        trigger_branch=trigger_branch,
        notify=notify,
        success_message=success_message,
    )


__all__ = [
    "sh",
    "always",
    "stage",
    "StageBuilder",
    "build",
    "linear",
    "checkout",
    "archive",
    "junit",
]
