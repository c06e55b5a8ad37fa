# step_workflows/maven.py
from __future__ import annotations

import shlex

from ..model import Step


def maven_step(
    name: str,
    goals: str = "clean package",
    *,
    cwd: str | None = None,
    args: str | None = None,
    batch: bool = True,
) -> Step:
    """
    Create a Maven build step.

    `mvn -B clean package` compiles, runs the unit tests (surefire writes
    the JUnit reports under target/surefire-reports) and packages the jar.
    """
    cmd_parts = ["mvn"]
    if batch:
        cmd_parts.append("-B")
    cmd_parts.extend(shlex.split(goals))
    if args:
        cmd_parts.extend(shlex.split(args))
    return Step(name=name, run=shlex.join(cmd_parts), cwd=cwd, data={"tool": "mvn"})
