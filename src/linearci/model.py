# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Step:
    """A single unit of work inside a stage (usually one shell command)."""
    name: str
    run: str = ""
    cwd: str | None = None
    env: Dict[str, str] = field(default_factory=dict)

    # "sh" | "checkout" | "archive" | "junit" | "playbook"
    kind: str = "sh"
    data: Optional[Dict[str, Any]] = None

    @property
    def tool(self) -> str | None:
        """External tool this step needs on PATH, if any."""
        return (self.data or {}).get("tool")


@dataclass(frozen=True)
class Stage:
    """
    A named pipeline stage: steps run in order, then the `always`
    post-actions run whatever the outcome of the steps was.
    """
    name: str
    steps: Tuple[Step, ...]
    env: Dict[str, str] = field(default_factory=dict)
    always: Tuple[Step, ...] = ()


@dataclass(frozen=True)
class Pipeline:
    """Ordered, immutable list of stages plus run-level policy."""
    name: str
    stages: Tuple[Stage, ...]
    env: Dict[str, str] = field(default_factory=dict)
    trigger_branch: Optional[str] = "main"
    notify: Optional[str] = None
    success_message: str = "Pipeline completed successfully."

    def stage_names(self) -> List[str]:
        return [s.name for s in self.stages]


# ---------------------------------------------------------------------
# Run record
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class ArchivedArtifact:
    path: str            # relative to the workspace
    fingerprint: str     # sha256 hex digest
    size: int
    archived_to: Path

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "fingerprint": self.fingerprint,
            "size": self.size,
            "archived_to": str(self.archived_to),
        }


@dataclass
class StageResult:
    name: str
    status: str = "not_run"  # "ok" | "failed" | "not_run"
    exit_code: Optional[int] = None
    error: Optional[str] = None
    commands: list[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def duration(self) -> Optional[float]:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status,
            "exit_code": self.exit_code,
            "error": self.error,
            "commands": list(self.commands),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


@dataclass
class RunResult:
    pipeline: str
    build_number: str
    stages: list[StageResult] = field(default_factory=list)
    artifacts: list[ArchivedArtifact] = field(default_factory=list)
    notified: bool = False
    log_path: Optional[Path] = None

    @property
    def failed_stage(self) -> Optional[StageResult]:
        for s in self.stages:
            if s.status == "failed":
                return s
        return None

    @property
    def ok(self) -> bool:
        return self.failed_stage is None and all(s.status == "ok" for s in self.stages)

    @property
    def exit_code(self) -> Optional[int]:
        failed = self.failed_stage
        return failed.exit_code if failed else 0

    def statuses(self) -> Dict[str, str]:
        return {s.name: s.status for s in self.stages}

    def to_dict(self) -> Dict[str, Any]:
        failed = self.failed_stage
        return {
            "pipeline": self.pipeline,
            "build_number": self.build_number,
            "status": "success" if self.ok else "failed",
            "failed_stage": failed.name if failed else None,
            "exit_code": self.exit_code,
            "stages": [s.to_dict() for s in self.stages],
            "artifacts": [a.to_dict() for a in self.artifacts],
            "notified": self.notified,
            "log_path": str(self.log_path) if self.log_path else None,
        }
