# step_workflows/archive.py
from __future__ import annotations

import hashlib
import json
import os
import shutil
from pathlib import Path
from typing import TYPE_CHECKING, List

from ..model import ArchivedArtifact, Stage, Step

if TYPE_CHECKING:
    from ..runner import RunContext


# ---------------------------------------------------------------------
# Archive step helper
# ---------------------------------------------------------------------

def archive(
    pattern: str,
    *,
    name: str | None = None,
    fingerprint: bool = True,
    allow_empty: bool = False,
) -> Step:
    """Archive the files matching `pattern` (relative to the workspace)."""
    return Step(
        name=name or f"Archive {pattern}",
        kind="archive",
        data={"pattern": pattern, "fingerprint": fingerprint, "allow_empty": allow_empty},
    )


# ---------------------------------------------------------------------
# Fingerprinting
# ---------------------------------------------------------------------

def fingerprint_file(path: Path) -> str:
    """sha256 of the file contents, read in 1 MiB chunks."""
    h = hashlib.sha256()
    with path.open("rb") as f:
        while True:
            chunk = f.read(1024 * 1024)
            if not chunk:
                break
            h.update(chunk)
    return h.hexdigest()


def resolve_artifacts(workspace: Path, pattern: str, *, exclude: Path | None = None) -> List[Path]:
    """Files matching pattern under workspace, sorted; `exclude` subtree ignored."""
    matches = []
    for p in sorted(workspace.glob(pattern)):
        if not p.is_file():
            continue
        if exclude is not None and exclude.resolve() in p.resolve().parents:
            continue
        matches.append(p)
    return matches


# ---------------------------------------------------------------------
# Archive step execution
# ---------------------------------------------------------------------

def run_step(ctx: "RunContext", stage: Stage, step: Step) -> None:
    # Import here to avoid circular import
    from ..runner import CIError

    data = step.data or {}
    pattern = data["pattern"]
    files = resolve_artifacts(ctx.workspace, pattern, exclude=ctx.settings.state_path)

    if not files:
        if data.get("allow_empty", False):
            ctx.console.print_warning(f"no artifacts found that match '{pattern}'")
            return
        raise CIError(
            kind="no_artifacts",
            stage=stage.name,
            step=step.name,
            message=f"no artifacts found that match the file pattern '{pattern}'",
            details={"workspace": str(ctx.workspace)},
        )

    archive_dir = ctx.build_dir / "archive"
    fingerprints = {}
    archived: List[ArchivedArtifact] = []

    for src in files:
        rel = src.relative_to(ctx.workspace).as_posix()
        dst = archive_dir / rel
        dst.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, dst)

        digest = fingerprint_file(src) if data.get("fingerprint", True) else ""
        artifact = ArchivedArtifact(path=rel, fingerprint=digest, size=src.stat().st_size, archived_to=dst)
        archived.append(artifact)
        fingerprints[rel] = {"sha256": digest, "size": artifact.size}
        if digest:
            ctx.console.print_artifact(rel, digest)
        else:
            ctx.console.print_info(f"ARCHIVED: {rel}")

    if data.get("fingerprint", True):
        (ctx.build_dir / "fingerprints.json").write_text(
            json.dumps(fingerprints, indent=2, sort_keys=True), encoding="utf-8"
        )

    ctx.result.artifacts.extend(archived)
    ctx.export("ARTIFACT_PATH", str(files[0].resolve()))
    ctx.export("ARTIFACT_PATHS", os.pathsep.join(str(p.resolve()) for p in files))
