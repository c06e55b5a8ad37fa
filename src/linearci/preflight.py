# preflight.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List

from .inventory import InventoryError, all_hosts, load_inventory
from .manifest import ManifestError, load_manifest
from .settings import Settings
from .standard import input_paths


@dataclass(frozen=True)
class Finding:
    level: str  # "ok" | "error"
    subject: str
    message: str

    @property
    def ok(self) -> bool:
        return self.level == "ok"


def check_inputs(settings: Settings) -> List[Finding]:
    """
    Check that every file the pipeline consumes exists and, where we can
    read it, parses. The variable file is only checked for existence,
    terraform validates its contents.
    """
    root = settings.workspace_path
    findings: List[Finding] = []

    for subject, rel in input_paths(settings).items():
        path = root / rel
        if not path.is_file():
            findings.append(Finding("error", subject, f"not found: {rel}"))
            continue

        if subject == "inventory":
            findings.append(_check_inventory(path, rel))
        elif subject == "deploy manifest":
            findings.append(_check_manifest(path, rel))
        else:
            findings.append(Finding("ok", subject, rel))

    return findings


def _check_inventory(path: Path, rel: str) -> Finding:
    try:
        groups = load_inventory(path)
    except InventoryError as e:
        return Finding("error", "inventory", f"{rel}: {e}")
    hosts = all_hosts(groups)
    if not hosts:
        return Finding("error", "inventory", f"{rel}: no hosts defined")
    summary = ", ".join(f"{g}({len(h)})" for g, h in groups.items())
    return Finding("ok", "inventory", f"{rel}: {len(hosts)} host(s) in {summary}")


def _check_manifest(path: Path, rel: str) -> Finding:
    try:
        resources = load_manifest(path)
    except ManifestError as e:
        return Finding("error", "deploy manifest", f"{rel}: {e}")
    return Finding("ok", "deploy manifest", f"{rel}: " + "; ".join(str(r) for r in resources))
