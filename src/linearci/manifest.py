# manifest.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List

import yaml


class ManifestError(ValueError):
    pass


@dataclass(frozen=True)
class Resource:
    api_version: str
    kind: str
    name: str
    namespace: str | None = None

    def __str__(self) -> str:
        ns = f"{self.namespace}/" if self.namespace else ""
        return f"{self.kind} {ns}{self.name} ({self.api_version})"


def parse_manifest(text: str) -> List[Resource]:
    """
    Load every YAML document of a Kubernetes-style manifest. Each document
    needs apiVersion, kind and metadata.name; empty documents are skipped.
    """
    try:
        docs = list(yaml.safe_load_all(text))
    except yaml.YAMLError as e:
        raise ManifestError(f"invalid YAML: {e}") from e

    resources: List[Resource] = []
    for i, doc in enumerate(docs, start=1):
        if doc is None:
            continue
        if not isinstance(doc, dict):
            raise ManifestError(f"document {i}: expected a mapping, got {type(doc).__name__}")
        missing = [k for k in ("apiVersion", "kind") if not doc.get(k)]
        metadata = doc.get("metadata") or {}
        if not isinstance(metadata, dict) or not metadata.get("name"):
            missing.append("metadata.name")
        if missing:
            raise ManifestError(f"document {i}: missing {', '.join(missing)}")
        resources.append(
            Resource(
                api_version=str(doc["apiVersion"]),
                kind=str(doc["kind"]),
                name=str(metadata["name"]),
                namespace=metadata.get("namespace"),
            )
        )

    if not resources:
        raise ManifestError("manifest contains no resources")
    return resources


def load_manifest(path: str | Path) -> List[Resource]:
    return parse_manifest(Path(path).read_text(encoding="utf-8"))
