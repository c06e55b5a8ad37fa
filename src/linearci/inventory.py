# inventory.py
# Read-only view of an Ansible INI inventory, used for preflight checks and
# for reporting which hosts the Configure/Deploy stages will touch.
from __future__ import annotations

from pathlib import Path
from typing import Dict, List


class InventoryError(ValueError):
    pass


def parse_inventory(text: str) -> Dict[str, List[str]]:
    """
    Parse INI inventory text into {group: [hosts]}.

    Supported:
      - [group] sections with one host per line (first token is the host)
      - [group:children] sections, expanded recursively
      - [group:vars] sections (skipped, they hold variables not hosts)
      - hosts before any section land in "ungrouped"
      - comments starting with '#' or ';'
    """
    groups: Dict[str, List[str]] = {}
    children: Dict[str, List[str]] = {}
    section = "ungrouped"
    mode = "hosts"

    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith(("#", ";")):
            continue

        if line.startswith("["):
            if not line.endswith("]"):
                raise InventoryError(f"line {lineno}: unterminated section header: {line}")
            header = line[1:-1].strip()
            name, _, suffix = header.partition(":")
            if not name:
                raise InventoryError(f"line {lineno}: empty group name")
            if suffix not in ("", "children", "vars"):
                raise InventoryError(f"line {lineno}: unknown section type '{suffix}'")
            section = name
            mode = suffix or "hosts"
            if mode == "hosts":
                groups.setdefault(name, [])
            elif mode == "children":
                children.setdefault(name, [])
            continue

        if mode == "vars":
            continue
        token = line.split()[0]
        if mode == "children":
            children[section].append(token)
        else:
            hosts = groups.setdefault(section, [])
            if token not in hosts:
                hosts.append(token)

    for parent in children:
        groups[parent] = _expand(parent, groups, children, set())
    return groups


def _expand(name: str, groups: Dict[str, List[str]], children: Dict[str, List[str]], seen: set) -> List[str]:
    if name in seen:
        raise InventoryError(f"group '{name}' is its own ancestor")
    seen = seen | {name}

    hosts = list(groups.get(name, []))
    for child in children.get(name, []):
        if child not in groups and child not in children:
            raise InventoryError(f"group '{name}' has unknown child group '{child}'")
        for h in _expand(child, groups, children, seen):
            if h not in hosts:
                hosts.append(h)
    return hosts


def load_inventory(path: str | Path) -> Dict[str, List[str]]:
    return parse_inventory(Path(path).read_text(encoding="utf-8"))


def all_hosts(groups: Dict[str, List[str]]) -> List[str]:
    seen: List[str] = []
    for hosts in groups.values():
        for h in hosts:
            if h not in seen:
                seen.append(h)
    return seen
