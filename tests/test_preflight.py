from __future__ import annotations

import pytest

from linearci.inventory import InventoryError, all_hosts, parse_inventory
from linearci.manifest import ManifestError, parse_manifest
from linearci.preflight import check_inputs

INVENTORY = """
# application servers
ungrouped.example.internal

[web]
web1.example.internal ansible_user=ubuntu
web2.example.internal ansible_user=ubuntu

[db]
db1.example.internal

[web:vars]
app_port=8080

[production:children]
web
db
"""

MANIFEST = """
apiVersion: apps/v1
kind: Deployment
metadata:
  name: webapp
  namespace: prod
---
apiVersion: v1
kind: Service
metadata:
  name: webapp
"""


def test_parse_inventory_groups_and_children():
    groups = parse_inventory(INVENTORY)

    assert groups["ungrouped"] == ["ungrouped.example.internal"]
    assert groups["web"] == ["web1.example.internal", "web2.example.internal"]
    assert groups["production"] == ["web1.example.internal", "web2.example.internal", "db1.example.internal"]
    assert "app_port=8080" not in all_hosts(groups)
    assert len(all_hosts(groups)) == 4


@pytest.mark.parametrize(
    "text",
    [
        "[web\nhost1\n",
        "[web:weird]\nhost1\n",
        "[a:children]\nb\n[b:children]\na\n",
        "[a:children]\nmissing\n",
    ],
)
def test_parse_inventory_errors(text):
    with pytest.raises(InventoryError):
        parse_inventory(text)


def test_parse_manifest():
    resources = parse_manifest(MANIFEST)
    assert [str(r) for r in resources] == [
        "Deployment prod/webapp (apps/v1)",
        "Service webapp (v1)",
    ]


@pytest.mark.parametrize(
    "text, message",
    [
        ("kind: Deployment\nmetadata:\n  name: x\n", "apiVersion"),
        ("apiVersion: v1\nkind: Service\n", "metadata.name"),
        ("- just\n- a list\n", "expected a mapping"),
        ("", "no resources"),
        ("key: [unclosed\n", "invalid YAML"),
    ],
)
def test_parse_manifest_errors(text, message):
    with pytest.raises(ManifestError, match=message):
        parse_manifest(text)


def _write_inputs(workspace, inventory=INVENTORY):
    tf = workspace / "deploy" / "terraform"
    ans = workspace / "deploy" / "ansible"
    k8s = workspace / "deploy" / "k8s"
    for d in (tf, ans, k8s):
        d.mkdir(parents=True, exist_ok=True)
    (tf / "terraform.tfvars").write_text('region = "us-east-1"\n')
    (ans / "inventory.ini").write_text(inventory)
    (ans / "setup-servers.yml").write_text("- hosts: web\n")
    (ans / "deploy-app.yml").write_text("- hosts: web\n")
    (k8s / "deployment.yaml").write_text(MANIFEST)


def test_check_inputs_all_present(workspace, make_settings):
    _write_inputs(workspace)

    findings = check_inputs(make_settings())

    assert all(f.ok for f in findings), findings
    assert [f.subject for f in findings] == [
        "variable file",
        "inventory",
        "setup playbook",
        "deploy playbook",
        "deploy manifest",
    ]
    inventory = findings[1]
    assert "4 host(s)" in inventory.message


def test_check_inputs_reports_problems(workspace, make_settings):
    _write_inputs(workspace, inventory="[web]\n")
    (workspace / "deploy" / "ansible" / "deploy-app.yml").unlink()

    findings = {f.subject: f for f in check_inputs(make_settings())}

    assert not findings["inventory"].ok
    assert "no hosts" in findings["inventory"].message
    assert not findings["deploy playbook"].ok
    assert findings["variable file"].ok
