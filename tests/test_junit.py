from __future__ import annotations

import json

import pytest

from linearci.dsl import junit, linear, sh, stage
from linearci.runner import run_pipeline
from linearci.step_workflows.junit import ReportTotals, parse_report
from linearci.ui.console import Console


def test_parse_single_testsuite(tmp_path):
    f = tmp_path / "TEST-a.xml"
    f.write_text('<testsuite tests="4" failures="1" errors="1" skipped="1"><testcase name="x"/></testsuite>')
    assert parse_report(f) == ReportTotals(tests=4, failures=1, errors=1, skipped=1)


def test_parse_testsuites_counts_leaf_suites_only(tmp_path):
    f = tmp_path / "report.xml"
    f.write_text(
        '<testsuites tests="99">'
        '  <testsuite tests="2" failures="1"/>'
        '  <testsuite><testcase name="a"/><testcase name="b"/><testcase name="c"/></testsuite>'
        "</testsuites>"
    )
    assert parse_report(f) == ReportTotals(tests=5, failures=1)


def test_junit_step_sums_reports(workspace, make_settings, notifier, capsys):
    reports = workspace / "target" / "surefire-reports"
    reports.mkdir(parents=True)
    (reports / "TEST-a.xml").write_text('<testsuite tests="2" failures="0" errors="0" skipped="0"/>')
    (reports / "TEST-b.xml").write_text('<testsuite tests="3" failures="1" errors="0" skipped="1"/>')

    pl = linear("r", stage("Test", sh("noop", "true"), always=[junit("target/surefire-reports/*.xml")]))
    result = run_pipeline(pl, settings=make_settings(build_number="5"), notifier=notifier, console=Console())

    assert result.ok
    assert "TEST REPORT: 5 tests, 1 failures, 0 errors, 1 skipped" in capsys.readouterr().out
    report = json.loads((workspace / ".linearci" / "builds" / "5" / "test-report.json").read_text())
    assert report["files"] == ["target/surefire-reports/TEST-a.xml", "target/surefire-reports/TEST-b.xml"]


def test_malformed_report_fails_stage(workspace, make_settings, notifier):
    (workspace / "bad.xml").write_text("<testsuite")
    pl = linear("r", stage("Test", sh("noop", "true"), always=[junit("*.xml")]))

    result = run_pipeline(pl, settings=make_settings(), notifier=notifier, console=Console())

    assert result.stages[0].status == "failed"
    assert "malformed_test_report" in result.stages[0].error


@pytest.mark.parametrize("allow_empty, status", [(True, "ok"), (False, "failed")])
def test_missing_reports(make_settings, notifier, allow_empty, status):
    pl = linear("r", stage("Test", sh("noop", "true"), always=[junit("*.xml", allow_empty=allow_empty)]))

    result = run_pipeline(pl, settings=make_settings(), notifier=notifier, console=Console())

    assert result.stages[0].status == status
