# step_workflows/junit.py
from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import TYPE_CHECKING, List

from ..model import Stage, Step

if TYPE_CHECKING:
    from ..runner import RunContext


@dataclass(frozen=True)
class ReportTotals:
    tests: int = 0
    failures: int = 0
    errors: int = 0
    skipped: int = 0

    def __add__(self, other: "ReportTotals") -> "ReportTotals":
        return ReportTotals(
            tests=self.tests + other.tests,
            failures=self.failures + other.failures,
            errors=self.errors + other.errors,
            skipped=self.skipped + other.skipped,
        )


# ---------------------------------------------------------------------
# Test report step helper
# ---------------------------------------------------------------------

def junit(pattern: str, *, name: str | None = None, allow_empty: bool = True) -> Step:
    """Publish the JUnit XML reports matching `pattern`."""
    return Step(
        name=name or "Publish test report",
        kind="junit",
        data={"pattern": pattern, "allow_empty": allow_empty},
    )


# ---------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------

def _int_attr(el: ET.Element, name: str) -> int:
    try:
        return int(float(el.get(name, "0") or 0))
    except ValueError:
        return 0


def _suite_totals(suite: ET.Element) -> ReportTotals:
    cases = suite.findall("testcase")
    tests = _int_attr(suite, "tests") if suite.get("tests") is not None else len(cases)
    skipped = _int_attr(suite, "skipped") or _int_attr(suite, "disabled")
    return ReportTotals(
        tests=tests,
        failures=_int_attr(suite, "failures"),
        errors=_int_attr(suite, "errors"),
        skipped=skipped,
    )


def parse_report(path: Path) -> ReportTotals:
    """
    Totals for one report file. Accepts a <testsuite> root (surefire) or a
    <testsuites> wrapper; only leaf suites are counted.

    Raises:
        ET.ParseError: the file is not well-formed XML.
    """
    root = ET.parse(path).getroot()
    if root.tag == "testsuite":
        suites = [root]
    else:
        suites = [s for s in root.iter("testsuite") if s.find("testsuite") is None]

    total = ReportTotals()
    for suite in suites:
        total = total + _suite_totals(suite)
    return total


# ---------------------------------------------------------------------
# Test report step execution
# ---------------------------------------------------------------------

def run_step(ctx: "RunContext", stage: Stage, step: Step) -> None:
    # Import here to avoid circular import
    from ..runner import CIError

    data = step.data or {}
    pattern = data["pattern"]
    files: List[Path] = sorted(p for p in ctx.workspace.glob(pattern) if p.is_file())

    if not files:
        if data.get("allow_empty", True):
            ctx.console.print_warning(f"no test report files were found matching '{pattern}'")
            return
        raise CIError(
            kind="no_test_reports",
            stage=stage.name,
            step=step.name,
            message=f"no test report files were found matching '{pattern}'",
        )

    total = ReportTotals()
    for f in files:
        try:
            total = total + parse_report(f)
        except ET.ParseError as e:
            raise CIError(
                kind="malformed_test_report",
                stage=stage.name,
                step=step.name,
                message=f"could not parse {f.name}: {e}",
                details={"file": str(f)},
            )

    ctx.console.print_test_report(total.tests, total.failures, total.errors, total.skipped)

    report = asdict(total)
    report["files"] = [f.relative_to(ctx.workspace).as_posix() for f in files]
    (ctx.build_dir / "test-report.json").write_text(
        json.dumps(report, indent=2, sort_keys=True), encoding="utf-8"
    )
