"""Console output formatting utilities for linearci."""

from __future__ import annotations

import sys
from typing import Optional, TextIO


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug
        self._tee: Optional[TextIO] = None

    # ------------------------------------------------------------------
    # build log
    # ------------------------------------------------------------------

    def attach_log(self, stream: TextIO) -> None:
        """Copy every stdout line to `stream` (the build log) as well."""
        self._tee = stream

    def detach_log(self) -> None:
        self._tee = None

    def _out(self, text: str = "") -> None:
        print(text)
        if self._tee is not None:
            self._tee.write(text + "\n")
            self._tee.flush()

    def _err(self, text: str = "") -> None:
        print(text, file=sys.stderr)
        if self._tee is not None:
            self._tee.write(text + "\n")
            self._tee.flush()

    # ------------------------------------------------------------------
    # run lifecycle
    # ------------------------------------------------------------------

    def print_header(self, title: str) -> None:
        """Print a section header."""
        self._out(f"\n{title}")
        self._out("-" * len(title))

    def print_run_started(
        self,
        pipeline: str,
        workspace: str,
        build_number: str,
        stage_count: int,
    ) -> None:
        """Print run start information."""
        self._out("\nRUN STARTED")
        self._out(f"Pipeline: {pipeline}")
        self._out(f"Workspace: {workspace}")
        self._out(f"Build: #{build_number}")
        self._out(f"Stages: {stage_count}")
        self._out()

    def print_stage_start(self, name: str) -> None:
        self._out(f"\nSTAGE STARTED: {name}")

    def print_step(self, name: str) -> None:
        """Print step start message."""
        self._out(f"STEP: {name}")

    def print_command(self, cmd: str) -> None:
        self._out(f"$ {cmd}")

    def print_output(self, line: str) -> None:
        """Echo one line of a child process' output."""
        self._out(line.rstrip("\n"))

    def print_post_action(self, name: str) -> None:
        self._out(f"POST (always): {name}")

    def print_stage_success(self, name: str, duration: Optional[float] = None) -> None:
        """Print success message."""
        if duration is not None:
            self._out(f"STATUS: success ({duration:.1f}s)")
        else:
            self._out("STATUS: success")

    def print_failure(
        self,
        name: str,
        reason: str,
        exit_code: Optional[int] = None,
        hint: Optional[str] = None,
        is_stage: bool = False,
    ) -> None:
        """
        Print failure message.

        Args:
            name: Stage or step name
            reason: Failure reason/error message
            exit_code: Optional exit code
            hint: Optional hint for user
            is_stage: If True, print "STAGE FAILED", otherwise "STEP FAILED"
        """
        prefix = "STAGE FAILED" if is_stage else "STEP FAILED"
        self._out(f"{prefix}: {name}")
        if exit_code is not None:
            self._out(f"Exit code: {exit_code}")
        if hint:
            self._out(f"Hint: {hint}")
        if self.debug:
            self._out(f"Error details: {reason}")
        else:
            error_line = reason.split("\n")[0] if reason else "Unknown error"
            if error_line:
                self._out(f"Error: {error_line}")

    def print_stage_skipped(self, name: str, reason: str) -> None:
        self._out(f"STAGE SKIPPED: {name} ({reason})")

    def print_plan_stage(self, index: int, name: str) -> None:
        self._out(f"\n{index}. {name}")

    def print_plan_step(self, name: str, detail: str, post: bool = False) -> None:
        marker = "(always) " if post else ""
        self._out(f"   - {marker}{name}: {detail}")

    def print_artifact(self, path: str, fingerprint: str) -> None:
        self._out(f"ARCHIVED: {path} (sha256:{fingerprint[:12]}...)")

    def print_test_report(self, tests: int, failures: int, errors: int, skipped: int) -> None:
        self._out(
            f"TEST REPORT: {tests} tests, {failures} failures, "
            f"{errors} errors, {skipped} skipped"
        )

    def print_results(self, results: dict[str, str]) -> None:
        """Print final results summary."""
        self._out("\n" + "=" * 40)
        self._out("RESULTS")
        self._out("=" * 40)
        for stage, status in results.items():
            if status == "ok":
                status_display = "SUCCESS"
            elif status == "not_run":
                status_display = "NOT RUN"
            else:
                status_display = status.upper()
            self._out(f"  {stage}: {status_display}")

    def print_notification(self, recipient: str, subject: str, body: str) -> None:
        self._out("\nNOTIFICATION")
        self._out(f"To: {recipient}")
        self._out(f"Subject: {subject}")
        self._out(body)

    def print_success_message(self, message: str) -> None:
        self._out(f"\n{message}")

    # ------------------------------------------------------------------
    # generic
    # ------------------------------------------------------------------

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        self._err(f"\nERROR: {title}")
        self._err(message)
        if details:
            for detail in details:
                self._err(f"  {detail}")
        if suggestion:
            self._err(f"\n{suggestion}")

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exc()
        else:
            self._err(f"Error: {exc}")

    def print_info(self, message: str) -> None:
        """Print informational message."""
        self._out(message)

    def print_warning(self, message: str) -> None:
        self._out(f"WARNING: {message}")

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            self._err(f"[DEBUG] {message}")


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
