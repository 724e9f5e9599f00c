"""Console output formatting utilities for pdflow."""

from __future__ import annotations

import sys
from typing import Iterable, Optional, Tuple


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_header(self, title: str) -> None:
        """Print a section header."""
        print(f"\n{title}")
        print("-" * len(title))

    def print_run_started(self, flow: str, target: str, step_count: int) -> None:
        """Print run start information."""
        print("\nRUN STARTED")
        print(f"Flow: {flow}")
        print(f"Target: {target}")
        print(f"Steps: {step_count}")
        print()

    def print_step_start(self, name: str) -> None:
        print(f"\nSTEP STARTED: {name}")

    def print_step_pinned(self, name: str) -> None:
        print(f"\nSTEP PINNED: {name} (skipping execution)")

    def print_step_done(self, name: str) -> None:
        print(f"STEP FINISHED: {name}")

    def print_substep(self, name: str, checkpoint: bool = False) -> None:
        """Print one substep of a materialized script."""
        suffix = " [checkpoint]" if checkpoint else ""
        print(f"  SUBSTEP: {name}{suffix}")

    def print_resume(self, name: str, substep: str, path: str) -> None:
        print(f"  RESUME: {name} from '{substep}' (state: {path})")

    def print_failure(
        self,
        name: str,
        reason: str,
        exit_code: Optional[int] = None,
        hint: Optional[str] = None,
    ) -> None:
        """
        Print failure message.

        Args:
            name: Step name
            reason: Failure reason/error message
            exit_code: Optional exit code of the external tool
            hint: Optional hint for user
        """
        print(f"STEP FAILED: {name}", file=sys.stderr)
        if exit_code is not None:
            print(f"Exit code: {exit_code}", file=sys.stderr)
        if hint:
            print(f"Hint: {hint}", file=sys.stderr)
        if self.debug:
            print(f"Error details: {reason}", file=sys.stderr)
        else:
            error_line = reason.split("\n")[0] if reason else "Unknown error"
            print(f"Error: {error_line}", file=sys.stderr)

    def print_plan(self, plan: Iterable[Tuple[str, str]]) -> None:
        """Print the execution plan in run order."""
        self.print_header("PLAN")
        for idx, (name, action) in enumerate(plan, start=1):
            print(f"  {idx}. {name} ({action})")

    def print_checkpoints(self, name: str, records: Iterable[Tuple[str, str]]) -> None:
        self.print_header(f"CHECKPOINTS: {name}")
        found = False
        for substep, path in records:
            found = True
            print(f"  {substep}: {path}")
        if not found:
            print("  (none on disk)")

    def print_results(self, results: Iterable[Tuple[str, str]]) -> None:
        """Print final results summary."""
        print("\n" + "=" * 40)
        print("RESULTS")
        print("=" * 40)
        for name, status in results:
            status_display = status.upper() if status != "ok" else "SUCCESS"
            print(f"  {name}: {status_display}")

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
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exc()
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


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
