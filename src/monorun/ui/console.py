"""Console output formatting utilities for monorun."""

from __future__ import annotations

import sys
import threading
from typing import Optional

from ..model import RunResult, Status


STATUS_LABELS = {
    Status.RUNNING: "RUNNING",
    Status.SUCCESS: "SUCCESS",
    Status.ERROR: "ERROR",
    Status.SKIP: "SKIPPED",
}


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug
        # Updates arrive from worker threads; keep lines whole
        self._lock = threading.Lock()

    def print_run_started(
        self,
        root_dir: str,
        package_count: int,
        layer_count: int,
        phases: list[str],
    ) -> None:
        """Print run start information."""
        print("\nRUN STARTED")
        print(f"Workspace: {root_dir}")
        print(f"Packages: {package_count}")
        print(f"Layers: {layer_count}")
        print(f"Phases: {', '.join(phases)}")
        print()

    def print_update(self, package: str, script: str, status: Status, output: str = "") -> None:
        """Print one (package, script) transition."""
        with self._lock:
            print(f"{STATUS_LABELS.get(status, status.value):<8} {package} {script}")
            if status is Status.SKIP and output:
                print(f"         {output}")

    def print_results(self, result: RunResult) -> None:
        """Print final results summary: package status, then every failed script's output."""
        snapshot = result.state.snapshot()

        print("\n" + "=" * 40)
        print("RESULTS")
        print("=" * 40)
        for package in sorted(snapshot):
            status = result.state.package_status(package)
            scripts = snapshot[package]
            failed = [s for s, r in scripts.items() if r.status is Status.ERROR]
            skipped = [s for s, r in scripts.items() if r.status is Status.SKIP]

            label = status.value.upper() if status is not None else "INCOMPLETE"
            line = f"  {package}: {label}"
            if failed:
                line += f" ({' '.join(failed)})"
            if skipped:
                line += f" [skipped: {' '.join(skipped)}]"
            print(line)

        for failure in result.failures():
            print(f"\n{failure.package} {failure.script}", file=sys.stderr)
            if self.debug:
                print(str(failure), file=sys.stderr)
            if failure.output:
                print(failure.output.rstrip("\n"), file=sys.stderr)

        print("\nDone")

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
            traceback.print_exception(type(exc), exc, exc.__traceback__)
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
