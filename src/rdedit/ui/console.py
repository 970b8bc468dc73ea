"""Console output formatting utilities for rdedit."""

from __future__ import annotations

import sys
from typing import Iterable, Optional

from rdedit.model import Connection, EditSession, ScriptCommandRef


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

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_success(self, message: str) -> None:
        print(f"OK: {message}")

    def print_warning(self, message: str, details: Optional[list[str]] = None) -> None:
        """Print a warning; the current action stops or skips but nothing fails."""
        print(f"WARNING: {message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)

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

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)

    def print_scripts(self, document_path: str, refs: Iterable[ScriptCommandRef]) -> None:
        """Print the script commands found in a job document."""
        refs = list(refs)
        self.print_header(f"SCRIPTS: {document_path}")
        if not refs:
            print("  (no script commands)")
            return
        for ref in refs:
            interpreter = ref.interpreter or "-"
            print(f"  #{ref.index:<3} {ref.extension:<4} {interpreter:<12} {ref.description}")

    def print_sessions(self, sessions: Iterable[EditSession]) -> None:
        """Print open edit sessions grouped by document."""
        by_doc: dict[str, list[EditSession]] = {}
        for s in sessions:
            by_doc.setdefault(s.document_path, []).append(s)
        if not by_doc:
            print("No edit sessions.")
            return
        for doc in sorted(by_doc):
            self.print_header(doc)
            for s in sorted(by_doc[doc], key=lambda s: s.command_index):
                print(f"  #{s.command_index:<3} {s.session_id}")

    def print_connection(self, conn: Connection) -> None:
        """Print stored connection details with the token masked."""
        token = conn.token
        masked = f"{token[:4]}{'*' * max(0, len(token) - 4)}" if token else "(not set)"
        print("\nCONNECTION")
        print(f"URL: {conn.url or '(not set)'}")
        print(f"Project: {conn.project or '(not set)'}")
        print(f"Token: {masked}")


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
