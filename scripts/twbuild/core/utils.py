"""
Shared utilities for the twbuild orchestrator.
"""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from typing import Iterable, Optional, TextIO


# =============================================================================
# Logging
# =============================================================================


class Logger:
    """Simple colored logger with --no-color support.

    Informational output goes to stdout; warnings and errors go to stderr so
    that configuration failures are visible even when stdout is redirected.
    """

    COLORS = {
        "reset": "\033[0m",
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "cyan": "\033[96m",
        "bold": "\033[1m",
        "dim": "\033[2m",
    }

    def __init__(self, use_color: Optional[bool] = None):
        if use_color is None:
            self._use_color = sys.stdout.isatty()
        else:
            self._use_color = use_color

    def set_color(self, use_color: bool) -> None:
        """Set whether to use color output."""
        self._use_color = use_color

    def _color(self, text: str, color: str) -> str:
        if not self._use_color:
            return text
        return f"{self.COLORS.get(color, '')}{text}{self.COLORS['reset']}"

    def _emit(self, line: str, stream: Optional[TextIO] = None) -> None:
        # Resolve the stream at call time so pytest's capsys sees the output.
        print(line, file=stream or sys.stdout)

    def header(self, message: str) -> None:
        """Print a section header."""
        self._emit(
            f"\n{self._color('===', 'cyan')} {self._color(message, 'bold')} {self._color('===', 'cyan')}"
        )

    def info(self, message: str) -> None:
        """Print an info message."""
        self._emit(f"  {message}")

    def success(self, message: str) -> None:
        """Print a success message."""
        self._emit(f"  {self._color('[OK]', 'green')} {message}")

    def warning(self, message: str) -> None:
        """Print a warning message."""
        self._emit(f"  {self._color('[WARN]', 'yellow')} {message}", sys.stderr)

    def error(self, message: str) -> None:
        """Print an error message."""
        self._emit(f"  {self._color('[ERROR]', 'red')} {message}", sys.stderr)

    def dim(self, message: str) -> None:
        """Print a dim/secondary message."""
        self._emit(f"  {self._color(message, 'dim')}")


# Global logger instance
log = Logger()


# =============================================================================
# Runtime Utilities
# =============================================================================


def redact(text: str, secrets: Iterable[str]) -> str:
    """Replace every non-empty secret in `text` with asterisks."""
    for secret in secrets:
        if secret:
            text = text.replace(secret, "***")
    return text


def run_cmd(
    cmd: list[str],
    cwd: Optional[Path] = None,
    capture: bool = False,
    check: bool = True,
    secrets: Iterable[str] = (),
) -> subprocess.CompletedProcess:
    """Run a command, logging captured output when it fails.

    Values in `secrets` are masked in anything logged here.
    """
    secrets = list(secrets)
    try:
        return subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=capture,
            text=True,
            check=check,
        )
    except subprocess.CalledProcessError as e:
        log.error(f"Command failed ({e.returncode}): {redact(' '.join(cmd), secrets)}")
        if capture:
            if e.stdout:
                log.error(f"stdout: {redact(e.stdout.strip(), secrets)}")
            if e.stderr:
                log.error(f"stderr: {redact(e.stderr.strip(), secrets)}")
        raise


def relative_to_root(path: Path, root: Path) -> str:
    """Render `path` relative to `root` for log output, falling back to the full path."""
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)
