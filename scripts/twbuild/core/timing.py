"""Per-step timing for a pipeline run."""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator, Optional, Sequence


def format_duration(seconds: float) -> str:
    """Format a step duration.

    Examples:
        0.042 -> "42ms"
        2.31 -> "2.3s"
        65.3 -> "1m 5.3s"
    """
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.1f}s"

    minutes = int(seconds // 60)
    return f"{minutes}m {seconds % 60:.1f}s"


class StepTimings:
    """Durations of one pipeline run, reported in step order.

    Steps that never ran because an earlier one failed are reported as
    skipped; the failing step is marked.
    """

    def __init__(self, steps: Sequence[str]) -> None:
        self.steps = tuple(steps)
        self.durations: dict[str, float] = {}
        self.failed: Optional[str] = None

    @contextmanager
    def measure(self, step: str) -> Iterator[None]:
        """Record how long the body takes under `step`, even if it raises."""
        start = time.monotonic()
        try:
            yield
        except Exception:
            self.failed = step
            raise
        finally:
            self.durations[step] = round(time.monotonic() - start, 3)

    @property
    def total(self) -> float:
        return sum(self.durations.values())

    def summary(self) -> str:
        """One line, e.g. "clean: 3ms | copy: 120ms (failed) | styles: skipped | total: 123ms"."""
        extra = [step for step in self.durations if step not in self.steps]
        parts = []

        for step in (*self.steps, *extra):
            if step not in self.durations:
                parts.append(f"{step}: skipped")
                continue
            part = f"{step}: {format_duration(self.durations[step])}"
            if step == self.failed:
                part += " (failed)"
            parts.append(part)

        parts.append(f"total: {format_duration(self.total)}")
        return " | ".join(parts)
