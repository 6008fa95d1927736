"""Tests for pipeline step timing."""

import time

import pytest

from twbuild.core.timing import StepTimings, format_duration


STEPS = ("clean", "copy", "styles", "scripts", "html")


@pytest.mark.evergreen
class TestStepTimings:
    """StepTimings records a duration per step and reports in step order."""

    def test_records_duration(self):
        timings = StepTimings(STEPS)
        with timings.measure("copy"):
            time.sleep(0.01)
        assert timings.durations["copy"] >= 0.01
        assert timings.failed is None

    def test_failure_is_recorded_and_reraised(self):
        timings = StepTimings(STEPS)
        with pytest.raises(OSError):
            with timings.measure("clean"):
                raise OSError("busy")
        assert "clean" in timings.durations
        assert timings.failed == "clean"

    def test_summary_follows_step_order(self):
        timings = StepTimings(STEPS)
        timings.durations = {"html": 0.001, "clean": 0.002, "copy": 0.1, "styles": 0.05, "scripts": 2.0}

        assert timings.summary() == (
            "clean: 2ms | copy: 100ms | styles: 50ms | scripts: 2.0s | html: 1ms | total: 2.2s"
        )

    def test_summary_marks_failed_and_skipped_steps(self):
        timings = StepTimings(STEPS)
        timings.durations = {"clean": 0.002, "copy": 0.3}
        timings.failed = "copy"

        assert timings.summary() == (
            "clean: 2ms | copy: 300ms (failed) | styles: skipped | scripts: skipped"
            " | html: skipped | total: 302ms"
        )

    def test_extra_steps_follow_declared_ones(self):
        timings = StepTimings(("clean",))
        timings.durations = {"pack": 0.5, "clean": 0.1}

        assert timings.summary() == "clean: 100ms | pack: 500ms | total: 600ms"


@pytest.mark.evergreen
class TestFormatDuration:

    def test_milliseconds(self):
        assert format_duration(0.042) == "42ms"

    def test_seconds(self):
        assert format_duration(2.31) == "2.3s"
        assert format_duration(59.94) == "59.9s"

    def test_minutes(self):
        assert format_duration(65.3) == "1m 5.3s"
