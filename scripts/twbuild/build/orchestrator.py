"""
Build orchestrator for the TON wallet.

Sequences clean -> copy -> styles -> scripts -> html for one build type,
optionally followed by packaging, and provides the command-line entry point.
"""

from __future__ import annotations

import argparse
import shlex
import sys
import traceback
from pathlib import Path
from typing import Callable, Optional

from twbuild.build.config import (
    BUILD_TARGETS,
    PACK_TARGETS,
    DEFAULT_BUNDLER,
    BuildConfig,
    ConfigError,
    Task,
    resolve_config,
)
from twbuild.build import phases
from twbuild.build import packing
from twbuild.core.timing import StepTimings, format_duration
from twbuild.core.utils import log, relative_to_root


PIPELINE_STEPS = ("clean", "copy", "styles", "scripts", "html")


class StepError(RuntimeError):
    """A pipeline step failed; later steps were not run."""

    def __init__(self, step: str, cause: BaseException):
        super().__init__(f"{step} step failed: {cause}")
        self.step = step
        self.cause = cause


# =============================================================================
# Build Orchestrator
# =============================================================================


class BuildOrchestrator:
    """Runs the build pipeline for a single resolved configuration."""

    def __init__(self, config: BuildConfig):
        self.config = config
        self.timings = StepTimings(PIPELINE_STEPS)

    def _relative(self, path: Path) -> str:
        return relative_to_root(path, self.config.project_root)

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def clean(self) -> None:
        log.header("Cleaning output directory")
        if phases.clean(self.config):
            log.success(f"Removed {self._relative(self.config.output_dir)}")
        else:
            log.info(f"{self._relative(self.config.output_dir)} does not exist, nothing to clean")

    def copy_assets(self) -> None:
        log.header("Copying assets")
        copied = phases.copy_assets(self.config)
        log.success(f"Copied {copied} file(s)")

    def compile_styles(self) -> None:
        log.header("Compiling styles")
        count = phases.compile_styles(self.config)
        log.success(f"Minified {count} stylesheet(s)")

    def compile_scripts(self) -> None:
        log.header("Bundling scripts")
        phases.compile_scripts(self.config)
        log.success(f"Bundled {', '.join(phases.SCRIPT_ENTRIES)}")

    def template_html(self) -> None:
        log.header("Templating HTML")
        target = phases.template_html(self.config)
        log.success(f"Wrote {self._relative(target)}")

    def pack(self) -> Path:
        """Zip the output directory into the distribution directory."""
        log.header("Packing")
        archive = self._run_step("pack", lambda: packing.pack(self.config))
        log.success(f"Packed {self._relative(archive)}")
        return archive

    # -------------------------------------------------------------------------
    # Sequencing
    # -------------------------------------------------------------------------

    def _steps(self) -> list[tuple[str, Callable[[], None]]]:
        return list(zip(PIPELINE_STEPS, (
            self.clean,
            self.copy_assets,
            self.compile_styles,
            self.compile_scripts,
            self.template_html,
        )))

    def _run_step(self, name: str, func: Callable[[], object]):
        with self.timings.measure(name):
            try:
                return func()
            except StepError:
                raise
            except Exception as e:
                raise StepError(name, e) from e

    def run_pipeline(self) -> None:
        """Run every step once, strictly in order.

        Raises:
            StepError: wrapping the first failure. Later steps do not run and
                the output directory may be left partially written.
        """
        self.timings = StepTimings(PIPELINE_STEPS)

        try:
            for name, step in self._steps():
                self._run_step(name, step)
        finally:
            if self.config.verbose:
                log.dim(self.timings.summary())

        log.success(
            f"{self.config.target.value} ({self.config.build_type.value}) built into "
            f"{self._relative(self.config.output_dir)} in {format_duration(self.timings.total)}"
        )

    def run(self) -> Optional[Path]:
        """Run the configured build or pack task. Returns the archive path for pack."""
        log.header(f"TON Wallet Builder: {self.config.task.value} {self.config.target.value}")
        log.info(f"Version: {self.config.env.wallet_version}")

        self.run_pipeline()

        if self.config.task is Task.PACK:
            return self.pack()
        return None


# =============================================================================
# CLI
# =============================================================================


class _ArgumentParser(argparse.ArgumentParser):
    """Reports usage errors as ConfigError so they exit with status 1."""

    def error(self, message: str):
        self.print_usage(sys.stderr)
        raise ConfigError(message)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Task and target are validated by resolve_config, not argparse, so that
    invalid values come with a list of accepted values.

    Raises:
        ConfigError: on malformed arguments (unknown flag, missing value).
    """
    parser = _ArgumentParser(
        prog="tw-build",
        description="TON Wallet build orchestrator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Tasks:
  build    Build the target once
  watch    Build, then rebuild on every change under src/ and build/
  pack     Build, then zip the output into dist/

Targets:
  build, watch: {', '.join(t.value for t in BUILD_TARGETS)}
  pack:         {', '.join(t.value for t in PACK_TARGETS)}

Examples:
  tw-build build --target web
  tw-build watch --target chromium
  tw-build pack --target firefox
        """,
    )

    parser.add_argument("task", nargs="?", help="Task to run: build, watch or pack")

    parser.add_argument("--target", help="Distribution target")

    parser.add_argument(
        "--root",
        default=".",
        help="Wallet project root (default: current directory)",
    )

    parser.add_argument(
        "--env-file",
        default=None,
        help="Environment file (default: <root>/.env)",
    )

    parser.add_argument(
        "--bundler",
        default=" ".join(DEFAULT_BUNDLER),
        help=f"JavaScript bundler command (default: {' '.join(DEFAULT_BUNDLER)})",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without executing",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Print step timings and tracebacks",
    )

    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )

    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    try:
        args = parse_args(argv)
    except ConfigError as e:
        log.error(str(e))
        return 1

    if args.no_color:
        log.set_color(False)

    project_root = Path(args.root).resolve()

    try:
        bundler = tuple(shlex.split(args.bundler))
    except ValueError as e:
        log.error(f"Invalid --bundler command: {e}")
        return 1

    try:
        config = resolve_config(
            args.task,
            args.target,
            project_root,
            env_file=Path(args.env_file) if args.env_file else None,
            bundler=bundler,
            dry_run=args.dry_run,
            verbose=args.verbose,
        )
    except ConfigError as e:
        log.error(str(e))
        return 1

    try:
        if config.task is Task.WATCH:
            from twbuild.commands.watch import watch
            return watch(config)

        BuildOrchestrator(config).run()
        return 0

    except KeyboardInterrupt:
        log.warning("Build interrupted")
        return 130
    except Exception as e:
        log.error(str(e))
        if args.verbose:
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
