"""
Build configuration for the TON wallet.

Enumerations, lookup tables, environment loading and the immutable
BuildConfig that every pipeline step receives.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

from dotenv import dotenv_values

__all__ = [
    "Target",
    "BuildType",
    "Task",
    "BUILD_TARGETS",
    "PACK_TARGETS",
    "TASK_TARGETS",
    "TARGET_BUILD_TYPES",
    "BUILD_TYPE_DESTINATIONS",
    "REQUIRED_ENVIRONMENT_VARIABLES",
    "API_KEY_VARIABLES",
    "VERSION_VARIABLE",
    "VERSION_PLACEHOLDER",
    "PRODUCT_NAME",
    "DIST_DIR",
    "WATCH_DIRS",
    "DEFAULT_BUNDLER",
    "ConfigError",
    "EnvironmentConfig",
    "BuildConfig",
    "build_type_for",
    "output_dir_for",
    "parse_task",
    "parse_target",
    "load_environment",
    "resolve_config",
]


# =============================================================================
# Enumerations
# =============================================================================


class Target(str, Enum):
    """Distribution platform selected on the command line."""

    WEB = "web"
    CHROMIUM = "chromium"
    FIREFOX = "firefox"
    SAFARI = "safari"


class BuildType(str, Enum):
    """Internal build variant derived from the target."""

    WEB = "web"
    V3 = "manifest-v3"
    V2 = "manifest-v2"


class Task(str, Enum):
    BUILD = "build"
    WATCH = "watch"
    PACK = "pack"


# =============================================================================
# Lookup Tables
# =============================================================================

BUILD_TARGETS: tuple[Target, ...] = (
    Target.WEB,
    Target.CHROMIUM,
    Target.FIREFOX,
    Target.SAFARI,
)

# Safari packages are produced by Xcode, web has nothing to package
PACK_TARGETS: tuple[Target, ...] = (
    Target.CHROMIUM,
    Target.FIREFOX,
)

TASK_TARGETS: dict[Task, tuple[Target, ...]] = {
    Task.BUILD: BUILD_TARGETS,
    Task.WATCH: BUILD_TARGETS,
    Task.PACK: PACK_TARGETS,
}

TARGET_BUILD_TYPES: dict[Target, BuildType] = {
    Target.WEB: BuildType.WEB,
    Target.CHROMIUM: BuildType.V3,
    Target.FIREFOX: BuildType.V2,
    Target.SAFARI: BuildType.V2,
}

# Relative to the project root; must stay pairwise disjoint
BUILD_TYPE_DESTINATIONS: dict[BuildType, Path] = {
    BuildType.WEB: Path("docs"),
    BuildType.V3: Path("dist") / "v3",
    BuildType.V2: Path("dist") / "v2",
}


# =============================================================================
# Constants
# =============================================================================

VERSION_VARIABLE = "TON_WALLET_VERSION"

API_KEY_VARIABLES = [
    "TONCENTER_API_KEY_WEB_MAIN",
    "TONCENTER_API_KEY_WEB_TEST",
    "TONCENTER_API_KEY_EXT_MAIN",
    "TONCENTER_API_KEY_EXT_TEST",
]

# See .env.example in the wallet repository
REQUIRED_ENVIRONMENT_VARIABLES = [VERSION_VARIABLE, *API_KEY_VARIABLES]

VERSION_PLACEHOLDER = "{{TON_WALLET_VERSION}}"

PRODUCT_NAME = "ton-wallet"

DIST_DIR = Path("dist")

# Source and build-configuration directories that trigger a rebuild in watch mode
WATCH_DIRS = ("build", "src")

DEFAULT_BUNDLER: tuple[str, ...] = ("npx", "--no-install", "esbuild")


# =============================================================================
# Errors
# =============================================================================


class ConfigError(RuntimeError):
    """Invalid invocation or environment, detected before any work starts."""


# =============================================================================
# Mapping Functions
# =============================================================================


def build_type_for(target: Target) -> BuildType:
    """Resolve the build variant for a target."""
    return TARGET_BUILD_TYPES[target]


def output_dir_for(build_type: BuildType) -> Path:
    """Output directory for a build variant, relative to the project root."""
    return BUILD_TYPE_DESTINATIONS[build_type]


def parse_task(name: Optional[str]) -> Task:
    """Validate a task name from the command line."""
    choices = [task.value for task in Task]
    if not name or name not in choices:
        raise ConfigError(f"Pass one of possible task names: {', '.join(choices)}")
    return Task(name)


def parse_target(task: Task, value: Optional[str]) -> Target:
    """Validate a target value against the targets the task accepts."""
    choices = [target.value for target in TASK_TARGETS[task]]
    if not value or value not in choices:
        raise ConfigError(f"Pass one of possible target values: {', '.join(choices)}")
    return Target(value)


# =============================================================================
# Environment
# =============================================================================


def load_environment(
    env_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> dict[str, str]:
    """Merge variables from an optional .env file with the process environment.

    The process environment takes precedence. Neither source is mutated.
    """
    values: dict[str, str] = {}

    if env_file is not None and env_file.is_file():
        for key, value in dotenv_values(env_file).items():
            if value is not None:
                values[key] = value

    values.update(os.environ if environ is None else environ)
    return values


@dataclass(frozen=True)
class EnvironmentConfig:
    """Secrets and version string injected into the build."""

    wallet_version: str
    api_keys: Mapping[str, str]

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "EnvironmentConfig":
        """Build from an environment mapping, requiring every variable to be non-empty.

        Raises:
            ConfigError: listing every missing variable.
        """
        missing = [name for name in REQUIRED_ENVIRONMENT_VARIABLES if not values.get(name)]
        if missing:
            raise ConfigError(
                f"Missing required environment variables: {', '.join(missing)}\n"
                f"  Fix: export them or add them to .env in the project root"
            )

        return cls(
            wallet_version=values[VERSION_VARIABLE],
            api_keys=MappingProxyType({name: values[name] for name in API_KEY_VARIABLES}),
        )


# =============================================================================
# Build Configuration
# =============================================================================


@dataclass(frozen=True)
class BuildConfig:
    """Everything a pipeline run needs, resolved once at startup."""

    task: Task
    target: Target
    env: EnvironmentConfig
    project_root: Path
    bundler: tuple[str, ...] = field(default=DEFAULT_BUNDLER)
    dry_run: bool = False
    verbose: bool = False

    @property
    def build_type(self) -> BuildType:
        return build_type_for(self.target)

    @property
    def output_dir(self) -> Path:
        return self.project_root / output_dir_for(self.build_type)

    @property
    def src_dir(self) -> Path:
        return self.project_root / "src"

    @property
    def manifest_dir(self) -> Path:
        return self.project_root / "build" / "manifest"

    @property
    def dist_dir(self) -> Path:
        return self.project_root / DIST_DIR

    @property
    def package_name(self) -> str:
        """Archive filename for the pack task."""
        return f"{self.target.value}-{PRODUCT_NAME}-{self.env.wallet_version}.zip"

    @property
    def package_path(self) -> Path:
        return self.dist_dir / self.package_name

    @property
    def is_extension(self) -> bool:
        return self.build_type is not BuildType.WEB

    @property
    def watch_paths(self) -> list[Path]:
        return [self.project_root / name for name in WATCH_DIRS]


def resolve_config(
    task_name: Optional[str],
    target_name: Optional[str],
    project_root: Path,
    env_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    bundler: tuple[str, ...] = DEFAULT_BUNDLER,
    dry_run: bool = False,
    verbose: bool = False,
) -> BuildConfig:
    """Validate the invocation and environment into a BuildConfig.

    Checks run in order: task, target for that task, environment. Nothing
    on disk is touched.

    Raises:
        ConfigError: on the first failed check.
    """
    task = parse_task(task_name)
    target = parse_target(task, target_name)

    if not bundler:
        raise ConfigError("Bundler command must not be empty")

    if env_file is None:
        env_file = project_root / ".env"
    env = EnvironmentConfig.from_mapping(load_environment(env_file, environ))

    return BuildConfig(
        task=task,
        target=target,
        env=env,
        project_root=project_root,
        bundler=tuple(bundler),
        dry_run=dry_run,
        verbose=verbose,
    )
