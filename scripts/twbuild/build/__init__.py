"""
twbuild.build - Build pipeline for the TON wallet web app and extensions.

Provides target resolution, the individual pipeline steps, packaging and
the orchestrator that sequences them.
"""

from twbuild.build.config import (
    BUILD_TARGETS,
    PACK_TARGETS,
    TARGET_BUILD_TYPES,
    BUILD_TYPE_DESTINATIONS,
    REQUIRED_ENVIRONMENT_VARIABLES,
    Target,
    BuildType,
    Task,
    ConfigError,
    EnvironmentConfig,
    BuildConfig,
    build_type_for,
    output_dir_for,
    resolve_config,
)
from twbuild.build.orchestrator import (
    PIPELINE_STEPS,
    BuildOrchestrator,
    StepError,
    parse_args,
    main,
)

__all__ = [
    # Constants
    "BUILD_TARGETS",
    "PACK_TARGETS",
    "TARGET_BUILD_TYPES",
    "BUILD_TYPE_DESTINATIONS",
    "REQUIRED_ENVIRONMENT_VARIABLES",
    "PIPELINE_STEPS",
    # Enumerations
    "Target",
    "BuildType",
    "Task",
    # Data classes
    "EnvironmentConfig",
    "BuildConfig",
    # Errors
    "ConfigError",
    "StepError",
    # Functions
    "build_type_for",
    "output_dir_for",
    "resolve_config",
    # Orchestrator
    "BuildOrchestrator",
    "parse_args",
    "main",
]
