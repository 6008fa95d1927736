"""
Shared pytest fixtures for twbuild tests.

Provides a miniature wallet project on disk, a complete build environment
and a stand-in for the JavaScript bundler so the pipeline can run without
Node.js.

Test Tier Markers:
  @pytest.mark.evergreen - Tests that always run, never skip (production tests)
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable

import pytest

from twbuild.build import phases
from twbuild.build.config import (
    REQUIRED_ENVIRONMENT_VARIABLES,
    BuildConfig,
    EnvironmentConfig,
    Target,
    Task,
)


# =============================================================================
# Test Data Constants
# =============================================================================

TEST_VERSION = "1.2.3"

TEST_ENVIRONMENT: dict[str, str] = {
    "TON_WALLET_VERSION": TEST_VERSION,
    "TONCENTER_API_KEY_WEB_MAIN": "web-main-key",
    "TONCENTER_API_KEY_WEB_TEST": "web-test-key",
    "TONCENTER_API_KEY_EXT_MAIN": "ext-main-key",
    "TONCENTER_API_KEY_EXT_TEST": "ext-test-key",
}

INDEX_HTML = """<!DOCTYPE html>
<html>
<head>
    <title>TON Wallet {{TON_WALLET_VERSION}}</title>
    <link rel="stylesheet" href="css/main.css">
</head>
<body>
    <div id="app" data-version="{{TON_WALLET_VERSION}}"></div>
    <script type="text/javascript" src="js/Controller.js"></script>
    <script type="text/javascript" src="js/View.js"></script>
</body>
</html>
"""

MANIFEST_TEMPLATE = """{
    "manifest_version": %d,
    "name": "TON Wallet",
    "version": "{{TON_WALLET_VERSION}}"
}
"""

# Relative path -> content for the fixture project
PROJECT_FILES: dict[str, str] = {
    "src/index.html": INDEX_HTML,
    "src/css/main.css": "body {\n    margin: 0;\n}\n",
    "src/css/screens/send.css": "/* send screen */\n.send-button {\n    color: #0088cc;\n}\n",
    "src/js/Controller.js": "export class Controller {}\n",
    "src/js/view/View.js": "export class View {}\n",
    "src/js/extension/background.js": "chrome.runtime.onInstalled.addListener(() => {});\n",
    "src/assets/ui/logo.svg": "<svg></svg>\n",
    "src/assets/lottie/intro.json": "{}\n",
    "src/assets/extension/popup-frame.png": "png",
    "src/assets/favicon/favicon.ico": "ico",
    "src/assets/favicon/favicon-32x32.png": "png32",
    "src/assets/favicon/favicon-16x16.png": "png16",
    "src/assets/favicon/192x192.png": "png192",
    "src/assets/favicon/apple-touch-icon.png": "apple",
    "src/libs/tonweb-0.0.41.js": "var TonWeb = {};\n",
    "build/manifest/v3.json": MANIFEST_TEMPLATE % 3,
    "build/manifest/v2.json": MANIFEST_TEMPLATE % 2,
}


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test tiers."""
    config.addinivalue_line(
        "markers",
        "evergreen: tests that always run, never skip (production tests)"
    )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def wallet_project(tmp_path: Path) -> Path:
    """Create a wallet project tree and return its root."""
    root = tmp_path / "wallet"
    for rel, content in PROJECT_FILES.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def environment() -> EnvironmentConfig:
    return EnvironmentConfig.from_mapping(TEST_ENVIRONMENT)


@pytest.fixture
def make_config(wallet_project: Path, environment: EnvironmentConfig) -> Callable[..., BuildConfig]:
    """Factory for BuildConfig rooted at the fixture project."""

    def _make(target: Target = Target.WEB, task: Task = Task.BUILD, **overrides) -> BuildConfig:
        return BuildConfig(
            task=task,
            target=target,
            env=environment,
            project_root=wallet_project,
            **overrides,
        )

    return _make


@pytest.fixture
def clean_environ(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove every required variable from the process environment."""
    for name in REQUIRED_ENVIRONMENT_VARIABLES:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def build_environ(clean_environ: None, monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Export the test environment into the process environment."""
    for name, value in TEST_ENVIRONMENT.items():
        monkeypatch.setenv(name, value)
    return dict(TEST_ENVIRONMENT)


@pytest.fixture
def fake_bundler(monkeypatch: pytest.MonkeyPatch) -> list[list[str]]:
    """Replace the bundler subprocess with one that writes placeholder bundles.

    Returns the list of recorded commands.
    """
    calls: list[list[str]] = []

    def fake_run_cmd(cmd, cwd=None, capture=False, check=True, secrets=()):
        calls.append(list(cmd))
        outdir = Path(next(arg.split("=", 1)[1] for arg in cmd if arg.startswith("--outdir=")))
        outdir.mkdir(parents=True, exist_ok=True)
        for arg in cmd:
            if "=" in arg and not arg.startswith("-"):
                name = arg.split("=", 1)[0]
                (outdir / f"{name}.js").write_text(f"/* {name} bundle */", encoding="utf-8")
        return subprocess.CompletedProcess(cmd, 0, "", "")

    monkeypatch.setattr(phases, "run_cmd", fake_run_cmd)
    return calls
