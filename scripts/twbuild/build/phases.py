"""
Build phases for the TON wallet.

Individual pipeline operations. Each takes the resolved BuildConfig and
raises the underlying error on failure; the orchestrator sequences them.
"""

from __future__ import annotations

import json
import re
import shutil
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from twbuild.build.config import (
    BuildConfig,
    BuildType,
    Target,
    VERSION_PLACEHOLDER,
)
from twbuild.build.minify import minify_css
from twbuild.core.utils import log, redact, relative_to_root, run_cmd


# =============================================================================
# Constants
# =============================================================================

# Directories under src/ copied for every build type
SHARED_ASSET_TREES = ("assets/lottie", "assets/ui", "libs")

WEB_ASSET_TREES = ("assets/favicon",)

EXTENSION_ASSET_TREES = ("assets/extension", "js/extension")

# Icon sizes referenced by the Chromium manifest
CHROMIUM_FAVICONS = (
    "assets/favicon/favicon.ico",
    "assets/favicon/favicon-32x32.png",
    "assets/favicon/favicon-16x16.png",
    "assets/favicon/192x192.png",
)

MANIFEST_TEMPLATES: dict[BuildType, str] = {
    BuildType.V3: "v3.json",
    BuildType.V2: "v2.json",
}

MANIFEST_FILENAME = "manifest.json"

# Bundle name -> entry point relative to the project root
SCRIPT_ENTRIES: dict[str, Path] = {
    "Controller": Path("src") / "js" / "Controller.js",
    "View": Path("src") / "js" / "view" / "View.js",
}

HTML_ENTRY = Path("src") / "index.html"

PLUGIN_BODY = '<body class="plugin">'

# Extensions load the controller as a background script instead. A line ends
# at \n, \r\n or a bare \r, and is removed together with its terminator.
CONTROLLER_SCRIPT_LINE = re.compile(
    r'(?:^|(?<=\r))[^\r\n]*<script[^\r\n]*src="[^\r\n]*Controller\.js[^\r\n]*"[^\r\n]*'
    r"(?:\r\n|\r|\n|$)",
    re.MULTILINE,
)


# =============================================================================
# Clean
# =============================================================================


def clean(config: BuildConfig) -> bool:
    """Remove the build type's output directory. Returns True if something was removed."""
    output_dir = config.output_dir

    if not output_dir.exists():
        return False

    if config.dry_run:
        log.info(f"[DRY-RUN] Would remove {output_dir}")
        return True

    shutil.rmtree(output_dir)
    return True


# =============================================================================
# Asset Copy
# =============================================================================


@dataclass(frozen=True)
class CopyJob:
    """One independent sub-copy of the asset step.

    `trees` are directories under `base` copied recursively when present;
    dotfiles and dot-directories inside them are skipped.
    `files` are single files under `base` that must exist. Paths keep their
    location relative to `base` unless `rename` is given.
    """

    label: str
    base: Path
    trees: tuple[str, ...] = ()
    files: tuple[str, ...] = ()
    rename: Optional[str] = None
    substitutions: tuple[tuple[str, str], ...] = ()


def plan_copy_jobs(config: BuildConfig) -> list[CopyJob]:
    """Select the sub-copies for the configured target and build type."""
    src = config.src_dir
    jobs = [CopyJob("shared assets", src, trees=SHARED_ASSET_TREES)]

    if config.build_type is BuildType.WEB:
        jobs.append(CopyJob("favicons", src, trees=WEB_ASSET_TREES))
    else:
        jobs.append(CopyJob("extension assets", src, trees=EXTENSION_ASSET_TREES))

    template = MANIFEST_TEMPLATES.get(config.build_type)
    if template is not None:
        jobs.append(
            CopyJob(
                "manifest",
                config.manifest_dir,
                files=(template,),
                rename=MANIFEST_FILENAME,
                substitutions=((VERSION_PLACEHOLDER, config.env.wallet_version),),
            )
        )

    if config.target is Target.CHROMIUM:
        jobs.append(CopyJob("chromium icons", src, files=CHROMIUM_FAVICONS))

    return jobs


def _copy_file(source: Path, target: Path, substitutions: tuple[tuple[str, str], ...]) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)

    if not substitutions:
        shutil.copy2(source, target)
        return

    text = source.read_text(encoding="utf-8")
    for placeholder, value in substitutions:
        text = text.replace(placeholder, value)
    target.write_text(text, encoding="utf-8")


def _is_hidden(relative: Path) -> bool:
    return any(part.startswith(".") for part in relative.parts)


def run_copy_job(job: CopyJob, destination: Path) -> int:
    """Execute one sub-copy into `destination`. Returns the number of files written.

    Raises:
        FileNotFoundError: if an explicitly listed file is missing.
    """
    copied = 0

    for tree in job.trees:
        root = job.base / tree
        if not root.is_dir():
            continue
        for source in sorted(root.rglob("*")):
            if source.is_file() and not _is_hidden(source.relative_to(root)):
                _copy_file(source, destination / source.relative_to(job.base), job.substitutions)
                copied += 1

    for name in job.files:
        source = job.base / name
        if not source.is_file():
            raise FileNotFoundError(f"{job.label}: required file not found: {source}")
        target = destination / (job.rename or name)
        _copy_file(source, target, job.substitutions)
        copied += 1

    return copied


def copy_assets(config: BuildConfig) -> int:
    """Stage static assets into the output directory.

    Sub-copies run concurrently and write disjoint paths. All of them finish
    before this returns; the first failure is re-raised.
    """
    jobs = plan_copy_jobs(config)

    if config.dry_run:
        for job in jobs:
            log.info(f"[DRY-RUN] Would copy {job.label} to {config.output_dir}")
        return 0

    config.output_dir.mkdir(parents=True, exist_ok=True)

    total = 0
    with ThreadPoolExecutor(max_workers=len(jobs)) as pool:
        futures = {pool.submit(run_copy_job, job, config.output_dir): job for job in jobs}
        for future in as_completed(futures):
            count = future.result()
            log.dim(f"{futures[future].label}: {count} file(s)")
            total += count

    return total


# =============================================================================
# Styles
# =============================================================================


def compile_styles(config: BuildConfig) -> int:
    """Minify src/css/**/*.css into <output>/css, keeping relative paths."""
    css_src = config.src_dir / "css"
    css_dest = config.output_dir / "css"

    if not css_src.is_dir():
        log.warning(f"No stylesheets found at {relative_to_root(css_src, config.project_root)}")
        return 0

    sources = sorted(
        path for path in css_src.rglob("*.css") if not _is_hidden(path.relative_to(css_src))
    )

    if config.dry_run:
        log.info(f"[DRY-RUN] Would minify {len(sources)} stylesheet(s) into {css_dest}")
        return len(sources)

    for source in sources:
        target = css_dest / source.relative_to(css_src)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(minify_css(source.read_text(encoding="utf-8")), encoding="utf-8")

    return len(sources)


# =============================================================================
# Scripts
# =============================================================================


def bundler_command(config: BuildConfig) -> list[str]:
    """Build the bundler invocation for both entry points.

    API keys become compile-time string constants, so the bundles carry the
    values and never read them at runtime.
    """
    cmd = list(config.bundler)

    for name, entry in SCRIPT_ENTRIES.items():
        cmd.append(f"{name}={config.project_root / entry}")

    cmd.extend([
        "--bundle",
        "--minify",
        f"--outdir={config.output_dir / 'js'}",
        "--log-level=warning",
    ])

    for name, value in config.env.api_keys.items():
        cmd.append(f"--define:{name}={json.dumps(value)}")

    return cmd


def compile_scripts(config: BuildConfig) -> None:
    """Bundle Controller and View into <output>/js.

    Raises:
        RuntimeError: if the bundler executable cannot be found.
        subprocess.CalledProcessError: if bundling fails.
    """
    cmd = bundler_command(config)
    secrets = list(config.env.api_keys.values())

    if config.dry_run:
        log.info(f"[DRY-RUN] Would run: {redact(' '.join(cmd), secrets)}")
        return

    (config.output_dir / "js").mkdir(parents=True, exist_ok=True)

    try:
        run_cmd(cmd, cwd=config.project_root, capture=True, secrets=secrets)
    except FileNotFoundError as e:
        raise RuntimeError(
            f"Bundler not found: {config.bundler[0]}\n"
            f"  Fix: install esbuild (npm install) or pass --bundler"
        ) from e


# =============================================================================
# HTML
# =============================================================================


def render_html(document: str, version: str, plugin: bool) -> str:
    """Apply the index.html transforms.

    The version placeholder is always substituted. Plugin documents also get
    the plugin body class and lose the controller <script> line.
    """
    document = document.replace(VERSION_PLACEHOLDER, version)

    if plugin:
        document = document.replace("<body>", PLUGIN_BODY)
        document = CONTROLLER_SCRIPT_LINE.sub("", document)

    return document


def template_html(config: BuildConfig) -> Path:
    """Write the transformed src/index.html to the output root."""
    source = config.project_root / HTML_ENTRY
    target = config.output_dir / HTML_ENTRY.name

    # Bytes keep the source's line endings intact
    document = source.read_bytes().decode("utf-8")
    rendered = render_html(document, config.env.wallet_version, config.is_extension)

    if config.dry_run:
        log.info(f"[DRY-RUN] Would write {target}")
        return target

    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(rendered.encode("utf-8"))
    return target
