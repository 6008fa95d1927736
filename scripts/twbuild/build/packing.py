"""
Distribution packaging: zip a finished output tree.
"""

from __future__ import annotations

import zipfile
from pathlib import Path

from twbuild.build.config import BuildConfig
from twbuild.core.utils import log


def collect_package_files(source: Path) -> list[Path]:
    """Every file under `source`, in stable order."""
    files = [path for path in source.rglob("*") if path.is_file()]
    return sorted(files, key=lambda path: path.relative_to(source).as_posix())


def pack(config: BuildConfig) -> Path:
    """Zip the output directory into dist/<target>-ton-wallet-<version>.zip.

    Member names are relative to the output directory, so the archive root
    is the extension root (manifest.json at the top level).

    Raises:
        FileNotFoundError: if the output directory has not been built.
    """
    source = config.output_dir
    archive = config.package_path

    if not source.is_dir() and not config.dry_run:
        raise FileNotFoundError(f"Nothing to pack: {source} does not exist")

    if config.dry_run:
        log.info(f"[DRY-RUN] Would zip {source} into {archive}")
        return archive

    files = collect_package_files(source)

    archive.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path in files:
            zf.write(path, arcname=path.relative_to(source).as_posix())

    log.dim(f"{len(files)} file(s), {archive.stat().st_size / 1024:.1f} KB")
    return archive
