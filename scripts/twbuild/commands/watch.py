"""
Watch mode for the TON wallet build.

Builds once, then rebuilds the whole pipeline whenever a file under src/
or build/ changes. Change events are debounced and fed to a single-slot
queue that the main thread drains, so at most one pipeline run is in
progress and at most one more is pending.
"""

from __future__ import annotations

import queue
import threading
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from twbuild.build.config import BuildConfig
from twbuild.build.orchestrator import BuildOrchestrator, StepError
from twbuild.core.utils import log, relative_to_root


# =============================================================================
# Constants
# =============================================================================

DEBOUNCE_SECONDS = 0.5

# Seconds between checks for a pending rebuild; bounds Ctrl+C latency
POLL_SECONDS = 1.0

IGNORED_SUFFIXES = (".swp", ".swx", ".tmp", "~")


# =============================================================================
# Change Filtering
# =============================================================================


def is_relevant_change(path: Path) -> bool:
    """Whether a changed path should trigger a rebuild."""
    if any(part.startswith(".") for part in path.parts if part not in (".", "..")):
        return False
    if "__pycache__" in path.parts:
        return False
    if path.name.endswith(IGNORED_SUFFIXES):
        return False
    return True


# =============================================================================
# Debouncer
# =============================================================================


class Debouncer:
    """Batches rapid file change events into a single callback.

    Collects paths until `delay` seconds pass without a new event, then
    calls `callback` with every path collected.
    """

    def __init__(self, delay: float, callback: Callable[[list[Path]], object]):
        self.delay = delay
        self.callback = callback
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._pending_paths: list[Path] = []

    def trigger(self, path: Path) -> None:
        """Register a change. Resets the debounce timer."""
        with self._lock:
            self._pending_paths.append(path)

            if self._timer is not None:
                self._timer.cancel()

            self._timer = threading.Timer(self.delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self) -> None:
        with self._lock:
            if not self._pending_paths:
                return
            paths = list(self._pending_paths)
            self._pending_paths.clear()
            self._timer = None

        self.callback(paths)

    def cancel(self) -> None:
        """Cancel any pending debounce timer."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending_paths.clear()


# =============================================================================
# Rebuild Queue
# =============================================================================


class RebuildQueue:
    """Single-slot queue between the debouncer and the build loop.

    A request made while one is already pending is dropped: the pending
    rebuild has not started yet, so it will see those changes too.
    """

    def __init__(self) -> None:
        self._queue: queue.Queue[list[Path]] = queue.Queue(maxsize=1)

    def request(self, paths: list[Path]) -> bool:
        """Ask for a rebuild. Returns False if one was already pending."""
        try:
            self._queue.put_nowait(paths)
            return True
        except queue.Full:
            return False

    def wait(self, timeout: float) -> Optional[list[Path]]:
        """Block up to `timeout` seconds for a rebuild request."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    @property
    def pending(self) -> bool:
        return not self._queue.empty()


# =============================================================================
# File System Event Handler
# =============================================================================


class RebuildEventHandler(FileSystemEventHandler):
    """Forwards relevant file events to the debouncer."""

    def __init__(self, debouncer: Debouncer, root: Optional[Path] = None):
        super().__init__()
        self.debouncer = debouncer
        self.root = root

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._handle(event.src_path)

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._handle(event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._handle(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._handle(event.dest_path)

    def _handle(self, src_path) -> None:
        path = Path(src_path)
        relative = path
        if self.root is not None:
            try:
                relative = path.relative_to(self.root)
            except ValueError:
                pass
        if is_relevant_change(relative):
            self.debouncer.trigger(path)


# =============================================================================
# Watch Command
# =============================================================================


def _run_once(orchestrator: BuildOrchestrator) -> bool:
    """Run the pipeline. A failed run is reported and watching continues."""
    try:
        orchestrator.run_pipeline()
        return True
    except StepError as e:
        log.error(str(e))
        return False


def watch(
    config: BuildConfig,
    orchestrator: Optional[BuildOrchestrator] = None,
    observer_factory: Callable[[], Observer] = Observer,
    rebuild_queue: Optional[RebuildQueue] = None,
) -> int:
    """Build once, then rebuild on changes until interrupted."""
    orchestrator = orchestrator or BuildOrchestrator(config)
    rebuilds = rebuild_queue or RebuildQueue()

    log.header(f"Watch mode: {config.target.value} ({config.build_type.value})")

    watch_paths = [path for path in config.watch_paths if path.is_dir()]
    if not watch_paths:
        log.error(
            f"Nothing to watch: none of "
            f"{', '.join(str(p) for p in config.watch_paths)} exist"
        )
        return 1

    debouncer = Debouncer(DEBOUNCE_SECONDS, rebuilds.request)
    handler = RebuildEventHandler(debouncer, config.project_root)

    observer = observer_factory()
    for path in watch_paths:
        observer.schedule(handler, str(path), recursive=True)
        log.info(f"Watching: {relative_to_root(path, config.project_root)}")

    # Edits saved during the first build queue a rebuild
    observer.start()

    runs = 0
    failures = 0

    try:
        runs += 1
        if not _run_once(orchestrator):
            failures += 1

        log.info("Watching for changes... (Ctrl+C to stop)")
        while True:
            paths = rebuilds.wait(POLL_SECONDS)
            if paths is None:
                continue

            names = sorted({relative_to_root(p, config.project_root) for p in paths})
            log.info(f"Change detected: {', '.join(names[:5])}"
                     + (f" (+{len(names) - 5} more)" if len(names) > 5 else ""))

            runs += 1
            if not _run_once(orchestrator):
                failures += 1

    except KeyboardInterrupt:
        log.header("Shutting down")

    finally:
        debouncer.cancel()
        observer.stop()
        observer.join(timeout=5)

    log.info(f"Builds performed: {runs} ({failures} failed)")
    log.success("Watch mode stopped")
    return 0
