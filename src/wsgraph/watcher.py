"""inotify watcher: watches the workspace dir and reloads changed artifacts.

    python -m wsgraph.watcher CONFIG_ROOT

On IN_CLOSE_WRITE / IN_MOVED_TO for a JSON artifact:
    - model files        -> load_model (refresh_model if already loaded)
    - model-config.json  -> load_model_config
    - datasources.json   -> load_data_sources
    - middleware.json    -> load_middleware
    - config.json        -> load_facet
    - package.json       -> load_package_definition

New directories are watched as they appear. Falls back to mtime polling if
inotify is unavailable (macOS, Docker).
"""

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path
from typing import TYPE_CHECKING

from wsgraph.config import load_config
from wsgraph.errors import FileIgnoredError, WorkspaceError
from wsgraph.workspace import load_artifact, open_workspace

if TYPE_CHECKING:
    from wsgraph.config import WorkspaceConfig
    from wsgraph.tasks import Tasks

logger = logging.getLogger("wsgraph.watcher")

_INOTIFY_TIMEOUT_MS = 5000
_SKIP_DIRS = {"node_modules"}

# ---------------------------------------------------------------------------
# SIGHUP config reload
# ---------------------------------------------------------------------------

# Mutable container so the signal handler and loop can share state without globals.
_reload_state: list[bool] = [False]     # [0] = SIGHUP reload requested


class _ReloadRequestedError(Exception):
    """Raised from within a watcher loop to trigger a config reload."""


def _handle_sighup(signum: int, frame: object) -> None:  # noqa: ARG001
    _reload_state[0] = True
    logger.info("SIGHUP received, config reload requested")


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def handle_change(tasks: Tasks, path: Path) -> bool:
    """Reload one changed file. Returns True when the graph was updated."""
    try:
        result = load_artifact(tasks, path)
    except FileIgnoredError:
        logger.debug("file ignored: %s", path)
        return False
    except WorkspaceError:
        logger.exception("failed to load: %s", path)
        return False
    if result is None:
        return False
    logger.info("reloaded: %s", tasks.store.relative(path))
    return True


def _watchable(directory: Path, root: Path) -> bool:
    rel = directory.relative_to(root).parts
    return not any(p.startswith(".") or p in _SKIP_DIRS for p in rel)


# ---------------------------------------------------------------------------
# inotify watcher
# ---------------------------------------------------------------------------

def watch_inotify(tasks: Tasks, root: Path) -> None:
    """Watch using inotify_simple (Linux). Blocks until a reload is requested."""
    import inotify_simple  # type: ignore[import]

    inotify = inotify_simple.INotify()
    flags = inotify_simple.flags  # type: ignore[attr-defined]
    mask = flags.CLOSE_WRITE | flags.MOVED_TO | flags.CREATE

    watched: dict[int, Path] = {}

    def _add(directory: Path) -> None:
        try:
            wd = inotify.add_watch(str(directory), mask)
        except OSError:
            logger.warning("cannot watch %s", directory)
            return
        watched[wd] = directory

    _add(root)
    for sub in root.rglob("*"):
        if sub.is_dir() and _watchable(sub, root):
            _add(sub)

    logger.info("inotify watching %s (%d dirs)", root, len(watched))

    while True:
        for event in inotify.read(timeout=_INOTIFY_TIMEOUT_MS):
            name = event.name
            if not name or event.wd not in watched:
                continue
            changed = watched[event.wd] / name
            if event.mask & flags.CREATE and changed.is_dir():
                if _watchable(changed, root):
                    _add(changed)
                continue
            if event.mask & (flags.CLOSE_WRITE | flags.MOVED_TO) and name.endswith(".json"):
                handle_change(tasks, changed)

        if _reload_state[0]:
            raise _ReloadRequestedError


# ---------------------------------------------------------------------------
# Polling fallback
# ---------------------------------------------------------------------------

def scan(tasks: Tasks, root: Path, seen: dict[Path, float]) -> int:
    """One polling pass: reload every artifact whose mtime moved. Returns count."""
    n = 0
    for rel in tasks.store.iter_artifacts():
        f = root / rel
        try:
            mtime = f.stat().st_mtime
        except OSError:
            continue
        if seen.get(f, 0.0) < mtime:
            seen[f] = mtime
            if handle_change(tasks, f):
                n += 1
    return n


def watch_poll(tasks: Tasks, root: Path, interval: float = 1.0) -> None:
    """Polling fallback for macOS/Docker. Checks mtime every interval seconds."""
    seen: dict[Path, float] = {}
    for rel in tasks.store.iter_artifacts():
        f = root / rel
        try:
            seen[f] = f.stat().st_mtime
        except OSError:
            continue
    logger.info("polling %s interval=%.1fs", root, interval)

    while True:
        scan(tasks, root, seen)
        if _reload_state[0]:
            raise _ReloadRequestedError
        time.sleep(interval)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def run(cfg: WorkspaceConfig) -> None:
    logging.basicConfig(level=cfg.logging.level, format="%(asctime)s %(name)s %(message)s")
    ws = open_workspace(cfg)
    root = cfg.workspace_dir
    if cfg.watcher.use_inotify:
        try:
            watch_inotify(ws.tasks, root)
            return
        except ImportError:
            logger.warning("inotify_simple not available, falling back to polling")
    watch_poll(ws.tasks, root, interval=cfg.watcher.poll_interval)


def run_from_config(config_root: Path | None = None) -> None:
    """Load workspace.toml and start the watcher. Handles SIGHUP for live config reload."""
    import signal as _signal

    if hasattr(_signal, "SIGHUP"):
        _signal.signal(_signal.SIGHUP, _handle_sighup)

    while True:
        _reload_state[0] = False
        cfg = load_config(config_root)
        try:
            run(cfg)
            break
        except _ReloadRequestedError:
            logger.info("Reloading config from %s", config_root or Path.cwd())


if __name__ == "__main__":
    root = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    run_from_config(root)
