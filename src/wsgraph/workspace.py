"""Workspace sessions: one graph, one store and one Tasks per workspace.

``open_workspace`` builds the session and loads every artifact on disk;
``load_artifact`` routes a single changed file to the matching load task and
is shared with the watcher.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any

from wsgraph.errors import AlreadyExistsError, FileIgnoredError
from wsgraph.graph import WorkspaceGraph
from wsgraph.models import model_id_from_path
from wsgraph.store import JsonFileStore
from wsgraph.tasks import Tasks

if TYPE_CHECKING:
    from pathlib import Path

    from wsgraph.config import LayoutConfig, WorkspaceConfig

logger = logging.getLogger("wsgraph.workspace")

# Mutable container so the connector can reach the session without a global statement.
_current: list[Workspace | None] = [None]


@dataclass
class Workspace:
    cfg: WorkspaceConfig
    graph: WorkspaceGraph
    store: JsonFileStore
    tasks: Tasks


def open_workspace(cfg: WorkspaceConfig, *, load: bool = True) -> Workspace:
    """Create a session for ``cfg.workspace_dir`` and make it current."""
    graph = WorkspaceGraph(cfg.workspace_dir)
    store = JsonFileStore(cfg.workspace_dir, cfg.layout)
    ws = Workspace(cfg=cfg, graph=graph, store=store, tasks=Tasks(graph, store))
    if load:
        n = load_all(ws)
        logger.info("workspace %s: loaded %d artifacts, %d nodes", cfg.name, n, len(graph))
    set_workspace(ws)
    return ws


def get_workspace() -> Workspace:
    ws = _current[0]
    if ws is None:
        msg = "no workspace is open"
        raise RuntimeError(msg)
    return ws


def set_workspace(ws: Workspace | None) -> None:
    _current[0] = ws


def load_all(ws: Workspace) -> int:
    """Load every artifact under the workspace dir. Returns the number loaded."""
    n = 0
    for rel in ws.store.iter_artifacts():
        try:
            if load_artifact(ws.tasks, rel) is not None:
                n += 1
        except FileIgnoredError:
            logger.debug("ignored %s", rel)
    return n


def artifact_kind(rel_path: PurePosixPath | str, layout: LayoutConfig) -> str | None:
    """Classify a workspace-relative path by the artifact it holds."""
    rel = PurePosixPath(rel_path)
    if rel.suffix != ".json":
        return None
    if rel.parent.name == layout.models_dir:
        return "model"
    return {
        layout.package: "package",
        layout.facet_config: "facet",
        layout.model_config: "model-config",
        layout.datasources: "datasources",
        layout.middleware: "middleware",
    }.get(rel.name)


def load_artifact(tasks: Tasks, path: Path | PurePosixPath | str) -> dict[str, Any] | None:
    """Route a changed file to its load task. Returns None for unrelated files.

    A model that is already loaded is refreshed instead of raising, so repeated
    change events for the same file are harmless.
    """
    rel = tasks.store.relative(path)
    kind = artifact_kind(rel, tasks.store.layout)
    if kind == "model":
        try:
            return tasks.load_model(rel)
        except AlreadyExistsError:
            model_id = model_id_from_path(rel, tasks.models_dir)
            return tasks.refresh_model(model_id) if model_id else None
    if kind == "package":
        if len(rel.parts) > 1:
            return None
        return tasks.load_package_definition()
    if kind == "facet":
        return tasks.load_facet(rel)
    if kind == "model-config":
        return tasks.load_model_config(rel)
    if kind == "datasources":
        return tasks.load_data_sources(rel)
    if kind == "middleware":
        return tasks.load_middleware(rel)
    return None
