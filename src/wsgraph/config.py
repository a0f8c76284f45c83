"""WorkspaceConfig: project-local config for a workspace graph session.

Default layout (all relative to the directory holding workspace.toml):

    workspace.toml            # this config (git-tracked)
    package.json              # package definition
    <facet>/
        config.json           # facet settings
        model-config.json     # per-model config
        datasources.json
        middleware.json
        models/
            <kebab-name>.json # model definitions

workspace.toml example:

    [workspace]
    name = "my-app"
    # dir = "."                 # directory holding the facets

    [layout]
    models_dir = "models"

    [watcher]
    poll_interval = 1.0
    use_inotify = true

    [logging]
    level = "INFO"
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

_CONFIG_FILENAME = "workspace.toml"


@dataclass
class LayoutConfig:
    """File names of the JSON artifacts, relative to a facet directory."""
    models_dir: str = "models"
    facet_config: str = "config.json"
    model_config: str = "model-config.json"
    datasources: str = "datasources.json"
    middleware: str = "middleware.json"
    package: str = "package.json"       # at the workspace root


@dataclass
class WatcherConfig:
    poll_interval: float = 1.0   # seconds between mtime scans when inotify is unavailable
    use_inotify: bool = True


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class WorkspaceConfig:
    """Resolved configuration for a workspace."""

    root: Path                      # directory that contains workspace.toml
    name: str = ""
    workspace_dir: Path = field(default_factory=Path)
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    watcher: WatcherConfig = field(default_factory=WatcherConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def config_path(self) -> Path:
        return self.root / _CONFIG_FILENAME


def load_config(root: Path | str | None = None) -> WorkspaceConfig:
    """Load workspace.toml from root (or search upward from cwd if root is None)."""
    root_path = _find_root(Path(root) if root else Path.cwd())
    config_path = root_path / _CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_path.exists():
        with config_path.open("rb") as f:
            raw = tomllib.load(f)

    ws_section = raw.get("workspace", {})
    layout_section = raw.get("layout", {})
    watcher_section = raw.get("watcher", {})
    log_section = raw.get("logging", {})

    defaults = LayoutConfig()
    return WorkspaceConfig(
        root=root_path,
        name=ws_section.get("name", root_path.name),
        workspace_dir=(root_path / ws_section.get("dir", ".")).resolve(),
        layout=LayoutConfig(
            models_dir=layout_section.get("models_dir", defaults.models_dir),
            facet_config=layout_section.get("facet_config", defaults.facet_config),
            model_config=layout_section.get("model_config", defaults.model_config),
            datasources=layout_section.get("datasources", defaults.datasources),
            middleware=layout_section.get("middleware", defaults.middleware),
            package=layout_section.get("package", defaults.package),
        ),
        watcher=WatcherConfig(
            poll_interval=float(watcher_section.get("poll_interval", 1.0)),
            use_inotify=bool(watcher_section.get("use_inotify", True)),
        ),
        logging=LoggingConfig(
            level=str(log_section.get("level", "INFO")).upper(),
        ),
    )


def _find_root(start: Path) -> Path:
    """Walk upward from start looking for workspace.toml."""
    for directory in (start, *start.parents):
        if (directory / _CONFIG_FILENAME).exists():
            return directory
    return start


def init_config(root: Path, name: str | None = None) -> Path:
    """Write a default workspace.toml at root. Raises if already exists."""
    config_path = root / _CONFIG_FILENAME
    if config_path.exists():
        msg = f"workspace.toml already exists at {config_path}"
        raise FileExistsError(msg)

    project_name = name or root.name
    content = f"""\
[workspace]
name = "{project_name}"
# dir = "."                 # directory holding the facets (default: this one)

# [layout]
# models_dir = "models"
# facet_config = "config.json"
# model_config = "model-config.json"
# datasources = "datasources.json"
# middleware = "middleware.json"
# package = "package.json"

# [watcher]
# poll_interval = 1.0       # seconds between scans when inotify is unavailable
# use_inotify = true

# [logging]
# level = "INFO"
"""
    config_path.write_text(content)
    return config_path
