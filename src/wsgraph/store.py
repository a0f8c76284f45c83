"""Read and write the JSON artifacts behind a workspace graph.

PersistencePort is the boundary the task layer talks to; JsonFileStore is the
file implementation:

    store = JsonFileStore("/path/to/workspace")
    store.write_model(model)
    definition = store.read_model("rest", "User")

Writes go to a tmp file under an exclusive flock and are renamed into place,
so a concurrent reader (or the watcher) never sees a half-written artifact.
Reads return plain dicts; turning them into nodes is the task layer's job.
"""

from __future__ import annotations

import fcntl
import json
import logging
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Any, Protocol

from wsgraph.config import LayoutConfig
from wsgraph.entities import data_sources, get_definition, middleware, model_configs
from wsgraph.errors import NotFoundError, PersistenceError
from wsgraph.models import facet_dir, model_file_path, split_model_id

if TYPE_CHECKING:
    from collections.abc import Iterator

    from wsgraph.models import Entity

logger = logging.getLogger("wsgraph.store")

_SKIP_DIRS = {"node_modules"}


class PersistencePort(Protocol):
    """What the task layer needs from durable storage."""

    layout: LayoutConfig

    def write_facet(self, facet: Entity) -> None: ...
    def write_model(self, model: Entity) -> None: ...
    def write_model_config(self, facet: Entity) -> None: ...
    def write_data_source_config(self, facet: Entity) -> None: ...
    def write_middleware(self, facet: Entity) -> None: ...
    def write_package_definition(self, package: Entity) -> None: ...
    def remove_model(self, model: Entity) -> None: ...

    def read_facet(self, facet_name: str) -> dict[str, Any]: ...
    def read_model(self, facet_name: str, model_name: str) -> dict[str, Any]: ...
    def read_model_config(self, facet_name: str) -> dict[str, Any]: ...
    def read_data_sources(self, facet_name: str) -> dict[str, Any]: ...
    def read_middleware(self, facet_name: str) -> dict[str, Any]: ...
    def read_package_definition(self) -> dict[str, Any]: ...
    def read_artifact(self, rel_path: PurePosixPath | str) -> dict[str, Any]: ...
    def relative(self, path: Path | str) -> PurePosixPath: ...


class JsonFileStore:
    """JSON-file backed persistence port."""

    def __init__(self, directory: Path | str, layout: LayoutConfig | None = None) -> None:
        self.directory = Path(directory)
        self.layout = layout or LayoutConfig()

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def _facet_dir(self, facet_name: str) -> Path:
        return self.directory / facet_dir(facet_name)

    def facet_config_path(self, facet_name: str) -> Path:
        return self._facet_dir(facet_name) / self.layout.facet_config

    def model_config_path(self, facet_name: str) -> Path:
        return self._facet_dir(facet_name) / self.layout.model_config

    def datasources_path(self, facet_name: str) -> Path:
        return self._facet_dir(facet_name) / self.layout.datasources

    def middleware_path(self, facet_name: str) -> Path:
        return self._facet_dir(facet_name) / self.layout.middleware

    def package_path(self) -> Path:
        return self.directory / self.layout.package

    def model_path(self, facet_name: str, model_name: str) -> Path:
        return model_file_path(self.directory, facet_name, model_name, self.layout.models_dir)

    def relative(self, path: Path | str) -> PurePosixPath:
        """Workspace-relative form of ``path`` (relative paths pass through)."""
        p = Path(path)
        if p.is_absolute():
            try:
                p = p.relative_to(self.directory)
            except ValueError:
                p = p.resolve().relative_to(self.directory.resolve())
        return PurePosixPath(p.as_posix())

    def iter_artifacts(self) -> Iterator[PurePosixPath]:
        """Workspace-relative paths of every JSON file, shallowest first."""
        if not self.directory.exists():
            return
        found = [
            p for p in self.directory.rglob("*.json")
            if p.is_file() and not any(
                part.startswith(".") or part in _SKIP_DIRS
                for part in p.relative_to(self.directory).parts[:-1]
            )
        ]
        for p in sorted(found, key=lambda q: (len(q.parts), str(q))):
            yield self.relative(p)

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def write_facet(self, facet: Entity) -> None:
        self._write_json(self.facet_config_path(facet.id), get_definition(facet))

    def write_model(self, model: Entity) -> None:
        facet_name, model_name = split_model_id(model.id)
        definition = get_definition(model)
        path = self.model_path(definition.get("facetName", facet_name), definition.get("name", model_name))
        self._write_json(path, definition)

    def write_model_config(self, facet: Entity) -> None:
        self._write_json(self.model_config_path(facet.id), model_configs(facet))

    def write_data_source_config(self, facet: Entity) -> None:
        self._write_json(self.datasources_path(facet.id), data_sources(facet))

    def write_middleware(self, facet: Entity) -> None:
        self._write_json(self.middleware_path(facet.id), middleware(facet))

    def write_package_definition(self, package: Entity) -> None:
        self._write_json(self.package_path(), get_definition(package))

    def remove_model(self, model: Entity) -> None:
        facet_name, model_name = split_model_id(model.id)
        path = self.model_path(model.content.get("facetName", facet_name), model.content.get("name", model_name))
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            msg = f"failed to remove {path}: {exc}"
            raise PersistenceError(msg, path=str(path)) from exc
        logger.debug("removed %s", path)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def read_facet(self, facet_name: str) -> dict[str, Any]:
        return self._read_json(self.facet_config_path(facet_name))

    def read_model(self, facet_name: str, model_name: str) -> dict[str, Any]:
        path = self.model_path(facet_name, model_name)
        if not path.exists():
            msg = f"model file not found: {path}"
            raise NotFoundError(msg, path=str(path), facet=facet_name, model=model_name)
        return self._read_json(path)

    def read_model_config(self, facet_name: str) -> dict[str, Any]:
        return self._read_json(self.model_config_path(facet_name))

    def read_data_sources(self, facet_name: str) -> dict[str, Any]:
        return self._read_json(self.datasources_path(facet_name))

    def read_middleware(self, facet_name: str) -> dict[str, Any]:
        return self._read_json(self.middleware_path(facet_name))

    def read_package_definition(self) -> dict[str, Any]:
        return self._read_json(self.package_path())

    def read_artifact(self, rel_path: PurePosixPath | str) -> dict[str, Any]:
        """Read any workspace-relative JSON file (used by file-triggered loads)."""
        return self._read_json(self.directory / rel_path)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _read_json(self, path: Path) -> dict[str, Any]:
        """Read a JSON object; a missing file reads as empty (not configured)."""
        if not path.exists():
            return {}
        try:
            with path.open() as f:
                fcntl.flock(f, fcntl.LOCK_SH)
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            msg = f"failed to read {path}: {exc}"
            raise PersistenceError(msg, path=str(path)) from exc
        if not isinstance(data, dict):
            msg = f"expected a JSON object in {path}"
            raise PersistenceError(msg, path=str(path))
        return data

    def _write_json(self, path: Path, data: dict[str, Any]) -> None:
        """Atomically write a JSON file under exclusive flock."""
        tmp = path.with_suffix(".json.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w") as f:
                fcntl.flock(f, fcntl.LOCK_EX)
                json.dump(data, f, indent=2)
                f.write("\n")
            tmp.replace(path)
        except OSError as exc:
            msg = f"failed to write {path}: {exc}"
            raise PersistenceError(msg, path=str(path)) from exc
        logger.debug("wrote %s", path)
