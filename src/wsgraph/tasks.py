"""Tasks: the operations that link the in-memory graph with the JSON files.

Write path (``add_*``, ``update_*``, ``remove_*``): resolve the nodes involved,
mutate the graph, then persist. The graph is changed before the write and is
not rolled back when the write fails; the graph is ahead of disk until the
next successful write or refresh.

Read path (``refresh_*``, ``load_*``): read through the persistence port,
update the matching nodes in place or create them, and return the assembled
definition.

Every task returns its result and raises a WorkspaceError on failure;
``deliver`` adapts a task to an error-first ``callback(err, result)``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from wsgraph import entities
from wsgraph.errors import (
    AlreadyExistsError,
    FileIgnoredError,
    InvalidOperationError,
    NotFoundError,
    WorkspaceError,
)
from wsgraph.models import (
    Kind,
    facet_from_path,
    join_id,
    model_id_from_path,
    split_model_id,
)

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path, PurePosixPath

    from wsgraph.graph import WorkspaceGraph
    from wsgraph.models import Entity
    from wsgraph.store import PersistencePort

    Callback = Callable[[WorkspaceError | None, Any], None]

logger = logging.getLogger("wsgraph.tasks")


def deliver(callback: Callback, task: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
    """Run ``task`` and report through an error-first callback.

    Only WorkspaceError is routed to the callback; anything else is a bug and
    propagates.
    """
    try:
        result = task(*args, **kwargs)
    except WorkspaceError as err:
        callback(err, None)
        return
    callback(None, result)


class Tasks:
    """CRUD and reload operations over one workspace graph."""

    def __init__(self, graph: WorkspaceGraph, store: PersistencePort) -> None:
        self.graph = graph
        self.store = store

    @property
    def models_dir(self) -> str:
        return self.store.layout.models_dir

    # ------------------------------------------------------------------
    # Lookups that must succeed
    # ------------------------------------------------------------------

    def _facet(self, facet_name: str) -> Entity:
        return self.graph.require(facet_name, Kind.FACET)

    def _model(self, model_id: str) -> Entity:
        return self.graph.require(model_id, Kind.MODEL)

    def _member(self, model: Entity, kind: str, name: str) -> Entity:
        node = entities.get_contained_node(model, name)
        if node is None or node.kind != kind:
            node_id = join_id(model.id, name)
            msg = f"{kind} not found: {node_id}"
            raise NotFoundError(msg, id=node_id, kind=kind)
        return node

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def add_facet(self, name: str, facet_def: dict[str, Any] | None = None) -> dict[str, Any]:
        if self.graph.get_facet(name) is not None:
            msg = f"Facet already exists: {name}"
            raise AlreadyExistsError(msg, id=name)
        facet = entities.create_facet(self.graph, name, facet_def)
        logger.debug("facet added: %s", name)
        self.store.write_facet(facet)
        return entities.get_definition(facet)

    def add_model(self, model_id: str, model_def: dict[str, Any] | None = None) -> dict[str, Any]:
        model_def = model_def or {}
        facet_name, _ = split_model_id(model_id)
        self._facet(facet_name)
        entities.check_identity(model_id, model_def)
        if self.graph.get_model(model_id) is not None:
            msg = f"Model already exists: {model_id}"
            raise AlreadyExistsError(msg, id=model_id)
        model = entities.create_model(self.graph, model_id, model_def)
        logger.debug("model added: %s", model_id)
        self.store.write_model(model)
        return entities.get_definition(model)

    def add_model_config(self, facet_name: str, model_name: str, config: dict[str, Any]) -> dict[str, Any]:
        facet = self._facet(facet_name)
        node = entities.create_model_config(self.graph, facet, model_name, config)
        logger.debug("model config added: %s", node.id)
        self.store.write_model_config(facet)
        return entities.get_definition(node)

    def add_data_source(self, facet_name: str, name: str, config: dict[str, Any]) -> dict[str, Any]:
        facet = self._facet(facet_name)
        node = entities.create_data_source(self.graph, facet, name, config)
        logger.debug("datasource added: %s", node.id)
        self.store.write_data_source_config(facet)
        return entities.get_definition(node)

    def _add_member(self, model_id: str, kind: str, name: str, member_def: dict[str, Any]) -> dict[str, Any]:
        model = self._model(model_id)
        node = entities.create_model_member(self.graph, model, kind, name, member_def)
        logger.debug("%s added: %s", kind, node.id)
        self.store.write_model(model)
        return entities.get_definition(node)

    def add_model_property(self, model_id: str, property_name: str, property_def: dict[str, Any]) -> dict[str, Any]:
        return self._add_member(model_id, Kind.PROPERTY, property_name, property_def)

    def add_model_method(self, model_id: str, method_name: str, method_def: dict[str, Any]) -> dict[str, Any]:
        return self._add_member(model_id, Kind.METHOD, method_name, method_def)

    def add_model_relation(
        self,
        relation_name: str,
        from_model_id: str,
        to_model_id: str,
        data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        model = self._model(from_model_id)
        relation = entities.add_relation(model, relation_name, to_model_id, data)
        logger.debug("relation added: %s -> %s", relation.id, to_model_id)
        self.store.write_model(model)
        return entities.get_definition(relation)

    def add_middleware_phase(self, facet_name: str, phase: str) -> dict[str, Any]:
        facet = self._facet(facet_name)
        if self.graph.get_middleware_phase(facet_name, phase) is not None:
            msg = f"Middleware phase already exists: {phase}"
            raise AlreadyExistsError(msg, facet=facet_name, phase=phase)
        node = entities.create_middleware_phase(self.graph, facet, phase)
        self.store.write_middleware(facet)
        return entities.get_definition(node)

    def add_middleware(self, facet_name: str, phase_name: str, path: str, data: dict[str, Any]) -> dict[str, Any]:
        facet = self._facet(facet_name)
        phase = self.graph.get_middleware_phase(facet_name, phase_name)
        if phase is None:
            msg = f"Middleware phase not found: {phase_name}"
            raise NotFoundError(msg, facet=facet_name, phase=phase_name)
        node = entities.add_middleware(phase, path, data)
        logger.debug("middleware added: %s", node.id)
        self.store.write_middleware(facet)
        return entities.get_definition(node)

    def add_package_definition(self, definition: dict[str, Any]) -> dict[str, Any]:
        package = entities.create_package_definition(self.graph, definition)
        self.store.write_package_definition(package)
        return entities.get_definition(package)

    def update_model(self, model_id: str, model_def: dict[str, Any]) -> dict[str, Any]:
        model = self._model(model_id)
        facet_name, model_name = split_model_id(model_id)
        current = {
            "name": model.content.get("name", model_name),
            "facetName": model.content.get("facetName", facet_name),
        }
        # Ids derive from name and facetName, so both are immutable.
        for key, value in current.items():
            given = model_def.get(key)
            if given is not None and given != value:
                msg = f"renaming {model_id} is not supported ({key}={given!r})"
                raise InvalidOperationError(msg, id=model_id, key=key, value=given)
        identity = {k: model.content[k] for k in ("name", "facetName") if k in model.content}
        entities.update_definition(model, {**model_def, **identity})
        logger.debug("model updated: %s", model_id)
        self.store.write_model(model)
        return entities.get_definition(model)

    def update_model_property(self, model_id: str, property_name: str, property_def: dict[str, Any]) -> dict[str, Any]:
        model = self._model(model_id)
        node = self._member(model, Kind.PROPERTY, property_name)
        entities.update_definition(node, property_def)
        self.store.write_model(model)
        return entities.get_definition(node)

    def update_model_config(self, facet_name: str, model_name: str, config: dict[str, Any]) -> dict[str, Any]:
        facet = self._facet(facet_name)
        node = self.graph.get_model_config(facet_name, model_name)
        if node is None:
            msg = f"Model config not found: {facet_name}.{model_name}"
            raise NotFoundError(msg, facet=facet_name, model=model_name)
        entities.update_definition(node, config)
        self.store.write_model_config(facet)
        return entities.get_definition(node)

    def update_data_source(self, facet_name: str, name: str, config: dict[str, Any]) -> dict[str, Any]:
        facet = self._facet(facet_name)
        node = self.graph.get_data_source(facet_name, name)
        if node is None:
            msg = f"DataSource not found: {facet_name}.{name}"
            raise NotFoundError(msg, facet=facet_name, name=name)
        entities.update_definition(node, config)
        self.store.write_data_source_config(facet)
        return entities.get_definition(node)

    def remove_model(self, model_id: str) -> None:
        model = self.graph.remove(self._model(model_id).id)
        logger.debug("model removed: %s", model_id)
        self.store.remove_model(model)

    def _remove_member(self, model_id: str, kind: str, name: str) -> None:
        model = self._model(model_id)
        node = self._member(model, kind, name)
        entities.remove_contained_node(model, name)
        logger.debug("%s removed: %s", kind, node.id)
        self.store.write_model(model)

    def remove_model_property(self, model_id: str, property_name: str) -> None:
        self._remove_member(model_id, Kind.PROPERTY, property_name)

    def remove_model_method(self, model_id: str, method_name: str) -> None:
        self._remove_member(model_id, Kind.METHOD, method_name)

    def remove_model_relation(self, model_id: str, relation_name: str) -> None:
        self._remove_member(model_id, Kind.RELATION, relation_name)

    def remove_data_source(self, facet_name: str, name: str) -> None:
        facet = self._facet(facet_name)
        node = self.graph.get_data_source(facet_name, name)
        if node is None:
            msg = f"DataSource not found: {facet_name}.{name}"
            raise NotFoundError(msg, facet=facet_name, name=name)
        self.graph.remove(node.id)
        self.store.write_data_source_config(facet)

    # ------------------------------------------------------------------
    # Read / reconcile path
    # ------------------------------------------------------------------

    def refresh_facet(self, facet_name: str) -> dict[str, Any]:
        facet_def = self.store.read_facet(facet_name)
        facet = self.graph.get_facet(facet_name)
        if facet is None:
            facet = entities.create_facet(self.graph, facet_name, facet_def)
            logger.info("facet loaded: %s", facet_name)
        else:
            entities.update_definition(facet, facet_def)
        return entities.get_definition(facet)

    def _ensure_facet(self, facet_name: str) -> Entity:
        facet = self.graph.get_facet(facet_name)
        if facet is None:
            self.refresh_facet(facet_name)
            facet = self._facet(facet_name)
        return facet

    def refresh_model(self, model_id: str) -> dict[str, Any]:
        model = self.graph.get_model(model_id)
        facet_name, model_name = split_model_id(model_id)
        if model is not None:
            facet_name = model.content.get("facetName", facet_name)
            model_name = model.content.get("name", model_name)
        model_def = self.store.read_model(facet_name, model_name)
        if model is not None:
            entities.apply_definition(model, model_def)
        else:
            self._ensure_facet(facet_name)
            model = entities.create_model(self.graph, model_id, model_def)
        logger.info("model refreshed: %s", model_id)
        return entities.get_definition(model)

    def _reconcile(
        self,
        facet: Entity,
        kind: str,
        on_disk: dict[str, Any],
        build: Callable[[Entity, str, Any], Entity],
    ) -> None:
        """Make ``facet``'s children of ``kind`` match ``on_disk``."""
        for child_id, child in entities.get_contained_set(facet, kind).items():
            if entities.facet_key(facet, child) not in on_disk:
                self.graph.remove(child_id)
        for name, content in on_disk.items():
            build(facet, name, content)

    def refresh_model_config(self, facet_name: str) -> dict[str, Any]:
        facet = self._ensure_facet(facet_name)
        config = self.store.read_model_config(facet_name)
        self._reconcile(
            facet, Kind.MODEL_CONFIG, config,
            lambda f, name, content: entities.create_model_config(self.graph, f, name, content),
        )
        logger.info("model config refreshed: %s (%d models)", facet_name, len(config))
        return entities.model_configs(facet)

    def refresh_data_source(self, facet_name: str) -> dict[str, Any]:
        facet = self._ensure_facet(facet_name)
        config = self.store.read_data_sources(facet_name)
        self._reconcile(
            facet, Kind.DATASOURCE, config,
            lambda f, name, content: entities.create_data_source(self.graph, f, name, content),
        )
        logger.info("datasources refreshed: %s (%d)", facet_name, len(config))
        return entities.data_sources(facet)

    def refresh_middleware(self, facet_name: str) -> dict[str, Any]:
        facet = self._ensure_facet(facet_name)
        config = self.store.read_middleware(facet_name)
        self._reconcile(
            facet, Kind.MIDDLEWARE_PHASE, config,
            lambda f, phase, entries: entities.create_middleware_phase(self.graph, f, phase, entries),
        )
        logger.info("middleware refreshed: %s (%d phases)", facet_name, len(config))
        return entities.middleware(facet)

    def load_model(self, file_path: Path | PurePosixPath | str, file_data: dict[str, Any] | None = None) -> dict[str, Any]:
        """Register the model stored at ``file_path`` (workspace-relative or absolute).

        The id is derived from the path; loading a path whose id is already
        registered raises AlreadyExistsError.
        """
        rel = self.store.relative(file_path)
        model_id = model_id_from_path(rel, self.models_dir)
        if model_id is None:
            msg = f"file ignored: {rel}"
            raise FileIgnoredError(msg, path=str(rel))
        if self.graph.get_model(model_id) is not None:
            msg = f"Model is already loaded: {model_id}"
            raise AlreadyExistsError(msg, id=model_id, path=str(rel))
        if file_data is None:
            file_data = self.store.read_artifact(rel)
        facet_name, _ = split_model_id(model_id)
        self._ensure_facet(facet_name)
        model = entities.create_model(self.graph, model_id, file_data)
        logger.info("model loaded: %s from %s", model_id, rel)
        return entities.get_definition(model)

    def _facet_for(self, file_path: Path | PurePosixPath | str) -> str:
        rel = self.store.relative(file_path)
        facet_name = facet_from_path(rel)
        if facet_name is None:
            logger.debug("file ignored: %s", rel)
            msg = f"file ignored: {rel}"
            raise FileIgnoredError(msg, path=str(rel))
        return facet_name

    def load_model_config(self, file_path: Path | PurePosixPath | str) -> dict[str, Any]:
        return self.refresh_model_config(self._facet_for(file_path))

    def load_middleware(self, file_path: Path | PurePosixPath | str) -> dict[str, Any]:
        return self.refresh_middleware(self._facet_for(file_path))

    def load_data_sources(self, file_path: Path | PurePosixPath | str) -> dict[str, Any]:
        return self.refresh_data_source(self._facet_for(file_path))

    def load_facet(self, file_path: Path | PurePosixPath | str) -> dict[str, Any]:
        return self.refresh_facet(self._facet_for(file_path))

    def load_package_definition(self) -> dict[str, Any]:
        definition = self.store.read_package_definition()
        package = self.graph.get_package_definition()
        if package is None:
            package = entities.create_package_definition(self.graph, definition)
        else:
            entities.update_definition(package, definition)
        logger.info("package definition loaded")
        return entities.get_definition(package)
