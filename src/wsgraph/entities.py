"""Node factories, containment and per-kind definition handling.

Nodes are plain ``Entity`` records; what differs between kinds is resolved
through ``_ASSEMBLERS`` / ``_UPDATERS`` keyed by the kind tag. Every factory
builds the record first and then registers it, so a node never exists outside
its graph.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any

from wsgraph.errors import InvalidOperationError
from wsgraph.models import (
    CHILD_KEYS,
    DATASOURCES_NS,
    MIDDLEWARE_NS,
    MODEL_CONFIG_NS,
    PACKAGE_ID,
    Entity,
    Kind,
    canonical_model_name,
    datasource_id,
    join_id,
    middleware_phase_id,
    model_config_id,
    model_file_path,
    split_model_id,
)

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from wsgraph.graph import WorkspaceGraph

# Model child kinds and the definition key each one is assembled under.
MEMBER_KINDS = {
    "properties": Kind.PROPERTY,
    "methods": Kind.METHOD,
    "relations": Kind.RELATION,
}


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

def create(
    graph: WorkspaceGraph,
    kind: str,
    node_id: str,
    content: dict[str, Any] | None = None,
    *,
    parent: Entity | None = None,
    ref: str | None = None,
) -> Entity:
    """Build a node, register it, and wire it under ``parent`` if given.

    An unqualified child id is rejected before anything is registered.
    """
    if parent is not None:
        _check_qualified(parent, node_id)
    node = Entity(kind=kind, id=node_id, content=copy.deepcopy(content or {}), ref=ref)
    graph.register(node)
    if parent is not None:
        add_contains_relation(parent, node)
    return node


def create_facet(graph: WorkspaceGraph, name: str, content: dict[str, Any] | None = None) -> Entity:
    return create(graph, Kind.FACET, name, content)


def create_model(graph: WorkspaceGraph, model_id: str, definition: dict[str, Any] | None = None) -> Entity:
    """Create a model from a full definition (members become child nodes).

    ``name`` and ``facetName`` are optional; when absent they are implied by
    the id.
    """
    definition = definition or {}
    facet_name, _ = split_model_id(model_id)
    content = {k: v for k, v in definition.items() if k not in CHILD_KEYS}
    model = create(graph, Kind.MODEL, model_id, content, parent=graph.get_facet(facet_name))
    _sync_members(model, definition)
    return model


def create_model_member(graph: WorkspaceGraph, model: Entity, kind: str, name: str,
                        content: dict[str, Any] | None = None) -> Entity:
    return create(graph, kind, join_id(model.id, name), content, parent=model)


def create_model_config(graph: WorkspaceGraph, facet: Entity, model_name: str,
                        content: dict[str, Any] | None = None) -> Entity:
    return create(graph, Kind.MODEL_CONFIG, model_config_id(facet.id, model_name), content, parent=facet)


def create_data_source(graph: WorkspaceGraph, facet: Entity, name: str,
                       content: dict[str, Any] | None = None) -> Entity:
    return create(graph, Kind.DATASOURCE, datasource_id(facet.id, name), content, parent=facet)


def create_middleware_phase(graph: WorkspaceGraph, facet: Entity, phase: str,
                            entries: dict[str, Any] | None = None) -> Entity:
    node = create(graph, Kind.MIDDLEWARE_PHASE, middleware_phase_id(facet.id, phase), parent=facet)
    for mount_path, entry in (entries or {}).items():
        add_middleware(node, mount_path, entry)
    return node


def create_package_definition(graph: WorkspaceGraph, content: dict[str, Any] | None = None) -> Entity:
    return create(graph, Kind.PACKAGE, PACKAGE_ID, content)


def check_identity(model_id: str, definition: dict[str, Any]) -> None:
    """Reject an id that would not load back from its own file, and a
    definition whose name or facetName disagrees with the id.
    """
    facet_name, model_name = split_model_id(model_id)
    canonical = canonical_model_name(model_name)
    if model_name != canonical:
        msg = f"model name {model_name!r} does not round-trip through its file name (use {canonical!r})"
        raise InvalidOperationError(msg, id=model_id, expected=canonical)
    for key, expected in (("name", model_name), ("facetName", facet_name)):
        given = definition.get(key)
        if given is not None and given != expected:
            msg = f"{key} {given!r} does not match model id {model_id!r}"
            raise InvalidOperationError(msg, id=model_id, key=key, value=given)


# ---------------------------------------------------------------------------
# Containment
# ---------------------------------------------------------------------------

def _check_qualified(parent: Entity, child_id: str) -> None:
    if not child_id.startswith(parent.id + "."):
        msg = f"child id {child_id!r} is not qualified by parent {parent.id!r}"
        raise InvalidOperationError(msg, parent=parent.id, child=child_id)


def add_contains_relation(parent: Entity, child: Entity) -> None:
    """Register ``child`` under ``parent``. Re-adding an id overwrites it."""
    _check_qualified(parent, child.id)
    child.parent = parent.id
    parent.children[child.id] = child


def get_contained_node(parent: Entity, leaf: str) -> Entity | None:
    """Child at ``parent.id + "." + leaf``, or None when not configured."""
    return parent.children.get(join_id(parent.id, leaf))


def get_contained_set(parent: Entity, kind: str) -> dict[str, Entity]:
    return {cid: c for cid, c in parent.children.items() if c.kind == kind}


def remove_contained_node(parent: Entity, leaf: str) -> Entity | None:
    """Remove a child through the graph so the registry and containment agree."""
    child = get_contained_node(parent, leaf)
    if child is None or parent.graph is None:
        return None
    return parent.graph.remove(child.id)


# ---------------------------------------------------------------------------
# Model members and relations
# ---------------------------------------------------------------------------

def add_relation(model: Entity, name: str, target_id: str, data: dict[str, Any] | None = None) -> Entity:
    """Create a relation ``model --name--> target``.

    The target must already be registered; nothing is created otherwise.
    """
    graph = _graph_of(model)
    target = graph.require(target_id, Kind.MODEL)
    content = dict(data or {})
    content.setdefault("model", target.content.get("name", target.leaf))
    return create(graph, Kind.RELATION, join_id(model.id, name), content, parent=model, ref=target.id)


def find_model_by_name(graph: WorkspaceGraph, facet_name: str, model_name: str) -> Entity | None:
    """Model ``model_name`` in ``facet_name``, else the only facet that has one."""
    model = graph.get_model(join_id(facet_name, model_name))
    if model is not None:
        return model
    matches = [m for m in graph.nodes_of_kind(Kind.MODEL) if m.leaf == model_name]
    return matches[0] if len(matches) == 1 else None


def relation_target(relation: Entity) -> Entity | None:
    """Resolve a relation's target model through the graph (None if not loaded).

    A target that was not loaded when the relation was read is looked up again
    by name and the reference is updated.
    """
    graph = relation.graph
    if graph is None:
        return None
    if relation.ref is not None:
        target = graph.get_model(relation.ref)
        if target is not None:
            return target
    model_name = relation.content.get("model")
    if not model_name or relation.parent is None:
        return None
    target = find_model_by_name(graph, split_model_id(relation.parent)[0], model_name)
    if target is not None:
        relation.ref = target.id
    return target


def _sync_members(model: Entity, definition: dict[str, Any]) -> None:
    """Make the model's children match the member maps of ``definition``.

    Relation targets are recorded by reference only; they may load later. A
    target already loaded in another facet is referenced there.
    """
    graph = _graph_of(model)
    facet_name = model.content.get("facetName", split_model_id(model.id)[0])
    for key, kind in MEMBER_KINDS.items():
        members: dict[str, Any] = definition.get(key) or {}
        for child_id, child in get_contained_set(model, kind).items():
            if child.key_in(model) not in members:
                graph.remove(child_id)
        for name, content in members.items():
            if not isinstance(content, dict):
                content = {"type": content}
            ref = None
            if kind == Kind.RELATION and content.get("model"):
                target = find_model_by_name(graph, facet_name, content["model"])
                ref = target.id if target is not None else join_id(facet_name, content["model"])
            create(graph, kind, join_id(model.id, name), content, parent=model, ref=ref)


def apply_definition(model: Entity, definition: dict[str, Any]) -> None:
    """Replace flat content and member children from a full definition (disk reload)."""
    update_definition(model, definition)
    _sync_members(model, definition)


def model_file(model: Entity, models_dir: str = "models") -> Path:
    graph = _graph_of(model)
    facet_name, model_name = split_model_id(model.id)
    return model_file_path(
        graph.directory,
        model.content.get("facetName", facet_name),
        model.content.get("name", model_name),
        models_dir,
    )


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

def add_middleware(phase: Entity, mount_path: str, data: dict[str, Any] | None = None) -> Entity:
    graph = _graph_of(phase)
    return create(graph, Kind.MIDDLEWARE, join_id(phase.id, mount_path), data, parent=phase)


# ---------------------------------------------------------------------------
# Definitions (dispatch by kind)
# ---------------------------------------------------------------------------

def _flat(node: Entity) -> dict[str, Any]:
    return copy.deepcopy(node.content)


def _model_definition(model: Entity) -> dict[str, Any]:
    definition = _flat(model)
    for key, kind in MEMBER_KINDS.items():
        definition[key] = {
            child.key_in(model): copy.deepcopy(child.content)
            for child in get_contained_set(model, kind).values()
        }
    return definition


def _keyed_children(node: Entity, kind: str, prefix: str) -> dict[str, Any]:
    """Children of ``kind`` keyed by their id below ``prefix`` (keys may contain dots)."""
    return {
        child.key_in(prefix): get_definition(child)
        for child in get_contained_set(node, kind).values()
    }


def _phase_definition(phase: Entity) -> dict[str, Any]:
    return _keyed_children(phase, Kind.MIDDLEWARE, phase.id)


def _replace_content(node: Entity, payload: dict[str, Any]) -> None:
    node.content = copy.deepcopy(payload)


def _update_model(model: Entity, payload: dict[str, Any]) -> None:
    model.content = {k: copy.deepcopy(v) for k, v in payload.items() if k not in CHILD_KEYS}


_ASSEMBLERS: dict[str, Callable[[Entity], dict[str, Any]]] = {
    Kind.MODEL: _model_definition,
    Kind.MIDDLEWARE_PHASE: _phase_definition,
}

_UPDATERS: dict[str, Callable[[Entity, dict[str, Any]], None]] = {
    Kind.MODEL: _update_model,
}


def get_definition(node: Entity) -> dict[str, Any]:
    """Assemble the definition of a node. Never mutates the node."""
    return _ASSEMBLERS.get(node.kind, _flat)(node)


def update_definition(node: Entity, payload: dict[str, Any]) -> None:
    """Replace a node's flat content. Contained children are left alone."""
    _UPDATERS.get(node.kind, _replace_content)(node, payload)


# Per-facet namespace each facet-level child kind lives under.
_FACET_NAMESPACES = {
    Kind.MODEL_CONFIG: MODEL_CONFIG_NS,
    Kind.DATASOURCE: DATASOURCES_NS,
    Kind.MIDDLEWARE_PHASE: MIDDLEWARE_NS,
}


def facet_key(facet: Entity, child: Entity) -> str:
    """Name a facet-level child is written under (``db.main`` keeps its dots)."""
    return child.key_in(join_id(facet.id, _FACET_NAMESPACES[child.kind]))


def _facet_children(facet: Entity, kind: str) -> dict[str, Any]:
    return _keyed_children(facet, kind, join_id(facet.id, _FACET_NAMESPACES[kind]))


def model_configs(facet: Entity) -> dict[str, Any]:
    return _facet_children(facet, Kind.MODEL_CONFIG)


def data_sources(facet: Entity) -> dict[str, Any]:
    return _facet_children(facet, Kind.DATASOURCE)


def middleware(facet: Entity) -> dict[str, Any]:
    return _facet_children(facet, Kind.MIDDLEWARE_PHASE)


def _graph_of(node: Entity) -> WorkspaceGraph:
    if node.graph is None:
        msg = f"node {node.id!r} is not registered in a workspace graph"
        raise InvalidOperationError(msg, id=node.id)
    return node.graph
