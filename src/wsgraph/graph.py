"""WorkspaceGraph: the registry that owns every node of one workspace session."""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import TYPE_CHECKING

from wsgraph.errors import NotFoundError
from wsgraph.models import (
    PACKAGE_ID,
    Kind,
    datasource_id,
    middleware_phase_id,
    model_config_id,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from wsgraph.models import Entity


class WorkspaceGraph:
    """Node registry keyed by id.

    Typed lookups return None when absent; ``require`` raises NotFoundError.
    """

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)
        self._nodes: dict[str, Entity] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[Entity]:
        return iter(list(self._nodes.values()))

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def register(self, node: Entity) -> Entity:
        """Insert or replace a node by id.

        A replaced node's descendants are dropped with it; callers must not
        keep references to the old node.
        """
        previous = self._nodes.get(node.id)
        if previous is not None and previous is not node:
            for child_id in self._descendant_ids(previous):
                self._nodes.pop(child_id, None)
        node.graph = self
        self._nodes[node.id] = node
        return node

    add_node = register

    def remove(self, node_id: str) -> Entity:
        """Remove a node, its descendants and its parent's containment entry."""
        node = self.require(node_id)
        doomed = [node_id, *self._descendant_ids(node)]
        parent = self._nodes.get(node.parent) if node.parent else None
        if parent is not None:
            parent.children.pop(node_id, None)
        for nid in doomed:
            self._nodes.pop(nid, None)
        return node

    def _descendant_ids(self, node: Entity) -> list[str]:
        ids: list[str] = []
        stack = list(node.children.values())
        while stack:
            child = stack.pop()
            ids.append(child.id)
            stack.extend(child.children.values())
        return ids

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_node(self, node_id: str, kind: str | None = None) -> Entity | None:
        node = self._nodes.get(node_id)
        if node is None or (kind is not None and node.kind != kind):
            return None
        return node

    def require(self, node_id: str, kind: str | None = None) -> Entity:
        node = self.get_node(node_id, kind)
        if node is None:
            what = kind or "Node"
            msg = f"{what} not found: {node_id}"
            raise NotFoundError(msg, id=node_id, kind=what)
        return node

    def get_model(self, model_id: str) -> Entity | None:
        return self.get_node(model_id, Kind.MODEL)

    def get_facet(self, name: str) -> Entity | None:
        return self.get_node(name, Kind.FACET)

    def get_model_config(self, facet_name: str, model_name: str) -> Entity | None:
        return self.get_node(model_config_id(facet_name, model_name), Kind.MODEL_CONFIG)

    def get_data_source(self, facet_name: str, name: str) -> Entity | None:
        return self.get_node(datasource_id(facet_name, name), Kind.DATASOURCE)

    def get_middleware_phase(self, facet_name: str, phase: str) -> Entity | None:
        return self.get_node(middleware_phase_id(facet_name, phase), Kind.MIDDLEWARE_PHASE)

    def get_package_definition(self) -> Entity | None:
        return self.get_node(PACKAGE_ID, Kind.PACKAGE)

    def nodes_of_kind(self, kind: str, under: str | None = None) -> list[Entity]:
        """All nodes of ``kind``, optionally restricted to ids below ``under``."""
        prefix = under + "." if under else ""
        return [
            n for n in self._nodes.values()
            if n.kind == kind and n.id.startswith(prefix)
        ]

    def facet_names(self) -> list[str]:
        return sorted(n.id for n in self.nodes_of_kind(Kind.FACET))

    def counts_by_kind(self) -> Counter[str]:
        return Counter(n.kind for n in self._nodes.values())
