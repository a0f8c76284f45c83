"""Node record and identity helpers for the workspace graph."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from wsgraph.graph import WorkspaceGraph


class Kind:
    """Kind tags carried by every node."""

    FACET = "Facet"
    MODEL = "ModelDefinition"
    PROPERTY = "ModelProperty"
    METHOD = "ModelMethod"
    RELATION = "ModelRelation"
    MODEL_CONFIG = "ModelConfig"
    DATASOURCE = "DataSource"
    MIDDLEWARE_PHASE = "MiddlewarePhase"
    MIDDLEWARE = "Middleware"
    PACKAGE = "PackageDefinition"

    ALL = (
        FACET, MODEL, PROPERTY, METHOD, RELATION, MODEL_CONFIG,
        DATASOURCE, MIDDLEWARE_PHASE, MIDDLEWARE, PACKAGE,
    )


# Per-facet namespaces, so a model and a datasource may share a name.
MODEL_CONFIG_NS = "model-config"
DATASOURCES_NS = "datasources"
MIDDLEWARE_NS = "middleware"

PACKAGE_ID = "package.json"

# Keys represented by contained children, never by flat model content.
CHILD_KEYS = ("properties", "methods", "relations", "validations", "acls")


@dataclass
class Entity:
    """A node in the workspace graph.

    ``children`` maps fully qualified child id to child node. ``ref`` holds the
    id of a node this one points at without owning it (relation targets).
    """

    kind: str
    id: str
    content: dict[str, Any] = field(default_factory=dict)
    graph: WorkspaceGraph | None = field(default=None, repr=False, compare=False)
    children: dict[str, Entity] = field(default_factory=dict, repr=False)
    parent: str | None = None
    ref: str | None = None

    @property
    def leaf(self) -> str:
        return leaf_name(self.id)

    def key_in(self, parent: Entity | str) -> str:
        """Return this node's id relative to ``parent`` (an entity or an id prefix).

        Names below the prefix may contain dots: mount paths, ``db.main``.
        """
        prefix = (parent if isinstance(parent, str) else parent.id) + "."
        if self.id.startswith(prefix):
            return self.id[len(prefix):]
        return self.leaf


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

def join_id(*segments: str) -> str:
    """Dot-join ancestor segments into a node id."""
    return ".".join(s for s in segments if s)


def leaf_name(node_id: str) -> str:
    """Last dot component of an id."""
    return node_id.rsplit(".", 1)[-1]


def split_model_id(model_id: str) -> tuple[str, str]:
    """Split ``facet.Model`` into ``(facet, Model)``. Facet may contain dots."""
    facet, _, name = model_id.rpartition(".")
    return facet, name


def model_config_id(facet_name: str, model_name: str) -> str:
    return join_id(facet_name, MODEL_CONFIG_NS, model_name)


def datasource_id(facet_name: str, name: str) -> str:
    return join_id(facet_name, DATASOURCES_NS, name)


def middleware_phase_id(facet_name: str, phase: str) -> str:
    return join_id(facet_name, MIDDLEWARE_NS, phase)


# ---------------------------------------------------------------------------
# Names and paths
# ---------------------------------------------------------------------------

_WORD_RE = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|\d+")


def _words(name: str) -> list[str]:
    return _WORD_RE.findall(name)


def kebab_case(name: str) -> str:
    """``UserAccount`` -> ``user-account``."""
    return "-".join(w.lower() for w in _words(name))


def pascal_case(name: str) -> str:
    """``user-account`` -> ``UserAccount``."""
    return "".join(w[:1].upper() + w[1:] for w in _words(name))


def facet_dir(facet_name: str) -> PurePosixPath:
    """Facet names map to (possibly nested) directories: ``a.b`` -> ``a/b``."""
    return PurePosixPath(*facet_name.split("."))


def canonical_model_name(name: str) -> str:
    """Model name a file named after ``name`` loads back as: ``user`` -> ``User``."""
    return pascal_case(kebab_case(name))


def model_file_path(directory: Path, facet_name: str, model_name: str, models_dir: str = "models") -> Path:
    return directory / facet_dir(facet_name) / models_dir / (kebab_case(model_name) + ".json")


def facet_from_path(rel_path: str | PurePosixPath, models_dir: str | None = None) -> str | None:
    """Derive a facet name from a workspace-relative file path.

    Directory segments are dot-joined; a trailing ``models_dir`` segment is
    dropped. Returns None for files at the workspace root.
    """
    parts = PurePosixPath(rel_path).parent.parts
    if models_dir and parts and parts[-1] == models_dir:
        parts = parts[:-1]
    parts = tuple(p for p in parts if p not in ("", "."))
    if not parts:
        return None
    return ".".join(parts)


def model_id_from_path(rel_path: str | PurePosixPath, models_dir: str = "models") -> str | None:
    """``rest/models/user-account.json`` -> ``rest.UserAccount``."""
    facet = facet_from_path(rel_path, models_dir)
    if facet is None:
        return None
    return join_id(facet, canonical_model_name(PurePosixPath(rel_path).stem))
