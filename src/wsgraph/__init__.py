"""Workspace entity graph: JSON files as source of truth, an in-memory graph as working view.

Layout:
    <workspace>/
        package.json                  # PackageDefinition
        <facet>/
            config.json               # Facet
            model-config.json         # ModelConfig nodes, one per model
            datasources.json          # DataSource nodes
            middleware.json           # MiddlewarePhase -> Middleware nodes
            models/
                <kebab-name>.json     # ModelDefinition + properties/methods/relations

Node ids are dot-joined ancestor segments: rest.User.email.

The task layer writes through: graph first, then the JSON file. Reloads go the
other way: read the JSON file, then update or create nodes.
"""

from wsgraph.config import WorkspaceConfig, init_config, load_config
from wsgraph.graph import WorkspaceGraph
from wsgraph.models import Entity, Kind
from wsgraph.store import JsonFileStore
from wsgraph.tasks import Tasks
from wsgraph.workspace import Workspace, open_workspace

__all__ = [
    "Entity",
    "JsonFileStore",
    "Kind",
    "Tasks",
    "Workspace",
    "WorkspaceConfig",
    "WorkspaceGraph",
    "init_config",
    "load_config",
    "open_workspace",
]
