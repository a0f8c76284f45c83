"""Shared fixtures: an empty workspace on tmp_path."""

from __future__ import annotations

import pytest

from wsgraph.graph import WorkspaceGraph
from wsgraph.store import JsonFileStore
from wsgraph.tasks import Tasks
from wsgraph.workspace import set_workspace


@pytest.fixture
def graph(tmp_path):
    return WorkspaceGraph(tmp_path)


@pytest.fixture
def store(tmp_path):
    return JsonFileStore(tmp_path)


@pytest.fixture
def tasks(graph, store):
    return Tasks(graph, store)


@pytest.fixture
def rest(tasks):
    """A workspace with facet ``rest`` and model ``rest.User``."""
    tasks.add_facet("rest", {})
    tasks.add_model("rest.User", {"name": "User"})
    return tasks


@pytest.fixture(autouse=True)
def _no_current_workspace():
    yield
    set_workspace(None)
