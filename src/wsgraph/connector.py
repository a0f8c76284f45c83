"""Request-binding seam: CRUD entry points with error-first callbacks.

Each function runs one task against the current workspace session and
reports ``callback(err, result)``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from wsgraph.models import split_model_id
from wsgraph.tasks import deliver
from wsgraph.workspace import get_workspace

if TYPE_CHECKING:
    from wsgraph.tasks import Callback


def create_facet(name: str, data: dict[str, Any], cb: Callback) -> None:
    deliver(cb, get_workspace().tasks.add_facet, name, data)


def create_model(model_id: str, data: dict[str, Any], cb: Callback) -> None:
    deliver(cb, get_workspace().tasks.add_model, model_id, data)


def update_model(model_id: str, data: dict[str, Any], cb: Callback) -> None:
    deliver(cb, get_workspace().tasks.update_model, model_id, data)


def find_model(model_id: str, cb: Callback) -> None:
    """Every read reloads the model from disk first."""
    deliver(cb, get_workspace().tasks.refresh_model, model_id)


def create_data_source(datasource_id: str, data: dict[str, Any], cb: Callback) -> None:
    """``datasource_id`` is ``<facet>.<name>``."""
    facet_name, name = split_model_id(datasource_id)
    deliver(cb, get_workspace().tasks.add_data_source, facet_name, name, data)


def create_model_property(model_id: str, property_name: str, data: dict[str, Any], cb: Callback) -> None:
    deliver(cb, get_workspace().tasks.add_model_property, model_id, property_name, data)


def create_model_method(model_id: str, method_name: str, data: dict[str, Any], cb: Callback) -> None:
    deliver(cb, get_workspace().tasks.add_model_method, model_id, method_name, data)


def create_model_relation(
    relation_name: str, from_model_id: str, to_model_id: str, data: dict[str, Any], cb: Callback,
) -> None:
    deliver(cb, get_workspace().tasks.add_model_relation, relation_name, from_model_id, to_model_id, data)


def delete_model_property(model_id: str, property_name: str, cb: Callback) -> None:
    deliver(cb, get_workspace().tasks.remove_model_property, model_id, property_name)
