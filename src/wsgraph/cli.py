"""wsg CLI: inspect and edit a workspace graph backed by JSON files.

Commands:
    wsg init [NAME]                       create workspace.toml
    wsg status                            node counts by kind
    wsg list [--kind KIND]                list node ids
    wsg show MODEL_ID                     model definition as JSON
    wsg relations MODEL_ID                relations and their target models
    wsg add-facet NAME                    create a facet
    wsg add-model MODEL_ID                create a model
    wsg add-property MODEL_ID NAME        add a property to a model
    wsg add-relation NAME FROM TO         relate two models
    wsg add-datasource FACET NAME         add a datasource
    wsg refresh MODEL_ID                  reload a model from disk
    wsg watch                             reload artifacts as files change
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from wsgraph.config import init_config, load_config
from wsgraph.errors import WorkspaceError
from wsgraph.models import Kind
from wsgraph.workspace import open_workspace

if TYPE_CHECKING:
    from wsgraph.config import WorkspaceConfig
    from wsgraph.workspace import Workspace

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_cfg() -> WorkspaceConfig:
    try:
        return load_config()
    except Exception as exc:
        raise click.ClickException(str(exc)) from exc


def _open() -> Workspace:
    try:
        return open_workspace(_load_cfg())
    except WorkspaceError as exc:
        raise click.ClickException(exc.message) from exc


def _run(task: Any, *args: Any) -> Any:
    try:
        return task(*args)
    except WorkspaceError as exc:
        raise click.ClickException(exc.message) from exc


def _json_option(value: str | None) -> dict[str, Any]:
    if not value:
        return {}
    try:
        data = json.loads(value)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise click.BadParameter("expected a JSON object")
    return data


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2))


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="wsgraph")
@click.option("--verbose", "-v", is_flag=True, help="Log graph and file operations to stderr")
def cli(verbose: bool) -> None:
    """wsg: workspace entity graph."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s %(message)s")


@cli.command()
@click.argument("name", required=False)
@click.option("--dir", "root", default=".", show_default=True, help="Workspace root")
def init(name: str | None, root: str) -> None:
    """Create workspace.toml in the current directory."""
    root_path = Path(root).resolve()
    try:
        config_path = init_config(root_path, name=name)
        click.echo(f"Created {config_path}")
    except FileExistsError:
        click.echo("workspace.toml already exists, skipping init")


@cli.command()
def status() -> None:
    """Show node counts by kind."""
    from rich.console import Console
    from rich.table import Table

    ws = _open()
    counts = ws.graph.counts_by_kind()

    table = Table(title=f"wsg: {ws.cfg.name}", show_header=True, header_style="bold")
    table.add_column("Kind", style="dim", no_wrap=True)
    table.add_column("Nodes", justify="right")
    for kind in Kind.ALL:
        table.add_row(kind, str(counts.get(kind, 0)))
    table.add_row("", "")
    table.add_row("Directory", str(ws.graph.directory))
    Console().print(table)


@cli.command("list")
@click.option("--kind", "-k", type=click.Choice(Kind.ALL), default=None, help="Only nodes of this kind")
def list_nodes(kind: str | None) -> None:
    """List node ids."""
    ws = _open()
    for node in sorted(ws.graph, key=lambda n: n.id):
        if kind is None or node.kind == kind:
            click.echo(f"{node.kind:<18} {node.id}")


@cli.command()
@click.argument("model_id")
def show(model_id: str) -> None:
    """Print a model definition."""
    from wsgraph.entities import get_definition

    ws = _open()
    model = ws.graph.get_model(model_id)
    if model is None:
        raise click.ClickException(f"Model not found: {model_id}")
    _echo_json(get_definition(model))


@cli.command()
@click.argument("model_id")
def relations(model_id: str) -> None:
    """List a model's relations and the model each one points at."""
    from wsgraph.entities import get_contained_set, relation_target

    ws = _open()
    model = ws.graph.get_model(model_id)
    if model is None:
        raise click.ClickException(f"Model not found: {model_id}")
    for relation in sorted(get_contained_set(model, Kind.RELATION).values(), key=lambda n: n.id):
        target = relation_target(relation)
        rel_type = relation.content.get("type", "")
        click.echo(f"{relation.key_in(model):<20} {rel_type:<16} {target.id if target else '(not loaded)'}")


@cli.command("add-facet")
@click.argument("name")
@click.option("--data", default=None, help="Facet settings as a JSON object")
def add_facet(name: str, data: str | None) -> None:
    """Create a facet."""
    ws = _open()
    _echo_json(_run(ws.tasks.add_facet, name, _json_option(data)))


@cli.command("add-model")
@click.argument("model_id")
@click.option("--data", default=None, help="Model definition as a JSON object")
def add_model(model_id: str, data: str | None) -> None:
    """Create a model, e.g. ``wsg add-model rest.User``."""
    ws = _open()
    _echo_json(_run(ws.tasks.add_model, model_id, _json_option(data)))


@cli.command("add-property")
@click.argument("model_id")
@click.argument("name")
@click.option("--type", "prop_type", default="string", show_default=True, help="Property type")
@click.option("--required", is_flag=True, help="Mark the property as required")
def add_property(model_id: str, name: str, prop_type: str, required: bool) -> None:
    """Add a property to a model."""
    ws = _open()
    prop: dict[str, Any] = {"type": prop_type}
    if required:
        prop["required"] = True
    _echo_json(_run(ws.tasks.add_model_property, model_id, name, prop))


@cli.command("add-relation")
@click.argument("name")
@click.argument("from_model")
@click.argument("to_model")
@click.option("--type", "rel_type", default="hasMany", show_default=True, help="Relation type")
@click.option("--foreign-key", default=None, help="Foreign key property")
def add_relation(name: str, from_model: str, to_model: str, rel_type: str, foreign_key: str | None) -> None:
    """Relate FROM_MODEL to TO_MODEL under NAME."""
    ws = _open()
    data: dict[str, Any] = {"type": rel_type}
    if foreign_key:
        data["foreignKey"] = foreign_key
    _echo_json(_run(ws.tasks.add_model_relation, name, from_model, to_model, data))


@cli.command("add-datasource")
@click.argument("facet")
@click.argument("name")
@click.option("--connector", default="memory", show_default=True, help="Connector name")
@click.option("--data", default=None, help="Extra datasource settings as a JSON object")
def add_datasource(facet: str, name: str, connector: str, data: str | None) -> None:
    """Add a datasource to a facet."""
    ws = _open()
    config = {"name": name, "connector": connector, **_json_option(data)}
    _echo_json(_run(ws.tasks.add_data_source, facet, name, config))


@cli.command()
@click.argument("model_id")
def refresh(model_id: str) -> None:
    """Reload a model from disk and print its definition."""
    ws = _open()
    _echo_json(_run(ws.tasks.refresh_model, model_id))


@cli.command()
def watch() -> None:
    """Watch the workspace and reload artifacts as files change (blocks)."""
    from wsgraph.watcher import run_from_config

    run_from_config(_load_cfg().root)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    cli(standalone_mode=True)


if __name__ == "__main__":
    main()
