import json

import pytest
from click.testing import CliRunner

from wsgraph.cli import cli


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    r = CliRunner()
    assert r.invoke(cli, ["init", "shop"]).exit_code == 0
    return r


def _ok(runner, *args):
    result = runner.invoke(cli, list(args))
    assert result.exit_code == 0, result.output
    return result


def test_init_creates_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    r = CliRunner()
    result = r.invoke(cli, ["init"])
    assert result.exit_code == 0
    assert (tmp_path / "workspace.toml").exists()

    again = r.invoke(cli, ["init"])
    assert again.exit_code == 0
    assert "already exists" in again.output


def test_build_a_model(runner, tmp_path):
    _ok(runner, "add-facet", "rest")
    _ok(runner, "add-model", "rest.User", "--data", '{"name": "User"}')
    _ok(runner, "add-property", "rest.User", "email", "--type", "String", "--required")

    result = _ok(runner, "show", "rest.User")
    assert json.loads(result.stdout) == {
        "name": "User",
        "properties": {"email": {"type": "String", "required": True}},
        "methods": {},
        "relations": {},
    }
    assert (tmp_path / "rest" / "models" / "user.json").exists()


def test_add_relation(runner):
    _ok(runner, "add-facet", "rest")
    _ok(runner, "add-model", "rest.User", "--data", '{"name": "User"}')

    missing = runner.invoke(cli, ["add-relation", "orders", "rest.User", "rest.Order"])
    assert missing.exit_code == 1
    assert "not found: rest.Order" in missing.output

    _ok(runner, "add-model", "rest.Order", "--data", '{"name": "Order"}')
    result = _ok(runner, "add-relation", "orders", "rest.User", "rest.Order", "--foreign-key", "userId")
    assert json.loads(result.stdout) == {"type": "hasMany", "foreignKey": "userId", "model": "Order"}


def test_add_datasource_and_list(runner):
    _ok(runner, "add-facet", "rest")
    result = _ok(runner, "add-datasource", "rest", "db", "--data", '{"host": "localhost"}')
    assert json.loads(result.stdout) == {"name": "db", "connector": "memory", "host": "localhost"}

    listed = _ok(runner, "list", "--kind", "DataSource")
    assert "rest.datasources.db" in listed.stdout
    assert "rest\n" not in listed.stdout


def test_bad_json_option(runner):
    _ok(runner, "add-facet", "rest")
    result = runner.invoke(cli, ["add-model", "rest.User", "--data", "[1, 2]"])
    assert result.exit_code == 2


def test_show_missing_model(runner):
    result = runner.invoke(cli, ["show", "rest.Ghost"])
    assert result.exit_code == 1
    assert "Model not found" in result.output


def test_refresh_reads_disk(runner, tmp_path):
    _ok(runner, "add-facet", "rest")
    _ok(runner, "add-model", "rest.User", "--data", '{"name": "User"}')
    path = tmp_path / "rest" / "models" / "user.json"
    data = json.loads(path.read_text())
    data["strict"] = True
    path.write_text(json.dumps(data))

    result = _ok(runner, "refresh", "rest.User")
    assert json.loads(result.stdout)["strict"] is True


def test_status(runner):
    _ok(runner, "add-facet", "rest")
    result = _ok(runner, "status")
    assert "Facet" in result.stdout
    assert "ModelDefinition" in result.stdout


def test_relations_lists_targets(runner, tmp_path):
    _ok(runner, "add-facet", "rest")
    _ok(runner, "add-model", "rest.User", "--data", '{"name": "User"}')
    _ok(runner, "add-model", "rest.Order", "--data", '{"name": "Order"}')
    _ok(runner, "add-relation", "orders", "rest.User", "rest.Order")
    _ok(runner, "add-relation", "owner", "rest.Order", "rest.User", "--type", "belongsTo")
    path = tmp_path / "rest" / "models" / "order.json"
    data = json.loads(path.read_text())
    data["relations"]["invoice"] = {"type": "hasOne", "model": "Invoice"}
    path.write_text(json.dumps(data))

    result = _ok(runner, "relations", "rest.Order")
    lines = result.stdout.splitlines()
    assert lines[0].split() == ["invoice", "hasOne", "(not loaded)"]
    assert lines[1].split() == ["owner", "belongsTo", "rest.User"]
