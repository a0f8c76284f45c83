from pathlib import Path, PurePosixPath

import pytest

from wsgraph.models import (
    Entity,
    Kind,
    canonical_model_name,
    datasource_id,
    facet_from_path,
    join_id,
    kebab_case,
    leaf_name,
    middleware_phase_id,
    model_config_id,
    model_file_path,
    model_id_from_path,
    pascal_case,
    split_model_id,
)


def test_join_id_is_dot_join():
    assert join_id("rest", "User", "email") == "rest.User.email"
    assert join_id("rest", "User", "email") == join_id("rest", "User", "email")


def test_join_id_skips_empty_segments():
    assert join_id("", "User") == "User"


def test_leaf_name():
    assert leaf_name("rest.User.email") == "email"
    assert leaf_name("package.json") == "json"
    assert leaf_name("solo") == "solo"


def test_split_model_id_keeps_dotted_facet():
    assert split_model_id("rest.User") == ("rest", "User")
    assert split_model_id("server.admin.User") == ("server.admin", "User")


def test_namespaced_ids():
    assert model_config_id("rest", "User") == "rest.model-config.User"
    assert datasource_id("rest", "db") == "rest.datasources.db"
    assert middleware_phase_id("rest", "routes") == "rest.middleware.routes"


@pytest.mark.parametrize(("name", "expected"), [
    ("User", "user"),
    ("UserAccount", "user-account"),
    ("userAccount", "user-account"),
    ("user_account", "user-account"),
    ("HTTPServer", "http-server"),
    ("user-account", "user-account"),
])
def test_kebab_case(name, expected):
    assert kebab_case(name) == expected


@pytest.mark.parametrize(("name", "expected"), [
    ("user", "User"),
    ("user-account", "UserAccount"),
    ("order_item", "OrderItem"),
])
def test_pascal_case(name, expected):
    assert pascal_case(name) == expected


def test_model_file_path(tmp_path):
    assert model_file_path(tmp_path, "rest", "UserAccount") == tmp_path / "rest" / "models" / "user-account.json"
    assert model_file_path(tmp_path, "server.admin", "User", "defs") == tmp_path / "server" / "admin" / "defs" / "user.json"


def test_facet_from_path():
    assert facet_from_path("rest/model-config.json") == "rest"
    assert facet_from_path("server/admin/datasources.json") == "server.admin"
    assert facet_from_path("rest/models/user.json", "models") == "rest"
    assert facet_from_path("model-config.json") is None
    assert facet_from_path(PurePosixPath("./middleware.json")) is None


def test_model_id_from_path():
    assert model_id_from_path("rest/models/user.json") == "rest.User"
    assert model_id_from_path("rest/models/user-account.json") == "rest.UserAccount"
    assert model_id_from_path("models/user.json") is None
    assert model_id_from_path("user.json") is None


def test_entity_key_in_parent_keeps_dots():
    phase = Entity(kind=Kind.MIDDLEWARE_PHASE, id="rest.middleware.routes")
    entry = Entity(kind=Kind.MIDDLEWARE, id="rest.middleware.routes./api/v1.0")
    assert entry.key_in(phase) == "/api/v1.0"
    assert entry.leaf == "0"


def test_kebab_then_pascal_round_trips_for_pascal_names():
    path = model_file_path(Path("."), "rest", "OrderItem")
    assert model_id_from_path(PurePosixPath(path.as_posix())) == "rest.OrderItem"


@pytest.mark.parametrize(("name", "expected"), [
    ("User", "User"),
    ("user", "User"),
    ("OrderItem", "OrderItem"),
    ("HTTPServer", "HttpServer"),
])
def test_canonical_model_name(name, expected):
    assert canonical_model_name(name) == expected


def test_model_id_from_path_is_canonical():
    assert model_id_from_path("rest/models/HTTPServer.json") == "rest.HttpServer"
    assert model_id_from_path(f"rest/models/{kebab_case('HttpServer')}.json") == "rest.HttpServer"


def test_entity_key_in_prefix():
    node = Entity(kind=Kind.DATASOURCE, id="rest.datasources.db.main")
    assert node.key_in("rest.datasources") == "db.main"
