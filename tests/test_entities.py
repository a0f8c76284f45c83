import pytest

from wsgraph import entities
from wsgraph.errors import InvalidOperationError, NotFoundError
from wsgraph.models import Entity, Kind


@pytest.fixture
def user(graph):
    entities.create_facet(graph, "rest")
    return entities.create_model(graph, "rest.User", {"name": "User"})


def test_factory_registers_node(graph):
    facet = entities.create_facet(graph, "rest", {"restApiRoot": "/api"})
    assert graph.get_facet("rest") is facet
    assert facet.graph is graph


def test_model_is_contained_by_its_facet(graph, user):
    facet = graph.get_facet("rest")
    assert entities.get_contained_node(facet, "User") is user
    assert user.parent == "rest"


def test_definition_keys_members_by_leaf_name(graph, user):
    entities.create_model_member(graph, user, Kind.PROPERTY, "email", {"type": "String"})
    entities.create_model_member(graph, user, Kind.METHOD, "login", {"isStatic": True})

    assert entities.get_definition(user) == {
        "name": "User",
        "properties": {"email": {"type": "String"}},
        "methods": {"login": {"isStatic": True}},
        "relations": {},
    }


def test_get_definition_does_not_mutate(graph, user):
    entities.create_model_member(graph, user, Kind.PROPERTY, "email", {"type": "String"})
    definition = entities.get_definition(user)
    definition["properties"]["email"]["type"] = "Number"
    definition["name"] = "Other"

    assert user.content == {"name": "User"}
    assert graph.get_node("rest.User.email").content == {"type": "String"}


def test_update_definition_strips_child_keys(graph, user):
    entities.create_model_member(graph, user, Kind.PROPERTY, "email", {"type": "String"})

    entities.update_definition(user, {
        "name": "User",
        "base": "PersistedModel",
        "properties": {"other": {"type": "Number"}},
        "methods": {"x": {}},
        "relations": {"y": {}},
        "validations": [],
        "acls": [],
    })

    assert user.content == {"name": "User", "base": "PersistedModel"}
    assert list(user.children) == ["rest.User.email"]
    assert entities.get_definition(user)["properties"] == {"email": {"type": "String"}}


def test_get_contained_node_absent_returns_none(user):
    assert entities.get_contained_node(user, "missing") is None


def test_get_contained_set_filters_by_kind(graph, user):
    entities.create_model_member(graph, user, Kind.PROPERTY, "email", {})
    entities.create_model_member(graph, user, Kind.METHOD, "login", {})
    assert list(entities.get_contained_set(user, Kind.PROPERTY)) == ["rest.User.email"]
    assert entities.get_contained_set(user, Kind.RELATION) == {}


def test_add_contains_relation_requires_qualified_id(user):
    stray = Entity(kind=Kind.PROPERTY, id="email")
    with pytest.raises(InvalidOperationError):
        entities.add_contains_relation(user, stray)


def test_add_contains_relation_last_write_wins(graph, user):
    entities.create_model_member(graph, user, Kind.PROPERTY, "email", {"type": "String"})
    entities.create_model_member(graph, user, Kind.PROPERTY, "email", {"type": "Number"})
    assert len(user.children) == 1
    assert entities.get_contained_node(user, "email").content == {"type": "Number"}


def test_add_relation_references_target(graph, user):
    order = entities.create_model(graph, "rest.Order", {"name": "Order"})
    relation = entities.add_relation(user, "orders", "rest.Order", {"type": "hasMany"})

    assert relation.id == "rest.User.orders"
    assert relation.ref == "rest.Order"
    assert relation.content == {"type": "hasMany", "model": "Order"}
    assert entities.relation_target(relation) is order
    assert "rest.User.orders" not in order.children


def test_add_relation_missing_target_creates_nothing(graph, user):
    with pytest.raises(NotFoundError):
        entities.add_relation(user, "orders", "rest.Order", {"type": "hasMany"})
    assert "rest.User.orders" not in graph
    assert user.children == {}


def test_create_model_decomposes_members(graph):
    model = entities.create_model(graph, "rest.Order", {
        "name": "Order",
        "properties": {"total": {"type": "Number"}, "note": "string"},
        "relations": {"customer": {"type": "belongsTo", "model": "User"}},
    })
    assert graph.get_node("rest.Order.total").kind == Kind.PROPERTY
    assert graph.get_node("rest.Order.note").content == {"type": "string"}
    relation = graph.get_node("rest.Order.customer")
    assert relation.ref == "rest.User"
    assert "properties" not in model.content


def test_apply_definition_drops_members_missing_on_disk(graph, user):
    entities.create_model_member(graph, user, Kind.PROPERTY, "email", {})
    entities.apply_definition(user, {"name": "User", "properties": {"age": {"type": "Number"}}})
    assert "rest.User.email" not in graph
    assert entities.get_definition(user)["properties"] == {"age": {"type": "Number"}}


def test_middleware_keys_are_mount_paths(graph):
    facet = entities.create_facet(graph, "rest")
    phase = entities.create_middleware_phase(graph, facet, "routes", {"/api/v1.0": {"enabled": True}})
    assert entities.get_definition(phase) == {"/api/v1.0": {"enabled": True}}
    assert entities.middleware(facet) == {"routes": {"/api/v1.0": {"enabled": True}}}


def test_model_file(graph, user):
    assert entities.model_file(user) == graph.directory / "rest" / "models" / "user.json"


def test_unregistered_node_is_rejected():
    with pytest.raises(InvalidOperationError):
        entities.add_middleware(Entity(kind=Kind.MIDDLEWARE_PHASE, id="rest.middleware.routes"), "/", {})


def test_remove_contained_node(graph, user):
    entities.create_model_member(graph, user, Kind.METHOD, "login", {})
    removed = entities.remove_contained_node(user, "login")
    assert removed.id == "rest.User.login"
    assert "rest.User.login" not in graph
    assert entities.get_contained_node(user, "login") is None
    assert entities.remove_contained_node(user, "login") is None


def test_unqualified_child_is_not_registered(graph, user):
    with pytest.raises(InvalidOperationError):
        entities.create(graph, Kind.PROPERTY, "other.email", {}, parent=user)
    assert "other.email" not in graph
    assert user.children == {}


def test_relation_from_disk_finds_target_in_other_facet(graph):
    entities.create_facet(graph, "common")
    customer = entities.create_model(graph, "common.Customer", {"name": "Customer"})
    entities.create_facet(graph, "rest")
    entities.create_model(graph, "rest.Order", {
        "name": "Order",
        "relations": {"customer": {"type": "belongsTo", "model": "Customer"}},
    })

    relation = graph.get_node("rest.Order.customer")
    assert relation.ref == "common.Customer"
    assert entities.relation_target(relation) is customer


def test_relation_target_resolves_after_target_loads(graph):
    entities.create_facet(graph, "rest")
    entities.create_model(graph, "rest.Order", {
        "name": "Order",
        "relations": {"customer": {"type": "belongsTo", "model": "Customer"}},
    })
    relation = graph.get_node("rest.Order.customer")
    assert entities.relation_target(relation) is None

    entities.create_facet(graph, "common")
    customer = entities.create_model(graph, "common.Customer", {"name": "Customer"})

    assert entities.relation_target(relation) is customer
    assert relation.ref == "common.Customer"


def test_facet_children_keep_dotted_names(graph):
    facet = entities.create_facet(graph, "rest")
    source = entities.create_data_source(graph, facet, "db.main", {"connector": "memory"})
    entities.create_model_config(graph, facet, "User", {"public": True})

    assert entities.facet_key(facet, source) == "db.main"
    assert entities.data_sources(facet) == {"db.main": {"connector": "memory"}}
    assert entities.model_configs(facet) == {"User": {"public": True}}
