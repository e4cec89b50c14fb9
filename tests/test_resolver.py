"""
Tests for the configuration resolver: defaults fill gaps, edits are never lost.
"""

import pytest

from routeflow.models import Node
from routeflow.node_types import defaults_for
from routeflow.resolver import (
    ConfigurationResolver,
    append_item,
    needs_update,
    remove_at,
    resolve,
    set_field,
    set_item_field,
)


def make_node(node_type, data=None, node_id="n1"):
    return Node(id=node_id, type=node_type, data=dict(data or {}))


class TestResolve:

    def test_fills_every_default(self):
        resolved = resolve(make_node("auth"))
        assert resolved == {"label": "Auth", "authType": "bearer", "tokenVar": ""}

    def test_existing_values_win(self):
        node = make_node("url", {"label": "Signup", "method": "POST", "path": "/users"})
        resolved = resolve(node)
        assert resolved["label"] == "Signup"
        assert resolved["method"] == "POST"
        assert resolved["path"] == "/users"
        assert resolved["fields"] == []
        assert resolved["queryFields"] == []

    def test_falsy_values_are_kept(self):
        node = make_node("output", {"statusCode": 0, "responseRaw": ""})
        assert resolve(node)["statusCode"] == 0

    def test_unknown_keys_survive(self):
        node = make_node("logic", {"note": "x"})
        assert resolve(node)["note"] == "x"

    def test_idempotent(self):
        node = make_node("db-update", {"model": "User"})
        once = resolve(node)
        assert resolve(make_node("db-update", once)) == once

    def test_does_not_mutate_node(self):
        node = make_node("auth", {"tokenVar": "t"})
        resolve(node)
        assert node.data == {"tokenVar": "t"}

    def test_unknown_type(self):
        assert resolve(make_node("webhook")) == {"label": "Webhook"}

    def test_needs_update(self):
        assert needs_update(make_node("auth")) is True
        assert needs_update(make_node("auth", defaults_for("auth"))) is False


class TestFieldHelpers:

    def test_set_field_is_plain_merge(self):
        data = {"label": "Url", "method": "GET", "path": ""}
        updated = set_field(data, "path", "/users")
        assert updated == {"label": "Url", "method": "GET", "path": "/users"}
        assert data["path"] == ""

    def test_set_field_does_not_rederive_defaults(self):
        # A partially filled node stays partial; only the edited key changes
        assert set_field({"label": "X"}, "method", "PUT") == {"label": "X", "method": "PUT"}

    def test_append_item_copies_list(self):
        original = [{"name": "email", "type": "string"}]
        data = {"fields": original}
        updated = append_item(data, "fields", {"name": "age", "type": "number"})
        assert updated["fields"] == [
            {"name": "email", "type": "string"},
            {"name": "age", "type": "number"},
        ]
        assert updated["fields"] is not original
        assert len(original) == 1

    def test_append_item_to_missing_key(self):
        assert append_item({}, "queryFields", {"name": "page"}) == {"queryFields": [{"name": "page"}]}

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_append_blank_name_is_noop(self, name):
        data = {"fields": []}
        assert append_item(data, "fields", {"name": name, "type": "string"}) is data

    def test_remove_at(self):
        original = [{"name": "a"}, {"name": "b"}, {"name": "c"}]
        data = {"fields": original}
        updated = remove_at(data, "fields", 1)
        assert updated["fields"] == [{"name": "a"}, {"name": "c"}]
        assert len(original) == 3

    def test_remove_at_out_of_range(self):
        data = {"fields": [{"name": "a"}]}
        assert remove_at(data, "fields", 5) is data
        assert remove_at(data, "fields", -1) is data

    def test_set_item_field(self):
        original = [{"name": "a", "type": "string"}]
        data = {"fields": original}
        updated = set_item_field(data, "fields", 0, "type", "number")
        assert updated["fields"] == [{"name": "a", "type": "number"}]
        assert original[0]["type"] == "string"


class TestConfigurationResolver:

    @pytest.fixture
    def updates(self):
        return []

    @pytest.fixture
    def resolver(self, updates):
        return ConfigurationResolver(lambda node_id, data: updates.append((node_id, data)))

    def test_issues_one_update_for_incomplete_node(self, resolver, updates):
        node = make_node("auth")
        assert resolver.sync(node) is True
        assert updates == [("n1", {"label": "Auth", "authType": "bearer", "tokenVar": ""})]

    def test_repeated_sync_does_not_loop(self, resolver, updates):
        node = make_node("auth")
        resolver.sync(node)
        node.data = updates[-1][1]
        for _ in range(5):
            resolver.sync(node)
        assert len(updates) == 1
        assert resolver.updates_issued == 1

    def test_complete_node_issues_nothing(self, resolver, updates):
        resolver.sync(make_node("auth", defaults_for("auth")))
        assert updates == []

    def test_new_selection_resolves_again(self, resolver, updates):
        resolver.sync(make_node("auth", node_id="a"))
        resolver.sync(make_node("logic", node_id="b"))
        assert [u[0] for u in updates] == ["a", "b"]

    def test_type_change_resolves_again(self, resolver, updates):
        node = make_node("auth", defaults_for("auth"))
        resolver.sync(node)
        node.type = "output"
        assert resolver.sync(node) is True
        assert updates[-1][1]["statusCode"] == 200
        # Fields of the previous type are kept
        assert updates[-1][1]["authType"] == "bearer"

    def test_deselect_then_reselect(self, resolver, updates):
        node = make_node("auth")
        resolver.sync(node)
        resolver.sync(None)
        resolver.sync(node)
        assert len(updates) == 2
