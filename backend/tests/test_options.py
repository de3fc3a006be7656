"""
Tests for the search pane option builder and default resolution.
"""
import pytest

from searchpanes.errors import QueryBuildError
from searchpanes.fields import Editor, Field
from searchpanes.options import JoinSpec, RawClause, SearchPaneOptions, default_renderer, resolve


class TestBuilder:
    """Getter / setter behaviour of SearchPaneOptions"""

    def test_defaults(self):
        """Nothing is configured on a new instance"""
        opts = SearchPaneOptions()
        assert opts.table() is None
        assert opts.value() is None
        assert opts.label() == []
        assert opts.where() == []
        assert opts.order() is None
        assert opts.limit() is None
        assert opts.render() is None
        assert opts.left_joins() == []
        assert opts.primary_join is None
        assert opts.manual_additions() == []

    def test_setters_chain(self):
        """Setters return the instance"""
        opts = SearchPaneOptions.inst()
        same = opts.table("sites").value("id").label("name").order("name DESC").limit(5)
        assert same is opts
        assert opts.table() == "sites"
        assert opts.value() == "id"
        assert opts.label() == ["name"]
        assert opts.order() == "name DESC"
        assert opts.limit() == 5

    def test_label_accepts_list(self):
        """Several label columns"""
        opts = SearchPaneOptions().label(["first_name", "last_name"])
        assert opts.label() == ["first_name", "last_name"]

    def test_add_defaults_value_to_label(self):
        """The label doubles as value"""
        opts = SearchPaneOptions().add("Foo")
        assert opts.manual_additions() == [{"label": "Foo", "value": "Foo"}]

    def test_add_keeps_order_and_duplicates(self):
        """Manual additions keep insertion order and duplicates"""
        opts = SearchPaneOptions().add("B", 2).add("A", 1).add("B", 2)
        assert opts.manual_additions() == [
            {"label": "B", "value": 2},
            {"label": "A", "value": 1},
            {"label": "B", "value": 2},
        ]

    def test_left_join_first_is_primary(self):
        """The first join feeds the label query"""
        opts = (
            SearchPaneOptions()
            .left_join("sites", "sites.id", "=", "users.site")
            .left_join("depts", "depts.id", "=", "users.dept")
        )
        assert len(opts.left_joins()) == 2
        assert opts.primary_join == JoinSpec("sites", "sites.id", "=", "users.site")
        assert opts.primary_join.condition() == "sites.id = users.site"

    def test_where_normalizes_mappings(self):
        """Mappings become RawClause"""
        opts = SearchPaneOptions().where([{"key": "role", "value": "admin"}, RawClause("site", 1, ">")])
        assert opts.where() == [RawClause("role", "admin", "="), RawClause("site", 1, ">")]

    def test_where_single_callable(self):
        """A single callable is stored as a list"""
        fn = lambda q: q.where("role", "admin")  # noqa: E731
        opts = SearchPaneOptions().where(fn)
        assert opts.where() == [fn]

    def test_where_rejects_unknown_shapes(self):
        """Unsupported predicates raise QueryBuildError"""
        with pytest.raises(QueryBuildError):
            SearchPaneOptions().where(42)

    def test_empty_order_clears(self):
        """An empty order clause resets it"""
        opts = SearchPaneOptions().order("name").order("")
        assert opts.order() is None


class TestResolve:
    """Default table / value / label resolution"""

    def test_all_defaults(self, db):
        """Table, value and label fall back to editor and field"""
        editor = Editor(db, "users")
        resolved = resolve(SearchPaneOptions(), Field("users.site"), editor)
        assert resolved.table == "users"
        assert resolved.value == "users.site"
        assert resolved.label == "users.site"
        assert resolved.label_columns == ("users.site",)
        assert resolved.primary_join is None
        assert resolved.needs_render is False

    def test_label_defaults_to_configured_value(self, db):
        """Label follows an explicit value"""
        editor = Editor(db, "users")
        resolved = resolve(SearchPaneOptions().value("site"), Field("users.site"), editor)
        assert resolved.value == "site"
        assert resolved.label == "site"

    def test_explicit_settings_win(self, db):
        """Configured settings override defaults"""
        editor = Editor(db, "users")
        opts = (
            SearchPaneOptions()
            .table("sites")
            .value("id")
            .label(["name", "id"])
            .add("Other", 0)
            .limit(3)
        )
        resolved = resolve(opts, Field("users.site"), editor)
        assert resolved.table == "sites"
        assert resolved.value == "id"
        assert resolved.label == "name"
        assert resolved.label_columns == ("name", "id")
        assert resolved.limit == 3
        assert resolved.manual == ({"label": "Other", "value": 0},)
        assert resolved.needs_render is True

    def test_resolved_manual_entries_are_copies(self, db):
        """Resolved manual entries do not alias the builder"""
        opts = SearchPaneOptions().add("Foo")
        resolved = resolve(opts, Field("name"), Editor(db, "users"))
        resolved.manual[0]["label"] = "changed"
        assert opts.manual_additions() == [{"label": "Foo", "value": "Foo"}]


def test_default_renderer_joins_with_space():
    """Values joined with a space, None as empty"""
    assert default_renderer({"first": "Ada", "last": "Lovelace"}) == "Ada Lovelace"
    assert default_renderer({"name": "Ada", "id": 3}) == "Ada 3"
    assert default_renderer({"name": None}) == ""
