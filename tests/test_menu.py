import pytest

from rbacadmin.db import Database, OrderDirection, OrderField, QueryOptions
from rbacadmin.menu import (
    Menu,
    MenuAction,
    MenuActionQueryParam,
    MenuActionRepo,
    MenuActionResource,
    MenuActionResourceQueryParam,
    MenuActionResourceRepo,
    MenuQueryParam,
    MenuRepo,
)

DDL = [
    """CREATE TABLE menus (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT, updated_at TEXT,
        name TEXT NOT NULL DEFAULT '', icon TEXT, router TEXT,
        parent_id INTEGER DEFAULT 0, parent_path TEXT DEFAULT '',
        is_show INTEGER DEFAULT 0, status INTEGER DEFAULT 0,
        sequence INTEGER DEFAULT 0, memo TEXT, creator INTEGER)""",
    """CREATE TABLE menu_actions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT, updated_at TEXT,
        menu_id INTEGER NOT NULL, code TEXT, name TEXT)""",
    """CREATE TABLE menu_action_resources (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT, updated_at TEXT,
        action_id INTEGER NOT NULL, method TEXT, path TEXT)""",
]


@pytest.fixture
def db():
    database = Database()
    for sql in DDL:
        database.execute(sql)
    yield database
    database.close()


@pytest.fixture
def menus(db):
    return MenuRepo(db)


@pytest.fixture
def actions(db):
    return MenuActionRepo(db)


@pytest.fixture
def resources(db):
    return MenuActionResourceRepo(db)


def test_create_and_get_round_trip(menus):
    new_id = menus.create(Menu(name="home", icon="house", status=1, sequence=3, creator=7))
    got = menus.get(new_id)
    assert got.id == new_id
    assert (got.name, got.icon, got.status, got.sequence, got.creator) == ("home", "house", 1, 3, 7)
    assert got.created_at is not None
    assert got.memo is None


def test_get_missing_returns_none(menus):
    assert menus.get(999) is None


def test_update_writes_only_set_fields(menus):
    new_id = menus.create(Menu(name="a", status=1, sequence=5, memo="note"))
    assert menus.update(new_id, Menu(name="b")) == 1
    got = menus.get(new_id)
    assert (got.name, got.status, got.sequence, got.memo) == ("b", 1, 5, "note")


def test_update_nullable_field_to_empty(menus):
    new_id = menus.create(Menu(name="a", memo="note"))
    menus.update(new_id, Menu(memo=""))
    assert menus.get(new_id).memo == ""


def test_update_with_nothing_set_changes_nothing(menus):
    new_id = menus.create(Menu(name="a"))
    assert menus.update(new_id, Menu()) == 0
    assert menus.get(new_id).name == "a"


def test_update_parent_path_and_status(menus):
    new_id = menus.create(Menu(name="a", status=1))
    menus.update_parent_path(new_id, "1/2")
    menus.update_status(new_id, 2)
    got = menus.get(new_id)
    assert (got.parent_path, got.status) == ("1/2", 2)


def test_delete(menus):
    keep = menus.create(Menu(name="keep"))
    gone = menus.create(Menu(name="gone"))
    assert menus.delete(gone) == 1
    assert menus.get(gone) is None
    assert menus.get(keep).name == "keep"


def test_query_filters(menus):
    a = menus.create(Menu(name="alpha", parent_id=0, parent_path="", is_show=1, status=1))
    b = menus.create(Menu(name="beta", parent_id=a, parent_path=f"{a}", is_show=2, status=2))
    c = menus.create(Menu(name="alphabet", parent_id=b, parent_path=f"{a}/{b}", is_show=1, status=1))

    def ids(**kw):
        return sorted(m.id for m in menus.query(MenuQueryParam(**kw)).data)

    assert ids() == [a, b, c]
    assert ids(ids=[a, c]) == [a, c]
    assert ids(name="beta") == [b]
    assert ids(parent_id=b) == [c]
    assert ids(prefix_parent_path=f"{a}") == [b, c]
    assert ids(is_show=2) == [b]
    assert ids(status=1) == [a, c]
    assert ids(query_value="pha") == [a, c]


def test_query_without_pagination_has_no_page_result(menus):
    menus.create(Menu(name="x"))
    result = menus.query()
    assert result.page_result is None
    assert [m.name for m in result.data] == ["x"]


def test_query_ordering(menus):
    for name, seq in [("low", 1), ("high", 9), ("mid", 5)]:
        menus.create(Menu(name=name, sequence=seq))
    opts = QueryOptions(order_fields=[OrderField("sequence", OrderDirection.DESC)])
    assert [m.name for m in menus.query(options=opts).data] == ["high", "mid", "low"]


def test_query_pagination(menus):
    created = [menus.create(Menu(name=f"m{i}")) for i in range(5)]
    opts = QueryOptions(order_fields=[OrderField("id")])
    result = menus.query(MenuQueryParam(pagination=True, current=2, page_size=2), opts)
    assert [m.id for m in result.data] == created[2:4]
    assert result.page_result.total == len(created)
    assert result.page_result.current == 2
    assert result.page_result.page_size == 2


def test_query_only_count(menus):
    for i in range(3):
        menus.create(Menu(name=f"m{i}"))
    result = menus.query(MenuQueryParam(only_count=True))
    assert result.data == []
    assert result.page_result.total == 3


def test_query_select_fields(menus):
    menus.create(Menu(name="x", status=1, memo="note"))
    result = menus.query(options=QueryOptions(select_fields=["id", "name"]))
    item = result.data[0]
    assert (item.name, item.status, item.memo) == ("x", 0, None)


def test_action_crud_and_query(menus, actions):
    m1 = menus.create(Menu(name="m1"))
    m2 = menus.create(Menu(name="m2"))
    a1 = actions.create(MenuAction(menu_id=m1, code="add", name="Add"))
    a2 = actions.create(MenuAction(menu_id=m2, code="del", name="Delete"))

    got = actions.get(a1)
    assert (got.menu_id, got.code, got.name) == (m1, "add", "Add")
    assert [a.id for a in actions.query(MenuActionQueryParam(menu_id=m2)).data] == [a2]
    assert [a.id for a in actions.query(MenuActionQueryParam(ids=[a1])).data] == [a1]

    actions.update(a1, MenuAction(name="Create"))
    assert actions.get(a1).name == "Create"
    assert actions.get(a1).code == "add"

    assert actions.delete_by_menu_id(m1) == 1
    assert [a.id for a in actions.query().data] == [a2]
    actions.delete(a2)
    assert actions.get(a2) is None


def test_resources_by_menu(menus, actions, resources):
    m1 = menus.create(Menu(name="m1"))
    m2 = menus.create(Menu(name="m2"))
    a1 = actions.create(MenuAction(menu_id=m1, code="a"))
    a2 = actions.create(MenuAction(menu_id=m1, code="b"))
    a3 = actions.create(MenuAction(menu_id=m2, code="c"))
    for action_id in (a1, a2, a3):
        resources.create(MenuActionResource(action_id=action_id, method="GET", path=f"/api/{action_id}"))

    def action_ids(**kw):
        return sorted(r.action_id for r in resources.query(MenuActionResourceQueryParam(**kw)).data)

    assert action_ids(menu_id=m1) == [a1, a2]
    assert action_ids(menu_ids=[m2]) == [a3]
    assert action_ids() == [a1, a2, a3]

    assert resources.delete_by_menu_id(m1) == 2
    assert action_ids() == [a3]
    assert resources.delete_by_action_id(a3) == 1
    assert action_ids() == []


def test_resource_get_update_delete(resources):
    rid = resources.create(MenuActionResource(action_id=1, method="GET", path="/api/v1/menus"))
    resources.update(rid, MenuActionResource(method="POST"))
    got = resources.get(rid)
    assert (got.action_id, got.method, got.path) == (1, "POST", "/api/v1/menus")
    assert resources.delete(rid) == 1
    assert resources.get(rid) is None