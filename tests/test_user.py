import pytest

from rbacadmin.db import Database, PaginationParam
from rbacadmin.user import (
    User,
    UserQueryParam,
    UserRepo,
    UserRole,
    UserRoleQueryParam,
    UserRoleRepo,
)


@pytest.fixture
def db():
    database = Database()
    database.execute(
        "CREATE TABLE users (id INTEGER PRIMARY KEY AUTOINCREMENT, created_at TEXT, "
        "updated_at TEXT, user_name TEXT NOT NULL DEFAULT '' UNIQUE, "
        "real_name TEXT DEFAULT '', password TEXT DEFAULT '', email TEXT, phone TEXT, "
        "status INTEGER DEFAULT 0, creator INTEGER DEFAULT 0)"
    )
    database.execute(
        "CREATE TABLE user_roles (id INTEGER PRIMARY KEY AUTOINCREMENT, created_at TEXT, "
        "updated_at TEXT, user_id INTEGER DEFAULT 0, role_id INTEGER DEFAULT 0)"
    )
    yield database
    database.close()


def test_create_and_get_round_trip(db):
    repo = UserRepo(db)
    password = "password"
    uid = repo.create(
        User(user_name="alice", real_name="Alice", password=password,
             email="alice@example.com", status=1, creator=2)
    )
    got = repo.get(uid)
    assert got.user_name == "alice"
    assert got.password == password
    assert got.email == "alice@example.com"
    assert got.phone is None
    assert got.status == 1


def test_get_missing_returns_none(db):
    assert UserRepo(db).get(42) is None


def test_query_filters(db):
    repo = UserRepo(db)
    a = repo.create(User(user_name="alice", real_name="Wonder", status=1))
    b = repo.create(User(user_name="bob", real_name="Builder", status=2))
    assert [u.id for u in repo.query(UserQueryParam(user_name="bob")).data] == [b]
    assert [u.id for u in repo.query(UserQueryParam(status=1)).data] == [a]
    assert [u.id for u in repo.query(UserQueryParam(query_value="Build")).data] == [b]
    assert [u.id for u in repo.query(UserQueryParam(query_value="ali")).data] == [a]


def test_query_by_role_ids_uses_assignments(db):
    users, roles = UserRepo(db), UserRoleRepo(db)
    a = users.create(User(user_name="alice"))
    b = users.create(User(user_name="bob"))
    users.create(User(user_name="carol"))
    roles.create(UserRole(user_id=a, role_id=10))
    roles.create(UserRole(user_id=b, role_id=20))
    assert [u.id for u in users.query(UserQueryParam(role_ids=[10])).data] == [a]
    assert sorted(u.id for u in users.query(UserQueryParam(role_ids=[10, 20])).data) == [a, b]


def test_query_only_count(db):
    repo = UserRepo(db)
    repo.create(User(user_name="alice"))
    repo.create(User(user_name="bob"))
    result = repo.query(UserQueryParam(only_count=True))
    assert result.data == []
    assert result.page_result.total == 2


def test_update_password_and_status(db):
    repo = UserRepo(db)
    uid = repo.create(User(user_name="alice", status=1))
    new_password = "secret"
    repo.update_password(uid, new_password)
    repo.update_status(uid, 2)
    got = repo.get(uid)
    assert got.password == new_password
    assert got.status == 2


def test_update_keeps_unset_fields(db):
    repo = UserRepo(db)
    uid = repo.create(User(user_name="alice", real_name="Alice", email="alice@example.com"))
    repo.update(uid, User(real_name="Al"))
    got = repo.get(uid)
    assert (got.user_name, got.real_name, got.email) == ("alice", "Al", "alice@example.com")


def test_delete(db):
    repo = UserRepo(db)
    uid = repo.create(User(user_name="alice"))
    assert repo.delete(uid) == 1
    assert repo.get(uid) is None


def test_user_role_query_and_delete_by_user(db):
    repo = UserRoleRepo(db)
    repo.create(UserRole(user_id=1, role_id=10))
    repo.create(UserRole(user_id=1, role_id=11))
    repo.create(UserRole(user_id=2, role_id=10))
    assert {r.role_id for r in repo.query(UserRoleQueryParam(user_id=1)).data} == {10, 11}
    assert len(repo.query(UserRoleQueryParam(user_ids=[1, 2])).data) == 3
    assert repo.delete_by_user_id(1) == 2
    assert [r.user_id for r in repo.query().data] == [2]


def test_user_role_pagination(db):
    repo = UserRoleRepo(db)
    for role_id in (1, 2, 3):
        repo.create(UserRole(user_id=9, role_id=role_id))
    params = UserRoleQueryParam(user_id=9, pagination=True, current=2, page_size=2)
    result = repo.query(params)
    assert len(result.data) == 1
    assert result.page_result.total == 3
    assert result.page_result.current == 2


def test_user_role_update_and_get(db):
    repo = UserRoleRepo(db)
    rid = repo.create(UserRole(user_id=1, role_id=10))
    repo.update(rid, UserRole(role_id=12))
    got = repo.get(rid)
    assert (got.user_id, got.role_id) == (1, 12)
    assert isinstance(UserRoleQueryParam(), PaginationParam) and got.id == rid