"""Creates and upgrades the tables that hold menus, roles and users."""

from __future__ import annotations

from dataclasses import dataclass

from .db import Database
from .menu import Menu, MenuAction, MenuActionResource
from .role import Role, RoleMenu
from .user import User, UserRole

KNOWN_DB_TYPES = frozenset({"mysql", "sqlite3", "postgres"})


def _quote(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


@dataclass(frozen=True)
class _Column:
    name: str
    sql_type: str
    not_null: bool = False
    default: str | None = None
    index: bool = False
    unique: bool = False
    primary_key: bool = False

    def definition(self, *, for_alter: bool = False) -> str:
        parts = [_quote(self.name), self.sql_type]
        if self.primary_key:
            parts.append("PRIMARY KEY AUTOINCREMENT")
        # SQLite cannot add a NOT NULL column without a default to a table.
        if self.not_null and not (for_alter and self.default is None):
            parts.append("NOT NULL")
        if self.default is not None:
            parts.append(f"DEFAULT {self.default}")
        return " ".join(parts)


_BASE = (
    _Column("id", "INTEGER", primary_key=True),
    _Column("created_at", "DATETIME"),
    _Column("updated_at", "DATETIME"),
)

# Tables in the order they are migrated.
_SCHEMA: tuple[tuple[str, tuple[_Column, ...]], ...] = (
    (
        MenuActionResource.table,
        _BASE
        + (
            _Column("action_id", "INTEGER", not_null=True, index=True),
            _Column("method", "VARCHAR(50)"),
            _Column("path", "VARCHAR(255)"),
        ),
    ),
    (
        MenuAction.table,
        _BASE
        + (
            _Column("menu_id", "INTEGER", not_null=True, index=True),
            _Column("code", "VARCHAR(100)"),
            _Column("name", "VARCHAR(100)"),
        ),
    ),
    (
        Menu.table,
        _BASE
        + (
            _Column("name", "VARCHAR(50)", not_null=True, default="''", index=True),
            _Column("icon", "VARCHAR(255)"),
            _Column("router", "VARCHAR(255)"),
            _Column("parent_id", "INTEGER", default="0", index=True),
            _Column("parent_path", "VARCHAR(512)", default="''", index=True),
            _Column("is_show", "INTEGER", default="0", index=True),
            _Column("status", "INTEGER", default="0", index=True),
            _Column("sequence", "INTEGER", default="0", index=True),
            _Column("memo", "VARCHAR(1024)"),
            _Column("creator", "INTEGER"),
        ),
    ),
    (
        RoleMenu.table,
        _BASE
        + (
            _Column("role_id", "INTEGER", not_null=True, index=True),
            _Column("menu_id", "INTEGER", not_null=True, index=True),
            _Column("action_id", "INTEGER", not_null=True, index=True),
        ),
    ),
    (
        Role.table,
        _BASE
        + (
            _Column("name", "VARCHAR(100)", not_null=True, default="''", index=True),
            _Column("sequence", "INTEGER", default="0", index=True),
            _Column("memo", "VARCHAR(1024)"),
            _Column("status", "INTEGER", default="0", index=True),
            _Column("creator", "INTEGER"),
        ),
    ),
    (
        UserRole.table,
        _BASE
        + (
            _Column("user_id", "INTEGER", default="0", index=True),
            _Column("role_id", "INTEGER", default="0", index=True),
        ),
    ),
    (
        User.table,
        _BASE
        + (
            _Column(
                "user_name", "VARCHAR(64)", not_null=True, default="''", index=True, unique=True
            ),
            _Column("real_name", "VARCHAR(64)", default="''", index=True),
            _Column("password", "VARCHAR(40)", default="''"),
            _Column("email", "VARCHAR(255)"),
            _Column("phone", "VARCHAR(20)"),
            _Column("status", "INTEGER", default="0", index=True),
            _Column("creator", "INTEGER"),
        ),
    ),
)


def _existing_columns(db: Database, table: str) -> set[str]:
    return {row["name"] for row in db.execute(f"PRAGMA table_info({_quote(table)})")}


def _migrate_table(db: Database, table: str, columns: tuple[_Column, ...]) -> None:
    existing = _existing_columns(db, table)
    if not existing:
        body = ", ".join(col.definition() for col in columns)
        db.execute(f"CREATE TABLE {_quote(table)} ({body})")
    else:
        for col in columns:
            if col.name in existing or col.primary_key:
                continue
            db.execute(
                f"ALTER TABLE {_quote(table)} ADD COLUMN {col.definition(for_alter=True)}"
            )
    for col in columns:
        if not col.index:
            continue
        kind = "UNIQUE INDEX" if col.unique else "INDEX"
        index_name = _quote(f"idx_{table}_{col.name}")
        db.execute(
            f"CREATE {kind} IF NOT EXISTS {index_name} ON {_quote(table)} ({_quote(col.name)})"
        )


def auto_migrate(db: Database, db_type: str | None = None) -> list[str]:
    """Create missing tables, columns and indexes; return the tables migrated.

    ``db_type`` names the configured database type and must be one of
    ``mysql``, ``sqlite3`` or ``postgres`` when given. The MySQL storage-engine
    table option has no SQLite counterpart and is not applied.
    """
    if db_type is not None and db_type.lower() not in KNOWN_DB_TYPES:
        raise ValueError(f"unknown db type {db_type!r}")
    migrated: list[str] = []
    with db.transaction():
        for table, columns in _SCHEMA:
            _migrate_table(db, table, columns)
            migrated.append(table)
    return migrated