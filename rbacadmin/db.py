"""A small query layer over SQLite with transactions and pagination helpers."""

from __future__ import annotations

import sqlite3
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")

Row = dict[str, Any]


class OrderDirection(Enum):
    ASC = "ASC"
    DESC = "DESC"


@dataclass(frozen=True)
class OrderField:
    key: str
    direction: OrderDirection = OrderDirection.ASC


@dataclass
class QueryOptions:
    select_fields: list[str] = field(default_factory=list)
    order_fields: list[OrderField] = field(default_factory=list)


@dataclass
class PaginationParam:
    pagination: bool = False
    only_count: bool = False
    current: int = 0
    page_size: int = 0

    def get_current(self) -> int:
        return self.current

    def get_page_size(self) -> int:
        return self.page_size


@dataclass
class PaginationResult:
    total: int = 0
    current: int = 0
    page_size: int = 0


@dataclass
class QueryResult(Generic[T]):
    data: list[T] = field(default_factory=list)
    page_result: PaginationResult | None = None


def _adapt(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, Enum):
        return value.value
    return value


def _quote(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _now() -> str:
    return datetime.now().isoformat(sep=" ")


class Database:
    """A SQLite connection with nestable transactions.

    A transaction opened while another is active joins the outer one. A
    locking transaction takes the write lock at its start.
    """

    def __init__(self, path: str = ":memory:") -> None:
        self._conn = sqlite3.connect(str(path), isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._depth = 0
        self._column_cache: dict[str, frozenset[str]] = {}

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def table(self, name: str) -> Query:
        """Start a query on a table."""
        return Query(self, name)

    @contextmanager
    def transaction(self, lock: bool = False) -> Iterator[Database]:
        """Run the block in a transaction, committing on success."""
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return
        self._conn.execute("BEGIN IMMEDIATE" if lock else "BEGIN")
        self._depth = 1
        try:
            yield self
        except BaseException:
            self._conn.execute("ROLLBACK")
            raise
        else:
            self._conn.execute("COMMIT")
        finally:
            self._depth = 0

    def execute(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        """Run raw SQL and return any rows it produces."""
        cursor = self._run(sql, params)
        self._column_cache.clear()
        return [dict(r) for r in cursor.fetchall()]

    def close(self) -> None:
        self._conn.close()

    def _run(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        return self._conn.execute(sql, tuple(_adapt(p) for p in params))

    def _columns(self, table: str) -> frozenset[str]:
        if table not in self._column_cache:
            rows = self._conn.execute(f"PRAGMA table_info({_quote(table)})").fetchall()
            self._column_cache[table] = frozenset(r["name"] for r in rows)
        return self._column_cache[table]


def _bind(clause: str, args: Sequence[Any]) -> tuple[str, tuple[Any, ...]]:
    parts = clause.split("?")
    if len(parts) - 1 != len(args):
        raise ValueError(
            f"clause {clause!r} has {len(parts) - 1} placeholders but {len(args)} arguments"
        )
    out = [parts[0]]
    params: list[Any] = []
    for arg, tail in zip(args, parts[1:]):
        if isinstance(arg, Query):
            sub_sql, sub_params = arg._select_sql()
            out.append(sub_sql)
            params.extend(sub_params)
        elif isinstance(arg, (list, tuple, set, frozenset)):
            items = list(arg)
            out.append(", ".join("?" for _ in items) if items else "NULL")
            params.extend(_adapt(v) for v in items)
        else:
            out.append("?")
            params.append(_adapt(arg))
        out.append(tail)
    return "".join(out), tuple(params)


@dataclass(frozen=True)
class Query:
    """An immutable, chainable query on one table."""

    db: Database
    table_name: str
    conditions: tuple[tuple[str, tuple[Any, ...]], ...] = ()
    columns: tuple[str, ...] = ()
    orders: tuple[str, ...] = ()

    def where(self, clause: str, *args: Any) -> Query:
        """Add a condition; ``?`` takes a value, a list (expanded) or a subquery."""
        return replace(self, conditions=self.conditions + (_bind(clause, args),))

    def select(self, fields: str | Sequence[str]) -> Query:
        cols = (fields,) if isinstance(fields, str) else tuple(fields)
        return replace(self, columns=cols)

    def order(self, order: str) -> Query:
        return replace(self, orders=self.orders + (order,)) if order else self

    def _where_sql(self) -> tuple[str, list[Any]]:
        if not self.conditions:
            return "", []
        params: list[Any] = []
        for _, p in self.conditions:
            params.extend(p)
        return " WHERE " + " AND ".join(f"({c})" for c, _ in self.conditions), params

    def _select_sql(self, limit: int | None = None, offset: int | None = None) -> tuple[str, list[Any]]:
        where, params = self._where_sql()
        cols = ", ".join(self.columns) or "*"
        sql = f"SELECT {cols} FROM {_quote(self.table_name)}{where}"
        if self.orders:
            sql += " ORDER BY " + ", ".join(self.orders)
        if limit is not None or offset is not None:
            sql += " LIMIT ?"
            params.append(-1 if limit is None else limit)
            if offset is not None:
                sql += " OFFSET ?"
                params.append(offset)
        return sql, params

    def count(self) -> int:
        where, params = self._where_sql()
        sql = f"SELECT COUNT(*) FROM {_quote(self.table_name)}{where}"
        return self.db._run(sql, params).fetchone()[0]

    def find(self, limit: int | None = None, offset: int | None = None) -> list[Row]:
        sql, params = self._select_sql(limit, offset)
        return [dict(r) for r in self.db._run(sql, params).fetchall()]

    def first(self) -> Row | None:
        """The first matching row by primary key, or None."""
        rows = replace(self, orders=self.orders + ("id ASC",)).find(limit=1)
        return rows[0] if rows else None

    def insert(self, values: Mapping[str, Any]) -> int:
        """Insert a row, stamping creation and update times; return its id."""
        row = dict(values)
        cols = self.db._columns(self.table_name)
        now = _now()
        for stamp in ("created_at", "updated_at"):
            if stamp in cols and row.get(stamp) is None:
                row[stamp] = now
        table = _quote(self.table_name)
        if row:
            names = ", ".join(_quote(k) for k in row)
            marks = ", ".join("?" for _ in row)
            sql = f"INSERT INTO {table} ({names}) VALUES ({marks})"
        else:
            sql = f"INSERT INTO {table} DEFAULT VALUES"
        return self.db._run(sql, list(row.values())).lastrowid

    def update(self, values: Mapping[str, Any]) -> int:
        """Update matching rows and return how many changed."""
        if not self.conditions:
            raise ValueError("update without a where clause")
        row = dict(values)
        if row and "updated_at" in self.db._columns(self.table_name) and "updated_at" not in row:
            row["updated_at"] = _now()
        if not row:
            return 0
        where, params = self._where_sql()
        sets = ", ".join(f"{_quote(k)}=?" for k in row)
        sql = f"UPDATE {_quote(self.table_name)} SET {sets}{where}"
        return self.db._run(sql, list(row.values()) + params).rowcount

    def delete(self) -> int:
        """Delete matching rows and return how many went."""
        if not self.conditions:
            raise ValueError("delete without a where clause")
        where, params = self._where_sql()
        return self.db._run(f"DELETE FROM {_quote(self.table_name)}{where}", params).rowcount


def parse_order(items: Sequence[OrderField], handle: Callable[[str], str] | None = None) -> str:
    """Render order fields as an ORDER BY list."""
    def render(item: OrderField) -> str:
        key = handle(item.key) if handle else item.key
        direction = "DESC" if item.direction is OrderDirection.DESC else "ASC"
        return f"{key} {direction}"

    return ",".join(render(item) for item in items)


def find_one(query: Query) -> Row | None:
    return query.first()


def check(query: Query) -> bool:
    """True when the query matches at least one row."""
    return query.count() > 0


def find_page(query: Query, pp: PaginationParam) -> tuple[int, list[Row]]:
    """Return the total count and the rows of the requested page."""
    total = query.count()
    if total == 0:
        return 0, []
    current, page_size = pp.get_current(), pp.get_page_size()
    if current > 0 and page_size > 0:
        rows = query.find(limit=page_size, offset=(current - 1) * page_size)
    elif page_size > 0:
        rows = query.find(limit=page_size)
    else:
        rows = query.find()
    return total, rows


def wrap_page_query(query: Query, pp: PaginationParam) -> tuple[list[Row], PaginationResult | None]:
    """Run the query as the pagination parameters ask."""
    if pp.only_count:
        return [], PaginationResult(total=query.count())
    if not pp.pagination:
        return query.find(), None
    total, rows = find_page(query, pp)
    return rows, PaginationResult(
        total=total, current=pp.get_current(), page_size=pp.get_page_size()
    )