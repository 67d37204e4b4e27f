"""Menus, their actions and the HTTP resources each action grants."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, ClassVar, Generic, TypeVar

from .db import (
    Database,
    PaginationParam,
    Query,
    QueryOptions,
    QueryResult,
    Row,
    find_one,
    parse_order,
    wrap_page_query,
)

_STAMPS = ("created_at", "updated_at")


@dataclass
class _Model:
    """Columns shared by every stored entity."""

    table: ClassVar[str] = ""
    nullable: ClassVar[frozenset[str]] = frozenset()

    id: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Row) -> Any:
        names = {f.name for f in fields(cls)}
        values = {k: v for k, v in row.items() if k in names}
        for stamp in _STAMPS:
            if isinstance(values.get(stamp), str):
                values[stamp] = datetime.fromisoformat(values[stamp])
        return cls(**values)

    def insert_values(self) -> dict[str, Any]:
        """Column values for a new row; an unset id is left to the database."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        if not values["id"]:
            del values["id"]
        return {k: v for k, v in values.items() if v is not None}

    def update_values(self) -> dict[str, Any]:
        """Column values to change: set optional fields and non-zero plain fields."""
        values: dict[str, Any] = {}
        for f in fields(self):
            if f.name == "id" or f.name in _STAMPS:
                continue
            value = getattr(self, f.name)
            if f.name in self.nullable:
                if value is not None:
                    values[f.name] = value
            elif value:
                values[f.name] = value
        return values


@dataclass
class Menu(_Model):
    table: ClassVar[str] = "menus"
    nullable: ClassVar[frozenset[str]] = frozenset(
        {"icon", "router", "parent_id", "parent_path", "memo"}
    )

    name: str = ""
    icon: str | None = None
    router: str | None = None
    parent_id: int | None = None
    parent_path: str | None = None
    is_show: int = 0
    status: int = 0
    sequence: int = 0
    memo: str | None = None
    creator: int = 0


@dataclass
class MenuAction(_Model):
    table: ClassVar[str] = "menu_actions"

    menu_id: int = 0
    code: str = ""
    name: str = ""


@dataclass
class MenuActionResource(_Model):
    table: ClassVar[str] = "menu_action_resources"

    action_id: int = 0
    method: str = ""
    path: str = ""


@dataclass
class MenuQueryParam(PaginationParam):
    ids: list[int] = field(default_factory=list)
    name: str = ""
    parent_id: int | None = None
    prefix_parent_path: str = ""
    is_show: int = 0
    status: int = 0
    query_value: str = ""


@dataclass
class MenuActionQueryParam(PaginationParam):
    menu_id: int = 0
    ids: list[int] = field(default_factory=list)


@dataclass
class MenuActionResourceQueryParam(PaginationParam):
    menu_id: int = 0
    menu_ids: list[int] = field(default_factory=list)


E = TypeVar("E", bound=_Model)


class _Repo(Generic[E]):
    entity: type[E]

    def __init__(self, db: Database) -> None:
        self.db = db

    def _table(self) -> Query:
        return self.db.table(self.entity.table)

    def _actions_of(self, clause: str, value: Any) -> Query:
        return self.db.table(MenuAction.table).where(clause, value).select("id")

    def _run(
        self,
        query: Query,
        params: PaginationParam,
        options: QueryOptions | None,
        *,
        allow_select: bool = True,
    ) -> QueryResult[E]:
        options = options or QueryOptions()
        if allow_select and options.select_fields:
            query = query.select(options.select_fields)
        if options.order_fields:
            query = query.order(parse_order(options.order_fields))
        rows, page = wrap_page_query(query, params)
        return QueryResult(data=[self.entity.from_row(r) for r in rows], page_result=page)

    def _get_one(self, id: int) -> E | None:
        row = find_one(self._table().where("id=?", id))
        return None if row is None else self.entity.from_row(row)

    def _create_one(self, item: E) -> int:
        return self._table().insert(item.insert_values())

    def _update_one(self, id: int, item: E) -> int:
        return self._table().where("id=?", id).update(item.update_values())

    def _delete_one(self, id: int) -> int:
        return self._table().where("id=?", id).delete()


class MenuRepo(_Repo[Menu]):
    entity = Menu

    def query(
        self, params: MenuQueryParam | None = None, options: QueryOptions | None = None
    ) -> QueryResult[Menu]:
        params = params or MenuQueryParam()
        q = self._table()
        if params.ids:
            q = q.where("id IN (?)", params.ids)
        if params.name:
            q = q.where("name=?", params.name)
        if params.parent_id is not None:
            q = q.where("parent_id=?", params.parent_id)
        if params.prefix_parent_path:
            q = q.where("parent_path LIKE ?", params.prefix_parent_path + "%")
        if params.is_show:
            q = q.where("is_show=?", params.is_show)
        if params.status:
            q = q.where("status=?", params.status)
        if params.query_value:
            q = q.where("name LIKE ?", f"%{params.query_value}%")
        return self._run(q, params, options)

    def get(self, id: int) -> Menu | None:
        """The menu with this id, or None."""
        return self._get_one(id)

    def create(self, item: Menu) -> int:
        """Store a new menu and return its id."""
        return self._create_one(item)

    def update(self, id: int, item: Menu) -> int:
        """Write the set fields of ``item`` to the menu with this id."""
        return self._update_one(id, item)

    def update_parent_path(self, id: int, parent_path: str) -> int:
        return self._table().where("id=?", id).update({"parent_path": parent_path})

    def delete(self, id: int) -> int:
        return self._delete_one(id)

    def update_status(self, id: int, status: int) -> int:
        return self._table().where("id=?", id).update({"status": status})


class MenuActionRepo(_Repo[MenuAction]):
    entity = MenuAction

    def query(
        self,
        params: MenuActionQueryParam | None = None,
        options: QueryOptions | None = None,
    ) -> QueryResult[MenuAction]:
        params = params or MenuActionQueryParam()
        q = self._table()
        if params.menu_id > 0:
            q = q.where("menu_id=?", params.menu_id)
        if params.ids:
            q = q.where("id IN (?)", params.ids)
        return self._run(q, params, options, allow_select=False)

    def get(self, id: int) -> MenuAction | None:
        """The action with this id, or None."""
        return self._get_one(id)

    def create(self, item: MenuAction) -> int:
        """Store a new action and return its id."""
        return self._create_one(item)

    def update(self, id: int, item: MenuAction) -> int:
        """Write the set fields of ``item`` to the action with this id."""
        return self._update_one(id, item)

    def delete(self, id: int) -> int:
        return self._delete_one(id)

    def delete_by_menu_id(self, menu_id: int) -> int:
        return self._table().where("menu_id=?", menu_id).delete()


class MenuActionResourceRepo(_Repo[MenuActionResource]):
    entity = MenuActionResource

    def query(
        self,
        params: MenuActionResourceQueryParam | None = None,
        options: QueryOptions | None = None,
    ) -> QueryResult[MenuActionResource]:
        params = params or MenuActionResourceQueryParam()
        q = self._table()
        if params.menu_id > 0:
            q = q.where("action_id IN (?)", self._actions_of("menu_id=?", params.menu_id))
        if params.menu_ids:
            q = q.where("action_id IN (?)", self._actions_of("menu_id IN (?)", params.menu_ids))
        return self._run(q, params, options, allow_select=False)

    def get(self, id: int) -> MenuActionResource | None:
        """The resource with this id, or None."""
        return self._get_one(id)

    def create(self, item: MenuActionResource) -> int:
        """Store a new resource and return its id."""
        return self._create_one(item)

    def update(self, id: int, item: MenuActionResource) -> int:
        """Write the set fields of ``item`` to the resource with this id."""
        return self._update_one(id, item)

    def delete(self, id: int) -> int:
        return self._delete_one(id)

    def delete_by_action_id(self, action_id: int) -> int:
        return self._table().where("action_id=?", action_id).delete()

    def delete_by_menu_id(self, menu_id: int) -> int:
        sub = self._actions_of("menu_id=?", menu_id)
        return self._table().where("action_id IN (?)", sub).delete()