"""Roles and the menu actions granted to each role."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

from .db import PaginationParam, QueryOptions, QueryResult
from .menu import _Model, _Repo


@dataclass
class Role(_Model):
    table: ClassVar[str] = "roles"
    nullable: ClassVar[frozenset[str]] = frozenset({"memo"})

    name: str = ""
    sequence: int = 0
    memo: str | None = None
    status: int = 0
    creator: int = 0


@dataclass
class RoleMenu(_Model):
    table: ClassVar[str] = "role_menus"

    role_id: int = 0
    menu_id: int = 0
    action_id: int = 0


@dataclass
class RoleQueryParam(PaginationParam):
    ids: list[int] = field(default_factory=list)
    name: str = ""
    query_value: str = ""
    # Carried by callers but, as stored queries go, not used as a filter.
    status: int = 0


@dataclass
class RoleMenuQueryParam(PaginationParam):
    role_id: int = 0
    role_ids: list[int] = field(default_factory=list)


class RoleRepo(_Repo[Role]):
    entity = Role

    def query(
        self, params: RoleQueryParam | None = None, options: QueryOptions | None = None
    ) -> QueryResult[Role]:
        params = params or RoleQueryParam()
        q = self._table()
        if params.ids:
            q = q.where("id IN (?)", params.ids)
        if params.name:
            q = q.where("name=?", params.name)
        if params.query_value:
            q = q.where("name LIKE ?", f"%{params.query_value}%")
        return self._run(q, params, options)

    def get(self, id: int) -> Role | None:
        """The role with this id, or None."""
        return self._get_one(id)

    def create(self, item: Role) -> int:
        """Store a new role and return its id."""
        return self._create_one(item)

    def update(self, id: int, item: Role) -> int:
        """Write the set fields of ``item`` to the role with this id."""
        return self._update_one(id, item)

    def delete(self, id: int) -> int:
        return self._delete_one(id)

    def update_status(self, id: int, status: int) -> int:
        return self._table().where("id=?", id).update({"status": status})


class RoleMenuRepo(_Repo[RoleMenu]):
    entity = RoleMenu

    def query(
        self,
        params: RoleMenuQueryParam | None = None,
        options: QueryOptions | None = None,
    ) -> QueryResult[RoleMenu]:
        params = params or RoleMenuQueryParam()
        q = self._table()
        if params.role_id > 0:
            q = q.where("role_id=?", params.role_id)
        if params.role_ids:
            q = q.where("role_id IN (?)", params.role_ids)
        return self._run(q, params, options)

    def get(self, id: int) -> RoleMenu | None:
        """The role-menu link with this id, or None."""
        return self._get_one(id)

    def create(self, item: RoleMenu) -> int:
        """Store a new role-menu link and return its id."""
        return self._create_one(item)

    def update(self, id: int, item: RoleMenu) -> int:
        """Write the set fields of ``item`` to the link with this id."""
        return self._update_one(id, item)

    def delete(self, id: int) -> int:
        return self._delete_one(id)

    def delete_by_role_id(self, role_id: int) -> int:
        return self._table().where("role_id=?", role_id).delete()