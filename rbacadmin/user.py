"""Users and the roles assigned to them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

from .db import PaginationParam, QueryOptions, QueryResult
from .menu import _Model, _Repo


@dataclass
class User(_Model):
    table: ClassVar[str] = "users"
    nullable: ClassVar[frozenset[str]] = frozenset({"email", "phone"})

    user_name: str = ""
    real_name: str = ""
    password: str = ""
    email: str | None = None
    phone: str | None = None
    status: int = 0
    creator: int = 0


@dataclass
class UserRole(_Model):
    table: ClassVar[str] = "user_roles"

    user_id: int = 0
    role_id: int = 0


@dataclass
class UserQueryParam(PaginationParam):
    user_name: str = ""
    query_value: str = ""
    status: int = 0
    role_ids: list[int] = field(default_factory=list)


@dataclass
class UserRoleQueryParam(PaginationParam):
    user_id: int = 0
    user_ids: list[int] = field(default_factory=list)


class UserRepo(_Repo[User]):
    entity = User

    def query(
        self, params: UserQueryParam | None = None, options: QueryOptions | None = None
    ) -> QueryResult[User]:
        params = params or UserQueryParam()
        q = self._table()
        if params.user_name:
            q = q.where("user_name=?", params.user_name)
        if params.status > 0:
            q = q.where("status=?", params.status)
        if params.role_ids:
            sub = (
                self.db.table(UserRole.table)
                .select("user_id")
                .where("role_id IN (?)", params.role_ids)
            )
            q = q.where("id IN (?)", sub)
        if params.query_value:
            pattern = f"%{params.query_value}%"
            q = q.where("user_name LIKE ? OR real_name LIKE ?", pattern, pattern)
        return self._run(q, params, options)

    def get(self, id: int) -> User | None:
        """The user with this id, or None."""
        return self._get_one(id)

    def create(self, item: User) -> int:
        """Store a new user and return its id."""
        return self._create_one(item)

    def update(self, id: int, item: User) -> int:
        """Write the set fields of ``item`` to the user with this id."""
        return self._update_one(id, item)

    def delete(self, id: int) -> int:
        return self._delete_one(id)

    def update_status(self, id: int, status: int) -> int:
        return self._table().where("id=?", id).update({"status": status})

    def update_password(self, id: int, password: str) -> int:
        return self._table().where("id=?", id).update({"password": password})


class UserRoleRepo(_Repo[UserRole]):
    entity = UserRole

    def query(
        self,
        params: UserRoleQueryParam | None = None,
        options: QueryOptions | None = None,
    ) -> QueryResult[UserRole]:
        params = params or UserRoleQueryParam()
        q = self._table()
        if params.user_id > 0:
            q = q.where("user_id=?", params.user_id)
        if params.user_ids:
            q = q.where("user_id IN (?)", params.user_ids)
        return self._run(q, params, options, allow_select=False)

    def get(self, id: int) -> UserRole | None:
        """The user-role link with this id, or None."""
        return self._get_one(id)

    def create(self, item: UserRole) -> int:
        """Store a new user-role link and return its id."""
        return self._create_one(item)

    def update(self, id: int, item: UserRole) -> int:
        """Write the set fields of ``item`` to the link with this id."""
        return self._update_one(id, item)

    def delete(self, id: int) -> int:
        return self._delete_one(id)

    def delete_by_user_id(self, user_id: int) -> int:
        return self._table().where("user_id=?", user_id).delete()