"""Policy source for an access-control enforcer, built from the stored roles."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import TypeVar

from .menu import MenuActionResourceQueryParam, MenuActionResourceRepo
from .role import RoleMenuQueryParam, RoleMenuRepo, RoleQueryParam, RoleRepo
from .user import UserQueryParam, UserRepo, UserRoleQueryParam, UserRoleRepo

_log = logging.getLogger(__name__)

T = TypeVar("T")


def _group(items: Iterable[T], key: Callable[[T], int]) -> dict[int, list[T]]:
    groups: dict[int, list[T]] = defaultdict(list)
    for item in items:
        groups[key(item)].append(item)
    return groups


@dataclass
class CasbinAdapter:
    """Reads policy lines from the role, menu and user repositories.

    Role policies take the form ``p,<role_id>,<path>,<method>`` and user
    policies ``g,<user_id>,<role_id>``. The policy is derived from stored
    data, so changes made through the enforcer are not written back; the
    write methods accept them without error and report that storage was
    left unchanged.
    """

    role_repo: RoleRepo
    role_menu_repo: RoleMenuRepo
    menu_resource_repo: MenuActionResourceRepo
    user_repo: UserRepo
    user_role_repo: UserRoleRepo

    def load_policy(self) -> list[str]:
        """All policy lines: role policies first, then user policies."""
        try:
            lines = list(self._role_policy())
        except Exception as exc:
            _log.error("Load casbin role policy error: %s", exc)
            raise
        try:
            lines.extend(self._user_policy())
        except Exception as exc:
            _log.error("Load casbin user policy error: %s", exc)
            raise
        return lines

    def _role_policy(self) -> Iterator[str]:
        roles = self.role_repo.query(RoleQueryParam(status=1)).data
        if not roles:
            return
        role_menus = _group(
            self.role_menu_repo.query(RoleMenuQueryParam()).data, lambda rm: rm.role_id
        )
        resources = _group(
            self.menu_resource_repo.query(MenuActionResourceQueryParam()).data,
            lambda r: r.action_id,
        )
        for role in roles:
            seen: set[str] = set()
            for role_menu in role_menus.get(role.id, ()):
                for resource in resources.get(role_menu.action_id, ()):
                    if not resource.path or not resource.method:
                        continue
                    key = resource.path + resource.method
                    if key in seen:
                        continue
                    seen.add(key)
                    yield f"p,{role.id},{resource.path},{resource.method}"

    def _user_policy(self) -> Iterator[str]:
        users = self.user_repo.query(UserQueryParam(status=1)).data
        if not users:
            return
        user_roles = _group(
            self.user_role_repo.query(UserRoleQueryParam()).data, lambda ur: ur.user_id
        )
        for user in users:
            for user_role in user_roles.get(user.id, ()):
                yield f"g,{user_role.user_id},{user_role.role_id}"

    @staticmethod
    def _unchanged(operation: str, detail: object) -> bool:
        _log.debug("policy %s not persisted: %s", operation, detail)
        return False

    def save_policy(self, lines: Iterable[str]) -> bool:
        """Accept a full policy; return False, as storage is left unchanged."""
        return self._unchanged("save", f"{sum(1 for _ in lines)} lines")

    def add_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> bool:
        """Accept an added rule; return False, as storage is left unchanged."""
        return self._unchanged("add", ",".join([ptype, *rule]))

    def remove_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> bool:
        """Accept a removed rule; return False, as storage is left unchanged."""
        return self._unchanged("remove", ",".join([ptype, *rule]))

    def remove_filtered_policy(
        self, sec: str, ptype: str, field_index: int, *field_values: str
    ) -> bool:
        """Accept a filtered removal; return False, as storage is left unchanged."""
        return self._unchanged(
            "filtered remove", f"{ptype}[{field_index}:]={','.join(field_values)}"
        )