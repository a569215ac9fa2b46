"""Permission checks consulted during price resolution."""

from __future__ import annotations

from collections import defaultdict
from typing import Final, Iterable, Mapping, Protocol
from uuid import UUID

OVERRIDE_PRICE_PERMISSION: Final = "quotes.override_price"


class PermissionCheck(Protocol):
    def has_override_permission(self, user_id: UUID) -> bool: ...


class GrantedPermissions:
    """In-process map of user ids to granted permission names."""

    def __init__(self, grants: Mapping[UUID, Iterable[str]] | None = None) -> None:
        self._grants: defaultdict[UUID, set[str]] = defaultdict(set)
        for user_id, permissions in (grants or {}).items():
            self._grants[user_id].update(permissions)

    def grant(self, user_id: UUID, permission: str = OVERRIDE_PRICE_PERMISSION) -> None:
        self._grants[user_id].add(permission)

    def revoke(self, user_id: UUID, permission: str = OVERRIDE_PRICE_PERMISSION) -> None:
        self._grants[user_id].discard(permission)

    def has_permission(self, user_id: UUID, permission: str) -> bool:
        return permission in self._grants.get(user_id, ())

    def has_override_permission(self, user_id: UUID) -> bool:
        return self.has_permission(user_id, OVERRIDE_PRICE_PERMISSION)


__all__ = ["GrantedPermissions", "OVERRIDE_PRICE_PERMISSION", "PermissionCheck"]
